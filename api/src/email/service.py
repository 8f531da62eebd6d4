"""Email delivery using Gmail API with Service Account.

Uses domain-wide delegation to send emails on behalf of a Google Workspace user.
The service account must have domain-wide delegation enabled in Google Admin Console.

Required Google Admin Console setup:
1. Go to Security > Access and data control > API controls > Domain-wide delegation
2. Add the service account client_id with scope: https://www.googleapis.com/auth/gmail.send
"""

import asyncio
import base64
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

import httplib2
from google.oauth2 import service_account
from google_auth_httplib2 import AuthorizedHttp
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from src.core.logging import get_logger

from .schemas import EmailRecipient, SendEmailRequest, SendEmailResponse


if TYPE_CHECKING:
    from googleapiclient._apis.gmail.v1 import GmailResource


logger = get_logger(__name__)

# Gmail API scope for sending emails
GMAIL_SCOPES = ["https://www.googleapis.com/auth/gmail.send"]
DEFAULT_HTTP_TIMEOUT_SECONDS = 10.0


class MailSender(Protocol):
    """Anything that can deliver one HTML email with an optional plain-text part."""

    async def send(
        self, to: str, subject: str, html_body: str, text_body: str | None = None
    ) -> SendEmailResponse: ...


class EmailService:
    """MailSender delivering through the Gmail API.

    Uses a service account with domain-wide delegation to impersonate
    the configured sender address.
    """

    def __init__(
        self,
        credentials_path: str,
        sender_address: str,
        sender_name: str = "Kazakhstan IT Strategy",
        timeout_seconds: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
    ):
        """Initialize Gmail API service.

        Args:
            credentials_path: Path to service account JSON file
            sender_address: Email address to send from (must be in Google Workspace)
            sender_name: Display name for sender
            timeout_seconds: Socket timeout for each Gmail API request
        """
        self.credentials_path = credentials_path
        self.sender_address = sender_address
        self.sender_name = sender_name
        self.timeout_seconds = timeout_seconds
        self._service: GmailResource | None = None

        if not Path(credentials_path).exists():
            logger.warning(
                "email_credentials_not_found",
                path=credentials_path,
                message="Gmail API will not be available",
            )

    def _get_service(self) -> "GmailResource":
        """Get or create Gmail API service.

        Raises:
            FileNotFoundError: If credentials file doesn't exist
        """
        if self._service is not None:
            return self._service

        credentials_file = Path(self.credentials_path)
        if not credentials_file.exists():
            msg = f"Credentials file not found: {self.credentials_path}"
            raise FileNotFoundError(msg)

        credentials = service_account.Credentials.from_service_account_file(
            str(credentials_file),
            scopes=GMAIL_SCOPES,
        )
        # The socket timeout bounds the worker thread even when the caller
        # has already given up waiting for it
        http = AuthorizedHttp(
            credentials.with_subject(self.sender_address),
            http=httplib2.Http(timeout=self.timeout_seconds),
        )
        self._service = build("gmail", "v1", http=http, cache_discovery=False)
        logger.info("gmail_service_initialized", sender=self.sender_address)
        return self._service

    @staticmethod
    def _format_address(recipient: EmailRecipient) -> str:
        if recipient.name:
            return f"{recipient.name} <{recipient.email}>"
        return recipient.email

    def _create_message(self, request: SendEmailRequest) -> dict:
        """Build the base64url ``raw`` payload Gmail expects."""
        message = MIMEMultipart("alternative")
        message["From"] = f"{self.sender_name} <{self.sender_address}>"
        message["To"] = ", ".join(self._format_address(r) for r in request.to)
        message["Subject"] = request.subject

        # Plain text first, then HTML (email clients prefer last)
        if request.body_text:
            message.attach(MIMEText(request.body_text, "plain", "utf-8"))
        message.attach(MIMEText(request.body_html, "html", "utf-8"))

        raw_message = base64.urlsafe_b64encode(message.as_bytes()).decode("utf-8")
        return {"raw": raw_message}

    def _send_blocking(self, message: dict) -> dict:
        service = self._get_service()
        return service.users().messages().send(userId="me", body=message).execute()

    async def send_email(self, request: SendEmailRequest) -> SendEmailResponse:
        """Send an email via Gmail API.

        The Gmail client is synchronous, so the call runs in a worker thread.
        """
        recipients = [r.email for r in request.to]
        try:
            message = self._create_message(request)
            result = await asyncio.to_thread(self._send_blocking, message)
        except HttpError as e:
            logger.exception(
                "email_send_failed",
                error=str(e),
                to=recipients,
                subject=request.subject[:50],
            )
            return SendEmailResponse(success=False, error=f"Gmail API error: {e!s}")
        except FileNotFoundError as e:
            logger.error("email_credentials_missing", error=str(e))
            return SendEmailResponse(
                success=False,
                error="Email service not configured: credentials file missing",
            )

        logger.info(
            "email_sent",
            message_id=result.get("id"),
            to=recipients,
            subject=request.subject[:50],
        )
        return SendEmailResponse(
            success=True,
            message_id=result.get("id"),
            thread_id=result.get("threadId"),
        )

    async def send(
        self,
        to: str,
        subject: str,
        html_body: str,
        text_body: str | None = None,
    ) -> SendEmailResponse:
        """Send a single-recipient HTML email."""
        request = SendEmailRequest(
            to=[EmailRecipient(email=to)],
            subject=subject,
            body_html=html_body,
            body_text=text_body,
        )
        return await self.send_email(request)
