"""Email module for sending emails via Gmail API.

Templates are imported directly from src.email.templates when needed.
"""

from .schemas import EmailRecipient, SendEmailRequest, SendEmailResponse
from .service import EmailService, MailSender


__all__ = [
    "EmailRecipient",
    "EmailService",
    "MailSender",
    "SendEmailRequest",
    "SendEmailResponse",
]
