"""Notification email templates.

Single-notification and digest emails share one layout:
- Accent: #4CAF50
- Background: #F4F6F8
- Card: #FFFFFF
- Text: #333333
- Muted: #999999

Titles and messages contain user-authored text and are HTML-escaped.
"""

from collections.abc import Mapping, Sequence
from datetime import UTC, datetime
from html import escape
from uuid import UUID

from src.notifications.models import EmailFrequency, Notification
from src.pages.directory import PageInfo


SITE_NAME = "Kazakhstan IT Strategy"


# ==============================================================================
# Base Template
# ==============================================================================

BASE_TEMPLATE = """
<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{title} - {site_name}</title>
</head>
<body style="margin: 0; padding: 0; background-color: #F4F6F8; font-family: Arial, sans-serif; line-height: 1.6; color: #333333;">
  <table role="presentation" width="100%" cellpadding="0" cellspacing="0" style="background-color: #F4F6F8;">
    <tr>
      <td align="center" style="padding: 32px 16px;">
        <table role="presentation" width="600" cellpadding="0" cellspacing="0" style="background-color: #FFFFFF; border-radius: 8px; max-width: 600px;">
          <tr>
            <td style="padding: 32px;">
              {content}
            </td>
          </tr>
          <tr>
            <td style="padding: 20px 32px; border-top: 1px solid #DDDDDD; font-size: 12px; color: #999999;">
              <p style="margin: 0 0 8px;">{reason}</p>
              <p style="margin: 0;">
                To change your notification preferences, visit your
                <a href="{settings_url}" style="color: #4CAF50;">profile settings</a>.
              </p>
              <p style="margin: 8px 0 0;">&copy; {year} {site_name}</p>
            </td>
          </tr>
        </table>
      </td>
    </tr>
  </table>
</body>
</html>
"""

NOTIFICATION_BLOCK = """
<div style="background: #F9F9F9; border-left: 4px solid #4CAF50; padding: 15px; margin: 10px 0;">
  <div style="font-size: 18px; font-weight: bold; margin-bottom: 10px;">{title}</div>
  <div style="font-size: 14px; color: #666666;">{message}</div>
  {time}
  <a href="{page_url}" style="{link_style}">{link_text}</a>
</div>
"""

BUTTON_STYLE = (
    "display: inline-block; padding: 10px 20px; background: #4CAF50; "
    "color: #FFFFFF; text-decoration: none; border-radius: 4px; margin-top: 15px;"
)
LINK_STYLE = "color: #4CAF50; text-decoration: none;"


def page_url(base_url: str, page: PageInfo | None) -> str:
    """Link to the notification's page, or the site root when unknown."""
    if page is None:
        return base_url.rstrip("/")
    return page.url(base_url)


def settings_url(base_url: str) -> str:
    return f"{base_url.rstrip('/')}/profile/settings"


def digest_subject(frequency: EmailFrequency, count: int) -> str:
    return f"Your {frequency.value} notification digest - {count} new notification(s)"


def _layout(title: str, content: str, reason: str, base_url: str) -> str:
    return BASE_TEMPLATE.format(
        title=escape(title),
        site_name=SITE_NAME,
        content=content,
        reason=reason,
        settings_url=settings_url(base_url),
        year=datetime.now(UTC).year,
    )


# ==============================================================================
# Template: Single Notification
# ==============================================================================


def render_notification_email(
    notification: Notification, page: PageInfo | None, base_url: str
) -> tuple[str, str]:
    """Render the email for one notification.

    Returns:
        Tuple of (html_content, plain_text_content)
    """
    link = page_url(base_url, page)
    content = NOTIFICATION_BLOCK.format(
        title=escape(notification.title),
        message=escape(notification.message),
        time="",
        page_url=link,
        link_style=BUTTON_STYLE,
        link_text="View Page",
    )
    html = _layout(
        notification.title,
        content,
        f"You received this email because you have notifications enabled for {SITE_NAME}.",
        base_url,
    )

    plain_text = f"""
{notification.title}

{notification.message}

View page: {link}

---
To change your notification preferences, visit {settings_url(base_url)}
"""
    return html, plain_text.strip()


# ==============================================================================
# Template: Digest
# ==============================================================================


def render_digest_email(
    notifications: Sequence[Notification],
    pages: Mapping[UUID, PageInfo],
    frequency: EmailFrequency,
    base_url: str,
) -> tuple[str, str]:
    """Render one digest email covering ``notifications``.

    Args:
        notifications: Rows included in the digest, in display order
        pages: Page info keyed by page_id, for links
        frequency: Cadence the digest belongs to (hourly or daily)
        base_url: Public site URL

    Returns:
        Tuple of (html_content, plain_text_content)
    """
    blocks = []
    lines = []
    for notification in notifications:
        page = pages.get(notification.page_id) if notification.page_id else None
        link = page_url(base_url, page)
        timestamp = notification.created_at.strftime("%b %d, %Y %H:%M")
        blocks.append(
            NOTIFICATION_BLOCK.format(
                title=escape(notification.title),
                message=escape(notification.message),
                time=(
                    '<div style="font-size: 12px; color: #999999; margin-top: 5px;">'
                    f"{timestamp} UTC</div>"
                ),
                page_url=link,
                link_style=LINK_STYLE,
                link_text="View Page &rarr;",
            )
        )
        lines.append(f"- {notification.title} ({timestamp} UTC)\n  {notification.message}\n  {link}")

    header = (
        '<h2 style="margin: 0 0 4px; color: #4CAF50;">'
        f"Your {frequency.value} notification digest</h2>"
        f'<p style="margin: 0 0 16px;">{len(notifications)} new notification(s)</p>'
    )
    html = _layout(
        digest_subject(frequency, len(notifications)),
        header + "".join(blocks),
        f"You received this {frequency.value} digest because you have "
        f"notifications enabled for {SITE_NAME}.",
        base_url,
    )

    entries = "\n\n".join(lines)
    plain_text = f"""
Your {frequency.value} notification digest
{len(notifications)} new notification(s)

{entries}

---
To change your notification preferences, visit {settings_url(base_url)}
"""
    return html, plain_text.strip()
