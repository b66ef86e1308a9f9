"""
Email Service using Resend

Sends the transactional emails of the reminder flow.
"""

import asyncio
import logging
from datetime import datetime
from html import escape

import resend

from permission_please.core.config import settings

logger = logging.getLogger(__name__)

# Initialize Resend with API key
resend.api_key = settings.resend_api_key

# Configurations
EMAIL_FROM = settings.email_from
FRONTEND_URL = settings.frontend_url.rstrip("/")

URGENT_COLOR = "#dc2626"
REMINDER_COLOR = "#f59e0b"


def is_email_configured() -> bool:
    """Return True when a Resend API key is available."""
    return bool(resend.api_key)


def build_sign_url(form_id: str) -> str:
    """Link parents follow to review and sign a form."""
    return f"{FRONTEND_URL}/parent/sign/{form_id}"


def _format_date(value: datetime) -> str:
    return f"{value:%A, %B} {value.day}, {value.year}"


async def send_email(
    to_email: str,
    subject: str,
    html_content: str,
) -> bool:
    """
    Send an email using Resend.

    Args:
        to_email: Recipient email address
        subject: Email subject line
        html_content: HTML content of the email

    Returns:
        True if email was sent successfully
    """
    if not resend.api_key:
        logger.warning("RESEND_API_KEY not set - logging email instead of sending")
        logger.info(f"EMAIL TO: {to_email} | SUBJECT: {subject}")
        return True

    try:
        params: resend.Emails.SendParams = {
            "from": EMAIL_FROM,
            "to": [to_email],
            "subject": subject,
            "html": html_content,
        }

        # Run sync Resend call in thread pool to avoid blocking event loop
        email = await asyncio.to_thread(resend.Emails.send, params)
        logger.info(f"Email sent successfully to {to_email}, id: {email['id']}")
        return True
    except Exception as e:
        logger.error(f"Failed to send email to {to_email}: {e}")
        return False


def describe_time_remaining(
    days_remaining: int | None = None,
    hours_remaining: int | None = None,
) -> str:
    """
    Human wording for how soon a form is due.

    Examples: "tomorrow", "in 3 days", "in 1 hour", "in 6 hours".
    """
    if hours_remaining is not None:
        return f"in {hours_remaining} hour{'' if hours_remaining == 1 else 's'}"
    if days_remaining is None or days_remaining <= 1:
        return "tomorrow"
    return f"in {days_remaining} days"


def is_urgent(days_remaining: int | None = None, hours_remaining: int | None = None) -> bool:
    """Reminders sent a day or less before the deadline are urgent."""
    if hours_remaining is not None:
        return hours_remaining <= 24
    return days_remaining is None or days_remaining <= 1


async def send_reminder_email(
    to_email: str,
    parent_name: str,
    student_name: str,
    form_title: str,
    deadline: datetime,
    sign_url: str,
    teacher_name: str,
    school_name: str | None = None,
    event_date: datetime | None = None,
    days_remaining: int | None = None,
    hours_remaining: int | None = None,
) -> bool:
    """Send a signature reminder to a parent."""
    # Escape user inputs to prevent XSS
    safe_parent_name = escape(parent_name or "Parent")
    safe_student_name = escape(student_name)
    safe_form_title = escape(form_title)
    safe_teacher_name = escape(teacher_name or "Teacher")
    safe_school_name = escape(school_name or "School")

    urgent = is_urgent(days_remaining, hours_remaining)
    label = "URGENT" if urgent else "Reminder"
    color = URGENT_COLOR if urgent else REMINDER_COLOR
    when = describe_time_remaining(days_remaining, hours_remaining)

    event_line = (
        f'<p style="margin: 5px 0;"><strong>Event Date:</strong> {_format_date(event_date)}</p>'
        if event_date
        else ""
    )

    html_content = f"""
    <!DOCTYPE html>
    <html>
    <head>
        <style>
            body {{ font-family: system-ui, -apple-system, sans-serif; line-height: 1.6; color: #1f2937; }}
            .container {{ max-width: 600px; margin: 0 auto; padding: 40px 20px; }}
            .banner {{ background-color: {color}; color: white; padding: 16px; border-radius: 8px 8px 0 0; text-align: center; }}
            .details {{ background-color: #f9fafb; border: 1px solid #e5e7eb; padding: 16px; border-radius: 8px; margin: 16px 0; }}
            .deadline {{ color: {color}; font-weight: bold; }}
            .button {{ display: inline-block; background-color: #1e3a5f; color: white; padding: 14px 28px; text-decoration: none; border-radius: 8px; margin: 24px 0; }}
            .footer {{ margin-top: 40px; padding-top: 20px; border-top: 1px solid #e5e7eb; color: #6b7280; font-size: 14px; }}
        </style>
    </head>
    <body>
        <div class="container">
            <div class="banner"><h1>{label}: Signature Needed</h1></div>

            <p>Hi {safe_parent_name},</p>

            <p>This is a friendly reminder that the permission form for <strong>{safe_student_name}</strong> still needs your response.</p>

            <div class="details">
                <h2>{safe_form_title}</h2>
                {event_line}
                <p style="margin: 5px 0;"><strong>Teacher:</strong> {safe_teacher_name} ({safe_school_name})</p>
                <p class="deadline">Deadline: {_format_date(deadline)} (due {when})</p>
            </div>

            <a href="{sign_url}" class="button">Review &amp; Sign</a>

            <p>Or copy and paste this link into your browser:</p>
            <p style="word-break: break-all; color: #3b82f6;">{sign_url}</p>

            <div class="footer">
                <p>Sent via Permission Please - Secure Digital Signatures</p>
            </div>
        </div>
    </body>
    </html>
    """

    return await send_email(
        to_email=to_email,
        subject=f"{label}: Permission form for {student_name} due {when}",
        html_content=html_content,
    )
