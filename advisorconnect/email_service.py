"""
Email Service using Resend
Provides email functionality using MJML templates for responsive design
"""

import asyncio
import logging
from typing import Optional, Union

import resend
from mjml import mjml_to_html

from .config import EMAIL_FROM_ADDRESS, FRONTEND_URL, RESEND_API_KEY
from .domain.bookings.side_effects import MeetingDetails
from .email_templates import meeting_scheduled_template
from .services.google_calendar_service import build_add_to_calendar_url
from .shared.time_format import meeting_end, meeting_start
from .utils.sanitization import sanitize_string

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    try:
        result = mjml_to_html(mjml_content)
        # mjml_to_html returns a dict with 'html' and 'errors' keys
        if isinstance(result, dict):
            if result.get("errors"):
                logger.warning(f"MJML compilation warnings: {result['errors']}")
            return result.get("html", "")
        return str(result)
    except Exception as e:
        logger.error(f"MJML compilation error: {e}")
        raise Exception(f"Failed to compile MJML template: {str(e)}") from e


async def send_email(
    to: Union[str, list[str]],
    subject: str,
    mjml_content: str,
    from_address: Optional[str] = None,
    text_content: Optional[str] = None,
) -> dict:
    """
    Send an email through Resend

    Args:
        to: Recipient email(s)
        subject: Email subject line
        mjml_content: MJML template content (will be compiled to HTML)
        from_address: Optional custom from address
        text_content: Optional plain-text alternative

    Returns:
        Send response dict
    """
    if not RESEND_API_KEY:
        logger.error("No email service configured - RESEND_API_KEY missing")
        raise Exception("Email service not configured")

    html_content = compile_mjml_to_html(mjml_content)

    recipients = [to] if isinstance(to, str) else to
    sender = from_address or EMAIL_FROM_ADDRESS

    try:
        logger.info(f"Sending email via Resend to: {recipients}")
        email_data = {
            "from": sender,
            "to": recipients,
            "subject": subject,
            "html": html_content,
        }
        if text_content:
            email_data["text"] = text_content

        # The Resend SDK is synchronous; keep it off the event loop
        response = await asyncio.to_thread(resend.Emails.send, email_data)
        logger.info(f"Email sent successfully via Resend: {response}")
        return response
    except Exception as e:
        logger.error(f"Email send error to {recipients}: {e}")
        raise Exception(f"Failed to send email: {str(e)}") from e


def build_meeting_text(details: MeetingDetails, advisor_name: str, formatted_date: str) -> str:
    """Plain-text body for the advisor notification"""
    lines = [
        f"Hello {advisor_name},",
        "",
        f'A new meeting has been scheduled through your link "{details.link_name}".',
        "",
        "Meeting Details:",
        f"- Client: {details.client_name} ({details.client_email})",
    ]
    if details.profile_url:
        lines.append(f"- Profile: {details.profile_url}")
    lines += [
        f"- Date: {formatted_date}",
        f"- Time: {details.time}",
        f"- Duration: {details.duration} minutes",
    ]
    if details.notes:
        lines.append(f"- Notes: {details.notes}")
    if details.answers:
        lines += ["", "Additional Information:"]
        lines += [f"{question}: {answer}" for question, answer in details.answers]
    return "\n".join(lines)


async def send_meeting_notification_to_advisor(details: MeetingDetails) -> dict:
    """Tell the link owner that a meeting was booked"""
    if not details.owner_email:
        raise ValueError("No advisor email available for notification")

    advisor_name = details.owner_name or "Advisor"
    formatted_date = f"{details.date:%A, %B} {details.date.day}, {details.date.year}"

    text_content = build_meeting_text(details, advisor_name, formatted_date)
    calendar_url = build_add_to_calendar_url(
        title=f"Meeting with {details.client_name}",
        start=meeting_start(details.date, details.time),
        end=meeting_end(details.date, details.time, details.duration),
        description=text_content,
        attendee_email=details.client_email,
    )

    mjml_content = meeting_scheduled_template(
        advisor_name=sanitize_string(advisor_name),
        link_name=sanitize_string(details.link_name),
        client_name=sanitize_string(details.client_name),
        client_email=sanitize_string(details.client_email),
        formatted_date=formatted_date,
        time=sanitize_string(details.time),
        duration_minutes=details.duration,
        profile_url=sanitize_string(details.profile_url),
        notes=sanitize_string(details.notes),
        answers=[(sanitize_string(q), sanitize_string(a)) for q, a in details.answers],
        dashboard_url=f"{FRONTEND_URL}/dashboard/meetings",
        calendar_url=sanitize_string(calendar_url),
    )

    return await send_email(
        to=details.owner_email,
        subject=f"New Meeting Scheduled: {details.client_name}",
        mjml_content=mjml_content,
        text_content=text_content + f"\n\nAdd to Google Calendar: {calendar_url}",
    )
