"""
MJML Email Templates
All email templates using MJML for responsive, cross-client compatibility
"""

from typing import Optional

# App theme colors - Indigo/Slate color scheme
THEME = {
    "primary": "#4f46e5",
    "primary_dark": "#4338ca",
    "primary_light": "#e0e7ff",
    "background": "#f8fafc",
    "card_bg": "#ffffff",
    "text_primary": "#0f172a",
    "text_secondary": "#334155",
    "text_muted": "#64748b",
    "border": "#e2e8f0",
    "calendar": "#4285F4",
}

APP_NAME = "AdvisorConnect"


def get_base_template(
    title: str,
    preview_text: str,
    content_sections: str,
    cta_url: Optional[str] = None,
    cta_label: Optional[str] = None,
) -> str:
    """Base MJML template wrapper for all emails"""

    cta_section = ""
    if cta_url and cta_label:
        cta_section = f"""
        <mj-section padding="20px 0">
          <mj-column>
            <mj-button
              href="{cta_url}"
              background-color="{THEME['primary']}"
              color="#ffffff"
              font-weight="600"
              border-radius="8px"
              padding="18px 40px"
              font-size="16px">
              {cta_label}
            </mj-button>
          </mj-column>
        </mj-section>
        """

    return f"""
    <mjml>
      <mj-head>
        <mj-title>{title}</mj-title>
        <mj-preview>{preview_text}</mj-preview>
        <mj-attributes>
          <mj-all font-family="-apple-system, BlinkMacSystemFont, 'Segoe UI', 'Helvetica Neue', Arial, sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section background-color="#ffffff" padding="32px 20px 0 20px">
          <mj-column>
            <mj-text font-size="20px" font-weight="700" color="{THEME['primary']}" padding="0">
              {APP_NAME}
            </mj-text>
            <mj-divider border-color="{THEME['border']}" border-width="1px" padding="24px 0 0 0" />
          </mj-column>
        </mj-section>

        <!-- Main Content -->
        <mj-section background-color="#ffffff" padding="24px 40px 48px 40px">
          <mj-column>
            <mj-text font-size="24px" font-weight="600" color="{THEME['text_primary']}" line-height="1.3" padding="0 0 16px 0">
              {title}
            </mj-text>

            {content_sections}
          </mj-column>
        </mj-section>

        {cta_section}

        <!-- Footer -->
        <mj-section padding="32px 20px">
          <mj-column>
            <mj-text align="center" font-size="12px" color="#94a3b8" padding="0">
              You're receiving this because someone booked a meeting through your {APP_NAME} link.
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def meeting_scheduled_template(
    advisor_name: str,
    link_name: str,
    client_name: str,
    client_email: str,
    formatted_date: str,
    time: str,
    duration_minutes: int,
    profile_url: Optional[str] = None,
    notes: Optional[str] = None,
    answers: Optional[list[tuple[str, str]]] = None,
    dashboard_url: Optional[str] = None,
    calendar_url: Optional[str] = None,
) -> str:
    """
    Advisor notification for a new booking.

    All free-text values must already be HTML-escaped by the caller;
    `answers` is a list of (question text, answer) pairs in question order.
    """
    profile_row = ""
    if profile_url:
        profile_row = f"""
            <mj-text padding="0 0 4px 0">
              <strong>Profile:</strong> <a href="{profile_url}" style="color: {THEME['primary']};">{profile_url}</a>
            </mj-text>
        """

    notes_row = ""
    if notes:
        notes_row = f"""
            <mj-text padding="0 0 4px 0">
              <strong>Notes:</strong> {notes}
            </mj-text>
        """

    answers_section = ""
    if answers:
        rows = "".join(
            f"""
            <mj-text padding="0 0 4px 0">
              <strong>{question}:</strong> {answer}
            </mj-text>
            """
            for question, answer in answers
        )
        answers_section = f"""
            <mj-text font-size="16px" font-weight="600" color="{THEME['text_primary']}" padding="16px 0 8px 0">
              Additional Information
            </mj-text>
            {rows}
        """

    calendar_button = ""
    if calendar_url:
        calendar_button = f"""
            <mj-button href="{calendar_url}" background-color="{THEME['calendar']}" color="#ffffff" font-weight="600" border-radius="4px" align="left" padding="16px 0 0 0">
              Add to Google Calendar
            </mj-button>
        """

    content = f"""
            <mj-text>
              Hello {advisor_name},
            </mj-text>
            <mj-text>
              A new meeting has been scheduled through your link "{link_name}".
            </mj-text>
            <mj-text font-size="16px" font-weight="600" color="{THEME['text_primary']}" padding="16px 0 8px 0">
              Meeting Details
            </mj-text>
            <mj-text padding="0 0 4px 0">
              <strong>Client:</strong> {client_name} ({client_email})
            </mj-text>
            {profile_row}
            <mj-text padding="0 0 4px 0">
              <strong>Date:</strong> {formatted_date}
            </mj-text>
            <mj-text padding="0 0 4px 0">
              <strong>Time:</strong> {time}
            </mj-text>
            <mj-text padding="0 0 4px 0">
              <strong>Duration:</strong> {duration_minutes} minutes
            </mj-text>
            {notes_row}
            {answers_section}
            {calendar_button}
    """

    return get_base_template(
        title="New Meeting Scheduled",
        preview_text=f"{client_name} booked {link_name} on {formatted_date} at {time}",
        content_sections=content,
        cta_url=dashboard_url,
        cta_label="View your meetings" if dashboard_url else None,
    )
