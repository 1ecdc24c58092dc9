"""
MJML Email Templates
Subscription alert emails using MJML for responsive, cross-client compatibility
"""

from html import escape
from typing import Optional

# App theme colors - Indigo/Slate color scheme
THEME = {
    "primary": "#818cf8",
    "primary_dark": "#4f46e5",
    "primary_light": "#f8f9ff",
    "background": "#f8fafc",
    "card_bg": "#ffffff",
    "text_primary": "#0f172a",
    "text_secondary": "#334155",
    "text_muted": "#64748b",
    "border": "#e2e8f0",
}


def get_base_template(
    title: str,
    preview_text: str,
    content_sections: str,
    footer_text: Optional[str] = None,
) -> str:
    """Base MJML template wrapper for all emails"""

    footer_section = ""
    if footer_text:
        footer_section = f"""
        <mj-text align="center" font-size="13px" color="#94a3b8" padding="12px 0 0 0">
          {footer_text}
        </mj-text>
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
        <!-- Main Content -->
        <mj-section background-color="#ffffff" padding="40px 40px 48px 40px">
          <mj-column>
            <mj-text font-size="24px" font-weight="600" color="{THEME['text_primary']}" line-height="1.3" padding="0 0 8px 0">
              {title}
            </mj-text>
            <mj-divider border-color="{THEME['primary']}" border-width="2px" padding="0 0 24px 0" />

            {content_sections}
          </mj-column>
        </mj-section>

        <!-- Footer -->
        <mj-section padding="32px 20px">
          <mj-column>
            {footer_section}
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def subscription_alert_template(
    subject: str,
    message: str,
    subscription_name: str,
    subscription_type: str,
    subscription_status: str,
    organization_name: str,
) -> str:
    """Subscription alert MJML template"""
    message_html = "<br/>".join(escape(line) for line in message.split("\n"))

    content = f"""
    <mj-text padding="0 0 24px 0">
      {message_html}
    </mj-text>

    <mj-section background-color="{THEME['primary_light']}" border-radius="8px" padding="16px">
      <mj-column>
        <mj-text color="{THEME['primary']}" font-size="18px" font-weight="600" padding="0 0 8px 0">
          Subscription Details
        </mj-text>
        <mj-text font-size="14px" padding="0">
          <strong>Name:</strong> {escape(subscription_name)}<br/>
          <strong>Type:</strong> {escape(subscription_type)}<br/>
          <strong>Status:</strong> {escape(subscription_status)}
        </mj-text>
      </mj-column>
    </mj-section>
    """

    return get_base_template(
        title=escape(subject),
        preview_text=escape(subject),
        content_sections=content,
        footer_text=f"This is an automated message from {escape(organization_name)}",
    )
