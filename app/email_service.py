"""
Email Service using Resend
Sends subscription alert emails rendered from MJML templates
"""

import logging
from typing import Union

import resend
from mjml import mjml_to_html

from .config import EMAIL_FROM_ADDRESS, RESEND_API_KEY
from .email_templates import subscription_alert_template

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    try:
        result = mjml_to_html(mjml_content)
        # mjml_to_html returns an object/dict with 'html' and 'errors'
        errors = getattr(result, "errors", None)
        if errors is None and isinstance(result, dict):
            errors = result.get("errors")
        if errors:
            logger.warning(f"MJML compilation warnings: {errors}")
        if isinstance(result, dict):
            return result.get("html", "")
        return getattr(result, "html", str(result))
    except Exception as e:
        logger.error(f"MJML compilation error: {e}")
        raise Exception(f"Failed to compile MJML template: {str(e)}") from e


async def send_email(
    to: Union[str, list[str]],
    subject: str,
    mjml_content: str,
    text_content: str = None,
) -> dict:
    """
    Send an email using Resend

    Args:
        to: Recipient email(s)
        subject: Email subject line
        mjml_content: MJML template content (will be compiled to HTML)
        text_content: Optional plain-text alternative

    Returns:
        Send response dict
    """
    if not RESEND_API_KEY:
        logger.error("❌ No email service configured - RESEND_API_KEY missing")
        raise Exception("Email service not configured")

    html_content = compile_mjml_to_html(mjml_content)
    recipients = [to] if isinstance(to, str) else to

    try:
        logger.info(f"📧 Sending email via Resend to: {to}")
        email_data = {
            "from": EMAIL_FROM_ADDRESS,
            "to": recipients,
            "subject": subject,
            "html": html_content,
        }
        if text_content:
            email_data["text"] = text_content

        response = resend.Emails.send(email_data)
        logger.info(f"✅ Email sent successfully via Resend: {response}")
        return response
    except Exception as e:
        logger.error(f"❌ Email send error to {recipients}: {e}")
        raise Exception(f"Failed to send email: {str(e)}") from e


async def send_subscription_alert_email(
    to: str,
    subject: str,
    message: str,
    subscription_name: str,
    subscription_type: str,
    subscription_status: str,
    organization_name: str,
) -> dict:
    """Send a subscription alert to the subscription's customer"""
    mjml_content = subscription_alert_template(
        subject=subject,
        message=message,
        subscription_name=subscription_name,
        subscription_type=subscription_type,
        subscription_status=subscription_status,
        organization_name=organization_name,
    )
    text_content = (
        f"{subject}\n\n{message}\n\n"
        f"Subscription: {subscription_name}\nType: {subscription_type}\nStatus: {subscription_status}"
    )
    return await send_email(
        to=to,
        subject=subject,
        mjml_content=mjml_content,
        text_content=text_content,
    )
