"""
Twilio SMS Service
Sends subscription alerts over SMS or WhatsApp through the platform Twilio account
"""

import logging
from typing import Optional

import httpx

from ..config import TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN, TWILIO_FROM_NUMBER, TWILIO_WHATSAPP_FROM

logger = logging.getLogger(__name__)

TWILIO_API_BASE = "https://api.twilio.com/2010-04-01"


async def send_sms(
    to_phone: str,
    message_body: str,
    whatsapp: bool = False,
) -> tuple[bool, Optional[str]]:
    """
    Send SMS (or WhatsApp message) via Twilio

    Args:
        to_phone: Recipient phone number in E.164 format
        message_body: Message content
        whatsapp: Deliver over WhatsApp instead of SMS

    Returns:
        Tuple of (success: bool, error_message: Optional[str])
    """
    if not to_phone:
        return False, "No phone number provided"

    if not to_phone.startswith("+"):
        logger.warning(f"Phone number not in E.164 format: {to_phone}")
        return False, "Phone number must be in E.164 format (e.g., +1234567890)"

    if not TWILIO_ACCOUNT_SID or not TWILIO_AUTH_TOKEN:
        logger.error("❌ Twilio not configured - TWILIO_ACCOUNT_SID/TWILIO_AUTH_TOKEN missing")
        return False, "Twilio not configured"

    from_number = TWILIO_WHATSAPP_FROM if whatsapp else TWILIO_FROM_NUMBER
    if not from_number:
        return False, "No Twilio sender number configured"

    channel = "WhatsApp" if whatsapp else "SMS"
    prefix = "whatsapp:" if whatsapp else ""
    data = {
        "To": f"{prefix}{to_phone}",
        "From": f"{prefix}{from_number}",
        "Body": message_body,
    }

    try:
        logger.info(f"📱 Sending {channel} to Twilio API for {to_phone}")
        async with httpx.AsyncClient() as client:
            response = await client.post(
                f"{TWILIO_API_BASE}/Accounts/{TWILIO_ACCOUNT_SID}/Messages.json",
                auth=(TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN),
                data=data,
                timeout=10.0,
            )

        logger.info(f"📡 Twilio API response status: {response.status_code}")

        if response.status_code in [200, 201]:
            message_sid = response.json().get("sid")
            logger.info(f"✅ {channel} sent successfully to {to_phone} (SID: {message_sid})")
            return True, None

        error_data = response.json()
        error_message = error_data.get("message", "Unknown error")
        error_code = error_data.get("code")
        logger.error(f"❌ Twilio API error [{error_code}]: {error_message}")
        return False, f"[{error_code}] {error_message}" if error_code else error_message

    except httpx.HTTPError as e:
        logger.error(f"Twilio API error: {str(e)}")
        return False, str(e)
