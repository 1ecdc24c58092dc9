"""
Alert Notification Service
Delivers a single subscription alert over its channel (email, SMS or WhatsApp)
"""

import logging

from ..config import DEFAULT_ORGANIZATION_NAME
from ..domain.subscriptions.alert_scheduler import AlertChannel
from ..models import SubscriptionAlert
from ..shared.validators import normalize_email, validate_phone

logger = logging.getLogger(__name__)


class AlertDeliveryError(Exception):
    """Raised when an alert cannot be delivered over its channel"""


async def deliver_alert(alert: SubscriptionAlert) -> None:
    """
    Send an alert to the recipient snapshot stored on it.

    Raises:
        AlertDeliveryError: missing/invalid recipient, unsupported channel or sender failure
    """
    from ..email_service import send_subscription_alert_email
    from .twilio_service import send_sms

    subscription = alert.subscription
    organization_name = (
        subscription.organization.name
        if subscription.organization and subscription.organization.name
        else DEFAULT_ORGANIZATION_NAME
    )

    if alert.channel == AlertChannel.EMAIL.value:
        if not alert.recipient_email:
            raise AlertDeliveryError("No recipient email address")

        try:
            to_email = normalize_email(alert.recipient_email)
        except ValueError as e:
            raise AlertDeliveryError(f"Invalid email address: {e}") from e

        logger.info(f"📧 Sending {alert.type} alert {alert.id} to {to_email}")
        try:
            await send_subscription_alert_email(
                to=to_email,
                subject=alert.subject,
                message=alert.message,
                subscription_name=subscription.name,
                subscription_type=subscription.type,
                subscription_status=subscription.status,
                organization_name=organization_name,
            )
        except Exception as e:
            raise AlertDeliveryError(str(e)) from e
        return

    if alert.channel in (AlertChannel.SMS.value, AlertChannel.WHATSAPP.value):
        if not alert.recipient_phone:
            raise AlertDeliveryError("No recipient phone number")

        try:
            to_phone = validate_phone(alert.recipient_phone)
        except ValueError as e:
            raise AlertDeliveryError(f"Invalid phone number: {e}") from e

        logger.info(f"📱 Sending {alert.type} alert {alert.id} via {alert.channel} to {to_phone}")
        success, error = await send_sms(
            to_phone=to_phone,
            message_body=f"{alert.subject}\n\n{alert.message}",
            whatsapp=alert.channel == AlertChannel.WHATSAPP.value,
        )
        if not success:
            raise AlertDeliveryError(error or f"{alert.channel} delivery failed")
        return

    raise AlertDeliveryError(f"Unsupported channel: {alert.channel}")
