"""
Expiration alert scheduling

Builds the PENDING expiration alerts for a subscription from its end date and
lead times. Pure: the caller owns persistence, including deleting the
previously pending alerts in the same transaction as the insert.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Iterable, Optional


class AlertType(str, Enum):
    EXPIRATION = "EXPIRATION"
    RENEWAL = "RENEWAL"
    PAYMENT_DUE = "PAYMENT_DUE"
    TRIAL_ENDING = "TRIAL_ENDING"
    CUSTOM = "CUSTOM"


class AlertStatus(str, Enum):
    PENDING = "PENDING"
    SENT = "SENT"
    FAILED = "FAILED"


class AlertChannel(str, Enum):
    EMAIL = "EMAIL"
    SMS = "SMS"
    WHATSAPP = "WHATSAPP"


@dataclass(frozen=True)
class ScheduledAlert:
    scheduled_for: datetime
    subject: str
    message: str
    recipient_email: Optional[str] = None
    recipient_phone: Optional[str] = None
    type: AlertType = AlertType.EXPIRATION
    channel: AlertChannel = AlertChannel.EMAIL
    status: AlertStatus = AlertStatus.PENDING


def format_expiry_date(value: datetime) -> str:
    """US short date, e.g. 4/1/2024"""
    return f"{value.month}/{value.day}/{value.year}"


def expiration_subject(days: int) -> str:
    return f"Subscription Expiring in {days} Days"


def expiration_message(subscription_name: str, end_date: datetime) -> str:
    return f'Your subscription "{subscription_name}" will expire on {format_expiry_date(end_date)}.'


def build_expiration_alerts(
    subscription_name: str,
    end_date: Optional[datetime],
    alert_days: Iterable[int],
    now: datetime,
    recipient_email: Optional[str] = None,
    recipient_phone: Optional[str] = None,
) -> list[ScheduledAlert]:
    """
    One alert per lead time, in alert_days order.

    Lead times whose send time is not after `now` are skipped without error.
    Duplicate lead times produce duplicate alerts. No end date means no alerts.
    """
    if end_date is None:
        return []

    alerts = []
    for days in alert_days:
        scheduled_for = end_date - timedelta(days=days)
        if scheduled_for <= now:
            continue
        alerts.append(
            ScheduledAlert(
                scheduled_for=scheduled_for,
                subject=expiration_subject(days),
                message=expiration_message(subscription_name, end_date),
                recipient_email=recipient_email,
                recipient_phone=recipient_phone,
            )
        )
    return alerts
