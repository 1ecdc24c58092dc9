"""Alert service - Manual alerts and dispatch of due subscription alerts"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...config import ALERT_CLAIM_TIMEOUT_MINUTES, ALERT_DISPATCH_BATCH_SIZE
from ...database import transaction
from ...models import Organization, SubscriptionAlert
from ...shared.validators import utc_now
from .alert_scheduler import AlertStatus
from .repository import AlertRepository, SubscriptionRepository
from .schemas import SendAlertRequest
from .service import paginate, store_unavailable

logger = logging.getLogger(__name__)


class AlertService:
    """Service for subscription alerts"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AlertRepository()
        self.subscription_repo = SubscriptionRepository()

    def list_alerts(
        self,
        organization: Organization,
        status: Optional[str] = None,
        alert_type: Optional[str] = None,
        subscription_id: Optional[int] = None,
        page: int = 1,
        limit: int = 10,
    ) -> tuple[list[SubscriptionAlert], dict]:
        alerts, total = self.repo.get_alerts(
            self.db,
            organization.id,
            status=status,
            alert_type=alert_type,
            subscription_id=subscription_id,
            skip=(page - 1) * limit,
            limit=limit,
        )
        return alerts, paginate(page, limit, total)

    async def create_alert(
        self,
        data: SendAlertRequest,
        organization: Organization,
        now: Optional[datetime] = None,
    ) -> SubscriptionAlert:
        """
        Create a manual alert for one of the organization's subscriptions.

        Alerts without a future scheduledFor are sent right away and stored as
        SENT or FAILED. Future alerts are stored PENDING for the dispatcher.
        """
        now = now or utc_now()
        scheduled_for = data.scheduledFor or now
        send_now = scheduled_for <= now

        try:
            with transaction(self.db):
                subscription = self.subscription_repo.get_subscription(
                    self.db, data.subscriptionId, organization.id
                )
                if not subscription:
                    raise HTTPException(status_code=404, detail="Subscription not found")

                customer = subscription.customer
                alert = self.repo.create_alert(
                    self.db,
                    subscription_id=subscription.id,
                    type=data.type.value,
                    channel=data.channel.value,
                    status=AlertStatus.PENDING.value,
                    scheduled_for=scheduled_for,
                    # Sent inline below, so the dispatcher must not pick it up too
                    claimed_at=now if send_now else None,
                    subject=data.subject,
                    message=data.message,
                    recipient_email=customer.email if customer else None,
                    recipient_phone=customer.phone if customer else None,
                )
        except SQLAlchemyError as e:
            logger.error(f"❌ Failed to create alert for subscription {data.subscriptionId}: {e}")
            raise store_unavailable() from e

        logger.info(
            f"📝 Created {alert.type} alert {alert.id} for subscription {alert.subscription_id} "
            f"(channel={alert.channel}, scheduled_for={alert.scheduled_for})"
        )

        if send_now:
            try:
                await self.dispatch_alert(alert, now)
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error(f"❌ Failed to record delivery of alert {alert.id}: {e}")
                raise store_unavailable() from e

        return alert

    async def dispatch_alert(self, alert: SubscriptionAlert, now: datetime) -> dict:
        """
        Send one alert and record the outcome on it.

        A sender failure marks the alert FAILED with its reason; it is never
        re-raised so the rest of a batch still goes out.
        """
        from ...services.notification_service import deliver_alert

        try:
            await deliver_alert(alert)
        except Exception as e:
            reason = str(e) or e.__class__.__name__
            logger.warning(f"⚠️ Alert {alert.id} failed via {alert.channel}: {reason}")
            alert.status = AlertStatus.FAILED.value
            alert.failure_reason = reason[:500]
            self.db.commit()
            return {
                "alertId": alert.id,
                "success": False,
                "channel": alert.channel,
                "error": reason,
            }

        alert.status = AlertStatus.SENT.value
        alert.sent_at = now
        alert.failure_reason = None
        self.db.commit()
        logger.info(f"✅ Alert {alert.id} sent via {alert.channel}")
        return {"alertId": alert.id, "success": True, "channel": alert.channel, "error": None}

    async def process_due_alerts(
        self,
        now: Optional[datetime] = None,
        batch_size: int = ALERT_DISPATCH_BATCH_SIZE,
    ) -> dict:
        """
        Dispatch up to batch_size PENDING alerts whose send time has arrived.

        Alerts are claimed and the claims committed before anything is sent, so
        a concurrent run (cron worker and PATCH endpoint) never sends the same
        alert twice. A claim older than ALERT_CLAIM_TIMEOUT_MINUTES is treated
        as abandoned and may be taken again.
        """
        now = now or utc_now()
        claim_expired_before = now - timedelta(minutes=ALERT_CLAIM_TIMEOUT_MINUTES)

        try:
            with transaction(self.db):
                due = self.repo.get_due_alerts(
                    self.db, now, limit=batch_size, claim_expired_before=claim_expired_before
                )
                alerts = [
                    alert
                    for alert in due
                    if self.repo.claim_alert(self.db, alert.id, now, claim_expired_before)
                ]
            logger.info(f"⏰ Processing {len(alerts)} due alerts ({len(due) - len(alerts)} taken elsewhere)")

            results = []
            for alert in alerts:
                results.append(await self.dispatch_alert(alert, now))
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Alert processing aborted: {e}")
            raise store_unavailable() from e

        successful = sum(1 for result in results if result["success"])
        failed = len(results) - successful
        logger.info(f"📊 Alert processing complete: {successful} sent, {failed} failed")

        return {
            "message": f"Processed {len(results)} alerts",
            "successful": successful,
            "failed": failed,
            "results": results,
        }
