"""Subscription repository - Database operations for subscriptions and alerts

Write methods only add and flush; committing belongs to the caller's
transaction so multi-step updates stay atomic.
"""

from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload, selectinload

from ...models import Customer, Subscription, SubscriptionAlert
from .alert_scheduler import AlertStatus, ScheduledAlert


class SubscriptionRepository:
    """Repository for subscription database operations"""

    @staticmethod
    def get_subscriptions(
        db: Session,
        organization_id: int,
        status: Optional[str] = None,
        subscription_type: Optional[str] = None,
        customer_id: Optional[int] = None,
        skip: int = 0,
        limit: int = 10,
    ) -> tuple[list[Subscription], int]:
        """Get a page of subscriptions for an organization, newest first, with the total count"""
        query = db.query(Subscription).filter(Subscription.organization_id == organization_id)

        if status:
            query = query.filter(Subscription.status == status)
        if subscription_type:
            query = query.filter(Subscription.type == subscription_type)
        if customer_id:
            query = query.filter(Subscription.customer_id == customer_id)

        total = query.count()
        subscriptions = (
            query.options(joinedload(Subscription.customer), selectinload(Subscription.alerts))
            .order_by(Subscription.created_at.desc(), Subscription.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )
        return subscriptions, total

    @staticmethod
    def get_subscription(
        db: Session, subscription_id: int, organization_id: int, for_update: bool = False
    ) -> Optional[Subscription]:
        """Get a subscription by ID within an organization"""
        query = db.query(Subscription).filter(
            Subscription.id == subscription_id,
            Subscription.organization_id == organization_id,
        )
        if for_update:
            query = query.with_for_update()
        return query.first()

    @staticmethod
    def get_customer(db: Session, customer_id: int, organization_id: int) -> Optional[Customer]:
        """Get a customer by ID within an organization"""
        return (
            db.query(Customer)
            .filter(Customer.id == customer_id, Customer.organization_id == organization_id)
            .first()
        )

    @staticmethod
    def create_subscription(db: Session, organization_id: int, **subscription_data) -> Subscription:
        """Stage a new subscription and assign its ID"""
        subscription = Subscription(organization_id=organization_id, **subscription_data)
        db.add(subscription)
        db.flush()
        return subscription

    @staticmethod
    def update_subscription(db: Session, subscription: Subscription, **updates) -> Subscription:
        """Apply field updates to a subscription"""
        for key, value in updates.items():
            if hasattr(subscription, key):
                setattr(subscription, key, value)
        db.flush()
        return subscription

    @staticmethod
    def delete_subscription(db: Session, subscription: Subscription) -> None:
        """Delete a subscription together with its alerts"""
        db.delete(subscription)
        db.flush()

    @staticmethod
    def delete_pending_alerts(db: Session, subscription_id: int) -> int:
        """Delete a subscription's PENDING alerts; SENT and FAILED alerts are kept"""
        deleted = (
            db.query(SubscriptionAlert)
            .filter(
                SubscriptionAlert.subscription_id == subscription_id,
                SubscriptionAlert.status == AlertStatus.PENDING.value,
            )
            .delete(synchronize_session=False)
        )
        db.flush()
        return deleted

    @staticmethod
    def insert_alerts(
        db: Session, subscription_id: int, alerts: Iterable[ScheduledAlert]
    ) -> list[SubscriptionAlert]:
        """Stage a batch of generated alerts for a subscription"""
        rows = [
            SubscriptionAlert(
                subscription_id=subscription_id,
                type=alert.type.value,
                channel=alert.channel.value,
                status=alert.status.value,
                scheduled_for=alert.scheduled_for,
                subject=alert.subject,
                message=alert.message,
                recipient_email=alert.recipient_email,
                recipient_phone=alert.recipient_phone,
            )
            for alert in alerts
        ]
        db.add_all(rows)
        db.flush()
        return rows

    @staticmethod
    def get_pending_alerts(db: Session, subscription_id: int) -> list[SubscriptionAlert]:
        """Get a subscription's PENDING alerts ordered by send time"""
        return (
            db.query(SubscriptionAlert)
            .filter(
                SubscriptionAlert.subscription_id == subscription_id,
                SubscriptionAlert.status == AlertStatus.PENDING.value,
            )
            .order_by(SubscriptionAlert.scheduled_for.asc())
            .all()
        )

    @staticmethod
    def count_alerts(db: Session, subscription_id: int) -> int:
        """Count all alerts of a subscription"""
        return (
            db.query(func.count(SubscriptionAlert.id))
            .filter(SubscriptionAlert.subscription_id == subscription_id)
            .scalar()
        )


class AlertRepository:
    """Repository for subscription alert database operations"""

    @staticmethod
    def get_alerts(
        db: Session,
        organization_id: int,
        status: Optional[str] = None,
        alert_type: Optional[str] = None,
        subscription_id: Optional[int] = None,
        skip: int = 0,
        limit: int = 10,
    ) -> tuple[list[SubscriptionAlert], int]:
        """Get a page of alerts for an organization ordered by send time, with the total count"""
        query = (
            db.query(SubscriptionAlert)
            .join(Subscription, SubscriptionAlert.subscription_id == Subscription.id)
            .filter(Subscription.organization_id == organization_id)
        )

        if status:
            query = query.filter(SubscriptionAlert.status == status)
        if alert_type:
            query = query.filter(SubscriptionAlert.type == alert_type)
        if subscription_id:
            query = query.filter(SubscriptionAlert.subscription_id == subscription_id)

        total = query.count()
        alerts = (
            query.options(joinedload(SubscriptionAlert.subscription))
            .order_by(SubscriptionAlert.scheduled_for.asc(), SubscriptionAlert.id.asc())
            .offset(skip)
            .limit(limit)
            .all()
        )
        return alerts, total

    @staticmethod
    def create_alert(db: Session, **alert_data) -> SubscriptionAlert:
        """Stage a single alert"""
        alert = SubscriptionAlert(**alert_data)
        db.add(alert)
        db.flush()
        return alert

    @staticmethod
    def get_due_alerts(
        db: Session, now: datetime, limit: int = 50, claim_expired_before: Optional[datetime] = None
    ) -> list[SubscriptionAlert]:
        """
        PENDING alerts whose send time has arrived, oldest first, across all organizations.

        Alerts claimed by another dispatcher are left out unless the claim is
        older than claim_expired_before. Rows locked by a concurrent run are skipped.
        """
        unclaimed = SubscriptionAlert.claimed_at.is_(None)
        if claim_expired_before is not None:
            unclaimed = or_(unclaimed, SubscriptionAlert.claimed_at < claim_expired_before)

        return (
            db.query(SubscriptionAlert)
            .options(
                joinedload(SubscriptionAlert.subscription).joinedload(Subscription.organization)
            )
            .filter(
                SubscriptionAlert.status == AlertStatus.PENDING.value,
                SubscriptionAlert.scheduled_for <= now,
                unclaimed,
            )
            .order_by(SubscriptionAlert.scheduled_for.asc(), SubscriptionAlert.id.asc())
            .limit(limit)
            .with_for_update(skip_locked=True, of=SubscriptionAlert)
            .all()
        )

    @staticmethod
    def claim_alert(
        db: Session, alert_id: int, now: datetime, claim_expired_before: Optional[datetime] = None
    ) -> bool:
        """
        Take a PENDING alert for sending.

        Conditional update: returns False when the alert was sent, failed or
        claimed by another dispatcher since it was selected.
        """
        unclaimed = SubscriptionAlert.claimed_at.is_(None)
        if claim_expired_before is not None:
            unclaimed = or_(unclaimed, SubscriptionAlert.claimed_at < claim_expired_before)

        claimed = (
            db.query(SubscriptionAlert)
            .filter(
                SubscriptionAlert.id == alert_id,
                SubscriptionAlert.status == AlertStatus.PENDING.value,
                unclaimed,
            )
            .update({SubscriptionAlert.claimed_at: now}, synchronize_session=False)
        )
        db.flush()
        return claimed == 1
