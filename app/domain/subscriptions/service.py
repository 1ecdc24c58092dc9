"""Subscription service - Business logic for subscription management"""

import logging
import math
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...database import transaction
from ...models import Customer, Organization, Subscription
from ...shared.validators import utc_now
from .alert_scheduler import build_expiration_alerts
from .billing_cycle import calculate_next_billing_date, needs_recalculation
from .repository import SubscriptionRepository
from .schemas import SubscriptionCreate, SubscriptionUpdate

logger = logging.getLogger(__name__)

STORE_UNAVAILABLE_DETAIL = "Subscription store unavailable, please retry"
RETRY_AFTER_SECONDS = "5"

# Request field -> model column for partial updates
UPDATE_FIELD_MAP = {
    "name": "name",
    "description": "description",
    "type": "type",
    "customerId": "customer_id",
    "amount": "amount",
    "billingCycle": "billing_cycle",
    "currency": "currency",
    "startDate": "start_date",
    "endDate": "end_date",
    "status": "status",
    "autoRenew": "auto_renew",
    "renewalTerms": "renewal_terms",
    "alertDays": "alert_days",
}


def store_unavailable() -> HTTPException:
    """Retryable failure surfaced when the persistence layer rejects a unit of work"""
    return HTTPException(
        status_code=503,
        detail=STORE_UNAVAILABLE_DETAIL,
        headers={"Retry-After": RETRY_AFTER_SECONDS},
    )


def paginate(page: int, limit: int, total: int) -> dict:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit) if limit else 0,
    }


class SubscriptionService:
    """Service for subscription management"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = SubscriptionRepository()

    def list_subscriptions(
        self,
        organization: Organization,
        status: Optional[str] = None,
        subscription_type: Optional[str] = None,
        customer_id: Optional[int] = None,
        page: int = 1,
        limit: int = 10,
    ) -> tuple[list[Subscription], dict]:
        """Get a page of the organization's subscriptions and its pagination block"""
        subscriptions, total = self.repo.get_subscriptions(
            self.db,
            organization.id,
            status=status,
            subscription_type=subscription_type,
            customer_id=customer_id,
            skip=(page - 1) * limit,
            limit=limit,
        )
        return subscriptions, paginate(page, limit, total)

    def get_subscription(self, subscription_id: int, organization: Organization) -> Subscription:
        """Get a specific subscription"""
        subscription = self.repo.get_subscription(self.db, subscription_id, organization.id)
        if not subscription:
            raise HTTPException(status_code=404, detail="Subscription not found")
        return subscription

    def _get_customer(self, customer_id: int, organization: Organization) -> Customer:
        customer = self.repo.get_customer(self.db, customer_id, organization.id)
        if not customer:
            raise HTTPException(status_code=404, detail="Customer not found")
        return customer

    def create_subscription(
        self,
        data: SubscriptionCreate,
        organization: Organization,
        now: Optional[datetime] = None,
    ) -> Subscription:
        """Create a subscription with its billing date and initial expiration alerts"""
        now = now or utc_now()
        logger.info(f"📥 Creating subscription '{data.name}' for organization {organization.id}")

        next_billing_date = calculate_next_billing_date(data.startDate, data.billingCycle)

        try:
            with transaction(self.db):
                customer = None
                if data.customerId is not None:
                    customer = self._get_customer(data.customerId, organization)

                subscription = self.repo.create_subscription(
                    self.db,
                    organization.id,
                    name=data.name,
                    description=data.description,
                    type=data.type.value,
                    customer_id=data.customerId,
                    amount=data.amount,
                    currency=data.currency,
                    billing_cycle=data.billingCycle.value,
                    start_date=data.startDate,
                    end_date=data.endDate,
                    next_billing_date=next_billing_date,
                    auto_renew=data.autoRenew,
                    renewal_terms=data.renewalTerms,
                    alert_days=list(data.alertDays),
                )

                alerts = build_expiration_alerts(
                    subscription_name=subscription.name,
                    end_date=subscription.end_date,
                    alert_days=subscription.alert_days,
                    now=now,
                    recipient_email=customer.email if customer else None,
                    recipient_phone=customer.phone if customer else None,
                )
                self.repo.insert_alerts(self.db, subscription.id, alerts)
        except SQLAlchemyError as e:
            logger.error(f"❌ Failed to create subscription for organization {organization.id}: {e}")
            raise store_unavailable() from e

        logger.info(
            f"✅ Created subscription {subscription.id} "
            f"(cycle={subscription.billing_cycle}, alerts={len(alerts)})"
        )
        return subscription

    def update_subscription(
        self,
        subscription_id: int,
        data: SubscriptionUpdate,
        organization: Organization,
        now: Optional[datetime] = None,
    ) -> Subscription:
        """
        Apply a partial update.

        The next billing date is recomputed when the billing cycle or start date
        changes. When alertDays or endDate are supplied, the subscription's PENDING
        alerts are replaced wholesale in the same transaction; SENT and FAILED
        alerts are never touched.
        """
        now = now or utc_now()

        try:
            with transaction(self.db):
                subscription = self.repo.get_subscription(
                    self.db, subscription_id, organization.id, for_update=True
                )
                if not subscription:
                    raise HTTPException(status_code=404, detail="Subscription not found")

                customer = subscription.customer
                if data.customerId is not None:
                    customer = self._get_customer(data.customerId, organization)

                updates = {}
                for field, value in data.model_dump(exclude_none=True).items():
                    updates[UPDATE_FIELD_MAP[field]] = getattr(value, "value", value)

                if needs_recalculation(
                    subscription.billing_cycle,
                    subscription.start_date,
                    new_cycle=data.billingCycle,
                    new_start=data.startDate,
                ):
                    updates["next_billing_date"] = calculate_next_billing_date(
                        data.startDate or subscription.start_date,
                        data.billingCycle or subscription.billing_cycle,
                    )

                self.repo.update_subscription(self.db, subscription, **updates)

                if data.alertDays is not None or data.endDate is not None:
                    removed = self.repo.delete_pending_alerts(self.db, subscription.id)
                    alerts = build_expiration_alerts(
                        subscription_name=subscription.name,
                        end_date=subscription.end_date,
                        alert_days=subscription.alert_days,
                        now=now,
                        recipient_email=customer.email if customer else None,
                        recipient_phone=customer.phone if customer else None,
                    )
                    self.repo.insert_alerts(self.db, subscription.id, alerts)
                    logger.info(
                        f"🔄 Replaced alerts for subscription {subscription.id}: "
                        f"removed {removed} pending, scheduled {len(alerts)}"
                    )
        except SQLAlchemyError as e:
            logger.error(f"❌ Failed to update subscription {subscription_id}: {e}")
            raise store_unavailable() from e

        logger.info(f"✅ Updated subscription {subscription_id}")
        return subscription

    def delete_subscription(self, subscription_id: int, organization: Organization) -> dict:
        """Delete a subscription and all of its alerts"""
        try:
            with transaction(self.db):
                subscription = self.repo.get_subscription(self.db, subscription_id, organization.id)
                if not subscription:
                    raise HTTPException(status_code=404, detail="Subscription not found")
                self.repo.delete_subscription(self.db, subscription)
        except SQLAlchemyError as e:
            logger.error(f"❌ Failed to delete subscription {subscription_id}: {e}")
            raise store_unavailable() from e

        logger.info(f"🗑️ Deleted subscription {subscription_id}")
        return {"message": "Subscription deleted successfully"}

    def count_alerts(self, subscription: Subscription) -> int:
        return self.repo.count_alerts(self.db, subscription.id)
