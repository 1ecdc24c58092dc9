"""Subscription router - FastAPI endpoints for subscriptions and their alerts"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_organization, verify_cron_secret
from ...database import get_db
from ...models import Organization, Subscription, SubscriptionAlert
from .alert_scheduler import AlertStatus, AlertType
from .alert_service import AlertService
from .schemas import (
    AlertListResponse,
    AlertResponse,
    CustomerSummary,
    ProcessAlertsResponse,
    SendAlertRequest,
    SubscriptionCreate,
    SubscriptionListResponse,
    SubscriptionResponse,
    SubscriptionStatus,
    SubscriptionSummary,
    SubscriptionType,
    SubscriptionUpdate,
)
from .service import SubscriptionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/subscriptions", tags=["Subscriptions"])
# Registered ahead of `router` so /subscriptions/alerts never matches /{subscription_id}
alerts_router = APIRouter(prefix="/subscriptions/alerts", tags=["Subscription Alerts"])


def get_subscription_service(db: Session = Depends(get_db)) -> SubscriptionService:
    """Dependency injection for SubscriptionService"""
    return SubscriptionService(db)


def get_alert_service(db: Session = Depends(get_db)) -> AlertService:
    """Dependency injection for AlertService"""
    return AlertService(db)


def build_alert_response(alert: SubscriptionAlert, include_subscription: bool = False) -> AlertResponse:
    subscription = None
    if include_subscription and alert.subscription:
        subscription = SubscriptionSummary(
            id=alert.subscription.id,
            name=alert.subscription.name,
            type=alert.subscription.type,
            status=alert.subscription.status,
        )

    return AlertResponse(
        id=alert.id,
        subscriptionId=alert.subscription_id,
        type=alert.type,
        channel=alert.channel,
        status=alert.status,
        scheduledFor=alert.scheduled_for,
        subject=alert.subject,
        message=alert.message,
        recipientEmail=alert.recipient_email,
        recipientPhone=alert.recipient_phone,
        sentAt=alert.sent_at,
        failureReason=alert.failure_reason,
        createdAt=alert.created_at,
        subscription=subscription,
    )


def build_subscription_response(
    subscription: Subscription,
    alerts: list[SubscriptionAlert],
    alert_count: Optional[int] = None,
) -> SubscriptionResponse:
    customer = None
    if subscription.customer:
        customer = CustomerSummary(
            id=subscription.customer.id,
            name=subscription.customer.name,
            email=subscription.customer.email,
            phone=subscription.customer.phone,
        )

    return SubscriptionResponse(
        id=subscription.id,
        organizationId=subscription.organization_id,
        name=subscription.name,
        description=subscription.description,
        type=subscription.type,
        customerId=subscription.customer_id,
        customer=customer,
        amount=subscription.amount,
        currency=subscription.currency,
        billingCycle=subscription.billing_cycle,
        startDate=subscription.start_date,
        endDate=subscription.end_date,
        nextBillingDate=subscription.next_billing_date,
        autoRenew=subscription.auto_renew,
        renewalTerms=subscription.renewal_terms,
        alertDays=subscription.alert_days or [],
        status=subscription.status,
        alerts=[build_alert_response(alert) for alert in alerts],
        alertCount=alert_count if alert_count is not None else len(alerts),
        createdAt=subscription.created_at,
        updatedAt=subscription.updated_at,
    )


def pending_alerts(subscription: Subscription) -> list[SubscriptionAlert]:
    return [alert for alert in subscription.alerts if alert.status == AlertStatus.PENDING.value]


# ============================================================================
# ALERTS
# ============================================================================


@alerts_router.get("", response_model=AlertListResponse)
async def get_alerts(
    organization: Organization = Depends(get_current_organization),
    service: AlertService = Depends(get_alert_service),
    status: Optional[AlertStatus] = Query(None),
    alert_type: Optional[AlertType] = Query(None, alias="type"),
    subscription_id: Optional[int] = Query(None, alias="subscriptionId"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
):
    """Get the organization's alerts ordered by send time"""
    alerts, pagination = service.list_alerts(
        organization,
        status=status.value if status else None,
        alert_type=alert_type.value if alert_type else None,
        subscription_id=subscription_id,
        page=page,
        limit=limit,
    )
    return {
        "alerts": [build_alert_response(alert, include_subscription=True) for alert in alerts],
        "pagination": pagination,
    }


@alerts_router.post("", response_model=AlertResponse, status_code=201)
async def create_alert(
    data: SendAlertRequest,
    organization: Organization = Depends(get_current_organization),
    service: AlertService = Depends(get_alert_service),
):
    """Create a manual alert - sent immediately unless scheduled for later"""
    alert = await service.create_alert(data, organization)
    return build_alert_response(alert, include_subscription=True)


@alerts_router.patch(
    "",
    response_model=ProcessAlertsResponse,
    dependencies=[Depends(verify_cron_secret)],
)
async def process_alerts(service: AlertService = Depends(get_alert_service)):
    """Dispatch due PENDING alerts (called by the scheduler)"""
    return await service.process_due_alerts()


# ============================================================================
# SUBSCRIPTIONS
# ============================================================================


@router.get("", response_model=SubscriptionListResponse)
async def get_subscriptions(
    organization: Organization = Depends(get_current_organization),
    service: SubscriptionService = Depends(get_subscription_service),
    status: Optional[SubscriptionStatus] = Query(None),
    subscription_type: Optional[SubscriptionType] = Query(None, alias="type"),
    customer_id: Optional[int] = Query(None, alias="customerId"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
):
    """Get the organization's subscriptions with their pending alerts"""
    subscriptions, pagination = service.list_subscriptions(
        organization,
        status=status.value if status else None,
        subscription_type=subscription_type.value if subscription_type else None,
        customer_id=customer_id,
        page=page,
        limit=limit,
    )
    return {
        "subscriptions": [
            build_subscription_response(subscription, pending_alerts(subscription))
            for subscription in subscriptions
        ],
        "pagination": pagination,
    }


@router.post("", response_model=SubscriptionResponse, status_code=201)
async def create_subscription(
    data: SubscriptionCreate,
    organization: Organization = Depends(get_current_organization),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Create a subscription and schedule its expiration alerts"""
    subscription = service.create_subscription(data, organization)
    return build_subscription_response(subscription, pending_alerts(subscription))


@router.get("/{subscription_id}", response_model=SubscriptionResponse)
async def get_subscription(
    subscription_id: int,
    organization: Organization = Depends(get_current_organization),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Get a subscription with its full alert history"""
    subscription = service.get_subscription(subscription_id, organization)
    return build_subscription_response(
        subscription, list(subscription.alerts), service.count_alerts(subscription)
    )


@router.put("/{subscription_id}", response_model=SubscriptionResponse)
async def update_subscription(
    subscription_id: int,
    data: SubscriptionUpdate,
    organization: Organization = Depends(get_current_organization),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Update a subscription"""
    subscription = service.update_subscription(subscription_id, data, organization)
    return build_subscription_response(subscription, pending_alerts(subscription))


@router.delete("/{subscription_id}")
async def delete_subscription(
    subscription_id: int,
    organization: Organization = Depends(get_current_organization),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Delete a subscription and its alerts"""
    return service.delete_subscription(subscription_id, organization)
