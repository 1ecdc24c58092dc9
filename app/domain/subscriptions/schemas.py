"""Subscription domain schemas - Pydantic models for validation"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import to_naive_utc
from .alert_scheduler import AlertChannel, AlertType
from .billing_cycle import BillingCycle


class SubscriptionType(str, Enum):
    SERVICE = "SERVICE"
    PRODUCT = "PRODUCT"
    SOFTWARE = "SOFTWARE"
    MEMBERSHIP = "MEMBERSHIP"
    OTHER = "OTHER"


class SubscriptionStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"
    SUSPENDED = "SUSPENDED"
    PENDING = "PENDING"


def _check_name(v: Optional[str]) -> Optional[str]:
    if v is not None and not v.strip():
        raise ValueError("Name is required")
    return v


def _check_amount(v: Optional[float]) -> Optional[float]:
    if v is not None and v < 0:
        raise ValueError("Amount must be positive")
    return v


# Lead times are at most ten years
MAX_ALERT_DAYS = 3650
# Keeps one billing cycle ahead and every lead time behind inside datetime's range
MIN_YEAR = 1900
MAX_YEAR = 9998


def _check_alert_days(v: Optional[list[int]]) -> Optional[list[int]]:
    if v is None:
        return v
    for days in v:
        if days < 1:
            raise ValueError("alertDays must contain positive integers")
        if days > MAX_ALERT_DAYS:
            raise ValueError(f"alertDays must not exceed {MAX_ALERT_DAYS} days")
    return v


def _check_date(v: Optional[datetime]) -> Optional[datetime]:
    v = to_naive_utc(v)
    if v is not None and not MIN_YEAR <= v.year <= MAX_YEAR:
        raise ValueError(f"Date must be between years {MIN_YEAR} and {MAX_YEAR}")
    return v


class SubscriptionCreate(BaseModel):
    """Schema for creating a subscription"""

    name: str
    description: Optional[str] = None
    type: SubscriptionType
    customerId: Optional[int] = None
    amount: float
    billingCycle: BillingCycle
    currency: str = "USD"
    startDate: datetime
    endDate: Optional[datetime] = None
    autoRenew: bool = True
    renewalTerms: int = 12
    alertDays: list[int] = Field(default_factory=lambda: [30, 15, 7])

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        return _check_name(v)

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v):
        return _check_amount(v)

    @field_validator("alertDays")
    @classmethod
    def validate_alert_days(cls, v):
        return _check_alert_days(v)

    @field_validator("startDate", "endDate")
    @classmethod
    def normalize_dates(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _check_date(v)


class SubscriptionUpdate(BaseModel):
    """Schema for updating a subscription - omitted or null fields are left unchanged"""

    name: Optional[str] = None
    description: Optional[str] = None
    type: Optional[SubscriptionType] = None
    customerId: Optional[int] = None
    amount: Optional[float] = None
    billingCycle: Optional[BillingCycle] = None
    currency: Optional[str] = None
    startDate: Optional[datetime] = None
    endDate: Optional[datetime] = None
    status: Optional[SubscriptionStatus] = None
    autoRenew: Optional[bool] = None
    renewalTerms: Optional[int] = None
    alertDays: Optional[list[int]] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        return _check_name(v)

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v):
        return _check_amount(v)

    @field_validator("alertDays")
    @classmethod
    def validate_alert_days(cls, v):
        return _check_alert_days(v)

    @field_validator("startDate", "endDate")
    @classmethod
    def normalize_dates(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _check_date(v)


class SendAlertRequest(BaseModel):
    """Schema for creating a manual subscription alert"""

    subscriptionId: int
    type: AlertType
    subject: str
    message: str
    channel: AlertChannel = AlertChannel.EMAIL
    scheduledFor: Optional[datetime] = None

    @field_validator("subject")
    @classmethod
    def validate_subject(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Subject is required")
        return v

    @field_validator("message")
    @classmethod
    def validate_message(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Message is required")
        return v

    @field_validator("scheduledFor")
    @classmethod
    def normalize_scheduled_for(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _check_date(v)


class CustomerSummary(BaseModel):
    id: int
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None


class SubscriptionSummary(BaseModel):
    id: int
    name: str
    type: str
    status: str


class AlertResponse(BaseModel):
    """Schema for subscription alert response"""

    id: int
    subscriptionId: int
    type: str
    channel: str
    status: str
    scheduledFor: datetime
    subject: str
    message: str
    recipientEmail: Optional[str] = None
    recipientPhone: Optional[str] = None
    sentAt: Optional[datetime] = None
    failureReason: Optional[str] = None
    createdAt: Optional[datetime] = None
    subscription: Optional[SubscriptionSummary] = None


class SubscriptionResponse(BaseModel):
    """Schema for subscription response"""

    id: int
    organizationId: int
    name: str
    description: Optional[str] = None
    type: str
    customerId: Optional[int] = None
    customer: Optional[CustomerSummary] = None
    amount: float
    currency: str
    billingCycle: str
    startDate: datetime
    endDate: Optional[datetime] = None
    nextBillingDate: Optional[datetime] = None
    autoRenew: bool
    renewalTerms: int
    alertDays: list[int]
    status: str
    alerts: list[AlertResponse] = []
    alertCount: int = 0
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class SubscriptionListResponse(BaseModel):
    subscriptions: list[SubscriptionResponse]
    pagination: Pagination


class AlertListResponse(BaseModel):
    alerts: list[AlertResponse]
    pagination: Pagination


class AlertDispatchResult(BaseModel):
    alertId: int
    success: bool
    channel: str
    error: Optional[str] = None


class ProcessAlertsResponse(BaseModel):
    message: str
    successful: int
    failed: int
    results: list[AlertDispatchResult]
