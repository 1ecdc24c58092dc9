from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def default_alert_days():
    return [30, 15, 7]


class Organization(Base):
    __tablename__ = "organizations"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    users = relationship("User", back_populates="organization")
    customers = relationship("Customer", back_populates="organization")
    subscriptions = relationship("Subscription", back_populates="organization")


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    full_name = Column(String(255), nullable=True)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=True, index=True)
    # SHA-256 hex digest of the user's API key - the raw key is never stored
    api_key_hash = Column(String(64), unique=True, index=True, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    organization = relationship("Organization", back_populates="users")


class Customer(Base):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    organization = relationship("Organization", back_populates="customers")
    subscriptions = relationship("Subscription", back_populates="customer")


class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=True, index=True)

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    type = Column(String(20), nullable=False)  # SERVICE, PRODUCT, SOFTWARE, MEMBERSHIP, OTHER

    # Pricing
    amount = Column(Float, nullable=False, default=0)
    currency = Column(String(10), default="USD", nullable=False)

    # Billing schedule
    billing_cycle = Column(String(20), nullable=False)  # DAILY ... YEARLY, ONE_TIME
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=True)
    next_billing_date = Column(DateTime, nullable=True)  # NULL for ONE_TIME
    auto_renew = Column(Boolean, default=True, nullable=False)
    renewal_terms = Column(Integer, default=12, nullable=False)  # months

    # Expiration alert lead times in days before end_date
    alert_days = Column(JSON, default=default_alert_days, nullable=False)

    # ACTIVE, INACTIVE, EXPIRED, CANCELLED, SUSPENDED, PENDING
    status = Column(String(20), default="ACTIVE", nullable=False, index=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    organization = relationship("Organization", back_populates="subscriptions")
    customer = relationship("Customer", back_populates="subscriptions")
    alerts = relationship(
        "SubscriptionAlert",
        back_populates="subscription",
        cascade="all, delete-orphan",
        order_by="SubscriptionAlert.scheduled_for",
    )


class SubscriptionAlert(Base):
    """Scheduled notification attached to a subscription"""

    __tablename__ = "subscription_alerts"

    id = Column(Integer, primary_key=True, index=True)
    subscription_id = Column(
        Integer, ForeignKey("subscriptions.id", ondelete="CASCADE"), nullable=False, index=True
    )

    type = Column(String(20), nullable=False)  # EXPIRATION, RENEWAL, PAYMENT_DUE, TRIAL_ENDING, CUSTOM
    channel = Column(String(20), default="EMAIL", nullable=False)  # EMAIL, SMS, WHATSAPP
    status = Column(String(20), default="PENDING", nullable=False, index=True)  # PENDING, SENT, FAILED
    scheduled_for = Column(DateTime, nullable=False, index=True)

    subject = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)

    # Snapshot of the customer's contact details at generation time
    recipient_email = Column(String(255), nullable=True)
    recipient_phone = Column(String(50), nullable=True)

    # Set when a dispatcher takes the alert; other dispatchers skip it until the claim goes stale
    claimed_at = Column(DateTime, nullable=True)
    sent_at = Column(DateTime, nullable=True)
    failure_reason = Column(String(500), nullable=True)

    created_at = Column(DateTime, server_default=func.now())

    subscription = relationship("Subscription", back_populates="alerts")
