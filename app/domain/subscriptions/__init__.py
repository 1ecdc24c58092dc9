"""Subscriptions domain - Billing cycles, expiration alerts and alert dispatch"""

from .router import alerts_router, router

__all__ = ["router", "alerts_router"]
