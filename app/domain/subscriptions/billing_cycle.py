"""
Billing cycle calculations

Month-based cycles use calendar arithmetic and clamp to the last valid day
of the target month: Jan 31 + 1 month is Feb 29 in a leap year and Feb 28
otherwise, Feb 29 + 1 year is Feb 28. Time of day is preserved.
"""

from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from dateutil.relativedelta import relativedelta


class BillingCycle(str, Enum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    YEARLY = "YEARLY"
    ONE_TIME = "ONE_TIME"


CYCLE_INCREMENTS = {
    BillingCycle.DAILY: timedelta(days=1),
    BillingCycle.WEEKLY: timedelta(days=7),
    BillingCycle.MONTHLY: relativedelta(months=1),
    BillingCycle.QUARTERLY: relativedelta(months=3),
    BillingCycle.YEARLY: relativedelta(years=1),
}


def calculate_next_billing_date(start_date: datetime, billing_cycle: BillingCycle) -> Optional[datetime]:
    """
    Next billing date one cycle after start_date.

    Returns None for ONE_TIME subscriptions, which never rebill.
    """
    cycle = BillingCycle(billing_cycle)
    if cycle is BillingCycle.ONE_TIME:
        return None
    return start_date + CYCLE_INCREMENTS[cycle]


def needs_recalculation(
    current_cycle: str,
    current_start: datetime,
    new_cycle: Optional[BillingCycle] = None,
    new_start: Optional[datetime] = None,
) -> bool:
    """Whether an update changes the inputs of the next billing date"""
    cycle_changed = new_cycle is not None and BillingCycle(new_cycle) != BillingCycle(current_cycle)
    start_changed = new_start is not None and new_start != current_start
    return cycle_changed or start_changed
