"""
Billing period calculation.

A contract is always billed for its most recently closed cycle, never
for the cycle still in progress.
"""
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Union

from app.core.exceptions import InvalidCadence
from app.models.contract import BillingCycle


@dataclass(frozen=True)
class BillingPeriod:
    """Inclusive date window of one billing cycle."""
    start: date
    end: date

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def __str__(self) -> str:
        return f"{self.start.isoformat()} to {self.end.isoformat()}"


def _parse_cycle(cycle: Union[BillingCycle, str]) -> BillingCycle:
    if isinstance(cycle, BillingCycle):
        return cycle
    if not isinstance(cycle, str):
        raise InvalidCadence(cycle)
    try:
        return BillingCycle(cycle.strip().upper())
    except ValueError:
        raise InvalidCadence(cycle)


def calculate_billing_period(
    cycle: Union[BillingCycle, str],
    now: Union[date, datetime]
) -> BillingPeriod:
    """
    Compute the last closed billing period for a cycle.

    - MONTHLY: the whole previous calendar month
    - WEEKLY: the 7 days ending yesterday
    - BIWEEKLY: the 15 days ending yesterday
    - ANNUAL: from the first day of the current month one year ago up to
      the last day of the previous month

    Raises:
        InvalidCadence: for an unknown cycle value
    """
    billing_cycle = _parse_cycle(cycle)
    today = now.date() if isinstance(now, datetime) else now

    first_of_month = today.replace(day=1)
    last_of_previous_month = first_of_month - timedelta(days=1)

    if billing_cycle == BillingCycle.MONTHLY:
        return BillingPeriod(
            start=last_of_previous_month.replace(day=1),
            end=last_of_previous_month,
        )

    if billing_cycle == BillingCycle.WEEKLY:
        end = today - timedelta(days=1)
        return BillingPeriod(start=end - timedelta(days=6), end=end)

    if billing_cycle == BillingCycle.BIWEEKLY:
        end = today - timedelta(days=1)
        return BillingPeriod(start=end - timedelta(days=14), end=end)

    if billing_cycle == BillingCycle.ANNUAL:
        return BillingPeriod(
            start=date(today.year - 1, today.month, 1),
            end=last_of_previous_month,
        )

    raise InvalidCadence(cycle)


def period_closing_date(cycle: Union[BillingCycle, str], start: date) -> date:
    """
    First day on which the cycle starting at `start` is closed.

    Feeding this date back to calculate_billing_period yields the period
    that begins at `start` (for MONTHLY and ANNUAL, at the first of its month).
    """
    billing_cycle = _parse_cycle(cycle)

    if billing_cycle == BillingCycle.WEEKLY:
        return start + timedelta(days=7)
    if billing_cycle == BillingCycle.BIWEEKLY:
        return start + timedelta(days=15)
    if billing_cycle == BillingCycle.MONTHLY:
        if start.month == 12:
            return date(start.year + 1, 1, 1)
        return date(start.year, start.month + 1, 1)
    if billing_cycle == BillingCycle.ANNUAL:
        return date(start.year + 1, start.month, 1)

    raise InvalidCadence(cycle)


def next_billing_period(
    cycle: Union[BillingCycle, str],
    last_period_end: date
) -> BillingPeriod:
    """Period that follows an invoiced one without overlapping it."""
    period = calculate_billing_period(
        cycle, period_closing_date(cycle, last_period_end + timedelta(days=1))
    )
    # A monthly or annual period after a cycle change can start mid-window
    while period.start <= last_period_end:
        period = calculate_billing_period(
            cycle, period_closing_date(cycle, period.end + timedelta(days=1))
        )
    return period
