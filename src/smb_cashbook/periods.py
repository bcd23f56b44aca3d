# SMB Cashbook - Sales Analytics & Cashbook Ledger for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Period helpers for SMB Cashbook.

This module defines a Period value object and helpers to derive the
reporting periods offered by the sales and profitability reports
(today, this week, last quarter, custom range, ...) from CLI arguments.
"""

from calendar import monthrange
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Optional

import pandas as pd

NAMED_PERIODS: tuple[str, ...] = (
    "all",
    "today",
    "yesterday",
    "this-week",
    "this-month",
    "7days",
    "30days",
    "last-month",
    "last-quarter",
)


@dataclass
class Period:
    """
    Represents a reporting period with a human-readable label.

    ``start`` / ``end`` are inclusive; None means unbounded.
    """

    start: Optional[date]
    end: Optional[date]
    label: str

    def contains(self, day: date) -> bool:
        if self.start is not None and day < self.start:
            return False
        if self.end is not None and day > self.end:
            return False
        return True


def _today() -> date:
    """Return today's date as a date object (isolated for easier testing)."""
    return datetime.today().date()


def period_all() -> Period:
    return Period(start=None, end=None, label="All time")


def period_today() -> Period:
    today = _today()
    return Period(start=today, end=today, label="Today")


def period_yesterday() -> Period:
    yesterday = _today() - timedelta(days=1)
    return Period(start=yesterday, end=yesterday, label="Yesterday")


def period_this_week() -> Period:
    """Current week up to today; weeks start on Sunday."""
    today = _today()
    # date.weekday(): Monday=0 ... Sunday=6
    start = today - timedelta(days=(today.weekday() + 1) % 7)
    return Period(start=start, end=today, label="This week")


def period_this_month() -> Period:
    today = _today()
    return Period(start=today.replace(day=1), end=today, label="This month")


def period_last_days(days: int) -> Period:
    """The last ``days`` days, today included."""
    today = _today()
    start = today - timedelta(days=days - 1)
    return Period(start=start, end=today, label=f"Last {days} days")


def period_last_month() -> Period:
    """Full previous calendar month."""
    today = _today()
    if today.month == 1:
        year, month = today.year - 1, 12
    else:
        year, month = today.year, today.month - 1

    start = date(year, month, 1)
    end = date(year, month, monthrange(year, month)[1])
    return Period(start=start, end=end, label="Last month")


def period_last_quarter() -> Period:
    """Full previous calendar quarter (Jan-Mar, Apr-Jun, Jul-Sep, Oct-Dec)."""
    today = _today()
    current_quarter = (today.month - 1) // 3
    if current_quarter == 0:
        year, quarter = today.year - 1, 3
    else:
        year, quarter = today.year, current_quarter - 1

    first_month = quarter * 3 + 1
    last_month = first_month + 2
    start = date(year, first_month, 1)
    end = date(year, last_month, monthrange(year, last_month)[1])
    return Period(start=start, end=end, label=f"Q{quarter + 1} {year}")


def named_period(name: str) -> Period:
    """Resolve one of NAMED_PERIODS relative to today."""
    if name == "all":
        return period_all()
    if name == "today":
        return period_today()
    if name == "yesterday":
        return period_yesterday()
    if name == "this-week":
        return period_this_week()
    if name == "this-month":
        return period_this_month()
    if name == "7days":
        return period_last_days(7)
    if name == "30days":
        return period_last_days(30)
    if name == "last-month":
        return period_last_month()
    if name == "last-quarter":
        return period_last_quarter()
    raise ValueError(f"Unknown period: {name!r}")


def determine_period_from_args(args) -> Period:
    """
    Determine the reporting period to use based on CLI args.

    Priority (highest to lowest):

        1. args.period (one of NAMED_PERIODS)
        2. args.from_date / args.to_date (custom period, open-ended if one
           bound is missing)
        3. all time by default
    """
    # 1) Predefined period wins over everything else
    if getattr(args, "period", None):
        return named_period(args.period)

    # 2) Custom from/to dates
    from_raw: Optional[str] = getattr(args, "from_date", None)
    to_raw: Optional[str] = getattr(args, "to_date", None)

    if from_raw or to_raw:
        start = date.fromisoformat(from_raw) if from_raw else None
        end = date.fromisoformat(to_raw) if to_raw else None

        if start is not None and end is not None and end < start:
            raise ValueError("Custom period end date cannot be before start date.")

        label = f"Custom period ({start or '...'} to {end or '...'})"
        return Period(start=start, end=end, label=label)

    # 3) Default: everything
    return period_all()


def _day_of(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.fromisoformat(str(value).strip()).date()
    except ValueError:
        return None


def filter_by_period(
    df: pd.DataFrame,
    period: Period,
    column: str = "date",
) -> pd.DataFrame:
    """
    Keep the rows of ``df`` whose ``column`` falls within the period.

    Rows whose date cannot be parsed are kept, so that the decoding layer
    reports them instead of them silently disappearing.

    Parameters
    ----------
    df:
        DataFrame with at least ``column`` (datetime, date or ISO text).
    period:
        Period defining the [start, end] boundaries (inclusive).
    """
    if period.start is None and period.end is None:
        return df.copy()

    days = [_day_of(v) for v in df[column]]
    mask = [d is None or period.contains(d) for d in days]
    return df.loc[mask].copy()
