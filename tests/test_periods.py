from datetime import date, datetime
from types import SimpleNamespace

import pandas as pd
import pytest

import smb_cashbook.periods as periods


@pytest.fixture
def wednesday(monkeypatch) -> date:
    """Freeze "today" on Wednesday 2025-03-12."""
    today = date(2025, 3, 12)
    monkeypatch.setattr(periods, "_today", lambda: today)
    return today


def test_today_and_yesterday(wednesday) -> None:
    assert periods.period_today() == periods.Period(wednesday, wednesday, "Today")

    yesterday = periods.period_yesterday()
    assert yesterday.start == yesterday.end == date(2025, 3, 11)


def test_week_starts_on_sunday(wednesday, monkeypatch) -> None:
    p = periods.period_this_week()
    assert (p.start, p.end) == (date(2025, 3, 9), wednesday)

    # On a Sunday the week is just that day.
    monkeypatch.setattr(periods, "_today", lambda: date(2025, 3, 16))
    p = periods.period_this_week()
    assert p.start == p.end == date(2025, 3, 16)


def test_this_month_and_last_days(wednesday) -> None:
    this_month = periods.period_this_month()
    assert (this_month.start, this_month.end) == (date(2025, 3, 1), wednesday)

    last_7 = periods.named_period("7days")
    assert (last_7.start, last_7.end) == (date(2025, 3, 6), wednesday)
    assert last_7.label == "Last 7 days"


def test_last_month_handles_short_months(wednesday) -> None:
    p = periods.period_last_month()

    assert (p.start, p.end) == (date(2025, 2, 1), date(2025, 2, 28))


def test_last_quarter_crosses_year_boundary(wednesday) -> None:
    p = periods.period_last_quarter()

    assert (p.start, p.end) == (date(2024, 10, 1), date(2024, 12, 31))
    assert p.label == "Q4 2024"


def test_every_named_period_resolves(wednesday) -> None:
    for name in periods.NAMED_PERIODS:
        p = periods.named_period(name)
        assert p.label

    with pytest.raises(ValueError):
        periods.named_period("fortnight")


def test_determine_period_priority(wednesday) -> None:
    """A named period wins over custom dates, custom dates over all time."""
    args = SimpleNamespace(period="today", from_date="2024-01-01", to_date=None)
    assert periods.determine_period_from_args(args).label == "Today"

    args = SimpleNamespace(period=None, from_date="2024-01-01", to_date=None)
    p = periods.determine_period_from_args(args)
    assert (p.start, p.end) == (date(2024, 1, 1), None)

    args = SimpleNamespace(period=None, from_date=None, to_date=None)
    p = periods.determine_period_from_args(args)
    assert (p.start, p.end) == (None, None)


def test_custom_period_end_before_start_is_rejected() -> None:
    args = SimpleNamespace(period=None, from_date="2025-01-10", to_date="2025-01-01")

    with pytest.raises(ValueError):
        periods.determine_period_from_args(args)


def test_filter_by_period_inclusive_bounds() -> None:
    """filter_by_period keeps rows in [start, end] and unparseable dates."""
    df = pd.DataFrame(
        {
            "date": [
                "2025-01-01",
                "2025-02-15T10:30:00",
                datetime(2025, 4, 1, 23, 59),
                "2025-04-02",
                "garbage",
            ],
            "id": [1, 2, 3, 4, 5],
        }
    )
    p = periods.Period(start=date(2025, 2, 1), end=date(2025, 4, 1), label="Test")

    filtered = periods.filter_by_period(df, p)

    assert list(filtered["id"]) == [2, 3, 5]


def test_filter_by_period_all_time_keeps_everything() -> None:
    df = pd.DataFrame({"date": ["2020-01-01", "2030-01-01"]})

    assert len(periods.filter_by_period(df, periods.period_all())) == 2
