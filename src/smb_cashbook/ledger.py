# SMB Cashbook - Sales Analytics & Cashbook Ledger for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Cashbook ledger aggregation for SMB Cashbook.

This module turns an unordered set of receipt/payment vouchers into a
day-by-day ledger with running balances.

1. Daily grouping
   ---------------
   ``compute_daily_ledger()`` buckets vouchers by calendar day, sorts the
   days ascending and walks them while carrying a running balance:

       opening_balance = closing balance of the previous day (0 for the first)
       closing_balance = opening_balance + total_receipts - total_payments

   Within a day, vouchers are ordered by timestamp (then id).

2. Cash sales sub-group
   ---------------------
   Vouchers whose party is the configured cash-sales party (default
   "CASH SALES") are gathered in a ``CashSalesGroup`` for the day. When
   the ledger is displayed, that sub-group can be collapsed into a single
   line carrying its net effect, or expanded entry by entry. Both walks of
   a day (see ``walk_day()``) end on the same closing balance.

3. Data quality
   -------------
   A voucher with an unparseable timestamp, a non-positive amount or an
   unknown kind is left out of the ledger and reported as a ``DataIssue``.
   The rest of the ledger is still computed.

The aggregation is pure: it never mutates its input and is re-run in full
on every refresh.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from typing import Optional

from .metrics import ZERO, to_decimal
from .models import VOUCHER_KINDS, DataIssue, VoucherEntry

logger = logging.getLogger(__name__)

DEFAULT_CASH_SALES_PARTY = "CASH SALES"


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CashSalesGroup:
    """
    Vouchers of the cash-sales party for one day.

    Attributes
    ----------
    party_name:
        Configured cash-sales party name.
    entries:
        The day's cash-sales vouchers, in ledger order.
    total_receipts, total_payments:
        Sums of the sub-group's receipt and payment amounts.
    """

    party_name: str
    entries: tuple[VoucherEntry, ...]
    total_receipts: Decimal
    total_payments: Decimal

    @property
    def net(self) -> Decimal:
        """Net effect of the sub-group on the day's balance."""
        return self.total_receipts - self.total_payments


@dataclass(frozen=True)
class DailyLedgerGroup:
    """
    Ledger figures for one calendar day.

    ``entries`` contains every valid voucher of the day (cash sales
    included) in ledger order. ``cash_sales`` is None when the day has no
    cash-sales voucher.
    """

    day: date
    entries: tuple[VoucherEntry, ...]
    opening_balance: Decimal
    total_receipts: Decimal
    total_payments: Decimal
    closing_balance: Decimal
    cash_sales: Optional[CashSalesGroup] = None


@dataclass(frozen=True)
class LedgerLine:
    """
    One displayed line of a day's ledger with its running balance.

    A collapsed cash-sales line has ``entry_id`` None and
    ``entries_count`` equal to the number of vouchers it stands for.
    """

    day: date
    entry_id: Optional[int]
    party_name: str
    remarks: Optional[str]
    kind: str
    receipt: Decimal
    payment: Decimal
    balance: Decimal
    entries_count: int = 1


@dataclass(frozen=True)
class LedgerResult:
    """
    Daily ledger groups (ascending by day) and the vouchers left out.

    ``opening_balance`` is the cash carried in from days before the first
    group (or before the report period when no group falls inside it).
    """

    groups: tuple[DailyLedgerGroup, ...] = ()
    issues: list[DataIssue] = field(default_factory=list)
    opening_balance: Decimal = ZERO

    @property
    def total_receipts(self) -> Decimal:
        return sum((g.total_receipts for g in self.groups), ZERO)

    @property
    def total_payments(self) -> Decimal:
        return sum((g.total_payments for g in self.groups), ZERO)

    @property
    def closing_balance(self) -> Decimal:
        """Closing balance of the last day, or the carried opening balance."""
        if not self.groups:
            return self.opening_balance
        return self.groups[-1].closing_balance


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def is_cash_sales_party(party_name: str, cash_sales_party: str) -> bool:
    """Case-insensitive, whitespace-trimmed comparison of party names."""
    return (party_name or "").strip().casefold() == cash_sales_party.strip().casefold()


def _parse_timestamp(value) -> datetime:
    """
    Resolve a voucher timestamp to a naive datetime.

    Aware datetimes keep their own wall-clock time (no timezone
    conversion): the calendar day of a voucher is the day written in its
    timestamp.

    Raises
    ------
    ValueError
        If the value cannot be interpreted as a date or datetime.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValueError("empty timestamp")
        parsed = datetime.fromisoformat(text)
    else:
        raise ValueError(f"unsupported timestamp type {type(value).__name__}")

    return parsed.replace(tzinfo=None)


def _validate_entry(entry: VoucherEntry) -> tuple[Optional[datetime], Optional[str]]:
    """Return (parsed timestamp, None) or (None, reason) for an invalid voucher."""
    try:
        parsed = _parse_timestamp(entry.timestamp)
    except ValueError as exc:
        return None, f"Malformed timestamp {entry.timestamp!r}: {exc}"

    if entry.kind not in VOUCHER_KINDS:
        return None, f"Unknown voucher kind {entry.kind!r}"

    try:
        amount = to_decimal(entry.amount)
    except ValueError:
        return None, f"Invalid amount {entry.amount!r}"
    if amount <= ZERO:
        return None, f"Amount must be greater than 0 (got {amount})"

    return parsed, None


def _sum_by_kind(entries: Iterable[VoucherEntry], kind: str) -> Decimal:
    return sum((to_decimal(e.amount) for e in entries if e.kind == kind), ZERO)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def compute_daily_ledger(
    entries: Iterable[VoucherEntry],
    *,
    cash_sales_party: str = DEFAULT_CASH_SALES_PARTY,
) -> LedgerResult:
    """
    Group vouchers by day and compute running balances.

    Parameters
    ----------
    entries:
        Vouchers in any order.
    cash_sales_party:
        Party name whose vouchers form the collapsible cash-sales sub-group.

    Returns
    -------
    LedgerResult
        ``groups`` sorted ascending by day, each satisfying
        ``closing = opening + receipts - payments``, with each day's opening
        equal to the previous day's closing (0 for the first day), and
        ``issues`` listing the vouchers that were left out.
    """
    issues: list[DataIssue] = []
    buckets: dict[date, list[tuple[datetime, VoucherEntry]]] = defaultdict(list)

    # 1) Validate and bucket by calendar day.
    for entry in entries:
        parsed, reason = _validate_entry(entry)
        if reason is not None:
            issues.append(
                DataIssue(record_type="voucher", record_id=str(entry.id), reason=reason)
            )
            continue
        buckets[parsed.date()].append((parsed, entry))

    if issues:
        logger.warning(
            "%d voucher(s) excluded from the cashbook ledger.", len(issues)
        )

    # 2) Walk days in ascending order carrying the running balance.
    groups: list[DailyLedgerGroup] = []
    running = ZERO
    for day in sorted(buckets):
        ordered = tuple(
            e for _, e in sorted(buckets[day], key=lambda pair: (pair[0], pair[1].id))
        )

        cash_entries = tuple(
            e for e in ordered if is_cash_sales_party(e.party_name, cash_sales_party)
        )
        cash_sales = None
        if cash_entries:
            cash_sales = CashSalesGroup(
                party_name=cash_sales_party,
                entries=cash_entries,
                total_receipts=_sum_by_kind(cash_entries, "receipt"),
                total_payments=_sum_by_kind(cash_entries, "payment"),
            )

        receipts = _sum_by_kind(ordered, "receipt")
        payments = _sum_by_kind(ordered, "payment")
        opening = running
        closing = opening + receipts - payments

        groups.append(
            DailyLedgerGroup(
                day=day,
                entries=ordered,
                opening_balance=opening,
                total_receipts=receipts,
                total_payments=payments,
                closing_balance=closing,
                cash_sales=cash_sales,
            )
        )
        running = closing

    return LedgerResult(groups=tuple(groups), issues=issues)


def walk_day(
    group: DailyLedgerGroup,
    *,
    expand_cash_sales: bool = False,
) -> list[LedgerLine]:
    """
    Produce the running-balance lines of one day.

    Collapsed (default), the cash-sales sub-group is shown as one line at
    the position of its first voucher and its net effect is applied in a
    single step. Expanded, every cash-sales voucher gets its own line.
    Either way the balance of the last line equals ``group.closing_balance``.
    """
    lines: list[LedgerLine] = []
    balance = group.opening_balance
    cash_sales = group.cash_sales
    cash_line_emitted = False

    for entry in group.entries:
        in_cash_sales = cash_sales is not None and is_cash_sales_party(
            entry.party_name, cash_sales.party_name
        )

        if in_cash_sales and not expand_cash_sales:
            if cash_line_emitted:
                continue
            balance += cash_sales.net
            lines.append(
                LedgerLine(
                    day=group.day,
                    entry_id=None,
                    party_name=cash_sales.party_name,
                    remarks=None,
                    kind="cash_sales",
                    receipt=cash_sales.total_receipts,
                    payment=cash_sales.total_payments,
                    balance=balance,
                    entries_count=len(cash_sales.entries),
                )
            )
            cash_line_emitted = True
            continue

        amount = to_decimal(entry.amount)
        if entry.kind == "receipt":
            balance += amount
            receipt, payment = amount, ZERO
        else:
            balance -= amount
            receipt, payment = ZERO, amount

        lines.append(
            LedgerLine(
                day=group.day,
                entry_id=entry.id,
                party_name=entry.party_name,
                remarks=entry.remarks,
                kind=entry.kind,
                receipt=receipt,
                payment=payment,
                balance=balance,
            )
        )

    return lines
