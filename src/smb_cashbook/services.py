# SMB Cashbook - Sales Analytics & Cashbook Ledger for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.


"""
High-level services for SMB Cashbook.

This module sits between:
- the backend gateway (see gateway.py) and the decoding layer (io.py), and
- user-facing layers such as the CLI.

Every service receives the gateway and the application configuration
explicitly. Reporting services fetch raw data, decode it into typed
records (collecting data-quality issues along the way), run the pure
aggregators and return a small report object.

Responsibilities
----------------
1) Reports
   - ``cashbook_report``: daily ledger with running balances.
   - ``sales_report``: sales dashboard figures.
   - ``profitability_report``: product / supplier / invoice profitability.
   - ``trends_report``: month-over-month units per product and supplier.

2) Cashbook CRUD
   - ``create_voucher``, ``edit_voucher``, ``delete_voucher``, with
     validation of party, amount and kind before anything is stored.

3) Catalog
   - ``add_supplier`` (next supplier code), ``add_product`` (barcode from
     the supplier sequence), ``catalog_suggestions`` (unmatched line items
     with their estimated cost, to prefill new products).
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Optional

from .config import AppConfig
from .gateway import BookkeepingGateway
from .io import (
    apply_payment_split_policy,
    decode_invoices,
    decode_products,
    decode_suppliers,
    decode_vouchers,
)
from .ledger import LedgerResult, compute_daily_ledger
from .metrics import ZERO, to_decimal
from .models import (
    VOUCHER_KINDS,
    DataIssue,
    Invoice,
    NewProduct,
    NewVoucher,
    Product,
    Supplier,
    VoucherEntry,
    VoucherUpdate,
)
from .periods import Period, filter_by_period, period_all
from .profitability import (
    CatalogSuggestion,
    ProfitabilityResult,
    TrendsResult,
    compute_profitability,
    compute_trends,
    suggest_catalog_entries,
)
from .sales import SalesSummary, compute_sales_summary

logger = logging.getLogger(__name__)

MIN_AMOUNT = Decimal("0.01")


@dataclass(frozen=True)
class CashbookReport:
    """
    Ledger restricted to a period.

    Balances are computed over the whole cashbook first, so the first day
    of the period opens on the real balance carried from earlier days.
    """

    period: Period
    ledger: LedgerResult


@dataclass(frozen=True)
class SalesReport:
    period: Period
    summary: SalesSummary
    issues: list[DataIssue] = field(default_factory=list)


@dataclass(frozen=True)
class ProfitabilityReport:
    period: Period
    result: ProfitabilityResult
    issues: list[DataIssue] = field(default_factory=list)


@dataclass(frozen=True)
class TrendsReport:
    as_of: date
    result: TrendsResult
    issues: list[DataIssue] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _load_invoices(
    gateway: BookkeepingGateway,
    app_config: AppConfig,
    period: Optional[Period] = None,
) -> tuple[list[Invoice], list[DataIssue]]:
    """Fetch, period-filter, decode and check invoices."""
    df = gateway.fetch_invoices()
    if period is not None:
        df = filter_by_period(df, period, "date")

    invoices, issues = decode_invoices(df)

    invoices, split_issues = apply_payment_split_policy(
        invoices,
        app_config.invoices.payment_split_policy,
        app_config.invoices.payment_split_tolerance,
    )
    if split_issues:
        logger.warning(
            "%d invoice(s) have a payment split that does not match their total.",
            len(split_issues),
        )
    return invoices, issues + split_issues


def _load_catalog(
    gateway: BookkeepingGateway,
) -> tuple[list[Product], list[Supplier], list[DataIssue]]:
    products, product_issues = decode_products(gateway.fetch_products())
    suppliers, supplier_issues = decode_suppliers(gateway.fetch_suppliers())
    return products, suppliers, product_issues + supplier_issues


def _validate_party(party_name: str) -> str:
    party = (party_name or "").strip()
    if not party:
        raise ValueError("Party name must not be empty.")
    return party


def _validate_amount(amount) -> Decimal:
    value = to_decimal(amount)
    if value < MIN_AMOUNT:
        raise ValueError(f"Amount must be at least {MIN_AMOUNT} (got {value}).")
    return value


def _validate_kind(kind: str) -> str:
    value = (kind or "").strip().lower()
    if value not in VOUCHER_KINDS:
        raise ValueError(
            f"Unknown voucher kind {kind!r}. Expected one of: "
            f"{', '.join(VOUCHER_KINDS)}."
        )
    return value


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


def cashbook_report(
    gateway: BookkeepingGateway,
    app_config: AppConfig,
    period: Optional[Period] = None,
) -> CashbookReport:
    """
    Build the daily cashbook ledger.

    Parameters
    ----------
    gateway:
        Backend gateway.
    app_config:
        Provides the cash-sales party name.
    period:
        Days to show (all days by default). Opening balances always include
        the vouchers dated before the period.

    Returns
    -------
    CashbookReport
        ``ledger.issues`` lists every voucher left out (undecodable amount,
        malformed timestamp, unknown kind, non-positive amount).
    """
    period = period or period_all()

    entries, decode_issues = decode_vouchers(gateway.fetch_vouchers())
    full = compute_daily_ledger(
        entries,
        cash_sales_party=app_config.cashbook.cash_sales_party,
    )

    groups = tuple(g for g in full.groups if period.contains(g.day))
    carried = ZERO
    if period.start is not None:
        for group in full.groups:
            if group.day >= period.start:
                break
            carried = group.closing_balance
    ledger = LedgerResult(
        groups=groups,
        issues=decode_issues + full.issues,
        opening_balance=carried,
    )
    return CashbookReport(period=period, ledger=ledger)


def sales_report(
    gateway: BookkeepingGateway,
    app_config: AppConfig,
    period: Optional[Period] = None,
) -> SalesReport:
    """Sales dashboard figures for the invoices of a period."""
    period = period or period_all()
    invoices, issues = _load_invoices(gateway, app_config, period)
    return SalesReport(
        period=period,
        summary=compute_sales_summary(invoices),
        issues=issues,
    )


def profitability_report(
    gateway: BookkeepingGateway,
    app_config: AppConfig,
    period: Optional[Period] = None,
) -> ProfitabilityReport:
    """
    Profitability of the invoices of a period against the catalog.

    Line items that match no catalog product are costed with the average
    margin of the matched products (see profitability.py).
    """
    period = period or period_all()
    invoices, issues = _load_invoices(gateway, app_config, period)
    products, suppliers, catalog_issues = _load_catalog(gateway)

    result = compute_profitability(
        invoices,
        products,
        suppliers,
        default_margin=app_config.profitability.default_margin_pct,
        name_matching=app_config.profitability.name_matching,
    )
    return ProfitabilityReport(
        period=period,
        result=result,
        issues=issues + catalog_issues,
    )


def trends_report(
    gateway: BookkeepingGateway,
    app_config: AppConfig,
    as_of: date,
) -> TrendsReport:
    """Month-over-month units sold, for the month of ``as_of`` and the one before."""
    invoices, issues = _load_invoices(gateway, app_config)
    products, suppliers, catalog_issues = _load_catalog(gateway)

    result = compute_trends(
        invoices,
        products,
        suppliers,
        as_of=as_of,
        name_matching=app_config.profitability.name_matching,
    )
    return TrendsReport(as_of=as_of, result=result, issues=issues + catalog_issues)


# ---------------------------------------------------------------------------
# Cashbook CRUD
# ---------------------------------------------------------------------------


def create_voucher(
    gateway: BookkeepingGateway,
    app_config: AppConfig,
    new_voucher: NewVoucher,
) -> VoucherEntry:
    """
    Validate and record a new voucher.

    Raises
    ------
    ValueError
        If the party is empty, the amount is below 0.01 or the kind is not
        "receipt" / "payment".
    """
    validated = NewVoucher(
        party_name=_validate_party(new_voucher.party_name),
        amount=_validate_amount(new_voucher.amount),
        kind=_validate_kind(new_voucher.kind),
        remarks=(new_voucher.remarks or "").strip() or None,
        timestamp=new_voucher.timestamp,
    )
    created = gateway.insert_voucher(validated)
    logger.info(
        "Voucher #%s recorded (%s %s).", created.id, created.kind, created.amount
    )
    return created


def edit_voucher(
    gateway: BookkeepingGateway,
    app_config: AppConfig,
    voucher_id: int,
    update: VoucherUpdate,
) -> VoucherEntry:
    """
    Correct an existing voucher. Only non-None fields of ``update`` change.

    Raises
    ------
    ValueError
        If a provided field is invalid or nothing is to be updated.
    LookupError
        If the voucher does not exist (``db.RecordNotFoundError``).
    """
    validated = VoucherUpdate(
        party_name=(
            None if update.party_name is None else _validate_party(update.party_name)
        ),
        amount=None if update.amount is None else _validate_amount(update.amount),
        kind=None if update.kind is None else _validate_kind(update.kind),
        remarks=update.remarks,
        timestamp=update.timestamp,
    )
    return gateway.update_voucher(voucher_id, validated)


def delete_voucher(
    gateway: BookkeepingGateway,
    app_config: AppConfig,
    voucher_id: int,
) -> VoucherEntry:
    """Delete a voucher and return it as it was. Raises LookupError if missing."""
    deleted = gateway.delete_voucher(voucher_id)
    logger.info("Voucher #%s deleted.", voucher_id)
    return deleted


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


def add_supplier(
    gateway: BookkeepingGateway,
    app_config: AppConfig,
    name: str,
) -> Supplier:
    """Add a supplier; the store assigns the next 3-digit code."""
    return gateway.add_supplier(name)


def add_product(
    gateway: BookkeepingGateway,
    app_config: AppConfig,
    new_product: NewProduct,
) -> Product:
    """
    Validate and add a catalog product.

    Raises
    ------
    ValueError
        If the name is empty or a price is negative.
    """
    name = (new_product.name or "").strip()
    if not name:
        raise ValueError("Product name must not be empty.")

    cost = to_decimal(new_product.cost)
    selling_price = to_decimal(new_product.selling_price)
    if cost < ZERO or selling_price < ZERO:
        raise ValueError("Product cost and selling price cannot be negative.")

    return gateway.add_product(
        NewProduct(
            name=name,
            cost=cost,
            selling_price=selling_price,
            supplier_id=new_product.supplier_id,
        )
    )


def catalog_suggestions(
    gateway: BookkeepingGateway,
    app_config: AppConfig,
    period: Optional[Period] = None,
) -> list[CatalogSuggestion]:
    """Unmatched line items with the cost to prefill when adding them."""
    report = profitability_report(gateway, app_config, period)
    return suggest_catalog_entries(report.result)
