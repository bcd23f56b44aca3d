# SMB Cashbook - Sales Analytics & Cashbook Ledger for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
View utilities for SMB Cashbook.

This module converts aggregation results (ledger groups, profitability
analyses, trends, sales summary, data issues) into pandas DataFrames ready
for display or CSV export.

Monetary values are rounded to 2 decimals. Undefined ratios are never
shown as NaN: a margin without revenue renders as "N/A", growth from a
month without sales renders as "new", and growth with no activity in
either month renders as "N/A".
"""

from decimal import Decimal
from typing import Optional, Union

import pandas as pd

from .ledger import LedgerResult, walk_day
from .metrics import NEW, GrowthRate
from .models import DataIssue
from .profitability import (
    CatalogSuggestion,
    InvoiceAnalysis,
    ProductAnalysis,
    SupplierAnalysis,
    TrendRow,
)
from .sales import SalesSummary

NOT_AVAILABLE = "N/A"

DisplayValue = Union[float, str]


def money(value: Optional[Decimal]) -> Optional[float]:
    """Round a monetary Decimal to 2 decimals for display."""
    if value is None:
        return None
    return round(float(value), 2)


def format_margin(value: Optional[Decimal], decimals: int = 2) -> DisplayValue:
    """Margin for display: rounded percentage, or "N/A" when undefined."""
    if value is None:
        return NOT_AVAILABLE
    return round(float(value), decimals)


def format_growth(value: GrowthRate, decimals: int = 2) -> DisplayValue:
    """Growth for display: rounded percentage, "new", or "N/A"."""
    if value is None:
        return NOT_AVAILABLE
    if value == NEW:
        return NEW
    return round(float(value), decimals)


# ---------------------------------------------------------------------------
# Cashbook
# ---------------------------------------------------------------------------

DAY_COLUMNS = [
    "date",
    "opening_balance",
    "receipts",
    "payments",
    "closing_balance",
    "entries",
    "cash_sales_net",
]
LINE_COLUMNS = ["date", "id", "party_name", "remarks", "receipt", "payment", "balance"]


def ledger_days_to_dataframe(result: LedgerResult) -> pd.DataFrame:
    """One row per day with its opening/closing balance and totals."""
    rows = [
        {
            "date": g.day.isoformat(),
            "opening_balance": money(g.opening_balance),
            "receipts": money(g.total_receipts),
            "payments": money(g.total_payments),
            "closing_balance": money(g.closing_balance),
            "entries": len(g.entries),
            "cash_sales_net": money(g.cash_sales.net) if g.cash_sales else None,
        }
        for g in result.groups
    ]
    return pd.DataFrame(rows, columns=DAY_COLUMNS)


def ledger_lines_to_dataframe(
    result: LedgerResult,
    *,
    expand_cash_sales: bool = False,
) -> pd.DataFrame:
    """
    Voucher-level lines with running balances, day after day.

    Collapsed, the cash-sales sub-group of each day appears as a single line
    whose party reads e.g. "CASH SALES (3 entries)" and whose id is empty.
    """
    rows: list[dict[str, object]] = []
    for group in result.groups:
        for line in walk_day(group, expand_cash_sales=expand_cash_sales):
            party = line.party_name
            if line.kind == "cash_sales":
                party = f"{party} ({line.entries_count} entries)"
            rows.append(
                {
                    "date": line.day.isoformat(),
                    "id": line.entry_id,
                    "party_name": party,
                    "remarks": line.remarks or "",
                    "receipt": money(line.receipt),
                    "payment": money(line.payment),
                    "balance": money(line.balance),
                }
            )
    return pd.DataFrame(rows, columns=LINE_COLUMNS)


# ---------------------------------------------------------------------------
# Profitability
# ---------------------------------------------------------------------------


def products_to_dataframe(
    analyses: list[ProductAnalysis],
    decimals: int = 2,
) -> pd.DataFrame:
    """
    Product profitability table.

    Columns: product_id, name, units_sold, revenue, cost, profit,
    profit_margin, estimated.
    """
    columns = [
        "product_id",
        "name",
        "units_sold",
        "revenue",
        "cost",
        "profit",
        "profit_margin",
        "estimated",
    ]
    rows = [
        {
            "product_id": a.product_id,
            "name": a.name,
            "units_sold": float(a.units_sold),
            "revenue": money(a.revenue),
            "cost": money(a.cost),
            "profit": money(a.profit),
            "profit_margin": format_margin(a.profit_margin, decimals),
            "estimated": "yes" if a.is_estimated else "",
        }
        for a in analyses
    ]
    return pd.DataFrame(rows, columns=columns)


def suppliers_to_dataframe(
    analyses: list[SupplierAnalysis],
    decimals: int = 2,
) -> pd.DataFrame:
    columns = [
        "code",
        "name",
        "products",
        "units_sold",
        "revenue",
        "cost",
        "profit",
        "profit_margin",
    ]
    rows = [
        {
            "code": "" if a.code is None else f"{a.code:03d}",
            "name": a.name,
            "products": a.products_count,
            "units_sold": float(a.units_sold),
            "revenue": money(a.revenue),
            "cost": money(a.cost),
            "profit": money(a.profit),
            "profit_margin": format_margin(a.profit_margin, decimals),
        }
        for a in analyses
    ]
    return pd.DataFrame(rows, columns=columns)


def invoices_to_dataframe(
    analyses: list[InvoiceAnalysis],
    decimals: int = 2,
) -> pd.DataFrame:
    columns = [
        "invoice_id",
        "date",
        "customer_name",
        "revenue",
        "cost",
        "profit",
        "profit_margin",
        "estimated",
    ]
    rows = [
        {
            "invoice_id": a.invoice_id,
            "date": a.date.isoformat(),
            "customer_name": a.customer_name,
            "revenue": money(a.revenue),
            "cost": money(a.cost),
            "profit": money(a.profit),
            "profit_margin": format_margin(a.profit_margin, decimals),
            "estimated": "yes" if a.has_estimates else "",
        }
        for a in analyses
    ]
    return pd.DataFrame(rows, columns=columns)


def invoice_lines_to_dataframe(
    analysis: InvoiceAnalysis,
    decimals: int = 2,
) -> pd.DataFrame:
    """Line-level drill-down of one invoice."""
    columns = [
        "name",
        "quantity",
        "price",
        "revenue",
        "cost",
        "profit",
        "profit_margin",
        "estimated",
    ]
    rows = [
        {
            "name": line.name,
            "quantity": float(line.quantity),
            "price": money(line.price),
            "revenue": money(line.revenue),
            "cost": money(line.cost),
            "profit": money(line.profit),
            "profit_margin": format_margin(line.profit_margin, decimals),
            "estimated": "yes" if line.is_estimated else "",
        }
        for line in analysis.lines
    ]
    return pd.DataFrame(rows, columns=columns)


def suggestions_to_dataframe(suggestions: list[CatalogSuggestion]) -> pd.DataFrame:
    columns = ["name", "units_sold", "estimated_unit_cost", "average_selling_price"]
    rows = [
        {
            "name": s.name,
            "units_sold": float(s.units_sold),
            "estimated_unit_cost": money(s.estimated_unit_cost),
            "average_selling_price": money(s.average_selling_price),
        }
        for s in suggestions
    ]
    return pd.DataFrame(rows, columns=columns)


def trends_to_dataframe(rows: list[TrendRow], decimals: int = 2) -> pd.DataFrame:
    """Month-over-month units table (products or suppliers)."""
    columns = ["name", "current_units", "previous_units", "growth_pct", "estimated"]
    data = [
        {
            "name": r.name,
            "current_units": float(r.current_units),
            "previous_units": float(r.previous_units),
            "growth_pct": format_growth(r.growth_rate, decimals),
            "estimated": "yes" if r.is_estimated else "",
        }
        for r in rows
    ]
    return pd.DataFrame(data, columns=columns)


# ---------------------------------------------------------------------------
# Sales & data quality
# ---------------------------------------------------------------------------


def sales_summary_to_dataframe(summary: SalesSummary) -> pd.DataFrame:
    """Key figures of the sales dashboard as a two-column table."""
    rows = [
        ("Total sales", money(summary.total_sales)),
        ("Invoices", summary.invoice_count),
        (
            "Average sale",
            NOT_AVAILABLE
            if summary.average_sale is None
            else money(summary.average_sale),
        ),
        ("Units sold", float(summary.units_sold)),
        ("Cash", money(summary.payment_split["cash"])),
        ("UPI", money(summary.payment_split["upi"])),
        ("Credit", money(summary.payment_split["credit"])),
    ]
    return pd.DataFrame(rows, columns=["metric", "value"])


def issues_to_dataframe(issues: list[DataIssue]) -> pd.DataFrame:
    columns = ["record_type", "record_id", "excluded", "reason"]
    rows = [
        {
            "record_type": i.record_type,
            "record_id": i.record_id,
            "excluded": "yes" if i.excluded else "no",
            "reason": i.reason,
        }
        for i in issues
    ]
    return pd.DataFrame(rows, columns=columns)
