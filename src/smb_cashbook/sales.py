# SMB Cashbook - Sales Analytics & Cashbook Ledger for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Sales summary for SMB Cashbook.

Given the decoded invoices of a period, ``compute_sales_summary()`` returns
the figures of the sales dashboard:

- total sales, number of invoices, average sale and units sold;
- the payment-method split (cash / UPI / credit);
- top customers by amount spent (with their number of purchases);
- top products by units sold;
- the most recent invoices;
- the daily sales series used for charts.

Totals are exact Decimals. The ranking tables are pandas DataFrames with
float amounts rounded to 2 decimals, ready for display or CSV export.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

import pandas as pd

from .metrics import ZERO
from .models import Invoice

TOP_CUSTOMERS_LIMIT = 10
TOP_PRODUCTS_LIMIT = 5
RECENT_SALES_LIMIT = 5


def _empty(columns: list[str]) -> pd.DataFrame:
    return pd.DataFrame(columns=columns)


@dataclass(frozen=True)
class SalesSummary:
    """Dashboard figures for a set of invoices."""

    invoice_count: int
    total_sales: Decimal
    average_sale: Optional[Decimal]
    units_sold: Decimal
    payment_split: dict[str, Decimal]
    top_customers: pd.DataFrame = field(
        default_factory=lambda: _empty(["customer_name", "purchases", "amount"])
    )
    top_products: pd.DataFrame = field(
        default_factory=lambda: _empty(["name", "units_sold"])
    )
    recent_sales: pd.DataFrame = field(
        default_factory=lambda: _empty(["invoice_id", "date", "customer_name", "total"])
    )
    daily_sales: pd.DataFrame = field(
        default_factory=lambda: _empty(["date", "invoices", "total"])
    )


def _invoices_frame(invoices: Sequence[Invoice]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "invoice_id": inv.id,
                "date": pd.Timestamp(inv.date.replace(tzinfo=None)),
                "customer_name": inv.customer_name,
                "total": float(inv.total),
            }
            for inv in invoices
        ]
    )


def _lines_frame(invoices: Sequence[Invoice]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {"name": line.name, "units_sold": float(line.quantity)}
            for inv in invoices
            for line in inv.line_items
        ],
        columns=["name", "units_sold"],
    )


def compute_sales_summary(
    invoices: Sequence[Invoice],
    *,
    top_customers: int = TOP_CUSTOMERS_LIMIT,
    top_products: int = TOP_PRODUCTS_LIMIT,
    recent: int = RECENT_SALES_LIMIT,
) -> SalesSummary:
    """
    Compute the sales dashboard figures.

    Parameters
    ----------
    invoices:
        Decoded invoices, already restricted to the reporting period.
    top_customers, top_products, recent:
        Number of rows kept in the ranking tables.

    Returns
    -------
    SalesSummary
        ``average_sale`` is None when there is no invoice.
    """
    total = sum((inv.total for inv in invoices), ZERO)
    units = sum(
        (line.quantity for inv in invoices for line in inv.line_items), ZERO
    )
    split = {
        "cash": sum((inv.cash for inv in invoices), ZERO),
        "upi": sum((inv.upi for inv in invoices), ZERO),
        "credit": sum((inv.credit for inv in invoices), ZERO),
    }

    if not invoices:
        return SalesSummary(
            invoice_count=0,
            total_sales=ZERO,
            average_sale=None,
            units_sold=units,
            payment_split=split,
        )

    df = _invoices_frame(invoices)

    # Top customers by amount spent
    customers = (
        df.groupby("customer_name", as_index=False)
        .agg(purchases=("invoice_id", "count"), amount=("total", "sum"))
        .sort_values(["amount", "customer_name"], ascending=[False, True])
        .head(top_customers)
        .reset_index(drop=True)
    )
    customers["amount"] = customers["amount"].round(2)

    # Top products by units sold
    lines = _lines_frame(invoices)
    products = (
        lines.groupby("name", as_index=False)["units_sold"]
        .sum()
        .sort_values(["units_sold", "name"], ascending=[False, True])
        .head(top_products)
        .reset_index(drop=True)
    )

    # Most recent invoices first
    recent_df = (
        df.sort_values(["date", "invoice_id"], ascending=[False, False])
        .head(recent)
        .reset_index(drop=True)
    )

    # Daily series, ascending by day
    daily = (
        df.assign(date=df["date"].dt.date)
        .groupby("date", as_index=False)
        .agg(invoices=("invoice_id", "count"), total=("total", "sum"))
        .sort_values("date")
        .reset_index(drop=True)
    )
    daily["total"] = daily["total"].round(2)

    return SalesSummary(
        invoice_count=len(invoices),
        total_sales=total,
        average_sale=total / Decimal(len(invoices)),
        units_sold=units,
        payment_split=split,
        top_customers=customers,
        top_products=products,
        recent_sales=recent_df[["invoice_id", "date", "customer_name", "total"]],
        daily_sales=daily,
    )
