# SMB Cashbook - Sales Analytics & Cashbook Ledger for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Product, supplier and invoice profitability for SMB Cashbook.

This module joins invoice line items against the product catalog and
computes revenue, cost, profit and margin at three levels: product,
supplier and invoice.

1. Matching
   ---------
   A line item matches a catalog product when their names are equal after
   case folding (``name_matching="exact"``, the default). The opt-in
   ``"normalized"`` mode also trims and collapses internal whitespace, which
   changes results on dirty data. There is no fuzzy matching.

2. Two passes
   -----------
   Pass 1 accumulates units, revenue (price x quantity) and cost (catalog
   cost x quantity) for matched line items, per product and per supplier.
   The average margin is the mean of the matched products' margins that are
   strictly positive (``default_margin`` when there is none).

   Pass 2 accumulates unmatched line items per name and estimates their
   cost from that average margin:

       estimated_cost = revenue * (1 - average_margin / 100)

   The estimate needs the margin statistic of pass 1, hence two explicit
   passes rather than one.

3. Invoice drill-down
   -------------------
   Every invoice is rolled up line by line with the same costing rules, and
   the per-line breakdown is kept.

4. Trends
   -------
   ``compute_trends()`` compares units sold in the calendar month of a
   reference date with the previous month, per product and per supplier.

Margins with zero revenue are ``None``. Growth from zero units is the
``NEW`` sentinel. Neither ever leaks NaN into downstream arithmetic.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Literal, Optional

from .metrics import (
    HUNDRED,
    ZERO,
    GrowthRate,
    growth_rate,
    margin_pct,
    mean,
    to_decimal,
)
from .models import Invoice, LineItem, Product, Supplier

logger = logging.getLogger(__name__)

NameMatching = Literal["exact", "normalized"]

DEFAULT_MARGIN_PCT = Decimal("20")
UNKNOWN_SUPPLIER_LABEL = "Unknown supplier"


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProductAnalysis:
    """
    Sales totals for one catalog product, or for one unmatched item name.

    Unmatched items have ``is_estimated`` True, ``product_id`` of the form
    ``"unmatched-<name>"`` and an estimated ``cost``.
    """

    product_id: str
    name: str
    units_sold: Decimal
    revenue: Decimal
    cost: Decimal
    is_estimated: bool = False
    supplier_id: Optional[str] = None

    @property
    def profit(self) -> Decimal:
        return self.revenue - self.cost

    @property
    def profit_margin(self) -> Optional[Decimal]:
        return margin_pct(self.profit, self.revenue)

    @property
    def average_selling_price(self) -> Optional[Decimal]:
        if self.units_sold == ZERO:
            return None
        return self.revenue / self.units_sold


@dataclass(frozen=True)
class SupplierAnalysis:
    """Sales totals of the matched products of one supplier."""

    supplier_id: str
    name: str
    code: Optional[int]
    products_count: int
    units_sold: Decimal
    revenue: Decimal
    cost: Decimal

    @property
    def profit(self) -> Decimal:
        return self.revenue - self.cost

    @property
    def profit_margin(self) -> Optional[Decimal]:
        return margin_pct(self.profit, self.revenue)


@dataclass(frozen=True)
class InvoiceLineAnalysis:
    """Costed line of an invoice."""

    name: str
    quantity: Decimal
    price: Decimal
    cost: Decimal
    is_estimated: bool
    product_id: Optional[str] = None

    @property
    def revenue(self) -> Decimal:
        return self.price * self.quantity

    @property
    def profit(self) -> Decimal:
        return self.revenue - self.cost

    @property
    def profit_margin(self) -> Optional[Decimal]:
        return margin_pct(self.profit, self.revenue)


@dataclass(frozen=True)
class InvoiceAnalysis:
    """Invoice-level rollup with its per-line breakdown."""

    invoice_id: int
    date: date
    customer_name: str
    lines: tuple[InvoiceLineAnalysis, ...]

    @property
    def revenue(self) -> Decimal:
        return sum((line.revenue for line in self.lines), ZERO)

    @property
    def cost(self) -> Decimal:
        return sum((line.cost for line in self.lines), ZERO)

    @property
    def profit(self) -> Decimal:
        return self.revenue - self.cost

    @property
    def profit_margin(self) -> Optional[Decimal]:
        return margin_pct(self.profit, self.revenue)

    @property
    def has_estimates(self) -> bool:
        return any(line.is_estimated for line in self.lines)


@dataclass(frozen=True)
class ProfitabilityResult:
    """
    Output of ``compute_profitability()``.

    Attributes
    ----------
    product_analysis:
        Matched products with sales and estimated (unmatched) items, sorted
        by profit, highest first.
    supplier_analysis:
        One row per supplier with matched sales, sorted by profit.
    invoice_analysis:
        One rollup per invoice, in input order.
    unmatched_products:
        The estimated rows of ``product_analysis``.
    average_margin:
        Margin (percent) used to estimate the cost of unmatched items.
    """

    product_analysis: list[ProductAnalysis] = field(default_factory=list)
    supplier_analysis: list[SupplierAnalysis] = field(default_factory=list)
    invoice_analysis: list[InvoiceAnalysis] = field(default_factory=list)
    unmatched_products: list[ProductAnalysis] = field(default_factory=list)
    average_margin: Decimal = DEFAULT_MARGIN_PCT

    @property
    def total_revenue(self) -> Decimal:
        return sum((p.revenue for p in self.product_analysis), ZERO)

    @property
    def total_profit(self) -> Decimal:
        return sum((p.profit for p in self.product_analysis), ZERO)


@dataclass(frozen=True)
class CatalogSuggestion:
    """Pre-filled catalog entry for an item sold without a catalog record."""

    name: str
    units_sold: Decimal
    estimated_unit_cost: Optional[Decimal]
    average_selling_price: Optional[Decimal]


@dataclass(frozen=True)
class TrendRow:
    """Units sold in the reference month vs the previous month."""

    key: str
    name: str
    current_units: Decimal
    previous_units: Decimal
    growth_rate: GrowthRate
    is_estimated: bool = False


@dataclass(frozen=True)
class TrendsResult:
    """Month-over-month trends per product and per supplier."""

    current_month: date
    previous_month: date
    products: list[TrendRow] = field(default_factory=list)
    suppliers: list[TrendRow] = field(default_factory=list)
    top_growing_product: Optional[TrendRow] = None


@dataclass
class _Totals:
    units: Decimal = ZERO
    revenue: Decimal = ZERO
    cost: Decimal = ZERO


# ---------------------------------------------------------------------------
# Matching helpers
# ---------------------------------------------------------------------------


def product_key(name: str, name_matching: NameMatching = "exact") -> str:
    """
    Return the join key of a product or line-item name.

    - "exact":      case folding only ("Pen " and "pen" do NOT match).
    - "normalized": trim + collapse internal whitespace + case folding.
    """
    text = name or ""
    if name_matching == "normalized":
        text = " ".join(text.split())
    elif name_matching != "exact":
        raise ValueError(f"Unknown name matching mode: {name_matching!r}")
    return text.casefold()


def build_catalog_index(
    products: Iterable[Product],
    name_matching: NameMatching = "exact",
) -> dict[str, Product]:
    """
    Index catalog products by join key.

    When several products share a key, the first one wins and a warning is
    logged.
    """
    index: dict[str, Product] = {}
    for product in products:
        key = product_key(product.name, name_matching)
        if key in index:
            logger.warning(
                "Duplicate catalog name %r (product %s), keeping product %s.",
                product.name,
                product.id,
                index[key].id,
            )
            continue
        index[key] = product
    return index


def _line_values(line: LineItem) -> tuple[Decimal, Decimal]:
    quantity = to_decimal(line.quantity)
    return quantity, to_decimal(line.price) * quantity


def _invoice_day(invoice: Invoice) -> date:
    if isinstance(invoice.date, datetime):
        return invoice.date.date()
    return invoice.date


def _estimated_cost(revenue: Decimal, average_margin: Decimal) -> Decimal:
    return revenue * (1 - average_margin / HUNDRED)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def compute_average_margin(
    invoices: Sequence[Invoice],
    products: Iterable[Product],
    *,
    default_margin: Decimal = DEFAULT_MARGIN_PCT,
    name_matching: NameMatching = "exact",
) -> Decimal:
    """
    Mean margin of the matched products whose margin is strictly positive.

    This is the margin statistic of pass 1, exposed on its own so that it
    can be precomputed and reused.
    """
    index = build_catalog_index(products, name_matching)
    totals = _matched_product_totals(invoices, index, name_matching)
    return _average_margin(totals, default_margin)


def _matched_product_totals(
    invoices: Sequence[Invoice],
    index: dict[str, Product],
    name_matching: NameMatching,
) -> dict[str, _Totals]:
    totals: dict[str, _Totals] = {}
    for invoice in invoices:
        for line in invoice.line_items:
            product = index.get(product_key(line.name, name_matching))
            if product is None:
                continue
            quantity, revenue = _line_values(line)
            acc = totals.setdefault(product.id, _Totals())
            acc.units += quantity
            acc.revenue += revenue
            acc.cost += to_decimal(product.cost) * quantity
    return totals


def _average_margin(totals: dict[str, _Totals], default_margin: Decimal) -> Decimal:
    margins: list[Decimal] = []
    for acc in totals.values():
        margin = margin_pct(acc.revenue - acc.cost, acc.revenue)
        if margin is not None and margin > ZERO:
            margins.append(margin)
    average = mean(margins)
    return to_decimal(default_margin) if average is None else average


def compute_profitability(
    invoices: Sequence[Invoice],
    products: Sequence[Product],
    suppliers: Sequence[Supplier] = (),
    *,
    default_margin: Decimal = DEFAULT_MARGIN_PCT,
    name_matching: NameMatching = "exact",
) -> ProfitabilityResult:
    """
    Compute product, supplier and invoice profitability.

    Parameters
    ----------
    invoices:
        Decoded invoices (see ``io.decode_invoices``).
    products:
        Product catalog.
    suppliers:
        Supplier list, used to label supplier rows.
    default_margin:
        Margin (percent) used for estimation when no matched product has a
        positive margin.
    name_matching:
        "exact" (case folding only) or "normalized".

    Returns
    -------
    ProfitabilityResult
    """
    index = build_catalog_index(products, name_matching)
    products_by_id = {p.id: p for p in index.values()}

    # 1) Pass 1: matched products.
    product_totals = _matched_product_totals(invoices, index, name_matching)
    average_margin = _average_margin(product_totals, default_margin)

    # 2) Pass 2: unmatched items, costed from the average margin.
    unmatched_totals: dict[str, _Totals] = {}
    unmatched_names: dict[str, str] = {}
    for invoice in invoices:
        for line in invoice.line_items:
            key = product_key(line.name, name_matching)
            if key in index:
                continue
            quantity, revenue = _line_values(line)
            acc = unmatched_totals.setdefault(key, _Totals())
            unmatched_names.setdefault(key, line.name)
            acc.units += quantity
            acc.revenue += revenue

    for acc in unmatched_totals.values():
        acc.cost = _estimated_cost(acc.revenue, average_margin)

    matched_rows = [
        ProductAnalysis(
            product_id=product_id,
            name=products_by_id[product_id].name,
            units_sold=acc.units,
            revenue=acc.revenue,
            cost=acc.cost,
            supplier_id=products_by_id[product_id].supplier_id,
        )
        for product_id, acc in product_totals.items()
        if acc.units > ZERO
    ]
    unmatched_rows = [
        ProductAnalysis(
            product_id=f"unmatched-{key}",
            name=unmatched_names[key],
            units_sold=acc.units,
            revenue=acc.revenue,
            cost=acc.cost,
            is_estimated=True,
        )
        for key, acc in unmatched_totals.items()
    ]

    product_analysis = sorted(
        matched_rows + unmatched_rows, key=lambda p: p.profit, reverse=True
    )

    # 3) Supplier rollup of matched products.
    supplier_analysis = _supplier_rollup(matched_rows, suppliers)

    # 4) Invoice rollup with per-line breakdown.
    invoice_analysis = [
        _invoice_rollup(invoice, index, average_margin, name_matching)
        for invoice in invoices
    ]

    if unmatched_rows:
        logger.info(
            "%d item name(s) not found in the catalog; cost estimated at %.1f%% "
            "margin.",
            len(unmatched_rows),
            average_margin,
        )

    return ProfitabilityResult(
        product_analysis=product_analysis,
        supplier_analysis=supplier_analysis,
        invoice_analysis=invoice_analysis,
        unmatched_products=[p for p in product_analysis if p.is_estimated],
        average_margin=average_margin,
    )


def _supplier_rollup(
    matched_rows: list[ProductAnalysis],
    suppliers: Sequence[Supplier],
) -> list[SupplierAnalysis]:
    suppliers_by_id = {s.id: s for s in suppliers}
    totals: dict[str, _Totals] = {}
    counts: dict[str, int] = {}

    for row in matched_rows:
        supplier_id = row.supplier_id or ""
        if supplier_id not in suppliers_by_id:
            # No supplier and a dangling supplier id share one row.
            supplier_id = ""
        acc = totals.setdefault(supplier_id, _Totals())
        acc.units += row.units_sold
        acc.revenue += row.revenue
        acc.cost += row.cost
        counts[supplier_id] = counts.get(supplier_id, 0) + 1

    rows: list[SupplierAnalysis] = []
    for supplier_id, acc in totals.items():
        supplier = suppliers_by_id.get(supplier_id)
        rows.append(
            SupplierAnalysis(
                supplier_id=supplier_id,
                name=supplier.name if supplier else UNKNOWN_SUPPLIER_LABEL,
                code=supplier.code if supplier else None,
                products_count=counts[supplier_id],
                units_sold=acc.units,
                revenue=acc.revenue,
                cost=acc.cost,
            )
        )
    return sorted(rows, key=lambda s: s.profit, reverse=True)


def _invoice_rollup(
    invoice: Invoice,
    index: dict[str, Product],
    average_margin: Decimal,
    name_matching: NameMatching,
) -> InvoiceAnalysis:
    lines: list[InvoiceLineAnalysis] = []
    for line in invoice.line_items:
        quantity, revenue = _line_values(line)
        product = index.get(product_key(line.name, name_matching))
        if product is not None:
            cost = to_decimal(product.cost) * quantity
            product_id: Optional[str] = product.id
        else:
            cost = _estimated_cost(revenue, average_margin)
            product_id = None
        lines.append(
            InvoiceLineAnalysis(
                name=line.name,
                quantity=quantity,
                price=to_decimal(line.price),
                cost=cost,
                is_estimated=product is None,
                product_id=product_id,
            )
        )

    return InvoiceAnalysis(
        invoice_id=invoice.id,
        date=_invoice_day(invoice),
        customer_name=invoice.customer_name,
        lines=tuple(lines),
    )


def find_invoice(result: ProfitabilityResult, invoice_id: int) -> InvoiceAnalysis:
    """
    Return the drill-down of one invoice.

    Raises
    ------
    LookupError
        If the invoice is not part of the result.
    """
    for analysis in result.invoice_analysis:
        if analysis.invoice_id == invoice_id:
            return analysis
    raise LookupError(f"Invoice #{invoice_id} is not part of the analysis.")


def suggest_catalog_entries(result: ProfitabilityResult) -> list[CatalogSuggestion]:
    """
    Build catalog suggestions for the unmatched items of a result.

    The suggested unit cost is the estimated cost divided by the units sold,
    i.e. the cost implied by the average margin.
    """
    suggestions: list[CatalogSuggestion] = []
    for row in result.unmatched_products:
        unit_cost = None if row.units_sold == ZERO else row.cost / row.units_sold
        suggestions.append(
            CatalogSuggestion(
                name=row.name,
                units_sold=row.units_sold,
                estimated_unit_cost=unit_cost,
                average_selling_price=row.average_selling_price,
            )
        )
    return suggestions


# ---------------------------------------------------------------------------
# Trends
# ---------------------------------------------------------------------------


def _month_start(d: date) -> date:
    return d.replace(day=1)


def _previous_month_start(d: date) -> date:
    if d.month == 1:
        return date(d.year - 1, 12, 1)
    return date(d.year, d.month - 1, 1)


def compute_trends(
    invoices: Sequence[Invoice],
    products: Sequence[Product],
    suppliers: Sequence[Supplier] = (),
    *,
    as_of: date,
    name_matching: NameMatching = "exact",
) -> TrendsResult:
    """
    Month-over-month units sold per product and per supplier.

    The current month is the calendar month of ``as_of``. Growth is
    ``(current - previous) / previous * 100``, ``"new"`` when the previous
    month had no units, and None when neither month had any.

    The top-growing product is the one with the highest numeric growth
    above zero. Products that are "new" have no numeric growth and are not
    candidates.
    """
    current_start = _month_start(as_of)
    previous_start = _previous_month_start(current_start)

    index = build_catalog_index(products, name_matching)
    suppliers_by_id = {s.id: s for s in suppliers}

    product_units: dict[str, list[Decimal]] = {}
    product_names: dict[str, str] = {}
    estimated_keys: set[str] = set()
    supplier_units: dict[str, list[Decimal]] = {}

    for invoice in invoices:
        month = _month_start(_invoice_day(invoice))
        if month == current_start:
            slot = 0
        elif month == previous_start:
            slot = 1
        else:
            continue

        for line in invoice.line_items:
            quantity = to_decimal(line.quantity)
            key = product_key(line.name, name_matching)
            product = index.get(key)
            if product is not None:
                row_key = product.id
                product_names.setdefault(row_key, product.name)
                supplier_key = product.supplier_id or ""
                supplier_units.setdefault(supplier_key, [ZERO, ZERO])[slot] += quantity
            else:
                row_key = f"unmatched-{key}"
                product_names.setdefault(row_key, line.name)
                estimated_keys.add(row_key)
            product_units.setdefault(row_key, [ZERO, ZERO])[slot] += quantity

    product_rows = [
        TrendRow(
            key=k,
            name=product_names[k],
            current_units=units[0],
            previous_units=units[1],
            growth_rate=growth_rate(units[0], units[1]),
            is_estimated=k in estimated_keys,
        )
        for k, units in product_units.items()
    ]
    product_rows.sort(key=lambda r: (-r.current_units, r.name))

    supplier_rows = []
    for supplier_key, units in supplier_units.items():
        supplier = suppliers_by_id.get(supplier_key)
        supplier_rows.append(
            TrendRow(
                key=supplier_key,
                name=supplier.name if supplier else UNKNOWN_SUPPLIER_LABEL,
                current_units=units[0],
                previous_units=units[1],
                growth_rate=growth_rate(units[0], units[1]),
            )
        )
    supplier_rows.sort(key=lambda r: (-r.current_units, r.name))

    numeric = [
        r
        for r in product_rows
        if isinstance(r.growth_rate, Decimal) and r.growth_rate > ZERO
    ]
    top = max(numeric, key=lambda r: r.growth_rate) if numeric else None

    return TrendsResult(
        current_month=current_start,
        previous_month=previous_start,
        products=product_rows,
        suppliers=supplier_rows,
        top_growing_product=top,
    )
