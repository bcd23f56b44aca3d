from datetime import date, datetime
from decimal import Decimal

import pytest

from smb_cashbook.models import Invoice, LineItem, Product, Supplier
from smb_cashbook.profitability import (
    UNKNOWN_SUPPLIER_LABEL,
    build_catalog_index,
    compute_average_margin,
    compute_profitability,
    find_invoice,
    product_key,
    suggest_catalog_entries,
)


def item(name, quantity, price) -> LineItem:
    return LineItem(
        name=name, quantity=Decimal(str(quantity)), price=Decimal(str(price))
    )


def invoice(invoice_id, items, when=datetime(2024, 1, 10, 12, 0), customer="Alice"):
    total = sum((i.revenue for i in items), Decimal("0"))
    return Invoice(
        id=invoice_id,
        date=when,
        customer_name=customer,
        customer_number="",
        line_items=tuple(items),
        total=total,
        cash=total,
    )


def product(product_id, name, cost, price, supplier_id=None) -> Product:
    return Product(
        id=product_id,
        name=name,
        cost=Decimal(str(cost)),
        selling_price=Decimal(str(price)),
        supplier_id=supplier_id,
    )


def test_matched_product_uses_catalog_cost() -> None:
    """10 pens sold at 8 with a catalog cost of 5."""
    result = compute_profitability(
        [invoice(1, [item("Pen", 10, 8)])],
        [product("p1", "Pen", 5, 10)],
    )

    (row,) = result.product_analysis
    assert row.product_id == "p1"
    assert not row.is_estimated
    assert row.units_sold == Decimal("10")
    assert row.revenue == Decimal("80")
    assert row.cost == Decimal("50")
    assert row.profit == Decimal("30")
    assert row.profit_margin == Decimal("37.5")
    assert result.unmatched_products == []


def test_unmatched_item_cost_uses_average_matched_margin() -> None:
    """A matched product at 50% margin sets the estimate for unknown items."""
    invoices = [invoice(1, [item("Pen", 10, 10), item("Mystery", 2, 20)])]
    products = [product("p1", "Pen", 5, 10)]

    result = compute_profitability(invoices, products)

    assert result.average_margin == Decimal("50")
    (estimated,) = result.unmatched_products
    assert estimated.is_estimated
    assert estimated.product_id == "unmatched-mystery"
    assert estimated.name == "Mystery"
    assert estimated.revenue == Decimal("40")
    assert estimated.cost == Decimal("20")
    assert estimated.profit == Decimal("20")


def test_default_margin_when_no_matched_product_is_profitable() -> None:
    invoices = [invoice(1, [item("Loss leader", 1, 4), item("Unknown", 1, 100)])]
    products = [product("p1", "Loss leader", 5, 4)]

    result = compute_profitability(invoices, products, default_margin=Decimal("20"))

    assert result.average_margin == Decimal("20")
    (estimated,) = result.unmatched_products
    assert estimated.cost == Decimal("80")


def test_average_margin_ignores_non_positive_margins() -> None:
    invoices = [
        invoice(
            1,
            [item("Pen", 1, 10), item("Book", 1, 10), item("Free", 1, 0)],
        )
    ]
    products = [
        product("p1", "Pen", 5, 10),  # 50%
        product("p2", "Book", 8, 10),  # 20%
        product("p3", "Free", 1, 0),  # undefined
    ]

    assert compute_average_margin(invoices, products) == Decimal("35")


def test_zero_revenue_gives_undefined_margin() -> None:
    result = compute_profitability(
        [invoice(1, [item("Sample", 3, 0)])],
        [product("p1", "Sample", 2, 0)],
    )

    (row,) = result.product_analysis
    assert row.revenue == Decimal("0")
    assert row.profit_margin is None
    assert result.invoice_analysis[0].profit_margin is None


def test_products_are_sorted_by_profit() -> None:
    invoices = [invoice(1, [item("Pen", 1, 10), item("Book", 1, 100)])]
    products = [product("p1", "Pen", 5, 10), product("p2", "Book", 50, 100)]

    result = compute_profitability(invoices, products)

    assert [p.name for p in result.product_analysis] == ["Book", "Pen"]


def test_revenue_is_conserved_across_rollups() -> None:
    invoices = [
        invoice(1, [item("Pen", 3, 2), item("Mystery", 1, "9.99")]),
        invoice(2, [item("Book", 2, 40), item("Pen", 1, 2)]),
    ]
    products = [product("p1", "Pen", 1, 2), product("p2", "Book", 20, 40)]

    result = compute_profitability(invoices, products)

    line_revenue = sum(
        (line.revenue for inv in invoices for line in inv.line_items), Decimal("0")
    )
    assert result.total_revenue == line_revenue
    assert sum((a.revenue for a in result.invoice_analysis), Decimal("0")) == (
        line_revenue
    )
    assert sum((a.profit for a in result.invoice_analysis), Decimal("0")) == (
        result.total_profit
    )


def test_exact_matching_only_folds_case() -> None:
    invoices = [invoice(1, [item("PEN", 1, 10), item(" Pen", 1, 10)])]
    products = [product("p1", "pen", 5, 10)]

    result = compute_profitability(invoices, products)

    matched = [p for p in result.product_analysis if not p.is_estimated]
    assert [p.units_sold for p in matched] == [Decimal("1")]
    assert [p.name for p in result.unmatched_products] == [" Pen"]


def test_normalized_matching_collapses_whitespace() -> None:
    invoices = [invoice(1, [item("  Blue   Pen ", 2, 10)])]
    products = [product("p1", "blue pen", 5, 10)]

    result = compute_profitability(invoices, products, name_matching="normalized")

    (row,) = result.product_analysis
    assert row.product_id == "p1"
    assert result.unmatched_products == []


def test_unknown_matching_mode_is_rejected() -> None:
    with pytest.raises(ValueError):
        product_key("Pen", "fuzzy")


def test_duplicate_catalog_names_keep_the_first_product() -> None:
    index = build_catalog_index(
        [product("p1", "Pen", 5, 10), product("p2", "PEN", 6, 10)]
    )

    assert list(index) == ["pen"]
    assert index["pen"].id == "p1"


def test_supplier_rollup_covers_matched_products() -> None:
    invoices = [
        invoice(
            1,
            [
                item("Pen", 10, 10),
                item("Pencil", 10, 5),
                item("Book", 1, 50),
                item("Mystery", 1, 100),
            ],
        )
    ]
    products = [
        product("p1", "Pen", 5, 10, supplier_id="1"),
        product("p2", "Pencil", 2, 5, supplier_id="1"),
        product("p3", "Book", 40, 50),
    ]
    suppliers = [Supplier(id="1", name="Stationery Co", code=1)]

    result = compute_profitability(invoices, products, suppliers)

    by_name = {s.name: s for s in result.supplier_analysis}
    assert set(by_name) == {"Stationery Co", UNKNOWN_SUPPLIER_LABEL}

    stationery = by_name["Stationery Co"]
    assert stationery.code == 1
    assert stationery.products_count == 2
    assert stationery.units_sold == Decimal("20")
    assert stationery.revenue == Decimal("150")
    assert stationery.profit == Decimal("80")

    unknown = by_name[UNKNOWN_SUPPLIER_LABEL]
    assert unknown.code is None
    assert unknown.revenue == Decimal("50")

    assert result.supplier_analysis[0].name == "Stationery Co"


def test_products_without_a_known_supplier_share_one_row() -> None:
    invoices = [invoice(1, [item("Book", 1, 50), item("Ruler", 2, 10)])]
    products = [
        product("p1", "Book", 40, 50),
        product("p2", "Ruler", 4, 10, supplier_id="99"),
    ]

    result = compute_profitability(invoices, products, suppliers=[])

    (unknown,) = result.supplier_analysis
    assert unknown.name == UNKNOWN_SUPPLIER_LABEL
    assert unknown.supplier_id == ""
    assert unknown.products_count == 2
    assert unknown.revenue == Decimal("70")
    assert unknown.profit == Decimal("22")


def test_invoice_drill_down_flags_estimated_lines() -> None:
    invoices = [
        invoice(7, [item("Pen", 10, 10), item("Mystery", 2, 20)]),
        invoice(8, [item("Pen", 1, 10)], when=datetime(2024, 1, 11, 9, 0)),
    ]
    result = compute_profitability(invoices, [product("p1", "Pen", 5, 10)])

    analysis = find_invoice(result, 7)

    assert analysis.date == date(2024, 1, 10)
    assert analysis.has_estimates
    assert [line.is_estimated for line in analysis.lines] == [False, True]
    assert analysis.lines[0].product_id == "p1"
    assert analysis.revenue == Decimal("140")
    assert analysis.cost == Decimal("70")
    assert not find_invoice(result, 8).has_estimates


def test_find_invoice_raises_for_unknown_id() -> None:
    result = compute_profitability([invoice(1, [item("Pen", 1, 10)])], [])

    with pytest.raises(LookupError):
        find_invoice(result, 99)


def test_catalog_suggestions_for_unmatched_items() -> None:
    invoices = [invoice(1, [item("Pen", 10, 10), item("Mystery", 2, 20)])]
    result = compute_profitability(invoices, [product("p1", "Pen", 5, 10)])

    (suggestion,) = suggest_catalog_entries(result)

    assert suggestion.name == "Mystery"
    assert suggestion.units_sold == Decimal("2")
    assert suggestion.estimated_unit_cost == Decimal("10")
    assert suggestion.average_selling_price == Decimal("20")


def test_empty_inputs_give_empty_result() -> None:
    result = compute_profitability([], [])

    assert result.product_analysis == []
    assert result.supplier_analysis == []
    assert result.invoice_analysis == []
    assert result.total_revenue == Decimal("0")
