from datetime import date, datetime
from decimal import Decimal

from smb_cashbook.metrics import NEW
from smb_cashbook.models import Invoice, LineItem, Product, Supplier
from smb_cashbook.profitability import UNKNOWN_SUPPLIER_LABEL, compute_trends


def make_invoice(invoice_id, when, *lines) -> Invoice:
    items = tuple(
        LineItem(name=name, quantity=Decimal(str(qty)), price=Decimal("1"))
        for name, qty in lines
    )
    total = sum((i.revenue for i in items), Decimal("0"))
    return Invoice(
        id=invoice_id,
        date=when,
        customer_name="Alice",
        customer_number="",
        line_items=items,
        total=total,
        cash=total,
    )


PRODUCTS = [
    Product(
        id="p1",
        name="Pen",
        cost=Decimal("1"),
        selling_price=Decimal("2"),
        supplier_id="1",
    ),
    Product(
        id="p2",
        name="Pencil",
        cost=Decimal("1"),
        selling_price=Decimal("2"),
        supplier_id="1",
    ),
    Product(id="p3", name="Eraser", cost=Decimal("1"), selling_price=Decimal("2")),
]
SUPPLIERS = [Supplier(id="1", name="Stationery Co", code=1)]

INVOICES = [
    make_invoice(1, datetime(2024, 2, 5), ("Pen", 10), ("Eraser", 4)),
    make_invoice(2, datetime(2024, 3, 1), ("Pen", 15), ("Pencil", 5)),
    make_invoice(3, datetime(2024, 3, 20), ("Mystery", 2)),
    # Outside both months.
    make_invoice(4, datetime(2024, 1, 31), ("Pen", 100)),
]


def test_months_are_anchored_on_the_reference_date() -> None:
    result = compute_trends(INVOICES, PRODUCTS, SUPPLIERS, as_of=date(2024, 3, 15))

    assert result.current_month == date(2024, 3, 1)
    assert result.previous_month == date(2024, 2, 1)


def test_product_growth_rates() -> None:
    result = compute_trends(INVOICES, PRODUCTS, SUPPLIERS, as_of=date(2024, 3, 15))

    rows = {r.name: r for r in result.products}

    assert rows["Pen"].current_units == Decimal("15")
    assert rows["Pen"].previous_units == Decimal("10")
    assert rows["Pen"].growth_rate == Decimal("50")

    assert rows["Pencil"].growth_rate == NEW
    assert rows["Eraser"].growth_rate == Decimal("-100")

    assert rows["Mystery"].is_estimated
    assert rows["Mystery"].key == "unmatched-mystery"

    # Highest current units first.
    assert result.products[0].name == "Pen"


def test_top_growing_product_excludes_new_products() -> None:
    result = compute_trends(INVOICES, PRODUCTS, SUPPLIERS, as_of=date(2024, 3, 15))

    assert result.top_growing_product is not None
    assert result.top_growing_product.name == "Pen"


def test_no_top_growing_product_without_positive_growth() -> None:
    invoices = [
        make_invoice(1, datetime(2024, 2, 5), ("Pen", 10)),
        make_invoice(2, datetime(2024, 3, 5), ("Pen", 5), ("Pencil", 1)),
    ]

    result = compute_trends(invoices, PRODUCTS, as_of=date(2024, 3, 31))

    assert result.top_growing_product is None


def test_supplier_trends_roll_up_matched_products() -> None:
    result = compute_trends(INVOICES, PRODUCTS, SUPPLIERS, as_of=date(2024, 3, 15))

    rows = {r.name: r for r in result.suppliers}

    assert rows["Stationery Co"].current_units == Decimal("20")
    assert rows["Stationery Co"].previous_units == Decimal("10")
    assert rows["Stationery Co"].growth_rate == Decimal("100")

    assert rows[UNKNOWN_SUPPLIER_LABEL].current_units == Decimal("0")
    assert rows[UNKNOWN_SUPPLIER_LABEL].growth_rate == Decimal("-100")


def test_january_reference_compares_with_previous_december() -> None:
    invoices = [
        make_invoice(1, datetime(2023, 12, 10), ("Pen", 2)),
        make_invoice(2, datetime(2024, 1, 10), ("Pen", 3)),
    ]

    result = compute_trends(invoices, PRODUCTS, as_of=date(2024, 1, 31))

    assert result.previous_month == date(2023, 12, 1)
    (row,) = result.products
    assert row.growth_rate == Decimal("50")


def test_no_activity_gives_empty_trends() -> None:
    result = compute_trends([], PRODUCTS, as_of=date(2024, 3, 15))

    assert result.products == []
    assert result.suppliers == []
    assert result.top_growing_product is None
