from datetime import date, datetime
from decimal import Decimal

import pandas as pd
import pytest

from smb_cashbook import services
from smb_cashbook.config import (
    AppConfig,
    CashbookConfig,
    InvoicesConfig,
    ProfitabilityConfig,
)
from smb_cashbook.db import DatabaseConfig, import_vouchers
from smb_cashbook.gateway import SQLiteGateway
from smb_cashbook.models import (
    LineItem,
    NewInvoice,
    NewProduct,
    NewVoucher,
    VoucherUpdate,
)
from smb_cashbook.periods import Period


def make_app_config(tmp_path, policy: str = "advisory") -> AppConfig:
    return AppConfig(
        database=DatabaseConfig(engine="sqlite", path=tmp_path / "test_db.sqlite"),
        cashbook=CashbookConfig(),
        profitability=ProfitabilityConfig(),
        invoices=InvoicesConfig(payment_split_policy=policy),
        display_mode="table",
        decimals=2,
        log_level="WARNING",
    )


def make_gateway(app_config: AppConfig) -> SQLiteGateway:
    return SQLiteGateway(app_config.database)


def add_voucher(gateway, app_config, when, party, amount, kind):
    return services.create_voucher(
        gateway,
        app_config,
        NewVoucher(
            party_name=party,
            amount=Decimal(str(amount)),
            kind=kind,
            timestamp=when,
        ),
    )


def add_invoice(gateway, when, customer, lines, **split):
    return gateway.insert_invoice(
        NewInvoice(
            date=when,
            customer_name=customer,
            line_items=tuple(
                LineItem(name, Decimal(str(qty)), Decimal(str(price)))
                for name, qty, price in lines
            ),
            **{k: Decimal(str(v)) for k, v in split.items()},
        )
    )


class FakeGateway:
    """In-memory gateway serving raw frames, used to feed malformed rows."""

    def __init__(self, vouchers: pd.DataFrame) -> None:
        self.vouchers = vouchers

    def fetch_vouchers(self) -> pd.DataFrame:
        return self.vouchers


# ---------------------------------------------------------------------------
# Cashbook
# ---------------------------------------------------------------------------


def test_cashbook_report_keeps_balance_carried_into_the_period(tmp_path) -> None:
    app_config = make_app_config(tmp_path)
    gateway = make_gateway(app_config)
    add_voucher(gateway, app_config, datetime(2024, 1, 1, 9), "Alice", 100, "receipt")
    add_voucher(gateway, app_config, datetime(2024, 1, 2, 9), "Bob", 30, "payment")
    add_voucher(gateway, app_config, datetime(2024, 1, 3, 9), "Carol", 10, "receipt")

    report = services.cashbook_report(
        gateway,
        app_config,
        Period(start=date(2024, 1, 2), end=date(2024, 1, 3), label="Test"),
    )

    groups = report.ledger.groups
    assert [g.day for g in groups] == [date(2024, 1, 2), date(2024, 1, 3)]
    assert groups[0].opening_balance == Decimal("100.00")
    assert report.ledger.closing_balance == Decimal("80.00")
    assert report.ledger.issues == []
    assert report.ledger.opening_balance == Decimal("100.00")


def test_cashbook_report_for_a_quiet_period_keeps_the_carried_balance(
    tmp_path,
) -> None:
    app_config = make_app_config(tmp_path)
    gateway = make_gateway(app_config)
    add_voucher(gateway, app_config, datetime(2024, 1, 1, 9), "Alice", 100, "receipt")
    add_voucher(gateway, app_config, datetime(2024, 1, 2, 9), "Bob", 30, "payment")

    report = services.cashbook_report(
        gateway,
        app_config,
        Period(start=date(2024, 1, 5), end=date(2024, 1, 5), label="Quiet day"),
    )

    assert report.ledger.groups == ()
    assert report.ledger.opening_balance == Decimal("70.00")
    assert report.ledger.closing_balance == Decimal("70.00")
    assert report.ledger.total_receipts == Decimal("0")


def test_cashbook_report_before_any_voucher_opens_at_zero(tmp_path) -> None:
    app_config = make_app_config(tmp_path)
    gateway = make_gateway(app_config)
    add_voucher(gateway, app_config, datetime(2024, 1, 1, 9), "Alice", 100, "receipt")

    report = services.cashbook_report(
        gateway,
        app_config,
        Period(start=date(2023, 12, 1), end=date(2023, 12, 31), label="December"),
    )

    assert report.ledger.closing_balance == Decimal("0")


def test_cashbook_report_collects_data_issues(tmp_path) -> None:
    app_config = make_app_config(tmp_path)
    vouchers = pd.DataFrame(
        [
            {
                "id": 1,
                "timestamp": "2024-01-01T09:00:00",
                "party_name": "Alice",
                "remarks": None,
                "amount": "100",
                "kind": "receipt",
            },
            {
                "id": 2,
                "timestamp": "2024-01-01T10:00:00",
                "party_name": "Bob",
                "remarks": None,
                "amount": "lots",
                "kind": "payment",
            },
            {
                "id": 3,
                "timestamp": "31/01/2024",
                "party_name": "Carol",
                "remarks": None,
                "amount": "5",
                "kind": "payment",
            },
        ]
    )

    report = services.cashbook_report(FakeGateway(vouchers), app_config)

    assert sorted(i.record_id for i in report.ledger.issues) == ["2", "3"]
    assert report.ledger.closing_balance == Decimal("100")


def test_imported_malformed_timestamp_is_reported(tmp_path) -> None:
    app_config = make_app_config(tmp_path)
    gateway = make_gateway(app_config)
    import_vouchers(
        pd.DataFrame(
            [
                {
                    "timestamp": "someday",
                    "party_name": "Alice",
                    "remarks": "",
                    "amount": "10",
                    "kind": "receipt",
                }
            ]
        ),
        app_config.database,
    )

    report = services.cashbook_report(gateway, app_config)

    assert report.ledger.groups == ()
    assert len(report.ledger.issues) == 1


def test_create_voucher_validation(tmp_path) -> None:
    app_config = make_app_config(tmp_path)
    gateway = make_gateway(app_config)

    with pytest.raises(ValueError):
        add_voucher(gateway, app_config, None, "  ", 10, "receipt")
    with pytest.raises(ValueError):
        add_voucher(gateway, app_config, None, "Alice", "0.001", "receipt")
    with pytest.raises(ValueError):
        add_voucher(gateway, app_config, None, "Alice", 10, "refund")

    created = add_voucher(gateway, app_config, None, " Alice ", 10, "RECEIPT")
    assert created.party_name == "Alice"
    assert created.kind == "receipt"


def test_edit_and_delete_voucher(tmp_path) -> None:
    app_config = make_app_config(tmp_path)
    gateway = make_gateway(app_config)
    created = add_voucher(
        gateway, app_config, datetime(2024, 1, 1, 9), "Alice", 10, "receipt"
    )

    edited = services.edit_voucher(
        gateway, app_config, created.id, VoucherUpdate(kind="Payment")
    )
    assert edited.kind == "payment"

    with pytest.raises(ValueError):
        services.edit_voucher(
            gateway, app_config, created.id, VoucherUpdate(amount=Decimal("-1"))
        )

    deleted = services.delete_voucher(gateway, app_config, created.id)
    assert deleted.id == created.id
    with pytest.raises(LookupError):
        services.delete_voucher(gateway, app_config, created.id)
    with pytest.raises(LookupError):
        services.edit_voucher(
            gateway, app_config, created.id, VoucherUpdate(party_name="Bob")
        )


# ---------------------------------------------------------------------------
# Sales & profitability
# ---------------------------------------------------------------------------


def test_sales_report_advisory_policy_reports_split_mismatch(tmp_path) -> None:
    app_config = make_app_config(tmp_path)
    gateway = make_gateway(app_config)
    add_invoice(gateway, datetime(2024, 1, 1), "Alice", [("Pen", 1, 10)], cash=10)
    add_invoice(gateway, datetime(2024, 1, 2), "Bob", [("Pen", 2, 10)], cash=5)

    report = services.sales_report(gateway, app_config)

    assert report.summary.invoice_count == 2
    assert [(i.record_id, i.excluded) for i in report.issues] == [("2", False)]


def test_sales_report_strict_policy_excludes_split_mismatch(tmp_path) -> None:
    app_config = make_app_config(tmp_path, policy="strict")
    gateway = make_gateway(app_config)
    add_invoice(gateway, datetime(2024, 1, 1), "Alice", [("Pen", 1, 10)], cash=10)
    add_invoice(gateway, datetime(2024, 1, 2), "Bob", [("Pen", 2, 10)], cash=5)

    report = services.sales_report(gateway, app_config)

    assert report.summary.invoice_count == 1
    assert report.summary.total_sales == Decimal("10.00")
    assert [(i.record_id, i.excluded) for i in report.issues] == [("2", True)]


def test_sales_report_is_restricted_to_the_period(tmp_path) -> None:
    app_config = make_app_config(tmp_path)
    gateway = make_gateway(app_config)
    add_invoice(gateway, datetime(2024, 1, 1, 9), "Alice", [("Pen", 1, 10)], cash=10)
    add_invoice(gateway, datetime(2024, 2, 1, 9), "Bob", [("Pen", 1, 20)], cash=20)

    report = services.sales_report(
        gateway,
        app_config,
        Period(start=date(2024, 2, 1), end=date(2024, 2, 29), label="February"),
    )

    assert report.summary.invoice_count == 1
    assert report.summary.total_sales == Decimal("20.00")


def test_profitability_report_joins_catalog_and_suppliers(tmp_path) -> None:
    app_config = make_app_config(tmp_path)
    gateway = make_gateway(app_config)
    supplier = services.add_supplier(gateway, app_config, "Stationery Co")
    services.add_product(
        gateway,
        app_config,
        NewProduct(
            name="Pen",
            cost=Decimal("5"),
            selling_price=Decimal("10"),
            supplier_id=supplier.id,
        ),
    )
    add_invoice(
        gateway,
        datetime(2024, 1, 1),
        "Alice",
        [("Pen", 10, 10), ("Mystery", 2, 20)],
        cash=140,
    )

    report = services.profitability_report(gateway, app_config)

    result = report.result
    assert result.average_margin == Decimal("50")
    assert [s.name for s in result.supplier_analysis] == ["Stationery Co"]
    assert result.supplier_analysis[0].profit == Decimal("50")
    assert [p.name for p in result.unmatched_products] == ["Mystery"]
    assert result.unmatched_products[0].cost == Decimal("20")
    assert report.issues == []

    (suggestion,) = services.catalog_suggestions(gateway, app_config)
    assert suggestion.name == "Mystery"
    assert suggestion.estimated_unit_cost == Decimal("10")


def test_add_product_validation(tmp_path) -> None:
    app_config = make_app_config(tmp_path)
    gateway = make_gateway(app_config)

    with pytest.raises(ValueError):
        services.add_product(
            gateway,
            app_config,
            NewProduct(name=" ", cost=Decimal("1"), selling_price=Decimal("2")),
        )
    with pytest.raises(ValueError):
        services.add_product(
            gateway,
            app_config,
            NewProduct(name="Pen", cost=Decimal("-1"), selling_price=Decimal("2")),
        )

    product = services.add_product(
        gateway,
        app_config,
        NewProduct(name=" Pen ", cost=Decimal("1"), selling_price=Decimal("2")),
    )
    assert product.name == "Pen"
    assert product.barcode is None


def test_trends_report(tmp_path) -> None:
    app_config = make_app_config(tmp_path)
    gateway = make_gateway(app_config)
    add_invoice(gateway, datetime(2024, 2, 10), "Alice", [("Pen", 10, 1)], cash=10)
    add_invoice(gateway, datetime(2024, 3, 10), "Alice", [("Pen", 15, 1)], cash=15)

    report = services.trends_report(gateway, app_config, as_of=date(2024, 3, 31))

    (row,) = report.result.products
    assert row.growth_rate == Decimal("50")
    assert report.result.top_growing_product == row
