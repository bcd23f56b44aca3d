# SMB Cashbook - Sales Analytics & Cashbook Ledger for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Command-Line Interface (CLI) for SMB Cashbook.

This module wires together the main building blocks of SMB Cashbook:

- global configuration (database, cashbook, profitability, display),
- CSV imports into the local database,
- the high-level services (ledger, sales, profitability, trends, catalog),
- view helpers (tabular rendering).

The CLI is intentionally thin: it does not implement bookkeeping logic
itself. It orchestrates the underlying modules based on command-line
arguments and the configuration file.


Global options
--------------

    --config PATH            TOML configuration (default: smb_cashbook_config.toml)
    --import-vouchers CSV    import cashbook vouchers before running the command
    --import-invoices CSV    import invoices
    --import-products CSV    import catalog products
    --import-suppliers CSV   import suppliers
    --display-mode MODE      table | csv | both (overrides display.mode)
    --output DIR             CSV output directory (default: data/output)


Commands
--------

    cashbook report [--expand-cash-sales] [period options]
        Daily ledger with opening/closing balances. The CASH SALES vouchers
        of each day are collapsed into one line unless --expand-cash-sales
        is given.

    cashbook add --party NAME --amount N --kind receipt|payment
                 [--remarks TEXT] [--timestamp ISO]
    cashbook edit ID [--party ...] [--amount ...] [--kind ...] [--remarks ...]
                     [--timestamp ...]
    cashbook delete ID

    sales [period options]
        Sales totals, payment split, top customers and products.

    profit [--by products|suppliers|invoices] [--invoice-id ID] [period options]
        Profitability against the catalog. Unmatched items are costed
        with the average margin of matched products and flagged as estimated.

    trends [--as-of YYYY-MM-DD]
        Month-over-month units sold per product and per supplier.

    catalog add-supplier NAME
    catalog add-product --name NAME --cost N --selling-price N [--supplier-id ID]
    catalog suggest [period options]
        Items sold without a catalog entry, with the cost to prefill.

Period options: --period {all,today,yesterday,this-week,this-month,7days,
30days,last-month,last-quarter} or --from-date / --to-date (YYYY-MM-DD).

Examples:

    python -m smb_cashbook.cli --import-vouchers data/vouchers.csv cashbook report
    python -m smb_cashbook.cli profit --by suppliers --period last-month
    python -m smb_cashbook.cli profit --invoice-id 42
"""

import argparse
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Callable, Optional

import pandas as pd

from . import __version__
from .config import AppConfig, load_app_config
from .db import (
    format_supplier_code,
    import_invoices,
    import_products,
    import_suppliers,
    import_vouchers,
)
from .gateway import SQLiteGateway
from .io import (
    read_invoices_csv,
    read_products_csv,
    read_suppliers_csv,
    read_vouchers_csv,
)
from .metrics import to_decimal
from .models import DataIssue, NewProduct, NewVoucher, VoucherEntry, VoucherUpdate
from .periods import NAMED_PERIODS, _today, determine_period_from_args
from .profitability import find_invoice
from .services import (
    add_product,
    add_supplier,
    cashbook_report,
    catalog_suggestions,
    create_voucher,
    delete_voucher,
    edit_voucher,
    profitability_report,
    sales_report,
    trends_report,
)
from .views import (
    format_margin,
    invoice_lines_to_dataframe,
    invoices_to_dataframe,
    issues_to_dataframe,
    ledger_days_to_dataframe,
    ledger_lines_to_dataframe,
    money,
    products_to_dataframe,
    sales_summary_to_dataframe,
    suggestions_to_dataframe,
    suppliers_to_dataframe,
    trends_to_dataframe,
)

logger = logging.getLogger(__name__)

Table = tuple[str, str, pd.DataFrame]
"""(title, CSV file stem, DataFrame) of one rendered table."""


def _add_period_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--period",
        choices=list(NAMED_PERIODS),
        help="Named reporting period. If omitted, all dates are included.",
    )
    parser.add_argument(
        "--from-date",
        dest="from_date",
        help="Custom period start date (YYYY-MM-DD).",
    )
    parser.add_argument(
        "--to-date",
        dest="to_date",
        help="Custom period end date (YYYY-MM-DD).",
    )


def _add_voucher_fields(parser: argparse.ArgumentParser, required: bool) -> None:
    parser.add_argument("--party", dest="party_name", required=required)
    parser.add_argument("--amount", required=required)
    parser.add_argument(
        "--kind",
        choices=["receipt", "payment"],
        required=required,
    )
    parser.add_argument("--remarks")
    parser.add_argument(
        "--timestamp",
        help="Voucher date/time (ISO format). Defaults to now when adding.",
    )


def _build_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for the CLI."""
    ap = argparse.ArgumentParser(
        prog="python -m smb_cashbook.cli",
        description=(
            "SMB Cashbook - Sales Analytics & Cashbook Ledger for SMBs. "
            "Keeps a cashbook with daily running balances, summarizes sales "
            "and analyzes profitability against a product/supplier catalog."
        ),
    )

    ap.add_argument(
        "--version",
        action="store_true",
        help="Show the installed version of smb_cashbook and exit.",
    )
    ap.add_argument(
        "--config",
        dest="config_path",
        help=(
            "Path to the main TOML configuration file. "
            "If omitted, 'smb_cashbook_config.toml' in the current directory is used."
        ),
    )

    # Optional imports before running the command
    for kind in ("vouchers", "invoices", "products", "suppliers"):
        ap.add_argument(
            f"--import-{kind}",
            dest=f"import_{kind}",
            metavar="CSV_PATH",
            help=f"Import {kind} from the given CSV file into the database first.",
        )

    ap.add_argument(
        "--display-mode",
        dest="display_mode",
        choices=["table", "csv", "both"],
        help=(
            "Override the display.mode setting from the configuration file. "
            "'table' prints results to stdout, "
            "'csv' writes CSV files only, "
            "'both' does both."
        ),
    )
    ap.add_argument(
        "--output",
        dest="output_dir",
        help=(
            "Output directory where CSV files will be written when display "
            "mode includes 'csv'. If omitted, 'data/output' is used."
        ),
    )

    subparsers = ap.add_subparsers(dest="command", metavar="command")

    # ------------------------------------------------------------------
    # cashbook
    # ------------------------------------------------------------------
    cashbook = subparsers.add_parser("cashbook", help="Cashbook ledger and vouchers.")
    cashbook_sub = cashbook.add_subparsers(
        dest="cashbook_command", metavar="cashbook-command"
    )

    cb_report = cashbook_sub.add_parser(
        "report", help="Daily ledger with running balances."
    )
    cb_report.add_argument(
        "--expand-cash-sales",
        action="store_true",
        help="Show every CASH SALES voucher instead of one line per day.",
    )
    _add_period_arguments(cb_report)

    cb_add = cashbook_sub.add_parser("add", help="Record a new voucher.")
    _add_voucher_fields(cb_add, required=True)

    cb_edit = cashbook_sub.add_parser("edit", help="Correct an existing voucher.")
    cb_edit.add_argument("voucher_id", type=int)
    _add_voucher_fields(cb_edit, required=False)

    cb_delete = cashbook_sub.add_parser("delete", help="Delete a voucher.")
    cb_delete.add_argument("voucher_id", type=int)

    # ------------------------------------------------------------------
    # sales / profit / trends
    # ------------------------------------------------------------------
    sales = subparsers.add_parser("sales", help="Sales dashboard figures.")
    _add_period_arguments(sales)

    profit = subparsers.add_parser("profit", help="Profitability analysis.")
    profit.add_argument(
        "--by",
        choices=["products", "suppliers", "invoices"],
        default="products",
        help="Level of the profitability table (default: products).",
    )
    profit.add_argument(
        "--invoice-id",
        dest="invoice_id",
        type=int,
        help="Show the line-level profitability of one invoice.",
    )
    _add_period_arguments(profit)

    trends = subparsers.add_parser("trends", help="Month-over-month trends.")
    trends.add_argument(
        "--as-of",
        dest="as_of",
        help="Any date of the current month (YYYY-MM-DD). Defaults to today.",
    )

    # ------------------------------------------------------------------
    # catalog
    # ------------------------------------------------------------------
    catalog = subparsers.add_parser("catalog", help="Suppliers and products.")
    catalog_sub = catalog.add_subparsers(
        dest="catalog_command", metavar="catalog-command"
    )

    cat_supplier = catalog_sub.add_parser("add-supplier", help="Add a supplier.")
    cat_supplier.add_argument("name")

    cat_product = catalog_sub.add_parser("add-product", help="Add a product.")
    cat_product.add_argument("--name", required=True)
    cat_product.add_argument("--cost", required=True)
    cat_product.add_argument("--selling-price", dest="selling_price", required=True)
    cat_product.add_argument("--supplier-id", dest="supplier_id")

    cat_suggest = catalog_sub.add_parser(
        "suggest", help="Sold items missing from the catalog."
    )
    _add_period_arguments(cat_suggest)

    return ap


# ---------------------------------------------------------------------------
# Rendering helpers
# ---------------------------------------------------------------------------


def _parse_optional_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse an optional ISO date/datetime argument."""
    if value is None:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError as exc:
        raise ValueError(
            f"Invalid date format: {value!r}. Expected ISO format (YYYY-MM-DD)."
        ) from exc


def _render(tables: list[Table], args: argparse.Namespace, config: AppConfig) -> None:
    """Print and/or write the tables according to the display mode."""
    display_mode = args.display_mode or config.display_mode

    if display_mode in {"table", "both"}:
        for title, _, df in tables:
            print()
            print(f"=== {title} ===")
            if df.empty:
                print("(no rows)")
            else:
                print(df.to_string(index=False))

    if display_mode in {"csv", "both"}:
        output_dir = Path(args.output_dir) if args.output_dir else Path("data/output")
        output_dir.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().strftime("%Y-%m-%d-%H-%M-%S")
        for _, stem, df in tables:
            path = output_dir / f"{stem}_{timestamp}.csv"
            df.to_csv(path, index=False)
            print(f"Wrote {path} ({len(df)} rows)")


def _with_issues(tables: list[Table], issues: list[DataIssue]) -> list[Table]:
    if issues:
        print(f"Warning: {len(issues)} data-quality issue(s) found.")
        tables = tables + [
            ("Data quality warnings", "data_issues", issues_to_dataframe(issues))
        ]
    return tables


def _print_voucher(label: str, entry: VoucherEntry) -> None:
    print(label)
    print(f"  id:          {entry.id}")
    print(f"  timestamp:   {entry.timestamp}")
    print(f"  party:       {entry.party_name}")
    print(f"  kind:        {entry.kind}")
    print(f"  amount:      {entry.amount:.2f}")
    print(f"  remarks:     {entry.remarks or ''}")


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _handle_cashbook_report(args, config: AppConfig, gateway: SQLiteGateway) -> None:
    period = determine_period_from_args(args)
    report = cashbook_report(gateway, config, period)
    ledger = report.ledger

    print(f"Applied period: {period.label}")
    tables: list[Table] = [
        ("Daily balances", "cashbook_days", ledger_days_to_dataframe(ledger)),
        (
            "Cashbook",
            "cashbook_lines",
            ledger_lines_to_dataframe(ledger, expand_cash_sales=args.expand_cash_sales),
        ),
    ]
    _render(_with_issues(tables, ledger.issues), args, config)

    print()
    print(
        f"Opening balance: {ledger.opening_balance:.2f} | "
        f"Receipts: {ledger.total_receipts:.2f} | "
        f"Payments: {ledger.total_payments:.2f} | "
        f"Closing balance: {ledger.closing_balance:.2f}"
    )


def _handle_cashbook_add(args, config: AppConfig, gateway: SQLiteGateway) -> None:
    new_voucher = NewVoucher(
        party_name=args.party_name,
        amount=to_decimal(args.amount),
        kind=args.kind,
        remarks=args.remarks,
        timestamp=_parse_optional_datetime(args.timestamp),
    )
    created = create_voucher(gateway, config, new_voucher)
    _print_voucher("Voucher recorded:", created)


def _handle_cashbook_edit(args, config: AppConfig, gateway: SQLiteGateway) -> None:
    update = VoucherUpdate(
        party_name=args.party_name,
        amount=None if args.amount is None else to_decimal(args.amount),
        kind=args.kind,
        remarks=args.remarks,
        timestamp=_parse_optional_datetime(args.timestamp),
    )
    updated = edit_voucher(gateway, config, args.voucher_id, update)
    _print_voucher("Voucher updated:", updated)


def _handle_cashbook_delete(args, config: AppConfig, gateway: SQLiteGateway) -> None:
    deleted = delete_voucher(gateway, config, args.voucher_id)
    _print_voucher("Voucher deleted:", deleted)


def _handle_cashbook_command(args, config: AppConfig, gateway: SQLiteGateway) -> None:
    handlers: dict[str, Callable] = {
        "report": _handle_cashbook_report,
        "add": _handle_cashbook_add,
        "edit": _handle_cashbook_edit,
        "delete": _handle_cashbook_delete,
    }
    handler = handlers.get(getattr(args, "cashbook_command", None) or "")
    if handler is None:
        print(
            "No cashbook subcommand specified. "
            "Available subcommands are: 'report', 'add', 'edit', 'delete'."
        )
        return
    handler(args, config, gateway)


def _handle_sales(args, config: AppConfig, gateway: SQLiteGateway) -> None:
    period = determine_period_from_args(args)
    report = sales_report(gateway, config, period)
    summary = report.summary

    print(f"Applied period: {period.label}")
    tables: list[Table] = [
        ("Sales summary", "sales_summary", sales_summary_to_dataframe(summary)),
        ("Top customers", "top_customers", summary.top_customers),
        ("Top products", "top_products", summary.top_products),
        ("Recent sales", "recent_sales", summary.recent_sales),
        ("Daily sales", "daily_sales", summary.daily_sales),
    ]
    _render(_with_issues(tables, report.issues), args, config)


def _handle_profit(args, config: AppConfig, gateway: SQLiteGateway) -> None:
    period = determine_period_from_args(args)
    report = profitability_report(gateway, config, period)
    result = report.result
    decimals = config.decimals

    print(f"Applied period: {period.label}")
    print(
        f"Average margin used for estimates: "
        f"{format_margin(result.average_margin, decimals)}%"
    )

    if args.invoice_id is not None:
        analysis = find_invoice(result, args.invoice_id)
        print(
            f"Invoice #{analysis.invoice_id} ({analysis.date.isoformat()}) - "
            f"{analysis.customer_name}: revenue {money(analysis.revenue):.2f}, "
            f"profit {money(analysis.profit):.2f}, "
            f"margin {format_margin(analysis.profit_margin, decimals)}"
        )
        tables: list[Table] = [
            (
                f"Invoice #{analysis.invoice_id}",
                f"invoice_{analysis.invoice_id}",
                invoice_lines_to_dataframe(analysis, decimals),
            )
        ]
    elif args.by == "suppliers":
        tables = [
            (
                "Supplier profitability",
                "supplier_profitability",
                suppliers_to_dataframe(result.supplier_analysis, decimals),
            )
        ]
    elif args.by == "invoices":
        tables = [
            (
                "Invoice profitability",
                "invoice_profitability",
                invoices_to_dataframe(result.invoice_analysis, decimals),
            )
        ]
    else:
        tables = [
            (
                "Product profitability",
                "product_profitability",
                products_to_dataframe(result.product_analysis, decimals),
            )
        ]

    _render(_with_issues(tables, report.issues), args, config)

    print()
    print(
        f"Total revenue: {money(result.total_revenue):.2f} | "
        f"Total profit: {money(result.total_profit):.2f}"
    )


def _handle_trends(args, config: AppConfig, gateway: SQLiteGateway) -> None:
    as_of = _parse_optional_datetime(args.as_of)
    as_of_day: date = as_of.date() if as_of is not None else _today()

    report = trends_report(gateway, config, as_of_day)
    result = report.result
    decimals = config.decimals

    print(
        f"Current month: {result.current_month:%Y-%m} | "
        f"Previous month: {result.previous_month:%Y-%m}"
    )
    top = result.top_growing_product
    if top is None:
        print("Top growing product: none")
    else:
        print(
            f"Top growing product: {top.name} "
            f"(+{float(top.growth_rate):.{decimals}f}%)"
        )

    tables: list[Table] = [
        (
            "Product trends",
            "product_trends",
            trends_to_dataframe(result.products, decimals),
        ),
        (
            "Supplier trends",
            "supplier_trends",
            trends_to_dataframe(result.suppliers, decimals),
        ),
    ]
    _render(_with_issues(tables, report.issues), args, config)


def _handle_catalog_command(args, config: AppConfig, gateway: SQLiteGateway) -> None:
    subcmd = getattr(args, "catalog_command", None)

    if subcmd == "add-supplier":
        supplier = add_supplier(gateway, config, args.name)
        print(
            f"Supplier added: #{supplier.id} {supplier.name} "
            f"(code {format_supplier_code(supplier.code)})"
        )
    elif subcmd == "add-product":
        product = add_product(
            gateway,
            config,
            NewProduct(
                name=args.name,
                cost=to_decimal(args.cost),
                selling_price=to_decimal(args.selling_price),
                supplier_id=args.supplier_id,
            ),
        )
        print(
            f"Product added: #{product.id} {product.name} "
            f"(cost {product.cost:.2f}, price {product.selling_price:.2f}, "
            f"barcode {product.barcode or '-'})"
        )
    elif subcmd == "suggest":
        period = determine_period_from_args(args)
        suggestions = catalog_suggestions(gateway, config, period)
        print(f"Applied period: {period.label}")
        _render(
            [
                (
                    "Items sold without a catalog entry",
                    "catalog_suggestions",
                    suggestions_to_dataframe(suggestions),
                )
            ],
            args,
            config,
        )
    else:
        print(
            "No catalog subcommand specified. "
            "Available subcommands are: 'add-supplier', 'add-product', 'suggest'."
        )


def _run_imports(args, config: AppConfig, parser: argparse.ArgumentParser) -> None:
    """Import the CSV files given on the command line, suppliers first."""
    steps = [
        ("suppliers", read_suppliers_csv, import_suppliers),
        ("products", read_products_csv, import_products),
        ("vouchers", read_vouchers_csv, import_vouchers),
        ("invoices", read_invoices_csv, import_invoices),
    ]
    for kind, reader, importer in steps:
        raw_path = getattr(args, f"import_{kind}", None)
        if not raw_path:
            continue
        csv_path = Path(raw_path)
        if not csv_path.is_file():
            parser.error(f"CSV file for --import-{kind} not found: {csv_path}")

        print(f"Importing {kind} from {csv_path} into the database...")
        stats = importer(reader(csv_path), config.database)
        print(f"Imported {stats.rows_inserted} {kind}, skipped {stats.rows_skipped}.")


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point for the SMB Cashbook CLI.

    This function parses command-line arguments, loads the configuration,
    configures logging, initializes the database, runs the optional CSV
    imports and dispatches to the requested command.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"smb_cashbook version {__version__}")
        return

    # 1) Configuration & logging
    try:
        config = load_app_config(args.config_path)
    except (FileNotFoundError, ValueError) as exc:
        parser.error(str(exc))

    logging.basicConfig(
        level=getattr(logging, config.log_level),
        format="%(levelname)s %(name)s: %(message)s",
    )

    # 2) Database & optional imports
    gateway = SQLiteGateway(config.database)
    try:
        _run_imports(args, config, parser)
    except ValueError as exc:
        parser.error(str(exc))

    # 3) Command dispatch
    handlers: dict[str, Callable] = {
        "cashbook": _handle_cashbook_command,
        "sales": _handle_sales,
        "profit": _handle_profit,
        "trends": _handle_trends,
        "catalog": _handle_catalog_command,
    }
    handler = handlers.get(getattr(args, "command", None) or "")
    if handler is None:
        if not any(
            getattr(args, f"import_{k}", None)
            for k in ("vouchers", "invoices", "products", "suppliers")
        ):
            parser.print_help()
        return

    try:
        handler(args, config, gateway)
    except (ValueError, LookupError) as exc:
        logger.debug("Command failed", exc_info=True)
        parser.error(str(exc))


if __name__ == "__main__":
    main()
