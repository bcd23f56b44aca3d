# SMB Cashbook - Sales Analytics & Cashbook Ledger for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
I/O module for SMB Cashbook.

This module is the boundary between raw data (CSV files, rows loaded from
the store) and the typed records used by the aggregators.

Two families of helpers live here:

1) CSV readers
   -----------
   ``read_vouchers_csv``, ``read_invoices_csv``, ``read_products_csv`` and
   ``read_suppliers_csv`` read import files and normalize their column names
   (case-insensitive, with a few aliases such as ``customerName`` for
   ``customer_name``). A file that does not have the required columns
   raises a clear ValueError.

2) Decoders
   --------
   ``decode_vouchers``, ``decode_invoices``, ``decode_products`` and
   ``decode_suppliers`` turn DataFrames into typed records. Decoding is
   per record: a malformed row (for example an invoice whose line items are
   not a valid JSON list of ``{name, quantity, price}`` objects) is reported
   as a DataIssue and left out, the rest of the batch is still decoded.

Invoice line items are stored as a JSON text column named ``products``:

    [{"name": "Pen", "quantity": 10, "price": 8}, ...]
"""

import json
import logging
import os
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional, Union

import pandas as pd

from .metrics import to_decimal
from .models import DataIssue, Invoice, LineItem, Product, Supplier, VoucherEntry

logger = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]

PAYMENT_SPLIT_POLICIES: tuple[str, ...] = ("advisory", "strict")


class LineItemDecodeError(ValueError):
    """Raised when an invoice's serialized line items cannot be decoded."""


# ---------------------------------------------------------------------------
# CSV readers
# ---------------------------------------------------------------------------

_COLUMN_ALIASES: dict[str, str] = {
    "customername": "customer_name",
    "customernumber": "customer_number",
    "sellingprice": "selling_price",
    "partyname": "party_name",
    "party": "party_name",
    "voucher_type": "kind",
    "vouchertype": "kind",
    "type": "kind",
    "remark": "remarks",
    "supplier": "supplier_id",
    "line_items": "products",
    "created_at": "timestamp",
    "date": "timestamp",
}


def _normalize_columns(df: pd.DataFrame, aliases: dict[str, str]) -> pd.DataFrame:
    """Lowercase and strip column names, then apply aliases for missing ones."""
    df = df.copy()
    df.columns = [str(c).strip().lower() for c in df.columns]
    renames = {
        col: target
        for col, target in aliases.items()
        if col in df.columns and target not in df.columns
    }
    return df.rename(columns=renames)


def _read_csv(
    path: PathLike,
    required: set[str],
    aliases: dict[str, str],
    kind: str,
) -> pd.DataFrame:
    # Read everything as text: conversion happens in the decoders, per row.
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    df = _normalize_columns(df, aliases)

    missing = required.difference(df.columns)
    if missing:
        cols = ", ".join(sorted(missing))
        raise ValueError(
            f"Invalid {kind} CSV structure: missing column(s) {cols}. "
            "Column names are case-insensitive."
        )
    return df


def read_vouchers_csv(path: PathLike) -> pd.DataFrame:
    """
    Read cashbook vouchers from a CSV file.

    Expected columns (case-insensitive)
    -----------------------------------
        timestamp (or date / created_at), party_name, amount,
        kind (or voucher_type), remarks (optional)

    Timestamps are kept as text: vouchers with malformed timestamps are
    reported by the ledger instead of failing the import.
    """
    df = _read_csv(
        path,
        {"timestamp", "party_name", "amount", "kind"},
        _COLUMN_ALIASES,
        "vouchers",
    )
    if "remarks" not in df.columns:
        df["remarks"] = ""
    df["kind"] = df["kind"].str.strip().str.lower()
    return df[["timestamp", "party_name", "remarks", "amount", "kind"]]


def read_invoices_csv(path: PathLike) -> pd.DataFrame:
    """
    Read invoices from a CSV file.

    Expected columns (case-insensitive)
    -----------------------------------
        date, customer_name, customer_number, products (JSON list),
        total, cash, upi, credit, note (optional)

    ``customerName`` / ``customerNumber`` are accepted as aliases.
    """
    aliases = {k: v for k, v in _COLUMN_ALIASES.items() if v != "timestamp"}
    df = _read_csv(
        path,
        {"date", "customer_name", "products", "total"},
        aliases,
        "invoices",
    )
    for col in ("customer_number", "note"):
        if col not in df.columns:
            df[col] = ""
    for col in ("cash", "upi", "credit"):
        if col not in df.columns:
            df[col] = "0"
    return df[
        [
            "date",
            "customer_name",
            "customer_number",
            "products",
            "total",
            "cash",
            "upi",
            "credit",
            "note",
        ]
    ]


def read_products_csv(path: PathLike) -> pd.DataFrame:
    """
    Read catalog products from a CSV file.

    Expected columns: name, cost, selling_price (or sellingPrice),
    supplier_id (or supplier, optional), barcode (optional).
    """
    df = _read_csv(path, {"name", "cost", "selling_price"}, _COLUMN_ALIASES, "products")
    for col in ("supplier_id", "barcode"):
        if col not in df.columns:
            df[col] = ""
    return df[["name", "cost", "selling_price", "supplier_id", "barcode"]]


def read_suppliers_csv(path: PathLike) -> pd.DataFrame:
    """Read suppliers from a CSV file. Expected columns: name, code."""
    df = _read_csv(path, {"name", "code"}, _COLUMN_ALIASES, "suppliers")
    return df[["name", "code"]]


# ---------------------------------------------------------------------------
# Decoders
# ---------------------------------------------------------------------------


def _text(value: Any) -> str:
    if value is None:
        return ""
    try:
        if pd.isna(value):
            return ""
    except (TypeError, ValueError):
        pass
    return str(value)


def _optional_text(value: Any) -> Optional[str]:
    text = _text(value).strip()
    return text or None


def _parse_datetime(value: Any) -> datetime:
    """Parse a date/datetime value from the store or a CSV file."""
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    text = _text(value).strip()
    if not text:
        raise ValueError("missing date")
    return datetime.fromisoformat(text)


def decode_line_items(raw: Any) -> tuple[LineItem, ...]:
    """
    Decode an invoice's serialized line items.

    Parameters
    ----------
    raw:
        JSON text (as stored) or an already-parsed list of mappings.

    Returns
    -------
    tuple[LineItem, ...]

    Raises
    ------
    LineItemDecodeError
        If the payload is not a list of ``{name, quantity, price}`` objects
        with numeric quantity and price.
    """
    if isinstance(raw, (list, tuple)):
        payload = raw
    else:
        try:
            payload = json.loads(_text(raw))
        except json.JSONDecodeError as exc:
            raise LineItemDecodeError(f"line items are not valid JSON: {exc}") from exc

    if not isinstance(payload, list):
        raise LineItemDecodeError("line items must be a JSON list")

    items: list[LineItem] = []
    for position, item in enumerate(payload):
        if not isinstance(item, dict):
            raise LineItemDecodeError(f"line item #{position} is not an object")
        try:
            name = item["name"]
            quantity = to_decimal(item["quantity"])
            price = to_decimal(item["price"])
        except KeyError as exc:
            raise LineItemDecodeError(
                f"line item #{position} is missing field {exc.args[0]!r}"
            ) from exc
        except ValueError as exc:
            raise LineItemDecodeError(f"line item #{position}: {exc}") from exc
        if not isinstance(name, str):
            raise LineItemDecodeError(f"line item #{position} has a non-text name")
        items.append(LineItem(name=name, quantity=quantity, price=price))
    return tuple(items)


def encode_line_items(items) -> str:
    """Serialize line items to the JSON text stored in the ``products`` column."""
    return json.dumps(
        [
            {"name": i.name, "quantity": float(i.quantity), "price": float(i.price)}
            for i in items
        ]
    )


def _row_id(row: pd.Series, position: int) -> str:
    value = row.get("id")
    text = _text(value)
    return text if text else f"row-{position}"


def decode_vouchers(df: pd.DataFrame) -> tuple[list[VoucherEntry], list[DataIssue]]:
    """
    Decode voucher rows into VoucherEntry records.

    Expected columns: id, timestamp, party_name, remarks, amount, kind.
    Rows with a non-numeric amount or a non-integer id are reported and
    left out. Timestamps are passed through unchanged (validated by the
    ledger).
    """
    entries: list[VoucherEntry] = []
    issues: list[DataIssue] = []
    for position, (_, row) in enumerate(df.iterrows()):
        record_id = _row_id(row, position)
        raw_id = row.get("id")
        try:
            amount = to_decimal(row["amount"])
            voucher_id = int(raw_id) if _text(raw_id) else position
        except ValueError as exc:
            issues.append(DataIssue("voucher", record_id, str(exc)))
            continue

        entries.append(
            VoucherEntry(
                id=voucher_id,
                timestamp=row["timestamp"],
                party_name=_text(row["party_name"]),
                amount=amount,
                kind=_text(row["kind"]).strip().lower(),
                remarks=_optional_text(row.get("remarks")),
            )
        )
    return entries, issues


def decode_invoices(df: pd.DataFrame) -> tuple[list[Invoice], list[DataIssue]]:
    """
    Decode invoice rows into Invoice records.

    Expected columns: id, date, customer_name, customer_number, products,
    total, cash, upi, credit, note.

    An invoice with a malformed date, amount or line-item payload is reported
    as a DataIssue and left out; the other invoices are still decoded.
    """
    invoices: list[Invoice] = []
    issues: list[DataIssue] = []
    for position, (_, row) in enumerate(df.iterrows()):
        record_id = _row_id(row, position)
        try:
            invoice = Invoice(
                id=int(row["id"]) if _text(row.get("id")) else position,
                date=_parse_datetime(row["date"]),
                customer_name=_text(row["customer_name"]),
                customer_number=_text(row.get("customer_number")),
                line_items=decode_line_items(row["products"]),
                total=to_decimal(row["total"]),
                cash=to_decimal(_text(row.get("cash")) or 0),
                upi=to_decimal(_text(row.get("upi")) or 0),
                credit=to_decimal(_text(row.get("credit")) or 0),
                note=_text(row.get("note")),
            )
        except ValueError as exc:
            issues.append(DataIssue("invoice", record_id, str(exc)))
            continue
        invoices.append(invoice)

    if issues:
        logger.warning("%d invoice(s) could not be decoded.", len(issues))
    return invoices, issues


def decode_products(df: pd.DataFrame) -> tuple[list[Product], list[DataIssue]]:
    """Decode product rows (id, name, cost, selling_price, supplier_id, barcode)."""
    products: list[Product] = []
    issues: list[DataIssue] = []
    for position, (_, row) in enumerate(df.iterrows()):
        record_id = _row_id(row, position)
        try:
            products.append(
                Product(
                    id=record_id,
                    name=_text(row["name"]),
                    cost=to_decimal(row["cost"]),
                    selling_price=to_decimal(row["selling_price"]),
                    supplier_id=_optional_text(row.get("supplier_id")),
                    barcode=_optional_text(row.get("barcode")),
                )
            )
        except ValueError as exc:
            issues.append(DataIssue("product", record_id, str(exc)))
    return products, issues


def decode_suppliers(df: pd.DataFrame) -> tuple[list[Supplier], list[DataIssue]]:
    """Decode supplier rows (id, name, code)."""
    suppliers: list[Supplier] = []
    issues: list[DataIssue] = []
    for position, (_, row) in enumerate(df.iterrows()):
        record_id = _row_id(row, position)
        try:
            code = int(_text(row["code"]).strip())
        except ValueError:
            issues.append(
                DataIssue("supplier", record_id, f"Invalid code {row['code']!r}")
            )
            continue
        suppliers.append(Supplier(id=record_id, name=_text(row["name"]), code=code))
    return suppliers, issues


# ---------------------------------------------------------------------------
# Payment split
# ---------------------------------------------------------------------------


def check_payment_split(
    invoice: Invoice,
    tolerance: Decimal = Decimal("0.01"),
) -> Optional[DataIssue]:
    """
    Check that ``cash + upi + credit`` equals the invoice total.

    Returns
    -------
    DataIssue or None
        An issue (with ``excluded=False``) describing the mismatch, or None
        when the split is within ``tolerance`` of the total.
    """
    split = invoice.cash + invoice.upi + invoice.credit
    if abs(split - invoice.total) <= tolerance:
        return None
    return DataIssue(
        record_type="invoice",
        record_id=str(invoice.id),
        reason=(
            f"Payment split {split} (cash {invoice.cash} + upi {invoice.upi} + "
            f"credit {invoice.credit}) does not match total {invoice.total}"
        ),
        excluded=False,
    )


def apply_payment_split_policy(
    invoices: list[Invoice],
    policy: str = "advisory",
    tolerance: Decimal = Decimal("0.01"),
) -> tuple[list[Invoice], list[DataIssue]]:
    """
    Apply the configured payment split policy to decoded invoices.

    - "advisory": every invoice is kept; mismatches are reported.
    - "strict":   mismatched invoices are left out and reported as excluded.
    """
    if policy not in PAYMENT_SPLIT_POLICIES:
        raise ValueError(
            f"Unknown payment split policy: {policy!r}. "
            f"Expected one of: {', '.join(PAYMENT_SPLIT_POLICIES)}."
        )

    kept: list[Invoice] = []
    issues: list[DataIssue] = []
    for invoice in invoices:
        issue = check_payment_split(invoice, tolerance)
        if issue is None:
            kept.append(invoice)
            continue
        if policy == "strict":
            issues.append(
                DataIssue(
                    issue.record_type, issue.record_id, issue.reason, excluded=True
                )
            )
        else:
            issues.append(issue)
            kept.append(invoice)
    return kept, issues
