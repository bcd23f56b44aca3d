# SMB Cashbook - Sales Analytics & Cashbook Ledger for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.


"""
Database layer for SMB Cashbook.

This module provides the low-level accessors for the SQLite database that
acts as the application's backend. It is responsible for:

- Initializing the database schema.
- Bulk-importing vouchers, invoices, products and suppliers from
  normalized DataFrames (see io.py for the CSV readers).
- Exposing CRUD operations on cashbook vouchers.
- Recording invoices, suppliers and products, including the automatic
  supplier code and product barcode sequences.
- Loading each table as a pandas DataFrame for the decoding layer.

------------------------------------------------------------------------------
Schema Overview
------------------------------------------------------------------------------

1) cashbook
   One row per receipt/payment voucher.

   - id            INTEGER PRIMARY KEY AUTOINCREMENT
   - created_at    TEXT    NOT NULL  -- voucher timestamp (ISO text)
   - party_name    TEXT    NOT NULL
   - remarks       TEXT
   - amount_cents  INTEGER NOT NULL  -- positive integer amount in cents
   - voucher_type  TEXT    NOT NULL  -- "receipt" | "payment"
   - updated_at    TEXT              -- UTC timestamp of last modification

   ``created_at`` is stored as received on import: vouchers whose timestamp
   cannot be parsed are reported by the ledger, not rejected here.

2) invoices
   - id, date (ISO text), customer_name, customer_number
   - products      TEXT    NOT NULL  -- JSON list of {name, quantity, price}
   - total_cents, cash_cents, upi_cents, credit_cents  INTEGER
   - note          TEXT

3) suppliers
   - id, name, code (INTEGER UNIQUE, displayed as 3 digits, e.g. "007")

4) products
   - id, name, cost_cents, selling_price_cents
   - supplier_id   INTEGER  -- foreign key to suppliers.id (nullable)
   - barcode       TEXT UNIQUE  -- supplier code (3 digits) + 5-digit sequence

------------------------------------------------------------------------------
SQLite Notes
------------------------------------------------------------------------------

- All bookkeeping timestamps are stored as ISO-8601 text.
- Foreign key enforcement is explicitly enabled.
- Amounts are loaded back as ``decimal.Decimal`` values.
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pandas as pd

from .io import encode_line_items
from .metrics import ZERO, cents_to_decimal, decimal_to_cents, to_decimal
from .models import (
    VOUCHER_KINDS,
    Invoice,
    NewInvoice,
    NewProduct,
    NewVoucher,
    Product,
    Supplier,
    VoucherEntry,
    VoucherUpdate,
)

logger = logging.getLogger(__name__)

MAX_SUPPLIER_CODE = 999
BARCODE_SEQUENCE_DIGITS = 5

VOUCHER_COLUMNS = ["id", "timestamp", "party_name", "remarks", "amount", "kind"]
INVOICE_COLUMNS = [
    "id",
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
PRODUCT_COLUMNS = ["id", "name", "cost", "selling_price", "supplier_id", "barcode"]
SUPPLIER_COLUMNS = ["id", "name", "code"]

# ---------------------------------------------------------------------------
# Dataclasses & errors
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseConfig:
    """
    Database configuration for SMB Cashbook.

    Attributes
    ----------
    engine:
        Database engine identifier. Only "sqlite" is supported.
    path:
        Path to the SQLite database file.
    """

    engine: str
    path: Path


@dataclass(frozen=True)
class ImportStats:
    """
    Summary of a bulk import.

    Attributes
    ----------
    rows_inserted:
        Number of rows written to the target table.
    rows_skipped:
        Number of rows rejected because a required value was invalid.
    """

    rows_inserted: int
    rows_skipped: int = 0


class RecordNotFoundError(LookupError):
    """Raised when a voucher, supplier or product id does not exist."""


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _ensure_sqlite(cfg: DatabaseConfig) -> None:
    """Raise if the configuration does not refer to a supported engine."""
    if cfg.engine.lower() != "sqlite":
        msg = (
            f"Unsupported database engine: {cfg.engine!r}. "
            "Only 'sqlite' is supported for now."
        )
        raise ValueError(msg)


def _connect(cfg: DatabaseConfig) -> sqlite3.Connection:
    """
    Open a SQLite connection with foreign keys enabled.

    The caller is responsible for closing the connection.
    """
    _ensure_sqlite(cfg)
    conn = sqlite3.connect(cfg.path)
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


def _create_schema_if_needed(conn: sqlite3.Connection) -> None:
    """Create tables and indexes if they do not exist yet (idempotent)."""

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS cashbook (
            id            INTEGER PRIMARY KEY AUTOINCREMENT,
            created_at    TEXT    NOT NULL,
            party_name    TEXT    NOT NULL,
            remarks       TEXT,
            amount_cents  INTEGER NOT NULL CHECK (amount_cents >= 1),
            voucher_type  TEXT    NOT NULL
                          CHECK (voucher_type IN ('receipt', 'payment')),
            updated_at    TEXT
        );
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS invoices (
            id               INTEGER PRIMARY KEY AUTOINCREMENT,
            date             TEXT    NOT NULL,
            customer_name    TEXT    NOT NULL DEFAULT '',
            customer_number  TEXT    NOT NULL DEFAULT '',
            products         TEXT    NOT NULL,  -- JSON list of line items
            total_cents      INTEGER NOT NULL,
            cash_cents       INTEGER NOT NULL DEFAULT 0,
            upi_cents        INTEGER NOT NULL DEFAULT 0,
            credit_cents     INTEGER NOT NULL DEFAULT 0,
            note             TEXT    NOT NULL DEFAULT ''
        );
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS suppliers (
            id    INTEGER PRIMARY KEY AUTOINCREMENT,
            name  TEXT    NOT NULL,
            code  INTEGER NOT NULL UNIQUE
        );
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS products (
            id                   INTEGER PRIMARY KEY AUTOINCREMENT,
            name                 TEXT    NOT NULL,
            cost_cents           INTEGER NOT NULL,
            selling_price_cents  INTEGER NOT NULL,
            supplier_id          INTEGER,
            barcode              TEXT UNIQUE,

            FOREIGN KEY (supplier_id) REFERENCES suppliers(id)
        );
        """
    )

    conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_cashbook_created ON cashbook(created_at);"
    )
    conn.execute("CREATE INDEX IF NOT EXISTS idx_invoices_date ON invoices(date);")

    conn.commit()


def _now_utc_iso() -> str:
    """Return the current UTC datetime as ISO string."""
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def _text(value: Any) -> str:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return ""
    return str(value).strip()


def _optional_text(value: Any) -> str | None:
    return _text(value) or None


def _timestamp_text(value: Any) -> str:
    if isinstance(value, datetime):
        return value.isoformat(timespec="seconds")
    return _text(value)


def _amount_cents(value: Any, default: Any = None) -> int:
    """Convert a raw amount to cents; empty values fall back to ``default``."""
    if _text(value) == "" and default is not None:
        value = default
    return decimal_to_cents(to_decimal(value))


def format_supplier_code(code: int) -> str:
    """Display form of a supplier code (3 digits, zero-padded)."""
    return f"{int(code):03d}"


def _next_supplier_code(cur: sqlite3.Cursor) -> int:
    cur.execute("SELECT MAX(code) FROM suppliers;")
    (last,) = cur.fetchone()
    code = 1 if last is None else int(last) + 1
    if code > MAX_SUPPLIER_CODE:
        raise ValueError(
            f"Supplier codes are exhausted (maximum is {MAX_SUPPLIER_CODE})."
        )
    return code


def _next_barcode(cur: sqlite3.Cursor, supplier_code: int) -> str:
    """
    Next barcode for a supplier: its 3-digit code followed by the next
    5-digit product sequence (00001 for the supplier's first product).
    """
    prefix = format_supplier_code(supplier_code)
    cur.execute(
        """
        SELECT barcode FROM products
         WHERE barcode LIKE ? AND length(barcode) = ?
         ORDER BY barcode DESC
         LIMIT 1;
        """,
        (f"{prefix}%", len(prefix) + BARCODE_SEQUENCE_DIGITS),
    )
    row = cur.fetchone()
    sequence = 1 if row is None else int(row[0][-BARCODE_SEQUENCE_DIGITS:]) + 1
    return f"{prefix}{sequence:0{BARCODE_SEQUENCE_DIGITS}d}"


def _fetch_all(cfg: DatabaseConfig, query: str, params: tuple = ()) -> list[tuple]:
    init_database(cfg)
    conn = _connect(cfg)
    try:
        cur = conn.cursor()
        cur.execute(query, params)
        return cur.fetchall()
    finally:
        conn.close()


def _row_to_voucher(row: tuple) -> VoucherEntry:
    (entry_id, created_at, party_name, remarks, amount_cents, voucher_type) = row
    return VoucherEntry(
        id=int(entry_id),
        timestamp=created_at,
        party_name=party_name,
        amount=cents_to_decimal(amount_cents),
        kind=voucher_type,
        remarks=remarks,
    )


# ---------------------------------------------------------------------------
# Public API: schema
# ---------------------------------------------------------------------------


def init_database(cfg: DatabaseConfig) -> None:
    """
    Initialize the database schema if needed.

    - Creates the SQLite file (and its parent directory) if needed.
    - Creates tables and indexes if they are missing.
    - This function is idempotent: calling it multiple times is safe.

    Raises
    ------
    ValueError
        If cfg.engine is not supported.
    sqlite3.Error
        If schema creation fails.
    """
    cfg.path.parent.mkdir(parents=True, exist_ok=True)

    conn = _connect(cfg)
    try:
        _create_schema_if_needed(conn)
    finally:
        conn.close()


# ---------------------------------------------------------------------------
# Cashbook vouchers
# ---------------------------------------------------------------------------


def load_vouchers(cfg: DatabaseConfig) -> pd.DataFrame:
    """
    Load every cashbook voucher.

    Returns
    -------
    pandas.DataFrame
        Columns: id, timestamp (text as stored), party_name, remarks,
        amount (Decimal), kind. Empty DataFrame with the same columns if
        the cashbook is empty.
    """
    rows = _fetch_all(
        cfg,
        """
        SELECT id, created_at, party_name, remarks, amount_cents, voucher_type
          FROM cashbook
         ORDER BY id;
        """,
    )
    if not rows:
        return pd.DataFrame(columns=VOUCHER_COLUMNS)

    df = pd.DataFrame(
        rows,
        columns=["id", "timestamp", "party_name", "remarks", "amount_cents", "kind"],
    )
    df["amount"] = [cents_to_decimal(c) for c in df["amount_cents"]]
    return df[VOUCHER_COLUMNS]


def get_voucher_by_id(cfg: DatabaseConfig, voucher_id: int) -> VoucherEntry | None:
    """Load a single voucher by id, or None if it does not exist."""
    rows = _fetch_all(
        cfg,
        """
        SELECT id, created_at, party_name, remarks, amount_cents, voucher_type
          FROM cashbook
         WHERE id = ?;
        """,
        (voucher_id,),
    )
    if not rows:
        return None
    return _row_to_voucher(rows[0])


def insert_voucher(cfg: DatabaseConfig, new_voucher: NewVoucher) -> VoucherEntry:
    """
    Insert a new voucher.

    ``new_voucher.timestamp`` defaults to the current local time.
    """
    init_database(cfg)

    timestamp = new_voucher.timestamp or datetime.now()

    conn = _connect(cfg)
    try:
        cur = conn.cursor()
        cur.execute(
            """
            INSERT INTO cashbook (
                created_at, party_name, remarks, amount_cents, voucher_type
            )
            VALUES (?, ?, ?, ?, ?);
            """,
            (
                _timestamp_text(timestamp),
                new_voucher.party_name.strip(),
                new_voucher.remarks,
                decimal_to_cents(new_voucher.amount),
                new_voucher.kind,
            ),
        )
        voucher_id = cur.lastrowid
        conn.commit()
    finally:
        conn.close()

    result = get_voucher_by_id(cfg, voucher_id)
    if result is None:
        msg = f"Voucher #{voucher_id} was just inserted but could not be reloaded."
        raise RuntimeError(msg)
    return result


def update_voucher(
    cfg: DatabaseConfig,
    voucher_id: int,
    update: VoucherUpdate,
) -> VoucherEntry:
    """
    Apply a partial update to an existing voucher.

    Raises
    ------
    ValueError
        If no fields are provided for update.
    RecordNotFoundError
        If the voucher does not exist.
    """
    init_database(cfg)

    fields: list[str] = []
    params: list[object] = []

    if update.party_name is not None:
        fields.append("party_name = ?")
        params.append(update.party_name.strip())
    if update.amount is not None:
        fields.append("amount_cents = ?")
        params.append(decimal_to_cents(update.amount))
    if update.kind is not None:
        fields.append("voucher_type = ?")
        params.append(update.kind)
    if update.remarks is not None:
        fields.append("remarks = ?")
        params.append(update.remarks)
    if update.timestamp is not None:
        fields.append("created_at = ?")
        params.append(_timestamp_text(update.timestamp))

    if not fields:
        raise ValueError("No fields to update in VoucherUpdate.")

    fields.append("updated_at = ?")
    params.append(_now_utc_iso())
    params.append(voucher_id)

    conn = _connect(cfg)
    try:
        cur = conn.cursor()
        cur.execute(
            f"""
            UPDATE cashbook
               SET {", ".join(fields)}
             WHERE id = ?;
            """,
            params,
        )
        updated = cur.rowcount
        conn.commit()
    finally:
        conn.close()

    if updated == 0:
        raise RecordNotFoundError(f"Voucher #{voucher_id} does not exist.")

    result = get_voucher_by_id(cfg, voucher_id)
    if result is None:
        msg = f"Voucher #{voucher_id} was updated but could not be reloaded."
        raise RuntimeError(msg)
    return result


def delete_voucher(cfg: DatabaseConfig, voucher_id: int) -> VoucherEntry:
    """
    Permanently delete a voucher.

    Returns
    -------
    VoucherEntry
        The voucher as it was before deletion.

    Raises
    ------
    RecordNotFoundError
        If the voucher does not exist.
    """
    existing = get_voucher_by_id(cfg, voucher_id)
    if existing is None:
        raise RecordNotFoundError(f"Voucher #{voucher_id} does not exist.")

    conn = _connect(cfg)
    try:
        conn.execute("DELETE FROM cashbook WHERE id = ?;", (voucher_id,))
        conn.commit()
    finally:
        conn.close()

    return existing


def import_vouchers(df: pd.DataFrame, cfg: DatabaseConfig) -> ImportStats:
    """
    Import vouchers from a normalized DataFrame.

    Parameters
    ----------
    df:
        Columns: timestamp, party_name, remarks, amount, kind
        (see ``io.read_vouchers_csv``).

    Behavior
    --------
    - Timestamps are stored as text without validation.
    - Rows with a missing party, a non-positive or non-numeric amount, or an
      unknown kind are skipped and counted in ``rows_skipped``.
    """
    init_database(cfg)

    inserted = 0
    skipped = 0
    conn = _connect(cfg)
    try:
        cur = conn.cursor()
        for _, row in df.iterrows():
            party = _text(row["party_name"])
            kind = _text(row["kind"]).lower()
            try:
                cents = _amount_cents(row["amount"])
            except ValueError:
                cents = 0
            if not party or kind not in VOUCHER_KINDS or cents < 1:
                skipped += 1
                continue

            cur.execute(
                """
                INSERT INTO cashbook (
                    created_at, party_name, remarks, amount_cents, voucher_type
                )
                VALUES (?, ?, ?, ?, ?);
                """,
                (
                    _timestamp_text(row["timestamp"]),
                    party,
                    _optional_text(row.get("remarks")),
                    cents,
                    kind,
                ),
            )
            inserted += 1
        conn.commit()
    finally:
        conn.close()

    if skipped:
        logger.warning("%d voucher row(s) skipped during import.", skipped)
    return ImportStats(rows_inserted=inserted, rows_skipped=skipped)


# ---------------------------------------------------------------------------
# Invoices
# ---------------------------------------------------------------------------


def load_invoices(cfg: DatabaseConfig) -> pd.DataFrame:
    """
    Load every invoice as raw rows.

    The ``products`` column keeps the stored JSON text; decoding (and
    reporting of malformed payloads) happens in ``io.decode_invoices``.
    Monetary columns are Decimals.
    """
    rows = _fetch_all(
        cfg,
        """
        SELECT id, date, customer_name, customer_number, products,
               total_cents, cash_cents, upi_cents, credit_cents, note
          FROM invoices
         ORDER BY date, id;
        """,
    )
    if not rows:
        return pd.DataFrame(columns=INVOICE_COLUMNS)

    df = pd.DataFrame(rows, columns=INVOICE_COLUMNS)
    for col in ("total", "cash", "upi", "credit"):
        df[col] = [cents_to_decimal(c) for c in df[col]]
    return df


def insert_invoice(cfg: DatabaseConfig, new_invoice: NewInvoice) -> Invoice:
    """Record an invoice and return it with its assigned id."""
    init_database(cfg)

    total = new_invoice.total
    if total is None:
        total = sum((item.revenue for item in new_invoice.line_items), ZERO)

    conn = _connect(cfg)
    try:
        cur = conn.cursor()
        cur.execute(
            """
            INSERT INTO invoices (
                date, customer_name, customer_number, products,
                total_cents, cash_cents, upi_cents, credit_cents, note
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?);
            """,
            (
                _timestamp_text(new_invoice.date),
                new_invoice.customer_name,
                new_invoice.customer_number,
                encode_line_items(new_invoice.line_items),
                decimal_to_cents(total),
                decimal_to_cents(new_invoice.cash),
                decimal_to_cents(new_invoice.upi),
                decimal_to_cents(new_invoice.credit),
                new_invoice.note,
            ),
        )
        invoice_id = cur.lastrowid
        conn.commit()
    finally:
        conn.close()

    return Invoice(
        id=int(invoice_id),
        date=new_invoice.date,
        customer_name=new_invoice.customer_name,
        customer_number=new_invoice.customer_number,
        line_items=tuple(new_invoice.line_items),
        total=cents_to_decimal(decimal_to_cents(total)),
        cash=new_invoice.cash,
        upi=new_invoice.upi,
        credit=new_invoice.credit,
        note=new_invoice.note,
    )


def import_invoices(df: pd.DataFrame, cfg: DatabaseConfig) -> ImportStats:
    """
    Import invoices from a normalized DataFrame (see ``io.read_invoices_csv``).

    The ``products`` JSON text and the date are stored as received. Rows
    whose monetary columns are not numeric are skipped.
    """
    init_database(cfg)

    inserted = 0
    skipped = 0
    conn = _connect(cfg)
    try:
        cur = conn.cursor()
        for _, row in df.iterrows():
            try:
                amounts = [
                    _amount_cents(row["total"]),
                    _amount_cents(row.get("cash"), default=0),
                    _amount_cents(row.get("upi"), default=0),
                    _amount_cents(row.get("credit"), default=0),
                ]
            except ValueError:
                skipped += 1
                continue

            cur.execute(
                """
                INSERT INTO invoices (
                    date, customer_name, customer_number, products,
                    total_cents, cash_cents, upi_cents, credit_cents, note
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?);
                """,
                (
                    _timestamp_text(row["date"]),
                    _text(row["customer_name"]),
                    _text(row.get("customer_number")),
                    _text(row["products"]),
                    *amounts,
                    _text(row.get("note")),
                ),
            )
            inserted += 1
        conn.commit()
    finally:
        conn.close()

    if skipped:
        logger.warning("%d invoice row(s) skipped during import.", skipped)
    return ImportStats(rows_inserted=inserted, rows_skipped=skipped)


# ---------------------------------------------------------------------------
# Suppliers & products
# ---------------------------------------------------------------------------


def load_suppliers(cfg: DatabaseConfig) -> pd.DataFrame:
    """Load suppliers (columns: id, name, code), ordered by code."""
    rows = _fetch_all(cfg, "SELECT id, name, code FROM suppliers ORDER BY code;")
    return pd.DataFrame(rows, columns=SUPPLIER_COLUMNS)


def load_products(cfg: DatabaseConfig) -> pd.DataFrame:
    """
    Load catalog products.

    Columns: id, name, cost (Decimal), selling_price (Decimal),
    supplier_id (text or None), barcode.
    """
    rows = _fetch_all(
        cfg,
        """
        SELECT id, name, cost_cents, selling_price_cents, supplier_id, barcode
          FROM products
         ORDER BY id;
        """,
    )
    if not rows:
        return pd.DataFrame(columns=PRODUCT_COLUMNS)

    df = pd.DataFrame(rows, columns=PRODUCT_COLUMNS)
    # Nullable integer ids would otherwise come back as floats, and a plain
    # list of str/None would be inferred as a string dtype holding NaN.
    df["supplier_id"] = pd.Series(
        [None if r[4] is None else str(r[4]) for r in rows],
        index=df.index,
        dtype=object,
    )
    df["cost"] = [cents_to_decimal(c) for c in df["cost"]]
    df["selling_price"] = [cents_to_decimal(c) for c in df["selling_price"]]
    return df


def insert_supplier(cfg: DatabaseConfig, name: str) -> Supplier:
    """
    Add a supplier with the next available code (last code + 1, from 1).

    Raises
    ------
    ValueError
        If the name is empty or the 3-digit code range is exhausted.
    """
    clean_name = (name or "").strip()
    if not clean_name:
        raise ValueError("Supplier name must not be empty.")

    init_database(cfg)
    conn = _connect(cfg)
    try:
        cur = conn.cursor()
        code = _next_supplier_code(cur)
        cur.execute(
            "INSERT INTO suppliers (name, code) VALUES (?, ?);",
            (clean_name, code),
        )
        supplier_id = cur.lastrowid
        conn.commit()
    finally:
        conn.close()

    logger.info(
        "Supplier %r added with code %s.", clean_name, format_supplier_code(code)
    )
    return Supplier(id=str(supplier_id), name=clean_name, code=code)


def insert_product(cfg: DatabaseConfig, new_product: NewProduct) -> Product:
    """
    Add a catalog product.

    When a supplier is given, the product receives the supplier's next
    barcode (see ``_next_barcode``); otherwise it has no barcode.

    Raises
    ------
    RecordNotFoundError
        If ``supplier_id`` does not reference an existing supplier.
    """
    init_database(cfg)

    conn = _connect(cfg)
    try:
        cur = conn.cursor()
        barcode = None
        supplier_id = None
        if new_product.supplier_id is not None:
            supplier_id = int(new_product.supplier_id)
            cur.execute("SELECT code FROM suppliers WHERE id = ?;", (supplier_id,))
            row = cur.fetchone()
            if row is None:
                raise RecordNotFoundError(f"Supplier #{supplier_id} does not exist.")
            barcode = _next_barcode(cur, int(row[0]))

        cur.execute(
            """
            INSERT INTO products (
                name, cost_cents, selling_price_cents, supplier_id, barcode
            )
            VALUES (?, ?, ?, ?, ?);
            """,
            (
                new_product.name.strip(),
                decimal_to_cents(new_product.cost),
                decimal_to_cents(new_product.selling_price),
                supplier_id,
                barcode,
            ),
        )
        product_id = cur.lastrowid
        conn.commit()
    finally:
        conn.close()

    return Product(
        id=str(product_id),
        name=new_product.name.strip(),
        cost=cents_to_decimal(decimal_to_cents(new_product.cost)),
        selling_price=cents_to_decimal(decimal_to_cents(new_product.selling_price)),
        supplier_id=None if supplier_id is None else str(supplier_id),
        barcode=barcode,
    )


def import_suppliers(df: pd.DataFrame, cfg: DatabaseConfig) -> ImportStats:
    """
    Import suppliers (columns: name, code).

    Rows with an empty name, a non-integer code or a code that already
    exists are skipped.
    """
    init_database(cfg)

    inserted = 0
    skipped = 0
    conn = _connect(cfg)
    try:
        cur = conn.cursor()
        for _, row in df.iterrows():
            name = _text(row["name"])
            try:
                code = int(_text(row["code"]))
            except ValueError:
                skipped += 1
                continue
            if not name or not 1 <= code <= MAX_SUPPLIER_CODE:
                skipped += 1
                continue
            cur.execute(
                "INSERT OR IGNORE INTO suppliers (name, code) VALUES (?, ?);",
                (name, code),
            )
            if cur.rowcount:
                inserted += 1
            else:
                skipped += 1
        conn.commit()
    finally:
        conn.close()

    return ImportStats(rows_inserted=inserted, rows_skipped=skipped)


def import_products(df: pd.DataFrame, cfg: DatabaseConfig) -> ImportStats:
    """
    Import catalog products (columns: name, cost, selling_price,
    supplier_id, barcode).

    A missing barcode is assigned from the supplier's sequence when the
    supplier is known. Rows with an empty name, non-numeric prices, an
    unknown supplier or a barcode already in use are skipped.
    """
    init_database(cfg)

    inserted = 0
    skipped = 0
    conn = _connect(cfg)
    try:
        cur = conn.cursor()
        for _, row in df.iterrows():
            name = _text(row["name"])
            try:
                cost_cents = _amount_cents(row["cost"])
                price_cents = _amount_cents(row["selling_price"])
                raw_supplier = _text(row.get("supplier_id"))
                supplier_id = int(raw_supplier) if raw_supplier else None
            except ValueError:
                skipped += 1
                continue
            if not name:
                skipped += 1
                continue

            barcode = _optional_text(row.get("barcode"))
            if supplier_id is not None:
                cur.execute("SELECT code FROM suppliers WHERE id = ?;", (supplier_id,))
                found = cur.fetchone()
                if found is None:
                    skipped += 1
                    continue
                if barcode is None:
                    barcode = _next_barcode(cur, int(found[0]))

            try:
                cur.execute(
                    """
                    INSERT INTO products (
                        name, cost_cents, selling_price_cents, supplier_id, barcode
                    )
                    VALUES (?, ?, ?, ?, ?);
                    """,
                    (name, cost_cents, price_cents, supplier_id, barcode),
                )
            except sqlite3.IntegrityError:
                skipped += 1
                continue
            inserted += 1
        conn.commit()
    finally:
        conn.close()

    if skipped:
        logger.warning("%d product row(s) skipped during import.", skipped)
    return ImportStats(rows_inserted=inserted, rows_skipped=skipped)
