# SMB Cashbook - Sales Analytics & Cashbook Ledger for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Typed records shared by the aggregators, the store and the CLI.

Records coming from the store are decoded at the boundary (see io.py) into
the dataclasses below. The aggregators only ever receive these typed
records, never raw rows or JSON payloads.

Monetary values are ``decimal.Decimal`` so that balance identities hold
exactly. The store keeps amounts as integer cents.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Literal, Union

VoucherKind = Literal["receipt", "payment"]
"""
Kind of a cashbook voucher.

Values
------
- "receipt" : money received (increases the cash balance).
- "payment" : money paid out (decreases the cash balance).
"""

VOUCHER_KINDS: tuple[str, ...] = ("receipt", "payment")

Timestamp = Union[datetime, date, str]


@dataclass(frozen=True)
class VoucherEntry:
    """
    A single cashbook voucher as fetched from the store.

    ``timestamp`` is kept as received: the ledger aggregator resolves it to
    a calendar day and reports entries whose timestamp cannot be parsed.
    """

    id: int
    timestamp: Timestamp
    party_name: str
    amount: Decimal
    kind: str
    remarks: str | None = None


@dataclass(frozen=True)
class NewVoucher:
    """Data required to create a voucher. ``timestamp`` defaults to now."""

    party_name: str
    amount: Decimal
    kind: str
    remarks: str | None = None
    timestamp: datetime | None = None


@dataclass(frozen=True)
class VoucherUpdate:
    """
    Fields that can be corrected on an existing voucher.

    Only non-None values are applied.
    """

    party_name: str | None = None
    amount: Decimal | None = None
    kind: str | None = None
    remarks: str | None = None
    timestamp: datetime | None = None


@dataclass(frozen=True)
class LineItem:
    """One sold line on an invoice."""

    name: str
    quantity: Decimal
    price: Decimal

    @property
    def revenue(self) -> Decimal:
        return self.price * self.quantity


@dataclass(frozen=True)
class Invoice:
    """
    A sales invoice with its decoded line items.

    ``cash + upi + credit`` is expected to equal ``total``; see
    ``io.check_payment_split``.
    """

    id: int
    date: datetime
    customer_name: str
    customer_number: str
    line_items: tuple[LineItem, ...]
    total: Decimal
    cash: Decimal = Decimal("0")
    upi: Decimal = Decimal("0")
    credit: Decimal = Decimal("0")
    note: str = ""


@dataclass(frozen=True)
class Product:
    """Catalog product. ``name`` is the join key to invoice line items."""

    id: str
    name: str
    cost: Decimal
    selling_price: Decimal
    supplier_id: str | None = None
    barcode: str | None = None


@dataclass(frozen=True)
class Supplier:
    """Supplier of catalog products. ``code`` prefixes product barcodes."""

    id: str
    name: str
    code: int


@dataclass(frozen=True)
class DataIssue:
    """
    Data-quality warning about a record that was skipped or is suspicious.

    Attributes
    ----------
    record_type:
        "voucher", "invoice", "product" or "supplier".
    record_id:
        Identifier of the offending record (as a string), or "" if unknown.
    reason:
        Human-readable description of the problem.
    excluded:
        True when the record was left out of the aggregation.
    """

    record_type: str
    record_id: str
    reason: str
    excluded: bool = True


@dataclass(frozen=True)
class NewInvoice:
    """
    Data required to record an invoice.

    ``total`` defaults to the sum of the line items' revenue.
    """

    date: datetime
    customer_name: str
    line_items: tuple[LineItem, ...]
    customer_number: str = ""
    total: Decimal | None = None
    cash: Decimal = Decimal("0")
    upi: Decimal = Decimal("0")
    credit: Decimal = Decimal("0")
    note: str = ""


@dataclass(frozen=True)
class NewProduct:
    """Data required to add a catalog product (the store assigns the barcode)."""

    name: str
    cost: Decimal
    selling_price: Decimal
    supplier_id: str | None = None
