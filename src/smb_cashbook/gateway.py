# SMB Cashbook - Sales Analytics & Cashbook Ledger for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Backend gateway for SMB Cashbook.

Services never talk to the database directly: they receive an object that
implements ``BookkeepingGateway``. ``SQLiteGateway`` is the implementation
backed by the local SQLite store (db.py); tests can pass any object with
the same methods.

Fetch methods return raw pandas DataFrames (line items still serialized as
JSON text). Decoding into typed records is done by io.py.
"""

from __future__ import annotations

from typing import Protocol

import pandas as pd

from . import db
from .models import (
    Invoice,
    NewInvoice,
    NewProduct,
    NewVoucher,
    Product,
    Supplier,
    VoucherEntry,
    VoucherUpdate,
)


class BookkeepingGateway(Protocol):
    """Operations the services need from the bookkeeping backend."""

    def fetch_vouchers(self) -> pd.DataFrame: ...

    def insert_voucher(self, new_voucher: NewVoucher) -> VoucherEntry: ...

    def update_voucher(
        self, voucher_id: int, update: VoucherUpdate
    ) -> VoucherEntry: ...

    def delete_voucher(self, voucher_id: int) -> VoucherEntry: ...

    def fetch_invoices(self) -> pd.DataFrame: ...

    def insert_invoice(self, new_invoice: NewInvoice) -> Invoice: ...

    def fetch_products(self) -> pd.DataFrame: ...

    def fetch_suppliers(self) -> pd.DataFrame: ...

    def add_supplier(self, name: str) -> Supplier: ...

    def add_product(self, new_product: NewProduct) -> Product: ...


class SQLiteGateway:
    """BookkeepingGateway backed by the local SQLite database."""

    def __init__(self, cfg: db.DatabaseConfig) -> None:
        self.cfg = cfg
        db.init_database(cfg)

    def fetch_vouchers(self) -> pd.DataFrame:
        return db.load_vouchers(self.cfg)

    def insert_voucher(self, new_voucher: NewVoucher) -> VoucherEntry:
        return db.insert_voucher(self.cfg, new_voucher)

    def update_voucher(self, voucher_id: int, update: VoucherUpdate) -> VoucherEntry:
        return db.update_voucher(self.cfg, voucher_id, update)

    def delete_voucher(self, voucher_id: int) -> VoucherEntry:
        return db.delete_voucher(self.cfg, voucher_id)

    def fetch_invoices(self) -> pd.DataFrame:
        return db.load_invoices(self.cfg)

    def insert_invoice(self, new_invoice: NewInvoice) -> Invoice:
        return db.insert_invoice(self.cfg, new_invoice)

    def fetch_products(self) -> pd.DataFrame:
        return db.load_products(self.cfg)

    def fetch_suppliers(self) -> pd.DataFrame:
        return db.load_suppliers(self.cfg)

    def add_supplier(self, name: str) -> Supplier:
        return db.insert_supplier(self.cfg, name)

    def add_product(self, new_product: NewProduct) -> Product:
        return db.insert_product(self.cfg, new_product)
