# SMB Cashbook - Sales Analytics & Cashbook Ledger for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
SMB Cashbook
------------

A Python-based bookkeeping application for small shops. It combines a
cashbook ledger (receipt and payment vouchers with daily running balances)
and a sales dashboard (revenue, payment split, customer insights, and
product/supplier profitability with invoice drill-down).

Main capabilities:
- daily cashbook ledger with opening/closing balances,
- collapsible "CASH SALES" sub-group per day,
- sales summary (totals, payment split, top customers, top products),
- product, supplier and invoice profitability analysis,
- cost estimation for sold items missing from the product catalog,
- month-over-month product and supplier trends,
- a SQLite store behind an injectable gateway,
- a command-line interface.

SMB Cashbook separates computation (ledger, profitability, sales),
configuration (TOML), storage (gateway) and presentation (CLI), so the
aggregators stay pure and testable without a live backend.


Version: 0.2.0

Usage:
    python -m smb_cashbook.cli --help
"""

__all__ = ["ledger", "profitability", "sales", "io"]

__version__ = "0.2.0"
