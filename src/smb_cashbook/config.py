# SMB Cashbook - Sales Analytics & Cashbook Ledger for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Configuration helpers for SMB Cashbook.

This module is responsible for:
- loading the application configuration from a TOML file,
- validating the values that drive the aggregators,
- exposing typed dataclasses used by the rest of the application.
"""

import tomllib
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional

from .db import DatabaseConfig
from .io import PAYMENT_SPLIT_POLICIES
from .ledger import DEFAULT_CASH_SALES_PARTY
from .metrics import to_decimal
from .profitability import DEFAULT_MARGIN_PCT

DEFAULT_CONFIG_FILE = "smb_cashbook_config.toml"
DEFAULT_DB_PATH = "data/db/smb_cashbook.sqlite"

NAME_MATCHING_MODES = ("exact", "normalized")
DISPLAY_MODES = ("table", "csv", "both")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class CashbookConfig:
    """Cashbook ledger options."""

    cash_sales_party: str = DEFAULT_CASH_SALES_PARTY


@dataclass(frozen=True)
class ProfitabilityConfig:
    """
    Profitability analysis options.

    Attributes
    ----------
    default_margin_pct:
        Margin (in percent) assumed for unmatched line items when no
        catalog product has sold with a positive margin.
    name_matching:
        "exact" (case folding only) or "normalized" (also trims and
        collapses whitespace) when joining line items to the catalog.
    """

    default_margin_pct: Decimal = DEFAULT_MARGIN_PCT
    name_matching: str = "exact"


@dataclass(frozen=True)
class InvoicesConfig:
    """How invoices whose payment split does not match their total are handled."""

    payment_split_policy: str = "advisory"
    payment_split_tolerance: Decimal = Decimal("0.01")


@dataclass(frozen=True)
class AppConfig:
    """
    Application-wide configuration for SMB Cashbook.

    This aggregates:
    - the database configuration (where bookkeeping data is stored),
    - cashbook, profitability and invoice options,
    - display options for tables and percentages,
    - the logging level used by the CLI.
    """

    database: DatabaseConfig
    cashbook: CashbookConfig
    profitability: ProfitabilityConfig
    invoices: InvoicesConfig
    display_mode: str
    decimals: int
    log_level: str


def _load_toml(path: Path) -> dict[str, Any]:
    """
    Load a TOML file and return its content as a dictionary.

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: if the TOML content cannot be parsed.
    """
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"Failed to parse TOML config file: {path}") from exc

    return data


def _section(raw: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = raw.get(name) or {}
    if not isinstance(section, Mapping):
        raise ValueError(f"Config section [{name}] must be a table.")
    return section


def _choice(value: Any, allowed: tuple[str, ...], key: str) -> str:
    text = str(value)
    if text not in allowed:
        raise ValueError(
            f"Invalid value for '{key}' in the configuration: {text!r}. "
            f"Expected one of: {', '.join(allowed)}."
        )
    return text


def _decimal(value: Any, key: str) -> Decimal:
    try:
        return to_decimal(value)
    except ValueError as exc:
        raise ValueError(
            f"Invalid value for '{key}' in the configuration. Expected a number."
        ) from exc


def _parse_profitability(section: Mapping[str, Any]) -> ProfitabilityConfig:
    margin = _decimal(
        section.get("default_margin_pct", DEFAULT_MARGIN_PCT),
        "profitability.default_margin_pct",
    )
    if not Decimal("0") <= margin < Decimal("100"):
        raise ValueError(
            "Invalid value for 'profitability.default_margin_pct': "
            "expected a percentage in [0, 100)."
        )

    name_matching = _choice(
        section.get("name_matching", "exact"),
        NAME_MATCHING_MODES,
        "profitability.name_matching",
    )
    return ProfitabilityConfig(default_margin_pct=margin, name_matching=name_matching)


def _parse_invoices(section: Mapping[str, Any]) -> InvoicesConfig:
    policy = _choice(
        section.get("payment_split_policy", "advisory"),
        PAYMENT_SPLIT_POLICIES,
        "invoices.payment_split_policy",
    )
    tolerance = _decimal(
        section.get("payment_split_tolerance", "0.01"),
        "invoices.payment_split_tolerance",
    )
    if tolerance < 0:
        raise ValueError("'invoices.payment_split_tolerance' cannot be negative.")
    return InvoicesConfig(
        payment_split_policy=policy, payment_split_tolerance=tolerance
    )


def load_app_config(config_path: Optional[str] = None) -> AppConfig:
    """
    Load the SMB Cashbook application configuration from a TOML file.

    Expected sections in the TOML file (all optional)
    ------------------------------------------------
    [database]
        engine ("sqlite") and path of the SQLite file.

    [cashbook]
        cash_sales_party: party whose vouchers form the daily cash-sales
        sub-group (default "CASH SALES").

    [profitability]
        default_margin_pct (default 20) and name_matching
        ("exact" | "normalized").

    [invoices]
        payment_split_policy ("advisory" | "strict") and
        payment_split_tolerance (default 0.01).

    [display]
        mode ("table" | "csv" | "both") and decimals (rounding of
        percentages in tables).

    [logging]
        level (DEBUG, INFO, WARNING, ...).

    All file paths are resolved relative to the directory of the TOML file.

    Returns
    -------
    AppConfig
        Parsed and validated application configuration.

    Raises
    ------
    FileNotFoundError
        If the configuration file does not exist.
    ValueError
        If a value is invalid.
    """
    if config_path is None:
        config_file = Path(DEFAULT_CONFIG_FILE).resolve()
    else:
        config_file = Path(config_path).resolve()

    raw = _load_toml(config_file)
    base_dir = config_file.parent

    # 1) Database section
    database_section = _section(raw, "database")
    db_engine = str(database_section.get("engine") or "sqlite")
    db_path_raw = database_section.get("path") or DEFAULT_DB_PATH
    db_path = (base_dir / str(db_path_raw)).resolve()
    database_config = DatabaseConfig(engine=db_engine, path=db_path)

    # 2) Cashbook section
    cashbook_section = _section(raw, "cashbook")
    cash_sales_party = str(
        cashbook_section.get("cash_sales_party") or DEFAULT_CASH_SALES_PARTY
    ).strip()
    if not cash_sales_party:
        raise ValueError("'cashbook.cash_sales_party' cannot be empty.")

    # 3) Profitability & invoices
    profitability = _parse_profitability(_section(raw, "profitability"))
    invoices = _parse_invoices(_section(raw, "invoices"))

    # 4) Display options
    display_section = _section(raw, "display")
    display_mode = _choice(
        display_section.get("mode", "table"), DISPLAY_MODES, "display.mode"
    )
    try:
        decimals = int(display_section.get("decimals", 2))
    except (TypeError, ValueError):
        decimals = 2

    # 5) Logging
    logging_section = _section(raw, "logging")
    log_level = _choice(
        str(logging_section.get("level", "WARNING")).upper(),
        LOG_LEVELS,
        "logging.level",
    )

    return AppConfig(
        database=database_config,
        cashbook=CashbookConfig(cash_sales_party=cash_sales_party),
        profitability=profitability,
        invoices=invoices,
        display_mode=display_mode,
        decimals=decimals,
        log_level=log_level,
    )
