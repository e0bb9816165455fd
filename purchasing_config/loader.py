"""
Configuration Loader (``purchasing_config.loader``).

Responsibility
--------------
Loads a YAML settings file and parses it into the frozen
``purchasing_config.schema`` dataclasses.  Callers go through
``purchasing_config.get_active_config()``; this module is its
implementation.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py``.
* Absent keys take the schema defaults; present keys are validated and a
  bad value raises ``ConfigError`` naming the key.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the raw
  document for configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Invalid values  -> ``ConfigError``.
"""

from __future__ import annotations

import hashlib
import json
import logging
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml

from purchasing_config.schema import (
    DatabaseSettings,
    InvoiceNumberSettings,
    LoggingSettings,
    PurchasingSettings,
)
from purchasing_kernel.domain.money import to_decimal
from purchasing_kernel.exceptions import ConfigError


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ConfigError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigError("<root>", "document must be a mapping")
    return data


def compute_checksum(data: dict[str, Any]) -> str:
    """Deterministic SHA-256 of a parsed document (sorted keys)."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def _section(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise ConfigError(key, "must be a mapping")
    return value


def _positive_int(value: Any, key: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigError(key, f"must be a positive integer, got {value!r}")
    return value


def _tolerance(value: Any) -> Decimal:
    amount = to_decimal(value)
    if amount is None or amount < 0:
        raise ConfigError("sum_tolerance", f"must be a non-negative number, got {value!r}")
    return amount


def _level(value: Any) -> str:
    level = str(value).upper()
    if level not in logging.getLevelNamesMapping():
        raise ConfigError("logging.level", f"unknown level {value!r}")
    return level


def parse_invoice_number(data: dict[str, Any]) -> InvoiceNumberSettings:
    defaults = InvoiceNumberSettings()
    return InvoiceNumberSettings(
        prefix=str(data.get("prefix", defaults.prefix)),
        width=_positive_int(data.get("width", defaults.width), "invoice_number.width"),
        fallback=str(data.get("fallback", defaults.fallback)),
    )


def parse_database(data: dict[str, Any]) -> DatabaseSettings:
    defaults = DatabaseSettings()
    return DatabaseSettings(
        url=str(data.get("url", defaults.url)),
        echo=bool(data.get("echo", defaults.echo)),
    )


def parse_settings(data: dict[str, Any]) -> PurchasingSettings:
    """
    Parse a ``PurchasingSettings`` from a dict.

    Raises:
        ConfigError: on any invalid value.
    """
    defaults = PurchasingSettings()
    currency = str(data.get("currency", defaults.currency)).strip().upper()
    if len(currency) != 3 or not currency.isalpha():
        raise ConfigError("currency", f"must be a 3-letter code, got {currency!r}")

    items = _section(data, "items")
    logging_section = _section(data, "logging")

    return PurchasingSettings(
        currency=currency,
        sum_tolerance=_tolerance(data.get("sum_tolerance", defaults.sum_tolerance)),
        minimum_items=_positive_int(
            items.get("minimum", defaults.minimum_items), "items.minimum"
        ),
        invoice_number=parse_invoice_number(_section(data, "invoice_number")),
        database=parse_database(_section(data, "database")),
        logging=LoggingSettings(
            level=_level(logging_section.get("level", defaults.logging.level)),
        ),
        checksum=compute_checksum(data),
    )


def load_settings(path: Path) -> PurchasingSettings:
    """Load and parse one settings file."""
    return parse_settings(load_yaml_file(path))
