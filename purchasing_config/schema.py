"""
Purchasing settings schema.

The frozen runtime view of the YAML configuration.  YAML files are parsed
into these types by the loader; nothing else in the system reads
configuration files directly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class InvoiceNumberSettings:
    """How new invoice numbers are proposed."""

    prefix: str = "INV-"
    width: int = 3
    fallback: str = "INV-001"

    def format(self, sequence: int) -> str:
        return f"{self.prefix}{sequence:0{self.width}d}"


@dataclass(frozen=True)
class DatabaseSettings:
    url: str = "sqlite://"
    echo: bool = False


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PurchasingSettings:
    """Everything the purchasing services need to be configured with."""

    currency: str = "EGP"
    sum_tolerance: Decimal = Decimal("0.01")
    minimum_items: int = 1
    invoice_number: InvoiceNumberSettings = field(default_factory=InvoiceNumberSettings)
    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    checksum: str = ""
