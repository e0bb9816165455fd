"""
purchasing_config -- single public entrypoint for purchasing settings.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration files
    or environment variables directly.

Architecture position:
    Configuration -- sits above ``purchasing_kernel`` and below
    ``purchasing_services``.  The kernel and engines never import from
    ``purchasing_config``; services receive settings as arguments.

Failure modes:
    - ``FileNotFoundError`` -- the requested settings file does not exist.
    - ``yaml.YAMLError`` -- the file is not valid YAML.
    - ``ConfigError`` -- a value is present but invalid.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``PURCHASING_CONFIG_TRACE`` log entry with the source path and checksum.
"""

from __future__ import annotations

from pathlib import Path

from purchasing_config.loader import load_settings
from purchasing_config.schema import (
    DatabaseSettings,
    InvoiceNumberSettings,
    LoggingSettings,
    PurchasingSettings,
)
from purchasing_kernel.db.engine import create_tables, init_engine_from_url
from purchasing_kernel.logging_config import configure_logging, get_logger

_logger = get_logger("config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_config(config_path: Path | str | None = None) -> PurchasingSettings:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: YAML settings file; the packaged defaults when None.
    """
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    settings = load_settings(path)
    _logger.info(
        "PURCHASING_CONFIG_TRACE",
        extra={
            "trace_type": "PURCHASING_CONFIG_TRACE",
            "config_path": str(path),
            "checksum": settings.checksum,
            "currency": settings.currency,
        },
    )
    return settings


def bootstrap(settings: PurchasingSettings) -> None:
    """Apply the logging and database sections of ``settings``.

    Installs the JSON log handler at the configured level, binds the engine
    to ``database.url`` and creates any missing purchasing tables.
    """
    configure_logging(level=settings.logging.level)
    init_engine_from_url(settings.database.url, echo=settings.database.echo)
    create_tables()


__all__ = [
    "DEFAULT_CONFIG_PATH",
    "DatabaseSettings",
    "InvoiceNumberSettings",
    "LoggingSettings",
    "PurchasingSettings",
    "bootstrap",
    "get_active_config",
]
