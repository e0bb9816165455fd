"""
Pytest fixtures for the purchasing test suite.

Provides:
- Structured logging configured once per session, context cleared per test
- Captured purchasing log records as parsed JSON dicts
- An in-memory SQLite database with the purchasing tables
- Draft and line item builders
"""

import json
import logging
from datetime import date
from decimal import Decimal
from io import StringIO

import pytest

from purchasing_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from purchasing_kernel.domain.draft import InvoiceDraft, LineItem
from purchasing_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture purchasing logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            distribute_global_paid(Decimal("90"), items)
            logs = captured_logs()
            assert any(r["message"] == "allocation_global_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("purchasing")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def session_factory():
    """Fresh in-memory SQLite database with all purchasing tables."""
    init_engine_from_url("sqlite://")
    create_tables()
    yield get_session_factory()
    drop_tables()
    reset_engine()


# =============================================================================
# Builders
# =============================================================================


def make_item(
    total: str | int = "0",
    paid: str | int = "0",
    product_id: int = 1,
    **overrides,
) -> LineItem:
    """One-unit row whose unit price equals ``total``."""
    values = dict(
        product_id=product_id,
        quantity=1,
        unit_price=Decimal(str(total)),
        number_of_units=1,
        amount_paid=Decimal(str(paid)),
    )
    values.update(overrides)
    return LineItem(**values)


def make_draft(*items: LineItem, amount_paid: str | None = None, **overrides) -> InvoiceDraft:
    """Complete draft; invoice paid defaults to the sum of the rows."""
    paid = (
        Decimal(amount_paid)
        if amount_paid is not None
        else sum((item.amount_paid for item in items), Decimal("0.00"))
    )
    values = dict(
        invoice_number="INV-001",
        supplier_id=7,
        date=date(2024, 5, 1),
        amount_paid=paid,
        items=items,
    )
    values.update(overrides)
    return InvoiceDraft(**values)
