"""
Product directory -- read-only lookup of a product's purchase price.

Contract:
    ProductDirectory.lookup(product_id) returns a ProductRecord or raises
    ProductNotFoundError.  The purchase price only seeds a row's unit price
    when the product is selected; it is not revalidated afterwards.

Architecture: purchasing_services. The SQLAlchemy implementation reads the
``products`` table through a session factory; the in-memory one backs
tests and callers that already hold the catalogue.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol, runtime_checkable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from purchasing_kernel.db.engine import session_scope
from purchasing_kernel.domain.money import round2
from purchasing_kernel.exceptions import PersistenceError, ProductNotFoundError
from purchasing_kernel.logging_config import get_logger
from purchasing_kernel.models.product import Product

logger = get_logger("services.product_directory")


@dataclass(frozen=True)
class ProductRecord:
    """What an invoice row needs to know about a product."""

    product_id: int
    purchase_price: Decimal
    category: str | None = None
    name: str = ""


@runtime_checkable
class ProductDirectory(Protocol):
    """Read-only product lookup."""

    def lookup(self, product_id: int) -> ProductRecord:
        """Return the product or raise ProductNotFoundError."""
        ...


class InMemoryProductDirectory:
    """Directory over a fixed set of records."""

    def __init__(self, records: Iterable[ProductRecord] = ()) -> None:
        self._records: dict[int, ProductRecord] = {}
        for record in records:
            self.add(record)

    def add(self, record: ProductRecord) -> None:
        self._records[record.product_id] = record

    def lookup(self, product_id: int) -> ProductRecord:
        try:
            return self._records[product_id]
        except KeyError:
            raise ProductNotFoundError(product_id) from None

    def __len__(self) -> int:
        return len(self._records)


class SqlAlchemyProductDirectory:
    """Directory backed by the ``products`` table."""

    def __init__(self, session_factory: sessionmaker[Session] | None = None) -> None:
        self._session_factory = session_factory

    def lookup(self, product_id: int) -> ProductRecord:
        try:
            with session_scope(self._session_factory) as session:
                product = session.get(Product, product_id)
                if product is None:
                    raise ProductNotFoundError(product_id)
                record = ProductRecord(
                    product_id=product.id,
                    purchase_price=round2(product.purchase_price),
                    category=product.category,
                    name=product.name,
                )
        except SQLAlchemyError as exc:
            logger.error("product_lookup_failed", extra={
                "product_id": product_id,
                "error": str(exc),
            })
            raise PersistenceError(f"Product lookup failed: {exc}") from exc

        logger.debug("product_lookup", extra={
            "product_id": product_id,
            "purchase_price": str(record.purchase_price),
        })
        return record
