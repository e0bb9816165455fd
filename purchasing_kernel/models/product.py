"""
Module: purchasing_kernel.models.product
Responsibility: ORM persistence for the product catalogue rows the product
    directory reads when a product is selected on an invoice line.
Architecture position: Kernel > Models.  May import from db/base.py only.

Audit relevance:
    purchase_price only seeds a line's unit price at selection time; later
    catalogue changes never rewrite existing invoice lines.
"""

from decimal import Decimal

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column

from purchasing_kernel.db.base import TrackedBase


class Product(TrackedBase):
    """
    A purchasable product.

    Guarantees:
        - purchase_price is stored with 2 decimal places.

    Non-goals:
        - Stock levels and sale prices belong to other parts of the
          back office and are not modelled here.
    """

    __tablename__ = "products"

    __table_args__ = (
        Index("idx_product_category", "category"),
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    purchase_price: Mapped[Decimal] = mapped_column(
        nullable=False,
        default=Decimal("0.00"),
    )

    # Category label (the category table itself is an outer concern)
    category: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<Product {self.id} {self.name!r} purchase_price={self.purchase_price}>"
