"""ORM models for purchasing persistence."""

from purchasing_kernel.models.product import Product
from purchasing_kernel.models.purchase_invoice import (
    PurchaseInvoice,
    PurchaseInvoiceItem,
)

__all__ = [
    "Product",
    "PurchaseInvoice",
    "PurchaseInvoiceItem",
]
