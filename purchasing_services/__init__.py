"""
purchasing_services -- Stateful orchestration over the purchasing engines.

Responsibility:
    Turns user edits into reconciled draft snapshots, owns edit sessions,
    resolves products and hands validated invoices to storage.

Architecture position:
    Services -- may import purchasing_kernel, purchasing_engines and
    purchasing_config.
"""

from purchasing_services.edit_coordinator import (
    EditAction,
    EditCoordinator,
    GlobalPaidChanged,
    HeaderChanged,
    ItemAdded,
    ItemFieldChanged,
    ItemPaidChanged,
    ItemRemoved,
    ProductSelected,
    Reconciliation,
    ResetPaid,
    open_draft,
    reconcile,
)
from purchasing_services.edit_session import EditSession, SessionState
from purchasing_services.persistence import (
    InvoicePayload,
    InvoiceStore,
    ItemPayload,
    SqlAlchemyInvoiceStore,
    build_payload,
)
from purchasing_services.product_directory import (
    InMemoryProductDirectory,
    ProductDirectory,
    ProductRecord,
    SqlAlchemyProductDirectory,
)
from purchasing_services.submission import SubmissionResult, SubmissionService

__all__ = [
    "EditAction",
    "EditCoordinator",
    "GlobalPaidChanged",
    "HeaderChanged",
    "ItemAdded",
    "ItemFieldChanged",
    "ItemPaidChanged",
    "ItemRemoved",
    "ProductSelected",
    "Reconciliation",
    "ResetPaid",
    "open_draft",
    "reconcile",
    "EditSession",
    "SessionState",
    "InvoicePayload",
    "InvoiceStore",
    "ItemPayload",
    "SqlAlchemyInvoiceStore",
    "build_payload",
    "InMemoryProductDirectory",
    "ProductDirectory",
    "ProductRecord",
    "SqlAlchemyProductDirectory",
    "SubmissionResult",
    "SubmissionService",
]
