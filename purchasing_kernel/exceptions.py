"""
Typed exception hierarchy for purchase-invoice drafting.

Every error has a typed class (catch by type, not message), a ``code``
class attribute (machine-readable, API-safe) and structured attributes
(not just a message string).

    PurchasingError (base)
    |
    +-- DraftError
    |   +-- ItemIndexError
    |   +-- LastItemRemovalError
    |   +-- UnknownFieldError
    |
    +-- SessionError
    |   +-- ReentrantEditError
    |   +-- SessionClosedError
    |
    +-- ProductError
    |   +-- ProductNotFoundError
    |
    +-- PersistenceError
    |   +-- InvoiceNotFoundError
    |   +-- DuplicateInvoiceNumberError
    |
    +-- ConfigError

Two outcomes are deliberately NOT exceptions:

* Field-level validation failures are returned as an error map by the
  validation gate (``purchasing_engines.validation``).
* Allocation saturation is returned as an ``AllocationConflict`` value by
  the allocation engine (``purchasing_engines.allocation``).

Handling pattern:

    try:
        result = coordinator.apply(draft, ItemRemoved(index=0))
    except LastItemRemovalError as e:
        notify_user(e.code)
"""


class PurchasingError(Exception):
    """
    Base exception for all purchasing errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "PURCHASING_ERROR"


# Draft editing


class DraftError(PurchasingError):
    """Base exception for rejected draft edits."""

    code: str = "DRAFT_ERROR"


class ItemIndexError(DraftError):
    """Edit addressed a line item that does not exist."""

    code: str = "ITEM_INDEX_OUT_OF_RANGE"

    def __init__(self, index: int, item_count: int):
        self.index = index
        self.item_count = item_count
        super().__init__(
            f"Line item index {index} out of range for {item_count} item(s)"
        )


class LastItemRemovalError(DraftError):
    """A draft must keep a minimum number of line items."""

    code: str = "LAST_ITEM_REMOVAL"

    def __init__(self, minimum: int):
        self.minimum = minimum
        super().__init__(
            f"Invoice must contain at least {minimum} line item(s)"
        )


class UnknownFieldError(DraftError):
    """Edit targeted a field that cannot be written this way."""

    code: str = "UNKNOWN_FIELD"

    def __init__(self, field: str, allowed: tuple[str, ...]):
        self.field = field
        self.allowed = allowed
        super().__init__(
            f"Field '{field}' is not editable here; expected one of {', '.join(allowed)}"
        )


# Edit session


class SessionError(PurchasingError):
    """Base exception for edit session misuse."""

    code: str = "SESSION_ERROR"


class ReentrantEditError(SessionError):
    """An edit was applied while another was still being recomputed."""

    code: str = "REENTRANT_EDIT"

    def __init__(self, action: str):
        self.action = action
        super().__init__(f"Cannot apply {action} while a recompute is in progress")


class SessionClosedError(SessionError):
    """The draft was submitted or discarded; no further edits are accepted."""

    code: str = "SESSION_CLOSED"

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Edit session {session_id} is closed")


# Product directory


class ProductError(PurchasingError):
    """Base exception for product directory lookups."""

    code: str = "PRODUCT_ERROR"


class ProductNotFoundError(ProductError):
    """Product with given ID was not found."""

    code: str = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id: int):
        self.product_id = product_id
        super().__init__(f"Product not found: {product_id}")


# Persistence


class PersistenceError(PurchasingError):
    """
    The persistence collaborator rejected or failed a request.

    The message is surfaced verbatim to the caller; in-memory draft state
    is never modified by a failed hand-off.
    """

    code: str = "PERSISTENCE_ERROR"

    def __init__(self, message: str, status: int | None = None):
        self.status = status
        super().__init__(message)


class InvoiceNotFoundError(PersistenceError):
    """Invoice with given ID was not found."""

    code: str = "INVOICE_NOT_FOUND"

    def __init__(self, invoice_id: int):
        self.invoice_id = invoice_id
        super().__init__(f"Purchase invoice not found: {invoice_id}", status=404)


class DuplicateInvoiceNumberError(PersistenceError):
    """Invoice number is already taken by another invoice."""

    code: str = "DUPLICATE_INVOICE_NUMBER"

    def __init__(self, invoice_number: str):
        self.invoice_number = invoice_number
        super().__init__(
            f"Invoice number already exists: {invoice_number}", status=422
        )


# Configuration


class ConfigError(PurchasingError):
    """Configuration file parsed but holds an invalid value."""

    code: str = "CONFIG_ERROR"

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Invalid configuration value for '{key}': {reason}")
