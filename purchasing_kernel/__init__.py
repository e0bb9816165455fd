"""
Purchasing Kernel

Value objects, error taxonomy, logging and persistence primitives for
purchase-invoice drafting:
- Immutable line items and invoice drafts
- Decimal-only money with a single shared rounding rule
- Typed exceptions with machine-readable codes
- Structured JSON logging
"""

__version__ = "0.1.0"
