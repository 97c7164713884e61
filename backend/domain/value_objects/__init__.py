"""
Domain Value Objects

Value objects are immutable types that represent descriptive aspects of the domain.
They have no conceptual identity and are compared by their values, not by ID.

Examples:
- LoanState: The lifecycle state of a borrowing (immutable enum-like value)
"""

from .loan_state import LoanState

__all__ = ["LoanState"]
