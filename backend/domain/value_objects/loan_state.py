"""
LoanState Value Object

Immutable representation of a borrowing's place in its lifecycle.
"""

from enum import Enum


class LoanState(str, Enum):
    """
    Loan lifecycle state.

    ACTIVE loans may be extended (ACTIVE -> ACTIVE) or returned
    (ACTIVE -> CLOSED). CLOSED is terminal.
    """

    ACTIVE = "active"
    CLOSED = "closed"

    def can_transition_to(self, new_state: "LoanState") -> bool:
        """
        Check if transition to new state is valid.

        Args:
            new_state: Target state

        Returns:
            True if transition is allowed
        """
        valid_transitions = {
            LoanState.ACTIVE: {LoanState.ACTIVE, LoanState.CLOSED},
            LoanState.CLOSED: set(),  # Terminal state
        }

        return new_state in valid_transitions.get(self, set())

    @classmethod
    def of(cls, borrowing) -> "LoanState":
        """
        Derive the state of a persisted borrowing.

        A loan counts as ACTIVE only while its active flag is set and no
        return date has been recorded.
        """
        if borrowing.is_active and borrowing.return_date is None:
            return cls.ACTIVE
        return cls.CLOSED
