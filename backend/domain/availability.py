"""
Availability Calculator

Derives how many copies of a book can still go out on loan, and whether the
book stays loanable once the configured reserve of loanable stock is held back.
"""

from typing import Iterable, Optional


class AvailabilityCalculator:
    """Copy arithmetic for a book and its loan records."""

    def __init__(self, min_available_percentage: float):
        self.min_available_percentage = min_available_percentage

    @staticmethod
    def loanable_stock(book) -> int:
        """Total copies minus reading-room-only copies."""
        return book.total_copies - book.reading_room_only_copies

    @staticmethod
    def open_loan_count(book, borrowings: Optional[Iterable] = None) -> int:
        """
        Count loan records with no return date, whatever their active flag.

        Args:
            book: Book whose loans are counted
            borrowings: Loan records to use instead of book.borrowings
        """
        records = book.borrowings if borrowings is None else borrowings
        return sum(1 for b in records if b.return_date is None)

    def available_copies(self, book, borrowings: Optional[Iterable] = None) -> int:
        return self.loanable_stock(book) - self.open_loan_count(book, borrowings)

    def can_be_loanable(self, book, borrowings: Optional[Iterable] = None) -> bool:
        """
        Check the capacity reservation rule.

        False when the book has no loanable stock at all; otherwise true iff
        the available copies cover the reserved fraction of loanable stock.
        """
        if book.total_copies == book.reading_room_only_copies:
            return False
        stock = self.loanable_stock(book)
        return self.available_copies(book, borrowings) >= stock * self.min_available_percentage

    def availability_ratio(self, book, denominator: int, borrowings: Optional[Iterable] = None) -> float:
        """Available copies as a fraction of the given stock figure."""
        return self.available_copies(book, borrowings) / denominator
