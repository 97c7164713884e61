"""
Borrowing-specific Specifications

Concrete specifications for selecting loan records.
"""

from datetime import datetime
from typing import Iterable, Set
from models import Book, BookDomain, Borrowing
from .specifications import Specification


class BorrowingsByReaderSpec(Specification[Borrowing]):
    """Loans originated by a reader."""

    def __init__(self, reader_id: int):
        self.reader_id = reader_id

    def is_satisfied_by(self, borrowing: Borrowing) -> bool:
        return borrowing.reader_id == self.reader_id

    def to_sql_filter(self):
        return Borrowing.reader_id == self.reader_id


class BorrowingsByStaffSpec(Specification[Borrowing]):
    """Loans processed by a staff member."""

    def __init__(self, staff_id: int):
        self.staff_id = staff_id

    def is_satisfied_by(self, borrowing: Borrowing) -> bool:
        return borrowing.staff_id is not None and borrowing.staff_id == self.staff_id

    def to_sql_filter(self):
        return Borrowing.staff_id == self.staff_id


class BorrowingsByBookSpec(Specification[Borrowing]):
    """Loans of one book."""

    def __init__(self, book_id: int):
        self.book_id = book_id

    def is_satisfied_by(self, borrowing: Borrowing) -> bool:
        return borrowing.book_id == self.book_id

    def to_sql_filter(self):
        return Borrowing.book_id == self.book_id


class BorrowedBetweenSpec(Specification[Borrowing]):
    """Loans whose borrowing date lies in [start, end], both inclusive."""

    def __init__(self, start: datetime, end: datetime):
        """
        Initialize specification.

        Args:
            start: Earliest borrowing date
            end: Latest borrowing date
        """
        self.start = start
        self.end = end

    def is_satisfied_by(self, borrowing: Borrowing) -> bool:
        return self.start <= borrowing.borrowing_date <= self.end

    def to_sql_filter(self):
        return Borrowing.borrowing_date.between(self.start, self.end)


class ActiveBorrowingSpec(Specification[Borrowing]):
    """Loans whose active flag is set."""

    def is_satisfied_by(self, borrowing: Borrowing) -> bool:
        return bool(borrowing.is_active)

    def to_sql_filter(self):
        return Borrowing.is_active.is_(True)


class ReturnedBorrowingSpec(Specification[Borrowing]):
    """Loans with a recorded return date."""

    def is_satisfied_by(self, borrowing: Borrowing) -> bool:
        return borrowing.return_date is not None

    def to_sql_filter(self):
        return Borrowing.return_date.isnot(None)


class OverdueBorrowingSpec(Specification[Borrowing]):
    """Active loans due before a moment."""

    def __init__(self, now: datetime):
        self.now = now

    def is_satisfied_by(self, borrowing: Borrowing) -> bool:
        return borrowing.is_overdue(self.now)

    def to_sql_filter(self):
        return Borrowing.is_active.is_(True) & (Borrowing.due_date < self.now)


class BorrowingsInDomainsSpec(Specification[Borrowing]):
    """Loans of books tagged with at least one of the given domains."""

    def __init__(self, domain_ids: Iterable[int]):
        self.domain_ids: Set[int] = set(domain_ids)

    def is_satisfied_by(self, borrowing: Borrowing) -> bool:
        book = borrowing.book
        return book is not None and any(d.id in self.domain_ids for d in book.domains)

    def to_sql_filter(self):
        return Borrowing.book.has(Book.domains.any(BookDomain.id.in_(self.domain_ids)))
