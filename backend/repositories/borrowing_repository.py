"""
Borrowing repository for loan data access operations.
"""

from datetime import datetime
from typing import List
from sqlalchemy.orm import Session

from models import Borrowing
from services.interfaces import IBorrowingRepository
from .base_repository import BaseRepository
from .borrowing_specifications import (
    ActiveBorrowingSpec,
    BorrowedBetweenSpec,
    BorrowingsByBookSpec,
    BorrowingsByReaderSpec,
    OverdueBorrowingSpec,
)


class BorrowingRepository(BaseRepository[Borrowing], IBorrowingRepository):
    """Repository for Borrowing model operations."""

    def __init__(self, db: Session):
        super().__init__(db, Borrowing)

    def get_active_by_reader(self, reader_id: int) -> List[Borrowing]:
        """
        Get loans of a reader whose active flag is set.

        Args:
            reader_id: Reader id

        Returns:
            Active loans ordered by id
        """
        return self.find(BorrowingsByReaderSpec(reader_id) & ActiveBorrowingSpec())

    def get_by_book(self, book_id: int) -> List[Borrowing]:
        return self.find(BorrowingsByBookSpec(book_id))

    def get_by_date_range(self, start: datetime, end: datetime) -> List[Borrowing]:
        """
        Get loans borrowed within [start, end].

        Args:
            start: Earliest borrowing date (inclusive)
            end: Latest borrowing date (inclusive)

        Returns:
            Loans ordered by id
        """
        return self.find(BorrowedBetweenSpec(start, end))

    def get_overdue(self, now: datetime) -> List[Borrowing]:
        return self.find(OverdueBorrowingSpec(now))

    def add(self, borrowing: Borrowing) -> Borrowing:
        return self.create(borrowing)
