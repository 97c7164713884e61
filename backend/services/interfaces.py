"""
Service Interfaces

Abstract read/write contracts the lending services depend on, following the
Dependency Inversion Principle. The SQLAlchemy repositories implement them;
tests or other stores can substitute their own implementations.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from models import Book, BookDomain, Borrowing, Reader


class IDomainRepository(ABC):
    """
    Domain lookup: get-by-id and get-children-by-parent-id.
    """

    @abstractmethod
    def get_by_id(self, id: int) -> Optional[BookDomain]:
        pass

    @abstractmethod
    def get_children(self, parent_id: int) -> List[BookDomain]:
        """
        Get the direct subdomains of a domain.

        Args:
            parent_id: Id of the parent domain

        Returns:
            Domains whose parent_domain_id equals parent_id
        """
        pass


class IBookRepository(ABC):
    """
    Book lookup: get-by-id and get-by-domain-id.
    """

    @abstractmethod
    def get_by_id(self, id: int) -> Optional[Book]:
        pass

    @abstractmethod
    def get_by_domain(self, domain_id: int) -> List[Book]:
        """
        Get books tagged directly with a domain.

        Args:
            domain_id: Domain id

        Returns:
            Books whose domains include domain_id (descendants not included)
        """
        pass


class IReaderRepository(ABC):
    """
    Reader lookup: get-by-id.
    """

    @abstractmethod
    def get_by_id(self, id: int) -> Optional[Reader]:
        pass


class IBorrowingRepository(ABC):
    """
    Loan lookup and writes.
    """

    @abstractmethod
    def get_by_id(self, id: int) -> Optional[Borrowing]:
        pass

    @abstractmethod
    def get_active_by_reader(self, reader_id: int) -> List[Borrowing]:
        """Loans of a reader whose active flag is set."""
        pass

    @abstractmethod
    def get_by_book(self, book_id: int) -> List[Borrowing]:
        """Every loan record of a book, open or closed."""
        pass

    @abstractmethod
    def get_by_date_range(self, start: datetime, end: datetime) -> List[Borrowing]:
        """
        Loans whose borrowing date lies in [start, end], both inclusive.
        """
        pass

    @abstractmethod
    def get_overdue(self, now: datetime) -> List[Borrowing]:
        """Active loans whose due date is before now."""
        pass

    @abstractmethod
    def add(self, borrowing: Borrowing) -> Borrowing:
        pass

    @abstractmethod
    def update(self, borrowing: Borrowing) -> Borrowing:
        pass
