"""
Repository layer for data access abstraction.

This package contains repository classes that encapsulate database queries
and provide a clean interface for data access operations.
"""

from .base_repository import BaseRepository
from .domain_repository import DomainRepository
from .book_repository import BookRepository
from .reader_repository import ReaderRepository
from .borrowing_repository import BorrowingRepository

__all__ = [
    "BaseRepository",
    "DomainRepository",
    "BookRepository",
    "ReaderRepository",
    "BorrowingRepository",
]
