"""
Dependency providers for the lending services.

This module provides factory functions for creating repository and service instances,
following the Dependency Inversion Principle. Callers own the session; the
policy is read from the environment once per process.
"""

from datetime import datetime
from functools import lru_cache
from typing import Callable

from sqlalchemy.orm import Session

from config.library_config import LibraryConfiguration
from repositories import BookRepository, BorrowingRepository, DomainRepository, ReaderRepository
from services.book_domain_service import BookDomainService
from services.book_service import BookService
from services.borrow_request_service import BorrowRequestService
from services.eligibility_service import EligibilityService
from services.interfaces import IBookRepository, IBorrowingRepository, IDomainRepository, IReaderRepository
from services.loan_lifecycle_service import LoanLifecycleService


@lru_cache(maxsize=1)
def get_configuration() -> LibraryConfiguration:
    """
    Lending policy for this process.

    Raises:
        ConfigurationError: If a LIBRARY_* variable is invalid
    """
    return LibraryConfiguration.from_env()


def get_domain_repository(db: Session) -> IDomainRepository:
    return DomainRepository(db)


def get_book_repository(db: Session) -> IBookRepository:
    return BookRepository(db)


def get_reader_repository(db: Session) -> IReaderRepository:
    return ReaderRepository(db)


def get_borrowing_repository(db: Session) -> IBorrowingRepository:
    return BorrowingRepository(db)


def get_eligibility_service(db: Session, clock: Callable[[], datetime] = datetime.now) -> EligibilityService:
    return EligibilityService(db, get_configuration(), clock)


def get_loan_lifecycle_service(db: Session, clock: Callable[[], datetime] = datetime.now) -> LoanLifecycleService:
    return LoanLifecycleService(db, get_configuration(), clock)


def get_borrow_request_service(db: Session, clock: Callable[[], datetime] = datetime.now) -> BorrowRequestService:
    """
    Factory function for creating BorrowRequestService instances.

    Args:
        db: Database session
        clock: Returns the current moment

    Returns:
        BorrowRequestService wired with the process configuration
    """
    return BorrowRequestService(db, get_configuration(), clock)


def get_book_service(db: Session) -> BookService:
    return BookService(db, get_configuration())


def get_book_domain_service(db: Session) -> BookDomainService:
    return BookDomainService(db)
