"""
Book Service

Catalog rules for books: domain assignment on create and update, and
availability-based queries.

A book is tagged with between one and max_domains_per_book domains, and no
tagged domain may be an ancestor of another tagged domain.
"""

from itertools import combinations
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config.library_config import DEFAULT_CONFIGURATION, LibraryConfiguration
from constants import BorrowRule
from domain.availability import AvailabilityCalculator
from domain.hierarchy import DomainHierarchy
from exceptions import BusinessRuleViolation, DatabaseError, NotFoundError, ValidationError
from models import Book, BookDomain
from repositories import BookRepository, DomainRepository
from utils.logging_utils import StructuredLogger, log_operation

logger = StructuredLogger(__name__)


class BookService:
    """Service for book catalog rules and queries."""

    def __init__(self, db: Session, config: LibraryConfiguration = DEFAULT_CONFIGURATION):
        """
        Initialize BookService.

        Args:
            db: Database session
            config: Lending policy; supplies the domain cap and availability reserve
        """
        self.db = db
        self.config = config
        self.book_repo = BookRepository(db)
        self.domain_repo = DomainRepository(db)
        self.hierarchy = DomainHierarchy(self.domain_repo)
        self.availability = AvailabilityCalculator(config.min_available_percentage)

    @log_operation("create_book")
    def create_book(self, book: Book, domain_ids: Optional[List[int]]) -> Book:
        """
        Tag a new book with domains and persist it.

        Args:
            book: Unsaved book
            domain_ids: Domains to tag the book with

        Returns:
            The persisted book

        Raises:
            ValidationError: If copy counts are inconsistent or no domain is given
            BusinessRuleViolation: If the ISBN is taken, too many domains are
                given, or two domains are ancestor and descendant
            NotFoundError: If a domain does not exist
            DatabaseError: If the book cannot be saved
        """
        self._check_copies(book)

        if self.book_repo.get_by_isbn(book.isbn) is not None:
            self._reject(BorrowRule.DUPLICATE_ISBN, f"A book with ISBN {book.isbn} already exists")

        if not domain_ids:
            raise ValidationError(
                "A book must belong to at least one domain",
                invalid_fields={"domain_ids": "required"}
            )

        if len(domain_ids) > self.config.max_domains_per_book:
            self._reject(
                BorrowRule.MAX_DOMAINS_PER_BOOK,
                f"A book can belong to at most {self.config.max_domains_per_book} domains"
            )

        domains: List[BookDomain] = []
        for domain_id in domain_ids:
            domain = self.domain_repo.get_by_id(domain_id)
            if domain is None:
                raise NotFoundError("Domain", domain_id)
            domains.append(domain)

        self._check_unrelated(domains)

        book.domains = domains
        self._commit("create_book", lambda: self.book_repo.create(book))
        logger.info(f"Created book {book.id} ({book.isbn}) in domains {sorted(book.domain_ids)}", extra={"book_id": book.id})
        return book

    @log_operation("update_book")
    def update_book(self, book: Book) -> Book:
        """
        Persist changes to an existing book after re-checking its domains.

        Raises:
            ValidationError: If copy counts are inconsistent
            BusinessRuleViolation: If the domain assignment is invalid
            DatabaseError: If the change cannot be saved
        """
        self._check_copies(book)
        if not self.validate_book_domains(book):
            self._reject(BorrowRule.DOMAIN_HIERARCHY_CONFLICT, f"Book {book.id} violates the domain constraints")

        self._commit("update_book", lambda: self.book_repo.update(book))
        return book

    def validate_book_domains(self, book: Book) -> bool:
        """
        Check a book's current domain assignment.

        Returns:
            False if the book has no domains, too many, or an ancestor/descendant pair
        """
        domains = list(book.domains or [])
        if not domains or len(domains) > self.config.max_domains_per_book:
            return False
        return not any(self.hierarchy.are_related(a.id, b.id) for a, b in combinations(domains, 2))

    def get_book(self, book_id: int) -> Optional[Book]:
        return self.book_repo.get_by_id(book_id)

    def get_books_in_domain(self, domain_id: int) -> List[Book]:
        """
        Get books tagged with a domain or any of its descendants, each once.

        An unknown domain yields an empty list.
        """
        if self.domain_repo.get_by_id(domain_id) is None:
            return []
        return self.book_repo.get_by_domains(self.hierarchy.subtree_ids(domain_id))

    def get_books_directly_in_domain(self, domain_id: int) -> List[Book]:
        if self.domain_repo.get_by_id(domain_id) is None:
            return []
        return self.book_repo.get_by_domain(domain_id)

    def get_available_copies(self, book_id: int) -> int:
        """Available copies of a book; 0 for an unknown book."""
        book = self.book_repo.get_by_id(book_id)
        if book is None:
            return 0
        return self.availability.available_copies(book)

    def is_loanable(self, book_id: int) -> bool:
        book = self.book_repo.get_by_id(book_id)
        return book is not None and self.availability.can_be_loanable(book)

    def get_books_ordered_by_availability(self) -> List[Book]:
        """Books with at least one available copy, most available first."""
        available = [b for b in self.book_repo.get_all() if self.availability.available_copies(b) > 0]
        return sorted(available, key=self.availability.available_copies, reverse=True)

    def get_books_with_no_copies_available(self) -> List[Book]:
        return [b for b in self.book_repo.get_all() if self.availability.available_copies(b) <= 0]

    def get_reading_room_only_books(self) -> List[Book]:
        return [b for b in self.book_repo.get_all() if b.total_copies == b.reading_room_only_copies]

    def _check_unrelated(self, domains: List[BookDomain]) -> None:
        for first, second in combinations(domains, 2):
            if self.hierarchy.are_related(first.id, second.id):
                self._reject(
                    BorrowRule.DOMAIN_HIERARCHY_CONFLICT,
                    f"Domains {first.id} and {second.id} are ancestor and descendant; a book cannot belong to both"
                )

    @staticmethod
    def _check_copies(book: Book) -> None:
        total = book.total_copies or 0
        reading_room = book.reading_room_only_copies or 0
        if total < 0 or reading_room < 0:
            raise ValidationError(
                "Copy counts cannot be negative",
                invalid_fields={"total_copies": total, "reading_room_only_copies": reading_room}
            )
        if reading_room > total:
            raise ValidationError(
                f"Reading-room-only copies ({reading_room}) exceed total copies ({total})",
                invalid_fields={"reading_room_only_copies": BorrowRule.READING_ROOM_EXCEEDS_TOTAL.value}
            )

    def _reject(self, rule: BorrowRule, message: str) -> None:
        logger.warning(message, extra={"rule": rule.value})
        raise BusinessRuleViolation(rule.value, message)

    def _commit(self, operation: str, write) -> None:
        try:
            write()
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Database error during {operation}: {e}", extra={"operation": operation}, exc_info=True)
            raise DatabaseError(operation, f"Failed to {operation.replace('_', ' ')}: {e}") from e
