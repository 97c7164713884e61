"""
Loan Lifecycle Service

State transitions of a single loan: creation, extension and return.

A loan is ACTIVE from creation until it is returned, and extensions keep it
ACTIVE. Returning it makes it CLOSED, and nothing leaves CLOSED. Every write
commits on its own; a failed commit is rolled back and surfaces as a
DatabaseError carrying the original exception as its cause.
"""

from datetime import datetime, timedelta
from typing import Callable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config.library_config import DEFAULT_CONFIGURATION, LibraryConfiguration
from constants import BorrowRule, PolicyDefaults
from domain.availability import AvailabilityCalculator
from domain.value_objects import LoanState
from dtos.request import ExtensionRequest, ReturnRequest, parse_request
from exceptions import BusinessRuleViolation, DatabaseError, NotFoundError, ValidationError
from models import Book, Borrowing, Reader
from repositories import BookRepository, BorrowingRepository, ReaderRepository
from services.interfaces import IBookRepository, IBorrowingRepository, IReaderRepository
from utils.date_utils import subtract_months
from utils.logging_utils import StructuredLogger, log_operation

logger = StructuredLogger(__name__)


class LoanLifecycleService:
    """Service for creating, extending and returning loans."""

    def __init__(
        self,
        db: Session,
        config: LibraryConfiguration = DEFAULT_CONFIGURATION,
        clock: Callable[[], datetime] = datetime.now,
        reader_repo: Optional[IReaderRepository] = None,
        book_repo: Optional[IBookRepository] = None,
        borrowing_repo: Optional[IBorrowingRepository] = None,
    ):
        """
        Initialize LoanLifecycleService.

        Args:
            db: Database session
            config: Lending policy to enforce
            clock: Returns the current moment
            reader_repo, book_repo, borrowing_repo: Stores to use instead of
                the SQLAlchemy repositories bound to db
        """
        self.db = db
        self.config = config
        self.clock = clock
        self.reader_repo = reader_repo or ReaderRepository(db)
        self.book_repo = book_repo or BookRepository(db)
        self.borrowing_repo = borrowing_repo or BorrowingRepository(db)
        self.availability = AvailabilityCalculator(config.min_available_percentage)

    @log_operation("borrow")
    def borrow(
        self,
        reader_id: int,
        book_id: int,
        borrowing_date: datetime,
        days_to_borrow: int,
        staff_id: Optional[int] = None,
    ) -> Borrowing:
        """
        Create a new active loan.

        The caller must have checked eligibility first; no lending rule is
        evaluated here.

        Args:
            reader_id: Borrowing reader
            book_id: Borrowed book
            borrowing_date: Start of the loan
            days_to_borrow: Loan length; the due date is borrowing_date plus this
            staff_id: Staff member who processed the loan, if any

        Returns:
            The persisted loan

        Raises:
            ValidationError: If days_to_borrow is not positive
            NotFoundError: If the reader, book or staff member does not exist
            DatabaseError: If the loan cannot be saved
        """
        if days_to_borrow <= 0:
            raise ValidationError(
                "Borrowing days must be positive",
                invalid_fields={"days_to_borrow": days_to_borrow}
            )

        reader = self._require_reader(reader_id)
        book = self._require_book(book_id)
        staff = self._require_reader(staff_id) if staff_id is not None else None

        borrowing = Borrowing(
            reader=reader,
            staff=staff,
            book=book,
            borrowing_date=borrowing_date,
            due_date=borrowing_date + timedelta(days=days_to_borrow),
            is_active=True,
            initial_borrowing_days=days_to_borrow,
            total_extension_days=0,
        )

        self._persist("borrow", borrowing, self.borrowing_repo.add)
        logger.info(
            f"Borrowing {borrowing.id} created: book {book.id} to reader {reader.id}, due {borrowing.due_date}",
            extra={"borrowing_id": borrowing.id, "reader_id": reader.id, "book_id": book.id}
        )
        return borrowing

    @log_operation("return_borrowing")
    def return_borrowing(self, borrowing_id: int, return_date: datetime) -> Borrowing:
        """
        Close an active loan.

        Raises:
            ValidationError: If an argument is malformed
            NotFoundError: If the loan does not exist
            BusinessRuleViolation: If the loan is already closed
            DatabaseError: If the change cannot be saved
        """
        request = parse_request(ReturnRequest, borrowing_id=borrowing_id, return_date=return_date)
        borrowing = self._require_active(request.borrowing_id, LoanState.CLOSED)

        borrowing.return_date = request.return_date
        borrowing.is_active = False

        self._persist("return", borrowing, self.borrowing_repo.update)
        logger.info(
            f"Borrowing {borrowing.id} returned on {request.return_date}",
            extra={"borrowing_id": borrowing.id, "reader_id": borrowing.reader_id}
        )
        return borrowing

    @log_operation("extend_borrowing")
    def extend_borrowing(self, borrowing_id: int, extension_days: int, extension_date: datetime) -> Borrowing:
        """
        Push back the due date of an active loan.

        Rules, in order:
        - Lifetime extension days of this loan stay within max_extension_days
        - The book still has an available copy, and available copies over
          total copies (not loanable stock) stay at or above the reserve
        - Extension days across the reader's loans borrowed in the three
          months before extension_date stay within the window cap

        Args:
            borrowing_id: Loan to extend
            extension_days: Days to add to the due date
            extension_date: Moment of the extension; anchors the rolling window

        Returns:
            The updated loan

        Raises:
            ValidationError: If an argument is malformed
            NotFoundError: If the loan, its reader or its book does not exist
            BusinessRuleViolation: If a rule rejects the extension
            DatabaseError: If the change cannot be saved
        """
        request = parse_request(
            ExtensionRequest,
            borrowing_id=borrowing_id,
            extension_days=extension_days,
            extension_date=extension_date
        )
        borrowing = self._require_active(request.borrowing_id, LoanState.ACTIVE)
        reader = self._require_reader(borrowing.reader_id)

        if borrowing.total_extension_days + request.extension_days > self.config.max_extension_days:
            self._reject(
                BorrowRule.EXTENSION_LIMIT,
                f"Borrowing {borrowing.id} cannot be extended beyond {self.config.max_extension_days} days in total",
                borrowing
            )

        book = self._require_book(borrowing.book_id)
        self._check_extension_availability(book, borrowing)

        window_start = subtract_months(request.extension_date, PolicyDefaults.EXTENSION_WINDOW_MONTHS)
        window_loans = [
            b for b in self.borrowing_repo.get_by_date_range(window_start, request.extension_date)
            if b.reader_id == reader.id
        ]
        used_days = sum(b.total_extension_days for b in window_loans)
        window_cap = self.config.max_extension_in_window(reader.is_staff)
        if used_days + request.extension_days > window_cap:
            self._reject(
                BorrowRule.EXTENSION_WINDOW_CAP,
                f"Reader {reader.id} has used {used_days} of {window_cap} extension days "
                f"in the last {PolicyDefaults.EXTENSION_WINDOW_MONTHS} months",
                borrowing
            )

        borrowing.due_date = borrowing.due_date + timedelta(days=request.extension_days)
        borrowing.total_extension_days += request.extension_days
        borrowing.last_extension_date = request.extension_date

        self._persist("extend", borrowing, self.borrowing_repo.update)
        logger.info(
            f"Borrowing {borrowing.id} extended by {request.extension_days} days, now due {borrowing.due_date}",
            extra={"borrowing_id": borrowing.id, "reader_id": reader.id}
        )
        return borrowing

    def extend_borrowing_advanced(self, borrowing_id: int, extension_days: int) -> Borrowing:
        """Extend a loan as of the current moment."""
        return self.extend_borrowing(borrowing_id, extension_days, self.clock())

    def get_active_borrowings(self, reader_id: int) -> List[Borrowing]:
        """
        Get a reader's active loans.

        Raises:
            NotFoundError: If the reader does not exist
        """
        self._require_reader(reader_id)
        return self.borrowing_repo.get_active_by_reader(reader_id)

    def get_active_borrowing_count(self, reader_id: int) -> int:
        return len(self.get_active_borrowings(reader_id))

    def get_overdue_borrowings(self) -> List[Borrowing]:
        """Active loans whose due date has passed."""
        return self.borrowing_repo.get_overdue(self.clock())

    def _check_extension_availability(self, book: Book, borrowing: Borrowing) -> None:
        book_loans = self.borrowing_repo.get_by_book(book.id)
        available = self.availability.available_copies(book, book_loans)
        if available <= 0:
            self._reject(
                BorrowRule.NO_AVAILABLE_COPIES,
                f"Book {book.id} has no available copies; borrowing {borrowing.id} cannot be extended",
                borrowing
            )

        # Extension reserve is measured against total copies, unlike the borrow-time check
        if self.availability.availability_ratio(book, book.total_copies, book_loans) < self.config.min_available_percentage:
            self._reject(
                BorrowRule.AVAILABILITY_RESERVE,
                f"Book {book.id} availability is below the reserved fraction; borrowing {borrowing.id} cannot be extended",
                borrowing
            )

    def _require_reader(self, reader_id: int) -> Reader:
        reader = self.reader_repo.get_by_id(reader_id)
        if reader is None:
            raise NotFoundError("Reader", reader_id)
        return reader

    def _require_book(self, book_id: int) -> Book:
        book = self.book_repo.get_by_id(book_id)
        if book is None:
            raise NotFoundError("Book", book_id)
        return book

    def _require_active(self, borrowing_id: int, target: LoanState) -> Borrowing:
        """
        Fetch a loan that may move to the target state.

        Raises:
            NotFoundError: If the loan does not exist
            BusinessRuleViolation: If the transition is not allowed
        """
        borrowing = self.borrowing_repo.get_by_id(borrowing_id)
        if borrowing is None:
            raise NotFoundError("Borrowing", borrowing_id)

        state = LoanState.of(borrowing)
        if not state.can_transition_to(target):
            self._reject(
                BorrowRule.LOAN_NOT_ACTIVE,
                f"Borrowing {borrowing_id} is {state.value}",
                borrowing
            )
        return borrowing

    def _reject(self, rule: BorrowRule, message: str, borrowing: Borrowing) -> None:
        logger.warning(
            message,
            extra={"borrowing_id": borrowing.id, "reader_id": borrowing.reader_id, "rule": rule.value}
        )
        raise BusinessRuleViolation(rule.value, message)

    def _persist(self, operation: str, borrowing: Borrowing, write: Callable[[Borrowing], Borrowing]) -> Borrowing:
        """
        Write and commit one loan.

        Raises:
            DatabaseError: If the write or commit fails; the session is rolled back
        """
        context = {"operation": operation, "borrowing_id": borrowing.id}
        try:
            write(borrowing)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to {operation} borrowing: {e}", extra=context, exc_info=True)
            raise DatabaseError(operation, f"Failed to {operation} borrowing: {e}") from e
        return borrowing
