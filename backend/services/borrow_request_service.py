"""
Borrow Request Service

Admits borrow requests for one or several books and hands each accepted
book to the loan lifecycle.

Request-level quotas (staff distribution, request size, domain diversity,
daily and period caps) are checked once for the whole request before any
book is processed. Each book then goes through the eligibility rules and is
committed on its own, so a rejection part way through leaves the loans
already created in place.
"""

from datetime import datetime, timedelta
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from config.library_config import DEFAULT_CONFIGURATION, LibraryConfiguration
from constants import BorrowRule, PolicyDefaults
from dtos.request import BorrowingBatchRequest, SingleBorrowRequest, parse_request
from exceptions import BusinessRuleViolation, NotFoundError
from models import Book, Borrowing, Reader
from repositories import BookRepository, BorrowingRepository, ReaderRepository
from repositories.borrowing_specifications import BorrowingsByStaffSpec
from services.interfaces import IBookRepository, IBorrowingRepository, IReaderRepository
from services.eligibility_service import EligibilityService
from services.loan_lifecycle_service import LoanLifecycleService
from utils.date_utils import start_of_day
from utils.logging_utils import StructuredLogger, log_operation

logger = StructuredLogger(__name__)


class BorrowRequestService:
    """Service for single-book and batch borrow requests."""

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
        Initialize BorrowRequestService.

        Args:
            db: Database session
            config: Lending policy to enforce
            clock: Returns the current moment
            reader_repo, book_repo, borrowing_repo: Stores shared with the
                eligibility and lifecycle services; default to the SQLAlchemy ones
        """
        self.db = db
        self.config = config
        self.clock = clock
        self.reader_repo = reader_repo or ReaderRepository(db)
        self.book_repo = book_repo or BookRepository(db)
        self.borrowing_repo = borrowing_repo or BorrowingRepository(db)
        repos = dict(reader_repo=self.reader_repo, book_repo=self.book_repo, borrowing_repo=self.borrowing_repo)
        self.eligibility = EligibilityService(db, config, clock, **repos)
        self.lifecycle = LoanLifecycleService(db, config, clock, **repos)

    @log_operation("create_borrowings")
    def create_borrowings(
        self,
        reader_id: int,
        book_ids: List[int],
        borrowing_date: datetime,
        days_to_borrow: int,
        staff_id: Optional[int] = None,
    ) -> List[Borrowing]:
        """
        Borrow several books for a reader in one request.

        Args:
            reader_id: Borrowing reader
            book_ids: Books to borrow, processed in order
            borrowing_date: Borrowing date of every created loan
            days_to_borrow: Loan length in days
            staff_id: Staff member processing the request, if any

        Returns:
            The created loans, in book_ids order

        Raises:
            ValidationError: If an argument is missing or malformed
            NotFoundError: If the reader, the staff member or a book does not exist
            BusinessRuleViolation: If a request quota or a book's eligibility fails.
                Loans created for earlier books stay committed.
            DatabaseError: If a loan cannot be saved
        """
        request = parse_request(
            BorrowingBatchRequest,
            reader_id=reader_id,
            book_ids=book_ids,
            borrowing_date=borrowing_date,
            days_to_borrow=days_to_borrow,
            staff_id=staff_id
        )
        requested = len(request.book_ids)

        reader = self._require_reader(request.reader_id)
        if request.staff_id is not None:
            self._require_staff(request.staff_id)
            if not reader.is_staff:
                self._check_staff_daily_cap(request.staff_id, request.borrowing_date, requested, reader)

        request_cap = self.config.max_books_in_request(reader.is_staff)
        if requested > request_cap:
            self._reject(
                BorrowRule.REQUEST_CAP,
                f"Cannot borrow more than {request_cap} books at once",
                reader
            )

        if requested >= PolicyDefaults.DIVERSITY_THRESHOLD:
            self._check_domain_diversity(request.book_ids, reader)

        daily_cap = self.config.max_books_in_day(reader.is_staff)
        if daily_cap is not None:
            today = self.eligibility.loans_of_reader_between(
                reader.id, start_of_day(request.borrowing_date), request.borrowing_date
            )
            if len(today) + requested > daily_cap:
                self._reject(
                    BorrowRule.DAILY_CAP,
                    f"Cannot borrow more than {daily_cap} books per day ({len(today)} already borrowed)",
                    reader
                )

        period_start = request.borrowing_date - timedelta(days=self.config.borrowing_period_days)
        in_period = self.eligibility.loans_of_reader_between(reader.id, period_start, request.borrowing_date)
        period_cap = self.config.max_books_in_period(reader.is_staff)
        if len(in_period) + requested > period_cap:
            self._reject(
                BorrowRule.PERIOD_CAP,
                f"Cannot borrow more than {period_cap} books in {self.config.borrowing_period_days} days "
                f"({len(in_period)} already borrowed)",
                reader
            )

        created: List[Borrowing] = []
        for book_id in request.book_ids:
            rule = self.eligibility.check_borrow_eligibility(reader.id, book_id)
            if rule is not None:
                if created:
                    logger.warning(
                        f"Request of reader {reader.id} stopped at book {book_id}; "
                        f"{len(created)} earlier loans remain",
                        extra={"reader_id": reader.id, "book_id": book_id}
                    )
                raise BusinessRuleViolation(
                    BorrowRule.NOT_ELIGIBLE.value,
                    f"Reader {reader.id} cannot borrow book {book_id} ({rule.value})"
                )

            created.append(self.lifecycle.borrow(
                reader.id,
                book_id,
                request.borrowing_date,
                request.days_to_borrow,
                staff_id=request.staff_id
            ))

        logger.info(
            f"Created {len(created)} borrowings for reader {reader.id}",
            extra={"reader_id": reader.id, "staff_id": request.staff_id}
        )
        return created

    @log_operation("borrow_book")
    def borrow_book(
        self,
        reader_id: int,
        book_id: int,
        borrowing_days: int,
        staff_id: Optional[int] = None,
    ) -> Borrowing:
        """
        Borrow one book as of the current moment.

        Raises:
            ValidationError: If an argument is malformed
            NotFoundError: If the reader, the book or the staff member does not exist
            BusinessRuleViolation: If the staff cap or an eligibility rule fails
            DatabaseError: If the loan cannot be saved
        """
        request = parse_request(
            SingleBorrowRequest,
            reader_id=reader_id,
            book_id=book_id,
            borrowing_days=borrowing_days,
            staff_id=staff_id
        )
        now = self.clock()

        reader = self._require_reader(request.reader_id)
        self._require_book(request.book_id)
        if request.staff_id is not None:
            self._require_staff(request.staff_id)
            if not reader.is_staff:
                self._check_staff_daily_cap(request.staff_id, now, 1, reader)

        rule = self.eligibility.check_borrow_eligibility(reader.id, request.book_id)
        if rule is not None:
            raise BusinessRuleViolation(
                BorrowRule.NOT_ELIGIBLE.value,
                f"Reader {reader.id} cannot borrow book {request.book_id} ({rule.value})"
            )

        return self.lifecycle.borrow(
            reader.id,
            request.book_id,
            now,
            request.borrowing_days,
            staff_id=request.staff_id
        )

    def _check_staff_daily_cap(self, staff_id: int, moment: datetime, requested: int, reader: Reader) -> None:
        # Only applies when the borrowing reader is not staff themselves
        by_staff = BorrowingsByStaffSpec(staff_id)
        handed_out = [
            b for b in self.borrowing_repo.get_by_date_range(start_of_day(moment), moment)
            if by_staff.is_satisfied_by(b)
        ]
        if len(handed_out) + requested > self.config.max_books_staff_per_day:
            self._reject(
                BorrowRule.STAFF_DAILY_CAP,
                f"Staff {staff_id} cannot distribute more than {self.config.max_books_staff_per_day} books per day",
                reader
            )

    def _check_domain_diversity(self, book_ids: List[int], reader: Reader) -> None:
        """
        Require at least two distinct domain ids across the requested books.

        Domain ids are compared as-is; two subdomains of one parent are distinct.
        """
        domain_ids = set()
        for book_id in book_ids:
            domain_ids |= self._require_book(book_id).domain_ids

        if len(domain_ids) < PolicyDefaults.MIN_DISTINCT_DOMAINS:
            self._reject(
                BorrowRule.DOMAIN_DIVERSITY,
                f"Requests of {PolicyDefaults.DIVERSITY_THRESHOLD} or more books must span "
                f"at least {PolicyDefaults.MIN_DISTINCT_DOMAINS} domains",
                reader
            )

    def _require_reader(self, reader_id: int) -> Reader:
        reader = self.reader_repo.get_by_id(reader_id)
        if reader is None:
            raise NotFoundError("Reader", reader_id)
        return reader

    def _require_staff(self, staff_id: int) -> Reader:
        staff = self.reader_repo.get_by_id(staff_id)
        if staff is None:
            raise NotFoundError("Staff member", staff_id)
        if not staff.is_staff:
            raise BusinessRuleViolation(
                BorrowRule.STAFF_REQUIRED.value,
                f"Reader {staff_id} is not marked as staff"
            )
        return staff

    def _require_book(self, book_id: int) -> Book:
        book = self.book_repo.get_by_id(book_id)
        if book is None:
            raise NotFoundError("Book", book_id)
        return book

    def _reject(self, rule: BorrowRule, message: str, reader: Reader) -> None:
        logger.warning(message, extra={"reader_id": reader.id, "rule": rule.value})
        raise BusinessRuleViolation(rule.value, message)
