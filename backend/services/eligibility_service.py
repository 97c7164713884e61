"""
Eligibility Service

Decides whether a reader may borrow one book right now.

Checks run in a fixed order and the first failing one decides:
1. Reader and book exist
2. At least one copy is available
3. The book has loanable stock
4. Availability stays above the reserved fraction of loanable stock
5. Reader is under the active-loan cap
6. Reader is under the cumulative cap of every ancestor domain subtree
7. Re-borrow cooldown since the last return of this book has elapsed
8. Loans made today, by any reader, are under the daily cap
"""

from datetime import datetime
from typing import Callable, List, Optional, Set

from sqlalchemy.orm import Session

from config.library_config import DEFAULT_CONFIGURATION, LibraryConfiguration
from constants import BorrowRule
from domain.availability import AvailabilityCalculator
from domain.hierarchy import DomainHierarchy
from models import Book, Borrowing, Reader
from repositories import BookRepository, BorrowingRepository, DomainRepository, ReaderRepository
from repositories.borrowing_specifications import BorrowingsByReaderSpec, BorrowingsInDomainsSpec, ReturnedBorrowingSpec
from services.interfaces import IBookRepository, IBorrowingRepository, IDomainRepository, IReaderRepository
from utils.date_utils import start_of_day, subtract_months
from utils.logging_utils import StructuredLogger, log_operation

logger = StructuredLogger(__name__)


class EligibilityService:
    """Single-book borrow admission."""

    def __init__(
        self,
        db: Session,
        config: LibraryConfiguration = DEFAULT_CONFIGURATION,
        clock: Callable[[], datetime] = datetime.now,
        reader_repo: Optional[IReaderRepository] = None,
        book_repo: Optional[IBookRepository] = None,
        borrowing_repo: Optional[IBorrowingRepository] = None,
        domain_repo: Optional[IDomainRepository] = None,
    ):
        """
        Initialize EligibilityService.

        Args:
            db: Database session
            config: Lending policy to enforce
            clock: Returns the current moment; rolling windows are computed from it
            reader_repo, book_repo, borrowing_repo, domain_repo: Lookups to use
                instead of the SQLAlchemy repositories bound to db
        """
        self.db = db
        self.config = config
        self.clock = clock
        self.reader_repo = reader_repo or ReaderRepository(db)
        self.book_repo = book_repo or BookRepository(db)
        self.borrowing_repo = borrowing_repo or BorrowingRepository(db)
        self.hierarchy = DomainHierarchy(domain_repo or DomainRepository(db))
        self.availability = AvailabilityCalculator(config.min_available_percentage)

    @log_operation("can_borrow_book")
    def can_borrow_book(self, reader_id: int, book_id: int) -> bool:
        """
        Check whether a reader may borrow a book now.

        Returns:
            True when every rule passes. Rule failures return False, they never raise.
        """
        return self.check_borrow_eligibility(reader_id, book_id) is None

    def check_borrow_eligibility(self, reader_id: int, book_id: int) -> Optional[BorrowRule]:
        """
        Evaluate the borrow rules in order.

        Args:
            reader_id: Borrowing reader
            book_id: Requested book

        Returns:
            The first rule that rejects the borrow, or None if it is allowed
        """
        rule = self._first_failing_rule(reader_id, book_id)
        if rule is not None:
            logger.warning(
                f"Reader {reader_id} may not borrow book {book_id}: {rule.value}",
                extra={"reader_id": reader_id, "book_id": book_id, "rule": rule.value}
            )
        return rule

    def _first_failing_rule(self, reader_id: int, book_id: int) -> Optional[BorrowRule]:
        reader = self.reader_repo.get_by_id(reader_id)
        book = self.book_repo.get_by_id(book_id)
        if reader is None or book is None:
            return BorrowRule.READER_OR_BOOK_MISSING

        now = self.clock()
        book_loans = self.borrowing_repo.get_by_book(book.id)

        available = self.availability.available_copies(book, book_loans)
        if available <= 0:
            return BorrowRule.NO_AVAILABLE_COPIES

        stock = self.availability.loanable_stock(book)
        if stock <= 0:
            return BorrowRule.NO_LOANABLE_STOCK

        # Reserve is measured against loanable stock, not total copies
        if self.availability.availability_ratio(book, stock, book_loans) < self.config.min_available_percentage:
            return BorrowRule.AVAILABILITY_RESERVE

        active_loans = self.borrowing_repo.get_active_by_reader(reader.id)
        if len(active_loans) >= self.config.max_books_in_period(reader.is_staff):
            return BorrowRule.ACTIVE_LOAN_CAP

        if self._exceeds_domain_cap(reader, book, now):
            return BorrowRule.DOMAIN_SUBTREE_CAP

        if self._in_cooldown(reader, book_loans, now):
            return BorrowRule.REBORROW_COOLDOWN

        daily_cap = self.config.max_books_in_day(reader.is_staff)
        if daily_cap is not None and len(self.borrowing_repo.get_by_date_range(start_of_day(now), now)) >= daily_cap:
            return BorrowRule.DAILY_CAP

        return None

    def loans_of_reader_between(self, reader_id: int, start: datetime, end: datetime) -> List[Borrowing]:
        """Loans a reader took out with a borrowing date in [start, end]."""
        by_reader = BorrowingsByReaderSpec(reader_id)
        return [b for b in self.borrowing_repo.get_by_date_range(start, end) if by_reader.is_satisfied_by(b)]

    def _exceeds_domain_cap(self, reader: Reader, book: Book, now: datetime) -> bool:
        """
        Apply the cumulative domain-subtree cap.

        Every ancestor of every tagged domain is evaluated once. A loan counts
        toward an ancestor when its book is tagged anywhere in that ancestor's
        subtree, so a broad domain caps all of its descendants together.
        """
        window_start = subtract_months(now, self.config.domain_limit_months)
        recent_loans = self.loans_of_reader_between(reader.id, window_start, now)
        cap = self.config.max_books_in_domain(reader.is_staff)

        evaluated: Set[int] = set()
        for domain_id in sorted(book.domain_ids):
            for ancestor in self.hierarchy.ancestors(domain_id):
                if ancestor.id in evaluated:
                    continue
                evaluated.add(ancestor.id)

                in_subtree = BorrowingsInDomainsSpec(self.hierarchy.subtree_ids(ancestor.id))
                count = sum(1 for loan in recent_loans if in_subtree.is_satisfied_by(loan))
                if count >= cap:
                    logger.debug(
                        f"Domain {ancestor.id} subtree holds {count} recent loans of reader {reader.id} (cap {cap})",
                        extra={"reader_id": reader.id, "domain_id": ancestor.id}
                    )
                    return True

        return False

    def _in_cooldown(self, reader: Reader, book_loans: List[Borrowing], now: datetime) -> bool:
        # Only completed loans start a cooldown; an open loan of the same book does not
        returned_by_reader = BorrowingsByReaderSpec(reader.id) & ReturnedBorrowingSpec()
        returned = [b for b in book_loans if returned_by_reader.is_satisfied_by(b)]
        if not returned:
            return False

        last = max(returned, key=lambda b: b.borrowing_date)
        days_since_return = (now - last.return_date).days
        return days_since_return < self.config.cooldown_days(reader.is_staff)
