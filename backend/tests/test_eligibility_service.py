from datetime import timedelta

import pytest

from config.library_config import LibraryConfiguration
from constants import BorrowRule
from models import Book, BookDomain, Borrowing, Reader
from services.eligibility_service import EligibilityService
from services.interfaces import IBookRepository, IBorrowingRepository, IDomainRepository, IReaderRepository
from conftest import NOW


@pytest.fixture
def service_for(db_session, clock):
    def _build(**overrides):
        return EligibilityService(db_session, LibraryConfiguration.build(**overrides), clock)
    return _build


@pytest.fixture
def service(service_for):
    return service_for()


def test_allows_borrow_when_every_rule_passes(service, make_domain, make_book, make_reader):
    book = make_book(make_domain("Science"))
    reader = make_reader()

    assert service.check_borrow_eligibility(reader.id, book.id) is None
    assert service.can_borrow_book(reader.id, book.id)


def test_rejects_unknown_reader_or_book(service, make_domain, make_book, make_reader):
    book = make_book(make_domain("Science"))
    reader = make_reader()

    assert service.check_borrow_eligibility(999, book.id) == BorrowRule.READER_OR_BOOK_MISSING
    assert service.check_borrow_eligibility(reader.id, 999) == BorrowRule.READER_OR_BOOK_MISSING
    assert not service.can_borrow_book(999, 999)


def test_rejects_when_no_copy_is_available(service, make_domain, make_book, make_reader, make_loan):
    book = make_book(make_domain("Science"), total=1)
    make_loan(make_reader(), book, NOW - timedelta(days=3))

    assert service.check_borrow_eligibility(make_reader().id, book.id) == BorrowRule.NO_AVAILABLE_COPIES


def test_rejects_reading_room_only_book(service, make_domain, make_book, make_reader):
    book = make_book(make_domain("Reference"), total=2, reading_room=2)
    assert not service.can_borrow_book(make_reader().id, book.id)


def test_reserve_uses_loanable_stock(service_for, make_domain, make_book, make_reader, make_loan):
    service = service_for(min_available_percentage=0.5)
    domain = make_domain("Science")

    # 3 of 5 loanable copies free passes even though only 3 of 10 total copies are
    stocked = make_book(domain, total=10, reading_room=5)
    for _ in range(2):
        make_loan(make_reader(), stocked, NOW - timedelta(days=3))
    assert service.check_borrow_eligibility(make_reader().id, stocked.id) is None

    scarce = make_book(domain, total=10)
    for _ in range(6):
        make_loan(make_reader(), scarce, NOW - timedelta(days=3))
    assert service.check_borrow_eligibility(make_reader().id, scarce.id) == BorrowRule.AVAILABILITY_RESERVE


def test_ninth_loan_leaves_book_borrowable_tenth_does_not(service, make_domain, make_book, make_reader, make_loan):
    book = make_book(make_domain("Science"), total=10)
    for _ in range(9):
        make_loan(make_reader(), book, NOW - timedelta(days=3))

    assert service.availability.can_be_loanable(book, service.borrowing_repo.get_by_book(book.id))
    assert service.can_borrow_book(make_reader().id, book.id)

    make_loan(make_reader(), book, NOW - timedelta(days=2))
    assert not service.availability.can_be_loanable(book, service.borrowing_repo.get_by_book(book.id))
    assert service.check_borrow_eligibility(make_reader().id, book.id) == BorrowRule.NO_AVAILABLE_COPIES


@pytest.mark.parametrize("is_staff,active,expected", [
    (False, 1, None),
    (False, 2, BorrowRule.ACTIVE_LOAN_CAP),
    (True, 2, None),
    (True, 4, BorrowRule.ACTIVE_LOAN_CAP),
])
def test_active_loan_cap(service_for, make_domain, make_book, make_reader, make_loan, is_staff, active, expected):
    service = service_for(max_books_per_period=2)
    reader = make_reader(is_staff=is_staff)
    for i in range(active):
        make_loan(reader, make_book(make_domain(f"Domain {i}")), NOW - timedelta(days=20 + i))

    target = make_book(make_domain("Target"))
    assert service.check_borrow_eligibility(reader.id, target.id) == expected


class TestDomainSubtreeCap:

    @pytest.fixture
    def tree(self, make_domain):
        parent = make_domain("Science")
        return {
            "parent": parent,
            "a": make_domain("Physics", parent),
            "b": make_domain("Chemistry", parent),
            "other": make_domain("Literature"),
        }

    def _borrow_one_in_each_child(self, tree, reader, make_book, make_loan, borrowed_at):
        make_loan(reader, make_book(tree["a"]), borrowed_at)
        make_loan(reader, make_book(tree["b"]), borrowed_at)

    @pytest.mark.parametrize("target", ["parent", "a", "b"])
    def test_sibling_loans_count_against_shared_ancestor(
        self, service_for, tree, make_book, make_reader, make_loan, target
    ):
        service = service_for(max_books_per_domain=2)
        reader = make_reader()
        self._borrow_one_in_each_child(tree, reader, make_book, make_loan, NOW - timedelta(days=20))

        book = make_book(tree[target])
        assert service.check_borrow_eligibility(reader.id, book.id) == BorrowRule.DOMAIN_SUBTREE_CAP

    def test_unrelated_domain_is_not_capped(self, service_for, tree, make_book, make_reader, make_loan):
        service = service_for(max_books_per_domain=2)
        reader = make_reader()
        self._borrow_one_in_each_child(tree, reader, make_book, make_loan, NOW - timedelta(days=20))

        assert service.check_borrow_eligibility(reader.id, make_book(tree["other"]).id) is None

    def test_staff_cap_is_doubled(self, service_for, tree, make_book, make_reader, make_loan):
        service = service_for(max_books_per_domain=2)
        staff = make_reader(is_staff=True)
        self._borrow_one_in_each_child(tree, staff, make_book, make_loan, NOW - timedelta(days=20))
        make_loan(staff, make_book(tree["a"]), NOW - timedelta(days=15))

        assert service.check_borrow_eligibility(staff.id, make_book(tree["b"]).id) is None

        make_loan(staff, make_book(tree["b"]), NOW - timedelta(days=14))
        assert service.check_borrow_eligibility(staff.id, make_book(tree["b"]).id) == BorrowRule.DOMAIN_SUBTREE_CAP

    def test_loans_before_the_window_are_ignored(self, service_for, tree, make_book, make_reader, make_loan):
        service = service_for(max_books_per_domain=2, domain_limit_months=6)
        reader = make_reader()
        old = NOW - timedelta(days=7 * 31)
        make_loan(reader, make_book(tree["a"]), old, returned_at=old + timedelta(days=10))
        make_loan(reader, make_book(tree["b"]), old, returned_at=old + timedelta(days=10))

        assert service.check_borrow_eligibility(reader.id, make_book(tree["a"]).id) is None

    def test_other_readers_loans_do_not_count(self, service_for, tree, make_book, make_reader, make_loan):
        service = service_for(max_books_per_domain=2)
        self._borrow_one_in_each_child(tree, make_reader(), make_book, make_loan, NOW - timedelta(days=20))

        assert service.check_borrow_eligibility(make_reader().id, make_book(tree["a"]).id) is None


class TestReborrowCooldown:

    @pytest.mark.parametrize("is_staff,days_since_return,expected", [
        (False, 10, None),
        (False, 9, BorrowRule.REBORROW_COOLDOWN),
        (True, 5, None),
        (True, 4, BorrowRule.REBORROW_COOLDOWN),
    ])
    def test_boundary(
        self, service, make_domain, make_book, make_reader, make_loan, is_staff, days_since_return, expected
    ):
        book = make_book(make_domain("Science"))
        reader = make_reader(is_staff=is_staff)
        returned_at = NOW - timedelta(days=days_since_return)
        make_loan(reader, book, returned_at - timedelta(days=14), returned_at=returned_at)

        assert service.check_borrow_eligibility(reader.id, book.id) == expected

    def test_odd_cooldown_is_truncated_for_staff(self, service_for, make_domain, make_book, make_reader, make_loan):
        service = service_for(min_days_between_borrows=9)
        book = make_book(make_domain("Science"))
        staff = make_reader(is_staff=True)
        returned_at = NOW - timedelta(days=4)
        make_loan(staff, book, returned_at - timedelta(days=7), returned_at=returned_at)

        assert service.check_borrow_eligibility(staff.id, book.id) is None

    def test_open_loan_of_same_book_does_not_start_cooldown(
        self, service, make_domain, make_book, make_reader, make_loan
    ):
        book = make_book(make_domain("Science"))
        reader = make_reader()
        make_loan(reader, book, NOW - timedelta(days=2))

        assert service.check_borrow_eligibility(reader.id, book.id) is None

    def test_only_the_most_recent_returned_loan_counts(
        self, service, make_domain, make_book, make_reader, make_loan
    ):
        book = make_book(make_domain("Science"))
        reader = make_reader()
        make_loan(reader, book, NOW - timedelta(days=60), returned_at=NOW - timedelta(days=2))
        make_loan(reader, book, NOW - timedelta(days=40), returned_at=NOW - timedelta(days=20))

        # Latest by borrowing date was returned 20 days ago
        assert service.check_borrow_eligibility(reader.id, book.id) is None


class TestDailyCap:

    def test_rejects_at_cap(self, service_for, make_domain, make_book, make_reader, make_loan):
        service = service_for(max_books_per_day=2)
        reader = make_reader()
        for i in range(2):
            make_loan(reader, make_book(make_domain(f"Domain {i}")), NOW - timedelta(hours=2))

        assert service.check_borrow_eligibility(reader.id, make_book(make_domain("Target")).id) == BorrowRule.DAILY_CAP

    def test_loans_from_yesterday_do_not_count(self, service_for, make_domain, make_book, make_reader, make_loan):
        service = service_for(max_books_per_day=2)
        reader = make_reader()
        for i in range(2):
            make_loan(reader, make_book(make_domain(f"Domain {i}")), NOW - timedelta(hours=13))

        assert service.check_borrow_eligibility(reader.id, make_book(make_domain("Target")).id) is None

    def test_staff_have_no_daily_cap(self, service_for, make_domain, make_book, make_reader, make_loan):
        service = service_for(max_books_per_day=2)
        staff = make_reader(is_staff=True)
        for i in range(3):
            make_loan(staff, make_book(make_domain(f"Domain {i}")), NOW - timedelta(hours=2))

        assert service.check_borrow_eligibility(staff.id, make_book(make_domain("Target")).id) is None

    def test_every_loan_made_today_counts(self, service_for, make_domain, make_book, make_reader, make_loan):
        service = service_for(max_books_per_day=2)
        for i in range(3):
            make_loan(make_reader(), make_book(make_domain(f"Domain {i}")), NOW - timedelta(hours=2))

        target = make_book(make_domain("Target"))
        assert service.check_borrow_eligibility(make_reader().id, target.id) == BorrowRule.DAILY_CAP


class InMemoryLibrary(IReaderRepository, IBookRepository, IBorrowingRepository, IDomainRepository):
    """Plain-list store satisfying every lookup contract"""

    def __init__(self, readers=(), books=(), loans=(), domains=()):
        self.readers = {r.id: r for r in readers}
        self.books = {b.id: b for b in books}
        self.domains = {d.id: d for d in domains}
        self.loans = list(loans)

    def get_by_id(self, id):
        return self.readers.get(id) or self.books.get(id) or self.domains.get(id)

    def get_children(self, parent_id):
        return [d for d in self.domains.values() if d.parent_domain_id == parent_id]

    def get_by_domain(self, domain_id):
        return [b for b in self.books.values() if domain_id in b.domain_ids]

    def get_active_by_reader(self, reader_id):
        return [b for b in self.loans if b.reader_id == reader_id and b.is_active]

    def get_by_book(self, book_id):
        return [b for b in self.loans if b.book_id == book_id]

    def get_by_date_range(self, start, end):
        return [b for b in self.loans if start <= b.borrowing_date <= end]

    def get_overdue(self, now):
        return [b for b in self.loans if b.is_active and b.due_date < now]

    def add(self, borrowing):
        self.loans.append(borrowing)
        return borrowing

    def update(self, borrowing):
        return borrowing


class TestInjectedRepositories:

    @pytest.fixture
    def catalog(self):
        domain = BookDomain(id=1, name="Science", parent_domain_id=None)
        reader = Reader(id=10, first_name="Ana", last_name="Pop", email="ana@example.org", is_staff=False)
        # Ids are disjoint so one store can serve every lookup
        book = Book(id=20, title="Optics", isbn="9780000000999", total_copies=1,
                    reading_room_only_copies=0, domains=[domain])
        return domain, reader, book

    def _service(self, store, clock):
        return EligibilityService(
            None, LibraryConfiguration(), clock,
            reader_repo=store, book_repo=store, borrowing_repo=store, domain_repo=store,
        )

    def test_rules_run_against_supplied_store(self, catalog, clock):
        domain, reader, book = catalog
        store = InMemoryLibrary(readers=[reader], books=[book], domains=[domain])

        assert self._service(store, clock).check_borrow_eligibility(reader.id, book.id) is None

    def test_loans_in_supplied_store_are_counted(self, catalog, clock):
        domain, reader, book = catalog
        loan = Borrowing(id=30, reader_id=99, book_id=book.id, borrowing_date=NOW - timedelta(days=2),
                         due_date=NOW + timedelta(days=12), return_date=None, is_active=True)
        store = InMemoryLibrary(readers=[reader], books=[book], domains=[domain], loans=[loan])

        assert self._service(store, clock).check_borrow_eligibility(reader.id, book.id) == BorrowRule.NO_AVAILABLE_COPIES
