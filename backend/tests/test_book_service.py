from datetime import timedelta

import pytest

from config.library_config import LibraryConfiguration
from constants import BorrowRule
from exceptions import BusinessRuleViolation, NotFoundError, ValidationError
from models import Book
from services.book_service import BookService
from conftest import NOW


@pytest.fixture
def service(db_session):
    return BookService(db_session, LibraryConfiguration.build(max_domains_per_book=2))


@pytest.fixture
def tree(make_domain):
    science = make_domain("Science")
    physics = make_domain("Physics", science)
    return {
        "science": science,
        "physics": physics,
        "quantum": make_domain("Quantum", physics),
        "chemistry": make_domain("Chemistry", science),
        "literature": make_domain("Literature"),
    }


def new_book(isbn="9780000000001", total=3, reading_room=0):
    return Book(title="New Book", isbn=isbn, total_copies=total, reading_room_only_copies=reading_room)


class TestCreateBook:

    def test_creates_book_with_domains(self, service, tree):
        book = service.create_book(new_book(), [tree["physics"].id, tree["literature"].id])

        assert book.id is not None
        assert book.domain_ids == {tree["physics"].id, tree["literature"].id}

    def test_requires_a_domain(self, service):
        with pytest.raises(ValidationError):
            service.create_book(new_book(), [])

    def test_domain_count_is_capped(self, service, tree):
        with pytest.raises(BusinessRuleViolation) as exc_info:
            service.create_book(new_book(), [tree["physics"].id, tree["chemistry"].id, tree["literature"].id])
        assert exc_info.value.rule == BorrowRule.MAX_DOMAINS_PER_BOOK

    def test_unknown_domain(self, service):
        with pytest.raises(NotFoundError):
            service.create_book(new_book(), [999])

    @pytest.mark.parametrize("first,second", [
        ("science", "physics"),
        ("quantum", "science"),
    ])
    def test_rejects_ancestor_and_descendant_together(self, service, tree, first, second):
        with pytest.raises(BusinessRuleViolation) as exc_info:
            service.create_book(new_book(), [tree[first].id, tree[second].id])
        assert exc_info.value.rule == BorrowRule.DOMAIN_HIERARCHY_CONFLICT

    def test_siblings_are_allowed(self, service, tree):
        book = service.create_book(new_book(), [tree["physics"].id, tree["chemistry"].id])
        assert len(book.domains) == 2

    def test_duplicate_isbn(self, service, tree):
        service.create_book(new_book(), [tree["physics"].id])
        with pytest.raises(BusinessRuleViolation) as exc_info:
            service.create_book(new_book(), [tree["chemistry"].id])
        assert exc_info.value.rule == BorrowRule.DUPLICATE_ISBN

    def test_reading_room_copies_cannot_exceed_total(self, service, tree):
        with pytest.raises(ValidationError):
            service.create_book(new_book(total=2, reading_room=3), [tree["physics"].id])


def test_validate_book_domains(service, tree, make_book):
    assert service.validate_book_domains(make_book(tree["physics"], tree["chemistry"]))
    assert not service.validate_book_domains(make_book(tree["physics"], tree["quantum"]))
    assert not service.validate_book_domains(make_book())


def test_update_book_rechecks_domains(service, tree, make_book):
    book = make_book(tree["physics"])
    book.domains.append(tree["science"])

    with pytest.raises(BusinessRuleViolation):
        service.update_book(book)


class TestQueries:

    def test_books_in_domain_include_descendants_once(self, service, tree, make_book):
        in_physics = make_book(tree["physics"])
        in_quantum_and_chemistry = make_book(tree["quantum"], tree["chemistry"])
        make_book(tree["literature"])

        books = service.get_books_in_domain(tree["science"].id)
        assert [b.id for b in books] == [in_physics.id, in_quantum_and_chemistry.id]

        assert [b.id for b in service.get_books_directly_in_domain(tree["physics"].id)] == [in_physics.id]
        assert service.get_books_in_domain(999) == []

    def test_availability_queries(self, service, tree, make_book, make_reader, make_loan):
        lent_out = make_book(tree["physics"], total=1)
        make_loan(make_reader(), lent_out, NOW - timedelta(days=1))
        reference = make_book(tree["chemistry"], total=2, reading_room=2)
        plenty = make_book(tree["literature"], total=5)

        assert service.get_available_copies(lent_out.id) == 0
        assert service.get_available_copies(plenty.id) == 5
        assert service.get_available_copies(999) == 0
        assert service.is_loanable(plenty.id)
        assert not service.is_loanable(reference.id)
        assert {b.id for b in service.get_books_with_no_copies_available()} == {lent_out.id, reference.id}
        assert [b.id for b in service.get_reading_room_only_books()] == [reference.id]
        assert [b.id for b in service.get_books_ordered_by_availability()] == [plenty.id]
