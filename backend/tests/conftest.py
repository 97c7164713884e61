import sys
from pathlib import Path

# Add backend directory to Python path FIRST
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

# Now import after path is set
import itertools
from datetime import datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from models import Base, Book, BookDomain, Borrowing, Reader
from config.library_config import LibraryConfiguration


NOW = datetime(2024, 6, 15, 12, 0, 0)


@pytest.fixture
def db_session():
    """Create in-memory database for testing"""
    engine = create_engine('sqlite:///:memory:')
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine)
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def clock():
    """Fixed current moment for rolling windows"""
    return lambda: NOW


@pytest.fixture
def config():
    return LibraryConfiguration()


@pytest.fixture
def make_domain(db_session):
    def _make(name, parent=None):
        domain = BookDomain(name=name, parent_domain_id=parent.id if parent else None)
        db_session.add(domain)
        db_session.flush()
        return domain
    return _make


@pytest.fixture
def make_book(db_session):
    counter = itertools.count(1)

    def _make(*domains, total=10, reading_room=0, title=None):
        n = next(counter)
        book = Book(
            title=title or f"Book {n}",
            isbn=f"97800000{n:05d}",
            total_copies=total,
            reading_room_only_copies=reading_room,
            domains=list(domains),
        )
        db_session.add(book)
        db_session.flush()
        return book
    return _make


@pytest.fixture
def make_reader(db_session):
    counter = itertools.count(1)

    def _make(is_staff=False):
        n = next(counter)
        reader = Reader(first_name=f"Reader{n}", last_name="Test", email=f"reader{n}@example.org", is_staff=is_staff)
        db_session.add(reader)
        db_session.flush()
        return reader
    return _make


@pytest.fixture
def make_loan(db_session):
    """Persist a loan directly, bypassing the lending rules"""
    def _make(reader, book, borrowed_at, returned_at=None, staff=None, days=14, extension_days=0):
        loan = Borrowing(
            reader=reader,
            staff=staff,
            book=book,
            borrowing_date=borrowed_at,
            due_date=borrowed_at + timedelta(days=days),
            return_date=returned_at,
            is_active=returned_at is None,
            initial_borrowing_days=days,
            total_extension_days=extension_days,
        )
        db_session.add(loan)
        db_session.flush()
        return loan
    return _make
