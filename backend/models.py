from sqlalchemy import Column, String, Integer, Boolean, Text, DateTime, ForeignKey, CheckConstraint, Index, Table
from sqlalchemy.orm import relationship
from datetime import datetime
from database import Base


book_domains = Table(
    'book_domains',
    Base.metadata,
    Column('book_id', Integer, ForeignKey('books.id', ondelete='CASCADE'), primary_key=True),
    Column('domain_id', Integer, ForeignKey('domains.id', ondelete='CASCADE'), primary_key=True),
)


class BookDomain(Base):
    """
    A node of the category forest books are classified under.

    Only the parent link is stored. Children are derived by querying on
    parent_domain_id, so the tree never holds a bidirectional object reference.
    """
    __tablename__ = 'domains'

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    parent_domain_id = Column(Integer, ForeignKey('domains.id'), nullable=True)

    books = relationship("Book", secondary=book_domains, back_populates="domains")

    __table_args__ = (
        CheckConstraint("name != ''"),
        Index('idx_domains_parent', 'parent_domain_id'),
    )

    def __repr__(self) -> str:
        return f"<BookDomain id={self.id} name={self.name!r} parent={self.parent_domain_id}>"


class Book(Base):
    __tablename__ = 'books'

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String, nullable=False)
    description = Column(Text, default='')
    isbn = Column(String, nullable=False, unique=True)
    total_copies = Column(Integer, nullable=False, default=0)
    reading_room_only_copies = Column(Integer, nullable=False, default=0)

    domains = relationship("BookDomain", secondary=book_domains, back_populates="books")
    borrowings = relationship("Borrowing", back_populates="book")

    __table_args__ = (
        CheckConstraint("total_copies >= 0"),
        CheckConstraint("reading_room_only_copies >= 0"),
        CheckConstraint("reading_room_only_copies <= total_copies", name='ck_book_reading_room_within_total'),
    )

    @property
    def domain_ids(self) -> set[int]:
        return {d.id for d in self.domains}


class Reader(Base):
    __tablename__ = 'readers'

    id = Column(Integer, primary_key=True, autoincrement=True)
    first_name = Column(String, nullable=False, default='')
    last_name = Column(String, nullable=False, default='')
    address = Column(String, default='')
    phone_number = Column(String, default='')
    email = Column(String, default='')
    registration_date = Column(DateTime, default=datetime.now)
    is_staff = Column(Boolean, nullable=False, default=False)

    borrowings = relationship(
        "Borrowing",
        back_populates="reader",
        foreign_keys="Borrowing.reader_id",
    )
    borrowings_given = relationship(
        "Borrowing",
        back_populates="staff",
        foreign_keys="Borrowing.staff_id",
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class Borrowing(Base):
    """
    A single loan of one book to one reader.

    Loan States:
    - ACTIVE: is_active=True, return_date is NULL. Extensions keep it ACTIVE.
    - CLOSED: is_active=False, return_date set. Terminal.
    """
    __tablename__ = 'borrowings'

    id = Column(Integer, primary_key=True, autoincrement=True)
    reader_id = Column(Integer, ForeignKey('readers.id'), nullable=False)
    staff_id = Column(Integer, ForeignKey('readers.id'), nullable=True)  # Staff member who processed the loan
    book_id = Column(Integer, ForeignKey('books.id'), nullable=False)
    borrowing_date = Column(DateTime, nullable=False)
    due_date = Column(DateTime, nullable=False)
    return_date = Column(DateTime, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    total_extension_days = Column(Integer, nullable=False, default=0)
    last_extension_date = Column(DateTime, nullable=True)
    initial_borrowing_days = Column(Integer, nullable=False, default=0)

    reader = relationship("Reader", back_populates="borrowings", foreign_keys=[reader_id])
    staff = relationship("Reader", back_populates="borrowings_given", foreign_keys=[staff_id])
    book = relationship("Book", back_populates="borrowings")

    __table_args__ = (
        CheckConstraint("total_extension_days >= 0"),
        Index('idx_borrowings_reader', 'reader_id'),
        Index('idx_borrowings_book', 'book_id'),
        Index('idx_borrowings_date', 'borrowing_date'),
    )

    def is_overdue(self, now: datetime) -> bool:
        return bool(self.is_active) and self.due_date < now
