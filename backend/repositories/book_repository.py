"""
Book repository for catalog data access operations.
"""

from typing import Iterable, List, Optional
from sqlalchemy.orm import Session

from models import Book, BookDomain
from services.interfaces import IBookRepository
from .base_repository import BaseRepository


class BookRepository(BaseRepository[Book], IBookRepository):
    """Repository for Book model operations."""

    def __init__(self, db: Session):
        super().__init__(db, Book)

    def get_by_isbn(self, isbn: str) -> Optional[Book]:
        return self.db.query(self.model).filter(self.model.isbn == isbn).first()

    def get_by_domain(self, domain_id: int) -> List[Book]:
        """
        Get books tagged directly with a domain.

        Args:
            domain_id: Domain id

        Returns:
            Books ordered by id
        """
        return self.db.query(self.model).filter(
            self.model.domains.any(BookDomain.id == domain_id)
        ).order_by(self.model.id).all()

    def get_by_domains(self, domain_ids: Iterable[int]) -> List[Book]:
        """
        Get books tagged with any of several domains, each book once.
        """
        ids = list(domain_ids)
        if not ids:
            return []
        return self.db.query(self.model).filter(
            self.model.domains.any(BookDomain.id.in_(ids))
        ).order_by(self.model.id).all()
