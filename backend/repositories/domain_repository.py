"""
Domain repository for category-tree data access operations.
"""

from typing import List
from sqlalchemy.orm import Session

from models import BookDomain
from services.interfaces import IDomainRepository
from .base_repository import BaseRepository


class DomainRepository(BaseRepository[BookDomain], IDomainRepository):
    """Repository for BookDomain model operations."""

    def __init__(self, db: Session):
        super().__init__(db, BookDomain)

    def get_children(self, parent_id: int) -> List[BookDomain]:
        """
        Get the direct subdomains of a domain.

        Args:
            parent_id: Parent domain id

        Returns:
            Child domains ordered by id
        """
        return self.db.query(self.model).filter(
            self.model.parent_domain_id == parent_id
        ).order_by(self.model.id).all()

    def get_roots(self) -> List[BookDomain]:
        """Get domains without a parent."""
        return self.db.query(self.model).filter(
            self.model.parent_domain_id.is_(None)
        ).order_by(self.model.id).all()

    def has_books(self, domain_id: int) -> bool:
        domain = self.get_by_id(domain_id)
        return domain is not None and len(domain.books) > 0
