"""
Book Domain Service

Maintains the domain tree and answers hierarchy queries about it.
"""

from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from constants import BorrowRule
from domain.hierarchy import DomainHierarchy
from exceptions import BusinessRuleViolation, DatabaseError, NotFoundError, ValidationError
from models import BookDomain
from repositories import DomainRepository
from utils.logging_utils import StructuredLogger, log_operation

logger = StructuredLogger(__name__)


class BookDomainService:
    """Service for domain tree maintenance."""

    def __init__(self, db: Session):
        self.db = db
        self.domain_repo = DomainRepository(db)
        self.hierarchy = DomainHierarchy(self.domain_repo)

    def get_all_domains(self) -> List[BookDomain]:
        return self.domain_repo.get_all()

    def get_domain(self, domain_id: int) -> Optional[BookDomain]:
        return self.domain_repo.get_by_id(domain_id)

    def get_root_domains(self) -> List[BookDomain]:
        return self.domain_repo.get_roots()

    def get_subdomains(self, parent_domain_id: int) -> List[BookDomain]:
        return self.domain_repo.get_children(parent_domain_id)

    def get_ancestor_domains(self, domain_id: int) -> List[BookDomain]:
        """
        Get the parent chain of a domain, nearest first.

        The domain itself is not included; an unknown id yields an empty list.
        """
        return self.hierarchy.proper_ancestors(domain_id)

    def get_descendant_domains(self, domain_id: int) -> List[BookDomain]:
        """Get every domain below a domain, breadth-first."""
        return self.hierarchy.descendants(domain_id)

    @log_operation("create_domain")
    def create_domain(self, name: Optional[str], parent_domain_id: Optional[int] = None) -> BookDomain:
        """
        Create a domain, optionally under a parent.

        Args:
            name: Domain name; surrounding whitespace is stripped
            parent_domain_id: Parent domain, or None for a root domain

        Returns:
            The persisted domain

        Raises:
            ValidationError: If the name is empty
            NotFoundError: If the parent does not exist
            DatabaseError: If the domain cannot be saved
        """
        name = name.strip() if name else ''
        if not name:
            raise ValidationError(
                "Domain name is required and cannot be empty or whitespace",
                invalid_fields={"name": "required"}
            )

        if parent_domain_id is not None and self.domain_repo.get_by_id(parent_domain_id) is None:
            raise NotFoundError("Parent domain", parent_domain_id)

        domain = BookDomain(name=name, parent_domain_id=parent_domain_id)
        self._commit("create_domain", lambda: self.domain_repo.create(domain))
        logger.info(f"Created domain {domain.id} ({domain.name})", extra={"domain_id": domain.id})
        return domain

    @log_operation("update_domain")
    def update_domain(self, domain_id: int, name: Optional[str], parent_domain_id: Optional[int] = None) -> BookDomain:
        """
        Rename a domain and set its parent.

        Only direct self-parenting is rejected; deeper cycles are not searched for.

        Raises:
            ValidationError: If the name is empty
            NotFoundError: If the domain or the new parent does not exist
            BusinessRuleViolation: If the domain would become its own parent
            DatabaseError: If the change cannot be saved
        """
        if not name or not name.strip():
            raise ValidationError("Domain name is required", invalid_fields={"name": "required"})

        if parent_domain_id is not None and parent_domain_id == domain_id:
            raise BusinessRuleViolation(
                BorrowRule.DOMAIN_SELF_PARENT.value,
                "A domain cannot be its own parent"
            )

        domain = self.domain_repo.get_by_id(domain_id)
        if domain is None:
            raise NotFoundError("Domain", domain_id)

        if parent_domain_id is not None and self.domain_repo.get_by_id(parent_domain_id) is None:
            raise NotFoundError("Parent domain", parent_domain_id)

        domain.name = name.strip()
        domain.parent_domain_id = parent_domain_id
        self._commit("update_domain", lambda: self.domain_repo.update(domain))
        return domain

    @log_operation("delete_domain")
    def delete_domain(self, domain_id: int) -> None:
        """
        Delete a leaf domain that no book is tagged with.

        Deleting an unknown id does nothing.

        Raises:
            BusinessRuleViolation: If the domain has subdomains or books
            DatabaseError: If the deletion cannot be saved
        """
        domain = self.domain_repo.get_by_id(domain_id)
        if domain is None:
            return

        if self.domain_repo.get_children(domain_id):
            raise BusinessRuleViolation(BorrowRule.DOMAIN_IN_USE.value, "Cannot delete domain with subdomains")

        if self.domain_repo.has_books(domain_id):
            raise BusinessRuleViolation(BorrowRule.DOMAIN_IN_USE.value, "Cannot delete domain with books")

        self._commit("delete_domain", lambda: self.domain_repo.delete(domain))
        logger.info(f"Deleted domain {domain_id}", extra={"domain_id": domain_id})

    def _commit(self, operation: str, write) -> None:
        try:
            write()
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Database error during {operation}: {e}", extra={"operation": operation}, exc_info=True)
            raise DatabaseError(operation, f"Failed to {operation.replace('_', ' ')}: {e}") from e
