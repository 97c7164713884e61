"""
Base repository shared by the catalog and loan repositories.
"""

from typing import Generic, TypeVar, List, Optional, Type
from sqlalchemy.orm import Session

from .specifications import Specification

T = TypeVar('T')


class BaseRepository(Generic[T]):
    """
    Generic data access for one mapped model.

    Writes only flush so ids are assigned and constraints are checked;
    committing is left to the calling service, which owns the unit of work.
    """

    def __init__(self, db: Session, model: Type[T]):
        """
        Args:
            db: SQLAlchemy session shared with the calling service
            model: Mapped class this repository serves
        """
        self.db = db
        self.model = model

    def create(self, obj: T) -> T:
        """Add a new record and flush it so its id is assigned."""
        self.db.add(obj)
        self.db.flush()
        return obj

    def get_by_id(self, id: int) -> Optional[T]:
        return self.db.get(self.model, id)

    def get_all(self, limit: Optional[int] = None, offset: int = 0) -> List[T]:
        """
        Page through every record in id order.

        Args:
            limit: Maximum number of records; None for all
            offset: Number of records to skip
        """
        query = self.db.query(self.model).order_by(self.model.id)
        if offset:
            query = query.offset(offset)
        if limit:
            query = query.limit(limit)
        return query.all()

    def update(self, obj: T) -> T:
        """Flush pending changes of an already-attached record."""
        self.db.flush()
        return obj

    def delete(self, obj: T) -> None:
        self.db.delete(obj)
        self.db.flush()

    def find(self, spec: Specification[T]) -> List[T]:
        """
        Retrieve records satisfying a specification.

        Args:
            spec: Specification translated to a SQL filter

        Returns:
            Matching records ordered by id
        """
        return self.db.query(self.model).filter(spec.to_sql_filter()).order_by(self.model.id).all()
