"""
Reader repository.
"""

from sqlalchemy.orm import Session

from models import Reader
from services.interfaces import IReaderRepository
from .base_repository import BaseRepository


class ReaderRepository(BaseRepository[Reader], IReaderRepository):
    """Repository for Reader model operations."""

    def __init__(self, db: Session):
        super().__init__(db, Reader)
