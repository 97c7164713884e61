"""
Specification Pattern Implementation

Encapsulates a query criterion so the same rule can run as a SQL filter in a
repository and as an in-memory predicate over records already loaded.

Specifications compose with `&`. Chained `&` flattens into a single AllOf
rather than nesting pairs.
"""

from abc import ABC, abstractmethod
from typing import Generic, Tuple, TypeVar
from sqlalchemy import and_


T = TypeVar('T')


class Specification(ABC, Generic[T]):
    """A single query criterion over records of type T."""

    @abstractmethod
    def is_satisfied_by(self, candidate: T) -> bool:
        """
        Evaluate the criterion against a loaded record.

        Args:
            candidate: Record to check

        Returns:
            True if the record matches
        """

    @abstractmethod
    def to_sql_filter(self):
        """Express the criterion as a SQLAlchemy filter clause."""

    def __and__(self, other: "Specification[T]") -> "AllOf[T]":
        return AllOf(*_parts(self), *_parts(other))


def _parts(spec: Specification) -> Tuple[Specification, ...]:
    return spec.specs if isinstance(spec, AllOf) else (spec,)


class AllOf(Specification[T]):
    """Matches when every member matches."""

    def __init__(self, *specs: Specification[T]):
        self.specs = specs

    def is_satisfied_by(self, candidate: T) -> bool:
        return all(spec.is_satisfied_by(candidate) for spec in self.specs)

    def to_sql_filter(self):
        return and_(*(spec.to_sql_filter() for spec in self.specs))
