"""
Domain Hierarchy

Traversals over the category forest. Nodes are addressed by integer id and
carry only a parent id; children come from the lookup, never from object
back-references. Every walk keeps a visited set so corrupt parent links
(cycles) terminate instead of looping.
"""

import logging
from collections import deque
from typing import List, Optional, Protocol, Sequence, Set

from constants import HierarchyLimits

logger = logging.getLogger(__name__)


class DomainNode(Protocol):
    id: int
    parent_domain_id: Optional[int]


class DomainLookup(Protocol):
    """Read capability the hierarchy needs from the domain store."""

    def get_by_id(self, id: int) -> Optional[DomainNode]:
        ...

    def get_children(self, parent_id: int) -> Sequence[DomainNode]:
        ...


class DomainHierarchy:
    """Ancestor and descendant queries over a DomainLookup."""

    def __init__(self, lookup: DomainLookup, max_depth: int = HierarchyLimits.MAX_DEPTH):
        self.lookup = lookup
        self.max_depth = max_depth

    def ancestors(self, node_id: int) -> List[DomainNode]:
        """
        Return the chain from a node up to its root, inclusive of the node.

        Args:
            node_id: Starting domain id

        Returns:
            Nodes ordered child-first; empty if node_id does not resolve
        """
        chain: List[DomainNode] = []
        seen: Set[int] = set()
        current = self.lookup.get_by_id(node_id)

        while current is not None:
            if current.id in seen or len(chain) >= self.max_depth:
                logger.warning(f"Domain parent chain from {node_id} loops or exceeds {self.max_depth} levels; stopping at {current.id}")
                break
            seen.add(current.id)
            chain.append(current)
            if current.parent_domain_id is None:
                break
            current = self.lookup.get_by_id(current.parent_domain_id)

        return chain

    def proper_ancestors(self, node_id: int) -> List[DomainNode]:
        """Ancestors excluding the node itself."""
        return self.ancestors(node_id)[1:]

    def descendants(self, node_id: int) -> List[DomainNode]:
        """
        Return every node below node_id, breadth-first, excluding node_id.
        """
        found: List[DomainNode] = []
        visited: Set[int] = {node_id}
        queue = deque([node_id])

        while queue:
            parent_id = queue.popleft()
            for child in self.lookup.get_children(parent_id):
                if child.id in visited:
                    continue
                visited.add(child.id)
                found.append(child)
                queue.append(child.id)

        return found

    def descendant_ids(self, node_id: int) -> Set[int]:
        """Ids of every node below node_id, excluding node_id."""
        return {node.id for node in self.descendants(node_id)}

    def subtree_ids(self, node_id: int) -> Set[int]:
        """Ids of node_id and everything below it."""
        return {node_id} | self.descendant_ids(node_id)

    def is_ancestor_of(self, ancestor_id: int, node_id: int) -> bool:
        """
        True iff walking up from node_id's parent reaches ancestor_id.

        A node is not its own ancestor.
        """
        return any(node.id == ancestor_id for node in self.proper_ancestors(node_id))

    def are_related(self, first_id: int, second_id: int) -> bool:
        """True if either node is an ancestor of the other."""
        return self.is_ancestor_of(first_id, second_id) or self.is_ancestor_of(second_id, first_id)
