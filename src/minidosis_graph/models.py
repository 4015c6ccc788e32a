# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Core data models for the topic graph.

This module defines the foundational data structures used throughout the system:
- LinkType: Closed set of relation tags between nodes
- INVERSE_LINK_TYPES: Inverse of every link type (base <-> derived, ...)
- LINK_SET_NAMES: Node attribute holding each link type
- Node: One topic, with its five relation sets

Nodes reference each other by id only. The snapshot map that owns them is
the single source of Node values.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

logger = logging.getLogger(__name__)


class LinkType:
    """Types of links between nodes.

    Design: Using class constants (not Enum) for JSON-compatible strings.
    """

    BASE = "base"  # node specializes the target
    DERIVED = "derived"  # target specializes the node
    CHILD = "child"  # node groups the target
    PARENT = "parent"  # target groups the node
    RELATED = "related"  # symmetric


INVERSE_LINK_TYPES: Dict[str, str] = {
    LinkType.BASE: LinkType.DERIVED,
    LinkType.DERIVED: LinkType.BASE,
    LinkType.CHILD: LinkType.PARENT,
    LinkType.PARENT: LinkType.CHILD,
    LinkType.RELATED: LinkType.RELATED,
}

LINK_SET_NAMES: Dict[str, str] = {
    LinkType.BASE: "bases",
    LinkType.DERIVED: "derived",
    LinkType.CHILD: "children",
    LinkType.PARENT: "parents",
    LinkType.RELATED: "related",
}

# Order used for serialization and display
RELATION_SETS = ("bases", "derived", "parents", "children", "related")


class UnknownLinkType(Exception):
    """Raised when a link tag is not one of the LinkType constants.

    Link types are internal vocabulary, so this always indicates a bug in
    the caller rather than a malformed content file.
    """

    def __init__(self, link_type: str):
        super().__init__(f"unknown link type: {link_type!r}")
        self.link_type = link_type


def inverse_of(link_type: str) -> str:
    """Return the inverse of a link type.

    Raises:
        UnknownLinkType: If link_type is not a LinkType constant.
    """
    try:
        return INVERSE_LINK_TYPES[link_type]
    except KeyError:
        raise UnknownLinkType(link_type) from None


@dataclass
class Node:
    """One topic in the graph.

    A node with no source_path is a placeholder: it exists only because
    another node referenced its id.
    """

    id: str
    title: Optional[str] = None
    content: List[Any] = field(default_factory=list)
    source_path: Optional[str] = None

    bases: Set[str] = field(default_factory=set)
    derived: Set[str] = field(default_factory=set)
    parents: Set[str] = field(default_factory=set)
    children: Set[str] = field(default_factory=set)
    related: Set[str] = field(default_factory=set)

    @property
    def is_placeholder(self) -> bool:
        """True if no content file has defined this node."""
        return self.source_path is None

    def _link_set(self, link_type: str) -> Set[str]:
        try:
            name = LINK_SET_NAMES[link_type]
        except KeyError:
            raise UnknownLinkType(link_type) from None
        link_set: Set[str] = getattr(self, name)
        return link_set

    def add_link(self, link_type: str, other_id: str) -> None:
        """Add a single outgoing link. Idempotent.

        Raises:
            UnknownLinkType: If link_type is not a LinkType constant.
        """
        self._link_set(link_type).add(other_id)

    def linked_ids(self, link_type: str) -> Set[str]:
        """Return a copy of the ids linked through link_type."""
        return set(self._link_set(link_type))

    def freeze(self) -> None:
        """Replace the relation sets with frozensets.

        Called on every node of a snapshot before it is published; add_link
        raises AttributeError afterwards. content is left as built and must
        be treated as read-only by readers.
        """
        for name in RELATION_SETS:
            setattr(self, name, frozenset(getattr(self, name)))

    def describe(self) -> str:
        """Render a short human-readable block for this node.

        Example:
            sets {
              title: "Sets"
              children: { intersection union }
            }
        """
        lines = [f"{self.id} {{"]
        if self.title:
            lines.append(f'  title: "{self.title}"')
        for name in ("bases", "children", "related"):
            ids = sorted(getattr(self, name))
            if ids:
                lines.append(f"  {name}: {{ {' '.join(ids)} }}")
        lines.append("}")
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict with relation ids only.

        Use Snapshot.node_to_dict() for the form with resolved titles.
        """
        result: Dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "content": self.content,
        }
        if self.source_path is not None:
            result["filename"] = self.source_path
        for name in RELATION_SETS:
            result[name] = sorted(getattr(self, name))
        return result
