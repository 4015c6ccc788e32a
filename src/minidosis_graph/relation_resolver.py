# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Relation resolver: merges node headers into a bidirectional node set.

For every relation a header declares, the resolver records the forward
link on the declaring node and the inverse link on the referenced node:

    bases    -> base    / derived
    children -> child   / parent
    related  -> related / related

Referenced ids that no file has defined yet become placeholder nodes, so
the final edge set does not depend on the order files are processed in.
A placeholder keeps its identity and edges when its own file is merged
later.

Thread Safety:
- All mutations go through _lock, so parallel loaders may share a resolver.
"""

import logging
from threading import Lock
from typing import Any, Dict, Iterable, List, Mapping, Optional

from minidosis_graph.models import LinkType, Node, UnknownLinkType, inverse_of

logger = logging.getLogger(__name__)

# Header field -> link type recorded on the declaring node
HEADER_LINK_FIELDS: Dict[str, str] = {
    "bases": LinkType.BASE,
    "children": LinkType.CHILD,
    "related": LinkType.RELATED,
}

__all__ = ["HEADER_LINK_FIELDS", "RelationResolver", "UnknownLinkType"]


class RelationResolver:
    """Builds the id -> Node map for one graph snapshot.

    Usage:
        resolver = RelationResolver()
        resolver.merge("sets", {"title": "Sets", "children": ["union"]}, content)
        nodes = resolver.nodes
    """

    def __init__(self) -> None:
        self._nodes: Dict[str, Node] = {}
        self._lock = Lock()

    @property
    def nodes(self) -> Dict[str, Node]:
        """The node map under construction (owned by the resolver)."""
        return self._nodes

    def get_or_create(self, node_id: str) -> Node:
        """Return the node for node_id, creating a placeholder if absent."""
        with self._lock:
            return self._get_or_create(node_id)

    def _get_or_create(self, node_id: str) -> Node:
        node = self._nodes.get(node_id)
        if node is None:
            node = Node(id=node_id)
            self._nodes[node_id] = node
        return node

    def merge(
        self,
        node_id: str,
        header: Mapping[str, Any],
        content: Optional[List[Any]] = None,
        source_path: Optional[str] = None,
    ) -> Node:
        """Merge a parsed header into the node set.

        Sets title, content and source path on the node (creating it if
        needed), then adds every declared link together with its inverse.

        Args:
            node_id: Id of the declaring node.
            header: Mapping with optional "title" and id-list fields
                "bases", "children", "related" (lists of ids).
            content: Content tree for the node.
            source_path: Absolute path of the defining file.

        Returns:
            The merged node.
        """
        with self._lock:
            node = self._get_or_create(node_id)

            if (
                source_path is not None
                and node.source_path is not None
                and node.source_path != source_path
            ):
                logger.warning(
                    f"Node '{node_id}' defined twice: {node.source_path} and {source_path}; "
                    f"keeping the latter"
                )

            node.title = header.get("title")
            node.content = content if content is not None else []
            if source_path is not None:
                node.source_path = source_path

            for field_name, link_type in HEADER_LINK_FIELDS.items():
                ids = header.get(field_name)
                if ids:
                    self._add_links(node, link_type, ids)

            return node

    def add_links(self, node_id: str, link_type: str, other_ids: Iterable[str]) -> None:
        """Add links of one type from node_id to each of other_ids.

        Raises:
            UnknownLinkType: If link_type is not a LinkType constant.
        """
        with self._lock:
            self._add_links(self._get_or_create(node_id), link_type, other_ids)

    def _add_links(self, node: Node, link_type: str, other_ids: Iterable[str]) -> None:
        inverse = inverse_of(link_type)
        for other_id in other_ids:
            node.add_link(link_type, other_id)
            self._get_or_create(other_id).add_link(inverse, node.id)

    def __len__(self) -> int:
        return len(self._nodes)
