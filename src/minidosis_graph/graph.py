# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Graph facade: atomic rebuilds and read-only queries.

A Graph always holds exactly one published Snapshot. rebuild() constructs
a new node map and image store privately, then publishes them with one
reference assignment. Readers never see a partially built graph, and a
failed rebuild leaves the previous snapshot in place.

Thread Safety:
- Any number of readers, no locking: each query reads self._snapshot once
  and works on that object.
- Rebuilds are serialized by _rebuild_lock.
"""

import json
import logging
import time
from dataclasses import dataclass, field
from threading import Lock
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Tuple

from minidosis_graph.image_store import ImageStore
from minidosis_graph.loader import FileLoader, Grammar
from minidosis_graph.models import (
    INVERSE_LINK_TYPES,
    LINK_SET_NAMES,
    RELATION_SETS,
    Node,
)
from minidosis_graph.relation_resolver import RelationResolver
from minidosis_graph.walker import DEFAULT_EXTENSION, DEFAULT_HIDDEN_PREFIX, WalkStats, walk

if TYPE_CHECKING:
    from minidosis_graph.config import Config

logger = logging.getLogger(__name__)


class RebuildError(Exception):
    """Raised when a rebuild cannot traverse the content root."""

    pass


@dataclass(frozen=True)
class Snapshot:
    """One complete graph: node map plus image map, never mutated.

    Both maps are read-only and every published node is frozen (see
    Node.freeze). Node content trees are shared, not copied; readers must
    not modify them.
    """

    nodes: Mapping[str, Node] = field(default_factory=lambda: MappingProxyType({}))
    images: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def get(self, node_id: str) -> Optional[Node]:
        return self.nodes.get(node_id)

    def search(self, query: str) -> List[Node]:
        """Nodes whose title contains query, ignoring case, in node order."""
        needle = query.casefold()
        return [
            node
            for node in self.nodes.values()
            if isinstance(node.title, str) and needle in node.title.casefold()
        ]

    def node_to_dict(self, node: Node) -> Dict[str, Any]:
        """Serialize a node with each relation expanded to {id, title}."""
        result = node.to_dict()
        for name in RELATION_SETS:
            result[name] = [
                {"id": other_id, "title": self._title_of(other_id)}
                for other_id in sorted(getattr(node, name))
            ]
        return result

    def _title_of(self, node_id: str) -> Optional[str]:
        other = self.nodes.get(node_id)
        return other.title if other is not None else None

    def validate(self) -> Tuple[bool, List[str]]:
        """Check inverse-relation symmetry and that no edge dangles.

        Returns:
            Tuple of (is_valid, error_messages).
        """
        errors: List[str] = []
        for node_id, node in self.nodes.items():
            if node.id != node_id:
                errors.append(f"Node stored under '{node_id}' has id '{node.id}'")
            for link_type, set_name in LINK_SET_NAMES.items():
                inverse_type = INVERSE_LINK_TYPES[link_type]
                inverse_name = LINK_SET_NAMES[inverse_type]
                for other_id in node.linked_ids(link_type):
                    other = self.nodes.get(other_id)
                    if other is None:
                        errors.append(f"Dangling edge: {node_id}.{set_name} -> '{other_id}'")
                    elif node_id not in other.linked_ids(inverse_type):
                        errors.append(
                            f"Missing inverse: {node_id}.{set_name} has '{other_id}' "
                            f"but {other_id}.{inverse_name} lacks '{node_id}'"
                        )
        return len(errors) == 0, errors


class Graph:
    """Topic graph loaded from a content directory tree.

    Usage:
        graph = Graph("/path/to/graph")
        graph.rebuild()
        node = graph.get("sets")
        matches = graph.search("union")
    """

    def __init__(
        self,
        root: str,
        extension: str = DEFAULT_EXTENSION,
        hidden_prefix: str = DEFAULT_HIDDEN_PREFIX,
        grammar: Optional[Grammar] = None,
    ):
        """Initialize an empty graph; call rebuild() to load it.

        Args:
            root: Root directory of the content tree.
            extension: Content file extension, including the dot.
            hidden_prefix: Directory and file names starting with this are skipped.
            grammar: Parser for content text (default: markup.parse).
        """
        self.root = root
        self.extension = extension
        self.hidden_prefix = hidden_prefix
        self._grammar = grammar
        self._snapshot = Snapshot()
        self._rebuild_lock = Lock()
        self._last_stats: Optional[WalkStats] = None

    @classmethod
    def from_config(cls, config: "Config", grammar: Optional[Grammar] = None) -> "Graph":
        """Create a Graph using the root directory and options in config."""
        return cls(
            root=config.resolve_graph_dir(),
            extension=config.content_extension,
            hidden_prefix=config.hidden_prefix,
            grammar=grammar,
        )

    @property
    def snapshot(self) -> Snapshot:
        """The currently published snapshot."""
        return self._snapshot

    @property
    def last_stats(self) -> Optional[WalkStats]:
        """Traversal statistics of the last successful rebuild."""
        return self._last_stats

    def rebuild(self) -> WalkStats:
        """Re-scan the whole tree and publish a new snapshot.

        Per-file and per-image failures are logged and skipped.

        Returns:
            WalkStats for the traversal.

        Raises:
            RebuildError: If the root cannot be traversed. The previous
                snapshot stays published.
        """
        with self._rebuild_lock:
            start_time = time.time()
            resolver = RelationResolver()
            images = ImageStore()
            loader = FileLoader(resolver, images, grammar=self._grammar)

            try:
                stats = walk(
                    self.root,
                    loader.load,
                    extension=self.extension,
                    hidden_prefix=self.hidden_prefix,
                )
            except OSError as e:
                logger.error(f"Rebuild failed, keeping previous graph: {e}")
                raise RebuildError(f"cannot traverse graph root '{self.root}': {e}") from e

            for node in resolver.nodes.values():
                node.freeze()
            snapshot = Snapshot(
                nodes=MappingProxyType(resolver.nodes),
                images=MappingProxyType(images.as_dict()),
            )
            # Publish
            self._snapshot = snapshot
            self._last_stats = stats

            elapsed = time.time() - start_time
            logger.info(
                f"Graph rebuilt in {elapsed * 1000:.1f}ms: {len(snapshot.nodes)} nodes, "
                f"{len(snapshot.images)} images, {stats.files_loaded} files loaded, "
                f"{stats.files_failed} failed",
                extra={"extra_fields": stats.to_dict()},
            )
            if logger.isEnabledFor(logging.DEBUG):
                is_valid, errors = snapshot.validate()
                if not is_valid:
                    logger.debug(f"Graph consistency errors: {errors}")
            return stats

    def get(self, node_id: str) -> Optional[Node]:
        """Return the node with node_id, or None. Never creates nodes."""
        return self._snapshot.get(node_id)

    def search(self, query: str) -> List[Node]:
        """Case-insensitive substring search over node titles."""
        return self._snapshot.search(query)

    def num_nodes(self) -> int:
        return len(self._snapshot.nodes)

    def has(self, node_id: str) -> bool:
        return node_id in self._snapshot.nodes

    def has_image(self, digest: str) -> bool:
        return digest in self._snapshot.images

    def get_image(self, digest: str) -> Optional[str]:
        """Return the absolute path of an image by hash, or None."""
        return self._snapshot.images.get(digest)

    def node_to_dict(self, node_id: str) -> Optional[Dict[str, Any]]:
        """Serialize a node with relation titles resolved, or None if absent."""
        snapshot = self._snapshot
        node = snapshot.get(node_id)
        if node is None:
            return None
        return snapshot.node_to_dict(node)

    def node_to_json(self, node_id: str) -> Optional[str]:
        data = self.node_to_dict(node_id)
        return json.dumps(data) if data is not None else None

    def describe(self) -> str:
        """Text dump of every node, one block per node."""
        return "\n\n".join(node.describe() for node in self._snapshot.nodes.values())
