# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""GraphService - lifecycle owner for the graph and its watcher.

Lifecycle:
    construct -> start() (initial rebuild, then watch if enabled) -> shutdown()

The service is the object handed to whatever serves the graph; there is
no module-level graph instance.
"""

import logging
from typing import Optional

from minidosis_graph.config import Config
from minidosis_graph.graph import Graph
from minidosis_graph.walker import WalkStats
from minidosis_graph.watcher import GraphWatcher

logger = logging.getLogger(__name__)


class GraphService:
    """Owns a Graph and, optionally, the GraphWatcher keeping it current.

    Usage:
        with GraphService(Config()) as service:
            node = service.graph.get("sets")
    """

    def __init__(
        self,
        config: Config,
        graph: Optional[Graph] = None,
        watcher: Optional[GraphWatcher] = None,
    ):
        """Initialize the service with its dependencies.

        Args:
            config: Configuration object
            graph: Graph instance (default: built from config)
            watcher: GraphWatcher instance (default: created on start() when
                watch_enabled is set)
        """
        self.config = config
        self.graph = graph if graph is not None else Graph.from_config(config)
        self._watcher = watcher
        self._started = False

    @property
    def watcher(self) -> Optional[GraphWatcher]:
        return self._watcher

    def start(self) -> WalkStats:
        """Load the graph and start watching if configured.

        Returns:
            WalkStats of the initial rebuild.

        Raises:
            RebuildError: If the initial load cannot traverse the root.
            RuntimeError: If the service was already started.
        """
        if self._started:
            raise RuntimeError("GraphService is already started")

        stats = self.graph.rebuild()

        if self.config.watch_enabled:
            if self._watcher is None:
                self._watcher = GraphWatcher(
                    self.graph,
                    debounce_seconds=self.config.watch_debounce_seconds,
                    hidden_prefix=self.config.hidden_prefix,
                )
            self._watcher.start()

        self._started = True
        logger.info(f"GraphService started for {self.graph.root}")
        return stats

    def shutdown(self) -> None:
        """Stop the watcher (if any) and release its handles."""
        if self._watcher is not None:
            self._watcher.stop()
        if self._started:
            logger.info("GraphService shut down")
        self._started = False

    def __enter__(self) -> "GraphService":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()
