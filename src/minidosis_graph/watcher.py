# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Watches the content tree and rebuilds the graph on change.

This module keeps a Graph current while files change on disk:
- One recursive watchdog observer scheduled at the root, so directories
  created after start() are watched too
- Events under hidden directories (and hidden files) are ignored
- Bursts of events are debounced into a single rebuild
- At most one rebuild runs at a time; requests that arrive during a
  rebuild are merged into exactly one follow-up rebuild

Rebuild failures are logged and the previous snapshot stays published;
the watcher keeps running.
"""

import logging
import os
import threading
from typing import TYPE_CHECKING, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from minidosis_graph.graph import Graph, RebuildError

if TYPE_CHECKING:
    from watchdog.observers.api import BaseObserver

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.5


class GraphWatcher:
    """Rebuilds a Graph whenever its content tree changes.

    Thread Safety:
    - _state_lock protects _timer, _rebuilding and _pending; _idle is a
      condition on the same lock, notified when a rebuild loop finishes
    - Graph.rebuild() is never called while holding _state_lock

    Usage:
        watcher = GraphWatcher(graph, debounce_seconds=0.5)
        watcher.start()
        # ... graph stays current ...
        watcher.stop()
    """

    def __init__(
        self,
        graph: Graph,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        hidden_prefix: Optional[str] = None,
    ):
        """Initialize the watcher.

        Args:
            graph: Graph to rebuild; its root is the watched directory.
            debounce_seconds: Quiet period after the last event before
                rebuilding. 0 rebuilds on the event thread immediately.
            hidden_prefix: Names starting with this are ignored
                (default: the graph's hidden prefix).
        """
        self.graph = graph
        self.root = os.path.abspath(graph.root)
        self.debounce_seconds = debounce_seconds
        self.hidden_prefix = hidden_prefix if hidden_prefix is not None else graph.hidden_prefix

        self._state_lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._rebuilding = False
        self._pending = False
        self._idle = threading.Condition(self._state_lock)
        self.rebuild_count = 0

        self._observer: Optional["BaseObserver"] = None
        self._event_handler = _GraphEventHandler(self)

    def should_ignore(self, path: str) -> bool:
        """True if path is outside the root or has a hidden component."""
        try:
            rel_path = os.path.relpath(os.path.abspath(path), self.root)
        except ValueError:
            return True
        if rel_path == os.curdir:
            return False
        parts = rel_path.split(os.sep)
        if parts[0] == os.pardir:
            return True
        return bool(self.hidden_prefix) and any(
            part.startswith(self.hidden_prefix) for part in parts
        )

    def notify_change(self, path: str) -> None:
        """Record a change at path and schedule a debounced rebuild."""
        if self.should_ignore(path):
            return
        logger.debug(f"Change detected: {path}")

        if self.debounce_seconds <= 0:
            self.request_rebuild()
            return

        with self._state_lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.debounce_seconds, self._on_timer)
            self._timer.daemon = True
            self._timer.start()

    def _on_timer(self) -> None:
        with self._state_lock:
            # A newer event may already have re-armed the timer
            if self._timer is threading.current_thread():
                self._timer = None
        self.request_rebuild()

    def request_rebuild(self) -> bool:
        """Rebuild now, or merge into the rebuild already in flight.

        Returns:
            True if this call ran the rebuild(s), False if it was merged into
            a rebuild running on another call.
        """
        with self._state_lock:
            if self._rebuilding:
                self._pending = True
                return False
            self._rebuilding = True

        while True:
            self._run_rebuild()
            with self._state_lock:
                if not self._pending:
                    self._rebuilding = False
                    self._idle.notify_all()
                    return True
                self._pending = False

    def _run_rebuild(self) -> None:
        self.rebuild_count += 1
        try:
            self.graph.rebuild()
        except RebuildError as e:
            logger.error(f"Rebuild after change failed: {e}")
        except Exception:
            logger.exception("Unexpected error while rebuilding graph")

    def start(self) -> None:
        """Start watching the graph root.

        Raises:
            RuntimeError: If watcher is already running
        """
        if self._observer is not None and self._observer.is_alive():
            raise RuntimeError("GraphWatcher is already running")

        self._observer = Observer()
        self._observer.schedule(  # type: ignore  # watchdog types vary by version
            self._event_handler, self.root, recursive=True
        )
        self._observer.start()  # type: ignore  # watchdog types vary by version

        logger.info(f"GraphWatcher started, monitoring {self.root}")

    def stop(self) -> None:
        """Stop watching and cancel any scheduled rebuild.

        Blocks until the observer thread terminates and any rebuild already
        running has finished (each with timeout).
        """
        with self._state_lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

        if self._observer is not None and self._observer.is_alive():
            self._observer.stop()  # type: ignore  # watchdog types vary by version
            self._observer.join(timeout=5.0)
            logger.info("GraphWatcher stopped")

        with self._idle:
            if not self._idle.wait_for(lambda: not self._rebuilding, timeout=5.0):
                logger.warning("Rebuild still running after GraphWatcher stop timeout")

    def is_running(self) -> bool:
        """Check if watcher is currently running."""
        return self._observer is not None and self._observer.is_alive()


class _GraphEventHandler(FileSystemEventHandler):
    """Internal event handler for watchdog.

    Forwards every created/modified/deleted/moved path to the watcher.
    """

    def __init__(self, watcher: GraphWatcher):
        super().__init__()
        self.watcher = watcher

    def on_created(self, event: FileSystemEvent) -> None:
        self.watcher.notify_change(str(event.src_path))

    def on_modified(self, event: FileSystemEvent) -> None:
        # Directory mtime changes duplicate the file events inside them
        if event.is_directory:
            return
        self.watcher.notify_change(str(event.src_path))

    def on_deleted(self, event: FileSystemEvent) -> None:
        self.watcher.notify_change(str(event.src_path))

    def on_moved(self, event: FileSystemEvent) -> None:
        self.watcher.notify_change(str(event.src_path))
        dest_path = getattr(event, "dest_path", None)
        if dest_path:
            self.watcher.notify_change(str(dest_path))
