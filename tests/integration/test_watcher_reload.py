# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Integration tests for GraphWatcher with a real watchdog observer."""

import time
from pathlib import Path

from minidosis_graph.config import Config
from minidosis_graph.graph import Graph
from minidosis_graph.service import GraphService
from minidosis_graph.watcher import GraphWatcher


def wait_for(predicate, timeout: float = 5.0) -> bool:
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(0.05)
    return predicate()


class TestWatcherReload:
    """File changes on disk show up in the graph without manual rebuilds."""

    def test_new_file_is_picked_up(self, sample_graph: Path, write_topic) -> None:
        graph = Graph(str(sample_graph))
        graph.rebuild()
        watcher = GraphWatcher(graph, debounce_seconds=0.1)
        watcher.start()

        try:
            write_topic(sample_graph / "logic", "proof", title="Proof")

            assert wait_for(lambda: graph.get("proof").title == "Proof")
            assert not graph.get("proof").is_placeholder
        finally:
            watcher.stop()

    def test_new_subdirectory_is_watched(self, sample_graph: Path, write_topic) -> None:
        graph = Graph(str(sample_graph))
        graph.rebuild()
        watcher = GraphWatcher(graph, debounce_seconds=0.1)
        watcher.start()

        try:
            new_dir = sample_graph / "algebra"
            new_dir.mkdir()
            assert wait_for(lambda: watcher.rebuild_count >= 1)

            write_topic(new_dir / "groups", "group", title="Group", bases=["sets"])

            assert wait_for(lambda: graph.has("group"))
            assert "group" in graph.get("sets").derived
        finally:
            watcher.stop()

    def test_deleted_file_is_dropped(self, sample_graph: Path) -> None:
        graph = Graph(str(sample_graph))
        graph.rebuild()
        watcher = GraphWatcher(graph, debounce_seconds=0.1)
        watcher.start()

        try:
            (sample_graph / "logic" / "logic.minidosis").unlink()

            # math still lists logic as a child, so it remains as a placeholder
            assert wait_for(lambda: graph.get("logic").is_placeholder)
            assert not graph.has("proof")
        finally:
            watcher.stop()

    def test_hidden_changes_do_not_rebuild(self, sample_graph: Path, write_topic) -> None:
        graph = Graph(str(sample_graph))
        graph.rebuild()
        watcher = GraphWatcher(graph, debounce_seconds=0.1)
        watcher.start()

        try:
            write_topic(sample_graph / ".drafts", "draft2", title="Draft 2")
            time.sleep(0.5)

            assert watcher.rebuild_count == 0
        finally:
            watcher.stop()

    def test_service_keeps_graph_current(self, sample_graph: Path, tmp_path: Path, write_topic) -> None:
        config = Config(tmp_path / "missing.yml")
        config.set_override("graph_dir", str(sample_graph))
        config.set_override("watch_enabled", True)
        config.set_override("watch_debounce_seconds", 0.1)

        with GraphService(config) as service:
            write_topic(sample_graph, "physics", title="Physics", related=["math"])

            assert wait_for(lambda: service.graph.has("physics"))
            assert "physics" in service.graph.get("math").related
