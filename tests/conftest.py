# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Shared fixtures for topic graph tests."""

import logging
from pathlib import Path
from typing import Callable, Iterable, Optional

import pytest

TopicWriter = Callable[..., Path]


def _write_topic(
    directory: Path,
    node_id: str,
    title: Optional[str] = None,
    bases: Iterable[str] = (),
    children: Iterable[str] = (),
    related: Iterable[str] = (),
    body: str = "",
    filename: Optional[str] = None,
) -> Path:
    lines = ["@graph"]
    if title is not None:
        lines.append(f"  @title {title}")
    for field_name, ids in (("bases", bases), ("children", children), ("related", related)):
        ids = list(ids)
        if ids:
            lines.append(f"  @{field_name} {' '.join(ids)}")

    path = directory / (filename or f"{node_id}.minidosis")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(lines) + "\n" + body, encoding="utf-8")
    return path


@pytest.fixture
def write_topic() -> TopicWriter:
    """Return a helper that writes a content file with a @graph header.

    Usage:
        write_topic(tmp_path, "a", title="A", children=["b"])
    """
    return _write_topic


@pytest.fixture
def graph_root(tmp_path: Path) -> Path:
    """Empty graph root directory."""
    root = tmp_path / "graph"
    root.mkdir()
    return root


@pytest.fixture
def restore_root_logging():
    """Restore root logger handlers and level after tests that reconfigure logging."""
    root_logger = logging.getLogger()
    handlers = list(root_logger.handlers)
    level = root_logger.level
    yield
    for handler in list(root_logger.handlers):
        if handler not in handlers:
            root_logger.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root_logger.handlers:
            root_logger.addHandler(handler)
    root_logger.setLevel(level)
