# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Shared fixtures for integration tests."""

from pathlib import Path

import pytest

# Small binary stand-in for a PNG; only the bytes matter for hashing
VENN_BYTES = b"\x89PNG\r\n\x1a\nvenn"


@pytest.fixture
def sample_graph(tmp_path: Path, write_topic) -> Path:
    """Create a representative content tree for integration testing.

    Creates:
    - Nested topic directories with cross-directory relations
    - A forward reference to a topic that is never defined
    - An image shared (byte-identical) by two topics
    - A broken file, a hidden drafts directory and a non-content file

    Returns:
        Path to the graph root directory
    """
    root = tmp_path / "sample_graph"

    write_topic(
        root,
        "math",
        title="Mathematics",
        children=["sets", "logic"],
        body="Mathematics is the study of structure.\n",
    )

    sets_dir = root / "sets"
    (sets_dir / "img").mkdir(parents=True)
    (sets_dir / "img" / "venn.png").write_bytes(VENN_BYTES)
    write_topic(sets_dir, "sets", title="Sets", children=["union", "intersection"])
    write_topic(
        sets_dir / "ops",
        "union",
        title="Union of sets",
        bases=["sets"],
        related=["intersection"],
        body="Everything in A or B.\n\n@img ../img/venn.png\n",
    )
    write_topic(
        sets_dir / "ops",
        "intersection",
        title="Intersection of sets",
        bases=["sets"],
        body="Only what A and B share: @img(../img/venn.png)\n",
    )

    logic_dir = root / "logic"
    logic_dir.mkdir()
    (logic_dir / "venn-copy.png").write_bytes(VENN_BYTES)
    write_topic(
        logic_dir,
        "logic",
        title="Logic",
        related=["proof"],
        body="See @img(venn-copy.png) and @img(missing.png).\n",
    )

    (root / "broken.minidosis").write_text("this file has no header\n")
    write_topic(root / ".drafts", "draft", title="Draft", children=["math"])
    (root / "README.txt").write_text("not a content file\n")

    return root
