# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Depth-first directory traversal over a content tree.

Subdirectories are visited before the files of the directory containing
them. Names starting with the hidden prefix are skipped. Entries are
visited in sorted name order, so a run over an unchanged tree is
repeatable; correctness never depends on this order.

Failure isolation:
- An exception from on_file is logged with the file path and the walk
  continues with the next file. UnknownLinkType is a caller bug and is
  re-raised.
- An unreadable subdirectory is logged and skipped.
- Only a missing or unreadable root aborts the walk.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Callable, List

from minidosis_graph.models import UnknownLinkType

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = ".minidosis"
DEFAULT_HIDDEN_PREFIX = "."

# Callback signature: (directory, filename) -> None
FileCallback = Callable[[str, str], None]


@dataclass
class WalkStats:
    """Counters for one traversal."""

    directories: int = 0
    files_loaded: int = 0
    files_failed: int = 0
    failed_paths: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "directories": self.directories,
            "files_loaded": self.files_loaded,
            "files_failed": self.files_failed,
            "failed_paths": list(self.failed_paths),
        }


def _sorted_entries(directory: str) -> List[os.DirEntry]:
    with os.scandir(directory) as it:
        return sorted(it, key=lambda entry: entry.name)


def _is_hidden(name: str, hidden_prefix: str) -> bool:
    return bool(hidden_prefix) and name.startswith(hidden_prefix)


def walk(
    root: str,
    on_file: FileCallback,
    extension: str = DEFAULT_EXTENSION,
    hidden_prefix: str = DEFAULT_HIDDEN_PREFIX,
) -> WalkStats:
    """Visit every content file under root.

    Args:
        root: Root directory of the content tree.
        on_file: Called as on_file(directory, filename) for each file whose
            name ends with extension.
        extension: Content file extension, including the dot.
        hidden_prefix: Directory and file names starting with this are
            skipped, matching GraphWatcher.should_ignore.

    Returns:
        WalkStats for the traversal.

    Raises:
        OSError: If root is missing or cannot be listed.
    """
    stats = WalkStats()
    # Root errors propagate
    entries = _sorted_entries(root)
    _walk_entries(root, entries, on_file, extension, hidden_prefix, stats)
    return stats


def _walk_entries(
    directory: str,
    entries: List[os.DirEntry],
    on_file: FileCallback,
    extension: str,
    hidden_prefix: str,
    stats: WalkStats,
) -> None:
    stats.directories += 1

    for entry in entries:
        if not entry.is_dir(follow_symlinks=False) or _is_hidden(entry.name, hidden_prefix):
            continue
        try:
            sub_entries = _sorted_entries(entry.path)
        except OSError as e:
            logger.warning(f"Skipping unreadable directory {entry.path}: {e}")
            continue
        _walk_entries(entry.path, sub_entries, on_file, extension, hidden_prefix, stats)

    for entry in entries:
        if _is_hidden(entry.name, hidden_prefix):
            continue
        if not entry.name.endswith(extension) or not entry.is_file():
            continue
        try:
            on_file(directory, entry.name)
        except UnknownLinkType:
            raise
        except Exception as e:
            stats.files_failed += 1
            stats.failed_paths.append(entry.path)
            logger.error(
                f"Error reading {entry.path}: {e}",
                extra={
                    "extra_fields": {
                        "path": entry.path,
                        "failure_kind": type(e).__name__,
                        "cause": str(e),
                    }
                },
            )
        else:
            stats.files_loaded += 1
