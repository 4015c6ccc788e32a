# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Content-addressed store for images referenced by content files.

Images are identified by the SHA-1 of their bytes, not by their path, so
two content files embedding byte-identical images share one entry. The
store maps each hash to the absolute path it was last read from.

One store belongs to one graph snapshot; reference counts are not tracked.
"""

import hashlib
import logging
import os
from typing import Dict, Optional

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 8192


class ImageReadError(Exception):
    """Raised when an image file is missing or unreadable."""

    def __init__(self, path: str, cause: Exception):
        super().__init__(f"cannot read image '{path}': {cause}")
        self.path = path
        self.cause = cause


class ImageStore:
    """Mapping from image content hash to absolute source path.

    Usage:
        store = ImageStore()
        digest = store.hash_and_register("/graph/sets", "img/venn.png")
        store.lookup(digest)  # "/graph/sets/img/venn.png"
    """

    def __init__(self) -> None:
        self._images: Dict[str, str] = {}

    def hash_and_register(self, base_dir: str, relative_path: str) -> str:
        """Hash the image at base_dir/relative_path and record it.

        Re-registering identical bytes only overwrites the stored path
        (last writer wins); the hash stays the same.

        Args:
            base_dir: Directory the image path is relative to.
            relative_path: Image path as declared in the content file.

        Returns:
            Hex digest identifying the image content.

        Raises:
            ImageReadError: If the file is missing or cannot be read.
        """
        abspath = os.path.abspath(os.path.join(base_dir, relative_path))
        digest = self._compute_hash(abspath)

        previous = self._images.get(digest)
        if previous is not None and previous != abspath:
            logger.debug(f"Image {abspath} has same content as {previous} ({digest})")
        self._images[digest] = abspath
        return digest

    def _compute_hash(self, abspath: str) -> str:
        hasher = hashlib.sha1()
        try:
            with open(abspath, "rb") as f:
                for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
                    hasher.update(chunk)
        except OSError as e:
            raise ImageReadError(abspath, e) from e
        return hasher.hexdigest()

    def lookup(self, digest: str) -> Optional[str]:
        """Return the absolute path for a hash, or None if unknown."""
        return self._images.get(digest)

    def as_dict(self) -> Dict[str, str]:
        """Return a copy of the hash -> path mapping."""
        return dict(self._images)

    def __contains__(self, digest: object) -> bool:
        return digest in self._images

    def __len__(self) -> int:
        return len(self._images)
