# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""File loader: reads one content file and merges it into the graph.

Steps for each file:
1. Read the text (FileReadError on failure)
2. Parse it with the grammar, routing each embedded image through the
   ImageStore
3. Check the header block is present (MissingHeaderError otherwise)
4. Split the whitespace-joined id lists into ids
5. Merge the result into the RelationResolver

Image failures never fail the file: the image is replaced by an
"img-error" content node carrying a readable message.

All other errors propagate to the caller (the tree walker), which logs
them and continues with the next file.
"""

import logging
import os
from typing import Any, Callable, Dict, List, Mapping, Optional

from minidosis_graph.image_store import ImageReadError, ImageStore
from minidosis_graph.markup import ContentNode, ParseHooks, ParseResult, parse
from minidosis_graph.relation_resolver import HEADER_LINK_FIELDS, RelationResolver

logger = logging.getLogger(__name__)

# Grammar signature: (raw_text, hooks) -> ParseResult
Grammar = Callable[[str, ParseHooks], ParseResult]

IMAGE_NODE = "img"
IMAGE_ERROR_NODE = "img-error"


class LoaderError(Exception):
    """Base class for errors that make a single content file unloadable."""

    def __init__(self, path: str, message: str):
        super().__init__(message)
        self.path = path


class FileReadError(LoaderError):
    """Raised when a content file cannot be read or decoded."""

    def __init__(self, path: str, cause: Exception):
        super().__init__(path, f"cannot read '{path}': {cause}")
        self.cause = cause


class MissingHeaderError(LoaderError):
    """Raised when a content file has no header block."""

    def __init__(self, path: str):
        super().__init__(path, f"file '{path}' does not have a 'graph' header block")


class InvalidHeaderError(LoaderError):
    """Raised when a header id-list field is not a whitespace-joined string."""

    def __init__(self, path: str, field_name: str, value: Any):
        super().__init__(
            path,
            f"header field '{field_name}' in '{path}' must be a string of ids, "
            f"got {type(value).__name__}",
        )
        self.field_name = field_name


def node_id_from_filename(filename: str) -> str:
    """Derive a node id from a file name: the text before the first dot.

    Example: "sets.union.minidosis" -> "sets"
    """
    return os.path.basename(filename).split(".", 1)[0]


def split_id_list(value: str) -> List[str]:
    """Split a whitespace-joined id list; an empty string gives []."""
    return value.split()


class FileLoader:
    """Loads content files into a RelationResolver.

    Usage:
        loader = FileLoader(resolver, image_store)
        loader.load("/graph/sets", "union.minidosis")
    """

    def __init__(
        self,
        resolver: RelationResolver,
        image_store: ImageStore,
        grammar: Optional[Grammar] = None,
        encoding: str = "utf-8",
    ):
        """Initialize the loader.

        Args:
            resolver: Resolver receiving the parsed nodes.
            image_store: Store receiving embedded images.
            grammar: Parser for content text (default: markup.parse).
            encoding: Text encoding of content files.
        """
        self.resolver = resolver
        self.image_store = image_store
        self.grammar: Grammar = grammar if grammar is not None else parse
        self.encoding = encoding

    def load(self, directory: str, filename: str) -> None:
        """Load one content file and merge it into the resolver.

        Raises:
            FileReadError: File missing, unreadable, or not valid text.
            MissingHeaderError: No header block in the file.
            InvalidHeaderError: An id-list field is not a string.
            MarkupError: The grammar rejected the text.
        """
        full_path = os.path.abspath(os.path.join(directory, filename))
        text = self._read_text(full_path)
        node_id = node_id_from_filename(filename)

        hooks = ParseHooks(image=self._image_hook(full_path))
        result = self.grammar(text, hooks)

        if result.header is None:
            raise MissingHeaderError(full_path)

        header = self._normalize_header(full_path, result.header)
        self.resolver.merge(node_id, header, result.content, source_path=full_path)
        logger.debug(f"Loaded node '{node_id}' from {full_path}")

    def _read_text(self, full_path: str) -> str:
        try:
            with open(full_path, encoding=self.encoding) as f:
                return f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise FileReadError(full_path, e) from e

    def _normalize_header(self, full_path: str, header: Mapping[str, Any]) -> Dict[str, Any]:
        normalized: Dict[str, Any] = {"title": header.get("title")}
        for field_name in HEADER_LINK_FIELDS:
            if field_name not in header:
                continue
            value = header[field_name]
            if not isinstance(value, str):
                raise InvalidHeaderError(full_path, field_name, value)
            normalized[field_name] = split_id_list(value)
        return normalized

    def _image_hook(self, full_path: str) -> Callable[[str], ContentNode]:
        base_dir = os.path.dirname(full_path)

        def resolve_image(image_path: str) -> ContentNode:
            try:
                digest = self.image_store.hash_and_register(base_dir, image_path)
            except ImageReadError as e:
                message = f"Failed to load image '{image_path}' in node '{full_path}'"
                logger.error(
                    f"{message}: {e.cause}",
                    extra={
                        "extra_fields": {
                            "path": full_path,
                            "image": image_path,
                            "failure_kind": "ImageReadError",
                            "cause": str(e.cause),
                        }
                    },
                )
                return {"id": IMAGE_ERROR_NODE, "children": [message]}
            return {"id": IMAGE_NODE, "children": [digest]}

        return resolve_image
