# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Topic graph built from a directory of content files."""

from .config import Config, ConfigurationError
from .graph import Graph, RebuildError, Snapshot
from .image_store import ImageReadError, ImageStore
from .loader import FileLoader, FileReadError, InvalidHeaderError, MissingHeaderError
from .markup import MarkupError, ParseHooks, ParseResult, parse
from .models import LinkType, Node, UnknownLinkType
from .relation_resolver import RelationResolver
from .service import GraphService
from .walker import WalkStats, walk
from .watcher import GraphWatcher

__version__ = "0.1.0"

__all__ = [
    "Config",
    "ConfigurationError",
    "FileLoader",
    "FileReadError",
    "Graph",
    "GraphService",
    "GraphWatcher",
    "ImageReadError",
    "ImageStore",
    "InvalidHeaderError",
    "LinkType",
    "MarkupError",
    "MissingHeaderError",
    "Node",
    "ParseHooks",
    "ParseResult",
    "RebuildError",
    "RelationResolver",
    "Snapshot",
    "UnknownLinkType",
    "WalkStats",
    "parse",
    "walk",
]
