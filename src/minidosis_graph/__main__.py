# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Command line entry point: python -m minidosis_graph"""

import argparse
import logging
import sys
import threading
from pathlib import Path
from typing import List, Optional

from minidosis_graph.config import Config, ConfigurationError
from minidosis_graph.graph import RebuildError
from minidosis_graph.logging_setup import setup_logging
from minidosis_graph.service import GraphService

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="minidosis-graph",
        description="Load a directory of content files into a topic graph.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to the configuration file (default: ./.minidosis_graph.yml)",
    )
    parser.add_argument(
        "--root",
        default=None,
        help="Graph root directory (overrides config and $MINIDOSIS_GRAPH)",
    )
    parser.add_argument(
        "--watch",
        action="store_true",
        help="Keep running and rebuild whenever the tree changes",
    )
    parser.add_argument(
        "--show",
        action="store_true",
        help="Print every node after loading",
    )
    parser.add_argument(
        "--log-dir",
        type=Path,
        default=None,
        help="Directory for JSON log files (default: ./.minidosis_graph_logs)",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point. Returns a process exit code."""
    args = parse_args(argv)

    config = Config(config_path=args.config)
    setup_logging(log_dir=args.log_dir, log_level=config.log_level)

    try:
        if args.root is not None:
            config.set_override("graph_dir", args.root)
        if args.watch:
            config.set_override("watch_enabled", True)
        service = GraphService(config)
    except ConfigurationError as e:
        logger.error(str(e))
        return 2

    try:
        service.start()
    except RebuildError as e:
        logger.error(str(e))
        return 1

    graph = service.graph
    logger.info(
        f"Loaded {graph.num_nodes()} nodes and {len(graph.snapshot.images)} images "
        f"from {graph.root}"
    )
    if args.show:
        print(graph.describe())

    if config.watch_enabled:
        try:
            threading.Event().wait()
        except KeyboardInterrupt:
            logger.info("Interrupted")

    service.shutdown()
    return 0


if __name__ == "__main__":
    sys.exit(main())
