# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Integration tests for the topic graph.

This package contains tests that run the walker, loader, resolver, image
store and watcher together against real directory trees.
"""
