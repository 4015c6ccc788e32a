# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Tests for the file loader."""

import hashlib
import logging

import pytest

from minidosis_graph.image_store import ImageStore
from minidosis_graph.loader import (
    IMAGE_ERROR_NODE,
    IMAGE_NODE,
    FileLoader,
    FileReadError,
    InvalidHeaderError,
    MissingHeaderError,
    node_id_from_filename,
    split_id_list,
)
from minidosis_graph.markup import MarkupError, ParseResult
from minidosis_graph.relation_resolver import RelationResolver


@pytest.fixture
def resolver():
    return RelationResolver()


@pytest.fixture
def image_store():
    return ImageStore()


@pytest.fixture
def loader(resolver, image_store):
    return FileLoader(resolver, image_store)


class TestHelpers:
    """Tests for id derivation and id-list splitting."""

    def test_node_id_is_text_before_first_dot(self):
        assert node_id_from_filename("sets.minidosis") == "sets"
        assert node_id_from_filename("sets.union.minidosis") == "sets"
        assert node_id_from_filename("/g/sub/topic.minidosis") == "topic"

    def test_split_id_list(self):
        assert split_id_list("a b") == ["a", "b"]
        assert split_id_list("  a \n\t b  ") == ["a", "b"]
        assert split_id_list("") == []


class TestLoad:
    """Tests for FileLoader.load()."""

    def test_load_merges_node(self, loader, resolver, graph_root, write_topic):
        write_topic(graph_root, "a", title="Topic A", bases=["x"], children=["b", "c"],
                    body="Body text\n")

        loader.load(str(graph_root), "a.minidosis")

        node = resolver.nodes["a"]
        assert node.title == "Topic A"
        assert node.source_path == str(graph_root / "a.minidosis")
        assert node.bases == {"x"}
        assert node.children == {"b", "c"}
        assert node.content == [{"id": "p", "children": ["Body text"]}]
        assert resolver.nodes["b"].parents == {"a"}
        assert resolver.nodes["x"].derived == {"a"}

    def test_header_without_title(self, loader, resolver, graph_root, write_topic):
        write_topic(graph_root, "a", related=["b"])

        loader.load(str(graph_root), "a.minidosis")

        assert resolver.nodes["a"].title is None
        assert resolver.nodes["a"].related == {"b"}

    def test_missing_file(self, loader, graph_root):
        with pytest.raises(FileReadError) as exc_info:
            loader.load(str(graph_root), "nope.minidosis")
        assert exc_info.value.path == str(graph_root / "nope.minidosis")

    def test_undecodable_file(self, loader, graph_root):
        (graph_root / "bad.minidosis").write_bytes(b"@graph\n  @title \xff\xfe\n")

        with pytest.raises(FileReadError):
            loader.load(str(graph_root), "bad.minidosis")

    def test_missing_header(self, loader, resolver, graph_root):
        (graph_root / "a.minidosis").write_text("No header here\n")

        with pytest.raises(MissingHeaderError):
            loader.load(str(graph_root), "a.minidosis")
        assert len(resolver) == 0

    def test_grammar_failure_propagates(self, loader, resolver, graph_root):
        (graph_root / "a.minidosis").write_text("@graph\n  @title A\n@img(broken\n")

        with pytest.raises(MarkupError):
            loader.load(str(graph_root), "a.minidosis")
        assert len(resolver) == 0

    def test_non_string_id_list_is_rejected(self, resolver, image_store, graph_root):
        (graph_root / "a.minidosis").write_text("ignored")

        def list_grammar(text, hooks):
            return ParseResult(header={"title": "A", "children": ["b", "c"]}, content=[])

        loader = FileLoader(resolver, image_store, grammar=list_grammar)

        with pytest.raises(InvalidHeaderError) as exc_info:
            loader.load(str(graph_root), "a.minidosis")
        assert exc_info.value.field_name == "children"

    def test_custom_grammar_receives_text(self, resolver, image_store, graph_root):
        (graph_root / "a.minidosis").write_text("raw text")
        seen = []

        def recording_grammar(text, hooks):
            seen.append(text)
            return ParseResult(header={"title": "A"}, content=["c"])

        FileLoader(resolver, image_store, grammar=recording_grammar).load(
            str(graph_root), "a.minidosis"
        )

        assert seen == ["raw text"]
        assert resolver.nodes["a"].content == ["c"]


class TestImages:
    """Tests for image routing through the ImageStore."""

    def test_image_replaced_by_hash(self, loader, resolver, image_store, graph_root, write_topic):
        sub = graph_root / "sets"
        (sub / "img").mkdir(parents=True)
        (sub / "img" / "venn.png").write_bytes(b"venn")
        write_topic(sub, "union", title="Union", body="See @img(img/venn.png)\n")

        loader.load(str(sub), "union.minidosis")

        digest = hashlib.sha1(b"venn").hexdigest()
        paragraph = resolver.nodes["union"].content[0]
        assert paragraph["children"][1] == {"id": IMAGE_NODE, "children": [digest]}
        assert image_store.lookup(digest) == str(sub / "img" / "venn.png")

    def test_missing_image_becomes_diagnostic(
        self, loader, resolver, image_store, graph_root, write_topic, caplog
    ):
        write_topic(graph_root, "a", title="A", body="@img missing.png\nAfter\n")

        with caplog.at_level(logging.ERROR):
            loader.load(str(graph_root), "a.minidosis")

        node = resolver.nodes["a"]
        diagnostic = node.content[0]
        assert diagnostic["id"] == IMAGE_ERROR_NODE
        assert "missing.png" in diagnostic["children"][0]
        assert str(graph_root / "a.minidosis") in diagnostic["children"][0]
        assert node.content[1] == {"id": "p", "children": ["After"]}
        assert len(image_store) == 0
        assert "missing.png" in caplog.text

    def test_one_bad_image_does_not_affect_others(
        self, loader, resolver, image_store, graph_root, write_topic
    ):
        (graph_root / "good.png").write_bytes(b"good")
        write_topic(graph_root, "a", title="A", body="@img(bad.png) @img(good.png)\n")

        loader.load(str(graph_root), "a.minidosis")

        children = resolver.nodes["a"].content[0]["children"]
        assert children[0]["id"] == IMAGE_ERROR_NODE
        assert children[2]["id"] == IMAGE_NODE
        assert len(image_store) == 1
