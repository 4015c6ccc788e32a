# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Markup grammar for content files.

Turns the raw text of a content file into a header and a content tree.
The graph engine only depends on parse() and its result shape, so another
grammar with the same signature can be passed to FileLoader instead.

File format:

    @graph
      @title Union of sets
      @bases sets
      @related intersection
    The union contains every element of @img(img/venn.png) both sets.

    Paragraphs are separated by blank lines.
    @code
      A | B

Rules:
- A line "@name rest" at column 0 opens a command block; the following
  lines indented by two spaces (or a tab) are its body.
- A blank line or an unindented line closes the block.
- The first block must be @graph. Each "@field value" body line becomes
  header[field] = value, always as a string; id lists stay
  whitespace-joined.
- Inline "@img(path)" and block "@img path" call hooks.image(path) and
  insert the returned content node.

Content tree: a list of JSON-compatible nodes, each {"id": ..., "children": [...]}
where children are strings or nested nodes.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Union

ContentNode = Dict[str, Any]
ImageHook = Callable[[str], ContentNode]

HEADER_BLOCK = "graph"
IMAGE_COMMAND = "img"
PARAGRAPH = "p"

_COMMAND_RE = re.compile(r"^@([A-Za-z][\w-]*)(?:[ \t]+(.*))?$")
_INLINE_IMAGE = "@img("


class MarkupError(Exception):
    """Raised when content text cannot be parsed."""

    pass


@dataclass
class ParseHooks:
    """Callbacks invoked while parsing.

    image: Called once per embedded image with its declared path. Returns
        the content node to insert. If None, the path is kept as-is.
    """

    image: Optional[ImageHook] = None


@dataclass
class ParseResult:
    """Output of parse(): header fields (None if missing) and content tree."""

    header: Optional[Dict[str, str]]
    content: List[Any] = field(default_factory=list)


@dataclass
class _Block:
    name: str
    inline: str
    body: List[str] = field(default_factory=list)


def _dedent(line: str) -> str:
    if line.startswith("\t"):
        return line[1:]
    if line.startswith("  "):
        return line[2:]
    return line.lstrip()


def _split_blocks(text: str) -> List[Union[_Block, str]]:
    items: List[Union[_Block, str]] = []
    current: Optional[_Block] = None

    for raw in text.splitlines():
        line = raw.rstrip()
        if current is not None and line and line[0] in (" ", "\t"):
            current.body.append(_dedent(line))
            continue

        current = None
        match = _COMMAND_RE.match(line)
        if match:
            current = _Block(name=match.group(1), inline=(match.group(2) or "").strip())
            items.append(current)
        else:
            items.append(line)

    return items


def _image_node(path: str, hooks: ParseHooks) -> ContentNode:
    if not path:
        raise MarkupError("image command without a path")
    if hooks.image is None:
        return {"id": IMAGE_COMMAND, "children": [path]}
    return hooks.image(path)


def _parse_inline(text: str, hooks: ParseHooks) -> List[Any]:
    children: List[Any] = []
    pos = 0
    while True:
        start = text.find(_INLINE_IMAGE, pos)
        if start < 0:
            break
        end = text.find(")", start)
        if end < 0:
            raise MarkupError(f"unterminated '{_INLINE_IMAGE}' in: {text[start:start + 40]!r}")
        if start > pos:
            children.append(text[pos:start])
        children.append(_image_node(text[start + len(_INLINE_IMAGE) : end].strip(), hooks))
        pos = end + 1

    if pos < len(text):
        children.append(text[pos:])
    return children


def _parse_header(block: _Block) -> Dict[str, str]:
    header: Dict[str, str] = {}
    for line in block.body:
        match = _COMMAND_RE.match(line.strip())
        if match:
            header[match.group(1)] = (match.group(2) or "").strip()
    return header


def _block_node(block: _Block, hooks: ParseHooks) -> ContentNode:
    if block.name == IMAGE_COMMAND:
        return _image_node(block.inline, hooks)
    lines = ([block.inline] if block.inline else []) + block.body
    return {"id": block.name, "children": _parse_inline("\n".join(lines), hooks)}


def parse(text: str, hooks: Optional[ParseHooks] = None) -> ParseResult:
    """Parse content text into a header and a content tree.

    Args:
        text: Raw file contents.
        hooks: Parse callbacks; see ParseHooks.

    Returns:
        ParseResult. header is None when the text does not start with a
        @graph block.

    Raises:
        MarkupError: If an inline command is malformed.
    """
    if hooks is None:
        hooks = ParseHooks()

    items = _split_blocks(text)

    # Skip leading blank lines
    first = 0
    while first < len(items) and isinstance(items[first], str) and not items[first].strip():
        first += 1

    header: Optional[Dict[str, str]] = None
    first_item = items[first] if first < len(items) else None
    if isinstance(first_item, _Block) and first_item.name == HEADER_BLOCK:
        header = _parse_header(first_item)
        first += 1

    content: List[Any] = []
    paragraph: List[str] = []

    def flush() -> None:
        if paragraph:
            content.append({"id": PARAGRAPH, "children": _parse_inline("\n".join(paragraph), hooks)})
            paragraph.clear()

    for item in items[first:]:
        if isinstance(item, _Block):
            flush()
            content.append(_block_node(item, hooks))
        elif not item.strip():
            flush()
        else:
            paragraph.append(item)
    flush()

    return ParseResult(header=header, content=content)
