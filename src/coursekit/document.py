"""Rich-text document tree used for every prose field (pure data, no IO).

The tree follows the editor's JSON shape: a ``doc`` root holding block nodes,
block nodes holding inline nodes, and text nodes carrying optional marks.

Plain-text conversion is deliberately lossy. ``extract_plain_text`` keeps only
the characters of text runs, one line per text block; ``from_plain_text``
rebuilds one unformatted paragraph per line. ``from_plain_text(
extract_plain_text(doc))`` therefore drops every mark and every
non-paragraph block (lists, headings, quotes). Callers that need formatting
must keep the original document.
"""

from __future__ import annotations

import re
from typing import Literal

from pydantic import BaseModel, ConfigDict, model_validator

TEXT_NODE = "text"
PARAGRAPH_NODE = "paragraph"
HARD_BREAK_NODE = "hardBreak"

# Inline atoms that carry no text of their own.
INLINE_ATOM_TYPES = frozenset({HARD_BREAK_NODE})
# Blocks whose children are inline content (one output line each).
TEXTBLOCK_TYPES = frozenset({PARAGRAPH_NODE, "heading", "codeBlock"})

_LINE_SPLIT = re.compile(r"\r\n|\r|\n")


class Mark(BaseModel):
    """Formatting applied to a text run (bold, italic, link, ...)."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    type: str
    attrs: dict[str, object] | None = None


class Node(BaseModel):
    """One node of the tree: either a text run or a container of nodes."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    type: str
    content: tuple[Node, ...] | None = None
    text: str | None = None
    marks: tuple[Mark, ...] | None = None
    attrs: dict[str, object] | None = None

    @model_validator(mode="after")
    def _validate_shape(self) -> Node:
        """Enforce text-xor-content and marks-on-text-only.

        Returns:
            Validated node.

        Raises:
            ValueError: If the node shape is invalid.
        """
        if self.text is None and self.content is None:
            raise ValueError(f"node '{self.type}' must define text or content.")
        if self.text is not None and self.content is not None:
            raise ValueError(f"node '{self.type}' must not define both text and content.")
        if self.marks and self.text is None:
            raise ValueError(f"marks are only allowed on text nodes, not '{self.type}'.")
        return self

    @property
    def is_inline(self) -> bool:
        """True for text runs and inline atoms."""
        return self.text is not None or self.type in INLINE_ATOM_TYPES


class Document(BaseModel):
    """Immutable rich-text document. Every edit produces a new instance."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    type: Literal["doc"] = "doc"
    content: tuple[Node, ...] = ()

    def to_json(self) -> dict[str, object]:
        """Return the persisted JSON shape (unset optional keys omitted)."""
        return self.model_dump(mode="json", exclude_none=True)


def text_node(text: str, marks: tuple[Mark, ...] | None = None) -> Node:
    """Build a text run."""
    return Node(type=TEXT_NODE, text=text, marks=marks or None)


def paragraph(*children: Node) -> Node:
    """Build a paragraph holding the given inline nodes."""
    return Node(type=PARAGRAPH_NODE, content=tuple(children))


def create_empty() -> Document:
    """Return the blank document: a single empty paragraph."""
    return Document(content=(paragraph(),))


def from_plain_text(text: str) -> Document:
    """Build a document with one unformatted paragraph per input line.

    ``\\r\\n``, ``\\r`` and ``\\n`` all end a line. Empty lines become empty
    paragraphs. This is not the inverse of ``extract_plain_text``; see the
    module docstring for the lossy-conversion policy.

    Args:
        text: Plain text input.

    Returns:
        New document.
    """
    if not text:
        return create_empty()
    blocks = [
        paragraph(text_node(line)) if line else paragraph()
        for line in _LINE_SPLIT.split(text)
    ]
    return Document(content=tuple(blocks))


def extract_plain_text(doc: Document) -> str:
    """Project a document to plain text.

    Text runs are concatenated depth-first, each text block contributes one
    line, hard breaks become line breaks and marks are discarded. Lists,
    headings and other block structure are flattened to lines; the result
    cannot be turned back into the original structure.

    Args:
        doc: Document to project.

    Returns:
        Plain text with blocks separated by a single ``\\n``.
    """
    lines: list[str] = []
    for node in doc.content:
        _collect_lines(node, lines)
    return "\n".join(lines)


def is_empty(doc: Document) -> bool:
    """True when the document has no visible text."""
    return not extract_plain_text(doc).strip()


def _collect_lines(node: Node, lines: list[str]) -> None:
    if node.is_inline:
        lines.append(_inline_text(node))
        return
    children = node.content or ()
    if node.type in TEXTBLOCK_TYPES or any(child.is_inline for child in children):
        lines.append("".join(_inline_text(child) for child in children))
        return
    for child in children:
        _collect_lines(child, lines)


def _inline_text(node: Node) -> str:
    if node.text is not None:
        return node.text
    if node.type == HARD_BREAK_NODE:
        return "\n"
    # Unknown inline containers (e.g. wrapped runs): flatten their text.
    return "".join(_inline_text(child) for child in node.content or ())
