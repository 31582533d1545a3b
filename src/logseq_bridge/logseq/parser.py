"""Logseq outline parser.

This module turns Logseq's flat, indentation-based markdown into a Block
tree. Structure comes from "- " bullet lines only; property lines and
hanging content attach to the most recently opened block.

The parser is a small state machine. All mutable parse state lives in a
single ParseState value that handler functions advance one classified line
at a time, so a parse never leaks state into the next one.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, Optional

from logseq_bridge.logseq.lines import ClassifiedLine, LineClassifier, LineKind
from logseq_bridge.logseq.markers import extract_marker
from logseq_bridge.logseq.properties import (
    extract_properties,
    format_properties,
    promote_collapsed,
)
from logseq_bridge.models.block import Block
from logseq_bridge.services.exceptions import EmptyInputError
from logseq_bridge.utils.logging import get_logger

logger = get_logger(__name__)


class ParsePhase(str, Enum):
    """Where the parser is in the document."""

    PAGE_PROPERTIES = "collecting-page-properties"
    HEADER = "collecting-header"
    BODY = "body"


@dataclass
class ParseState:
    """Everything a single parse call knows.

    Attributes:
        phase: Current state machine phase
        roots: Root blocks collected so far (document order)
        stack: Open ancestors, index = depth
        current: Block that receives property and content lines
        header: Captured "# Title" line, until finalized
        header_properties: Raw properties written under the header
        page_properties: Raw properties written before the header
        pending_properties: Properties seen before any block existed
        line_number: 1-based number of the line being handled
    """

    phase: ParsePhase = ParsePhase.PAGE_PROPERTIES
    roots: list[Block] = field(default_factory=list)
    stack: list[Block] = field(default_factory=list)
    current: Optional[Block] = None
    header: Optional[str] = None
    header_properties: dict[str, str] = field(default_factory=dict)
    page_properties: dict[str, str] = field(default_factory=dict)
    pending_properties: dict[str, str] = field(default_factory=dict)
    line_number: int = 0


def create_block(content: str, state: ParseState) -> Block:
    """Build a Block from the text after a "- " bullet.

    Extracts the task marker, applies pending properties (first block only),
    pulls inline ``key:: value`` statements out of the text and promotes
    ``collapsed`` to its own field.
    """
    marker, text = extract_marker(content)

    raw: dict[str, str] = {}
    if state.pending_properties:
        raw.update(state.pending_properties)
        state.pending_properties = {}

    inline, clean = extract_properties(text)
    raw.update(inline)

    properties = format_properties(raw)
    collapsed = promote_collapsed(properties)

    return Block(content=clean, properties=properties, marker=marker, collapsed=collapsed)


def _finalize_header(state: ParseState) -> None:
    """Turn the captured header and its properties into a pre-block."""
    if state.header is None:
        state.phase = ParsePhase.BODY
        return

    raw, clean = extract_properties(state.header)
    raw.update(state.header_properties)

    block = Block(properties=format_properties(raw), pre_block=True)
    if clean.strip():
        block.content = clean + "\n"

    state.roots.append(block)
    state.header = None
    state.header_properties = {}
    state.phase = ParsePhase.BODY


def _on_header(line: ClassifiedLine, state: ParseState) -> None:
    state.header = line.content
    state.phase = ParsePhase.HEADER


def _on_page_property(line: ClassifiedLine, state: ParseState) -> None:
    properties, _ = extract_properties(line.content)
    state.page_properties.update(properties)


def _on_header_property(line: ClassifiedLine, state: ParseState) -> None:
    properties, _ = extract_properties(line.content)
    state.header_properties.update(properties)


def _on_block(line: ClassifiedLine, state: ParseState) -> None:
    level = line.level
    block = create_block(line.content, state)

    del state.stack[level:]

    if len(state.stack) < level:
        logger.warning(
            "parser_indent_jump",
            line_number=state.line_number,
            level=level,
            open_levels=len(state.stack),
        )
    # Missing ancestors reuse the nearest open block rather than inventing nodes
    while len(state.stack) < level:
        if not state.stack and state.roots:
            state.stack.append(state.roots[-1])
        elif state.stack:
            state.stack.append(state.stack[-1])
        else:
            placeholder = Block()
            state.roots.append(placeholder)
            state.stack.append(placeholder)

    if level == 0:
        state.roots.append(block)
    else:
        state.stack[level - 1].add_child(block)

    state.stack.append(block)
    state.current = block


def _on_property(line: ClassifiedLine, state: ParseState) -> None:
    raw, _ = extract_properties(line.content)

    if state.current is None:
        state.pending_properties.update(raw)
        return

    properties = format_properties(raw)
    collapsed = promote_collapsed(properties)
    if collapsed is not None:
        state.current.collapsed = collapsed
    state.current.properties.update(properties)


def _on_content(line: ClassifiedLine, state: ParseState) -> None:
    if state.current is None:
        logger.warning(
            "parser_orphan_content",
            line_number=state.line_number,
            content=line.content,
        )
        return
    state.current.append_line(line.content)


HANDLERS: dict[LineKind, Callable[[ClassifiedLine, ParseState], None]] = {
    LineKind.HEADER: _on_header,
    LineKind.PAGE_PROPERTY: _on_page_property,
    LineKind.HEADER_PROPERTY: _on_header_property,
    LineKind.BLOCK: _on_block,
    LineKind.PROPERTY: _on_property,
    LineKind.CONTENT: _on_content,
}


def advance(state: ParseState, line: ClassifiedLine) -> ParseState:
    """Apply one classified line to the parse state."""
    if line.closes_header:
        _finalize_header(state)
    elif line.kind in (LineKind.BLOCK, LineKind.PROPERTY, LineKind.CONTENT):
        state.phase = ParsePhase.BODY
    HANDLERS[line.kind](line, state)
    return state


def _prune_vacant(blocks: list[Block]) -> list[Block]:
    kept = []
    for block in blocks:
        block.children = _prune_vacant(block.children)
        if block.pre_block or not block.is_vacant():
            kept.append(block)
    return kept


def finish(state: ParseState) -> list[Block]:
    """Close the parse and return the root blocks.

    Finalizes a header that was never followed by a body line and prepends
    the synthetic page-property block when page properties were written.
    """
    if state.phase == ParsePhase.HEADER:
        _finalize_header(state)

    roots = _prune_vacant(state.roots)

    if state.page_properties:
        roots.insert(0, Block(content="", properties=format_properties(state.page_properties)))

    return roots


class OutlineParser:
    """Incremental parser: feed lines, then call finish().

    Examples:
        >>> parser = OutlineParser()
        >>> for line in ["- Parent", "  - Child"]:
        ...     parser.feed(line)
        >>> [block.content for block in parser.finish()]
        ['Parent']
    """

    def __init__(self) -> None:
        self.classifier = LineClassifier()
        self.state = ParseState()

    def feed(self, line: str) -> None:
        """Handle one raw line."""
        self.state.line_number += 1
        classified = self.classifier.classify(line)
        if classified is None:
            return
        logger.debug(
            "parser_line_classified",
            line_number=self.state.line_number,
            kind=classified.kind.value,
            level=classified.level,
        )
        advance(self.state, classified)

    def finish(self) -> list[Block]:
        """Return the parsed root blocks."""
        return finish(self.state)


def parse_lines(lines: Iterable[str]) -> list[Block]:
    """Parse an iterable of raw lines into root blocks."""
    parser = OutlineParser()
    for line in lines:
        parser.feed(line)
    return parser.finish()


def parse_outline(text: str) -> list[Block]:
    """Parse Logseq outline text into a list of root blocks.

    IMPORTANT: Preserves document order:

    - Root blocks and children appear in source order
    - Property keys keep insertion order
    - Continuation lines are joined into the owning block's content

    Args:
        text: Logseq markdown

    Returns:
        Root blocks. A header becomes a leading pre-block; page properties
        written before the header become a leading property-only block.

    Raises:
        EmptyInputError: If text is empty or whitespace only

    Examples:
        >>> blocks = parse_outline("- TODO Ship it\\n  - Write tests")
        >>> blocks[0].marker, blocks[0].content, blocks[0].children[0].content
        ('TODO', 'Ship it', 'Write tests')
    """
    if not text or not text.strip():
        raise EmptyInputError("No outline text to parse")
    return parse_lines(text.split("\n"))
