"""Block tree serializer, the inverse of the outline parser.

Walks a block tree and emits Logseq outline text, two spaces per level.
Works for trees produced by the parser as well as trees fetched from the
Logseq API, whose blocks keep property lines inside their content.
"""

import re

from logseq_bridge.logseq.markers import restore_marker
from logseq_bridge.logseq.properties import render_property
from logseq_bridge.models.block import Block

INDENT = "  "


def normalize_separator(lines: list[str]) -> list[str]:
    """Drop blank lines from a run of continuation lines."""
    return [line for line in lines if line.strip()]


def _properties_to_render(block: Block) -> list[tuple[str, object]]:
    """Properties that are not already written out in the block's content."""
    pending = []
    for key, value in block.properties.items():
        if key == "collapsed":
            continue
        if re.search(rf"^\s*{re.escape(key)}::", block.content, re.MULTILINE):
            continue
        pending.append((key, value))
    return pending


def _render_pre_block(block: Block, indent: str, lines: list[str]) -> None:
    if block.content:
        for line in normalize_separator(block.content.split("\n")):
            lines.append(f"{indent}{line}")
    for key, value in _properties_to_render(block):
        lines.append(f"{indent}{render_property(key, value)}")
    lines.append("")


def _render_property_block(block: Block, indent: str, hanging: str, bare: bool, lines: list[str]) -> None:
    rendered = [render_property(key, value) for key, value in _properties_to_render(block)]
    if not rendered:
        return
    if bare:
        lines.extend(f"{indent}{line}" for line in rendered)
        return
    lines.append(f"{indent}- {rendered[0]}")
    lines.extend(f"{hanging}{line}" for line in rendered[1:])


def _render_block(block: Block, indent: str, hanging: str, lines: list[str]) -> None:
    first, *rest = block.content.split("\n")

    # A block whose text is itself a property statement carries no bullet
    if "::" in first:
        lines.append(f"{indent}{first}")
        for line in normalize_separator(rest):
            lines.append(f"{indent}{line}")
        return

    lines.append(f"{indent}- {restore_marker(block.marker, first)}")
    for key, value in _properties_to_render(block):
        lines.append(f"{hanging}{render_property(key, value, wikify_scalars=False)}")
    for line in normalize_separator(rest):
        if line.startswith("collapsed:: "):
            continue
        lines.append(f"{hanging}{line}")


def render_lines(blocks: list[Block], level: int = 0) -> list[str]:
    """Render blocks (and their descendants) to outline lines.

    Args:
        blocks: Blocks to render, in order
        level: Indent level of the given blocks

    Returns:
        Lines without trailing newlines
    """
    lines: list[str] = []
    indent = INDENT * level
    hanging = INDENT * (level + 1)

    for index, block in enumerate(blocks):
        if block.pre_block:
            _render_pre_block(block, indent, lines)
        elif block.content:
            _render_block(block, indent, hanging, lines)
        elif block.properties:
            # Leading property-only root: page properties, written bare
            bare = level == 0 and index == 0 and not block.children
            _render_property_block(block, indent, hanging, bare, lines)
        elif block.children or block.marker:
            # Empty parent: a bare bullet keeps its children attached to it
            lines.append(f"{indent}- {restore_marker(block.marker, '')}".rstrip())

        if block.children:
            lines.extend(render_lines(block.children, level + 1))

    return lines


def serialize_blocks(blocks: list[Block], level: int = 0) -> str:
    """Serialize a page (list of root blocks) to Logseq outline text.

    Examples:
        >>> from logseq_bridge.logseq.parser import parse_outline
        >>> serialize_blocks(parse_outline("- Parent\\n  - Child"))
        '- Parent\\n  - Child'
    """
    return "\n".join(render_lines(blocks, level))
