"""Selective filtering of block trees.

``select_block`` prunes a tree with caller-supplied predicates applied to
each block's first content line, keeping every ancestor of a surviving
block. ``build_selectors`` builds those predicates from ``--less`` /
``--only`` patterns, where each pattern is either the name of a configured
filter or a raw regular expression.
"""

import re
from dataclasses import dataclass, field
from typing import Callable, Mapping, Optional, Sequence

from logseq_bridge.logseq.markers import restore_marker
from logseq_bridge.logseq.properties import is_property_statement
from logseq_bridge.models.block import Block
from logseq_bridge.services.exceptions import FilterError

Predicate = Callable[[str], bool]


def never(_line: str) -> bool:
    """Predicate that never matches."""
    return False


def _match_line(block: Block) -> str:
    """First line as written in outline text, marker included."""
    return restore_marker(block.marker, block.first_line)


def select_block(block: Block, keep: Predicate, force_keep: Predicate = never) -> Optional[Block]:
    """Filter one block and its subtree.

    A block is kept when ``force_keep`` or ``keep`` accepts its first line
    (marker included), or when at least one of its descendants is kept: a
    rejected block still carries the path down to a surviving child. A
    rejected block without surviving descendants goes with its whole
    subtree, and a block left with no content, no properties and no
    children is dropped too.

    Args:
        block: Block to filter (not modified)
        keep: Main predicate
        force_keep: Predicate that overrides ``keep``

    Returns:
        Filtered copy of the block, or None when it is discarded
    """
    line = _match_line(block)
    matched = force_keep(line) or keep(line)

    children = []
    for child in block.children:
        selected = select_block(child, keep, force_keep)
        if selected is not None:
            children.append(selected)

    if not matched and not children:
        return None
    if not block.content and not block.properties and not children:
        return None

    return Block(
        content=block.content,
        properties=dict(block.properties),
        marker=block.marker,
        collapsed=block.collapsed,
        children=children,
        pre_block=block.pre_block,
    )


def select_blocks(blocks: list[Block], keep: Predicate, force_keep: Predicate = never) -> list[Block]:
    """Filter a page, dropping discarded root blocks."""
    selected = []
    for block in blocks:
        result = select_block(block, keep, force_keep)
        if result is not None:
            selected.append(result)
    return selected


def is_page_metadata(line: str) -> bool:
    """True for property statements, the page header line and empty lines.

    Empty first lines belong to property-only blocks (page properties); a
    placeholder without surviving children is still dropped as vacant.
    """
    stripped = line.strip()
    return not stripped or stripped.startswith("# ") or is_property_statement(stripped)


def _compile(patterns: Sequence[str], named_filters: Mapping[str, str]) -> list[re.Pattern]:
    compiled = []
    for pattern in patterns:
        source = named_filters.get(pattern, pattern)
        try:
            compiled.append(re.compile(source))
        except re.error as e:
            raise FilterError(source, str(e)) from e
    return compiled


@dataclass
class Selectors:
    """Predicates built from --less/--only options.

    Attributes:
        keep: Main predicate for select_block
        force_keep: Override predicate for select_block
        active: False when no filter option was given at all
        less: Compiled exclusion patterns
        only: Compiled inclusion patterns
    """

    keep: Predicate
    force_keep: Predicate
    active: bool
    less: list[re.Pattern] = field(default_factory=list)
    only: list[re.Pattern] = field(default_factory=list)

    def apply(self, blocks: list[Block]) -> list[Block]:
        """Filter a page, or return it untouched when no option was given."""
        if not self.active:
            return blocks
        return select_blocks(blocks, self.keep, self.force_keep)


def build_selectors(
    less: Optional[Sequence[str]] = None,
    only: Optional[Sequence[str]] = None,
    named_filters: Optional[Mapping[str, str]] = None,
) -> Selectors:
    """Build keep/force-keep predicates from pattern lists.

    Args:
        less: Patterns whose matching lines are removed. None = option not
            given; an empty list = every configured filter.
        only: Patterns a line must match to be kept. Same None/empty rules.
        named_filters: Configured filters, name -> regex

    Returns:
        Selectors for select_blocks()

    Raises:
        FilterError: If a pattern is not a valid regular expression

    Examples:
        >>> selectors = build_selectors(less=["tasks"], named_filters={"tasks": "^TODO"})
        >>> selectors.keep("TODO call"), selectors.keep("Notes")
        (False, True)
    """
    named_filters = named_filters or {}
    all_names = list(named_filters)

    less_patterns = _compile(all_names if less is not None and not less else (less or []), named_filters)
    only_patterns = _compile(all_names if only is not None and not only else (only or []), named_filters)

    def keep(line: str) -> bool:
        if any(pattern.search(line) for pattern in less_patterns):
            return False
        if only_patterns:
            return any(pattern.search(line) for pattern in only_patterns)
        return True

    return Selectors(
        keep=keep,
        force_keep=is_page_metadata,
        active=less is not None or only is not None,
        less=less_patterns,
        only=only_patterns,
    )
