"""Line classifier for Logseq outline text.

Turns raw lines into typed events consumed by both the in-memory parser and
the streaming builder. The classifier is stateful only as far as the page
preamble goes: it remembers whether the page header has been seen, whether
the header section is still open and whether any block has started.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator, Optional


class LineKind(str, Enum):
    """Kinds of non-blank outline lines."""

    HEADER = "header"
    PAGE_PROPERTY = "page-property"
    HEADER_PROPERTY = "header-property"
    BLOCK = "block"
    PROPERTY = "property"
    CONTENT = "content"


@dataclass(frozen=True)
class ClassifiedLine:
    """One classified line.

    Attributes:
        kind: Line kind
        content: Trimmed text (for blocks: the text after "- ")
        level: Indent level computed from leading whitespace
        closes_header: True when this line ends the header section, so the
            pending header must be finalized before handling the line
    """

    kind: LineKind
    content: str
    level: int = 0
    closes_header: bool = False


def indent_level(line: str) -> int:
    """Compute nesting depth from leading whitespace.

    One tab and two spaces are the same unit of depth; tabs and spaces are
    counted independently and summed.

    Examples:
        >>> indent_level("\\t\\t- deep")
        2
        >>> indent_level("    - deep")
        2
        >>> indent_level("   - odd")
        1
    """
    leading = line[: len(line) - len(line.lstrip())]
    tabs = leading.count("\t")
    spaces = len(leading) - tabs
    return tabs + spaces // 2


class LineClassifier:
    """Classify outline lines one at a time, in document order.

    A fresh classifier must be used for every document.
    """

    def __init__(self) -> None:
        self.header_seen = False
        self.header_open = False
        self.blocks_started = False

    def classify(self, line: str) -> Optional[ClassifiedLine]:
        """Classify a single raw line.

        Args:
            line: Raw line, including leading whitespace

        Returns:
            ClassifiedLine, or None for blank lines
        """
        trimmed = line.strip()
        if not trimmed:
            return None

        level = indent_level(line)

        if not self.header_seen and trimmed.startswith("# "):
            self.header_seen = True
            self.header_open = True
            return ClassifiedLine(LineKind.HEADER, trimmed, level)

        is_bullet = trimmed.startswith("- ") or trimmed == "-"

        if not self.blocks_started and "::" in trimmed and not is_bullet:
            kind = LineKind.HEADER_PROPERTY if self.header_open else LineKind.PAGE_PROPERTY
            return ClassifiedLine(kind, trimmed, level)

        closes_header = self.header_open
        self.header_open = False

        if is_bullet:
            self.blocks_started = True
            return ClassifiedLine(LineKind.BLOCK, trimmed[2:].strip(), level, closes_header)

        if "::" in trimmed:
            return ClassifiedLine(LineKind.PROPERTY, trimmed, level, closes_header)

        return ClassifiedLine(LineKind.CONTENT, trimmed, level, closes_header)


def classify_lines(lines: Iterable[str]) -> Iterator[ClassifiedLine]:
    """Classify a whole document, skipping blank lines."""
    classifier = LineClassifier()
    for line in lines:
        classified = classifier.classify(line)
        if classified is not None:
            yield classified
