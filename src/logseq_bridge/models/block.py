"""Block tree model shared by the parser, serializer, filter and API layer."""

from dataclasses import dataclass, field
from typing import Any, Optional

from logseq_bridge.logseq.markers import MARKERS, strip_marker
from logseq_bridge.logseq.properties import PropertyValue


@dataclass
class Block:
    """Single node of a Logseq outline.

    Attributes:
        content: Block text without bullet or property lines. Never starts
                 with the task marker, which lives in ``marker``.
                 Continuation lines are joined with "\\n".
        properties: Typed properties in document order
        marker: Task marker (TODO, DOING, ...) or None
        collapsed: Promoted ``collapsed::`` property, None when absent
        children: Child blocks in document order
        pre_block: True for the synthetic page-header block
    """

    content: str = ""
    properties: dict[str, PropertyValue] = field(default_factory=dict)
    marker: Optional[str] = None
    collapsed: Optional[bool] = None
    children: list["Block"] = field(default_factory=list)
    pre_block: bool = False

    @property
    def first_line(self) -> str:
        """First line of content; the line markers and filters look at."""
        return self.content.split("\n", 1)[0]

    @property
    def continuation_lines(self) -> list[str]:
        """Content lines after the first one."""
        return self.content.split("\n")[1:]

    def is_vacant(self) -> bool:
        """True when the block has no content, no properties and no children."""
        return not self.content and not self.properties and not self.children

    def add_child(self, child: "Block") -> "Block":
        """Append a child block and return it."""
        self.children.append(child)
        return child

    def append_line(self, line: str) -> None:
        """Append a continuation line to the content."""
        self.content = f"{self.content}\n{line}" if self.content else line

    def walk(self):
        """Yield this block and all descendants depth-first, in document order."""
        yield self
        for child in self.children:
            yield from child.walk()

    def to_dict(self) -> dict[str, Any]:
        """Convert to the JSON block shape.

        Optional keys are omitted when empty. A pre-block without content has
        no ``content`` key at all.
        """
        data: dict[str, Any] = {}
        if self.content or not self.pre_block:
            data["content"] = self.content
        if self.properties:
            data["properties"] = {
                key: list(value) if isinstance(value, list) else value
                for key, value in self.properties.items()
            }
        if self.marker:
            data["marker"] = self.marker
        if self.collapsed is not None:
            data["collapsed"] = self.collapsed
        if self.pre_block:
            data["preBlock"] = True
        if self.children:
            data["children"] = [child.to_dict() for child in self.children]
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any], marker_in_content: bool = False) -> "Block":
        """Build a block tree from the JSON block shape.

        Also accepts block objects returned by the Logseq API, which carry
        extra keys (uuid, page, ...) and spell some flags with a trailing
        question mark (``preBlock?``, ``collapsed?``).

        Args:
            data: Block mapping
            marker_in_content: Content still starts with the marker (API
                blocks); strip it so only ``marker`` carries it

        Raises:
            ValueError: If data is not a mapping
        """
        if not isinstance(data, dict):
            raise ValueError(f"Block must be an object, got {type(data).__name__}")

        properties: dict[str, PropertyValue] = {}
        for key, value in (data.get("properties") or {}).items():
            if isinstance(value, (bool, str)):
                properties[key] = value
            elif isinstance(value, list):
                properties[key] = [str(item) for item in value]
            else:
                properties[key] = str(value)

        collapsed = data.get("collapsed", data.get("collapsed?"))
        marker = str(data.get("marker") or "").upper() or None
        if marker not in MARKERS:
            marker = None

        content = data.get("content") or ""
        if marker_in_content:
            content = strip_marker(marker, content)

        return cls(
            content=content,
            properties=properties,
            marker=marker,
            collapsed=bool(collapsed) if collapsed is not None else None,
            children=[cls.from_dict(child, marker_in_content) for child in data.get("children") or []],
            pre_block=bool(data.get("preBlock", data.get("preBlock?", False))),
        )


def blocks_to_json(blocks: list[Block]) -> list[dict[str, Any]]:
    """Convert a page (list of root blocks) to JSON-ready dicts."""
    return [block.to_dict() for block in blocks]


def blocks_from_json(data: Any) -> list[Block]:
    """Build a page from decoded JSON (a list of blocks or a single block)."""
    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list):
        raise ValueError("Expected a JSON array of blocks")
    return [Block.from_dict(item) for item in data]
