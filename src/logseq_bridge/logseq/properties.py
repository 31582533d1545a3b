"""Property codec for Logseq ``key:: value`` statements.

Handles both directions:

- Extraction: pulls ``key:: value`` pairs out of a block's text and returns
  the text that remains once they are stripped.
- Formatting: coerces raw string values into their typed form (array keys
  become lists, boolean keys become bools).
- Rendering: turns typed values back into ``key:: value`` lines, wrapping
  multi-word values in ``[[wiki links]]``.
"""

import re
from typing import Any, Mapping, Optional, Union

PropertyValue = Union[str, list[str], bool]

ARRAY_KEYS = ("tags", "alias", "prerequisites")
BOOLEAN_KEYS = ("collapsed",)

PROPERTY_PATTERN = re.compile(r"^(.+?)::[ \t]*(.+)$", re.MULTILINE)


def is_property_statement(line: str) -> bool:
    """Check whether a whole line is a ``key:: value`` statement."""
    return PROPERTY_PATTERN.fullmatch(line.strip()) is not None


def extract_properties(text: str) -> tuple[dict[str, str], str]:
    """Extract every ``key:: value`` pair from a block of text.

    Each property line is removed from the text; the remaining lines are
    returned as the clean content.

    Args:
        text: Block content, possibly multi-line

    Returns:
        Tuple of (raw properties in document order, clean content)

    Examples:
        >>> extract_properties("tags:: a, b")
        ({'tags': 'a, b'}, '')
        >>> extract_properties("Meeting notes\\nowner:: Sam")
        ({'owner': 'Sam'}, 'Meeting notes')
    """
    properties: dict[str, str] = {}
    matches = list(PROPERTY_PATTERN.finditer(text))
    if not matches:
        return properties, text

    for match in matches:
        properties[match.group(1).strip()] = match.group(2).strip()

    remaining = PROPERTY_PATTERN.sub("", text)
    clean = "\n".join(line for line in remaining.split("\n") if line.strip())
    return properties, clean.strip()


def _split_array(value: Any) -> list[str]:
    items = value if isinstance(value, list) else str(value).split(",")
    cleaned = []
    for item in items:
        item = str(item).strip().replace("[", "").replace("]", "")
        if item:
            cleaned.append(item)
    return cleaned


def format_properties(raw: Mapping[str, Any]) -> dict[str, PropertyValue]:
    """Coerce raw property values into their typed form.

    - ``tags``, ``alias`` and ``prerequisites`` are split on commas, trimmed
      and stripped of ``[``/``]`` brackets
    - ``collapsed`` becomes a bool (only the literal ``"true"`` is true)
    - everything else stays a string

    Args:
        raw: Property mapping, usually straight from extract_properties()

    Returns:
        New mapping with typed values, key order preserved
    """
    formatted: dict[str, PropertyValue] = {}
    for key, value in raw.items():
        if key in ARRAY_KEYS:
            formatted[key] = _split_array(value)
        elif key in BOOLEAN_KEYS:
            formatted[key] = value is True or value == "true"
        elif isinstance(value, (bool, list)):
            formatted[key] = value
        else:
            formatted[key] = str(value)
    return formatted


def promote_collapsed(properties: dict[str, Any]) -> Optional[bool]:
    """Remove ``collapsed`` from a property mapping and return it as a bool.

    Returns None when the mapping has no ``collapsed`` key.
    """
    if "collapsed" not in properties:
        return None
    value = properties.pop("collapsed")
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() == "true"


def wikify(value: str) -> str:
    """Wrap a multi-word value in ``[[...]]`` unless it is already a link."""
    if " " in value and not (value.startswith("[[") and value.endswith("]]")):
        return f"[[{value}]]"
    return value


def render_value(value: Any, wikify_scalars: bool = True) -> str:
    """Render a typed property value as it appears after ``key::``."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, list):
        return ", ".join(wikify(str(item)) for item in value)
    text = str(value)
    return wikify(text) if wikify_scalars else text


def render_property(key: str, value: Any, wikify_scalars: bool = True) -> str:
    """Render one ``key:: value`` line.

    Args:
        key: Property key
        value: Typed value (str, list of str or bool)
        wikify_scalars: Wrap multi-word string values in [[...]]; arrays are
            always wrapped item by item

    Examples:
        >>> render_property("tags", ["python", "note taking"])
        'tags:: python, [[note taking]]'
        >>> render_property("title", "My Page")
        'title:: [[My Page]]'
    """
    return f"{key}:: {render_value(value, wikify_scalars)}"
