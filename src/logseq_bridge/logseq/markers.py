"""Task marker codec (TODO, DOING, DONE, ...).

A Block keeps its marker in ``Block.marker`` and never inside its content.
Text coming from the Logseq API still starts with the marker, so it is
stripped once on the way in (strip_marker) and added back on the way out
(restore_marker).
"""

import re
from typing import Optional

MARKERS = ("TODO", "DOING", "DONE", "WAITING", "CANCELED", "NOW", "LATER")

MARKER_PATTERN = re.compile(
    r"^(" + "|".join(MARKERS) + r")\s+(.+)", re.IGNORECASE | re.DOTALL
)


def extract_marker(text: str) -> tuple[Optional[str], str]:
    """Split a leading task marker off block text.

    The keyword must be followed by whitespace and more text; a bare
    ``TODO`` is ordinary content. Priority tags like ``[#A]`` are left alone.

    Args:
        text: Block content (first line drives the match)

    Returns:
        Tuple of (uppercased marker or None, remaining text)

    Examples:
        >>> extract_marker("todo Buy milk")
        ('TODO', 'Buy milk')
        >>> extract_marker("[#A] Urgent")
        (None, '[#A] Urgent')
    """
    match = MARKER_PATTERN.match(text)
    if not match:
        return None, text
    return match.group(1).upper(), match.group(2).strip()


def strip_marker(marker: Optional[str], text: str) -> str:
    """Remove one leading occurrence of ``marker`` from text.

    Used for API blocks, whose content still starts with the marker that is
    also reported in their ``marker`` field. Only that exact keyword is
    removed, so ``TODO todo app`` becomes ``todo app``.

    Examples:
        >>> strip_marker("TODO", "TODO todo app")
        'todo app'
        >>> strip_marker("TODO", "Buy milk")
        'Buy milk'
    """
    if not marker:
        return text
    match = re.match(rf"{re.escape(marker)}(?:[ \t]+|$)", text)
    return text[match.end():] if match else text


def restore_marker(marker: Optional[str], text: str) -> str:
    """Put a marker back in front of block text.

    Examples:
        >>> restore_marker("NOW", "now or never")
        'NOW now or never'
    """
    if not marker:
        return text
    return f"{marker} {text}" if text else marker
