"""Unit tests for the block tree serializer."""

from textwrap import dedent

import pytest

from logseq_bridge.logseq.parser import parse_outline
from logseq_bridge.logseq.serializer import render_lines, serialize_blocks
from logseq_bridge.models.block import Block


class TestRoundTrip:
    """Parsing then serializing canonical text gives the same text back."""

    @pytest.mark.parametrize(
        "text",
        [
            "- A\n  - B\n    - C\n- D",
            "- TODO First task\n  - Sub task\n    prop:: val",
            "- First line\n  second line",
            "alias:: home\n- Body",
            "# Title\ntags:: a, [[b c]]\n\n- Body\n  - DONE Child",
            "- TODO todo app",
            "- NOW now or never\n  - DONE done deal",
            "-\n  - Under an empty parent\n- Next",
        ],
    )
    def test_canonical_text_round_trips(self, text):
        assert serialize_blocks(parse_outline(text)) == text

    def test_round_trip_is_stable(self):
        text = dedent(
            """\
            - Meeting
            \ttype:: sync
            \t- later follow up
            \t\t- notes"""
        )

        once = serialize_blocks(parse_outline(text))
        twice = serialize_blocks(parse_outline(once))

        assert once == twice
        assert once.startswith("- Meeting\n  type:: sync\n  - LATER follow up")


class TestSerializeBlocks:
    """Tests for serialize_blocks() and render_lines()."""

    def test_collapsed_is_never_rendered(self):
        blocks = parse_outline("- Folded\n  collapsed:: true\n  - child")

        text = serialize_blocks(blocks)

        assert text == "- Folded\n  - child"
        reparsed = parse_outline(text)[0]
        assert reparsed.collapsed is None
        assert "collapsed" not in reparsed.properties

    def test_marker_restored(self):
        assert serialize_blocks([Block(content="Ship it", marker="DONE")]) == "- DONE Ship it"

    def test_marker_restored_when_content_starts_with_same_word(self):
        block = Block(content="todo app", marker="TODO")

        assert serialize_blocks([block]) == "- TODO todo app"

    def test_empty_parent_keeps_its_children(self):
        blocks = [Block(content="X"), Block(children=[Block(content="Y")])]

        text = serialize_blocks(blocks)

        assert text == "- X\n-\n  - Y"
        x, empty = parse_outline(text)
        assert x.children == []
        assert empty.children[0].content == "Y"

    def test_properties_in_content_not_repeated(self):
        block = Block(content="Meeting\ntype:: sync", properties={"type": "sync"})

        assert serialize_blocks([block]) == "- Meeting\n  type:: sync"

    def test_remote_collapsed_line_skipped(self):
        block = Block(content="Folded\ncollapsed:: true", collapsed=True)

        assert serialize_blocks([block]) == "- Folded"

    def test_array_properties_wikified(self):
        block = Block(content="Paper", properties={"tags": ["ml", "deep learning"]})

        assert serialize_blocks([block]) == "- Paper\n  tags:: ml, [[deep learning]]"

    def test_property_only_block_after_first_gets_bullet(self):
        blocks = [Block(content="Intro"), Block(properties={"rating": "5"})]

        assert serialize_blocks(blocks) == "- Intro\n- rating:: 5"

    def test_property_statement_content_has_no_bullet(self):
        blocks = [Block(content="title:: Remote page")]

        assert serialize_blocks(blocks) == "title:: Remote page"

    def test_render_lines_at_level(self):
        lines = render_lines([Block(content="Nested", children=[Block(content="Deeper")])], level=1)

        assert lines == ["  - Nested", "    - Deeper"]

    def test_empty_page(self):
        assert serialize_blocks([]) == ""
