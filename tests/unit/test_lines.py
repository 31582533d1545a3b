"""Unit tests for the line classifier."""

import pytest

from logseq_bridge.logseq.lines import LineClassifier, LineKind, classify_lines, indent_level


class TestIndentLevel:
    """Tests for indent_level()."""

    @pytest.mark.parametrize(
        "line,expected",
        [
            ("- root", 0),
            ("  - one", 1),
            ("\t- one", 1),
            ("    - two", 2),
            ("\t\t- two", 2),
            ("\t  - mixed", 2),
            ("   - odd spaces", 1),
        ],
    )
    def test_tabs_and_space_pairs_are_equivalent(self, line, expected):
        assert indent_level(line) == expected


class TestLineClassifier:
    """Tests for LineClassifier.classify()."""

    def test_blank_lines_emit_nothing(self):
        classifier = LineClassifier()

        assert classifier.classify("") is None
        assert classifier.classify("   \t ") is None

    def test_block_line_content_after_bullet(self):
        line = LineClassifier().classify("    - Nested item  ")

        assert line.kind == LineKind.BLOCK
        assert line.content == "Nested item"
        assert line.level == 2

    def test_bare_dash_is_an_empty_block(self):
        line = LineClassifier().classify("  -")

        assert line.kind == LineKind.BLOCK
        assert line.content == ""
        assert line.level == 1

    def test_header_only_once(self):
        classifier = LineClassifier()

        first = classifier.classify("# Title")
        classifier.classify("- body")
        second = classifier.classify("# Not a header")

        assert first.kind == LineKind.HEADER
        assert second.kind == LineKind.CONTENT

    def test_page_property_before_header(self):
        classifier = LineClassifier()

        line = classifier.classify("alias:: home")

        assert line.kind == LineKind.PAGE_PROPERTY

    def test_header_property_after_header(self):
        classifier = LineClassifier()
        classifier.classify("# Title")

        line = classifier.classify("tags:: a, b")

        assert line.kind == LineKind.HEADER_PROPERTY

    def test_bulleted_property_is_a_block(self):
        line = LineClassifier().classify("- tags:: a")

        assert line.kind == LineKind.BLOCK
        assert line.content == "tags:: a"

    def test_first_non_property_line_closes_header(self):
        classifier = LineClassifier()
        classifier.classify("# Title")
        classifier.classify("tags:: a")

        block = classifier.classify("- First")
        after = classifier.classify("- Second")

        assert block.closes_header is True
        assert after.closes_header is False

    def test_property_after_blocks_started(self):
        classifier = LineClassifier()
        classifier.classify("- Block")

        line = classifier.classify("  owner:: Sam")

        assert line.kind == LineKind.PROPERTY
        assert line.level == 1

    def test_content_line(self):
        classifier = LineClassifier()
        classifier.classify("- Block")

        line = classifier.classify("  continued text")

        assert line.kind == LineKind.CONTENT
        assert line.content == "continued text"

    def test_classify_lines_skips_blanks(self):
        kinds = [line.kind for line in classify_lines(["# T", "", "- A", "  more"])]

        assert kinds == [LineKind.HEADER, LineKind.BLOCK, LineKind.CONTENT]
