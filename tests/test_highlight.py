"""Tests for the segment tokenizer."""
from __future__ import annotations

from mindsync.highlight import highlight
from mindsync.models import UnfamiliarWord


def _joined(segments):
    return "".join(s.text for s in segments)


def _marked(segments):
    return [(s.text, s.tooltip) for s in segments if s.highlighted]


class TestHighlight:
    def test_single_word(self):
        segs = highlight("The ephemeral glow faded.", [UnfamiliarWord("ephemeral", "short-lived")])
        assert [s.text for s in segs] == ["The ", "ephemeral", " glow faded."]
        assert _marked(segs) == [("ephemeral", "short-lived")]

    def test_case_insensitive_keeps_original_casing(self):
        segs = highlight("Ephemeral, so EPHEMERAL.", [UnfamiliarWord("ephemeral", "short-lived")])
        assert [t for t, _ in _marked(segs)] == ["Ephemeral", "EPHEMERAL"]

    def test_whole_words_only(self):
        segs = highlight("cat concatenate cats cat.", [UnfamiliarWord("cat", "animal")])
        assert [t for t, _ in _marked(segs)] == ["cat", "cat"]

    def test_no_double_wrapping(self):
        words = [
            UnfamiliarWord("glow", "steady light"),
            UnfamiliarWord("Glow", "other definition"),
        ]
        segs = highlight("A glow.", words)
        assert _marked(segs) == [("glow", "steady light")]

    def test_later_word_inside_plain_text_only(self):
        words = [UnfamiliarWord("ephemeral", "short-lived"), UnfamiliarWord("glow", "light")]
        segs = highlight("The ephemeral glow faded.", words)
        assert _marked(segs) == [("ephemeral", "short-lived"), ("glow", "light")]

    def test_regex_characters_escaped(self):
        segs = highlight("Use C.O.D. or COD", [UnfamiliarWord("C.O.D", "cash on delivery")])
        assert _marked(segs) == [("C.O.D", "cash on delivery")]

    def test_reconstructs_text(self):
        text = "Ephemeral things are ephemeral; glow, glowing, glow!"
        words = [UnfamiliarWord("ephemeral", "a"), UnfamiliarWord("glow", "b")]
        assert _joined(highlight(text, words)) == text

    def test_no_words(self):
        segs = highlight("Plain text.", [])
        assert len(segs) == 1
        assert not segs[0].highlighted

    def test_empty_text(self):
        assert highlight("", [UnfamiliarWord("x", "y")]) == []

    def test_blank_word_skipped(self):
        segs = highlight("Plain text.", [UnfamiliarWord("  ", "nothing")])
        assert _marked(segs) == []
