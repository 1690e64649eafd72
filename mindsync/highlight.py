"""Split document text into plain and highlighted segments."""
from __future__ import annotations

import re

from mindsync.models import Segment, UnfamiliarWord


def word_pattern(word: str) -> re.Pattern:
    return re.compile(rf"\b{re.escape(word)}\b", re.IGNORECASE)


def _split(segment: Segment, pattern: re.Pattern, tooltip: str) -> list[Segment]:
    out: list[Segment] = []
    pos = 0
    for m in pattern.finditer(segment.text):
        if m.start() > pos:
            out.append(Segment(segment.text[pos:m.start()]))
        out.append(Segment(m.group(0), highlighted=True, tooltip=tooltip))
        pos = m.end()
    if pos < len(segment.text):
        out.append(Segment(segment.text[pos:]))
    return out


def highlight(text: str, words: list[UnfamiliarWord]) -> list[Segment]:
    """Tokenize text, flagging every whole-word match of an unfamiliar word.

    Words are applied in order. A match is only searched for inside plain
    segments, so text highlighted by an earlier word is never wrapped again.
    Joining the segment texts always gives back the original text.
    """
    segments = [Segment(text)] if text else []
    for w in words:
        if not w.word.strip():
            continue
        pattern = word_pattern(w.word)
        result: list[Segment] = []
        for seg in segments:
            if seg.highlighted:
                result.append(seg)
            else:
                result.extend(_split(seg, pattern, w.definition))
        segments = result
    return segments
