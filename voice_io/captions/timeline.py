"""
Caption timeline builder.

Groups timed words into display lines. A line is flushed when it reaches
max_words or right after a word that ends a sentence; any remainder is
flushed at the end. The builder is a pure function, so re-rendering the
same response always yields an equal timeline.
"""

import re
from collections.abc import Iterable

from ..config.settings import CAPTION_MAX_WORDS
from ..core.models import CaptionLine, CaptionTimeline, TimedWord

# Word text ending a sentence forces a line break after it
SENTENCE_TERMINATOR = re.compile(r"[.?!]$")


def ends_sentence(word: TimedWord) -> bool:
    return bool(SENTENCE_TERMINATOR.search(word.text.strip()))


def build_timeline(words: Iterable[TimedWord], max_words: int = CAPTION_MAX_WORDS) -> CaptionTimeline:
    """
    Build caption lines from words sorted by start time.

    Args:
        words: TimedWord entries in playback order
        max_words: Maximum words per line

    Returns:
        CaptionTimeline (empty for empty input)

    Raises:
        ValueError: If max_words < 1
    """
    if max_words < 1:
        raise ValueError(f"max_words must be >= 1, got {max_words}")

    lines: list[CaptionLine] = []
    pending: list[TimedWord] = []

    for word in words:
        pending.append(word)
        if len(pending) >= max_words or ends_sentence(word):
            lines.append(CaptionLine(tuple(pending)))
            pending = []

    if pending:
        lines.append(CaptionLine(tuple(pending)))

    return CaptionTimeline(tuple(lines))
