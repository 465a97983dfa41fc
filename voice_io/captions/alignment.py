"""
Convert speech-synthesis alignment data into timed words.

Synthesis providers that return timestamps (e.g. ElevenLabs
"with-timestamps" responses) report one start/end time per character:

    {
        "characters": ["H", "i", " ", "t", "h", "e", "r", "e"],
        "character_start_times_seconds": [0.0, 0.1, 0.2, ...],
        "character_end_times_seconds": [0.1, 0.2, 0.25, ...],
    }

A word spans from its first character's start to its last character's end.
"""

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from ..core.models import TimedWord

logger = logging.getLogger(__name__)


def words_from_alignment(alignment: Mapping[str, Any], offset: float = 0.0) -> list[TimedWord]:
    """
    Split a character alignment into TimedWord entries on whitespace.

    Args:
        alignment: Mapping with characters and per-character start/end seconds
        offset: Seconds added to every time (for responses made of several
            synthesized chunks played back to back)

    Raises:
        ValueError: If the three sequences are missing or differ in length
    """
    try:
        characters: Sequence[str] = alignment["characters"]
        starts: Sequence[float] = alignment["character_start_times_seconds"]
        ends: Sequence[float] = alignment["character_end_times_seconds"]
    except KeyError as e:
        raise ValueError(f"Alignment is missing {e.args[0]!r}") from e

    if not (len(characters) == len(starts) == len(ends)):
        raise ValueError(
            f"Alignment length mismatch: {len(characters)} characters, "
            f"{len(starts)} start times, {len(ends)} end times"
        )

    words: list[TimedWord] = []
    text = ""
    start = end = 0.0

    for char, char_start, char_end in zip(characters, starts, ends):
        if char.isspace():
            if text:
                words.append(TimedWord(text, start + offset, end + offset))
                text = ""
            continue
        if not text:
            start = float(char_start)
        text += char
        end = float(char_end)

    if text:
        words.append(TimedWord(text, start + offset, end + offset))

    logger.debug(f"Aligned {len(characters)} characters into {len(words)} words")
    return words
