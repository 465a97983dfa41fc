"""Caption timeline building and playback synchronization."""

from .alignment import words_from_alignment
from .synchronizer import PlaybackClock, PlaybackSynchronizer
from .timeline import SENTENCE_TERMINATOR, build_timeline, ends_sentence

__all__ = [
    "SENTENCE_TERMINATOR",
    "PlaybackClock",
    "PlaybackSynchronizer",
    "build_timeline",
    "ends_sentence",
    "words_from_alignment",
]
