"""
Voice I/O data classes.

Transcription side:
  AudioBlob        -> raw upload bytes + declared source format
  NormalizedAudio  -> mono 16kHz LINEAR16 PCM frames
  TranscriptResult -> one interim/final recognition result

Caption side:
  TimedWord        -> word with start/end seconds in the synthesized track
  CaptionLine      -> group of words shown together
  CaptionTimeline  -> immutable sequence of lines for one spoken response
  PlaybackPosition -> (line_index, word_index) of the live word
"""

from collections.abc import Iterator
from dataclasses import dataclass, field

from ..config.settings import NO_SPEECH_TEXT, TARGET_CHANNELS, TARGET_SAMPLE_RATE, TARGET_SAMPLE_WIDTH


@dataclass(frozen=True)
class AudioBlob:
    """
    Uploaded audio payload.

    Attributes:
        data: Raw container bytes (webm, ogg, wav, ...)
        source_format: Container/codec hint, e.g. "webm" or "audio/ogg;codecs=opus"
    """

    data: bytes
    source_format: str = ""

    def __len__(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class NormalizedAudio:
    """PCM frames ready for the recognition provider (mono, 16kHz, 16-bit)."""

    pcm: bytes
    sample_rate: int = TARGET_SAMPLE_RATE
    channels: int = TARGET_CHANNELS
    sample_width: int = TARGET_SAMPLE_WIDTH

    @property
    def duration(self) -> float:
        """Duration in seconds."""
        frame_size = self.channels * self.sample_width
        if not frame_size or not self.sample_rate:
            return 0.0
        return len(self.pcm) / frame_size / self.sample_rate

    def __len__(self) -> int:
        return len(self.pcm)


@dataclass(frozen=True)
class TranscriptResult:
    """
    One recognition result.

    Attributes:
        text: Transcribed text
        is_final: Whether the provider marked this utterance final
        sequence: Arrival order within one session (0-based)
    """

    text: str = ""
    is_final: bool = False
    sequence: int = 0

    @classmethod
    def interim(cls, text: str, sequence: int = 0) -> "TranscriptResult":
        """Create a partial result."""
        return cls(text=text, is_final=False, sequence=sequence)

    @classmethod
    def final(cls, text: str, sequence: int = 0) -> "TranscriptResult":
        """Create a final result."""
        return cls(text=text, is_final=True, sequence=sequence)

    @classmethod
    def no_speech(cls) -> "TranscriptResult":
        """Final result for a clip where nothing was recognized."""
        return cls(text=NO_SPEECH_TEXT, is_final=True, sequence=0)

    @property
    def is_no_speech(self) -> bool:
        return self.is_final and self.text == NO_SPEECH_TEXT

    def __str__(self) -> str:
        status = "final" if self.is_final else "interim"
        if len(self.text) > 50:
            return f"TranscriptResult(#{self.sequence} {status}: {self.text[:50]}...)"
        return f"TranscriptResult(#{self.sequence} {status}: {self.text})"


@dataclass(frozen=True)
class TimedWord:
    """A word with its interval (seconds) in the synthesized audio track."""

    text: str
    start_time: float
    end_time: float

    def contains(self, t: float) -> bool:
        """Closed-interval containment."""
        return self.start_time <= t <= self.end_time

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time


@dataclass(frozen=True)
class CaptionLine:
    """Words displayed together as one caption line."""

    words: tuple[TimedWord, ...] = ()

    @property
    def text(self) -> str:
        return " ".join(word.text for word in self.words)

    @property
    def start_time(self) -> float:
        return self.words[0].start_time if self.words else 0.0

    @property
    def end_time(self) -> float:
        return self.words[-1].end_time if self.words else 0.0

    def __len__(self) -> int:
        return len(self.words)

    def __iter__(self) -> Iterator[TimedWord]:
        return iter(self.words)

    def __getitem__(self, index: int) -> TimedWord:
        return self.words[index]


@dataclass(frozen=True)
class CaptionTimeline:
    """Immutable caption lines for one spoken response."""

    lines: tuple[CaptionLine, ...] = field(default_factory=tuple)

    @property
    def word_count(self) -> int:
        return sum(len(line) for line in self.lines)

    @property
    def duration(self) -> float:
        return self.lines[-1].end_time if self.lines else 0.0

    def word_at(self, position: "PlaybackPosition") -> TimedWord:
        return self.lines[position.line_index].words[position.word_index]

    def __len__(self) -> int:
        return len(self.lines)

    def __iter__(self) -> Iterator[CaptionLine]:
        return iter(self.lines)

    def __getitem__(self, index: int) -> CaptionLine:
        return self.lines[index]


@dataclass(frozen=True)
class PlaybackPosition:
    """Live word inside a CaptionTimeline. "No active word" is represented by None."""

    line_index: int
    word_index: int

    def to_dict(self) -> dict[str, int]:
        return {"lineIndex": self.line_index, "wordIndex": self.word_index}
