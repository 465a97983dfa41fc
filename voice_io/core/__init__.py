"""Core data classes and error kinds."""

from .errors import (
    CaptureSourceError,
    RecognitionFailure,
    TranscodeFailure,
    TranscriptionError,
    UploadWriteFailure,
)
from .models import (
    AudioBlob,
    CaptionLine,
    CaptionTimeline,
    NormalizedAudio,
    PlaybackPosition,
    TimedWord,
    TranscriptResult,
)

__all__ = [
    "AudioBlob",
    "CaptionLine",
    "CaptionTimeline",
    "CaptureSourceError",
    "NormalizedAudio",
    "PlaybackPosition",
    "RecognitionFailure",
    "TimedWord",
    "TranscodeFailure",
    "TranscriptResult",
    "TranscriptionError",
    "UploadWriteFailure",
]
