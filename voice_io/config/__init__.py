"""
Voice I/O Configuration

Environment-driven defaults for transcription and captions.
"""

from .settings import (
    CAPTION_MAX_WORDS,
    LANGUAGE_CODE,
    NO_SPEECH_TEXT,
    TARGET_SAMPLE_RATE,
    TEMP_DIR,
    TICK_HZ,
    TRANSCODE_TIMEOUT_S,
    RecognitionSettings,
)

__all__ = [
    "CAPTION_MAX_WORDS",
    "LANGUAGE_CODE",
    "NO_SPEECH_TEXT",
    "TARGET_SAMPLE_RATE",
    "TEMP_DIR",
    "TICK_HZ",
    "TRANSCODE_TIMEOUT_S",
    "RecognitionSettings",
]
