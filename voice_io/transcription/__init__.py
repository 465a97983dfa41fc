"""Transcription session controllers (batch upload and live streaming)."""

from .session import (
    BatchState,
    BatchTranscriptionSession,
    StreamingState,
    StreamingTranscriptionSession,
)

__all__ = [
    "BatchState",
    "BatchTranscriptionSession",
    "StreamingState",
    "StreamingTranscriptionSession",
]
