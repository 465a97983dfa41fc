"""Error kinds reported by the transcription pipeline."""


class TranscriptionError(Exception):
    """
    Base class for pipeline failures.

    Attributes:
        kind: Stable error kind name reported to callers
        details: Underlying diagnostic text (tool stderr, provider message, ...)
    """

    kind = "TranscriptionError"

    def __init__(self, message: str, details: str | None = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, str]:
        """Payload for the chat core: {"error", "kind", "details"}."""
        return {
            "error": "Transcription failed",
            "kind": self.kind,
            "details": self.details or self.message,
        }

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class UploadWriteFailure(TranscriptionError):
    """The input buffer could not be persisted to a temp artifact."""

    kind = "UploadWriteFailure"


class TranscodeFailure(TranscriptionError):
    """ffmpeg normalization failed, was missing, or timed out."""

    kind = "TranscodeFailure"


class RecognitionFailure(TranscriptionError):
    """The recognition provider rejected, errored, or disconnected."""

    kind = "RecognitionFailure"


class CaptureSourceError(TranscriptionError):
    """The live audio source failed mid-stream."""

    kind = "CaptureSourceError"
