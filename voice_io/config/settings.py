"""
Voice I/O Settings

Single source of truth for the transcription and caption defaults.
Every value can be overridden through the environment:

  VOICE_IO_TEMP_DIR            Directory for transient audio artifacts
  VOICE_IO_LANGUAGE            Recognition language code (en-US)
  VOICE_IO_TRANSCODE_TIMEOUT   ffmpeg hard timeout in seconds (10)
  VOICE_IO_FFMPEG              Explicit ffmpeg binary path
  VOICE_IO_MAX_PENDING_CHUNKS  Streaming send queue limit (200)
  VOICE_IO_REQUEST_TIMEOUT     One-shot recognition request timeout in seconds (60)
  VOICE_IO_CAPTION_MAX_WORDS   Words per caption line (7)
  VOICE_IO_TICK_HZ             Caption synchronizer tick rate (60)
  GOOGLE_APPLICATION_CREDENTIALS_JSON  Service account JSON for Speech-to-Text
"""

import os
import tempfile
from dataclasses import dataclass

# ============== Audio Format ==============
# Fixed format required by the recognition provider
TARGET_SAMPLE_RATE = 16000
TARGET_CHANNELS = 1
TARGET_SAMPLE_WIDTH = 2  # bytes, LINEAR16
TARGET_ENCODING = "LINEAR16"

# ============== Transcription ==============
TEMP_DIR = os.environ.get("VOICE_IO_TEMP_DIR", os.path.join(tempfile.gettempdir(), "voice_io"))
LANGUAGE_CODE = os.environ.get("VOICE_IO_LANGUAGE", "en-US")
TRANSCODE_TIMEOUT_S = float(os.environ.get("VOICE_IO_TRANSCODE_TIMEOUT", "10"))
FFMPEG_PATH = os.environ.get("VOICE_IO_FFMPEG")
MAX_PENDING_CHUNKS = int(os.environ.get("VOICE_IO_MAX_PENDING_CHUNKS", "200"))
REQUEST_TIMEOUT_S = float(os.environ.get("VOICE_IO_REQUEST_TIMEOUT", "60"))
GOOGLE_CREDENTIALS_JSON = os.environ.get("GOOGLE_APPLICATION_CREDENTIALS_JSON")

# Batch result for silent clips (not an error)
NO_SPEECH_TEXT = "No speech recognized."

# ============== Captions ==============
CAPTION_MAX_WORDS = int(os.environ.get("VOICE_IO_CAPTION_MAX_WORDS", "7"))
TICK_HZ = float(os.environ.get("VOICE_IO_TICK_HZ", "60"))


@dataclass
class RecognitionSettings:
    """Provider request settings shared by one-shot and streaming recognition."""

    language_code: str = LANGUAGE_CODE
    sample_rate_hertz: int = TARGET_SAMPLE_RATE
    interim_results: bool = True
    model: str | None = None
    max_pending_chunks: int = MAX_PENDING_CHUNKS
    request_timeout: float = REQUEST_TIMEOUT_S

    @classmethod
    def from_env(cls) -> "RecognitionSettings":
        """Read settings from the current environment (not import-time values)."""
        return cls(
            language_code=os.environ.get("VOICE_IO_LANGUAGE", "en-US"),
            sample_rate_hertz=int(os.environ.get("VOICE_IO_SAMPLE_RATE", str(TARGET_SAMPLE_RATE))),
            interim_results=os.environ.get("VOICE_IO_INTERIM_RESULTS", "true").lower() == "true",
            model=os.environ.get("VOICE_IO_MODEL") or None,
            max_pending_chunks=int(os.environ.get("VOICE_IO_MAX_PENDING_CHUNKS", "200")),
            request_timeout=float(os.environ.get("VOICE_IO_REQUEST_TIMEOUT", "60")),
        )
