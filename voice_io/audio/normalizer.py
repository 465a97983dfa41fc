"""
Format normalizer.

Converts arbitrary uploaded audio (webm/opus, ogg, mp4, wav, ...) to the
fixed provider format (mono, 16kHz, LINEAR16) by running ffmpeg as an
out-of-process call with a hard timeout.
"""

import asyncio
import logging
import os
import shutil
import wave

from ..config.settings import (
    FFMPEG_PATH,
    TARGET_CHANNELS,
    TARGET_SAMPLE_RATE,
    TARGET_SAMPLE_WIDTH,
    TRANSCODE_TIMEOUT_S,
)
from ..core.errors import TranscodeFailure
from ..core.models import AudioBlob, NormalizedAudio
from .tempstore import TempArtifactStore

logger = logging.getLogger(__name__)

# Source format hint -> input file extension (ffmpeg probes the content anyway)
FORMAT_SUFFIXES = {
    "webm": ".webm",
    "ogg": ".ogg",
    "opus": ".ogg",
    "wav": ".wav",
    "wave": ".wav",
    "x-wav": ".wav",
    "mpeg": ".mp3",
    "mp3": ".mp3",
    "mp4": ".m4a",
    "m4a": ".m4a",
    "aac": ".aac",
    "flac": ".flac",
}

MAX_STDERR_CHARS = 2000


def check_ffmpeg() -> str | None:
    """Return the ffmpeg binary to use, or None if it cannot be found."""
    if FFMPEG_PATH:
        return FFMPEG_PATH
    return shutil.which("ffmpeg")


def suffix_for_format(source_format: str) -> str:
    """
    Map a container/codec hint to a file extension.

    Examples:
        "webm" -> ".webm"
        "audio/ogg;codecs=opus" -> ".ogg"
        "" -> ".bin"
    """
    hint = (source_format or "").lower().split(";", 1)[0].strip()
    if "/" in hint:
        hint = hint.rsplit("/", 1)[1]
    hint = hint.lstrip(".")
    return FORMAT_SUFFIXES.get(hint, ".bin")


def read_pcm_wav(path: str | os.PathLike) -> NormalizedAudio:
    """
    Read the PCM frames of a normalized WAV file.

    Raises:
        TranscodeFailure: If the file is unreadable or not mono/16kHz/16-bit
    """
    try:
        with wave.open(str(path), "rb") as wav:
            channels = wav.getnchannels()
            sample_rate = wav.getframerate()
            sample_width = wav.getsampwidth()
            frames = wav.readframes(wav.getnframes())
    except (wave.Error, EOFError, OSError) as e:
        raise TranscodeFailure("Normalized output is not a readable WAV file", details=str(e)) from e

    if (channels, sample_rate, sample_width) != (TARGET_CHANNELS, TARGET_SAMPLE_RATE, TARGET_SAMPLE_WIDTH):
        raise TranscodeFailure(
            "Normalized output has unexpected format",
            details=f"channels={channels} rate={sample_rate} width={sample_width}",
        )

    return NormalizedAudio(pcm=frames)


class FormatNormalizer:
    """Run ffmpeg to produce provider-ready PCM."""

    def __init__(
        self,
        ffmpeg_path: str | None = None,
        timeout: float = TRANSCODE_TIMEOUT_S,
        store: TempArtifactStore | None = None,
    ):
        """
        Args:
            ffmpeg_path: ffmpeg binary. Defaults to VOICE_IO_FFMPEG or PATH lookup.
            timeout: Hard limit for one transcoding call, in seconds
            store: Temp store used by normalize(); created lazily if None
        """
        self.ffmpeg_path = ffmpeg_path or check_ffmpeg()
        self.timeout = timeout
        self._store = store

        if not self.ffmpeg_path:
            logger.warning("ffmpeg not found - audio normalization will fail")

    @property
    def store(self) -> TempArtifactStore:
        if self._store is None:
            self._store = TempArtifactStore()
        return self._store

    def build_command(self, input_path: str, output_path: str) -> list[str]:
        return [
            self.ffmpeg_path,
            "-nostdin",
            "-hide_banner",
            "-loglevel", "error",
            "-y",  # Overwrite
            "-i", input_path,
            "-vn",  # No video
            "-acodec", "pcm_s16le",
            "-ar", str(TARGET_SAMPLE_RATE),
            "-ac", str(TARGET_CHANNELS),
            "-f", "wav",
            output_path,
        ]

    async def normalize(self, blob: AudioBlob) -> NormalizedAudio:
        """
        Normalize an in-memory blob.

        Both intermediate files are released before returning, on success
        and on failure.
        """
        suffix = suffix_for_format(blob.source_format)
        with self.store.scoped("input", suffix) as raw, self.store.scoped("output", ".wav") as out:
            raw.write(blob.data)
            return await self.normalize_file(str(raw.path), str(out.path))

    async def normalize_file(self, input_path: str, output_path: str) -> NormalizedAudio:
        """
        Transcode input_path into output_path and return its PCM frames.

        Raises:
            TranscodeFailure: ffmpeg missing, non-zero exit, timeout, or bad output
        """
        if not self.ffmpeg_path:
            raise TranscodeFailure("ffmpeg not available", details="Install ffmpeg and add it to PATH")

        cmd = self.build_command(input_path, output_path)
        logger.debug(f"Running: {' '.join(cmd)}")

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise TranscodeFailure("Failed to launch ffmpeg", details=str(e)) from e

        try:
            _, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            logger.error(f"ffmpeg timed out after {self.timeout}s on {os.path.basename(input_path)}")
            raise TranscodeFailure(f"ffmpeg timed out after {self.timeout}s")
        except asyncio.CancelledError:
            process.kill()
            await process.wait()
            raise

        if process.returncode != 0:
            error = stderr.decode("utf-8", errors="ignore").strip()[-MAX_STDERR_CHARS:]
            logger.error(f"ffmpeg error (exit {process.returncode}): {error}")
            raise TranscodeFailure(f"ffmpeg exited with code {process.returncode}", details=error)

        audio = read_pcm_wav(output_path)
        logger.info(f"Normalized {os.path.basename(input_path)}: {audio.duration:.2f}s of 16kHz mono PCM")
        return audio
