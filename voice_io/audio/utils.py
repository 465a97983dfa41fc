"""PCM helpers. All buffers are 16-bit little-endian samples as bytes."""

from math import gcd

import numpy as np
from scipy.signal import resample_poly

from ..config.settings import TARGET_SAMPLE_RATE, TARGET_SAMPLE_WIDTH

CHUNK_DURATION_MS = 100  # streaming frame size sent to the provider

PCM_DTYPE = np.dtype("<i2")


def _samples(pcm: bytes) -> np.ndarray:
    return np.frombuffer(pcm, dtype=PCM_DTYPE)


def _to_pcm(samples: np.ndarray) -> bytes:
    info = np.iinfo(PCM_DTYPE)
    return np.clip(np.rint(samples), info.min, info.max).astype(PCM_DTYPE).tobytes()


def resample_audio(audio_data: bytes, from_rate: int, to_rate: int) -> bytes:
    """
    Polyphase resample of mono PCM.

    Returns the input unchanged when the rates already match.
    """
    if from_rate == to_rate or not audio_data:
        return audio_data

    factor = gcd(from_rate, to_rate)
    resampled = resample_poly(_samples(audio_data).astype(np.float32), to_rate // factor, from_rate // factor)
    return _to_pcm(resampled)


def stereo_to_mono(audio_data: bytes) -> bytes:
    """Average interleaved L/R frames (a trailing half frame is dropped)."""
    samples = _samples(audio_data)
    frames = samples[: len(samples) - len(samples) % 2].reshape(-1, 2).astype(np.int32)
    return (frames.sum(axis=1) // 2).astype(PCM_DTYPE).tobytes()


def calculate_chunk_size(sample_rate: int, duration_ms: int = CHUNK_DURATION_MS) -> int:
    """Samples per chunk of duration_ms."""
    return sample_rate * duration_ms // 1000


def split_pcm(
    pcm: bytes,
    sample_rate: int = TARGET_SAMPLE_RATE,
    duration_ms: int = CHUNK_DURATION_MS,
) -> list[bytes]:
    """Split mono PCM into duration_ms frames; the last frame may be shorter."""
    step = calculate_chunk_size(sample_rate, duration_ms) * TARGET_SAMPLE_WIDTH
    if step <= 0:
        raise ValueError(f"duration_ms={duration_ms} is too small for {sample_rate}Hz")
    return [pcm[offset:offset + step] for offset in range(0, len(pcm), step)]
