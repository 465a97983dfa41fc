"""Audio handling: temp artifacts, ffmpeg normalization, live capture."""

from .capture import (
    AudioCapture,
    CaptureSource,
    MicrophoneCapture,
    PcmReplaySource,
    QueuedCaptureSource,
    list_input_devices,
)
from .normalizer import FormatNormalizer, check_ffmpeg, read_pcm_wav, suffix_for_format
from .tempstore import TempArtifact, TempArtifactStore
from .utils import (
    CHUNK_DURATION_MS,
    calculate_chunk_size,
    resample_audio,
    split_pcm,
    stereo_to_mono,
)

__all__ = [
    "CHUNK_DURATION_MS",
    "AudioCapture",
    "CaptureSource",
    "FormatNormalizer",
    "MicrophoneCapture",
    "PcmReplaySource",
    "QueuedCaptureSource",
    "TempArtifact",
    "TempArtifactStore",
    "calculate_chunk_size",
    "check_ffmpeg",
    "list_input_devices",
    "read_pcm_wav",
    "resample_audio",
    "split_pcm",
    "stereo_to_mono",
    "suffix_for_format",
]
