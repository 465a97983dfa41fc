"""
Shared fixtures for voice_io unit tests.

The Google Speech client and ffmpeg are replaced by fakes:
- FakeSpeechClient scripts recognize()/streaming_recognize() responses
- ffmpeg_stub writes an executable script into tmp_path
"""

import stat
import sys
from pathlib import Path
from types import SimpleNamespace

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from voice_io.audio.tempstore import TempArtifactStore  # noqa: E402
from voice_io.core.models import NormalizedAudio  # noqa: E402


def speech_result(text: str, is_final: bool = False):
    """Provider result with one alternative."""
    alternatives = [SimpleNamespace(transcript=text)] if text is not None else []
    return SimpleNamespace(alternatives=alternatives, is_final=is_final)


def speech_response(*results):
    """Provider response wrapping results."""
    return SimpleNamespace(results=list(results), error=None)


# Stands in for gapic_v1.method.DEFAULT (SDK retry and timeout policy)
SDK_DEFAULT = object()


class FakeSpeechClient:
    """
    Stand-in for speech.SpeechAsyncClient.

    streaming_recognize() reads the config request plus `audio_before_results`
    audio requests, yields the scripted responses (raising any exception
    found in the script), then drains the request stream until it closes.
    """

    def __init__(
        self,
        recognize_response=None,
        recognize_error: Exception | None = None,
        stream_responses=(),
        audio_before_results: int = 1,
    ):
        self.recognize_response = recognize_response or speech_response()
        self.recognize_error = recognize_error
        self.stream_responses = list(stream_responses)
        self.audio_before_results = audio_before_results

        self.recognize_calls = []
        self.stream_requests = []
        self.stream_calls = 0
        self.recognize_options = None
        self.stream_retry = None

    async def recognize(self, config, audio, retry=SDK_DEFAULT, timeout=SDK_DEFAULT):
        self.recognize_calls.append((config, audio))
        self.recognize_options = {"retry": retry, "timeout": timeout}
        if self.recognize_error:
            raise self.recognize_error
        return self.recognize_response

    async def streaming_recognize(self, requests, retry=SDK_DEFAULT):
        self.stream_calls += 1
        self.stream_retry = retry
        return self._responses(requests)

    async def _responses(self, requests):
        try:
            for _ in range(1 + self.audio_before_results):
                self.stream_requests.append(await requests.__anext__())
        except StopAsyncIteration:
            pass

        for response in self.stream_responses:
            if isinstance(response, Exception):
                raise response
            yield response

        async for request in requests:
            self.stream_requests.append(request)


class FakeNormalizer:
    """FormatNormalizer stand-in that records the paths it was given."""

    def __init__(self, pcm: bytes = b"\x00\x00" * 1600, error: Exception | None = None):
        self.pcm = pcm
        self.error = error
        self.calls = []
        self.ffmpeg_path = "/usr/bin/ffmpeg"

    async def normalize_file(self, input_path: str, output_path: str) -> NormalizedAudio:
        self.calls.append((input_path, output_path, Path(input_path).exists()))
        if self.error:
            raise self.error
        return NormalizedAudio(pcm=self.pcm)


@pytest.fixture
def store(tmp_path):
    """Temp artifact store in an isolated directory."""
    return TempArtifactStore(tmp_path / "artifacts")


@pytest.fixture
def ffmpeg_stub(tmp_path):
    """Factory writing an executable fake ffmpeg with the given script body."""
    if sys.platform == "win32":
        pytest.skip("ffmpeg stub scripts need a POSIX shell")

    def make(body: str, interpreter: str = "/bin/sh") -> str:
        path = tmp_path / "ffmpeg-stub"
        path.write_text(f"#!{interpreter}\n{body}\n")
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return str(path)

    return make


@pytest.fixture
def wav_writing_ffmpeg(ffmpeg_stub):
    """Fake ffmpeg that writes 0.1s of 16kHz mono silence to its last argument."""
    return ffmpeg_stub(
        "import sys, wave\n"
        "with wave.open(sys.argv[-1], 'wb') as out:\n"
        "    out.setnchannels(1)\n"
        "    out.setsampwidth(2)\n"
        "    out.setframerate(16000)\n"
        "    out.writeframes(b'\\x00\\x00' * 1600)\n",
        interpreter=sys.executable,
    )
