"""
Recognition client for Google Cloud Speech-to-Text.

Two modes over one explicitly constructed provider client:

1. One-shot: submit the whole normalized buffer, await one transcript
2. Streaming: push PCM chunks with send(), iterate results() for
   interim/final TranscriptResults in arrival order

Streaming protocol:
  request 0:  {streaming_config: {config: LINEAR16/16000/lang, interim_results}}
  request 1+: {audio_content: <raw PCM frame>}
  responses:  {results: [{alternatives: [{transcript}], is_final}]}

Usage:
    client = RecognitionClient(create_speech_client())

    result = await client.recognize_once(audio)

    stream = client.stream_recognize()
    stream.send(chunk)            # non-blocking
    async for result in stream.results():
        ...
    stream.close()
"""

import asyncio
import json
import logging
from collections.abc import AsyncIterator
from typing import Any

from google.api_core import exceptions as google_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import speech
from google.oauth2 import service_account

from ..config.settings import GOOGLE_CREDENTIALS_JSON, RecognitionSettings
from ..core.errors import RecognitionFailure
from ..core.models import NormalizedAudio, TranscriptResult

logger = logging.getLogger(__name__)

# Errors raised by the provider SDK that map to RecognitionFailure
PROVIDER_ERRORS = (
    google_exceptions.GoogleAPIError,
    auth_exceptions.GoogleAuthError,
    ConnectionError,
)

_END_OF_AUDIO = None


def create_speech_client(credentials_json: str | None = None) -> speech.SpeechAsyncClient:
    """
    Build a Speech-to-Text async client.

    Uses service account info from GOOGLE_APPLICATION_CREDENTIALS_JSON when
    present, otherwise application default credentials.

    Raises:
        RecognitionFailure: If credentials are invalid or unavailable
    """
    credentials_json = credentials_json or GOOGLE_CREDENTIALS_JSON

    try:
        if credentials_json:
            info = json.loads(credentials_json)
            credentials = service_account.Credentials.from_service_account_info(info)
            return speech.SpeechAsyncClient(credentials=credentials)

        logger.warning("GOOGLE_APPLICATION_CREDENTIALS_JSON not set, using default credentials")
        return speech.SpeechAsyncClient()

    except (json.JSONDecodeError, ValueError) as e:
        raise RecognitionFailure("Invalid Google credentials JSON", details=str(e)) from e
    except auth_exceptions.GoogleAuthError as e:
        raise RecognitionFailure("Google credentials unavailable", details=str(e)) from e


def _first_transcript(result: Any) -> str:
    """Transcript of a provider result's top alternative ("" if it has none)."""
    try:
        alternatives = result.alternatives
    except AttributeError as e:
        raise RecognitionFailure("Malformed provider response", details=repr(result)) from e

    if not alternatives:
        return ""

    try:
        return (alternatives[0].transcript or "").strip()
    except AttributeError as e:
        raise RecognitionFailure("Malformed provider response", details=repr(alternatives[0])) from e


def _results_of(response: Any) -> list:
    try:
        return list(response.results or [])
    except AttributeError as e:
        raise RecognitionFailure("Malformed provider response", details=repr(response)) from e


class StreamingRecognition:
    """
    One bidirectional provider session.

    send() only enqueues, so capture never waits on the provider; the SDK
    drains the queue through the request iterator while results() reads
    responses. The session is not restartable.
    """

    def __init__(
        self,
        speech_client: Any,
        streaming_config: speech.StreamingRecognitionConfig,
        max_pending_chunks: int = 200,
    ):
        self._speech_client = speech_client
        self._streaming_config = streaming_config
        self.max_pending_chunks = max_pending_chunks

        self._audio_queue: asyncio.Queue = asyncio.Queue()
        self._closed = False
        self._consumed = False
        self._sequence = 0

        # Metrics
        self.chunks_sent = 0
        self.bytes_sent = 0
        self.chunks_dropped = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, chunk: bytes) -> bool:
        """
        Queue one audio chunk for the provider.

        Returns:
            False if the chunk was dropped (stream closed or queue full)
        """
        if self._closed:
            logger.debug("Stream closed, dropping audio chunk")
            return False
        if not chunk:
            return True
        if self._audio_queue.qsize() >= self.max_pending_chunks:
            self.chunks_dropped += 1
            if self.chunks_dropped == 1:
                logger.warning(f"Audio send queue full ({self.max_pending_chunks} chunks), dropping audio")
            return False

        self._audio_queue.put_nowait(chunk)
        return True

    def close(self) -> None:
        """End the request stream. The provider flushes and ends results()."""
        if self._closed:
            return
        self._closed = True
        self._audio_queue.put_nowait(_END_OF_AUDIO)

    async def _requests(self) -> AsyncIterator[speech.StreamingRecognizeRequest]:
        yield speech.StreamingRecognizeRequest(streaming_config=self._streaming_config)

        while True:
            chunk = await self._audio_queue.get()
            if chunk is _END_OF_AUDIO:
                return
            self.chunks_sent += 1
            self.bytes_sent += len(chunk)
            yield speech.StreamingRecognizeRequest(audio_content=chunk)

    def _parse(self, response: Any) -> TranscriptResult | None:
        error = getattr(response, "error", None)
        if error is not None and getattr(error, "code", 0):
            raise RecognitionFailure(f"Provider error {error.code}", details=getattr(error, "message", ""))

        results = _results_of(response)
        if not results:
            return None

        # results[0] is the utterance currently being recognized
        result = results[0]
        transcript = _first_transcript(result)
        if not transcript:
            return None

        parsed = TranscriptResult(
            text=transcript,
            is_final=bool(getattr(result, "is_final", False)),
            sequence=self._sequence,
        )
        self._sequence += 1
        return parsed

    async def results(self) -> AsyncIterator[TranscriptResult]:
        """
        Yield results in provider order until end-of-stream.

        Raises:
            RecognitionFailure: Provider connection/auth/quota error or malformed response
            RuntimeError: If called a second time on the same session
        """
        if self._consumed:
            raise RuntimeError("Streaming session already consumed; call stream_recognize() again")
        self._consumed = True

        try:
            responses = await self._speech_client.streaming_recognize(requests=self._requests(), retry=None)
            async for response in responses:
                result = self._parse(response)
                if result is not None:
                    logger.debug(f"Stream result: {result}")
                    yield result
        except PROVIDER_ERRORS as e:
            logger.error(f"Streaming recognition error: {e}")
            raise RecognitionFailure("Streaming recognition failed", details=str(e)) from e
        finally:
            self.close()
            logger.info(
                f"Stream ended | Chunks: {self.chunks_sent} | Bytes: {self.bytes_sent} | "
                f"Dropped: {self.chunks_dropped} | Results: {self._sequence}"
            )
            if self.chunks_dropped:
                logger.warning(
                    f"{self.chunks_dropped} audio chunks were dropped (send queue full); "
                    f"the transcript may be missing audio"
                )

    async def __aenter__(self) -> "StreamingRecognition":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()


class RecognitionClient:
    """Speech recognition in one-shot and streaming modes."""

    def __init__(self, speech_client: Any, settings: RecognitionSettings | None = None):
        """
        Args:
            speech_client: speech.SpeechAsyncClient (or any object with the
                same recognize/streaming_recognize coroutines)
            settings: Language, sample rate and streaming options
        """
        self.speech_client = speech_client
        self.settings = settings or RecognitionSettings()

    @classmethod
    def from_env(cls) -> "RecognitionClient":
        """Create a client with credentials and settings from the environment."""
        return cls(create_speech_client(), RecognitionSettings.from_env())

    def build_config(self, sample_rate_hertz: int | None = None) -> speech.RecognitionConfig:
        kwargs: dict[str, Any] = {
            "encoding": speech.RecognitionConfig.AudioEncoding.LINEAR16,
            "sample_rate_hertz": sample_rate_hertz or self.settings.sample_rate_hertz,
            "language_code": self.settings.language_code,
        }
        if self.settings.model:
            kwargs["model"] = self.settings.model
        return speech.RecognitionConfig(**kwargs)

    async def recognize_once(self, audio: NormalizedAudio) -> TranscriptResult:
        """
        Recognize a complete buffer.

        Provider segments are joined with single spaces in provider order.
        A clip with no recognized speech yields "No speech recognized."
        as a final result, not an error.

        Raises:
            RecognitionFailure: Provider error or malformed response
        """
        config = self.build_config(audio.sample_rate)
        request_audio = speech.RecognitionAudio(content=audio.pcm)

        logger.info(f"Recognizing {audio.duration:.2f}s of audio ({self.settings.language_code})")

        try:
            # Single attempt: the SDK default policy retries UNAVAILABLE for minutes
            response = await self.speech_client.recognize(
                config=config,
                audio=request_audio,
                retry=None,
                timeout=self.settings.request_timeout,
            )
        except PROVIDER_ERRORS as e:
            logger.error(f"Recognition error: {e}")
            raise RecognitionFailure("Recognition request failed", details=str(e)) from e

        transcripts = [_first_transcript(result) for result in _results_of(response)]
        text = " ".join(t for t in transcripts if t)

        if not text:
            logger.info("No speech recognized")
            return TranscriptResult.no_speech()

        logger.info(f"Recognition complete: {len(text)} chars")
        return TranscriptResult.final(text)

    def stream_recognize(self, sample_rate_hertz: int | None = None) -> StreamingRecognition:
        """Open a new streaming session (the provider call starts on results())."""
        streaming_config = speech.StreamingRecognitionConfig(
            config=self.build_config(sample_rate_hertz),
            interim_results=self.settings.interim_results,
        )
        return StreamingRecognition(
            self.speech_client,
            streaming_config,
            max_pending_chunks=self.settings.max_pending_chunks,
        )
