"""
Transcription session controllers.

Batch:     IDLE → WRITING → NORMALIZING → RECOGNIZING → DONE | FAILED
Streaming: IDLE → CAPTURING → FINALIZING → STOPPED | ABORTED

The streaming controller stops on the first final result. Chunk pumping
and result reading run as two independent tasks that only post events;
run() is the single consumer of those events and the only code that
touches the finalized flag or stops the capture source.
"""

import asyncio
import contextlib
import logging
from collections.abc import Callable
from enum import Enum

from ..audio.capture import CaptureSource
from ..audio.normalizer import FormatNormalizer, suffix_for_format
from ..audio.tempstore import TempArtifactStore
from ..core.errors import CaptureSourceError, RecognitionFailure, TranscriptionError
from ..core.models import AudioBlob, TranscriptResult
from ..recognition.client import RecognitionClient, StreamingRecognition

logger = logging.getLogger(__name__)


class BatchState(Enum):
    """State of a batch transcription session."""
    IDLE = "idle"
    WRITING = "writing"
    NORMALIZING = "normalizing"
    RECOGNIZING = "recognizing"
    DONE = "done"
    FAILED = "failed"


class StreamingState(Enum):
    """State of a streaming transcription session."""
    IDLE = "idle"
    CAPTURING = "capturing"
    FINALIZING = "finalizing"
    STOPPED = "stopped"
    ABORTED = "aborted"


class BatchTranscriptionSession:
    """
    Transcribe one uploaded clip.

    Both temp artifacts (raw upload and normalized output) are released on
    every exit path. Errors keep their original kind and are re-raised.
    """

    def __init__(
        self,
        client: RecognitionClient,
        normalizer: FormatNormalizer | None = None,
        store: TempArtifactStore | None = None,
        on_state_change: Callable[[BatchState], None] | None = None,
    ):
        self.client = client
        self.store = store or TempArtifactStore()
        self.normalizer = normalizer or FormatNormalizer(store=self.store)
        self.on_state_change = on_state_change

        self.state = BatchState.IDLE
        self.error: TranscriptionError | None = None
        self.result: TranscriptResult | None = None

    def _transition(self, state: BatchState):
        logger.debug(f"Batch session: {self.state.value} → {state.value}")
        self.state = state
        if self.on_state_change:
            try:
                self.on_state_change(state)
            except Exception as e:
                logger.error(f"State callback error: {e}")

    async def run(self, blob: AudioBlob) -> TranscriptResult:
        """
        Normalize and recognize a blob.

        Returns:
            Final TranscriptResult ("No speech recognized." for silent clips)

        Raises:
            UploadWriteFailure, TranscodeFailure, RecognitionFailure
        """
        if self.state is not BatchState.IDLE:
            raise RuntimeError(f"Batch session already used (state={self.state.value})")

        try:
            self._transition(BatchState.WRITING)
            suffix = suffix_for_format(blob.source_format)

            with self.store.scoped("input", suffix) as raw, self.store.scoped("output", ".wav") as out:
                raw.write(blob.data)
                logger.info(f"Saved upload: {len(blob)} bytes ({blob.source_format or 'unknown format'})")

                self._transition(BatchState.NORMALIZING)
                audio = await self.normalizer.normalize_file(str(raw.path), str(out.path))

                self._transition(BatchState.RECOGNIZING)
                result = await self.client.recognize_once(audio)

        except TranscriptionError as e:
            self.error = e
            logger.error(f"Batch transcription failed ({e.kind}): {e}")
            self._transition(BatchState.FAILED)
            raise
        except BaseException:
            self._transition(BatchState.FAILED)
            raise

        self.result = result
        self._transition(BatchState.DONE)
        logger.info(f"Transcription complete: {result.text!r}")
        return result


class _Event(Enum):
    RESULT = "result"
    CAPTURE_ERROR = "capture_error"
    RECOGNITION_ERROR = "recognition_error"
    END_OF_STREAM = "end_of_stream"
    STOP_REQUESTED = "stop_requested"


class StreamingTranscriptionSession:
    """
    Transcribe a live capture until the first final result.

    Interim results are forwarded to on_interim until finalization. The
    first final result stops the capture source exactly once and is
    returned; anything the provider sends afterwards is discarded.
    """

    def __init__(
        self,
        client: RecognitionClient,
        on_interim: Callable[[TranscriptResult], None] | None = None,
        on_state_change: Callable[[StreamingState], None] | None = None,
    ):
        self.client = client
        self.on_interim = on_interim
        self.on_state_change = on_state_change

        self.state = StreamingState.IDLE
        self.finalized = False
        self.final_result: TranscriptResult | None = None
        self.error: TranscriptionError | None = None

        self._events: asyncio.Queue | None = None
        self._capture_stopped = False
        self._stop_requested = False

    def _transition(self, state: StreamingState):
        logger.debug(f"Streaming session: {self.state.value} → {state.value}")
        self.state = state
        if self.on_state_change:
            try:
                self.on_state_change(state)
            except Exception as e:
                logger.error(f"State callback error: {e}")

    def stop(self) -> None:
        """
        Caller-initiated stop; run() returns None unless a final already arrived.

        May be called before run() has started; the request is kept until then.
        """
        self._stop_requested = True
        if self._events is not None:
            self._events.put_nowait((_Event.STOP_REQUESTED, None))

    async def run(self, source: CaptureSource) -> TranscriptResult | None:
        """
        Capture, stream, and wait for the terminal outcome.

        Returns:
            The first final TranscriptResult, or None if the stream ended
            (or stop() was called) before any final result

        Raises:
            CaptureSourceError: The source failed before a final result
            RecognitionFailure: The provider failed before a final result
        """
        if self.state is not StreamingState.IDLE:
            raise RuntimeError(f"Streaming session already used (state={self.state.value})")

        self._events = asyncio.Queue()
        if self._stop_requested:
            self._events.put_nowait((_Event.STOP_REQUESTED, None))
        stream = self.client.stream_recognize(sample_rate_hertz=source.sample_rate)

        self._transition(StreamingState.CAPTURING)
        pump = asyncio.create_task(self._pump(source, stream))
        reader = asyncio.create_task(self._read(stream))

        try:
            return await self._consume(source, stream)
        finally:
            stream.close()
            self._stop_capture(source)
            for task in (pump, reader):
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task

    async def _consume(self, source: CaptureSource, stream: StreamingRecognition) -> TranscriptResult | None:
        while True:
            kind, payload = await self._events.get()

            if kind is _Event.RESULT:
                if payload.is_final:
                    self.finalized = True
                    self._transition(StreamingState.FINALIZING)
                    self._stop_capture(source)
                    stream.close()
                    self.final_result = payload
                    logger.info(f"Final transcription: {payload.text}")
                    self._transition(StreamingState.STOPPED)
                    return payload
                self._emit_interim(payload)

            elif kind in (_Event.CAPTURE_ERROR, _Event.RECOGNITION_ERROR):
                self._stop_capture(source)
                self.error = payload
                logger.error(f"Streaming transcription aborted ({payload.kind}): {payload}")
                self._transition(StreamingState.ABORTED)
                raise payload

            else:
                self._stop_capture(source)
                logger.info(f"Streaming transcription ended without final result ({kind.value})")
                self._transition(StreamingState.STOPPED)
                return None

    async def _pump(self, source: CaptureSource, stream: StreamingRecognition):
        """Forward capture chunks to the provider; never waits on results."""
        try:
            async for chunk in source.chunks():
                stream.send(chunk)
        except CaptureSourceError as e:
            self._events.put_nowait((_Event.CAPTURE_ERROR, e))
        except Exception as e:
            error = CaptureSourceError("Capture source failed", details=str(e))
            self._events.put_nowait((_Event.CAPTURE_ERROR, error))
        else:
            # Source exhausted: half-close so the provider finalizes
            stream.close()

    async def _read(self, stream: StreamingRecognition):
        """Post provider results as events, in arrival order."""
        try:
            async for result in stream.results():
                self._events.put_nowait((_Event.RESULT, result))
        except RecognitionFailure as e:
            self._events.put_nowait((_Event.RECOGNITION_ERROR, e))
        except Exception as e:
            error = RecognitionFailure("Streaming recognition failed", details=str(e))
            self._events.put_nowait((_Event.RECOGNITION_ERROR, error))
        else:
            self._events.put_nowait((_Event.END_OF_STREAM, None))

    def _emit_interim(self, result: TranscriptResult):
        logger.debug(f"Interim: {result.text}")
        if self.on_interim:
            try:
                self.on_interim(result)
            except Exception as e:
                logger.error(f"Interim callback error: {e}")

    def _stop_capture(self, source: CaptureSource):
        if self._capture_stopped:
            return
        self._capture_stopped = True
        try:
            source.stop()
        except Exception as e:
            logger.warning(f"Error stopping capture source: {e}")
