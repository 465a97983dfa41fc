"""
Live audio capture.

Callback-based device captures (AudioCapture subclasses) run on the audio
driver's thread. The streaming transcription session consumes a
CaptureSource instead: an async iterable of PCM chunks plus a stop()
control. QueuedCaptureSource bridges the two.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Callable
from typing import Protocol, runtime_checkable

from ..config.settings import MAX_PENDING_CHUNKS, TARGET_SAMPLE_RATE
from ..core.errors import CaptureSourceError
from .utils import CHUNK_DURATION_MS, calculate_chunk_size, resample_audio, split_pcm, stereo_to_mono

logger = logging.getLogger(__name__)


@runtime_checkable
class CaptureSource(Protocol):
    """Ordered raw audio chunks at a declared sample rate, plus a stop control."""

    sample_rate: int

    def chunks(self) -> AsyncIterator[bytes]: ...

    def stop(self) -> None: ...


class AudioCapture(ABC):
    """
    Device capture driven by the audio driver's callback thread.

    Subclasses deliver 16 kHz mono 16-bit PCM through `callback` and report
    failures after start() through `on_error`.
    """

    def __init__(
        self,
        callback: Callable[[bytes], None] | None = None,
        on_error: Callable[[Exception], None] | None = None,
    ):
        self.callback = callback
        self.on_error = on_error
        self.running = False

    @abstractmethod
    def start(self) -> bool:
        """Open the device. False if it could not be opened."""

    @abstractmethod
    def stop(self):
        """Close the device. Must be safe to call when not started."""

    @property
    @abstractmethod
    def source_name(self) -> str: ...

    def _deliver(self, audio_data: bytes):
        if self.callback:
            self.callback(audio_data)

    def _fail(self, error: Exception):
        logger.error(f"{self.source_name} capture error: {error}")
        if self.on_error:
            self.on_error(error)


class MicrophoneCapture(AudioCapture):
    """PyAudio input device, converted to 16 kHz mono in the driver callback."""

    def __init__(
        self,
        callback: Callable[[bytes], None] | None = None,
        device_index: int | None = None,
        on_error: Callable[[Exception], None] | None = None,
    ):
        """
        Args:
            callback: Receives converted PCM chunks
            device_index: PyAudio input device, or None for the system default
            on_error: Receives conversion/driver errors raised after start()
        """
        super().__init__(callback, on_error)
        self.device_index = device_index
        self.native_rate = TARGET_SAMPLE_RATE
        self.native_channels = 1
        self._name = "Microphone"
        self._pa = None
        self._stream = None

    @property
    def source_name(self) -> str:
        return self._name

    def _describe_device(self) -> dict:
        if self.device_index is None:
            return self._pa.get_default_input_device_info()
        return self._pa.get_device_info_by_index(self.device_index)

    def start(self) -> bool:
        try:
            import pyaudio
        except ImportError:
            logger.error("pyaudio not installed. Run: pip install 'voice-io[capture]'")
            return False

        self._pa = pyaudio.PyAudio()
        try:
            info = self._describe_device()
            self._name = info["name"]
            self.native_rate = int(info["defaultSampleRate"])
            # Stereo devices are mixed down in _convert()
            self.native_channels = min(2, max(1, int(info["maxInputChannels"])))

            self._stream = self._pa.open(
                format=pyaudio.paInt16,
                channels=self.native_channels,
                rate=self.native_rate,
                input=True,
                input_device_index=self.device_index,
                frames_per_buffer=calculate_chunk_size(self.native_rate),
                stream_callback=self._on_frames,
            )
            self.running = True
            self._stream.start_stream()
        except (OSError, ValueError, KeyError) as e:
            logger.error(f"Cannot open {self._name}: {e}")
            self.stop()
            return False

        logger.info(
            f"Capturing from {self._name} ({self.native_rate}Hz x{self.native_channels} "
            f"-> {TARGET_SAMPLE_RATE}Hz mono)"
        )
        return True

    def _convert(self, in_data: bytes) -> bytes:
        if self.native_channels == 2:
            in_data = stereo_to_mono(in_data)
        return resample_audio(in_data, self.native_rate, TARGET_SAMPLE_RATE)

    def _on_frames(self, in_data, frame_count, time_info, status):
        import pyaudio

        if not self.running:
            return (None, pyaudio.paComplete)

        try:
            self._deliver(self._convert(in_data))
        except Exception as e:
            self._fail(e)
            return (None, pyaudio.paAbort)

        return (None, pyaudio.paContinue)

    def stop(self):
        was_running = self.running
        self.running = False

        stream, self._stream = self._stream, None
        if stream is not None:
            try:
                stream.stop_stream()
                stream.close()
            except OSError as e:
                logger.debug(f"Error closing {self._name} stream: {e}")

        pa, self._pa = self._pa, None
        if pa is not None:
            pa.terminate()

        if was_running:
            logger.info(f"Stopped capturing from {self._name}")


def list_input_devices() -> list[dict]:
    """Input-capable PyAudio devices as {"index", "name", "rate"} (empty without pyaudio)."""
    try:
        import pyaudio
    except ImportError:
        logger.error("pyaudio not installed. Run: pip install 'voice-io[capture]'")
        return []

    p = pyaudio.PyAudio()
    try:
        devices = []
        for i in range(p.get_device_count()):
            info = p.get_device_info_by_index(i)
            if info["maxInputChannels"] > 0:
                devices.append({"index": i, "name": info["name"], "rate": int(info["defaultSampleRate"])})
        return devices
    finally:
        p.terminate()


_STOP = object()


class QueuedCaptureSource:
    """
    Adapt a callback-based AudioCapture to the CaptureSource protocol.

    Device callbacks arrive on a foreign thread and are handed to the event
    loop with call_soon_threadsafe; errors travel through the same queue so
    they surface in chunk order.
    """

    def __init__(
        self,
        capture: AudioCapture,
        sample_rate: int = TARGET_SAMPLE_RATE,
        max_chunks: int = MAX_PENDING_CHUNKS,
    ):
        self.capture = capture
        self.sample_rate = sample_rate
        self.max_chunks = max_chunks
        capture.callback = self._on_audio
        capture.on_error = self._on_error

        self._queue: asyncio.Queue | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._stopped = False
        self._device_stop: asyncio.Task | None = None

    @property
    def stopped(self) -> bool:
        return self._stopped

    async def chunks(self) -> AsyncIterator[bytes]:
        """Start the device and yield chunks until stop() or a device error."""
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()

        if self._stopped:
            return

        if not self.capture.start():
            raise CaptureSourceError(f"Failed to start capture: {self.capture.source_name}")

        while True:
            item = await self._queue.get()
            # Chunks still queued when stop() ran are discarded
            if item is _STOP or self._stopped:
                return
            if isinstance(item, Exception):
                raise CaptureSourceError(f"{self.capture.source_name} failed", details=str(item)) from item
            yield item

    def stop(self) -> None:
        """
        Stop the device. Safe to call more than once.

        Inside an event loop the driver shutdown runs on a worker thread
        (PyAudio blocks until its callback returns); await wait_closed()
        to know the device is released.
        """
        if self._stopped:
            return
        self._stopped = True
        self._post(_STOP)

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.capture.stop()
            return

        self._device_stop = loop.create_task(asyncio.to_thread(self.capture.stop))
        self._device_stop.add_done_callback(self._log_stop_failure)

    async def wait_closed(self) -> None:
        """Wait until a stop() started inside the event loop has closed the device."""
        if self._device_stop is not None:
            await asyncio.shield(self._device_stop)

    def _log_stop_failure(self, task: asyncio.Task):
        if not task.cancelled() and task.exception() is not None:
            logger.warning(f"Error stopping {self.capture.source_name}: {task.exception()}")

    def _on_audio(self, audio_data: bytes):
        if self._stopped:
            return
        if self._queue is not None and self._queue.qsize() >= self.max_chunks:
            logger.warning("Capture queue full, dropping audio chunk")
            return
        self._post(audio_data)

    def _on_error(self, error: Exception):
        self._post(error)

    def _post(self, item):
        loop = self._loop
        if loop is None or self._queue is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(self._queue.put_nowait, item)


class PcmReplaySource:
    """Replay normalized PCM as a live source (file-driven streaming, tests)."""

    def __init__(
        self,
        pcm: bytes,
        sample_rate: int = TARGET_SAMPLE_RATE,
        chunk_ms: int = CHUNK_DURATION_MS,
        realtime: bool = False,
    ):
        """
        Args:
            pcm: Mono 16-bit PCM
            sample_rate: Sample rate of pcm
            chunk_ms: Frame duration per chunk
            realtime: Sleep chunk_ms between chunks to mimic a microphone
        """
        self.sample_rate = sample_rate
        self.chunk_ms = chunk_ms
        self.realtime = realtime
        self._frames = split_pcm(pcm, sample_rate, chunk_ms)
        self.stop_calls = 0

    @property
    def stopped(self) -> bool:
        return self.stop_calls > 0

    async def chunks(self) -> AsyncIterator[bytes]:
        for frame in self._frames:
            if self.stopped:
                return
            yield frame
            await asyncio.sleep(self.chunk_ms / 1000 if self.realtime else 0)

    def stop(self) -> None:
        self.stop_calls += 1
