"""
Voice I/O command line.

    voice-io transcribe recording.webm         # batch: ffmpeg + one-shot recognition
    voice-io listen --device 2                 # live microphone, stops on first final
    voice-io listen --list-devices
    voice-io captions alignment.json           # print caption lines for a synthesis alignment
    voice-io serve --port 8000                 # upload API
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from . import __version__
from .audio.capture import MicrophoneCapture, QueuedCaptureSource, list_input_devices
from .captions.alignment import words_from_alignment
from .captions.timeline import build_timeline
from .config.settings import CAPTION_MAX_WORDS
from .core.errors import TranscriptionError
from .core.models import AudioBlob, TranscriptResult
from .recognition.client import RecognitionClient
from .transcription.session import BatchTranscriptionSession, StreamingTranscriptionSession
from .utils.logging import setup_logging

logger = logging.getLogger(__name__)


def _report_failure(error: TranscriptionError) -> int:
    print(json.dumps(error.to_dict()), file=sys.stderr)
    return 1


async def _transcribe(path: Path, source_format: str) -> int:
    try:
        data = path.read_bytes()
    except OSError as e:
        logger.error(f"Cannot read {path}: {e}")
        return 1

    try:
        client = RecognitionClient.from_env()
        result = await BatchTranscriptionSession(client).run(AudioBlob(data, source_format))
    except TranscriptionError as e:
        return _report_failure(e)

    print(result.text)
    return 0


async def _listen(device_index: int | None) -> int:
    def show_interim(result: TranscriptResult):
        print(f"\r... {result.text}", end="", flush=True)

    source = QueuedCaptureSource(MicrophoneCapture(device_index=device_index))
    try:
        client = RecognitionClient.from_env()
        session = StreamingTranscriptionSession(client, on_interim=show_interim)
        print("Listening... (Ctrl+C to stop)")
        result = await session.run(source)
    except TranscriptionError as e:
        print()
        return _report_failure(e)
    finally:
        source.stop()
        await source.wait_closed()

    print()
    if result is None:
        print("(no final result)")
        return 0
    print(result.text)
    return 0


def _captions(path: Path, max_words: int) -> int:
    try:
        alignment = json.loads(path.read_text(encoding="utf-8"))
        timeline = build_timeline(words_from_alignment(alignment), max_words=max_words)
    except (OSError, ValueError) as e:
        logger.error(f"Cannot build captions from {path}: {e}")
        return 1

    for index, line in enumerate(timeline):
        print(f"[{index:2d}] {line.start_time:7.2f} - {line.end_time:7.2f}  {line.text}")
    return 0


def _serve(host: str, port: int) -> int:
    import uvicorn

    from .api.routes import create_app

    try:
        app = create_app()
    except TranscriptionError as e:
        return _report_failure(e)

    uvicorn.run(app, host=host, port=port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="voice-io", description=f"Voice I/O Engine v{__version__}")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    transcribe = subparsers.add_parser("transcribe", help="Transcribe an audio file")
    transcribe.add_argument("file", type=Path, help="Audio file (webm, ogg, wav, mp3, ...)")
    transcribe.add_argument("--format", help="Source format hint (default: file extension)")

    listen = subparsers.add_parser("listen", help="Transcribe the microphone until the first final result")
    listen.add_argument("--device", type=int, help="Microphone device index")
    listen.add_argument("--list-devices", action="store_true", help="List available input devices")

    captions = subparsers.add_parser("captions", help="Print caption lines for a synthesis alignment JSON")
    captions.add_argument("file", type=Path, help="Alignment JSON with per-character timestamps")
    captions.add_argument(
        "--max-words",
        type=int,
        default=CAPTION_MAX_WORDS,
        help=f"Words per caption line (default: {CAPTION_MAX_WORDS})",
    )

    serve = subparsers.add_parser("serve", help="Run the upload API")
    serve.add_argument("--host", default="0.0.0.0", help="Bind address")
    serve.add_argument("--port", type=int, default=8000, help="Port (default: 8000)")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    setup_logging(debug=args.debug)

    try:
        if args.command == "transcribe":
            source_format = args.format or args.file.suffix.lstrip(".")
            return asyncio.run(_transcribe(args.file, source_format))

        if args.command == "listen":
            if args.list_devices:
                for device in list_input_devices():
                    print(f"  [{device['index']:2d}] {device['name']} ({device['rate']}Hz)")
                return 0
            return asyncio.run(_listen(args.device))

        if args.command == "captions":
            return _captions(args.file, args.max_words)

        return _serve(args.host, args.port)

    except KeyboardInterrupt:
        print("\nInterrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
