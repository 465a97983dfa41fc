"""FastAPI routes for voice recording upload and transcription."""

import logging
from pathlib import Path

from fastapi import FastAPI, File, UploadFile
from fastapi.responses import JSONResponse

from ..audio.normalizer import FormatNormalizer, check_ffmpeg
from ..audio.tempstore import TempArtifactStore
from ..core.errors import TranscriptionError
from ..core.models import AudioBlob
from ..recognition.client import RecognitionClient
from ..transcription.session import BatchTranscriptionSession

logger = logging.getLogger(__name__)


def _source_format(audio: UploadFile) -> str:
    """Container hint from the upload's content type, else its filename."""
    if audio.content_type and audio.content_type != "application/octet-stream":
        return audio.content_type
    if audio.filename:
        return Path(audio.filename).suffix.lstrip(".")
    return ""


def setup_api_routes(
    app: FastAPI,
    recognition_client: RecognitionClient,
    normalizer: FormatNormalizer | None = None,
    store: TempArtifactStore | None = None,
):
    """Setup voice recording API routes."""
    store = store or TempArtifactStore()
    normalizer = normalizer or FormatNormalizer(store=store)

    @app.post("/api/v1/voicerecord")
    async def voicerecord(audio: UploadFile = File(...)):
        """Transcribe one recorded clip."""
        blob = AudioBlob(data=await audio.read(), source_format=_source_format(audio))
        logger.info(f"Received recording: {audio.filename} ({len(blob)} bytes)")

        session = BatchTranscriptionSession(recognition_client, normalizer=normalizer, store=store)
        try:
            result = await session.run(blob)
        except TranscriptionError as e:
            return JSONResponse(status_code=500, content=e.to_dict())

        return JSONResponse({"transcript": result.text})

    @app.get("/api/v1/voicerecord/health")
    async def voicerecord_health():
        """Health check endpoint."""
        return JSONResponse({
            "status": "ok",
            "ffmpeg": normalizer.ffmpeg_path or check_ffmpeg(),
            "temp_dir": str(store.directory),
            "language": recognition_client.settings.language_code,
        })


def create_app(recognition_client: RecognitionClient | None = None) -> FastAPI:
    """Create the transcription API app (credentials from the environment if no client is given)."""
    app = FastAPI(title="Voice I/O")
    setup_api_routes(app, recognition_client or RecognitionClient.from_env())
    return app
