"""Speech recognition provider client."""

from .client import RecognitionClient, StreamingRecognition, create_speech_client

__all__ = [
    "RecognitionClient",
    "StreamingRecognition",
    "create_speech_client",
]
