"""HTTP surface for the transcription pipeline."""

from .routes import create_app, setup_api_routes

__all__ = ["create_app", "setup_api_routes"]
