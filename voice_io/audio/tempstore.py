"""
Temp artifact store for transient audio files.

Each session acquires uniquely named paths (uuid suffix, so concurrent
sessions never collide) and must release them on every exit path.
Release is best-effort: a failed delete is logged and never raised, so it
cannot mask the session's primary error.

Usage:
    store = TempArtifactStore()
    with store.scoped("input", ".webm") as raw:
        raw.write(data)
        ...
"""

import logging
import os
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from ..config.settings import TEMP_DIR
from ..core.errors import UploadWriteFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TempArtifact:
    """Handle to one transient file owned by a single session."""

    path: Path

    def write(self, data: bytes) -> None:
        """Persist bytes to the artifact, raising UploadWriteFailure on I/O errors."""
        try:
            self.path.write_bytes(data)
        except OSError as e:
            raise UploadWriteFailure(f"Cannot write {self.path.name}", details=str(e)) from e

    def read(self) -> bytes:
        return self.path.read_bytes()

    @property
    def exists(self) -> bool:
        return self.path.exists()

    def __fspath__(self) -> str:
        return str(self.path)


class TempArtifactStore:
    """Caller-owned namespace of transient files in one directory."""

    def __init__(self, directory: str | os.PathLike | None = None):
        """
        Args:
            directory: Where artifacts live. Defaults to VOICE_IO_TEMP_DIR.
        """
        self.directory = Path(directory or TEMP_DIR)
        self.directory.mkdir(parents=True, exist_ok=True)

    def acquire(self, prefix: str, suffix: str = "") -> TempArtifact:
        """
        Reserve a unique, writable location.

        Args:
            prefix: Human-readable name part (e.g. "input", "output")
            suffix: File extension including the dot (e.g. ".wav")

        Returns:
            TempArtifact whose file does not exist yet
        """
        name = f"{prefix}-{uuid.uuid4().hex}{suffix}"
        artifact = TempArtifact(self.directory / name)
        logger.debug(f"Acquired temp artifact {artifact.path}")
        return artifact

    def release(self, artifact: TempArtifact) -> None:
        """Delete the artifact. Missing files are fine; other failures are only logged."""
        try:
            artifact.path.unlink(missing_ok=True)
            logger.debug(f"Released temp artifact {artifact.path}")
        except OSError as e:
            logger.warning(f"Failed to delete temp artifact {artifact.path}: {e}")

    @contextmanager
    def scoped(self, prefix: str, suffix: str = "") -> Iterator[TempArtifact]:
        """Acquire an artifact and release it however the block exits."""
        artifact = self.acquire(prefix, suffix)
        try:
            yield artifact
        finally:
            self.release(artifact)

    def list_artifacts(self) -> list[Path]:
        """Files currently present in the store directory."""
        if not self.directory.exists():
            return []
        return sorted(p for p in self.directory.iterdir() if p.is_file())
