"""Image persistence for trade items."""
import asyncio
import logging
import time
import uuid
from pathlib import Path

from database.exceptions import StorageError

logger = logging.getLogger(__name__)


class BlobStoreError(StorageError):
    """Raised when an image cannot be stored or loaded."""
    pass


class BlobStore:
    """Blob store interface."""

    async def store(self, data: bytes) -> str:
        """Persist bytes and return a reference to them."""
        raise NotImplementedError

    async def load(self, reference: str) -> bytes:
        raise NotImplementedError


class FileBlobStore(BlobStore):
    """Stores each blob as a file under one directory."""

    def __init__(self, directory):
        self.directory = Path(directory)

    def _path(self, reference: str) -> Path:
        path = (self.directory / reference).resolve()
        if path.parent != self.directory.resolve():
            raise BlobStoreError(f"Invalid blob reference: {reference}")
        return path

    def _write(self, data: bytes) -> str:
        self.directory.mkdir(parents=True, exist_ok=True)
        reference = f"{time.time_ns()}-{uuid.uuid4().hex[:8]}.jpg"
        self._path(reference).write_bytes(data)
        return reference

    async def store(self, data: bytes) -> str:
        try:
            reference = await asyncio.to_thread(self._write, data)
        except OSError as e:
            logger.error(f"Failed to store blob: {e}")
            raise BlobStoreError(f"Failed to store blob: {e}") from e
        logger.info(f"Stored blob {reference} ({len(data)} bytes)")
        return reference

    async def load(self, reference: str) -> bytes:
        path = self._path(reference)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            logger.error(f"Failed to load blob {reference}: {e}")
            raise BlobStoreError(f"Failed to load blob {reference}: {e}") from e


__all__ = ['BlobStore', 'FileBlobStore', 'BlobStoreError']
