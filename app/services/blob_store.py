"""Blob store boundary for worker documents."""
import asyncio
import logging
import re
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

from app.config import settings
from app.utils.errors import StorageError


logger = logging.getLogger(__name__)


@dataclass
class IncomingFile:
    """An uploaded file waiting to be stored."""
    filename: str
    content: bytes
    content_type: Optional[str] = None
    category: str = "Other"

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass
class BlobMetadata:
    company_id: str
    worker_id: Optional[str] = None
    extra: Dict[str, str] = field(default_factory=dict)


class BlobStore:
    """Stores raw document bytes and returns an opaque locator."""

    async def store(self, content: bytes, metadata: BlobMetadata, filename: str) -> str:
        raise NotImplementedError


def _safe_name(filename: str) -> str:
    name = Path(filename or "document").name
    return re.sub(r"[^A-Za-z0-9._-]+", "_", name) or "document"


class LocalBlobStore(BlobStore):
    """Writes blobs under the configured upload directory, one folder per tenant."""

    def __init__(self, root: Optional[str] = None):
        self.root = Path(root or settings.upload_dir)

    async def store(self, content: bytes, metadata: BlobMetadata, filename: str) -> str:
        relative = Path(metadata.company_id) / f"{uuid.uuid4().hex}_{_safe_name(filename)}"
        target = self.root / relative
        try:
            await asyncio.to_thread(self._write, target, content)
        except OSError as e:
            logger.error("Failed to store %s: %s", filename, e)
            raise StorageError(f"Could not store document {filename}") from e
        return relative.as_posix()

    @staticmethod
    def _write(target: Path, content: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)


def get_blob_store() -> BlobStore:
    """Blob store dependency for routes."""
    return LocalBlobStore()
