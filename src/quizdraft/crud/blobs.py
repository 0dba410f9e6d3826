"""Blob storage for migrated assets: abstract interface, in-memory and filesystem backends"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath

from quizdraft.errors import PersistenceError


logger = logging.getLogger(__name__)


class BlobStore(ABC):
    @abstractmethod
    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        """Store data at path and return a durable URL for it."""
        raise NotImplementedError


def _clean_path(path: str) -> str:
    """Reject absolute paths and parent references; blob paths are store-relative."""
    p = PurePosixPath(path)
    if p.is_absolute() or ".." in p.parts or not p.parts:
        raise PersistenceError(f"Invalid blob path: {path!r}")
    return str(p)


@dataclass
class MemoryBlobStore(BlobStore):
    base_url: str = "memory://blobs"
    blobs: dict[str, tuple[bytes, str]] = field(default_factory=dict)
    uploads: int = 0

    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        path = _clean_path(path)
        self.blobs[path] = (data, content_type)
        self.uploads += 1
        return f"{self.base_url}/{path}"


class LocalBlobStore(BlobStore):
    """Writes blobs under a root directory; URLs are base_url + relative path."""

    def __init__(self, root: Path | str, base_url: str = ""):
        self.root = Path(root)
        self.base_url = (base_url or self.root.resolve().as_uri()).rstrip("/")

    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        path = _clean_path(path)
        dest = self.root / path
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            dest.write_bytes(data)
        except OSError as e:
            raise PersistenceError(f"Failed to write blob {path}: {e}") from e
        logger.debug("Wrote %d bytes (%s) to %s", len(data), content_type, dest)
        return f"{self.base_url}/{path}"
