"""Filesystem-backed blob store."""

from __future__ import annotations

import logging
import os
import tempfile
from hashlib import sha256
from pathlib import Path
from typing import BinaryIO, Optional
from urllib.parse import quote

from app.storage.base import (
    BlobLimitError,
    BlobNotFoundError,
    BlobStore,
    BlobStoreError,
    ProgressCallback,
    StoredBlob,
)

logger = logging.getLogger(__name__)


class LocalBlobStore(BlobStore):
    """
    Stores blobs as files beneath ``root``.

    Writes go to a temporary file in the target directory and are linked
    into place once fully flushed, so a key is either absent or complete.
    An existing key is never overwritten.
    """

    def __init__(
        self,
        root: str | Path,
        public_base_url: str,
        *,
        max_bytes: Optional[int] = None,
        chunk_size: int = 1024 * 1024,
    ) -> None:
        self.root = Path(root).resolve()
        self.public_base_url = public_base_url.rstrip("/")
        self.max_bytes = max_bytes
        self.chunk_size = chunk_size

    def check_connection(self) -> None:
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise BlobStoreError(f"Blob root {self.root} is not writable.") from exc
        if not os.access(self.root, os.W_OK):
            raise BlobStoreError(f"Blob root {self.root} is not writable.")

    def url_for(self, key: str) -> str:
        return f"{self.public_base_url}/{quote(key)}"

    def _path_for(self, key: str) -> Path:
        path = (self.root / key.lstrip("/")).resolve()
        if path == self.root or self.root not in path.parents:
            raise BlobStoreError(f"Invalid blob key: {key!r}")
        return path

    def put(
        self,
        key: str,
        stream: BinaryIO,
        *,
        on_progress: Optional[ProgressCallback] = None,
    ) -> StoredBlob:
        target = self._path_for(key)
        digest = sha256()
        size = 0

        rewind = getattr(stream, "seek", None)
        if callable(rewind):
            try:
                rewind(0)
            except (OSError, ValueError):
                pass

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=".upload-")
        except OSError as exc:
            raise BlobStoreError(f"Failed to prepare blob {key!r}") from exc

        try:
            with os.fdopen(fd, "wb") as out:
                while True:
                    chunk = stream.read(self.chunk_size)
                    if not chunk:
                        break
                    size += len(chunk)
                    if self.max_bytes is not None and size > self.max_bytes:
                        raise BlobLimitError(limit=self.max_bytes, received=size)
                    digest.update(chunk)
                    out.write(chunk)
                    if on_progress is not None:
                        on_progress(size)
                out.flush()
                os.fsync(out.fileno())
            # link fails if the key exists; stored blobs are never replaced
            os.link(tmp_name, target)
        except BlobStoreError:
            _discard(tmp_name)
            raise
        except FileExistsError as exc:
            _discard(tmp_name)
            raise BlobStoreError(f"Blob {key!r} already exists") from exc
        except Exception as exc:
            _discard(tmp_name)
            raise BlobStoreError(f"Failed to write blob {key!r}: {exc}") from exc

        _discard(tmp_name)

        logger.debug("[blob] stored key=%s bytes=%d", key, size)
        return StoredBlob(key=key, url=self.url_for(key), byte_size=size, sha256=digest.hexdigest())

    def open(self, key: str) -> Path:
        path = self._path_for(key)
        if not path.is_file():
            raise BlobNotFoundError(f"No blob stored at {key!r}")
        return path


def _discard(path: str) -> None:
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass
