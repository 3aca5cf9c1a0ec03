# app/services/asset_uploader.py
from __future__ import annotations

import logging
import time
from pathlib import PurePosixPath, PureWindowsPath
from typing import BinaryIO, Optional

from starlette.concurrency import run_in_threadpool

from app.core.errors import UploadError
from app.storage.base import BlobStore, BlobStoreError, ProgressCallback

logger = logging.getLogger(__name__)


def _basename(name: str) -> str:
    # browsers may send full client paths with either separator
    return PurePosixPath(PureWindowsPath(name).name).name


class AssetUploader:
    """
    Streams operator files into the blob store and hands back the public URL.
    """

    def __init__(self, store: BlobStore, *, base_path: str = "achievements"):
        self.store = store
        self.base_path = base_path.strip("/")

    def build_key(self, original_name: str, *, now_ms: Optional[int] = None) -> str:
        """
        ``<base_path>/<originalName>-<epochMillis>``; the timestamp keeps
        identically named uploads apart.
        """
        if now_ms is None:
            now_ms = time.time_ns() // 1_000_000
        name = _basename(original_name) or "upload"
        return f"{self.base_path}/{name}-{now_ms}"

    async def upload(
        self,
        file: BinaryIO,
        destination_key: str,
        *,
        on_progress: Optional[ProgressCallback] = None,
    ) -> str:
        try:
            stored = await run_in_threadpool(
                self.store.put, destination_key, file, on_progress=on_progress
            )
        except BlobStoreError as exc:
            logger.error("[upload] failed key=%s error=%s", destination_key, exc)
            raise UploadError(str(exc)) from exc
        except Exception as exc:
            # adapters other than LocalBlobStore may leak raw transport errors
            logger.exception("[upload] unexpected failure key=%s", destination_key)
            raise UploadError(str(exc)) from exc

        logger.info("[upload] stored key=%s bytes=%d", stored.key, stored.byte_size)
        return stored.url
