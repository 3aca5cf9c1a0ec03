"""Blob store interface consumed by the asset uploader."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Callable, Optional

ProgressCallback = Callable[[int], None]


class BlobStoreError(Exception):
    """Raised when the blob store cannot complete an operation."""


class BlobLimitError(BlobStoreError):
    """Raised when a write exceeds the configured storage quota."""

    def __init__(self, *, limit: int, received: int) -> None:
        super().__init__(
            f"Object exceeds maximum size of {limit} bytes (received {received} bytes).",
        )
        self.limit = limit
        self.received = received


class BlobNotFoundError(BlobStoreError):
    """Raised when a key has no stored object."""


@dataclass(frozen=True)
class StoredBlob:
    """Descriptor of a blob that was durably written."""

    key: str
    url: str
    byte_size: int
    sha256: str


class BlobStore(ABC):
    @abstractmethod
    def check_connection(self) -> None:
        """Raise BlobStoreError if the backend is not usable."""

    @abstractmethod
    def put(
        self,
        key: str,
        stream: BinaryIO,
        *,
        on_progress: Optional[ProgressCallback] = None,
    ) -> StoredBlob:
        """Persist ``stream`` under ``key`` and return its public locator."""

    @abstractmethod
    def open(self, key: str) -> Path:
        """Return a local path for the bytes stored at ``key``."""
