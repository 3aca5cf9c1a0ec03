# app/api/v1/files.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse

from app.core.deps import get_blob_store
from app.storage.base import BlobNotFoundError, BlobStore, BlobStoreError

router = APIRouter(prefix="/files")


@router.get("/{key:path}")
def download_file(key: str, store: BlobStore = Depends(get_blob_store)):
    try:
        path = store.open(key)
    except BlobNotFoundError:
        raise HTTPException(status_code=404, detail="File not found.")
    except BlobStoreError:
        raise HTTPException(status_code=400, detail="Invalid file key.")

    # stored name is "<original>-<millis>"; serve it under the original name
    filename = path.name.rsplit("-", 1)[0] or path.name
    return FileResponse(path, filename=filename)
