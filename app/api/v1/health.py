import logging

from fastapi import APIRouter, Request
from starlette.concurrency import run_in_threadpool

from app.db.document_store import DocumentStoreError
from app.storage.base import BlobStoreError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health(request: Request):
    rid = getattr(request.state, "request_id", None)
    checks = {"documents": "ok", "blobs": "ok"}

    try:
        await run_in_threadpool(request.app.state.document_store.check_connection)
    except DocumentStoreError as exc:
        logger.warning("[health] document store: %s", exc)
        checks["documents"] = "unavailable"

    try:
        await run_in_threadpool(request.app.state.blob_store.check_connection)
    except BlobStoreError as exc:
        logger.warning("[health] blob store: %s", exc)
        checks["blobs"] = "unavailable"

    status = "ok" if all(v == "ok" for v in checks.values()) else "degraded"
    return {"status": status, "request_id": rid, "checks": checks}
