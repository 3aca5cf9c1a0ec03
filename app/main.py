from contextlib import asynccontextmanager
from typing import Optional

from app.core.config import Settings, get_settings
from app.core.logging import configure_logging
from app.core.middleware import RequestIdMiddleware
from app.api.v1.router import v1_router
from app.db.base import Base
from app.db.document_store import DocumentStore
from app.db.session import build_engine, build_session_factory
from app.services.achievement_board import AchievementBoard
from app.services.achievement_repository import AchievementRepository
from app.services.asset_uploader import AssetUploader
from app.storage.base import BlobStoreError
from app.storage.local import LocalBlobStore
from app.models import StoredDocument  # noqa: F401

from fastapi import FastAPI
import logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    if settings.create_schema_on_startup:
        Base.metadata.create_all(bind=app.state.engine)
    try:
        app.state.blob_store.check_connection()
    except BlobStoreError as exc:
        # uploads will surface as UploadError until this is fixed
        logger.error("[startup] blob store unavailable: %s", exc)

    # initial fetch; failure leaves an empty list and a message on the board
    await app.state.board.mount()
    logger.info("[startup] board mounted with %d records", len(app.state.board.records))

    yield

    app.state.engine.dispose()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title=settings.app_name,
        version="0.1.0",
        lifespan=lifespan,
    )

    # Collaborators: built once, shared through app.state
    engine = build_engine(settings)
    document_store = DocumentStore(build_session_factory(engine))
    blob_store = LocalBlobStore(
        settings.blob_root,
        settings.public_blob_base_url,
        max_bytes=settings.blob_max_bytes,
        chunk_size=settings.upload_chunk_size_bytes,
    )
    repository = AchievementRepository(document_store, collection=settings.achievements_collection)
    uploader = AssetUploader(blob_store, base_path=settings.achievements_collection)

    app.state.settings = settings
    app.state.engine = engine
    app.state.document_store = document_store
    app.state.blob_store = blob_store
    app.state.board = AchievementBoard(repository, uploader)

    # Middleware: Request ID
    app.add_middleware(RequestIdMiddleware, header_name=settings.request_id_header)

    # API v1
    app.include_router(v1_router, prefix=settings.api_prefix)

    return app


app = create_app()
