import pytest
from fastapi.testclient import TestClient

# FORCE model registration
import app.models  # noqa

from app.core.config import Settings
from app.db.base import Base
from app.db.document_store import DocumentStore
from app.db.session import build_engine, build_session_factory
from app.main import create_app
from app.services.achievement_board import AchievementBoard
from app.services.achievement_repository import AchievementRepository
from app.services.asset_uploader import AssetUploader
from app.storage.local import LocalBlobStore


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        database_url=f"sqlite:///{tmp_path / 'achievements.db'}",
        blob_root=str(tmp_path / "blobs"),
        public_blob_base_url="http://testserver/api/v1/files",
        log_level="WARNING",
    )


@pytest.fixture
def engine(settings):
    engine = build_engine(settings)
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def document_store(engine):
    return DocumentStore(build_session_factory(engine))


@pytest.fixture
def blob_store(settings):
    store = LocalBlobStore(settings.blob_root, settings.public_blob_base_url)
    store.check_connection()
    return store


@pytest.fixture
def repository(document_store):
    return AchievementRepository(document_store)


@pytest.fixture
def uploader(blob_store):
    return AssetUploader(blob_store)


@pytest.fixture
def board(repository, uploader):
    return AchievementBoard(repository, uploader)


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as c:
        yield c
