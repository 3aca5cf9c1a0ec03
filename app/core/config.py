from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    # ─────────── APP ───────────
    app_name: str = "Achievements Registry"
    environment: str = "dev"
    log_level: str = "INFO"

    # ─────────── API ───────────
    api_prefix: str = "/api/v1"
    request_id_header: str = "X-Request-Id"

    # ─────────── DOCUMENT STORE ───────────
    database_url: str = "sqlite:///./achievements.db"
    achievements_collection: str = "achievements"
    create_schema_on_startup: bool = True

    # ─────────── BLOB STORE ───────────
    blob_root: str = "./blobs"
    public_blob_base_url: str = "http://localhost:8000/api/v1/files"
    blob_max_bytes: Optional[int] = None  # None = unlimited
    upload_chunk_size_bytes: int = 1024 * 1024

    # advisory filter applied by the upload route only
    accepted_extensions: List[str] = [".pdf", ".jpg", ".jpeg", ".png"]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
