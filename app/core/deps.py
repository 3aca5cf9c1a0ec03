# /app/core/deps.py
from fastapi import Request

from app.core.config import Settings
from app.services.achievement_board import AchievementBoard
from app.storage.base import BlobStore


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_board(request: Request) -> AchievementBoard:
    return request.app.state.board


def get_blob_store(request: Request) -> BlobStore:
    return request.app.state.blob_store
