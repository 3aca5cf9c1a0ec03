# app/api/v1/achievements.py
from __future__ import annotations

import logging
from datetime import date as Date
from pathlib import PurePosixPath
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile

from app.core import errors
from app.core.config import Settings
from app.core.deps import get_app_settings, get_board
from app.schemas.achievements import (
    AchievementForm,
    AchievementListResponse,
    SearchTermUpdate,
    SubmissionResponse,
)
from app.services.achievement_board import AchievementBoard, NoRecordsRow, UploadedAsset

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/achievements")

_STATUS = {
    errors.ValidationError: 422,
    errors.SubmissionInProgressError: 409,
    errors.UploadError: 502,
    errors.WriteError: 502,
}


def _list_response(board: AchievementBoard, term: Optional[str]) -> AchievementListResponse:
    effective = board.search_term if term is None else term
    rows = board.rows(effective)
    sentinel = next((r for r in rows if isinstance(r, NoRecordsRow)), None)
    items = [r for r in rows if not isinstance(r, NoRecordsRow)]
    return AchievementListResponse(
        state=board.state.value,
        search_term=effective,
        total=len(board.records),
        matched=len(items),
        items=items,
        empty=sentinel is not None,
        empty_message=sentinel.message if sentinel else None,
        message=board.message,
    )


@router.get("", response_model=AchievementListResponse)
async def list_achievements(
    search: Optional[str] = Query(None, description="Overrides the board's live search term for this read."),
    refresh: bool = Query(False),
    board: AchievementBoard = Depends(get_board),
):
    """
    Ordered (newest date first), filtered view of the last authoritative fetch.
    """
    if refresh:
        await board.refresh()
    return _list_response(board, search)


@router.put("/search", response_model=AchievementListResponse)
async def set_search_term(
    body: SearchTermUpdate,
    board: AchievementBoard = Depends(get_board),
):
    board.set_search_term(body.search_term)
    return _list_response(board, None)


@router.post("", response_model=SubmissionResponse, status_code=201)
async def submit_achievement(
    title: str = Form(""),
    studentName: str = Form(""),
    description: str = Form(""),
    date: Optional[Date] = Form(None),
    file: Optional[UploadFile] = File(None),
    board: AchievementBoard = Depends(get_board),
    settings: Settings = Depends(get_app_settings),
):
    if file is not None and file.filename:
        suffix = PurePosixPath(file.filename).suffix.lower()
        accepted = {ext.lower() for ext in settings.accepted_extensions}
        if suffix not in accepted:
            logger.warning("[achievements] rejected file type filename=%s", file.filename)
            raise HTTPException(
                status_code=422,
                detail=f"Unsupported file type {suffix or '(none)'}; accepted: {', '.join(sorted(accepted))}",
            )

    form = AchievementForm(
        title=title,
        student_name=studentName,
        description=description,
        date=date.isoformat() if date else "",
    )
    asset = UploadedAsset(filename=file.filename, stream=file.file) if file is not None and file.filename else None

    try:
        result = await board.submit(form, asset)
    finally:
        if file is not None:
            await file.close()

    if result.error is not None:
        status = _STATUS.get(type(result.error), 500)
        raise HTTPException(status_code=status, detail=result.error.user_message)

    return SubmissionResponse(
        id=result.record_id,
        file_url=result.file_url,
        refreshed=result.refreshed,
        message=board.message,
    )
