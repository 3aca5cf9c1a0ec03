# app/services/achievement_board.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import BinaryIO, Callable, List, Optional, Union

from app.core.errors import (
    AchievementError,
    ReadError,
    SubmissionInProgressError,
    UploadError,
    ValidationError,
    WriteError,
)
from app.schemas.achievements import Achievement, AchievementForm, AchievementInput
from app.services.achievement_repository import AchievementRepository, missing_required_fields
from app.services.asset_uploader import AssetUploader

logger = logging.getLogger(__name__)

NO_RECORDS_MESSAGE = "No achievements found."


class BoardState(str, Enum):
    idle = "idle"
    loading = "loading"
    submitting = "submitting"


@dataclass(frozen=True)
class NoRecordsRow:
    message: str = NO_RECORDS_MESSAGE


NO_RECORDS = NoRecordsRow()

Row = Union[Achievement, NoRecordsRow]
Listener = Callable[["AchievementBoard"], None]


@dataclass
class UploadedAsset:
    filename: str
    stream: BinaryIO


@dataclass
class SubmissionResult:
    record_id: Optional[str] = None
    file_url: Optional[str] = None
    refreshed: bool = False
    error: Optional[AchievementError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def matches(record: Achievement, term: str) -> bool:
    needle = term.lower()
    return (
        needle in record.title.lower()
        or needle in record.student_name.lower()
        or needle in (record.description or "").lower()
    )


def filter_achievements(records: List[Achievement], term: str) -> List[Achievement]:
    """Case-insensitive substring search over title, student name and description."""
    if not term:
        return list(records)
    return [r for r in records if matches(r, term)]


class AchievementBoard:
    """
    Working set of fetched achievements plus the live search term.

    ``records`` is only replaced when a full fetch completes; a submission
    never inserts the new record speculatively.
    """

    def __init__(self, repository: AchievementRepository, uploader: AssetUploader):
        self.repository = repository
        self.uploader = uploader

        self.state: BoardState = BoardState.idle
        self.records: List[Achievement] = []
        self.search_term: str = ""
        self.message: Optional[str] = None

        self._listeners: List[Listener] = []

    # ─────────────────────────────────────────────
    # NOTIFICATION
    # ─────────────────────────────────────────────

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("[board] listener %r failed", listener)

    def _enter(self, state: BoardState) -> None:
        self.state = state
        self._notify()

    # ─────────────────────────────────────────────
    # VIEW
    # ─────────────────────────────────────────────

    @property
    def can_submit(self) -> bool:
        return self.state == BoardState.idle

    def set_search_term(self, term: str) -> None:
        self.search_term = term or ""
        self._notify()

    def filtered(self, term: Optional[str] = None) -> List[Achievement]:
        return filter_achievements(self.records, self.search_term if term is None else term)

    def rows(self, term: Optional[str] = None) -> List[Row]:
        visible = self.filtered(term)
        if not visible:
            return [NO_RECORDS]
        return list(visible)

    # ─────────────────────────────────────────────
    # FETCH
    # ─────────────────────────────────────────────

    async def _fetch(self) -> bool:
        try:
            self.records = await self.repository.list_all()
        except ReadError as exc:
            logger.error("[board] fetching achievements failed: %s", exc)
            self.message = exc.user_message
            return False
        return True

    async def mount(self) -> None:
        """Initial load; a failed fetch leaves the board idle on the previous (empty) list."""
        await self.refresh()

    async def refresh(self) -> bool:
        if self.state != BoardState.idle:
            # a fetch is already part of whatever is in flight
            return False
        self._enter(BoardState.loading)
        try:
            ok = await self._fetch()
            if ok:
                self.message = None
            return ok
        finally:
            self._enter(BoardState.idle)

    # ─────────────────────────────────────────────
    # SUBMISSION PIPELINE
    # ─────────────────────────────────────────────

    async def submit(self, form: AchievementForm, asset: Optional[UploadedAsset]) -> SubmissionResult:
        """
        upload -> append -> full re-fetch, strictly in that order.

        Every failure is caught here, logged and reported through
        ``message`` and the returned result.
        """
        if not self.can_submit:
            # the in-flight submission owns ``message``; report only to this caller
            busy = SubmissionInProgressError("Submission already in progress")
            logger.warning("[board] submission refused: %s", busy)
            return SubmissionResult(error=busy)

        missing = missing_required_fields(form.model_dump())
        if asset is None or not asset.filename:
            missing.append("file")
        if missing:
            return self._fail(ValidationError(missing))

        self._enter(BoardState.submitting)
        result = SubmissionResult()
        try:
            key = self.uploader.build_key(asset.filename)
            try:
                result.file_url = await self.uploader.upload(asset.stream, key)
            except UploadError as exc:
                logger.error("[board] upload failed for %s: %s", asset.filename, exc)
                result.error = exc
                self.message = exc.user_message
                return result

            record = AchievementInput(
                title=form.title,
                student_name=form.student_name,
                description=form.description or "",
                date=form.date,
                file_url=result.file_url,
                file_name=asset.filename,
            )
            try:
                result.record_id = await self.repository.append(record)
            except (ValidationError, WriteError) as exc:
                # blob stays behind; no compensating delete
                logger.error("[board] metadata write failed, orphaned blob key=%s: %s", key, exc)
                result.error = exc
                self.message = exc.user_message
                return result

            result.refreshed = await self._fetch()
            if result.refreshed:
                self.message = None
            return result
        finally:
            self._enter(BoardState.idle)

    def _fail(self, exc: AchievementError) -> SubmissionResult:
        logger.warning("[board] submission rejected: %s", exc)
        self.message = exc.user_message
        self._notify()
        return SubmissionResult(error=exc)
