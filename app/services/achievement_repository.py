# app/services/achievement_repository.py
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping

from pydantic import ValidationError as SchemaError
from starlette.concurrency import run_in_threadpool

from app.core.errors import ReadError, ValidationError, WriteError
from app.db.document_store import DocumentStore, DocumentStoreError
from app.schemas.achievements import Achievement, AchievementInput

logger = logging.getLogger(__name__)

# wire name -> python attribute
REQUIRED_FIELDS = {
    "title": "title",
    "studentName": "student_name",
    "date": "date",
}


def missing_required_fields(values: Mapping[str, Any]) -> List[str]:
    """Wire names of required fields that are absent or blank in ``values``."""
    missing = []
    for wire, attr in REQUIRED_FIELDS.items():
        value = values.get(attr, values.get(wire))
        if value is None or not str(value).strip():
            missing.append(wire)
    return missing


class AchievementRepository:
    """
    Append-only access to the achievements collection.

    There is intentionally no update or delete: records are immutable.
    """

    def __init__(self, store: DocumentStore, *, collection: str = "achievements"):
        self.store = store
        self.collection = collection

    def validate(self, record: AchievementInput) -> None:
        missing = missing_required_fields(record.model_dump())
        if missing:
            raise ValidationError(missing)

    async def append(self, record: AchievementInput) -> str:
        self.validate(record)

        document: Dict[str, Any] = record.model_dump(by_alias=True)
        document["createdAt"] = datetime.now(timezone.utc).isoformat()

        try:
            doc_id = await run_in_threadpool(self.store.add, self.collection, document)
        except DocumentStoreError as exc:
            raise WriteError(str(exc)) from exc

        logger.info("[achievements] appended id=%s date=%s", doc_id, record.date)
        return doc_id

    async def list_all(self) -> List[Achievement]:
        """Every record, newest ``date`` first."""
        try:
            rows = await run_in_threadpool(
                self.store.query, self.collection, order_by=("date", "desc")
            )
        except DocumentStoreError as exc:
            raise ReadError(str(exc)) from exc

        out: List[Achievement] = []
        for row in rows:
            try:
                out.append(Achievement.model_validate(row))
            except SchemaError as exc:
                logger.warning("[achievements] skipping malformed document id=%s: %s", row.get("id"), exc)
        return out
