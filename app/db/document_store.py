# app/db/document_store.py
from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from app.models.stored_document import StoredDocument

logger = logging.getLogger(__name__)

ORDER_DIRECTIONS = {"asc", "desc"}


class DocumentStoreError(Exception):
    """Raised when the document store is unavailable or rejects an operation."""


class DocumentStore:
    """
    Schemaless collections of field maps on top of a single SQL table.

    Documents are appended and read; nothing here updates or deletes.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def check_connection(self) -> None:
        try:
            with self._session_factory() as db:
                db.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            raise DocumentStoreError("Document store is unreachable.") from exc

    def add(self, collection: str, fields: Dict[str, Any]) -> str:
        doc_id = str(uuid.uuid4())
        try:
            with self._session_factory() as db:
                db.add(StoredDocument(id=doc_id, collection=collection, data=dict(fields)))
                db.commit()
        except SQLAlchemyError as exc:
            raise DocumentStoreError(f"Failed to write document to {collection!r}") from exc

        logger.debug("[documents] added id=%s collection=%s", doc_id, collection)
        return doc_id

    def query(
        self,
        collection: str,
        *,
        order_by: Optional[Tuple[str, str]] = None,
    ) -> List[Dict[str, Any]]:
        """
        Return every document of ``collection`` as ``{"id": ..., **fields}``.

        ``order_by`` is ``(field, "asc"|"desc")``; equal values keep insertion order.
        """
        stmt = select(StoredDocument).where(StoredDocument.collection == collection)

        if order_by is not None:
            field, direction = order_by
            if direction not in ORDER_DIRECTIONS:
                raise ValueError(f"Unknown order direction: {direction!r}")
            key = StoredDocument.data[field].as_string()
            stmt = stmt.order_by(key.desc() if direction == "desc" else key.asc())

        stmt = stmt.order_by(StoredDocument.seq.asc())

        try:
            with self._session_factory() as db:
                rows = db.execute(stmt).scalars().all()
        except SQLAlchemyError as exc:
            raise DocumentStoreError(f"Failed to read collection {collection!r}") from exc

        return [{**row.data, "id": row.id} for row in rows]
