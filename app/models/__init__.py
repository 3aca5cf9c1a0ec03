from app.models.stored_document import StoredDocument  # noqa: F401
