# app/core/errors.py
from __future__ import annotations

from typing import Iterable


class AchievementError(Exception):
    """Base class for failures of the ingestion and listing pipeline."""

    user_message = "Something went wrong. Please try again."


class ValidationError(AchievementError):
    """A required field is missing. Raised before any store is contacted."""

    user_message = "Please fill all fields"

    def __init__(self, fields: Iterable[str]):
        self.fields = list(fields)
        super().__init__(f"Missing required fields: {', '.join(self.fields)}")


class UploadError(AchievementError):
    """Blob transfer failed; no metadata was written."""

    user_message = "File upload failed. Please try again."


class WriteError(AchievementError):
    """Metadata write failed after the asset was uploaded."""

    user_message = "Could not save the achievement. Please try again."


class ReadError(AchievementError):
    """Listing fetch failed."""

    user_message = "Could not load achievements."


class SubmissionInProgressError(AchievementError):
    user_message = "A submission is already in progress."
