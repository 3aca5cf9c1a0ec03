from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AchievementForm(_CamelModel):
    """Raw operator input; emptiness is checked by the pipeline, not here."""

    title: str = ""
    student_name: str = ""
    description: str = ""
    date: str = ""


class AchievementInput(_CamelModel):
    title: str
    student_name: str
    description: str = ""
    date: str = Field(..., description="ISO calendar date, YYYY-MM-DD")
    file_url: str = Field(..., alias="fileURL")
    file_name: str


class Achievement(AchievementInput):
    id: str
    created_at: datetime


class AchievementListResponse(_CamelModel):
    state: str
    search_term: str = ""
    total: int
    matched: int
    items: List[Achievement] = Field(default_factory=list)

    # sentinel row contract: an empty match is reported, never a bare empty table
    empty: bool = False
    empty_message: Optional[str] = None
    message: Optional[str] = None


class SearchTermUpdate(_CamelModel):
    search_term: str = ""


class SubmissionResponse(_CamelModel):
    id: str
    file_url: str = Field(..., alias="fileURL")
    refreshed: bool = True
    message: Optional[str] = None
