from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..dates import parse_local_date
from .common import Difficulty
from .review import Review


class ErrorRevisionStatus(str, Enum):
    pending = "pending"
    reviewed = "reviewed"


class ErrorRevision(BaseModel):
    """One pass over a logged error (caderno de erros)."""

    date: dt.date
    status: ErrorRevisionStatus = ErrorRevisionStatus.pending

    @field_validator("date", mode="before")
    @classmethod
    def _coerce_date(cls, value: Any) -> Any:
        if isinstance(value, str):
            return parse_local_date(value)
        return value


class LoggedError(BaseModel):
    """A mistake recorded during study, optionally tied to a syllabus topic."""

    model_config = ConfigDict(extra="ignore")

    id: str
    study_plan_id: str
    discipline_id: str
    topic_id: str | None = None
    subject: str
    description: str = ""
    notes: str | None = None
    difficulty: Difficulty | None = None
    date: dt.date
    resolved: bool = False
    next_review: dt.date | None = None
    revisions: list[ErrorRevision] = Field(default_factory=list)

    @field_validator("date", "next_review", mode="before")
    @classmethod
    def _coerce_dates(cls, value: Any) -> Any:
        if isinstance(value, str) and value:
            return parse_local_date(value)
        return value


class LoggedErrorCreateRequest(BaseModel):
    discipline_id: str | None = None
    topic_id: str | None = None
    subject: str = Field(min_length=1, max_length=200)
    description: str = Field(default="", max_length=4000)
    notes: str | None = Field(default=None, max_length=4000)
    difficulty: Difficulty | None = None
    date: dt.date | None = None
    resolved: bool = False


# topic_id, notes, difficulty and next_review may be cleared with null.
_REQUIRED_ERROR_FIELDS = frozenset({"discipline_id", "subject", "description", "date", "resolved"})


class LoggedErrorUpdateRequest(BaseModel):
    discipline_id: str | None = Field(default=None, min_length=1)
    topic_id: str | None = None
    subject: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=4000)
    notes: str | None = Field(default=None, max_length=4000)
    difficulty: Difficulty | None = None
    date: dt.date | None = None
    resolved: bool | None = None
    next_review: dt.date | None = None

    @model_validator(mode="after")
    def _reject_required_nulls(self) -> "LoggedErrorUpdateRequest":
        nulls = sorted(
            name
            for name in self.model_fields_set & _REQUIRED_ERROR_FIELDS
            if getattr(self, name) is None
        )
        if nulls:
            raise ValueError(f"fields cannot be null: {', '.join(nulls)}")
        return self

    def to_changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class LoggedErrorListResponse(BaseModel):
    items: list[LoggedError]
    total: int


class ToggleResolvedRequest(BaseModel):
    """Flip the resolved flag.

    `schedule_review` é a confirmação do usuário para agendar a revisão de
    acompanhamento quando o erro passa para resolvido.
    """

    schedule_review: bool = False


class ToggleResolvedResponse(BaseModel):
    error: LoggedError
    follow_up_review: Review | None = None
    follow_up_error: str | None = None


class ErrorRevisionRequest(BaseModel):
    date: dt.date | None = None
    status: ErrorRevisionStatus = ErrorRevisionStatus.pending
