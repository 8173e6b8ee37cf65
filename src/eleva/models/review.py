from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..dates import parse_local_date
from .common import Difficulty


class ReviewStatus(str, Enum):
    pending = "pending"
    overdue = "overdue"
    completed = "completed"


class ReviewOrigin(str, Enum):
    """Why a review exists.

    - theoretical: agendada a partir de um tópico (ou de um erro resolvido)
    - manual: criada diretamente pelo usuário
    - flashcard / error: origens herdadas de outras telas
    """

    theoretical = "theoretical"
    manual = "manual"
    flashcard = "flashcard"
    error = "error"


class ReviewOutcome(str, Enum):
    correct = "correct"
    incorrect = "incorrect"
    postponed = "postponed"


class Review(BaseModel):
    """A scheduled spaced-repetition event for one topic."""

    model_config = ConfigDict(extra="ignore")

    id: str
    study_plan_id: str
    topic_id: str
    discipline_id: str
    content: str
    scheduled_date: date
    status: ReviewStatus = ReviewStatus.pending
    origin: ReviewOrigin = ReviewOrigin.theoretical
    difficulty: Difficulty = Difficulty.medium
    completed_at: datetime | None = None
    created_at: datetime | None = None

    @field_validator("scheduled_date", mode="before")
    @classmethod
    def _coerce_scheduled_date(cls, value: Any) -> Any:
        if isinstance(value, (str, date)):
            return parse_local_date(value)
        return value


class ReviewCreateRequest(BaseModel):
    """Payload for creating a review.

    A data é um dia de calendário (`YYYY-MM-DD`); horário não tem significado.
    """

    topic_id: str = Field(min_length=1)
    discipline_id: str = Field(min_length=1)
    content: str = Field(min_length=1, max_length=500)
    scheduled_date: date
    status: ReviewStatus = ReviewStatus.pending
    origin: ReviewOrigin = ReviewOrigin.theoretical
    difficulty: Difficulty = Difficulty.medium

    @field_validator("scheduled_date", mode="before")
    @classmethod
    def _coerce_scheduled_date(cls, value: Any) -> Any:
        if isinstance(value, str):
            return parse_local_date(value)
        return value


class ReviewUpdateRequest(BaseModel):
    """Partial update; only fields explicitly sent are applied.

    `status` aceita só pending/overdue: concluir passa por `/complete`.
    """

    topic_id: str | None = Field(default=None, min_length=1)
    discipline_id: str | None = Field(default=None, min_length=1)
    content: str | None = Field(default=None, min_length=1, max_length=500)
    scheduled_date: date | None = None
    status: ReviewStatus | None = None
    origin: ReviewOrigin | None = None
    difficulty: Difficulty | None = None

    @field_validator("status")
    @classmethod
    def _status_not_completed(cls, value: ReviewStatus | None) -> ReviewStatus | None:
        if value == ReviewStatus.completed:
            raise ValueError("use the complete endpoint to complete a review")
        return value

    @model_validator(mode="after")
    def _reject_explicit_nulls(self) -> "ReviewUpdateRequest":
        nulls = sorted(name for name in self.model_fields_set if getattr(self, name) is None)
        if nulls:
            raise ValueError(f"fields cannot be null: {', '.join(nulls)}")
        return self

    def to_changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class ReviewCompleteRequest(BaseModel):
    outcome: ReviewOutcome
    new_difficulty: Difficulty | None = None


class ReviewCompleteResponse(BaseModel):
    """Result of resolving a review.

    - review: o registro original após a transição
    - follow_up: a nova revisão criada quando o resultado foi `incorrect`
    """

    review: Review
    follow_up: Review | None = None


class ReviewRescheduleRequest(BaseModel):
    days: int = Field(ge=0, le=365)


class ReviewListResponse(BaseModel):
    items: list[Review]
    total: int


class RefreshOverdueResponse(BaseModel):
    updated: list[str]


class AutoScheduleRequest(BaseModel):
    """Topic auto-scheduling request (D+1, D+7, D+15, D+30 by default)."""

    discipline_id: str = Field(min_length=1)
    discipline_name: str = Field(min_length=1)
    topic_id: str = Field(min_length=1)
    topic_name: str | None = None
    reference_date: date | None = None
    intervals: list[int] | None = Field(default=None, max_length=20)

    @field_validator("intervals")
    @classmethod
    def _positive_intervals(cls, value: list[int] | None) -> list[int] | None:
        if value is not None and any(days <= 0 for days in value):
            raise ValueError("intervals must be positive day counts")
        return value


class AutoScheduleResponse(BaseModel):
    created: list[Review]


class ReviewStatistics(BaseModel):
    by_origin: dict[str, int] = Field(default_factory=dict)
    by_difficulty: dict[str, int] = Field(default_factory=dict)
    by_status: dict[str, int] = Field(default_factory=dict)
    completion_rate: int = 0


class ReviewOverviewResponse(BaseModel):
    """Dashboard buckets for the reviews page.

    Espelha as colunas da tela de revisões: atrasadas, hoje, amanhã,
    próximos 7 dias, futuras e concluídas.
    """

    due_today: list[Review] = Field(default_factory=list)
    scheduled: list[Review] = Field(default_factory=list)
    tomorrow: list[Review] = Field(default_factory=list)
    next_week: list[Review] = Field(default_factory=list)
    future: list[Review] = Field(default_factory=list)
    overdue: list[Review] = Field(default_factory=list)
    completed: list[Review] = Field(default_factory=list)
    completed_today: list[Review] = Field(default_factory=list)
    total_due_today: int = 0
    total_scheduled: int = 0
    total_overdue: int = 0
    total_completed: int = 0
    statistics: ReviewStatistics = Field(default_factory=ReviewStatistics)
