from __future__ import annotations

from pydantic import BaseModel, Field


class RotationWeights(BaseModel):
    """Discipline name -> relative study weight from the plan configuration."""

    weights: dict[str, float] = Field(default_factory=dict)


class RotationPickResponse(BaseModel):
    discipline: str | None = None
    last_picked: str | None = None
