from __future__ import annotations

from enum import Enum


class Difficulty(str, Enum):
    """Perceived difficulty of a review or a logged error."""

    easy = "easy"
    medium = "medium"
    hard = "hard"
