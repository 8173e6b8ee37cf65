"""Review entity store: collection, status transitions and rescheduling.

Estado em memória das revisões de um plano de estudo, sincronizado com o
backend de persistência. Nenhuma atualização é otimista: a lista só muda
depois que a persistência confirma a escrita.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, date, datetime
from typing import Any, NoReturn

from pydantic import BaseModel, ValidationError

from .config import settings
from .dates import add_days, local_today
from .errors import (
    InvalidInputError,
    InvalidTransitionError,
    NoActivePlanError,
    NotFoundError,
    PersistenceError,
)
from .logging import logger
from .models.common import Difficulty
from .models.review import Review, ReviewOutcome, ReviewStatus
from .store import DocumentNotFoundError, ReviewRepository

Notifier = Callable[[str], None]


def log_notice(message: str) -> None:
    """Default notifier: emit the user-facing message as a structured event."""

    logger.warning("user_notice", message=message)


@dataclass
class ReviewCompletion:
    review: Review
    follow_up: Review | None = None


class ReviewStore:
    """Reviews of the active study plan plus their lifecycle operations.

    Failures from the repository are logged, reported through `notify` and
    re-raised as `PersistenceError`; the in-memory list is left untouched.
    """

    def __init__(
        self,
        repository: ReviewRepository,
        *,
        notify: Notifier | None = None,
        today_provider: Callable[[], date] | None = None,
    ) -> None:
        self._repository = repository
        self._notify = notify or log_notice
        self._today = today_provider or local_today
        self.reviews: list[Review] = []
        self.study_plan_id: str | None = None
        self.loading = False
        self.error: str | None = None

    # --- helpers ---
    def _fail(self, event: str, exc: Exception, message: str, **fields: Any) -> NoReturn:
        logger.error(event, error=repr(exc), **fields)
        self._notify(message)
        raise PersistenceError(message) from exc

    def _replace(self, updated: Review) -> None:
        self.reviews = [updated if r.id == updated.id else r for r in self.reviews]

    def today(self) -> date:
        return self._today()

    def get(self, review_id: str) -> Review | None:
        return next((r for r in self.reviews if r.id == review_id), None)

    def _require(self, review_id: str) -> Review:
        review = self.get(review_id)
        if review is None:
            raise NotFoundError("Revisão não encontrada.")
        return review

    # --- CRUD ---
    def fetch(self, study_plan_id: str) -> list[Review]:
        self.loading = True
        self.error = None
        try:
            reviews = self._repository.list_reviews(study_plan_id)
        except Exception as exc:
            self.loading = False
            self.error = "Falha ao buscar revisões"
            self._fail(
                "review_fetch_failed",
                exc,
                "Não foi possível carregar as revisões.",
                study_plan_id=study_plan_id,
            )
        self.reviews = list(reviews)
        self.study_plan_id = study_plan_id
        self.loading = False
        return list(self.reviews)

    def add(self, data: Mapping[str, Any] | BaseModel) -> Review:
        if not self.study_plan_id:
            raise NoActivePlanError("Plano de estudo não selecionado.")
        payload = data.model_dump() if isinstance(data, BaseModel) else dict(data)
        try:
            created = self._repository.create_review(self.study_plan_id, payload)
        except ValidationError as exc:
            logger.info("review_create_rejected", error=repr(exc))
            raise InvalidInputError("Dados inválidos para a revisão.") from exc
        except Exception as exc:
            self._fail(
                "review_create_failed",
                exc,
                "Falha ao adicionar revisão.",
                study_plan_id=self.study_plan_id,
            )
        self.reviews = [*self.reviews, created]
        return created

    def update(self, review_id: str, changes: Mapping[str, Any]) -> Review:
        """Apply a user edit.

        Status may only move between pending and overdue here; completing
        goes through `complete` and a completed review never changes status.
        """

        current = self._require(review_id)
        if "status" in changes:
            if current.status == ReviewStatus.completed:
                raise InvalidTransitionError("Esta revisão já foi concluída.")
            if changes["status"] == ReviewStatus.completed:
                raise InvalidTransitionError("Use a conclusão da revisão para concluí-la.")
        return self._write(review_id, changes)

    def _write(self, review_id: str, changes: Mapping[str, Any]) -> Review:
        self._require(review_id)
        try:
            updated = self._repository.update_review(review_id, dict(changes))
        except DocumentNotFoundError as exc:
            self.reviews = [r for r in self.reviews if r.id != review_id]
            raise NotFoundError("Revisão não encontrada.") from exc
        except ValidationError as exc:
            logger.info("review_update_rejected", review_id=review_id, error=repr(exc))
            raise InvalidInputError("Dados inválidos para a revisão.") from exc
        except Exception as exc:
            self._fail("review_update_failed", exc, "Falha ao atualizar revisão.", review_id=review_id)
        self._replace(updated)
        return updated

    def remove(self, review_id: str) -> None:
        self._require(review_id)
        try:
            self._repository.delete_review(review_id)
        except Exception as exc:
            self._fail("review_delete_failed", exc, "Falha ao remover revisão.", review_id=review_id)
        self.reviews = [r for r in self.reviews if r.id != review_id]

    # --- lifecycle ---
    def complete(
        self,
        review_id: str,
        outcome: ReviewOutcome,
        new_difficulty: Difficulty | None = None,
        *,
        today: date | None = None,
    ) -> ReviewCompletion | None:
        """Resolve a review with the user's outcome.

        - correct: concluída, nada é criado
        - incorrect: concluída e uma nova revisão pendente nasce para amanhã
        - postponed: não conclui; a revisão é reagendada e continua pendente

        Returns None when the review is not in the loaded collection.
        """

        original = self.get(review_id)
        if original is None:
            return None
        if original.status == ReviewStatus.completed:
            raise InvalidTransitionError("Esta revisão já foi concluída.")

        today = today or self._today()
        if outcome == ReviewOutcome.postponed:
            postponed = self.reschedule(
                review_id, settings.postponed_review_offset_days, today=today
            )
            logger.info("review_postponed", review_id=review_id, scheduled_date=str(postponed.scheduled_date))
            return ReviewCompletion(review=postponed)

        completed = self._write(
            review_id,
            {
                "status": ReviewStatus.completed,
                "difficulty": new_difficulty or original.difficulty,
                "completed_at": datetime.now(UTC).replace(microsecond=0),
            },
        )

        follow_up: Review | None = None
        if outcome == ReviewOutcome.incorrect:
            follow_up = self.add(
                {
                    "topic_id": original.topic_id,
                    "discipline_id": original.discipline_id,
                    "content": original.content,
                    "origin": original.origin,
                    "scheduled_date": add_days(today, settings.failed_review_offset_days),
                    "status": ReviewStatus.pending,
                    "difficulty": new_difficulty or Difficulty.hard,
                }
            )

        logger.info(
            "review_completed",
            review_id=review_id,
            outcome=outcome.value,
            follow_up_id=follow_up.id if follow_up else None,
        )
        return ReviewCompletion(review=completed, follow_up=follow_up)

    def reschedule(self, review_id: str, days_offset: int, *, today: date | None = None) -> Review:
        """Move a review to `today + days_offset` and force it back to pending."""

        review = self._require(review_id)
        if review.status == ReviewStatus.completed:
            raise InvalidTransitionError("Revisões concluídas não podem ser reagendadas.")
        today = today or self._today()
        return self._write(
            review_id,
            {
                "scheduled_date": add_days(today, days_offset),
                "status": ReviewStatus.pending,
            },
        )

    def refresh_overdue(self, *, today: date | None = None, persist: bool = False) -> list[str]:
        """Mark pending reviews scheduled before today as overdue.

        Safe to call repeatedly: a second call finds nothing left to change.
        Only the in-memory collection changes unless `persist` is set.
        """

        today = today or self._today()
        stale = [
            r for r in self.reviews
            if r.status == ReviewStatus.pending and r.scheduled_date < today
        ]
        for review in stale:
            if persist:
                self._write(review.id, {"status": ReviewStatus.overdue})
            else:
                self._replace(review.model_copy(update={"status": ReviewStatus.overdue}))
        if stale:
            logger.info("reviews_marked_overdue", count=len(stale), persisted=persist)
        return [r.id for r in stale]
