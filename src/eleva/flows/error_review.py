"""Bridge from a resolved logged error to a follow-up review.

Quando um erro do caderno é marcado como resolvido, o usuário pode pedir
uma revisão teórica daqui a 7 dias para fixar o conteúdo. A criação é uma
tentativa única e não transacional: se falhar, o erro continua resolvido.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from ..config import settings
from ..dates import add_days
from ..error_log import ErrorLogStore
from ..errors import ElevaError
from ..logging import logger
from ..models.common import Difficulty
from ..models.error_log import LoggedError
from ..models.review import Review, ReviewOrigin, ReviewStatus
from ..reviews import ReviewStore

FOLLOW_UP_CONTENT_PREFIX = "Review error: "


@dataclass
class ResolutionResult:
    error: LoggedError
    follow_up_review: Review | None = None
    follow_up_error: str | None = None


def schedule_error_follow_up(
    logged: LoggedError, reviews: ReviewStore, *, today: date
) -> Review | None:
    """Create the follow-up review for a resolved error.

    Errors without both a topic and a discipline are skipped silently.
    Persistence failures propagate to the caller.
    """

    if not logged.topic_id or not logged.discipline_id:
        logger.info("error_follow_up_skipped", error_id=logged.id, reason="missing_reference")
        return None
    return reviews.add(
        {
            "topic_id": logged.topic_id,
            "discipline_id": logged.discipline_id,
            "content": f"{FOLLOW_UP_CONTENT_PREFIX}{logged.subject}",
            "scheduled_date": add_days(today, settings.error_review_offset_days),
            "status": ReviewStatus.pending,
            "origin": ReviewOrigin.theoretical,
            "difficulty": logged.difficulty or Difficulty.medium,
        }
    )


def toggle_error_resolution(
    error_id: str,
    errors: ErrorLogStore,
    reviews: ReviewStore,
    *,
    schedule_review: bool,
    today: date | None = None,
) -> ResolutionResult:
    """Flip an error's resolved flag and optionally schedule its follow-up.

    The flag change is persisted first and never rolled back. A failed
    follow-up is reported in `follow_up_error` instead of raising.
    """

    updated, became_resolved = errors.toggle_resolved(error_id)
    result = ResolutionResult(error=updated)
    if not (became_resolved and schedule_review):
        return result

    try:
        result.follow_up_review = schedule_error_follow_up(
            updated, reviews, today=today or reviews.today()
        )
    except ElevaError as exc:
        logger.warning("error_follow_up_failed", error_id=error_id, reason=exc.user_message)
        result.follow_up_error = "Falha ao agendar revisão."
        return result

    if result.follow_up_review is not None:
        try:
            errors.update(
                error_id, {"next_review": result.follow_up_review.scheduled_date}
            )
        except ElevaError as exc:
            logger.warning("error_next_review_not_saved", error_id=error_id, reason=exc.user_message)
        else:
            result.error = errors.get(error_id) or updated
    return result
