"""Topic auto-scheduling: pending reviews at D+1, D+7, D+15 and D+30."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date

from ..config import settings
from ..dates import add_days
from ..logging import logger
from ..models.common import Difficulty
from ..models.review import Review, ReviewOrigin, ReviewStatus
from ..reviews import ReviewStore


def schedule_topic_reviews(
    reviews: ReviewStore,
    *,
    discipline_id: str,
    discipline_name: str,
    topic_id: str,
    topic_name: str | None = None,
    reference_date: date | None = None,
    intervals: Sequence[int] | None = None,
) -> list[Review]:
    """Create the spaced reviews for a topic that was just studied.

    Um dia alvo que já tem revisão teórica pendente do mesmo tópico é
    ignorado, então chamar de novo para a mesma data não duplica nada.
    """

    base = reference_date or reviews.today()
    days_list = list(intervals) if intervals else list(settings.auto_review_intervals)

    taken = {
        r.scheduled_date
        for r in reviews.reviews
        if r.topic_id == topic_id
        and r.origin == ReviewOrigin.theoretical
        and r.status == ReviewStatus.pending
    }

    created: list[Review] = []
    for days in days_list:
        target = add_days(base, days)
        if target in taken:
            continue
        created.append(
            reviews.add(
                {
                    "topic_id": topic_id,
                    "discipline_id": discipline_id,
                    "content": topic_name or discipline_name,
                    "scheduled_date": target,
                    "status": ReviewStatus.pending,
                    "origin": ReviewOrigin.theoretical,
                    "difficulty": Difficulty.medium,
                }
            )
        )
        taken.add(target)

    logger.info(
        "topic_reviews_scheduled",
        topic_id=topic_id,
        created=len(created),
        skipped=len(days_list) - len(created),
    )
    return created
