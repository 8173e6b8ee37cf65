"""Read-only review dashboard aggregation."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from datetime import date

from .dates import add_days, local_today
from .models.review import Review, ReviewOverviewResponse, ReviewStatistics, ReviewStatus


def summarize_reviews(reviews: Iterable[Review], today: date | None = None) -> ReviewOverviewResponse:
    """Split reviews into the reviews-page buckets and compute statistics.

    - next_week: depois de amanhã até hoje + 7 (inclusive)
    - future: de hoje + 8 em diante
    - overdue: status `overdue` ou pendente com data passada
    """

    today = today or local_today()
    tomorrow = add_days(today, 1)
    week_end = add_days(today, 8)
    items = list(reviews)

    pending = [r for r in items if r.status == ReviewStatus.pending]
    due_today = [r for r in pending if r.scheduled_date == today]
    scheduled = [r for r in pending if r.scheduled_date > today]
    overdue = [
        r for r in items
        if r.status == ReviewStatus.overdue
        or (r.status == ReviewStatus.pending and r.scheduled_date < today)
    ]
    completed = [r for r in items if r.status == ReviewStatus.completed]
    completed_today = [
        r for r in completed
        if r.completed_at is not None and local_today(r.completed_at) == today
    ]

    statistics = ReviewStatistics(
        by_origin=dict(Counter(r.origin.value for r in items)),
        by_difficulty=dict(Counter(r.difficulty.value for r in items)),
        by_status=dict(Counter(r.status.value for r in items)),
        completion_rate=round(len(completed) / len(items) * 100) if items else 0,
    )

    return ReviewOverviewResponse(
        due_today=due_today,
        scheduled=scheduled,
        tomorrow=[r for r in scheduled if r.scheduled_date == tomorrow],
        next_week=[r for r in scheduled if tomorrow < r.scheduled_date < week_end],
        future=[r for r in scheduled if r.scheduled_date >= week_end],
        overdue=overdue,
        completed=completed,
        completed_today=completed_today,
        total_due_today=len(due_today),
        total_scheduled=len(scheduled),
        total_overdue=len(overdue),
        total_completed=len(completed),
        statistics=statistics,
    )
