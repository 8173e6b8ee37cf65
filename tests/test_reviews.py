from datetime import UTC, date, datetime

import pytest

from eleva.dates import add_days, local_today
from eleva.errors import (
    InvalidInputError,
    InvalidTransitionError,
    NoActivePlanError,
    NotFoundError,
    PersistenceError,
)
from eleva.models.common import Difficulty
from eleva.models.review import Review, ReviewOrigin, ReviewOutcome, ReviewStatus
from eleva.reviews import ReviewStore
from eleva.store import AppFirestoreStore
from tests.firestore_fakes import FakeFirestoreClient

TODAY = date(2024, 6, 15)
PLAN = "plan-1"


def _store(client=None, notices=None) -> ReviewStore:
    client = client or FakeFirestoreClient()
    store = ReviewStore(
        AppFirestoreStore(client=client).reviews,
        notify=notices.append if notices is not None else None,
        today_provider=lambda: TODAY,
    )
    store.fetch(PLAN)
    return store


def _add(store: ReviewStore, days: int = 0, **overrides) -> Review:
    payload = {
        "topic_id": "topic-crase",
        "discipline_id": "portugues",
        "content": "Crase",
        "scheduled_date": add_days(TODAY, days),
        "status": ReviewStatus.pending,
    }
    payload.update(overrides)
    return store.add(payload)


class FailingReviewRepository:
    """Repository that loads fine but refuses every write."""

    def __init__(self, reviews: list[Review]) -> None:
        self._reviews = reviews

    def list_reviews(self, study_plan_id):
        return list(self._reviews)

    def create_review(self, study_plan_id, data):
        raise RuntimeError("write denied")

    def update_review(self, review_id, changes):
        raise RuntimeError("write denied")

    def delete_review(self, review_id):
        raise RuntimeError("write denied")


def test_fetch_only_loads_active_plan():
    client = FakeFirestoreClient()
    client.seed(
        "reviews",
        "rv:other",
        {
            "study_plan_id": "plan-2",
            "topic_id": "t",
            "discipline_id": "d",
            "content": "x",
            "scheduled_date": "2024-06-15",
        },
    )
    store = _store(client)
    _add(store)
    reloaded = _store(client)
    assert [r.study_plan_id for r in reloaded.reviews] == [PLAN]
    assert reloaded.study_plan_id == PLAN
    assert reloaded.loading is False


def test_add_requires_active_plan():
    store = ReviewStore(AppFirestoreStore(client=FakeFirestoreClient()).reviews)
    with pytest.raises(NoActivePlanError):
        store.add({"topic_id": "t", "discipline_id": "d", "content": "x", "scheduled_date": TODAY})


def test_refresh_overdue_marks_past_pending_and_is_idempotent():
    store = _store()
    past = _add(store, -2)
    due = _add(store, 0)
    future = _add(store, 3)

    assert store.refresh_overdue() == [past.id]
    assert store.get(past.id).status == ReviewStatus.overdue
    assert store.get(due.id).status == ReviewStatus.pending
    assert store.get(future.id).status == ReviewStatus.pending

    assert store.refresh_overdue() == []
    assert [r.status for r in store.reviews].count(ReviewStatus.overdue) == 1


def test_refresh_overdue_persist_writes_status():
    client = FakeFirestoreClient()
    store = _store(client)
    past = _add(store, -1)

    store.refresh_overdue()
    assert client.document_data("reviews", past.id)["status"] == "pending"

    assert store.refresh_overdue(persist=True) == []
    fresh = _store(client)
    assert fresh.refresh_overdue(persist=True) == [past.id]
    assert client.document_data("reviews", past.id)["status"] == "overdue"


def test_complete_incorrect_creates_exactly_one_follow_up_tomorrow():
    store = _store()
    original = _add(store, 0, origin=ReviewOrigin.manual, difficulty=Difficulty.easy)

    completion = store.complete(original.id, ReviewOutcome.incorrect)

    assert completion.review.status == ReviewStatus.completed
    assert completion.review.completed_at is not None
    follow_up = completion.follow_up
    assert follow_up is not None
    assert follow_up.id != original.id
    assert follow_up.scheduled_date == date(2024, 6, 16)
    assert follow_up.status == ReviewStatus.pending
    assert follow_up.difficulty == Difficulty.hard
    assert follow_up.origin == ReviewOrigin.manual
    assert (follow_up.topic_id, follow_up.discipline_id, follow_up.content) == (
        original.topic_id,
        original.discipline_id,
        original.content,
    )
    assert len(store.reviews) == 2


def test_complete_incorrect_with_new_difficulty_applies_to_both():
    store = _store()
    original = _add(store, 0)

    completion = store.complete(original.id, ReviewOutcome.incorrect, Difficulty.easy)

    assert completion.review.difficulty == Difficulty.easy
    assert completion.follow_up.difficulty == Difficulty.easy


def test_complete_correct_creates_nothing():
    store = _store()
    original = _add(store, -3, status=ReviewStatus.overdue)

    completion = store.complete(original.id, ReviewOutcome.correct)

    assert completion.follow_up is None
    assert completion.review.status == ReviewStatus.completed
    assert len(store.reviews) == 1


def test_complete_postponed_keeps_review_pending():
    store = _store()
    original = _add(store, -1, status=ReviewStatus.overdue)

    completion = store.complete(original.id, ReviewOutcome.postponed)

    assert completion.follow_up is None
    assert completion.review.status == ReviewStatus.pending
    assert completion.review.scheduled_date == date(2024, 6, 16)
    assert completion.review.completed_at is None


def test_completed_review_is_terminal():
    store = _store()
    original = _add(store, 0)
    store.complete(original.id, ReviewOutcome.correct)

    with pytest.raises(InvalidTransitionError):
        store.complete(original.id, ReviewOutcome.incorrect)
    with pytest.raises(InvalidTransitionError):
        store.reschedule(original.id, 2)
    assert len(store.reviews) == 1


def test_complete_unknown_review_returns_none():
    store = _store()
    assert store.complete("rv:missing", ReviewOutcome.correct) is None


def test_reschedule_moves_relative_to_today_and_resets_status():
    store = _store()
    original = _add(store, -5, status=ReviewStatus.overdue)

    updated = store.reschedule(original.id, 3)

    assert updated.scheduled_date == date(2024, 6, 18)
    assert updated.status == ReviewStatus.pending
    assert store.get(original.id) == updated


def test_reschedule_zero_days_means_today():
    store = _store()
    original = _add(store, 4)
    assert store.reschedule(original.id, 0).scheduled_date == TODAY


def test_update_of_deleted_document_raises_not_found():
    client = FakeFirestoreClient()
    store = _store(client)
    review = _add(store, 1)
    client._data["reviews"].pop(review.id)

    with pytest.raises(NotFoundError):
        store.update(review.id, {"content": "Regência"})
    assert store.get(review.id) is None


def test_remove_deletes_document():
    client = FakeFirestoreClient()
    store = _store(client)
    review = _add(store, 1)

    store.remove(review.id)

    assert store.reviews == []
    assert client.document_data("reviews", review.id) is None


def test_persistence_failure_leaves_state_and_notifies():
    existing = Review(
        id="rv:1",
        study_plan_id=PLAN,
        topic_id="t",
        discipline_id="d",
        content="Crase",
        scheduled_date=TODAY,
    )
    notices: list[str] = []
    store = ReviewStore(
        FailingReviewRepository([existing]),
        notify=notices.append,
        today_provider=lambda: TODAY,
    )
    store.fetch(PLAN)

    with pytest.raises(PersistenceError):
        store.complete("rv:1", ReviewOutcome.incorrect)

    assert store.reviews == [existing]
    assert notices == ["Falha ao atualizar revisão."]


def test_fetch_failure_sets_error_and_keeps_list():
    class Unreachable(FailingReviewRepository):
        def list_reviews(self, study_plan_id):
            raise ConnectionError("offline")

    notices: list[str] = []
    store = ReviewStore(Unreachable([]), notify=notices.append)
    with pytest.raises(PersistenceError):
        store.fetch(PLAN)
    assert store.error == "Falha ao buscar revisões"
    assert store.loading is False
    assert store.study_plan_id is None
    assert len(notices) == 1


def test_review_due_today_stays_pending_late_in_the_evening():
    # 23:00 in São Paulo on 2024-06-15 is already 2024-06-16 in UTC.
    evening = datetime(2024, 6, 16, 2, 0, tzinfo=UTC)
    client = FakeFirestoreClient()
    store = ReviewStore(
        AppFirestoreStore(client=client).reviews,
        today_provider=lambda: local_today(evening),
    )
    store.fetch(PLAN)
    review = store.add(
        {
            "topic_id": "topic-crase",
            "discipline_id": "portugues",
            "content": "Crase",
            "scheduled_date": date(2024, 6, 15),
        }
    )

    assert store.refresh_overdue() == []
    assert store.get(review.id).status == ReviewStatus.pending


def test_completed_review_status_cannot_be_edited_back():
    client = FakeFirestoreClient()
    store = _store(client)
    review = _add(store, 0)
    store.complete(review.id, ReviewOutcome.correct)

    with pytest.raises(InvalidTransitionError):
        store.update(review.id, {"status": ReviewStatus.pending})

    assert store.get(review.id).status == ReviewStatus.completed
    assert client.document_data("reviews", review.id)["status"] == "completed"


def test_edit_cannot_complete_a_review():
    store = _store()
    review = _add(store, 0)

    with pytest.raises(InvalidTransitionError):
        store.update(review.id, {"status": "completed"})
    assert store.get(review.id).completed_at is None


def test_edit_can_move_between_pending_and_overdue():
    store = _store()
    review = _add(store, 2)
    assert store.update(review.id, {"status": ReviewStatus.overdue}).status == ReviewStatus.overdue
    assert store.update(review.id, {"status": ReviewStatus.pending}).status == ReviewStatus.pending


def test_invalid_edit_is_rejected_as_input_not_outage():
    notices: list[str] = []
    store = _store(notices=notices)
    review = _add(store, 1)

    with pytest.raises(InvalidInputError):
        store.update(review.id, {"scheduled_date": None})

    assert notices == []
    assert store.get(review.id) == review
