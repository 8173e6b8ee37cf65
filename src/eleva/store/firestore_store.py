from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any, Protocol

from google.cloud import firestore

from ..id_factory import generate_error_id, generate_review_id
from ..logging import logger
from ..models.error_log import LoggedError
from ..models.review import Review
from .common import DocumentNotFoundError, normalize_weights, to_document


def _now() -> datetime:
    return datetime.now(UTC).replace(microsecond=0)


class ReviewRepository(Protocol):
    """Persistence contract the review store depends on."""

    def list_reviews(self, study_plan_id: str) -> list[Review]: ...

    def create_review(self, study_plan_id: str, data: Mapping[str, Any]) -> Review: ...

    def update_review(self, review_id: str, changes: Mapping[str, Any]) -> Review: ...

    def delete_review(self, review_id: str) -> None: ...


class ErrorLogRepository(Protocol):
    def list_errors(self, study_plan_id: str) -> list[LoggedError]: ...

    def create_error(self, study_plan_id: str, data: Mapping[str, Any]) -> LoggedError: ...

    def update_error(self, error_id: str, changes: Mapping[str, Any]) -> LoggedError: ...

    def delete_error(self, error_id: str) -> None: ...


class FirestoreBaseStore:
    """Shared Firestore client holder."""

    def __init__(self, client: firestore.Client):
        self._client = client


class FirestoreReviewStore(FirestoreBaseStore):
    """Reviews collection (`reviews/{id}`), scoped by `study_plan_id`."""

    def __init__(self, client: firestore.Client):
        super().__init__(client)
        self._reviews = client.collection("reviews")

    def list_reviews(self, study_plan_id: str) -> list[Review]:
        query = self._reviews.where("study_plan_id", "==", study_plan_id)
        items: list[Review] = []
        for snapshot in query.stream():
            data = snapshot.to_dict() or {}
            items.append(Review.model_validate({**data, "id": snapshot.id}))
        items.sort(key=lambda review: (review.scheduled_date, review.id))
        return items

    def create_review(self, study_plan_id: str, data: Mapping[str, Any]) -> Review:
        review_id = generate_review_id()
        payload = to_document(data)
        payload.update(
            {
                "study_plan_id": study_plan_id,
                "created_at": _now().isoformat(),
            }
        )
        payload.pop("id", None)
        # Validate before writing so a malformed payload never reaches the collection.
        review = Review.model_validate({**payload, "id": review_id})
        self._reviews.document(review_id).set(payload)
        logger.info("review_created", review_id=review_id, study_plan_id=study_plan_id)
        return review

    def update_review(self, review_id: str, changes: Mapping[str, Any]) -> Review:
        doc_ref = self._reviews.document(review_id)
        snapshot = doc_ref.get()
        if not snapshot.exists:
            raise DocumentNotFoundError(f"review {review_id} not found")
        payload = to_document(changes)
        payload.pop("id", None)
        payload.pop("study_plan_id", None)
        merged = {**(snapshot.to_dict() or {}), **payload}
        review = Review.model_validate({**merged, "id": review_id})
        if payload:
            doc_ref.update(payload)
        return review

    def delete_review(self, review_id: str) -> None:
        self._reviews.document(review_id).delete()


class FirestoreErrorLogStore(FirestoreBaseStore):
    """Logged errors collection (`logged_errors/{id}`)."""

    def __init__(self, client: firestore.Client):
        super().__init__(client)
        self._errors = client.collection("logged_errors")

    def list_errors(self, study_plan_id: str) -> list[LoggedError]:
        query = self._errors.where("study_plan_id", "==", study_plan_id)
        return [
            LoggedError.model_validate({**(snapshot.to_dict() or {}), "id": snapshot.id})
            for snapshot in query.stream()
        ]

    def create_error(self, study_plan_id: str, data: Mapping[str, Any]) -> LoggedError:
        error_id = generate_error_id()
        payload = to_document(data)
        payload.pop("id", None)
        payload["study_plan_id"] = study_plan_id
        payload["created_at"] = _now().isoformat()
        logged = LoggedError.model_validate({**payload, "id": error_id})
        self._errors.document(error_id).set(payload)
        return logged

    def update_error(self, error_id: str, changes: Mapping[str, Any]) -> LoggedError:
        doc_ref = self._errors.document(error_id)
        snapshot = doc_ref.get()
        if not snapshot.exists:
            raise DocumentNotFoundError(f"logged error {error_id} not found")
        payload = to_document(changes)
        payload.pop("id", None)
        payload.pop("study_plan_id", None)
        merged = {**(snapshot.to_dict() or {}), **payload}
        logged = LoggedError.model_validate({**merged, "id": error_id})
        if payload:
            doc_ref.update(payload)
        return logged

    def delete_error(self, error_id: str) -> None:
        self._errors.document(error_id).delete()


class FirestoreStudyPlanStore(FirestoreBaseStore):
    """Study plan documents; only the rotation weights live here for now."""

    def __init__(self, client: firestore.Client):
        super().__init__(client)
        self._plans = client.collection("study_plans")

    def get_weights(self, study_plan_id: str) -> dict[str, float]:
        snapshot = self._plans.document(study_plan_id).get()
        if not snapshot.exists:
            return {}
        data = snapshot.to_dict() or {}
        return normalize_weights(data.get("rotation_weights"))

    def set_weights(self, study_plan_id: str, weights: Mapping[str, float]) -> dict[str, float]:
        normalized = normalize_weights(weights)
        self._plans.document(study_plan_id).set(
            {"rotation_weights": normalized, "updated_at": _now().isoformat()},
            merge=True,
        )
        return normalized


class AppFirestoreStore:
    """Firestore-backed persistence for the whole app."""

    def __init__(self, *, client: firestore.Client | None = None) -> None:
        self._client = client or firestore.Client()
        self.reviews = FirestoreReviewStore(self._client)
        self.errors = FirestoreErrorLogStore(self._client)
        self.plans = FirestoreStudyPlanStore(self._client)
