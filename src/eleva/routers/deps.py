"""Request-scoped stores built on top of the shared Firestore store."""

from __future__ import annotations

from fastapi import Depends

from ..error_log import ErrorLogStore
from ..reviews import ReviewStore
from ..store import AppFirestoreStore, get_store


def get_review_store(plan_id: str, store: AppFirestoreStore = Depends(get_store)) -> ReviewStore:
    reviews = ReviewStore(store.reviews)
    reviews.fetch(plan_id)
    return reviews


def get_error_log_store(plan_id: str, store: AppFirestoreStore = Depends(get_store)) -> ErrorLogStore:
    errors = ErrorLogStore(store.errors)
    errors.fetch(plan_id)
    return errors
