from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, Query, Response

from ..error_log import ErrorLogStore, filter_errors
from ..flows.error_review import toggle_error_resolution
from ..models.error_log import (
    ErrorRevision,
    ErrorRevisionRequest,
    LoggedError,
    LoggedErrorCreateRequest,
    LoggedErrorListResponse,
    LoggedErrorUpdateRequest,
    ToggleResolvedRequest,
    ToggleResolvedResponse,
)
from ..reviews import ReviewStore
from .deps import get_error_log_store, get_review_store

router = APIRouter(tags=["errors"])


@router.get("", response_model=LoggedErrorListResponse, summary="List logged errors")
def list_errors(
    status: Literal["all", "resolved", "pending"] = Query(default="all"),
    discipline_id: str | None = Query(default=None),
    q: str | None = Query(default=None, max_length=200),
    errors: ErrorLogStore = Depends(get_error_log_store),
) -> LoggedErrorListResponse:
    items = filter_errors(errors.errors, status=status, discipline_id=discipline_id, query=q)
    return LoggedErrorListResponse(items=items, total=len(items))


@router.post("", response_model=LoggedError, status_code=201)
def create_error(
    req: LoggedErrorCreateRequest, errors: ErrorLogStore = Depends(get_error_log_store)
) -> LoggedError:
    return errors.add(req)


@router.patch("/{error_id}", response_model=LoggedError)
def update_error(
    error_id: str, req: LoggedErrorUpdateRequest, errors: ErrorLogStore = Depends(get_error_log_store)
) -> LoggedError:
    return errors.update(error_id, req.to_changes())


@router.delete("/{error_id}", status_code=204)
def delete_error(error_id: str, errors: ErrorLogStore = Depends(get_error_log_store)) -> Response:
    errors.remove(error_id)
    return Response(status_code=204)


@router.post("/{error_id}/toggle-resolved", response_model=ToggleResolvedResponse)
def toggle_resolved(
    error_id: str,
    req: ToggleResolvedRequest,
    errors: ErrorLogStore = Depends(get_error_log_store),
    reviews: ReviewStore = Depends(get_review_store),
) -> ToggleResolvedResponse:
    """Flip resolved/pending; optionally schedule the follow-up review.

    Uma falha ao agendar a revisão volta em `follow_up_error`; o erro
    continua marcado como resolvido.
    """
    result = toggle_error_resolution(
        error_id, errors, reviews, schedule_review=req.schedule_review
    )
    return ToggleResolvedResponse(
        error=result.error,
        follow_up_review=result.follow_up_review,
        follow_up_error=result.follow_up_error,
    )


@router.post("/{error_id}/revisions", response_model=LoggedError)
def add_error_revision(
    error_id: str, req: ErrorRevisionRequest, errors: ErrorLogStore = Depends(get_error_log_store)
) -> LoggedError:
    revision = ErrorRevision(date=req.date or errors.today(), status=req.status)
    return errors.add_revision(error_id, revision)
