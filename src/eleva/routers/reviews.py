from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from ..flows.auto_reviews import schedule_topic_reviews
from ..models.review import (
    AutoScheduleRequest,
    AutoScheduleResponse,
    RefreshOverdueResponse,
    Review,
    ReviewCompleteRequest,
    ReviewCompleteResponse,
    ReviewCreateRequest,
    ReviewListResponse,
    ReviewOverviewResponse,
    ReviewRescheduleRequest,
    ReviewStatus,
    ReviewUpdateRequest,
)
from ..reviews import ReviewStore
from ..stats import summarize_reviews
from .deps import get_review_store

router = APIRouter(tags=["reviews"])


@router.get("", response_model=ReviewListResponse, summary="List the plan's reviews")
def list_reviews(
    status: ReviewStatus | None = Query(default=None),
    reviews: ReviewStore = Depends(get_review_store),
) -> ReviewListResponse:
    """Return the plan's reviews with overdue status recomputed for today.

    O recálculo de atrasadas acontece só na resposta; use
    `/refresh-overdue` para gravar o status.
    """
    reviews.refresh_overdue()
    items = [r for r in reviews.reviews if status is None or r.status == status]
    return ReviewListResponse(items=items, total=len(items))


@router.get("/overview", response_model=ReviewOverviewResponse, summary="Dashboard buckets and statistics")
def review_overview(reviews: ReviewStore = Depends(get_review_store)) -> ReviewOverviewResponse:
    return summarize_reviews(reviews.reviews, reviews.today())


@router.post("", response_model=Review, status_code=201, summary="Create a review")
def create_review(req: ReviewCreateRequest, reviews: ReviewStore = Depends(get_review_store)) -> Review:
    return reviews.add(req)


@router.post("/refresh-overdue", response_model=RefreshOverdueResponse, summary="Persist overdue statuses")
def refresh_overdue(reviews: ReviewStore = Depends(get_review_store)) -> RefreshOverdueResponse:
    return RefreshOverdueResponse(updated=reviews.refresh_overdue(persist=True))


@router.post("/auto-schedule", response_model=AutoScheduleResponse, status_code=201, summary="Schedule D+N reviews for a topic")
def auto_schedule(req: AutoScheduleRequest, reviews: ReviewStore = Depends(get_review_store)) -> AutoScheduleResponse:
    created = schedule_topic_reviews(
        reviews,
        discipline_id=req.discipline_id,
        discipline_name=req.discipline_name,
        topic_id=req.topic_id,
        topic_name=req.topic_name,
        reference_date=req.reference_date,
        intervals=req.intervals,
    )
    return AutoScheduleResponse(created=created)


@router.get("/{review_id}", response_model=Review)
def get_review(review_id: str, reviews: ReviewStore = Depends(get_review_store)) -> Review:
    reviews.refresh_overdue()
    review = reviews.get(review_id)
    if review is None:
        raise HTTPException(status_code=404, detail="Review not found")
    return review


@router.patch("/{review_id}", response_model=Review)
def update_review(
    review_id: str, req: ReviewUpdateRequest, reviews: ReviewStore = Depends(get_review_store)
) -> Review:
    return reviews.update(review_id, req.to_changes())


@router.delete("/{review_id}", status_code=204)
def delete_review(review_id: str, reviews: ReviewStore = Depends(get_review_store)) -> Response:
    reviews.remove(review_id)
    return Response(status_code=204)


@router.post("/{review_id}/complete", response_model=ReviewCompleteResponse, summary="Resolve with correct/incorrect/postponed")
def complete_review(
    review_id: str, req: ReviewCompleteRequest, reviews: ReviewStore = Depends(get_review_store)
) -> ReviewCompleteResponse:
    completion = reviews.complete(review_id, req.outcome, req.new_difficulty)
    if completion is None:
        raise HTTPException(status_code=404, detail="Review not found")
    return ReviewCompleteResponse(review=completion.review, follow_up=completion.follow_up)


@router.post("/{review_id}/reschedule", response_model=Review, summary="Move to today + days, back to pending")
def reschedule_review(
    review_id: str, req: ReviewRescheduleRequest, reviews: ReviewStore = Depends(get_review_store)
) -> Review:
    return reviews.reschedule(review_id, req.days)
