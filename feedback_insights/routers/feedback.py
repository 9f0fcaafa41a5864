"""
Feedback Submission Router
feedback_insights/routers/feedback.py

Endpoints:
  POST /api/v1/feedback/{subject_id}/{cycle_id} — Submit one feedback item
  GET  /api/v1/feedback/{subject_id}/{cycle_id} — List submitted feedback
"""

from fastapi import APIRouter, Depends, status
from typing import List
import logging

from feedback_insights.core.dependencies import get_feedback_repository
from feedback_insights.models.feedback import FeedbackSubmission, RawFeedbackItem
from feedback_insights.models.insights import ErrorResponse
from feedback_insights.routers.analysis import raise_error
from feedback_insights.services.feedback_repository import (
    DuplicateFeedbackError,
    InMemoryFeedbackRepository,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["Feedback"])


@router.post(
    "/feedback/{subject_id}/{cycle_id}",
    response_model=RawFeedbackItem,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": ErrorResponse, "description": "Feedback id already submitted"}},
    summary="Submit feedback",
)
async def submit_feedback(
    subject_id: str,
    cycle_id: str,
    submission: FeedbackSubmission,
    repository: InMemoryFeedbackRepository = Depends(get_feedback_repository),
):
    try:
        return repository.add(subject_id, cycle_id, submission.to_item())
    except DuplicateFeedbackError as e:
        raise_error(status.HTTP_409_CONFLICT, "DUPLICATE_FEEDBACK", str(e), {"id": e.item_id})


@router.get(
    "/feedback/{subject_id}/{cycle_id}",
    response_model=List[RawFeedbackItem],
    summary="List feedback",
)
async def list_feedback(
    subject_id: str,
    cycle_id: str,
    repository: InMemoryFeedbackRepository = Depends(get_feedback_repository),
):
    return await repository.get_feedback(subject_id, cycle_id)
