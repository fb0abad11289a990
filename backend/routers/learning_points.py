"""
Learning-point review endpoints
"""
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from lib.auth import get_admin_user, get_portal_user, require_tutee_access
from dependencies import get_learning_point_manager

from explorer_portal.learning_points import LearningPointReviewManager

router = APIRouter(prefix="/api/learning-points", tags=["learning-points"])


class ReviewRequest(BaseModel):
    session_date: str
    last_reviewed: Optional[str] = None
    review_count: Optional[int] = Field(default=None, ge=0)


@router.get("/{tutee_id}")
async def list_reviews(
    tutee_id: str,
    user: dict = Depends(get_portal_user),
    manager: LearningPointReviewManager = Depends(get_learning_point_manager),
):
    require_tutee_access(user, tutee_id)
    return {"reviews": [r.to_dict() for r in manager.list_reviews(tutee_id)]}


@router.post("/{tutee_id}/reviews")
async def record_review(
    tutee_id: str,
    body: ReviewRequest,
    user: dict = Depends(get_portal_user),
    manager: LearningPointReviewManager = Depends(get_learning_point_manager),
):
    """Record that a session's learning points were reviewed."""
    require_tutee_access(user, tutee_id)
    return manager.record_review(tutee_id, **body.model_dump()).to_dict()


@router.delete("/entry/{review_id}")
async def delete_review(
    review_id: str,
    admin: dict = Depends(get_admin_user),
    manager: LearningPointReviewManager = Depends(get_learning_point_manager),
):
    manager.delete_review(review_id)
    return {"status": "deleted", "review_id": review_id}
