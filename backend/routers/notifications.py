"""
Push notification dispatch (admin-triggered)
"""
import asyncio
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from lib.auth import get_admin_user
from dependencies import get_push_dispatcher

from explorer_portal.push_notifications import PushDispatcher

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


def _require(dispatcher: Optional[PushDispatcher]) -> PushDispatcher:
    if dispatcher is None:
        raise HTTPException(status_code=503, detail="Push notifications are not configured")
    return dispatcher


@router.post("/test")
async def send_test(
    admin: dict = Depends(get_admin_user),
    dispatcher: Optional[PushDispatcher] = Depends(get_push_dispatcher),
):
    summary = await asyncio.to_thread(_require(dispatcher).send_test)
    return summary.to_dict()


@router.post("/review-reminders")
async def send_review_reminders(
    admin: dict = Depends(get_admin_user),
    dispatcher: Optional[PushDispatcher] = Depends(get_push_dispatcher),
):
    summary = await asyncio.to_thread(_require(dispatcher).send_review_reminders)
    return summary.to_dict()


@router.post("/work-progress")
async def send_work_progress(
    admin: dict = Depends(get_admin_user),
    dispatcher: Optional[PushDispatcher] = Depends(get_push_dispatcher),
):
    summary = await asyncio.to_thread(_require(dispatcher).send_work_progress_reminders)
    return summary.to_dict()
