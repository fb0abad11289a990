"""
Booking request endpoints

Manager calls run in a worker thread because they may send push
notifications.
"""
import asyncio
from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from lib.auth import get_admin_user, get_portal_user, require_tutee_access
from dependencies import get_booking_manager

from explorer_portal.bookings import BookingManager, BookingStatus

router = APIRouter(prefix="/api/bookings", tags=["bookings"])


class BookingCreateRequest(BaseModel):
    requested_date: str
    requested_start_time: str
    requested_end_time: str
    tutee_notes: Optional[str] = None


class BookingUpdateRequest(BaseModel):
    status: Optional[BookingStatus] = None
    requested_date: Optional[str] = None
    requested_start_time: Optional[str] = None
    requested_end_time: Optional[str] = None
    admin_notes: Optional[str] = None
    tutee_notes: Optional[str] = None


class DecisionRequest(BaseModel):
    admin_notes: Optional[str] = None


def _found(request):
    if request is None:
        raise HTTPException(status_code=404, detail="Booking request not found")
    return request


@router.get("")
async def list_requests(
    status: Optional[BookingStatus] = None,
    admin: dict = Depends(get_admin_user),
    manager: BookingManager = Depends(get_booking_manager),
):
    return {"requests": [asdict(r) for r in manager.list_requests(status=status)]}


@router.get("/tutee/{tutee_id}")
async def list_tutee_requests(
    tutee_id: str,
    user: dict = Depends(get_portal_user),
    manager: BookingManager = Depends(get_booking_manager),
):
    require_tutee_access(user, tutee_id)
    return {"requests": [asdict(r) for r in manager.list_requests(tutee_id=tutee_id)]}


@router.post("/{tutee_id}", status_code=201)
async def create_request(
    tutee_id: str,
    body: BookingCreateRequest,
    user: dict = Depends(get_portal_user),
    manager: BookingManager = Depends(get_booking_manager),
):
    require_tutee_access(user, tutee_id)
    request = await asyncio.to_thread(manager.create_request, tutee_id, **body.model_dump())
    return asdict(request)


@router.patch("/{request_id}")
async def update_request(
    request_id: str,
    body: BookingUpdateRequest,
    admin: dict = Depends(get_admin_user),
    manager: BookingManager = Depends(get_booking_manager),
):
    changes = body.model_dump(exclude_none=True)
    return asdict(_found(await asyncio.to_thread(manager.update_request, request_id, **changes)))


@router.post("/{request_id}/approve")
async def approve_request(
    request_id: str,
    body: Optional[DecisionRequest] = None,
    admin: dict = Depends(get_admin_user),
    manager: BookingManager = Depends(get_booking_manager),
):
    notes = body.admin_notes if body else None
    return asdict(_found(await asyncio.to_thread(manager.approve, request_id, notes)))


@router.post("/{request_id}/reject")
async def reject_request(
    request_id: str,
    body: Optional[DecisionRequest] = None,
    admin: dict = Depends(get_admin_user),
    manager: BookingManager = Depends(get_booking_manager),
):
    notes = body.admin_notes if body else None
    return asdict(_found(await asyncio.to_thread(manager.reject, request_id, notes)))


@router.post("/{request_id}/cancel")
async def cancel_request(
    request_id: str,
    user: dict = Depends(get_portal_user),
    manager: BookingManager = Depends(get_booking_manager),
):
    """A tutee withdraws their own pending request."""
    request = _found(manager.get_request(request_id))
    require_tutee_access(user, request.tutee_id)
    if request.status != BookingStatus.PENDING:
        raise HTTPException(status_code=400, detail="Only pending requests can be cancelled")
    return asdict(manager.update_request(request_id, status=BookingStatus.CANCELLED))


@router.delete("/{request_id}")
async def delete_request(
    request_id: str,
    admin: dict = Depends(get_admin_user),
    manager: BookingManager = Depends(get_booking_manager),
):
    manager.delete_request(request_id)
    return {"status": "deleted", "request_id": request_id}
