"""
Calendar slot endpoints
"""
from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from lib.auth import ROLE_ADMIN, get_admin_user, get_portal_user
from dependencies import get_availability_manager

from explorer_portal.availability import AvailabilityManager, EventType

router = APIRouter(prefix="/api/calendar", tags=["calendar"])


class SlotRequest(BaseModel):
    date: str
    start_time: str
    end_time: str
    is_available: bool = True
    tutee_id: Optional[str] = None
    notes: Optional[str] = None
    event_type: EventType = EventType.TIME_SLOT


class SlotUpdateRequest(BaseModel):
    date: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    is_available: Optional[bool] = None
    tutee_id: Optional[str] = None
    notes: Optional[str] = None
    event_type: Optional[EventType] = None


class BookRequest(BaseModel):
    tutee_id: Optional[str] = None


def _found(slot):
    if slot is None:
        raise HTTPException(status_code=404, detail="Slot not found")
    return slot


@router.get("/slots")
async def list_slots(
    start_date: Optional[str] = Query(None),
    end_date: Optional[str] = Query(None),
    user: dict = Depends(get_portal_user),
    manager: AvailabilityManager = Depends(get_availability_manager),
):
    return {"slots": [asdict(s) for s in manager.list_slots(start_date, end_date)]}


@router.post("/slots", status_code=201)
async def create_slot(
    body: SlotRequest,
    admin: dict = Depends(get_admin_user),
    manager: AvailabilityManager = Depends(get_availability_manager),
):
    data = body.model_dump()
    return asdict(manager.create_slot(slot_date=data.pop("date"), **data))


@router.patch("/slots/{slot_id}")
async def update_slot(
    slot_id: str,
    body: SlotUpdateRequest,
    admin: dict = Depends(get_admin_user),
    manager: AvailabilityManager = Depends(get_availability_manager),
):
    # Fields sent as null (e.g. notes) are applied; omitted ones are left alone
    changes = body.model_dump(exclude_unset=True)
    if "date" in changes:
        changes["slot_date"] = changes.pop("date")
    return asdict(_found(manager.update_slot(slot_id, **changes)))


@router.delete("/slots/{slot_id}")
async def delete_slot(
    slot_id: str,
    admin: dict = Depends(get_admin_user),
    manager: AvailabilityManager = Depends(get_availability_manager),
):
    manager.delete_slot(slot_id)
    return {"status": "deleted", "slot_id": slot_id}


@router.post("/slots/{slot_id}/book")
async def book_slot(
    slot_id: str,
    body: Optional[BookRequest] = None,
    user: dict = Depends(get_portal_user),
    manager: AvailabilityManager = Depends(get_availability_manager),
):
    """Tutees book for themselves; the admin names the tutee."""
    if user.get("role") == ROLE_ADMIN:
        tutee_id = body.tutee_id if body else None
        if not tutee_id:
            raise HTTPException(status_code=400, detail="tutee_id is required")
    else:
        tutee_id = user["tutee_id"]
    return asdict(_found(manager.book_slot(slot_id, tutee_id)))


@router.delete("/slots/{slot_id}/booking")
async def cancel_booking(
    slot_id: str,
    admin: dict = Depends(get_admin_user),
    manager: AvailabilityManager = Depends(get_availability_manager),
):
    return asdict(_found(manager.cancel_booking(slot_id)))
