"""
Worksheet tracker endpoints
"""
from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from lib.auth import get_admin_user, get_portal_user, require_tutee_access
from dependencies import get_worksheet_manager

from explorer_portal.worksheets import WorksheetManager, WorksheetStatus

router = APIRouter(prefix="/api/worksheets", tags=["worksheets"])


class WorksheetRequest(BaseModel):
    worksheet_name: str
    student_name: str
    completed_date: str
    status: WorksheetStatus = WorksheetStatus.UPCOMING
    completion_percentage: int = Field(default=0, ge=0, le=100)
    notes: Optional[str] = None


class WorksheetUpdateRequest(BaseModel):
    worksheet_name: Optional[str] = None
    student_name: Optional[str] = None
    completed_date: Optional[str] = None
    status: Optional[WorksheetStatus] = None
    completion_percentage: Optional[int] = Field(default=None, ge=0, le=100)
    notes: Optional[str] = None


@router.get("/{tutee_id}")
async def list_worksheets(
    tutee_id: str,
    user: dict = Depends(get_portal_user),
    manager: WorksheetManager = Depends(get_worksheet_manager),
):
    require_tutee_access(user, tutee_id)
    return {"worksheets": [asdict(w) for w in manager.list_worksheets(tutee_id)]}


@router.post("/{tutee_id}", status_code=201)
async def create_worksheet(
    tutee_id: str,
    body: WorksheetRequest,
    admin: dict = Depends(get_admin_user),
    manager: WorksheetManager = Depends(get_worksheet_manager),
):
    return asdict(manager.create_worksheet(tutee_id=tutee_id, **body.model_dump()))


@router.patch("/entry/{worksheet_id}")
async def update_worksheet(
    worksheet_id: str,
    body: WorksheetUpdateRequest,
    admin: dict = Depends(get_admin_user),
    manager: WorksheetManager = Depends(get_worksheet_manager),
):
    worksheet = manager.update_worksheet(worksheet_id, **body.model_dump(exclude_none=True))
    if worksheet is None:
        raise HTTPException(status_code=404, detail="Worksheet not found")
    return asdict(worksheet)


@router.delete("/entry/{worksheet_id}")
async def delete_worksheet(
    worksheet_id: str,
    admin: dict = Depends(get_admin_user),
    manager: WorksheetManager = Depends(get_worksheet_manager),
):
    manager.delete_worksheet(worksheet_id)
    return {"status": "deleted", "worksheet_id": worksheet_id}
