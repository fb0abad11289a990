"""
Work progress tracker endpoints (admin only)
"""
from dataclasses import asdict
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from lib.auth import get_admin_user
from dependencies import get_work_progress_manager

from explorer_portal.work_progress import WorkProgressManager

router = APIRouter(
    prefix="/api/work-progress",
    tags=["work-progress"],
    dependencies=[Depends(get_admin_user)],
)


class SectionRequest(BaseModel):
    name: str
    display_order: int = 0


class SectionUpdateRequest(BaseModel):
    name: Optional[str] = None
    display_order: Optional[int] = None


class TaskRequest(BaseModel):
    section_id: str
    name: str
    display_order: int = 0


class TaskUpdateRequest(BaseModel):
    name: Optional[str] = None
    section_id: Optional[str] = None
    display_order: Optional[int] = None


class DailyEntryRequest(BaseModel):
    notes: Optional[str] = None
    mood_emoji: Optional[str] = None
    notifications_enabled: Optional[bool] = None


class TaskCountRequest(BaseModel):
    count: int = Field(ge=0)


class SubscribeRequest(BaseModel):
    device_fingerprint: str
    subscription: Dict[str, Any]


class DeviceRequest(BaseModel):
    device_fingerprint: str


def _found(item, what: str):
    if item is None:
        raise HTTPException(status_code=404, detail=f"{what} not found")
    return item


# ==================== Sections & tasks ====================

@router.get("/sections")
async def list_sections(manager: WorkProgressManager = Depends(get_work_progress_manager)):
    return {"sections": [asdict(s) for s in manager.list_sections()]}


@router.post("/sections", status_code=201)
async def create_section(body: SectionRequest, manager: WorkProgressManager = Depends(get_work_progress_manager)):
    return asdict(manager.create_section(body.name, body.display_order))


@router.patch("/sections/{section_id}")
async def update_section(
    section_id: str,
    body: SectionUpdateRequest,
    manager: WorkProgressManager = Depends(get_work_progress_manager),
):
    return asdict(_found(manager.update_section(section_id, **body.model_dump()), "Section"))


@router.delete("/sections/{section_id}")
async def delete_section(section_id: str, manager: WorkProgressManager = Depends(get_work_progress_manager)):
    manager.delete_section(section_id)
    return {"status": "deleted", "section_id": section_id}


@router.get("/tasks")
async def list_tasks(
    section_id: Optional[str] = None,
    manager: WorkProgressManager = Depends(get_work_progress_manager),
):
    return {"tasks": [asdict(t) for t in manager.list_tasks(section_id)]}


@router.post("/tasks", status_code=201)
async def create_task(body: TaskRequest, manager: WorkProgressManager = Depends(get_work_progress_manager)):
    return asdict(manager.create_task(body.section_id, body.name, body.display_order))


@router.patch("/tasks/{task_id}")
async def update_task(
    task_id: str,
    body: TaskUpdateRequest,
    manager: WorkProgressManager = Depends(get_work_progress_manager),
):
    return asdict(_found(manager.update_task(task_id, **body.model_dump()), "Task"))


@router.delete("/tasks/{task_id}")
async def delete_task(task_id: str, manager: WorkProgressManager = Depends(get_work_progress_manager)):
    manager.delete_task(task_id)
    return {"status": "deleted", "task_id": task_id}


# ==================== Daily entries ====================

@router.get("/entries")
async def list_entries(
    start_date: Optional[str] = Query(None),
    end_date: Optional[str] = Query(None),
    manager: WorkProgressManager = Depends(get_work_progress_manager),
):
    return {"entries": [e.to_dict() for e in manager.list_daily_entries(start_date, end_date)]}


@router.get("/entries/{entry_date}")
async def get_entry(entry_date: str, manager: WorkProgressManager = Depends(get_work_progress_manager)):
    return _found(manager.get_daily_entry(entry_date), "Entry").to_dict()


@router.put("/entries/{entry_date}")
async def save_entry(
    entry_date: str,
    body: DailyEntryRequest,
    manager: WorkProgressManager = Depends(get_work_progress_manager),
):
    return manager.save_daily_entry(entry_date, **body.model_dump()).to_dict()


@router.put("/entries/{entry_date}/tasks/{task_id}")
async def set_task_count(
    entry_date: str,
    task_id: str,
    body: TaskCountRequest,
    manager: WorkProgressManager = Depends(get_work_progress_manager),
):
    return asdict(manager.set_task_count(entry_date, task_id, body.count))


@router.get("/streak")
async def get_streak(manager: WorkProgressManager = Depends(get_work_progress_manager)):
    return asdict(manager.get_streak())


# ==================== Daily reminder subscription ====================

@router.post("/notifications/subscribe")
async def subscribe(body: SubscribeRequest, manager: WorkProgressManager = Depends(get_work_progress_manager)):
    manager.subscribe_notifications(body.device_fingerprint, body.subscription)
    return {"enabled": True}


@router.post("/notifications/unsubscribe")
async def unsubscribe(body: DeviceRequest, manager: WorkProgressManager = Depends(get_work_progress_manager)):
    manager.unsubscribe_notifications(body.device_fingerprint)
    return {"enabled": False}


@router.get("/notifications/status")
async def notification_status(
    device_fingerprint: str,
    manager: WorkProgressManager = Depends(get_work_progress_manager),
):
    return {"enabled": manager.notifications_enabled(device_fingerprint)}
