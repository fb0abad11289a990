"""
Tutoring portal: tutees, PIN login and students
"""
import os
from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from lib.auth import (
    ROLE_ADMIN,
    create_portal_token,
    get_admin_user,
    get_portal_user,
    require_tutee_access,
)
from lib.logger import get_logger
from dependencies import get_pin_tracker, get_tutee_manager

from explorer_portal.pin_guard import PinAttemptTracker, PinVerification
from explorer_portal.tutees import TuteeManager

logger = get_logger("backend.routers.tutees")

router = APIRouter(prefix="/api", tags=["tutees"])


class PinRequest(BaseModel):
    pin: str


class TuteeCreateRequest(BaseModel):
    id: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1)
    pin: str
    description: Optional[str] = None
    icon: Optional[str] = None
    color_primary: Optional[str] = None
    color_secondary: Optional[str] = None
    color_gradient: Optional[str] = None


class TuteeInfoRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None


class ColorsRequest(BaseModel):
    primary: Optional[str] = None
    secondary: Optional[str] = None
    gradient: Optional[str] = None


class IconRequest(BaseModel):
    icon: str = Field(..., min_length=1)


class PinChangeRequest(BaseModel):
    current_pin: str
    new_pin: str


class StudentRequest(BaseModel):
    student_name: str


class MoveRequest(BaseModel):
    direction: str


def _client_key(request: Request, subject: str) -> str:
    host = request.client.host if request.client else "unknown"
    return f"{subject}:{host}"


def _pin_response(result: PinVerification, token: Optional[str] = None) -> dict:
    if result.locked:
        raise HTTPException(status_code=429, detail=result.message)
    if not result.verified:
        raise HTTPException(status_code=401, detail=result.message)
    return {
        "verified": True,
        "token": token,
        "message": result.message,
    }


def _found(value, what: str = "Tutee"):
    if value is None:
        raise HTTPException(status_code=404, detail=f"{what} not found")
    return value


# ==================== Public ====================

@router.get("/tutees")
async def list_tutees(manager: TuteeManager = Depends(get_tutee_manager)):
    """Tutee cards for the landing page (no PINs)."""
    return {"tutees": [t.public_dict() for t in manager.list_tutees()]}


@router.get("/tutees/{tutee_id}")
async def get_tutee(tutee_id: str, manager: TuteeManager = Depends(get_tutee_manager)):
    return _found(manager.get_tutee(tutee_id)).public_dict()


@router.post("/tutees/{tutee_id}/verify-pin")
async def verify_pin(
    tutee_id: str,
    body: PinRequest,
    request: Request,
    manager: TuteeManager = Depends(get_tutee_manager),
    tracker: PinAttemptTracker = Depends(get_pin_tracker),
):
    tutee = _found(manager.get_tutee(tutee_id))
    result = tracker.verify(_client_key(request, tutee_id), tutee.pin, body.pin)
    token = create_portal_token(tutee_id) if result.verified else None
    if result.verified:
        logger.success(f"Tutee {tutee_id} signed in")
    return _pin_response(result, token)


@router.post("/admin/login")
async def admin_login(
    body: PinRequest,
    request: Request,
    tracker: PinAttemptTracker = Depends(get_pin_tracker),
):
    admin_pin = os.getenv("ADMIN_PIN")
    if not admin_pin:
        raise HTTPException(status_code=503, detail="Admin PIN is not configured")

    result = tracker.verify(_client_key(request, "admin"), admin_pin, body.pin)
    token = create_portal_token("admin", role=ROLE_ADMIN) if result.verified else None
    return _pin_response(result, token)


# ==================== Admin ====================

@router.post("/tutees", status_code=201)
async def create_tutee(
    body: TuteeCreateRequest,
    admin: dict = Depends(get_admin_user),
    manager: TuteeManager = Depends(get_tutee_manager),
):
    if manager.get_tutee(body.id) is not None:
        raise HTTPException(status_code=409, detail="A tutee with this id already exists")
    tutee = manager.create_tutee(
        tutee_id=body.id,
        name=body.name,
        pin=body.pin,
        description=body.description,
        icon=body.icon,
        color_primary=body.color_primary,
        color_secondary=body.color_secondary,
        color_gradient=body.color_gradient,
    )
    return tutee.public_dict()


@router.put("/tutees/{tutee_id}")
async def update_tutee_info(
    tutee_id: str,
    body: TuteeInfoRequest,
    admin: dict = Depends(get_admin_user),
    manager: TuteeManager = Depends(get_tutee_manager),
):
    return _found(manager.update_info(tutee_id, body.name, body.description)).public_dict()


@router.delete("/tutees/{tutee_id}")
async def delete_tutee(
    tutee_id: str,
    admin: dict = Depends(get_admin_user),
    manager: TuteeManager = Depends(get_tutee_manager),
):
    _found(manager.get_tutee(tutee_id))
    manager.delete_tutee(tutee_id)
    return {"status": "deleted", "tutee_id": tutee_id}


# ==================== Self-service ====================

@router.put("/tutees/{tutee_id}/colors")
async def update_colors(
    tutee_id: str,
    body: ColorsRequest,
    user: dict = Depends(get_portal_user),
    manager: TuteeManager = Depends(get_tutee_manager),
):
    require_tutee_access(user, tutee_id)
    return _found(manager.update_colors(tutee_id, body.primary, body.secondary, body.gradient)).public_dict()


@router.put("/tutees/{tutee_id}/icon")
async def update_icon(
    tutee_id: str,
    body: IconRequest,
    user: dict = Depends(get_portal_user),
    manager: TuteeManager = Depends(get_tutee_manager),
):
    require_tutee_access(user, tutee_id)
    return _found(manager.update_icon(tutee_id, body.icon)).public_dict()


@router.put("/tutees/{tutee_id}/pin")
async def change_pin(
    tutee_id: str,
    body: PinChangeRequest,
    user: dict = Depends(get_portal_user),
    manager: TuteeManager = Depends(get_tutee_manager),
):
    require_tutee_access(user, tutee_id)
    _found(manager.update_pin(tutee_id, body.current_pin, body.new_pin))
    return {"status": "ok", "message": "PIN updated"}


# ==================== Students ====================

@router.get("/tutees/{tutee_id}/students")
async def list_students(
    tutee_id: str,
    user: dict = Depends(get_portal_user),
    manager: TuteeManager = Depends(get_tutee_manager),
):
    require_tutee_access(user, tutee_id)
    return {"students": [asdict(s) for s in manager.list_students(tutee_id)]}


@router.post("/tutees/{tutee_id}/students", status_code=201)
async def add_student(
    tutee_id: str,
    body: StudentRequest,
    admin: dict = Depends(get_admin_user),
    manager: TuteeManager = Depends(get_tutee_manager),
):
    _found(manager.get_tutee(tutee_id))
    return asdict(manager.create_student(tutee_id, body.student_name))


@router.put("/tutees/{tutee_id}/students/{student_id}")
async def rename_student(
    tutee_id: str,
    student_id: str,
    body: StudentRequest,
    admin: dict = Depends(get_admin_user),
    manager: TuteeManager = Depends(get_tutee_manager),
):
    return asdict(_found(manager.rename_student(tutee_id, student_id, body.student_name), "Student"))


@router.delete("/tutees/{tutee_id}/students/{student_id}")
async def delete_student(
    tutee_id: str,
    student_id: str,
    admin: dict = Depends(get_admin_user),
    manager: TuteeManager = Depends(get_tutee_manager),
):
    if not manager.delete_student(tutee_id, student_id):
        raise HTTPException(status_code=404, detail="Student not found")
    return {"status": "deleted", "student_id": student_id}


@router.post("/tutees/{tutee_id}/students/{student_id}/move")
async def move_student(
    tutee_id: str,
    student_id: str,
    body: MoveRequest,
    admin: dict = Depends(get_admin_user),
    manager: TuteeManager = Depends(get_tutee_manager),
):
    _found(manager.get_student(tutee_id, student_id), "Student")
    students = manager.move_student(tutee_id, student_id, body.direction)
    return {"students": [asdict(s) for s in students]}
