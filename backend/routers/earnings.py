"""
Earnings admin endpoints: fee settings, sessions and monthly records
"""
from dataclasses import asdict
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from lib.auth import get_admin_user
from dependencies import get_earnings_manager, get_tutee_manager

from explorer_portal.earnings import CalculationType, EarningsManager
from explorer_portal.tutees import TuteeManager

router = APIRouter(prefix="/api/earnings", tags=["earnings"])


class SettingsRequest(BaseModel):
    message_template: str
    fee_per_hour: float = Field(..., ge=0)
    fee_per_session: Optional[float] = Field(default=None, ge=0)
    calculation_type: CalculationType = CalculationType.HOURLY


class SettingsUpdateRequest(BaseModel):
    message_template: Optional[str] = None
    fee_per_hour: Optional[float] = Field(default=None, ge=0)
    fee_per_session: Optional[float] = Field(default=None, ge=0)
    calculation_type: Optional[CalculationType] = None


class SessionRequest(BaseModel):
    session_date: date
    start_time: str
    end_time: str


class SessionUpdateRequest(BaseModel):
    session_date: Optional[date] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    duration_hours: Optional[float] = None
    amount: Optional[float] = None


class RecordRequest(BaseModel):
    year: int = Field(..., ge=2000, le=2100)
    month: int = Field(..., ge=1, le=12)
    tutee_name: Optional[str] = None


class RecalculateRequest(BaseModel):
    fee: float = Field(..., ge=0)
    calculation_type: CalculationType = CalculationType.HOURLY
    start_date: Optional[date] = None
    end_date: Optional[date] = None


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


# ==================== Settings ====================

@router.get("/{tutee_id}/settings")
async def get_settings(
    tutee_id: str,
    admin: dict = Depends(get_admin_user),
    manager: EarningsManager = Depends(get_earnings_manager),
):
    settings = manager.get_settings(tutee_id)
    if settings is None:
        raise HTTPException(status_code=404, detail="No earnings settings for this tutee")
    return asdict(settings)


@router.put("/{tutee_id}/settings")
async def save_settings(
    tutee_id: str,
    body: SettingsRequest,
    admin: dict = Depends(get_admin_user),
    manager: EarningsManager = Depends(get_earnings_manager),
):
    return asdict(manager.upsert_settings(
        tutee_id,
        body.message_template,
        body.fee_per_hour,
        body.fee_per_session,
        body.calculation_type,
    ))


@router.patch("/settings/{settings_id}")
async def update_settings(
    settings_id: str,
    body: SettingsUpdateRequest,
    admin: dict = Depends(get_admin_user),
    manager: EarningsManager = Depends(get_earnings_manager),
):
    settings = manager.update_settings(settings_id, **body.model_dump(exclude_none=True))
    if settings is None:
        raise HTTPException(status_code=404, detail="Settings not found")
    return asdict(settings)


# ==================== Sessions ====================

@router.get("/{tutee_id}/sessions")
async def list_sessions(
    tutee_id: str,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    admin: dict = Depends(get_admin_user),
    manager: EarningsManager = Depends(get_earnings_manager),
):
    sessions = manager.list_sessions(tutee_id, _iso(start_date), _iso(end_date))
    return {"sessions": [asdict(s) for s in sessions]}


@router.post("/{tutee_id}/sessions", status_code=201)
async def record_session(
    tutee_id: str,
    body: SessionRequest,
    admin: dict = Depends(get_admin_user),
    manager: EarningsManager = Depends(get_earnings_manager),
):
    """Create a session priced from the tutee's settings."""
    return asdict(manager.record_session(tutee_id, body.session_date, body.start_time, body.end_time))


@router.patch("/sessions/{session_id}")
async def update_session(
    session_id: str,
    body: SessionUpdateRequest,
    admin: dict = Depends(get_admin_user),
    manager: EarningsManager = Depends(get_earnings_manager),
):
    session = manager.update_session(session_id, **body.model_dump(exclude_none=True))
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return asdict(session)


@router.delete("/sessions/{session_id}")
async def delete_session(
    session_id: str,
    admin: dict = Depends(get_admin_user),
    manager: EarningsManager = Depends(get_earnings_manager),
):
    manager.delete_session(session_id)
    return {"status": "deleted", "session_id": session_id}


@router.post("/{tutee_id}/sessions/recalculate")
async def recalculate(
    tutee_id: str,
    body: RecalculateRequest,
    admin: dict = Depends(get_admin_user),
    manager: EarningsManager = Depends(get_earnings_manager),
):
    updated = manager.recalculate_session_amounts(
        tutee_id, body.fee, body.calculation_type, _iso(body.start_date), _iso(body.end_date)
    )
    return {"updated": updated}


@router.post("/sync-booked")
async def sync_booked(
    admin: dict = Depends(get_admin_user),
    manager: EarningsManager = Depends(get_earnings_manager),
):
    return {"created": manager.sync_booked_slots()}


# ==================== Records ====================

@router.get("/{tutee_id}/records")
async def list_records(
    tutee_id: str,
    admin: dict = Depends(get_admin_user),
    manager: EarningsManager = Depends(get_earnings_manager),
):
    return {"records": [asdict(r) for r in manager.list_records(tutee_id)]}


@router.get("/{tutee_id}/records/{year}/{month}")
async def get_record(
    tutee_id: str,
    year: int,
    month: int,
    admin: dict = Depends(get_admin_user),
    manager: EarningsManager = Depends(get_earnings_manager),
):
    record = manager.get_record(tutee_id, year, month)
    if record is None:
        raise HTTPException(status_code=404, detail="No record for this month")
    return asdict(record)


@router.post("/{tutee_id}/records")
async def build_record(
    tutee_id: str,
    body: RecordRequest,
    admin: dict = Depends(get_admin_user),
    manager: EarningsManager = Depends(get_earnings_manager),
    tutees: TuteeManager = Depends(get_tutee_manager),
):
    """Generate (or regenerate) the monthly invoice and message."""
    tutee_name = body.tutee_name
    if not tutee_name:
        tutee = tutees.get_tutee(tutee_id)
        if tutee is None:
            raise HTTPException(status_code=404, detail="Tutee not found")
        tutee_name = tutee.name
    return asdict(manager.build_monthly_record(tutee_id, body.year, body.month, tutee_name))


@router.get("/records/{year}/{month}")
async def records_for_month(
    year: int,
    month: int,
    admin: dict = Depends(get_admin_user),
    manager: EarningsManager = Depends(get_earnings_manager),
):
    return {"records": [asdict(r) for r in manager.list_records_for_month(year, month)]}
