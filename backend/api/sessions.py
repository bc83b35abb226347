"""
Diagnostic session API endpoints
"""

from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from backend.api.common import (
    ListParams,
    delete_response,
    export_response,
    list_response,
    serialize,
)
from backend.api.envelope import success
from backend.config import config
from backend.persistence.db import get_db
from backend.services.session_service import SessionService

router = APIRouter()


class SessionCreate(BaseModel):
    """Schema for starting a session"""

    device_id: int
    problem_id: int
    session_id: Optional[str] = Field(None, min_length=1, max_length=64)
    total_steps: Optional[int] = Field(None, ge=0)
    user_agent: Optional[str] = Field(None, max_length=500)
    ip_address: Optional[str] = Field(None, max_length=45)


class SessionUpdate(BaseModel):
    """Schema for progress updates"""

    completed_steps: Optional[int] = Field(None, ge=0)
    total_steps: Optional[int] = Field(None, ge=0)
    feedback: Optional[Dict[str, Any]] = None


class SessionComplete(BaseModel):
    success: bool
    completed_steps: Optional[int] = Field(None, ge=0)
    feedback: Optional[Dict[str, Any]] = None


def _session_filters(
    device_id: Optional[int] = None,
    problem_id: Optional[int] = None,
    success: Optional[bool] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
):
    return {
        "device_id": device_id,
        "problem_id": problem_id,
        "success": success,
        "date_from": date_from,
        "date_to": date_to,
    }


@router.get("/sessions")
async def list_sessions(
    params: ListParams = Depends(),
    filters: Dict[str, Any] = Depends(_session_filters),
    is_active: Optional[bool] = None,
    db: Session = Depends(get_db),
):
    return list_response(SessionService(db), {**filters, "is_active": is_active}, params)


@router.get("/sessions/active")
async def active_sessions(
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    """Sessions started but not completed yet"""
    return success(serialize(SessionService(db).active(limit, offset)))


@router.get("/sessions/stats")
async def session_stats(
    filters: Dict[str, Any] = Depends(_session_filters), db: Session = Depends(get_db)
):
    return success(SessionService(db).stats(filters))


@router.get("/sessions/popular-problems")
async def popular_problems(
    limit: int = Query(10, ge=1),
    timeframe: int = Query(30, ge=1),
    db: Session = Depends(get_db),
):
    """Problems with the most sessions in the last ``timeframe`` days"""
    return success(SessionService(db).popular_problems(limit, timeframe))


@router.get("/sessions/analytics")
async def time_analytics(
    period: str = "day", limit: int = Query(30, ge=1, le=365), db: Session = Depends(get_db)
):
    return success(SessionService(db).time_analytics(period, limit))


@router.get("/sessions/export")
async def export_sessions(
    export_format: str = Query("json", alias="format"),
    filters: Dict[str, Any] = Depends(_session_filters),
    db: Session = Depends(get_db),
):
    return export_response(serialize(SessionService(db).export_filtered(filters)), export_format)


@router.delete("/sessions/cleanup")
async def cleanup_sessions(
    days_to_keep: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
):
    """Permanently delete sessions older than days_to_keep (configured retention by default)"""
    days = days_to_keep or config.get_session_retention_days()
    removed = SessionService(db).cleanup(days)
    return success({"deleted": removed, "daysToKeep": days}, f"Removed {removed} old sessions")


@router.get("/sessions/{session_pk}")
async def get_session(session_pk: int, db: Session = Depends(get_db)):
    return success(SessionService(db).get(session_pk).to_dict())


@router.post("/sessions", status_code=status.HTTP_201_CREATED)
async def create_session(body: SessionCreate, request: Request, db: Session = Depends(get_db)):
    """Start a session; the client address and user agent are recorded when not given"""
    data = body.model_dump(exclude_none=True)
    data.setdefault("user_agent", request.headers.get("user-agent"))
    if request.client is not None:
        data.setdefault("ip_address", request.client.host)
    session = SessionService(db).create(data)
    return success(session.to_dict(), "Session started")


@router.put("/sessions/{session_pk}")
async def update_session(session_pk: int, body: SessionUpdate, db: Session = Depends(get_db)):
    session = SessionService(db).update(session_pk, body.model_dump(exclude_unset=True))
    return success(session.to_dict(), "Session updated")


@router.post("/sessions/{session_pk}/complete")
async def complete_session(
    session_pk: int, body: SessionComplete, db: Session = Depends(get_db)
):
    """Close a session and record the outcome"""
    session = SessionService(db).complete(
        session_pk, body.success, body.completed_steps, body.feedback
    )
    return success(session.to_dict(), "Session completed")


@router.delete("/sessions/{session_pk}")
async def delete_session(session_pk: int, force: bool = False, db: Session = Depends(get_db)):
    result = SessionService(db).delete(session_pk, force=force)
    return delete_response(result, force, "Session")


@router.post("/sessions/{session_pk}/restore")
async def restore_session(session_pk: int, db: Session = Depends(get_db)):
    session = SessionService(db).restore(session_pk)
    return success(session.to_dict(), "Session restored")
