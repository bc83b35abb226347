"""
Problem management API endpoints
"""

from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, Body, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from backend.api.common import (
    BulkUpdateRequest,
    ListParams,
    bulk_response,
    delete_response,
    export_response,
    list_response,
    serialize,
)
from backend.api.envelope import success
from backend.persistence.db import get_db
from backend.services.problem_service import ProblemService

router = APIRouter()

Category = Literal["critical", "moderate", "minor", "other"]
ProblemStatus = Literal["draft", "published", "archived"]
Difficulty = Literal["beginner", "intermediate", "advanced"]


class ProblemCreate(BaseModel):
    """Schema for creating a new problem"""

    device_id: int
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    category: Category = "other"
    icon: str = Field("HelpCircle", max_length=100)
    color: str = Field("from-blue-500 to-blue-600", max_length=100)
    tags: List[str] = Field(default_factory=list)
    priority: int = Field(1, ge=1, le=5)
    estimated_time: int = Field(5, ge=1)
    difficulty: Difficulty = "beginner"
    success_rate: float = Field(100, ge=0, le=100)
    status: ProblemStatus = "draft"
    order_index: Optional[int] = Field(None, ge=0)
    metadata: Optional[Dict[str, Any]] = None


class ProblemUpdate(BaseModel):
    """Schema for updating a problem"""

    device_id: Optional[int] = None
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = None
    category: Optional[Category] = None
    icon: Optional[str] = Field(None, max_length=100)
    color: Optional[str] = Field(None, max_length=100)
    tags: Optional[List[str]] = None
    priority: Optional[int] = Field(None, ge=1, le=5)
    estimated_time: Optional[int] = Field(None, ge=1)
    difficulty: Optional[Difficulty] = None
    success_rate: Optional[float] = Field(None, ge=0, le=100)
    status: Optional[ProblemStatus] = None
    order_index: Optional[int] = Field(None, ge=0)
    metadata: Optional[Dict[str, Any]] = None


class ProblemReorder(BaseModel):
    problemIds: List[int] = Field(..., min_length=1)
    device_id: Optional[int] = None


@router.get("/problems")
async def list_problems(
    params: ListParams = Depends(),
    search: Optional[str] = None,
    device_id: Optional[int] = None,
    category: Optional[Category] = None,
    problem_status: Optional[ProblemStatus] = Query(None, alias="status"),
    difficulty: Optional[Difficulty] = None,
    is_active: Optional[bool] = None,
    include_stats: bool = False,
    admin: bool = False,
    db: Session = Depends(get_db),
):
    """List problems, paginated and filterable by device, category and status"""
    service = ProblemService(db)
    filters = {
        "search": search,
        "device_id": device_id,
        "category": category,
        "status": problem_status,
        "difficulty": difficulty,
        "is_active": is_active,
        "include_inactive": admin,
    }
    hook = service.with_stats if include_stats else None
    return list_response(service, filters, params, rows_hook=hook)


@router.get("/problems/search")
async def search_problems(
    q: str = "",
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    problems = ProblemService(db).search(q, limit=limit, offset=offset)
    return success(serialize(problems), query=q.strip())


@router.get("/problems/popular")
async def popular_problems(limit: int = Query(10, ge=1), db: Session = Depends(get_db)):
    """Published problems ordered by completed sessions"""
    return success(serialize(ProblemService(db).popular(limit)))


@router.get("/problems/stats")
async def problem_stats(db: Session = Depends(get_db)):
    return success(ProblemService(db).stats())


@router.get("/problems/export")
async def export_problems(
    export_format: str = Query("json", alias="format"), db: Session = Depends(get_db)
):
    return export_response(serialize(ProblemService(db).export()), export_format)


@router.put("/problems/reorder")
async def reorder_problems(body: ProblemReorder, db: Session = Depends(get_db)):
    """Set order_index following problemIds, optionally within one device"""
    scope = {"device_id": body.device_id} if body.device_id is not None else None
    problems = ProblemService(db).reorder(body.problemIds, scope=scope)
    return success(serialize(problems), "Problem order updated")


@router.put("/problems/bulk")
async def bulk_update_problems(body: BulkUpdateRequest, db: Session = Depends(get_db)):
    problems = ProblemService(db).bulk_update(
        (item.id, ProblemUpdate(**item.data).model_dump(exclude_unset=True))
        for item in body.updates
    )
    return bulk_response(problems, "problems")


@router.get("/problems/{problem_id}")
async def get_problem(problem_id: int, include_stats: bool = False, db: Session = Depends(get_db)):
    service = ProblemService(db)
    problem = service.get(problem_id)
    if include_stats:
        return success(service.with_stats([problem])[0])
    return success(problem.to_dict())


@router.get("/problems/{problem_id}/can-delete")
async def can_delete_problem(problem_id: int, db: Session = Depends(get_db)):
    return success(ProblemService(db).can_delete(problem_id))


@router.post("/problems", status_code=status.HTTP_201_CREATED)
async def create_problem(body: ProblemCreate, db: Session = Depends(get_db)):
    """Create a problem for an active device"""
    data = body.model_dump(exclude_none=True)
    problem = ProblemService(db).create(data)
    return success(problem.to_dict(), "Problem created successfully")


@router.put("/problems/{problem_id}")
async def update_problem(problem_id: int, body: ProblemUpdate, db: Session = Depends(get_db)):
    problem = ProblemService(db).update(problem_id, body.model_dump(exclude_unset=True))
    return success(problem.to_dict(), "Problem updated successfully")


@router.delete("/problems/{problem_id}")
async def delete_problem(problem_id: int, force: bool = False, db: Session = Depends(get_db)):
    result = ProblemService(db).delete(problem_id, force=force)
    return delete_response(result, force, "Problem")


@router.post("/problems/{problem_id}/restore")
async def restore_problem(problem_id: int, db: Session = Depends(get_db)):
    problem = ProblemService(db).restore(problem_id)
    return success(problem.to_dict(), "Problem restored successfully")


test_router = APIRouter()


@test_router.post("/test/problems", status_code=status.HTTP_201_CREATED)
async def test_create_problem(
    body: Dict[str, Any] = Body(...), db: Session = Depends(get_db)
):
    """Create a problem from a raw body, checking only that the device is active"""
    problem = ProblemService(db).create_unchecked(body)
    return success(problem.to_dict(), "Test problem created successfully")
