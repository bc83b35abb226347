"""
Diagnostic step API endpoints
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, status
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
from backend.services.step_service import StepService

router = APIRouter()


class StepFields(BaseModel):
    description: Optional[str] = None
    estimated_time: Optional[int] = Field(None, ge=1)
    hint: Optional[str] = None
    success_text: Optional[str] = None
    warning_text: Optional[str] = None
    remote_id: Optional[int] = None
    tv_interface_id: Optional[int] = None
    metadata: Optional[Dict[str, Any]] = None


class StepCreate(StepFields):
    """Schema for creating a step; step_number defaults to the end of the problem"""

    problem_id: int
    device_id: Optional[int] = None
    step_number: Optional[int] = Field(None, ge=1)
    title: str = Field(..., min_length=1, max_length=500)
    instruction: str = Field(..., min_length=1)


class StepUpdate(StepFields):
    """Schema for updating a step"""

    problem_id: Optional[int] = None
    device_id: Optional[int] = None
    step_number: Optional[int] = Field(None, ge=1)
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    instruction: Optional[str] = Field(None, min_length=1)


class StepBody(StepFields):
    """Step content for insert; the problem and number come from the request"""

    title: str = Field(..., min_length=1, max_length=500)
    instruction: str = Field(..., min_length=1)


class StepInsert(BaseModel):
    problem_id: int
    after_step_number: int = Field(..., ge=0)
    step_data: StepBody


class StepReorder(BaseModel):
    problem_id: int
    stepIds: List[int] = Field(..., min_length=1)


class StepDuplicate(BaseModel):
    target_problem_id: Optional[int] = None


@router.get("/steps")
async def list_steps(
    params: ListParams = Depends(),
    search: Optional[str] = None,
    problem_id: Optional[int] = None,
    device_id: Optional[int] = None,
    is_active: Optional[bool] = None,
    admin: bool = False,
    db: Session = Depends(get_db),
):
    filters = {
        "search": search,
        "problem_id": problem_id,
        "device_id": device_id,
        "is_active": is_active,
        "include_inactive": admin,
    }
    return list_response(StepService(db), filters, params)


@router.get("/steps/search")
async def search_steps(
    q: str = "",
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    steps = StepService(db).search(q, limit=limit, offset=offset)
    return success(serialize(steps), query=q.strip())


@router.get("/steps/stats")
async def step_stats(db: Session = Depends(get_db)):
    return success(StepService(db).stats())


@router.get("/steps/export")
async def export_steps(
    export_format: str = Query("json", alias="format"), db: Session = Depends(get_db)
):
    return export_response(serialize(StepService(db).export()), export_format)


@router.get("/steps/problem/{problem_id}")
async def steps_by_problem(
    problem_id: int, is_active: Optional[bool] = True, db: Session = Depends(get_db)
):
    """All steps of one problem in step_number order"""
    return success(serialize(StepService(db).by_problem(problem_id, is_active)))


@router.get("/steps/problem/{problem_id}/validate")
async def validate_step_order(problem_id: int, db: Session = Depends(get_db)):
    """Report gaps and duplicates in a problem's step numbering"""
    return success(StepService(db).validate_order(problem_id))


@router.post("/steps/problem/{problem_id}/fix-numbering")
async def fix_step_numbering(problem_id: int, db: Session = Depends(get_db)):
    steps = StepService(db).fix_numbering(problem_id)
    return success(serialize(steps), "Step numbering fixed")


@router.put("/steps/reorder")
async def reorder_steps(body: StepReorder, db: Session = Depends(get_db)):
    """Renumber a problem's steps following stepIds"""
    steps = StepService(db).reorder(body.stepIds, scope={"problem_id": body.problem_id})
    return success(serialize(steps), "Step order updated")


@router.post("/steps/insert", status_code=status.HTTP_201_CREATED)
async def insert_step(body: StepInsert, db: Session = Depends(get_db)):
    """Insert a step after after_step_number, shifting the later steps down"""
    step = StepService(db).insert(
        body.problem_id,
        body.after_step_number,
        body.step_data.model_dump(exclude_none=True),
    )
    return success(step.to_dict(), "Step inserted successfully")


@router.put("/steps/bulk")
async def bulk_update_steps(body: BulkUpdateRequest, db: Session = Depends(get_db)):
    steps = StepService(db).bulk_update(
        (item.id, StepUpdate(**item.data).model_dump(exclude_unset=True))
        for item in body.updates
    )
    return bulk_response(steps, "steps")


@router.get("/steps/{step_id}")
async def get_step(step_id: int, include_stats: bool = False, db: Session = Depends(get_db)):
    service = StepService(db)
    step = service.get(step_id)
    data = step.to_dict()
    if include_stats:
        data.update(service.position(step))
    return success(data)


@router.get("/steps/{step_id}/next")
async def next_step(step_id: int, db: Session = Depends(get_db)):
    return success(StepService(db).next_step(step_id).to_dict())


@router.get("/steps/{step_id}/previous")
async def previous_step(step_id: int, db: Session = Depends(get_db)):
    return success(StepService(db).previous_step(step_id).to_dict())


@router.post("/steps", status_code=status.HTTP_201_CREATED)
async def create_step(body: StepCreate, db: Session = Depends(get_db)):
    step = StepService(db).create(body.model_dump(exclude_none=True))
    return success(step.to_dict(), "Step created successfully")


@router.post("/steps/{step_id}/duplicate", status_code=status.HTTP_201_CREATED)
async def duplicate_step(
    step_id: int, body: Optional[StepDuplicate] = None, db: Session = Depends(get_db)
):
    """Copy a step to the end of its problem or of target_problem_id"""
    target = body.target_problem_id if body else None
    step = StepService(db).duplicate(step_id, target)
    return success(step.to_dict(), "Step duplicated successfully")


@router.put("/steps/{step_id}")
async def update_step(step_id: int, body: StepUpdate, db: Session = Depends(get_db)):
    step = StepService(db).update(step_id, body.model_dump(exclude_unset=True))
    return success(step.to_dict(), "Step updated successfully")


@router.delete("/steps/{step_id}")
async def delete_step(
    step_id: int, force: bool = False, reorder: bool = False, db: Session = Depends(get_db)
):
    """Delete a step; reorder=true renumbers the remaining steps of its problem"""
    result = StepService(db).delete_step(step_id, force=force, reorder=reorder)
    return delete_response(result, force, "Step")


@router.post("/steps/{step_id}/restore")
async def restore_step(step_id: int, db: Session = Depends(get_db)):
    step = StepService(db).restore(step_id)
    return success(step.to_dict(), "Step restored successfully")
