"""
Device management API endpoints
"""

from typing import Any, Dict, List, Literal, Optional

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
from backend.services.device_service import DeviceService
from backend.services.problem_service import ProblemService

router = APIRouter()

DeviceStatus = Literal["active", "inactive", "maintenance"]


class DeviceCreate(BaseModel):
    """Schema for creating a new device"""

    name: str = Field(..., min_length=1, max_length=255)
    brand: str = Field(..., min_length=1, max_length=255)
    model: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    image_url: Optional[str] = Field(None, max_length=500)
    logo_url: Optional[str] = Field(None, max_length=500)
    color: Optional[str] = Field(None, max_length=100)
    order_index: Optional[int] = Field(None, ge=0)
    status: DeviceStatus = "active"
    metadata: Optional[Dict[str, Any]] = None


class DeviceUpdate(BaseModel):
    """Schema for updating a device"""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    brand: Optional[str] = Field(None, min_length=1, max_length=255)
    model: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    image_url: Optional[str] = Field(None, max_length=500)
    logo_url: Optional[str] = Field(None, max_length=500)
    color: Optional[str] = Field(None, max_length=100)
    order_index: Optional[int] = Field(None, ge=0)
    status: Optional[DeviceStatus] = None
    metadata: Optional[Dict[str, Any]] = None


class DeviceReorder(BaseModel):
    deviceIds: List[int] = Field(..., min_length=1)


@router.get("/devices")
async def list_devices(
    params: ListParams = Depends(),
    search: Optional[str] = None,
    device_status: Optional[DeviceStatus] = Query(None, alias="status"),
    is_active: Optional[bool] = None,
    include_stats: bool = False,
    admin: bool = False,
    db: Session = Depends(get_db),
):
    """List devices, paginated; admin=true also returns archived devices"""
    service = DeviceService(db)
    filters = {
        "search": search,
        "status": device_status,
        "is_active": is_active,
        "include_inactive": admin,
    }
    hook = service.with_stats if include_stats or admin else None
    return list_response(service, filters, params, rows_hook=hook)


@router.get("/devices/search")
async def search_devices(
    q: str = "",
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    """Search active devices by name, brand, model or description"""
    devices = DeviceService(db).search(q, limit=limit, offset=offset)
    return success(serialize(devices), query=q.strip())


@router.get("/devices/popular")
async def popular_devices(limit: int = Query(10, ge=1), db: Session = Depends(get_db)):
    """Devices with the most diagnostic sessions"""
    return success(DeviceService(db).popular(limit))


@router.get("/devices/stats")
async def device_stats(db: Session = Depends(get_db)):
    return success(DeviceService(db).stats())


@router.get("/devices/export")
async def export_devices(
    export_format: str = Query("json", alias="format"),
    include_problems: bool = False,
    db: Session = Depends(get_db),
):
    """Export active devices, optionally with their active problems"""
    devices = DeviceService(db).export()
    items = serialize(devices)
    if include_problems:
        problems = ProblemService(db)
        for item in items:
            rows, _total, _limit = problems.find_all(
                {"device_id": item["id"]}, limit=100
            )
            item["problems"] = serialize(rows)
    return export_response(items, export_format)


@router.put("/devices/reorder")
async def reorder_devices(body: DeviceReorder, db: Session = Depends(get_db)):
    devices = DeviceService(db).reorder(body.deviceIds)
    return success(serialize(devices), "Device order updated")


@router.put("/devices/bulk")
async def bulk_update_devices(body: BulkUpdateRequest, db: Session = Depends(get_db)):
    """Apply several device updates in one transaction"""
    devices = DeviceService(db).bulk_update(
        (item.id, DeviceUpdate(**item.data).model_dump(exclude_unset=True))
        for item in body.updates
    )
    return bulk_response(devices, "devices")


@router.get("/devices/{device_id}")
async def get_device(device_id: int, include_stats: bool = False, db: Session = Depends(get_db)):
    service = DeviceService(db)
    if include_stats:
        return success(service.get_with_stats(device_id))
    return success(service.get(device_id).to_dict())


@router.get("/devices/{device_id}/can-delete")
async def can_delete_device(device_id: int, db: Session = Depends(get_db)):
    return success(DeviceService(db).can_delete(device_id))


@router.post("/devices", status_code=status.HTTP_201_CREATED)
async def create_device(body: DeviceCreate, db: Session = Depends(get_db)):
    """Create a new device; an active device with the same name yields 409"""
    device = DeviceService(db).create(body.model_dump(exclude_none=True))
    return success(device.to_dict(), "Device created successfully")


@router.put("/devices/{device_id}")
async def update_device(device_id: int, body: DeviceUpdate, db: Session = Depends(get_db)):
    device = DeviceService(db).update(device_id, body.model_dump(exclude_unset=True))
    return success(device.to_dict(), "Device updated successfully")


@router.delete("/devices/{device_id}")
async def delete_device(device_id: int, force: bool = False, db: Session = Depends(get_db)):
    """Archive a device, or remove it with its problems and steps when force=true"""
    result = DeviceService(db).delete(device_id, force=force)
    return delete_response(result, force, "Device")


@router.post("/devices/{device_id}/restore")
async def restore_device(device_id: int, db: Session = Depends(get_db)):
    device = DeviceService(db).restore(device_id)
    return success(device.to_dict(), "Device restored successfully")
