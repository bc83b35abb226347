"""
TV interface API endpoints, including the marks drawn on each interface
"""

from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, Depends, Query, status
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
from backend.persistence.db import get_db
from backend.services.tv_interface_service import TVInterfaceMarkService, TVInterfaceService

router = APIRouter()

InterfaceType = Literal[
    "home", "settings", "channels", "apps", "guide", "no-signal", "error", "custom"
]
MarkType = Literal["point", "zone", "area"]


class TVInterfaceCreate(BaseModel):
    """Schema for creating a TV interface"""

    device_id: int
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    type: InterfaceType = "custom"
    screenshot_url: Optional[str] = Field(None, max_length=500)
    screenshot_data: Optional[str] = None
    clickable_areas: List[Dict[str, Any]] = Field(default_factory=list)
    highlight_areas: List[Dict[str, Any]] = Field(default_factory=list)


class TVInterfaceUpdate(BaseModel):
    """Schema for updating a TV interface"""

    device_id: Optional[int] = None
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    type: Optional[InterfaceType] = None
    screenshot_url: Optional[str] = Field(None, max_length=500)
    screenshot_data: Optional[str] = None
    clickable_areas: Optional[List[Dict[str, Any]]] = None
    highlight_areas: Optional[List[Dict[str, Any]]] = None


class TVInterfaceDuplicate(BaseModel):
    name: Optional[str] = Field(None, max_length=255)


class MarkCreate(BaseModel):
    """Schema for creating a mark on an interface"""

    step_id: Optional[int] = None
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    mark_type: MarkType = "point"
    shape: str = Field("circle", max_length=20)
    position: Dict[str, float]
    size: Optional[Dict[str, float]] = None
    color: str = Field("#ff0000", max_length=50)
    display_order: Optional[int] = Field(None, ge=0)


class MarkUpdate(BaseModel):
    step_id: Optional[int] = None
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    mark_type: Optional[MarkType] = None
    shape: Optional[str] = Field(None, max_length=20)
    position: Optional[Dict[str, float]] = None
    size: Optional[Dict[str, float]] = None
    color: Optional[str] = Field(None, max_length=50)
    display_order: Optional[int] = Field(None, ge=0)


class MarkReorder(BaseModel):
    markIds: List[int] = Field(..., min_length=1)


@router.get("/tv-interfaces")
async def list_tv_interfaces(
    params: ListParams = Depends(),
    search: Optional[str] = None,
    device_id: Optional[int] = None,
    interface_type: Optional[InterfaceType] = Query(None, alias="type"),
    is_active: Optional[bool] = None,
    admin: bool = False,
    db: Session = Depends(get_db),
):
    filters = {
        "search": search,
        "device_id": device_id,
        "type": interface_type,
        "is_active": is_active,
        "include_inactive": admin,
    }
    return list_response(TVInterfaceService(db), filters, params)


@router.get("/tv-interfaces/stats")
async def tv_interface_stats(db: Session = Depends(get_db)):
    return success(TVInterfaceService(db).stats())


@router.get("/tv-interfaces/device/{device_id}")
async def tv_interfaces_by_device(
    device_id: int, include_inactive: bool = False, db: Session = Depends(get_db)
):
    """All TV interfaces of one device ordered by name"""
    interfaces = TVInterfaceService(db).by_device(device_id, include_inactive)
    return success(serialize(interfaces))


@router.get("/tv-interfaces/{interface_id}")
async def get_tv_interface(interface_id: int, db: Session = Depends(get_db)):
    return success(TVInterfaceService(db).get(interface_id).to_dict())


@router.post("/tv-interfaces", status_code=status.HTTP_201_CREATED)
async def create_tv_interface(body: TVInterfaceCreate, db: Session = Depends(get_db)):
    interface = TVInterfaceService(db).create(body.model_dump(exclude_none=True))
    return success(interface.to_dict(), "TV interface created successfully")


@router.put("/tv-interfaces/{interface_id}")
async def update_tv_interface(
    interface_id: int, body: TVInterfaceUpdate, db: Session = Depends(get_db)
):
    interface = TVInterfaceService(db).update(
        interface_id, body.model_dump(exclude_unset=True)
    )
    return success(interface.to_dict(), "TV interface updated successfully")


@router.delete("/tv-interfaces/{interface_id}")
async def delete_tv_interface(
    interface_id: int, force: bool = False, db: Session = Depends(get_db)
):
    result = TVInterfaceService(db).delete(interface_id, force=force)
    return delete_response(result, force, "TV interface")


@router.post("/tv-interfaces/{interface_id}/restore")
async def restore_tv_interface(interface_id: int, db: Session = Depends(get_db)):
    interface = TVInterfaceService(db).restore(interface_id)
    return success(interface.to_dict(), "TV interface restored successfully")


@router.patch("/tv-interfaces/{interface_id}/toggle")
async def toggle_tv_interface(interface_id: int, db: Session = Depends(get_db)):
    """Flip the interface between active and archived"""
    interface = TVInterfaceService(db).toggle(interface_id)
    state = "activated" if interface.is_active else "deactivated"
    return success(interface.to_dict(), f"TV interface {state}")


@router.post("/tv-interfaces/{interface_id}/duplicate", status_code=status.HTTP_201_CREATED)
async def duplicate_tv_interface(
    interface_id: int,
    body: Optional[TVInterfaceDuplicate] = None,
    db: Session = Depends(get_db),
):
    """Copy an interface and its marks, named "<name> (copy)" unless a name is given"""
    interface = TVInterfaceService(db).duplicate(interface_id, body.name if body else None)
    return success(interface.to_dict(), "TV interface duplicated successfully")


@router.get("/tv-interfaces/{interface_id}/export")
async def export_tv_interface(
    interface_id: int,
    export_format: str = Query("json", alias="format"),
    db: Session = Depends(get_db),
):
    data = TVInterfaceService(db).export_one(interface_id)
    return export_response([data], export_format)


# ---- marks ------------------------------------------------------------


@router.get("/tv-interfaces/{interface_id}/marks")
async def list_marks(interface_id: int, db: Session = Depends(get_db)):
    TVInterfaceService(db).get(interface_id)
    return success(serialize(TVInterfaceMarkService(db).for_interface(interface_id)))


@router.post("/tv-interfaces/{interface_id}/marks", status_code=status.HTTP_201_CREATED)
async def create_mark(interface_id: int, body: MarkCreate, db: Session = Depends(get_db)):
    data = {**body.model_dump(exclude_none=True), "tv_interface_id": interface_id}
    mark = TVInterfaceMarkService(db).create(data)
    return success(mark.to_dict(), "Mark created successfully")


@router.put("/tv-interfaces/{interface_id}/marks/reorder")
async def reorder_marks(interface_id: int, body: MarkReorder, db: Session = Depends(get_db)):
    marks = TVInterfaceMarkService(db).reorder(
        body.markIds, scope={"tv_interface_id": interface_id}
    )
    return success(serialize(marks), "Mark order updated")


@router.get("/tv-interfaces/{interface_id}/marks/{mark_id}")
async def get_mark(interface_id: int, mark_id: int, db: Session = Depends(get_db)):
    return success(TVInterfaceMarkService(db).get_in(interface_id, mark_id).to_dict())


@router.put("/tv-interfaces/{interface_id}/marks/{mark_id}")
async def update_mark(
    interface_id: int, mark_id: int, body: MarkUpdate, db: Session = Depends(get_db)
):
    service = TVInterfaceMarkService(db)
    service.get_in(interface_id, mark_id)
    mark = service.update(mark_id, body.model_dump(exclude_unset=True))
    return success(mark.to_dict(), "Mark updated successfully")


@router.delete("/tv-interfaces/{interface_id}/marks/{mark_id}")
async def delete_mark(
    interface_id: int, mark_id: int, force: bool = False, db: Session = Depends(get_db)
):
    service = TVInterfaceMarkService(db)
    service.get_in(interface_id, mark_id)
    result = service.delete(mark_id, force=force)
    return delete_response(result, force, "Mark")
