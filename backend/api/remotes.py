"""
Remote control API endpoints.  Remote layouts are not managed through the API
yet: listing returns no rows and every write answers 501.
"""

from fastapi import APIRouter

from backend.api.envelope import success
from backend.services.errors import NotFoundError, NotImplementedFeatureError

router = APIRouter()

_NOT_IMPLEMENTED = "Remote management is not implemented yet"


@router.get("/remotes")
async def list_remotes():
    return success([], "Remote management is not implemented yet")


@router.get("/remotes/{remote_id}")
async def get_remote(remote_id: int):
    raise NotFoundError("Remote not found", remoteId=remote_id)


@router.post("/remotes")
async def create_remote():
    raise NotImplementedFeatureError(_NOT_IMPLEMENTED)


@router.put("/remotes/{remote_id}")
async def update_remote(remote_id: int):
    raise NotImplementedFeatureError(_NOT_IMPLEMENTED, remoteId=remote_id)


@router.delete("/remotes/{remote_id}")
async def delete_remote(remote_id: int):
    raise NotImplementedFeatureError(_NOT_IMPLEMENTED, remoteId=remote_id)
