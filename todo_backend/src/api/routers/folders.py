from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Response, status

from ..auth import Identity, get_optional_identity, get_store, require_identity
from ..db import SQLFolderRepository
from ..folders import FolderService
from ..lifecycle import Clock, get_clock
from ..schemas import FolderCreate, FolderOut, FolderUpdate
from ..settings import get_settings
from ..store import Store

router = APIRouter(
    prefix="/api/v1/folders",
    tags=["folders"],
)


def _service(identity: Identity, store: Store, now: Clock) -> FolderService:
    return FolderService(
        SQLFolderRepository(store, identity.user_id),
        default_color=get_settings().default_folder_color,
        now=now,
    )


def get_folder_service(
    identity: Identity = Depends(require_identity),
    store: Store = Depends(get_store),
    now: Clock = Depends(get_clock),
) -> FolderService:
    return _service(identity, store, now)


# PUBLIC_INTERFACE
@router.get(
    "/",
    response_model=List[FolderOut],
    summary="List Folders",
    description="The caller's folders, oldest first. Anonymous callers get an empty list.",
)
def list_folders(
    identity: Optional[Identity] = Depends(get_optional_identity),
    store: Store = Depends(get_store),
    now: Clock = Depends(get_clock),
) -> List[FolderOut]:
    if identity is None:
        return []
    return [FolderOut(**f) for f in _service(identity, store, now).list()]


# PUBLIC_INTERFACE
@router.post(
    "/",
    response_model=FolderOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create Folder",
)
def create_folder(payload: FolderCreate, service: FolderService = Depends(get_folder_service)) -> FolderOut:
    return FolderOut(**service.create(payload.name, payload.color))


# PUBLIC_INTERFACE
@router.patch(
    "/{folder_id}",
    response_model=Optional[FolderOut],
    summary="Update Folder",
    description="Rename and/or recolor a folder. An empty payload changes nothing and returns null.",
    responses={404: {"description": "Folder not found"}},
)
def update_folder(
    folder_id: str, payload: FolderUpdate, service: FolderService = Depends(get_folder_service)
) -> Optional[FolderOut]:
    updated = service.update(folder_id, name=payload.name, color=payload.color)
    return FolderOut(**updated) if updated is not None else None


# PUBLIC_INTERFACE
@router.delete(
    "/{folder_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Folder",
    description="Delete a folder. Its todos stay and simply lose their folder reference.",
    responses={404: {"description": "Folder not found"}},
)
def delete_folder(folder_id: str, service: FolderService = Depends(get_folder_service)) -> Response:
    service.delete(folder_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
