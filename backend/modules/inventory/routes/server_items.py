"""Edit and delete endpoints for notes and VM details, addressed by their own id."""

from typing import Optional

from fastapi import APIRouter, Depends

from core.dependencies import get_acting_user_id, get_storage
from core.interfaces.storage import InventoryStorage
from modules.inventory.schemas import DetailResponse, DetailUpdate, NoteResponse
from ._helpers import NoteEditBody, deleted, found

router = APIRouter(tags=["Servers"])


@router.get("/notes/{note_id}", response_model=NoteResponse)
def get_note(note_id: int, storage: InventoryStorage = Depends(get_storage)):
    return found(storage.get_server_note(note_id), "Note", note_id)


@router.patch("/notes/{note_id}", response_model=NoteResponse)
def update_note(
    note_id: int,
    body: NoteEditBody,
    storage: InventoryStorage = Depends(get_storage),
    user_id: Optional[int] = Depends(get_acting_user_id),
):
    return storage.update_server_note(note_id, {"note": body.note, "updated_by": user_id})


@router.delete("/notes/{note_id}")
def delete_note(
    note_id: int,
    storage: InventoryStorage = Depends(get_storage),
    user_id: Optional[int] = Depends(get_acting_user_id),
):
    """Soft delete; the note stays readable with include_deleted=true."""
    return deleted(storage.delete_server_note(note_id, user_id=user_id), "Note", note_id)


@router.get("/server-details/{detail_id}", response_model=DetailResponse)
def get_detail(detail_id: int, storage: InventoryStorage = Depends(get_storage)):
    return found(storage.get_server_detail(detail_id), "Server detail", detail_id)


@router.patch("/server-details/{detail_id}", response_model=DetailResponse)
def update_detail(
    detail_id: int,
    body: DetailUpdate,
    storage: InventoryStorage = Depends(get_storage),
    user_id: Optional[int] = Depends(get_acting_user_id),
):
    return storage.update_server_detail(detail_id, body.model_dump(exclude_unset=True), user_id=user_id)


@router.delete("/server-details/{detail_id}")
def delete_detail(
    detail_id: int,
    storage: InventoryStorage = Depends(get_storage),
    user_id: Optional[int] = Depends(get_acting_user_id),
):
    return deleted(storage.delete_server_detail(detail_id, user_id=user_id), "Server detail", detail_id)
