"""Server CRUD, batch creation, and the per-server notes, transfers, VMs and activity feed."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends

from core.dependencies import get_acting_user_id, get_settings, get_storage
from core.errors import ValidationError
from core.interfaces.storage import InventoryStorage
from modules.inventory.schemas import (
    ActivityResponse, BatchServerCreate, DetailResponse, NoteResponse,
    ServerCreate, ServerResponse, ServerUpdate, TransferResponse,
)
from ._helpers import DetailBody, NoteBody, TransferBody, attribution, deleted, found

log = logging.getLogger("inventory.api")
router = APIRouter(prefix="/servers", tags=["Servers"])


# ====================================================================
# Servers
# ====================================================================

@router.get("", response_model=List[ServerResponse])
def list_servers(
    location_id: Optional[int] = None,
    storage: InventoryStorage = Depends(get_storage),
):
    """List all servers, optionally only those at one location."""
    if location_id is not None:
        return storage.get_servers_by_location(location_id)
    return storage.get_all_servers()


@router.post("", response_model=ServerResponse, status_code=201)
def create_server(
    body: ServerCreate,
    storage: InventoryStorage = Depends(get_storage),
    user_id: Optional[int] = Depends(get_acting_user_id),
):
    return storage.create_server(body, user_id=user_id)


@router.post("/batch", response_model=List[ServerResponse], status_code=201)
def create_batch_servers(
    body: BatchServerCreate,
    storage: InventoryStorage = Depends(get_storage),
    user_id: Optional[int] = Depends(get_acting_user_id),
    settings=Depends(get_settings),
):
    """Create `quantity` servers from a catalogue model with generated server ids."""
    if body.quantity > settings.batch_max_quantity:
        raise ValidationError(
            f"Batch quantity {body.quantity} exceeds the maximum of {settings.batch_max_quantity}"
        )
    return storage.create_batch_servers(
        body.model_id, body.location_id, body.quantity, body.status, user_id=user_id
    )


@router.get("/by-server-id/{server_id}", response_model=ServerResponse)
def get_server_by_server_id(server_id: str, storage: InventoryStorage = Depends(get_storage)):
    return found(storage.get_server_by_server_id(server_id), "Server", server_id)


@router.get("/{server_pk}", response_model=ServerResponse)
def get_server(server_pk: int, storage: InventoryStorage = Depends(get_storage)):
    return found(storage.get_server_by_id(server_pk), "Server", server_pk)


@router.patch("/{server_pk}", response_model=ServerResponse)
def update_server(
    server_pk: int,
    body: ServerUpdate,
    storage: InventoryStorage = Depends(get_storage),
    user_id: Optional[int] = Depends(get_acting_user_id),
):
    """Partial update; only the fields sent are changed."""
    return storage.update_server(server_pk, body.model_dump(exclude_unset=True), user_id=user_id)


@router.delete("/{server_pk}")
def delete_server(
    server_pk: int,
    storage: InventoryStorage = Depends(get_storage),
    user_id: Optional[int] = Depends(get_acting_user_id),
):
    return deleted(storage.delete_server(server_pk, user_id=user_id), "Server", server_pk)


# ====================================================================
# Notes
# ====================================================================

@router.get("/{server_pk}/notes", response_model=List[NoteResponse])
def list_notes(
    server_pk: int,
    include_deleted: bool = False,
    storage: InventoryStorage = Depends(get_storage),
):
    found(storage.get_server_by_id(server_pk), "Server", server_pk)
    return storage.get_server_notes(server_pk, include_deleted=include_deleted)


@router.post("/{server_pk}/notes", response_model=NoteResponse, status_code=201)
def add_note(
    server_pk: int,
    body: NoteBody,
    storage: InventoryStorage = Depends(get_storage),
    user_id: Optional[int] = Depends(get_acting_user_id),
):
    return storage.add_server_note({
        "server_id": server_pk,
        "note": body.note,
        "created_by": attribution(body.created_by, user_id, "Adding a note"),
    })


# ====================================================================
# Transfers
# ====================================================================

@router.get("/{server_pk}/transfers", response_model=List[TransferResponse])
def list_transfers(server_pk: int, storage: InventoryStorage = Depends(get_storage)):
    found(storage.get_server_by_id(server_pk), "Server", server_pk)
    return storage.get_server_transfers(server_pk)


@router.post("/{server_pk}/transfers", response_model=TransferResponse, status_code=201)
def transfer_server(
    server_pk: int,
    body: TransferBody,
    storage: InventoryStorage = Depends(get_storage),
    user_id: Optional[int] = Depends(get_acting_user_id),
):
    """Move a server to another location. The server ends up in transit."""
    return storage.create_transfer({
        "server_id": server_pk,
        "to_location_id": body.to_location_id,
        "from_location_id": body.from_location_id,
        "transfer_date": body.transfer_date,
        "notes": body.notes,
        "transferred_by": attribution(body.transferred_by, user_id, "A transfer"),
    })


# ====================================================================
# Virtual machines
# ====================================================================

@router.get("/{server_pk}/details", response_model=List[DetailResponse])
def list_details(server_pk: int, storage: InventoryStorage = Depends(get_storage)):
    found(storage.get_server_by_id(server_pk), "Server", server_pk)
    return storage.get_server_details(server_pk)


@router.post("/{server_pk}/details", response_model=DetailResponse, status_code=201)
def add_detail(
    server_pk: int,
    body: DetailBody,
    storage: InventoryStorage = Depends(get_storage),
    user_id: Optional[int] = Depends(get_acting_user_id),
):
    return storage.add_server_detail({"server_id": server_pk, **body.model_dump()}, user_id=user_id)


# ====================================================================
# Activity feed
# ====================================================================

@router.get("/{server_pk}/activities", response_model=List[ActivityResponse])
def list_server_activities(server_pk: int, storage: InventoryStorage = Depends(get_storage)):
    return storage.get_server_activities(server_pk)
