"""Location CRUD, per-location server lists and the occupancy summary."""

from typing import List

from fastapi import APIRouter, Depends

from core.dependencies import get_storage
from core.interfaces.storage import InventoryStorage
from modules.inventory.schemas import (
    LocationCreate, LocationResponse, LocationSummary, LocationUpdate, ServerResponse,
)
from ._helpers import deleted, found

router = APIRouter(prefix="/locations", tags=["Locations"])


@router.get("", response_model=List[LocationResponse])
def list_locations(storage: InventoryStorage = Depends(get_storage)):
    return storage.get_all_locations()


# Static path before /{location_id}
@router.get("/summary", response_model=List[LocationSummary])
def location_summary(storage: InventoryStorage = Depends(get_storage)):
    """Server count, capacity and free slots for every location."""
    return storage.get_location_summary()


@router.post("", response_model=LocationResponse, status_code=201)
def create_location(body: LocationCreate, storage: InventoryStorage = Depends(get_storage)):
    return storage.create_location(body)


@router.get("/{location_id}", response_model=LocationResponse)
def get_location(location_id: int, storage: InventoryStorage = Depends(get_storage)):
    return found(storage.get_location_by_id(location_id), "Location", location_id)


@router.patch("/{location_id}", response_model=LocationResponse)
def update_location(location_id: int, body: LocationUpdate, storage: InventoryStorage = Depends(get_storage)):
    return storage.update_location(location_id, body.model_dump(exclude_unset=True))


@router.delete("/{location_id}")
def delete_location(location_id: int, storage: InventoryStorage = Depends(get_storage)):
    """Refused with 409 while servers are still assigned here."""
    return deleted(storage.delete_location(location_id), "Location", location_id)


@router.get("/{location_id}/servers", response_model=List[ServerResponse])
def list_location_servers(location_id: int, storage: InventoryStorage = Depends(get_storage)):
    found(storage.get_location_by_id(location_id), "Location", location_id)
    return storage.get_servers_by_location(location_id)
