"""Global feeds: recent activity, all transfers, and the status breakdown."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from core.dependencies import get_storage
from core.interfaces.storage import InventoryStorage
from modules.inventory.schemas import ActivityResponse, ServerStats, TransferResponse

router = APIRouter(tags=["Activity"])


@router.get("/activities", response_model=List[ActivityResponse])
def list_activities(
    limit: Optional[int] = Query(default=None, ge=1),
    storage: InventoryStorage = Depends(get_storage),
):
    """Newest first. Without a limit the whole trail is returned."""
    return storage.get_all_activities(limit=limit)


@router.get("/transfers", response_model=List[TransferResponse])
def list_all_transfers(storage: InventoryStorage = Depends(get_storage)):
    return storage.get_all_transfers()


@router.get("/stats", response_model=ServerStats)
def server_stats(storage: InventoryStorage = Depends(get_storage)):
    return storage.get_server_stats()
