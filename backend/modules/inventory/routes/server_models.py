"""Server model catalogue endpoints."""

from typing import List

from fastapi import APIRouter, Depends

from core.dependencies import get_storage
from core.interfaces.storage import InventoryStorage
from modules.inventory.schemas import ServerModelCreate, ServerModelResponse, ServerModelUpdate
from ._helpers import deleted, found

router = APIRouter(prefix="/server-models", tags=["Server Models"])


@router.get("", response_model=List[ServerModelResponse])
def list_server_models(storage: InventoryStorage = Depends(get_storage)):
    return storage.get_all_server_models()


@router.post("", response_model=ServerModelResponse, status_code=201)
def create_server_model(body: ServerModelCreate, storage: InventoryStorage = Depends(get_storage)):
    return storage.create_server_model(body)


@router.get("/{model_id}", response_model=ServerModelResponse)
def get_server_model(model_id: int, storage: InventoryStorage = Depends(get_storage)):
    return found(storage.get_server_model_by_id(model_id), "Server model", model_id)


@router.patch("/{model_id}", response_model=ServerModelResponse)
def update_server_model(model_id: int, body: ServerModelUpdate, storage: InventoryStorage = Depends(get_storage)):
    return storage.update_server_model(model_id, body.model_dump(exclude_unset=True))


@router.delete("/{model_id}")
def delete_server_model(model_id: int, storage: InventoryStorage = Depends(get_storage)):
    return deleted(storage.delete_server_model(model_id), "Server model", model_id)
