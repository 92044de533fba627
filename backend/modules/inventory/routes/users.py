"""User management. Passwords are write-only; responses never include the hash."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends

from core.dependencies import get_acting_user_id, get_storage
from core.interfaces.storage import InventoryStorage
from modules.inventory.schemas import UserCreate, UserResponse, UserUpdate
from ._helpers import PasswordReset, deleted, found

log = logging.getLogger("inventory.api")
router = APIRouter(prefix="/users", tags=["Users"])


@router.get("", response_model=List[UserResponse])
def list_users(storage: InventoryStorage = Depends(get_storage)):
    return storage.get_all_users()


@router.post("", response_model=UserResponse, status_code=201)
def create_user(body: UserCreate, storage: InventoryStorage = Depends(get_storage)):
    return storage.create_user(body)


@router.get("/{user_id}", response_model=UserResponse)
def get_user(user_id: int, storage: InventoryStorage = Depends(get_storage)):
    return found(storage.get_user_by_id(user_id), "User", user_id)


@router.patch("/{user_id}", response_model=UserResponse)
def update_user(user_id: int, body: UserUpdate, storage: InventoryStorage = Depends(get_storage)):
    return storage.update_user(user_id, body.model_dump(exclude_unset=True))


@router.post("/{user_id}/reset-password", response_model=UserResponse)
def reset_password(
    user_id: int,
    body: PasswordReset,
    storage: InventoryStorage = Depends(get_storage),
    acting_user_id: Optional[int] = Depends(get_acting_user_id),
):
    user = storage.update_user(user_id, {"password": body.password})
    log.info(f"Password reset for user {user.username} (by {acting_user_id})")
    return user


@router.delete("/{user_id}")
def delete_user(
    user_id: int,
    storage: InventoryStorage = Depends(get_storage),
    acting_user_id: Optional[int] = Depends(get_acting_user_id),
):
    """Users cannot delete themselves (400)."""
    return deleted(storage.delete_user(user_id, requested_by=acting_user_id), "User", user_id)
