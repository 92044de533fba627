"""
Server inventory: Core request dependencies.

get_storage resolves the configured InventoryStorage from app state;
get_acting_user_id reads the optional X-User-Id attribution header.
"""

import logging
from typing import Optional

from fastapi import Header, Request

from core.errors import ConnectionFailure, ValidationError
from core.interfaces.storage import InventoryStorage

log = logging.getLogger("inventory.api")


def get_storage(request: Request) -> InventoryStorage:
    """Return the storage backend the app was started with."""
    storage = getattr(request.app.state, "storage", None)
    if storage is None:
        log.error("Request arrived before storage was initialized")
        raise ConnectionFailure("Storage backend is not initialized")
    return storage


def get_acting_user_id(x_user_id: Optional[str] = Header(default=None)) -> Optional[int]:
    """Opaque attribution only; nothing here authorizes the caller."""
    if x_user_id is None or not x_user_id.strip():
        return None
    try:
        return int(x_user_id)
    except ValueError:
        raise ValidationError(f"X-User-Id must be an integer, got {x_user_id!r}")


def get_settings(request: Request):
    """Settings the running app was built with (falls back to the process-wide ones)."""
    app_settings = getattr(request.app.state, "settings", None)
    if app_settings is None:
        from core.config import settings as app_settings
    return app_settings
