"""Request bodies and small helpers shared by the inventory routes."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel as PydanticBaseModel, Field

from core.errors import NotFound, ValidationError


# ====================================================================
# Request bodies whose server id comes from the URL
# ====================================================================

class NoteBody(PydanticBaseModel):
    note: str = Field(min_length=1)
    # Falls back to the X-User-Id header
    created_by: Optional[int] = None


class NoteEditBody(PydanticBaseModel):
    note: str = Field(min_length=1)


class TransferBody(PydanticBaseModel):
    to_location_id: int
    from_location_id: Optional[int] = None
    transfer_date: Optional[datetime] = None
    notes: Optional[str] = None
    transferred_by: Optional[int] = None


class DetailBody(PydanticBaseModel):
    vm_name: str = Field(min_length=1)
    ip_address: str = Field(min_length=1)
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)
    notes: Optional[str] = None


class PasswordReset(PydanticBaseModel):
    password: str = Field(min_length=1)


# ====================================================================
# Helpers
# ====================================================================

def found(record, label: str, key):
    """Return record, or raise NotFound naming what was looked up."""
    if record is None:
        raise NotFound(f"{label} {key} not found")
    return record


def deleted(ok: bool, label: str, key) -> dict:
    if not ok:
        raise NotFound(f"{label} {key} not found")
    return {"deleted": True, "id": key}


def attribution(explicit: Optional[int], acting_user_id: Optional[int], what: str) -> int:
    """Pick the body's user id, else the header's; one of them is required."""
    user_id = explicit if explicit is not None else acting_user_id
    if user_id is None:
        raise ValidationError(f"{what} requires a user id (body field or X-User-Id header)")
    return user_id
