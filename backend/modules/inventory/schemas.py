"""
modules/inventory/schemas.py: Pydantic schemas for the inventory domain.

The *Response models double as the records both storage backends return, so
the memory and database backends are compared on identical shapes.
"""

from datetime import datetime, timezone
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator

from core.base import ServerStatus, ActivityType, LocationType, UserRole


def _normalize_status(value):
    if value is None:
        return value
    try:
        return ServerStatus.normalize(value)
    except ValueError:
        allowed = ", ".join(s.value for s in ServerStatus)
        raise ValueError(f"status must be one of: {allowed} (or ready / inactive)")


# ============== User Schemas ==============

class UserCreate(BaseModel):
    username: str = Field(min_length=1, max_length=100)
    password: str = Field(min_length=1)
    full_name: Optional[str] = None
    email: Optional[str] = None
    role: UserRole = UserRole.USER
    is_active: bool = True


class UserUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    username: Optional[str] = Field(default=None, min_length=1, max_length=100)
    password: Optional[str] = Field(default=None, min_length=1)
    full_name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    full_name: Optional[str] = None
    email: Optional[str] = None
    role: UserRole
    is_active: bool
    created_at: datetime


# ============== Location Schemas ==============

class LocationCreate(BaseModel):
    name: str = Field(min_length=1)
    type: LocationType
    address: Optional[str] = None
    capacity: int = Field(default=10, ge=0)
    is_active: bool = True


class LocationUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(default=None, min_length=1)
    type: Optional[LocationType] = None
    address: Optional[str] = None
    capacity: Optional[int] = Field(default=None, ge=0)
    is_active: Optional[bool] = None


class LocationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    type: LocationType
    address: Optional[str] = None
    capacity: int
    is_active: bool
    created_at: datetime


class LocationSummary(BaseModel):
    """Occupancy of one location, derived from the current server set."""
    location_id: int
    name: str
    type: LocationType
    capacity: int
    server_count: int
    available: int


# ============== Server Model Schemas ==============

class ServerModelCreate(BaseModel):
    name: str = Field(min_length=1)
    brand: str = Field(min_length=1)
    specs: str = Field(min_length=1)


class ServerModelUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(default=None, min_length=1)
    brand: Optional[str] = Field(default=None, min_length=1)
    specs: Optional[str] = Field(default=None, min_length=1)


class ServerModelResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    brand: str
    specs: str
    created_at: datetime

    @property
    def display_name(self) -> str:
        return f"{self.brand} {self.name}"


# ============== Server Schemas ==============

class ServerCreate(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    server_id: str = Field(min_length=1, max_length=50)
    model: str = Field(min_length=1)
    specs: str
    location_id: int
    status: ServerStatus = ServerStatus.PASSIVE
    model_id: Optional[int] = None
    ip_address: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v):
        return _normalize_status(v)

    @field_validator("server_id")
    @classmethod
    def _strip_server_id(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("server_id must not be blank")
        return v


class ServerUpdate(BaseModel):
    """Partial update. server_id is immutable and therefore not accepted."""
    model_config = ConfigDict(extra="forbid", protected_namespaces=())

    model: Optional[str] = Field(default=None, min_length=1)
    specs: Optional[str] = None
    location_id: Optional[int] = None
    status: Optional[ServerStatus] = None
    model_id: Optional[int] = None
    ip_address: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v):
        return _normalize_status(v)


class ServerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, protected_namespaces=())

    id: int
    server_id: str
    model: str
    model_id: Optional[int] = None
    specs: str
    location_id: int
    status: ServerStatus
    ip_address: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class BatchServerCreate(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    model_id: int = Field(ge=1)
    location_id: int = Field(ge=1)
    quantity: int = Field(ge=1)
    status: ServerStatus = ServerStatus.PASSIVE

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v):
        return _normalize_status(v)


class ServerStats(BaseModel):
    total: int = 0
    active: int = 0
    transit: int = 0
    setup: int = 0
    passive: int = 0
    shippable: int = 0


# ============== Note Schemas ==============

class NoteCreate(BaseModel):
    server_id: int
    note: str = Field(min_length=1)
    created_by: int


class NoteUpdate(BaseModel):
    note: str = Field(min_length=1)
    updated_by: Optional[int] = None


class NoteResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    server_id: int
    note: str
    created_by: int
    created_at: datetime
    updated_at: Optional[datetime] = None
    updated_by: Optional[int] = None
    is_deleted: bool = False


# ============== Transfer Schemas ==============

class TransferCreate(BaseModel):
    server_id: int
    to_location_id: int
    transferred_by: int
    # Defaults to the server's current location
    from_location_id: Optional[int] = None
    # Defaults to now
    transfer_date: Optional[datetime] = None
    notes: Optional[str] = None

    @field_validator("transfer_date")
    @classmethod
    def _to_naive_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        # Stored timestamps are naive UTC (see core.base.utcnow)
        if v is not None and v.tzinfo is not None:
            return v.astimezone(timezone.utc).replace(tzinfo=None)
        return v


class TransferResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    server_id: int
    from_location_id: int
    to_location_id: int
    transferred_by: int
    transfer_date: datetime
    notes: Optional[str] = None
    created_at: datetime


# ============== Server Detail (VM) Schemas ==============

class DetailCreate(BaseModel):
    server_id: int
    vm_name: str = Field(min_length=1)
    ip_address: str = Field(min_length=1)
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)
    notes: Optional[str] = None


class DetailUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    vm_name: Optional[str] = Field(default=None, min_length=1)
    ip_address: Optional[str] = Field(default=None, min_length=1)
    username: Optional[str] = Field(default=None, min_length=1)
    password: Optional[str] = Field(default=None, min_length=1)
    notes: Optional[str] = None


class DetailResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    server_id: int
    vm_name: str
    ip_address: str
    username: str
    password: str
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


# ============== Activity Schemas ==============

class ActivityCreate(BaseModel):
    server_id: Optional[int] = None
    type: ActivityType
    description: str = Field(min_length=1)
    user_id: Optional[int] = None


class ActivityResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    server_id: Optional[int] = None
    type: ActivityType
    description: str
    user_id: Optional[int] = None
    created_at: datetime
