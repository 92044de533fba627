"""
core/base.py: Declarative Base and shared enums.

All ORM models import Base from here.
All shared enums (used by both storage backends, the schemas and the routes)
live here to avoid circular imports.
"""

from datetime import datetime, timezone
from enum import Enum
from sqlalchemy.orm import declarative_base

Base = declarative_base()

# SQLAlchemy 2.x defaults to using enum member NAMES as DB values.
# We want member VALUES (lowercase strings) instead.
_ENUM_VALUES = lambda x: [e.value for e in x]


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every stored datetime uses."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class ServerStatus(str, Enum):
    """Lifecycle status of a physical server."""
    PASSIVE = "passive"       # Acquired, waiting at the depot
    SETUP = "setup"           # Being installed / configured
    SHIPPABLE = "shippable"   # Setup finished, ready to ship
    ACTIVE = "active"         # Running at its location
    TRANSIT = "transit"       # Moving between locations
    FIELD = "field"           # Deployed in the field (not counted in stats buckets)

    @classmethod
    def normalize(cls, value) -> 'ServerStatus':
        """Accept the legacy aliases ("ready", "inactive") alongside real values."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise ValueError(f"Invalid server status: {value!r}")
        normalized = value.strip().lower()
        normalized = STATUS_ALIASES.get(normalized, normalized)
        return cls(normalized)


STATUS_ALIASES = {
    "ready": ServerStatus.SHIPPABLE.value,
    "inactive": ServerStatus.PASSIVE.value,
}


class ActivityType(str, Enum):
    ADD = "add"
    TRANSFER = "transfer"
    NOTE = "note"
    SETUP = "setup"
    EDIT = "edit"
    STATUS = "status"
    DELETE = "delete"


class LocationType(str, Enum):
    DEPOT = "depot"
    OFFICE = "office"
    FIELD = "field"


class UserRole(str, Enum):
    ADMIN = "admin"
    USER = "user"
