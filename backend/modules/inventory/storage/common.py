"""
Helpers shared by the memory and database backends.

Anything that decides an observable result (input coercion, capacity rule,
stats partition, ordering) lives here once, so the two backends cannot drift.
"""

import logging
from collections import Counter
from typing import Iterable, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError as PydanticValidationError

from core.base import ServerStatus
from core.errors import CapacityExceeded, ValidationError
from modules.inventory.schemas import LocationSummary, ServerStats

log = logging.getLogger("inventory.storage")

S = TypeVar("S", bound=BaseModel)

# Fields an update may explicitly clear by sending null. Everything else
# treats null as "leave unchanged".
NULLABLE_FIELDS = {
    "server": {"ip_address", "username", "password", "model_id"},
    "location": {"address"},
    "detail": {"notes"},
    "user": {"full_name", "email"},
}


def _describe(exc: PydanticValidationError) -> str:
    parts = []
    for err in exc.errors():
        where = ".".join(str(p) for p in err.get("loc", ())) or "body"
        parts.append(f"{where}: {err.get('msg')}")
    return "; ".join(parts)


def coerce(schema: Type[S], data) -> S:
    """Turn a dict (or another schema instance) into `schema`, raising our ValidationError."""
    if isinstance(data, schema):
        return data
    if isinstance(data, BaseModel):
        data = data.model_dump(exclude_unset=True)
    if data is None:
        data = {}
    try:
        return schema.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError(f"Invalid {schema.__name__}: {_describe(exc)}")


def changes_from(schema: Type[S], data, entity: str) -> dict:
    """Fields explicitly set by a partial update, minus nulls on non-nullable fields."""
    update = coerce(schema, data)
    nullable = NULLABLE_FIELDS.get(entity, set())
    return {
        key: value
        for key, value in update.model_dump(exclude_unset=True).items()
        if value is not None or key in nullable
    }


def check_batch_quantity(quantity: int) -> None:
    if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
        raise ValidationError(f"Quantity must be a positive integer, got {quantity!r}")


def check_capacity(location, existing_count: int, quantity: int) -> None:
    """Reject a batch that would push the location over its capacity."""
    if existing_count + quantity > location.capacity:
        log.warning(
            f"Capacity exceeded at location {location.id} ({location.name}): "
            f"{existing_count} existing + {quantity} requested > {location.capacity}"
        )
        raise CapacityExceeded(
            f"Location '{location.name}' has capacity {location.capacity}; "
            f"{existing_count} servers present, {quantity} requested",
            capacity=location.capacity,
            requested=quantity,
            existing=existing_count,
        )


def model_display_name(model) -> str:
    return f"{model.brand} {model.name}"


def compute_stats(servers: Iterable) -> ServerStats:
    """Partition the current server set by status in one pass.

    FIELD servers count toward total only.
    """
    counts = Counter()
    total = 0
    for server in servers:
        total += 1
        counts[ServerStatus.normalize(server.status)] += 1
    return ServerStats(
        total=total,
        active=counts[ServerStatus.ACTIVE],
        transit=counts[ServerStatus.TRANSIT],
        setup=counts[ServerStatus.SETUP],
        passive=counts[ServerStatus.PASSIVE],
        shippable=counts[ServerStatus.SHIPPABLE],
    )


def compute_location_summary(locations: Iterable, servers: Iterable) -> List[LocationSummary]:
    per_location = Counter(server.location_id for server in servers)
    summary = []
    for location in sorted(locations, key=lambda loc: loc.id):
        count = per_location.get(location.id, 0)
        summary.append(LocationSummary(
            location_id=location.id,
            name=location.name,
            type=location.type,
            capacity=location.capacity,
            server_count=count,
            available=max(location.capacity - count, 0),
        ))
    return summary


def newest_first(records: Iterable, limit: Optional[int] = None) -> list:
    """Sort by created_at descending, id descending as the tie-breaker."""
    ordered = sorted(records, key=lambda r: (r.created_at, r.id), reverse=True)
    if limit:
        return ordered[:limit]
    return ordered
