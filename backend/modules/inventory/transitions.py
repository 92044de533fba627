"""
Server status transition policy.

The only enforced rule is that a transfer always leaves the server in
"transit". Manual status updates may move between any two statuses; the
usual workflow is kept in TYPICAL_TRANSITIONS so unusual moves can be logged,
and every call site goes through resolve_transition() so a stricter policy can
be swapped in here alone.
"""

import logging
from typing import Optional

from core.base import ServerStatus

log = logging.getLogger("inventory.transitions")

TYPICAL_TRANSITIONS = {
    ServerStatus.PASSIVE: {ServerStatus.SETUP, ServerStatus.ACTIVE},
    ServerStatus.SETUP: {ServerStatus.FIELD, ServerStatus.ACTIVE, ServerStatus.SHIPPABLE},
    ServerStatus.SHIPPABLE: {ServerStatus.TRANSIT, ServerStatus.ACTIVE},
    ServerStatus.ACTIVE: {ServerStatus.TRANSIT, ServerStatus.SETUP, ServerStatus.PASSIVE},
    ServerStatus.TRANSIT: {
        ServerStatus.ACTIVE, ServerStatus.SETUP, ServerStatus.FIELD, ServerStatus.SHIPPABLE,
    },
    ServerStatus.FIELD: {ServerStatus.TRANSIT, ServerStatus.ACTIVE},
}


def is_typical(old: ServerStatus, new: ServerStatus) -> bool:
    return old == new or new in TYPICAL_TRANSITIONS.get(old, set())


def resolve_transition(
    old: ServerStatus,
    requested: Optional[ServerStatus],
    via_transfer: bool = False,
) -> ServerStatus:
    """Return the status a server ends up in.

    via_transfer forces TRANSIT regardless of what was requested. Otherwise
    the requested status wins (or the old one when nothing was requested).
    """
    if via_transfer:
        return ServerStatus.TRANSIT
    if requested is None:
        return old
    new = ServerStatus.normalize(requested)
    if not is_typical(old, new):
        log.info(f"Unusual status transition accepted: {old.value} -> {new.value}")
    return new
