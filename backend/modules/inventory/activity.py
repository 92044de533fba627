"""
Activity recorder: audit entries for every inventory mutation.

Both storage backends build their activity rows through these helpers, so the
trail reads the same whichever backend produced it. Each helper returns an
ActivityCreate; the backend persists it inside the same unit of work as the
mutation it describes.
"""

from typing import Iterable, Optional

from core.base import ActivityType, ServerStatus
from modules.inventory.schemas import ActivityCreate

NOTE_PREVIEW_LENGTH = 30
UNKNOWN_LOCATION = "Unknown location"


def note_preview(text: str, limit: int = NOTE_PREVIEW_LENGTH) -> str:
    """Single-line preview of a note, at most `limit` characters long."""
    flat = " ".join((text or "").split())
    if len(flat) <= limit:
        return flat
    return flat[: limit - 3].rstrip() + "..."


def _status_label(status) -> str:
    return status.value if isinstance(status, ServerStatus) else str(status)


# ---------------------------------------------------------------------------
# Servers
# ---------------------------------------------------------------------------

def server_added(server, user_id: Optional[int] = None) -> ActivityCreate:
    return ActivityCreate(
        server_id=server.id,
        type=ActivityType.ADD,
        description=f"Server added: {server.server_id}",
        user_id=user_id,
    )


def batch_server_added(server, model_name: str, user_id: Optional[int] = None) -> ActivityCreate:
    return ActivityCreate(
        server_id=server.id,
        type=ActivityType.ADD,
        description=f"Batch add: {server.server_id} ({model_name})",
        user_id=user_id,
    )


def status_changed(server, old_status, new_status, user_id: Optional[int] = None) -> ActivityCreate:
    return ActivityCreate(
        server_id=server.id,
        type=ActivityType.SETUP,
        description=(
            f"Server status changed: {server.server_id} "
            f"{_status_label(old_status)} -> {_status_label(new_status)}"
        ),
        user_id=user_id,
    )


def server_edited(server, fields: Iterable[str], user_id: Optional[int] = None) -> ActivityCreate:
    changed = ", ".join(sorted(fields)) or "no changes"
    return ActivityCreate(
        server_id=server.id,
        type=ActivityType.EDIT,
        description=f"Server updated: {server.server_id} ({changed})",
        user_id=user_id,
    )


def server_deleted(server, user_id: Optional[int] = None) -> ActivityCreate:
    return ActivityCreate(
        server_id=server.id,
        type=ActivityType.DELETE,
        description=f"Server deleted: {server.server_id}",
        user_id=user_id,
    )


# ---------------------------------------------------------------------------
# Notes
# ---------------------------------------------------------------------------

def _server_label(server, server_pk: int) -> str:
    return server.server_id if server is not None else f"ID: {server_pk}"


def note_added(server, note) -> ActivityCreate:
    return ActivityCreate(
        server_id=note.server_id,
        type=ActivityType.NOTE,
        description=f"Note added to {_server_label(server, note.server_id)}: \"{note_preview(note.note)}\"",
        user_id=note.created_by,
    )


def note_updated(server, note, user_id: Optional[int] = None) -> ActivityCreate:
    return ActivityCreate(
        server_id=note.server_id,
        type=ActivityType.EDIT,
        description=f"Note updated on {_server_label(server, note.server_id)}: \"{note_preview(note.note)}\"",
        user_id=user_id,
    )


def note_deleted(server, note, user_id: Optional[int] = None) -> ActivityCreate:
    return ActivityCreate(
        server_id=note.server_id,
        type=ActivityType.DELETE,
        description=f"Note deleted from {_server_label(server, note.server_id)}: \"{note_preview(note.note)}\"",
        user_id=user_id,
    )


# ---------------------------------------------------------------------------
# Transfers
# ---------------------------------------------------------------------------

def transfer_started(server, from_location, to_location, user_id: Optional[int] = None) -> ActivityCreate:
    """Names both ends by location name; ids are in the transfer row itself."""
    from_name = from_location.name if from_location is not None else UNKNOWN_LOCATION
    to_name = to_location.name if to_location is not None else UNKNOWN_LOCATION
    return ActivityCreate(
        server_id=server.id,
        type=ActivityType.TRANSFER,
        description=f"Transfer started for {server.server_id}: {from_name} -> {to_name}",
        user_id=user_id,
    )


# ---------------------------------------------------------------------------
# Virtual machines
# ---------------------------------------------------------------------------

def vm_added(detail, user_id: Optional[int] = None) -> ActivityCreate:
    return ActivityCreate(
        server_id=detail.server_id,
        type=ActivityType.SETUP,
        description=f"VM added: {detail.vm_name} ({detail.ip_address})",
        user_id=user_id,
    )


def vm_updated(detail, user_id: Optional[int] = None) -> ActivityCreate:
    return ActivityCreate(
        server_id=detail.server_id,
        type=ActivityType.SETUP,
        description=f"VM updated: {detail.vm_name} ({detail.ip_address})",
        user_id=user_id,
    )


def vm_deleted(detail, user_id: Optional[int] = None) -> ActivityCreate:
    return ActivityCreate(
        server_id=detail.server_id,
        type=ActivityType.DELETE,
        description=f"VM deleted: {detail.vm_name} ({detail.ip_address})",
        user_id=user_id,
    )
