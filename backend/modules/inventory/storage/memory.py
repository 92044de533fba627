"""
In-memory storage backend.

Dict-per-table store for development and tests. Every public method holds one
re-entrant lock for its whole body, so a mutation and its activity row are
applied together and never interleave with another call. Each operation
validates and builds everything first, then applies; a rejected call leaves
no trace.
"""

import logging
import threading
from collections import defaultdict
from typing import Dict, List, Optional

from core.auth import hash_password, verify_password
from core.base import ServerStatus, utcnow
from core.errors import (
    DuplicateIdentifier, NotFound, ReferentialConflict, ValidationError,
)
from core.interfaces.storage import InventoryStorage
from modules.inventory import activity
from modules.inventory.schemas import (
    ActivityCreate, ActivityResponse,
    DetailCreate, DetailResponse, DetailUpdate,
    LocationCreate, LocationResponse, LocationUpdate,
    NoteCreate, NoteResponse, NoteUpdate,
    ServerCreate, ServerModelCreate, ServerModelResponse, ServerModelUpdate,
    ServerResponse, ServerUpdate,
    TransferCreate, TransferResponse,
    UserCreate, UserResponse, UserUpdate,
)
from modules.inventory.sequence import InMemorySequence, generate_server_ids
from modules.inventory.storage.common import (
    changes_from, check_batch_quantity, check_capacity, coerce,
    compute_location_summary, compute_stats, model_display_name, newest_first,
)
from modules.inventory.transitions import resolve_transition

log = logging.getLogger("inventory.storage")


class InMemoryStorage(InventoryStorage):
    """Process-local backend. State is lost when the process exits."""

    backend_name = "memory"

    def __init__(self, server_id_prefix: str = "SRV", server_id_width: int = 3):
        self.server_id_prefix = server_id_prefix
        self.server_id_width = server_id_width

        self._lock = threading.RLock()
        self._users: Dict[int, UserResponse] = {}
        self._password_hashes: Dict[int, str] = {}
        self._locations: Dict[int, LocationResponse] = {}
        self._models: Dict[int, ServerModelResponse] = {}
        self._servers: Dict[int, ServerResponse] = {}
        self._notes: Dict[int, NoteResponse] = {}
        self._transfers: Dict[int, TransferResponse] = {}
        self._details: Dict[int, DetailResponse] = {}
        self._activities: List[ActivityResponse] = []

        # Row ids per table, plus the server identifier sequence
        self._row_ids: Dict[str, InMemorySequence] = defaultdict(InMemorySequence)
        self._server_id_seq = InMemorySequence()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _next_id(self, table: str) -> int:
        return self._row_ids[table].next_value()

    def _build_activity(self, data: ActivityCreate) -> ActivityResponse:
        return ActivityResponse(id=self._next_id("activities"), created_at=utcnow(), **data.model_dump())

    def _require_server(self, server_pk: int) -> ServerResponse:
        server = self._servers.get(server_pk)
        if server is None:
            raise NotFound(f"Server {server_pk} not found")
        return server

    def _require_location(self, location_id: int) -> LocationResponse:
        location = self._locations.get(location_id)
        if location is None:
            raise NotFound(f"Location {location_id} not found")
        return location

    def _require_model(self, model_id: int) -> ServerModelResponse:
        model = self._models.get(model_id)
        if model is None:
            raise NotFound(f"Server model {model_id} not found")
        return model

    def _server_id_taken(self, server_id: str) -> bool:
        return any(s.server_id == server_id for s in self._servers.values())

    @staticmethod
    def _copy(record):
        return record.model_copy() if record is not None else None

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def get_all_users(self) -> list:
        with self._lock:
            return [self._copy(u) for u in sorted(self._users.values(), key=lambda u: u.id)]

    def get_user_by_id(self, user_id: int):
        with self._lock:
            return self._copy(self._users.get(user_id))

    def get_user_by_username(self, username: str):
        with self._lock:
            user = next((u for u in self._users.values() if u.username == username), None)
            return self._copy(user)

    def create_user(self, data):
        payload = coerce(UserCreate, data)
        with self._lock:
            if any(u.username == payload.username for u in self._users.values()):
                raise DuplicateIdentifier(f"Username '{payload.username}' already exists")
            hashed = hash_password(payload.password)
            user = UserResponse(
                id=self._next_id("users"),
                created_at=utcnow(),
                **payload.model_dump(exclude={"password"}),
            )
            self._users[user.id] = user
            self._password_hashes[user.id] = hashed
            log.info(f"User {user.username} created (id={user.id})")
            return self._copy(user)

    def update_user(self, user_id: int, data):
        changes = changes_from(UserUpdate, data, "user")
        with self._lock:
            existing = self._users.get(user_id)
            if existing is None:
                raise NotFound(f"User {user_id} not found")
            new_username = changes.get("username")
            if new_username and new_username != existing.username and any(
                u.username == new_username for u in self._users.values()
            ):
                raise DuplicateIdentifier(f"Username '{new_username}' already exists")
            password = changes.pop("password", None)
            hashed = hash_password(password) if password else None
            updated = existing.model_copy(update=changes)
            self._users[user_id] = updated
            if hashed:
                self._password_hashes[user_id] = hashed
            return self._copy(updated)

    def delete_user(self, user_id: int, requested_by: Optional[int] = None) -> bool:
        if requested_by is not None and requested_by == user_id:
            raise ValidationError("Users cannot delete their own account")
        with self._lock:
            if self._users.pop(user_id, None) is None:
                return False
            self._password_hashes.pop(user_id, None)
            log.info(f"User {user_id} deleted")
            return True

    def verify_user_password(self, username: str, password: str):
        with self._lock:
            user = next((u for u in self._users.values() if u.username == username), None)
            if user is None or not user.is_active:
                return None
            if not verify_password(password, self._password_hashes.get(user.id)):
                return None
            return self._copy(user)

    # ------------------------------------------------------------------
    # Locations
    # ------------------------------------------------------------------

    def get_all_locations(self) -> list:
        with self._lock:
            return [self._copy(l) for l in sorted(self._locations.values(), key=lambda l: l.id)]

    def get_location_by_id(self, location_id: int):
        with self._lock:
            return self._copy(self._locations.get(location_id))

    def create_location(self, data):
        payload = coerce(LocationCreate, data)
        with self._lock:
            location = LocationResponse(id=self._next_id("locations"), created_at=utcnow(), **payload.model_dump())
            self._locations[location.id] = location
            log.info(f"Location {location.name} created (id={location.id})")
            return self._copy(location)

    def update_location(self, location_id: int, data):
        changes = changes_from(LocationUpdate, data, "location")
        with self._lock:
            existing = self._require_location(location_id)
            updated = existing.model_copy(update=changes)
            self._locations[location_id] = updated
            return self._copy(updated)

    def delete_location(self, location_id: int) -> bool:
        with self._lock:
            if location_id not in self._locations:
                return False
            in_use = sum(1 for s in self._servers.values() if s.location_id == location_id)
            if in_use:
                raise ReferentialConflict(f"Location {location_id} still holds {in_use} server(s)")
            del self._locations[location_id]
            log.info(f"Location {location_id} deleted")
            return True

    def get_servers_by_location(self, location_id: int) -> list:
        with self._lock:
            return [
                self._copy(s)
                for s in sorted(self._servers.values(), key=lambda s: s.id)
                if s.location_id == location_id
            ]

    def get_location_summary(self) -> list:
        with self._lock:
            return compute_location_summary(self._locations.values(), self._servers.values())

    # ------------------------------------------------------------------
    # Server models
    # ------------------------------------------------------------------

    def get_all_server_models(self) -> list:
        with self._lock:
            return [self._copy(m) for m in sorted(self._models.values(), key=lambda m: m.id)]

    def get_server_model_by_id(self, model_id: int):
        with self._lock:
            return self._copy(self._models.get(model_id))

    def create_server_model(self, data):
        payload = coerce(ServerModelCreate, data)
        with self._lock:
            model = ServerModelResponse(id=self._next_id("server_models"), created_at=utcnow(), **payload.model_dump())
            self._models[model.id] = model
            log.info(f"Server model {model_display_name(model)} created (id={model.id})")
            return self._copy(model)

    def update_server_model(self, model_id: int, data):
        changes = changes_from(ServerModelUpdate, data, "model")
        with self._lock:
            existing = self._require_model(model_id)
            updated = existing.model_copy(update=changes)
            self._models[model_id] = updated
            return self._copy(updated)

    def delete_server_model(self, model_id: int) -> bool:
        with self._lock:
            if model_id not in self._models:
                return False
            in_use = sum(1 for s in self._servers.values() if s.model_id == model_id)
            if in_use:
                raise ReferentialConflict(f"Server model {model_id} is used by {in_use} server(s)")
            del self._models[model_id]
            log.info(f"Server model {model_id} deleted")
            return True

    # ------------------------------------------------------------------
    # Servers
    # ------------------------------------------------------------------

    def get_all_servers(self) -> list:
        with self._lock:
            return [self._copy(s) for s in sorted(self._servers.values(), key=lambda s: s.id)]

    def get_server_by_id(self, server_pk: int):
        with self._lock:
            return self._copy(self._servers.get(server_pk))

    def get_server_by_server_id(self, server_id: str):
        with self._lock:
            server = next((s for s in self._servers.values() if s.server_id == server_id), None)
            return self._copy(server)

    def create_server(self, data, user_id: Optional[int] = None):
        payload = coerce(ServerCreate, data)
        with self._lock:
            if self._server_id_taken(payload.server_id):
                log.warning(f"Rejected duplicate server id {payload.server_id}")
                raise DuplicateIdentifier(f"Server ID '{payload.server_id}' already exists")
            self._require_location(payload.location_id)
            if payload.model_id is not None:
                self._require_model(payload.model_id)

            now = utcnow()
            server = ServerResponse(id=self._next_id("servers"), created_at=now, updated_at=now, **payload.model_dump())
            entry = self._build_activity(activity.server_added(server, user_id))

            self._servers[server.id] = server
            self._activities.append(entry)
            log.info(f"Server {server.server_id} created (id={server.id})")
            return self._copy(server)

    def create_batch_servers(self, model_id: int, location_id: int, quantity: int, status, user_id: Optional[int] = None) -> list:
        check_batch_quantity(quantity)
        try:
            status = ServerStatus.normalize(status)
        except ValueError:
            raise ValidationError(f"Invalid server status: {status!r}")
        with self._lock:
            model = self._require_model(model_id)
            location = self._require_location(location_id)
            existing = sum(1 for s in self._servers.values() if s.location_id == location_id)
            check_capacity(location, existing, quantity)

            server_ids = generate_server_ids(
                self._server_id_seq.next_value,
                self._server_id_taken,
                quantity,
                prefix=self.server_id_prefix,
                width=self.server_id_width,
            )
            display = model_display_name(model)
            created, entries = [], []
            for server_id in server_ids:
                now = utcnow()
                server = ServerResponse(
                    id=self._next_id("servers"),
                    server_id=server_id,
                    model=display,
                    model_id=model.id,
                    specs=model.specs,
                    location_id=location_id,
                    status=status,
                    created_at=now,
                    updated_at=now,
                )
                created.append(server)
                entries.append(self._build_activity(activity.batch_server_added(server, display, user_id)))

            for server in created:
                self._servers[server.id] = server
            self._activities.extend(entries)
            log.info(f"Batch created {len(created)} x {display} at location {location_id}: {server_ids}")
            return [self._copy(s) for s in created]

    def update_server(self, server_pk: int, data, user_id: Optional[int] = None):
        changes = changes_from(ServerUpdate, data, "server")
        with self._lock:
            existing = self._require_server(server_pk)
            if "location_id" in changes:
                self._require_location(changes["location_id"])
            if changes.get("model_id") is not None:
                self._require_model(changes["model_id"])

            new_status = resolve_transition(existing.status, changes.pop("status", None))
            changed = {k for k, v in changes.items() if getattr(existing, k) != v}
            updated = existing.model_copy(update={**changes, "status": new_status, "updated_at": utcnow()})

            if new_status != existing.status:
                entry = self._build_activity(activity.status_changed(updated, existing.status, new_status, user_id))
            else:
                entry = self._build_activity(activity.server_edited(updated, changed, user_id))

            self._servers[server_pk] = updated
            self._activities.append(entry)
            return self._copy(updated)

    def delete_server(self, server_pk: int, user_id: Optional[int] = None) -> bool:
        with self._lock:
            server = self._servers.get(server_pk)
            if server is None:
                return False
            entry = self._build_activity(activity.server_deleted(server, user_id))

            del self._servers[server_pk]
            for table in (self._notes, self._transfers, self._details):
                for row_id in [k for k, v in table.items() if v.server_id == server_pk]:
                    del table[row_id]
            self._activities.append(entry)
            log.info(f"Server {server.server_id} deleted (id={server_pk})")
            return True

    # ------------------------------------------------------------------
    # Notes
    # ------------------------------------------------------------------

    def get_server_notes(self, server_pk: int, include_deleted: bool = False) -> list:
        with self._lock:
            notes = [
                n for n in self._notes.values()
                if n.server_id == server_pk and (include_deleted or not n.is_deleted)
            ]
            return [self._copy(n) for n in newest_first(notes)]

    def get_server_note(self, note_id: int):
        with self._lock:
            return self._copy(self._notes.get(note_id))

    def add_server_note(self, data):
        payload = coerce(NoteCreate, data)
        with self._lock:
            server = self._require_server(payload.server_id)
            note = NoteResponse(id=self._next_id("server_notes"), created_at=utcnow(), **payload.model_dump())
            entry = self._build_activity(activity.note_added(server, note))

            self._notes[note.id] = note
            self._activities.append(entry)
            return self._copy(note)

    def update_server_note(self, note_id: int, data):
        payload = coerce(NoteUpdate, data)
        with self._lock:
            existing = self._notes.get(note_id)
            if existing is None or existing.is_deleted:
                raise NotFound(f"Note {note_id} not found")
            updated = existing.model_copy(update={
                "note": payload.note,
                "updated_at": utcnow(),
                "updated_by": payload.updated_by,
            })
            entry = self._build_activity(
                activity.note_updated(self._servers.get(existing.server_id), updated, payload.updated_by)
            )

            self._notes[note_id] = updated
            self._activities.append(entry)
            return self._copy(updated)

    def delete_server_note(self, note_id: int, user_id: Optional[int] = None) -> bool:
        with self._lock:
            existing = self._notes.get(note_id)
            if existing is None or existing.is_deleted:
                return False
            updated = existing.model_copy(update={"is_deleted": True, "updated_at": utcnow(), "updated_by": user_id})
            entry = self._build_activity(
                activity.note_deleted(self._servers.get(existing.server_id), existing, user_id)
            )

            self._notes[note_id] = updated
            self._activities.append(entry)
            return True

    # ------------------------------------------------------------------
    # Transfers
    # ------------------------------------------------------------------

    def get_server_transfers(self, server_pk: int) -> list:
        with self._lock:
            transfers = [t for t in self._transfers.values() if t.server_id == server_pk]
            return [self._copy(t) for t in newest_first(transfers)]

    def get_all_transfers(self) -> list:
        with self._lock:
            return [self._copy(t) for t in newest_first(self._transfers.values())]

    def create_transfer(self, data):
        payload = coerce(TransferCreate, data)
        with self._lock:
            server = self._require_server(payload.server_id)
            to_location = self._require_location(payload.to_location_id)
            from_location_id = payload.from_location_id if payload.from_location_id is not None else server.location_id
            if from_location_id != server.location_id:
                raise ValidationError(
                    f"Server {server.server_id} is at location {server.location_id}, not {from_location_id}"
                )
            if to_location.id == from_location_id:
                raise ValidationError(f"Server {server.server_id} is already at location {to_location.name}")
            from_location = self._locations.get(from_location_id)

            now = utcnow()
            transfer = TransferResponse(
                id=self._next_id("server_transfers"),
                server_id=server.id,
                from_location_id=from_location_id,
                to_location_id=to_location.id,
                transferred_by=payload.transferred_by,
                transfer_date=payload.transfer_date or now,
                notes=payload.notes,
                created_at=now,
            )
            moved = server.model_copy(update={
                "location_id": to_location.id,
                "status": resolve_transition(server.status, None, via_transfer=True),
                "updated_at": now,
            })
            entry = self._build_activity(
                activity.transfer_started(moved, from_location, to_location, payload.transferred_by)
            )

            self._transfers[transfer.id] = transfer
            self._servers[server.id] = moved
            self._activities.append(entry)
            log.info(f"Server {server.server_id} transferred {from_location_id} -> {to_location.id}")
            return self._copy(transfer)

    # ------------------------------------------------------------------
    # Virtual machine details
    # ------------------------------------------------------------------

    def get_server_details(self, server_pk: int) -> list:
        with self._lock:
            details = [d for d in self._details.values() if d.server_id == server_pk]
            return [self._copy(d) for d in sorted(details, key=lambda d: d.id)]

    def get_server_detail(self, detail_id: int):
        with self._lock:
            return self._copy(self._details.get(detail_id))

    def add_server_detail(self, data, user_id: Optional[int] = None):
        payload = coerce(DetailCreate, data)
        with self._lock:
            self._require_server(payload.server_id)
            now = utcnow()
            detail = DetailResponse(id=self._next_id("server_details"), created_at=now, updated_at=now, **payload.model_dump())
            entry = self._build_activity(activity.vm_added(detail, user_id))

            self._details[detail.id] = detail
            self._activities.append(entry)
            return self._copy(detail)

    def update_server_detail(self, detail_id: int, data, user_id: Optional[int] = None):
        changes = changes_from(DetailUpdate, data, "detail")
        with self._lock:
            existing = self._details.get(detail_id)
            if existing is None:
                raise NotFound(f"Server detail {detail_id} not found")
            updated = existing.model_copy(update={**changes, "updated_at": utcnow()})
            entry = self._build_activity(activity.vm_updated(updated, user_id))

            self._details[detail_id] = updated
            self._activities.append(entry)
            return self._copy(updated)

    def delete_server_detail(self, detail_id: int, user_id: Optional[int] = None) -> bool:
        with self._lock:
            existing = self._details.get(detail_id)
            if existing is None:
                return False
            entry = self._build_activity(activity.vm_deleted(existing, user_id))

            del self._details[detail_id]
            self._activities.append(entry)
            return True

    # ------------------------------------------------------------------
    # Activities
    # ------------------------------------------------------------------

    def get_all_activities(self, limit: Optional[int] = None) -> list:
        with self._lock:
            return [self._copy(a) for a in newest_first(self._activities, limit)]

    def get_server_activities(self, server_pk: int) -> list:
        with self._lock:
            return [self._copy(a) for a in newest_first(a for a in self._activities if a.server_id == server_pk)]

    def add_activity(self, data):
        payload = coerce(ActivityCreate, data)
        with self._lock:
            entry = self._build_activity(payload)
            self._activities.append(entry)
            return self._copy(entry)

    # ------------------------------------------------------------------
    # Aggregates / health
    # ------------------------------------------------------------------

    def get_server_stats(self):
        with self._lock:
            return compute_stats(self._servers.values())

    def ping(self) -> bool:
        return True
