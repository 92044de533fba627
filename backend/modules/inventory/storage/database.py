"""
SQLAlchemy storage backend.

Each public method is one unit of work: a session opened from the factory,
a single transaction, and the activity row for the mutation added to that
same transaction. Either both commit or neither does.

Driver errors never leave this module raw. Unique-constraint violations
become DuplicateIdentifier, lost or unreachable connections become
ConnectionFailure.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Optional

from sqlalchemy import func
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError, IntegrityError, InterfaceError, OperationalError

from core.auth import hash_password, verify_password
from core.base import ServerStatus, utcnow
from core.crypto import decrypt, encrypt, get_fernet
from core.db import check_connection, init_schema, make_session_factory
from core.errors import (
    ConnectionFailure, ConstraintViolation, DuplicateIdentifier, NotFound, ReferentialConflict,
    ValidationError,
)
from core.interfaces.storage import InventoryStorage
from modules.inventory import activity
from modules.inventory.models import (
    Activity, Location, Server, ServerDetail, ServerModel, ServerNote, ServerTransfer, User,
)
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
from modules.inventory.sequence import DatabaseSequence, generate_server_ids
from modules.inventory.storage.common import (
    changes_from, check_batch_quantity, check_capacity, coerce,
    compute_location_summary, compute_stats, model_display_name,
)
from modules.inventory.transitions import resolve_transition

log = logging.getLogger("inventory.storage")

# SQLite: "UNIQUE constraint failed", PostgreSQL: "duplicate key", MySQL: "Duplicate entry"
_UNIQUE_SQLSTATE = "23505"


def _is_unique_violation(exc: IntegrityError) -> bool:
    if getattr(exc.orig, "pgcode", None) == _UNIQUE_SQLSTATE:
        return True
    message = str(exc.orig).lower()
    return "unique constraint" in message or "duplicate" in message


class DatabaseStorage(InventoryStorage):
    """Durable backend over any SQLAlchemy engine (SQLite by default)."""

    backend_name = "database"

    def __init__(
        self,
        engine: Engine,
        encryption_key: Optional[str] = None,
        server_id_prefix: str = "SRV",
        server_id_width: int = 3,
        create_schema: bool = True,
    ):
        self.engine = engine
        self.server_id_prefix = server_id_prefix
        self.server_id_width = server_id_width
        self._session_factory = make_session_factory(engine)
        self._fernet = get_fernet(encryption_key)
        self._sequence = DatabaseSequence()
        # SQLite ignores FOR UPDATE; batches from this process queue here instead
        self._batch_lock = threading.Lock()

        if create_schema:
            init_schema(engine)
            with self._unit_of_work() as session:
                self._sequence.ensure(session)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @contextmanager
    def _unit_of_work(self):
        session = self._session_factory()
        try:
            with session.begin():
                yield session
        except IntegrityError as exc:
            if _is_unique_violation(exc):
                log.warning(f"Unique constraint hit, transaction rolled back: {exc.orig}")
                raise DuplicateIdentifier(f"Record conflicts with an existing one: {exc.orig}") from exc
            log.error(f"Constraint violation, transaction rolled back: {exc.orig}", exc_info=True)
            raise ConstraintViolation(f"Write rejected by the database: {exc.orig}") from exc
        except (OperationalError, InterfaceError) as exc:
            log.error(f"Database unavailable: {exc.orig}", exc_info=True)
            raise ConnectionFailure(f"Database unavailable: {exc.orig}") from exc
        except DBAPIError as exc:
            if exc.connection_invalidated:
                log.error(f"Database connection lost: {exc.orig}", exc_info=True)
                raise ConnectionFailure(f"Database connection lost: {exc.orig}") from exc
            raise
        finally:
            session.close()

    def _record(self, session, data: ActivityCreate) -> Activity:
        row = Activity(created_at=utcnow(), **data.model_dump())
        session.add(row)
        session.flush()
        return row

    def _server_out(self, row: Server) -> ServerResponse:
        out = ServerResponse.model_validate(row)
        out.password = decrypt(out.password, self._fernet)
        return out

    def _detail_out(self, row: ServerDetail) -> DetailResponse:
        out = DetailResponse.model_validate(row)
        out.password = decrypt(out.password, self._fernet)
        return out

    @staticmethod
    def _require(session, model, pk: int, label: str):
        row = session.get(model, pk)
        if row is None:
            raise NotFound(f"{label} {pk} not found")
        return row

    @staticmethod
    def _server_id_taken(session, server_id: str) -> bool:
        return session.query(Server.id).filter(Server.server_id == server_id).first() is not None

    @staticmethod
    def _count_at(session, location_id: int) -> int:
        return session.query(func.count(Server.id)).filter(Server.location_id == location_id).scalar() or 0

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def get_all_users(self) -> list:
        with self._unit_of_work() as session:
            return [UserResponse.model_validate(u) for u in session.query(User).order_by(User.id).all()]

    def get_user_by_id(self, user_id: int):
        with self._unit_of_work() as session:
            row = session.get(User, user_id)
            return UserResponse.model_validate(row) if row else None

    def get_user_by_username(self, username: str):
        with self._unit_of_work() as session:
            row = session.query(User).filter(User.username == username).first()
            return UserResponse.model_validate(row) if row else None

    def create_user(self, data):
        payload = coerce(UserCreate, data)
        with self._unit_of_work() as session:
            if session.query(User.id).filter(User.username == payload.username).first():
                raise DuplicateIdentifier(f"Username '{payload.username}' already exists")
            row = User(
                password=hash_password(payload.password),
                created_at=utcnow(),
                **payload.model_dump(exclude={"password"}),
            )
            session.add(row)
            session.flush()
            log.info(f"User {row.username} created (id={row.id})")
            return UserResponse.model_validate(row)

    def update_user(self, user_id: int, data):
        changes = changes_from(UserUpdate, data, "user")
        with self._unit_of_work() as session:
            row = self._require(session, User, user_id, "User")
            new_username = changes.get("username")
            if new_username and new_username != row.username:
                if session.query(User.id).filter(User.username == new_username).first():
                    raise DuplicateIdentifier(f"Username '{new_username}' already exists")
            password = changes.pop("password", None)
            for key, value in changes.items():
                setattr(row, key, value)
            if password:
                row.password = hash_password(password)
            session.flush()
            return UserResponse.model_validate(row)

    def delete_user(self, user_id: int, requested_by: Optional[int] = None) -> bool:
        if requested_by is not None and requested_by == user_id:
            raise ValidationError("Users cannot delete their own account")
        with self._unit_of_work() as session:
            row = session.get(User, user_id)
            if row is None:
                return False
            session.delete(row)
            log.info(f"User {user_id} deleted")
            return True

    def verify_user_password(self, username: str, password: str):
        with self._unit_of_work() as session:
            row = session.query(User).filter(User.username == username).first()
            if row is None or not row.is_active:
                return None
            if not verify_password(password, row.password):
                return None
            return UserResponse.model_validate(row)

    # ------------------------------------------------------------------
    # Locations
    # ------------------------------------------------------------------

    def get_all_locations(self) -> list:
        with self._unit_of_work() as session:
            return [LocationResponse.model_validate(l) for l in session.query(Location).order_by(Location.id).all()]

    def get_location_by_id(self, location_id: int):
        with self._unit_of_work() as session:
            row = session.get(Location, location_id)
            return LocationResponse.model_validate(row) if row else None

    def create_location(self, data):
        payload = coerce(LocationCreate, data)
        with self._unit_of_work() as session:
            row = Location(created_at=utcnow(), **payload.model_dump())
            session.add(row)
            session.flush()
            log.info(f"Location {row.name} created (id={row.id})")
            return LocationResponse.model_validate(row)

    def update_location(self, location_id: int, data):
        changes = changes_from(LocationUpdate, data, "location")
        with self._unit_of_work() as session:
            row = self._require(session, Location, location_id, "Location")
            for key, value in changes.items():
                setattr(row, key, value)
            session.flush()
            return LocationResponse.model_validate(row)

    def delete_location(self, location_id: int) -> bool:
        with self._unit_of_work() as session:
            row = session.get(Location, location_id)
            if row is None:
                return False
            in_use = self._count_at(session, location_id)
            if in_use:
                raise ReferentialConflict(f"Location {location_id} still holds {in_use} server(s)")
            session.delete(row)
            log.info(f"Location {location_id} deleted")
            return True

    def get_servers_by_location(self, location_id: int) -> list:
        with self._unit_of_work() as session:
            rows = session.query(Server).filter(Server.location_id == location_id).order_by(Server.id).all()
            return [self._server_out(r) for r in rows]

    def get_location_summary(self) -> list:
        with self._unit_of_work() as session:
            locations = session.query(Location).all()
            placements = session.query(Server.location_id).all()
            return compute_location_summary(locations, placements)

    # ------------------------------------------------------------------
    # Server models
    # ------------------------------------------------------------------

    def get_all_server_models(self) -> list:
        with self._unit_of_work() as session:
            rows = session.query(ServerModel).order_by(ServerModel.id).all()
            return [ServerModelResponse.model_validate(m) for m in rows]

    def get_server_model_by_id(self, model_id: int):
        with self._unit_of_work() as session:
            row = session.get(ServerModel, model_id)
            return ServerModelResponse.model_validate(row) if row else None

    def create_server_model(self, data):
        payload = coerce(ServerModelCreate, data)
        with self._unit_of_work() as session:
            row = ServerModel(created_at=utcnow(), **payload.model_dump())
            session.add(row)
            session.flush()
            log.info(f"Server model {model_display_name(row)} created (id={row.id})")
            return ServerModelResponse.model_validate(row)

    def update_server_model(self, model_id: int, data):
        changes = changes_from(ServerModelUpdate, data, "model")
        with self._unit_of_work() as session:
            row = self._require(session, ServerModel, model_id, "Server model")
            for key, value in changes.items():
                setattr(row, key, value)
            session.flush()
            return ServerModelResponse.model_validate(row)

    def delete_server_model(self, model_id: int) -> bool:
        with self._unit_of_work() as session:
            row = session.get(ServerModel, model_id)
            if row is None:
                return False
            in_use = session.query(func.count(Server.id)).filter(Server.model_id == model_id).scalar()
            if in_use:
                raise ReferentialConflict(f"Server model {model_id} is used by {in_use} server(s)")
            session.delete(row)
            log.info(f"Server model {model_id} deleted")
            return True

    # ------------------------------------------------------------------
    # Servers
    # ------------------------------------------------------------------

    def get_all_servers(self) -> list:
        with self._unit_of_work() as session:
            return [self._server_out(s) for s in session.query(Server).order_by(Server.id).all()]

    def get_server_by_id(self, server_pk: int):
        with self._unit_of_work() as session:
            row = session.get(Server, server_pk)
            return self._server_out(row) if row else None

    def get_server_by_server_id(self, server_id: str):
        with self._unit_of_work() as session:
            row = session.query(Server).filter(Server.server_id == server_id).first()
            return self._server_out(row) if row else None

    def create_server(self, data, user_id: Optional[int] = None):
        payload = coerce(ServerCreate, data)
        with self._unit_of_work() as session:
            if self._server_id_taken(session, payload.server_id):
                log.warning(f"Rejected duplicate server id {payload.server_id}")
                raise DuplicateIdentifier(f"Server ID '{payload.server_id}' already exists")
            self._require(session, Location, payload.location_id, "Location")
            if payload.model_id is not None:
                self._require(session, ServerModel, payload.model_id, "Server model")

            now = utcnow()
            values = payload.model_dump()
            values["password"] = encrypt(values["password"], self._fernet)
            row = Server(created_at=now, updated_at=now, **values)
            session.add(row)
            session.flush()
            self._record(session, activity.server_added(row, user_id))
            log.info(f"Server {row.server_id} created (id={row.id})")
            return self._server_out(row)

    def create_batch_servers(self, model_id: int, location_id: int, quantity: int, status, user_id: Optional[int] = None) -> list:
        check_batch_quantity(quantity)
        try:
            status = ServerStatus.normalize(status)
        except ValueError:
            raise ValidationError(f"Invalid server status: {status!r}")
        with self._batch_lock, self._unit_of_work() as session:
            model = self._require(session, ServerModel, model_id, "Server model")
            location = self._require(session, Location, location_id, "Location")
            check_capacity(location, self._count_at(session, location_id), quantity)

            server_ids = generate_server_ids(
                lambda: self._sequence.next_value(session),
                lambda sid: self._server_id_taken(session, sid),
                quantity,
                prefix=self.server_id_prefix,
                width=self.server_id_width,
            )
            display = model_display_name(model)
            rows = []
            for server_id in server_ids:
                now = utcnow()
                rows.append(Server(
                    server_id=server_id,
                    model=display,
                    model_id=model.id,
                    specs=model.specs,
                    location_id=location_id,
                    status=status,
                    created_at=now,
                    updated_at=now,
                ))
            session.add_all(rows)
            session.flush()
            for row in rows:
                self._record(session, activity.batch_server_added(row, display, user_id))
            log.info(f"Batch created {len(rows)} x {display} at location {location_id}: {server_ids}")
            return [self._server_out(r) for r in rows]

    def update_server(self, server_pk: int, data, user_id: Optional[int] = None):
        changes = changes_from(ServerUpdate, data, "server")
        with self._unit_of_work() as session:
            row = self._require(session, Server, server_pk, "Server")
            if "location_id" in changes:
                self._require(session, Location, changes["location_id"], "Location")
            if changes.get("model_id") is not None:
                self._require(session, ServerModel, changes["model_id"], "Server model")

            old_status = row.status
            new_status = resolve_transition(old_status, changes.pop("status", None))
            changed = set()
            for key, value in changes.items():
                current = getattr(row, key)
                if key == "password":
                    current = decrypt(current, self._fernet)
                    value_to_store = encrypt(value, self._fernet)
                else:
                    value_to_store = value
                if current != value:
                    changed.add(key)
                setattr(row, key, value_to_store)
            row.status = new_status
            row.updated_at = utcnow()
            session.flush()

            if new_status != old_status:
                self._record(session, activity.status_changed(row, old_status, new_status, user_id))
            else:
                self._record(session, activity.server_edited(row, changed, user_id))
            return self._server_out(row)

    def delete_server(self, server_pk: int, user_id: Optional[int] = None) -> bool:
        with self._unit_of_work() as session:
            row = session.get(Server, server_pk)
            if row is None:
                return False
            entry = activity.server_deleted(row, user_id)
            label = row.server_id
            # Notes, transfers and VM details go with it (delete-orphan cascade)
            session.delete(row)
            session.flush()
            self._record(session, entry)
            log.info(f"Server {label} deleted (id={server_pk})")
            return True

    # ------------------------------------------------------------------
    # Notes
    # ------------------------------------------------------------------

    def get_server_notes(self, server_pk: int, include_deleted: bool = False) -> list:
        with self._unit_of_work() as session:
            query = session.query(ServerNote).filter(ServerNote.server_id == server_pk)
            if not include_deleted:
                query = query.filter(ServerNote.is_deleted.is_(False))
            rows = query.order_by(ServerNote.created_at.desc(), ServerNote.id.desc()).all()
            return [NoteResponse.model_validate(n) for n in rows]

    def get_server_note(self, note_id: int):
        with self._unit_of_work() as session:
            row = session.get(ServerNote, note_id)
            return NoteResponse.model_validate(row) if row else None

    def add_server_note(self, data):
        payload = coerce(NoteCreate, data)
        with self._unit_of_work() as session:
            server = self._require(session, Server, payload.server_id, "Server")
            row = ServerNote(created_at=utcnow(), **payload.model_dump())
            session.add(row)
            session.flush()
            self._record(session, activity.note_added(server, row))
            return NoteResponse.model_validate(row)

    def update_server_note(self, note_id: int, data):
        payload = coerce(NoteUpdate, data)
        with self._unit_of_work() as session:
            row = session.get(ServerNote, note_id)
            if row is None or row.is_deleted:
                raise NotFound(f"Note {note_id} not found")
            row.note = payload.note
            row.updated_at = utcnow()
            row.updated_by = payload.updated_by
            session.flush()
            self._record(session, activity.note_updated(session.get(Server, row.server_id), row, payload.updated_by))
            return NoteResponse.model_validate(row)

    def delete_server_note(self, note_id: int, user_id: Optional[int] = None) -> bool:
        with self._unit_of_work() as session:
            row = session.get(ServerNote, note_id)
            if row is None or row.is_deleted:
                return False
            row.is_deleted = True
            row.updated_at = utcnow()
            row.updated_by = user_id
            session.flush()
            self._record(session, activity.note_deleted(session.get(Server, row.server_id), row, user_id))
            return True

    # ------------------------------------------------------------------
    # Transfers
    # ------------------------------------------------------------------

    def get_server_transfers(self, server_pk: int) -> list:
        with self._unit_of_work() as session:
            rows = (
                session.query(ServerTransfer)
                .filter(ServerTransfer.server_id == server_pk)
                .order_by(ServerTransfer.created_at.desc(), ServerTransfer.id.desc())
                .all()
            )
            return [TransferResponse.model_validate(t) for t in rows]

    def get_all_transfers(self) -> list:
        with self._unit_of_work() as session:
            rows = (
                session.query(ServerTransfer)
                .order_by(ServerTransfer.created_at.desc(), ServerTransfer.id.desc())
                .all()
            )
            return [TransferResponse.model_validate(t) for t in rows]

    def create_transfer(self, data):
        payload = coerce(TransferCreate, data)
        with self._unit_of_work() as session:
            server = self._require(session, Server, payload.server_id, "Server")
            to_location = self._require(session, Location, payload.to_location_id, "Location")
            from_location_id = payload.from_location_id if payload.from_location_id is not None else server.location_id
            if from_location_id != server.location_id:
                raise ValidationError(
                    f"Server {server.server_id} is at location {server.location_id}, not {from_location_id}"
                )
            if to_location.id == from_location_id:
                raise ValidationError(f"Server {server.server_id} is already at location {to_location.name}")
            from_location = session.get(Location, from_location_id)

            now = utcnow()
            row = ServerTransfer(
                server_id=server.id,
                from_location_id=from_location_id,
                to_location_id=to_location.id,
                transferred_by=payload.transferred_by,
                transfer_date=payload.transfer_date or now,
                notes=payload.notes,
                created_at=now,
            )
            session.add(row)
            server.location_id = to_location.id
            server.status = resolve_transition(server.status, None, via_transfer=True)
            server.updated_at = now
            session.flush()
            self._record(session, activity.transfer_started(server, from_location, to_location, payload.transferred_by))
            log.info(f"Server {server.server_id} transferred {from_location_id} -> {to_location.id}")
            return TransferResponse.model_validate(row)

    # ------------------------------------------------------------------
    # Virtual machine details
    # ------------------------------------------------------------------

    def get_server_details(self, server_pk: int) -> list:
        with self._unit_of_work() as session:
            rows = (
                session.query(ServerDetail)
                .filter(ServerDetail.server_id == server_pk)
                .order_by(ServerDetail.id)
                .all()
            )
            return [self._detail_out(d) for d in rows]

    def get_server_detail(self, detail_id: int):
        with self._unit_of_work() as session:
            row = session.get(ServerDetail, detail_id)
            return self._detail_out(row) if row else None

    def add_server_detail(self, data, user_id: Optional[int] = None):
        payload = coerce(DetailCreate, data)
        with self._unit_of_work() as session:
            self._require(session, Server, payload.server_id, "Server")
            now = utcnow()
            values = payload.model_dump()
            values["password"] = encrypt(values["password"], self._fernet)
            row = ServerDetail(created_at=now, updated_at=now, **values)
            session.add(row)
            session.flush()
            self._record(session, activity.vm_added(row, user_id))
            return self._detail_out(row)

    def update_server_detail(self, detail_id: int, data, user_id: Optional[int] = None):
        changes = changes_from(DetailUpdate, data, "detail")
        with self._unit_of_work() as session:
            row = self._require(session, ServerDetail, detail_id, "Server detail")
            if "password" in changes:
                changes["password"] = encrypt(changes["password"], self._fernet)
            for key, value in changes.items():
                setattr(row, key, value)
            row.updated_at = utcnow()
            session.flush()
            self._record(session, activity.vm_updated(row, user_id))
            return self._detail_out(row)

    def delete_server_detail(self, detail_id: int, user_id: Optional[int] = None) -> bool:
        with self._unit_of_work() as session:
            row = session.get(ServerDetail, detail_id)
            if row is None:
                return False
            entry = activity.vm_deleted(row, user_id)
            session.delete(row)
            session.flush()
            self._record(session, entry)
            return True

    # ------------------------------------------------------------------
    # Activities
    # ------------------------------------------------------------------

    def get_all_activities(self, limit: Optional[int] = None) -> list:
        with self._unit_of_work() as session:
            query = session.query(Activity).order_by(Activity.created_at.desc(), Activity.id.desc())
            if limit:
                query = query.limit(limit)
            return [ActivityResponse.model_validate(a) for a in query.all()]

    def get_server_activities(self, server_pk: int) -> list:
        with self._unit_of_work() as session:
            rows = (
                session.query(Activity)
                .filter(Activity.server_id == server_pk)
                .order_by(Activity.created_at.desc(), Activity.id.desc())
                .all()
            )
            return [ActivityResponse.model_validate(a) for a in rows]

    def add_activity(self, data):
        payload = coerce(ActivityCreate, data)
        with self._unit_of_work() as session:
            return ActivityResponse.model_validate(self._record(session, payload))

    # ------------------------------------------------------------------
    # Aggregates / health
    # ------------------------------------------------------------------

    def get_server_stats(self):
        with self._unit_of_work() as session:
            return compute_stats(session.query(Server.status).all())

    def ping(self) -> bool:
        if not check_connection(self.engine):
            raise ConnectionFailure("Database did not answer SELECT 1")
        return True
