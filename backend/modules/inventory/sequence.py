"""
Server identifier generation: SRV-<year>-<seq>.

The numeric part comes from a monotonic counter owned by the storage backend:
a lock-guarded integer for the memory backend, a row in id_sequences for the
database backend (incremented inside the caller's transaction, so it survives
restarts). The counter never resets per year.

The database counter is transactional with the rows it numbers: values drawn
in a transaction that rolls back are returned and handed out again by the next
committed write. A value that reached a committed server is never reissued.
The memory counter does not roll back, so a failed memory batch leaves a gap.
"""

import logging
import threading
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from core.base import utcnow
from modules.inventory.models import IdSequence

log = logging.getLogger("inventory.sequence")

SERVER_ID_SEQUENCE = "server_id_seq"


def format_server_id(value: int, prefix: str = "SRV", width: int = 3, year: Optional[int] = None) -> str:
    """Render a sequence value, e.g. format_server_id(7, year=2026) -> 'SRV-2026-007'."""
    if value < 1:
        raise ValueError(f"Sequence values start at 1, got {value}")
    year = year if year is not None else utcnow().year
    return f"{prefix}-{year}-{value:0{width}d}"


def generate_server_ids(
    next_value: Callable[[], int],
    is_taken: Callable[[str], bool],
    count: int,
    prefix: str = "SRV",
    width: int = 3,
    year: Optional[int] = None,
) -> List[str]:
    """Draw `count` identifiers from the counter, skipping any already in use.

    A skipped value is consumed, never handed out again.
    """
    year = year if year is not None else utcnow().year
    ids: List[str] = []
    while len(ids) < count:
        candidate = format_server_id(next_value(), prefix=prefix, width=width, year=year)
        if candidate in ids or is_taken(candidate):
            log.warning(f"Generated server id {candidate} already exists, skipping")
            continue
        ids.append(candidate)
    return ids


class InMemorySequence:
    """Process-local counter. Thread-safe; values are never reused."""

    def __init__(self, start: int = 1):
        self._next = start
        self._lock = threading.Lock()

    def next_value(self) -> int:
        with self._lock:
            value = self._next
            self._next += 1
            return value

    @property
    def current(self) -> int:
        """Last value handed out (0 if none)."""
        with self._lock:
            return self._next - 1


class DatabaseSequence:
    """Counter persisted in the id_sequences table.

    next_value() must be called inside the caller's transaction: the row is
    locked (SELECT ... FOR UPDATE where the dialect supports it) until that
    transaction ends, so concurrent batches cannot draw the same value.
    """

    def __init__(self, name: str = SERVER_ID_SEQUENCE):
        self.name = name

    def ensure(self, session: Session) -> None:
        """Create the counter row if it does not exist yet."""
        if session.get(IdSequence, self.name) is None:
            session.add(IdSequence(name=self.name, value=0))
            session.flush()

    def next_value(self, session: Session) -> int:
        row = (
            session.query(IdSequence)
            .filter(IdSequence.name == self.name)
            .with_for_update()
            .first()
        )
        if row is None:
            row = IdSequence(name=self.name, value=0)
            session.add(row)
        row.value += 1
        session.flush()
        return row.value

    def current(self, session: Session) -> int:
        row = session.get(IdSequence, self.name)
        return row.value if row is not None else 0
