"""
Unit tests for modules/inventory/sequence.py: identifier formatting, generation
with collision skipping, and both counter implementations.

Run:
    pytest tests/test_sequence.py -v
"""

import threading

import pytest

from core.db import create_db_engine, init_schema, make_session_factory
from modules.inventory.sequence import (
    DatabaseSequence, InMemorySequence, format_server_id, generate_server_ids,
)


class TestFormatServerId:
    def test_zero_padded(self):
        assert format_server_id(7, year=2026) == "SRV-2026-007"

    def test_width_and_prefix(self):
        assert format_server_id(42, prefix="DC", width=5, year=2025) == "DC-2025-00042"

    def test_overflows_width_without_truncating(self):
        assert format_server_id(1234, year=2026) == "SRV-2026-1234"

    def test_defaults_to_current_year(self):
        from core.base import utcnow
        assert format_server_id(1).startswith(f"SRV-{utcnow().year}-")

    @pytest.mark.parametrize("value", [0, -3])
    def test_values_start_at_one(self, value):
        with pytest.raises(ValueError):
            format_server_id(value, year=2026)


class TestGenerateServerIds:
    def test_consecutive(self):
        seq = InMemorySequence()
        ids = generate_server_ids(seq.next_value, lambda _: False, 3, year=2026)
        assert ids == ["SRV-2026-001", "SRV-2026-002", "SRV-2026-003"]

    def test_skips_taken_and_consumes_them(self):
        seq = InMemorySequence()
        taken = {"SRV-2026-002", "SRV-2026-003"}
        ids = generate_server_ids(seq.next_value, taken.__contains__, 2, year=2026)
        assert ids == ["SRV-2026-001", "SRV-2026-004"]
        assert seq.current == 4


class TestInMemorySequence:
    def test_starts_at_one(self):
        seq = InMemorySequence()
        assert seq.current == 0
        assert seq.next_value() == 1
        assert seq.current == 1

    def test_custom_start(self):
        assert InMemorySequence(start=100).next_value() == 100

    def test_thread_safe(self):
        seq = InMemorySequence()
        drawn = []
        lock = threading.Lock()

        def worker():
            values = [seq.next_value() for _ in range(200)]
            with lock:
                drawn.extend(values)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(drawn) == 1600
        assert len(set(drawn)) == 1600
        assert seq.current == 1600


class TestDatabaseSequence:
    @pytest.fixture
    def session_factory(self):
        engine = create_db_engine("sqlite:///:memory:")
        init_schema(engine)
        yield make_session_factory(engine)
        engine.dispose()

    def test_increments_and_persists(self, session_factory):
        seq = DatabaseSequence()
        with session_factory() as session, session.begin():
            seq.ensure(session)
            assert seq.current(session) == 0
            assert seq.next_value(session) == 1
            assert seq.next_value(session) == 2

        with session_factory() as session:
            assert seq.current(session) == 2

    def test_rolled_back_draws_are_not_kept(self, session_factory):
        seq = DatabaseSequence()
        with session_factory() as session, session.begin():
            seq.ensure(session)

        session = session_factory()
        session.begin()
        assert seq.next_value(session) == 1
        session.rollback()
        session.close()

        with session_factory() as session, session.begin():
            assert seq.next_value(session) == 1

    def test_creates_row_on_first_draw(self, session_factory):
        seq = DatabaseSequence(name="other_seq")
        with session_factory() as session, session.begin():
            assert seq.next_value(session) == 1
