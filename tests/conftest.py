"""
Server inventory test suite: shared fixtures.

Everything runs in-process. The `storage` fixture is parametrised over both
backends, so any test that takes it runs once against InMemoryStorage and
once against DatabaseStorage on a private in-memory SQLite database.

Run:
    pytest tests/ -v
"""

import sys
from pathlib import Path

import pytest

BACKEND_DIR = Path(__file__).resolve().parents[1] / "backend"
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from core.base import LocationType  # noqa: E402
from core.db import create_db_engine  # noqa: E402
from modules.inventory.storage.database import DatabaseStorage  # noqa: E402
from modules.inventory.storage.memory import InMemoryStorage  # noqa: E402


# ---------------------------------------------------------------------------
# Backends
# ---------------------------------------------------------------------------

def make_memory_storage():
    return InMemoryStorage()


def make_database_storage(url="sqlite:///:memory:", encryption_key=None):
    return DatabaseStorage(create_db_engine(url), encryption_key=encryption_key)


@pytest.fixture(params=["memory", "database"])
def storage(request):
    """One fresh backend per test, of each kind."""
    if request.param == "memory":
        yield make_memory_storage()
    else:
        backend = make_database_storage()
        yield backend
        backend.engine.dispose()


@pytest.fixture
def db_storage():
    backend = make_database_storage()
    yield backend
    backend.engine.dispose()


# ---------------------------------------------------------------------------
# Reference data
# ---------------------------------------------------------------------------

@pytest.fixture
def depot(storage):
    return storage.create_location({"name": "Ankara Depot", "type": LocationType.DEPOT, "capacity": 5})


@pytest.fixture
def office(storage):
    return storage.create_location({"name": "Istanbul Office", "type": LocationType.OFFICE, "capacity": 5})


@pytest.fixture
def dell(storage):
    return storage.create_server_model({
        "brand": "Dell",
        "name": "PowerEdge R740",
        "specs": "2x Xeon Gold 6230, 128GB RAM",
    })


@pytest.fixture
def make_server(storage, depot):
    """Factory: create a server at the depot (or elsewhere) with sensible defaults."""
    counter = {"n": 0}

    def _make(**overrides):
        user_id = overrides.pop("user_id", 1)
        counter["n"] += 1
        data = {
            "server_id": f"MANUAL-{counter['n']:03d}",
            "model": "Dell PowerEdge R740",
            "specs": "2x Xeon Gold 6230, 128GB RAM",
            "location_id": depot.id,
            "status": "active",
        }
        data.update(overrides)
        return storage.create_server(data, user_id=user_id)

    return _make
