"""
Users, locations, server models, the activity feed and first-run seeding,
against both storage backends.
"""

import pytest

from core.base import ActivityType, LocationType, UserRole
from core.errors import DuplicateIdentifier, NotFound, ReferentialConflict, ValidationError
from modules.inventory.seed import seed_defaults


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

class TestUsers:
    def test_create_hides_password(self, storage):
        user = storage.create_user({"username": "ayse", "password": "s3cret", "full_name": "Ayse K."})
        assert user.username == "ayse"
        assert user.role == UserRole.USER
        assert user.is_active is True
        assert "password" not in user.model_dump()

    def test_verify_password(self, storage):
        storage.create_user({"username": "ayse", "password": "s3cret"})
        assert storage.verify_user_password("ayse", "s3cret").username == "ayse"
        assert storage.verify_user_password("ayse", "wrong") is None
        assert storage.verify_user_password("nobody", "s3cret") is None

    def test_inactive_user_cannot_verify(self, storage):
        storage.create_user({"username": "old", "password": "pw", "is_active": False})
        assert storage.verify_user_password("old", "pw") is None

    def test_duplicate_username(self, storage):
        storage.create_user({"username": "ayse", "password": "a"})
        with pytest.raises(DuplicateIdentifier):
            storage.create_user({"username": "ayse", "password": "b"})
        assert len(storage.get_all_users()) == 1

    def test_update_rehashes_password(self, storage):
        user = storage.create_user({"username": "ayse", "password": "first"})
        updated = storage.update_user(user.id, {"password": "second", "role": "admin"})
        assert updated.role == UserRole.ADMIN
        assert storage.verify_user_password("ayse", "second") is not None
        assert storage.verify_user_password("ayse", "first") is None

    def test_rename_to_taken_username(self, storage):
        storage.create_user({"username": "a", "password": "pw"})
        b = storage.create_user({"username": "b", "password": "pw"})
        with pytest.raises(DuplicateIdentifier):
            storage.update_user(b.id, {"username": "a"})

    def test_update_absent(self, storage):
        with pytest.raises(NotFound):
            storage.update_user(9999, {"full_name": "x"})

    def test_lookups(self, storage):
        user = storage.create_user({"username": "ayse", "password": "pw"})
        assert storage.get_user_by_id(user.id) == user
        assert storage.get_user_by_username("ayse") == user
        assert storage.get_user_by_username("nobody") is None

    def test_cannot_delete_self(self, storage):
        user = storage.create_user({"username": "ayse", "password": "pw"})
        with pytest.raises(ValidationError):
            storage.delete_user(user.id, requested_by=user.id)
        assert storage.get_user_by_id(user.id) is not None

    def test_delete(self, storage):
        admin = storage.create_user({"username": "admin", "password": "pw", "role": "admin"})
        user = storage.create_user({"username": "ayse", "password": "pw"})
        assert storage.delete_user(user.id, requested_by=admin.id) is True
        assert storage.get_user_by_id(user.id) is None
        assert storage.delete_user(user.id, requested_by=admin.id) is False


# ---------------------------------------------------------------------------
# Locations
# ---------------------------------------------------------------------------

class TestLocations:
    def test_create_defaults(self, storage):
        location = storage.create_location({"name": "Izmir", "type": "office"})
        assert location.capacity == 10
        assert location.type == LocationType.OFFICE
        assert location.is_active is True
        assert storage.get_location_by_id(location.id) == location

    def test_negative_capacity_rejected(self, storage):
        with pytest.raises(ValidationError):
            storage.create_location({"name": "Bad", "type": "depot", "capacity": -1})

    def test_unknown_type_rejected(self, storage):
        with pytest.raises(ValidationError):
            storage.create_location({"name": "Bad", "type": "moon"})

    def test_update(self, storage, depot):
        updated = storage.update_location(depot.id, {"capacity": 20, "address": "Block C"})
        assert (updated.capacity, updated.address, updated.name) == (20, "Block C", depot.name)

    def test_update_absent(self, storage):
        with pytest.raises(NotFound):
            storage.update_location(9999, {"name": "x"})

    def test_delete_in_use(self, storage, depot, make_server):
        make_server()
        with pytest.raises(ReferentialConflict):
            storage.delete_location(depot.id)
        assert storage.get_location_by_id(depot.id) is not None

    def test_delete(self, storage, office):
        assert storage.delete_location(office.id) is True
        assert storage.get_location_by_id(office.id) is None
        assert storage.delete_location(office.id) is False

    def test_summary(self, storage, depot, office, make_server):
        make_server()
        make_server()
        summary = {row.location_id: row for row in storage.get_location_summary()}
        assert summary[depot.id].server_count == 2
        assert summary[depot.id].available == 3
        assert summary[office.id].server_count == 0
        assert summary[office.id].available == 5
        assert summary[depot.id].name == "Ankara Depot"


# ---------------------------------------------------------------------------
# Server models
# ---------------------------------------------------------------------------

class TestServerModels:
    def test_create_and_update(self, storage, dell):
        assert dell.display_name == "Dell PowerEdge R740"
        updated = storage.update_server_model(dell.id, {"specs": "256GB RAM"})
        assert updated.specs == "256GB RAM"
        assert updated.name == dell.name
        assert storage.get_all_server_models() == [updated]

    def test_update_absent(self, storage):
        with pytest.raises(NotFound):
            storage.update_server_model(9999, {"name": "x"})

    def test_delete_referenced_by_batch(self, storage, dell, depot):
        storage.create_batch_servers(dell.id, depot.id, 1, "passive")
        with pytest.raises(ReferentialConflict):
            storage.delete_server_model(dell.id)

    def test_delete_referenced_by_manual_server(self, storage, dell, make_server):
        make_server(model_id=dell.id)
        with pytest.raises(ReferentialConflict):
            storage.delete_server_model(dell.id)

    def test_delete_unreferenced(self, storage, dell):
        assert storage.delete_server_model(dell.id) is True
        assert storage.get_server_model_by_id(dell.id) is None
        assert storage.delete_server_model(dell.id) is False


# ---------------------------------------------------------------------------
# Activity feed
# ---------------------------------------------------------------------------

class TestActivityFeed:
    def test_newest_first_with_limit(self, storage, make_server):
        servers = [make_server() for _ in range(3)]
        feed = storage.get_all_activities()
        assert [a.server_id for a in feed] == [s.id for s in reversed(servers)]

        limited = storage.get_all_activities(limit=2)
        assert [a.server_id for a in limited] == [servers[2].id, servers[1].id]

    def test_limit_applies_to_global_feed_only(self, storage, make_server):
        server = make_server()
        storage.update_server(server.id, {"status": "setup"})
        storage.update_server(server.id, {"status": "active"})
        assert len(storage.get_server_activities(server.id)) == 3
        assert len(storage.get_all_activities(limit=1)) == 1

    def test_add_activity(self, storage):
        entry = storage.add_activity({"type": "status", "description": "Inventory audit started", "user_id": 1})
        assert entry.type == ActivityType.STATUS
        assert entry.server_id is None
        assert storage.get_all_activities() == [entry]

    def test_add_activity_requires_description(self, storage):
        with pytest.raises(ValidationError):
            storage.add_activity({"type": "status", "description": ""})


# ---------------------------------------------------------------------------
# Seeding
# ---------------------------------------------------------------------------

class TestSeedDefaults:
    def test_seeds_empty_store_once(self, storage):
        created = seed_defaults(storage, admin_password="change-me")
        assert created == {"users": 1, "locations": 2, "server_models": 2}

        assert storage.verify_user_password("admin", "change-me").role == UserRole.ADMIN
        names = {l.name for l in storage.get_all_locations()}
        assert names == {"Ankara Data Center", "Istanbul Head Office"}
        assert {m.display_name for m in storage.get_all_server_models()} == {
            "Dell PowerEdge R740", "HPE ProLiant DL380 Gen10",
        }

        assert seed_defaults(storage) == {"users": 0, "locations": 0, "server_models": 0}
        assert len(storage.get_all_users()) == 1

    def test_leaves_populated_tables_alone(self, storage, depot):
        created = seed_defaults(storage)
        assert created["locations"] == 0
        assert [l.id for l in storage.get_all_locations()] == [depot.id]
