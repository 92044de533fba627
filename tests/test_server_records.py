"""
Records owned by a server: notes (soft-deleted), transfers and VM details.
Every test runs against both storage backends.
"""

from datetime import datetime, timedelta, timezone

import pytest

from core.base import ActivityType, ServerStatus
from core.errors import NotFound, ValidationError


# ---------------------------------------------------------------------------
# Notes
# ---------------------------------------------------------------------------

class TestNotes:
    def test_add_records_note_activity(self, storage, make_server):
        server = make_server()
        note = storage.add_server_note({"server_id": server.id, "note": "Disk 2 replaced", "created_by": 4})

        assert note.note == "Disk 2 replaced"
        assert note.created_by == 4
        assert note.is_deleted is False
        latest = storage.get_server_activities(server.id)[0]
        assert latest.type == ActivityType.NOTE
        assert latest.user_id == 4
        assert latest.description == f'Note added to {server.server_id}: "Disk 2 replaced"'

    def test_long_note_preview_is_truncated(self, storage, make_server):
        server = make_server()
        text = "Replaced the second power supply unit after the overnight alarm in rack B"
        storage.add_server_note({"server_id": server.id, "note": text, "created_by": 1})

        description = storage.get_server_activities(server.id)[0].description
        preview = description.split(': "', 1)[1].rstrip('"')
        assert len(preview) <= 30
        assert preview.endswith("...")
        assert text.startswith(preview[:-3].rstrip())

    def test_add_to_unknown_server(self, storage):
        with pytest.raises(NotFound):
            storage.add_server_note({"server_id": 9999, "note": "x", "created_by": 1})

    def test_empty_note_rejected(self, storage, make_server):
        server = make_server()
        with pytest.raises(ValidationError):
            storage.add_server_note({"server_id": server.id, "note": "", "created_by": 1})

    def test_update(self, storage, make_server):
        server = make_server()
        note = storage.add_server_note({"server_id": server.id, "note": "old", "created_by": 1})
        updated = storage.update_server_note(note.id, {"note": "new text", "updated_by": 2})

        assert updated.note == "new text"
        assert updated.updated_by == 2
        assert updated.updated_at is not None
        assert updated.created_by == 1
        latest = storage.get_server_activities(server.id)[0]
        assert latest.type == ActivityType.EDIT
        assert latest.description == f'Note updated on {server.server_id}: "new text"'

    def test_update_absent(self, storage):
        with pytest.raises(NotFound):
            storage.update_server_note(9999, {"note": "x"})

    def test_soft_delete(self, storage, make_server):
        server = make_server()
        keep = storage.add_server_note({"server_id": server.id, "note": "keep", "created_by": 1})
        gone = storage.add_server_note({"server_id": server.id, "note": "gone", "created_by": 1})

        assert storage.delete_server_note(gone.id, user_id=5) is True

        assert [n.id for n in storage.get_server_notes(server.id)] == [keep.id]
        everything = storage.get_server_notes(server.id, include_deleted=True)
        assert {n.id for n in everything} == {keep.id, gone.id}
        assert storage.get_server_note(gone.id).is_deleted is True

        latest = storage.get_server_activities(server.id)[0]
        assert latest.type == ActivityType.DELETE
        assert latest.user_id == 5

    def test_deleted_note_cannot_be_touched_again(self, storage, make_server):
        server = make_server()
        note = storage.add_server_note({"server_id": server.id, "note": "x", "created_by": 1})
        storage.delete_server_note(note.id)

        assert storage.delete_server_note(note.id) is False
        with pytest.raises(NotFound):
            storage.update_server_note(note.id, {"note": "y"})

    def test_delete_absent(self, storage):
        assert storage.delete_server_note(9999) is False

    def test_newest_first(self, storage, make_server):
        server = make_server()
        ids = [
            storage.add_server_note({"server_id": server.id, "note": f"n{i}", "created_by": 1}).id
            for i in range(3)
        ]
        assert [n.id for n in storage.get_server_notes(server.id)] == list(reversed(ids))


# ---------------------------------------------------------------------------
# Transfers
# ---------------------------------------------------------------------------

class TestTransfers:
    def test_moves_server_and_forces_transit(self, storage, make_server, depot, office):
        server = make_server(status="active")
        transfer = storage.create_transfer({
            "server_id": server.id, "to_location_id": office.id, "transferred_by": 9, "notes": "RMA",
        })

        assert transfer.from_location_id == depot.id
        assert transfer.to_location_id == office.id
        assert transfer.transferred_by == 9
        assert transfer.notes == "RMA"

        moved = storage.get_server_by_id(server.id)
        assert moved.location_id == office.id
        assert moved.status == ServerStatus.TRANSIT
        assert [s.id for s in storage.get_servers_by_location(office.id)] == [server.id]
        assert storage.get_servers_by_location(depot.id) == []

    def test_records_exactly_one_transfer_activity(self, storage, make_server, office):
        server = make_server(status="active")
        storage.create_transfer({"server_id": server.id, "to_location_id": office.id, "transferred_by": 9})

        activities = storage.get_server_activities(server.id)
        assert [a.type for a in activities] == [ActivityType.TRANSFER, ActivityType.ADD]
        assert activities[0].description == (
            f"Transfer started for {server.server_id}: Ankara Depot -> Istanbul Office"
        )
        assert activities[0].user_id == 9

    def test_transit_even_from_field(self, storage, make_server, office):
        server = make_server(status="field")
        storage.create_transfer({"server_id": server.id, "to_location_id": office.id, "transferred_by": 1})
        assert storage.get_server_by_id(server.id).status == ServerStatus.TRANSIT

    def test_explicit_transfer_date_kept(self, storage, make_server, office):
        server = make_server()
        when = datetime(2026, 3, 1, 9, 30)
        transfer = storage.create_transfer({
            "server_id": server.id, "to_location_id": office.id, "transferred_by": 1, "transfer_date": when,
        })
        assert transfer.transfer_date == when

    def test_aware_transfer_date_stored_as_utc(self, storage, make_server, office):
        server = make_server()
        istanbul = timezone(timedelta(hours=3))
        transfer = storage.create_transfer({
            "server_id": server.id, "to_location_id": office.id, "transferred_by": 1,
            "transfer_date": datetime(2026, 1, 1, 12, 0, tzinfo=istanbul),
        })

        expected = datetime(2026, 1, 1, 9, 0)
        assert transfer.transfer_date == expected
        assert storage.get_server_transfers(server.id)[0].transfer_date == expected
        assert storage.get_all_transfers()[0].transfer_date.tzinfo is None

    def test_wrong_from_location_rejected(self, storage, make_server, office):
        server = make_server()
        with pytest.raises(ValidationError):
            storage.create_transfer({
                "server_id": server.id, "from_location_id": office.id,
                "to_location_id": office.id, "transferred_by": 1,
            })
        assert storage.get_all_transfers() == []

    def test_same_location_rejected(self, storage, make_server, depot):
        server = make_server(status="active")
        with pytest.raises(ValidationError):
            storage.create_transfer({"server_id": server.id, "to_location_id": depot.id, "transferred_by": 1})
        unchanged = storage.get_server_by_id(server.id)
        assert unchanged.status == ServerStatus.ACTIVE
        assert len(storage.get_server_activities(server.id)) == 1

    def test_unknown_server(self, storage, office):
        with pytest.raises(NotFound):
            storage.create_transfer({"server_id": 9999, "to_location_id": office.id, "transferred_by": 1})

    def test_unknown_destination(self, storage, make_server):
        server = make_server()
        with pytest.raises(NotFound):
            storage.create_transfer({"server_id": server.id, "to_location_id": 9999, "transferred_by": 1})

    def test_history_newest_first(self, storage, make_server, depot, office):
        server = make_server()
        first = storage.create_transfer({"server_id": server.id, "to_location_id": office.id, "transferred_by": 1})
        back = storage.create_transfer({"server_id": server.id, "to_location_id": depot.id, "transferred_by": 1})

        assert [t.id for t in storage.get_server_transfers(server.id)] == [back.id, first.id]
        assert [t.id for t in storage.get_all_transfers()] == [back.id, first.id]
        assert back.from_location_id == office.id


# ---------------------------------------------------------------------------
# Virtual machine details
# ---------------------------------------------------------------------------

def _vm(server_id, **overrides):
    data = {
        "server_id": server_id,
        "vm_name": "web-01",
        "ip_address": "10.0.0.5",
        "username": "administrator",
        "password": "Vm-Passw0rd",
    }
    data.update(overrides)
    return data


class TestServerDetails:
    def test_add(self, storage, make_server):
        server = make_server()
        detail = storage.add_server_detail(_vm(server.id), user_id=3)

        assert detail.vm_name == "web-01"
        assert detail.password == "Vm-Passw0rd"
        assert storage.get_server_details(server.id) == [detail]
        latest = storage.get_server_activities(server.id)[0]
        assert latest.type == ActivityType.SETUP
        assert latest.description == "VM added: web-01 (10.0.0.5)"
        assert latest.user_id == 3

    def test_add_requires_credentials(self, storage, make_server):
        server = make_server()
        with pytest.raises(ValidationError):
            storage.add_server_detail(_vm(server.id, password=""))

    def test_add_to_unknown_server(self, storage):
        with pytest.raises(NotFound):
            storage.add_server_detail(_vm(9999))

    def test_update(self, storage, make_server):
        server = make_server()
        detail = storage.add_server_detail(_vm(server.id))
        updated = storage.update_server_detail(detail.id, {"ip_address": "10.0.0.6", "password": "new"})

        assert updated.ip_address == "10.0.0.6"
        assert updated.password == "new"
        assert updated.vm_name == "web-01"
        latest = storage.get_server_activities(server.id)[0]
        assert (latest.type, latest.description) == (ActivityType.SETUP, "VM updated: web-01 (10.0.0.6)")

    def test_update_absent(self, storage):
        with pytest.raises(NotFound):
            storage.update_server_detail(9999, {"vm_name": "x"})

    def test_delete(self, storage, make_server):
        server = make_server()
        detail = storage.add_server_detail(_vm(server.id))

        assert storage.delete_server_detail(detail.id) is True
        assert storage.get_server_detail(detail.id) is None
        latest = storage.get_server_activities(server.id)[0]
        assert (latest.type, latest.description) == (ActivityType.DELETE, "VM deleted: web-01 (10.0.0.5)")
        assert storage.delete_server_detail(detail.id) is False
