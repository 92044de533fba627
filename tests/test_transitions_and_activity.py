"""
Unit tests for the status transition policy and the activity description
builders. Pure logic, no storage involved.
"""

import logging
from types import SimpleNamespace

import pytest

from core.base import ActivityType, ServerStatus
from modules.inventory import activity
from modules.inventory.transitions import is_typical, resolve_transition


class TestResolveTransition:
    def test_no_request_keeps_status(self):
        assert resolve_transition(ServerStatus.ACTIVE, None) == ServerStatus.ACTIVE

    @pytest.mark.parametrize("old", list(ServerStatus))
    def test_transfer_always_lands_in_transit(self, old):
        assert resolve_transition(old, ServerStatus.ACTIVE, via_transfer=True) == ServerStatus.TRANSIT

    def test_aliases_resolved(self):
        assert resolve_transition(ServerStatus.SETUP, "ready") == ServerStatus.SHIPPABLE
        assert resolve_transition(ServerStatus.ACTIVE, "inactive") == ServerStatus.PASSIVE

    def test_unusual_transition_allowed_and_logged(self, caplog):
        with caplog.at_level(logging.INFO, logger="inventory.transitions"):
            assert resolve_transition(ServerStatus.FIELD, ServerStatus.PASSIVE) == ServerStatus.PASSIVE
        assert "field -> passive" in caplog.text

    def test_typical_transition_not_logged(self, caplog):
        with caplog.at_level(logging.INFO, logger="inventory.transitions"):
            resolve_transition(ServerStatus.TRANSIT, ServerStatus.ACTIVE)
        assert caplog.text == ""

    def test_unknown_status(self):
        with pytest.raises(ValueError):
            resolve_transition(ServerStatus.ACTIVE, "melted")

    def test_is_typical(self):
        assert is_typical(ServerStatus.ACTIVE, ServerStatus.TRANSIT)
        assert is_typical(ServerStatus.SETUP, ServerStatus.SETUP)
        assert not is_typical(ServerStatus.PASSIVE, ServerStatus.FIELD)


class TestNotePreview:
    def test_short_text_unchanged(self):
        assert activity.note_preview("Fan replaced") == "Fan replaced"

    def test_exactly_at_limit(self):
        text = "x" * activity.NOTE_PREVIEW_LENGTH
        assert activity.note_preview(text) == text

    def test_long_text_truncated_with_ellipsis(self):
        preview = activity.note_preview("a" * 100)
        assert len(preview) == activity.NOTE_PREVIEW_LENGTH
        assert preview.endswith("...")

    def test_whitespace_collapsed(self):
        assert activity.note_preview("line one\n\n  line   two") == "line one line two"

    def test_empty(self):
        assert activity.note_preview("") == ""


class TestActivityBuilders:
    server = SimpleNamespace(id=4, server_id="SRV-2026-004")

    def test_status_changed(self):
        entry = activity.status_changed(self.server, ServerStatus.TRANSIT, ServerStatus.ACTIVE, user_id=2)
        assert entry.type == ActivityType.SETUP
        assert entry.description == "Server status changed: SRV-2026-004 transit -> active"
        assert (entry.server_id, entry.user_id) == (4, 2)

    def test_server_edited_lists_fields_sorted(self):
        entry = activity.server_edited(self.server, {"username", "ip_address"})
        assert entry.description == "Server updated: SRV-2026-004 (ip_address, username)"

    def test_server_edited_with_no_changes(self):
        entry = activity.server_edited(self.server, set())
        assert entry.description == "Server updated: SRV-2026-004 (no changes)"

    def test_transfer_with_missing_origin(self):
        to = SimpleNamespace(name="Istanbul Head Office")
        entry = activity.transfer_started(self.server, None, to, user_id=1)
        assert entry.type == ActivityType.TRANSFER
        assert entry.description == (
            f"Transfer started for SRV-2026-004: {activity.UNKNOWN_LOCATION} -> Istanbul Head Office"
        )

    def test_note_on_missing_server_uses_id(self):
        note = SimpleNamespace(server_id=12, note="orphan", created_by=1)
        entry = activity.note_deleted(None, note)
        assert entry.description == 'Note deleted from ID: 12: "orphan"'
