"""Tests for change events and the changelog row shape."""

import base64
import json
from datetime import datetime, timezone

import pytest

from firestore_export.lib.events import (
    EPOCH,
    ChangeEvent,
    ChangeType,
    document_resource_name,
    synthesize_import_event,
)
from firestore_export.lib.tracker import build_row
from tests.fakes import FakeFirestore


class TestChangeEvent:
    def test_change_type_names(self):
        assert [t.name for t in ChangeType] == ["CREATE", "DELETE", "UPDATE", "IMPORT"]

    def test_document_name_is_required(self):
        with pytest.raises(ValueError, match="document_name"):
            ChangeEvent(
                event_id="",
                operation=ChangeType.IMPORT,
                timestamp=EPOCH,
                document_name="",
            )

    def test_document_resource_name(self):
        assert document_resource_name("demo", "users/u1") == (
            "projects/demo/databases/(default)/documents/users/u1"
        )

    def test_document_resource_name_custom_database(self):
        assert document_resource_name("demo", "/users/u1", database="archive") == (
            "projects/demo/databases/archive/documents/users/u1"
        )


class TestSynthesizeImportEvent:
    def test_import_event_fields(self):
        store = FakeFirestore({"users/u1": {"a": 1, "b": "x"}})
        snapshot = store.document("users/u1").get()

        event = synthesize_import_event(snapshot, "demo")

        assert event.operation is ChangeType.IMPORT
        assert event.event_id == ""
        assert event.timestamp == datetime(1970, 1, 1, tzinfo=timezone.utc)
        assert event.document_name == "projects/demo/databases/(default)/documents/users/u1"
        assert event.data == {"a": 1, "b": "x"}

    def test_row_data_round_trips(self):
        store = FakeFirestore({"users/u1": {"a": 1, "b": "x"}})
        event = synthesize_import_event(store.document("users/u1").get(), "demo")

        row = build_row(event)

        assert json.loads(row["data"]) == {"a": 1, "b": "x"}
        assert row["operation"] == "IMPORT"
        assert row["eventId"] == ""
        assert row["timestamp"] == "1970-01-01T00:00:00+00:00"
        assert row["document_name"] == event.document_name


class TestBuildRow:
    def test_insertion_stamp_is_optional(self):
        event = ChangeEvent(
            event_id="",
            operation=ChangeType.IMPORT,
            timestamp=EPOCH,
            document_name="projects/demo/databases/(default)/documents/users/u1",
            data={},
        )
        stamp = datetime(2025, 6, 1, 8, 30, tzinfo=timezone.utc)

        assert "_inserted_at" not in build_row(event)
        assert build_row(event, stamp)["_inserted_at"] == "2025-06-01T08:30:00+00:00"

    def test_delete_row_has_null_data(self):
        event = ChangeEvent(
            event_id="evt-9",
            operation=ChangeType.DELETE,
            timestamp=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
            document_name="projects/demo/databases/(default)/documents/users/u1",
        )

        row = build_row(event)

        assert row["data"] is None
        assert row["operation"] == "DELETE"
        assert row["timestamp"] == "2024-05-01T12:00:00+00:00"

    def test_firestore_value_types_serialize(self):
        class GeoPoint:
            latitude = 51.5
            longitude = -0.12

        when = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        event = ChangeEvent(
            event_id="evt-1",
            operation=ChangeType.UPDATE,
            timestamp=when,
            document_name="projects/demo/databases/(default)/documents/places/p1",
            data={"at": when, "blob": b"\x00\x01", "where": GeoPoint()},
        )

        data = json.loads(build_row(event)["data"])

        assert data["at"] == "2024-01-02T03:04:05+00:00"
        assert base64.b64decode(data["blob"]) == b"\x00\x01"
        assert data["where"] == {"latitude": 51.5, "longitude": -0.12}

    def test_document_reference_serializes_as_path(self):
        store = FakeFirestore()
        ref = store.document("users/u2")
        event = ChangeEvent(
            event_id="evt-2",
            operation=ChangeType.CREATE,
            timestamp=EPOCH,
            document_name="projects/demo/databases/(default)/documents/posts/p1",
            data={"author": ref},
        )

        assert json.loads(build_row(event)["data"]) == {"author": "users/u2"}
