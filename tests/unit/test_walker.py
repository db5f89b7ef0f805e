"""Tests for paginated collection walking."""

import pytest

from firestore_export.lib.errors import CheckpointError, SourceQueryError
from firestore_export.lib.walker import DEFAULT_PAGE_SIZE, CollectionWalker
from tests.fakes import FakeFirestore


@pytest.fixture
def users_store():
    return FakeFirestore(
        {
            "users/u1": {"n": 1},
            "users/u2": {"n": 2},
            "users/u3": {"n": 3},
            "users/u1/posts/p1": {"title": "nested"},
        }
    )


def _ids(page):
    return [doc.id for doc in page]


class TestPlainCollection:
    def test_default_page_size(self, users_store):
        assert CollectionWalker(users_store, "users").page_size == DEFAULT_PAGE_SIZE == 300

    def test_pages_follow_cursor(self, users_store):
        walker = CollectionWalker(users_store, "users", page_size=2)

        first = walker.fetch_next_page()
        second = walker.fetch_next_page(first[-1])
        third = walker.fetch_next_page(second[-1])

        assert _ids(first) == ["u1", "u2"]
        assert _ids(second) == ["u3"]
        assert third == []

    def test_every_document_matches(self, users_store):
        walker = CollectionWalker(users_store, "users")

        assert all(walker.matches(doc) for doc in walker.fetch_next_page())
        assert not walker.is_collection_group

    def test_checkpoint_token_is_document_id(self, users_store):
        walker = CollectionWalker(users_store, "users")
        doc = walker.fetch_next_page()[0]

        assert walker.checkpoint_token(doc) == "u1"

    def test_resolve_cursor(self, users_store):
        walker = CollectionWalker(users_store, "/users/", page_size=2)

        cursor = walker.resolve_cursor("u2")

        assert cursor.reference.path == "users/u2"
        assert _ids(walker.fetch_next_page(cursor)) == ["u3"]

    def test_resolve_missing_document(self, users_store):
        walker = CollectionWalker(users_store, "users")

        with pytest.raises(CheckpointError, match="no longer exists") as exc_info:
            walker.resolve_cursor("gone")

        assert exc_info.value.token == "gone"
        assert "Delete the checkpoint" in exc_info.value.suggestion

    def test_resolve_failure_is_a_source_error(self, users_store):
        users_store.fail_document_get = True
        walker = CollectionWalker(users_store, "users")

        with pytest.raises(SourceQueryError):
            walker.resolve_cursor("u1")

    def test_page_size_must_be_positive(self, users_store):
        with pytest.raises(ValueError):
            CollectionWalker(users_store, "users", page_size=0)


class TestCollectionGroup:
    def test_wildcard_uses_collection_group(self, participants_docs):
        store = FakeFirestore(participants_docs)
        walker = CollectionWalker(store, "events/{eventId}/rounds/{roundId}/participants", 10)

        page = walker.fetch_next_page()

        assert walker.is_collection_group
        assert store.calls[0][1] == "collection_group:participants"
        assert len(page) == 6
        assert [doc.id for doc in page if walker.matches(doc)] == ["p1", "p2", "p3", "p4", "p5"]

    def test_leading_wildcard_keeps_every_parent(self, participants_docs):
        walker = CollectionWalker(FakeFirestore(participants_docs), "{parentId}/participants", 10)

        page = walker.fetch_next_page()

        assert [doc.id for doc in page if walker.matches(doc)] == [
            "p1",
            "p2",
            "p3",
            "p4",
            "p5",
            "x1",
        ]

    def test_checkpoint_token_is_document_path(self, participants_docs):
        store = FakeFirestore(participants_docs)
        walker = CollectionWalker(store, "events/{eventId}/rounds/{roundId}/participants", 2)
        doc = walker.fetch_next_page()[-1]

        token = walker.checkpoint_token(doc)

        assert token == "events/e1/rounds/r1/participants/p2"
        assert walker.resolve_cursor(token).id == "p2"


class TestFailures:
    def test_query_failure_raises_source_error(self, users_store):
        users_store.fail_pages = {2}
        walker = CollectionWalker(users_store, "users", page_size=2)
        first = walker.fetch_next_page()

        with pytest.raises(SourceQueryError) as exc_info:
            walker.fetch_next_page(first[-1])

        assert exc_info.value.cursor == "u2"
        assert exc_info.value.source_path == "users"
        assert exc_info.value.details["cause_type"] == "ServiceUnavailable"
