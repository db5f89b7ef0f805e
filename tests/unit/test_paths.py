"""Tests for collection path helpers.

Tests cover:
- Wildcard detection and collection-group name extraction
- Wildcard path -> document regex
- Source path normalization for checkpoint names
"""

import pytest

from firestore_export.lib.paths import (
    checkpoint_name,
    collection_group_name,
    is_wildcard_path,
    normalize_source_path,
    wildcard_regex,
)


class TestWildcardDetection:
    def test_plain_collection(self):
        assert not is_wildcard_path("users")
        assert not is_wildcard_path("users/u1/posts")

    def test_wildcard_collection(self):
        assert is_wildcard_path("events/{eventId}/participants")
        assert is_wildcard_path("/events/{eventId}/rounds/{roundId}/participants/")

    def test_braces_inside_a_segment_are_not_a_wildcard(self):
        assert not is_wildcard_path("events/a{b}c/participants")

    def test_collection_group_name_is_last_segment(self):
        assert collection_group_name("events/{eventId}/rounds/{roundId}/participants") == (
            "participants"
        )

    def test_collection_group_name_rejects_trailing_wildcard(self):
        with pytest.raises(ValueError, match="must end in a collection name"):
            collection_group_name("events/{eventId}")

    def test_collection_group_name_rejects_empty_path(self):
        with pytest.raises(ValueError):
            collection_group_name("/")


class TestWildcardRegex:
    """A wildcard path matches the documents one level below its last segment."""

    def test_leading_wildcard_matches_any_parent_depth(self):
        regex = wildcard_regex("{x}/collName")

        assert regex.search("a/b/collName/doc1")
        assert regex.search("p/q/r/collName/doc2")
        assert not regex.search("collName/doc1")
        assert not regex.search("a/otherColl/doc1")

    def test_collection_name_must_be_a_whole_segment(self):
        regex = wildcard_regex("{x}/collName")

        assert not regex.search("a/b/mycollName/doc1")
        assert not regex.search("a/b/collName/doc1/notes/n1")

    def test_matches_documents_under_nested_wildcards(self):
        regex = wildcard_regex("events/{eventId}/rounds/{roundId}/participants")

        assert regex.search("events/e1/rounds/r1/participants/p1")
        assert regex.search("events/e-2/rounds/round_9/participants/abc123")

    def test_rejects_paths_missing_a_level(self):
        regex = wildcard_regex("events/{eventId}/rounds/{roundId}/participants")

        assert not regex.search("events/e1/participants/p1")

    def test_single_wildcard_rejects_deeper_paths(self):
        regex = wildcard_regex("events/{eventId}/participants")

        assert regex.search("events/e1/participants/p1")
        assert not regex.search("events/e1/rounds/r1/participants/p1")

    def test_rejects_other_parent_collections(self):
        regex = wildcard_regex("events/{eventId}/participants")

        assert not regex.search("leagues/l1/participants/p1")
        assert not regex.search("xevents/e1/participants/p1")

    def test_rejects_subcollection_documents(self):
        regex = wildcard_regex("events/{eventId}/participants")

        assert not regex.search("events/e1/participants/p1/notes/n1")

    def test_literal_segments_are_escaped(self):
        regex = wildcard_regex("a.b/{id}/c")

        assert regex.search("a.b/x/c/d")
        assert not regex.search("aXb/x/c/d")


class TestNormalizeSourcePath:
    def test_nested_wildcards(self):
        assert (
            normalize_source_path("events/{eventId}/rounds/{roundId}/participants")
            == "events_rounds_participants"
        )

    def test_leading_wildcard(self):
        assert normalize_source_path("{parentId}/participants") == "_participants"

    def test_plain_path_is_unchanged(self):
        assert normalize_source_path("users") == "users"

    def test_checkpoint_name_format(self):
        name = checkpoint_name(
            "events/{eventId}/participants", "demo-project", "firestore_export", "participants"
        )

        assert name == (
            "from-events_participants-to-demo-project_firestore_export_participants_raw_changelog"
        )

    def test_checkpoint_names_differ_per_destination(self):
        first = checkpoint_name("users", "p", "ds", "users")
        second = checkpoint_name("users", "p", "ds", "users_copy")

        assert first != second
