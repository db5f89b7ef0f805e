"""Helpers for Firestore collection paths.

A source path may contain wildcard segments such as
``events/{eventId}/rounds/{roundId}/participants``. Firestore has no native
query for that shape, so the walker runs a collection-group query on the
last segment (``participants``) and filters the results with a regular
expression built from the path.
"""

from __future__ import annotations

import re
from typing import Pattern

__all__ = [
    "WILDCARD_SEGMENT",
    "is_wildcard_path",
    "collection_group_name",
    "wildcard_regex",
    "normalize_source_path",
    "checkpoint_name",
]

WILDCARD_SEGMENT = re.compile(r"^\{[^/{}]+\}$")

# Matches a single path segment, i.e. one document or collection id.
SEGMENT_CLASS = "[^/]+"

_WILDCARD_INFIX = re.compile(r"(?:^|/)\{.*?\}/")


def _segments(path: str) -> list[str]:
    return [segment for segment in path.strip("/").split("/") if segment]


def is_wildcard_path(path: str) -> bool:
    """Return True when any segment of ``path`` is a ``{token}`` wildcard."""
    return any(WILDCARD_SEGMENT.match(segment) for segment in _segments(path))


def collection_group_name(path: str) -> str:
    """Return the collection id that a collection-group query should target."""
    segments = _segments(path)
    if not segments:
        raise ValueError("Collection path is empty")
    last = segments[-1]
    if WILDCARD_SEGMENT.match(last):
        raise ValueError(
            f"Collection path '{path}' must end in a collection name, not a wildcard"
        )
    return last


def wildcard_regex(path: str) -> Pattern[str]:
    """Build the document filter for a wildcard collection path.

    Each ``{token}`` becomes a single-segment class. The pattern is anchored
    at the end, with one trailing segment for the document id, and must start
    on a segment boundary; anything may come before it. Use ``search``.

    >>> regex = wildcard_regex("{x}/collName")
    >>> bool(regex.search("p/q/r/collName/doc2"))
    True
    >>> bool(regex.search("collName/doc1"))
    False
    """
    parts = [
        SEGMENT_CLASS if WILDCARD_SEGMENT.match(segment) else re.escape(segment)
        for segment in _segments(path)
    ]
    return re.compile("(?:^|/)" + "/".join(parts) + "/" + SEGMENT_CLASS + "$")


def normalize_source_path(path: str) -> str:
    """Collapse every ``/{token}/`` infix (or leading ``{token}/``) to ``_``.

    >>> normalize_source_path("events/{eventId}/rounds/{roundId}/participants")
    'events_rounds_participants'
    """
    return _WILDCARD_INFIX.sub("_", path)


def checkpoint_name(
    source_path: str,
    project_id: str,
    dataset_id: str,
    table_id: str,
) -> str:
    """Deterministic checkpoint name for one (source, destination) pair."""
    changelog = f"{table_id}_raw_changelog"
    return (
        f"from-{normalize_source_path(source_path)}"
        f"-to-{project_id}_{dataset_id}_{changelog}"
    )
