"""Pytest configuration and fixtures."""

import sys
from pathlib import Path

import pytest

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from tests.fakes import FakeFirestore, FakeWarehouse, RecordingCheckpointStore  # noqa: E402


@pytest.fixture
def calls():
    """Shared call log for ordering assertions."""
    return []


@pytest.fixture
def firestore(calls):
    return FakeFirestore(calls=calls)


@pytest.fixture
def warehouse():
    return FakeWarehouse("demo-project")


@pytest.fixture
def checkpoints(calls):
    return RecordingCheckpointStore(calls=calls)


@pytest.fixture
def participants_docs():
    """Five participants spread over two events, plus decoys at other depths."""
    return {
        "events/e1/rounds/r1/participants/p1": {"name": "Ada", "score": 10},
        "events/e1/rounds/r1/participants/p2": {"name": "Brian", "score": 7},
        "events/e1/rounds/r2/participants/p3": {"name": "Chen", "score": 3},
        "events/e2/rounds/r1/participants/p4": {"name": "Dara", "score": 12},
        "events/e2/rounds/r1/participants/p5": {"name": "Eli", "score": 1},
        # Same collection id at a different depth; the collection-group query
        # returns it but the path filter must drop it.
        "leagues/l1/participants/x1": {"name": "Decoy"},
        "events/e1": {"title": "Spring open"},
    }
