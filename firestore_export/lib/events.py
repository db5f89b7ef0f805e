"""Document change events.

A ``ChangeEvent`` is the unit recorded in the raw changelog table. Organic
events come from Firestore triggers; ``IMPORT`` events are synthesized by
the bulk importer from existing documents.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

__all__ = [
    "ChangeType",
    "ChangeEvent",
    "EPOCH",
    "FIRESTORE_DEFAULT_DATABASE",
    "document_resource_name",
    "synthesize_import_event",
]

FIRESTORE_DEFAULT_DATABASE = "(default)"

# Imported rows carry this timestamp so any organic change supersedes them.
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class ChangeType(Enum):
    """Kind of change a changelog row records."""

    CREATE = 0
    DELETE = 1
    UPDATE = 2
    IMPORT = 3


@dataclass(frozen=True)
class ChangeEvent:
    """A single document change.

    Attributes:
        event_id: Source-assigned id of the triggering event, "" for imports
        operation: What happened to the document
        timestamp: When it happened (UTC)
        document_name: Fully-qualified Firestore resource name
        data: Document fields after the change, None for deletes
    """

    event_id: str
    operation: ChangeType
    timestamp: datetime
    document_name: str
    data: Optional[Dict[str, Any]] = None

    def __post_init__(self) -> None:
        if not self.document_name:
            raise ValueError("ChangeEvent.document_name is required")


def document_resource_name(
    project_id: str,
    document_path: str,
    database: str = FIRESTORE_DEFAULT_DATABASE,
) -> str:
    """Build ``projects/<p>/databases/<db>/documents/<path>``."""
    return f"projects/{project_id}/databases/{database}/documents/{document_path.strip('/')}"


def synthesize_import_event(snapshot: Any, project_id: str) -> ChangeEvent:
    """Turn a document snapshot into an ``IMPORT`` change event."""
    return ChangeEvent(
        event_id="",
        operation=ChangeType.IMPORT,
        timestamp=EPOCH,
        document_name=document_resource_name(project_id, snapshot.reference.path),
        data=snapshot.to_dict(),
    )
