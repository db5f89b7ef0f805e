"""Event history tracker: the append-only sink for change events.

The tracker handles:
- provisioning the dataset, the raw changelog table and the latest view
  when the first batch is recorded;
- streaming batches of change events into the raw changelog table.
"""

from __future__ import annotations

import base64
import json
import logging
import threading
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Optional, Sequence

from firestore_export.lib.errors import ProvisioningError
from firestore_export.lib.events import ChangeEvent
from firestore_export.lib.schema import (
    CHANGELOG_COLUMNS,
    INSERTED_AT,
    changelog,
    latest,
    latest_view_sql,
    raw,
)
from firestore_export.lib.warehouse import Warehouse

logger = logging.getLogger(__name__)

__all__ = ["TrackerConfig", "TrackerState", "EventHistoryTracker", "build_row"]


class TrackerState(Enum):
    """Provisioning latch. Only ever moves from UNINITIALIZED to READY."""

    UNINITIALIZED = "uninitialized"
    READY = "ready"


@dataclass
class TrackerConfig:
    """Destination for one changelog.

    Attributes:
        table_id: Table stem; the changelog is ``<stem>_raw_changelog``
        dataset_id: BigQuery dataset holding the table and view
        initialized: Skip provisioning, the resources are known to exist.
            Rows are then written without ``_inserted_at``.
    """

    table_id: str
    dataset_id: str
    initialized: bool = False


def _json_default(value: Any) -> Any:
    """Serialize the Firestore value types ``json`` does not know."""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, bytes):
        return base64.b64encode(value).decode("ascii")
    if hasattr(value, "latitude") and hasattr(value, "longitude"):
        return {"latitude": value.latitude, "longitude": value.longitude}
    # DocumentReference
    if hasattr(value, "path") and hasattr(value, "id"):
        return value.path
    return str(value)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def build_row(event: ChangeEvent, inserted_at: Optional[datetime] = None) -> Dict[str, Any]:
    """Map a change event onto the changelog row shape.

    ``inserted_at`` is only written when given, so rows stay valid for
    tables without that column.
    """
    row = {
        "timestamp": event.timestamp.isoformat(),
        "eventId": event.event_id,
        "document_name": event.document_name,
        "operation": event.operation.name,
        "data": None if event.data is None else json.dumps(event.data, default=_json_default),
    }
    if inserted_at is not None:
        row[INSERTED_AT] = inserted_at.isoformat()
    return row


class EventHistoryTracker:
    """Records change events into ``<stem>_raw_changelog``.

    Example:
        >>> tracker = EventHistoryTracker(
        ...     TrackerConfig(table_id="users", dataset_id="firestore_export"),
        ...     BigQueryWarehouse("my-project"),
        ... )
        >>> tracker.record(events)
    """

    def __init__(self, config: TrackerConfig, warehouse: Warehouse) -> None:
        self.config = config
        self.warehouse = warehouse
        self.state = TrackerState.READY if config.initialized else TrackerState.UNINITIALIZED
        self._lock = threading.Lock()
        # Learned while provisioning; rows carry no stamp until then
        self.insertion_order = False
        self._last_inserted_at: Optional[datetime] = None

    @property
    def raw_table_name(self) -> str:
        return raw(self.config.table_id)

    @property
    def changelog_name(self) -> str:
        return changelog(self.raw_table_name)

    @property
    def latest_view_name(self) -> str:
        return latest(self.raw_table_name)

    def record(self, events: Sequence[ChangeEvent]) -> None:
        """Append ``events`` to the changelog.

        Provisioning failures are logged and the insert is attempted anyway.
        Insert failures raise ``InsertionError``.
        """
        if self.state is not TrackerState.READY:
            try:
                self.initialize()
            except ProvisioningError as e:
                logger.error(
                    "Error provisioning BigQuery resources for %s.%s: %s",
                    self.config.dataset_id,
                    self.changelog_name,
                    e,
                )

        rows = [
            build_row(event, self._next_inserted_at() if self.insertion_order else None)
            for event in events
        ]
        self.insert_data(rows)

    def initialize(self) -> None:
        """Ensure the dataset, changelog table and latest view exist.

        Safe to call repeatedly and from several threads; existing resources
        are never modified.
        """
        with self._lock:
            if self.state is TrackerState.READY:
                return
            dataset_id = self.config.dataset_id
            self.initialize_dataset(dataset_id)
            self.initialize_changelog(dataset_id, self.raw_table_name)
            self.initialize_latest_view(dataset_id, self.raw_table_name)
            self.state = TrackerState.READY

    def _next_inserted_at(self) -> datetime:
        """Strictly increasing stamp, even when the clock stalls or steps back."""
        with self._lock:
            stamp = _utc_now()
            last = self._last_inserted_at
            if last is not None and stamp <= last:
                stamp = last + timedelta(microseconds=1)
            self._last_inserted_at = stamp
            return stamp

    def insert_data(self, rows: Sequence[Dict[str, Any]]) -> None:
        if not rows:
            logger.debug("No rows to insert into %s", self.changelog_name)
            return

        row_count = len(rows)
        logger.debug("Inserting %d row(s) into %s", row_count, self.changelog_name)
        self.warehouse.insert_rows(self.config.dataset_id, self.changelog_name, rows)
        logger.debug("Inserted %d row(s) into %s", row_count, self.changelog_name)

    def initialize_dataset(self, dataset_id: str) -> None:
        if self.warehouse.dataset_exists(dataset_id):
            logger.debug("BigQuery dataset already exists: %s", dataset_id)
            return
        logger.info("Creating BigQuery dataset: %s", dataset_id)
        self.warehouse.create_dataset(dataset_id)
        logger.info("Created BigQuery dataset: %s", dataset_id)

    def initialize_changelog(self, dataset_id: str, table_name: str) -> None:
        changelog_name = changelog(table_name)
        if self.warehouse.table_exists(dataset_id, changelog_name):
            logger.debug(
                "BigQuery table %s already exists in dataset %s", changelog_name, dataset_id
            )
            columns = self.warehouse.table_columns(dataset_id, changelog_name)
            self.insertion_order = INSERTED_AT in columns
            if not self.insertion_order:
                logger.info(
                    "Table %s has no %s column; timestamp ties in the latest view "
                    "fall back to eventId",
                    changelog_name,
                    INSERTED_AT,
                )
            return
        logger.info("Creating BigQuery table: %s", changelog_name)
        self.warehouse.create_table(dataset_id, changelog_name, CHANGELOG_COLUMNS)
        self.insertion_order = True
        logger.info("Created BigQuery table: %s", changelog_name)

    def initialize_latest_view(self, dataset_id: str, table_name: str) -> None:
        view_name = latest(table_name)
        if self.warehouse.view_exists(dataset_id, view_name):
            logger.debug(
                "BigQuery view %s already exists in dataset %s", view_name, dataset_id
            )
            return
        logger.info("Creating BigQuery view: %s", view_name)
        query = latest_view_sql(
            self.warehouse.project_id,
            dataset_id,
            changelog(table_name),
            insertion_order=self.insertion_order,
        )
        self.warehouse.create_view(dataset_id, view_name, query)
        logger.info("Created BigQuery view: %s", view_name)
