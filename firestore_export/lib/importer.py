"""Resumable bulk import of a Firestore collection into the changelog.

Each document becomes an ``IMPORT`` change event stamped with the Unix
epoch, so any organic change recorded for the same document supersedes it
in the latest view.

The run is strictly sequential: save checkpoint -> fetch page -> synthesize
-> record -> next page. The checkpoint therefore never runs ahead of what
has been recorded; a failed or killed run re-imports at most one page when
resumed.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

from firestore_export.lib.checkpoint import CheckpointStore, get_checkpoint_store
from firestore_export.lib.config_loader import ImportConfig
from firestore_export.lib.errors import CheckpointError
from firestore_export.lib.events import synthesize_import_event
from firestore_export.lib.logging import get_pipeline_logger
from firestore_export.lib.paths import checkpoint_name
from firestore_export.lib.tracker import EventHistoryTracker
from firestore_export.lib.walker import CollectionWalker, DocumentSource

logger = get_pipeline_logger(__name__)

__all__ = ["ImportResult", "run_import", "checkpoint_store_for"]


@dataclass
class ImportResult:
    """Outcome of a completed import run."""

    docs_read: int = 0
    rows_imported: int = 0
    pages: int = 0
    resumed_from: Optional[str] = None
    duration_seconds: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "docs_read": self.docs_read,
            "rows_imported": self.rows_imported,
            "pages": self.pages,
            "resumed_from": self.resumed_from,
            "duration_seconds": round(self.duration_seconds, 3),
        }


def checkpoint_store_for(config: ImportConfig, **options: Any) -> CheckpointStore:
    """The checkpoint store for ``config``'s (source, destination) pair."""
    name = checkpoint_name(
        config.source_collection_path,
        config.project_id,
        config.dataset_id,
        config.table_id,
    )
    return get_checkpoint_store(config.checkpoint_dir, name, **options)


def run_import(
    config: ImportConfig,
    source: DocumentSource,
    tracker: EventHistoryTracker,
    checkpoints: CheckpointStore,
) -> ImportResult:
    """Walk ``config.source_collection_path`` and record every document.

    Raises:
        SourceQueryError: A page could not be fetched
        InsertionError: A page could not be written to the changelog
        CheckpointError: The checkpoint could not be read or written
    """
    started = time.time()
    walker = CollectionWalker(source, config.source_collection_path, config.batch_size)
    result = ImportResult()

    logger.set_context(
        source=config.source_collection_path,
        dataset=config.dataset_id,
        table=tracker.changelog_name,
    )
    logger.info(
        "Importing data from Cloud Firestore Collection: %s, to BigQuery Dataset: %s, Table: %s",
        config.source_collection_path,
        config.dataset_id,
        tracker.changelog_name,
    )

    cursor = None
    token = checkpoints.load()
    if token is not None:
        cursor = walker.resolve_cursor(token)
        result.resumed_from = token
        logger.info(
            "Resuming import of Cloud Firestore Collection %s from document %s.",
            config.source_collection_path,
            token,
        )

    while True:
        if cursor is not None:
            checkpoints.save(walker.checkpoint_token(cursor))

        docs = walker.fetch_next_page(cursor)
        if not docs:
            break

        result.pages += 1
        result.docs_read += len(docs)
        cursor = docs[-1]

        events = [
            synthesize_import_event(doc, config.project_id)
            for doc in docs
            if walker.matches(doc)
        ]
        tracker.record(events)
        result.rows_imported += len(events)

        logger.info(
            "Page %d: rows %d, docs read %d, rows imported %d",
            result.pages,
            len(events),
            result.docs_read,
            result.rows_imported,
        )

    try:
        checkpoints.clear()
    except CheckpointError as e:
        logger.warning(
            "Error removing checkpoint %s after successful import: %s",
            checkpoints.location,
            e,
        )

    result.duration_seconds = time.time() - started
    logger.metric("rows_imported", result.rows_imported, unit="rows")
    logger.metric("docs_read", result.docs_read, unit="docs")
    logger.metric("duration_seconds", round(result.duration_seconds, 3), unit="seconds")
    return result
