"""Library modules for the Firestore to BigQuery export.

This package contains the walker, the change-event model, the event history
tracker and the supporting configuration, storage and logging helpers.
"""

from firestore_export.lib.checkpoint import (
    CheckpointStore,
    StorageCheckpointStore,
    get_checkpoint_store,
)
from firestore_export.lib.config_loader import (
    ImportConfig,
    build_import_config,
    load_config_file,
)
from firestore_export.lib.errors import (
    CheckpointError,
    ConfigurationError,
    ExportError,
    InsertionError,
    ProvisioningError,
    SourceQueryError,
    ValidationError,
)
from firestore_export.lib.events import (
    ChangeEvent,
    ChangeType,
    document_resource_name,
    synthesize_import_event,
)
from firestore_export.lib.importer import ImportResult, checkpoint_store_for, run_import
from firestore_export.lib.schema import (
    changelog_table_name,
    latest_state,
    latest_view_name,
    latest_view_sql,
)
from firestore_export.lib.tracker import (
    EventHistoryTracker,
    TrackerConfig,
    TrackerState,
    build_row,
)
from firestore_export.lib.walker import CollectionWalker, DocumentSource
from firestore_export.lib.warehouse import BigQueryWarehouse, Warehouse

__all__ = [
    # Checkpoints
    "CheckpointStore",
    "StorageCheckpointStore",
    "get_checkpoint_store",
    # Config
    "ImportConfig",
    "build_import_config",
    "load_config_file",
    # Errors
    "CheckpointError",
    "ConfigurationError",
    "ExportError",
    "InsertionError",
    "ProvisioningError",
    "SourceQueryError",
    "ValidationError",
    # Events
    "ChangeEvent",
    "ChangeType",
    "document_resource_name",
    "synthesize_import_event",
    # Import
    "ImportResult",
    "checkpoint_store_for",
    "run_import",
    # Schema
    "changelog_table_name",
    "latest_state",
    "latest_view_name",
    "latest_view_sql",
    # Tracker
    "EventHistoryTracker",
    "TrackerConfig",
    "TrackerState",
    "build_row",
    # Walker
    "CollectionWalker",
    "DocumentSource",
    # Warehouse
    "BigQueryWarehouse",
    "Warehouse",
]
