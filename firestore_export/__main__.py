"""CLI entry point for importing a Firestore collection into BigQuery.

Usage:
    python -m firestore_export --projectId my-project \\
        --sourceCollectionPath users --tableId users

    python -m firestore_export --projectId my-project \\
        --sourceCollectionPath "events/{eventId}/rounds/{roundId}/participants" \\
        --datasetId firestore_export --tableId participants --batchSize 500

    python -m firestore_export --config users_import.yaml --explain
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from firestore_export.lib.config_loader import (
    DEFAULT_DATASET_ID,
    ImportConfig,
    build_import_config,
    load_config_file,
)
from firestore_export.lib.env import load_env_file
from firestore_export.lib.firestore import FirestoreSource
from firestore_export.lib.importer import ImportResult, checkpoint_store_for, run_import
from firestore_export.lib.logging import setup_logging
from firestore_export.lib.schema import changelog_table_name, latest_view_name, latest_view_sql
from firestore_export.lib.tracker import EventHistoryTracker, TrackerConfig
from firestore_export.lib.warehouse import BigQueryWarehouse

logger = logging.getLogger("firestore_export")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="firestore-bigquery-import",
        description="Import a Cloud Firestore collection into a BigQuery changelog table",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Import a top-level collection
    python -m firestore_export --projectId my-project --sourceCollectionPath users --tableId users

    # Import every matching sub-collection
    python -m firestore_export --projectId my-project \\
        --sourceCollectionPath "events/{eventId}/participants" --tableId participants

    # Keep the resume checkpoint in S3
    python -m firestore_export --config import.yaml --checkpointDir s3://bucket/state

    # Show what would be imported without running
    python -m firestore_export --config import.yaml --explain
        """,
    )
    parser.add_argument("--projectId", dest="project_id", help="Firebase project id")
    parser.add_argument(
        "--sourceCollectionPath",
        dest="source_collection_path",
        help="Collection path, e.g. users or events/{eventId}/posts",
    )
    parser.add_argument(
        "--datasetId",
        dest="dataset_id",
        help=f"BigQuery dataset to import into (default: {DEFAULT_DATASET_ID})",
    )
    parser.add_argument("--tableId", dest="table_id", help="Table prefix")
    parser.add_argument(
        "--batchSize",
        dest="batch_size",
        type=int,
        help="Documents fetched and inserted per page (default: 300)",
    )
    parser.add_argument(
        "--checkpointDir",
        dest="checkpoint_dir",
        help="Directory or s3:// URI for the resume checkpoint (default: .state)",
    )
    parser.add_argument(
        "--datasetLocation",
        dest="dataset_location",
        help="Location for a newly created dataset, e.g. US or EU",
    )
    parser.add_argument("--config", help="YAML file with import settings")
    parser.add_argument("--env-file", help="Load environment variables from this .env file")
    parser.add_argument(
        "--explain",
        action="store_true",
        help="Show what the import would do without executing",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--json-log",
        action="store_true",
        help="Output logs in JSON format (for log aggregation systems)",
    )
    parser.add_argument(
        "--log-file",
        help="Write logs to a file in addition to console",
    )
    return parser


def explain_import(config: ImportConfig) -> None:
    """Print the resolved configuration and the resources the import touches."""
    checkpoints = checkpoint_store_for(config)
    changelog_name = changelog_table_name(config.table_id)

    print()
    print("=" * 60)
    print("IMPORT EXPLANATION")
    print("=" * 60)
    print(f"  Project:      {config.project_id}")
    print(f"  Source:       {config.source_collection_path}")
    print(f"  Changelog:    {config.dataset_id}.{changelog_name}")
    print(f"  Latest view:  {config.dataset_id}.{latest_view_name(config.table_id)}")
    print(f"  Batch size:   {config.batch_size}")
    print(f"  Checkpoint:   {checkpoints.location}")
    print()
    print("LATEST VIEW QUERY:")
    print("-" * 40)
    print(latest_view_sql(config.project_id, config.dataset_id, changelog_name))
    print()
    print("=" * 60)


def print_result(result: ImportResult) -> None:
    print("---------------------------------------------------------")
    print(f"Finished importing {result.rows_imported} Firestore rows to BigQuery")
    print("---------------------------------------------------------")


def run(argv: Optional[List[str]] = None) -> int:
    """Run the CLI and return the process exit code."""
    args = build_parser().parse_args(argv)

    setup_logging(
        verbose=args.verbose,
        json_format=args.json_log,
        log_file=args.log_file,
    )

    try:
        if args.env_file:
            load_env_file(args.env_file)

        file_options = load_config_file(args.config) if args.config else None
        config = build_import_config(
            file_options,
            project_id=args.project_id,
            source_collection_path=args.source_collection_path,
            dataset_id=args.dataset_id,
            table_id=args.table_id,
            batch_size=args.batch_size,
            checkpoint_dir=args.checkpoint_dir,
            dataset_location=args.dataset_location,
        )

        if args.explain:
            explain_import(config)
            return 0

        warehouse = BigQueryWarehouse(config.project_id, location=config.dataset_location)
        tracker = EventHistoryTracker(
            TrackerConfig(table_id=config.table_id, dataset_id=config.dataset_id),
            warehouse,
        )
        result = run_import(
            config,
            FirestoreSource(config.project_id),
            tracker,
            checkpoint_store_for(config),
        )

    except KeyboardInterrupt:
        print("\nInterrupted by user; the checkpoint was kept for resuming", file=sys.stderr)
        return 130

    except Exception as e:
        # Full message (details, suggestion) goes to the log; stderr gets one line
        logger.error("Import failed: %s", e, exc_info=args.verbose)
        summary = str(e).splitlines()[0] if str(e) else type(e).__name__
        print(f"Error importing Collection to BigQuery: {summary}", file=sys.stderr)
        return 1

    print_result(result)
    return 0


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()
