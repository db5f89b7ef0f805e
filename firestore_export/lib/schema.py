"""Changelog table schema, table naming and the latest-state view.

The changelog row shape is the on-write contract between the tracker and
the raw table: any change must keep these field names and only widen types.
The one addition, ``_inserted_at``, is nullable and only present on tables
created by this package; existing tables are never altered.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Tuple

import ibis

__all__ = [
    "ColumnSpec",
    "CHANGELOG_COLUMNS",
    "CHANGELOG_IBIS_SCHEMA",
    "LEGACY_CHANGELOG_IBIS_SCHEMA",
    "INSERTED_AT",
    "raw",
    "changelog",
    "latest",
    "changelog_table_name",
    "latest_view_name",
    "latest_state",
    "latest_view_sql",
]


INSERTED_AT = "_inserted_at"


@dataclass(frozen=True)
class ColumnSpec:
    """Destination-neutral description of one changelog column."""

    name: str
    field_type: str
    mode: str = "NULLABLE"
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.field_type,
            "mode": self.mode,
            "description": self.description,
        }


CHANGELOG_COLUMNS: Tuple[ColumnSpec, ...] = (
    ColumnSpec(
        "timestamp",
        "TIMESTAMP",
        "REQUIRED",
        "The commit timestamp of this change in Cloud Firestore. "
        "Imported rows carry the Unix epoch.",
    ),
    ColumnSpec(
        "eventId",
        "STRING",
        "NULLABLE",
        "The ID of the document change event that triggered this row. "
        "Empty for imported rows.",
    ),
    ColumnSpec(
        "document_name",
        "STRING",
        "REQUIRED",
        "The full name of the changed document, for example "
        "projects/collection/databases/(default)/documents/users/me.",
    ),
    ColumnSpec(
        "operation",
        "STRING",
        "REQUIRED",
        "One of CREATE, UPDATE, DELETE or IMPORT.",
    ),
    ColumnSpec(
        "data",
        "STRING",
        "NULLABLE",
        "The full JSON representation of the document state after the "
        "indicated operation is applied. Null for DELETE operations.",
    ),
    ColumnSpec(
        INSERTED_AT,
        "TIMESTAMP",
        "NULLABLE",
        "When this row was streamed into the changelog. Later insertions "
        "win ties on timestamp in the latest view.",
    ),
)

_FIXED_IBIS_TYPES = {
    "timestamp": "timestamp('UTC')",
    "eventId": "string",
    "document_name": "string",
    "operation": "string",
    "data": "string",
}

CHANGELOG_IBIS_SCHEMA = ibis.schema({**_FIXED_IBIS_TYPES, INSERTED_AT: "timestamp('UTC')"})

# Tables created before the insertion stamp existed
LEGACY_CHANGELOG_IBIS_SCHEMA = ibis.schema(_FIXED_IBIS_TYPES)


def raw(table_name: str) -> str:
    return f"{table_name}_raw"


def changelog(table_name: str) -> str:
    return f"{table_name}_changelog"


def latest(table_name: str) -> str:
    return f"{table_name}_latest"


def changelog_table_name(table_id: str) -> str:
    """``users`` -> ``users_raw_changelog``."""
    return changelog(raw(table_id))


def latest_view_name(table_id: str) -> str:
    """``users`` -> ``users_raw_latest``."""
    return latest(raw(table_id))


def latest_state(t: ibis.Table) -> ibis.Table:
    """Collapse a changelog to one row per live document.

    The winning row per ``document_name`` is the one with the greatest
    ``timestamp``. Ties go to the most recent insertion (``_inserted_at``)
    when the table carries that column, then to the greater ``eventId``.
    Documents whose winning row is a DELETE are dropped.

    Args:
        t: Table with the changelog columns

    Returns:
        Table with the same columns, one row per live document
    """
    original_cols = list(t.columns)
    order_by = [ibis.desc("timestamp")]
    if INSERTED_AT in original_cols:
        order_by.append(ibis.desc(INSERTED_AT))
    order_by.append(ibis.desc("eventId"))
    window = ibis.window(group_by="document_name", order_by=order_by)
    ranked = t.mutate(_rn=ibis.row_number().over(window))
    # row_number() is zero-based in ibis
    return ranked.filter(
        (ranked._rn == 0) & (ranked.operation != "DELETE")
    ).select(*original_cols)


def latest_view_sql(
    project_id: str,
    dataset_id: str,
    changelog_name: str,
    insertion_order: bool = True,
) -> str:
    """Compile the latest-state query over a changelog table to BigQuery SQL.

    Pass ``insertion_order=False`` for a table without ``_inserted_at``.
    """
    source = ibis.table(
        CHANGELOG_IBIS_SCHEMA if insertion_order else LEGACY_CHANGELOG_IBIS_SCHEMA,
        name=changelog_name,
        catalog=project_id,
        database=dataset_id,
    )
    return str(ibis.to_sql(latest_state(source), dialect="bigquery"))
