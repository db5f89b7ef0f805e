"""Destination warehouse interface and its BigQuery implementation.

The tracker only talks to ``Warehouse``. ``BigQueryWarehouse`` maps those
calls onto ``google-cloud-bigquery`` and turns client failures into
``ProvisioningError`` / ``InsertionError``.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

from google.api_core.exceptions import GoogleAPIError, NotFound
from google.cloud import bigquery

from firestore_export.lib.errors import InsertionError, ProvisioningError
from firestore_export.lib.schema import ColumnSpec

logger = logging.getLogger(__name__)

__all__ = ["Warehouse", "BigQueryWarehouse", "create_bigquery_client"]


class Warehouse(ABC):
    """Dataset/table/view management plus streaming inserts."""

    project_id: str

    @abstractmethod
    def dataset_exists(self, dataset_id: str) -> bool:
        ...

    @abstractmethod
    def create_dataset(self, dataset_id: str) -> None:
        ...

    @abstractmethod
    def table_exists(self, dataset_id: str, table_name: str) -> bool:
        ...

    @abstractmethod
    def create_table(
        self, dataset_id: str, table_name: str, schema: Sequence[ColumnSpec]
    ) -> None:
        ...

    @abstractmethod
    def table_columns(self, dataset_id: str, table_name: str) -> List[str]:
        """Column names of an existing table, in schema order."""

    def view_exists(self, dataset_id: str, view_name: str) -> bool:
        # Views live in the table namespace
        return self.table_exists(dataset_id, view_name)

    @abstractmethod
    def create_view(self, dataset_id: str, view_name: str, query: str) -> None:
        ...

    @abstractmethod
    def insert_rows(
        self, dataset_id: str, table_name: str, rows: Sequence[Dict[str, Any]]
    ) -> None:
        """Insert ``rows`` as one request.

        The batch is all-or-nothing: if any row is rejected nothing is
        committed and ``InsertionError`` is raised with the per-row errors.
        """


def create_bigquery_client(
    project_id: str,
    location: Optional[str] = None,
) -> bigquery.Client:
    """Build a BigQuery client bound to an explicit project."""
    return bigquery.Client(project=project_id, location=location)


class BigQueryWarehouse(Warehouse):
    """``Warehouse`` backed by the BigQuery API.

    Example:
        >>> warehouse = BigQueryWarehouse("my-project", location="EU")
        >>> warehouse.dataset_exists("firestore_export")
        True
    """

    def __init__(
        self,
        project_id: str,
        *,
        client: Optional[bigquery.Client] = None,
        location: Optional[str] = None,
    ) -> None:
        self.project_id = project_id
        self.location = location
        self._client = client

    @property
    def client(self) -> bigquery.Client:
        if self._client is None:
            self._client = create_bigquery_client(self.project_id, self.location)
        return self._client

    def _ref(self, dataset_id: str, name: Optional[str] = None) -> str:
        if name is None:
            return f"{self.project_id}.{dataset_id}"
        return f"{self.project_id}.{dataset_id}.{name}"

    def dataset_exists(self, dataset_id: str) -> bool:
        try:
            self.client.get_dataset(self._ref(dataset_id))
            return True
        except NotFound:
            return False
        except GoogleAPIError as e:
            raise ProvisioningError(
                "Could not check dataset", resource=self._ref(dataset_id), cause=e
            ) from e

    def create_dataset(self, dataset_id: str) -> None:
        dataset = bigquery.Dataset(self._ref(dataset_id))
        if self.location:
            dataset.location = self.location
        try:
            self.client.create_dataset(dataset, exists_ok=True)
        except GoogleAPIError as e:
            raise ProvisioningError(
                "Could not create dataset", resource=self._ref(dataset_id), cause=e
            ) from e

    def table_exists(self, dataset_id: str, table_name: str) -> bool:
        try:
            self.client.get_table(self._ref(dataset_id, table_name))
            return True
        except NotFound:
            return False
        except GoogleAPIError as e:
            raise ProvisioningError(
                "Could not check table",
                resource=self._ref(dataset_id, table_name),
                cause=e,
            ) from e

    def table_columns(self, dataset_id: str, table_name: str) -> List[str]:
        try:
            table = self.client.get_table(self._ref(dataset_id, table_name))
        except GoogleAPIError as e:
            raise ProvisioningError(
                "Could not read table schema",
                resource=self._ref(dataset_id, table_name),
                cause=e,
            ) from e
        return [field.name for field in table.schema]

    def create_table(
        self, dataset_id: str, table_name: str, schema: Sequence[ColumnSpec]
    ) -> None:
        table = bigquery.Table(
            self._ref(dataset_id, table_name),
            schema=[
                bigquery.SchemaField(
                    column.name,
                    column.field_type,
                    mode=column.mode,
                    description=column.description,
                )
                for column in schema
            ],
        )
        table.friendly_name = table_name
        try:
            self.client.create_table(table, exists_ok=True)
        except GoogleAPIError as e:
            raise ProvisioningError(
                "Could not create table",
                resource=self._ref(dataset_id, table_name),
                cause=e,
            ) from e

    def create_view(self, dataset_id: str, view_name: str, query: str) -> None:
        view = bigquery.Table(self._ref(dataset_id, view_name))
        view.friendly_name = view_name
        view.view_query = query
        try:
            self.client.create_table(view, exists_ok=True)
        except GoogleAPIError as e:
            raise ProvisioningError(
                "Could not create view",
                resource=self._ref(dataset_id, view_name),
                cause=e,
            ) from e

    def insert_rows(
        self, dataset_id: str, table_name: str, rows: Sequence[Dict[str, Any]]
    ) -> None:
        table_ref = self._ref(dataset_id, table_name)
        try:
            errors: List[Dict[str, Any]] = self.client.insert_rows_json(
                table_ref,
                list(rows),
                skip_invalid_rows=False,
                ignore_unknown_values=False,
            )
        except GoogleAPIError as e:
            raise InsertionError(
                f"Streaming insert into {table_ref} failed",
                dataset=dataset_id,
                table=table_name,
                row_count=len(rows),
                cause=e,
            ) from e

        if errors:
            raise InsertionError(
                f"Streaming insert into {table_ref} rejected {len(errors)} row(s)",
                dataset=dataset_id,
                table=table_name,
                row_count=len(rows),
                row_errors=errors,
            )
