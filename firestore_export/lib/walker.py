"""Paginated walk over a Firestore collection or wildcard collection path.

Pages are fetched in the store's natural document order, each one starting
after the last document of the previous page. A wildcard path such as
``events/{eventId}/participants`` is walked with a collection-group query
on ``participants`` and filtered down to documents whose full path matches.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, List, Optional, Pattern

from google.api_core.exceptions import GoogleAPIError

from firestore_export.lib.errors import CheckpointError, SourceQueryError
from firestore_export.lib.paths import (
    collection_group_name,
    is_wildcard_path,
    wildcard_regex,
)

logger = logging.getLogger(__name__)

__all__ = ["DocumentSource", "CollectionWalker", "DEFAULT_PAGE_SIZE"]

DEFAULT_PAGE_SIZE = 300


class DocumentSource(ABC):
    """The slice of a document-store client the walker needs.

    Queries returned by ``collection`` and ``collection_group`` must support
    ``.start_after(snapshot)``, ``.limit(n)`` and ``.get()``. Snapshots
    expose ``.id``, ``.exists``, ``.reference.path`` and ``.to_dict()``.
    """

    @abstractmethod
    def collection(self, path: str) -> Any:
        """Query over the documents directly under ``path``."""

    @abstractmethod
    def collection_group(self, collection_id: str) -> Any:
        """Query over every collection named ``collection_id``."""

    @abstractmethod
    def document(self, path: str) -> Any:
        """Reference to the document at ``path``; ``.get()`` returns a snapshot."""


class CollectionWalker:
    """Fetch a source collection one page at a time.

    Example:
        >>> walker = CollectionWalker(source, "events/{eventId}/participants", page_size=2)
        >>> page = walker.fetch_next_page()
        >>> rows = [doc for doc in page if walker.matches(doc)]
        >>> page = walker.fetch_next_page(page[-1])
    """

    def __init__(
        self,
        source: DocumentSource,
        source_path: str,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        if page_size < 1:
            raise ValueError(f"page_size must be positive, got {page_size}")
        self.source = source
        self.source_path = source_path.strip("/")
        self.page_size = page_size
        self.is_collection_group = is_wildcard_path(self.source_path)
        self.pattern: Optional[Pattern[str]] = None
        if self.is_collection_group:
            self.pattern = wildcard_regex(self.source_path)
            logger.info(
                "Processing subcollection, documents will be filtered using regex: %s",
                self.pattern.pattern,
            )

    def base_query(self) -> Any:
        if self.is_collection_group:
            return self.source.collection_group(collection_group_name(self.source_path))
        return self.source.collection(self.source_path)

    def fetch_next_page(self, cursor: Any = None) -> List[Any]:
        """Return the page after ``cursor`` (the first page when None).

        An empty list means the walk is finished.
        """
        query = self.base_query().limit(self.page_size)
        if cursor is not None:
            query = query.start_after(cursor)
        try:
            return list(query.get())
        except GoogleAPIError as e:
            raise SourceQueryError(
                "Failed to fetch a page from Firestore",
                source_path=self.source_path,
                cursor=self.checkpoint_token(cursor) if cursor is not None else None,
                cause=e,
            ) from e

    def matches(self, snapshot: Any) -> bool:
        """True if ``snapshot`` belongs to the configured path."""
        if self.pattern is None:
            return True
        return bool(self.pattern.search(snapshot.reference.path))

    def checkpoint_token(self, snapshot: Any) -> str:
        """Text stored in the checkpoint for ``snapshot``.

        Plain collections use the bare document id. Collection-group walks
        use the relative document path since ids repeat across parents.
        """
        if self.is_collection_group:
            return snapshot.reference.path
        return snapshot.id

    def resolve_cursor(self, token: str) -> Any:
        """Load the snapshot a checkpoint token points at."""
        if self.is_collection_group:
            path = token
        else:
            path = f"{self.source_path}/{token}"

        try:
            snapshot = self.source.document(path).get()
        except GoogleAPIError as e:
            raise SourceQueryError(
                "Failed to load the checkpointed document",
                source_path=self.source_path,
                cursor=token,
                cause=e,
            ) from e

        if not snapshot.exists:
            raise CheckpointError(
                f"Checkpointed document {path} no longer exists",
                token=token,
                suggestion="Delete the checkpoint to restart the import from the beginning.",
            )
        return snapshot
