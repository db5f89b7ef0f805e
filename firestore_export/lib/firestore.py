"""Cloud Firestore implementation of ``DocumentSource``."""

from __future__ import annotations

import logging
from typing import Any, Optional

from google.cloud import firestore

from firestore_export.lib.walker import DocumentSource

logger = logging.getLogger(__name__)

__all__ = ["FirestoreSource", "create_firestore_client"]


def create_firestore_client(project_id: str) -> firestore.Client:
    """Build a Firestore client bound to an explicit project.

    Credentials come from Application Default Credentials.
    """
    return firestore.Client(project=project_id)


class FirestoreSource(DocumentSource):
    """Reads documents through ``google-cloud-firestore``."""

    def __init__(
        self,
        project_id: str,
        *,
        client: Optional[firestore.Client] = None,
    ) -> None:
        self.project_id = project_id
        self._client = client

    @property
    def client(self) -> firestore.Client:
        if self._client is None:
            self._client = create_firestore_client(self.project_id)
            logger.debug("Created Firestore client for project %s", self.project_id)
        return self._client

    def collection(self, path: str) -> Any:
        return self.client.collection(path)

    def collection_group(self, collection_id: str) -> Any:
        return self.client.collection_group(collection_id)

    def document(self, path: str) -> Any:
        return self.client.document(path)
