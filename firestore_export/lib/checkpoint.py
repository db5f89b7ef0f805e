"""Resume checkpoints for import runs.

A checkpoint holds the token of the last document whose page was fully
recorded. It is written before each page's query, removed after a complete
walk, and left in place when a run fails or is killed so the next run can
pick up where this one stopped.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional

from botocore.exceptions import BotoCoreError, ClientError

from firestore_export.lib.errors import CheckpointError
from firestore_export.lib.storage import StorageBackend, get_storage

logger = logging.getLogger(__name__)

__all__ = [
    "CheckpointStore",
    "StorageCheckpointStore",
    "DEFAULT_STATE_DIR",
    "get_checkpoint_store",
]

DEFAULT_STATE_DIR = ".state"

_STORAGE_ERRORS = (OSError, BotoCoreError, ClientError)


class CheckpointStore(ABC):
    """load / save / clear for a single import job's resume token."""

    @property
    @abstractmethod
    def location(self) -> str:
        """Human-readable location, used in log lines."""

    @abstractmethod
    def load(self) -> Optional[str]:
        """Return the saved token, or None if there is no checkpoint."""

    @abstractmethod
    def save(self, token: str) -> None:
        """Persist ``token``, replacing any previous value."""

    @abstractmethod
    def clear(self) -> bool:
        """Remove the checkpoint. Returns False if there was none."""


class StorageCheckpointStore(CheckpointStore):
    """Checkpoint kept as one raw-text object in a ``StorageBackend``."""

    def __init__(self, storage: StorageBackend, name: str) -> None:
        self.storage = storage
        self.name = name

    @property
    def location(self) -> str:
        return self.storage.get_full_path(self.name)

    def load(self) -> Optional[str]:
        try:
            if not self.storage.exists(self.name):
                logger.debug("No checkpoint found at %s", self.location)
                return None
            token = self.storage.read_text(self.name)
        except _STORAGE_ERRORS as e:
            raise CheckpointError(
                "Could not read checkpoint", location=self.location, cause=e
            ) from e

        if not token:
            logger.warning("Ignoring empty checkpoint at %s", self.location)
            return None
        return token

    def save(self, token: str) -> None:
        try:
            self.storage.write_text(self.name, token)
        except _STORAGE_ERRORS as e:
            raise CheckpointError(
                "Could not write checkpoint",
                location=self.location,
                token=token,
                cause=e,
            ) from e
        logger.debug("Saved checkpoint %s: %s", self.location, token)

    def clear(self) -> bool:
        try:
            deleted = self.storage.delete(self.name)
        except _STORAGE_ERRORS as e:
            raise CheckpointError(
                "Could not delete checkpoint", location=self.location, cause=e
            ) from e
        if deleted:
            logger.debug("Deleted checkpoint %s", self.location)
        return deleted


def get_checkpoint_store(base_path: str, name: str, **options) -> CheckpointStore:
    """Checkpoint store for ``name`` under a local directory or ``s3://`` URI."""
    return StorageCheckpointStore(get_storage(base_path, **options), name)
