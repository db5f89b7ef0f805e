"""Checkpoint storage on the local filesystem."""

from __future__ import annotations

import os
from pathlib import Path

from firestore_export.lib.storage.base import StorageBackend, WriteResult

__all__ = ["LocalStorage"]


class LocalStorage(StorageBackend):
    """Objects are plain files under ``base_path``.

    Example:
        >>> storage = LocalStorage(".state")
        >>> storage.write_text("from-users-to-demo_firestore_export_users_raw_changelog", "doc42")
        >>> storage.read_text("from-users-to-demo_firestore_export_users_raw_changelog")
        'doc42'
    """

    @property
    def scheme(self) -> str:
        return "local"

    def _file(self, name: str) -> Path:
        return Path(self.get_full_path(name))

    def exists(self, name: str) -> bool:
        return self._file(name).is_file()

    def read_bytes(self, name: str) -> bytes:
        return self._file(name).read_bytes()

    def write_bytes(self, name: str, data: bytes) -> WriteResult:
        target = self._file(name)
        target.parent.mkdir(parents=True, exist_ok=True)

        # Readers only ever see the old or the new contents
        staging = target.with_name(f".{target.name}.{os.getpid()}.tmp")
        staging.write_bytes(data)
        os.replace(staging, target)
        return WriteResult(path=str(target), bytes_written=len(data))

    def delete(self, name: str) -> bool:
        try:
            self._file(name).unlink()
        except FileNotFoundError:
            return False
        return True
