"""Object storage interface used by the checkpoint store.

A checkpoint is a single small object, so backends only need whole-object
reads, writes, existence checks and deletes, addressed relative to a base
path or prefix.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

__all__ = ["StorageBackend", "WriteResult"]


@dataclass(frozen=True)
class WriteResult:
    """Where a write landed and how many bytes it stored."""

    path: str
    bytes_written: int


class StorageBackend(ABC):
    """Whole-object storage rooted at ``base_path``.

    Relative names resolve under ``base_path``; absolute local paths and
    ``s3://`` URIs are used as given.
    """

    def __init__(self, base_path: str, **options: Any) -> None:
        self.base_path = base_path
        self.options = options

    @property
    @abstractmethod
    def scheme(self) -> str:
        """``local`` or ``s3``."""

    @abstractmethod
    def exists(self, name: str) -> bool:
        ...

    @abstractmethod
    def read_bytes(self, name: str) -> bytes:
        """Raises FileNotFoundError if ``name`` does not exist."""

    @abstractmethod
    def write_bytes(self, name: str, data: bytes) -> WriteResult:
        """Replace the object's contents with ``data``."""

    @abstractmethod
    def delete(self, name: str) -> bool:
        """Returns False if there was nothing to delete."""

    def read_text(self, name: str) -> str:
        return self.read_bytes(name).decode("utf-8")

    def write_text(self, name: str, text: str) -> WriteResult:
        return self.write_bytes(name, text.encode("utf-8"))

    def get_full_path(self, name: str) -> str:
        if not name:
            return self.base_path
        if name.startswith(("s3://", "/")):
            return name
        return f"{self.base_path.rstrip('/')}/{name.lstrip('/')}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.base_path!r})"
