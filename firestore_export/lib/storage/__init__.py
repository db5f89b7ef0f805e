"""Pluggable storage for import checkpoints.

Usage:
    from firestore_export.lib.storage import get_storage

    storage = get_storage(".state")                          # local directory
    storage = get_storage("s3://ops-bucket/firestore-export/")  # S3 prefix
"""

from firestore_export.lib.storage.base import StorageBackend, WriteResult
from firestore_export.lib.storage.local import LocalStorage
from firestore_export.lib.storage.s3 import S3Storage

__all__ = [
    "StorageBackend",
    "WriteResult",
    "LocalStorage",
    "S3Storage",
    "get_storage",
    "parse_uri",
]


def parse_uri(uri: str) -> tuple[str, str]:
    """Split a checkpoint location into ``(scheme, path)``.

    >>> parse_uri(".state")
    ('local', '.state')
    >>> parse_uri("s3://ops-bucket/state/")
    ('s3', 'ops-bucket/state/')
    """
    if uri.startswith("s3://"):
        return "s3", uri[len("s3://"):]
    return "local", uri


def get_storage(uri: str, **options) -> StorageBackend:
    scheme, _ = parse_uri(uri)
    if scheme == "s3":
        return S3Storage(uri, **options)
    return LocalStorage(uri, **options)
