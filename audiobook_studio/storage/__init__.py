"""Object storage adapters."""

from __future__ import annotations

from pathlib import Path

from ..config import StudioSettings
from .backoff import StorageBackoff
from .object_store import LocalObjectStore, ObjectStore, StoredObject


def create_object_store(settings: StudioSettings) -> ObjectStore:
    """Return the object store selected by ``settings.storage_backend``."""

    if settings.storage_backend == "s3":
        from .s3_store import S3ObjectStore

        return S3ObjectStore.from_settings(settings)
    return LocalObjectStore(Path(settings.storage_root))


__all__ = [
    "LocalObjectStore",
    "ObjectStore",
    "StorageBackoff",
    "StoredObject",
    "create_object_store",
]
