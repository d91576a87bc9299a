"""Storage backends for the folder tree."""

from planbook.infrastructure.storage.base import StorageBackend, StorageNode
from planbook.infrastructure.storage.local_storage_backend import LocalStorageBackend
from planbook.infrastructure.storage.memory_storage_backend import InMemoryStorageBackend
from planbook.infrastructure.storage.s3_storage_backend import (
    S3StorageBackend,
    S3StorageSettings,
)
from planbook.infrastructure.storage.storage_service import build_storage_backend

__all__ = [
    "InMemoryStorageBackend",
    "LocalStorageBackend",
    "S3StorageBackend",
    "S3StorageSettings",
    "StorageBackend",
    "StorageNode",
    "build_storage_backend",
]
