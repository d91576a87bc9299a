"""Selection of the configured storage backend."""

from planbook.core.config import Settings, get_settings
from planbook.core.logging import get_logger
from planbook.infrastructure.storage.base import StorageBackend
from planbook.infrastructure.storage.local_storage_backend import LocalStorageBackend
from planbook.infrastructure.storage.memory_storage_backend import InMemoryStorageBackend
from planbook.infrastructure.storage.s3_storage_backend import S3StorageBackend, S3StorageSettings

logger = get_logger(__name__)


def build_storage_backend(settings: Settings | None = None) -> StorageBackend:
    """Build the backend named by ``settings.storage_backend``.

    Raises:
        ValueError: If the backend name is not supported.
    """
    settings = settings or get_settings()
    name = settings.storage_backend

    if name == "local":
        backend: StorageBackend = LocalStorageBackend(
            storage_path=settings.storage_path,
            trash_folder_name=settings.trash_folder_name,
        )
    elif name == "s3":
        backend = S3StorageBackend(settings=S3StorageSettings.from_settings(settings))
    elif name == "memory":
        if settings.is_production:
            logger.warning("In-memory storage selected in production; data will not persist")
        backend = InMemoryStorageBackend()
    else:
        raise ValueError(f"Unsupported storage backend: {name}")

    logger.info("Storage backend selected", backend=name)
    return backend
