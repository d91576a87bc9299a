"""Service factory.

Wires the storage backend, path resolver, document store and group
service from settings so callers get a ready set of services.
"""

from dataclasses import dataclass

from planbook.application.services.document_store import DocumentStore
from planbook.application.services.group_service import GroupService
from planbook.core.config import Settings, get_settings
from planbook.core.logging import configure_logging, get_logger
from planbook.domain.services.path_resolver import PathResolver
from planbook.infrastructure.storage.base import StorageBackend
from planbook.infrastructure.storage.storage_service import build_storage_backend

logger = get_logger(__name__)


@dataclass
class PlanBookServices:
    """Services sharing one backend and folder layout."""

    settings: Settings
    backend: StorageBackend
    resolver: PathResolver
    documents: DocumentStore
    groups: GroupService


def create_services(
    settings: Settings | None = None,
    backend: StorageBackend | None = None,
) -> PlanBookServices:
    """Create the service set.

    Args:
        settings: Optional settings instance. If not provided, will load from environment.
        backend: Optional backend; built from settings if omitted.

    Returns:
        PlanBookServices: Wired services.
    """
    if settings is None:
        settings = get_settings()

    configure_logging(settings)

    backend = backend or build_storage_backend(settings)
    resolver = PathResolver(settings.root_folder_name, settings.legacy_root_folder_names)
    documents = DocumentStore(backend, resolver)
    groups = GroupService(backend, resolver, documents, settings)

    logger.info(
        "Starting PlanBook",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
        storage_backend=type(backend).__name__,
    )
    return PlanBookServices(
        settings=settings,
        backend=backend,
        resolver=resolver,
        documents=documents,
        groups=groups,
    )
