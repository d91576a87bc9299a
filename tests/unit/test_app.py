"""Unit tests for the service factory."""

from planbook import __version__, create_services
from planbook.core.config import Settings
from planbook.infrastructure.storage import InMemoryStorageBackend


def test_create_services_shares_backend():
    settings = Settings(environment="testing", storage_backend="memory", legacy_root_folder_names=["OldBook"])

    services = create_services(settings)

    assert isinstance(services.backend, InMemoryStorageBackend)
    assert services.documents.backend is services.backend
    assert services.groups.store is services.documents
    assert services.resolver.legacy_root_names == ("OldBook",)


def test_create_services_accepts_backend():
    backend = InMemoryStorageBackend()

    services = create_services(Settings(environment="testing"), backend=backend)

    assert services.backend is backend


def test_version():
    assert __version__ == "0.1.0"
