"""Unit tests for storage backend selection."""

from unittest import mock

import pytest

from planbook.core.config import Settings
from planbook.infrastructure.storage import (
    InMemoryStorageBackend,
    LocalStorageBackend,
    S3StorageBackend,
    build_storage_backend,
)


def test_builds_local_backend(tmp_path):
    backend = build_storage_backend(Settings(storage_backend="local", storage_path=str(tmp_path)))

    assert isinstance(backend, LocalStorageBackend)
    assert backend.storage_path == tmp_path


def test_builds_memory_backend():
    assert isinstance(build_storage_backend(Settings(storage_backend="memory")), InMemoryStorageBackend)


def test_builds_s3_backend():
    backend = build_storage_backend(Settings(storage_backend="s3", s3_bucket="plans", s3_prefix="pb"))

    assert isinstance(backend, S3StorageBackend)
    assert backend.settings.bucket == "plans"


def test_memory_backend_in_production_logs_warning():
    settings = Settings(storage_backend="memory", environment="production")

    with mock.patch("planbook.infrastructure.storage.storage_service.logger") as logger:
        build_storage_backend(settings)

    logger.warning.assert_called_once()


def test_unknown_backend_rejected():
    settings = Settings.model_construct(storage_backend="ftp")

    with pytest.raises(ValueError, match="Unsupported storage backend"):
        build_storage_backend(settings)
