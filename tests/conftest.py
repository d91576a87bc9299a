"""Pytest configuration for all tests."""

from datetime import datetime, timezone

import pytest

from planbook.application.services import DocumentStore, GroupService
from planbook.core.config import Settings
from planbook.core.logging import get_logger
from planbook.domain.services import PathResolver
from planbook.infrastructure.storage import InMemoryStorageBackend

logger = get_logger(__name__)

FIXED_NOW = datetime(2024, 3, 14, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        environment="testing",
        storage_backend="memory",
        log_format="console",
        member_mask_visible_chars=2,
    )


@pytest.fixture
def backend() -> InMemoryStorageBackend:
    return InMemoryStorageBackend()


@pytest.fixture
def resolver() -> PathResolver:
    return PathResolver("PlanBook")


@pytest.fixture
def store(backend, resolver) -> DocumentStore:
    return DocumentStore(backend, resolver, clock=lambda: FIXED_NOW)


@pytest.fixture
def groups(backend, resolver, store, settings) -> GroupService:
    return GroupService(backend, resolver, store, settings)


@pytest.fixture
def plan_payload() -> dict:
    return {
        "subject": "Math",
        "grade": "5",
        "semester": "1",
        "evaluations": [
            {
                "evaluationName": "Quiz1",
                "achievementStandards": ["A1"],
                "evaluationCriteria": {},
                "evaluationMethod": "written",
                "evaluationPeriod": "March",
            }
        ],
    }


@pytest.fixture
def roster_payload() -> dict:
    return {
        "className": "5-2",
        "grade": "5",
        "semester": "1",
        "teacher": "Ms. Kim",
        "students": [
            {"number": 1, "name": "Alice"},
            {"number": 2, "name": "Bora"},
        ],
        "createdAt": "2024-03-01T08:00:00+00:00",
        "updatedAt": "2024-03-01T08:00:00+00:00",
    }
