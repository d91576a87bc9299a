import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from planbook.core.config import Settings, get_settings


def test_settings_defaults():
    """Test that settings load with correct defaults."""
    get_settings.cache_clear()

    settings = Settings()

    assert settings.app_name == "PlanBook"
    assert settings.environment == "development"
    assert settings.storage_backend == "local"
    assert settings.root_folder_name == "PlanBook"
    assert settings.legacy_root_folder_names == []
    assert settings.trash_folder_name == ".trash"
    assert settings.member_mask_visible_chars == 2
    assert settings.is_development is True
    assert settings.is_production is False
    assert settings.is_testing is False


def test_settings_env_override():
    """Test that environment variables override defaults."""
    get_settings.cache_clear()

    with patch.dict(os.environ, {
        "PLANBOOK_ENVIRONMENT": "production",
        "PLANBOOK_STORAGE_BACKEND": "memory",
        "PLANBOOK_ROOT_FOLDER_NAME": "Planner",
        "PLANBOOK_MEMBER_MASK_VISIBLE_CHARS": "3",
    }):
        settings = Settings()

        assert settings.environment == "production"
        assert settings.storage_backend == "memory"
        assert settings.root_folder_name == "Planner"
        assert settings.member_mask_visible_chars == 3
        assert settings.is_production is True


def test_legacy_root_names_from_comma_separated_string():
    settings = Settings(legacy_root_folder_names="OldPlanBook, Archive ,")
    assert settings.legacy_root_folder_names == ["OldPlanBook", "Archive"]


def test_legacy_root_names_from_json_env():
    with patch.dict(os.environ, {"PLANBOOK_LEGACY_ROOT_FOLDER_NAMES": '["OldPlanBook"]'}):
        settings = Settings()
    assert settings.legacy_root_folder_names == ["OldPlanBook"]


def test_s3_backend_requires_bucket():
    with pytest.raises(ValidationError, match="PLANBOOK_S3_BUCKET"):
        Settings(storage_backend="s3")


def test_s3_backend_with_bucket():
    settings = Settings(storage_backend="s3", s3_bucket="plans")
    assert settings.s3_bucket == "plans"


@pytest.mark.parametrize("name", ["", "a/b"])
def test_invalid_root_folder_name(name):
    with pytest.raises(ValidationError):
        Settings(root_folder_name=name)


def test_unknown_backend_rejected():
    with pytest.raises(ValidationError):
        Settings(storage_backend="ftp")


def test_get_settings_is_cached():
    get_settings.cache_clear()
    assert get_settings() is get_settings()
