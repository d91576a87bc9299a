"""Unit tests for the S3 storage backend."""

from datetime import datetime, timezone
from io import BytesIO
from unittest import mock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from planbook.core.config import Settings
from planbook.domain.exceptions import StorageNodeNotFoundError, StorageUnavailableError
from planbook.infrastructure.storage import S3StorageBackend, S3StorageSettings

MODIFIED = datetime(2024, 3, 14, 9, 30, tzinfo=timezone.utc)


def _client_error(code: str, message: str, operation: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


@pytest.fixture
def s3_client() -> mock.MagicMock:
    client = mock.MagicMock()
    client.list_objects_v2.return_value = {"KeyCount": 1, "Contents": [{"Key": "x"}]}
    return client


@pytest.fixture
def s3_backend(s3_client) -> S3StorageBackend:
    backend = S3StorageBackend(
        S3StorageSettings(
            bucket="test-bucket",
            region="us-east-1",
            access_key_id="AKIATEST",
            secret_access_key="secret",
            prefix="planbook/",
        )
    )
    backend._client = s3_client
    return backend


def test_get_client_passes_endpoint_url_when_configured() -> None:
    backend = S3StorageBackend(
        S3StorageSettings(
            bucket="test-bucket",
            region="us-east-1",
            access_key_id="AKIATEST",
            secret_access_key="secret",
            endpoint_url="http://localhost:4566",
        )
    )

    with mock.patch("planbook.infrastructure.storage.s3_storage_backend.boto3.client") as mock_client:
        backend._get_client()
        backend._get_client()

    mock_client.assert_called_once_with(
        "s3",
        region_name="us-east-1",
        aws_access_key_id="AKIATEST",
        aws_secret_access_key="secret",
        endpoint_url="http://localhost:4566",
    )


def test_get_client_without_keys_uses_default_chain() -> None:
    backend = S3StorageBackend(S3StorageSettings(bucket="b", region="eu-west-1"))

    with mock.patch("planbook.infrastructure.storage.s3_storage_backend.boto3.client") as mock_client:
        backend._get_client()

    mock_client.assert_called_once_with("s3", region_name="eu-west-1")


def test_settings_from_application_settings() -> None:
    settings = Settings(storage_backend="s3", s3_bucket="plans", s3_prefix="pb", s3_region="ap-northeast-2")

    s3_settings = S3StorageSettings.from_settings(settings)

    assert s3_settings.bucket == "plans"
    assert s3_settings.prefix == "pb"
    assert s3_settings.region == "ap-northeast-2"
    assert s3_settings.trash_folder_name == ".trash"


@pytest.mark.asyncio
async def test_find_folder_missing_returns_none(s3_backend, s3_client) -> None:
    s3_client.list_objects_v2.return_value = {"KeyCount": 0}

    assert await s3_backend.find_folder("PlanBook", s3_backend.root_id) is None
    s3_client.list_objects_v2.assert_called_once_with(
        Bucket="test-bucket", Prefix="planbook/PlanBook/", MaxKeys=1
    )


@pytest.mark.asyncio
async def test_create_folder_writes_marker(s3_backend, s3_client) -> None:
    s3_client.list_objects_v2.side_effect = [{"KeyCount": 0}]

    node = await s3_backend.create_folder("PlanBook", s3_backend.root_id)

    assert node.id == "PlanBook/"
    assert node.is_folder is True
    s3_client.put_object.assert_called_once_with(Bucket="test-bucket", Key="planbook/PlanBook/", Body=b"")


@pytest.mark.asyncio
async def test_write_file_puts_json_object(s3_backend, s3_client) -> None:
    node = await s3_backend.write_file("PlanBook/plans/", "evaluation_plan_Math_5.json", b"{}")

    assert node.id == "PlanBook/plans/evaluation_plan_Math_5.json"
    assert node.parent_id == "PlanBook/plans/"
    kwargs = s3_client.put_object.call_args.kwargs
    assert kwargs["Key"] == "planbook/PlanBook/plans/evaluation_plan_Math_5.json"
    assert kwargs["ContentType"] == "application/json"
    assert kwargs["Body"] == b"{}"
    assert "created-at" in kwargs["Metadata"]


@pytest.mark.asyncio
async def test_overwrite_keeps_created_at(s3_backend, s3_client) -> None:
    created = datetime(2024, 1, 1, tzinfo=timezone.utc)
    s3_client.head_object.return_value = {
        "LastModified": MODIFIED,
        "Metadata": {"created-at": created.isoformat()},
    }

    node = await s3_backend.write_file("PlanBook/plans/", "ignored.json", b"{}", file_id="PlanBook/plans/a.json")

    assert node.id == "PlanBook/plans/a.json"
    assert node.created_at == created
    assert s3_client.put_object.call_args.kwargs["Metadata"] == {"created-at": created.isoformat()}


@pytest.mark.asyncio
async def test_read_file_returns_body(s3_backend, s3_client) -> None:
    s3_client.get_object.return_value = {"Body": BytesIO(b"payload")}

    assert await s3_backend.read_file("PlanBook/plans/a.json") == b"payload"


@pytest.mark.asyncio
async def test_read_missing_file_raises_not_found(s3_backend, s3_client) -> None:
    s3_client.get_object.side_effect = _client_error("NoSuchKey", "missing", "GetObject")

    with pytest.raises(StorageNodeNotFoundError):
        await s3_backend.read_file("PlanBook/plans/missing.json")


@pytest.mark.asyncio
async def test_access_denied_raises_unavailable(s3_backend, s3_client) -> None:
    s3_client.get_object.side_effect = _client_error("AccessDenied", "denied", "GetObject")

    with pytest.raises(StorageUnavailableError, match="read_file"):
        await s3_backend.read_file("PlanBook/plans/a.json")


@pytest.mark.asyncio
async def test_connection_error_raises_unavailable(s3_backend, s3_client) -> None:
    s3_client.get_object.side_effect = EndpointConnectionError(endpoint_url="http://s3")

    with pytest.raises(StorageUnavailableError):
        await s3_backend.read_file("PlanBook/plans/a.json")


@pytest.mark.asyncio
async def test_list_children_follows_pagination(s3_backend, s3_client) -> None:
    s3_client.list_objects_v2.side_effect = [
        {"KeyCount": 1},
        {
            "CommonPrefixes": [{"Prefix": "planbook/PlanBook/plans/"}, {"Prefix": "planbook/PlanBook/.trash/"}],
            "Contents": [{"Key": "planbook/PlanBook/", "LastModified": MODIFIED}],
            "IsTruncated": True,
            "NextContinuationToken": "token-1",
        },
        {
            "Contents": [{"Key": "planbook/PlanBook/group_info.json", "LastModified": MODIFIED}],
            "IsTruncated": False,
        },
    ]

    nodes = await s3_backend.list_children("PlanBook/")

    assert [(n.name, n.is_folder) for n in nodes] == [("plans", True), ("group_info.json", False)]
    assert s3_client.list_objects_v2.call_args.kwargs["ContinuationToken"] == "token-1"


@pytest.mark.asyncio
async def test_trash_copies_then_deletes(s3_backend, s3_client) -> None:
    s3_client.head_object.return_value = {"LastModified": MODIFIED, "Metadata": {}}

    await s3_backend.trash("PlanBook/plans/a.json")

    copy_kwargs = s3_client.copy_object.call_args.kwargs
    assert copy_kwargs["CopySource"] == {"Bucket": "test-bucket", "Key": "planbook/PlanBook/plans/a.json"}
    assert copy_kwargs["Key"].startswith("planbook/.trash/")
    assert copy_kwargs["Key"].endswith("/PlanBook/plans/a.json")
    s3_client.delete_object.assert_called_once_with(Bucket="test-bucket", Key="planbook/PlanBook/plans/a.json")


@pytest.mark.asyncio
async def test_search_skips_folders_and_trash(s3_backend, s3_client) -> None:
    s3_client.list_objects_v2.return_value = {
        "Contents": [
            {"Key": "planbook/PlanBook/plans/", "LastModified": MODIFIED},
            {"Key": "planbook/PlanBook/plans/evaluation_plan_Math_5.json", "LastModified": MODIFIED},
            {"Key": "planbook/.trash/abc/PlanBook/plans/evaluation_plan_Old.json", "LastModified": MODIFIED},
        ],
    }

    nodes = await s3_backend.search("evaluation_plan_")

    assert [n.id for n in nodes] == ["PlanBook/plans/evaluation_plan_Math_5.json"]


@pytest.mark.asyncio
async def test_test_connection_success(s3_backend, s3_client) -> None:
    success, message = await s3_backend.test_connection()

    assert success is True
    assert "test-bucket" in message
    s3_client.head_bucket.assert_called_once_with(Bucket="test-bucket")


@pytest.mark.asyncio
async def test_test_connection_failure(s3_backend, s3_client) -> None:
    s3_client.head_bucket.side_effect = _client_error("403", "Forbidden", "HeadBucket")

    success, message = await s3_backend.test_connection()

    assert success is False
    assert "403" in message
