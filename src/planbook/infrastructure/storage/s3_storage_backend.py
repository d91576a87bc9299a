"""Amazon S3 storage backend.

S3 has no folders, so the tree is laid over object keys: a folder is a
zero-byte marker object whose key ends with ``/``, and a file is an object
under its folder's key. Node ids are keys relative to the configured
prefix; the root folder's id is the empty string. Trashing copies objects
under ``<trash folder>/<uuid>/`` and then deletes the originals.
"""

import asyncio
import uuid
from datetime import datetime, timezone
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import BaseModel, ConfigDict

from planbook.core.config import Settings
from planbook.core.logging import get_logger
from planbook.domain.exceptions import StorageNodeNotFoundError, StorageUnavailableError
from planbook.infrastructure.storage.base import StorageBackend, StorageNode

logger = get_logger(__name__)

ROOT_ID = ""
CREATED_AT_META = "created-at"
_EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)
_NOT_FOUND_CODES = {"NoSuchKey", "404", "NotFound"}


class S3StorageSettings(BaseModel):
    """Configuration settings for the S3 storage backend."""

    model_config = ConfigDict(from_attributes=True)

    bucket: str
    region: str
    access_key_id: str | None = None
    secret_access_key: str | None = None
    endpoint_url: str | None = None
    prefix: str = ""
    trash_folder_name: str = ".trash"

    @classmethod
    def from_settings(cls, settings: Settings) -> "S3StorageSettings":
        return cls(
            bucket=settings.s3_bucket or "",
            region=settings.s3_region,
            access_key_id=settings.s3_access_key_id,
            secret_access_key=settings.s3_secret_access_key,
            endpoint_url=settings.s3_endpoint_url,
            prefix=settings.s3_prefix,
            trash_folder_name=settings.trash_folder_name,
        )


class S3StorageBackend(StorageBackend):
    """Storage backend implementation for Amazon S3."""

    def __init__(self, settings: S3StorageSettings) -> None:
        self.settings = settings
        self._client = None
        prefix = settings.prefix.strip("/")
        self._prefix = f"{prefix}/" if prefix else ""

    def _get_client(self):
        """Get or create the S3 client."""
        if self._client is None:
            client_kwargs: dict[str, Any] = {"region_name": self.settings.region}
            if self.settings.access_key_id and self.settings.secret_access_key:
                client_kwargs["aws_access_key_id"] = self.settings.access_key_id
                client_kwargs["aws_secret_access_key"] = self.settings.secret_access_key
            if self.settings.endpoint_url:
                client_kwargs["endpoint_url"] = self.settings.endpoint_url

            self._client = boto3.client("s3", **client_kwargs)
        return self._client

    @property
    def root_id(self) -> str:
        return ROOT_ID

    def _key(self, node_id: str) -> str:
        return f"{self._prefix}{node_id}"

    def _id(self, key: str) -> str:
        return key[len(self._prefix) :]

    @staticmethod
    def _name(node_id: str) -> str:
        return node_id.rstrip("/").rsplit("/", 1)[-1]

    @staticmethod
    def _parent_id(node_id: str) -> str | None:
        if node_id == ROOT_ID:
            return None
        stripped = node_id.rstrip("/")
        return stripped.rsplit("/", 1)[0] + "/" if "/" in stripped else ROOT_ID

    @staticmethod
    def _check_name(name: str) -> None:
        if not name or name.startswith(".") or "/" in name:
            raise ValueError(f"Invalid node name: {name!r}")

    def _is_hidden(self, node_id: str) -> bool:
        return any(part.startswith(".") for part in node_id.split("/") if part)

    def _folder_node(self, node_id: str, modified: datetime | None = None) -> StorageNode:
        stamp = modified or _EPOCH
        return StorageNode(
            id=node_id,
            name=self._name(node_id),
            is_folder=True,
            parent_id=self._parent_id(node_id),
            created_at=stamp,
            modified_at=stamp,
        )

    def _file_node(self, node_id: str, modified: datetime, created: datetime | None = None) -> StorageNode:
        return StorageNode(
            id=node_id,
            name=self._name(node_id),
            is_folder=False,
            parent_id=self._parent_id(node_id),
            created_at=created or modified,
            modified_at=modified,
        )

    async def _call(self, operation: str, node_id: str, method: str, **kwargs: Any) -> Any:
        try:
            return await asyncio.to_thread(getattr(self._get_client(), method), **kwargs)
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            if error_code in _NOT_FOUND_CODES:
                raise StorageNodeNotFoundError(node_id) from e
            raise StorageUnavailableError(operation, str(e)) from e
        except BotoCoreError as e:
            raise StorageUnavailableError(operation, str(e)) from e

    async def _list_keys(self, operation: str, prefix: str, delimiter: str | None = None) -> tuple[list[dict], list[str]]:
        """List objects and common prefixes under ``prefix``, following continuation tokens."""
        contents: list[dict] = []
        prefixes: list[str] = []
        kwargs: dict[str, Any] = {"Bucket": self.settings.bucket, "Prefix": prefix}
        if delimiter:
            kwargs["Delimiter"] = delimiter
        while True:
            page = await self._call(operation, self._id(prefix), "list_objects_v2", **kwargs)
            contents.extend(page.get("Contents", []))
            prefixes.extend(p["Prefix"] for p in page.get("CommonPrefixes", []))
            if not page.get("IsTruncated"):
                return contents, prefixes
            kwargs["ContinuationToken"] = page["NextContinuationToken"]

    async def _require_folder(self, folder_id: str) -> None:
        if folder_id == ROOT_ID:
            return
        if not folder_id.endswith("/") or self._is_hidden(folder_id):
            raise StorageNodeNotFoundError(folder_id)
        page = await self._call(
            "list_objects_v2",
            folder_id,
            "list_objects_v2",
            Bucket=self.settings.bucket,
            Prefix=self._key(folder_id),
            MaxKeys=1,
        )
        if not page.get("KeyCount", len(page.get("Contents", []))):
            raise StorageNodeNotFoundError(folder_id)

    async def find_folder(self, name: str, parent_id: str) -> StorageNode | None:
        self._check_name(name)
        folder_id = f"{parent_id}{name}/"
        try:
            await self._require_folder(folder_id)
        except StorageNodeNotFoundError:
            return None
        return self._folder_node(folder_id)

    async def create_folder(self, name: str, parent_id: str) -> StorageNode:
        self._check_name(name)
        await self._require_folder(parent_id)
        folder_id = f"{parent_id}{name}/"
        existing = await self.find_folder(name, parent_id)
        if existing is not None:
            return existing
        await self._call(
            "create_folder", folder_id, "put_object",
            Bucket=self.settings.bucket, Key=self._key(folder_id), Body=b"",
        )
        return self._folder_node(folder_id, datetime.now(timezone.utc))

    async def list_children(self, parent_id: str) -> list[StorageNode]:
        await self._require_folder(parent_id)
        contents, prefixes = await self._list_keys("list_children", self._key(parent_id), delimiter="/")

        nodes = [
            self._folder_node(self._id(p))
            for p in prefixes
            if not self._is_hidden(self._id(p))
        ]
        for obj in contents:
            node_id = self._id(obj["Key"])
            if node_id == parent_id or node_id.endswith("/") or self._is_hidden(node_id):
                continue
            nodes.append(self._file_node(node_id, obj["LastModified"]))
        return nodes

    async def write_file(
        self,
        parent_id: str,
        name: str,
        content: bytes,
        file_id: str | None = None,
    ) -> StorageNode:
        now = datetime.now(timezone.utc)
        if file_id is not None:
            existing = await self.get_node(file_id)
            created = existing.created_at
            node_id = file_id
        else:
            self._check_name(name)
            await self._require_folder(parent_id)
            created = now
            node_id = f"{parent_id}{name}"

        await self._call(
            "write_file", node_id, "put_object",
            Bucket=self.settings.bucket,
            Key=self._key(node_id),
            Body=content,
            ContentType="application/json",
            Metadata={CREATED_AT_META: created.isoformat()},
        )
        return self._file_node(node_id, now, created)

    async def read_file(self, file_id: str) -> bytes:
        if file_id.endswith("/") or self._is_hidden(file_id):
            raise StorageNodeNotFoundError(file_id)
        response = await self._call(
            "read_file", file_id, "get_object", Bucket=self.settings.bucket, Key=self._key(file_id)
        )
        body_stream = response.get("Body")
        if body_stream is None:
            raise StorageNodeNotFoundError(file_id)
        return await asyncio.to_thread(body_stream.read)

    async def get_node(self, node_id: str) -> StorageNode:
        if node_id == ROOT_ID or node_id.endswith("/"):
            await self._require_folder(node_id)
            return self._folder_node(node_id)
        if self._is_hidden(node_id):
            raise StorageNodeNotFoundError(node_id)

        head = await self._call(
            "get_node", node_id, "head_object", Bucket=self.settings.bucket, Key=self._key(node_id)
        )
        modified = head.get("LastModified") or _EPOCH
        created_raw = head.get("Metadata", {}).get(CREATED_AT_META)
        created = datetime.fromisoformat(created_raw) if created_raw else None
        return self._file_node(node_id, modified, created)

    async def trash(self, node_id: str) -> None:
        if node_id == ROOT_ID:
            raise ValueError("Cannot trash the root folder")
        await self.get_node(node_id)

        if node_id.endswith("/"):
            contents, _ = await self._list_keys("trash", self._key(node_id))
            keys = [obj["Key"] for obj in contents]
        else:
            keys = [self._key(node_id)]

        trash_prefix = f"{self._prefix}{self.settings.trash_folder_name}/{uuid.uuid4().hex}/"
        for key in keys:
            await self._call(
                "trash", node_id, "copy_object",
                Bucket=self.settings.bucket,
                Key=f"{trash_prefix}{self._id(key)}",
                CopySource={"Bucket": self.settings.bucket, "Key": key},
            )
            await self._call("trash", node_id, "delete_object", Bucket=self.settings.bucket, Key=key)
        logger.debug("Moved node to trash", node_id=node_id, objects=len(keys))

    async def search(self, name_contains: str) -> list[StorageNode]:
        contents, _ = await self._list_keys("search", self._prefix)
        nodes = []
        for obj in contents:
            node_id = self._id(obj["Key"])
            if node_id.endswith("/") or self._is_hidden(node_id):
                continue
            if name_contains in self._name(node_id):
                nodes.append(self._file_node(node_id, obj["LastModified"]))
        return nodes

    async def test_connection(self) -> tuple[bool, str | None]:
        try:
            await asyncio.to_thread(self._get_client().head_bucket, Bucket=self.settings.bucket)
            return True, (
                f"S3 connection successful. Bucket '{self.settings.bucket}' "
                f"is accessible in region '{self.settings.region}'."
            )
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            error_message = e.response.get("Error", {}).get("Message", str(e))
            return False, f"S3 connection failed ({error_code}): {error_message}"
        except BotoCoreError as e:
            return False, f"S3 connection failed: {str(e)}"
