"""Local filesystem storage backend.

Folders are directories under ``storage_path`` and files are regular files.
Node ids are root-relative POSIX paths (the root itself is ``"."``), so they
stay stable across restarts. Trashed nodes are moved under
``<storage_path>/<trash folder>/<uuid>/`` with their original relative path,
which keeps them recoverable by hand.
"""

import asyncio
import os
import shutil
import uuid
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath

from planbook.core.config import get_settings
from planbook.core.logging import get_logger
from planbook.domain.exceptions import StorageNodeNotFoundError, StorageUnavailableError
from planbook.infrastructure.storage.base import StorageBackend, StorageNode

logger = get_logger(__name__)

ROOT_ID = "."


class LocalStorageBackend(StorageBackend):
    """Storage backend implementation for the local filesystem."""

    def __init__(self, storage_path: str | None = None, trash_folder_name: str | None = None) -> None:
        settings = get_settings()
        self.storage_path = Path(storage_path or settings.storage_path)
        self.trash_folder_name = trash_folder_name or settings.trash_folder_name

    @property
    def root_id(self) -> str:
        return ROOT_ID

    def _resolve(self, node_id: str) -> Path:
        """Map an id to an absolute path inside the storage root."""
        if node_id == ROOT_ID:
            return self.storage_path.resolve()
        relative = PurePosixPath(node_id)
        if relative.is_absolute() or any(part.startswith(".") for part in relative.parts):
            raise StorageNodeNotFoundError(node_id)
        absolute = (self.storage_path / relative).resolve()
        if not absolute.is_relative_to(self.storage_path.resolve()):
            raise StorageNodeNotFoundError(node_id)
        return absolute

    def _child_id(self, parent_id: str, name: str) -> str:
        if not name or name.startswith(".") or "/" in name or "\\" in name:
            raise ValueError(f"Invalid node name: {name!r}")
        if parent_id == ROOT_ID:
            return name
        return f"{parent_id}/{name}"

    def _parent_id(self, node_id: str) -> str | None:
        if node_id == ROOT_ID:
            return None
        parent = str(PurePosixPath(node_id).parent)
        return ROOT_ID if parent == "." else parent

    def _node(self, node_id: str, path: Path) -> StorageNode:
        stat = path.stat()
        created = getattr(stat, "st_birthtime", None) or stat.st_ctime
        return StorageNode(
            id=node_id,
            name=path.name if node_id != ROOT_ID else ROOT_ID,
            is_folder=path.is_dir(),
            parent_id=self._parent_id(node_id),
            created_at=datetime.fromtimestamp(created, tz=timezone.utc),
            modified_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
        )

    async def _run(self, operation: str, node_id: str, func, *args):
        try:
            return await asyncio.to_thread(func, *args)
        except (FileNotFoundError, NotADirectoryError) as e:
            raise StorageNodeNotFoundError(node_id) from e
        except OSError as e:
            raise StorageUnavailableError(operation, str(e)) from e

    def _require_folder(self, folder_id: str) -> Path:
        path = self._resolve(folder_id)
        if folder_id == ROOT_ID:
            path.mkdir(parents=True, exist_ok=True)
        if not path.is_dir():
            raise StorageNodeNotFoundError(folder_id)
        return path

    def _list_sync(self, parent_id: str) -> list[StorageNode]:
        """Live children of a folder, ordered by name."""
        folder = self._require_folder(parent_id)
        nodes = []
        for entry in sorted(folder.iterdir(), key=lambda p: p.name):
            # Trash, write temporaries and probe files are hidden
            if entry.name.startswith("."):
                continue
            nodes.append(self._node(self._child_id(parent_id, entry.name), entry))
        return nodes

    def _create_folder_sync(self, name: str, parent_id: str) -> StorageNode:
        self._require_folder(parent_id)
        node_id = self._child_id(parent_id, name)
        path = self._resolve(node_id)
        path.mkdir(exist_ok=True)
        return self._node(node_id, path)

    def _write_sync(self, parent_id: str, name: str, content: bytes, file_id: str | None) -> StorageNode:
        if file_id is not None:
            path = self._resolve(file_id)
            if not path.is_file():
                raise StorageNodeNotFoundError(file_id)
            node_id = file_id
        else:
            self._require_folder(parent_id)
            node_id = self._child_id(parent_id, name)
            path = self._resolve(node_id)

        tmp = path.with_name(f".{path.name}.{uuid.uuid4().hex}.tmp")
        tmp.write_bytes(content)
        os.replace(tmp, path)
        return self._node(node_id, path)

    def _read_sync(self, file_id: str) -> bytes:
        path = self._resolve(file_id)
        if not path.is_file():
            raise StorageNodeNotFoundError(file_id)
        return path.read_bytes()

    def _get_sync(self, node_id: str) -> StorageNode:
        path = self._resolve(node_id)
        if not path.exists():
            raise StorageNodeNotFoundError(node_id)
        return self._node(node_id, path)

    def _trash_sync(self, node_id: str) -> None:
        if node_id == ROOT_ID:
            raise ValueError("Cannot trash the root folder")
        path = self._resolve(node_id)
        if not path.exists():
            raise StorageNodeNotFoundError(node_id)
        target = self.storage_path / self.trash_folder_name / uuid.uuid4().hex / node_id
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(path), str(target))
        logger.debug("Moved node to trash", node_id=node_id, trash_path=str(target))

    def _search_sync(self, name_contains: str) -> list[StorageNode]:
        root = self._require_folder(ROOT_ID)
        matches = []
        for dirpath, dirnames, filenames in os.walk(root):
            current = Path(dirpath)
            dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
            for filename in sorted(filenames):
                if name_contains in filename and not filename.startswith("."):
                    path = current / filename
                    node_id = path.relative_to(root).as_posix()
                    matches.append(self._node(node_id, path))
        return matches

    async def find_folder(self, name: str, parent_id: str) -> StorageNode | None:
        for node in await self.list_children(parent_id):
            if node.is_folder and node.name == name:
                return node
        return None

    async def create_folder(self, name: str, parent_id: str) -> StorageNode:
        return await self._run("create_folder", parent_id, self._create_folder_sync, name, parent_id)

    async def list_children(self, parent_id: str) -> list[StorageNode]:
        return await self._run("list_children", parent_id, self._list_sync, parent_id)

    async def write_file(
        self,
        parent_id: str,
        name: str,
        content: bytes,
        file_id: str | None = None,
    ) -> StorageNode:
        return await self._run(
            "write_file", file_id or parent_id, self._write_sync, parent_id, name, content, file_id
        )

    async def read_file(self, file_id: str) -> bytes:
        return await self._run("read_file", file_id, self._read_sync, file_id)

    async def get_node(self, node_id: str) -> StorageNode:
        return await self._run("get_node", node_id, self._get_sync, node_id)

    async def trash(self, node_id: str) -> None:
        await self._run("trash", node_id, self._trash_sync, node_id)

    async def search(self, name_contains: str) -> list[StorageNode]:
        return await self._run("search", ROOT_ID, self._search_sync, name_contains)

    async def test_connection(self) -> tuple[bool, str | None]:
        """Verify that the configured storage path is writable."""
        try:
            self.storage_path.mkdir(parents=True, exist_ok=True)

            probe_file = self.storage_path / ".storage_backend_probe"
            probe_file.write_text("ok", encoding="utf-8")
            probe_file.unlink(missing_ok=True)

            return True, f"Local storage is writable at '{self.storage_path}'."
        except OSError as e:
            return False, f"Local storage test failed: {str(e)}"
