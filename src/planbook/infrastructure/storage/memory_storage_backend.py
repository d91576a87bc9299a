"""In-memory storage backend.

Holds the whole tree in a dict keyed by UUID. Used by tests and for
ephemeral runs; nothing survives the process.
"""

import uuid
from dataclasses import replace
from datetime import datetime, timedelta, timezone

from planbook.domain.exceptions import StorageNodeNotFoundError
from planbook.infrastructure.storage.base import StorageBackend, StorageNode


class InMemoryStorageBackend(StorageBackend):
    """Storage backend implementation backed by process memory."""

    ROOT_NAME = "root"

    def __init__(self) -> None:
        self._nodes: dict[str, StorageNode] = {}
        self._content: dict[str, bytes] = {}
        self._clock = datetime.now(timezone.utc)
        root = self._add(self.ROOT_NAME, is_folder=True, parent_id=None)
        self._root_id = root.id

    def _tick(self) -> datetime:
        # Strictly increasing timestamps keep ordering deterministic
        self._clock += timedelta(microseconds=1)
        return self._clock

    def _add(self, name: str, is_folder: bool, parent_id: str | None) -> StorageNode:
        now = self._tick()
        node = StorageNode(
            id=uuid.uuid4().hex,
            name=name,
            is_folder=is_folder,
            parent_id=parent_id,
            created_at=now,
            modified_at=now,
        )
        self._nodes[node.id] = node
        return node

    def _live(self, node_id: str) -> StorageNode:
        node = self._nodes.get(node_id)
        if node is None or self._is_trashed(node):
            raise StorageNodeNotFoundError(node_id)
        return node

    def _is_trashed(self, node: StorageNode) -> bool:
        current: StorageNode | None = node
        while current is not None:
            if current.trashed:
                return True
            current = self._nodes.get(current.parent_id) if current.parent_id else None
        return False

    def _live_folder(self, folder_id: str) -> StorageNode:
        node = self._live(folder_id)
        if not node.is_folder:
            raise StorageNodeNotFoundError(folder_id)
        return node

    @property
    def root_id(self) -> str:
        return self._root_id

    async def find_folder(self, name: str, parent_id: str) -> StorageNode | None:
        for node in await self.list_children(parent_id):
            if node.is_folder and node.name == name:
                return node
        return None

    async def create_folder(self, name: str, parent_id: str) -> StorageNode:
        existing = await self.find_folder(name, parent_id)
        if existing is not None:
            return existing
        return replace(self._add(name, is_folder=True, parent_id=parent_id))

    async def list_children(self, parent_id: str) -> list[StorageNode]:
        self._live_folder(parent_id)
        return [
            replace(node)
            for node in self._nodes.values()
            if node.parent_id == parent_id and not node.trashed
        ]

    async def write_file(
        self,
        parent_id: str,
        name: str,
        content: bytes,
        file_id: str | None = None,
    ) -> StorageNode:
        self._live_folder(parent_id)
        if file_id is not None:
            node = self._live(file_id)
            node.modified_at = self._tick()
        else:
            node = self._add(name, is_folder=False, parent_id=parent_id)
        self._content[node.id] = bytes(content)
        return replace(node)

    async def read_file(self, file_id: str) -> bytes:
        node = self._live(file_id)
        if node.is_folder:
            raise StorageNodeNotFoundError(file_id)
        return self._content.get(file_id, b"")

    async def get_node(self, node_id: str) -> StorageNode:
        return replace(self._live(node_id))

    async def trash(self, node_id: str) -> None:
        if node_id == self._root_id:
            raise ValueError("Cannot trash the root folder")
        node = self._live(node_id)
        node.trashed = True
        node.modified_at = self._tick()

    async def search(self, name_contains: str) -> list[StorageNode]:
        return [
            replace(node)
            for node in self._nodes.values()
            if not node.is_folder and name_contains in node.name and not self._is_trashed(node)
        ]

    async def test_connection(self) -> tuple[bool, str | None]:
        return True, f"In-memory storage holds {len(self._nodes)} nodes."
