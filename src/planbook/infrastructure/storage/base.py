"""Base abstractions for storage backends.

A backend is a tree of named folders holding named byte files, addressed
by opaque stable ids. Backends give no transactions and no cross-folder
atomic rename. Deletion is soft: trashed nodes disappear from lookups but
are kept by the backend.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime


@dataclass(slots=True)
class StorageNode:
    """Metadata for a folder or file returned by storage backends."""

    id: str
    name: str
    is_folder: bool
    parent_id: str | None
    created_at: datetime
    modified_at: datetime
    trashed: bool = False


class StorageBackend(ABC):
    """Abstract base class for storage backends.

    Failures to reach the backend raise ``StorageUnavailableError``.
    Unknown or trashed ids raise ``StorageNodeNotFoundError``.
    """

    @property
    @abstractmethod
    def root_id(self) -> str:
        """Id of the top-level folder everything else lives under."""
        ...

    @abstractmethod
    async def find_folder(self, name: str, parent_id: str) -> StorageNode | None:
        """Find a live child folder by name."""
        ...

    @abstractmethod
    async def create_folder(self, name: str, parent_id: str) -> StorageNode:
        """Create a child folder, returning the existing one if present."""
        ...

    @abstractmethod
    async def list_children(self, parent_id: str) -> list[StorageNode]:
        """List live children in the backend's listing order.

        The in-memory backend lists in insertion order, the local backend by
        name and S3 by key.
        """
        ...

    @abstractmethod
    async def write_file(
        self,
        parent_id: str,
        name: str,
        content: bytes,
        file_id: str | None = None,
    ) -> StorageNode:
        """Create a file, or overwrite ``file_id`` in place when given."""
        ...

    @abstractmethod
    async def read_file(self, file_id: str) -> bytes:
        """Read a live file's content."""
        ...

    @abstractmethod
    async def get_node(self, node_id: str) -> StorageNode:
        """Get a live node's metadata."""
        ...

    @abstractmethod
    async def trash(self, node_id: str) -> None:
        """Soft-delete a file or folder."""
        ...

    @abstractmethod
    async def search(self, name_contains: str) -> list[StorageNode]:
        """Find live files anywhere in the tree whose name contains a token."""
        ...

    @abstractmethod
    async def test_connection(self) -> tuple[bool, str | None]:
        """Test backend connectivity and credentials."""
        ...
