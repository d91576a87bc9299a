"""Multi-tier record lookup.

Namespace layouts changed over time, so a kind's records may sit in the
canonical folder, in a legacy folder, or somewhere else in the tree under
the kind's naming convention. Lookups try those places in that order and
stop at the first tier that yields records:

1. canonical container (``source=canonical``)
2. legacy containers, in declared order (``source=legacy``)
3. tree-wide name search (``source=search``)

The search tier is not scoped by owner. Two owners whose file names share
the scope token can see each other's files through it; see DESIGN.md.

Lookups never raise. Tier failures are logged and reported through
``Resolution.degraded`` so callers can tell an empty namespace from an
unreachable backend.
"""

from dataclasses import dataclass, field

from planbook.core.logging import get_logger
from planbook.domain.entities.namespace import Namespace
from planbook.domain.entities.record import Record, ResolutionSource
from planbook.domain.entities.record_kind import RecordKind, RecordKindSpec, get_kind_spec
from planbook.domain.exceptions import BackendUnavailableError, NotFoundError
from planbook.domain.services.filename_builder import FilenameBuilder
from planbook.domain.services.path_resolver import ContainerPath, PathResolver
from planbook.domain.services.payload_codec import PayloadCodec
from planbook.domain.services.payload_normalizer import PayloadNormalizer
from planbook.infrastructure.storage.base import StorageBackend, StorageNode

logger = get_logger(__name__)


@dataclass
class Resolution:
    """Outcome of a tiered lookup."""

    records: list[Record] = field(default_factory=list)
    source: ResolutionSource | None = None
    degraded: bool = False

    @property
    def found(self) -> bool:
        return bool(self.records)


class ResolutionEngine:
    """Resolves a namespace's records of one kind across layout tiers."""

    def __init__(self, backend: StorageBackend, resolver: PathResolver) -> None:
        self.backend = backend
        self.resolver = resolver

    async def locate(self, path: ContainerPath) -> str | None:
        """Walk ``path`` from the root without creating anything.

        Returns:
            The folder id, or None if any segment is missing.
        """
        current = self.backend.root_id
        for name in path.segments:
            node = await self.backend.find_folder(name, current)
            if node is None:
                return None
            current = node.id
        return current

    async def ensure(self, path: ContainerPath) -> str:
        """Walk ``path`` from the root, creating missing folders."""
        current = self.backend.root_id
        for name in path.segments:
            node = await self.backend.find_folder(name, current)
            if node is None:
                node = await self.backend.create_folder(name, current)
            current = node.id
        return current

    async def files_in(self, folder_id: str, spec: RecordKindSpec, scope_token: str | None = None) -> list[StorageNode]:
        """Files in a folder that follow the kind's naming convention."""
        return [
            node
            for node in await self.backend.list_children(folder_id)
            if not node.is_folder
            and FilenameBuilder.matches_kind(spec, node.name)
            and (not scope_token or scope_token in node.name)
        ]

    async def load(self, nodes: list[StorageNode], kind: RecordKind, source: ResolutionSource) -> list[Record]:
        """Read and decode files, skipping any that cannot be used."""
        records = []
        for node in nodes:
            try:
                content = await self.backend.read_file(node.id)
                records.append(self.to_record(node, content, kind, source))
            except NotFoundError:
                # Trashed between listing and reading
                continue
            except ValueError as e:
                logger.warning("Skipping unreadable record file", node_id=node.id, name=node.name, error=str(e))
        return records

    @staticmethod
    def to_record(node: StorageNode, content: bytes, kind: RecordKind, source: ResolutionSource) -> Record:
        spec = get_kind_spec(kind)
        payload = PayloadNormalizer.normalize(kind, PayloadCodec.decode(content))
        if all(payload.get(f) not in (None, "") for f in spec.key_fields):
            logical_key = FilenameBuilder.logical_key(spec, payload)
        else:
            logical_key = FilenameBuilder.key_from_name(spec, node.name)
        return Record(
            id=node.id,
            kind=kind,
            name=node.name,
            logical_key=logical_key,
            payload=payload,
            created_at=node.created_at,
            modified_at=node.modified_at,
            source=source,
        )

    async def _container_tier(
        self,
        path: ContainerPath,
        kind: RecordKind,
        source: ResolutionSource,
        scope_token: str | None,
    ) -> list[Record]:
        folder_id = await self.locate(path)
        if folder_id is None:
            return []
        nodes = await self.files_in(folder_id, get_kind_spec(kind), scope_token)
        return await self.load(nodes, kind, source)

    async def _search_tier(self, kind: RecordKind, scope_token: str | None) -> list[Record]:
        spec = get_kind_spec(kind)
        nodes = [
            node
            for node in await self.backend.search(self.resolver.search_prefix(kind))
            if FilenameBuilder.matches_kind(spec, node.name)
            and (not scope_token or scope_token in node.name)
        ]
        return await self.load(nodes, kind, ResolutionSource.SEARCH)

    async def resolve(
        self,
        namespace: Namespace,
        kind: RecordKind,
        scope_token: str | None = None,
    ) -> Resolution:
        """Resolve records tier by tier; the first non-empty tier wins.

        Args:
            namespace: Owning namespace.
            kind: Record kind.
            scope_token: Optional substring file names must contain.

        Returns:
            Records sorted by modification time, newest first. Ties keep
            the backend's listing order.
        """
        kind = RecordKind(kind)
        spec = get_kind_spec(kind)
        resolution = Resolution()

        tiers = [(path, ResolutionSource.LEGACY if path.legacy else ResolutionSource.CANONICAL)
                 for path in self.resolver.candidates(namespace, kind)]

        for path, source in tiers:
            try:
                records = await self._container_tier(path, kind, source, scope_token)
            except BackendUnavailableError as e:
                resolution.degraded = True
                logger.warning("Resolution tier failed", namespace=str(namespace), kind=kind.value, path=str(path), error=str(e))
                continue
            except NotFoundError:
                # Folder trashed while walking the path
                continue
            if records:
                return self._finish(resolution, records, source)

        if spec.searchable:
            try:
                records = await self._search_tier(kind, scope_token)
            except BackendUnavailableError as e:
                resolution.degraded = True
                logger.warning("Search tier failed", namespace=str(namespace), kind=kind.value, error=str(e))
                records = []
            if records:
                logger.info("Records recovered by tree-wide search", namespace=str(namespace), kind=kind.value, count=len(records))
                return self._finish(resolution, records, ResolutionSource.SEARCH)

        return resolution

    @staticmethod
    def _finish(resolution: Resolution, records: list[Record], source: ResolutionSource) -> Resolution:
        resolution.records = sorted(records, key=lambda r: r.modified_at, reverse=True)
        resolution.source = source
        return resolution

    async def source_of(self, namespace: Namespace, kind: RecordKind, node: StorageNode) -> ResolutionSource:
        """Which tier a file found by id belongs to for this namespace."""
        for path in self.resolver.candidates(namespace, kind):
            try:
                folder_id = await self.locate(path)
            except (BackendUnavailableError, NotFoundError):
                continue
            if folder_id is not None and folder_id == node.parent_id:
                return ResolutionSource.LEGACY if path.legacy else ResolutionSource.CANONICAL
        return ResolutionSource.SEARCH

    async def owns(self, namespace: Namespace, kind: RecordKind, node: StorageNode) -> bool:
        """Whether ``node`` sits in one of the namespace's own containers.

        Backend errors propagate.
        """
        for path in self.resolver.candidates(namespace, kind):
            folder_id = await self.locate(path)
            if folder_id is not None and folder_id == node.parent_id:
                return True
        return False
