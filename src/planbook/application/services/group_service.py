"""Group membership service.

A group's roster lives in its metadata document; each member's personal
namespace holds one participation entry per group. The two sides are
separate writes with no transaction, so joins and leaves write the roster
first and the index second, and reads reconcile lazily:

- ``join`` on an existing member restores a missing index entry.
- ``list_user_groups`` drops and trashes index entries the roster no
  longer confirms.
- ``reconcile_user`` rebuilds a user's index from a full roster scan.

Code uniqueness is checked against the groups visible at creation time.
Two concurrent ``create_group`` calls can draw the same code; nothing
locks between the check and the write.
"""

from dataclasses import dataclass

from planbook.application.services.document_store import DocumentStore
from planbook.application.services.resolution_engine import ResolutionEngine
from planbook.core.config import Settings, get_settings
from planbook.core.logging import LoggingContext, get_logger
from planbook.domain.entities.group import (
    GroupMembership,
    GroupPermissions,
    MemberView,
    ParticipationEntry,
    ReconcileReport,
    utcnow,
)
from planbook.domain.entities.namespace import Namespace
from planbook.domain.entities.record import Record, RecordFilter, RecordRef, ResolutionSource
from planbook.domain.entities.record_kind import RecordKind, get_kind_spec
from planbook.domain.exceptions import (
    ActionNotPermittedError,
    AlreadyMemberError,
    BackendUnavailableError,
    CreatorCannotLeaveError,
    GroupNotFoundError,
    InvalidInputError,
    NotAMemberError,
    NotFoundError,
    NotMemberError,
    RecordNotFoundError,
)
from planbook.domain.services.filename_builder import EXTENSION
from planbook.domain.services.group_code_generator import GroupCodeGenerator
from planbook.domain.services.member_masking_service import MemberMaskingService
from planbook.domain.services.path_resolver import ContainerPath, PathResolver
from planbook.domain.services.payload_codec import PayloadCodec
from planbook.infrastructure.storage.base import StorageBackend

logger = get_logger(__name__)

METADATA_FILE = "group_info.json"
LEGACY_METADATA_FILE = "school_info.json"
METADATA_FILES = (METADATA_FILE, LEGACY_METADATA_FILE)

PARTICIPATION = RecordKind.PARTICIPATION


@dataclass
class _GroupHandle:
    """A loaded group and where its metadata file lives."""

    group: GroupMembership
    folder_id: str
    file_id: str
    file_name: str


class GroupService:
    """Service for group creation, membership and shared records."""

    def __init__(
        self,
        backend: StorageBackend,
        resolver: PathResolver,
        store: DocumentStore | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the group service.

        Args:
            backend: Storage backend.
            resolver: Path resolver for the folder layout.
            store: Document store used for shared records.
            settings: Application settings; loaded from the environment if omitted.
        """
        self.backend = backend
        self.resolver = resolver
        self.store = store or DocumentStore(backend, resolver)
        self.engine: ResolutionEngine = self.store.engine
        self.settings = settings or get_settings()

    # Group metadata

    async def _read_metadata(self, folder_id: str) -> _GroupHandle | None:
        files = {n.name: n for n in await self.backend.list_children(folder_id) if not n.is_folder}
        for name in METADATA_FILES:
            node = files.get(name)
            if node is None:
                continue
            try:
                group = GroupMembership.from_dict(PayloadCodec.decode(await self.backend.read_file(node.id)))
            except (KeyError, ValueError) as e:
                logger.warning("Unreadable group metadata", folder_id=folder_id, name=name, error=str(e))
                continue
            return _GroupHandle(group=group, folder_id=folder_id, file_id=node.id, file_name=node.name)
        return None

    async def _find_group(self, code: str) -> _GroupHandle | None:
        for path in self.resolver.group_roots(code):
            folder_id = await self.engine.locate(path)
            if folder_id is None:
                continue
            handle = await self._read_metadata(folder_id)
            if handle is not None and handle.group.code == code:
                return handle
        return None

    async def _group_folders(self) -> list[tuple[str, str]]:
        """(code, folder id) of every live group root, canonical layout first."""
        folders = []
        groups_id = await self.engine.locate(self.resolver.groups_root())
        if groups_id is not None:
            folders.extend(
                (node.name.upper(), node.id)
                for node in await self.backend.list_children(groups_id)
                if node.is_folder
            )
        for root in self.resolver.tree_roots():
            root_id = await self.engine.locate(root)
            if root_id is None:
                continue
            for node in await self.backend.list_children(root_id):
                code = PathResolver.code_from_legacy_folder(node.name) if node.is_folder else None
                if code:
                    folders.append((code.upper(), node.id))
        return folders

    async def _existing_codes(self) -> set[str]:
        return {code for code, _ in await self._group_folders()}

    async def _all_groups(self) -> list[GroupMembership]:
        groups: dict[str, GroupMembership] = {}
        for code, folder_id in await self._group_folders():
            if code in groups:
                continue
            handle = await self._read_metadata(folder_id)
            if handle is not None:
                groups[code] = handle.group
        return list(groups.values())

    async def _save_group(self, handle: _GroupHandle) -> None:
        await self.backend.write_file(
            handle.folder_id,
            handle.file_name,
            PayloadCodec.encode(handle.group.to_dict()),
            file_id=handle.file_id,
        )

    async def _require_group(self, code: str) -> _GroupHandle:
        code = GroupCodeGenerator.normalize(code)
        valid, reason = GroupCodeGenerator.validate_with_error(code)
        if not valid:
            raise GroupNotFoundError(str(code), reason)
        handle = await self._find_group(code)
        if handle is None:
            raise GroupNotFoundError(code)
        return handle

    async def _require_member(self, code: str, user_id: str) -> _GroupHandle:
        handle = await self._require_group(code)
        if not handle.group.is_member(user_id):
            raise NotAMemberError(handle.group.code)
        return handle

    @staticmethod
    def _require_permission(group: GroupMembership, user_id: str, action: str) -> None:
        if group.is_creator(user_id):
            return
        allowed = {
            "invite": group.permissions.can_invite,
            "share": group.permissions.can_share,
            "edit": group.permissions.can_edit,
        }
        if not allowed[action]:
            raise ActionNotPermittedError(group.code, action)

    # Participation index

    def _index_path(self, user_id: str) -> ContainerPath:
        return self.resolver.canonical(Namespace.personal(user_id), PARTICIPATION)

    @staticmethod
    def _entry_name(code: str) -> str:
        return f"{get_kind_spec(PARTICIPATION).prefix}_{code}{EXTENSION}"

    @staticmethod
    def _entry_from_record(record: Record) -> ParticipationEntry | None:
        try:
            return ParticipationEntry.from_dict(record.payload)
        except KeyError:
            logger.warning("Participation entry without a code", record_id=record.id, name=record.name)
            return None

    async def _index_folder(self, user_id: str) -> str:
        """Canonical index folder; legacy entries the roster confirms are carried over on first use."""
        path = self._index_path(user_id)
        folder_id = await self.engine.locate(path)
        if folder_id is not None:
            return folder_id

        legacy = await self.store.resolve(Namespace.personal(user_id), PARTICIPATION)
        folder_id = await self.engine.ensure(path)
        for record in legacy.records:
            entry = self._entry_from_record(record)
            if entry is None:
                continue
            handle = await self._find_group(entry.code)
            if handle is not None and handle.group.is_member(user_id):
                await self._put_entry(folder_id, entry)
        return folder_id

    async def _put_entry(self, folder_id: str, entry: ParticipationEntry) -> None:
        name = self._entry_name(entry.code)
        existing = next(
            (n for n in await self.backend.list_children(folder_id) if not n.is_folder and n.name == name),
            None,
        )
        await self.backend.write_file(
            folder_id,
            name,
            PayloadCodec.encode(entry.to_dict()),
            file_id=existing.id if existing else None,
        )

    async def _write_participation(self, user_id: str, entry: ParticipationEntry) -> None:
        await self._put_entry(await self._index_folder(user_id), entry)

    async def _canonical_entries(self, user_id: str) -> list[Record]:
        folder_id = await self.engine.locate(self._index_path(user_id))
        if folder_id is None:
            return []
        nodes = await self.engine.files_in(folder_id, get_kind_spec(PARTICIPATION))
        return await self.engine.load(nodes, PARTICIPATION, ResolutionSource.CANONICAL)

    async def _remove_participation(self, user_id: str, code: str) -> int:
        """Trash every canonical index entry for ``code``."""
        removed = 0
        for record in await self._canonical_entries(user_id):
            entry = self._entry_from_record(record)
            if entry is not None and entry.code == code:
                try:
                    await self.backend.trash(record.id)
                except NotFoundError:
                    continue
                removed += 1
        return removed

    async def _ensure_participation(self, user_id: str, group: GroupMembership) -> bool:
        for record in await self._canonical_entries(user_id):
            entry = self._entry_from_record(record)
            if entry is not None and entry.code == group.code:
                return False
        await self._write_participation(user_id, ParticipationEntry.for_group(group, user_id))
        logger.warning("Restored missing participation entry")
        return True

    # Membership operations

    async def create_group(
        self,
        group_name: str,
        creator_id: str,
        description: str = "",
        permissions: GroupPermissions | None = None,
    ) -> GroupMembership:
        """Create a group with a fresh code and the creator as sole member.

        Args:
            group_name: Display name.
            creator_id: User id of the creator.
            description: Optional description.
            permissions: What non-creator members may do.

        Returns:
            The created group.

        Raises:
            InvalidInputError: If the name or creator is missing.
            GroupCodeExhaustedError: If no unused code was drawn in 10 attempts.
            StorageUnavailableError: If the backend cannot be reached.
        """
        if not group_name or not group_name.strip():
            raise InvalidInputError("Group name is required")
        if not creator_id:
            raise InvalidInputError("Creator id is required")

        existing = await self._existing_codes()
        code = GroupCodeGenerator.generate(existing, max_attempts=GroupCodeGenerator.MAX_ATTEMPTS)

        now = utcnow()
        group = GroupMembership(
            code=code,
            group_name=group_name.strip(),
            creator=creator_id,
            members=[creator_id],
            description=description or "",
            permissions=permissions or GroupPermissions(),
            created_at=now,
            modified_at=now,
        )

        with LoggingContext(user_id=creator_id, group_code=code):
            folder_id = await self.engine.ensure(self.resolver.namespace_root(Namespace.group(code)))
            await self.backend.write_file(folder_id, METADATA_FILE, PayloadCodec.encode(group.to_dict()))
            await self._write_participation(creator_id, ParticipationEntry.for_group(group, creator_id))
            logger.info("Group created", group_name=group.group_name)

        return group

    async def join(self, code: str, user_id: str) -> GroupMembership:
        """Add a user to a group.

        Raises:
            GroupNotFoundError: If the code does not resolve to a group.
            AlreadyMemberError: If the user is already on the roster. A
                missing participation entry is restored first.
            StorageUnavailableError: If the backend cannot be reached.
        """
        handle = await self._require_group(code)
        group = handle.group

        with LoggingContext(user_id=user_id, group_code=group.code):
            if group.is_member(user_id):
                await self._ensure_participation(user_id, group)
                raise AlreadyMemberError(group.code, user_id)

            group.add_member(user_id)
            await self._save_group(handle)
            await self._write_participation(user_id, ParticipationEntry.for_group(group, user_id))
            logger.info("Member joined group", members=len(group.members))

        return group

    async def leave(self, code: str, user_id: str) -> GroupMembership:
        """Remove a user from a group.

        Raises:
            GroupNotFoundError: If the code does not resolve to a group.
            NotMemberError: If the user is not on the roster.
            CreatorCannotLeaveError: If the user created the group.
            StorageUnavailableError: If the backend cannot be reached.
        """
        handle = await self._require_group(code)
        group = handle.group

        with LoggingContext(user_id=user_id, group_code=group.code):
            if not group.is_member(user_id):
                if await self._remove_participation(user_id, group.code):
                    logger.warning("Removed orphaned participation entry")
                raise NotMemberError(group.code, user_id)
            if group.is_creator(user_id):
                raise CreatorCannotLeaveError(group.code)

            group.remove_member(user_id)
            await self._save_group(handle)
            await self._remove_participation(user_id, group.code)
            logger.info("Member left group", members=len(group.members))

        return group

    async def list_members(self, code: str, requester_id: str) -> list[MemberView]:
        """Roster as seen by a member; other members' ids are masked.

        Raises:
            GroupNotFoundError: If the code does not resolve to a group.
            NotAMemberError: If the requester is not a member.
        """
        handle = await self._require_member(code, requester_id)
        return MemberMaskingService.roster_view(
            handle.group, requester_id, self.settings.member_mask_visible_chars
        )

    async def list_user_groups(self, user_id: str) -> list[ParticipationEntry]:
        """Groups a user belongs to, read from their participation index.

        Each entry is checked against the group's roster. Entries the
        roster does not confirm are dropped, and trashed when they sit in
        the canonical index folder. Entries whose group cannot be checked
        because the backend failed are kept as they are.
        """
        resolution = await self.store.resolve(Namespace.personal(user_id), PARTICIPATION)

        entries: list[ParticipationEntry] = []
        seen: set[str] = set()
        with LoggingContext(user_id=user_id):
            for record in resolution.records:
                entry = self._entry_from_record(record)
                if entry is None or entry.code in seen:
                    continue
                seen.add(entry.code)

                try:
                    handle = await self._find_group(entry.code)
                except BackendUnavailableError as e:
                    logger.warning("Could not verify participation entry", group_code=entry.code, error=str(e))
                    entries.append(entry)
                    continue

                if handle is not None and handle.group.is_member(user_id):
                    group = handle.group
                    entries.append(
                        ParticipationEntry(
                            code=group.code,
                            group_name=group.group_name,
                            joined_at=entry.joined_at,
                            description=group.description,
                            is_creator=group.is_creator(user_id),
                        )
                    )
                    continue

                logger.warning("Dropping orphaned participation entry", group_code=entry.code, source=record.source.value)
                if record.source is ResolutionSource.CANONICAL:
                    try:
                        await self.backend.trash(record.id)
                    except (NotFoundError, BackendUnavailableError) as e:
                        logger.warning("Could not trash orphaned participation entry", group_code=entry.code, error=str(e))

        return entries

    async def reconcile_user(self, user_id: str) -> ReconcileReport:
        """Rebuild a user's participation index from every group roster.

        Raises:
            StorageUnavailableError: If the backend cannot be reached.
        """
        report = ReconcileReport(user_id=user_id)
        member_of = {g.code: g for g in await self._all_groups() if g.is_member(user_id)}

        with LoggingContext(user_id=user_id):
            folder_id = await self.engine.ensure(self._index_path(user_id))
            for record in await self._canonical_entries(user_id):
                entry = self._entry_from_record(record)
                if entry is not None and entry.code in member_of and entry.code not in report.confirmed:
                    report.confirmed.append(entry.code)
                    continue
                await self.backend.trash(record.id)
                if entry is not None and entry.code not in member_of and entry.code not in report.removed:
                    report.removed.append(entry.code)

            for code, group in member_of.items():
                if code not in report.confirmed:
                    await self._put_entry(folder_id, ParticipationEntry.for_group(group, user_id))
                    report.restored.append(code)

            if report.changed:
                logger.warning("Participation index reconciled", restored=report.restored, removed=report.removed)

        return report

    # Group metadata operations

    async def get_group(self, code: str, requester_id: str) -> GroupMembership:
        """Group metadata, for members only."""
        return (await self._require_member(code, requester_id)).group

    async def update_group(
        self,
        code: str,
        requester_id: str,
        *,
        group_name: str | None = None,
        description: str | None = None,
        permissions: GroupPermissions | None = None,
    ) -> GroupMembership:
        """Change a group's name, description or permissions.

        Only the creator may do this. Code, creator and roster are not
        touched.

        Raises:
            ActionNotPermittedError: If the requester is not the creator.
        """
        handle = await self._require_member(code, requester_id)
        group = handle.group
        if not group.is_creator(requester_id):
            raise ActionNotPermittedError(group.code, "update group settings")

        if group_name is not None:
            if not group_name.strip():
                raise InvalidInputError("Group name is required")
            group.group_name = group_name.strip()
        if description is not None:
            group.description = description
        if permissions is not None:
            group.permissions = permissions
        group.modified_at = utcnow()

        await self._save_group(handle)
        logger.info("Group updated", group_code=group.code, user_id=requester_id)
        return group

    async def invitation_code(self, code: str, requester_id: str) -> str:
        """The code a member may hand out to invite others."""
        handle = await self._require_member(code, requester_id)
        self._require_permission(handle.group, requester_id, "invite")
        return handle.group.code

    # Shared records

    @staticmethod
    def _require_shareable(kind: RecordKind) -> RecordKind:
        kind = RecordKind(kind)
        if kind is PARTICIPATION:
            raise InvalidInputError("Participation entries cannot be stored in a group")
        return kind

    async def share_record(self, code: str, user_id: str, kind: RecordKind, record_id: str) -> RecordRef:
        """Copy one of the user's personal records into the group namespace.

        Raises:
            NotAMemberError: If the user is not a member.
            ActionNotPermittedError: If members may not share.
            RecordNotFoundError: If the record is not in the user's namespace.
        """
        kind = self._require_shareable(kind)
        handle = await self._require_member(code, user_id)
        self._require_permission(handle.group, user_id, "share")

        record = await self.store.get(Namespace.personal(user_id), kind, record_id)
        if record is None or record.source is ResolutionSource.SEARCH:
            raise RecordNotFoundError(record_id, kind.value)

        ref = await self.store.save(Namespace.group(handle.group.code), kind, record.payload)
        logger.info("Record shared with group", group_code=handle.group.code, user_id=user_id, kind=kind.value, record_id=ref.id)
        return ref

    async def save_group_record(self, code: str, user_id: str, kind: RecordKind, payload: dict) -> RecordRef:
        """Save a record directly into the group namespace."""
        kind = self._require_shareable(kind)
        handle = await self._require_member(code, user_id)
        self._require_permission(handle.group, user_id, "edit")
        return await self.store.save(Namespace.group(handle.group.code), kind, payload)

    async def list_group_records(
        self,
        code: str,
        user_id: str,
        kind: RecordKind,
        record_filter: RecordFilter | None = None,
    ) -> list[Record]:
        """List the group's records of one kind, for members only."""
        kind = self._require_shareable(kind)
        handle = await self._require_member(code, user_id)
        return await self.store.list(Namespace.group(handle.group.code), kind, record_filter)
