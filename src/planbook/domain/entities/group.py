"""Group entities for shared namespaces.

A group is a shared namespace addressed by a short code. Its roster is
stored in the group's metadata document; each member also holds a
participation entry in their personal namespace. The two sides are written
separately and reconciled lazily.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO 8601 timestamp, tolerating a trailing Z and missing values."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return utcnow()
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    return utcnow()


@dataclass
class GroupPermissions:
    """What non-creator members may do in the group."""

    can_invite: bool = True
    can_share: bool = True
    can_edit: bool = False

    def to_dict(self) -> dict[str, bool]:
        return {
            "canInvite": self.can_invite,
            "canShare": self.can_share,
            "canEdit": self.can_edit,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "GroupPermissions":
        data = data or {}
        defaults = cls()
        return cls(
            can_invite=bool(data.get("canInvite", defaults.can_invite)),
            can_share=bool(data.get("canShare", defaults.can_share)),
            can_edit=bool(data.get("canEdit", defaults.can_edit)),
        )


@dataclass
class GroupMembership:
    """Group metadata document, including the member roster.

    Attributes:
        code: Six-character group code, unique among live groups.
        group_name: Display name.
        creator: User id of the creator; always a member, cannot leave.
        members: Ordered member user ids without duplicates.
        description: Optional description.
        permissions: What non-creator members may do.
        created_at: Creation timestamp.
        modified_at: Last roster or metadata change.
    """

    code: str
    group_name: str
    creator: str
    members: list[str] = field(default_factory=list)
    description: str = ""
    permissions: GroupPermissions = field(default_factory=GroupPermissions)
    created_at: datetime = field(default_factory=utcnow)
    modified_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        if not self.code:
            raise ValueError("Group code is required")
        if not self.creator:
            raise ValueError("Group creator is required")
        deduped = list(dict.fromkeys(self.members))
        if self.creator not in deduped:
            deduped.insert(0, self.creator)
        self.members = deduped

    def is_member(self, user_id: str) -> bool:
        return user_id in self.members

    def is_creator(self, user_id: str) -> bool:
        return user_id == self.creator

    def add_member(self, user_id: str) -> None:
        if user_id not in self.members:
            self.members.append(user_id)
            self.modified_at = utcnow()

    def remove_member(self, user_id: str) -> None:
        if user_id == self.creator:
            raise ValueError("The creator cannot be removed from the roster")
        if user_id in self.members:
            self.members.remove(user_id)
            self.modified_at = utcnow()

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "groupName": self.group_name,
            "description": self.description,
            "creator": self.creator,
            "createdAt": self.created_at.isoformat(),
            "modifiedAt": self.modified_at.isoformat(),
            "members": list(self.members),
            "permissions": self.permissions.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GroupMembership":
        created_at = parse_timestamp(data.get("createdAt"))
        return cls(
            code=str(data["code"]).upper(),
            group_name=str(data.get("groupName", "")),
            creator=str(data["creator"]),
            members=[str(m) for m in data.get("members", [])],
            description=str(data.get("description") or ""),
            permissions=GroupPermissions.from_dict(data.get("permissions")),
            created_at=created_at,
            modified_at=parse_timestamp(data.get("modifiedAt", data.get("createdAt"))),
        )


@dataclass
class ParticipationEntry:
    """One line of a user's participation index."""

    code: str
    group_name: str
    joined_at: datetime = field(default_factory=utcnow)
    description: str = ""
    is_creator: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "groupName": self.group_name,
            "description": self.description,
            "joinedAt": self.joined_at.isoformat(),
            "isCreator": self.is_creator,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ParticipationEntry":
        return cls(
            code=str(data["code"]).upper(),
            group_name=str(data.get("groupName", "")),
            joined_at=parse_timestamp(data.get("joinedAt")),
            description=str(data.get("description") or ""),
            is_creator=bool(data.get("isCreator", False)),
        )

    @classmethod
    def for_group(cls, group: GroupMembership, user_id: str) -> "ParticipationEntry":
        return cls(
            code=group.code,
            group_name=group.group_name,
            description=group.description,
            is_creator=group.is_creator(user_id),
        )


@dataclass(frozen=True)
class MemberView:
    """A roster entry as shown to another member."""

    identifier: str
    is_creator: bool
    is_self: bool


@dataclass
class ReconcileReport:
    """Outcome of a participation index reconciliation."""

    user_id: str
    confirmed: list[str] = field(default_factory=list)
    restored: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.restored or self.removed)
