"""Namespace entity: the ownership scope of a record.

A namespace is either one user's personal space or one group's shared
space. Records belong to exactly one namespace.
"""

from dataclasses import dataclass
from enum import Enum


class NamespaceScope(str, Enum):
    """Kind of ownership scope."""

    PERSONAL = "personal"
    GROUP = "group"


@dataclass(frozen=True)
class Namespace:
    """Immutable ownership scope.

    Attributes:
        scope: Personal or group.
        owner: User id for personal namespaces, group code for group namespaces.
    """

    scope: NamespaceScope
    owner: str

    def __post_init__(self) -> None:
        if not self.owner:
            raise ValueError("Namespace owner is required")

    @classmethod
    def personal(cls, user_id: str) -> "Namespace":
        return cls(NamespaceScope.PERSONAL, user_id)

    @classmethod
    def group(cls, code: str) -> "Namespace":
        return cls(NamespaceScope.GROUP, code.upper())

    @property
    def is_group(self) -> bool:
        return self.scope is NamespaceScope.GROUP

    def __str__(self) -> str:
        return f"{self.scope.value}:{self.owner}"
