"""Domain entities for PlanBook.

Entities are pure Python dataclasses that represent core business concepts.
They have no dependencies on infrastructure or external frameworks.
"""

from planbook.domain.entities.group import (
    GroupMembership,
    GroupPermissions,
    MemberView,
    ParticipationEntry,
    ReconcileReport,
)
from planbook.domain.entities.namespace import Namespace, NamespaceScope
from planbook.domain.entities.record import (
    Record,
    RecordFilter,
    RecordRef,
    ResolutionSource,
)
from planbook.domain.entities.record_kind import (
    KIND_SPECS,
    RecordKind,
    RecordKindSpec,
    get_kind_spec,
)

__all__ = [
    "GroupMembership",
    "GroupPermissions",
    "KIND_SPECS",
    "MemberView",
    "Namespace",
    "NamespaceScope",
    "ParticipationEntry",
    "ReconcileReport",
    "Record",
    "RecordFilter",
    "RecordKind",
    "RecordKindSpec",
    "RecordRef",
    "ResolutionSource",
    "get_kind_spec",
]
