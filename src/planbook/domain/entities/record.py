"""Record entities.

A record is one structured JSON document stored as a file in the folder
tree. Its id is the backend's opaque, stable file id.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from planbook.domain.entities.namespace import Namespace
from planbook.domain.entities.record_kind import RecordKind


class ResolutionSource(str, Enum):
    """Tier a record was resolved from."""

    CANONICAL = "canonical"
    LEGACY = "legacy"
    SEARCH = "search"


@dataclass
class Record:
    """A stored record with its decoded payload.

    Attributes:
        id: Backend-assigned file id.
        kind: Record kind.
        name: Backend file name.
        logical_key: Key derived from the payload's semantic fields.
        payload: Decoded JSON document.
        created_at: Backend creation timestamp.
        modified_at: Backend modification timestamp.
        source: Tier the record was resolved from.
    """

    id: str
    kind: RecordKind
    name: str
    logical_key: str
    payload: dict[str, Any]
    created_at: datetime
    modified_at: datetime
    source: ResolutionSource = ResolutionSource.CANONICAL


@dataclass(frozen=True)
class RecordRef:
    """Handle returned by writes."""

    id: str
    namespace: Namespace
    kind: RecordKind
    name: str
    logical_key: str
    created: bool = True


@dataclass(frozen=True)
class RecordFilter:
    """Optional narrowing applied to list operations.

    Attributes:
        scope_token: Substring the file name must contain. Also narrows the
            tree-wide search tier.
        fields: Payload fields that must equal the given values.
    """

    scope_token: str | None = None
    fields: dict[str, Any] = field(default_factory=dict)

    def matches(self, record: Record) -> bool:
        if self.scope_token and self.scope_token not in record.name:
            return False
        return all(record.payload.get(k) == v for k, v in self.fields.items())
