"""Error taxonomy for PlanBook.

Five families, each telling the caller what to do next:

- NotFoundError: the record, group or container does not exist.
- ConflictError: the request collides with existing state.
- InvalidInputError: rejected before any write.
- BackendUnavailableError: transient storage failure, retry with backoff.
- PermissionDeniedError: terminal for the request.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from planbook.domain.services.payload_validator import PayloadValidationError


class PlanBookError(Exception):
    """Base class for all PlanBook errors."""
    pass


class NotFoundError(PlanBookError):
    """Raised when a record, group or container is absent."""
    pass


class RecordNotFoundError(NotFoundError):
    """Raised when a record id does not resolve to a live record."""

    def __init__(self, record_id: str, kind: str | None = None):
        self.record_id = record_id
        self.kind = kind
        label = f"{kind} record" if kind else "Record"
        super().__init__(f"{label} '{record_id}' not found")


class GroupNotFoundError(NotFoundError):
    """Raised when a group code does not resolve to a live group."""

    def __init__(self, code: str, reason: str | None = None):
        self.code = code
        self.reason = reason
        message = f"Group '{code}' not found"
        super().__init__(f"{message}: {reason}" if reason else message)


class StorageNodeNotFoundError(NotFoundError):
    """Raised by storage backends when a node id is unknown or trashed."""

    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"Storage node '{node_id}' not found")


class ConflictError(PlanBookError):
    """Raised when a request collides with existing state."""
    pass


class AlreadyMemberError(ConflictError):
    """Raised when a user joins a group they already belong to."""

    def __init__(self, code: str, user_id: str):
        self.code = code
        self.user_id = user_id
        super().__init__(f"User is already a member of group '{code}'")


class GroupCodeExhaustedError(ConflictError):
    """Raised when no unused group code was drawn within the attempt cap."""

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(
            f"Could not draw an unused group code after {attempts} attempts"
        )


class InvalidInputError(PlanBookError):
    """Raised when input is rejected before any write."""
    pass


class InvalidPayloadError(InvalidInputError):
    """Raised when a payload is missing required fields or is malformed."""

    def __init__(self, kind: str, errors: list[PayloadValidationError]):
        self.kind = kind
        self.errors = errors
        details = "; ".join(f"{e.field}: {e.message}" for e in errors)
        super().__init__(f"Invalid {kind} payload: {details}")


class BackendUnavailableError(PlanBookError):
    """Raised when the storage backend cannot be reached."""
    pass


class StorageUnavailableError(BackendUnavailableError):
    """Raised by storage backends on transport or I/O failures."""

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Storage backend failed during {operation}: {detail}")


class PermissionDeniedError(PlanBookError):
    """Raised when the caller may not perform the request."""
    pass


class NotAMemberError(PermissionDeniedError):
    """Raised when a non-member asks for a group's shared data."""

    def __init__(self, code: str):
        self.code = code
        super().__init__(f"Requester is not a member of group '{code}'")


class NotMemberError(PermissionDeniedError):
    """Raised when a user leaves a group they do not belong to."""

    def __init__(self, code: str, user_id: str):
        self.code = code
        self.user_id = user_id
        super().__init__(f"User is not a member of group '{code}'")


class CreatorCannotLeaveError(PermissionDeniedError):
    """Raised when the group creator tries to leave their own group."""

    def __init__(self, code: str):
        self.code = code
        super().__init__(f"The creator of group '{code}' cannot leave it")


class ActionNotPermittedError(PermissionDeniedError):
    """Raised when a group's permissions do not allow a member action."""

    def __init__(self, code: str, action: str):
        self.code = code
        self.action = action
        super().__init__(f"Members of group '{code}' may not {action}")
