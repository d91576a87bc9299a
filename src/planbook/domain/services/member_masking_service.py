"""Masking of member identifiers shown to other group members."""

from planbook.domain.entities.group import GroupMembership, MemberView


class MemberMaskingService:
    """Service for partially redacting roster identifiers.

    Members see their own identifier in full and everyone else's reduced
    to a short visible prefix.
    """

    MASK_CHAR = "*"
    MIN_MASK_LENGTH = 3

    @classmethod
    def mask_identifier(cls, value: str, visible: int = 2) -> str:
        """Mask an identifier as ``ab****``.

        Keeps the first ``visible`` characters and replaces the rest. Short
        identifiers are fully masked so the prefix never reveals the whole
        value.

        Args:
            value: Identifier to mask.
            visible: Number of leading characters to keep.

        Returns:
            Masked identifier.
        """
        if not value:
            return value

        if len(value) <= visible:
            return cls.MASK_CHAR * max(len(value), cls.MIN_MASK_LENGTH)

        hidden = max(len(value) - visible, cls.MIN_MASK_LENGTH)
        return value[:visible] + cls.MASK_CHAR * hidden

    @classmethod
    def roster_view(
        cls, group: GroupMembership, requester_id: str, visible: int = 2
    ) -> list[MemberView]:
        """Build the roster as seen by ``requester_id``."""
        return [
            MemberView(
                identifier=member if member == requester_id else cls.mask_identifier(member, visible),
                is_creator=group.is_creator(member),
                is_self=member == requester_id,
            )
            for member in group.members
        ]
