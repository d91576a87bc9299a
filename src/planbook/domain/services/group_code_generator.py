"""Group code generator service.

Draws random six-character codes from an uppercase alphanumeric alphabet
(36^6 possible codes). Provides validation and a bounded collision retry.
"""

import re
import secrets
from typing import Iterable

from planbook.domain.exceptions import GroupCodeExhaustedError


class GroupCodeGenerator:
    """Generator for shareable group codes.

    Example codes: AB12CD, 7QZK0M, XXXXXX
    """

    ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
    CODE_LENGTH = 6
    MAX_ATTEMPTS = 10

    PATTERN = re.compile(rf"^[A-Z0-9]{{{CODE_LENGTH}}}$")

    @classmethod
    def normalize(cls, code: str) -> str:
        """Uppercase and strip a user-typed code."""
        return code.strip().upper() if isinstance(code, str) else code

    @classmethod
    def validate(cls, code: str) -> bool:
        """Validate that a code has the expected format.

        Examples:
            >>> GroupCodeGenerator.validate("AB12CD")
            True
            >>> GroupCodeGenerator.validate("ab12cd")
            False
            >>> GroupCodeGenerator.validate("AB12C")
            False
        """
        if not isinstance(code, str):
            return False
        return bool(cls.PATTERN.match(code))

    @classmethod
    def validate_with_error(cls, code: str) -> tuple[bool, str | None]:
        """Validate a code and return a descriptive error message if invalid.

        Returns:
            A tuple of (is_valid, error_message). If valid, error_message is None.
        """
        if not isinstance(code, str):
            return False, "Group code must be a string"

        if not code:
            return False, "Group code cannot be empty"

        if len(code) != cls.CODE_LENGTH:
            return (
                False,
                f"Group code must be exactly {cls.CODE_LENGTH} characters, got {len(code)}",
            )

        if any(ch not in cls.ALPHABET for ch in code):
            return False, "Group code may contain only uppercase letters and digits"

        return True, None

    @classmethod
    def generate(
        cls,
        existing_codes: Iterable[str] | None = None,
        max_attempts: int = MAX_ATTEMPTS,
    ) -> str:
        """Draw a code not present in ``existing_codes``.

        The uniqueness check is only as fresh as ``existing_codes``. Two
        callers that load the same snapshot can draw the same code and both
        pass; the keyspace makes this unlikely but nothing prevents it.

        Args:
            existing_codes: Codes of live groups.
            max_attempts: Number of draws before giving up.

        Returns:
            A code in the generator's format.

        Raises:
            GroupCodeExhaustedError: If every draw collided.
        """
        existing = {cls.normalize(c) for c in existing_codes} if existing_codes else set()

        for _ in range(max_attempts):
            candidate = cls._draw()
            if candidate not in existing:
                return candidate

        raise GroupCodeExhaustedError(max_attempts)

    @classmethod
    def _draw(cls) -> str:
        return "".join(secrets.choice(cls.ALPHABET) for _ in range(cls.CODE_LENGTH))
