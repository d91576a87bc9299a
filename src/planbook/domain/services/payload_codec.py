"""Serialization of record payloads.

Payloads are stored as UTF-8 JSON with two-space indentation and their
key order preserved, so decoding a stored file and encoding it again gives
back the same bytes.
"""

import json
from typing import Any


class PayloadCodec:
    """Encodes and decodes record payloads."""

    ENCODING = "utf-8"

    @classmethod
    def encode(cls, payload: dict[str, Any]) -> bytes:
        return json.dumps(payload, ensure_ascii=False, indent=2).encode(cls.ENCODING)

    @classmethod
    def decode(cls, content: bytes | str) -> dict[str, Any]:
        """Decode a stored document.

        Raises:
            ValueError: If the content is not a JSON object.
        """
        if isinstance(content, bytes):
            # Files written by older clients may carry a BOM
            content = content.decode("utf-8-sig")
        data = json.loads(content)
        if not isinstance(data, dict):
            raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
        return data
