"""Deterministic record file names.

Names follow ``<prefix>_<logical key>_<YYYYMMDD>.json``. The logical key is
the kind's key fields joined with underscores, so two saves of the same
subject and grade on the same day map to the same name stem.
"""

import re
from datetime import date
from typing import Any

from planbook.domain.entities.record_kind import RecordKindSpec

_UNSAFE = re.compile(r'[\\/:*?"<>|\s]+')
_DATE_SUFFIX = re.compile(r"_(\d{8})$")

EXTENSION = ".json"


def sanitize_segment(value: Any) -> str:
    """Make a value safe to embed in a single path segment."""
    text = str(value).strip()
    text = _UNSAFE.sub("-", text)
    return text.strip("-") or "untitled"


class FilenameBuilder:
    """Builds and parses record file names for a kind."""

    DATE_FORMAT = "%Y%m%d"

    @classmethod
    def logical_key(cls, spec: RecordKindSpec, payload: dict[str, Any]) -> str:
        return "_".join(sanitize_segment(payload.get(f, "")) for f in spec.key_fields)

    @classmethod
    def stem(cls, spec: RecordKindSpec, logical_key: str, on: date) -> str:
        return f"{spec.prefix}_{logical_key}_{on.strftime(cls.DATE_FORMAT)}"

    @classmethod
    def filename(cls, spec: RecordKindSpec, logical_key: str, on: date) -> str:
        return cls.stem(spec, logical_key, on) + EXTENSION

    @classmethod
    def matches_kind(cls, spec: RecordKindSpec, name: str) -> bool:
        """True if ``name`` follows the kind's naming convention."""
        return name.startswith(f"{spec.prefix}_") and name.endswith(EXTENSION)

    @classmethod
    def key_from_name(cls, spec: RecordKindSpec, name: str) -> str:
        """Recover the logical key from a file name.

        Used for records whose payload lacks the key fields, typically files
        written by older layouts.
        """
        stem = name[: -len(EXTENSION)] if name.endswith(EXTENSION) else name
        if stem.startswith(f"{spec.prefix}_"):
            stem = stem[len(spec.prefix) + 1 :]
        return _DATE_SUFFIX.sub("", stem)
