"""Normalization of legacy payload shapes.

Older clients wrote evaluation plans with a single evaluation flattened
into the top level, and rosters with students as a plain list of names.
Both are rewritten to the current shape on read and on save. Payloads
already in the current shape are returned unchanged, key order included.
"""

from typing import Any

from planbook.domain.entities.record_kind import RecordKind

EVALUATION_FIELDS = (
    "evaluationName",
    "achievementStandards",
    "evaluationCriteria",
    "evaluationMethod",
    "evaluationPeriod",
)

# Singular spellings used by the flattened plan layout
_EVALUATION_ALIASES = {"achievementStandard": "achievementStandards"}


class PayloadNormalizer:
    """Rewrites legacy payload shapes to the current ones."""

    @classmethod
    def normalize(cls, kind: RecordKind, payload: dict[str, Any]) -> dict[str, Any]:
        if kind is RecordKind.PLANS:
            return cls.normalize_plan(payload)
        if kind is RecordKind.ROSTERS:
            return cls.normalize_roster(payload)
        return payload

    @classmethod
    def is_legacy_plan(cls, payload: dict[str, Any]) -> bool:
        if "evaluations" in payload:
            return False
        return any(key in payload for key in EVALUATION_FIELDS + tuple(_EVALUATION_ALIASES))

    @classmethod
    def normalize_plan(cls, payload: dict[str, Any]) -> dict[str, Any]:
        if not cls.is_legacy_plan(payload):
            return payload

        evaluation: dict[str, Any] = {}
        rest: dict[str, Any] = {}
        for key, value in payload.items():
            target = _EVALUATION_ALIASES.get(key, key)
            if target in EVALUATION_FIELDS:
                evaluation[target] = value
            else:
                rest[key] = value

        standards = evaluation.get("achievementStandards")
        if standards is None:
            evaluation["achievementStandards"] = []
        elif not isinstance(standards, list):
            evaluation["achievementStandards"] = [standards]

        ordered = {field: evaluation[field] for field in EVALUATION_FIELDS if field in evaluation}
        rest["evaluations"] = [ordered]
        return rest

    @classmethod
    def normalize_roster(cls, payload: dict[str, Any]) -> dict[str, Any]:
        students = payload.get("students")
        if not isinstance(students, list) or not any(isinstance(s, str) for s in students):
            return payload

        normalized = []
        for index, student in enumerate(students, start=1):
            if isinstance(student, str):
                normalized.append({"number": index, "name": student})
            else:
                normalized.append(student)
        return {**payload, "students": normalized}
