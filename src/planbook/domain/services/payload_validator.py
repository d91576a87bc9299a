"""Payload validation for record kinds.

Checks that a payload carries its kind's required fields and that the
nested structures (evaluations, students, questions, results) have the
expected shape. Validation runs on the normalized payload, so legacy
shapes are accepted once normalized.
"""

from dataclasses import dataclass
from typing import Any

from planbook.domain.entities.record_kind import RecordKind, get_kind_spec


@dataclass
class PayloadValidationError:
    """A single payload validation error."""

    field: str
    message: str
    code: str


class PayloadValidator:
    """Validator for record payloads.

    Validates required fields and the shape of list-valued fields.
    """

    @classmethod
    def validate_required(
        cls, payload: dict[str, Any], fields: tuple[str, ...]
    ) -> list[PayloadValidationError]:
        """Required fields must be present and not empty."""
        errors = []
        for name in fields:
            value = payload.get(name)
            if value is None or (isinstance(value, str) and not value.strip()):
                errors.append(
                    PayloadValidationError(
                        field=name,
                        message="Field is required",
                        code="required_field_missing",
                    )
                )
        return errors

    @classmethod
    def validate_list_of_objects(
        cls,
        value: Any,
        field_name: str,
        item_required: tuple[str, ...] = (),
        allow_empty: bool = True,
    ) -> list[PayloadValidationError]:
        """Validate a list whose items are objects with the given keys."""
        if not isinstance(value, list):
            return [
                PayloadValidationError(
                    field=field_name,
                    message=f"Expected list, got {type(value).__name__}",
                    code="invalid_type",
                )
            ]

        if not value and not allow_empty:
            return [
                PayloadValidationError(
                    field=field_name,
                    message="At least one item is required",
                    code="empty_list",
                )
            ]

        errors = []
        for index, item in enumerate(value):
            path = f"{field_name}[{index}]"
            if not isinstance(item, dict):
                errors.append(
                    PayloadValidationError(
                        field=path,
                        message=f"Expected object, got {type(item).__name__}",
                        code="invalid_type",
                    )
                )
                continue
            for sub in cls.validate_required(item, item_required):
                sub.field = f"{path}.{sub.field}"
                errors.append(sub)
        return errors

    @classmethod
    def validate_plan(cls, payload: dict[str, Any]) -> list[PayloadValidationError]:
        errors = cls.validate_list_of_objects(
            payload["evaluations"], "evaluations", ("evaluationName",), allow_empty=False
        )
        if not isinstance(payload["evaluations"], list):
            return errors
        for index, evaluation in enumerate(payload["evaluations"]):
            if not isinstance(evaluation, dict):
                continue
            standards = evaluation.get("achievementStandards", [])
            if not isinstance(standards, list):
                errors.append(
                    PayloadValidationError(
                        field=f"evaluations[{index}].achievementStandards",
                        message=f"Expected list, got {type(standards).__name__}",
                        code="invalid_type",
                    )
                )
        return errors

    @classmethod
    def validate(cls, kind: RecordKind, payload: Any) -> list[PayloadValidationError]:
        """Validate a payload against its kind.

        Args:
            kind: Record kind.
            payload: Normalized payload.

        Returns:
            List of validation errors (empty if valid).
        """
        if not isinstance(payload, dict):
            return [
                PayloadValidationError(
                    field="",
                    message=f"Expected object payload, got {type(payload).__name__}",
                    code="invalid_type",
                )
            ]

        spec = get_kind_spec(kind)
        errors = cls.validate_required(payload, spec.required_fields)
        if errors:
            # Shape checks assume the required fields exist
            return errors

        if kind is RecordKind.PLANS:
            errors.extend(cls.validate_plan(payload))
        elif kind is RecordKind.ROSTERS:
            errors.extend(
                cls.validate_list_of_objects(payload["students"], "students", ("number", "name"))
            )
        elif kind is RecordKind.SURVEYS:
            errors.extend(cls.validate_list_of_objects(payload["questions"], "questions"))
        elif kind is RecordKind.RESULTS:
            errors.extend(cls.validate_list_of_objects(payload["results"], "results"))

        return errors
