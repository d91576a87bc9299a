"""Record kinds and their storage conventions.

Each kind has a canonical folder name, older folder names that may still
hold data, a filename prefix, the payload fields that make up its logical
key, the fields a payload must carry, and the fields kept when the record
is exported as a template.
"""

from dataclasses import dataclass
from enum import Enum


class RecordKind(str, Enum):
    """Kinds of records a namespace can hold."""

    PLANS = "plans"
    ROSTERS = "rosters"
    GENERATED = "generated"
    SURVEYS = "surveys"
    RESULTS = "results"
    PARTICIPATION = "participation"


@dataclass(frozen=True)
class RecordKindSpec:
    """Storage and schema conventions for one record kind.

    Attributes:
        kind: The record kind.
        folder: Canonical folder name under a namespace root.
        legacy_folders: Folder names used by earlier layouts, in lookup order.
        prefix: Filename prefix; also the token the search tier looks for.
        key_fields: Payload fields joined to form the logical key.
        required_fields: Payload fields that must be present on save.
        template_fields: Payload fields kept by template export.
        searchable: Whether the tree-wide search tier may be used. Off for
            kinds whose files from other owners must never be picked up.
    """

    kind: RecordKind
    folder: str
    legacy_folders: tuple[str, ...]
    prefix: str
    key_fields: tuple[str, ...]
    required_fields: tuple[str, ...]
    template_fields: tuple[str, ...]
    searchable: bool = True


KIND_SPECS: dict[RecordKind, RecordKindSpec] = {
    RecordKind.PLANS: RecordKindSpec(
        kind=RecordKind.PLANS,
        folder="plans",
        legacy_folders=("EvaluationPlans", "evaluation_plans"),
        prefix="evaluation_plan",
        key_fields=("subject", "grade"),
        required_fields=("subject", "grade", "semester", "evaluations"),
        template_fields=("subject", "grade", "semester", "evaluations"),
    ),
    RecordKind.ROSTERS: RecordKindSpec(
        kind=RecordKind.ROSTERS,
        folder="rosters",
        legacy_folders=("Rosters", "class_rosters"),
        prefix="roster",
        key_fields=("grade", "className"),
        required_fields=("className", "grade", "semester", "students"),
        template_fields=("className", "grade", "semester", "students"),
    ),
    RecordKind.GENERATED: RecordKindSpec(
        kind=RecordKind.GENERATED,
        folder="generated",
        legacy_folders=("GeneratedContent",),
        prefix="generated",
        key_fields=("subject", "grade", "title"),
        required_fields=("subject", "grade", "title", "content"),
        template_fields=("subject", "grade", "title", "content"),
    ),
    RecordKind.SURVEYS: RecordKindSpec(
        kind=RecordKind.SURVEYS,
        folder="surveys",
        legacy_folders=("Surveys",),
        prefix="survey",
        key_fields=("title",),
        required_fields=("title", "questions"),
        template_fields=("title", "description", "questions"),
    ),
    RecordKind.RESULTS: RecordKindSpec(
        kind=RecordKind.RESULTS,
        folder="results",
        legacy_folders=("Results",),
        prefix="result",
        key_fields=("subject", "grade", "evaluationName"),
        required_fields=("subject", "grade", "evaluationName", "results"),
        template_fields=("subject", "grade", "evaluationName"),
    ),
    RecordKind.PARTICIPATION: RecordKindSpec(
        kind=RecordKind.PARTICIPATION,
        folder="participation",
        legacy_folders=("joined_schools",),
        prefix="participation",
        key_fields=("code",),
        required_fields=("code", "groupName", "joinedAt", "isCreator"),
        template_fields=(),
        searchable=False,
    ),
}


def get_kind_spec(kind: RecordKind | str) -> RecordKindSpec:
    """Look up the conventions for a kind.

    Raises:
        ValueError: If the kind is unknown.
    """
    try:
        return KIND_SPECS[RecordKind(kind)]
    except ValueError:
        raise ValueError(f"Unknown record kind: {kind!r}") from None
