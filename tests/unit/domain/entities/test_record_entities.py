"""Unit tests for namespace, record kind and record entities."""

from datetime import datetime, timezone

import pytest

from planbook.domain.entities import (
    KIND_SPECS,
    Namespace,
    NamespaceScope,
    Record,
    RecordFilter,
    RecordKind,
    get_kind_spec,
)


def _record(name: str, payload: dict) -> Record:
    now = datetime(2024, 1, 1, tzinfo=timezone.utc)
    return Record(
        id="1", kind=RecordKind.PLANS, name=name, logical_key="k", payload=payload, created_at=now, modified_at=now
    )


def test_namespace_factories():
    assert Namespace.personal("alice") == Namespace(NamespaceScope.PERSONAL, "alice")
    assert Namespace.group("ab12cd").owner == "AB12CD"
    assert Namespace.group("AB12CD").is_group is True
    assert str(Namespace.personal("alice")) == "personal:alice"


def test_namespace_requires_owner():
    with pytest.raises(ValueError):
        Namespace.personal("")


def test_every_kind_has_conventions():
    assert set(KIND_SPECS) == set(RecordKind)
    assert get_kind_spec("plans").prefix == "evaluation_plan"


def test_participation_is_not_searchable():
    assert get_kind_spec(RecordKind.PARTICIPATION).searchable is False
    assert get_kind_spec(RecordKind.PLANS).searchable is True


def test_unknown_kind():
    with pytest.raises(ValueError, match="Unknown record kind"):
        get_kind_spec("lessons")


def test_record_filter_matches_name_and_fields():
    record = _record("evaluation_plan_Math_5_20240101.json", {"subject": "Math", "grade": "5"})

    assert RecordFilter().matches(record)
    assert RecordFilter(scope_token="Math").matches(record)
    assert not RecordFilter(scope_token="Science").matches(record)
    assert RecordFilter(fields={"grade": "5"}).matches(record)
    assert not RecordFilter(fields={"grade": "6"}).matches(record)
