"""Unit tests for group entities."""

from datetime import datetime, timezone

import pytest

from planbook.domain.entities import (
    GroupMembership,
    GroupPermissions,
    ParticipationEntry,
    ReconcileReport,
)
from planbook.domain.entities.group import parse_timestamp


class TestGroupMembership:
    """Tests for GroupMembership."""

    def test_creator_is_always_a_member(self):
        group = GroupMembership(code="AB12CD", group_name="Grade 5", creator="alice")
        assert group.members == ["alice"]

    def test_creator_inserted_first_when_missing(self):
        group = GroupMembership(code="AB12CD", group_name="Grade 5", creator="alice", members=["bob"])
        assert group.members == ["alice", "bob"]

    def test_members_are_deduplicated_in_order(self):
        group = GroupMembership(
            code="AB12CD", group_name="Grade 5", creator="alice", members=["alice", "bob", "alice", "bob"]
        )
        assert group.members == ["alice", "bob"]

    def test_code_and_creator_required(self):
        with pytest.raises(ValueError, match="code"):
            GroupMembership(code="", group_name="x", creator="alice")
        with pytest.raises(ValueError, match="creator"):
            GroupMembership(code="AB12CD", group_name="x", creator="")

    def test_add_member_is_idempotent(self):
        group = GroupMembership(code="AB12CD", group_name="Grade 5", creator="alice")
        group.add_member("bob")
        group.add_member("bob")
        assert group.members == ["alice", "bob"]

    def test_add_member_bumps_modified_at(self):
        old = datetime(2020, 1, 1, tzinfo=timezone.utc)
        group = GroupMembership(code="AB12CD", group_name="Grade 5", creator="alice", modified_at=old)
        group.add_member("bob")
        assert group.modified_at > old

    def test_remove_member(self):
        group = GroupMembership(code="AB12CD", group_name="Grade 5", creator="alice", members=["bob"])
        group.remove_member("bob")
        assert group.members == ["alice"]

    def test_creator_cannot_be_removed(self):
        group = GroupMembership(code="AB12CD", group_name="Grade 5", creator="alice")
        with pytest.raises(ValueError):
            group.remove_member("alice")
        assert group.members == ["alice"]

    def test_to_dict_wire_shape(self):
        created = datetime(2024, 3, 14, 9, 30, tzinfo=timezone.utc)
        group = GroupMembership(
            code="AB12CD",
            group_name="Grade 5",
            creator="alice",
            members=["bob"],
            description="Shared plans",
            created_at=created,
            modified_at=created,
        )

        data = group.to_dict()

        assert list(data) == [
            "code", "groupName", "description", "creator", "createdAt", "modifiedAt", "members", "permissions",
        ]
        assert data["members"] == ["alice", "bob"]
        assert data["createdAt"] == "2024-03-14T09:30:00+00:00"
        assert data["permissions"] == {"canInvite": True, "canShare": True, "canEdit": False}

    def test_from_dict_accepts_legacy_document(self):
        group = GroupMembership.from_dict(
            {
                "code": "ab12cd",
                "groupName": "Old school",
                "creator": "alice",
                "createdAt": "2023-09-01T00:00:00Z",
                "members": ["alice", "bob"],
            }
        )

        assert group.code == "AB12CD"
        assert group.members == ["alice", "bob"]
        assert group.permissions == GroupPermissions()
        assert group.modified_at == group.created_at
        assert group.created_at.tzinfo is not None


class TestParticipationEntry:
    """Tests for ParticipationEntry."""

    def test_for_group_marks_creator(self):
        group = GroupMembership(code="AB12CD", group_name="Grade 5", creator="alice", description="d")
        assert ParticipationEntry.for_group(group, "alice").is_creator is True
        entry = ParticipationEntry.for_group(group, "bob")
        assert entry.is_creator is False
        assert entry.group_name == "Grade 5"
        assert entry.description == "d"

    def test_round_trip_dict(self):
        entry = ParticipationEntry(code="AB12CD", group_name="Grade 5", is_creator=True)
        data = entry.to_dict()
        assert list(data) == ["code", "groupName", "description", "joinedAt", "isCreator"]
        assert ParticipationEntry.from_dict(data) == entry


def test_permissions_from_partial_dict():
    permissions = GroupPermissions.from_dict({"canEdit": True})
    assert permissions == GroupPermissions(can_invite=True, can_share=True, can_edit=True)


def test_parse_timestamp_naive_is_utc():
    assert parse_timestamp("2024-01-02T03:04:05").tzinfo == timezone.utc


def test_reconcile_report_changed():
    assert ReconcileReport(user_id="u").changed is False
    assert ReconcileReport(user_id="u", restored=["AB12CD"]).changed is True
