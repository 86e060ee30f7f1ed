"""Tests for DirectoryClient, AccessClient and the outcome mapping."""

import pytest

from access_sanity.access import (
    AUTO_APPROVED,
    NO_ACCESS,
    REQUIRES_APPROVAL,
    EntitlementAccess,
    outcome,
)
from access_sanity.directory import User, find_membership, find_user_with_email
from access_sanity.errors import UserNotFoundError


@pytest.mark.parametrize("can_request,auto_approved,expected", [
    (True, True, AUTO_APPROVED),
    (True, False, REQUIRES_APPROVAL),
    (False, False, NO_ACCESS),
    (False, True, NO_ACCESS),
])
def test_outcome(can_request, auto_approved, expected):
    assert outcome(can_request, auto_approved) == expected


def test_entitlement_access_defaults_missing_fields_to_false():
    result = EntitlementAccess.from_dict({})
    assert result.can_request is False
    assert result.auto_approved is False
    assert result.outcome == NO_ACCESS


class TestDirectoryClient:

    def test_list_users_follows_pagination(self, platform, clients):
        directory_client, _ = clients
        users = directory_client.list_users()
        assert [u.email for u in users] == [
            "alice@example.com",
            "bob@example.com",
            "carol@example.com",
            "dave@example.com",
            "erin@example.com",
        ]
        # 5 users at 2 per page
        assert [m for m, _ in platform.calls] == ["QueryUsers"] * 3

    def test_query_users_single_page(self, clients):
        directory_client, _ = clients
        users, next_token = directory_client.query_users()
        assert len(users) == 2
        assert next_token == "2"

    def test_list_groups_for_user(self, platform, clients):
        directory_client, _ = clients
        memberships = directory_client.list_groups_for_user("usr_alice")
        assert [m.group.id for m in memberships] == ["grp_admins", "grp_eng", "grp_oncall"]
        assert memberships[0].group.name == "Admins"
        assert all(body["userId"] == "usr_alice" for _, body in platform.calls)

    def test_user_without_groups(self, clients):
        directory_client, _ = clients
        assert directory_client.list_groups_for_user("usr_erin") == []


class TestAccessClient:

    @pytest.mark.parametrize("user_id,expected", [
        ("usr_alice", AUTO_APPROVED),
        ("usr_bob", REQUIRES_APPROVAL),
        ("usr_carol", NO_ACCESS),
        ("usr_dave", NO_ACCESS),
    ])
    def test_debug_entitlement_access(self, clients, user_id, expected):
        _, access_client = clients
        result = access_client.debug_entitlement_access(user_id, "123456789012", "AdministratorAccess")
        assert result.outcome == expected

    def test_request_shape(self, platform, clients):
        _, access_client = clients
        access_client.debug_entitlement_access("usr_bob", "prod", "ReadOnly")
        method, body = platform.calls[-1]
        assert method == "DebugEntitlementAccess"
        assert body == {
            "principal": {"eid": {"type": "CF::User", "id": "usr_bob"}},
            "target": {"lookup": "prod"},
            "role": {"lookup": "ReadOnly"},
        }


class TestLookups:

    users = [User("u1", "a@example.com"), User("u2", "b@example.com"), User("u3", "a@example.com")]

    def test_find_user_first_match_wins(self):
        assert find_user_with_email(self.users, "a@example.com").id == "u1"

    def test_find_user_is_exact(self):
        with pytest.raises(UserNotFoundError) as exc_info:
            find_user_with_email(self.users, "A@example.com")
        assert str(exc_info.value) == 'no user found with email "A@example.com"'

    def test_find_membership(self, clients):
        directory_client, _ = clients
        memberships = directory_client.list_groups_for_user("usr_bob")
        assert find_membership(memberships, "grp_eng").group.name == "Engineering"
        assert find_membership(memberships, "grp_admins") is None
