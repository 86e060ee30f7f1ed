"""Shared fixtures: a populated mock platform and clients pointed at it."""

import pytest

from access_sanity.runner.runner import build_clients
from tests.mock_platform_server import MockPlatformServer


USERS = [
    {"id": "usr_alice", "email": "alice@example.com", "name": "Alice"},
    {"id": "usr_bob", "email": "bob@example.com", "name": "Bob"},
    {"id": "usr_carol", "email": "carol@example.com", "name": "Carol"},
    {"id": "usr_dave", "email": "dave@example.com", "name": "Dave"},
    {"id": "usr_erin", "email": "erin@example.com", "name": "Erin"},
]

GROUPS = {
    "usr_alice": [
        {"id": "grp_admins", "name": "Admins"},
        {"id": "grp_eng", "name": "Engineering"},
        {"id": "grp_oncall", "name": "On Call"},
    ],
    "usr_bob": [{"id": "grp_eng", "name": "Engineering"}],
}

ENTITLEMENTS = {
    ("usr_alice", "123456789012", "AdministratorAccess"): (True, True),
    ("usr_bob", "123456789012", "AdministratorAccess"): (True, False),
    ("usr_carol", "123456789012", "AdministratorAccess"): (False, False),
    # auto_approved without can_request still means no access
    ("usr_dave", "123456789012", "AdministratorAccess"): (False, True),
}


@pytest.fixture(autouse=True)
def _allow_http_token_endpoint(monkeypatch):
    """The mock server speaks plain HTTP."""
    monkeypatch.setenv("AUTHLIB_INSECURE_TRANSPORT", "1")


@pytest.fixture
def platform():
    """A mock platform with five users (two pages of two, one of one)."""
    with MockPlatformServer(users=USERS, groups=GROUPS, entitlements=ENTITLEMENTS) as s:
        yield s


@pytest.fixture
def clients(platform):
    """``(directory_client, access_client)`` for the ``platform`` fixture."""
    return build_clients(platform.client_config())


@pytest.fixture
def platform_env(platform, monkeypatch):
    """Export the platform's CF_* variables into the process environment."""
    for key, value in platform.env().items():
        monkeypatch.setenv(key, value)
    return platform
