"""Loads the declarative YAML test file.

Example::

    access-tests:
      - user: alice@example.com
        target: AWS::Account::123456789012
        role: AdministratorAccess
        expected-result: auto-approved

    group-tests:
      - user: alice@example.com
        group: okta_admins
        is-member: true

Both sections are optional.  Unknown keys are logged and ignored.  The value
of ``expected-result`` is not checked here: an invalid value fails that one
access test at run time rather than rejecting the whole file.
"""

import logging
from typing import Any, Dict, List

import yaml

from .errors import SuiteFileError

logger = logging.getLogger(__name__)

_ACCESS_KEYS = ("user", "target", "role", "expected-result")
_GROUP_KEYS = ("user", "group", "is-member")
_TOP_LEVEL_KEYS = ("access-tests", "group-tests")


class AccessTest:
    """Expect ``user`` to get ``expected_result`` when requesting ``role`` on ``target``."""

    def __init__(self, user: str, target: str, role: str, expected_result: str):
        self.user = user
        self.target = target
        self.role = role
        self.expected_result = expected_result

    def describe(self) -> str:
        return f"{self.user} {self.expected_result} to {self.target} with role {self.role}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user": self.user,
            "target": self.target,
            "role": self.role,
            "expected-result": self.expected_result,
        }


class GroupTest:
    """Expect ``user`` to be (or not be) a member of ``group``."""

    def __init__(self, user: str, group: str, is_member: bool):
        self.user = user
        self.group = group
        self.is_member = is_member

    def describe(self) -> str:
        member_text = "is member of" if self.is_member else "is not member of"
        return f"{self.user} {member_text} {self.group}"

    def to_dict(self) -> Dict[str, Any]:
        return {"user": self.user, "group": self.group, "is-member": self.is_member}


class Suite:
    """The parsed contents of a test file."""

    def __init__(self, access_tests: List[AccessTest], group_tests: List[GroupTest]):
        self.access_tests = access_tests
        self.group_tests = group_tests

    def __len__(self):
        return len(self.access_tests) + len(self.group_tests)


def load_file(path: str) -> Suite:
    """Read and parse the test file at ``path``.

    Raises:
        SuiteFileError: if the file cannot be read, is not valid YAML, or has
            an invalid structure.
    """
    try:
        with open(path, "r") as f:
            text = f.read()
    except OSError as exc:
        raise SuiteFileError(f"error reading tests file {path!r}: {exc}") from exc
    return load_string(text, source=path)


def load_string(text: str, source: str = "<string>") -> Suite:
    """Parse test file YAML from a string."""
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise SuiteFileError(
            f"error parsing tests file {source!r} (this usually means your file is "
            f"incorrectly formatted): {exc}"
        ) from exc
    return parse(data, source=source)


def parse(data: Any, source: str = "<data>") -> Suite:
    """Build a ``Suite`` from already-decoded YAML/JSON data."""
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise SuiteFileError(f"tests file {source!r} must be a mapping with "
                             f"'access-tests' and/or 'group-tests'")
    _warn_unknown_keys(data, _TOP_LEVEL_KEYS, source)

    access_tests = [
        _parse_access_test(entry, idx, source)
        for idx, entry in enumerate(_section(data, "access-tests", source))
    ]
    group_tests = [
        _parse_group_test(entry, idx, source)
        for idx, entry in enumerate(_section(data, "group-tests", source))
    ]
    return Suite(access_tests, group_tests)


def _section(data: Dict[str, Any], key: str, source: str) -> List[Any]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise SuiteFileError(f"{source}: '{key}' must be a list")
    return value


def _parse_access_test(entry: Any, idx: int, source: str) -> AccessTest:
    where = f"{source}: access-tests[{idx}]"
    if not isinstance(entry, dict):
        raise SuiteFileError(f"{where} must be a mapping")
    _warn_unknown_keys(entry, _ACCESS_KEYS, where)
    return AccessTest(
        user=_required_str(entry, "user", where),
        target=_required_str(entry, "target", where),
        role=_required_str(entry, "role", where),
        expected_result=str(entry.get("expected-result") or ""),
    )


def _parse_group_test(entry: Any, idx: int, source: str) -> GroupTest:
    where = f"{source}: group-tests[{idx}]"
    if not isinstance(entry, dict):
        raise SuiteFileError(f"{where} must be a mapping")
    _warn_unknown_keys(entry, _GROUP_KEYS, where)
    is_member = entry.get("is-member", False)
    if not isinstance(is_member, bool):
        raise SuiteFileError(f"{where}: 'is-member' must be true or false, got {is_member!r}")
    return GroupTest(
        user=_required_str(entry, "user", where),
        group=_required_str(entry, "group", where),
        is_member=is_member,
    )


def _required_str(entry: Dict[str, Any], key: str, where: str) -> str:
    value = entry.get(key)
    if value is None or value == "":
        raise SuiteFileError(f"{where}: missing required field '{key}'")
    # YAML turns bare account numbers into ints
    return str(value)


def _warn_unknown_keys(mapping: Dict[str, Any], known, where: str):
    for key in mapping:
        if key not in known:
            logger.warning("%s: ignoring unknown key %r", where, key)
