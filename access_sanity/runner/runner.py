"""Runs a test file against the live platform.

``run_tests()`` fetches the directory's users once for email lookups, runs
every access test and then every group membership test in file order,
prints the report, and returns an exit code (0 = all pass, 1 = failures).

Unknown users are a soft pass when the expectation is an absence of access
(``expected-result: no-access`` or ``is-member: false``): the test passes
with a warning note instead of failing.
"""

import datetime
import logging
from typing import Callable, List, Optional, Tuple

from .. import __version__
from ..access import AccessClient, OUTCOMES, NO_ACCESS
from ..auth import ClientCredentialsTokenSource
from ..config import ClientConfig
from ..directory import DirectoryClient, User, find_membership, find_user_with_email
from ..errors import AccessSanityError, ConnectError, UserNotFoundError
from ..http_client import ConnectClient
from ..testfile import AccessTest, GroupTest, Suite
from .report import (
    CaseResult,
    SECTION_ACCESS,
    SECTION_GROUP,
    print_case,
    print_results,
    print_section_header,
    print_summary,
)

logger = logging.getLogger(__name__)


def build_clients(config: ClientConfig) -> Tuple[DirectoryClient, AccessClient]:
    """Create directory and access clients sharing one token source."""
    token_source = ClientCredentialsTokenSource.from_config(config)
    transport = config.transport_options()
    directory_client = DirectoryClient(ConnectClient(config.api_url, token_source, **transport))
    access_client = AccessClient(ConnectClient(config.access_url, token_source, **transport))
    return directory_client, access_client


class SuiteRunner:
    """Evaluates individual tests against pre-fetched directory users.

    Args:
        access_client:     Client for ``DebugEntitlementAccess``.
        directory_client:  Client for group membership queries.
        users:             Every directory user, used for email lookups.
    """

    def __init__(
        self,
        access_client: AccessClient,
        directory_client: DirectoryClient,
        users: List[User],
    ):
        self.access_client = access_client
        self.directory_client = directory_client
        self.users = users

    def run(
        self,
        suite: Suite,
        on_section: Optional[Callable[[str, int], None]] = None,
        on_result: Optional[Callable[[CaseResult], None]] = None,
    ) -> List[CaseResult]:
        """Run all access tests, then all group membership tests.

        ``on_section(section, count)`` is called before each section starts and
        ``on_result(result)`` as soon as each test finishes, so a caller can
        report progress while a long suite runs.
        """
        sections = (
            (SECTION_ACCESS, suite.access_tests, self.run_access_test),
            (SECTION_GROUP, suite.group_tests, self.run_group_membership_test),
        )
        results: List[CaseResult] = []
        for section, tests, run_one in sections:
            if on_section is not None:
                on_section(section, len(tests))
            for test in tests:
                result = run_one(test)
                if on_result is not None:
                    on_result(result)
                results.append(result)
        return results

    def run_access_test(self, test: AccessTest) -> CaseResult:
        """Check that ``test.user`` gets ``test.expected_result`` for the target and role."""
        def fail(message: str) -> CaseResult:
            return CaseResult(test.describe(), CaseResult.FAIL, message=message,
                              section=SECTION_ACCESS, test=test.to_dict())

        if test.expected_result not in OUTCOMES:
            allowed = ", ".join(f"'{o}'" for o in OUTCOMES)
            return fail(
                f'invalid value for expected-result: "{test.expected_result}" '
                f"- must be one of [{allowed}]"
            )

        try:
            user = find_user_with_email(self.users, test.user)
        except UserNotFoundError as exc:
            if test.expected_result == NO_ACCESS:
                return CaseResult(
                    test.describe(), CaseResult.PASS,
                    warning=(
                        f"error when finding user for email {test.user}, ignoring "
                        f"because expected-result is no-access: {exc}"
                    ),
                    section=SECTION_ACCESS, test=test.to_dict(),
                )
            return fail(str(exc))

        try:
            result = self.access_client.debug_entitlement_access(user.id, test.target, test.role)
        except AccessSanityError as exc:
            logger.debug("DebugEntitlementAccess failed for %s: %s", test.describe(), exc)
            return fail(f"error calling the DebugEntitlementAccess API: {exc}")

        got = result.outcome
        if got != test.expected_result:
            return fail(f"got {got}")
        return CaseResult(test.describe(), CaseResult.PASS,
                          section=SECTION_ACCESS, test=test.to_dict())

    def run_group_membership_test(self, test: GroupTest) -> CaseResult:
        """Check that ``test.user`` is (or is not) a member of ``test.group``."""
        def fail(message: str) -> CaseResult:
            return CaseResult(test.describe(), CaseResult.FAIL, message=message,
                              section=SECTION_GROUP, test=test.to_dict())

        try:
            user = find_user_with_email(self.users, test.user)
        except UserNotFoundError as exc:
            if not test.is_member:
                return CaseResult(
                    test.describe(), CaseResult.PASS,
                    warning=(
                        f"error when finding user for email {test.user}, ignoring "
                        f"because is-member is false: {exc}"
                    ),
                    section=SECTION_GROUP, test=test.to_dict(),
                )
            return fail(str(exc))

        try:
            memberships = self.directory_client.list_groups_for_user(user.id)
        except AccessSanityError as exc:
            return fail(f"error calling the QueryGroupsForUser API: {exc}")

        is_member = find_membership(memberships, test.group) is not None
        if test.is_member and not is_member:
            return fail("user is not member of group")
        if not test.is_member and is_member:
            return fail("user is member of group")
        return CaseResult(test.describe(), CaseResult.PASS,
                          section=SECTION_GROUP, test=test.to_dict())


def run_tests(
    suite: Suite,
    config: Optional[ClientConfig] = None,
    directory_client: Optional[DirectoryClient] = None,
    access_client: Optional[AccessClient] = None,
    json_output: bool = False,
) -> int:
    """Run every test in ``suite`` and return an exit code.

    Either ``config`` or both clients must be given; explicit clients take
    precedence.

    Returns:
        0 if every test passed (soft passes included), 1 otherwise.

    Raises:
        AccessSanityError: if the directory users cannot be fetched.  This is
            fatal because no test can be evaluated without them.
    """
    if directory_client is None or access_client is None:
        if config is None:
            raise ValueError("run_tests needs a config or both clients")
        directory_client, access_client = build_clients(config)

    run_timestamp = datetime.datetime.now().strftime("%Y-%m-%d %H:%M:%S")

    if not json_output:
        print("retrieving users for email address lookups...")
    try:
        users = directory_client.list_users()
    except ConnectError as exc:
        raise AccessSanityError(f"error retrieving users: {exc}") from exc
    if not json_output:
        print(f"retrieved {len(users)} users")
    logger.info("running %d access tests and %d group membership tests",
                len(suite.access_tests), len(suite.group_tests))

    runner = SuiteRunner(access_client, directory_client, users)
    if json_output:
        results = runner.run(suite)
        print_results(results, json_output=True,
                      version=__version__, timestamp=run_timestamp)
    else:
        results = runner.run(suite, on_section=print_section_header, on_result=print_case)
        print_summary(results)

    has_failures = any(not r.passed for r in results)
    return 1 if has_failures else 0
