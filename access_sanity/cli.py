"""CLI interface for access-sanity using Click."""

import logging
import os
import sys
import time
from typing import Optional

import click
from dotenv import find_dotenv, load_dotenv

from . import __version__
from .config import ClientConfig, ENV_LOG_LEVEL
from .directory import find_membership, find_user_with_email
from .errors import AccessSanityError
from .runner.runner import build_clients, run_tests
from .testfile import load_file

logger = logging.getLogger(__name__)

_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _colorize(text: str, color: str, stream=None) -> str:
    """Colorize text using ANSI codes when the target stream is a TTY."""
    colors = {
        "red": "\033[91m",
        "green": "\033[92m",
        "bold": "\033[1m",
        "reset": "\033[0m",
    }
    stream = stream or sys.stdout
    if not stream.isatty():
        return text  # No colors if not a TTY
    return f"{colors.get(color, '')}{text}{colors['reset']}"


def _print_error(message: str):
    """Print an error line to stderr with color."""
    click.echo(_colorize(f"Error: {message}", "red", sys.stderr), err=True)


def _fatal(exc: Exception):
    """Log and print a fatal error, then exit with status 1."""
    logger.error("%s", exc)
    _print_error(str(exc))
    sys.exit(1)


def _configure_logging(verbose: bool):
    if verbose:
        level = logging.DEBUG
    else:
        level_name = os.environ.get(ENV_LOG_LEVEL, "WARNING").upper()
        level = getattr(logging, level_name, logging.WARNING)
    logging.basicConfig(level=level, format=_LOG_FORMAT, stream=sys.stderr)
    # Token and request bodies are logged by urllib3 at DEBUG; keep them out
    logging.getLogger("urllib3").setLevel(max(level, logging.INFO))


def _load_config(ctx: click.Context) -> ClientConfig:
    return ClientConfig.from_env(dotenv=False, **ctx.obj["transport"])


def _bool(value: bool) -> str:
    return "true" if value else "false"


@click.group()
@click.option("--env-file", type=click.Path(exists=True, dir_okay=False), default=None,
              help="Load environment variables from this file (default: .env if present)")
@click.option("--timeout", type=int, default=30, show_default=True,
              help="Per-request timeout in seconds")
@click.option("--tls-no-verify", is_flag=True, help="Skip TLS certificate verification")
@click.option("--ca-bundle", type=click.Path(exists=True, dir_okay=False), default=None,
              help="Path to a CA bundle for TLS verification")
@click.option("--proxy", default=None, help="HTTP/HTTPS proxy URL")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.version_option(version=__version__)
@click.pass_context
def main(ctx: click.Context, env_file: Optional[str], timeout: int, tls_no_verify: bool,
         ca_bundle: Optional[str], proxy: Optional[str], verbose: bool):
    """Check access outcomes and group memberships on an access platform.

    Credentials are read from CF_OIDC_CLIENT_ID, CF_OIDC_CLIENT_SECRET,
    CF_OIDC_ISSUER and CF_API_URL (a .env file is loaded if present).

    Examples:

    \b
      access-sanity test -f access-tests.yaml
      access-sanity debug-access --user alice@example.com --target 123456789012 --role Admin
      access-sanity check-membership --user alice@example.com --group-id okta_admins
    """
    load_dotenv(env_file or find_dotenv(usecwd=True))
    _configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["transport"] = {
        "timeout": timeout,
        "tls_no_verify": tls_no_verify,
        "ca_bundle": ca_bundle,
        "proxy": proxy,
    }


@main.command("test")
@click.option("-f", "--file", "file_path", required=True, type=click.Path(dir_okay=False),
              help="The YAML file defining the access tests")
@click.option("--json", "json_output", is_flag=True, help="Output results as JSON")
@click.pass_context
def test_command(ctx: click.Context, file_path: str, json_output: bool):
    """Run the access and group membership tests defined in a YAML file."""
    try:
        suite = load_file(file_path)
        config = _load_config(ctx)
        exit_code = run_tests(suite, config=config, json_output=json_output)
    except AccessSanityError as exc:
        _fatal(exc)
    sys.exit(exit_code)


@main.command("debug-access")
@click.option("--user", required=True, help="Email of the user to test access for")
@click.option("--target", "--account", "target", required=True,
              help="The target to test access to (e.g. an AWS account)")
@click.option("--role", required=True, help="The role to test access to")
@click.pass_context
def debug_access_command(ctx: click.Context, user: str, target: str, role: str):
    """Show whether a user can request a role on a target, and whether it is auto-approved."""
    try:
        config = _load_config(ctx)
        directory_client, access_client = build_clients(config)
        found = find_user_with_email(directory_client.list_users(), user)

        started = time.monotonic()
        result = access_client.debug_entitlement_access(found.id, target, role)
        elapsed = time.monotonic() - started
    except AccessSanityError as exc:
        _fatal(exc)

    click.echo(f"Can Request: {_bool(result.can_request)}")
    click.echo(f"Is Auto Approved: {_bool(result.auto_approved)}")
    click.echo(f"Outcome: {result.outcome}")
    click.echo(f"Took: {elapsed:.3f}s")


@main.command("check-membership")
@click.option("--user", required=True, help="Email of the user to test group membership of")
@click.option("--group-id", required=True, help="The Group ID to test membership of")
@click.pass_context
def check_membership_command(ctx: click.Context, user: str, group_id: str):
    """Exit 0 if the user is a member of the group, 1 otherwise."""
    try:
        config = _load_config(ctx)
        directory_client, _ = build_clients(config)
        found = find_user_with_email(directory_client.list_users(), user)
        membership = find_membership(directory_client.list_groups_for_user(found.id), group_id)
    except AccessSanityError as exc:
        _fatal(exc)

    if membership is not None:
        click.echo(
            f"user {found.id} (email {found.email}) is a member of group "
            f"{membership.group.id} ({membership.group.name})"
        )
        sys.exit(0)

    _print_error(f"user {found.id} (email {found.email}) is not a member of group {group_id}")
    sys.exit(1)


if __name__ == "__main__":
    main()
