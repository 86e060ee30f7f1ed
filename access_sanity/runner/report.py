"""Formats test results as colored terminal output or structured JSON.

Two output modes are supported:

- **Terminal**: one ``[PASS]``/``[FAIL]`` line per test, grouped into an
  access test section and a group membership section, followed by a
  per-section summary line.  Soft passes print a ``[WARN]`` line first.
  The runner calls ``print_section_header``/``print_case`` as tests finish
  and ``print_summary`` at the end.
- **JSON**: Machine-readable output with ``summary`` and ``results`` keys,
  suitable for CI/CD pipelines and downstream processing.
"""

import json
import sys
from typing import Any, Dict, List, Optional


SECTION_ACCESS = "access"
SECTION_GROUP = "group"

_SECTION_TITLES = {
    SECTION_ACCESS: ("ACCESS TESTS", "access tests", "Access Tests"),
    SECTION_GROUP: ("GROUP MEMBERSHIP TESTS", "group membership tests", "Group Membership Tests"),
}


class CaseResult:
    """The outcome of a single access or group membership test.

    Attributes:
        name:    Human-readable description of the expectation
                 (e.g. ``alice@example.com auto-approved to prod with role admin``).
        status:  PASS or FAIL.
        message: Failure reason; empty on PASS.
        warning: Note explaining a soft pass (e.g. an unknown user that was
                 expected to have no access).
        section: ``SECTION_ACCESS`` or ``SECTION_GROUP``.
        test:    The test definition as a dict, included in JSON output.
    """

    PASS = "pass"
    FAIL = "fail"

    def __init__(
        self,
        name: str,
        status: str,
        message: str = "",
        warning: str = "",
        section: str = "",
        test: Optional[Dict[str, Any]] = None,
    ):
        self.name = name
        self.status = status
        self.message = message
        self.warning = warning
        self.section = section
        self.test = test or {}

    @property
    def passed(self) -> bool:
        return self.status == CaseResult.PASS

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dict for JSON output.  Omits empty fields."""
        d: Dict[str, Any] = {
            "name": self.name,
            "status": self.status,
            "section": self.section,
        }
        if self.message:
            d["message"] = self.message
        if self.warning:
            d["warning"] = self.warning
        if self.test:
            d["test"] = self.test
        return d


def _colorize(text: str, color: str) -> str:
    """Apply ANSI color codes.  Returns plain text when stdout is not a TTY."""
    colors = {
        "red": "\033[91m",
        "green": "\033[92m",
        "yellow": "\033[93m",
        "bold": "\033[1m",
        "dim": "\033[2m",
        "reset": "\033[0m",
    }
    if not sys.stdout.isatty():
        return text
    return f"{colors.get(color, '')}{text}{colors['reset']}"


def _tag(label: str, color: str) -> str:
    return "[" + _colorize(label, color) + "]"


def count_failures(results: List[CaseResult], section: str) -> int:
    return sum(1 for r in results if r.section == section and not r.passed)


def print_results(
    results: List[CaseResult],
    json_output: bool = False,
    version: str = "",
    timestamp: str = "",
):
    """Print the full test report in terminal or JSON format."""
    if json_output:
        _print_json(results, version=version, timestamp=timestamp)
    else:
        _print_terminal(results)


def print_section_header(section: str, count: int):
    """Print the banner that opens a section of ``count`` tests."""
    header, noun, _ = _SECTION_TITLES[section]
    print(f"\n\n-------------- {header} --------------")
    print(f"running {count} {noun}...", flush=True)


def print_case(result: CaseResult):
    """Print one test's ``[WARN]`` note (if any) and its ``[PASS]``/``[FAIL]`` line."""
    if result.warning:
        print(f"{_tag('WARN', 'yellow')} {result.warning}")
    if result.passed:
        print(f"{_tag('PASS', 'green')} {result.name}", flush=True)
    else:
        print(f"{_tag('FAIL', 'red')} {result.name}: {result.message}", flush=True)


def _print_terminal(results: List[CaseResult]):
    """Render results section by section, in the order the tests were defined."""
    for section in (SECTION_ACCESS, SECTION_GROUP):
        section_results = [r for r in results if r.section == section]
        print_section_header(section, len(section_results))
        for result in section_results:
            print_case(result)
    print_summary(results)


def print_summary(results: List[CaseResult]):
    """Print one pass/fail summary line per section."""
    for idx, section in enumerate((SECTION_ACCESS, SECTION_GROUP)):
        _, _, title = _SECTION_TITLES[section]
        failed = count_failures(results, section)
        lead = "\n\n" if idx == 0 else "\n"
        if failed:
            print(_colorize(f"{lead}{failed} {title} failed", "red"))
        else:
            print(_colorize(f"{lead}All {title} passed", "bold"))


def _print_json(
    results: List[CaseResult],
    version: str = "",
    timestamp: str = "",
):
    """Render results as structured JSON with summary counts."""
    summary: Dict[str, Any] = {"total": len(results)}
    for section in (SECTION_ACCESS, SECTION_GROUP):
        section_results = [r for r in results if r.section == section]
        failed = count_failures(results, section)
        summary[section] = {
            "total": len(section_results),
            "passed": len(section_results) - failed,
            "failed": failed,
        }
    summary["warnings"] = sum(1 for r in results if r.warning)

    output = {
        "access_sanity_version": version,
        "timestamp": timestamp,
        "summary": summary,
        "results": [r.to_dict() for r in results],
    }
    print(json.dumps(output, indent=2))
