"""access-sanity: CLI for checking expected access outcomes against a live access platform.

Runs declarative access tests (``auto-approved`` / ``requires-approval`` /
``no-access``) and group membership tests from a YAML file, and offers two
single-shot diagnostics: an entitlement debug call and a group membership check.
"""

__version__ = "0.1.0"
