"""Tests for all_pages()."""

import pytest

from access_sanity.errors import AccessSanityError
from access_sanity.pagination import all_pages


def _pages(*pages):
    """Build a fetch function serving ``pages`` keyed by their index as a token."""
    seen = []

    def fetch(token):
        seen.append(token)
        idx = int(token) if token else 0
        next_token = str(idx + 1) if idx + 1 < len(pages) else ""
        return list(pages[idx]), next_token

    return fetch, seen


def test_single_page():
    fetch, seen = _pages([1, 2, 3])
    assert all_pages(fetch) == [1, 2, 3]
    assert seen == [None]


def test_follows_tokens_in_order():
    fetch, seen = _pages([1, 2], [3, 4], [5])
    assert all_pages(fetch) == [1, 2, 3, 4, 5]
    assert seen == [None, "1", "2"]


def test_empty_page_with_token_continues():
    fetch, _ = _pages([], [1])
    assert all_pages(fetch) == [1]


def test_none_token_ends():
    assert all_pages(lambda token: (["only"], None)) == ["only"]


def test_errors_propagate():
    def fetch(token):
        raise ValueError("boom")

    with pytest.raises(ValueError, match="boom"):
        all_pages(fetch)


def test_endless_pagination_is_stopped(monkeypatch):
    monkeypatch.setattr("access_sanity.pagination.MAX_PAGES", 5)
    with pytest.raises(AccessSanityError, match="did not finish"):
        all_pages(lambda token: ([1], "same"))
