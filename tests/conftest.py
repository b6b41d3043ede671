"""
Pytest fixtures for deferred-expr tests.

Expressions are meant to be handed to generic algorithms; the helpers here
play that role so tests read like the call sites they model.
"""

from functools import cmp_to_key

import pytest

from deferred_expr.config import ENV_PREFIX, reset_settings


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    """Run every test with default settings and no environment overrides."""
    for name in ("MAX_PLACEHOLDERS", "CONSTANT_COPY"):
        monkeypatch.delenv(f"{ENV_PREFIX}{name}", raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def for_each():
    """Call fn once per item, discarding results."""

    def run(items, fn):
        for item in items:
            fn(item)
        return fn

    return run


@pytest.fixture
def transform():
    """Apply a binary fn element-wise over two sequences."""

    def run(first, second, fn):
        return [fn(a, b) for a, b in zip(first, second)]

    return run


@pytest.fixture
def sort_with():
    """Sort with a strict weak ordering comparator (less-than style)."""

    def run(values, less):
        def compare(a, b):
            if less(a, b):
                return -1
            if less(b, a):
                return 1
            return 0

        return sorted(values, key=cmp_to_key(compare))

    return run


@pytest.fixture
def call_log():
    """Record evaluation order of side-effecting sub-expressions."""
    log = []

    def note(tag):
        log.append(tag)
        return tag

    note.log = log
    return note
