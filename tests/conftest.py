"""Pytest configuration for issuevault tests.

Ensures the in-repo `src` directory is on `sys.path` so the package can be
imported without an editable install (`pip install -e .`).
"""

from __future__ import annotations

import sys
import time
from pathlib import Path

import pytest

_TEST_START_TIMES: dict[str, float] = {}
_TEST_DURATIONS: list[tuple[str, float]] = []

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

# Ensure pytest-asyncio plugin is loaded explicitly so @pytest.mark.asyncio tests run
pytest_plugins = ["pytest_asyncio"]

TOKEN_VARS = ("ISSUEVAULT_TOKEN", "GITHUB_TOKEN", "GH_TOKEN")


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Hide real credentials and env overrides from every test.

    Each variable is set then deleted so monkeypatch also removes values a
    test loads later (e.g. from a .env file).
    """
    for var in (*TOKEN_VARS, "ISSUEVAULT_RETRY_ATTEMPTS", "ISSUEVAULT_RETRY_BASE", "ISSUEVAULT_QUIET"):
        monkeypatch.setenv(var, "")
        monkeypatch.delenv(var)
    # the global logger binds sys.stderr when built; rebuild it per test
    from issuevault import logging as vault_logging

    monkeypatch.setattr(vault_logging, "_GLOBAL", None)


@pytest.fixture
def no_sleep(monkeypatch: pytest.MonkeyPatch) -> list[float]:
    """Record retry back-off delays instead of sleeping."""
    from issuevault import retry

    sleeps: list[float] = []
    monkeypatch.setattr(retry.time, "sleep", lambda s: sleeps.append(s))
    return sleeps


# --- Timing utilities to help identify slow/stalling tests ---


def pytest_runtest_setup(item):  # type: ignore
    _TEST_START_TIMES[item.nodeid] = time.perf_counter()


def pytest_runtest_teardown(item):  # type: ignore
    start = _TEST_START_TIMES.pop(item.nodeid, None)
    if start is not None:
        _TEST_DURATIONS.append((item.nodeid, time.perf_counter() - start))


def pytest_sessionfinish(session, exitstatus):  # type: ignore
    if not _TEST_DURATIONS:
        return
    slow = sorted(_TEST_DURATIONS, key=lambda x: x[1], reverse=True)[:10]
    print("\n=== Slowest Tests (top 10) ===")
    for nodeid, secs in slow:
        print(f"{secs:0.3f}s  {nodeid}")
