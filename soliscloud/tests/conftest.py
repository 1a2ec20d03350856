"""
Shared test fixtures for SolisCloud bridge tests.

Provides environment variable fixtures for SolisSettings configuration tests
and a settings factory for component tests.  All ``SOLIS_*`` env vars are
cleaned before each test to ensure isolation.

CHANGELOG:
- 2026-10-02: Initial creation (STORY-101)

TODO:
- None
"""

from __future__ import annotations

import os
from collections.abc import Callable

import pytest
from soliscloud.src.config import SolisSettings


@pytest.fixture(autouse=True)
def _clean_solis_env(monkeypatch: pytest.MonkeyPatch, tmp_path: str) -> None:
    """Remove all SOLIS_* env vars and isolate from .env files before each test.

    Changes working directory to tmp_path so no .env file is accidentally
    loaded by Pydantic BaseSettings.
    """
    for var in list(os.environ):
        if var.startswith("SOLIS_"):
            monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture()
def env_vars_full(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set a representative set of SOLIS_* environment variables.

    Returns the dict of env var names to values for assertion convenience.
    """
    env = {
        "SOLIS_API_ID": "1300386381676",
        "SOLIS_API_SECRET": "test-api-secret",
        "SOLIS_BASE_URL": "https://api.example.com:13333/",
        "SOLIS_POLL_INTERVAL_S": "120",
        "SOLIS_STATIC_INTERVAL_MIN": "60",
        "SOLIS_STATIC_JITTER_S": "30",
        "SOLIS_PAGE_SIZE": "50",
        "SOLIS_ARRAY_MODE": "json",
        "SOLIS_STATION_IDS": "1298491919448, 1298491919449,,",
        "SOLIS_INVERTER_SNS": "1031B0223110155",
        "SOLIS_ENABLE_EPM_DAY": "true",
        "SOLIS_CONTENT_TYPE_MODE": "plain",
        "SOLIS_BODY_SERIALIZATION": "plain",
        "SOLIS_RELOAD_CACHE_ON_START": "false",
        "SOLIS_STORE_PATH": "/tmp/test-soliscloud.db",
    }
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    return env


@pytest.fixture()
def env_vars_required_only(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set only the required environment variables (no optional ones)."""
    env = {
        "SOLIS_API_ID": "1300386381676",
        "SOLIS_API_SECRET": "test-api-secret",
    }
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    return env


@pytest.fixture()
def make_settings() -> Callable[..., SolisSettings]:
    """Return a factory building SolisSettings without touching the env."""

    def _make(**overrides: object) -> SolisSettings:
        values: dict[str, object] = {
            "api_id": "1300386381676",
            "api_secret": "test-api-secret",
            "base_url": "https://api.example.com",
            "static_jitter_s": 0,
        }
        values.update(overrides)
        return SolisSettings(**values)

    return _make
