"""
Unit tests for the bridge entrypoint module.

Tests verify:
- configure_logging() emits one JSON object per record.
- Startup config summary masks the API secret.
- on_ready() starts the poller and raises info.connection.
- on_stop() stops the poller, drains in-flight runs and clears
  info.connection, even when stopping fails.
- run_until_shutdown() runs the hooks around the shutdown event.
- Invalid configuration exits with status 2.

CHANGELOG:
- 2026-10-06: Rewritten for the SolisCloud bridge lifecycle (STORY-116)

TODO:
- None
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable, Iterator
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from soliscloud.src.config import SolisSettings
from soliscloud.src.main import (
    CONNECTION_PATH,
    _handle_signal,
    _masked_token,
    async_main,
    build_client,
    configure_logging,
    log_config_summary,
    on_ready,
    on_stop,
    run_until_shutdown,
)
from soliscloud.src.store import StateStore


@pytest.fixture()
def _restore_root_logger() -> Iterator[None]:
    """Put the root logger back the way pytest configured it."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def _make_poller() -> MagicMock:
    poller = MagicMock()
    poller.start = AsyncMock()
    poller.stop = MagicMock()
    return poller


def _make_timers() -> MagicMock:
    timers = MagicMock()
    timers.drain = AsyncMock()
    return timers


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


@pytest.mark.usefixtures("_restore_root_logger")
class TestConfigureLogging:
    """configure_logging() installs the JSON formatter."""

    def test_emits_json_lines(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging("DEBUG")

        logging.getLogger("soliscloud.test").info("hello %s", "world")

        line = capsys.readouterr().err.strip().splitlines()[-1]
        entry = json.loads(line)
        assert entry["level"] == "INFO"
        assert entry["logger"] == "soliscloud.test"
        assert entry["msg"] == "hello world"
        assert "ts" in entry

    def test_exception_included(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging()

        try:
            raise ValueError("bad")
        except ValueError:
            logging.getLogger("soliscloud.test").error("failed", exc_info=True)

        entry = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert "ValueError: bad" in entry["exception"]

    def test_httpx_quieted(self) -> None:
        configure_logging("DEBUG")
        assert logging.getLogger("httpx").level == logging.WARNING


class TestConfigSummary:
    """Startup summary never includes the raw secret."""

    def test_secret_masked(
        self,
        make_settings: Callable[..., SolisSettings],
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        settings = make_settings(api_secret="very-secret-value", enable_epm_day=True)

        with caplog.at_level(logging.INFO, logger="soliscloud.src.main"):
            log_config_summary(settings)

        assert "very-secret-value" not in caplog.text
        assert _masked_token("very-secret-value") in caplog.text
        assert "enable_epm_day" in caplog.text
        assert "1300386381676" in caplog.text

    def test_masked_token_empty(self) -> None:
        assert _masked_token("") == "empty"
        assert _masked_token(None) == "empty"


# ---------------------------------------------------------------------------
# Lifecycle hooks
# ---------------------------------------------------------------------------


class TestLifecycleHooks:
    """on_ready/on_stop drive the poller and the connection indicator."""

    @pytest.mark.asyncio
    async def test_on_ready_sets_connection(self, tmp_path: Path) -> None:
        poller = _make_poller()
        async with StateStore(tmp_path / "points.db") as store:
            await on_ready(poller=poller, store=store)
            definition = await store.get_object(CONNECTION_PATH)
            state = await store.get_value(CONNECTION_PATH)

        poller.start.assert_awaited_once()
        assert definition is not None
        assert (definition.type, definition.role) == ("boolean", "indicator.connected")
        assert state is not None
        assert state.value is True
        assert state.ack is True

    @pytest.mark.asyncio
    async def test_on_stop_clears_connection(self, tmp_path: Path) -> None:
        poller = _make_poller()
        timers = _make_timers()
        async with StateStore(tmp_path / "points.db") as store:
            await on_ready(poller=poller, store=store)
            await on_stop(poller=poller, store=store, timers=timers)
            state = await store.get_value(CONNECTION_PATH)

        poller.stop.assert_called_once()
        timers.drain.assert_awaited_once()
        assert state is not None
        assert state.value is False

    @pytest.mark.asyncio
    async def test_on_stop_swallows_errors(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        poller = _make_poller()
        poller.stop.side_effect = RuntimeError("stuck")
        async with StateStore(tmp_path / "points.db") as store:
            with caplog.at_level(logging.ERROR, logger="soliscloud.src.main"):
                await on_stop(poller=poller, store=store, timers=_make_timers())

        assert "Error during shutdown" in caplog.text

    @pytest.mark.asyncio
    async def test_run_until_shutdown(self, tmp_path: Path) -> None:
        poller = _make_poller()
        timers = _make_timers()
        shutdown_event = asyncio.Event()
        async with StateStore(tmp_path / "points.db") as store:
            task = asyncio.create_task(
                run_until_shutdown(
                    poller=poller, store=store, timers=timers, shutdown_event=shutdown_event
                )
            )
            await asyncio.sleep(0.05)
            poller.start.assert_awaited_once()
            poller.stop.assert_not_called()

            _handle_signal(shutdown_event)
            await asyncio.wait_for(task, timeout=2.0)
            state = await store.get_value(CONNECTION_PATH)

        poller.stop.assert_called_once()
        assert state is not None
        assert state.value is False


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


class TestEntrypoint:
    def test_build_client_uses_settings(self, make_settings: Callable[..., SolisSettings]) -> None:
        settings = make_settings(content_type_mode="plain", request_timeout_s=5.0)

        client = build_client(settings)

        assert client._base_url == "https://api.example.com"
        assert client._content_type_mode == "plain"
        assert client._timeout_s == 5.0

    @pytest.mark.usefixtures("_restore_root_logger")
    @pytest.mark.asyncio
    async def test_invalid_config_exits_with_2(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            await async_main()

        assert exc_info.value.code == 2
