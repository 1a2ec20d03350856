"""
SolisCloud bridge entrypoint.

Wires the components together and runs until SIGTERM/SIGINT:

1. Load :class:`~soliscloud.src.config.SolisSettings` from the environment.
2. Open the SQLite point store, build the signed client, writer, device
   caches and poller.
3. ``on_ready``: mark ``info.connection`` and start both poll cycles.
4. Wait for the shutdown signal.
5. ``on_stop``: stop the poller (cancelling pending runs), let in-flight runs
   finish, clear ``info.connection`` and close the client and store.

Structured JSON logging is used for all events.

CHANGELOG:
- 2026-10-06: Add info.connection indicator and start/stop hooks (STORY-116)
- 2026-10-05: Initial creation, adapted from the edge daemon (STORY-116)

TODO:
- None
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import signal
import sys
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from pydantic import ValidationError

from soliscloud.src.models import PointDefinition

if TYPE_CHECKING:
    from soliscloud.src.client import SolisCloudClient
    from soliscloud.src.config import SolisSettings
    from soliscloud.src.scheduler import Poller
    from soliscloud.src.store import StateStore
    from soliscloud.src.timers import Timers

logger = logging.getLogger(__name__)

CONNECTION_PATH = "info.connection"


# ---------------------------------------------------------------------------
# Structured JSON logging setup
# ---------------------------------------------------------------------------


def configure_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging for the bridge.

    Sets up the root logger with a JSON-formatted handler writing to stderr.

    Args:
        level: Root log level name (e.g. ``"INFO"``, ``"DEBUG"``).
    """

    class _JsonFormatter(logging.Formatter):
        """Minimal JSON log formatter."""

        def format(self, record: logging.LogRecord) -> str:
            log_entry = {
                "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
                "level": record.levelname,
                "logger": record.name,
                "msg": record.getMessage(),
            }
            if record.exc_info and record.exc_info[1] is not None:
                log_entry["exception"] = self.formatException(record.exc_info)
            return json.dumps(log_entry)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_JsonFormatter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level.upper())
    # httpx logs every request at INFO; keep it out of the way
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _masked_token(value: str | None) -> str:
    """Return a short non-reversible token fingerprint for diagnostics."""
    if not value:
        return "empty"
    digest = hashlib.sha256(value.encode("utf-8")).hexdigest()[:10]
    return f"len={len(value)} sha256={digest}"


# ---------------------------------------------------------------------------
# Startup config logging
# ---------------------------------------------------------------------------


def log_config_summary(settings: SolisSettings) -> None:
    """Log a config summary at startup, excluding secrets.

    The API secret is only ever logged as a masked fingerprint.

    Args:
        settings: A SolisSettings instance (or any object with the same attrs).
    """
    toggles = sorted(
        name for name, value in settings.model_dump().items()
        if name.startswith("enable_") and value is True
    )
    logger.info(
        "SolisCloud bridge starting with config: "
        "base_url=%s, api_id=%s, poll_interval_s=%s, "
        "static_interval_min=%s, static_jitter_s=%s, page_size=%s, "
        "array_mode=%s, content_type_mode=%s, body_serialization=%s, "
        "reload_cache_on_start=%s, store_path=%s, enabled=%s, "
        "api_secret_masked=%s",
        settings.base_url,
        settings.api_id,
        settings.poll_interval_s,
        settings.static_interval_min,
        settings.static_jitter_s,
        settings.page_size,
        settings.array_mode,
        settings.content_type_mode,
        settings.body_serialization,
        settings.reload_cache_on_start,
        settings.store_path,
        ",".join(toggles),
        _masked_token(settings.api_secret),
    )


# ---------------------------------------------------------------------------
# Lifecycle hooks
# ---------------------------------------------------------------------------


async def set_connection(store: StateStore, connected: bool) -> None:
    """Create (once) and write the ``info.connection`` indicator."""
    await store.create_object_if_absent(
        CONNECTION_PATH,
        PointDefinition(
            path=CONNECTION_PATH,
            type="boolean",
            role="indicator.connected",
            name="Connection",
        ),
    )
    await store.set_value(CONNECTION_PATH, connected, ack=True)


async def on_ready(*, poller: Poller, store: StateStore) -> None:
    """Start hook: reset the connection indicator and start polling."""
    await set_connection(store, False)
    await poller.start()
    await set_connection(store, True)


async def on_stop(*, poller: Poller, store: StateStore, timers: Timers) -> None:
    """Stop hook: stop polling and let in-flight runs finish.

    Errors are logged rather than raised so shutdown always completes.
    """
    try:
        poller.stop()
        await timers.drain()
        await set_connection(store, False)
    except Exception:
        logger.error("Error during shutdown", exc_info=True)


async def run_until_shutdown(
    *,
    poller: Poller,
    store: StateStore,
    timers: Timers,
    shutdown_event: asyncio.Event,
) -> None:
    """Run the poller between the start and stop hooks until shutdown.

    Args:
        poller: The configured poller.
        store: Open point store.
        timers: The timers instance the poller schedules on.
        shutdown_event: Event that signals graceful shutdown.
    """
    await on_ready(poller=poller, store=store)
    await shutdown_event.wait()
    await on_stop(poller=poller, store=store, timers=timers)
    logger.info("Shutdown complete")


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


def build_client(settings: SolisSettings) -> SolisCloudClient:
    """Build the signed request client from settings."""
    from soliscloud.src.client import SolisCloudClient

    return SolisCloudClient(
        base_url=settings.base_url,
        api_id=settings.api_id,
        api_secret=settings.api_secret,
        timeout_s=settings.request_timeout_s,
        content_type_mode=settings.content_type_mode,
        serialization=settings.body_serialization,
        debug_signing=settings.debug_signing,
    )


async def async_main() -> None:
    """Async entrypoint: load config, build components, run until signalled.

    Sets up SIGTERM/SIGINT handlers to trigger graceful shutdown.
    """
    configure_logging()

    from soliscloud.src.cache import DeviceCache
    from soliscloud.src.config import SolisSettings
    from soliscloud.src.health import HealthWriter
    from soliscloud.src.scheduler import Poller
    from soliscloud.src.store import StateStore
    from soliscloud.src.timers import Timers
    from soliscloud.src.writer import StateWriter

    try:
        settings = SolisSettings()
    except ValidationError as exc:
        logger.error("Invalid configuration: %s", exc)
        raise SystemExit(2) from exc

    configure_logging(settings.log_level)
    log_config_summary(settings)

    shutdown_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(
            sig,
            lambda: _handle_signal(shutdown_event),
        )

    health = HealthWriter(settings.health_path) if settings.health_path else None
    timers = Timers()

    async with StateStore(settings.store_path) as store, build_client(settings) as client:
        poller = Poller(
            client=client,
            writer=StateWriter(store),
            cache=DeviceCache(store),
            settings=settings,
            timers=timers,
            health=health,
        )
        await run_until_shutdown(
            poller=poller,
            store=store,
            timers=timers,
            shutdown_event=shutdown_event,
        )


def _handle_signal(shutdown_event: asyncio.Event) -> None:
    """Handle SIGTERM/SIGINT by setting the shutdown event.

    Args:
        shutdown_event: The event to set for graceful shutdown.
    """
    logger.info("Received shutdown signal, initiating graceful shutdown")
    shutdown_event.set()


def main() -> None:
    """Synchronous entrypoint for the bridge."""
    asyncio.run(async_main())


if __name__ == "__main__":
    main()
