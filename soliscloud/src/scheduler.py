"""
Dual-cadence SolisCloud poller.

Runs two independent, self-rescheduling cycles:

1. **Realtime cycle**: reads the device id caches (never live listings),
   applies the allow-lists and fetches today's series for every selected
   station, inverter, power meter and collector plus the alarm list.
2. **Static cycle**: re-lists every device class through the pagination
   aggregator, refreshes the device id caches and fetches details and
   month/year/lifetime summaries behind per-feature toggles.

Each cycle reschedules itself only after it finishes (success or failure),
so a slow poll pushes the next run back instead of overlapping it.  An
exception in one run is logged and never stops either cycle.

Every response is flattened and written through the state writer under a
series prefix such as ``stations.<id>.day.<YYYY-MM-DD>``.

CHANGELOG:
- 2026-10-19: Tag the alarm listing, sanitize ids in series prefixes, stop caching after stop() (STORY-118)
- 2026-10-06: Reload device caches on start (STORY-113)
- 2026-10-05: Initial creation, replacing the Modbus poller (STORY-114)

TODO:
- None
"""

from __future__ import annotations

import logging
import random
from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING, Any

from soliscloud.src.endpoints import ENDPOINTS
from soliscloud.src.flatten import flatten, sanitize_key, to_json_text
from soliscloud.src.paging import PageAggregator, extract_records

if TYPE_CHECKING:
    import asyncio

    from soliscloud.src.cache import DeviceCache
    from soliscloud.src.client import SolisCloudClient
    from soliscloud.src.config import SolisSettings
    from soliscloud.src.health import HealthWriter
    from soliscloud.src.timers import Timers
    from soliscloud.src.writer import StateWriter

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

MIN_REALTIME_INTERVAL_S: int = 30
"""Floor for the realtime cycle delay in seconds."""

MIN_STATIC_INTERVAL_MIN: int = 10
"""Floor for the static cycle delay in minutes."""


# ---------------------------------------------------------------------------
# Delay policy
# ---------------------------------------------------------------------------


def realtime_delay_s(poll_interval_s: float) -> float:
    """Return the realtime cycle delay: ``max(30, poll_interval_s)``."""
    return float(max(MIN_REALTIME_INTERVAL_S, poll_interval_s))


def static_delay_s(
    interval_min: float,
    jitter_s: float,
    rng: random.Random | None = None,
) -> float:
    """Return the static cycle delay with fresh jitter.

    ``max(10 min, interval_min) + uniform(0, jitter_s)``, in seconds.
    """
    jitter = (rng or random).uniform(0, jitter_s) if jitter_s > 0 else 0.0
    return max(MIN_STATIC_INTERVAL_MIN, interval_min) * 60.0 + jitter


# ---------------------------------------------------------------------------
# Id extraction
# ---------------------------------------------------------------------------


def _extract_ids(payload: Any, keys: tuple[str, ...]) -> list[str]:
    ids: list[str] = []
    for record in extract_records(payload):
        if not isinstance(record, dict):
            continue
        value = next((record[k] for k in keys if record.get(k) not in (None, "")), None)
        if value is not None:
            ids.append(str(value))
    return ids


def extract_station_ids(payload: Any) -> list[str]:
    """Return station ids (``id``, else ``stationId``) from a station listing."""
    return _extract_ids(payload, ("id", "stationId"))


def extract_device_sns(payload: Any) -> list[str]:
    """Return serial numbers (``sn``, else ``serialNum``) from a device listing."""
    return _extract_ids(payload, ("sn", "serialNum"))


# ---------------------------------------------------------------------------
# Poller
# ---------------------------------------------------------------------------


class Poller:
    """Owns the realtime and static cycles and their reschedule policy.

    Args:
        client: Signed request client.
        writer: State writer that persists flattened responses.
        cache: Device id caches shared between the two cycles.
        settings: Immutable bridge settings.
        timers: Delayed-execution helper used for rescheduling.
        aggregator: Pagination aggregator; built from *client* when omitted,
            persisting every listing's first page under its tag.
        health: Optional health file writer.
        now: Clock returning local time; used for date-stamped prefixes.
        rng: Random source for static-cycle jitter.
    """

    def __init__(
        self,
        *,
        client: SolisCloudClient,
        writer: StateWriter,
        cache: DeviceCache,
        settings: SolisSettings,
        timers: Timers,
        aggregator: PageAggregator | None = None,
        health: HealthWriter | None = None,
        now: Callable[[], datetime] = datetime.now,
        rng: random.Random | None = None,
    ) -> None:
        self._client = client
        self._writer = writer
        self._cache = cache
        self._settings = settings
        self._timers = timers
        self._aggregator = aggregator or PageAggregator(client, on_first_page=self.store)
        self._health = health
        self._now = now
        self._rng = rng or random.Random()
        self._realtime_handle: asyncio.TimerHandle | None = None
        self._static_handle: asyncio.TimerHandle | None = None
        self._stopped = True
        self._stop_requested = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def running(self) -> bool:
        """``True`` between :meth:`start` and :meth:`stop`."""
        return not self._stopped

    async def start(self) -> None:
        """Reload the device caches (if configured) and kick off both cycles."""
        if self._settings.reload_cache_on_start:
            await self._cache.load()
        self._stopped = False
        self._stop_requested = False
        self._realtime_handle = self._timers.schedule_after(0, self._run_realtime)
        self._static_handle = self._timers.schedule_after(0, self._run_static)
        logger.info("Poller started")

    def stop(self) -> None:
        """Cancel both pending runs and clear the in-memory device caches.

        A run that is already in flight finishes, but does not reschedule and
        does not repopulate the caches.
        """
        self._stopped = True
        self._stop_requested = True
        self._timers.cancel(self._realtime_handle)
        self._timers.cancel(self._static_handle)
        self._realtime_handle = None
        self._static_handle = None
        self._cache.clear()
        logger.info("Poller stopped")

    # ------------------------------------------------------------------
    # Self-rescheduling runners
    # ------------------------------------------------------------------

    async def _run_realtime(self) -> None:
        try:
            await self.poll_realtime()
            self._record_success("realtime")
        except Exception as exc:
            logger.warning("Realtime poll failed: %s", exc, exc_info=True)
            self._record_failure("realtime", exc)
        finally:
            if not self._stopped:
                delay = realtime_delay_s(self._settings.poll_interval_s)
                self._realtime_handle = self._timers.schedule_after(delay, self._run_realtime)
                logger.debug("Next realtime poll in %.0fs", delay)

    async def _run_static(self) -> None:
        try:
            await self.poll_static()
            self._record_success("static")
        except Exception as exc:
            logger.warning("Static poll failed: %s", exc, exc_info=True)
            self._record_failure("static", exc)
        finally:
            if not self._stopped:
                delay = static_delay_s(
                    self._settings.static_interval_min,
                    self._settings.static_jitter_s,
                    self._rng,
                )
                self._static_handle = self._timers.schedule_after(delay, self._run_static)
                logger.debug("Next static poll in %.0fs", delay)

    def _record_success(self, cycle: str) -> None:
        if self._health is None:
            return
        try:
            self._health.record_cycle(cycle)
            self._health.set_device_counts(self._cache.sizes())
        except OSError:
            logger.warning("Failed to write health file", exc_info=True)

    def _record_failure(self, cycle: str, exc: BaseException) -> None:
        if self._health is None:
            return
        try:
            self._health.record_error(cycle, exc)
        except OSError:
            logger.warning("Failed to write health file", exc_info=True)

    # ------------------------------------------------------------------
    # Cycles
    # ------------------------------------------------------------------

    async def poll_realtime(self) -> None:
        """Fetch today's series for every cached (and allowed) device."""
        cfg = self._settings
        today = self._now().strftime("%Y-%m-%d")
        tz = cfg.time_zone or None

        if cfg.enable_station_day:
            for station_id in self._selected("stations"):
                res = await self._client.send(
                    ENDPOINTS["stationDay"],
                    {"id": station_id, "money": cfg.money, "time": today, "timeZone": tz},
                )
                await self.store(f"stations.{sanitize_key(station_id)}.day.{today}", res)

        if cfg.enable_inverter_day:
            for sn in self._selected("inverters"):
                res = await self._client.send(
                    ENDPOINTS["inverterDay"],
                    {"sn": sn, "money": cfg.money, "time": today, "timeZone": tz},
                )
                await self.store(f"inverters.{sanitize_key(sn)}.day.{today}", res)

        if cfg.enable_epm_day:
            for sn in self._selected("epms"):
                res = await self._client.send(
                    ENDPOINTS["epmDay"],
                    {"sn": sn, "searchinfo": cfg.epm_search_info, "time": today, "timeZone": tz},
                )
                await self.store(f"epm.{sanitize_key(sn)}.day.{today}", res)

        if cfg.enable_collector_day:
            for sn in self._selected("collectors"):
                res = await self._client.send(
                    ENDPOINTS["collectorDay"],
                    {"sn": sn, "time": today, "timeZone": tz},
                )
                await self.store(f"collectors.{sanitize_key(sn)}.day.{today}", res)

        if cfg.enable_alarm_list:
            alarms = await self._aggregator.fetch_all(
                ENDPOINTS["alarmList"], self._list_body(), "alarms.list"
            )
            await self.store("alarms.list", alarms)

    async def poll_static(self) -> None:
        """Re-list every device class, refresh caches, fetch metadata."""
        cfg = self._settings
        now = self._now()
        month = now.strftime("%Y-%m")
        year = now.strftime("%Y")
        tz = cfg.time_zone or None

        # --- Stations ---
        station_list = await self._aggregator.fetch_all(
            ENDPOINTS["userStationList"], self._list_body(), "meta.stationList"
        )
        await self._update_cache("stations", extract_station_ids(station_list))
        stations = self._selected("stations")

        if cfg.enable_station_detail_list:
            detail_list = await self._aggregator.fetch_all(
                ENDPOINTS["stationDetailList"], self._list_body(), "meta.stationDetailList"
            )
            await self.store("meta.stationDetailList", detail_list)

        for station_id in stations:
            if cfg.enable_station_detail:
                res = await self._client.send(ENDPOINTS["stationDetail"], {"id": station_id})
                await self.store(f"stations.{sanitize_key(station_id)}.detail", res)
            if cfg.enable_station_month:
                res = await self._client.send(
                    ENDPOINTS["stationMonth"],
                    {"id": station_id, "money": cfg.money, "month": month, "timeZone": tz},
                )
                await self.store(f"stations.{sanitize_key(station_id)}.month.{month}", res)
            if cfg.enable_station_year:
                res = await self._client.send(
                    ENDPOINTS["stationYear"],
                    {"id": station_id, "money": cfg.money, "year": year, "timeZone": tz},
                )
                await self.store(f"stations.{sanitize_key(station_id)}.year.{year}", res)
            if cfg.enable_station_all:
                res = await self._client.send(
                    ENDPOINTS["stationAll"],
                    {"id": station_id, "money": cfg.money, "timeZone": tz},
                )
                await self.store(f"stations.{sanitize_key(station_id)}.all", res)

        # --- Inverters ---
        if cfg.enable_inverter_list:
            await self._refresh_devices("inverters", "inverterList", "meta.inverterList")

            if cfg.enable_inverter_detail_list:
                detail_list = await self._aggregator.fetch_all(
                    ENDPOINTS["inverterDetailList"], self._list_body(), "meta.inverterDetailList"
                )
                await self.store("meta.inverterDetailList", detail_list)

            for sn in self._selected("inverters"):
                if cfg.enable_inverter_detail:
                    res = await self._client.send(ENDPOINTS["inverterDetail"], {"sn": sn})
                    await self.store(f"inverters.{sanitize_key(sn)}.detail", res)
                if cfg.enable_inverter_month:
                    res = await self._client.send(
                        ENDPOINTS["inverterMonth"],
                        {"sn": sn, "money": cfg.money, "month": month, "timeZone": tz},
                    )
                    await self.store(f"inverters.{sanitize_key(sn)}.month.{month}", res)
                if cfg.enable_inverter_year:
                    res = await self._client.send(
                        ENDPOINTS["inverterYear"],
                        {"sn": sn, "money": cfg.money, "year": year, "timeZone": tz},
                    )
                    await self.store(f"inverters.{sanitize_key(sn)}.year.{year}", res)

        # --- Collectors ---
        if cfg.enable_collector_list:
            await self._refresh_devices("collectors", "collectorList", "meta.collectorList")
            if cfg.enable_collector_detail:
                for sn in self._selected("collectors"):
                    res = await self._client.send(ENDPOINTS["collectorDetail"], {"sn": sn})
                    await self.store(f"collectors.{sanitize_key(sn)}.detail", res)

        # --- Power meters (EPM) ---
        if cfg.enable_epm_list:
            await self._refresh_devices("epms", "epmList", "meta.epmList")
            for sn in self._selected("epms"):
                if cfg.enable_epm_detail:
                    res = await self._client.send(ENDPOINTS["epmDetail"], {"sn": sn})
                    await self.store(f"epm.{sanitize_key(sn)}.detail", res)
                if cfg.enable_epm_month:
                    res = await self._client.send(ENDPOINTS["epmMonth"], {"sn": sn, "month": month})
                    await self.store(f"epm.{sanitize_key(sn)}.month.{month}", res)
                if cfg.enable_epm_year:
                    res = await self._client.send(ENDPOINTS["epmYear"], {"sn": sn, "year": year})
                    await self.store(f"epm.{sanitize_key(sn)}.year.{year}", res)
                if cfg.enable_epm_all:
                    res = await self._client.send(ENDPOINTS["epmAll"], {"sn": sn})
                    await self.store(f"epm.{sanitize_key(sn)}.all", res)

        # --- Weather stations ---
        if cfg.enable_weather_list:
            await self._refresh_devices("weather", "weatherList", "meta.weatherList")
            if cfg.enable_weather_detail:
                for sn in self._selected("weather"):
                    res = await self._client.send(ENDPOINTS["weatherDetail"], {"sn": sn})
                    await self.store(f"weather.{sanitize_key(sn)}.detail", res)

        # --- Ammeters ---
        if cfg.enable_ammeter_list:
            await self._refresh_devices("ammeters", "ammeterList", "meta.ammeterList")
            if cfg.enable_ammeter_detail:
                for sn in self._selected("ammeters"):
                    res = await self._client.send(ENDPOINTS["ammeterDetail"], {"sn": sn})
                    await self.store(f"ammeters.{sanitize_key(sn)}.detail", res)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def store(self, prefix: str, payload: Any) -> None:
        """Flatten *payload* and write it under *prefix*."""
        cfg = self._settings
        if cfg.log_raw_responses:
            logger.debug("%s: %s", prefix, to_json_text(payload))
        flat = flatten(payload, array_mode=cfg.array_mode, max_depth=cfg.max_flatten_depth)
        await self._writer.write_flat(prefix, flat)

    async def _refresh_devices(self, device_class: str, endpoint: str, tag: str) -> None:
        listing = await self._aggregator.fetch_all(ENDPOINTS[endpoint], self._list_body(), tag)
        await self._update_cache(device_class, extract_device_sns(listing))

    async def _update_cache(self, device_class: str, ids: list[str]) -> None:
        if self._stop_requested:
            logger.debug("Poller stopped, not caching %d %s ids", len(ids), device_class)
            return
        await self._cache.update(device_class, ids)

    def _selected(self, device_class: str) -> list[str]:
        ids = self._cache.get(device_class)
        allowed = self._settings.allow_list(device_class)
        if not allowed:
            return ids
        return [i for i in ids if i in allowed]

    def _list_body(self) -> dict[str, Any]:
        return {"pageNo": 1, "pageSize": self._settings.page_size}
