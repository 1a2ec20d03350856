"""
Bridge configuration loaded from environment variables.

Uses Pydantic BaseSettings for automatic env var loading and validation.
Every variable is prefixed with ``SOLIS_`` (e.g. ``SOLIS_API_ID``) and may
also come from a ``.env`` file; no credentials are hardcoded.

The settings object is built once at startup and handed to each component;
nothing reads configuration from global state afterwards.

CHANGELOG:
- 2026-10-06: Add cache reload and body serialization options (STORY-113)
- 2026-10-05: Add content-type negotiation mode (STORY-107)
- 2026-10-02: Initial creation, adapted from the edge settings (STORY-101)

TODO:
- None
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from soliscloud.src.client import ContentTypeMode
from soliscloud.src.signing import BodySerialization

AllowList = Annotated[list[str], NoDecode]

DEFAULT_EPM_SEARCH_INFO = (
    "u_ac1,u_ac2,u_ac3,i_ac1,i_ac2,i_ac3,p_ac1,p_ac2,p_ac3,power_factor,"
    "fac_meter,p_load,e_total_inverter,e_total_load,e_total_buy,e_total_sell"
)


class SolisSettings(BaseSettings):
    """SolisCloud bridge configuration.

    Attributes:
        api_id: SolisCloud API key id.
        api_secret: SolisCloud API key secret.
        base_url: API base URL (http or https).
        request_timeout_s: Per-request timeout in seconds.
        poll_interval_s: Realtime cycle interval; the poller never runs it
            more often than every 30 s.
        static_interval_min: Static cycle interval; floored to 10 minutes.
        static_jitter_s: Upper bound of the random delay added to every
            static cycle.
        page_size: Page size for list endpoints (SolisCloud maximum 100).
        array_mode: ``index`` expands arrays per element, ``json`` stores
            them as JSON text.
        max_flatten_depth: Depth at which nested data is stored as JSON text.
        time_zone: Time zone offset sent with day/month/year requests.
        money: Currency code sent with station/inverter summaries.
        epm_search_info: Field list requested from the EPM day endpoint.
        station_ids .. ammeter_sns: Comma-separated allow-lists; empty means
            every discovered device.
        enable_*: Per-category feature toggles.
        log_raw_responses: Log every raw response at DEBUG level.
        debug_signing: Log signing inputs (never the secret) at DEBUG level.
        content_type_mode: ``auto``, ``charset`` or ``plain``.
        body_serialization: ``sorted`` or ``plain`` key order when signing.
        reload_cache_on_start: Reload device id caches from the store at
            startup instead of waiting for the first static cycle.
        store_path: SQLite point store path.
        health_path: Health JSON file path (empty to disable).
        log_level: Root log level.
    """

    model_config = SettingsConfigDict(
        env_prefix="SOLIS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    api_id: str
    api_secret: str
    base_url: str = "https://www.soliscloud.com:13333"
    request_timeout_s: float = 20.0

    poll_interval_s: int = 300
    static_interval_min: int = 360
    static_jitter_s: int = 15
    page_size: int = 100

    array_mode: Literal["index", "json"] = "index"
    max_flatten_depth: int = 12

    time_zone: int | None = None
    money: str = ""
    epm_search_info: str = DEFAULT_EPM_SEARCH_INFO

    station_ids: AllowList = []
    inverter_sns: AllowList = []
    epm_sns: AllowList = []
    collector_sns: AllowList = []
    weather_sns: AllowList = []
    ammeter_sns: AllowList = []

    # Realtime cycle
    enable_station_day: bool = True
    enable_inverter_day: bool = True
    enable_epm_day: bool = False
    enable_collector_day: bool = False
    enable_alarm_list: bool = True

    # Static cycle
    enable_station_detail: bool = True
    enable_station_detail_list: bool = False
    enable_station_month: bool = False
    enable_station_year: bool = False
    enable_station_all: bool = False
    enable_inverter_list: bool = True
    enable_inverter_detail: bool = True
    enable_inverter_detail_list: bool = False
    enable_inverter_month: bool = False
    enable_inverter_year: bool = False
    enable_epm_list: bool = False
    enable_epm_detail: bool = False
    enable_epm_month: bool = False
    enable_epm_year: bool = False
    enable_epm_all: bool = False
    enable_collector_list: bool = False
    enable_collector_detail: bool = False
    enable_weather_list: bool = False
    enable_weather_detail: bool = False
    enable_ammeter_list: bool = False
    enable_ammeter_detail: bool = False

    log_raw_responses: bool = False
    debug_signing: bool = False
    content_type_mode: ContentTypeMode = ContentTypeMode.AUTO
    body_serialization: BodySerialization = BodySerialization.SORTED
    reload_cache_on_start: bool = True

    store_path: str = "/data/soliscloud.db"
    health_path: str = "/data/health.json"
    log_level: str = "INFO"

    @field_validator(
        "station_ids",
        "inverter_sns",
        "epm_sns",
        "collector_sns",
        "weather_sns",
        "ammeter_sns",
        mode="before",
    )
    @classmethod
    def split_allow_list(cls, v: object) -> object:
        """Accept a comma-separated string and drop blank entries."""
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @field_validator("api_id", "api_secret")
    @classmethod
    def credentials_must_not_be_blank(cls, v: str) -> str:
        """Reject whitespace-only credentials."""
        v = v.strip()
        if not v:
            raise ValueError("SOLIS_API_ID and SOLIS_API_SECRET must not be empty")
        return v

    @field_validator("base_url")
    @classmethod
    def base_url_must_be_http(cls, v: str) -> str:
        """Validate that the base URL is an http(s) URL and strip trailing slashes."""
        if not v.lower().startswith(("https://", "http://")):
            raise ValueError(f"SOLIS_BASE_URL must start with https:// (got: '{v[:20]}...')")
        return v.rstrip("/")

    @field_validator("poll_interval_s", "static_interval_min")
    @classmethod
    def interval_must_be_positive(cls, v: int) -> int:
        """Intervals must be >= 1; the poller applies its own floors."""
        if v < 1:
            raise ValueError("Poll intervals must be >= 1")
        return v

    @field_validator("static_jitter_s")
    @classmethod
    def jitter_must_be_non_negative(cls, v: int) -> int:
        """Validate jitter is non-negative."""
        if v < 0:
            raise ValueError("SOLIS_STATIC_JITTER_S must be >= 0")
        return v

    @field_validator("page_size")
    @classmethod
    def page_size_must_be_valid(cls, v: int) -> int:
        """Validate page size is between 1 and 100."""
        if v < 1 or v > 100:
            raise ValueError("SOLIS_PAGE_SIZE must be >= 1 and <= 100")
        return v

    @field_validator("max_flatten_depth")
    @classmethod
    def max_depth_must_be_positive(cls, v: int) -> int:
        """Validate flatten depth is at least 1."""
        if v < 1:
            raise ValueError("SOLIS_MAX_FLATTEN_DEPTH must be >= 1")
        return v

    def allow_list(self, device_class: str) -> list[str]:
        """Return the allow-list for a device cache class name."""
        return {
            "stations": self.station_ids,
            "inverters": self.inverter_sns,
            "epms": self.epm_sns,
            "collectors": self.collector_sns,
            "weather": self.weather_sns,
            "ammeters": self.ammeter_sns,
        }[device_class]
