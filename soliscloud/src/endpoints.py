"""
SolisCloud endpoint catalog -- single source of truth for API paths.

Maps each logical operation name to the URL path that is POSTed to and used
verbatim as the canonical resource inside the request signature.  The
mapping is read-only; look paths up by name rather than hardcoding them.

CHANGELOG:
- 2026-10-04: Add periodic summary and ammeter endpoints (STORY-109)
- 2026-10-02: Initial creation (STORY-101)

TODO:
- None
"""

from __future__ import annotations

from types import MappingProxyType

ENDPOINTS: MappingProxyType[str, str] = MappingProxyType(
    {
        # Stations
        "userStationList": "/v1/api/userStationList",
        "stationDetail": "/v1/api/stationDetail",
        "stationDetailList": "/v1/api/stationDetailList",
        "stationDay": "/v1/api/stationDay",
        "stationMonth": "/v1/api/stationMonth",
        "stationYear": "/v1/api/stationYear",
        "stationAll": "/v1/api/stationAll",
        # Inverters
        "inverterList": "/v1/api/inverterList",
        "inverterDetail": "/v1/api/inverterDetail",
        "inverterDetailList": "/v1/api/inverterDetailList",
        "inverterDay": "/v1/api/inverterDay",
        "inverterMonth": "/v1/api/inverterMonth",
        "inverterYear": "/v1/api/inverterYear",
        # Power meters (EPM)
        "epmList": "/v1/api/epmList",
        "epmDetail": "/v1/api/epmDetail",
        "epmDay": "/v1/api/epm/day",
        "epmMonth": "/v1/api/epm/month",
        "epmYear": "/v1/api/epm/year",
        "epmAll": "/v1/api/epm/all",
        # Collectors (data loggers)
        "collectorList": "/v1/api/collectorList",
        "collectorDetail": "/v1/api/collectorDetail",
        "collectorDay": "/v1/api/collector/day",
        # Weather stations
        "weatherList": "/v1/api/weatherList",
        "weatherDetail": "/v1/api/weatherDetail",
        # Ammeters
        "ammeterList": "/v1/api/ammeterList",
        "ammeterDetail": "/v1/api/ammeterDetail",
        # Alarms
        "alarmList": "/v1/api/alarmList",
    }
)
"""Logical operation name -> API path (leading slash included)."""
