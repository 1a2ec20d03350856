"""
Semantic inference for flattened SolisCloud leaves.

Maps the final segment of a flat path (e.g. ``p_ac1``, ``eToday``,
``inverterTemperature``) to a role tag and engineering unit.  Matching is a
case-insensitive substring/affix test over the leaf name only; the value is
never inspected.  Categories are tried in a fixed order and the first match
wins, so ``batteryPowerState`` resolves to a power role, not a text role.

CHANGELOG:
- 2026-10-19: Do not treat "timestamp" fields as currents (STORY-118)
- 2026-10-03: Recognise SolisCloud short prefixes (p_, e_, u_, i_) (STORY-105)
- 2026-10-02: Initial creation (STORY-105)

TODO:
- None
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Semantic:
    """Role and optional unit for a persisted point.

    Attributes:
        role: Role tag, e.g. ``"value.power"`` or ``"text"``.
        unit: Engineering unit, or ``None`` when the role has no unit.
    """

    role: str
    unit: str | None = None


def _is_power(k: str) -> bool:
    return "power" in k or k.endswith("pwr") or k.startswith("p_")


def _is_energy(k: str) -> bool:
    return (
        "energy" in k
        or "yield" in k
        or "generation" in k
        or "kwh" in k
        or k.startswith("e_")
    )


def _is_voltage(k: str) -> bool:
    return "volt" in k or k == "v" or k.endswith("_v") or k.startswith("u_")


def _is_current(k: str) -> bool:
    return (
        "current" in k
        or k == "a"
        or k.endswith("_a")
        or ("amp" in k and "stamp" not in k)
        or k.startswith("i_")
    )


def _is_frequency(k: str) -> bool:
    return "freq" in k or "hz" in k or k.startswith("fac")


def _is_temperature(k: str) -> bool:
    return "temp" in k


def _is_percent(k: str) -> bool:
    return (
        "soc" in k
        or "percent" in k
        or k.endswith("pec")
        or k.endswith("_pct")
    )


def _is_text(k: str) -> bool:
    return "status" in k or "state" in k or "mode" in k or "alarm" in k


def infer_semantic(leaf: str) -> Semantic:
    """Infer the role and unit for a path's final segment.

    Args:
        leaf: Final segment of a flat path (not the full path).

    Returns:
        The first matching :class:`Semantic`; ``Semantic("value")`` when
        nothing matches.  Never raises.
    """
    k = str(leaf).lower()

    if _is_power(k):
        if "kw" in k and "kwh" not in k:
            return Semantic("value.power", "kW")
        return Semantic("value.power", "W")
    if _is_energy(k):
        return Semantic("value.energy", "kWh")
    if _is_voltage(k):
        return Semantic("value.voltage", "V")
    if _is_current(k):
        return Semantic("value.current", "A")
    if _is_frequency(k):
        return Semantic("value.frequency", "Hz")
    if _is_temperature(k):
        return Semantic("value.temperature", "°C")
    if _is_percent(k):
        return Semantic("value.percent", "%")
    if _is_text(k):
        return Semantic("text")
    return Semantic("value")
