"""Bespoke controls for a few well-known node types.

All of them are built from the same ``get``/``set`` primitives as the generic
endpoint view; none of them raise transport failures to the caller except
where a caller needs to show a scoped error.
"""

from __future__ import annotations

import logging
import math
import threading
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Sequence

from .client import TSWClient, endpoint_path
from .exceptions import ConflictError, TransportError, ValidationError
from .formatting import parse_iso_datetime
from .models import ApiEndpoint, ApiResponse

logger = logging.getLogger(__name__)

PUSH_BUTTON_CLASS = "PushButtonComponent"
IRREGULAR_LEVER_CLASS = "IrregularLeverComponent"
GENERIC_CONTROLS_MESSAGE = "No interactive controls available for this object class."
NO_WEATHER_ENDPOINTS_MESSAGE = "No writable endpoints found for weather controls."


class ControlKind(str, Enum):
    PUSH_BUTTON = "push_button"
    IRREGULAR_LEVER = "irregular_lever"
    WEATHER_MANAGER = "weather_manager"
    TIME_OF_DAY = "time_of_day"
    GENERIC = "generic"


def object_class_control(object_class: str | None) -> ControlKind | None:
    if object_class is None:
        return None
    if object_class == PUSH_BUTTON_CLASS:
        return ControlKind.PUSH_BUTTON
    if object_class == IRREGULAR_LEVER_CLASS:
        return ControlKind.IRREGULAR_LEVER
    return ControlKind.GENERIC


def shows_weather_controls(node_path: str | None, node_data: ApiResponse | None) -> bool:
    if not node_path or node_data is None:
        return False
    return "weathermanager" in node_path.lower() and bool(node_data.writable_endpoints())


def shows_time_of_day_controls(node_path: str | None, node_data: ApiResponse | None) -> bool:
    if not node_path or node_data is None:
        return False
    return "timeofday" in node_path.lower() and node_data.has_endpoint("Data")


def resolve_controls(
    node_path: str | None,
    node_data: ApiResponse | None,
    object_class: str | None,
) -> list[ControlKind]:
    controls: list[ControlKind] = []
    by_class = object_class_control(object_class)
    if by_class is not None:
        controls.append(by_class)
    if shows_weather_controls(node_path, node_data):
        controls.append(ControlKind.WEATHER_MANAGER)
    if shows_time_of_day_controls(node_path, node_data):
        controls.append(ControlKind.TIME_OF_DAY)
    return controls


def _numeric(response: ApiResponse, default: float) -> float:
    if not response.is_success:
        return default
    value = response.first_value()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    return default


# Push button


def press_button(client: TSWClient, node_path: str) -> bool:
    return _set_quietly(client, endpoint_path(node_path, "InputValue"), 1)


def release_button(client: TSWClient, node_path: str) -> bool:
    return _set_quietly(client, endpoint_path(node_path, "InputValue"), 0)


def _set_quietly(client: TSWClient, path: str, value: float) -> bool:
    try:
        response = client.set(path, value)
    except TransportError as exc:
        logger.warning("Transport failure setting %s=%s: %s", path, value, exc.message)
        return False
    if not response.is_success:
        logger.info("Remote rejected set %s=%s: %s", path, value, response.error or response.result)
        return False
    return True


# Irregular lever


@dataclass(slots=True)
class LeverState:
    minimum: float = 0.0
    maximum: float = 1.0
    current: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {"min": self.minimum, "max": self.maximum, "current": self.current}


def read_lever(client: TSWClient, node_path: str) -> LeverState | None:
    """Read the lever's range and position; None when the node is unreachable."""
    try:
        minimum = client.get(endpoint_path(node_path, "Function.GetMinimumInputValue"))
        maximum = client.get(endpoint_path(node_path, "Function.GetMaximumInputValue"))
        current = client.get(endpoint_path(node_path, "InputValue"))
    except TransportError as exc:
        logger.warning("Transport failure reading lever %s: %s", node_path, exc.message)
        return None

    return LeverState(
        minimum=_numeric(minimum, 0.0),
        maximum=_numeric(maximum, 1.0),
        current=_numeric(current, 0.0),
    )


def move_lever(client: TSWClient, node_path: str, value: float) -> bool:
    return _set_quietly(client, endpoint_path(node_path, "InputValue"), value)


def release_lever(client: TSWClient, node_path: str) -> float | None:
    """Re-read the position the simulation actually settled on."""
    path = endpoint_path(node_path, "InputValue")
    try:
        response = client.get(path)
    except TransportError as exc:
        logger.warning("Transport failure reading %s: %s", path, exc.message)
        return None
    value = response.first_value() if response.is_success else None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    return None


# Weather


@dataclass(frozen=True)
class WeatherPreset:
    name: str
    description: str
    icon: str
    values: dict[str, float]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _weather(temperature, cloudiness, precipitation, wetness, ground_snow, piled_snow, fog) -> dict[str, float]:
    return {
        "Temperature": temperature,
        "Cloudiness": cloudiness,
        "Precipitation": precipitation,
        "Wetness": wetness,
        "GroundSnow": ground_snow,
        "PiledSnow": piled_snow,
        "FogDensity": fog,
    }


WEATHER_PRESETS: tuple[WeatherPreset, ...] = (
    WeatherPreset("Reset Weather", "Reset to default weather conditions", "🔄", {"Reset": 1.0}),
    WeatherPreset("Clear Sunny", "Perfect sunny day with clear skies", "☀️", _weather(25.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0)),
    WeatherPreset("Partly Cloudy", "Mix of sun and clouds", "⛅", _weather(20.0, 0.4, 0.0, 0.1, 0.0, 0.0, 0.0)),
    WeatherPreset("Overcast", "Heavy cloud cover, no rain", "☁️", _weather(15.0, 0.9, 0.0, 0.2, 0.0, 0.0, 0.1)),
    WeatherPreset("Light Rain", "Gentle rainfall with moderate visibility", "🌦️", _weather(12.0, 0.8, 0.3, 0.6, 0.0, 0.0, 0.1)),
    WeatherPreset("Heavy Rain", "Strong rainfall with reduced visibility", "🌧️", _weather(8.0, 1.0, 0.8, 0.9, 0.0, 0.0, 0.2)),
    WeatherPreset("Foggy", "Dense fog with very low visibility", "🌫️", _weather(5.0, 0.7, 0.0, 0.4, 0.0, 0.0, 0.8)),
    WeatherPreset("Winter Snow", "Cold snowy conditions", "❄️", _weather(-2.0, 0.8, 0.4, 0.1, 0.7, 0.5, 0.0)),
    WeatherPreset("Blizzard", "Severe winter storm with heavy snow", "🌨️", _weather(-8.0, 1.0, 0.9, 0.0, 1.0, 0.9, 0.3)),
)


def find_preset(name: str) -> WeatherPreset:
    for preset in WEATHER_PRESETS:
        if preset.name == name:
            return preset
    raise ValidationError(f"Unknown weather preset: {name}")


def match_preset(preset: WeatherPreset, endpoints: Sequence[ApiEndpoint]) -> list[tuple[str, float]]:
    """Pair writable endpoints with preset values.

    An exact name wins; otherwise the first preset key (in preset order) that
    contains, or is contained in, the endpoint name, ignoring case.
    """
    matched: list[tuple[str, float]] = []
    for endpoint in endpoints:
        if not endpoint.writable:
            continue
        if endpoint.name in preset.values:
            matched.append((endpoint.name, preset.values[endpoint.name]))
            continue
        name = endpoint.name.lower()
        for key, value in preset.values.items():
            if key.lower() in name or name in key.lower():
                matched.append((endpoint.name, value))
                break
    return matched


@dataclass
class PresetResult:
    preset: str
    applied: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class WeatherPanel:
    """Applies weather presets to one weather manager node, one at a time."""

    def __init__(self, client: TSWClient, node_path: str, endpoints: Sequence[ApiEndpoint]) -> None:
        self.client = client
        self.node_path = node_path
        self.writable_endpoints = [endpoint for endpoint in endpoints if endpoint.writable]
        self.applying: str | None = None
        self._lock = threading.Lock()

    def apply(self, preset: WeatherPreset) -> PresetResult:
        if not self.writable_endpoints:
            raise ValidationError(NO_WEATHER_ENDPOINTS_MESSAGE)

        with self._lock:
            if self.applying is not None:
                raise ConflictError(f"Preset {self.applying} is still being applied")
            self.applying = preset.name

        result = PresetResult(preset=preset.name)
        try:
            for name, value in match_preset(preset, self.writable_endpoints):
                if _set_quietly(self.client, endpoint_path(self.node_path, name), value):
                    result.applied.append(name)
                else:
                    result.failed.append(name)
        finally:
            with self._lock:
                self.applying = None

        logger.info(
            "Applied weather preset %s to %s: %s set, %s failed",
            preset.name,
            self.node_path,
            len(result.applied),
            len(result.failed),
        )
        return result


# Time of day


def _js_round(value: float) -> int:
    return math.floor(value + 0.5)


def timezone_for(longitude: float, latitude: float) -> str:
    """Rough timezone estimate for a route origin."""
    if 49 <= latitude <= 55 and 5 <= longitude <= 15:
        return "Europe/Berlin"
    if 50 <= latitude <= 59 and -8 <= longitude <= 2:
        return "Europe/London"
    if 40 <= latitude <= 50 and -5 <= longitude <= 10:
        return "Europe/Paris"
    if 25 <= latitude <= 49 and -125 <= longitude <= -66:
        if longitude <= -120:
            return "America/Los_Angeles"
        if longitude <= -105:
            return "America/Denver"
        if longitude <= -90:
            return "America/Chicago"
        return "America/New_York"

    offset = _js_round(longitude / 15)
    if -12 <= offset <= 12:
        sign = "+" if offset <= 0 else "-"
        return f"Etc/GMT{sign}{abs(offset)}"
    return "UTC"


def _clock(iso_value: Any) -> str:
    if not isinstance(iso_value, str):
        return ""
    parsed = parse_iso_datetime(iso_value)
    return parsed.strftime("%H:%M:%S") if parsed is not None else ""


def _number(values: dict[str, Any], key: str) -> float:
    value = values.get(key)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    return 0.0


@dataclass(slots=True)
class TimeOfDay:
    local_time: str = ""
    local_time_iso: str = ""
    world_time: str = ""
    world_time_iso: str = ""
    system_time: str = ""
    system_time_iso: str = ""
    gmt_offset: float = 0.0
    day_percentage: float = 0.0
    sunrise_time: str = ""
    solar_noon_time: str = ""
    sunset_time: str = ""
    sun_azimuth: float = 0.0
    sun_altitude: float = 0.0
    moon_azimuth: float = 0.0
    moon_altitude: float = 0.0
    origin_latitude: float = 0.0
    origin_longitude: float = 0.0
    timezone: str = "UTC"
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_values(cls, values: dict[str, Any]) -> "TimeOfDay":
        latitude = _number(values, "OriginLatitude")
        longitude = _number(values, "OriginLongitude")
        local_iso = str(values.get("LocalTimeISO8601") or "")
        world_iso = str(values.get("WorldTimeISO8601") or "")
        system_iso = str(values.get("SystemTimeISO8601") or "")
        return cls(
            local_time=_clock(local_iso),
            local_time_iso=local_iso,
            world_time=_clock(world_iso),
            world_time_iso=world_iso,
            system_time=_clock(system_iso),
            system_time_iso=system_iso,
            gmt_offset=_number(values, "GMTOffset"),
            day_percentage=_number(values, "DayPercentage"),
            sunrise_time=str(values.get("SunriseTime") or ""),
            solar_noon_time=str(values.get("SolarNoonTime") or ""),
            sunset_time=str(values.get("SunsetTime") or ""),
            sun_azimuth=_number(values, "SunPositionAzimuth"),
            sun_altitude=_number(values, "SunPositionAltitude"),
            moon_azimuth=_number(values, "MoonPositionAzimuth"),
            moon_altitude=_number(values, "MoonPositionAltitude"),
            origin_latitude=latitude,
            origin_longitude=longitude,
            timezone=timezone_for(longitude, latitude),
        )


def read_time_of_day(client: TSWClient, node_path: str) -> TimeOfDay:
    path = endpoint_path(node_path, "Data")
    try:
        response = client.get(path)
    except TransportError as exc:
        logger.warning("Transport failure reading %s: %s", path, exc.message)
        return TimeOfDay(error=exc.message)

    if not response.is_success or response.values is None:
        message = response.message or response.error or "Failed to fetch time data"
        logger.info("Remote rejected get %s: %s", path, message)
        return TimeOfDay(error=message)

    return TimeOfDay.from_values(response.values)
