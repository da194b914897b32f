"""Map session configuration loaded from environment variables.

All configuration values have sensible defaults matching the behaviour of
the map surface (500 ms debounce, reordering capped at 10 points, zoom 15
on recentre).

Fail-fast validation:
    Every construction path, ``from_env()`` or a direct ``MapConfig(...)``,
    raises ``ConfigValidationError`` if any numeric value is out of its
    valid range.  Bad configuration surfaces when the session is
    constructed rather than on the first pan.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from geosync.core.constants import DEFAULT_API_BASE_URL
from geosync.core.exceptions import PermanentError


class ConfigValidationError(PermanentError):
    """Raised when configuration values are out of valid range.

    Attributes:
        key: The configuration key that failed validation.
        value: The invalid value.
        message: Human-readable description of the valid range.
    """

    default_stage = "config"
    default_code = "CONFIG_VALIDATION_FAILED"

    def __init__(self, key: str, value: object, message: str) -> None:
        self.key = key
        self.value = value
        super().__init__(f"Invalid configuration {key}={value!r}: {message}")


@dataclass(frozen=True, slots=True)
class MapConfig:
    """Immutable map session configuration.

    Loaded once per map session and threaded through the scheduler,
    the HTTP source and the location tracker.

    Attributes:
        api_base_url: Base URL of the backend REST API.
        api_token: Optional bearer token sent with every request.
        http_timeout_s: Per-request timeout enforced by the HTTP client.
        debounce_s: Quiet period before a viewport change triggers a fetch.
        enable_poi_loading: Whether the POI lane follows the viewport.
        enable_route_loading: Whether the route lane follows the viewport.
        reorder_max_points: Largest waypoint-only document that gets
            nearest-neighbour reordering.
        recenter_zoom: Zoom level requested when recentring on a location fix.
        location_cache_max_age_s: Oldest cached fix accepted by the
            final (stale-fix) location strategy.
    """

    api_base_url: str = DEFAULT_API_BASE_URL
    api_token: str = ""
    http_timeout_s: float = 15.0
    debounce_s: float = 0.5
    enable_poi_loading: bool = True
    enable_route_loading: bool = True
    reorder_max_points: int = 10
    recenter_zoom: int = 15
    location_cache_max_age_s: float = 600.0

    def __post_init__(self) -> None:
        _validate(self)

    @classmethod
    def from_env(cls) -> MapConfig:
        """Load and validate configuration from environment variables.

        Raises:
            ConfigValidationError: If a numeric value is out of range
                or a required string value is empty.
            ValueError: If a numeric environment variable cannot be
                parsed (e.g. ``GEOSYNC_DEBOUNCE_MS=abc``).
        """
        return cls(
            api_base_url=os.getenv("GEOSYNC_API_BASE_URL", DEFAULT_API_BASE_URL),
            api_token=os.getenv("GEOSYNC_API_TOKEN", ""),
            http_timeout_s=float(os.getenv("GEOSYNC_HTTP_TIMEOUT_S", "15")),
            debounce_s=float(os.getenv("GEOSYNC_DEBOUNCE_MS", "500")) / 1000.0,
            enable_poi_loading=_env_flag("GEOSYNC_ENABLE_POI_LOADING", default=True),
            enable_route_loading=_env_flag("GEOSYNC_ENABLE_ROUTE_LOADING", default=True),
            reorder_max_points=int(os.getenv("GEOSYNC_REORDER_MAX_POINTS", "10")),
            recenter_zoom=int(os.getenv("GEOSYNC_RECENTER_ZOOM", "15")),
            location_cache_max_age_s=float(os.getenv("GEOSYNC_LOCATION_CACHE_MAX_AGE_S", "600")),
        )


def _env_flag(key: str, *, default: bool) -> bool:
    """Read a boolean flag; accepts ``1/true/yes/on`` and ``0/false/no/off``."""
    raw = os.getenv(key)
    if raw is None or not raw.strip():
        return default
    value = raw.strip().lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off"):
        return False
    raise ConfigValidationError(key, raw, "must be a boolean (true/false)")


def _validate(config: MapConfig) -> None:
    """Validate configuration ranges.  Raises ``ConfigValidationError``."""
    if not config.api_base_url:
        raise ConfigValidationError(
            "GEOSYNC_API_BASE_URL",
            config.api_base_url,
            "must not be empty",
        )

    if config.http_timeout_s <= 0:
        raise ConfigValidationError(
            "GEOSYNC_HTTP_TIMEOUT_S",
            config.http_timeout_s,
            "must be > 0 (seconds)",
        )

    if config.debounce_s < 0:
        raise ConfigValidationError(
            "GEOSYNC_DEBOUNCE_MS",
            config.debounce_s * 1000.0,
            "must be >= 0 (milliseconds)",
        )

    if config.reorder_max_points < 2:
        raise ConfigValidationError(
            "GEOSYNC_REORDER_MAX_POINTS",
            config.reorder_max_points,
            "must be >= 2 (points)",
        )

    if not 0 <= config.recenter_zoom <= 22:
        raise ConfigValidationError(
            "GEOSYNC_RECENTER_ZOOM",
            config.recenter_zoom,
            "must be between 0 and 22",
        )

    if config.location_cache_max_age_s < 0:
        raise ConfigValidationError(
            "GEOSYNC_LOCATION_CACHE_MAX_AGE_S",
            config.location_cache_max_age_s,
            "must be >= 0 (seconds)",
        )
