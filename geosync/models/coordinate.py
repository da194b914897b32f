"""Coordinate and viewport models.

A ``Coordinate`` is a WGS 84 position.  Values outside the valid range
are rejected at construction, never clamped, so every ``Coordinate``
that exists is known-good.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from geosync.core.constants import MAX_LATITUDE, MAX_LONGITUDE, MIN_LATITUDE, MIN_LONGITUDE
from geosync.core.exceptions import ValidationError


class CoordinateValidationError(ValueError, ValidationError):
    """Raised when a coordinate is outside WGS 84 bounds or not a finite number."""

    default_stage = "model_validation"
    default_code = "COORDINATE_INVALID"

    def __init__(self, message: str) -> None:
        ValidationError.__init__(self, message)


@dataclass(frozen=True, slots=True)
class Coordinate:
    """A WGS 84 position.

    Attributes:
        latitude: Degrees north, in [-90, 90].
        longitude: Degrees east, in [-180, 180].
        altitude: Metres above sea level, if known.
    """

    latitude: float
    longitude: float
    altitude: float | None = None

    def __post_init__(self) -> None:
        if not _is_finite(self.latitude) or not MIN_LATITUDE <= self.latitude <= MAX_LATITUDE:
            msg = f"Latitude {self.latitude!r} out of WGS 84 range [{MIN_LATITUDE}, {MAX_LATITUDE}]"
            raise CoordinateValidationError(msg)
        if not _is_finite(self.longitude) or not MIN_LONGITUDE <= self.longitude <= MAX_LONGITUDE:
            msg = (
                f"Longitude {self.longitude!r} out of WGS 84 range "
                f"[{MIN_LONGITUDE}, {MAX_LONGITUDE}]"
            )
            raise CoordinateValidationError(msg)
        if self.altitude is not None and not _is_finite(self.altitude):
            msg = f"Altitude {self.altitude!r} is not a finite number"
            raise CoordinateValidationError(msg)

    @classmethod
    def try_create(
        cls,
        latitude: object,
        longitude: object,
        altitude: object = None,
    ) -> Coordinate | None:
        """Build a coordinate from loosely-typed values, or return ``None``.

        Used where bad input is dropped rather than reported (document
        parsing, backend payloads).
        """
        try:
            lat = float(latitude)  # type: ignore[arg-type]
            lon = float(longitude)  # type: ignore[arg-type]
            alt = float(altitude) if altitude is not None else None  # type: ignore[arg-type]
            return cls(latitude=lat, longitude=lon, altitude=alt)
        except (TypeError, ValueError):
            return None

    def to_dict(self) -> dict[str, object]:
        """Serialise to the backend's ``{latitude, longitude, altitude?}`` shape."""
        data: dict[str, object] = {"latitude": self.latitude, "longitude": self.longitude}
        if self.altitude is not None:
            data["altitude"] = self.altitude
        return data

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> Coordinate:
        """Deserialise from a ``{latitude, longitude, altitude?}`` dict.

        Raises:
            CoordinateValidationError: If the values are missing or invalid.
        """
        coordinate = cls.try_create(
            data.get("latitude"), data.get("longitude"), data.get("altitude")
        )
        if coordinate is None:
            msg = f"Cannot build a coordinate from {data!r}"
            raise CoordinateValidationError(msg)
        return coordinate


@dataclass(frozen=True, slots=True)
class ViewportBounds:
    """The geographic rectangle currently visible on the map surface.

    Attributes:
        south_west: Lower-left corner.
        north_east: Upper-right corner.
    """

    south_west: Coordinate
    north_east: Coordinate

    @classmethod
    def from_extent(
        cls, min_lng: float, min_lat: float, max_lng: float, max_lat: float
    ) -> ViewportBounds:
        """Build bounds from a ``(min_lng, min_lat, max_lng, max_lat)`` extent."""
        return cls(
            south_west=Coordinate(latitude=min_lat, longitude=min_lng),
            north_east=Coordinate(latitude=max_lat, longitude=max_lng),
        )

    def to_query_params(self) -> dict[str, str]:
        """Return the ``minLng/minLat/maxLng/maxLat`` query parameters."""
        return {
            "minLng": repr(self.south_west.longitude),
            "minLat": repr(self.south_west.latitude),
            "maxLng": repr(self.north_east.longitude),
            "maxLat": repr(self.north_east.latitude),
        }

    def contains(self, coordinate: Coordinate) -> bool:
        """Whether *coordinate* lies inside (or on the edge of) the bounds."""
        return (
            self.south_west.latitude <= coordinate.latitude <= self.north_east.latitude
            and self.south_west.longitude <= coordinate.longitude <= self.north_east.longitude
        )


@dataclass(frozen=True, slots=True)
class FetchFilters:
    """Active filters for the viewport-driven lanes.

    Attributes:
        poi_types: POI category tags; empty means all categories.
        travel_modes: Route travel modes; empty means all modes.
    """

    poi_types: tuple[str, ...] = field(default_factory=tuple)
    travel_modes: tuple[str, ...] = field(default_factory=tuple)


def _is_finite(value: float) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool) and math.isfinite(value)
