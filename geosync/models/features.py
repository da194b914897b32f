"""POI and route models built from backend payloads.

Both are immutable once fetched.  ``from_dict`` is lenient: a record
with an unusable position yields ``None`` so the caller can drop it
without failing the whole lane.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from geosync.models.coordinate import Coordinate

logger = logging.getLogger("geosync.models")


@dataclass(frozen=True, slots=True)
class POI:
    """A named point of interest.

    Attributes:
        id: Backend identifier; the POI's identity.
        name: Display name.
        coordinate: Position of the POI.
        category: Category tag (e.g. ``"scenic"``, ``"supply"``, ``"camping"``).
            Drives presentation only.
        address: Street address, if known.
        description: Free-text description.
        opening_hours: Opening hours text.
        contact_phone: Contact phone number.
    """

    id: str
    name: str
    coordinate: Coordinate
    category: str = ""
    address: str | None = None
    description: str | None = None
    opening_hours: str | None = None
    contact_phone: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> POI | None:
        """Build a POI from the backend JSON shape, or ``None`` if unusable."""
        coordinate = Coordinate.try_create(data.get("latitude"), data.get("longitude"))
        poi_id = data.get("id")
        if coordinate is None or poi_id is None:
            logger.debug("Dropping POI with unusable id/position | record=%r", data)
            return None
        return cls(
            id=str(poi_id),
            name=str(data.get("name") or ""),
            coordinate=coordinate,
            category=str(data.get("type") or ""),
            address=_optional_str(data.get("address")),
            description=_optional_str(data.get("description")),
            opening_hours=_optional_str(data.get("openingHours")),
            contact_phone=_optional_str(data.get("contactPhone")),
        )


@dataclass(frozen=True, slots=True)
class Route:
    """A backend route with its polyline.

    Attributes:
        id: Backend identifier.
        name: Display name.
        path: Ordered positions of the polyline.
        travel_mode: Travel mode tag (e.g. ``"WALKING"``).
        description: Free-text description.
    """

    id: str
    name: str = ""
    path: tuple[Coordinate, ...] = field(default_factory=tuple)
    travel_mode: str | None = None
    description: str | None = None

    @property
    def is_renderable(self) -> bool:
        """A polyline needs at least two points."""
        return len(self.path) >= 2

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> Route | None:
        """Build a route from the backend JSON shape, or ``None`` if unusable.

        The path comes from ``coordinates`` (``[[lat, lng], ...]``) when that
        list is non-empty, otherwise from ``pathPoints``
        (``[{latitude, longitude}, ...]``).  Invalid points are dropped.
        """
        route_id = data.get("id")
        if route_id is None:
            logger.debug("Dropping route without id | record=%r", data)
            return None

        path: list[Coordinate] = []
        raw_coordinates = data.get("coordinates")
        raw_points = data.get("pathPoints")
        if isinstance(raw_coordinates, list) and raw_coordinates:
            for pair in raw_coordinates:
                if isinstance(pair, list | tuple) and len(pair) >= 2:
                    coordinate = Coordinate.try_create(pair[0], pair[1])
                    if coordinate is not None:
                        path.append(coordinate)
        elif isinstance(raw_points, list):
            for point in raw_points:
                if isinstance(point, dict):
                    coordinate = Coordinate.try_create(
                        point.get("latitude"), point.get("longitude"), point.get("altitude")
                    )
                    if coordinate is not None:
                        path.append(coordinate)

        return cls(
            id=str(route_id),
            name=str(data.get("name") or ""),
            path=tuple(path),
            travel_mode=_optional_str(data.get("travelMode")),
            description=_optional_str(data.get("description")),
        )


def _optional_str(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
