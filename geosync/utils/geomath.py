"""Pure distance and ordering helpers.

Functions accept anything exposing ``latitude`` / ``longitude``
attributes (``Coordinate``, ``TrackPoint``).  No input validation is
done here: NaN in, NaN out.
"""

from __future__ import annotations

from math import asin, cos, radians, sin, sqrt
from typing import TYPE_CHECKING, Protocol, TypeVar

from geosync.core.constants import EARTH_RADIUS_KM

if TYPE_CHECKING:
    from collections.abc import Sequence


class HasLatLng(Protocol):
    @property
    def latitude(self) -> float: ...

    @property
    def longitude(self) -> float: ...


P = TypeVar("P", bound=HasLatLng)


def distance(a: HasLatLng, b: HasLatLng) -> float:
    """Great-circle distance in kilometres using the haversine formula."""
    lat1, lon1, lat2, lon2 = map(radians, (a.latitude, a.longitude, b.latitude, b.longitude))
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    h = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    return 2 * EARTH_RADIUS_KM * asin(min(1.0, sqrt(h)))


def nearest_neighbor_order(points: Sequence[P]) -> list[P]:
    """Order *points* into a path by greedy nearest-neighbour stepping.

    Starts at ``points[0]`` and repeatedly appends the unvisited point
    closest to the current end of the path.  On distance ties the point
    that occurs first in the input wins, so the result is deterministic.

    This is a greedy heuristic, not a travelling-salesman solver: the
    path is a permutation of the input but not necessarily the shortest
    one.  Runs in O(n²); callers bound *n*.
    """
    if len(points) <= 2:
        return list(points)

    remaining = list(range(1, len(points)))
    ordered = [points[0]]
    while remaining:
        current = ordered[-1]
        best_pos = 0
        best_dist = distance(current, points[remaining[0]])
        for pos in range(1, len(remaining)):
            d = distance(current, points[remaining[pos]])
            if d < best_dist:
                best_pos = pos
                best_dist = d
        ordered.append(points[remaining.pop(best_pos)])
    return ordered


def path_length(points: Sequence[HasLatLng]) -> float:
    """Total length in kilometres of the polyline through *points*."""
    return sum(distance(a, b) for a, b in zip(points, points[1:], strict=False))


def bounding_box(points: Sequence[HasLatLng]) -> tuple[float, float, float, float] | None:
    """Return ``(min_lng, min_lat, max_lng, max_lat)`` or ``None`` if empty."""
    if not points:
        return None
    lngs = [p.longitude for p in points]
    lats = [p.latitude for p in points]
    return (min(lngs), min(lats), max(lngs), max(lats))
