"""Travel-order reconstruction for documents without an explicit path.

When a document only carries scattered waypoints, the waypoints become
the track.  Small sets are reordered with the greedy nearest-neighbour
heuristic starting from the first waypoint in document order; larger
sets keep document order, which bounds the O(n²) cost.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from geosync.documents._constants import DEFAULT_REORDER_MAX_POINTS, MIN_LINE_POINTS
from geosync.utils.geomath import nearest_neighbor_order

if TYPE_CHECKING:
    from geosync.models.coordinate import Coordinate
    from geosync.models.track import Placemark

logger = logging.getLogger("geosync.documents")


def reconstruct_track(
    path: list[Coordinate],
    placemarks: list[Placemark],
    *,
    reorder_max_points: int = DEFAULT_REORDER_MAX_POINTS,
) -> tuple[list[Coordinate], bool]:
    """Pick the track for a document.

    Args:
        path: Explicit path points in document order (may be empty).
        placemarks: Point annotations in document order.
        reorder_max_points: Largest annotation count that gets reordered.

    Returns:
        ``(track, reordered)``.  An explicit path always wins.  Otherwise
        two or more annotations become the track, reordered when there are
        at most *reorder_max_points* of them.  A lone annotation yields a
        single-point (non-renderable) track.
    """
    if path:
        return list(path), False

    coordinates = [pm.coordinate for pm in placemarks]
    if len(coordinates) < MIN_LINE_POINTS:
        return coordinates, False

    if len(coordinates) <= reorder_max_points:
        logger.debug("Reordering %d waypoints by nearest neighbour", len(coordinates))
        return nearest_neighbor_order(coordinates), True

    logger.debug(
        "Keeping document order for %d waypoints (reorder cap %d)",
        len(coordinates),
        reorder_max_points,
    )
    return coordinates, False
