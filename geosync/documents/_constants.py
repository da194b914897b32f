"""Shared constants for route document parsing and writing."""

from __future__ import annotations

# KML 2.2 namespaces
KML_NAMESPACE = "http://www.opengis.net/kml/2.2"
GX_NAMESPACE = "http://www.google.com/kml/ext/2.2"

# Element local names (matching is namespace-agnostic)
PLACEMARK_TAG = "Placemark"
POINT_TAG = "Point"
LINE_STRING_TAG = "LineString"
TRACK_TAG = "Track"
TRACK_COORD_TAG = "coord"
COORDINATES_TAG = "coordinates"
NAME_TAG = "name"
DESCRIPTION_TAG = "description"
EXTENDED_DATA_TAG = "ExtendedData"
CONTAINER_TAGS = frozenset({"Document", "Folder"})

# Placemark names marking the route's endpoints.  Latin markers compare
# case-insensitively.
START_MARKERS = frozenset({"起点", "startpoint", "start"})
END_MARKERS = frozenset({"终点", "endpoint", "end"})

# Bare "start"/"end" only count as placemark names, not description tokens
DESCRIPTION_START_MARKERS = START_MARKERS - {"start"}
DESCRIPTION_END_MARKERS = END_MARKERS - {"end"}

# ExtendedData keys whose values are attachment references
ATTACHMENT_KEYS = frozenset({"attachment", "attachments", "photo", "image", "media"})

# Largest waypoint-only document that gets nearest-neighbour reordering.
# Tunable; the cap bounds the O(n²) heuristic, it is not an accuracy cutoff.
DEFAULT_REORDER_MAX_POINTS = 10

# Fewest points a LineString needs to be drawn
MIN_LINE_POINTS = 2
