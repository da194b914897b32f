"""Data models.

Defines the data structures used throughout the package:
- Coordinate / ViewportBounds / FetchFilters: positions and fetch keys
- POI / Route: viewport-bounded backend data
- TrackPoint / Placemark / ParsedTrack: parsed route documents
- ApiEnvelope / DocumentPage: backend wire payloads
"""

from geosync.models.coordinate import (
    Coordinate,
    CoordinateValidationError,
    FetchFilters,
    ViewportBounds,
)
from geosync.models.envelope import ApiEnvelope, DocumentPage, DocumentSummary
from geosync.models.features import POI, Route
from geosync.models.track import ParsedTrack, Placemark, PlacemarkKind, TrackPoint, TrackStats

__all__ = [
    "POI",
    "ApiEnvelope",
    "Coordinate",
    "CoordinateValidationError",
    "DocumentPage",
    "DocumentSummary",
    "FetchFilters",
    "ParsedTrack",
    "Placemark",
    "PlacemarkKind",
    "Route",
    "TrackPoint",
    "TrackStats",
    "ViewportBounds",
]
