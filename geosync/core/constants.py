"""Shared constants — single source of truth.

Lane names, backend endpoint paths and coordinate bounds used across the
scheduler, the store, the HTTP source and the document parser.
"""

from __future__ import annotations

import enum

# ---------------------------------------------------------------------------
# Store / scheduler lanes
# ---------------------------------------------------------------------------


class Lane(enum.Enum):
    """Independent data collections held by the store.

    ``POIS`` and ``ROUTES`` are also fetch lanes driven by the viewport.
    ``TRACKS`` is filled only by document imports.
    """

    POIS = "pois"
    ROUTES = "routes"
    TRACKS = "tracks"


FETCH_LANES: tuple[Lane, ...] = (Lane.POIS, Lane.ROUTES)
"""Lanes whose contents follow the viewport."""

# ---------------------------------------------------------------------------
# Backend endpoints
# ---------------------------------------------------------------------------

DEFAULT_API_BASE_URL: str = "http://localhost:8080"

POI_AREA_PATH: str = "/api/gsi/pois/area"
ROUTE_AREA_PATH: str = "/api/gsi/routes/area"
PUBLIC_DOCUMENTS_PATH: str = "/api/kml-files/public"
DOCUMENT_DOWNLOAD_PATH: str = "/api/kml-files/{document_id}/download"

POI_FILTER_PARAM: str = "types"
ROUTE_FILTER_PARAM: str = "travelModes"

# Envelope code for a successful response
SUCCESS_CODE: int = 0

# ---------------------------------------------------------------------------
# WGS 84 coordinate bounds
# ---------------------------------------------------------------------------

MIN_LONGITUDE = -180.0
MAX_LONGITUDE = 180.0
MIN_LATITUDE = -90.0
MAX_LATITUDE = 90.0

EARTH_RADIUS_KM = 6371.0
