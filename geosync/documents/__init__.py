"""Route document parsing — composable pipeline.

Parses a KML-style route document into a single ordered, renderable
``ParsedTrack``.  Real uploads are messy: some carry an explicit path,
some only scattered waypoints, some have broken coordinates.  The only
fatal condition is text that is not XML at all; every other irregularity
degrades gracefully.

The parsing pipeline is split into focused stages:
- **_validation**: XML loading, the fatal ``MalformedDocumentError``
- **_normalization**: coordinate text → ``Coordinate``, placemark roles,
  ExtendedData
- **_extraction**: explicit paths and point annotations, document order
- **_reconstruction**: nearest-neighbour fallback for waypoint-only documents
- **writer**: the reverse direction, route points → document

Supported structures:
- ``LineString`` and ``gx:Track`` paths (concatenated in document order)
- ``Placemark/Point`` annotations with name, description, ExtendedData
- ``起点``/``终点`` and ``startPoint``/``endPoint`` markers
- Namespaced KML 2.2 and un-namespaced documents
"""

from __future__ import annotations

import logging

from geosync.documents._constants import DEFAULT_REORDER_MAX_POINTS, KML_NAMESPACE
from geosync.documents._extraction import (
    extract_document_info,
    extract_paths,
    extract_placemarks,
)
from geosync.documents._normalization import (
    classify_placemark,
    extract_extended_data,
    parse_coordinates_text,
)
from geosync.documents._reconstruction import reconstruct_track
from geosync.documents._validation import (
    DocumentValidationError,
    MalformedDocumentError,
    load_xml,
)
from geosync.documents.writer import build_route_document, travel_mode_label
from geosync.models.track import ParsedTrack

logger = logging.getLogger("geosync.documents")

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

__all__ = [
    "DEFAULT_REORDER_MAX_POINTS",
    "KML_NAMESPACE",
    "DocumentValidationError",
    "MalformedDocumentError",
    "build_route_document",
    "classify_placemark",
    "extract_extended_data",
    "parse_coordinates_text",
    "parse_document",
    "reconstruct_track",
    "travel_mode_label",
]


def parse_document(
    document: str | bytes,
    *,
    reorder_max_points: int = DEFAULT_REORDER_MAX_POINTS,
) -> ParsedTrack:
    """Parse a route document into a ``ParsedTrack``.

    Args:
        document: Document text, or raw bytes (the XML encoding
            declaration is honoured for bytes).
        reorder_max_points: Largest waypoint-only document that gets
            nearest-neighbour reordering.

    Returns:
        A new, immutable ``ParsedTrack``.  Well-formed XML without any
        usable coordinate yields an empty track.

    Raises:
        MalformedDocumentError: If the document is not well-formed XML.
    """
    # Step 1: XML
    root = load_xml(document)

    # Step 2: explicit paths
    paths = extract_paths(root)

    # Step 3: point annotations
    annotations = extract_placemarks(root)

    # Step 4: explicit path or reconstruction fallback
    track, reordered = reconstruct_track(
        paths.coordinates,
        annotations.placemarks,
        reorder_max_points=reorder_max_points,
    )

    # Step 5: dropped coordinates are counted, not raised
    dropped = paths.dropped + annotations.dropped
    if dropped:
        logger.debug("Dropped %d invalid coordinate(s) while parsing", dropped)

    name, description = extract_document_info(root)
    parsed = ParsedTrack.from_coordinates(
        track,
        placemarks=tuple(annotations.placemarks),
        source_had_explicit_path=paths.productive_element_count > 0,
        dropped_coordinate_count=dropped,
        reordered=reordered,
        name=name,
        description=description,
    )

    logger.info(
        "Parsed route document | track_points=%d | placemarks=%d | explicit_path=%s "
        "| reordered=%s | dropped=%d",
        len(parsed.track_points),
        len(parsed.placemarks),
        parsed.source_had_explicit_path,
        parsed.reordered,
        dropped,
    )
    return parsed
