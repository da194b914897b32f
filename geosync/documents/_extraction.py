"""Element-tree walkers for route documents.

Pulls the two kinds of geometry the parser cares about out of an lxml
tree, in document order:

- explicit paths: ``LineString/coordinates`` and ``gx:Track/gx:coord``
- point annotations: ``Placemark`` elements holding a ``Point``

Element matching uses local names only, so namespaced KML and bare
``<root>`` documents are read the same way.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from geosync.documents._constants import (
    CONTAINER_TAGS,
    COORDINATES_TAG,
    DESCRIPTION_TAG,
    LINE_STRING_TAG,
    NAME_TAG,
    PLACEMARK_TAG,
    POINT_TAG,
    TRACK_COORD_TAG,
    TRACK_TAG,
)
from geosync.documents._normalization import (
    child_text,
    classify_placemark,
    extract_extended_data,
    iter_descendants,
    local_name,
    parse_coordinates_text,
    parse_track_coord_text,
)
from geosync.models.track import Placemark

if TYPE_CHECKING:
    from lxml.etree import _Element

    from geosync.models.coordinate import Coordinate

logger = logging.getLogger("geosync.documents")


@dataclass(slots=True)
class PathExtraction:
    """Explicit path points gathered from a document."""

    coordinates: list[Coordinate] = field(default_factory=list)
    element_count: int = 0
    productive_element_count: int = 0
    dropped: int = 0


@dataclass(slots=True)
class PlacemarkExtraction:
    """Point annotations gathered from a document."""

    placemarks: list[Placemark] = field(default_factory=list)
    dropped: int = 0


def extract_paths(root: _Element) -> PathExtraction:
    """Concatenate every explicit path element's points in document order."""
    result = PathExtraction()
    for element in root.iter():
        name = local_name(element)
        if name == LINE_STRING_TAG:
            points: list[Coordinate] = []
            for coords_elem in element:
                if local_name(coords_elem) == COORDINATES_TAG and coords_elem.text:
                    parsed, dropped = parse_coordinates_text(coords_elem.text)
                    points.extend(parsed)
                    result.dropped += dropped
        elif name == TRACK_TAG:
            points = []
            for coord_elem in element:
                if local_name(coord_elem) != TRACK_COORD_TAG:
                    continue
                coordinate = parse_track_coord_text(coord_elem.text or "")
                if coordinate is None:
                    result.dropped += 1
                else:
                    points.append(coordinate)
        else:
            continue

        result.element_count += 1
        if points:
            result.productive_element_count += 1
            result.coordinates.extend(points)
    return result


def extract_placemarks(root: _Element) -> PlacemarkExtraction:
    """Turn each ``Placemark/…/Point`` into a ``Placemark`` annotation.

    A Placemark holding several Points yields one annotation per Point.
    Only the first valid tuple of a Point's ``coordinates`` is used.
    """
    result = PlacemarkExtraction()
    placemark_elems = [root] if local_name(root) == PLACEMARK_TAG else []
    placemark_elems.extend(iter_descendants(root, PLACEMARK_TAG))

    for pm in placemark_elems:
        points = iter_descendants(pm, POINT_TAG)
        if not points:
            continue

        name = child_text(pm, NAME_TAG)
        description = child_text(pm, DESCRIPTION_TAG)
        metadata, attachments = extract_extended_data(pm)
        kind = classify_placemark(name, description, attachments)

        for point in points:
            coordinate = _point_coordinate(point)
            if coordinate is None:
                result.dropped += 1
                logger.debug("Dropping Placemark '%s' with unusable Point coordinates", name or "")
                continue
            result.placemarks.append(
                Placemark(
                    coordinate=coordinate,
                    name=name,
                    description=description,
                    kind=kind,
                    attachments=attachments,
                    metadata=tuple(metadata.items()),
                )
            )
    return result


def extract_document_info(root: _Element) -> tuple[str | None, str | None]:
    """Name and description of the outermost ``Document``/``Folder``."""
    containers = [root] if local_name(root) in CONTAINER_TAGS else []
    containers.extend(e for e in root.iterdescendants() if local_name(e) in CONTAINER_TAGS)
    for container in containers:
        name = child_text(container, NAME_TAG)
        description = child_text(container, DESCRIPTION_TAG)
        if name or description:
            return name, description
    return None, None


def _point_coordinate(point: _Element) -> Coordinate | None:
    for coords_elem in point:
        if local_name(coords_elem) == COORDINATES_TAG and coords_elem.text:
            parsed, _ = parse_coordinates_text(coords_elem.text)
            return parsed[0] if parsed else None
    return None
