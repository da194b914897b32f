"""Coordinate and metadata normalization helpers for document parsing.

Responsibilities:
- Parse KML coordinate text (``lng,lat[,alt]`` tuples) into ``Coordinate``s
- Parse ``gx:coord`` text (``lng lat [alt]``)
- Classify placemarks as start/end/attachment/plain
- Extract ``ExtendedData`` metadata and attachment references

Invalid coordinates are never raised: they are counted and dropped.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from geosync.documents._constants import (
    ATTACHMENT_KEYS,
    DESCRIPTION_END_MARKERS,
    DESCRIPTION_START_MARKERS,
    END_MARKERS,
    EXTENDED_DATA_TAG,
    START_MARKERS,
)
from geosync.models.coordinate import Coordinate
from geosync.models.track import PlacemarkKind

if TYPE_CHECKING:
    from lxml.etree import _Element

# Writers occasionally put spaces around the commas inside a tuple
_COMMA_SPACING = re.compile(r"\s*,\s*")
_DESCRIPTION_TOKEN_SPLIT = re.compile(r"<br\s*/?>|[\s:：,，;；]+", re.IGNORECASE)


# ---------------------------------------------------------------------------
# Element helpers
# ---------------------------------------------------------------------------


def local_name(element: _Element) -> str:
    """Return the tag of *element* without its namespace ('' for comments/PIs)."""
    tag = element.tag
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def child_text(element: _Element, name: str) -> str | None:
    """Stripped text of the first direct child named *name*, or ``None``."""
    for child in element:
        if local_name(child) == name:
            text = (child.text or "").strip()
            return text or None
    return None


def iter_descendants(element: _Element, name: str) -> list[_Element]:
    """All descendants (document order) whose local name is *name*."""
    return [e for e in element.iterdescendants() if local_name(e) == name]


# ---------------------------------------------------------------------------
# Coordinate text parsing
# ---------------------------------------------------------------------------


def parse_coordinates_text(text: str) -> tuple[list[Coordinate], int]:
    """Parse KML coordinate text (``lng,lat,alt lng,lat,alt ...``).

    Returns:
        ``(coordinates, dropped)`` where *dropped* counts tuples that could
        not be parsed or fall outside WGS 84 bounds.
    """
    coordinates: list[Coordinate] = []
    dropped = 0
    for token in _COMMA_SPACING.sub(",", text.strip()).split():
        coordinate = _tuple_to_coordinate(token.split(","))
        if coordinate is None:
            dropped += 1
        else:
            coordinates.append(coordinate)
    return coordinates, dropped


def parse_track_coord_text(text: str) -> Coordinate | None:
    """Parse one ``gx:coord`` value (``lng lat [alt]``)."""
    return _tuple_to_coordinate(text.split())


def _tuple_to_coordinate(parts: list[str]) -> Coordinate | None:
    if len(parts) < 2:
        return None
    altitude = parts[2] if len(parts) >= 3 and parts[2] else None
    return Coordinate.try_create(parts[1], parts[0], altitude)


# ---------------------------------------------------------------------------
# Placemark classification
# ---------------------------------------------------------------------------


def classify_placemark(
    name: str | None, description: str | None, attachments: tuple[str, ...]
) -> PlacemarkKind:
    """Decide the role of an annotation point.

    The name is checked first; if it is not a start/end marker the
    description is searched for a standalone marker token.  Placemarks
    carrying attachments are ``ATTACHMENT`` unless marked start/end.
    """
    kind = _marker_kind(name.strip().lower(), START_MARKERS, END_MARKERS) if name else None
    if kind is None and description:
        for token in _DESCRIPTION_TOKEN_SPLIT.split(description):
            kind = _marker_kind(
                token.strip().lower(), DESCRIPTION_START_MARKERS, DESCRIPTION_END_MARKERS
            )
            if kind is not None:
                break
    if kind is not None:
        return kind
    if attachments:
        return PlacemarkKind.ATTACHMENT
    return PlacemarkKind.PLAIN


def _marker_kind(
    token: str, start_markers: frozenset[str], end_markers: frozenset[str]
) -> PlacemarkKind | None:
    if token in start_markers:
        return PlacemarkKind.START
    if token in end_markers:
        return PlacemarkKind.END
    return None


# ---------------------------------------------------------------------------
# ExtendedData extraction
# ---------------------------------------------------------------------------


def extract_extended_data(placemark: _Element) -> tuple[dict[str, str], tuple[str, ...]]:
    """Extract ``ExtendedData`` from a Placemark element.

    Handles both KML metadata patterns:
    - ``ExtendedData/Data/value`` — untyped key-value pairs.
    - ``ExtendedData/SchemaData/SimpleData`` — typed fields.

    Returns:
        ``(metadata, attachments)``.  Values under attachment keys
        (``attachment``, ``photo``, ...) are split on commas into the
        attachment list; everything else is metadata.
    """
    pairs: list[tuple[str, str]] = []
    for extended in placemark:
        if local_name(extended) != EXTENDED_DATA_TAG:
            continue
        for entry in extended:
            entry_name = local_name(entry)
            if entry_name == "Data":
                key = entry.get("name", "")
                value = child_text(entry, "value")
                if key and value:
                    pairs.append((key, value))
            elif entry_name == "SchemaData":
                for simple in entry:
                    if local_name(simple) != "SimpleData":
                        continue
                    key = simple.get("name", "")
                    value = (simple.text or "").strip()
                    if key and value:
                        pairs.append((key, value))

    metadata: dict[str, str] = {}
    attachments: list[str] = []
    for key, value in pairs:
        if key.lower() in ATTACHMENT_KEYS:
            attachments.extend(part.strip() for part in value.split(",") if part.strip())
        else:
            metadata[key] = value
    return metadata, tuple(attachments)
