"""Route document authoring.

Builds a KML 2.2 document from an ordered list of route points: one
``LineString`` placemark carrying the whole path, plus one ``Point``
placemark per route point with the first and last described as
``起点`` / ``终点``.  Documents written here parse back with an explicit
path and start/end annotations.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from geosync.documents._constants import KML_NAMESPACE, MIN_LINE_POINTS
from geosync.documents._validation import DocumentValidationError
from geosync.utils.geomath import path_length

if TYPE_CHECKING:
    from collections.abc import Sequence

    from lxml.etree import _Element

    from geosync.models.coordinate import Coordinate

logger = logging.getLogger("geosync.documents")

DEFAULT_ROUTE_NAME = "未命名路线"

TRAVEL_MODE_LABELS: dict[str, str] = {
    "HIKING": "徒步",
    "CYCLING": "骑行",
    "DRIVING": "驾车",
    "MOTORCYCLING": "摩托车",
    "WALKING": "步行",
}

_ROUTE_STYLE_ID = "routeStyle"
_POINT_STYLE_ID = "pointStyle"
_ROUTE_LINE_COLOR = "ff0080ff"
_ROUTE_LINE_WIDTH = "4"
_POINT_ICON_HREF = "http://maps.google.com/mapfiles/kml/paddle/red-circle.png"


def travel_mode_label(mode: str) -> str:
    """Human-readable label for a travel mode, falling back to the raw value."""
    return TRAVEL_MODE_LABELS.get(mode, mode)


def build_route_document(
    points: Sequence[Coordinate],
    *,
    name: str = "",
    description: str = "",
    travel_mode: str = "",
    created_at: datetime | None = None,
) -> str:
    """Serialise *points* as a KML route document.

    Args:
        points: Ordered route points; at least two.
        name: Route name (defaults to ``未命名路线``).
        description: Free text appended after the generated summary.
        travel_mode: Travel mode key (``HIKING``, ``CYCLING``, ...).
        created_at: Creation timestamp for the summary (defaults to now, UTC).

    Returns:
        The document as a UTF-8 XML string with declaration.

    Raises:
        DocumentValidationError: If fewer than two points are given.
    """
    from lxml import etree  # type: ignore[attr-defined]

    if len(points) < MIN_LINE_POINTS:
        msg = f"A route needs at least {MIN_LINE_POINTS} points, got {len(points)}"
        raise DocumentValidationError(msg)

    route_name = name.strip() or DEFAULT_ROUTE_NAME
    summary = _route_summary(points, description, travel_mode, created_at or datetime.now(UTC))

    kml = etree.Element(f"{{{KML_NAMESPACE}}}kml", nsmap={None: KML_NAMESPACE})
    document = _sub(kml, "Document")
    _sub(document, "name", route_name)
    _sub(document, "description").text = etree.CDATA(summary)
    _append_styles(document)

    route = _sub(document, "Placemark")
    _sub(route, "name", route_name)
    _sub(route, "description").text = etree.CDATA(summary)
    _sub(route, "styleUrl", f"#{_ROUTE_STYLE_ID}")
    line = _sub(route, "LineString")
    _sub(line, "tessellate", "1")
    _sub(line, "coordinates", " ".join(_format_tuple(p) for p in points))

    last = len(points) - 1
    for index, point in enumerate(points):
        if index == 0:
            role = "起点"
        elif index == last:
            role = "终点"
        else:
            role = f"第{index + 1}个路点"
        waypoint = _sub(document, "Placemark")
        _sub(waypoint, "name", f"路点 {index + 1}")
        _sub(waypoint, "description").text = etree.CDATA(
            f"坐标: {point.latitude:.6f}, {point.longitude:.6f}<br/>{role}"
        )
        _sub(waypoint, "styleUrl", f"#{_POINT_STYLE_ID}")
        _sub(_sub(waypoint, "Point"), "coordinates", _format_tuple(point))

    logger.info("Built route document | name=%s | points=%d", route_name, len(points))
    return etree.tostring(
        kml, xml_declaration=True, encoding="UTF-8", pretty_print=True
    ).decode("utf-8")


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _sub(parent: _Element, tag: str, text: str | None = None) -> _Element:
    from lxml import etree  # type: ignore[attr-defined]

    element = etree.SubElement(parent, f"{{{KML_NAMESPACE}}}{tag}")
    if text is not None:
        element.text = text
    return element


def _append_styles(document: _Element) -> None:
    route_style = _sub(document, "Style")
    route_style.set("id", _ROUTE_STYLE_ID)
    line_style = _sub(route_style, "LineStyle")
    _sub(line_style, "color", _ROUTE_LINE_COLOR)
    _sub(line_style, "width", _ROUTE_LINE_WIDTH)

    point_style = _sub(document, "Style")
    point_style.set("id", _POINT_STYLE_ID)
    icon_style = _sub(point_style, "IconStyle")
    _sub(_sub(icon_style, "Icon"), "href", _POINT_ICON_HREF)


def _format_tuple(point: Coordinate) -> str:
    altitude = point.altitude if point.altitude is not None else 0
    return f"{point.longitude!r},{point.latitude!r},{altitude!r}"


def _route_summary(
    points: Sequence[Coordinate],
    description: str,
    travel_mode: str,
    created_at: datetime,
) -> str:
    lines = [
        "路线信息:",
        f"- 总点数: {len(points)}",
        f"- 总距离: {path_length(points):.2f} km",
        f"- 出行方式: {travel_mode_label(travel_mode)}",
        f"- 创建时间: {created_at.isoformat()}",
    ]
    if description.strip():
        lines.extend(["", description.strip()])
    return "\n".join(lines)
