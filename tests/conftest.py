"""Shared pytest fixtures for the geosync test suite."""

from __future__ import annotations

import pytest

from geosync.models.coordinate import ViewportBounds

# ---------------------------------------------------------------------------
# Route document fixtures
# ---------------------------------------------------------------------------

EXPLICIT_PATH_KML = """<?xml version="1.0" encoding="UTF-8"?>
<kml xmlns="http://www.opengis.net/kml/2.2">
  <Document>
    <name>West Lake loop</name>
    <description>Morning walk</description>
    <Placemark>
      <name>Route</name>
      <LineString>
        <coordinates>
          120.1400,30.2500,10 120.1450,30.2550,25 120.1500,30.2600,15
        </coordinates>
      </LineString>
    </Placemark>
    <Placemark>
      <name>起点</name>
      <Point><coordinates>120.1400,30.2500,10</coordinates></Point>
    </Placemark>
    <Placemark>
      <name>终点</name>
      <Point><coordinates>120.1500,30.2600,15</coordinates></Point>
    </Placemark>
  </Document>
</kml>
"""

# Waypoints listed out of travel order: A(0,0), C(0,2), B(0,1)
WAYPOINTS_ONLY_KML = """<?xml version="1.0" encoding="UTF-8"?>
<kml xmlns="http://www.opengis.net/kml/2.2">
  <Document>
    <Placemark><name>A</name><Point><coordinates>0,0</coordinates></Point></Placemark>
    <Placemark><name>C</name><Point><coordinates>2,0</coordinates></Point></Placemark>
    <Placemark><name>B</name><Point><coordinates>1,0</coordinates></Point></Placemark>
  </Document>
</kml>
"""

GX_TRACK_KML = """<?xml version="1.0" encoding="UTF-8"?>
<kml xmlns="http://www.opengis.net/kml/2.2" xmlns:gx="http://www.google.com/kml/ext/2.2">
  <Document>
    <Placemark>
      <gx:Track>
        <gx:coord>116.39 39.90 50</gx:coord>
        <gx:coord>116.40 39.91 60</gx:coord>
        <gx:coord>bogus</gx:coord>
      </gx:Track>
    </Placemark>
  </Document>
</kml>
"""


@pytest.fixture()
def explicit_path_kml() -> str:
    """Document with a 3-point LineString and start/end placemarks."""
    return EXPLICIT_PATH_KML


@pytest.fixture()
def waypoints_only_kml() -> str:
    """Document with three Point placemarks and no path."""
    return WAYPOINTS_ONLY_KML


@pytest.fixture()
def gx_track_kml() -> str:
    """Document with a ``gx:Track`` path including one bad coord."""
    return GX_TRACK_KML


# ---------------------------------------------------------------------------
# Viewport fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def hangzhou_bounds() -> ViewportBounds:
    return ViewportBounds.from_extent(120.0, 30.0, 120.5, 30.5)


@pytest.fixture()
def shanghai_bounds() -> ViewportBounds:
    return ViewportBounds.from_extent(121.3, 31.1, 121.7, 31.4)
