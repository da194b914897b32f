"""Geospatial data synchronization for an interactive map surface.

Keeps viewport-bounded POI and route data in sync with a pannable,
zoomable map, and reconstructs renderable tracks from uploaded KML-style
route documents.
"""

__version__ = "0.1.0"
