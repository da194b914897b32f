"""Backend data sources.

- GeoDataSource: Abstract interface the scheduler and session talk to
- HttpGeoDataSource: ``httpx`` implementation against the REST backend

The scheduler never knows which concrete source is behind the interface,
so tests plug in in-memory fakes.
"""

from geosync.sources.base import (
    FetchCancelledError,
    FetchFailure,
    FetchHttpError,
    FetchResponseError,
    GeoDataSource,
)
from geosync.sources.http import HttpGeoDataSource

__all__ = [
    "FetchCancelledError",
    "FetchFailure",
    "FetchHttpError",
    "FetchResponseError",
    "GeoDataSource",
    "HttpGeoDataSource",
]
