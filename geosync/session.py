"""MapSession — one map surface's sync engine.

Owns the store, the viewport scheduler and the location tracker for the
lifetime of a map surface, and routes document imports into the store.

Example usage::

    async with MapSession.from_config(MapConfig.from_env()) as session:
        session.on_viewport_changed(bounds)
        track = session.import_document(kml_text)
        pois = session.store.get_snapshot(Lane.POIS)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from geosync.core.config import MapConfig
from geosync.documents import parse_document
from geosync.sources.http import HttpGeoDataSource
from geosync.sync.location import (
    LocationError,
    LocationErrorKind,
    LocationTracker,
    build_strategies,
)
from geosync.sync.scheduler import ViewportFetchScheduler
from geosync.sync.store import GeoDataStore

if TYPE_CHECKING:
    from types import TracebackType

    import httpx

    from geosync.models.coordinate import Coordinate, FetchFilters, ViewportBounds
    from geosync.models.envelope import DocumentPage
    from geosync.models.track import ParsedTrack
    from geosync.sources.base import GeoDataSource
    from geosync.sync.location import MapSurface, PositionProvider

logger = logging.getLogger("geosync.session")


class MapSession:
    """Per-map-session wiring of store, scheduler, tracker and parser.

    Args:
        source: Backend data source.
        config: Session configuration; defaults to ``MapConfig()``.
        provider: Positioning capability; ``locate()`` fails without one.
        surface: Map surface recentred on a location fix.
        owns_source: Close *source* when the session closes.
    """

    def __init__(
        self,
        source: GeoDataSource,
        *,
        config: MapConfig | None = None,
        provider: PositionProvider | None = None,
        surface: MapSurface | None = None,
        owns_source: bool = False,
    ) -> None:
        self._config = config or MapConfig()
        self._source = source
        self._owns_source = owns_source
        self._store = GeoDataStore()
        self._scheduler = ViewportFetchScheduler(source, self._store, config=self._config)
        self._tracker: LocationTracker | None = None
        if provider is not None:
            self._tracker = LocationTracker(
                provider,
                self._store,
                surface=surface,
                strategies=build_strategies(self._config.location_cache_max_age_s),
                recenter_zoom=self._config.recenter_zoom,
            )
        self._closed = False

    @classmethod
    def from_config(
        cls,
        config: MapConfig | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        provider: PositionProvider | None = None,
        surface: MapSurface | None = None,
    ) -> MapSession:
        """Build a session backed by ``HttpGeoDataSource``."""
        config = config or MapConfig()
        source = HttpGeoDataSource(config, client)
        return cls(source, config=config, provider=provider, surface=surface, owns_source=True)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def config(self) -> MapConfig:
        return self._config

    @property
    def store(self) -> GeoDataStore:
        return self._store

    @property
    def scheduler(self) -> ViewportFetchScheduler:
        return self._scheduler

    @property
    def source(self) -> GeoDataSource:
        return self._source

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # Viewport
    # ------------------------------------------------------------------

    def on_viewport_changed(
        self, bounds: ViewportBounds, filters: FetchFilters | None = None
    ) -> None:
        self._scheduler.on_viewport_changed(bounds, filters)

    def on_filters_changed(self, filters: FetchFilters) -> None:
        self._scheduler.on_filters_changed(filters)

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def import_document(self, document: str | bytes) -> ParsedTrack:
        """Parse an uploaded or pasted route document and add it to the store.

        Raises:
            MalformedDocumentError: If the document is not well-formed XML.
            StoreClosedError: If the session has been closed.
        """
        track = parse_document(document, reorder_max_points=self._config.reorder_max_points)
        self._store.append_track(track)
        logger.info(
            "Route document imported | points=%d | placemarks=%d | explicit_path=%s",
            len(track.track_points),
            len(track.placemarks),
            track.source_had_explicit_path,
        )
        return track

    async def list_public_documents(self, page: int = 0, size: int = 10) -> DocumentPage:
        return await self._source.list_public_documents(page=page, size=size)

    async def load_public_document(self, document_id: int) -> ParsedTrack:
        """Download a public route document and import it."""
        text = await self._source.download_document(document_id)
        return self.import_document(text)

    # ------------------------------------------------------------------
    # Location
    # ------------------------------------------------------------------

    async def locate(self) -> Coordinate:
        """Resolve the device location and recentre the map on it.

        Raises:
            LocationError: If positioning fails or no provider is configured.
        """
        if self._tracker is None:
            msg = "No positioning capability configured for this session"
            raise LocationError(LocationErrorKind.UNAVAILABLE, msg)
        return await self._tracker.request_current_location()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def close(self) -> None:
        """Tear down the scheduler, close an owned source, close the store."""
        if self._closed:
            return
        self._closed = True
        await self._scheduler.aclose()
        if self._owns_source:
            await self._source.aclose()
        self._store.close()
        logger.info("Map session closed")

    async def __aenter__(self) -> MapSession:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()
