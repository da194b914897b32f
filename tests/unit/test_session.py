"""Tests for the per-map session wiring."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from geosync.core.config import MapConfig
from geosync.core.constants import Lane
from geosync.documents import MalformedDocumentError
from geosync.models.coordinate import Coordinate, ViewportBounds
from geosync.session import MapSession
from geosync.sync.location import LocationError, LocationErrorKind
from geosync.sync.store import StoreClosedError

CONFIG = MapConfig(api_base_url="http://test", debounce_s=0.01)


def _handler(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path == "/api/gsi/pois/area":
        data = [{"id": 1, "name": "Pagoda", "latitude": 30.23, "longitude": 120.15, "type": "scenic"}]
        return httpx.Response(200, json={"code": 0, "message": "ok", "data": data})
    if path == "/api/gsi/routes/area":
        return httpx.Response(200, json={"code": 0, "message": "ok", "data": []})
    if path == "/api/kml-files/5/download":
        return httpx.Response(
            200,
            text=(
                "<kml><Document><Placemark><LineString>"
                "<coordinates>120.1,30.2 120.2,30.3</coordinates>"
                "</LineString></Placemark></Document></kml>"
            ),
        )
    return httpx.Response(404)


def _session(**kwargs: object) -> MapSession:
    client = httpx.AsyncClient(transport=httpx.MockTransport(_handler), base_url="http://test")
    return MapSession.from_config(CONFIG, client=client, **kwargs)  # type: ignore[arg-type]


class TestMapSession:
    @pytest.mark.asyncio()
    async def test_viewport_change_fills_store(self) -> None:
        async with _session() as session:
            session.on_viewport_changed(ViewportBounds.from_extent(120.0, 30.0, 120.5, 30.5))
            await session.scheduler.drain()

            pois = session.store.get_snapshot(Lane.POIS)
            assert [p.name for p in pois] == ["Pagoda"]
            assert session.store.get_snapshot(Lane.ROUTES) == ()

    @pytest.mark.asyncio()
    async def test_import_document(self, explicit_path_kml: str) -> None:
        async with _session() as session:
            track = session.import_document(explicit_path_kml)
            assert session.store.get_snapshot(Lane.TRACKS) == (track,)
            assert track.is_renderable

    @pytest.mark.asyncio()
    async def test_import_uses_configured_reorder_cap(self, waypoints_only_kml: str) -> None:
        client = httpx.AsyncClient(transport=httpx.MockTransport(_handler))
        config = MapConfig(reorder_max_points=2)
        async with MapSession.from_config(config, client=client) as session:
            assert session.import_document(waypoints_only_kml).reordered is False

    @pytest.mark.asyncio()
    async def test_malformed_import_leaves_store_untouched(self) -> None:
        async with _session() as session:
            with pytest.raises(MalformedDocumentError):
                session.import_document("not xml")
            assert session.store.get_snapshot(Lane.TRACKS) == ()

    @pytest.mark.asyncio()
    async def test_load_public_document(self) -> None:
        async with _session() as session:
            track = await session.load_public_document(5)
            assert len(track.track_points) == 2
            assert session.store.version(Lane.TRACKS) == 1

    @pytest.mark.asyncio()
    async def test_locate(self) -> None:
        fix = Coordinate(30.27, 120.15)
        provider = MagicMock()
        provider.get_position = AsyncMock(return_value=fix)
        surface = MagicMock()

        async with _session(provider=provider, surface=surface) as session:
            assert await session.locate() == fix
            assert session.store.current_location == fix
            surface.recenter.assert_called_once_with(fix, CONFIG.recenter_zoom)

    @pytest.mark.asyncio()
    async def test_locate_without_provider(self) -> None:
        async with _session() as session:
            with pytest.raises(LocationError) as exc_info:
                await session.locate()
            assert exc_info.value.kind is LocationErrorKind.UNAVAILABLE

    @pytest.mark.asyncio()
    async def test_close_ends_session(self) -> None:
        session = _session()
        await session.close()
        await session.close()

        assert session.closed
        assert session.scheduler.torn_down
        assert session.store.closed
        with pytest.raises(StoreClosedError):
            session.import_document("<kml/>")

    @pytest.mark.asyncio()
    async def test_injected_source_not_closed(self) -> None:
        source = MagicMock()
        source.aclose = AsyncMock()
        session = MapSession(source, config=CONFIG)
        await session.close()
        source.aclose.assert_not_awaited()

    @pytest.mark.asyncio()
    async def test_locate_overlapping_close(self) -> None:
        async def slow_fix(_: object) -> Coordinate:
            await asyncio.sleep(0.05)
            return Coordinate(30.27, 120.15)

        provider = MagicMock()
        provider.get_position = slow_fix
        surface = MagicMock()
        session = _session(provider=provider, surface=surface)

        task = asyncio.create_task(session.locate())
        await asyncio.sleep(0)
        await session.close()

        with pytest.raises(LocationError) as exc_info:
            await task
        assert exc_info.value.kind is LocationErrorKind.UNAVAILABLE
        assert session.store.current_location is None
        surface.recenter.assert_not_called()

    @pytest.mark.asyncio()
    async def test_failed_lane_exposes_error_payload(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/api/gsi/routes/area":
                return httpx.Response(503)
            return _handler(request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://test")
        async with MapSession.from_config(CONFIG, client=client) as session:
            session.on_viewport_changed(ViewportBounds.from_extent(120.0, 30.0, 120.5, 30.5))
            await session.scheduler.drain()

            payloads = session.store.error_payloads()
            assert list(payloads) == ["routes"]
            assert payloads["routes"]["category"] == "transient"
            assert payloads["routes"]["retryable"] is True
