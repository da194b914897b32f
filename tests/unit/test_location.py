"""Tests for multi-strategy device positioning."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from geosync.models.coordinate import Coordinate
from geosync.sync.location import (
    DEFAULT_STRATEGIES,
    LocationError,
    LocationErrorKind,
    LocationTracker,
    PositionOptions,
    build_strategies,
)
from geosync.sync.store import GeoDataStore

FIX = Coordinate(30.2741, 120.1551)


def _tracker(
    side_effect: object, **kwargs: object
) -> tuple[LocationTracker, AsyncMock, MagicMock, GeoDataStore]:
    provider = MagicMock()
    provider.get_position = AsyncMock(side_effect=side_effect)
    surface = MagicMock()
    store = GeoDataStore()
    tracker = LocationTracker(provider, store, surface=surface, **kwargs)  # type: ignore[arg-type]
    return tracker, provider.get_position, surface, store


class TestStrategies:
    def test_default_sequence(self) -> None:
        assert DEFAULT_STRATEGIES == (
            PositionOptions(enable_high_accuracy=True, timeout_s=5.0, maximum_age_s=0.0),
            PositionOptions(enable_high_accuracy=False, timeout_s=15.0, maximum_age_s=60.0),
            PositionOptions(enable_high_accuracy=False, timeout_s=5.0, maximum_age_s=600.0),
        )

    def test_build_strategies_replaces_stale_age(self) -> None:
        strategies = build_strategies(120.0)
        assert strategies[:2] == DEFAULT_STRATEGIES[:2]
        assert strategies[2].maximum_age_s == 120.0

    def test_empty_strategies_rejected(self) -> None:
        with pytest.raises(ValueError):
            LocationTracker(MagicMock(), GeoDataStore(), strategies=())


class TestRequestCurrentLocation:
    @pytest.mark.asyncio()
    async def test_first_strategy_succeeds(self) -> None:
        tracker, get_position, surface, store = _tracker([FIX])

        assert await tracker.request_current_location() == FIX

        get_position.assert_awaited_once_with(DEFAULT_STRATEGIES[0])
        assert store.current_location == FIX
        surface.recenter.assert_called_once_with(FIX, 15)

    @pytest.mark.asyncio()
    async def test_falls_back_to_later_strategies(self) -> None:
        tracker, get_position, surface, _ = _tracker(
            [
                LocationError(LocationErrorKind.TIMEOUT),
                LocationError(LocationErrorKind.UNAVAILABLE),
                FIX,
            ]
        )

        assert await tracker.request_current_location() == FIX

        assert [c.args[0] for c in get_position.await_args_list] == list(DEFAULT_STRATEGIES)
        surface.recenter.assert_called_once()

    @pytest.mark.asyncio()
    async def test_all_failing_raises_last_error(self) -> None:
        last = LocationError(LocationErrorKind.UNAVAILABLE, "no signal")
        tracker, get_position, surface, store = _tracker(
            [LocationError(LocationErrorKind.TIMEOUT), LocationError(LocationErrorKind.TIMEOUT), last]
        )

        with pytest.raises(LocationError) as exc_info:
            await tracker.request_current_location()

        assert exc_info.value is last
        assert get_position.await_count == 3
        assert store.current_location is None
        surface.recenter.assert_not_called()

    @pytest.mark.asyncio()
    async def test_permission_denied_stops_immediately(self) -> None:
        tracker, get_position, _, _ = _tracker(
            [LocationError(LocationErrorKind.PERMISSION_DENIED), FIX, FIX]
        )

        with pytest.raises(LocationError) as exc_info:
            await tracker.request_current_location()

        assert exc_info.value.kind is LocationErrorKind.PERMISSION_DENIED
        assert get_position.await_count == 1

    @pytest.mark.asyncio()
    async def test_unknown_exception_wrapped(self) -> None:
        tracker, _, _, _ = _tracker(
            [RuntimeError("sensor crashed"), RuntimeError("again"), OSError("gone")]
        )

        with pytest.raises(LocationError) as exc_info:
            await tracker.request_current_location()

        assert exc_info.value.kind is LocationErrorKind.UNKNOWN
        assert isinstance(exc_info.value.__cause__, OSError)

    @pytest.mark.asyncio()
    async def test_slow_provider_times_out(self) -> None:
        async def never(_: PositionOptions) -> Coordinate:
            await asyncio.Event().wait()
            return FIX

        provider = MagicMock()
        provider.get_position = never
        store = GeoDataStore()
        tracker = LocationTracker(
            provider,
            store,
            strategies=(PositionOptions(enable_high_accuracy=True, timeout_s=0.01, maximum_age_s=0),),
        )

        with pytest.raises(LocationError) as exc_info:
            await tracker.request_current_location()
        assert exc_info.value.kind is LocationErrorKind.TIMEOUT

    @pytest.mark.asyncio()
    async def test_without_surface_still_publishes(self) -> None:
        provider = MagicMock()
        provider.get_position = AsyncMock(return_value=FIX)
        store = GeoDataStore()
        tracker = LocationTracker(provider, store, recenter_zoom=12)

        await tracker.request_current_location()

        assert store.current_location == FIX

    @pytest.mark.asyncio()
    async def test_custom_zoom(self) -> None:
        tracker, _, surface, _ = _tracker([FIX], recenter_zoom=11)
        await tracker.request_current_location()
        surface.recenter.assert_called_once_with(FIX, 11)

    @pytest.mark.asyncio()
    async def test_fix_after_store_closed_is_discarded(self) -> None:
        tracker, _, surface, store = _tracker([FIX])
        store.close()

        with pytest.raises(LocationError) as exc_info:
            await tracker.request_current_location()

        assert exc_info.value.kind is LocationErrorKind.UNAVAILABLE
        assert store.current_location is None
        surface.recenter.assert_not_called()

    @pytest.mark.asyncio()
    async def test_no_attempts_raises_unknown(self) -> None:
        tracker, get_position, _, _ = _tracker([FIX])
        tracker._strategies = ()

        with pytest.raises(LocationError) as exc_info:
            await tracker.request_current_location()

        assert exc_info.value.kind is LocationErrorKind.UNKNOWN
        get_position.assert_not_awaited()
