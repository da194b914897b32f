"""ViewportFetchScheduler — viewport-driven fetch state machine.

Turns a noisy stream of viewport and filter changes into at most one
current network fetch per lane (``pois`` and ``routes`` run
independently).

Per-lane states::

    IDLE ──event──▶ DEBOUNCING ──quiet period──▶ IN_FLIGHT ──result──▶ IDLE
                        ▲                            │
                        └──────────event─────────────┘ (request stays outstanding)

- Debounce: every event re-arms the lane's quiet-period timer; only the
  last event of a burst fires.
- Fingerprint: when the timer fires, the request key (bounds + the lane's
  filters) is compared with the last *issued* key.  Equal keys are a
  no-op.
- Supersession: issuing a new request cancels the outstanding one through
  its ``CancellationToken``.  A superseded result that arrives anyway is
  dropped because its sequence number is no longer the lane's current one.
- Failure: the error is published to the store for the lane, the recorded
  fingerprint is cleared and nothing is retried.  The next event, or a
  user ``retry()``, starts a new cycle.
- Teardown: timers and requests are cancelled and every later event or
  result is ignored, so nothing is written to a finished session's store.

Timeouts belong to the I/O layer; the scheduler only handles supersession.
All methods run on the event-loop thread.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any
from urllib.parse import urlencode

from geosync.core.constants import FETCH_LANES, POI_FILTER_PARAM, ROUTE_FILTER_PARAM, Lane
from geosync.models.coordinate import FetchFilters
from geosync.sources.base import FetchCancelledError, FetchFailure
from geosync.sync.cancellation import CancellationToken

if TYPE_CHECKING:
    from geosync.core.config import MapConfig
    from geosync.models.coordinate import ViewportBounds
    from geosync.sources.base import GeoDataSource
    from geosync.sync.store import GeoDataStore

logger = logging.getLogger("geosync.sync.scheduler")

DEFAULT_DEBOUNCE_S = 0.5


class LaneState(enum.Enum):
    """Observable state of a fetch lane."""

    IDLE = "idle"
    DEBOUNCING = "debouncing"
    IN_FLIGHT = "in_flight"


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ViewportChanged:
    """The map was panned or zoomed; *filters* optionally replaces the active filters."""

    bounds: ViewportBounds
    filters: FetchFilters | None = None


@dataclass(frozen=True, slots=True)
class FiltersChanged:
    """The user changed POI categories or travel modes."""

    filters: FetchFilters


@dataclass(frozen=True, slots=True)
class FetchCompleted:
    """Request *sequence* on *lane* returned *items*."""

    lane: Lane
    sequence: int
    items: tuple[Any, ...]


@dataclass(frozen=True, slots=True)
class FetchFailed:
    """Request *sequence* on *lane* failed with *error*."""

    lane: Lane
    sequence: int
    error: FetchFailure


@dataclass(frozen=True, slots=True)
class Teardown:
    """The map session is ending."""


SchedulerEvent = ViewportChanged | FiltersChanged | FetchCompleted | FetchFailed | Teardown


# ---------------------------------------------------------------------------
# Lane bookkeeping
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class _Request:
    sequence: int
    fingerprint: str
    token: CancellationToken
    task: asyncio.Task[None]


@dataclass(slots=True)
class _LaneRuntime:
    lane: Lane
    enabled: bool
    debounce_task: asyncio.Task[None] | None = None
    request: _Request | None = None
    last_fingerprint: str | None = None
    sequence: int = 0
    issued_count: int = 0
    superseded_count: int = 0
    discarded_count: int = 0

    @property
    def state(self) -> LaneState:
        if self.debounce_task is not None and not self.debounce_task.done():
            return LaneState.DEBOUNCING
        if self.request is not None:
            return LaneState.IN_FLIGHT
        return LaneState.IDLE


@dataclass(frozen=True, slots=True)
class LaneStatus:
    """Read-only view of a lane for the rendering layer.

    Attributes:
        lane: The lane.
        state: Current state.
        enabled: Whether the lane follows the viewport.
        in_flight: Whether a request is outstanding (also while debouncing).
        sequence: Sequence number of the most recently issued request.
        last_fingerprint: Request key of the last issued request, if recorded.
        issued_count: Requests issued since construction.
        superseded_count: Requests cancelled by a newer one.
        discarded_count: Late results dropped on arrival.
    """

    lane: Lane
    state: LaneState
    enabled: bool
    in_flight: bool
    sequence: int
    last_fingerprint: str | None = None
    issued_count: int = 0
    superseded_count: int = 0
    discarded_count: int = 0


def build_fingerprint(lane: Lane, bounds: ViewportBounds, filters: FetchFilters) -> str:
    """Canonical request key for *lane*.

    Bounds parameters in fixed order, then the lane's filter values
    de-duplicated and sorted, so filter order does not matter.
    """
    if lane is Lane.POIS:
        param, values = POI_FILTER_PARAM, filters.poi_types
    elif lane is Lane.ROUTES:
        param, values = ROUTE_FILTER_PARAM, filters.travel_modes
    else:
        msg = f"Lane {lane.value!r} has no fetch fingerprint"
        raise ValueError(msg)
    params = list(bounds.to_query_params().items())
    params.extend((param, value) for value in sorted(set(values)))
    return urlencode(params)


# ---------------------------------------------------------------------------
# Scheduler
# ---------------------------------------------------------------------------


class ViewportFetchScheduler:
    """Decides when and whether to fetch POIs and routes for the viewport.

    Example usage::

        scheduler = ViewportFetchScheduler(source, store, config=config)
        scheduler.on_viewport_changed(bounds, FetchFilters(poi_types=("scenic",)))
        ...
        await scheduler.aclose()

    Args:
        source: Backend data source.
        store: Store receiving results and lane errors.
        config: Session configuration (debounce period, enabled lanes).
        debounce_s: Overrides ``config.debounce_s`` when given.
    """

    def __init__(
        self,
        source: GeoDataSource,
        store: GeoDataStore,
        *,
        config: MapConfig | None = None,
        debounce_s: float | None = None,
    ) -> None:
        self._source = source
        self._store = store
        if debounce_s is None:
            debounce_s = config.debounce_s if config is not None else DEFAULT_DEBOUNCE_S
        self._debounce_s = debounce_s
        enabled = {
            Lane.POIS: config.enable_poi_loading if config is not None else True,
            Lane.ROUTES: config.enable_route_loading if config is not None else True,
        }
        self._lanes: dict[Lane, _LaneRuntime] = {
            lane: _LaneRuntime(lane=lane, enabled=enabled[lane]) for lane in FETCH_LANES
        }
        self._bounds: ViewportBounds | None = None
        self._filters = FetchFilters()
        self._tasks: set[asyncio.Task[None]] = set()
        self._torn_down = False

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def torn_down(self) -> bool:
        return self._torn_down

    @property
    def filters(self) -> FetchFilters:
        return self._filters

    def on_viewport_changed(
        self, bounds: ViewportBounds, filters: FetchFilters | None = None
    ) -> None:
        """Report new viewport bounds (fire-and-forget)."""
        self.dispatch(ViewportChanged(bounds=bounds, filters=filters))

    def on_filters_changed(self, filters: FetchFilters) -> None:
        """Report new filters (fire-and-forget)."""
        self.dispatch(FiltersChanged(filters=filters))

    def teardown(self) -> None:
        """Cancel everything outstanding and stop accepting events."""
        self.dispatch(Teardown())

    def dispatch(self, event: SchedulerEvent) -> None:
        """Feed one event into the lane state machines."""
        if self._torn_down:
            logger.debug("Ignoring %s after teardown", type(event).__name__)
            return

        if isinstance(event, ViewportChanged):
            self._bounds = event.bounds
            if event.filters is not None:
                self._filters = event.filters
            self._arm_all()
        elif isinstance(event, FiltersChanged):
            self._filters = event.filters
            self._arm_all()
        elif isinstance(event, FetchCompleted):
            self._handle_completed(event)
        elif isinstance(event, FetchFailed):
            self._handle_failed(event)
        elif isinstance(event, Teardown):
            self._handle_teardown()
        else:
            msg = f"Unknown scheduler event: {event!r}"
            raise TypeError(msg)

    def retry(self, lane: Lane) -> None:
        """User-initiated retry: fetch *lane* now, even for unchanged bounds."""
        if self._torn_down:
            return
        runtime = self._lanes[lane]
        if not runtime.enabled:
            return
        self._cancel_debounce(runtime)
        runtime.last_fingerprint = None
        self._issue(runtime)

    def set_lane_enabled(self, lane: Lane, enabled: bool) -> None:
        """Turn viewport loading for *lane* on or off.

        Disabling cancels pending work and empties the lane in the store.
        Enabling schedules a fetch for the current bounds.
        """
        if self._torn_down:
            return
        runtime = self._lanes[lane]
        if runtime.enabled == enabled:
            return
        runtime.enabled = enabled
        if enabled:
            self._arm(runtime)
            return
        self._cancel_debounce(runtime)
        self._supersede(runtime)
        runtime.last_fingerprint = None
        self._store.replace(lane, ())
        self._store.set_error(lane, None)

    def lane_status(self, lane: Lane) -> LaneStatus:
        """Snapshot of *lane*'s scheduling state."""
        runtime = self._lanes[lane]
        return LaneStatus(
            lane=lane,
            state=runtime.state,
            enabled=runtime.enabled,
            in_flight=runtime.request is not None,
            sequence=runtime.sequence,
            last_fingerprint=runtime.last_fingerprint,
            issued_count=runtime.issued_count,
            superseded_count=runtime.superseded_count,
            discarded_count=runtime.discarded_count,
        )

    async def drain(self) -> None:
        """Wait until no debounce timer is armed and no request is outstanding.

        Requests whose source ignores cancellation are awaited too.
        """
        while True:
            pending = [t for t in self._tasks if not t.done()]
            pending.extend(
                rt.debounce_task
                for rt in self._lanes.values()
                if rt.debounce_task is not None and not rt.debounce_task.done()
            )
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    async def aclose(self) -> None:
        """Tear down and wait for outstanding request tasks to finish."""
        self.teardown()
        await self.drain()

    # ------------------------------------------------------------------
    # Debounce
    # ------------------------------------------------------------------

    def _arm_all(self) -> None:
        for runtime in self._lanes.values():
            if runtime.enabled:
                self._arm(runtime)

    def _arm(self, runtime: _LaneRuntime) -> None:
        """(Re)start the lane's quiet-period timer."""
        self._cancel_debounce(runtime)
        runtime.debounce_task = asyncio.get_running_loop().create_task(
            self._debounce(runtime), name=f"geosync-debounce-{runtime.lane.value}"
        )

    async def _debounce(self, runtime: _LaneRuntime) -> None:
        await asyncio.sleep(self._debounce_s)
        runtime.debounce_task = None
        if not self._torn_down:
            self._issue(runtime)

    @staticmethod
    def _cancel_debounce(runtime: _LaneRuntime) -> None:
        if runtime.debounce_task is not None:
            runtime.debounce_task.cancel()
            runtime.debounce_task = None

    # ------------------------------------------------------------------
    # Issue / supersede
    # ------------------------------------------------------------------

    def _issue(self, runtime: _LaneRuntime) -> None:
        """Quiet period over: fetch unless the request key is unchanged."""
        lane = runtime.lane
        if self._bounds is None:
            logger.debug("No viewport bounds yet | lane=%s", lane.value)
            return

        bounds = self._bounds
        filters = self._filters
        fingerprint = build_fingerprint(lane, bounds, filters)
        if fingerprint == runtime.last_fingerprint:
            logger.debug("Unchanged request key, skipping fetch | lane=%s", lane.value)
            return

        self._supersede(runtime)

        runtime.sequence += 1
        runtime.issued_count += 1
        runtime.last_fingerprint = fingerprint
        sequence = runtime.sequence
        token = CancellationToken(label=f"{lane.value}#{sequence}")
        task = asyncio.get_running_loop().create_task(
            self._run_fetch(lane, sequence, bounds, filters, token),
            name=f"geosync-fetch-{lane.value}-{sequence}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        runtime.request = _Request(
            sequence=sequence, fingerprint=fingerprint, token=token, task=task
        )
        logger.info(
            "Fetch issued | lane=%s | seq=%d | key=%s", lane.value, sequence, fingerprint
        )

    def _supersede(self, runtime: _LaneRuntime) -> None:
        """Cancel the lane's outstanding request, if any."""
        request = runtime.request
        if request is None:
            return
        runtime.request = None
        runtime.superseded_count += 1
        request.token.cancel()
        logger.info(
            "Fetch superseded | lane=%s | seq=%d", runtime.lane.value, request.sequence
        )

    async def _run_fetch(
        self,
        lane: Lane,
        sequence: int,
        bounds: ViewportBounds,
        filters: FetchFilters,
        token: CancellationToken,
    ) -> None:
        try:
            items = await self._source.fetch_area(lane, bounds, filters, token)
        except FetchCancelledError:
            logger.debug("Fetch cancelled | lane=%s | seq=%d", lane.value, sequence)
            return
        except FetchFailure as exc:
            self.dispatch(FetchFailed(lane=lane, sequence=sequence, error=exc))
            return
        except Exception as exc:
            logger.exception("Unexpected fetch error | lane=%s | seq=%d", lane.value, sequence)
            failure = FetchFailure(f"Unexpected error: {exc}")
            self.dispatch(FetchFailed(lane=lane, sequence=sequence, error=failure))
            return
        self.dispatch(FetchCompleted(lane=lane, sequence=sequence, items=tuple(items)))

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    def _is_current(self, runtime: _LaneRuntime, sequence: int) -> bool:
        return runtime.request is not None and runtime.request.sequence == sequence

    def _handle_completed(self, event: FetchCompleted) -> None:
        runtime = self._lanes[event.lane]
        if not self._is_current(runtime, event.sequence):
            runtime.discarded_count += 1
            logger.info(
                "Discarding stale result | lane=%s | seq=%d | current=%d",
                event.lane.value,
                event.sequence,
                runtime.sequence,
            )
            return
        runtime.request = None
        self._store.replace(event.lane, event.items)
        self._store.set_error(event.lane, None)
        logger.info(
            "Fetch completed | lane=%s | seq=%d | items=%d",
            event.lane.value,
            event.sequence,
            len(event.items),
        )

    def _handle_failed(self, event: FetchFailed) -> None:
        runtime = self._lanes[event.lane]
        if not self._is_current(runtime, event.sequence):
            runtime.discarded_count += 1
            logger.debug(
                "Discarding stale failure | lane=%s | seq=%d", event.lane.value, event.sequence
            )
            return
        runtime.request = None
        runtime.last_fingerprint = None
        self._store.set_error(event.lane, event.error)
        logger.warning(
            "Fetch failed | lane=%s | seq=%d | category=%s | code=%s | error=%s",
            event.lane.value,
            event.sequence,
            event.error.category,
            event.error.code,
            event.error,
        )

    def _handle_teardown(self) -> None:
        self._torn_down = True
        for runtime in self._lanes.values():
            self._cancel_debounce(runtime)
            request = runtime.request
            if request is not None:
                runtime.request = None
                request.token.cancel()
        logger.info("Scheduler torn down | outstanding_tasks=%d", len(self._tasks))
