"""GeoDataStore — immutable-snapshot store for the map session.

Holds the latest POI set, route set and imported track set, plus the
per-lane fetch error and the current device location.  Readers get
tuples; writers swap in a new tuple, so a reader never observes a
collection mid-replacement.  All mutation happens on the event-loop
thread, so no locking is involved.

Lifecycle:
    Constructed per map session, closed when the session ends.  Writes
    after ``close()`` raise ``StoreClosedError``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from geosync.core.constants import Lane
from geosync.core.exceptions import PermanentError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from geosync.core.exceptions import GeoSyncError
    from geosync.models.coordinate import Coordinate
    from geosync.models.track import ParsedTrack

logger = logging.getLogger("geosync.sync.store")

class StoreClosedError(PermanentError):
    """Raised when writing to a store whose session has ended."""

    default_stage = "store"
    default_code = "STORE_CLOSED"


class GeoDataStore:
    """Snapshot store shared by the scheduler, the parser and the renderer.

    Only the scheduler (``pois``/``routes``) and document imports
    (``tracks``) write; the rendering layer reads snapshots and may
    subscribe to change notifications.
    """

    def __init__(self) -> None:
        self._snapshots: dict[Lane, tuple[Any, ...]] = {lane: () for lane in Lane}
        self._versions: dict[Lane, int] = {lane: 0 for lane in Lane}
        self._errors: dict[Lane, GeoSyncError | None] = {lane: None for lane in Lane}
        self._location: Coordinate | None = None
        self._listeners: list[Callable[[Lane | None], None]] = []
        self._closed = False

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_snapshot(self, lane: Lane) -> tuple[Any, ...]:
        """Return the current immutable collection for *lane*."""
        return self._snapshots[lane]

    def version(self, lane: Lane) -> int:
        """Monotonic counter bumped on every write to *lane*."""
        return self._versions[lane]

    def get_error(self, lane: Lane) -> GeoSyncError | None:
        """Last fetch failure for *lane*, cleared by the next success."""
        return self._errors[lane]

    def error_payloads(self) -> dict[str, dict[str, object]]:
        """Structured payloads of the current lane errors, keyed by lane name.

        Lanes without an error are omitted.  Each payload carries
        ``category``, ``code``, ``stage``, ``message`` and ``retryable`` so
        the rendering layer can pick a banner and offer ``retry(lane)``.
        """
        return {
            lane.value: error.to_error_dict()
            for lane, error in self._errors.items()
            if error is not None
        }

    @property
    def current_location(self) -> Coordinate | None:
        return self._location

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def replace(self, lane: Lane, items: Iterable[Any]) -> None:
        """Replace *lane*'s contents wholesale (no merge)."""
        self._ensure_open()
        snapshot = tuple(items)
        self._snapshots[lane] = snapshot
        self._versions[lane] += 1
        logger.debug(
            "Store lane replaced | lane=%s | items=%d | version=%d",
            lane.value,
            len(snapshot),
            self._versions[lane],
        )
        self._notify(lane)

    def append_track(self, track: ParsedTrack) -> None:
        """Add an imported track to the ``tracks`` lane."""
        self._ensure_open()
        self._snapshots[Lane.TRACKS] = (*self._snapshots[Lane.TRACKS], track)
        self._versions[Lane.TRACKS] += 1
        logger.debug(
            "Track appended | tracks=%d | points=%d",
            len(self._snapshots[Lane.TRACKS]),
            len(track.track_points),
        )
        self._notify(Lane.TRACKS)

    def set_error(self, lane: Lane, error: GeoSyncError | None) -> None:
        """Record (or clear with ``None``) the lane-scoped fetch error."""
        self._ensure_open()
        if self._errors[lane] is error:
            return
        self._errors[lane] = error
        self._notify(lane)

    def set_location(self, location: Coordinate) -> None:
        """Publish the current device location."""
        self._ensure_open()
        self._location = location
        self._notify(None)

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, listener: Callable[[Lane | None], None]) -> Callable[[], None]:
        """Call *listener* after every change.  Returns an unsubscribe function.

        The listener receives the changed lane, or ``None`` for a location change.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def close(self) -> None:
        """End the session: drop listeners and refuse further writes."""
        self._closed = True
        self._listeners.clear()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _ensure_open(self) -> None:
        if self._closed:
            msg = "GeoDataStore is closed; the map session has ended"
            raise StoreClosedError(msg)

    def _notify(self, lane: Lane | None) -> None:
        for listener in list(self._listeners):
            try:
                listener(lane)
            except Exception:
                logger.exception(
                    "Store listener failed | lane=%s", lane.value if lane else "location"
                )
