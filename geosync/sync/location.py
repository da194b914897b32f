"""LocationTracker — device positioning with fallback strategies.

A fix is requested from the positioning capability with progressively
more permissive options:

1. high accuracy, 5 s timeout, no cached fix;
2. low accuracy, 15 s timeout, cached fix up to 60 s old;
3. low accuracy, 5 s timeout, stale cached fix up to 10 min old.

The first success wins.  It is published to the store and the map is
recentred on it once (no continuous follow).  A permission denial ends
the attempt immediately because no later strategy can succeed.  If every
strategy fails, the last error is raised.
"""

from __future__ import annotations

import asyncio
import dataclasses
import enum
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from geosync.core.exceptions import TransientError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from geosync.models.coordinate import Coordinate
    from geosync.sync.store import GeoDataStore

logger = logging.getLogger("geosync.sync.location")

DEFAULT_RECENTER_ZOOM = 15


class LocationErrorKind(enum.Enum):
    """Why a location request failed."""

    PERMISSION_DENIED = "permission_denied"
    UNAVAILABLE = "unavailable"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


class LocationError(TransientError):
    """Positioning failed.  ``kind`` tells the UI which message to show.

    A permission denial is not retryable without user action in the
    device settings; every other kind is.
    """

    default_stage = "location"

    def __init__(self, kind: LocationErrorKind, message: str = "") -> None:
        self.kind = kind
        super().__init__(
            message or f"Location request failed ({kind.value})",
            code=f"LOCATION_{kind.name}",
            retryable=kind is not LocationErrorKind.PERMISSION_DENIED,
        )


@dataclass(frozen=True, slots=True)
class PositionOptions:
    """Options for one positioning attempt.

    Attributes:
        enable_high_accuracy: Ask for a GPS-grade fix.
        timeout_s: How long the attempt may take.
        maximum_age_s: Oldest cached fix acceptable (``0`` = fresh only).
    """

    enable_high_accuracy: bool
    timeout_s: float
    maximum_age_s: float


DEFAULT_STRATEGIES: tuple[PositionOptions, ...] = (
    PositionOptions(enable_high_accuracy=True, timeout_s=5.0, maximum_age_s=0.0),
    PositionOptions(enable_high_accuracy=False, timeout_s=15.0, maximum_age_s=60.0),
    PositionOptions(enable_high_accuracy=False, timeout_s=5.0, maximum_age_s=600.0),
)


def build_strategies(stale_max_age_s: float) -> tuple[PositionOptions, ...]:
    """Default strategies with the final stale-fix age replaced."""
    *head, last = DEFAULT_STRATEGIES
    return (*head, dataclasses.replace(last, maximum_age_s=stale_max_age_s))


class PositionProvider(Protocol):
    """Device positioning capability."""

    async def get_position(self, options: PositionOptions) -> Coordinate:
        """Return a fix or raise ``LocationError``."""
        ...


class MapSurface(Protocol):
    """The part of the rendering layer the tracker talks to."""

    def recenter(self, coordinate: Coordinate, zoom: int) -> None:
        ...


class LocationTracker:
    """Resolves the device location and recentres the map once.

    Args:
        provider: Positioning capability.
        store: Receives the resolved location.
        surface: Map to recentre; optional.
        strategies: Attempts in order; defaults to ``DEFAULT_STRATEGIES``.
        recenter_zoom: Zoom requested on recentre.
    """

    def __init__(
        self,
        provider: PositionProvider,
        store: GeoDataStore,
        *,
        surface: MapSurface | None = None,
        strategies: Sequence[PositionOptions] = DEFAULT_STRATEGIES,
        recenter_zoom: int = DEFAULT_RECENTER_ZOOM,
    ) -> None:
        if not strategies:
            msg = "LocationTracker needs at least one strategy"
            raise ValueError(msg)
        self._provider = provider
        self._store = store
        self._surface = surface
        self._strategies = tuple(strategies)
        self._recenter_zoom = recenter_zoom

    @property
    def strategies(self) -> tuple[PositionOptions, ...]:
        return self._strategies

    async def request_current_location(self) -> Coordinate:
        """Try each strategy in turn and return the first fix.

        Raises:
            LocationError: The last strategy's error, the permission
                denial that stopped the sequence, or ``UNAVAILABLE`` when
                the store was closed before the fix arrived.
        """
        last_error: LocationError | None = None
        for attempt, options in enumerate(self._strategies, start=1):
            try:
                coordinate = await self._attempt(options)
            except LocationError as exc:
                last_error = exc
            else:
                logger.info(
                    "Location resolved | attempt=%d | high_accuracy=%s | lat=%.6f | lng=%.6f",
                    attempt,
                    options.enable_high_accuracy,
                    coordinate.latitude,
                    coordinate.longitude,
                )
                self._publish(coordinate)
                return coordinate

            logger.warning(
                "Location attempt failed | attempt=%d | kind=%s | error=%s",
                attempt,
                last_error.kind.value,
                last_error.message,
            )
            if last_error.kind is LocationErrorKind.PERMISSION_DENIED:
                break

        if last_error is None:
            msg = "No positioning attempt was made"
            raise LocationError(LocationErrorKind.UNKNOWN, msg)
        raise last_error

    async def _attempt(self, options: PositionOptions) -> Coordinate:
        """One positioning call, with its failures mapped to ``LocationError``."""
        try:
            return await asyncio.wait_for(
                self._provider.get_position(options), timeout=options.timeout_s
            )
        except LocationError:
            raise
        except TimeoutError as exc:
            msg = f"No fix within {options.timeout_s:g}s"
            raise LocationError(LocationErrorKind.TIMEOUT, msg) from exc
        except Exception as exc:
            msg = f"Positioning failed: {exc}"
            raise LocationError(LocationErrorKind.UNKNOWN, msg) from exc

    def _publish(self, coordinate: Coordinate) -> None:
        """Write the fix to the store and recentre, unless the session has ended."""
        if self._store.closed:
            logger.info("Location fix arrived after session close; discarded")
            msg = "Map session closed before a fix was resolved"
            raise LocationError(LocationErrorKind.UNAVAILABLE, msg)
        self._store.set_location(coordinate)
        if self._surface is not None:
            self._surface.recenter(coordinate, self._recenter_zoom)
