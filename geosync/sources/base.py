"""GeoDataSource abstract base class.

Defines the contract between the sync engine and the backend.  The
scheduler calls ``fetch_area`` for its lanes; the session uses the
document listing and download calls.

Every area fetch receives a ``CancellationToken``.  Implementations
should abort the underlying request when the token is cancelled and raise
``FetchCancelledError``; the scheduler also discards late results by
sequence number, so honouring the token is best-effort.
"""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING

from geosync.core.constants import Lane
from geosync.core.exceptions import TransientError

if TYPE_CHECKING:
    from geosync.models.coordinate import FetchFilters, ViewportBounds
    from geosync.models.envelope import DocumentPage
    from geosync.models.features import POI, Route
    from geosync.sync.cancellation import CancellationToken


class GeoDataSource(abc.ABC):
    """Abstract base class for backend data sources."""

    # ------------------------------------------------------------------
    # Abstract methods: every source must implement these
    # ------------------------------------------------------------------

    @abc.abstractmethod
    async def fetch_pois(
        self,
        bounds: ViewportBounds,
        poi_types: tuple[str, ...],
        token: CancellationToken,
    ) -> list[POI]:
        """Fetch the POIs inside *bounds*, filtered by category.

        Raises:
            FetchFailure: On network errors or a non-zero response code.
        """

    @abc.abstractmethod
    async def fetch_routes(
        self,
        bounds: ViewportBounds,
        travel_modes: tuple[str, ...],
        token: CancellationToken,
    ) -> list[Route]:
        """Fetch the routes inside *bounds*, filtered by travel mode.

        Raises:
            FetchFailure: On network errors or a non-zero response code.
        """

    @abc.abstractmethod
    async def list_public_documents(self, page: int = 0, size: int = 10) -> DocumentPage:
        """Fetch one page of public route-document metadata."""

    @abc.abstractmethod
    async def download_document(self, document_id: int) -> str:
        """Fetch the raw text of a stored route document."""

    # ------------------------------------------------------------------
    # Lane dispatch
    # ------------------------------------------------------------------

    async def fetch_area(
        self,
        lane: Lane,
        bounds: ViewportBounds,
        filters: FetchFilters,
        token: CancellationToken,
    ) -> list[POI] | list[Route]:
        """Fetch *lane*'s items for *bounds* using the lane's filters."""
        if lane is Lane.POIS:
            return await self.fetch_pois(bounds, filters.poi_types, token)
        if lane is Lane.ROUTES:
            return await self.fetch_routes(bounds, filters.travel_modes, token)
        msg = f"Lane {lane.value!r} is not fetched by area"
        raise ValueError(msg)

    async def aclose(self) -> None:  # noqa: B027
        """Release resources held by the source (no-op by default)."""


# ---------------------------------------------------------------------------
# Fetch exceptions
# ---------------------------------------------------------------------------


class FetchFailure(TransientError):
    """A backend call failed.  Lane-scoped, transient, never auto-retried.

    Attributes:
        endpoint: Backend path that failed.
        message: Human-readable error description.
    """

    default_stage = "fetch"
    default_code = "FETCH_FAILED"

    def __init__(self, message: str, *, endpoint: str = "") -> None:
        self.endpoint = endpoint
        super().__init__(message)

    def __str__(self) -> str:
        if self.endpoint:
            return f"[{self.endpoint}] {self.message}"
        return self.message


class FetchHttpError(FetchFailure):
    """Transport failure or non-2xx HTTP status.

    Attributes:
        status_code: HTTP status, ``None`` for transport-level failures.
    """

    default_code = "FETCH_HTTP_ERROR"

    def __init__(
        self, message: str, *, endpoint: str = "", status_code: int | None = None
    ) -> None:
        self.status_code = status_code
        super().__init__(message, endpoint=endpoint)


class FetchResponseError(FetchFailure):
    """Response arrived but is unusable: non-zero code or malformed payload.

    Attributes:
        response_code: Envelope ``code``, ``None`` if the envelope itself is bad.
    """

    default_code = "FETCH_RESPONSE_ERROR"

    def __init__(
        self, message: str, *, endpoint: str = "", response_code: int | None = None
    ) -> None:
        self.response_code = response_code
        super().__init__(message, endpoint=endpoint)


class FetchCancelledError(FetchFailure):
    """The request was aborted through its cancellation token."""

    default_code = "FETCH_CANCELLED"
