"""REST backend source over ``httpx``.

Talks to the map backend:

- ``GET /api/gsi/pois/area``        — POIs inside a bounding box
- ``GET /api/gsi/routes/area``      — routes inside a bounding box
- ``GET /api/kml-files/public``     — public route-document listing
- ``GET /api/kml-files/{id}/download`` — raw document text

JSON responses use the ``{code, message, data}`` envelope; a non-zero
code is a failure.  Timeouts are the HTTP client's job (``http_timeout_s``);
cancellation comes from the caller's token.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import ValidationError as PydanticValidationError

from geosync.core.constants import (
    DOCUMENT_DOWNLOAD_PATH,
    POI_AREA_PATH,
    POI_FILTER_PARAM,
    PUBLIC_DOCUMENTS_PATH,
    ROUTE_AREA_PATH,
    ROUTE_FILTER_PARAM,
)
from geosync.models.envelope import ApiEnvelope, DocumentPage
from geosync.models.features import POI, Route
from geosync.sources.base import (
    FetchCancelledError,
    FetchHttpError,
    FetchResponseError,
    GeoDataSource,
)

if TYPE_CHECKING:
    from geosync.core.config import MapConfig
    from geosync.models.coordinate import ViewportBounds
    from geosync.sync.cancellation import CancellationToken

logger = logging.getLogger("geosync.sources.http")


class HttpGeoDataSource(GeoDataSource):
    """Backend source using ``httpx.AsyncClient``.

    Args:
        config: Session configuration (base URL, token, timeout).
        client: Optional pre-built client (e.g. with a mock transport).
            A client passed in is not closed by ``aclose()``.
    """

    def __init__(self, config: MapConfig, client: httpx.AsyncClient | None = None) -> None:
        self._config = config
        self._owns_client = client is None
        if client is None:
            headers = {"Accept": "application/json"}
            if config.api_token:
                headers["Authorization"] = f"Bearer {config.api_token}"
            client = httpx.AsyncClient(
                base_url=config.api_base_url,
                timeout=config.http_timeout_s,
                headers=headers,
                follow_redirects=True,
            )
        self._client = client

    async def aclose(self) -> None:
        """Close the HTTP client if this source created it."""
        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # GeoDataSource implementation
    # ------------------------------------------------------------------

    async def fetch_pois(
        self,
        bounds: ViewportBounds,
        poi_types: tuple[str, ...],
        token: CancellationToken,
    ) -> list[POI]:
        params = _area_params(bounds, POI_FILTER_PARAM, poi_types)
        data = await self._get_envelope_data(POI_AREA_PATH, params, token)
        records = _require_list(data, POI_AREA_PATH)
        pois = [poi for poi in (POI.from_dict(r) for r in records if isinstance(r, dict)) if poi]
        logger.info(
            "Fetched POIs | received=%d | usable=%d | types=%s",
            len(records),
            len(pois),
            ",".join(poi_types) or "*",
        )
        return pois

    async def fetch_routes(
        self,
        bounds: ViewportBounds,
        travel_modes: tuple[str, ...],
        token: CancellationToken,
    ) -> list[Route]:
        params = _area_params(bounds, ROUTE_FILTER_PARAM, travel_modes)
        data = await self._get_envelope_data(ROUTE_AREA_PATH, params, token)
        records = _require_list(data, ROUTE_AREA_PATH)
        routes = [
            route for route in (Route.from_dict(r) for r in records if isinstance(r, dict)) if route
        ]
        logger.info(
            "Fetched routes | received=%d | usable=%d | modes=%s",
            len(records),
            len(routes),
            ",".join(travel_modes) or "*",
        )
        return routes

    async def list_public_documents(self, page: int = 0, size: int = 10) -> DocumentPage:
        data = await self._get_envelope_data(
            PUBLIC_DOCUMENTS_PATH, [("page", str(page)), ("size", str(size))], None
        )
        try:
            return DocumentPage.model_validate(data)
        except PydanticValidationError as exc:
            msg = f"Unexpected document page payload: {exc.error_count()} validation error(s)"
            raise FetchResponseError(msg, endpoint=PUBLIC_DOCUMENTS_PATH) from exc

    async def download_document(self, document_id: int) -> str:
        path = DOCUMENT_DOWNLOAD_PATH.format(document_id=document_id)
        response = await self._send(path, None, None)
        logger.info(
            "Downloaded route document | id=%s | bytes=%d", document_id, len(response.content)
        )
        return response.text

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _get_envelope_data(
        self,
        path: str,
        params: list[tuple[str, str]],
        token: CancellationToken | None,
    ) -> Any:
        """GET *path* and return the envelope's ``data`` on success."""
        response = await self._send(path, params, token)
        try:
            payload = response.json()
        except ValueError as exc:
            msg = f"Response is not valid JSON: {exc}"
            raise FetchResponseError(msg, endpoint=path) from exc

        try:
            envelope = ApiEnvelope.model_validate(payload)
        except PydanticValidationError as exc:
            msg = "Response does not match the {code, message, data} envelope"
            raise FetchResponseError(msg, endpoint=path) from exc

        if not envelope.ok:
            msg = envelope.message or f"Backend returned code {envelope.code}"
            raise FetchResponseError(msg, endpoint=path, response_code=envelope.code)
        return envelope.data

    async def _send(
        self,
        path: str,
        params: list[tuple[str, str]] | None,
        token: CancellationToken | None,
    ) -> httpx.Response:
        """Issue a GET bound to *token*; map transport/HTTP errors to ``FetchHttpError``."""
        if token is not None and token.cancelled:
            msg = "Request cancelled before it was sent"
            raise FetchCancelledError(msg, endpoint=path)

        request = asyncio.ensure_future(self._client.get(path, params=params))
        unregister = token.add_callback(request.cancel) if token is not None else None
        try:
            response = await request
        except asyncio.CancelledError:
            if token is not None and token.cancelled:
                logger.debug("Request aborted by token | path=%s | token=%s", path, token.label)
                msg = "Request cancelled"
                raise FetchCancelledError(msg, endpoint=path) from None
            raise
        except httpx.TimeoutException as exc:
            msg = f"Request timed out: {exc}"
            raise FetchHttpError(msg, endpoint=path) from exc
        except httpx.HTTPError as exc:
            msg = f"Request failed: {exc}"
            raise FetchHttpError(msg, endpoint=path) from exc
        finally:
            if unregister is not None:
                unregister()

        if response.is_error:
            msg = f"HTTP error! status: {response.status_code}"
            raise FetchHttpError(msg, endpoint=path, status_code=response.status_code)
        return response


# ---------------------------------------------------------------------------
# Module-level helpers
# ---------------------------------------------------------------------------


def _area_params(
    bounds: ViewportBounds, filter_param: str, values: tuple[str, ...]
) -> list[tuple[str, str]]:
    """``minLng/minLat/maxLng/maxLat`` plus one repeated filter param per value."""
    params = list(bounds.to_query_params().items())
    params.extend((filter_param, value) for value in values)
    return params


def _require_list(data: Any, endpoint: str) -> list[Any]:
    if data is None:
        return []
    if not isinstance(data, list):
        msg = f"Expected a list in 'data', got {type(data).__name__}"
        raise FetchResponseError(msg, endpoint=endpoint)
    return data
