"""Pydantic models for backend wire payloads.

Every backend response is wrapped in ``{code, message, data}``; a
non-zero ``code`` means the call failed even when HTTP said 200.  The
route-document listing returns a page object inside ``data``.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from geosync.core.constants import SUCCESS_CODE


class ApiEnvelope(BaseModel):
    """Standard response envelope.

    Attributes:
        code: ``0`` on success, anything else is a failure.
        message: Backend message, mostly useful on failure.
        data: Payload; shape depends on the endpoint.
    """

    code: int
    message: str = ""
    data: Any = None

    @property
    def ok(self) -> bool:
        return self.code == SUCCESS_CODE


class DocumentSummary(BaseModel):
    """Metadata for a stored route document.

    Unknown backend fields are ignored.  Distances are metres, as the
    backend stores them.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int
    file_name: str = Field(default="", alias="fileName")
    route_name: str = Field(default="", alias="routeName")
    document_name: str = Field(default="", alias="documentName")
    travel_mode: str = Field(default="", alias="travelMode")
    creator_name: str = Field(default="", alias="creatorName")
    track_point_count: int = Field(default=0, alias="trackPointCount")
    placemark_count: int = Field(default=0, alias="placemarkCount")
    total_distance_m: float = Field(default=0.0, alias="totalDistance")
    max_altitude: float | None = Field(default=None, alias="maxAltitude")
    min_altitude: float | None = Field(default=None, alias="minAltitude")
    is_public: bool = Field(default=True, alias="isPublic")


class DocumentPage(BaseModel):
    """One page of the public route-document listing."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    content: list[DocumentSummary] = Field(default_factory=list)
    total_elements: int = Field(default=0, alias="totalElements")
    total_pages: int = Field(default=0, alias="totalPages")
    number: int = 0
    size: int = 0
