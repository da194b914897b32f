"""Data models for a parsed route document.

A ``ParsedTrack`` is the output of the document parser and the unit the
store keeps in its ``tracks`` lane.  It is created once per parse call
and never mutated; re-parsing produces a new instance.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

from geosync.models.coordinate import Coordinate
from geosync.utils.geomath import path_length


class PlacemarkKind(enum.Enum):
    """Role of an annotation point.

    Values:
        START:      Marked as the route's start (``起点`` / ``startPoint``).
        END:        Marked as the route's end (``终点`` / ``endPoint``).
        ATTACHMENT: Carries attachment references (photos, media).
        PLAIN:      Any other annotation.
    """

    START = "start"
    END = "end"
    ATTACHMENT = "attachment"
    PLAIN = "plain"


@dataclass(frozen=True, slots=True)
class TrackPoint:
    """A coordinate at a fixed position in a track.

    Attributes:
        coordinate: The position.
        index: Zero-based position in the owning track.
    """

    coordinate: Coordinate
    index: int

    @property
    def latitude(self) -> float:
        return self.coordinate.latitude

    @property
    def longitude(self) -> float:
        return self.coordinate.longitude

    @property
    def altitude(self) -> float | None:
        return self.coordinate.altitude


@dataclass(frozen=True, slots=True)
class Placemark:
    """An annotated point; not part of the ordered path.

    Attributes:
        coordinate: Position of the annotation.
        name: Placemark name, if present.
        description: Placemark description, if present.
        kind: Role of the annotation.
        attachments: Attachment references (URLs or file names).
        metadata: Remaining ``ExtendedData`` key-value pairs, in document order.
    """

    coordinate: Coordinate
    name: str | None = None
    description: str | None = None
    kind: PlacemarkKind = PlacemarkKind.PLAIN
    attachments: tuple[str, ...] = field(default_factory=tuple)
    metadata: tuple[tuple[str, str], ...] = field(default_factory=tuple)

    @property
    def metadata_dict(self) -> dict[str, str]:
        """Copy of ``metadata`` as a mapping."""
        return dict(self.metadata)


@dataclass(frozen=True, slots=True)
class TrackStats:
    """Summary figures for a track.

    Attributes:
        point_count: Number of track points.
        total_distance_km: Sum of haversine distances between consecutive points.
        min_altitude: Lowest altitude in metres, ``None`` without altitude data.
        max_altitude: Highest altitude in metres, ``None`` without altitude data.
        total_ascent: Sum of positive altitude steps in metres.
        total_descent: Sum of negative altitude steps in metres (positive number).
    """

    point_count: int = 0
    total_distance_km: float = 0.0
    min_altitude: float | None = None
    max_altitude: float | None = None
    total_ascent: float = 0.0
    total_descent: float = 0.0


@dataclass(frozen=True, slots=True)
class ParsedTrack:
    """An ordered, renderable track recovered from a route document.

    Attributes:
        track_points: Ordered track.
        placemarks: Annotation points, in document order.
        source_had_explicit_path: Whether the document carried a path
            element that yielded at least one valid point.
        dropped_coordinate_count: Coordinates discarded as invalid
            (unparseable or outside WGS 84 bounds).
        reordered: Whether the track was reconstructed by
            nearest-neighbour ordering.
        name: Document-level name, if present.
        description: Document-level description, if present.
    """

    track_points: tuple[TrackPoint, ...] = field(default_factory=tuple)
    placemarks: tuple[Placemark, ...] = field(default_factory=tuple)
    source_had_explicit_path: bool = False
    dropped_coordinate_count: int = 0
    reordered: bool = False
    name: str | None = None
    description: str | None = None

    @classmethod
    def from_coordinates(cls, coordinates: list[Coordinate], **kwargs: object) -> ParsedTrack:
        """Build a track, assigning sequence indexes in list order."""
        points = tuple(TrackPoint(coordinate=c, index=i) for i, c in enumerate(coordinates))
        return cls(track_points=points, **kwargs)  # type: ignore[arg-type]

    @property
    def coordinates(self) -> list[Coordinate]:
        """Track positions in order."""
        return [p.coordinate for p in self.track_points]

    @property
    def start_point(self) -> Coordinate | None:
        """First track point, ``None`` for an empty track."""
        return self.track_points[0].coordinate if self.track_points else None

    @property
    def end_point(self) -> Coordinate | None:
        """Last track point, ``None`` for an empty track."""
        return self.track_points[-1].coordinate if self.track_points else None

    @property
    def is_renderable(self) -> bool:
        """A track with fewer than two points cannot be drawn as a line."""
        return len(self.track_points) >= 2

    def stats(self) -> TrackStats:
        """Compute distance and altitude figures for the track."""
        coordinates = self.coordinates
        altitudes = [c.altitude for c in coordinates if c.altitude is not None]
        ascent = 0.0
        descent = 0.0
        for previous, current in zip(altitudes, altitudes[1:], strict=False):
            step = current - previous
            if step > 0:
                ascent += step
            else:
                descent -= step
        return TrackStats(
            point_count=len(coordinates),
            total_distance_km=path_length(coordinates),
            min_altitude=min(altitudes) if altitudes else None,
            max_altitude=max(altitudes) if altitudes else None,
            total_ascent=ascent,
            total_descent=descent,
        )
