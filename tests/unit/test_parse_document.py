"""Tests for route document parsing.

Covers:
- Explicit LineString and gx:Track paths
- Waypoint-only documents (nearest-neighbour reconstruction, cap)
- Invalid coordinates dropped and counted, never raised
- Malformed XML rejection
- Placemark classification and ExtendedData
- Track statistics
"""

from __future__ import annotations

import pytest

from geosync.documents import (
    MalformedDocumentError,
    classify_placemark,
    parse_coordinates_text,
    parse_document,
    reconstruct_track,
)
from geosync.models.coordinate import Coordinate
from geosync.models.track import Placemark, PlacemarkKind


def _kml(body: str) -> str:
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<kml xmlns="http://www.opengis.net/kml/2.2"><Document>'
        f"{body}"
        "</Document></kml>"
    )


def _point(name: str, lng: float, lat: float, extra: str = "") -> str:
    return (
        f"<Placemark><name>{name}</name>{extra}"
        f"<Point><coordinates>{lng},{lat}</coordinates></Point></Placemark>"
    )


class TestExplicitPath:
    """Documents carrying a LineString or gx:Track."""

    def test_linestring_becomes_track(self, explicit_path_kml: str) -> None:
        track = parse_document(explicit_path_kml)

        assert track.source_had_explicit_path is True
        assert track.reordered is False
        assert len(track.track_points) == 3
        assert [p.index for p in track.track_points] == [0, 1, 2]
        assert track.start_point == Coordinate(30.25, 120.14, 10.0)
        assert track.end_point == Coordinate(30.26, 120.15, 15.0)
        assert track.is_renderable

    def test_document_name_and_description(self, explicit_path_kml: str) -> None:
        track = parse_document(explicit_path_kml)
        assert track.name == "West Lake loop"
        assert track.description == "Morning walk"

    def test_placemarks_are_annotations(self, explicit_path_kml: str) -> None:
        track = parse_document(explicit_path_kml)

        assert [pm.kind for pm in track.placemarks] == [PlacemarkKind.START, PlacemarkKind.END]
        # Annotations never extend the path
        assert len(track.track_points) == 3

    def test_gx_track_with_bad_coord(self, gx_track_kml: str) -> None:
        track = parse_document(gx_track_kml)

        assert track.source_had_explicit_path is True
        assert len(track.track_points) == 2
        assert track.dropped_coordinate_count == 1
        assert track.track_points[0].altitude == 50.0

    def test_paths_concatenate_in_document_order(self) -> None:
        doc = _kml(
            "<Placemark><LineString><coordinates>1,1 2,2</coordinates></LineString></Placemark>"
            "<Placemark><LineString><coordinates>3,3 4,4</coordinates></LineString></Placemark>"
        )
        track = parse_document(doc)
        assert [c.longitude for c in track.coordinates] == [1.0, 2.0, 3.0, 4.0]

    def test_explicit_path_wins_over_waypoints(self) -> None:
        doc = _kml(
            _point("far", 50, 50)
            + "<Placemark><LineString><coordinates>1,1 2,2</coordinates></LineString></Placemark>"
        )
        track = parse_document(doc)
        assert track.coordinates == [Coordinate(1.0, 1.0), Coordinate(2.0, 2.0)]
        assert len(track.placemarks) == 1

    def test_spaces_around_commas_tolerated(self) -> None:
        doc = _kml(
            "<Placemark><LineString><coordinates>"
            "120.1 , 30.2 , 5  120.2,30.3"
            "</coordinates></LineString></Placemark>"
        )
        track = parse_document(doc)
        assert track.coordinates == [Coordinate(30.2, 120.1, 5.0), Coordinate(30.3, 120.2)]
        assert track.dropped_coordinate_count == 0

    def test_unnamespaced_document(self) -> None:
        doc = "<kml><Placemark><LineString><coordinates>1,1 2,2</coordinates></LineString></Placemark></kml>"
        assert len(parse_document(doc).track_points) == 2

    def test_bytes_input(self, explicit_path_kml: str) -> None:
        track = parse_document(explicit_path_kml.encode("utf-8"))
        assert len(track.track_points) == 3
        assert track.placemarks[0].name == "起点"


class TestInvalidCoordinates:
    """Out-of-range and unparseable values are dropped and counted."""

    def test_out_of_range_dropped(self) -> None:
        doc = _kml(
            "<Placemark><LineString><coordinates>"
            "1,1 200,10 10,95 2,2 abc,def"
            "</coordinates></LineString></Placemark>"
        )
        track = parse_document(doc)

        assert track.coordinates == [Coordinate(1.0, 1.0), Coordinate(2.0, 2.0)]
        assert track.dropped_coordinate_count == 3

    def test_values_never_clamped(self) -> None:
        doc = _kml(
            "<Placemark><LineString><coordinates>180.5,10 1,1</coordinates></LineString></Placemark>"
        )
        track = parse_document(doc)
        assert all(abs(c.longitude) <= 180 for c in track.coordinates)
        assert track.coordinates == [Coordinate(1.0, 1.0)]

    def test_path_with_no_valid_points_falls_back_to_waypoints(self) -> None:
        doc = _kml(
            "<Placemark><LineString><coordinates>999,999</coordinates></LineString></Placemark>"
            + _point("a", 0, 0)
            + _point("b", 1, 0)
        )
        track = parse_document(doc)

        assert track.source_had_explicit_path is False
        assert len(track.track_points) == 2
        assert track.dropped_coordinate_count == 1

    def test_invalid_point_placemark_dropped(self) -> None:
        doc = _kml(_point("bad", 0, 100) + _point("a", 0, 0) + _point("b", 1, 0))
        track = parse_document(doc)
        assert [pm.name for pm in track.placemarks] == ["a", "b"]
        assert track.dropped_coordinate_count == 1

    def test_parse_coordinates_text(self) -> None:
        coords, dropped = parse_coordinates_text(" 1,2,3\n\t4,5  x,y 6 ")
        assert coords == [Coordinate(2.0, 1.0, 3.0), Coordinate(5.0, 4.0)]
        assert dropped == 2


class TestWaypointReconstruction:
    """Documents with only Point placemarks."""

    def test_small_set_reordered(self, waypoints_only_kml: str) -> None:
        track = parse_document(waypoints_only_kml)

        assert track.source_had_explicit_path is False
        assert track.reordered is True
        assert [c.longitude for c in track.coordinates] == [0.0, 1.0, 2.0]

    def test_placemarks_keep_document_order(self, waypoints_only_kml: str) -> None:
        track = parse_document(waypoints_only_kml)
        assert [pm.name for pm in track.placemarks] == ["A", "C", "B"]

    def test_large_set_keeps_document_order(self) -> None:
        lngs = [0, 5, 1, 6, 2, 7, 3, 8, 4, 9, 10]
        doc = _kml("".join(_point(f"p{i}", lng, 0) for i, lng in enumerate(lngs)))
        track = parse_document(doc)

        assert track.reordered is False
        assert [c.longitude for c in track.coordinates] == [float(x) for x in lngs]

    def test_reorder_cap_is_configurable(self, waypoints_only_kml: str) -> None:
        track = parse_document(waypoints_only_kml, reorder_max_points=2)
        assert track.reordered is False
        assert [c.longitude for c in track.coordinates] == [0.0, 2.0, 1.0]

    def test_two_annotations_under_plain_root(self) -> None:
        doc = (
            "<root>"
            "<Placemark><Point><coordinates>116.40,39.90,0</coordinates></Point></Placemark>"
            "<Placemark><Point><coordinates>116.41,39.91,0</coordinates></Point></Placemark>"
            "</root>"
        )
        track = parse_document(doc)

        assert track.coordinates == [Coordinate(39.90, 116.40, 0.0), Coordinate(39.91, 116.41, 0.0)]
        assert track.source_had_explicit_path is False

    def test_single_waypoint_is_not_renderable(self) -> None:
        track = parse_document(_kml(_point("only", 10, 10)))
        assert len(track.track_points) == 1
        assert track.is_renderable is False

    def test_reconstruct_track_prefers_path(self) -> None:
        path = [Coordinate(1, 1), Coordinate(2, 2)]
        marks = [Placemark(coordinate=Coordinate(5, 5)), Placemark(coordinate=Coordinate(6, 6))]
        assert reconstruct_track(path, marks) == (path, False)


class TestEmptyAndMalformed:
    """The only fatal condition is non-XML input."""

    def test_valid_xml_without_geometry_is_empty_track(self) -> None:
        track = parse_document(_kml("<name>Nothing here</name>"))
        assert track.track_points == ()
        assert track.placemarks == ()
        assert track.start_point is None
        assert track.end_point is None
        assert track.is_renderable is False

    @pytest.mark.parametrize(
        "document",
        [
            "this is not xml",
            "<kml><Document><Placemark></Document></kml>",
            "",
            "   ",
        ],
    )
    def test_malformed_raises(self, document: str) -> None:
        with pytest.raises(MalformedDocumentError) as exc_info:
            parse_document(document)
        assert exc_info.value.code == "DOCUMENT_MALFORMED"
        assert exc_info.value.retryable is False

    def test_external_entities_not_resolved(self) -> None:
        doc = (
            '<?xml version="1.0"?>'
            '<!DOCTYPE kml [<!ENTITY xxe SYSTEM "file:///etc/passwd">]>'
            "<kml><Document><name>&xxe;</name></Document></kml>"
        )
        track = parse_document(doc)
        assert track.name is None or "root:" not in track.name


class TestPlacemarkClassification:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("起点", PlacemarkKind.START),
            ("终点", PlacemarkKind.END),
            ("startPoint", PlacemarkKind.START),
            ("EndPoint", PlacemarkKind.END),
            ("Start", PlacemarkKind.START),
            ("Lunch stop", PlacemarkKind.PLAIN),
        ],
    )
    def test_name_markers(self, name: str, expected: PlacemarkKind) -> None:
        assert classify_placemark(name, None, ()) is expected

    def test_description_marker(self) -> None:
        kind = classify_placemark("路点 1", "坐标: 30.1, 120.2<br/>起点", ())
        assert kind is PlacemarkKind.START

    def test_bare_end_in_description_is_not_a_marker(self) -> None:
        assert classify_placemark("Cafe", "open until the end of day", ()) is PlacemarkKind.PLAIN

    def test_attachments(self) -> None:
        assert classify_placemark("View", None, ("a.jpg",)) is PlacemarkKind.ATTACHMENT
        assert classify_placemark("起点", None, ("a.jpg",)) is PlacemarkKind.START

    def test_extended_data_parsed(self) -> None:
        extra = (
            "<ExtendedData>"
            '<Data name="photo"><value>a.jpg, b.jpg</value></Data>'
            '<Data name="note"><value>steep</value></Data>'
            '<SchemaData><SimpleData name="difficulty">hard</SimpleData></SchemaData>'
            "</ExtendedData>"
        )
        track = parse_document(_kml(_point("Summit", 1, 1, extra)))
        placemark = track.placemarks[0]

        assert placemark.kind is PlacemarkKind.ATTACHMENT
        assert placemark.attachments == ("a.jpg", "b.jpg")
        assert placemark.metadata == (("note", "steep"), ("difficulty", "hard"))
        assert placemark.metadata_dict == {"note": "steep", "difficulty": "hard"}


class TestTrackImmutability:
    """Parsed tracks are shared by reference through store snapshots."""

    def test_parsed_track_is_hashable(self) -> None:
        extra = '<ExtendedData><Data name="note"><value>steep</value></Data></ExtendedData>'
        doc = _kml(_point("a", 0, 0, extra) + _point("b", 1, 0))
        track = parse_document(doc)

        assert hash(track) == hash(parse_document(doc))
        assert len({track, parse_document(doc)}) == 1

    def test_metadata_cannot_be_changed(self) -> None:
        extra = '<ExtendedData><Data name="note"><value>steep</value></Data></ExtendedData>'
        placemark = parse_document(_kml(_point("a", 0, 0, extra))).placemarks[0]

        with pytest.raises(TypeError):
            placemark.metadata["note"] = "mutated"  # type: ignore[index]
        with pytest.raises(AttributeError):
            placemark.metadata = ()  # type: ignore[misc]

        copy = placemark.metadata_dict
        copy["note"] = "mutated"
        assert placemark.metadata_dict == {"note": "steep"}


class TestTrackStats:
    def test_stats_from_explicit_path(self, explicit_path_kml: str) -> None:
        stats = parse_document(explicit_path_kml).stats()

        assert stats.point_count == 3
        assert stats.total_distance_km > 0
        assert stats.min_altitude == 10.0
        assert stats.max_altitude == 25.0
        assert stats.total_ascent == pytest.approx(15.0)
        assert stats.total_descent == pytest.approx(10.0)

    def test_stats_without_altitude(self, waypoints_only_kml: str) -> None:
        stats = parse_document(waypoints_only_kml).stats()
        assert stats.min_altitude is None
        assert stats.total_ascent == 0.0
