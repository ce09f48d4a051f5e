"""
Tests for the Geometry Normalizer

Run with: pytest tests/test_geometry.py -v
"""

import pytest

from planvision.core.exceptions import GeometryError
from planvision.core.geometry import (
    coerce_record,
    convert_box_2d_to_bounds,
    normalize_rooms,
    parse_svg_path,
    to_number,
)
from planvision.models.geometry import BoundsOnly, Point, PolygonPoints, SvgPath, bounds_of


# ============ SVG Path Parsing ============

def test_parse_svg_path_l_shape():
    """Test that an L-shaped path yields one point per M/L command."""
    points = parse_svg_path("M 15,20 L 35,20 L 35,40 L 25,40 L 25,55 L 15,55 Z")

    assert [(p.x, p.y) for p in points] == [
        (15, 20), (35, 20), (35, 40), (25, 40), (25, 55), (15, 55)
    ]


def test_parse_svg_path_space_separated_and_lowercase():
    points = parse_svg_path("m 10 10 l 20 10 l 20 30 z")
    assert [(p.x, p.y) for p in points] == [(10, 10), (20, 10), (20, 30)]


def test_parse_svg_path_skips_unknown_tokens():
    """Test that curves and garbage are ignored."""
    points = parse_svg_path("M 0,0 C 1,2 3,4 5,6 L 50,0 Q nonsense L 50,50 Z")
    assert [(p.x, p.y) for p in points] == [(0, 0), (50, 0), (50, 50)]


def test_parse_svg_path_empty():
    assert parse_svg_path("") == []


# ============ Coordinate Coercion ============

def test_to_number_accepts_numeric_strings():
    assert to_number("42.5") == 42.5
    assert to_number(None) == 0.0


@pytest.mark.parametrize("value", ["abc", True, float("nan"), [1, 2]])
def test_to_number_rejects_non_numbers(value):
    with pytest.raises(GeometryError):
        to_number(value)


def test_convert_box_2d_to_bounds():
    """Test Gemini [ymin, xmin, ymax, xmax] in 0-1000 becomes percentages."""
    bounds = convert_box_2d_to_bounds([100, 200, 500, 600])

    assert bounds == {"x": 20.0, "y": 10.0, "width": 40.0, "height": 40.0}


def test_convert_box_2d_wrong_length():
    with pytest.raises(GeometryError):
        convert_box_2d_to_bounds([1, 2, 3])


# ============ Record Resolution ============

def test_coerce_record_prefers_path_over_polygon():
    record = coerce_record({
        "label": "Kitchen",
        "path": "M 0,0 L 10,0 L 10,10 Z",
        "polygon": [{"x": 50, "y": 50}],
    })
    assert isinstance(record, SvgPath)


def test_coerce_record_string_polygon_is_a_path():
    record = coerce_record({"label": "Hall", "polygon": "M 0,0 L 10,0 L 10,10 Z"})
    assert isinstance(record, SvgPath)
    assert record.kind == "svg_path"


def test_coerce_record_bounds_variants():
    assert isinstance(coerce_record({"bbox": {"x": 1, "y": 2, "width": 3, "height": 4}}), BoundsOnly)
    assert isinstance(coerce_record({"x": 1, "y": 2, "width": 3, "height": 4}), BoundsOnly)

    record = coerce_record({"box_2d": [0, 0, 500, 500]})
    assert isinstance(record, BoundsOnly)
    assert record.width == 50.0


def test_coerce_record_without_geometry():
    record = coerce_record({"label": "Ghost"})
    assert isinstance(record, PolygonPoints)
    assert record.points == []


def test_coerce_record_rejects_non_objects():
    with pytest.raises(GeometryError):
        coerce_record(["not", "a", "dict"])


# ============ Normalization ============

def test_normalize_bounds_only_synthesizes_rectangle():
    """Test that a bare bbox becomes a clockwise rectangle from the top-left."""
    rooms = normalize_rooms([{"label": "Office", "bbox": {"x": 60, "y": 10, "width": 20, "height": 30}}])

    assert len(rooms) == 1
    assert [(p.x, p.y) for p in rooms[0].polygon] == [(60, 10), (80, 10), (80, 40), (60, 40)]


def test_normalize_clamps_points():
    """Test that out-of-range coordinates are clamped into [0, 100]."""
    rooms = normalize_rooms([{
        "label": "Balcony",
        "polygon": [{"x": -5, "y": 120}, {"x": 50, "y": 0}, {"x": 50, "y": 50}],
    }])

    first = rooms[0].polygon[0]
    assert (first.x, first.y) == (0, 100)
    for pt in rooms[0].polygon:
        assert 0 <= pt.x <= 100
        assert 0 <= pt.y <= 100


def test_normalize_drops_short_polygons_and_renumbers():
    """Test that polygons with fewer than 3 points are dropped and ids stay dense."""
    rooms = normalize_rooms([
        {"label": "Kitchen", "polygon": [{"x": 0, "y": 0}, {"x": 10, "y": 0}, {"x": 10, "y": 10}]},
        {"label": "Line", "polygon": [{"x": 0, "y": 0}, {"x": 10, "y": 10}]},
        {"label": "Bath", "path": "M 20,20 L 30,20 L 30,30 Z"},
    ])

    assert [r.label for r in rooms] == ["Kitchen", "Bathroom"]
    assert [r.id for r in rooms] == ["room-0", "room-1"]


def test_normalize_drops_malformed_records():
    rooms = normalize_rooms([
        "garbage",
        {"label": "Bad", "polygon": [{"x": "abc", "y": 1}, {"x": 2, "y": 2}, {"x": 3, "y": 3}]},
        {"label": "Good", "bbox": {"x": 0, "y": 0, "width": 10, "height": 10}},
    ])
    assert len(rooms) == 1
    assert rooms[0].label == "Good"
    assert rooms[0].id == "room-0"


def test_normalize_drops_coordinates_too_large_for_float():
    """Test that a JSON integer beyond float range drops only its record."""
    rooms = normalize_rooms([
        {"label": "Huge", "polygon": [{"x": 10**400, "y": 1}, {"x": 2, "y": 2}, {"x": 3, "y": 3}]},
        {"label": "Good", "path": "M 0,0 L 10,0 L 10,10 Z"},
    ])

    assert [r.label for r in rooms] == ["Good"]
    with pytest.raises(GeometryError):
        to_number(10**400)


def test_normalize_defaults():
    """Test default confidence, feather and blank label handling."""
    rooms = normalize_rooms(
        [
            {"path": "M 0,0 L 10,0 L 10,10 Z"},
            {"label": "Bedroom", "confidence": 0.42, "path": "M 0,0 L 10,0 L 10,10 Z"},
        ],
        default_confidence=0.9,
        feather_px=8,
    )

    assert rooms[0].label == "Room 1"
    assert rooms[0].confidence == 0.9
    assert rooms[1].confidence == 0.42
    assert all(r.feather_px == 8 for r in rooms)


def test_normalize_keeps_shape_and_mask():
    rooms = normalize_rooms(
        [{"label": "Living Room", "shape": "L-shaped", "path": "M 0,0 L 10,0 L 10,10 Z"}],
        mask_urls={0: "https://example.com/mask.png"},
    )
    assert rooms[0].shape == "L-shaped"
    assert rooms[0].mask_url == "https://example.com/mask.png"


def test_bbox_derived_from_polygon():
    """Test that a region's bbox is always the min/max extent of its polygon."""
    rooms = normalize_rooms([{"label": "L", "path": "M 15,20 L 35,20 L 35,40 L 25,40 L 25,55 L 15,55 Z"}])
    bbox = rooms[0].bbox

    assert (bbox.x, bbox.y, bbox.width, bbox.height) == (15, 20, 20, 35)


def test_bounds_of_empty_is_degenerate():
    bbox = bounds_of([])
    assert bbox.width < 0 and bbox.height < 0


def test_bounds_of_points():
    bbox = bounds_of([Point(x=10, y=30), Point(x=40, y=5)])
    assert (bbox.x, bbox.y, bbox.width, bbox.height) == (10, 5, 30, 25)
