"""Tests for point-in-polygon containment."""

import pytest

from geozonal.compute.predicates import contains, contains_xy, on_segment, ray_cast
from geozonal.errors import CRSMismatchError
from geozonal.models.geometry import Point, Polygon

from helpers import square


def test_square_interior_exterior_and_boundary(big_square) -> None:
    assert contains(big_square, Point("in", 2, 2, 4326))
    assert not contains(big_square, Point("out", 5, 5, 4326))
    assert not contains(big_square, Point("edge", 0, 2, 4326))


@pytest.mark.parametrize("xy", [(0, 0), (4, 4), (4, 1), (2, 4), (2, 0)])
def test_vertices_and_edges_are_exterior(big_square, xy) -> None:
    assert not contains_xy(big_square, *xy)


def test_point_inside_bbox_but_outside_polygon() -> None:
    tri = Polygon.from_rings("T", [[(0, 0), (4, 0), (0, 4), (0, 0)]], 4326)
    assert contains_xy(tri, 1, 1)
    assert not contains_xy(tri, 3, 3)
    # hipotenusa
    assert not contains_xy(tri, 2, 2)


def test_hole_excludes_points_and_its_boundary() -> None:
    shell = [(0, 0), (10, 0), (10, 10), (0, 10), (0, 0)]
    hole = [(4, 4), (6, 4), (6, 6), (4, 6), (4, 4)]
    donut = Polygon.from_rings("D", [shell, hole], 4326)

    assert contains_xy(donut, 2, 2)
    assert not contains_xy(donut, 5, 5)
    assert not contains_xy(donut, 4, 5)


def test_multipart_contains_if_any_part_does() -> None:
    a = [(0, 0), (1, 0), (1, 1), (0, 1), (0, 0)]
    b = [(5, 5), (6, 5), (6, 6), (5, 6), (5, 5)]
    poly = Polygon("M", ((a,), (b,)), 4326)

    assert contains_xy(poly, 0.5, 0.5)
    assert contains_xy(poly, 5.5, 5.5)
    assert not contains_xy(poly, 3, 3)


def test_concave_polygon() -> None:
    # "U" aberto para cima
    u = [(0, 0), (3, 0), (3, 3), (2, 3), (2, 1), (1, 1), (1, 3), (0, 3), (0, 0)]
    poly = Polygon.from_rings("U", [u], 4326)

    assert contains_xy(poly, 0.5, 2)
    assert contains_xy(poly, 2.5, 2)
    assert not contains_xy(poly, 1.5, 2)
    assert contains_xy(poly, 1.5, 0.5)


def test_shared_edge_assigns_to_neither() -> None:
    left = square("L", 0, 0)
    right = square("R", 1, 0)
    assert not contains_xy(left, 1, 0.5)
    assert not contains_xy(right, 1, 0.5)


def test_crs_mismatch_fails_fast(big_square) -> None:
    with pytest.raises(CRSMismatchError):
        contains(big_square, Point("p", 2, 2, 5070))


def test_containment_is_invariant_under_reprojection(registry) -> None:
    poly = Polygon.from_rings(
        "K", [[(-101.0, 39.0), (-99.0, 39.0), (-99.0, 41.0), (-101.0, 41.0), (-101.0, 39.0)]], 4326
    )
    points = [
        Point("centro", -100.0, 40.0, 4326),
        Point("quase", -99.4, 40.6, 4326),
        Point("fora", -98.5, 40.0, 4326),
        Point("longe", -90.0, 30.0, 4326),
    ]

    for crs in ("EPSG:5070", "EPSG:3857"):
        projected = poly.to_crs(crs, registry)
        for p in points:
            assert contains(poly, p) == contains(projected, p.to_crs(crs, registry)), (crs, p.id)


def test_helpers() -> None:
    assert on_segment(0.5, 0.5, (0, 0), (1, 1))
    assert not on_segment(2, 2, (0, 0), (1, 1))
    ring = [(0, 0), (2, 0), (2, 2), (0, 2), (0, 0)]
    assert ray_cast(1, 1, ring)
    assert not ray_cast(3, 1, ring)
