"""Tests for the spatial join and per-polygon aggregation."""

import pytest

from geozonal.compute.join import (
    REDUCERS,
    Aggregation,
    JoinResult,
    aggregate,
    count_values,
    join,
    max_values,
    mean_values,
    min_values,
    sum_values,
)
from geozonal.errors import DuplicateIdError, UnknownCRSError
from geozonal.models.geometry import Point

from helpers import square


@pytest.fixture
def five_points():
    return [
        Point("a", 0.5, 0.5, 4326),
        Point("b", 1.5, 0.2, 4326),
        Point("fora1", 5.0, 5.0, 4326),
        Point("c", 2.9, 0.9, 4326),
        Point("fora2", -1.0, 0.5, 4326),
    ]


def test_three_matched_two_unmatched(strip, five_points) -> None:
    results = join(five_points, strip)

    assert [r.polygon_id for r in results] == ["A", "B", None, "C", None]
    assert sum(r.matched for r in results) == 3
    assert [r.point.id for r in results] == [p.id for p in five_points]


def test_polygon_order_does_not_change_matches(strip, five_points) -> None:
    forward = join(five_points, strip)
    backward = join(five_points, list(reversed(strip)))
    assert [r.polygon_id for r in forward] == [r.polygon_id for r in backward]


def test_first_polygon_wins_on_overlap() -> None:
    first = square("primeiro", 0, 0, size=2)
    second = square("segundo", 1, 1, size=2)
    p = Point("p", 1.5, 1.5, 4326)

    assert join([p], [first, second])[0].polygon_id == "primeiro"
    assert join([p], [second, first])[0].polygon_id == "segundo"


def test_join_is_idempotent(strip, five_points) -> None:
    assert join(five_points, strip) == join(five_points, strip)


def test_parallel_join_matches_sequential(strip, five_points) -> None:
    points = five_points * 20
    assert join(points, strip, workers=4) == join(points, strip, workers=None)


def test_points_are_reprojected_into_polygon_crs(registry) -> None:
    county = square("K", -101.0, 39.0, size=2.0).to_crs("EPSG:5070", registry)
    points = [Point("dentro", -100.0, 40.0, 4326), Point("fora", -95.0, 40.0, 4326)]

    results = join(points, [county], registry=registry)
    assert [r.polygon_id for r in results] == ["K", None]
    # o ponto devolvido é o original, no CRS original
    assert results[0].point.crs == "EPSG:4326"


def test_duplicate_polygon_ids_are_rejected() -> None:
    with pytest.raises(DuplicateIdError):
        join([Point("p", 0.5, 0.5, 4326)], [square("A", 0, 0), square("A", 1, 0)])


def test_unknown_crs_fails_before_matching(strip) -> None:
    with pytest.raises(UnknownCRSError):
        join([Point("p", 0.5, 0.5, "EPSG:32633")], strip)


def test_no_polygons_means_everything_unmatched(five_points) -> None:
    assert all(r.polygon_id is None for r in join(five_points, []))


def test_aggregate_sum_excludes_unmatched() -> None:
    joined = [
        (Point("p1", 0, 0, 4326, {"value": 10}), "A"),
        (Point("p2", 0, 0, 4326, {"value": 5}), "A"),
        (Point("p3", 0, 0, 4326, {"value": 99}), None),
    ]
    agg = aggregate(joined, sum_values, attribute="value")

    assert agg == {"A": 15}
    assert agg.unmatched == 1
    assert isinstance(agg, Aggregation)


def test_polygons_without_points_are_absent(strip, five_points) -> None:
    agg = aggregate(join(five_points[:2], strip), count_values)
    assert dict(agg) == {"A": 1, "B": 1}
    assert "C" not in agg


def test_aggregate_accepts_join_results_and_keeps_first_seen_order() -> None:
    p = Point("p", 0, 0, 4326, {"t": 2.0})
    joined = [JoinResult(p, "Z"), JoinResult(p, "A"), JoinResult(p, "Z")]
    agg = aggregate(joined, mean_values, attribute="t")
    assert list(agg) == ["Z", "A"]


def test_missing_attribute_contributes_none() -> None:
    joined = [
        (Point("p1", 0, 0, 4326, {"t": 20.0}), "A"),
        (Point("p2", 0, 0, 4326), "A"),
        (Point("p3", 0, 0, 4326), "B"),
    ]
    assert aggregate(joined, mean_values, attribute="t") == {"A": 20.0, "B": None}
    assert aggregate(joined, count_values, attribute="t") == {"A": 1, "B": 0}
    assert aggregate(joined, sum_values, attribute="t") == {"A": 20.0, "B": 0}


def test_custom_reducer_receives_points_without_attribute() -> None:
    joined = [(Point("p1", 0, 0, 4326), "A"), (Point("p2", 0, 0, 4326), "A")]
    agg = aggregate(joined, lambda pts: sorted(p.id for p in pts))
    assert agg == {"A": ["p1", "p2"]}


def test_builtin_reducers() -> None:
    values = [3, None, 1, 2]
    assert sum_values(values) == 6
    assert count_values(values) == 3
    assert mean_values(values) == 2
    assert min_values(values) == 1
    assert max_values(values) == 3
    assert mean_values([None]) is None
    assert min_values([]) is None
    assert set(REDUCERS) == {"sum", "mean", "count", "min", "max"}
