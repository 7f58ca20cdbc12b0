"""Tests for the raster grid and zonal statistics."""

import math

import numpy as np
import pytest

from geozonal.compute.predicates import contains_xy
from geozonal.compute.zonal import zonal_mean, zonal_means
from geozonal.errors import DuplicateIdError, UnknownCRSError
from geozonal.models.geometry import BBox, Polygon
from geozonal.models.grid import Grid

from helpers import square


@pytest.fixture
def grid2x2():
    return Grid(origin=(0.0, 2.0), cell_size=1.0, values=np.array([[1, 2], [3, 4]]), crs=4326)


@pytest.fixture
def albers_grid():
    # 10 x 10 células de 1 km em Conus Albers, valor = 10*r + c
    return Grid(
        origin=(0.0, 2_000_000.0),
        cell_size=1000.0,
        values=np.arange(100, dtype=float).reshape(10, 10),
        crs="EPSG:5070",
    )


def test_top_left_cell_only(grid2x2) -> None:
    assert zonal_mean(grid2x2, square("TL", 0.0, 1.0)) == 1.0


def test_polygon_covering_no_cells_is_none(grid2x2) -> None:
    assert zonal_mean(grid2x2, square("X", 10.0, 10.0)) is None
    # dentro de uma célula, mas sem conter o centro
    assert zonal_mean(grid2x2, square("pequeno", 0.1, 1.1, size=0.2)) is None


def test_whole_grid_mean(grid2x2) -> None:
    assert zonal_mean(grid2x2, square("tudo", -1.0, -1.0, size=4.0)) == 2.5


def test_nodata_cells_are_ignored() -> None:
    grid = Grid((0.0, 2.0), 1.0, np.array([[1.0, -9999.0], [np.nan, 4.0]]), 4326, nodata=-9999.0)
    everything = square("tudo", 0.0, 0.0, size=2.0)
    assert zonal_mean(grid, everything) == 2.5

    only_nodata = square("TR", 1.0, 1.0)
    assert zonal_mean(grid, only_nodata) is None


def test_zero_mean_is_not_none() -> None:
    grid = Grid((0.0, 1.0), 1.0, np.array([[0.0]]), 4326)
    result = zonal_mean(grid, square("Z", 0.0, 0.0))
    assert result == 0.0
    assert result is not None


def test_cell_center_on_polygon_edge_is_excluded(grid2x2) -> None:
    # borda direita passa pelo centro das células da coluna 1
    poly = Polygon.from_rings("meia", [[(0, 0), (1.5, 0), (1.5, 2), (0, 2), (0, 0)]], 4326)
    assert zonal_mean(grid2x2, poly) == 2.0


def test_polygon_in_other_crs(albers_grid, registry) -> None:
    zone = square("Z", 2000.0, 1_993_000.0, size=3000.0, crs="EPSG:5070")
    expected = float(albers_grid.values[4:7, 2:5].mean())

    assert zonal_mean(albers_grid, zone) == pytest.approx(expected)
    lonlat = zone.to_crs(4326, registry)
    assert zonal_mean(albers_grid, lonlat, registry=registry) == pytest.approx(expected)


def test_curved_edges_after_reprojection_match_every_cell(registry) -> None:
    # faixa larga em lon/lat; em Albers os paralelos viram arcos
    zone = Polygon.from_rings(
        "faixa", [[(-110, 30), (-82, 30), (-82, 32), (-110, 32), (-110, 30)]], 4326
    )
    rows, cols = 35, 160
    grid = Grid(
        origin=(-1_600_000.0, 1_300_000.0),
        cell_size=20_000.0,
        values=np.repeat(np.arange(rows, dtype=float)[:, None], cols, axis=1),
        crs="EPSG:5070",
    )

    cells = [(r, c) for r in range(rows) for c in range(cols)]
    centers = registry.transform(
        [grid.cell_center(r, c) for r, c in cells], "EPSG:5070", "EPSG:4326"
    )
    inside = [rc for rc, (x, y) in zip(cells, centers) if contains_xy(zone, x, y)]
    assert inside

    # o arco do paralelo 30 desce abaixo dos vértices projetados
    vertex_miny = min(y for _, y in registry.transform(zone.exterior_rings[0], 4326, 5070))
    assert min(grid.cell_center(r, c)[1] for r, c in inside) < vertex_miny - grid.cell_size

    expected = sum(grid.values[r, c] for r, c in inside) / len(inside)
    assert zonal_mean(grid, zone, registry=registry) == pytest.approx(expected)


def test_unknown_crs(grid2x2) -> None:
    with pytest.raises(UnknownCRSError):
        zonal_mean(grid2x2, square("X", 0, 0, crs="EPSG:32633"))


def test_zonal_means_keeps_every_polygon_in_order(grid2x2) -> None:
    polys = [square("far", 10, 10), square("TL", 0, 1), square("BR", 1, 0)]
    means = zonal_means(grid2x2, polys)

    assert list(means) == ["far", "TL", "BR"]
    assert means == {"far": None, "TL": 1.0, "BR": 4.0}
    assert zonal_means(grid2x2, polys, workers=3) == means


def test_zonal_means_rejects_duplicate_ids(grid2x2) -> None:
    with pytest.raises(DuplicateIdError):
        zonal_means(grid2x2, [square("A", 0, 0), square("A", 1, 1)])


# ---------------------------------------------------------------------
# Grid
# ---------------------------------------------------------------------

def test_grid_geometry(grid2x2) -> None:
    assert (grid2x2.rows, grid2x2.cols) == (2, 2)
    assert grid2x2.bounds == BBox(0.0, 0.0, 2.0, 2.0)
    assert grid2x2.cell_bounds(1, 0) == BBox(0.0, 0.0, 1.0, 1.0)
    assert grid2x2.cell_center(1, 1) == (1.5, 0.5)
    assert grid2x2.value(0, 1) == 2.0


def test_grid_values_are_read_only(grid2x2) -> None:
    with pytest.raises(ValueError):
        grid2x2.values[0, 0] = 10.0


def test_grid_does_not_alias_input() -> None:
    source = np.zeros((2, 2))
    grid = Grid((0, 0), 1, source, 4326)
    source[0, 0] = 5.0
    assert grid.values[0, 0] == 0.0


def test_from_values_checks_shape() -> None:
    grid = Grid.from_values([1, 2, 3, 4, 5, 6], rows=2, cols=3, origin=(0, 0), cell_size=1, crs=4326)
    assert grid.values.shape == (2, 3)
    with pytest.raises(ValueError):
        Grid.from_values([1, 2, 3], rows=2, cols=2, origin=(0, 0), cell_size=1, crs=4326)


@pytest.mark.parametrize("cell_size", [0, -1, math.inf])
def test_invalid_cell_size(cell_size) -> None:
    with pytest.raises(ValueError):
        Grid((0, 0), cell_size, np.ones((1, 1)), 4326)


def test_window_clips_to_grid(grid2x2) -> None:
    assert grid2x2.window(BBox(-5, -5, 5, 5)) == (slice(0, 2), slice(0, 2))
    assert grid2x2.window(BBox(0.2, 1.2, 0.4, 1.4)) == (slice(0, 1), slice(0, 1))
    assert grid2x2.window(BBox(5, 5, 6, 6)) is None


def test_aggregate_downsamples_ignoring_nodata() -> None:
    values = np.array([
        [1.0, 3.0, -9999.0],
        [5.0, 7.0, -9999.0],
        [9.0, 9.0, 2.0],
    ])
    grid = Grid((0.0, 3.0), 1.0, values, 4326, nodata=-9999.0)
    coarse = grid.aggregate(2)

    assert coarse.cell_size == 2.0
    assert coarse.values.shape == (2, 2)
    assert coarse.value(0, 0) == 4.0
    assert coarse.value(0, 1) is None
    assert coarse.value(1, 0) == 9.0
    assert coarse.value(1, 1) == 2.0
    assert grid.aggregate(1) is grid
    with pytest.raises(ValueError):
        grid.aggregate(0)
