"""
Estatística zonal: média das células de uma grade dentro de cada polígono.

Uma célula conta para o polígono quando o seu **centro** está contido nele
(mesma regra de borda de :mod:`geozonal.compute.predicates`). Quando nenhuma
célula válida cai dentro do polígono o resultado é ``None``, nunca zero.

>>> import numpy as np
>>> from geozonal.models.geometry import Polygon
>>> from geozonal.models.grid import Grid
>>> g = Grid(origin=(0, 2), cell_size=1, values=np.array([[1, 2], [3, 4]]), crs=4326)
>>> top_left = Polygon.from_rings("TL", [[(0, 1), (1, 1), (1, 2), (0, 2), (0, 1)]], crs=4326)
>>> zonal_mean(g, top_left)
1.0
>>> far = Polygon.from_rings("X", [[(10, 10), (11, 10), (11, 11), (10, 11), (10, 10)]], crs=4326)
>>> zonal_mean(g, far) is None
True
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Hashable, Iterable

import numpy as np

from geozonal.compute.join import check_unique_ids
from geozonal.compute.predicates import contains_xy
from geozonal.config import WORKERS
from geozonal.crs import CRSRegistry, default_registry
from geozonal.models.geometry import BBox, Polygon
from geozonal.models.grid import Grid

logger = logging.getLogger(__name__)


def _bbox_in_grid_crs(polygon: Polygon, grid: Grid, registry: CRSRegistry) -> BBox:
    if polygon.crs == grid.crs:
        return polygon.bbox

    # o envelope densificado cobre as arestas que viram curvas em grid.crs
    minx, miny, maxx, maxy = registry.transform_bounds(polygon.bbox, polygon.crs, grid.crs)

    # folga de uma célula entre os pontos densificados
    pad = grid.cell_size
    return BBox(minx - pad, miny - pad, maxx + pad, maxy + pad)


def zonal_mean(
    grid: Grid,
    polygon: Polygon,
    *,
    registry: CRSRegistry | None = None,
) -> float | None:
    """
    Média aritmética das células válidas cujo centro está dentro de ``polygon``.

    Parameters
    ----------
    grid : Grid
        Grade de valores. Células nodata/NaN são ignoradas.
    polygon : Polygon
        Zona. Pode estar em um CRS diferente do da grade; os centros das
        células são reprojetados para o CRS do polígono.
    registry : CRSRegistry, optional
        Registro de CRS (padrão: :func:`geozonal.crs.default_registry`).

    Returns
    -------
    float | None
        ``None`` quando nenhuma célula válida está contida.
    """
    if registry is None:
        registry = default_registry()
    registry.get(grid.crs)
    registry.get(polygon.crs)

    window = grid.window(_bbox_in_grid_crs(polygon, grid, registry))
    if window is None:
        return None

    rows, cols = window
    r_idx, c_idx = np.nonzero(grid.valid_mask[rows, cols])
    if r_idx.size == 0:
        return None

    r_idx = r_idx + rows.start
    c_idx = c_idx + cols.start

    ox, oy = grid.origin
    s = grid.cell_size
    centers = list(zip(
        (ox + (c_idx + 0.5) * s).tolist(),
        (oy - (r_idx + 0.5) * s).tolist(),
    ))
    if grid.crs != polygon.crs:
        centers = registry.transform(centers, grid.crs, polygon.crs)

    inside = [contains_xy(polygon, x, y) for x, y in centers]
    if not any(inside):
        return None

    values = grid.values[r_idx, c_idx][np.array(inside, dtype=bool)]
    return float(values.mean())


def zonal_means(
    grid: Grid,
    polygons: Iterable[Polygon],
    *,
    registry: CRSRegistry | None = None,
    workers: int | None = WORKERS,
) -> dict[Hashable, float | None]:
    """
    :func:`zonal_mean` para cada polígono, ``{polygon_id: média | None}``.

    Todos os polígonos aparecem no resultado, na ordem de entrada.
    """
    if registry is None:
        registry = default_registry()
    polygons = list(polygons)
    check_unique_ids(polygons)

    logger.debug(
        "Estatística zonal: grade %dx%d x %d polígonos", grid.rows, grid.cols, len(polygons)
    )

    def one(poly: Polygon) -> float | None:
        return zonal_mean(grid, poly, registry=registry)

    if workers and workers > 1 and len(polygons) > 1:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            means = list(pool.map(one, polygons))
    else:
        means = [one(p) for p in polygons]

    empty = sum(1 for m in means if m is None)
    if empty:
        logger.info("%d de %d polígonos sem células válidas", empty, len(polygons))

    return {poly.id: mean for poly, mean in zip(polygons, means)}
