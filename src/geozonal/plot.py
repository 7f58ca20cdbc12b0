"""
Mapa coroplético com matplotlib.

Desenha os polígonos coloridos por um mapeamento ``{polygon_id: valor}``
(saída de :func:`geozonal.compute.aggregate` ou
:func:`geozonal.compute.zonal_means`). Polígonos sem valor usam
``missing_color``.
"""

from __future__ import annotations

from typing import Hashable, Iterable, Mapping

import matplotlib.pyplot as plt
import numpy as np
from matplotlib.collections import PatchCollection
from matplotlib.patches import PathPatch
from matplotlib.path import Path as MplPath

from geozonal.models.geometry import Polygon


def polygon_path(polygon: Polygon) -> MplPath:
    """``matplotlib.path.Path`` composto com todos os anéis (buracos incluídos)."""
    verts = []
    codes = []
    for ring in polygon.rings:
        verts.extend(ring)
        codes.append(MplPath.MOVETO)
        codes.extend([MplPath.LINETO] * (len(ring) - 2))
        codes.append(MplPath.CLOSEPOLY)
    return MplPath(np.asarray(verts, dtype="float64"), codes)


def plot_choropleth(
    polygons: Iterable[Polygon],
    values: Mapping[Hashable, float | None],
    *,
    ax=None,
    cmap: str = "viridis",
    missing_color: str = "#dddddd",
    edgecolor: str = "white",
    linewidth: float = 0.5,
    title: str | None = None,
    colorbar: bool = True,
):
    """
    Desenha o mapa e devolve o ``Axes``.

    Os polígonos são desenhados no CRS em que estão; reprojete antes com
    :meth:`Polygon.to_crs` se necessário.
    """
    polygons = list(polygons)
    if ax is None:
        _, ax = plt.subplots(figsize=(6, 6))

    with_value, missing = [], []
    data = []
    for poly in polygons:
        v = values.get(poly.id)
        patch = PathPatch(polygon_path(poly))
        if v is None:
            missing.append(patch)
        else:
            with_value.append(patch)
            data.append(float(v))

    if missing:
        ax.add_collection(PatchCollection(
            missing, facecolor=missing_color, edgecolor=edgecolor, linewidth=linewidth
        ))

    if with_value:
        coll = PatchCollection(
            with_value, cmap=cmap, edgecolor=edgecolor, linewidth=linewidth
        )
        coll.set_array(np.asarray(data))
        ax.add_collection(coll)
        if colorbar:
            ax.figure.colorbar(coll, ax=ax, shrink=0.7)

    if polygons:
        bbox = polygons[0].bbox
        for poly in polygons[1:]:
            bbox = bbox.union(poly.bbox)
        ax.set_xlim(bbox.minx, bbox.maxx)
        ax.set_ylim(bbox.miny, bbox.maxy)

    ax.set_aspect("equal")
    if title:
        ax.set_title(title)

    return ax
