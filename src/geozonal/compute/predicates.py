"""
Predicado espacial ponto-em-polígono.

Algoritmo de ray casting (regra par-ímpar) por anel. Um ponto está contido
em uma parte quando está dentro do anel exterior e fora de todos os buracos
dessa parte; um polígono multi-partes contém o ponto se alguma parte contém.

Pontos exatamente sobre a borda de qualquer anel (exterior ou buraco) são
considerados **fora**. Assim, um ponto na aresta compartilhada por dois
polígonos vizinhos não é atribuído a nenhum deles.

>>> from geozonal.models.geometry import Point, Polygon
>>> sq = Polygon.from_rings("A", [[(0, 0), (4, 0), (4, 4), (0, 4), (0, 0)]], crs=4326)
>>> contains(sq, Point(1, 2, 2, crs=4326))
True
>>> contains(sq, Point(2, 0, 2, crs=4326))
False
"""

from __future__ import annotations

from typing import Sequence

from geozonal.errors import CRSMismatchError
from geozonal.models.geometry import Point, Polygon

Coord = tuple[float, float]


def on_segment(x: float, y: float, a: Coord, b: Coord) -> bool:
    """Verdadeiro se ``(x, y)`` está exatamente sobre o segmento ``a``-``b``."""
    (x1, y1), (x2, y2) = a, b
    if not (min(x1, x2) <= x <= max(x1, x2) and min(y1, y2) <= y <= max(y1, y2)):
        return False
    return (x2 - x1) * (y - y1) - (y2 - y1) * (x - x1) == 0.0


def on_ring_boundary(x: float, y: float, ring: Sequence[Coord]) -> bool:
    return any(on_segment(x, y, a, b) for a, b in zip(ring, ring[1:]))


def ray_cast(x: float, y: float, ring: Sequence[Coord]) -> bool:
    """Regra par-ímpar: raio horizontal para +x contando cruzamentos."""
    inside = False
    for (x1, y1), (x2, y2) in zip(ring, ring[1:]):
        if (y1 > y) != (y2 > y):
            x_cross = x1 + (y - y1) * (x2 - x1) / (y2 - y1)
            if x < x_cross:
                inside = not inside
    return inside


def _part_contains(rings: Sequence[Sequence[Coord]], x: float, y: float) -> bool:
    if any(on_ring_boundary(x, y, ring) for ring in rings):
        return False

    outer, holes = rings[0], rings[1:]
    if not ray_cast(x, y, outer):
        return False
    return not any(ray_cast(x, y, hole) for hole in holes)


def contains_xy(polygon: Polygon, x: float, y: float) -> bool:
    """
    Teste de contenção para coordenadas cruas, já no CRS do polígono.

    O bounding box é usado como pré-filtro; ele nunca altera o resultado.
    """
    if not polygon.bbox.contains_xy(x, y):
        return False
    return any(_part_contains(rings, x, y) for rings in polygon.parts)


def contains(polygon: Polygon, point: Point) -> bool:
    """
    Verdadeiro se ``polygon`` contém ``point`` (borda conta como fora).

    Os dois precisam estar no mesmo CRS; caso contrário levanta
    :class:`~geozonal.errors.CRSMismatchError`. Use
    :meth:`Point.to_crs` antes.
    """
    if polygon.crs != point.crs:
        raise CRSMismatchError(
            f"Polígono '{polygon.id}' está em {polygon.crs} e ponto "
            f"'{point.id}' em {point.crs}. Reprojete antes de comparar."
        )
    return contains_xy(polygon, point.x, point.y)
