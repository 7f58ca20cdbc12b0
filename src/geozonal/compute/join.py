"""
Junção espacial ponto → polígono e agregação por polígono.

Este módulo contém apenas a lógica pura da junção. Não lê arquivos nem
desenha mapas: recebe pontos e polígonos já construídos e devolve
resultados novos, sem alterar as entradas.

>>> from geozonal.models.geometry import Point, Polygon
>>> a = Polygon.from_rings("A", [[(0, 0), (1, 0), (1, 1), (0, 1), (0, 0)]], crs=4326)
>>> pts = [Point("p1", 0.5, 0.5, 4326, {"casos": 10}),
...        Point("p2", 0.2, 0.7, 4326, {"casos": 5}),
...        Point("p3", 9.0, 9.0, 4326, {"casos": 99})]
>>> joined = join(pts, [a])
>>> [r.polygon_id for r in joined]
['A', 'A', None]
>>> agg = aggregate(joined, sum_values, attribute="casos")
>>> dict(agg), agg.unmatched
({'A': 15}, 1)
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Hashable, Iterable, NamedTuple, Sequence

from geozonal.compute.predicates import contains_xy
from geozonal.config import WORKERS
from geozonal.crs import CRSRegistry, default_registry
from geozonal.errors import DuplicateIdError
from geozonal.models.geometry import Point, Polygon

logger = logging.getLogger(__name__)


class JoinResult(NamedTuple):
    """Par ``(ponto, id do polígono que o contém ou None)``."""

    point: Point
    polygon_id: Hashable | None

    @property
    def matched(self) -> bool:
        return self.polygon_id is not None


def check_unique_ids(polygons: Iterable[Polygon]) -> None:
    seen = set()
    for poly in polygons:
        if poly.id in seen:
            raise DuplicateIdError(f"Id de polígono repetido: {poly.id!r}")
        seen.add(poly.id)


def _match(point: Point, polygons: Sequence[Polygon], registry: CRSRegistry) -> Hashable | None:
    # coordenadas do ponto em cada CRS de destino, calculadas uma vez
    coords = {point.crs: point.coords}
    for poly in polygons:
        if poly.crs not in coords:
            coords[poly.crs] = registry.transform_point(point.x, point.y, point.crs, poly.crs)
        x, y = coords[poly.crs]
        if contains_xy(poly, x, y):
            return poly.id
    return None


def join(
    points: Iterable[Point],
    polygons: Iterable[Polygon],
    *,
    registry: CRSRegistry | None = None,
    workers: int | None = WORKERS,
) -> list[JoinResult]:
    """
    Atribui cada ponto ao primeiro polígono (na ordem de entrada) que o contém.

    Parameters
    ----------
    points : iterable of Point
        Pontos a atribuir. São reprojetados para o CRS de cada polígono
        quando necessário.
    polygons : iterable of Polygon
        Polígonos candidatos. Ids precisam ser únicos. Se houver
        sobreposição (defeito de dados), vence o primeiro da lista.
    registry : CRSRegistry, optional
        Registro de CRS usado nas reprojeções (padrão:
        :func:`geozonal.crs.default_registry`).
    workers : int, optional
        Se maior que 1, os testes por ponto rodam em um pool de threads.
        O resultado é idêntico ao sequencial.

    Returns
    -------
    list[JoinResult]
        Um resultado por ponto, na ordem dos pontos.
    """
    if registry is None:
        registry = default_registry()
    points = list(points)
    polygons = list(polygons)
    check_unique_ids(polygons)

    # valida os CRSs antes de começar (UnknownCRSError cedo)
    for crs in {p.crs for p in points} | {p.crs for p in polygons}:
        registry.get(crs)

    logger.debug("Junção espacial: %d pontos x %d polígonos", len(points), len(polygons))

    def match(point: Point) -> JoinResult:
        return JoinResult(point, _match(point, polygons, registry))

    if workers and workers > 1 and len(points) > 1:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            results = list(pool.map(match, points))
    else:
        results = [match(p) for p in points]

    n_matched = sum(1 for r in results if r.matched)
    logger.info(
        "Junção concluída: %d atribuídos, %d sem polígono", n_matched, len(results) - n_matched
    )
    return results


# ---------------------------------------------------------------------
# Agregação
# ---------------------------------------------------------------------

class Aggregation(Mapping):
    """
    Mapeamento somente leitura ``{polygon_id: valor reduzido}``.

    Polígonos sem nenhum ponto não aparecem. Pontos sem polígono são
    contados em :attr:`unmatched`.
    """

    def __init__(self, values: dict, unmatched: int = 0):
        self._values = dict(values)
        self.unmatched = unmatched

    def __getitem__(self, key):
        return self._values[key]

    def __iter__(self):
        return iter(self._values)

    def __len__(self):
        return len(self._values)

    def __repr__(self):
        return f"Aggregation({self._values!r}, unmatched={self.unmatched})"


def aggregate(
    joined: Iterable[tuple[Point, Hashable | None]],
    reducer: Callable[[list], Any],
    *,
    attribute: str | None = None,
) -> Aggregation:
    """
    Agrupa valores por polígono e aplica ``reducer`` em cada grupo.

    Parameters
    ----------
    joined : iterable of (Point, polygon_id | None)
        Tipicamente a saída de :func:`join`.
    reducer : callable
        Recebe a lista de valores do grupo e devolve o valor agregado
        (ex.: :func:`sum_values`, :func:`mean_values`).
    attribute : str, optional
        Atributo dos pontos a reduzir. Pontos sem o atributo contribuem
        ``None``. Se omitido, o redutor recebe os próprios pontos.
    """
    groups: dict[Hashable, list] = {}
    unmatched = 0

    for point, polygon_id in joined:
        if polygon_id is None:
            unmatched += 1
            continue
        value = point if attribute is None else point.get(attribute)
        groups.setdefault(polygon_id, []).append(value)

    return Aggregation(
        {pid: reducer(values) for pid, values in groups.items()},
        unmatched=unmatched,
    )


# ---------------------------------------------------------------------
# Redutores (ignoram None, como na.rm = TRUE)
# ---------------------------------------------------------------------

def _present(values):
    return [v for v in values if v is not None]


def sum_values(values: Sequence) -> float | int:
    return sum(_present(values))


def count_values(values: Sequence) -> int:
    return len(_present(values))


def mean_values(values: Sequence) -> float | None:
    present = _present(values)
    if not present:
        return None
    return sum(present) / len(present)


def min_values(values: Sequence):
    present = _present(values)
    return min(present) if present else None


def max_values(values: Sequence):
    present = _present(values)
    return max(present) if present else None


REDUCERS: dict[str, Callable[[Sequence], Any]] = {
    "sum": sum_values,
    "mean": mean_values,
    "count": count_values,
    "min": min_values,
    "max": max_values,
}
