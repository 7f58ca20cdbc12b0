"""
Tabela plana por polígono, para o colaborador de modelagem.

Junta os mapeamentos agregados (casos por polígono, média zonal etc.) ao
conjunto completo de polígonos. Polígonos ausentes de um mapeamento ficam
``<NA>``; zeros calculados continuam zeros.
"""

from __future__ import annotations

import numbers
from typing import Any, Iterable, Mapping, Sequence

import pandas as pd

from geozonal.compute.join import check_unique_ids
from geozonal.models.geometry import Polygon

INDEX_NAME = "polygon_id"


def _nullable_dtype(values: Sequence[Any]) -> str:
    present = [v for v in values if v is not None]
    if not present:
        return "Float64"
    if all(isinstance(v, numbers.Integral) and not isinstance(v, bool) for v in present):
        return "Int64"
    if all(isinstance(v, numbers.Real) and not isinstance(v, bool) for v in present):
        return "Float64"
    if all(isinstance(v, bool) for v in present):
        return "boolean"
    return "object"


def build_table(
    polygons: Iterable[Polygon],
    columns: Mapping[str, Mapping],
    *,
    fill: Mapping[str, Any] | None = None,
    attributes: Sequence[str] = (),
) -> pd.DataFrame:
    """
    Monta um DataFrame indexado por ``polygon_id``, um polígono por linha.

    Parameters
    ----------
    polygons : iterable of Polygon
        Conjunto completo de polígonos (define as linhas e a ordem).
    columns : Mapping[str, Mapping]
        ``{nome_da_coluna: {polygon_id: valor}}``.
    fill : Mapping[str, Any], optional
        Valor para preencher lacunas de cada coluna (ex.: ``{"casos": 0}``).
        Colunas sem entrada mantêm ``<NA>``.
    attributes : sequence of str
        Atributos dos polígonos copiados como colunas.

    >>> from geozonal.models.geometry import Polygon
    >>> ring = [(0, 0), (1, 0), (1, 1), (0, 1), (0, 0)]
    >>> polys = [Polygon.from_rings(i, [ring], crs=4326) for i in ("A", "B")]
    >>> df = build_table(polys, {"casos": {"A": 3}, "temp": {"A": 0.0, "B": None}})
    >>> int(df.loc["A", "casos"]), df.loc["B", "casos"] is pd.NA
    (3, True)
    >>> float(df.loc["A", "temp"]), df.loc["B", "temp"] is pd.NA
    (0.0, True)
    """
    polygons = list(polygons)
    check_unique_ids(polygons)
    fill = fill or {}
    ids = [p.id for p in polygons]

    data = {}
    for name in attributes:
        values = [p.get(name) for p in polygons]
        data[name] = pd.array(values, dtype=_nullable_dtype(values))

    for name, mapping in columns.items():
        values = [mapping.get(pid) for pid in ids]
        if name in fill:
            values = [fill[name] if v is None else v for v in values]
        data[name] = pd.array(values, dtype=_nullable_dtype(values))

    return pd.DataFrame(data, index=pd.Index(ids, name=INDEX_NAME))
