"""
Leitura de insumos e escrita da tabela final.

Converte registros tabulares, arquivos vetoriais e rasters em objetos do
modelo (:class:`Point`, :class:`Polygon`, :class:`Grid`). Nenhuma lógica
de junção ou estatística acontece aqui.
"""

from __future__ import annotations

import datetime as dt
import logging
from pathlib import Path
from typing import Any, Iterable, Mapping

import geopandas as gpd
import numpy as np
import pandas as pd
import pyarrow as pa
import pyarrow.parquet as pq
import rasterio

from geozonal.crs import as_crs_id
from geozonal.errors import (
    GeozonalError,
    InvalidAttributeError,
    InvalidGeometryError,
    UnknownCRSError,
)
from geozonal.models.geometry import Point, Polygon
from geozonal.models.grid import Grid

logger = logging.getLogger(__name__)


def _plain_value(value):
    """Converte valores vindos do pandas para a união aceita nos atributos."""
    if value is None or value is pd.NA or value is pd.NaT:
        return None
    if isinstance(value, (pd.Timestamp, dt.date)):
        return value.isoformat()
    return value


# ---------------------------------------------------------------------
# Pontos
# ---------------------------------------------------------------------

def points_from_records(
    records: Iterable[Mapping[str, Any]],
    *,
    x: str,
    y: str,
    crs,
    id_field: str | None = None,
    drop_invalid: bool = False,
) -> list[Point]:
    """
    Converte registros ``{coluna: valor}`` em pontos.

    As colunas ``x`` e ``y`` viram coordenadas; as demais viram atributos.
    Sem ``id_field``, o id é a posição do registro.

    Registros inválidos (coordenada ausente ou não finita, atributo de tipo
    não suportado) levantam erro, ou são descartados com aviso no log se
    ``drop_invalid=True``.

    >>> pts = points_from_records([{"lon": 1, "lat": 2, "casos": 3}], x="lon", y="lat", crs=4326)
    >>> pts[0].coords, dict(pts[0].attributes)
    ((1.0, 2.0), {'casos': 3})
    """
    crs = as_crs_id(crs)
    points = []
    dropped = 0

    for i, record in enumerate(records):
        attrs = {k: _plain_value(v) for k, v in record.items() if k not in (x, y)}
        pid = i
        try:
            if id_field:
                if id_field not in attrs:
                    raise InvalidAttributeError(f"Registro {i} sem a coluna de id '{id_field}'.")
                pid = attrs.pop(id_field)
            if x not in record or y not in record:
                raise InvalidGeometryError(f"Registro {pid!r} sem colunas '{x}'/'{y}'.")
            points.append(Point(pid, record[x], record[y], crs, attrs))
        except GeozonalError as exc:
            if not drop_invalid:
                raise
            dropped += 1
            logger.warning("Registro %r descartado: %s", pid, exc)

    if dropped:
        logger.warning("%d registro(s) descartado(s) na leitura de pontos", dropped)
    return points


def read_points_csv(
    path: str | Path,
    *,
    x: str = "lon",
    y: str = "lat",
    crs=4326,
    id_field: str | None = None,
    drop_invalid: bool = False,
    **read_csv_kwargs,
) -> list[Point]:
    """Lê um CSV com pandas e devolve :func:`points_from_records`."""
    df = pd.read_csv(path, **read_csv_kwargs)
    logger.info("Lidos %d registros de %s", len(df), path)

    # NaN -> None já acontece na validação de atributos
    records = df.to_dict(orient="records")
    return points_from_records(
        records, x=x, y=y, crs=crs, id_field=id_field, drop_invalid=drop_invalid
    )


# ---------------------------------------------------------------------
# Polígonos
# ---------------------------------------------------------------------

def _gdf_crs_id(gdf: gpd.GeoDataFrame, crs) -> str:
    if crs is not None:
        return as_crs_id(crs)
    if gdf.crs is None:
        raise UnknownCRSError(
            "GeoDataFrame sem CRS. Informe o parâmetro crs explicitamente."
        )
    epsg = gdf.crs.to_epsg()
    return as_crs_id(epsg) if epsg is not None else gdf.crs.to_string()


def polygons_from_geodataframe(
    gdf: gpd.GeoDataFrame,
    *,
    id_field: str | None = None,
    crs=None,
) -> list[Polygon]:
    """
    Converte as linhas de um GeoDataFrame em :class:`Polygon`.

    Parameters
    ----------
    gdf : geopandas.GeoDataFrame
        Geometrias Polygon ou MultiPolygon.
    id_field : str, optional
        Coluna usada como id. Sem ela, usa o índice do GeoDataFrame.
    crs : optional
        Sobrescreve o CRS do GeoDataFrame (obrigatório se ``gdf.crs`` for None).
    """
    crs_id = _gdf_crs_id(gdf, crs)
    geom_col = gdf.geometry.name

    polygons = []
    for idx, row in gdf.iterrows():
        pid = row[id_field] if id_field else idx
        if isinstance(pid, np.generic):
            pid = pid.item()
        attrs = {
            k: _plain_value(v) for k, v in row.items()
            if k != geom_col and k != id_field
        }
        polygons.append(Polygon.from_shapely(pid, row[geom_col], crs_id, attrs))

    return polygons


def read_polygons(
    path: str | Path,
    *,
    id_field: str | None = None,
    layer: str | None = None,
    crs=None,
) -> list[Polygon]:
    """Lê shapefile / GeoPackage / GeoJSON com geopandas."""
    gdf = gpd.read_file(path, layer=layer)
    logger.info("Lidos %d polígonos de %s (CRS %s)", len(gdf), path, gdf.crs)
    return polygons_from_geodataframe(gdf, id_field=id_field, crs=crs)


# ---------------------------------------------------------------------
# Raster
# ---------------------------------------------------------------------

def read_grid(path: str | Path, *, band: int = 1, crs=None) -> Grid:
    """
    Lê uma banda de um raster (GeoTIFF etc.) com rasterio.

    Apenas rasters norte-para-cima com pixels quadrados são aceitos.
    """
    with rasterio.open(path) as src:
        values = src.read(band).astype("float64")
        nodata = src.nodata
        transform = src.transform
        src_crs = src.crs

    if transform.b != 0 or transform.d != 0:
        raise ValueError(f"Raster rotacionado não suportado: {path}")
    if transform.e >= 0 or not np.isclose(transform.a, -transform.e):
        raise ValueError(
            f"Raster precisa ser norte-para-cima com pixels quadrados: {path} "
            f"(a={transform.a}, e={transform.e})"
        )

    if crs is None:
        if src_crs is None:
            raise UnknownCRSError(f"Raster sem CRS: {path}. Informe crs.")
        epsg = src_crs.to_epsg()
        crs = as_crs_id(epsg) if epsg is not None else src_crs.to_string()

    grid = Grid(
        origin=(transform.c, transform.f),
        cell_size=transform.a,
        values=values,
        crs=crs,
        nodata=np.nan if nodata is None else nodata,
    )
    logger.info("Raster %s: %dx%d células de %.6g (%s)", path, grid.rows, grid.cols, grid.cell_size, grid.crs)
    return grid


# ---------------------------------------------------------------------
# Saída
# ---------------------------------------------------------------------

def write_table(df: pd.DataFrame, path: str | Path) -> str:
    """
    Grava a tabela por polígono. ``.parquet`` via pyarrow, ``.csv`` via pandas.

    O índice (``polygon_id``) vira coluna. Retorna o caminho final.
    """
    path = Path(path).expanduser().resolve()
    path.parent.mkdir(parents=True, exist_ok=True)

    flat = df.reset_index()
    suffix = path.suffix.lower()

    if suffix == ".parquet":
        table = pa.Table.from_pandas(flat, preserve_index=False)
        pq.write_table(table, path.as_posix())
    elif suffix == ".csv":
        flat.to_csv(path, index=False)
    else:
        raise ValueError(f"Formato de saída não suportado: '{suffix}' (use .parquet ou .csv)")

    logger.info("Tabela com %d linhas gravada em %s", len(flat), path)
    return path.as_posix()
