"""
Grade raster regular (norte para cima, células quadradas).

A célula ``(r, c)`` cobre::

    x em [origin.x + c*s, origin.x + (c+1)*s)
    y em (origin.y - (r+1)*s, origin.y - r*s]

onde ``origin`` é o canto superior esquerdo e ``s`` o tamanho da célula.

>>> import numpy as np
>>> g = Grid(origin=(0.0, 2.0), cell_size=1.0, values=np.array([[1, 2], [3, 4]]), crs=4326)
>>> g.rows, g.cols
(2, 2)
>>> g.cell_center(0, 0)
(0.5, 1.5)
>>> g.aggregate(2).values.tolist()
[[2.5]]
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field

import numpy as np

from geozonal.config import DEFAULT_NODATA
from geozonal.crs import as_crs_id
from geozonal.models.geometry import BBox

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class Grid:
    """
    Camada raster somente leitura.

    Parameters
    ----------
    origin : tuple[float, float]
        Canto superior esquerdo ``(x, y)``.
    cell_size : float
        Tamanho (positivo) do lado da célula, nas unidades do CRS.
    values : array-like 2D
        Valores por célula, ``values[r, c]``. Convertido para ``float64`` e
        marcado como somente leitura.
    crs : str | int
        Identificador do CRS da grade.
    nodata : float
        Valor sentinela de ausência. ``NaN`` é sempre tratado como ausência.
    """

    origin: tuple[float, float]
    cell_size: float
    values: np.ndarray
    crs: str
    nodata: float = DEFAULT_NODATA
    _valid: np.ndarray = field(init=False, repr=False)

    def __post_init__(self):
        values = np.array(self.values, dtype="float64", copy=True)
        if values.ndim != 2 or values.size == 0:
            raise ValueError(f"Grade precisa de valores 2D não vazios, recebeu shape {values.shape}.")

        cell_size = float(self.cell_size)
        if not math.isfinite(cell_size) or cell_size <= 0:
            raise ValueError(f"cell_size deve ser positivo e finito, recebeu {self.cell_size!r}.")

        ox, oy = (float(v) for v in self.origin)
        if not (math.isfinite(ox) and math.isfinite(oy)):
            raise ValueError(f"Origem não finita: {self.origin!r}.")

        values.setflags(write=False)
        valid = np.isfinite(values) & (values != float(self.nodata))
        valid.setflags(write=False)

        object.__setattr__(self, "origin", (ox, oy))
        object.__setattr__(self, "cell_size", cell_size)
        object.__setattr__(self, "values", values)
        object.__setattr__(self, "crs", as_crs_id(self.crs))
        object.__setattr__(self, "nodata", float(self.nodata))
        object.__setattr__(self, "_valid", valid)

    @classmethod
    def from_values(
        cls,
        values,
        *,
        rows: int,
        cols: int,
        origin: tuple[float, float],
        cell_size: float,
        crs,
        nodata: float = DEFAULT_NODATA,
    ) -> "Grid":
        """Constrói a partir de uma sequência plana em ordem de linhas."""
        flat = np.asarray(values, dtype="float64").ravel()
        if rows * cols != flat.size:
            raise ValueError(
                f"rows * cols ({rows} * {cols}) difere do número de valores ({flat.size})."
            )
        return cls(origin, cell_size, flat.reshape(rows, cols), crs, nodata)

    @property
    def rows(self) -> int:
        return self.values.shape[0]

    @property
    def cols(self) -> int:
        return self.values.shape[1]

    @property
    def valid_mask(self) -> np.ndarray:
        """Máscara booleana das células com valor (não nodata, não NaN)."""
        return self._valid

    @property
    def bounds(self) -> BBox:
        ox, oy = self.origin
        s = self.cell_size
        return BBox(ox, oy - self.rows * s, ox + self.cols * s, oy)

    def cell_bounds(self, r: int, c: int) -> BBox:
        ox, oy = self.origin
        s = self.cell_size
        return BBox(ox + c * s, oy - (r + 1) * s, ox + (c + 1) * s, oy - r * s)

    def cell_center(self, r: int, c: int) -> tuple[float, float]:
        ox, oy = self.origin
        s = self.cell_size
        return (ox + (c + 0.5) * s, oy - (r + 0.5) * s)

    def value(self, r: int, c: int) -> float | None:
        """Valor da célula, ou ``None`` se for nodata."""
        if not self._valid[r, c]:
            return None
        return float(self.values[r, c])

    def window(self, bbox: BBox) -> tuple[slice, slice] | None:
        """
        Fatias ``(linhas, colunas)`` das células cujos limites tocam ``bbox``.

        Retorna ``None`` se nenhuma célula tocar a caixa.
        """
        if not self.bounds.intersects(bbox):
            return None

        ox, oy = self.origin
        s = self.cell_size

        c0 = max(0, math.floor((bbox.minx - ox) / s))
        c1 = min(self.cols - 1, math.floor((bbox.maxx - ox) / s))
        r0 = max(0, math.floor((oy - bbox.maxy) / s))
        r1 = min(self.rows - 1, math.floor((oy - bbox.miny) / s))

        if c0 > c1 or r0 > r1:
            return None
        return slice(r0, r1 + 1), slice(c0, c1 + 1)

    def aggregate(self, factor: int) -> "Grid":
        """
        Reamostra a grade agrupando blocos ``factor`` × ``factor`` pela média.

        Células nodata são ignoradas; blocos sem nenhuma célula válida viram
        nodata. Blocos incompletos na borda usam as células disponíveis.
        """
        factor = int(factor)
        if factor < 1:
            raise ValueError(f"factor deve ser >= 1, recebeu {factor}.")
        if factor == 1:
            return self

        out_rows = math.ceil(self.rows / factor)
        out_cols = math.ceil(self.cols / factor)

        # completa com NaN até múltiplos de factor
        padded = np.full((out_rows * factor, out_cols * factor), np.nan)
        padded[: self.rows, : self.cols] = np.where(self._valid, self.values, np.nan)

        blocks = padded.reshape(out_rows, factor, out_cols, factor)
        counts = np.isfinite(blocks).sum(axis=(1, 3))
        sums = np.nansum(blocks, axis=(1, 3))

        out = np.full((out_rows, out_cols), self.nodata)
        has = counts > 0
        out[has] = sums[has] / counts[has]

        logger.debug(
            "Grade agregada %dx%d -> %dx%d (fator %d)",
            self.rows, self.cols, out_rows, out_cols, factor,
        )

        return Grid(self.origin, self.cell_size * factor, out, self.crs, self.nodata)
