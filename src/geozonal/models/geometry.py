"""
Modelo de geometria: pontos e polígonos (multi-partes) com CRS.

Pontos e polígonos são imutáveis depois de construídos. Toda validação
(anéis fechados, vértices finitos, atributos) acontece no construtor.

>>> from geozonal.models.geometry import Point, Polygon
>>> sq = Polygon.from_rings("A", [[(0, 0), (4, 0), (4, 4), (0, 4), (0, 0)]], crs=4326)
>>> sq.bbox
BBox(minx=0.0, miny=0.0, maxx=4.0, maxy=4.0)
>>> sq.area
16.0
>>> Point("p1", 2, 2, crs="EPSG:4326").coords
(2.0, 2.0)
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Hashable, Iterable, Mapping, NamedTuple, Sequence

import numpy as np
from shapely.geometry import MultiPolygon as ShapelyMultiPolygon
from shapely.geometry import Point as ShapelyPoint
from shapely.geometry import Polygon as ShapelyPolygon

from geozonal.crs import CRSRegistry, as_crs_id, default_registry
from geozonal.errors import InvalidAttributeError, InvalidGeometryError

Coord = tuple[float, float]
Ring = tuple[Coord, ...]
AttributeValue = str | int | float | bool | None


# ---------------------------------------------------------------------
# Atributos
# ---------------------------------------------------------------------

def validate_attribute(name: str, value: Any) -> AttributeValue:
    """
    Valida um valor de atributo contra a união ``str | int | float | bool | None``.

    Escalares numpy viram escalares Python; ``NaN`` vira ``None``.

    >>> validate_attribute("casos", np.int64(3))
    3
    >>> validate_attribute("temp", float("nan")) is None
    True
    """
    if isinstance(value, np.generic):
        value = value.item()

    if value is None or isinstance(value, (str, bool, int)):
        return value

    if isinstance(value, float):
        return None if math.isnan(value) else value

    raise InvalidAttributeError(
        f"Atributo '{name}' com tipo não suportado: {type(value).__name__}"
    )


def freeze_attributes(attributes: Mapping[str, Any] | None) -> Mapping[str, AttributeValue]:
    attributes = attributes or {}
    checked = {}
    for name, value in attributes.items():
        if not isinstance(name, str):
            raise InvalidAttributeError(f"Nome de atributo deve ser str: {name!r}")
        checked[name] = validate_attribute(name, value)
    return MappingProxyType(checked)


# ---------------------------------------------------------------------
# Bounding box
# ---------------------------------------------------------------------

class BBox(NamedTuple):
    minx: float
    miny: float
    maxx: float
    maxy: float

    @classmethod
    def of(cls, coords: Iterable[Coord]) -> "BBox":
        xs, ys = zip(*coords)
        return cls(min(xs), min(ys), max(xs), max(ys))

    def contains_xy(self, x: float, y: float) -> bool:
        """Teste inclusivo (pontos na borda contam como dentro)."""
        return self.minx <= x <= self.maxx and self.miny <= y <= self.maxy

    def intersects(self, other: "BBox") -> bool:
        return not (
            other.minx > self.maxx
            or other.maxx < self.minx
            or other.miny > self.maxy
            or other.maxy < self.miny
        )

    def union(self, other: "BBox") -> "BBox":
        return BBox(
            min(self.minx, other.minx),
            min(self.miny, other.miny),
            max(self.maxx, other.maxx),
            max(self.maxy, other.maxy),
        )


# ---------------------------------------------------------------------
# Anéis
# ---------------------------------------------------------------------

def _finite_pair(x, y) -> Coord:
    try:
        fx, fy = float(x), float(y)
    except (TypeError, ValueError):
        raise InvalidGeometryError(f"Coordenada não numérica: ({x!r}, {y!r})") from None
    if not (math.isfinite(fx) and math.isfinite(fy)):
        raise InvalidGeometryError(f"Coordenada não finita: ({fx}, {fy})")
    return fx, fy


def signed_area(ring: Sequence[Coord]) -> float:
    """Área com sinal (fórmula do laço). Positiva para anel anti-horário."""
    total = 0.0
    for (x1, y1), (x2, y2) in zip(ring, ring[1:]):
        total += x1 * y2 - x2 * y1
    return total / 2.0


def validate_ring(coords: Iterable[Sequence[float]]) -> Ring:
    """
    Valida um anel: fechado, com ao menos 3 vértices distintos e finitos.

    >>> validate_ring([(0, 0), (1, 0), (0, 1), (0, 0)])
    ((0.0, 0.0), (1.0, 0.0), (0.0, 1.0), (0.0, 0.0))
    """
    ring = []
    for pair in coords:
        if len(pair) < 2:
            raise InvalidGeometryError(f"Vértice incompleto: {pair!r}")
        ring.append(_finite_pair(pair[0], pair[1]))

    if len(ring) < 4:
        raise InvalidGeometryError(
            f"Anel precisa de ao menos 4 vértices (3 distintos + fechamento), recebeu {len(ring)}."
        )
    if ring[0] != ring[-1]:
        raise InvalidGeometryError(
            f"Anel não fechado: primeiro {ring[0]} != último {ring[-1]}."
        )
    if len(set(ring)) < 3:
        raise InvalidGeometryError("Anel com menos de 3 vértices distintos.")

    return tuple(ring)


def _oriented(ring: Ring, ccw: bool) -> Ring:
    area = signed_area(ring)
    if (area < 0 and ccw) or (area > 0 and not ccw):
        return tuple(reversed(ring))
    return ring


# ---------------------------------------------------------------------
# Ponto
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class Point:
    """
    Ponto com CRS e atributos.

    Parameters
    ----------
    id : Hashable
        Identificador do ponto (ex.: número da linha do CSV).
    x, y : float
        Coordenadas no CRS ``crs``. Devem ser finitas.
    crs : str | int
        Identificador do CRS (normalizado por :func:`geozonal.crs.as_crs_id`).
    attributes : Mapping, optional
        Atributos não espaciais, expostos como mapeamento somente leitura.
    """

    id: Hashable
    x: float
    y: float
    crs: str
    attributes: Mapping[str, AttributeValue] = field(default_factory=dict, compare=False)

    def __post_init__(self):
        x, y = _finite_pair(self.x, self.y)
        object.__setattr__(self, "x", x)
        object.__setattr__(self, "y", y)
        object.__setattr__(self, "crs", as_crs_id(self.crs))
        object.__setattr__(self, "attributes", freeze_attributes(self.attributes))

    def __repr__(self):
        return f"Point(id={self.id!r}, x={self.x}, y={self.y}, crs='{self.crs}')"

    @property
    def coords(self) -> Coord:
        return (self.x, self.y)

    def get(self, name: str, default=None) -> AttributeValue:
        return self.attributes.get(name, default)

    def to_crs(self, crs, registry: CRSRegistry | None = None) -> "Point":
        """Novo ponto reprojetado para ``crs``; o original não muda."""
        if registry is None:
            registry = default_registry()
        dst = as_crs_id(crs)
        if dst == self.crs:
            registry.get(dst)
            return self
        x, y = registry.transform_point(self.x, self.y, self.crs, dst)
        return Point(self.id, x, y, dst, dict(self.attributes))

    def to_shapely(self) -> ShapelyPoint:
        return ShapelyPoint(self.x, self.y)

    @classmethod
    def from_shapely(cls, id, geom: ShapelyPoint, crs, attributes=None) -> "Point":
        if geom.geom_type != "Point" or geom.is_empty:
            raise InvalidGeometryError(f"Esperado Point, recebido {geom.geom_type}.")
        return cls(id, geom.x, geom.y, crs, attributes or {})


# ---------------------------------------------------------------------
# Polígono
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class Polygon:
    """
    Polígono, possivelmente multi-partes, com CRS e atributos.

    ``parts`` é uma sequência de conjuntos de anéis. Em cada conjunto o
    primeiro anel é o exterior e os demais são buracos. Na construção os
    exteriores são orientados no sentido anti-horário e os buracos no
    horário, de modo que :attr:`area` some áreas com sinal.

    Para o caso comum de uma única parte use :meth:`from_rings`.
    """

    id: Hashable
    parts: tuple[tuple[Ring, ...], ...]
    crs: str
    attributes: Mapping[str, AttributeValue] = field(default_factory=dict, compare=False)
    bbox: BBox = field(init=False, compare=False)

    def __post_init__(self):
        parts = []
        for rings in self.parts:
            rings = [validate_ring(r) for r in rings]
            if not rings:
                raise InvalidGeometryError(f"Polígono '{self.id}' com parte vazia.")
            outer, holes = rings[0], rings[1:]
            parts.append(
                (_oriented(outer, ccw=True),) + tuple(_oriented(h, ccw=False) for h in holes)
            )

        if not parts:
            raise InvalidGeometryError(f"Polígono '{self.id}' sem anéis.")

        object.__setattr__(self, "parts", tuple(parts))
        object.__setattr__(self, "crs", as_crs_id(self.crs))
        object.__setattr__(self, "attributes", freeze_attributes(self.attributes))

        bbox = BBox.of(parts[0][0])
        for rings in parts[1:]:
            bbox = bbox.union(BBox.of(rings[0]))
        object.__setattr__(self, "bbox", bbox)

    def __repr__(self):
        return (
            f"Polygon(id={self.id!r}, parts={len(self.parts)}, "
            f"crs='{self.crs}', bbox={tuple(self.bbox)})"
        )

    @classmethod
    def from_rings(cls, id, rings: Sequence[Sequence[Coord]], crs, attributes=None) -> "Polygon":
        """Polígono de uma parte: primeiro anel exterior, demais buracos."""
        return cls(id, (tuple(rings),), crs, attributes or {})

    @property
    def rings(self) -> tuple[Ring, ...]:
        """Todos os anéis, em ordem (exterior, buracos, próximo exterior...)."""
        return tuple(ring for rings in self.parts for ring in rings)

    @property
    def exterior_rings(self) -> tuple[Ring, ...]:
        return tuple(rings[0] for rings in self.parts)

    @property
    def is_multipart(self) -> bool:
        return len(self.parts) > 1

    @property
    def area(self) -> float:
        return sum(signed_area(ring) for ring in self.rings)

    def get(self, name: str, default=None) -> AttributeValue:
        return self.attributes.get(name, default)

    def to_crs(self, crs, registry: CRSRegistry | None = None) -> "Polygon":
        """
        Novo polígono com todos os vértices reprojetados para ``crs``.

        Apenas os vértices são transformados (sem densificação das arestas).
        """
        if registry is None:
            registry = default_registry()
        dst = as_crs_id(crs)
        if dst == self.crs:
            registry.get(dst)
            return self

        parts = []
        for rings in self.parts:
            parts.append(tuple(
                tuple(registry.transform(ring, self.crs, dst)) for ring in rings
            ))
        return Polygon(self.id, tuple(parts), dst, dict(self.attributes))

    # --- interoperabilidade ---------------------------------------------

    def to_shapely(self) -> ShapelyPolygon | ShapelyMultiPolygon:
        polys = [ShapelyPolygon(rings[0], rings[1:]) for rings in self.parts]
        if len(polys) == 1:
            return polys[0]
        return ShapelyMultiPolygon(polys)

    @classmethod
    def from_shapely(cls, id, geom, crs, attributes=None) -> "Polygon":
        """Constrói a partir de um ``Polygon``/``MultiPolygon`` do shapely."""
        if geom is None or geom.is_empty:
            raise InvalidGeometryError(f"Geometria vazia para o polígono '{id}'.")

        if geom.geom_type == "Polygon":
            geoms = [geom]
        elif geom.geom_type == "MultiPolygon":
            geoms = list(geom.geoms)
        else:
            raise InvalidGeometryError(
                f"Esperado Polygon ou MultiPolygon para '{id}', recebido {geom.geom_type}."
            )

        parts = []
        for g in geoms:
            rings = [tuple(g.exterior.coords)]
            rings += [tuple(hole.coords) for hole in g.interiors]
            # descarta Z, se houver
            parts.append(tuple(tuple((c[0], c[1]) for c in ring) for ring in rings))

        return cls(id, tuple(parts), crs, attributes or {})

    def to_svg(self, size: int = 200, fill: str = "#444444") -> str:
        """
        Ícone SVG (texto) do polígono normalizado em ``size`` × ``size``,
        mantendo a proporção e centralizado. Buracos usam ``fill-rule="evenodd"``.
        """
        minx, miny, maxx, maxy = self.bbox
        w = maxx - minx
        h = maxy - miny
        s = size / max(w, h)

        # centraliza
        dx = (size - w * s) / 2
        dy = (size - h * s) / 2

        def ring(coords):
            # inverte eixo Y (GIS -> SVG)
            pts = [((x - minx) * s + dx, size - ((y - miny) * s + dy)) for x, y in coords]
            d = [f"M {pts[0][0]:.2f} {pts[0][1]:.2f}"]
            d += [f"L {x:.2f} {y:.2f}" for x, y in pts[1:]]
            d.append("Z")
            return " ".join(d)

        d = " ".join(ring(r) for r in self.rings)

        return f"""\
<svg xmlns="http://www.w3.org/2000/svg"
    width="{size}" height="{size}"
    viewBox="0 0 {size} {size}">
<path d="{d}" fill="{fill}" fill-rule="evenodd"/>
</svg>
"""
