"""
Reprojeção de coordenadas entre sistemas de referência (CRS).

Este módulo define o :class:`CRSRegistry`, um registro explícito de
definições de CRS, e a função :func:`transform`. O registro é montado uma
vez (tipicamente no início do processo) e tratado como somente leitura;
não existe registro global mutável.

A matemática das projeções é delegada ao PROJ via ``pyproj``.

>>> reg = CRSRegistry({"EPSG:4326": "EPSG:4326"})
>>> reg.transform([(-46.63, -23.55)], "epsg:4326", "EPSG:4326")
[(-46.63, -23.55)]
>>> "EPSG:4326" in reg
True
"""

from __future__ import annotations

import logging
import math
from functools import lru_cache
from typing import Iterable, Mapping

import numpy as np
from pyproj import CRS, Transformer
from pyproj.exceptions import CRSError, ProjError

from geozonal.config import DEFAULT_CRS_DEFINITIONS
from geozonal.errors import TransformError, UnknownCRSError

logger = logging.getLogger(__name__)

Coord = tuple[float, float]


def as_crs_id(value) -> str:
    """
    Normaliza um identificador de CRS.

    Inteiros viram ``"EPSG:<n>"``; prefixos de autoridade são colocados em
    maiúsculas. Outros textos (ex.: strings PROJ) são apenas aparados.

    >>> as_crs_id(4326)
    'EPSG:4326'
    >>> as_crs_id(" epsg:5070 ")
    'EPSG:5070'
    """
    if isinstance(value, bool):
        raise TypeError(f"Identificador de CRS inválido: {value!r}")

    if isinstance(value, int):
        return f"EPSG:{value}"

    if not isinstance(value, str) or not value.strip():
        raise TypeError(f"Identificador de CRS inválido: {value!r}")

    text = value.strip()
    authority, sep, code = text.partition(":")
    if sep and authority.isalpha() and code.strip().isalnum():
        return f"{authority.upper()}:{code.strip()}"
    return text


class CRSRegistry:
    """
    Registro somente leitura de definições de CRS.

    Parameters
    ----------
    definitions : Mapping
        Mapeamento ``{crs_id: definição}``. A definição é qualquer coisa que
        ``pyproj.CRS.from_user_input`` aceite (código EPSG, WKT, string PROJ).

    Os ``Transformer`` do pyproj são criados sob demanda e guardados por par
    de CRS.
    """

    def __init__(self, definitions: Mapping):
        crs = {}
        for crs_id, definition in definitions.items():
            key = as_crs_id(crs_id)
            try:
                crs[key] = CRS.from_user_input(definition)
            except CRSError as exc:
                raise UnknownCRSError(
                    f"Definição de CRS inválida para '{key}': {exc}"
                ) from exc
        self._crs = crs
        self._transformers: dict[tuple[str, str], Transformer] = {}

    def __contains__(self, crs_id) -> bool:
        try:
            return as_crs_id(crs_id) in self._crs
        except TypeError:
            return False

    def __iter__(self):
        return iter(self._crs)

    def __len__(self):
        return len(self._crs)

    def __repr__(self):
        return f"CRSRegistry({sorted(self._crs)})"

    def ids(self) -> list[str]:
        return list(self._crs)

    def get(self, crs_id) -> CRS:
        """Retorna o ``pyproj.CRS`` registrado ou levanta :class:`UnknownCRSError`."""
        key = as_crs_id(crs_id)
        try:
            return self._crs[key]
        except KeyError:
            raise UnknownCRSError(
                f"CRS '{key}' não registrado. Registrados: {sorted(self._crs)}"
            ) from None

    def extended(self, definitions: Mapping) -> "CRSRegistry":
        """Novo registro com as definições atuais mais ``definitions``."""
        merged = {key: crs for key, crs in self._crs.items()}
        merged.update(definitions)
        return CRSRegistry(merged)

    def _transformer(self, src: str, dst: str) -> Transformer:
        key = (src, dst)
        if key not in self._transformers:
            logger.debug("Criando Transformer %s -> %s", src, dst)
            self._transformers[key] = Transformer.from_crs(
                self.get(src), self.get(dst), always_xy=True
            )
        return self._transformers[key]

    def transform(self, coords: Iterable[Coord], src, dst) -> list[Coord]:
        """
        Reprojeta uma sequência de pares ``(x, y)`` de ``src`` para ``dst``.

        Função pura: não altera ``coords``. Se ``src == dst`` devolve as
        mesmas coordenadas (como tuplas de float).
        """
        src = as_crs_id(src)
        dst = as_crs_id(dst)
        # os dois precisam estar registrados, mesmo no caso identidade
        self.get(src)
        self.get(dst)

        pts = [(float(x), float(y)) for x, y in coords]
        if src == dst or not pts:
            return pts

        xs = np.fromiter((p[0] for p in pts), dtype="float64", count=len(pts))
        ys = np.fromiter((p[1] for p in pts), dtype="float64", count=len(pts))

        try:
            tx, ty = self._transformer(src, dst).transform(xs, ys, errcheck=True)
        except ProjError as exc:
            raise TransformError(f"Falha ao reprojetar {src} -> {dst}: {exc}") from exc

        tx = np.asarray(tx, dtype="float64")
        ty = np.asarray(ty, dtype="float64")
        if not (np.isfinite(tx).all() and np.isfinite(ty).all()):
            raise TransformError(
                f"Coordenadas fora do domínio da projeção {src} -> {dst}."
            )

        return list(zip(tx.tolist(), ty.tolist()))

    def transform_point(self, x: float, y: float, src, dst) -> Coord:
        return self.transform([(x, y)], src, dst)[0]

    def transform_bounds(
        self, bounds, src, dst, *, densify_pts: int = 21
    ) -> tuple[float, float, float, float]:
        """
        Envelope ``(minx, miny, maxx, maxy)`` em ``dst`` do retângulo ``bounds`` de ``src``.

        As bordas do retângulo são densificadas com ``densify_pts`` pontos
        antes da reprojeção, pois uma reta em ``src`` pode virar curva em
        ``dst``.
        """
        src = as_crs_id(src)
        dst = as_crs_id(dst)
        self.get(src)
        self.get(dst)

        minx, miny, maxx, maxy = (float(v) for v in bounds)
        if src == dst:
            return minx, miny, maxx, maxy

        try:
            out = self._transformer(src, dst).transform_bounds(
                minx, miny, maxx, maxy, densify_pts=densify_pts, errcheck=True
            )
        except ProjError as exc:
            raise TransformError(f"Falha ao reprojetar envelope {src} -> {dst}: {exc}") from exc

        if not all(math.isfinite(v) for v in out):
            raise TransformError(
                f"Envelope fora do domínio da projeção {src} -> {dst}."
            )
        return tuple(float(v) for v in out)


@lru_cache(maxsize=1)
def default_registry() -> CRSRegistry:
    """Registro padrão, construído a partir de ``config.DEFAULT_CRS_DEFINITIONS``."""
    return CRSRegistry(DEFAULT_CRS_DEFINITIONS)


def transform(
    coords: Iterable[Coord],
    src,
    dst,
    *,
    registry: CRSRegistry | None = None,
) -> list[Coord]:
    """
    Atalho para :meth:`CRSRegistry.transform`.

    >>> transform([(1.0, 2.0)], 4326, 4326)
    [(1.0, 2.0)]
    """
    if registry is None:
        registry = default_registry()
    return registry.transform(coords, src, dst)


def roundtrip_error(coords: Iterable[Coord], src, dst, *, registry: CRSRegistry | None = None) -> float:
    """Maior desvio absoluto de ``transform(transform(p, src, dst), dst, src)``."""
    if registry is None:
        registry = default_registry()
    pts = [(float(x), float(y)) for x, y in coords]
    back = registry.transform(registry.transform(pts, src, dst), dst, src)
    worst = 0.0
    for (x0, y0), (x1, y1) in zip(pts, back):
        worst = max(worst, math.fabs(x0 - x1), math.fabs(y0 - y1))
    return worst
