"""Construtores de geometrias usados pelos testes."""

from geozonal.models.geometry import Polygon


def square(pid, x0, y0, size=1.0, crs="EPSG:4326", **attrs):
    ring = [(x0, y0), (x0 + size, y0), (x0 + size, y0 + size), (x0, y0 + size), (x0, y0)]
    return Polygon.from_rings(pid, [ring], crs, attrs)
