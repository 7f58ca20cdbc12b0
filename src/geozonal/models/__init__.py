from .geometry import BBox, Point, Polygon
from .grid import Grid

__all__ = ["BBox", "Point", "Polygon", "Grid"]
