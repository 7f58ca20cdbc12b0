# geozonal/__init__.py
from .models.geometry import BBox, Point, Polygon
from .models.grid import Grid
from .crs import CRSRegistry, default_registry, transform
from .compute import (
    aggregate,
    build_table,
    contains,
    join,
    zonal_mean,
    zonal_means,
)
from .errors import (
    CRSMismatchError,
    DuplicateIdError,
    GeozonalError,
    InvalidAttributeError,
    InvalidGeometryError,
    TransformError,
    UnknownCRSError,
)

__all__ = [
    "BBox",
    "Point",
    "Polygon",
    "Grid",
    "CRSRegistry",
    "default_registry",
    "transform",
    "contains",
    "join",
    "aggregate",
    "zonal_mean",
    "zonal_means",
    "build_table",
    "GeozonalError",
    "InvalidGeometryError",
    "InvalidAttributeError",
    "UnknownCRSError",
    "CRSMismatchError",
    "TransformError",
    "DuplicateIdError",
]

__version__ = "0.1.0"
