from .predicates import contains, contains_xy
from .join import (
    REDUCERS,
    Aggregation,
    JoinResult,
    aggregate,
    count_values,
    join,
    max_values,
    mean_values,
    min_values,
    sum_values,
)
from .zonal import zonal_mean, zonal_means
from .table import build_table

__all__ = [
    "contains",
    "contains_xy",
    "join",
    "aggregate",
    "Aggregation",
    "JoinResult",
    "REDUCERS",
    "sum_values",
    "mean_values",
    "count_values",
    "min_values",
    "max_values",
    "zonal_mean",
    "zonal_means",
    "build_table",
]
