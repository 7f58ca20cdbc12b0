"""
Camada de I/O do geozonal.

Este módulo centraliza:
- leitura de registros tabulares (CSV) como pontos
- leitura de limites vetoriais (shapefile, GeoPackage, GeoJSON) como polígonos
- leitura de rasters como grades
- escrita da tabela final por polígono (Parquet / CSV)

Ele **não** contém lógica de junção ou estatística.
Apenas converte **formatos de arquivo** em objetos do modelo.
"""

from .readers import (
    points_from_records,
    polygons_from_geodataframe,
    read_grid,
    read_points_csv,
    read_polygons,
    write_table,
)

__all__ = [
    "points_from_records",
    "read_points_csv",
    "polygons_from_geodataframe",
    "read_polygons",
    "read_grid",
    "write_table",
]
