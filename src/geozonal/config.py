"""
Configuração global do geozonal.

Constantes lidas uma única vez na importação. Algumas podem ser
sobrescritas por variáveis de ambiente (``GEOZONAL_*``).
"""

import os

# ------------------------------------------------------------
# Sistemas de referência (CRS)
# ------------------------------------------------------------
GEOGRAPHIC_CRS = "EPSG:4326"   # WGS 84 (lon, lat)
PROJECTED_CRS = "EPSG:5070"    # NAD83 / Conus Albers (metros, área igual)

# Registro padrão: id -> definição aceita pelo pyproj
DEFAULT_CRS_DEFINITIONS = {
    "EPSG:4326": "EPSG:4326",
    "EPSG:4269": "EPSG:4269",
    "EPSG:5070": "EPSG:5070",
    "EPSG:3857": "EPSG:3857",
}

# Tolerância da lei de ida-e-volta transform(transform(p, A, B), B, A)
ROUNDTRIP_TOLERANCE = 1e-6

# ------------------------------------------------------------
# Raster
# ------------------------------------------------------------
DEFAULT_NODATA = -9999.0

# ------------------------------------------------------------
# Execução
# ------------------------------------------------------------
def _env_int(name: str, default: int | None) -> int | None:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        raise RuntimeError(f"Variável {name} deve ser inteira, recebido '{value}'.")


WORKERS = _env_int("GEOZONAL_WORKERS", None)  # None = sequencial

LOG_LEVEL = os.getenv("GEOZONAL_LOG_LEVEL", "WARNING").upper()
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
