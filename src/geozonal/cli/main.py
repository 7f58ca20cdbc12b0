import json
import logging
from pathlib import Path

import typer

from geozonal.compute import REDUCERS, aggregate, build_table, join, zonal_means
from geozonal.config import LOG_FORMAT, LOG_LEVEL
from geozonal.crs import default_registry
from geozonal.errors import GeozonalError
from geozonal.io import read_grid, read_points_csv, read_polygons, write_table

app = typer.Typer(pretty_exceptions_enable=False)

logger = logging.getLogger(__name__)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log em nível DEBUG."),
):
    """
    Junção espacial ponto → polígono e estatística zonal de rasters.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else LOG_LEVEL,
        format=LOG_FORMAT,
    )


def resolve_out_path(out: str) -> Path:
    """
    Resolve o caminho de saída como Path gravável.
    Aceita caminho relativo ou absoluto.
    """
    return Path(out).expanduser().resolve()


def _fail(exc: Exception):
    logger.debug("Comando interrompido", exc_info=exc)
    typer.echo(f"✘ {exc}", err=True)
    raise typer.Exit(code=1)


@app.command("join")
def join_cmd(
    points: Path = typer.Option(..., "--points", "-p", help="CSV com os pontos."),
    polygons: Path = typer.Option(..., "--polygons", "-g", help="Arquivo vetorial dos polígonos."),
    out: str = typer.Option(..., "--out", "-o", help="Tabela de saída (.parquet ou .csv)."),
    id_field: str = typer.Option(None, "--id-field", help="Coluna de id dos polígonos."),
    x: str = typer.Option("lon", "--x", help="Coluna X dos pontos."),
    y: str = typer.Option("lat", "--y", help="Coluna Y dos pontos."),
    points_crs: str = typer.Option("EPSG:4326", "--points-crs", help="CRS dos pontos."),
    value: str = typer.Option(None, "--value", help="Atributo a agregar (padrão: contagem de pontos)."),
    reducer: str = typer.Option("count", "--reducer", "-r", help=f"Redutor: {', '.join(REDUCERS)}."),
    raster: Path = typer.Option(None, "--raster", help="Raster para média zonal (coluna 'zonal_mean')."),
    fill_zero: bool = typer.Option(False, "--fill-zero", help="Preenche polígonos sem pontos com 0."),
    drop_invalid: bool = typer.Option(False, "--drop-invalid", help="Descarta pontos inválidos."),
):
    """
    Atribui pontos a polígonos, agrega por polígono e grava a tabela.
    """
    if reducer not in REDUCERS:
        _fail(ValueError(f"Redutor desconhecido '{reducer}'. Opções: {', '.join(REDUCERS)}"))

    try:
        pts = read_points_csv(points, x=x, y=y, crs=points_crs, drop_invalid=drop_invalid)
        polys = read_polygons(polygons, id_field=id_field)

        joined = join(pts, polys)
        agg = aggregate(joined, REDUCERS[reducer], attribute=value)

        column = f"{value or 'points'}_{reducer}"
        columns = {column: agg}
        fill = {column: 0} if fill_zero else None

        if raster is not None:
            grid = read_grid(raster)
            columns["zonal_mean"] = zonal_means(grid, polys)

        table = build_table(polys, columns, fill=fill)
        out_path = write_table(table, resolve_out_path(out))
    except (GeozonalError, ValueError, OSError) as exc:
        _fail(exc)

    typer.echo(f"→ {len(pts)} pontos, {len(polys)} polígonos")
    typer.echo(f"→ {len(pts) - agg.unmatched} atribuídos, {agg.unmatched} sem polígono")
    typer.echo(f"✔ Tabela salva em {out_path}")


@app.command("zonal")
def zonal_cmd(
    raster: Path = typer.Option(..., "--raster", help="Raster de entrada."),
    polygons: Path = typer.Option(..., "--polygons", "-g", help="Arquivo vetorial dos polígonos."),
    out: str = typer.Option(..., "--out", "-o", help="Tabela de saída (.parquet ou .csv)."),
    id_field: str = typer.Option(None, "--id-field", help="Coluna de id dos polígonos."),
    band: int = typer.Option(1, "--band", help="Banda do raster."),
    factor: int = typer.Option(1, "--factor", help="Agrega blocos factor x factor antes da média."),
):
    """
    Calcula a média zonal do raster em cada polígono.
    """
    try:
        grid = read_grid(raster, band=band).aggregate(factor)
        polys = read_polygons(polygons, id_field=id_field)
        means = zonal_means(grid, polys)
        table = build_table(polys, {"zonal_mean": means})
        out_path = write_table(table, resolve_out_path(out))
    except (GeozonalError, ValueError, OSError) as exc:
        _fail(exc)

    empty = sum(1 for m in means.values() if m is None)
    typer.echo(f"→ {len(polys)} polígonos, {empty} sem células válidas")
    typer.echo(f"✔ Tabela salva em {out_path}")


@app.command("crs")
def crs_cmd(
    as_json: bool = typer.Option(False, "--json", help="Saída em JSON."),
):
    """
    Lista os CRSs registrados.
    """
    registry = default_registry()
    if as_json:
        typer.echo(json.dumps(
            {crs_id: registry.get(crs_id).name for crs_id in registry},
            ensure_ascii=False,
            indent=2,
        ))
        return

    for crs_id in registry:
        typer.echo(f"{crs_id}\t{registry.get(crs_id).name}")


if __name__ == "__main__":
    app()
