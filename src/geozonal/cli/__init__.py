"""Linha de comando do geozonal (typer)."""
