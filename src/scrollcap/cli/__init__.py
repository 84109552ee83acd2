"""scrollcap command-line interface (Typer)."""
