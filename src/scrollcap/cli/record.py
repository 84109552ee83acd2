"""CLI commands that record URLs in-process or serve the HTTP API."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from scrollcap.exceptions import ValidationError
from scrollcap.jobs.orchestrator import JobOrchestrator
from scrollcap.models.job import Job, JobStatus

console = Console()


def _load_url_lines(urls: list[str], url_file: Path | None) -> str:
    lines = list(urls)
    if url_file is not None:
        lines.extend(
            line for line in url_file.read_text(encoding="utf-8").splitlines() if not line.lstrip().startswith("#")
        )
    return "\n".join(lines)


async def _run_job(orchestrator: JobOrchestrator, urls: str, speed: float | None) -> Job:
    job = orchestrator.submit(urls, speed)
    finished = await orchestrator.wait(job.id)
    return finished or job


def record(
    urls: Optional[list[str]] = typer.Argument(None, help="URLs to record, in order."),
    url_file: Optional[Path] = typer.Option(
        None,
        "--file",
        "-f",
        exists=True,
        dir_okay=False,
        help="Text file with one URL per line (# comments ignored).",
    ),
    speed: Optional[float] = typer.Option(None, "--speed", "-s", help="Scroll speed in px/s (min 10)."),
    output_dir: Optional[Path] = typer.Option(None, "--output-dir", "-o", help="Override the recordings directory."),
) -> None:
    """Record one scrolling video per URL, sequentially."""
    from scrollcap.settings import get_settings

    settings = get_settings()
    orchestrator = JobOrchestrator.from_settings(settings)
    if output_dir is not None:
        orchestrator.output_dir = output_dir

    try:
        job = asyncio.run(_run_job(orchestrator, _load_url_lines(urls or [], url_file), speed))
    except ValidationError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(code=2)

    if job.results:
        table = Table(title="Recordings")
        table.add_column("URL")
        table.add_column("File")
        for result in job.results:
            table.add_row(result.url, result.file)
        console.print(table)

    if job.status is not JobStatus.DONE:
        console.print(f"[red]Job failed.[/red] {job.logs[-1] if job.logs else ''}")
        raise typer.Exit(code=1)
    console.print("[green]All recordings completed.[/green]")


def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (default from settings)."),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port (default from settings)."),
) -> None:
    """Serve the web page and REST API."""
    import uvicorn

    from scrollcap.settings import get_settings

    settings = get_settings()
    uvicorn.run(
        "scrollcap.api.app:app",
        host=host or settings.api.host,
        port=port or settings.api.port,
        log_config=None,
    )
