#!/usr/bin/env python3
"""odoreport management CLI."""

import asyncio
import os
import subprocess
import sys
from pathlib import Path

import click
import httpx

from src.upload.client import ExtractionUploader
from src.upload.queue import UploadQueue, UploadStatus, UploadTask

_STATUS_STYLE: dict[UploadStatus, tuple[str, str]] = {
    UploadStatus.QUEUED: ("·", "white"),
    UploadStatus.UPLOADING: ("…", "yellow"),
    UploadStatus.COMPLETED: ("✓", "green"),
    UploadStatus.ERROR: ("✗", "red"),
}


def _run(args: list[str], *, replace: bool = False) -> None:
    click.echo(
        f"  {click.style('>', dim=True)} {click.style(' '.join(args), dim=True)}\n"
    )
    if replace:
        os.execvp(args[0], args)
    result = subprocess.run(args)
    if result.returncode != 0:
        click.echo(
            f"  {click.style('✗', fg='red')} exited with code {result.returncode}"
        )
        sys.exit(result.returncode)


def _ok(text: str) -> None:
    click.echo(f"  {click.style('✓', fg='green')} {text}")


def _header(text: str) -> None:
    click.echo(f"\n  {click.style(text, fg='cyan', bold=True)}\n")


def _show_progress(task: UploadTask) -> None:
    mark, color = _STATUS_STYLE[task.status]
    line = f"  {click.style(mark, fg=color)} {task.filename} {task.percent:>3}%"
    if task.status is UploadStatus.ERROR and task.response:
        line += f"  {click.style(str(task.response.get('error')), fg='red')}"
    click.echo(line)


@click.group()
def cli() -> None:
    """odoreport management CLI."""


@cli.command()
@click.argument("uvicorn_args", nargs=-1)
def app(uvicorn_args: tuple[str, ...]) -> None:
    """Start uvicorn with --reload."""
    _header("Starting odoreport")
    _run(
        ["uv", "run", "uvicorn", "src.app:app", "--reload", *uvicorn_args], replace=True
    )


@cli.group()
def db() -> None:
    """Database management commands."""


@db.command()
def up() -> None:
    """Start PostgreSQL (docker compose up)."""
    _header("Starting PostgreSQL")
    _run(["docker", "compose", "up", "-d"])
    _ok("PostgreSQL is running")


@db.command()
def down() -> None:
    """Stop PostgreSQL (docker compose down)."""
    _header("Stopping PostgreSQL")
    _run(["docker", "compose", "down"])
    _ok("PostgreSQL stopped")


@db.command()
@click.argument("target", default="head")
def migrate(target: str) -> None:
    """Run alembic upgrade (migrations only ever add schema)."""
    _header(f"Upgrading database to {target}")
    _run(["uv", "run", "alembic", "upgrade", target])
    _ok("Migrations applied")


@db.command()
@click.argument("message")
def revision(message: str) -> None:
    """Create an empty alembic revision to fill in by hand.

    Revisions must be additive and idempotent, so they are not autogenerated.
    """
    _header(f"Creating revision: {message}")
    _run(["uv", "run", "alembic", "revision", "-m", message])
    _ok("Revision created in alembic/versions")


@cli.command()
@click.argument(
    "files", nargs=-1, required=True, type=click.Path(exists=True, path_type=Path)
)
@click.option("--token-id", type=int, required=True, help="Vehicle token id.")
@click.option("--server", default="http://localhost:8000", show_default=True)
def upload(files: tuple[Path, ...], token_id: int, server: str) -> None:
    """Upload service documents for extraction, one at a time."""
    _header(f"Uploading {len(files)} document(s) for vehicle {token_id}")

    queue = UploadQueue(on_change=_show_progress)
    for path in queue.add(files):
        click.echo(f"  {click.style('-', fg='yellow')} skipped {path.name}")

    async def _upload() -> list[UploadTask]:
        async with httpx.AsyncClient(base_url=server) as client:
            return await queue.run(ExtractionUploader(client, token_id))

    tasks = asyncio.run(_upload())
    failed = sum(1 for t in tasks if t.status is UploadStatus.ERROR)
    if failed:
        click.echo(f"  {click.style('✗', fg='red')} {failed} upload(s) failed")
        sys.exit(1)
    _ok(f"{len(tasks)} document(s) extracted")


@cli.command()
@click.option("--unit", is_flag=True, help="Skip the integration tests.")
@click.argument("pytest_args", nargs=-1)
def test(unit: bool, pytest_args: tuple[str, ...]) -> None:
    """Run pytest (database tests start a Postgres container)."""
    target = "tests/unit" if unit else "tests/"
    _header(f"Running tests in {target}")
    _run(["uv", "run", "pytest", target, "-v", *pytest_args], replace=True)


@cli.command()
def lint() -> None:
    """Run mypy."""
    _header("Running mypy")
    _run(["uv", "run", "mypy", "."])
    _ok("Type check passed")


if __name__ == "__main__":
    cli()
