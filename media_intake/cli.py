from __future__ import annotations

import mimetypes
from pathlib import Path
from typing import List, Optional

import httpx
import typer
import uvicorn
from rich.console import Console

from .core.config import settings
from .core.logging import configure_logging
from .schemas import OPTIMIZED_PREFERENCE, ORIGINAL_PREFERENCE
from .services.hash_index import IndexedDetector
from .services.storage import get_bucket

app = typer.Typer(help="media-intake – upload files and maintain the dedup index")
console = Console()


def default_endpoint() -> str:
    if settings.upload_hostname:
        return f"https://{settings.upload_hostname}/upload"
    return "http://localhost:8000/upload"


def upload_file(
    client: httpx.Client,
    endpoint: str,
    auth_key: str,
    path: Path,
    name: Optional[str] = None,
    optimized: bool = False,
) -> httpx.Response:
    upload_name = name or path.name
    content_type = mimetypes.guess_type(upload_name)[0] or "application/octet-stream"
    with path.open("rb") as fh:
        return client.put(
            endpoint,
            headers={"X-Auth-Key": auth_key},
            files={"file": (upload_name, fh, content_type)},
            data={
                "filename": upload_name,
                "url_preference": OPTIMIZED_PREFERENCE if optimized else ORIGINAL_PREFERENCE,
            },
        )


@app.command()
def upload(
    files: List[Path] = typer.Argument(..., help="Files to upload"),
    name: Optional[str] = typer.Option(None, "--name", help="Stored filename (single file only)"),
    optimized: bool = typer.Option(False, "--optimized", help="Ask for a resized preview URL for images"),
    endpoint: Optional[str] = typer.Option(None, "--endpoint", help="Upload URL (default: UPLOAD_HOSTNAME)"),
    auth_key: Optional[str] = typer.Option(None, "--auth-key", envvar="AUTH_KEY", help="Shared upload secret"),
):
    """Upload one or more files and print their public URLs."""
    key = auth_key or settings.auth_key
    if not key:
        console.print("[red]No auth key: pass --auth-key or set AUTH_KEY[/red]")
        raise typer.Exit(code=2)
    if name and len(files) > 1:
        console.print("[red]--name only applies to a single file[/red]")
        raise typer.Exit(code=2)

    target = endpoint or default_endpoint()
    failures = 0
    with httpx.Client(timeout=60.0) as client:
        for path in files:
            if not path.is_file():
                console.print(f"[yellow]Skipping {path}: not a file[/yellow]")
                failures += 1
                continue
            try:
                resp = upload_file(client, target, key, path, name=name, optimized=optimized)
            except httpx.HTTPError as exc:
                console.print(f"[red]Upload of {path} failed: {exc}[/red]")
                failures += 1
                continue
            if resp.is_success:
                typer.echo(resp.text)
            else:
                console.print(f"[red]Upload of {path} failed ({resp.status_code}): {resp.text}[/red]")
                failures += 1

    if failures:
        raise typer.Exit(code=1)


@app.command()
def reindex():
    """Rebuild the content hash index from the bucket."""
    configure_logging()
    detector = IndexedDetector(get_bucket(settings), settings.database_url)
    written = detector.rebuild_index()
    console.print(f"Indexed {written} objects")


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host"),
    port: int = typer.Option(8000, "--port"),
):
    """Run the HTTP service."""
    uvicorn.run("media_intake.main:app", host=host, port=port)


def main():
    app()


if __name__ == "__main__":
    main()
