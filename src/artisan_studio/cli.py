"""CLI for Artisan Studio - conversational media generation."""

from __future__ import annotations

from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(
    name="artisan",
    help="Conversational media generation - an LLM agent driving fal.ai models.",
    no_args_is_help=True,
)

console = Console()
error_console = Console(stderr=True)


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        from artisan_studio import __version__

        typer.echo(f"artisan-studio v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
) -> None:
    """Conversational media generation."""


@app.command()
def info() -> None:
    """Show configuration and credential status."""
    from artisan_studio import __version__
    from artisan_studio.settings import settings

    console.print(f"[bold]Artisan Studio[/bold] v{__version__}")
    console.print()
    console.print("[bold]Configuration:[/bold]")
    console.print(f"  Chat Model: {settings.chat_model}")
    console.print(f"  Title Model: {settings.title_model}")
    console.print(f"  Max Steps: {settings.max_steps}")
    console.print(f"  Tool Retries: {settings.tool_retries}")
    console.print(f"  Server: {settings.host}:{settings.port}")
    console.print(f"  Public URL: {settings.public_base_url}")
    console.print(f"  Bucket: {settings.s3_bucket} ({settings.s3_endpoint or 'aws'})")
    console.print(f"  Redis: {settings.redis_url}")
    console.print(f"  Stream TTL: {settings.stream_ttl_seconds}s")
    console.print(f"  Heartbeat Interval: {settings.heartbeat_interval}s")

    missing = settings.missing_credentials
    for name in ("OPENROUTER_API_KEY", "FAL_API_KEY", "S3_ACCESS_KEY", "S3_SECRET_KEY"):
        if name in missing:
            console.print(f"  {name}: [yellow]not configured[/yellow]")
        else:
            console.print(f"  {name}: [green]configured[/green]")


@app.command()
def models() -> None:
    """List the fal.ai model bindings."""
    from artisan_studio.registry import METADATA_MODEL_ID, MODELS

    table = Table(title="Model bindings")
    table.add_column("Capability", style="cyan")
    table.add_column("Remote model")
    table.add_column("Output", style="green")

    for binding in MODELS.values():
        table.add_row(binding.capability_key.value, binding.remote_model_id, binding.media_kind)
    table.add_row("metadata", METADATA_MODEL_ID, "json")

    console.print(table)


@app.command()
def serve(
    host: Annotated[
        str | None,
        typer.Option("--host", "-h", help="Host to bind to"),
    ] = None,
    port: Annotated[
        int | None,
        typer.Option("--port", "-p", help="Port to bind to"),
    ] = None,
    reload: Annotated[
        bool,
        typer.Option("--reload", help="Enable auto-reload for development"),
    ] = False,
) -> None:
    """Start the API server."""
    import uvicorn

    from artisan_studio.settings import settings

    actual_host = host or settings.host
    actual_port = port or settings.port

    console.print("[green]Starting Artisan Studio...[/green]")
    console.print(f"  Host: {actual_host}")
    console.print(f"  Port: {actual_port}")
    console.print(f"  Model: {settings.chat_model}")
    console.print()
    console.print(f"  API: http://{actual_host}:{actual_port}/api")
    console.print(f"  Health: http://{actual_host}:{actual_port}/health")
    console.print()

    if settings.missing_credentials:
        error_console.print(
            "[yellow]Missing credentials: "
            f"{', '.join(settings.missing_credentials)}[/yellow]"
        )
        console.print()

    uvicorn.run(
        "artisan_studio.server:app",
        host=actual_host,
        port=actual_port,
        reload=reload,
    )
