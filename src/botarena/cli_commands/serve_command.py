"""The ``serve`` command: run the target service on its own."""

import asyncio
from pathlib import Path

import typer
from rich.markup import escape

from botarena.modules.detector import PolicyValidationError
from botarena.modules.target import DEFAULT_THROTTLE_DELAY

from .deps import cli_module
from .shared import DEFAULT_CONFIG_DIR, app, console, setup_logging


async def _serve_forever(target) -> None:
    async with target:
        console.print(f"[green]Target service listening on {target.base_url}[/green]")
        console.print("[dim]Press Ctrl+C to stop.[/dim]")
        await asyncio.Event().wait()


@app.command()
def serve(
    port: int = typer.Option(3000, "--port", "-p", help="Port to listen on"),
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind"),
    policy: Path = typer.Option(
        DEFAULT_CONFIG_DIR / "policy.yml", "--policy", help="Detection policy file"
    ),
    throttle_delay: float = typer.Option(
        DEFAULT_THROTTLE_DELAY, "--throttle-delay", help="Seconds added to throttled requests"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Serve the product API guarded by the detector."""
    setup_logging(verbose)
    cli = cli_module()
    try:
        target = cli.TargetApp(
            host=host, port=port, policy_path=policy, throttle_delay=throttle_delay
        )
    except PolicyValidationError as exc:
        console.print(f"[red]Invalid policy: {escape(str(exc))}[/red]")
        raise typer.Exit(1) from exc

    try:
        asyncio.run(_serve_forever(target))
    except KeyboardInterrupt:
        console.print("\n[yellow]Stopped.[/yellow]")
    except OSError as exc:
        console.print(f"[red]Could not start target service: {escape(str(exc))}[/red]")
        raise typer.Exit(1) from exc
