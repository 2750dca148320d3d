"""The ``run`` command: fight a series of rounds."""

import asyncio
from pathlib import Path

import typer
from rich.markup import escape

from botarena.config import get_base_port, get_fpr_threshold, get_rounds, get_sessions_per_profile
from botarena.modules.arena import ConfigLoadError, WinConditions
from botarena.modules.arena.runner import ArenaSettings
from botarena.modules.detector import PolicyValidationError
from botarena.modules.traffic import DetectionFetchError, find_profiles

from .deps import cli_module
from .shared import (
    DEFAULT_CONFIG_DIR,
    DEFAULT_PROFILES_DIR,
    DEFAULT_REPORTS_DIR,
    app,
    arena_paths,
    console,
    print_progress,
    setup_logging,
)


def _select_proposer(no_agents: bool, config_dir: Path, conditions: WinConditions):
    cli = cli_module()
    if no_agents:
        return cli.NullProposer()
    try:
        return cli.LLMProposer(config_dir=config_dir, conditions=conditions)
    except RuntimeError as exc:
        console.print(f"[yellow]{escape(str(exc))} Running without agents.[/yellow]")
        return cli.NullProposer()


@app.command()
def run(
    rounds: int | None = typer.Option(None, "--rounds", "-r", help="Number of rounds to run"),
    port: int | None = typer.Option(None, "--port", "-p", help="Base port for the target service"),
    sessions: int | None = typer.Option(
        None, "--sessions", "-s", help="Sessions per traffic profile"
    ),
    fpr_threshold: float | None = typer.Option(
        None, "--fpr-threshold", help="Max false positive rate for a blue win"
    ),
    no_agents: bool = typer.Option(False, "--no-agents", help="Skip agent proposals"),
    no_git: bool = typer.Option(False, "--no-git", help="Disable automatic git commits"),
    fast: bool = typer.Option(False, "--fast", "-f", help="Compress dwell and click timings"),
    weighted: bool = typer.Option(
        True, "--weighted/--binary", help="Score extraction by detector action credit"
    ),
    config_dir: Path = typer.Option(DEFAULT_CONFIG_DIR, "--config-dir", help="Config directory"),
    profiles_dir: Path = typer.Option(
        DEFAULT_PROFILES_DIR, "--profiles-dir", help="Traffic profile directory"
    ),
    reports_dir: Path = typer.Option(
        DEFAULT_REPORTS_DIR, "--reports-dir", help="Report output directory"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Run a fight: simulate, score, propose and validate for N rounds."""
    setup_logging(verbose, config_dir)
    cli = cli_module()
    paths = arena_paths(config_dir, profiles_dir, reports_dir)

    profile_paths = find_profiles(paths.profiles_dir)
    if not profile_paths:
        console.print(f"[red]No traffic profiles found in {paths.profiles_dir}[/red]")
        raise typer.Exit(1)

    settings = ArenaSettings(
        rounds=rounds if rounds is not None else get_rounds(config_dir),
        port=port if port is not None else get_base_port(config_dir),
        sessions_per_profile=(
            sessions if sessions is not None else get_sessions_per_profile(config_dir)
        ),
        fast=fast,
        metrics_mode="weighted" if weighted else "binary",
        conditions=WinConditions(
            fpr_threshold=(
                fpr_threshold if fpr_threshold is not None else get_fpr_threshold(config_dir)
            )
        ),
    )
    proposer = _select_proposer(no_agents, config_dir, settings.conditions)
    vcs = cli.NullVersionControl() if no_git else cli.GitClient()

    console.print("[bold]Bot Arena starting...[/bold]\n")
    console.print(f"Rounds: {settings.rounds}")
    console.print(f"Profiles: {', '.join(p.name for p in profile_paths)}")
    console.print(f"Sessions per profile: {settings.sessions_per_profile}")
    console.print(f"Agents: {'disabled' if isinstance(proposer, cli.NullProposer) else 'enabled'}")
    console.print(f"Fast mode: {'enabled' if fast else 'disabled'}")
    console.print(f"Metrics: {settings.metrics_mode}")

    arena = cli.Arena(
        paths,
        profile_paths,
        settings=settings,
        proposer=proposer,
        vcs=vcs,
        progress=print_progress,
    )
    try:
        result = asyncio.run(arena.run())
    except (ConfigLoadError, PolicyValidationError, DetectionFetchError) as exc:
        console.print(f"[red]Round aborted: {escape(str(exc))}[/red]")
        raise typer.Exit(1) from exc

    console.print(f"\n[green]Fight {result.fight_number} complete.[/green]")
