"""Shared CLI app objects and path helpers."""

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from botarena.config import is_verbose
from botarena.modules.arena.runner import ArenaPaths

app = typer.Typer(
    name="botarena",
    help="Self-play arena for scraping bots versus a bot detector",
    no_args_is_help=True,
)
console = Console()

DEFAULT_CONFIG_DIR = Path("configs")
DEFAULT_PROFILES_DIR = Path("profiles")
DEFAULT_REPORTS_DIR = Path("reports")


def setup_logging(verbose: bool = False, config_dir: Path | None = None) -> None:
    """Route library logging through rich; DEBUG with --verbose or BOTARENA_VERBOSE."""
    level = logging.DEBUG if verbose or is_verbose(config_dir) else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


def arena_paths(config_dir: Path, profiles_dir: Path, reports_dir: Path) -> ArenaPaths:
    return ArenaPaths(
        config_dir=config_dir.resolve(),
        profiles_dir=profiles_dir.resolve(),
        reports_dir=reports_dir.resolve(),
    )


def print_progress(message: str) -> None:
    console.print(message, markup=False, highlight=False)
