"""botarena CLI facade.

Commands live in ``botarena.cli_commands``; this module re-exports the objects
they resolve at call time so tests can monkeypatch them here.
"""

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as pkg_version

from botarena.ai.llm import LLMProposer
from botarena.ai.proposer import NullProposer
from botarena.cli_commands import (  # noqa: F401
    init_command,
    run_command,
    serve_command,
    status_command,
)
from botarena.cli_commands.shared import app, console
from botarena.modules.arena.runner import Arena, ArenaPaths, ArenaSettings
from botarena.modules.arena.vcs import GitClient, NullVersionControl
from botarena.modules.target import TargetApp

__all__ = [
    "Arena",
    "ArenaPaths",
    "ArenaSettings",
    "GitClient",
    "LLMProposer",
    "NullProposer",
    "NullVersionControl",
    "TargetApp",
    "app",
    "console",
    "main",
]


@app.command()
def version() -> None:
    """Show the installed botarena version."""
    try:
        current_version = pkg_version("botarena")
    except PackageNotFoundError:
        current_version = "0.0.0+unknown"
    console.print(f"botarena {current_version}")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
