"""Read-only views of past fights: scoreboard and proposal history."""

from pathlib import Path

import typer
from rich.markup import escape
from rich.table import Table

from botarena.modules.arena import WinConditions
from botarena.modules.arena.history import load_history, summarize_changes
from botarena.modules.arena.report import scoreboard as tally
from botarena.modules.arena.scoring import determine_winner
from botarena.modules.arena.state import format_fight_round, load_state

from .shared import DEFAULT_CONFIG_DIR, app, console

WINNER_STYLES = {"red": "red", "blue": "blue", "draw": "dim"}


@app.command()
def scoreboard(
    config_dir: Path = typer.Option(DEFAULT_CONFIG_DIR, "--config-dir", help="Config directory"),
    fpr_threshold: float = typer.Option(0.05, "--fpr-threshold", help="Max FPR for a blue win"),
) -> None:
    """Show the all-time scoreboard and per-round results."""
    state = load_state(config_dir / "arena-state.json")
    if not state.reports:
        console.print("[dim]No rounds recorded yet.[/dim]")
        return

    conditions = WinConditions(fpr_threshold=fpr_threshold)
    board = tally(state.reports, conditions)
    console.print(
        f"[bold]Scoreboard[/bold] ({board.rounds} rounds): "
        f"[red]red {board.red_wins}[/red] | [blue]blue {board.blue_wins}[/blue] | "
        f"draw {board.draws}"
    )
    console.print(
        f"Proposals accepted: red {board.red_accepted}/{board.red_proposals}, "
        f"blue {board.blue_accepted}/{board.blue_proposals}\n"
    )

    table = Table()
    table.add_column("Round")
    table.add_column("Extraction", justify="right")
    table.add_column("Suppression", justify="right")
    table.add_column("FPR", justify="right")
    table.add_column("Winner")
    for report in state.reports:
        m = report.metrics
        winner = determine_winner(m, conditions).winner
        table.add_row(
            format_fight_round(report.fight_number, report.round_number),
            f"{m.bot_extraction_rate * 100:.1f}%",
            f"{m.bot_suppression_rate * 100:.1f}%",
            f"{m.false_positive_rate * 100:.2f}%",
            f"[{WINNER_STYLES[winner]}]{winner}[/{WINNER_STYLES[winner]}]",
        )
    console.print(table)


@app.command()
def history(
    config_dir: Path = typer.Option(DEFAULT_CONFIG_DIR, "--config-dir", help="Config directory"),
    team: str | None = typer.Option(None, "--team", help="Only show red or blue"),
    limit: int = typer.Option(20, "--limit", help="Number of entries to show"),
) -> None:
    """List recent proposal attempts."""
    if team is not None and team not in ("red", "blue"):
        console.print("[red]--team must be red or blue[/red]")
        raise typer.Exit(1)

    entries = load_history(config_dir / "history.json")
    if team:
        entries = [e for e in entries if e.team == team]
    if not entries:
        console.print("[dim]No proposals recorded yet.[/dim]")
        return

    for entry in entries[-limit:]:
        status = "[green]ACCEPTED[/green]" if entry.accepted else "[red]REJECTED[/red]"
        label = (
            format_fight_round(entry.fight_number, entry.round_number)
            if entry.fight_number is not None
            else f"R{entry.round_number}"
        )
        console.print(
            f"{label} [{entry.team}]{entry.team}[/{entry.team}] "
            f"{escape(summarize_changes(entry.proposal.changes))} → {status}"
        )
        console.print(f"    [dim]{escape(entry.reason)}[/dim]", highlight=False)
