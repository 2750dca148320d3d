"""Version control for accepted config changes."""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from .models import RoundReport, WinConditions
from .scoring import DEFAULT_WIN_CONDITIONS, determine_winner

logger = logging.getLogger(__name__)


class VersionControlClient(Protocol):
    """What the round loop needs from a version control system."""

    def is_available(self) -> bool: ...

    def stage(self, paths: Sequence[Path]) -> None: ...

    def commit(self, message: str) -> None: ...


class NullVersionControl:
    """Does nothing; used with ``--no-git``."""

    def is_available(self) -> bool:
        return False

    def stage(self, paths: Sequence[Path]) -> None:
        pass

    def commit(self, message: str) -> None:
        pass


class GitClient:
    """Wrapper for git subprocess calls."""

    def __init__(self, cwd: Path | None = None):
        self.cwd = cwd

    def _git(self, *args: str) -> subprocess.CompletedProcess[str]:
        return subprocess.run(
            ["git", *args],
            cwd=self.cwd,
            capture_output=True,
            text=True,
            check=True,
        )

    def is_available(self) -> bool:
        """True when git is installed and ``cwd`` is inside a work tree."""
        try:
            self._git("rev-parse", "--git-dir")
        except (subprocess.CalledProcessError, FileNotFoundError):
            return False
        return True

    def stage(self, paths: Sequence[Path]) -> None:
        existing = [str(p) for p in paths if p.exists()]
        if existing:
            self._git("add", "--", *existing)

    def commit(self, message: str) -> None:
        self._git("commit", "-m", message)


def round_commit_message(report: RoundReport) -> str | None:
    """Commit message for a round, or None when nothing was accepted."""
    changes = []
    if report.red_validation is not None and report.red_validation.accepted:
        changes.append(f"Red: {report.red_validation.reason}")
    if report.blue_validation is not None and report.blue_validation.accepted:
        changes.append(f"Blue: {report.blue_validation.reason}")
    if not changes:
        return None

    m = report.metrics
    return (
        f"Round {report.round_number}: {', '.join(changes)}\n"
        "\n"
        "Metrics:\n"
        f"- Bot extraction: {m.bot_extraction_rate * 100:.1f}%\n"
        f"- Bot suppression: {m.bot_suppression_rate * 100:.1f}%\n"
        f"- Human success: {m.human_success_rate * 100:.1f}%\n"
        f"- False positive: {m.false_positive_rate * 100:.2f}%"
    )


def fight_commit_message(
    fight_number: int,
    reports: Sequence[RoundReport],
    conditions: WinConditions = DEFAULT_WIN_CONDITIONS,
) -> str:
    winners = [determine_winner(r.metrics, conditions).winner for r in reports]
    return (
        f"Fight {fight_number} complete: {len(reports)} rounds "
        f"(red {winners.count('red')}, blue {winners.count('blue')}, "
        f"draw {winners.count('draw')})"
    )


def commit_paths(vcs: VersionControlClient, paths: Sequence[Path], message: str) -> bool:
    """Stage and commit; failures are logged and reported as False."""
    try:
        vcs.stage(paths)
        vcs.commit(message)
    except (subprocess.CalledProcessError, OSError):
        logger.warning("Version control commit failed", exc_info=True)
        return False
    return True
