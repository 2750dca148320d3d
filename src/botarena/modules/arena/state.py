"""Crash-recoverable arena state: fight counter plus every round report."""

import json
import logging
from pathlib import Path

from .models import ArenaState

logger = logging.getLogger(__name__)


def load_state(path: Path) -> ArenaState:
    """Read the arena state; a missing or corrupt file yields a fresh state."""
    if not path.exists():
        return ArenaState()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError("arena state must be a JSON object")
        return ArenaState.from_dict(data)
    except (OSError, ValueError, KeyError, TypeError):
        logger.warning("Arena state %s is unreadable; starting fresh", path, exc_info=True)
        return ArenaState()


def save_state(path: Path, state: ArenaState) -> None:
    """Rewrite the whole state document."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(state.to_dict(), indent=2) + "\n", encoding="utf-8")


def next_fight_number(state: ArenaState) -> int:
    return state.current_fight_number + 1


def format_fight_round(fight_number: int, round_number: int) -> str:
    """``F1-R2`` style label."""
    return f"F{fight_number}-R{round_number}"


def format_report_filename(fight_number: int, round_number: int) -> str:
    return f"round-F{fight_number:03d}-R{round_number:03d}.json"
