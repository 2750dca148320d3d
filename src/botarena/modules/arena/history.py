"""Proposal history: what each team tried and how it went."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from .models import ProposalHistoryEntry

logger = logging.getLogger(__name__)

DEFAULT_AGENT_HISTORY_LIMIT = 5

_ATTACK_LABELS = (
    ("concurrency", "concurrency"),
    ("requests_per_minute", "rpm"),
    ("mode", "mode"),
)


def load_history(path: Path) -> list[ProposalHistoryEntry]:
    """Read the history log; a missing or corrupt file yields an empty list."""
    if not path.exists():
        return []
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(data, list):
            raise ValueError("history must be a JSON array")
        return [ProposalHistoryEntry.from_dict(item) for item in data]
    except (OSError, ValueError, KeyError, TypeError):
        logger.warning("History %s is unreadable; starting with none", path, exc_info=True)
        return []


def save_history(path: Path, entries: Sequence[ProposalHistoryEntry]) -> None:
    """Rewrite the whole history document."""
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = [entry.to_dict() for entry in entries]
    path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")


def append_history(
    path: Path,
    entries: list[ProposalHistoryEntry],
    *new_entries: ProposalHistoryEntry,
) -> list[ProposalHistoryEntry]:
    """Append entries in memory and persist the full log."""
    entries.extend(new_entries)
    save_history(path, entries)
    return entries


def summarize_changes(changes: Mapping[str, Any]) -> str:
    """One-line description of a proposed delta, e.g. ``rpm→20, warmup=True``."""
    parts: list[str] = []
    for key, label in _ATTACK_LABELS:
        if changes.get(key) is not None:
            parts.append(f"{label}→{changes[key]}")
    jitter = changes.get("jitter_ms")
    if isinstance(jitter, Sequence) and len(jitter) == 2:
        parts.append(f"jitter→{jitter[0]}-{jitter[1]}ms")
    if changes.get("warmup") is not None:
        parts.append(f"warmup={changes['warmup']}")
    for section in ("query_strategy", "pagination", "evasion", "constraints"):
        value = changes.get(section)
        if isinstance(value, Mapping):
            parts.extend(f"{name}→{setting}" for name, setting in value.items())

    features = changes.get("features")
    if isinstance(features, Mapping):
        for name, settings in features.items():
            if not isinstance(settings, Mapping):
                continue
            if "weight" in settings:
                parts.append(f"{name} weight→{settings['weight']}")
            if "threshold" in settings:
                parts.append(f"{name} thresh→{settings['threshold']}")
    actions = changes.get("actions")
    if isinstance(actions, Mapping):
        for action, band in actions.items():
            if isinstance(band, Mapping) and "max_score" in band:
                parts.append(f"{action}→{band['max_score']}")

    return ", ".join(parts) if parts else "no specific changes"


def format_history_for_agent(
    entries: Sequence[ProposalHistoryEntry],
    team: str,
    limit: int = DEFAULT_AGENT_HISTORY_LIMIT,
) -> str:
    """Render a team's most recent attempts for a proposer prompt."""
    team_entries = [e for e in entries if e.team == team][-limit:]
    if not team_entries:
        return "No previous attempts."

    lines = []
    for entry in team_entries:
        status = "ACCEPTED" if entry.accepted else "REJECTED"
        summary = summarize_changes(entry.proposal.changes)
        if entry.metrics_after is None:
            change = entry.reason
        elif team == "red":
            change = (
                f"extraction {entry.metrics_before.extraction * 100:.0f}%→"
                f"{entry.metrics_after.extraction * 100:.0f}%"
            )
        else:
            change = (
                f"suppression {entry.metrics_before.suppression * 100:.0f}%→"
                f"{entry.metrics_after.suppression * 100:.0f}%"
            )
        lines.append(f"- Round {entry.round_number}: {summary} → {status} ({change})")
    return "Previous attempts:\n" + "\n".join(lines)
