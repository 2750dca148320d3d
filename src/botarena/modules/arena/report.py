"""JSON round reports, the cumulative summary and the all-time scoreboard."""

from __future__ import annotations

import json
from collections.abc import Sequence
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from .models import Proposal, RoundMetrics, RoundReport, ValidationResult, WinConditions
from .scoring import DEFAULT_WIN_CONDITIONS, determine_winner
from .state import format_report_filename


@dataclass(frozen=True, slots=True)
class Scoreboard:
    red_wins: int = 0
    blue_wins: int = 0
    draws: int = 0
    red_proposals: int = 0
    blue_proposals: int = 0
    red_accepted: int = 0
    blue_accepted: int = 0

    @property
    def rounds(self) -> int:
        return self.red_wins + self.blue_wins + self.draws

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


def win_counts(
    metrics: Sequence[RoundMetrics],
    conditions: WinConditions = DEFAULT_WIN_CONDITIONS,
) -> tuple[int, int, int]:
    """(red, blue, draw) counts for a run of rounds."""
    winners = [determine_winner(m, conditions).winner for m in metrics]
    return winners.count("red"), winners.count("blue"), winners.count("draw")


def scoreboard(
    reports: Sequence[RoundReport],
    conditions: WinConditions = DEFAULT_WIN_CONDITIONS,
) -> Scoreboard:
    """Tally winners (re-decided under ``conditions``) and accepted proposals."""
    red, blue, draws = win_counts([r.metrics for r in reports], conditions)
    return Scoreboard(
        red_wins=red,
        blue_wins=blue,
        draws=draws,
        red_proposals=sum(1 for r in reports if r.red_proposal is not None),
        blue_proposals=sum(1 for r in reports if r.blue_proposal is not None),
        red_accepted=sum(1 for r in reports if r.red_validation and r.red_validation.accepted),
        blue_accepted=sum(1 for r in reports if r.blue_validation and r.blue_validation.accepted),
    )


def write_round_report(report: RoundReport, reports_dir: Path) -> Path:
    path = reports_dir / format_report_filename(report.fight_number, report.round_number)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(report.to_dict(), indent=2) + "\n", encoding="utf-8")
    return path


def _proposal_outcome(proposal: Proposal | None, validation: ValidationResult | None) -> str:
    if validation is not None and validation.accepted:
        return "accepted"
    if proposal is not None:
        return "rejected"
    return "-"


def summary_document(
    reports: Sequence[RoundReport],
    conditions: WinConditions = DEFAULT_WIN_CONDITIONS,
) -> dict[str, Any]:
    return {
        "generatedAt": datetime.now(UTC).isoformat(),
        "totalRounds": len(reports),
        "scoreboard": scoreboard(reports, conditions).to_dict(),
        "rounds": [
            {
                "fightNumber": r.fight_number,
                "roundNumber": r.round_number,
                "botExtractionRate": r.metrics.bot_extraction_rate,
                "botSuppressionRate": r.metrics.bot_suppression_rate,
                "falsePositiveRate": r.metrics.false_positive_rate,
                "red": _proposal_outcome(r.red_proposal, r.red_validation),
                "blue": _proposal_outcome(r.blue_proposal, r.blue_validation),
                "winner": determine_winner(r.metrics, conditions).winner,
            }
            for r in reports
        ],
    }


def write_summary(
    reports: Sequence[RoundReport],
    path: Path,
    conditions: WinConditions = DEFAULT_WIN_CONDITIONS,
) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    document = summary_document(reports, conditions)
    path.write_text(json.dumps(document, indent=2) + "\n", encoding="utf-8")
    return path
