"""Trial a proposed config change and keep it only if it helps its team."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import replace
from pathlib import Path
from typing import Any

from botarena.modules.detector import policy_from_dict, validate_policy
from botarena.modules.traffic import AttackProfile

from .merge import deep_merge
from .models import Improvement, Proposal, RoundMetrics, ValidationResult, WinConditions
from .scoring import DEFAULT_WIN_CONDITIONS
from .tournament import (
    TournamentConfig,
    TournamentResult,
    load_attack_profile,
    load_policy_document,
    run_tournament,
    save_attack_profile,
    save_policy_document,
)

logger = logging.getLogger(__name__)

TournamentRun = Callable[[TournamentConfig, int, int], Awaitable[TournamentResult]]

# Validation passes never count towards a fight.
VALIDATION_FIGHT = 0


def _pct(value: float) -> str:
    return f"{value * 100:.1f}%"


class ProposalValidator(ABC):
    """Apply a delta, re-run the tournament on a side port, keep or roll back.

    The config file's bytes are held in memory before anything is written and
    put back verbatim on rejection or on any exception during the trial.
    """

    team: str = ""
    port_offset: int = 0

    def __init__(
        self,
        config: TournamentConfig,
        conditions: WinConditions = DEFAULT_WIN_CONDITIONS,
        run: TournamentRun = run_tournament,
    ):
        self.config = config
        self.conditions = conditions
        self.run = run

    @property
    @abstractmethod
    def config_path(self) -> Path:
        """The file this validator rewrites."""

    @abstractmethod
    def apply(self, changes: Mapping[str, Any]) -> None:
        """Merge ``changes`` into the current config on disk."""

    @abstractmethod
    def judge(
        self, before: RoundMetrics, after: RoundMetrics
    ) -> tuple[bool, str, Improvement | None]:
        """Return (accepted, reason, improvement)."""

    def trial_config(self) -> TournamentConfig:
        # port 0 means "any free port", which must stay 0
        port = self.config.port + self.port_offset if self.config.port else 0
        return replace(self.config, port=port)

    async def validate(self, proposal: Proposal, baseline: RoundMetrics) -> ValidationResult:
        path = self.config_path
        backup = path.read_bytes() if path.exists() else None
        accepted = False
        try:
            self.apply(proposal.changes)
            outcome = await self.run(self.trial_config(), VALIDATION_FIGHT, baseline.round_number)
            accepted, reason, improvement = self.judge(baseline, outcome.metrics)
            return ValidationResult(
                accepted=accepted,
                reason=reason,
                before_metrics=baseline,
                after_metrics=outcome.metrics,
                improvement=improvement,
            )
        except Exception as exc:
            logger.warning("%s proposal validation failed", self.team, exc_info=True)
            return ValidationResult(
                accepted=False,
                reason=f"Validation error: {exc}",
                before_metrics=baseline,
                after_metrics=baseline,
            )
        finally:
            if not accepted:
                self._restore(path, backup)

    @staticmethod
    def _restore(path: Path, backup: bytes | None) -> None:
        if backup is None:
            path.unlink(missing_ok=True)
        else:
            path.write_bytes(backup)


class AttackProposalValidator(ProposalValidator):
    """Red side: accepted only when bot extraction goes up."""

    team = "red"
    port_offset = 1

    @property
    def config_path(self) -> Path:
        return self.config.attack_profile_path

    def apply(self, changes: Mapping[str, Any]) -> None:
        current = load_attack_profile(self.config_path)
        merged = AttackProfile.from_dict(deep_merge(current.to_dict(), changes))
        save_attack_profile(self.config_path, merged)

    def judge(
        self, before: RoundMetrics, after: RoundMetrics
    ) -> tuple[bool, str, Improvement | None]:
        old, new = before.bot_extraction_rate, after.bot_extraction_rate
        if new > old:
            return (
                True,
                f"Extraction improved from {_pct(old)} to {_pct(new)}",
                Improvement("botExtractionRate", old, new),
            )
        return False, f"No improvement: {_pct(old)} → {_pct(new)}", None


class PolicyProposalValidator(ProposalValidator):
    """Blue side: more suppression without hurting humans beyond the limits."""

    team = "blue"
    port_offset = 2

    @property
    def config_path(self) -> Path:
        return self.config.policy_path

    def apply(self, changes: Mapping[str, Any]) -> None:
        current = load_policy_document(self.config_path)
        merged = validate_policy(policy_from_dict(deep_merge(current.to_dict(), changes)))
        save_policy_document(self.config_path, merged)

    def judge(
        self, before: RoundMetrics, after: RoundMetrics
    ) -> tuple[bool, str, Improvement | None]:
        old, new = before.bot_suppression_rate, after.bot_suppression_rate
        fpr = after.false_positive_rate
        human = after.human_success_rate
        if not new > old:
            return False, f"No improvement: {_pct(old)} → {_pct(new)}", None
        if fpr > self.conditions.fpr_threshold:
            return (
                False,
                f"FPR constraint violated: {_pct(fpr)} > "
                f"{self.conditions.fpr_threshold * 100:.0f}%",
                None,
            )
        if human < self.conditions.human_success_threshold:
            return (
                False,
                f"Human success rate too low: {_pct(human)} < "
                f"{self.conditions.human_success_threshold * 100:.0f}%",
                None,
            )
        return (
            True,
            f"Suppression improved from {_pct(old)} to {_pct(new)}, FPR: {_pct(fpr)}",
            Improvement("botSuppressionRate", old, new),
        )
