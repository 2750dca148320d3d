"""The round loop: simulate, decide, propose, validate, persist."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field, replace
from pathlib import Path

from botarena.ai.proposer import NullProposer, Proposer
from botarena.modules.target import DEFAULT_THROTTLE_DELAY

from .history import append_history, load_history, summarize_changes
from .models import (
    ArenaState,
    MetricsSnapshot,
    Proposal,
    ProposalHistoryEntry,
    RoundMetrics,
    RoundReport,
    ValidationResult,
    WinConditions,
)
from .report import win_counts, write_round_report, write_summary
from .scoring import DEFAULT_WIN_CONDITIONS, determine_winner
from .state import format_fight_round, load_state, next_fight_number, save_state
from .tournament import (
    TournamentConfig,
    load_attack_profile,
    load_policy_document,
    run_tournament,
)
from .validator import AttackProposalValidator, PolicyProposalValidator, TournamentRun
from .vcs import (
    NullVersionControl,
    VersionControlClient,
    commit_paths,
    fight_commit_message,
    round_commit_message,
)

logger = logging.getLogger(__name__)

SUMMARY_FILENAME = "summary.json"


@dataclass(frozen=True)
class ArenaPaths:
    """Where configs, traffic profiles and reports live."""

    config_dir: Path
    profiles_dir: Path
    reports_dir: Path

    @classmethod
    def under(cls, root: Path) -> ArenaPaths:
        return cls(
            config_dir=root / "configs",
            profiles_dir=root / "profiles",
            reports_dir=root / "reports",
        )

    @property
    def attack_profile_path(self) -> Path:
        return self.config_dir / "attack_profile.json"

    @property
    def policy_path(self) -> Path:
        return self.config_dir / "policy.yml"

    @property
    def state_path(self) -> Path:
        return self.config_dir / "arena-state.json"

    @property
    def history_path(self) -> Path:
        return self.config_dir / "history.json"

    @property
    def summary_path(self) -> Path:
        return self.reports_dir / SUMMARY_FILENAME


@dataclass
class ArenaSettings:
    rounds: int = 5
    port: int = 3000
    sessions_per_profile: int = 3
    fast: bool = False
    time_scale: float = 1.0
    throttle_delay: float = DEFAULT_THROTTLE_DELAY
    metrics_mode: str = "weighted"
    max_parallel_sessions: int | None = None
    conditions: WinConditions = field(default_factory=lambda: DEFAULT_WIN_CONDITIONS)


@dataclass
class FightResult:
    fight_number: int
    reports: list[RoundReport]
    summary_path: Path


def _pct(value: float, digits: int = 0) -> str:
    return f"{value * 100:.{digits}f}%"


class Arena:
    """Runs one fight: ``settings.rounds`` rounds sharing a starting config."""

    def __init__(
        self,
        paths: ArenaPaths,
        profile_paths: Sequence[Path],
        settings: ArenaSettings | None = None,
        proposer: Proposer | None = None,
        vcs: VersionControlClient | None = None,
        progress: Callable[[str], None] | None = None,
        run: TournamentRun = run_tournament,
    ):
        self.paths = paths
        self.profile_paths = list(profile_paths)
        self.settings = settings or ArenaSettings()
        self.proposer = proposer or NullProposer()
        self.vcs = vcs or NullVersionControl()
        self.progress = progress
        self.run_tournament = run

    def _say(self, message: str) -> None:
        if self.progress:
            self.progress(message)

    def tournament_config(self) -> TournamentConfig:
        s = self.settings
        return TournamentConfig(
            attack_profile_path=self.paths.attack_profile_path,
            policy_path=self.paths.policy_path,
            profile_paths=self.profile_paths,
            sessions_per_profile=s.sessions_per_profile,
            port=s.port,
            fast=s.fast,
            time_scale=s.time_scale,
            throttle_delay=s.throttle_delay,
            metrics_mode=s.metrics_mode,
            max_parallel_sessions=s.max_parallel_sessions,
            progress=self.progress,
        )

    async def run(self) -> FightResult:
        """Run every round of a new fight and write the cumulative summary."""
        state = load_state(self.paths.state_path)
        history = load_history(self.paths.history_path)
        fight = next_fight_number(state)
        state.current_fight_number = fight

        reports = []
        try:
            for round_number in range(1, self.settings.rounds + 1):
                self._say(f"\nFight {fight} - Round {round_number}/{self.settings.rounds}")
                self._say("─" * 40)
                report = await self.run_round(state, history, fight, round_number)
                reports.append(report)
        finally:
            await self.proposer.close()

        summary_path = write_summary(
            state.reports, self.paths.summary_path, self.settings.conditions
        )
        self._say(f"\nSummary: {summary_path} ({len(state.reports)} total rounds)")

        if self.vcs.is_available():
            message = fight_commit_message(fight, reports, self.settings.conditions)
            paths = [self.paths.reports_dir, self.paths.state_path, self.paths.history_path]
            if commit_paths(self.vcs, paths, message):
                self._say(f"Git: committed fight {fight} summary")
        return FightResult(fight_number=fight, reports=reports, summary_path=summary_path)

    async def run_round(
        self,
        state: ArenaState,
        history: list[ProposalHistoryEntry],
        fight: int,
        round_number: int,
    ) -> RoundReport:
        config = self.tournament_config()
        conditions = self.settings.conditions
        result = await self.run_tournament(config, fight, round_number)
        metrics = result.metrics

        self._print_profiles(metrics)
        if state.reports:
            self._print_trend(state.reports[-1].metrics, metrics)
        decision = determine_winner(metrics, conditions)
        red_wins, blue_wins, draws = win_counts(
            [*(r.metrics for r in state.reports), metrics], conditions
        )
        self._say(
            f"├─ Scoreboard: red {red_wins} | blue {blue_wins} | draw {draws}  (all-time)"
        )
        self._say(f"└─ Winner: {decision.winner.capitalize()} ({decision.reason})")

        red_proposal, blue_proposal = await self._collect_proposals(
            metrics, decision.winner, history
        )

        trial_config = replace(config, progress=None)
        red_validation = await self._validate(
            AttackProposalValidator(trial_config, conditions, self.run_tournament),
            red_proposal,
            metrics,
        )
        blue_validation = await self._validate(
            PolicyProposalValidator(trial_config, conditions, self.run_tournament),
            blue_proposal,
            metrics,
        )

        new_entries = [
            _history_entry(fight, round_number, team, proposal, validation, metrics)
            for team, proposal, validation in (
                ("red", red_proposal, red_validation),
                ("blue", blue_proposal, blue_validation),
            )
            if proposal is not None
        ]
        if new_entries:
            append_history(self.paths.history_path, history, *new_entries)

        report = RoundReport(
            fight_number=fight,
            round_number=round_number,
            timestamp=metrics.timestamp,
            metrics=metrics,
            attack_profile=load_attack_profile(self.paths.attack_profile_path).to_dict(),
            policy=load_policy_document(self.paths.policy_path).to_dict(),
            winner=decision.winner,
            win_reason=decision.reason,
            red_proposal=red_proposal,
            blue_proposal=blue_proposal,
            red_validation=red_validation,
            blue_validation=blue_validation,
        )
        report_path = write_round_report(report, self.paths.reports_dir)
        state.reports.append(report)
        save_state(self.paths.state_path, state)
        self._say(f"\nReport: {report_path}")

        if report.any_accepted and self.vcs.is_available():
            message = round_commit_message(report)
            paths = [self.paths.attack_profile_path, self.paths.policy_path]
            if message and commit_paths(self.vcs, paths, message):
                self._say(f"Git: committed {format_fight_round(fight, round_number)} changes")
        return report

    def _print_profiles(self, metrics: RoundMetrics) -> None:
        for p in metrics.profiles:
            extraction = _pct(p.extraction_rate)
            if p.is_bot:
                actions = [
                    f"{count} {label}"
                    for count, label in (
                        (p.blocked_sessions, "blocked"),
                        (p.throttled_sessions, "throttled"),
                        (p.challenged_sessions, "challenged"),
                    )
                    if count
                ]
                self._say(
                    f"├─ Bot {p.profile_type}: {extraction} extracted, "
                    f"{', '.join(actions) or 'no actions'}, score {p.avg_score:.1f}"
                )
            else:
                self._say(f"├─ Human sim: {extraction} success, avg score {p.avg_score:.1f}")

    def _print_trend(self, previous: RoundMetrics, current: RoundMetrics) -> None:
        delta = current.bot_extraction_rate - previous.bot_extraction_rate
        arrow = "↑" if delta > 0 else "↓" if delta < 0 else "→"
        label = format_fight_round(previous.fight_number, previous.round_number)
        self._say(f"├─ Trend: extraction {arrow} {_pct(abs(delta))} from {label}")

    async def _ask(
        self, team: str, request: Callable[[], Awaitable[Proposal | None]]
    ) -> Proposal | None:
        label = team.capitalize()
        try:
            proposal = await request()
        except Exception as exc:
            logger.warning("%s proposal failed", label, exc_info=True)
            self._say(f"├─ {label} proposal failed: {exc}")
            return None
        if proposal is not None:
            self._say(f"├─ {label} proposal: {summarize_changes(proposal.changes)}")
        return proposal

    async def _collect_proposals(
        self,
        metrics: RoundMetrics,
        winner: str,
        history: Sequence[ProposalHistoryEntry],
    ) -> tuple[Proposal | None, Proposal | None]:
        """Ask the losing side (both on a draw) for a proposal; each side fails on its own."""

        async def attack() -> Proposal | None:
            profile = load_attack_profile(self.paths.attack_profile_path)
            return await self.proposer.propose_attack(metrics, profile, history)

        async def policy() -> Proposal | None:
            current = load_policy_document(self.paths.policy_path)
            return await self.proposer.propose_policy(metrics, current, history)

        red = blue = None
        if winner != "red":
            red = await self._ask("red", attack)
        else:
            self._say("├─ Red: skipped (winner)")
        if winner != "blue":
            blue = await self._ask("blue", policy)
        else:
            self._say("├─ Blue: skipped (winner)")
        return red, blue

    async def _validate(
        self,
        validator: AttackProposalValidator | PolicyProposalValidator,
        proposal: Proposal | None,
        metrics: RoundMetrics,
    ) -> ValidationResult | None:
        label = validator.team.capitalize()
        if proposal is None:
            return None
        if not proposal.has_changes:
            self._say(f"├─ {label}: skipped (no changes)")
            return None
        self._say(f"├─ Validation: running tournament for {label}...")
        validation = await validator.validate(proposal, metrics)
        verdict = "ACCEPTED" if validation.accepted else "REJECTED"
        self._say(f"├─ {label}: {verdict} ({validation.reason})")
        return validation


def _history_entry(
    fight: int,
    round_number: int,
    team: str,
    proposal: Proposal,
    validation: ValidationResult | None,
    metrics: RoundMetrics,
) -> ProposalHistoryEntry:
    return ProposalHistoryEntry(
        round_number=round_number,
        team=team,
        proposal=proposal,
        accepted=validation.accepted if validation else False,
        reason=validation.reason if validation else "no changes",
        metrics_before=MetricsSnapshot.of(metrics),
        metrics_after=MetricsSnapshot.of(validation.after_metrics) if validation else None,
        fight_number=fight,
    )
