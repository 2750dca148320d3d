"""Round metrics, proposals, validation outcomes and persisted arena state."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

TEAMS: tuple[str, ...] = ("red", "blue")
WINNERS: tuple[str, ...] = ("red", "blue", "draw")


@dataclass
class ProfileMetrics:
    """Aggregated outcome of every session that shared one profile type."""

    profile_type: str
    is_bot: bool
    sessions: int = 0
    total_requests: int = 0
    successful_extractions: int = 0
    blocked_sessions: int = 0
    throttled_sessions: int = 0
    challenged_sessions: int = 0
    extraction_rate: float = 0.0
    avg_score: float = 0.0
    avg_dwell_time: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "profileType": self.profile_type,
            "isBot": self.is_bot,
            "sessions": self.sessions,
            "totalRequests": self.total_requests,
            "successfulExtractions": self.successful_extractions,
            "blockedSessions": self.blocked_sessions,
            "throttledSessions": self.throttled_sessions,
            "challengedSessions": self.challenged_sessions,
            "extractionRate": self.extraction_rate,
            "avgScore": self.avg_score,
            "avgDwellTime": self.avg_dwell_time,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProfileMetrics:
        return cls(
            profile_type=str(data["profileType"]),
            is_bot=bool(data["isBot"]),
            sessions=int(data.get("sessions", 0)),
            total_requests=int(data.get("totalRequests", 0)),
            successful_extractions=int(data.get("successfulExtractions", 0)),
            blocked_sessions=int(data.get("blockedSessions", 0)),
            throttled_sessions=int(data.get("throttledSessions", 0)),
            challenged_sessions=int(data.get("challengedSessions", 0)),
            extraction_rate=float(data.get("extractionRate", 0.0)),
            avg_score=float(data.get("avgScore", 0.0)),
            avg_dwell_time=float(data.get("avgDwellTime", 0.0)),
        )


@dataclass(frozen=True, slots=True)
class FeatureDiscrimination:
    """How much more often bots trip a feature than humans do."""

    feature: str
    bot_trigger_rate: float
    human_trigger_rate: float

    @property
    def discrimination(self) -> float:
        return self.bot_trigger_rate - self.human_trigger_rate

    def to_dict(self) -> dict[str, Any]:
        return {
            "feature": self.feature,
            "botTriggerRate": self.bot_trigger_rate,
            "humanTriggerRate": self.human_trigger_rate,
            "discrimination": self.discrimination,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FeatureDiscrimination:
        return cls(
            feature=str(data["feature"]),
            bot_trigger_rate=float(data.get("botTriggerRate", 0.0)),
            human_trigger_rate=float(data.get("humanTriggerRate", 0.0)),
        )


@dataclass
class RoundMetrics:
    """Round-level rates plus the per-profile breakdown they came from."""

    fight_number: int
    round_number: int
    timestamp: str
    profiles: list[ProfileMetrics] = field(default_factory=list)
    human_success_rate: float = 1.0
    false_positive_rate: float = 0.0
    bot_suppression_rate: float = 1.0
    bot_extraction_rate: float = 0.0
    feature_discrimination: list[FeatureDiscrimination] = field(default_factory=list)
    mode: str = "weighted"

    def to_dict(self) -> dict[str, Any]:
        return {
            "fightNumber": self.fight_number,
            "roundNumber": self.round_number,
            "timestamp": self.timestamp,
            "mode": self.mode,
            "profiles": [p.to_dict() for p in self.profiles],
            "humanSuccessRate": self.human_success_rate,
            "falsePositiveRate": self.false_positive_rate,
            "botSuppressionRate": self.bot_suppression_rate,
            "botExtractionRate": self.bot_extraction_rate,
            "featureDiscrimination": [d.to_dict() for d in self.feature_discrimination],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RoundMetrics:
        return cls(
            fight_number=int(data.get("fightNumber", 0)),
            round_number=int(data.get("roundNumber", 0)),
            timestamp=str(data.get("timestamp", "")),
            mode=str(data.get("mode", "weighted")),
            profiles=[ProfileMetrics.from_dict(p) for p in data.get("profiles", [])],
            human_success_rate=float(data.get("humanSuccessRate", 1.0)),
            false_positive_rate=float(data.get("falsePositiveRate", 0.0)),
            bot_suppression_rate=float(data.get("botSuppressionRate", 1.0)),
            bot_extraction_rate=float(data.get("botExtractionRate", 0.0)),
            feature_discrimination=[
                FeatureDiscrimination.from_dict(d) for d in data.get("featureDiscrimination", [])
            ],
        )


@dataclass(frozen=True, slots=True)
class WinConditions:
    """Thresholds used to call a round."""

    fpr_threshold: float = 0.05
    human_success_threshold: float = 0.95
    red_win_threshold: float = 0.5
    blue_win_threshold: float = 0.5


@dataclass(frozen=True, slots=True)
class WinDecision:
    winner: str  # red | blue | draw
    reason: str


@dataclass
class Proposal:
    """A partial config delta suggested by one team."""

    changes: dict[str, Any] = field(default_factory=dict)
    reasoning: str = ""

    @property
    def has_changes(self) -> bool:
        return bool(self.changes)

    def to_dict(self) -> dict[str, Any]:
        return {"changes": self.changes, "reasoning": self.reasoning}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Proposal:
        changes = data.get("changes")
        return cls(
            changes=dict(changes) if isinstance(changes, dict) else {},
            reasoning=str(data.get("reasoning", "")),
        )


@dataclass(frozen=True, slots=True)
class Improvement:
    metric: str
    before: float
    after: float

    @property
    def delta(self) -> float:
        return self.after - self.before

    def to_dict(self) -> dict[str, Any]:
        return {
            "metric": self.metric,
            "before": self.before,
            "after": self.after,
            "delta": self.delta,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Improvement:
        return cls(
            metric=str(data["metric"]),
            before=float(data["before"]),
            after=float(data["after"]),
        )


@dataclass
class ValidationResult:
    """Verdict of one proposal trial run."""

    accepted: bool
    reason: str
    before_metrics: RoundMetrics
    after_metrics: RoundMetrics
    improvement: Improvement | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "accepted": self.accepted,
            "reason": self.reason,
            "beforeMetrics": self.before_metrics.to_dict(),
            "afterMetrics": self.after_metrics.to_dict(),
        }
        if self.improvement is not None:
            data["improvement"] = self.improvement.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ValidationResult:
        improvement = data.get("improvement")
        return cls(
            accepted=bool(data["accepted"]),
            reason=str(data.get("reason", "")),
            before_metrics=RoundMetrics.from_dict(data["beforeMetrics"]),
            after_metrics=RoundMetrics.from_dict(data["afterMetrics"]),
            improvement=Improvement.from_dict(improvement) if improvement else None,
        )


@dataclass(frozen=True, slots=True)
class MetricsSnapshot:
    """The three headline numbers remembered for a proposal attempt."""

    extraction: float
    suppression: float
    fpr: float

    @classmethod
    def of(cls, metrics: RoundMetrics) -> MetricsSnapshot:
        return cls(
            extraction=metrics.bot_extraction_rate,
            suppression=metrics.bot_suppression_rate,
            fpr=metrics.false_positive_rate,
        )

    def to_dict(self) -> dict[str, float]:
        return {"extraction": self.extraction, "suppression": self.suppression, "fpr": self.fpr}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MetricsSnapshot:
        return cls(
            extraction=float(data.get("extraction", 0.0)),
            suppression=float(data.get("suppression", 0.0)),
            fpr=float(data.get("fpr", 0.0)),
        )


@dataclass(frozen=True)
class ProposalHistoryEntry:
    """Record of one proposal attempt; never changed after it is appended."""

    round_number: int
    team: str
    proposal: Proposal
    accepted: bool
    reason: str
    metrics_before: MetricsSnapshot
    metrics_after: MetricsSnapshot | None = None
    fight_number: int | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "roundNumber": self.round_number,
            "team": self.team,
            "proposal": self.proposal.to_dict(),
            "accepted": self.accepted,
            "reason": self.reason,
            "metricsBefore": self.metrics_before.to_dict(),
        }
        if self.metrics_after is not None:
            data["metricsAfter"] = self.metrics_after.to_dict()
        if self.fight_number is not None:
            data["fightNumber"] = self.fight_number
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProposalHistoryEntry:
        after = data.get("metricsAfter")
        team = str(data["team"])
        if team not in TEAMS:
            raise ValueError(f"Unknown team: {team}")
        fight = data.get("fightNumber")
        return cls(
            round_number=int(data["roundNumber"]),
            team=team,
            proposal=Proposal.from_dict(data.get("proposal") or {}),
            accepted=bool(data.get("accepted", False)),
            reason=str(data.get("reason", "")),
            metrics_before=MetricsSnapshot.from_dict(data.get("metricsBefore") or {}),
            metrics_after=MetricsSnapshot.from_dict(after) if after else None,
            fight_number=int(fight) if fight is not None else None,
        )


@dataclass
class RoundReport:
    """Everything worth keeping about one round."""

    fight_number: int
    round_number: int
    timestamp: str
    metrics: RoundMetrics
    attack_profile: dict[str, Any]
    policy: dict[str, Any]
    winner: str
    win_reason: str
    red_proposal: Proposal | None = None
    blue_proposal: Proposal | None = None
    red_validation: ValidationResult | None = None
    blue_validation: ValidationResult | None = None

    @property
    def any_accepted(self) -> bool:
        validations = (self.red_validation, self.blue_validation)
        return any(v is not None and v.accepted for v in validations)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "fightNumber": self.fight_number,
            "roundNumber": self.round_number,
            "timestamp": self.timestamp,
            "metrics": self.metrics.to_dict(),
            "attackProfile": self.attack_profile,
            "policy": self.policy,
            "winner": self.winner,
            "winReason": self.win_reason,
        }
        for key, value in (
            ("redProposal", self.red_proposal),
            ("blueProposal", self.blue_proposal),
            ("redValidation", self.red_validation),
            ("blueValidation", self.blue_validation),
        ):
            if value is not None:
                data[key] = value.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RoundReport:
        def optional(key: str, loader: Any) -> Any:
            value = data.get(key)
            return loader(value) if value else None

        return cls(
            fight_number=int(data.get("fightNumber", 0)),
            round_number=int(data.get("roundNumber", 0)),
            timestamp=str(data.get("timestamp", "")),
            metrics=RoundMetrics.from_dict(data["metrics"]),
            attack_profile=dict(data.get("attackProfile") or {}),
            policy=dict(data.get("policy") or {}),
            winner=str(data.get("winner", "draw")),
            win_reason=str(data.get("winReason", "")),
            red_proposal=optional("redProposal", Proposal.from_dict),
            blue_proposal=optional("blueProposal", Proposal.from_dict),
            red_validation=optional("redValidation", ValidationResult.from_dict),
            blue_validation=optional("blueValidation", ValidationResult.from_dict),
        )


@dataclass
class ArenaState:
    """Fight counter plus every round report ever written."""

    current_fight_number: int = 0
    reports: list[RoundReport] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "currentFightNumber": self.current_fight_number,
            "reports": [r.to_dict() for r in self.reports],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ArenaState:
        return cls(
            current_fight_number=int(data.get("currentFightNumber") or 0),
            reports=[RoundReport.from_dict(r) for r in data.get("reports") or []],
        )
