"""Arena -- metrics, win decisions, tournaments and proposal validation."""

from .merge import deep_merge
from .metrics import ACTION_CREDITS, calculate_metrics, feature_discrimination
from .models import (
    ArenaState,
    FeatureDiscrimination,
    Improvement,
    MetricsSnapshot,
    ProfileMetrics,
    Proposal,
    ProposalHistoryEntry,
    RoundMetrics,
    RoundReport,
    ValidationResult,
    WinConditions,
    WinDecision,
)
from .scoring import DEFAULT_WIN_CONDITIONS, determine_winner
from .tournament import (
    ConfigLoadError,
    TournamentConfig,
    TournamentResult,
    load_attack_profile,
    load_policy_document,
    load_traffic_profiles,
    run_tournament,
    save_attack_profile,
    save_policy_document,
)
from .validator import AttackProposalValidator, PolicyProposalValidator, ProposalValidator

__all__ = [
    "ACTION_CREDITS",
    "ArenaState",
    "AttackProposalValidator",
    "ConfigLoadError",
    "DEFAULT_WIN_CONDITIONS",
    "FeatureDiscrimination",
    "Improvement",
    "MetricsSnapshot",
    "PolicyProposalValidator",
    "ProfileMetrics",
    "Proposal",
    "ProposalHistoryEntry",
    "ProposalValidator",
    "RoundMetrics",
    "RoundReport",
    "TournamentConfig",
    "TournamentResult",
    "ValidationResult",
    "WinConditions",
    "WinDecision",
    "calculate_metrics",
    "deep_merge",
    "determine_winner",
    "feature_discrimination",
    "load_attack_profile",
    "load_policy_document",
    "load_traffic_profiles",
    "run_tournament",
    "save_attack_profile",
    "save_policy_document",
]
