"""Policy-weighted scoring and action classification."""

from __future__ import annotations

from collections.abc import Sequence

from .features import extract_features
from .models import DetectorResult, Policy, RequestLog, SessionFeatures

# Comparison applied per feature: "high" triggers above the threshold, "low"
# triggers below it (only once the signal was actually measured), "flag"
# triggers whenever the boolean is set.
FEATURE_RULES: dict[str, str] = {
    "reqs_per_min": "high",
    "unique_queries_per_hour": "high",
    "pagination_ratio": "high",
    "session_depth": "high",
    "dwell_time_avg": "low",
    "timing_variance": "low",
    "asset_warmup_missing": "flag",
    "mouse_movement_entropy": "low",
    "dwell_vs_content_length": "low",
}


def _triggers(rule: str, value: float | bool, threshold: float | None) -> bool:
    if rule == "flag":
        return bool(value)
    if threshold is None:
        return False
    if rule == "high":
        return value > threshold
    return 0 < value < threshold


def calculate_score(features: SessionFeatures, policy: Policy) -> tuple[float, list[str]]:
    """Sum the weights of every triggered feature; returns (score, triggered names)."""
    score = 0.0
    triggered: list[str] = []
    for name, rule in FEATURE_RULES.items():
        setting = policy.features.get(name)
        if setting is None:
            continue
        if _triggers(rule, features.value(name), setting.threshold):
            score += setting.weight
            triggered.append(name)
    return score, triggered


def determine_action(score: float, policy: Policy) -> str:
    """Map a score onto the first action band whose upper bound covers it."""
    for action, max_score in policy.actions.ordered()[:-1]:
        if score <= max_score:
            return action
    return "block"


class Detector:
    """Stateless scorer bound to one policy."""

    def __init__(self, policy: Policy):
        self.policy = policy

    def evaluate(
        self,
        session_id: str,
        logs: Sequence[RequestLog],
        now: float | None = None,
    ) -> DetectorResult:
        features = extract_features(session_id, logs, now=now)
        score, triggered = calculate_score(features, self.policy)
        return DetectorResult(
            session_id=session_id,
            score=score,
            action=determine_action(score, self.policy),
            features=features,
            triggered_features=tuple(triggered),
        )
