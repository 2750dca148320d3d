"""Turn a round's session outcomes into rates the win decider can judge."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence
from datetime import UTC, datetime

from botarena.modules.detector import FEATURE_NAMES, DetectorResult
from botarena.modules.traffic import SessionResult

from .models import FeatureDiscrimination, ProfileMetrics, RoundMetrics

METRICS_MODES: tuple[str, ...] = ("weighted", "binary")

# Share of a page the client still gets under each detector action.
ACTION_CREDITS: dict[str, float] = {
    "block": 0.0,
    "challenge": 0.25,
    "throttle": 0.5,
    "allow": 1.0,
}


def weighted_extraction(results: Iterable[DetectorResult], default: float) -> float:
    """Average action credit over detector results, or ``default`` when there are none."""
    credits = [ACTION_CREDITS.get(r.action, 0.0) for r in results]
    if not credits:
        return default
    return sum(credits) / len(credits)


def _detections(sessions: Iterable[SessionResult]) -> list[DetectorResult]:
    return [d for s in sessions for d in s.detector_results]


def _binary_extraction(sessions: Sequence[SessionResult]) -> float:
    requested = sum(s.pages_requested for s in sessions)
    extracted = sum(s.pages_extracted for s in sessions)
    return extracted / requested if requested else 0.0


def _profile_metrics(profile_type: str, sessions: list[SessionResult], mode: str) -> ProfileMetrics:
    is_bot = sessions[0].is_bot
    detections = _detections(sessions)
    if mode == "weighted":
        extraction_rate = weighted_extraction(detections, default=0.0 if is_bot else 1.0)
    else:
        extraction_rate = _binary_extraction(sessions)
    return ProfileMetrics(
        profile_type=profile_type,
        is_bot=is_bot,
        sessions=len(sessions),
        total_requests=sum(s.pages_requested for s in sessions),
        successful_extractions=sum(s.pages_extracted for s in sessions),
        blocked_sessions=sum(1 for s in sessions if s.was_blocked),
        throttled_sessions=sum(1 for s in sessions if s.was_throttled),
        challenged_sessions=sum(1 for s in sessions if s.was_challenged),
        extraction_rate=extraction_rate,
        avg_score=sum(d.score for d in detections) / max(1, len(detections)),
        avg_dwell_time=sum(s.duration_ms / max(1, s.pages_requested) for s in sessions)
        / max(1, len(sessions)),
    )


def _trigger_rate(sessions: Sequence[SessionResult], feature: str) -> float:
    if not sessions:
        return 0.0
    hits = sum(
        1
        for s in sessions
        if any(feature in d.triggered_features for d in s.detector_results)
    )
    return hits / len(sessions)


def feature_discrimination(results: Sequence[SessionResult]) -> list[FeatureDiscrimination]:
    """Bot trigger rate minus human trigger rate per feature, best separators first."""
    bots = [r for r in results if r.is_bot]
    humans = [r for r in results if not r.is_bot]
    table = [
        FeatureDiscrimination(
            feature=feature,
            bot_trigger_rate=_trigger_rate(bots, feature),
            human_trigger_rate=_trigger_rate(humans, feature),
        )
        for feature in FEATURE_NAMES
    ]
    return sorted(table, key=lambda row: row.discrimination, reverse=True)


def calculate_metrics(
    results: Sequence[SessionResult],
    fight_number: int,
    round_number: int,
    mode: str = "weighted",
) -> RoundMetrics:
    """Aggregate session results into per-profile and round-level metrics.

    ``weighted`` mode credits every detector decision by ACTION_CREDITS, so a
    throttled or challenged bot counts as partially suppressed. ``binary``
    mode counts pages extracted and humans that were never blocked.
    """
    if mode not in METRICS_MODES:
        raise ValueError(f"Unknown metrics mode: {mode}")

    groups: dict[str, list[SessionResult]] = defaultdict(list)
    for result in results:
        groups[result.profile_type].append(result)
    profiles = [_profile_metrics(name, sessions, mode) for name, sessions in groups.items()]

    humans = [r for r in results if not r.is_bot]
    bots = [r for r in results if r.is_bot]
    if mode == "weighted":
        human_success = weighted_extraction(_detections(humans), default=1.0)
        false_positive = 1.0 - human_success
        bot_extraction = weighted_extraction(_detections(bots), default=0.0)
    else:
        blocked = sum(1 for r in humans if r.was_blocked)
        human_success = (len(humans) - blocked) / len(humans) if humans else 1.0
        false_positive = blocked / len(humans) if humans else 0.0
        bot_extraction = _binary_extraction(bots)

    return RoundMetrics(
        fight_number=fight_number,
        round_number=round_number,
        timestamp=datetime.now(UTC).isoformat(),
        mode=mode,
        profiles=profiles,
        human_success_rate=human_success,
        false_positive_rate=false_positive,
        bot_extraction_rate=bot_extraction,
        bot_suppression_rate=1.0 - bot_extraction,
        feature_discrimination=feature_discrimination(results),
    )
