"""Tests for metrics aggregation, the win decider and config delta merging."""

import pytest
from factories import make_metrics, make_session

from botarena.modules.arena import (
    ACTION_CREDITS,
    WinConditions,
    calculate_metrics,
    deep_merge,
    determine_winner,
    feature_discrimination,
)
from botarena.modules.arena.metrics import weighted_extraction
from botarena.modules.detector import DEFAULT_POLICY, Detector, DetectorResult, SessionFeatures
from botarena.modules.detector.scoring import calculate_score, determine_action
from botarena.modules.traffic import SessionResult


def _scored(session_id: str, features: SessionFeatures) -> DetectorResult:
    score, triggered = calculate_score(features, DEFAULT_POLICY)
    return DetectorResult(
        session_id=session_id,
        score=score,
        action=determine_action(score, DEFAULT_POLICY),
        features=features,
        triggered_features=tuple(triggered),
    )


# ── Aggregation ────────────────────────────────────────────────────────


class TestCalculateMetrics:
    def test_bot_under_allow_band_counts_as_full_extraction(self):
        bot_features = SessionFeatures(
            session_id="bot",
            reqs_per_min=25,
            dwell_time_avg=5_000,
            timing_variance=0.9,
            mouse_movement_entropy=3.0,
            dwell_vs_content_length=0.8,
        )
        human_features = SessionFeatures(session_id="human", reqs_per_min=2)
        bot_result = _scored("bot", bot_features)
        assert bot_result.score == pytest.approx(1.5)
        assert bot_result.action == "allow"

        sessions = [
            SessionResult("bot", "naive", True, 5, 5, detector_results=[bot_result] * 5),
            SessionResult(
                "human", "human", False, 4, 4, detector_results=[_scored("human", human_features)]
            ),
        ]
        metrics = calculate_metrics(sessions, fight_number=1, round_number=1)

        assert metrics.bot_extraction_rate == pytest.approx(1.0)
        assert metrics.bot_suppression_rate == pytest.approx(0.0)
        assert metrics.false_positive_rate == 0
        assert metrics.human_success_rate == 1.0

    def test_weighted_credits_per_action(self):
        bot = make_session("naive", True, ["allow", "throttle", "challenge", "block"])
        metrics = calculate_metrics([bot], 1, 1)
        expected = sum(ACTION_CREDITS.values()) / 4
        assert metrics.bot_extraction_rate == pytest.approx(expected)
        assert metrics.bot_suppression_rate == pytest.approx(1 - expected)

    def test_throttled_human_is_a_partial_false_positive(self):
        human = make_session("human", False, ["allow", "throttle"])
        metrics = calculate_metrics([human], 1, 1)
        assert metrics.human_success_rate == pytest.approx(0.75)
        assert metrics.false_positive_rate == pytest.approx(0.25)

    def test_no_sessions_uses_neutral_defaults(self):
        metrics = calculate_metrics([], 2, 3)
        assert metrics.human_success_rate == 1.0
        assert metrics.false_positive_rate == 0.0
        assert metrics.bot_extraction_rate == 0.0
        assert metrics.bot_suppression_rate == 1.0
        assert (metrics.fight_number, metrics.round_number) == (2, 3)

    def test_rates_stay_in_unit_interval(self):
        sessions = [
            make_session("human", False, ["block", "allow"], blocked=True),
            make_session("naive", True, ["allow"] * 3),
            make_session("moderate", True, ["challenge", "block"]),
        ]
        for mode in ("weighted", "binary"):
            m = calculate_metrics(sessions, 1, 1, mode=mode)
            for rate in (
                m.bot_extraction_rate,
                m.bot_suppression_rate,
                m.human_success_rate,
                m.false_positive_rate,
            ):
                assert 0.0 <= rate <= 1.0
            assert m.bot_extraction_rate + m.bot_suppression_rate == pytest.approx(1.0)

    def test_binary_mode_counts_pages_and_blocked_humans(self):
        sessions = [
            make_session("naive", True, ["throttle"] * 4, requested=4, extracted=3),
            make_session("aggressive", True, ["block"], requested=4, extracted=1),
            make_session("human", False, ["allow"], blocked=False),
            make_session("human", False, ["block"], blocked=True),
        ]
        metrics = calculate_metrics(sessions, 1, 1, mode="binary")
        assert metrics.bot_extraction_rate == pytest.approx(0.5)
        assert metrics.false_positive_rate == pytest.approx(0.5)
        assert metrics.human_success_rate == pytest.approx(0.5)
        assert metrics.mode == "binary"

    def test_unknown_mode(self):
        with pytest.raises(ValueError, match="Unknown metrics mode"):
            calculate_metrics([], 1, 1, mode="fuzzy")

    def test_profile_breakdown(self):
        sessions = [
            make_session("naive", True, ["block"], blocked=True),
            make_session("naive", True, ["allow", "allow"]),
            make_session("human", False, ["allow"]),
        ]
        profiles = {p.profile_type: p for p in calculate_metrics(sessions, 1, 1).profiles}
        assert profiles["naive"].sessions == 2
        assert profiles["naive"].blocked_sessions == 1
        assert profiles["naive"].total_requests == 3
        assert profiles["naive"].extraction_rate == pytest.approx(2 / 3)
        assert profiles["human"].is_bot is False

    def test_human_without_detections_counts_as_success(self):
        human = make_session("human", False, [])
        assert calculate_metrics([human], 1, 1).human_success_rate == 1.0

    def test_weighted_extraction_default(self):
        assert weighted_extraction([], default=0.42) == 0.42


class TestFeatureDiscrimination:
    def test_sorted_by_separation(self):
        sessions = [
            make_session("naive", True, ["block"], triggered=("asset_warmup_missing",)),
            make_session("naive", True, ["block"], triggered=("asset_warmup_missing",)),
            make_session("human", False, ["allow"], triggered=("pagination_ratio",)),
        ]
        table = feature_discrimination(sessions)
        assert table[0].feature == "asset_warmup_missing"
        assert table[0].discrimination == pytest.approx(1.0)
        assert table[-1].feature == "pagination_ratio"
        assert table[-1].discrimination == pytest.approx(-1.0)

    def test_live_detector_output(self):
        result = Detector(DEFAULT_POLICY).evaluate("s", [])
        sessions = [SessionResult("s", "naive", True, 1, 1, detector_results=[result])]
        assert all(row.bot_trigger_rate == 0 for row in feature_discrimination(sessions))


# ── Win decider ────────────────────────────────────────────────────────


class TestDetermineWinner:
    def test_red_wins_on_extraction(self):
        decision = determine_winner(make_metrics(extraction=0.6))
        assert decision.winner == "red"
        assert decision.reason == "60% extraction"

    def test_blue_wins_with_low_fpr(self):
        decision = determine_winner(make_metrics(extraction=0.2, fpr=0.01))
        assert decision.winner == "blue"
        assert decision.reason == "80% suppression, 1.0% FPR"

    def test_blue_blocked_by_fpr(self):
        assert determine_winner(make_metrics(extraction=0.2, fpr=0.2)).winner == "draw"

    def test_exactly_half_is_a_draw(self):
        decision = determine_winner(make_metrics(extraction=0.5))
        assert decision.winner == "draw"
        assert decision.reason == "no clear advantage"

    def test_fpr_threshold_is_inclusive(self):
        assert determine_winner(make_metrics(extraction=0.1, fpr=0.05)).winner == "blue"

    def test_custom_conditions(self):
        lenient = WinConditions(fpr_threshold=0.3)
        assert determine_winner(make_metrics(extraction=0.2, fpr=0.2), lenient).winner == "blue"

    @pytest.mark.parametrize("fpr", [0.0, 0.03, 0.2])
    def test_more_extraction_never_hurts_red(self, fpr):
        order = {"blue": 0, "draw": 1, "red": 2}
        outcomes = [
            order[determine_winner(make_metrics(extraction=e / 20, fpr=fpr)).winner]
            for e in range(21)
        ]
        assert outcomes == sorted(outcomes)


# ── Delta merge ────────────────────────────────────────────────────────


class TestDeepMerge:
    def test_nested_mappings_merge(self):
        base = {"features": {"a": {"weight": 1, "threshold": 5}, "b": {"weight": 2}}}
        merged = deep_merge(base, {"features": {"a": {"weight": 3}}})
        assert merged == {"features": {"a": {"weight": 3, "threshold": 5}, "b": {"weight": 2}}}

    def test_lists_replace(self):
        assert deep_merge({"jitter_ms": [500, 2000]}, {"jitter_ms": [10]}) == {"jitter_ms": [10]}

    def test_none_is_ignored(self):
        assert deep_merge({"mode": "headless"}, {"mode": None}) == {"mode": "headless"}

    def test_new_keys_added(self):
        assert deep_merge({}, {"evasion": {"mouse_style": "curved"}}) == {
            "evasion": {"mouse_style": "curved"}
        }

    def test_mapping_over_scalar_replaces(self):
        assert deep_merge({"x": 1}, {"x": {"y": 2}}) == {"x": {"y": 2}}

    def test_inputs_untouched(self):
        base = {"a": {"b": [1, 2]}}
        delta = {"a": {"c": {"d": 1}}}
        merged = deep_merge(base, delta)
        merged["a"]["b"].append(3)
        merged["a"]["c"]["d"] = 99
        assert base == {"a": {"b": [1, 2]}}
        assert delta == {"a": {"c": {"d": 1}}}

    def test_empty_delta_is_a_copy(self):
        base = {"a": 1}
        merged = deep_merge(base, {})
        assert merged == base
        assert merged is not base
