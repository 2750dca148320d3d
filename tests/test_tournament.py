"""Tests for the tournament pass and proposal validation with rollback."""

import json
from pathlib import Path

import httpx
import pytest
from factories import make_metrics, make_session

from botarena.modules.arena import (
    AttackProposalValidator,
    ConfigLoadError,
    PolicyProposalValidator,
    Proposal,
    TournamentConfig,
    TournamentResult,
    WinConditions,
    load_attack_profile,
    load_policy_document,
    run_tournament,
)
from botarena.modules.arena.runner import ArenaPaths
from botarena.modules.detector import DEFAULT_POLICY, PolicyValidationError
from botarena.modules.target import HttpResponse, TargetApp
from botarena.modules.traffic import AttackProfile, DetectionFetchError, find_profiles


def _config(paths: ArenaPaths, **kwargs) -> TournamentConfig:
    return TournamentConfig(
        attack_profile_path=paths.attack_profile_path,
        policy_path=paths.policy_path,
        profile_paths=find_profiles(paths.profiles_dir),
        port=kwargs.pop("port", 0),
        throttle_delay=0,
        time_scale=0,
        **kwargs,
    )


class FakeTraffic:
    """Stands in for the parallel traffic runner."""

    def __init__(self, sessions=None, error: Exception | None = None):
        self.sessions = sessions or []
        self.error = error
        self.calls: list[dict] = []

    async def __call__(
        self, base_url, profiles, attack_profile, options=None, progress=None, client=None
    ):
        self.calls.append(
            {
                "base_url": base_url,
                "profiles": profiles,
                "attack_profile": attack_profile,
                "options": options,
            }
        )
        health = await client.get(f"{base_url}/health")
        assert health.status_code == 200
        if self.error:
            raise self.error
        return self.sessions


class FakeRun:
    """Stands in for run_tournament inside validators."""

    def __init__(self, after=None, error: Exception | None = None):
        self.after = after or make_metrics()
        self.error = error
        self.calls: list[tuple[TournamentConfig, int, int]] = []
        self.seen_files: list[str] = []

    async def __call__(self, config, fight_number, round_number):
        self.calls.append((config, fight_number, round_number))
        self.seen_files.append(config.attack_profile_path.read_text(encoding="utf-8"))
        self.seen_files.append(config.policy_path.read_text(encoding="utf-8"))
        if self.error:
            raise self.error
        return TournamentResult(
            metrics=self.after,
            session_results=[],
            attack_profile=AttackProfile(),
            policy=DEFAULT_POLICY,
        )


async def _assert_port_closed(base_url: str) -> None:
    async with httpx.AsyncClient() as client:
        with pytest.raises(httpx.ConnectError):
            await client.get(f"{base_url}/health")


# ── Config documents ───────────────────────────────────────────────────


class TestConfigLoading:
    def test_missing_attack_profile(self, temp_dir: Path):
        with pytest.raises(ConfigLoadError, match="not found"):
            load_attack_profile(temp_dir / "attack_profile.json")

    def test_attack_profile_must_be_object(self, temp_dir: Path):
        path = temp_dir / "attack_profile.json"
        path.write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(ConfigLoadError):
            load_attack_profile(path)

    def test_missing_policy_is_strict(self, temp_dir: Path):
        with pytest.raises(ConfigLoadError):
            load_policy_document(temp_dir / "policy.yml")

    def test_policy_with_bad_bands(self, arena_root: ArenaPaths):
        text = arena_root.policy_path.read_text(encoding="utf-8")
        arena_root.policy_path.write_text(
            text.replace("max_score: 999", "max_score: 1"), encoding="utf-8"
        )
        with pytest.raises(PolicyValidationError):
            load_policy_document(arena_root.policy_path)

    def test_policy_scalar_document(self, temp_dir: Path):
        path = temp_dir / "policy.yml"
        path.write_text("just a string\n", encoding="utf-8")
        with pytest.raises(PolicyValidationError):
            load_policy_document(path)


# ── Tournament pass ────────────────────────────────────────────────────


class TestRunTournament:
    @pytest.mark.asyncio
    async def test_aggregates_runner_output(self, arena_root: ArenaPaths):
        traffic = FakeTraffic(
            sessions=[
                make_session("naive", True, ["block", "allow"]),
                make_session("human", False, ["allow"]),
            ]
        )
        messages: list[str] = []
        config = _config(arena_root, sessions_per_profile=2, progress=messages.append)

        result = await run_tournament(config, 4, 2, traffic_runner=traffic)

        assert result.metrics.fight_number == 4
        assert result.metrics.round_number == 2
        assert result.metrics.bot_extraction_rate == pytest.approx(0.5)
        assert result.policy == DEFAULT_POLICY
        assert [p.type for p in traffic.calls[0]["profiles"]] == ["human", "naive"]
        assert traffic.calls[0]["options"].sessions_per_profile == 2
        assert "Running traffic simulations..." in messages
        await _assert_port_closed(traffic.calls[0]["base_url"])

    @pytest.mark.asyncio
    async def test_invalid_policy_aborts_before_serving(self, arena_root: ArenaPaths):
        arena_root.policy_path.write_text(
            "actions:\n"
            "  allow: {max_score: 5}\n"
            "  throttle: {max_score: 3}\n"
            "  challenge: {max_score: 8}\n"
            "  block: {max_score: 999}\n",
            encoding="utf-8",
        )
        traffic = FakeTraffic()
        with pytest.raises(PolicyValidationError):
            await run_tournament(_config(arena_root), 1, 1, traffic_runner=traffic)
        assert traffic.calls == []

    @pytest.mark.asyncio
    async def test_missing_profile_file(self, arena_root: ArenaPaths):
        config = _config(arena_root)
        config.profile_paths.append(arena_root.profiles_dir / "ghost.json")
        with pytest.raises(ConfigLoadError, match="ghost"):
            await run_tournament(config, 1, 1, traffic_runner=FakeTraffic())

    @pytest.mark.asyncio
    async def test_service_stopped_when_runner_fails(self, arena_root: ArenaPaths):
        traffic = FakeTraffic(error=RuntimeError("boom"))
        with pytest.raises(RuntimeError, match="boom"):
            await run_tournament(_config(arena_root), 1, 1, traffic_runner=traffic)
        await _assert_port_closed(traffic.calls[0]["base_url"])

    @pytest.mark.asyncio
    async def test_runner_gets_fast_options(self, arena_root: ArenaPaths):
        traffic = FakeTraffic()
        await run_tournament(
            _config(arena_root, fast=True, seed=9), 1, 1, traffic_runner=traffic
        )
        options = traffic.calls[0]["options"]
        assert options.fast is True
        assert options.seed == 9
        assert options.time_scale == 0

    @pytest.mark.asyncio
    async def test_missing_detections_abort_the_pass(
        self, arena_root: ArenaPaths, monkeypatch: pytest.MonkeyPatch
    ):
        serve = TargetApp._route

        def failing_detections(app, request):
            if request.path == "/admin/detections":
                return HttpResponse(500, {"error": "store unavailable"})
            return serve(app, request)

        monkeypatch.setattr(TargetApp, "_route", failing_detections)
        config = _config(arena_root, sessions_per_profile=1, fast=True, seed=3)

        with pytest.raises(DetectionFetchError):
            await run_tournament(config, 1, 1)


# ── Validators ─────────────────────────────────────────────────────────


class TestAttackProposalValidator:
    @pytest.mark.asyncio
    async def test_accepts_improvement_and_keeps_file(self, arena_root: ArenaPaths):
        run = FakeRun(after=make_metrics(extraction=0.6))
        validator = AttackProposalValidator(_config(arena_root), run=run)

        result = await validator.validate(
            Proposal({"concurrency": 7, "query_strategy": {"type": "random"}}),
            make_metrics(extraction=0.3),
        )

        assert result.accepted is True
        assert result.reason == "Extraction improved from 30.0% to 60.0%"
        assert result.improvement.delta == pytest.approx(0.3)
        saved = load_attack_profile(arena_root.attack_profile_path)
        assert saved.concurrency == 7
        assert saved.query_strategy.type == "random"
        assert saved.requests_per_minute == AttackProfile().requests_per_minute

    @pytest.mark.asyncio
    async def test_trial_sees_merged_profile(self, arena_root: ArenaPaths):
        run = FakeRun(after=make_metrics(extraction=0.1))
        validator = AttackProposalValidator(_config(arena_root), run=run)
        await validator.validate(Proposal({"requests_per_minute": 5}), make_metrics())
        assert json.loads(run.seen_files[0])["requests_per_minute"] == 5
        assert run.calls[0][1] == 0

    @pytest.mark.asyncio
    async def test_rejection_restores_exact_bytes(self, arena_root: ArenaPaths):
        original = b'{"concurrency": 3,   "mode": "headless"}'
        arena_root.attack_profile_path.write_bytes(original)
        validator = AttackProposalValidator(
            _config(arena_root), run=FakeRun(after=make_metrics(extraction=0.3))
        )

        result = await validator.validate(Proposal({"concurrency": 9}), make_metrics(0.3))

        assert result.accepted is False
        assert result.reason == "No improvement: 30.0% → 30.0%"
        assert arena_root.attack_profile_path.read_bytes() == original

    @pytest.mark.asyncio
    async def test_error_during_trial_restores_exact_bytes(self, arena_root: ArenaPaths):
        original = arena_root.attack_profile_path.read_bytes()
        baseline = make_metrics(extraction=0.3)
        validator = AttackProposalValidator(
            _config(arena_root), run=FakeRun(error=OSError("port in use"))
        )

        result = await validator.validate(Proposal({"warmup": False}), baseline)

        assert result.accepted is False
        assert result.reason == "Validation error: port in use"
        assert result.after_metrics is baseline
        assert arena_root.attack_profile_path.read_bytes() == original

    @pytest.mark.asyncio
    async def test_unparseable_delta_is_rejected(self, arena_root: ArenaPaths):
        original = arena_root.attack_profile_path.read_bytes()
        run = FakeRun()
        validator = AttackProposalValidator(_config(arena_root), run=run)

        result = await validator.validate(Proposal({"jitter_ms": [1]}), make_metrics())

        assert result.accepted is False
        assert result.reason.startswith("Validation error")
        assert run.calls == []
        assert arena_root.attack_profile_path.read_bytes() == original

    @pytest.mark.asyncio
    async def test_string_flag_is_rejected(self, arena_root: ArenaPaths):
        original = arena_root.attack_profile_path.read_bytes()
        run = FakeRun()
        validator = AttackProposalValidator(_config(arena_root), run=run)

        result = await validator.validate(Proposal({"warmup": "false"}), make_metrics())

        assert result.accepted is False
        assert "warmup must be true or false" in result.reason
        assert run.calls == []
        assert arena_root.attack_profile_path.read_bytes() == original

    def test_trial_ports(self, arena_root: ArenaPaths):
        red = AttackProposalValidator(_config(arena_root, port=3000))
        blue = PolicyProposalValidator(_config(arena_root, port=3000))
        assert red.trial_config().port == 3001
        assert blue.trial_config().port == 3002
        assert AttackProposalValidator(_config(arena_root)).trial_config().port == 0


class TestPolicyProposalValidator:
    @pytest.mark.asyncio
    async def test_accepts_more_suppression_within_limits(self, arena_root: ArenaPaths):
        run = FakeRun(after=make_metrics(extraction=0.2, fpr=0.01))
        validator = PolicyProposalValidator(_config(arena_root), run=run)

        result = await validator.validate(
            Proposal({"features": {"reqs_per_min": {"threshold": 10}}}),
            make_metrics(extraction=0.6),
        )

        assert result.accepted is True
        assert result.reason == "Suppression improved from 40.0% to 80.0%, FPR: 1.0%"
        policy = load_policy_document(arena_root.policy_path)
        assert policy.features["reqs_per_min"].threshold == 10
        assert policy.features["reqs_per_min"].weight == 1.5

    @pytest.mark.asyncio
    async def test_rejects_fpr_violation(self, arena_root: ArenaPaths):
        original = arena_root.policy_path.read_bytes()
        run = FakeRun(after=make_metrics(extraction=0.1, fpr=0.2))
        validator = PolicyProposalValidator(_config(arena_root), run=run)

        result = await validator.validate(
            Proposal({"actions": {"allow": {"max_score": 1}}}), make_metrics(extraction=0.6)
        )

        assert result.accepted is False
        assert result.reason == "FPR constraint violated: 20.0% > 5%"
        assert arena_root.policy_path.read_bytes() == original

    @pytest.mark.asyncio
    async def test_rejects_low_human_success(self, arena_root: ArenaPaths):
        run = FakeRun(after=make_metrics(extraction=0.1, fpr=0.0, human=0.9))
        validator = PolicyProposalValidator(_config(arena_root), run=run)

        result = await validator.validate(
            Proposal({"features": {"session_depth": {"weight": 2}}}), make_metrics(0.6)
        )

        assert result.accepted is False
        assert result.reason == "Human success rate too low: 90.0% < 95%"

    @pytest.mark.asyncio
    async def test_custom_fpr_threshold(self, arena_root: ArenaPaths):
        run = FakeRun(after=make_metrics(extraction=0.1, fpr=0.04, human=0.96))
        strict = PolicyProposalValidator(
            _config(arena_root), WinConditions(fpr_threshold=0.02), run=run
        )
        result = await strict.validate(
            Proposal({"features": {"session_depth": {"weight": 2}}}), make_metrics(0.6)
        )
        assert result.accepted is False
        assert result.reason.startswith("FPR constraint violated")

    @pytest.mark.asyncio
    async def test_band_violation_never_reaches_the_trial(self, arena_root: ArenaPaths):
        original = arena_root.policy_path.read_bytes()
        run = FakeRun()
        validator = PolicyProposalValidator(_config(arena_root), run=run)

        result = await validator.validate(
            Proposal({"actions": {"throttle": {"max_score": 1}}}), make_metrics(0.6)
        )

        assert result.accepted is False
        assert "strictly increasing" in result.reason
        assert run.calls == []
        assert arena_root.policy_path.read_bytes() == original

    @pytest.mark.asyncio
    async def test_missing_policy_stays_missing(self, arena_root: ArenaPaths):
        arena_root.policy_path.unlink()
        validator = PolicyProposalValidator(_config(arena_root), run=FakeRun())
        result = await validator.validate(
            Proposal({"features": {"x": {"weight": 1}}}), make_metrics()
        )
        assert result.accepted is False
        assert not arena_root.policy_path.exists()
