"""Tests for the round loop: decide, propose, validate, persist and commit."""

import json

import pytest
from factories import make_metrics

from botarena.ai.proposer import NullProposer
from botarena.modules.arena import Proposal, TournamentResult, load_attack_profile
from botarena.modules.arena.history import load_history
from botarena.modules.arena.runner import Arena, ArenaPaths, ArenaSettings
from botarena.modules.arena.state import load_state
from botarena.modules.detector import DEFAULT_POLICY
from botarena.modules.traffic import AttackProfile, find_profiles


class ScriptedRun:
    """Round passes return ``round_extraction``; validation passes return ``trial_extraction``."""

    def __init__(self, round_extraction: float = 0.3, trial_extraction: float = 0.3):
        self.round_extraction = round_extraction
        self.trial_extraction = trial_extraction
        self.calls: list[tuple[int, int, int]] = []

    async def __call__(self, config, fight_number, round_number):
        self.calls.append((fight_number, round_number, config.port))
        extraction = self.trial_extraction if fight_number == 0 else self.round_extraction
        return TournamentResult(
            metrics=make_metrics(
                extraction=extraction, fight_number=fight_number, round_number=round_number
            ),
            session_results=[],
            attack_profile=AttackProfile(),
            policy=DEFAULT_POLICY,
        )


class ScriptedProposer:
    def __init__(
        self,
        red=None,
        blue=None,
        red_error: Exception | None = None,
        blue_error: Exception | None = None,
    ):
        self.red = red
        self.blue = blue
        self.red_error = red_error
        self.blue_error = blue_error
        self.histories: list[int] = []
        self.closed = False

    async def propose_attack(self, metrics, profile, history):
        if self.red_error:
            raise self.red_error
        self.histories.append(len(history))
        return self.red

    async def propose_policy(self, metrics, policy, history):
        if self.blue_error:
            raise self.blue_error
        self.histories.append(len(history))
        return self.blue

    async def close(self):
        self.closed = True


class RecordingVCS:
    def __init__(self):
        self.commits: list[tuple[list, str]] = []
        self._staged: list = []

    def is_available(self):
        return True

    def stage(self, paths):
        self._staged = list(paths)

    def commit(self, message):
        self.commits.append((self._staged, message))


def _arena(paths: ArenaPaths, run, rounds: int = 1, **kwargs) -> tuple[Arena, list[str]]:
    messages: list[str] = []
    arena = Arena(
        paths,
        find_profiles(paths.profiles_dir),
        settings=ArenaSettings(rounds=rounds, port=4000),
        progress=messages.append,
        run=run,
        **kwargs,
    )
    return arena, messages


class TestArenaFight:
    @pytest.mark.asyncio
    async def test_rounds_without_agents(self, arena_root: ArenaPaths):
        run = ScriptedRun(round_extraction=0.3)
        arena, messages = _arena(arena_root, run, rounds=2, proposer=NullProposer())

        result = await arena.run()

        assert result.fight_number == 1
        assert [r.round_number for r in result.reports] == [1, 2]
        assert all(r.winner == "blue" for r in result.reports)
        assert run.calls == [(1, 1, 4000), (1, 2, 4000)]
        assert not arena_root.history_path.exists()

        state = load_state(arena_root.state_path)
        assert state.current_fight_number == 1
        assert len(state.reports) == 2
        assert (arena_root.reports_dir / "round-F001-R002.json").exists()
        summary = json.loads(arena_root.summary_path.read_text(encoding="utf-8"))
        assert summary["scoreboard"]["blue_wins"] == 2
        assert any("Winner: Blue (70% suppression, 0.0% FPR)" in m for m in messages)
        assert any("Trend: extraction → 0% from F1-R1" in m for m in messages)

    @pytest.mark.asyncio
    async def test_fight_numbers_continue(self, arena_root: ArenaPaths):
        first, _ = _arena(arena_root, ScriptedRun())
        await first.run()
        second, messages = _arena(arena_root, ScriptedRun())
        result = await second.run()

        assert result.fight_number == 2
        assert len(load_state(arena_root.state_path).reports) == 2
        assert any("Scoreboard: red 0 | blue 2 | draw 0" in m for m in messages)

    @pytest.mark.asyncio
    async def test_loser_proposal_accepted_and_committed(self, arena_root: ArenaPaths):
        run = ScriptedRun(round_extraction=0.3, trial_extraction=0.6)
        proposer = ScriptedProposer(red=Proposal({"concurrency": 8}, "more workers"))
        vcs = RecordingVCS()
        arena, messages = _arena(arena_root, run, proposer=proposer, vcs=vcs)

        result = await arena.run()
        report = result.reports[0]

        assert report.red_validation.accepted is True
        assert report.blue_proposal is None
        assert load_attack_profile(arena_root.attack_profile_path).concurrency == 8
        assert (0, 1, 4001) in run.calls

        history = load_history(arena_root.history_path)
        assert [(e.team, e.accepted) for e in history] == [("red", True)]
        assert history[0].metrics_after.extraction == pytest.approx(0.6)

        round_commit, fight_commit = vcs.commits
        assert round_commit[1].startswith("Round 1: Red: Extraction improved")
        assert arena_root.attack_profile_path in round_commit[0]
        assert fight_commit[1].startswith("Fight 1 complete")
        assert proposer.closed is True
        assert any("Red: ACCEPTED" in m for m in messages)
        assert any("Blue: skipped (winner)" in m for m in messages)

    @pytest.mark.asyncio
    async def test_rejected_proposal_leaves_config_alone(self, arena_root: ArenaPaths):
        before = arena_root.attack_profile_path.read_bytes()
        run = ScriptedRun(round_extraction=0.3, trial_extraction=0.2)
        proposer = ScriptedProposer(red=Proposal({"concurrency": 8}))
        vcs = RecordingVCS()
        arena, _ = _arena(arena_root, run, proposer=proposer, vcs=vcs)

        result = await arena.run()

        assert result.reports[0].red_validation.accepted is False
        assert arena_root.attack_profile_path.read_bytes() == before
        assert len(vcs.commits) == 1  # fight summary only
        assert load_history(arena_root.history_path)[0].accepted is False

    @pytest.mark.asyncio
    async def test_draw_asks_both_sides(self, arena_root: ArenaPaths):
        run = ScriptedRun(round_extraction=0.5, trial_extraction=0.5)
        proposer = ScriptedProposer(
            red=Proposal({"warmup": False}),
            blue=Proposal({"features": {"reqs_per_min": {"threshold": 12}}}),
        )
        arena, _ = _arena(arena_root, run, proposer=proposer)

        report = (await arena.run()).reports[0]

        assert report.winner == "draw"
        assert report.red_validation is not None
        assert report.blue_validation is not None
        assert {port for fight, _, port in run.calls if fight == 0} == {4001, 4002}
        assert [e.team for e in load_history(arena_root.history_path)] == ["red", "blue"]

    @pytest.mark.asyncio
    async def test_empty_proposal_is_recorded_without_trial(self, arena_root: ArenaPaths):
        run = ScriptedRun(round_extraction=0.3)
        arena, messages = _arena(
            arena_root, run, proposer=ScriptedProposer(red=Proposal({}, "nothing to do"))
        )

        report = (await arena.run()).reports[0]

        assert report.red_validation is None
        assert all(fight != 0 for fight, _, _ in run.calls)
        entry = load_history(arena_root.history_path)[0]
        assert entry.reason == "no changes"
        assert any("Red: skipped (no changes)" in m for m in messages)

    @pytest.mark.asyncio
    async def test_proposer_failure_does_not_stop_the_round(self, arena_root: ArenaPaths):
        proposer = ScriptedProposer(red_error=RuntimeError("rate limited"))
        arena, messages = _arena(arena_root, ScriptedRun(), proposer=proposer)

        result = await arena.run()

        assert len(result.reports) == 1
        assert result.reports[0].red_proposal is None
        assert any("Red proposal failed: rate limited" in m for m in messages)
        assert proposer.closed is True

    @pytest.mark.asyncio
    async def test_red_failure_keeps_blue_proposal(self, arena_root: ArenaPaths):
        run = ScriptedRun(round_extraction=0.5, trial_extraction=0.5)
        proposer = ScriptedProposer(
            blue=Proposal({"features": {"reqs_per_min": {"threshold": 12}}}),
            red_error=RuntimeError("rate limited"),
        )
        arena, messages = _arena(arena_root, run, proposer=proposer)

        report = (await arena.run()).reports[0]

        assert report.winner == "draw"
        assert report.red_proposal is None
        assert report.blue_proposal is not None
        assert report.blue_validation is not None
        assert any("Red proposal failed: rate limited" in m for m in messages)
        assert any(m.startswith("├─ Blue proposal:") for m in messages)

    @pytest.mark.asyncio
    async def test_history_reaches_the_proposer(self, arena_root: ArenaPaths):
        run = ScriptedRun(round_extraction=0.3, trial_extraction=0.1)
        proposer = ScriptedProposer(red=Proposal({"concurrency": 2}))
        arena, _ = _arena(arena_root, run, rounds=3, proposer=proposer)

        await arena.run()

        assert proposer.histories == [0, 1, 2]

    def test_paths_under_root(self, temp_dir):
        paths = ArenaPaths.under(temp_dir)
        assert paths.policy_path == temp_dir / "configs" / "policy.yml"
        assert paths.state_path == temp_dir / "configs" / "arena-state.json"
        assert paths.summary_path == temp_dir / "reports" / "summary.json"
