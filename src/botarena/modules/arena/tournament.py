"""One full simulation pass: load configs, serve, drive traffic, aggregate."""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

import httpx
import yaml

from botarena.modules.detector import (
    Policy,
    PolicyValidationError,
    policy_from_dict,
    save_policy,
    validate_policy,
)
from botarena.modules.target import DEFAULT_THROTTLE_DELAY, TargetApp
from botarena.modules.traffic import (
    AttackProfile,
    SessionResult,
    TrafficProfile,
    TrafficRunOptions,
    load_profile,
    run_parallel_traffic,
)

from .metrics import calculate_metrics
from .models import RoundMetrics

logger = logging.getLogger(__name__)


class ConfigLoadError(RuntimeError):
    """Raised when a tournament config file is missing or unreadable."""


def load_attack_profile(path: Path) -> AttackProfile:
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError("attack profile must be a JSON object")
        return AttackProfile.from_dict(data)
    except FileNotFoundError as exc:
        raise ConfigLoadError(f"Attack profile not found: {path}") from exc
    except (OSError, ValueError, TypeError, AttributeError) as exc:
        raise ConfigLoadError(f"Could not load attack profile {path}: {exc}") from exc


def save_attack_profile(path: Path, profile: AttackProfile) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(profile.to_dict(), indent=2) + "\n", encoding="utf-8")


def load_policy_document(path: Path) -> Policy:
    """Strict policy loader: a missing or unreadable file is a ConfigLoadError.

    A document that parses but breaks a structural rule (band order, negative
    weight, missing band) raises PolicyValidationError instead.
    """
    try:
        text = path.read_text(encoding="utf-8")
        data = yaml.safe_load(text)
    except FileNotFoundError as exc:
        raise ConfigLoadError(f"Policy not found: {path}") from exc
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigLoadError(f"Could not load policy {path}: {exc}") from exc
    if not isinstance(data, Mapping):
        raise PolicyValidationError(f"Policy {path} is not a mapping")
    return validate_policy(policy_from_dict(data))


def save_policy_document(path: Path, policy: Policy) -> None:
    save_policy(path, policy)


def load_traffic_profiles(paths: Sequence[Path]) -> list[TrafficProfile]:
    profiles = []
    for path in paths:
        try:
            profiles.append(load_profile(path))
        except FileNotFoundError as exc:
            raise ConfigLoadError(f"Traffic profile not found: {path}") from exc
        except (OSError, ValueError, KeyError, TypeError) as exc:
            raise ConfigLoadError(f"Could not load traffic profile {path}: {exc}") from exc
    return profiles


class TrafficRunner(Protocol):
    def __call__(
        self,
        base_url: str,
        profiles: Sequence[TrafficProfile],
        attack_profile: AttackProfile,
        options: TrafficRunOptions | None = None,
        progress: Callable[[str], None] | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> Awaitable[list[SessionResult]]: ...


@dataclass
class TournamentConfig:
    """Inputs of one tournament pass."""

    attack_profile_path: Path
    policy_path: Path
    profile_paths: list[Path] = field(default_factory=list)
    sessions_per_profile: int = 3
    host: str = "127.0.0.1"
    port: int = 3000
    fast: bool = False
    time_scale: float = 1.0
    throttle_delay: float = DEFAULT_THROTTLE_DELAY
    metrics_mode: str = "weighted"
    max_parallel_sessions: int | None = None
    seed: int | None = None
    progress: Callable[[str], None] | None = None

    def traffic_options(self) -> TrafficRunOptions:
        return TrafficRunOptions(
            sessions_per_profile=self.sessions_per_profile,
            fast=self.fast,
            time_scale=self.time_scale,
            max_parallel_sessions=self.max_parallel_sessions,
            seed=self.seed,
        )


@dataclass
class TournamentResult:
    metrics: RoundMetrics
    session_results: list[SessionResult]
    attack_profile: AttackProfile
    policy: Policy


async def run_tournament(
    config: TournamentConfig,
    fight_number: int,
    round_number: int,
    traffic_runner: TrafficRunner | None = None,
) -> TournamentResult:
    """Run one simulation pass and aggregate its metrics.

    Configs are loaded and the policy is validated before anything starts, so
    a broken policy aborts the pass without producing metrics. The target
    service is stopped on every exit path.
    """
    attack_profile = load_attack_profile(config.attack_profile_path)
    policy = load_policy_document(config.policy_path)
    profiles = load_traffic_profiles(config.profile_paths)
    runner = traffic_runner or run_parallel_traffic

    app = TargetApp(
        host=config.host,
        port=config.port,
        policy_path=config.policy_path,
        policy=policy,
        throttle_delay=config.throttle_delay,
    )
    try:
        await app.start()
        async with httpx.AsyncClient(timeout=30.0) as client:
            response = await client.post(f"{app.base_url}/admin/reset")
            response.raise_for_status()
            if config.progress:
                config.progress("Running traffic simulations...")
            session_results = await runner(
                app.base_url,
                profiles,
                attack_profile,
                options=config.traffic_options(),
                progress=config.progress,
                client=client,
            )
    finally:
        await app.stop()

    logger.debug(
        "Tournament F%s-R%s collected %d sessions", fight_number, round_number, len(session_results)
    )
    metrics = calculate_metrics(
        session_results, fight_number, round_number, mode=config.metrics_mode
    )
    return TournamentResult(
        metrics=metrics,
        session_results=list(session_results),
        attack_profile=attack_profile,
        policy=policy,
    )
