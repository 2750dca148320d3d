"""Run every traffic profile's sessions against the target service in parallel."""

from __future__ import annotations

import asyncio
import json
import logging
import random
from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace
from pathlib import Path

import httpx

from .models import AttackProfile, Distribution, SessionResult, TrafficProfile
from .sessions import BotRunner, HumanSimulator

logger = logging.getLogger(__name__)

FAST_DWELL_MEAN = 500
FAST_DWELL_STD = 100
FAST_CLICK_MEAN = 100
FAST_CLICK_STD = 30
FAST_PAGES_MEAN = 3
FAST_PAGES_STD = 1


def load_profile(path: Path) -> TrafficProfile:
    """Read a traffic profile document (JSON)."""
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Traffic profile {path} must be a JSON object")
    return TrafficProfile.from_dict(data)


def find_profiles(profiles_dir: Path) -> list[Path]:
    """Return the traffic profile files in a directory, sorted by name."""
    if not profiles_dir.is_dir():
        return []
    return sorted(p for p in profiles_dir.glob("*.json") if p.is_file())


def _compress(dist: Distribution, mean_cap: float, std_cap: float) -> Distribution:
    return Distribution(mean=min(dist.mean, mean_cap), std_dev=min(dist.std_dev, std_cap))


def apply_fast_mode(profile: TrafficProfile) -> TrafficProfile:
    """Shorten dwell, click delay and session length for quick rounds."""
    return replace(
        profile,
        dwell_time_ms=_compress(profile.dwell_time_ms, FAST_DWELL_MEAN, FAST_DWELL_STD),
        click_delay=_compress(profile.click_delay, FAST_CLICK_MEAN, FAST_CLICK_STD),
        pages_per_session=_compress(profile.pages_per_session, FAST_PAGES_MEAN, FAST_PAGES_STD),
    )


@dataclass
class TrafficRunOptions:
    """Knobs for one parallel traffic run."""

    sessions_per_profile: int = 3
    fast: bool = False
    time_scale: float = 1.0
    max_parallel_sessions: int | None = None
    request_timeout: float = 30.0
    seed: int | None = None


async def run_parallel_traffic(
    base_url: str,
    profiles: Sequence[TrafficProfile],
    attack_profile: AttackProfile,
    options: TrafficRunOptions | None = None,
    progress: Callable[[str], None] | None = None,
    client: httpx.AsyncClient | None = None,
) -> list[SessionResult]:
    """Run ``sessions_per_profile`` sessions for every profile and wait for all of them.

    Human profiles drive a HumanSimulator, bot profiles a BotRunner configured
    by ``attack_profile``. At most ``max_parallel_sessions`` sessions (default:
    the attack profile's concurrency) are in flight at once. Results are only
    returned once every session has finished.
    """
    options = options or TrafficRunOptions()
    if options.fast:
        profiles = [apply_fast_mode(p) for p in profiles]
    rng = random.Random(options.seed)
    limit = max(1, options.max_parallel_sessions or attack_profile.concurrency)
    semaphore = asyncio.Semaphore(limit)
    total = len(profiles) * options.sessions_per_profile
    completed = 0

    owns_client = client is None
    http = client or httpx.AsyncClient(timeout=options.request_timeout)

    async def run_one(profile: TrafficProfile) -> SessionResult:
        nonlocal completed
        session_rng = random.Random(rng.random())
        async with semaphore:
            if profile.is_bot:
                actor: HumanSimulator | BotRunner = BotRunner(
                    http,
                    base_url,
                    profile,
                    attack_profile,
                    time_scale=options.time_scale,
                    rng=session_rng,
                )
            else:
                actor = HumanSimulator(
                    http, base_url, profile, time_scale=options.time_scale, rng=session_rng
                )
            result = await actor.run()
        completed += 1
        logger.debug(
            "%s session %s finished: %d/%d pages extracted",
            profile.name,
            result.session_id,
            result.pages_extracted,
            result.pages_requested,
        )
        if progress:
            progress(f"  [{completed}/{total}] {profile.name} session complete")
        return result

    tasks = [
        asyncio.create_task(run_one(profile))
        for profile in profiles
        for _ in range(options.sessions_per_profile)
    ]
    try:
        return list(await asyncio.gather(*tasks))
    except Exception:
        # one failed session voids the whole run; stop the rest before re-raising
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
    finally:
        if owns_client:
            await http.aclose()
