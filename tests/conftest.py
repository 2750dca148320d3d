"""Test configuration and fixtures for botarena."""

import json
import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest

from botarena.modules.arena import save_attack_profile, save_policy_document
from botarena.modules.arena.runner import ArenaPaths
from botarena.modules.detector import DEFAULT_POLICY, RequestLog
from botarena.modules.traffic import STARTER_PROFILES, AttackProfile

NOW_MS = 1_700_000_000_000.0


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def arena_root(temp_dir: Path) -> ArenaPaths:
    """Arena directory tree with the starter attack profile, policy and traffic profiles."""
    paths = ArenaPaths.under(temp_dir)
    save_attack_profile(paths.attack_profile_path, AttackProfile())
    save_policy_document(paths.policy_path, DEFAULT_POLICY)
    paths.profiles_dir.mkdir(parents=True)
    for name in ("human", "naive"):
        (paths.profiles_dir / f"{name}.json").write_text(
            json.dumps(STARTER_PROFILES[name].to_dict()), encoding="utf-8"
        )
    return paths


@pytest.fixture
def human_logs() -> list[RequestLog]:
    """A slow, asset-loading session with irregular gaps."""
    gaps = [0, 9_000, 21_000, 26_000, 47_000]
    return [
        RequestLog(
            session_id="human-1",
            timestamp=NOW_MS - 120_000 + offset,
            path="/api/products" if i % 2 else "/api/products/search",
            query={} if i % 2 else {"q": "desk"},
            is_asset_request=False,
        )
        for i, offset in enumerate(gaps)
    ] + [
        RequestLog(
            session_id="human-1",
            timestamp=NOW_MS - 119_000,
            path="/assets/app.js",
            is_asset_request=True,
        )
    ]
