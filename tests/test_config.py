"""Tests for configuration management."""

from pathlib import Path

import pytest

from botarena import config

ARENA_KEYS = (
    "BOTARENA_LLM_API_KEY",
    "ANTHROPIC_API_KEY",
    "BOTARENA_LLM_MODEL",
    "BOTARENA_LLM_BASE_URL",
    "BOTARENA_BASE_PORT",
    "BOTARENA_SESSIONS_PER_PROFILE",
    "BOTARENA_ROUNDS",
    "BOTARENA_FPR_THRESHOLD",
    "BOTARENA_VERBOSE",
)


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch, temp_dir: Path) -> Path:
    """No arena variables in the environment and an empty home directory."""
    for key in ARENA_KEYS:
        monkeypatch.delenv(key, raising=False)
    home = temp_dir / "home"
    home.mkdir()
    monkeypatch.setattr(Path, "home", lambda: home)
    return home


class TestLoadEnvFile:
    """Tests for load_env_file."""

    def test_load_env_file_missing_returns_empty(self, temp_dir: Path) -> None:
        assert config.load_env_file(temp_dir / ".env") == {}

    def test_load_env_file_parses_and_strips(self, temp_dir: Path) -> None:
        env_path = temp_dir / ".env"
        env_path.write_text("# comment\n\nBOTARENA_ROUNDS=\"7\"\nBOTARENA_LLM_MODEL='m'\n")
        assert config.load_env_file(env_path) == {
            "BOTARENA_ROUNDS": "7",
            "BOTARENA_LLM_MODEL": "m",
        }

    def test_project_config_without_dir(self) -> None:
        assert config.load_project_config(None) == {}


class TestLoadGlobalConfig:
    """Tests for load_global_config."""

    def test_missing_returns_empty(self, clean_env: Path) -> None:
        assert config.load_global_config() == {}

    def test_loads_yml(self, clean_env: Path) -> None:
        path = clean_env / ".botarena" / "config.yml"
        path.parent.mkdir()
        path.write_text("BOTARENA_ROUNDS: 9\n")
        assert config.global_config_path() == path
        assert config.load_global_config() == {"BOTARENA_ROUNDS": 9}

    def test_non_mapping_is_empty(self, clean_env: Path) -> None:
        path = clean_env / ".botarena" / "config.yml"
        path.parent.mkdir()
        path.write_text("- a\n- b\n")
        assert config.load_global_config() == {}


class TestGetConfig:
    """Priority: environment, then <config_dir>/.env, then global file, then default."""

    def test_default(self, clean_env: Path) -> None:
        assert config.get_config("BOTARENA_ROUNDS", default="x") == "x"

    def test_priority_order(
        self, clean_env: Path, temp_dir: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        global_path = clean_env / ".botarena" / "config.yml"
        global_path.parent.mkdir()
        global_path.write_text("BOTARENA_ROUNDS: 2\n")
        assert config.get_rounds(temp_dir) == 2

        (temp_dir / ".env").write_text("BOTARENA_ROUNDS=4\n")
        assert config.get_rounds(temp_dir) == 4

        monkeypatch.setenv("BOTARENA_ROUNDS", "6")
        assert config.get_rounds(temp_dir) == 6

    def test_defaults(self, clean_env: Path) -> None:
        assert config.get_base_port() == config.DEFAULT_BASE_PORT
        assert config.get_sessions_per_profile() == 3
        assert config.get_rounds() == 5
        assert config.get_fpr_threshold() == pytest.approx(0.05)
        assert config.get_llm_model() == config.DEFAULT_LLM_MODEL
        assert config.get_llm_base_url() is None
        assert config.get_llm_api_key() is None

    def test_invalid_number_falls_back(
        self, clean_env: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("BOTARENA_BASE_PORT", "not-a-port")
        assert config.get_base_port() == 3000

    def test_api_key_fallback(self, clean_env: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ANTHROPIC_API_KEY", "fallback")
        assert config.get_llm_api_key() == "fallback"
        monkeypatch.setenv("BOTARENA_LLM_API_KEY", "primary")
        assert config.get_llm_api_key() == "primary"

    @pytest.mark.parametrize(
        ("value", "expected"), [("1", True), ("yes", True), ("0", False), ("", False)]
    )
    def test_is_verbose(
        self, clean_env: Path, monkeypatch: pytest.MonkeyPatch, value: str, expected: bool
    ) -> None:
        monkeypatch.setenv("BOTARENA_VERBOSE", value)
        assert config.is_verbose() is expected
