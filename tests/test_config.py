"""Tests for configuration loading."""

import pytest
from pathlib import Path

from agentmem.config import load_config

_ENV_KEYS = ["AGENTMEM_MEMORY_DIR", "AGENTMEM_SCOPE", "AGENTMEM_LOG_LEVEL", "AGENTMEM_LOCK_TIMEOUT"]


@pytest.fixture(autouse=True)
def clean_env(tmp_path: Path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


class TestConfig:
    def test_defaults(self):
        config = load_config()
        assert config.memory.default_scope == "global"
        assert config.memory.recent_episodes == 10
        assert config.memory.keep_versions == 10
        assert config.memory.global_dir.name == "memory"
        assert config.log_level == "INFO"

    def test_env_override(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("AGENTMEM_SCOPE", "project")
        monkeypatch.setenv("AGENTMEM_MEMORY_DIR", str(tmp_path / "mem"))
        monkeypatch.setenv("AGENTMEM_LOCK_TIMEOUT", "1.5")

        config = load_config()
        assert config.memory.default_scope == "project"
        assert config.memory.global_dir == tmp_path / "mem"
        assert config.memory.lock_timeout == 1.5

    def test_toml_file(self, tmp_path: Path):
        toml_path = tmp_path / "agentmem.toml"
        toml_path.write_text("""
log_level = "DEBUG"

[memory]
default_scope = "project"
recent_episodes = 5
keep_versions = 3
""")
        config = load_config(toml_path)
        assert config.memory.default_scope == "project"
        assert config.memory.recent_episodes == 5
        assert config.memory.keep_versions == 3
        assert config.log_level == "DEBUG"

    def test_toml_found_in_cwd(self, tmp_path: Path):
        (tmp_path / "agentmem.toml").write_text('[memory]\nrecent_episodes = 7\n')
        config = load_config()
        assert config.memory.recent_episodes == 7

    def test_env_overrides_toml(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("AGENTMEM_SCOPE", "global")
        toml_path = tmp_path / "agentmem.toml"
        toml_path.write_text('[memory]\ndefault_scope = "project"\n')
        config = load_config(toml_path)
        assert config.memory.default_scope == "global"  # env wins

    def test_invalid_scope_rejected(self, monkeypatch):
        monkeypatch.setenv("AGENTMEM_SCOPE", "team")
        with pytest.raises(ValueError):
            load_config()
