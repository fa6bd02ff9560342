"""Configuration loading from environment variables and agentmem.toml."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib
from pathlib import Path

_DEFAULT_GLOBAL_DIR = Path.home() / ".agentmem" / "memory"
_CONFIG_FILENAME = "agentmem.toml"
_SCOPES = ("project", "global")


@dataclass
class MemoryConfig:
    """Memory store configuration."""

    global_dir: Path = _DEFAULT_GLOBAL_DIR
    default_scope: str = "global"
    recent_episodes: int = 10
    context_warn_threshold: int = 6000
    keep_versions: int = 10
    lock_timeout: float = 5.0


@dataclass
class AgentMemConfig:
    """Top-level agentmem configuration."""

    memory: MemoryConfig = field(default_factory=MemoryConfig)
    log_level: str = "INFO"


def load_config(config_path: Path | None = None) -> AgentMemConfig:
    """Load configuration from environment variables and optional agentmem.toml.

    Priority: environment variables > agentmem.toml > defaults.
    """
    file_data: dict = {}
    if config_path and config_path.exists():
        file_data = tomllib.loads(config_path.read_text())
    else:
        # Search current dir and ~/.agentmem/
        for candidate in [
            Path.cwd() / _CONFIG_FILENAME,
            Path.home() / ".agentmem" / _CONFIG_FILENAME,
        ]:
            if candidate.exists():
                file_data = tomllib.loads(candidate.read_text())
                break

    memory_data = file_data.get("memory", {})

    scope = os.getenv("AGENTMEM_SCOPE", memory_data.get("default_scope", "global"))
    if scope not in _SCOPES:
        raise ValueError(f"Invalid memory scope {scope!r}; expected one of {_SCOPES}")

    global_dir = os.getenv("AGENTMEM_MEMORY_DIR", memory_data.get("global_dir"))

    return AgentMemConfig(
        memory=MemoryConfig(
            global_dir=Path(global_dir).expanduser() if global_dir else _DEFAULT_GLOBAL_DIR,
            default_scope=scope,
            recent_episodes=int(memory_data.get("recent_episodes", 10)),
            context_warn_threshold=int(memory_data.get("context_warn_threshold", 6000)),
            keep_versions=int(memory_data.get("keep_versions", 10)),
            lock_timeout=float(
                os.getenv("AGENTMEM_LOCK_TIMEOUT", memory_data.get("lock_timeout", 5.0))
            ),
        ),
        log_level=os.getenv("AGENTMEM_LOG_LEVEL", file_data.get("log_level", "INFO")),
    )
