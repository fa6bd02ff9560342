"""Scope resolution: per-project override file, then the configured default."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from agentmem.config import MemoryConfig
from agentmem.memory.models import MemoryScope

logger = logging.getLogger(__name__)

OVERRIDE_FILENAME = ".agentmem.json"
PROJECT_MEMORY_DIR = Path(".agentmem") / "memory"


def read_override(cwd: str | Path) -> dict | None:
    """Read ``<cwd>/.agentmem.json``. Returns None if absent or unparseable."""
    path = Path(cwd) / OVERRIDE_FILENAME
    if not path.exists():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.debug("Ignoring unreadable override file %s: %s", path, e)
        return None
    return data if isinstance(data, dict) else None


def resolve_scope(cwd: str | Path, default: MemoryScope) -> MemoryScope:
    """Effective scope for a working directory.

    Priority: override file ``memory.scope`` > ``default``.
    """
    override = read_override(cwd)
    if override:
        memory = override.get("memory")
        scope = memory.get("scope") if isinstance(memory, dict) else None
        if scope in ("project", "global"):
            return scope
        if scope is not None:
            logger.debug("Ignoring invalid scope %r in %s", scope, OVERRIDE_FILENAME)
    return default


def global_memory_dir(config: MemoryConfig) -> Path:
    return config.global_dir


def project_memory_dir(cwd: str | Path) -> Path:
    return Path(cwd) / PROJECT_MEMORY_DIR


def memory_dir(cwd: str | Path, scope: MemoryScope, config: MemoryConfig) -> Path:
    """Map a scope to its storage root."""
    if scope == "global":
        return global_memory_dir(config)
    return project_memory_dir(cwd)
