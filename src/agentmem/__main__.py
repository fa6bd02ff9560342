"""Entry point: python -m agentmem [status|context|list|compact|cleanup]

- status:   Memory counts for the current directory's scope
- context:  Print the memory block injected into the agent prompt
- list:     List stored memories (optionally one kind)
- compact:  Merge tag-connected episodic memories
- cleanup:  Trim the .versions/ directory
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from agentmem.config import AgentMemConfig, load_config
from agentmem.memory.compaction import compact_episodic
from agentmem.memory.models import MemoryValidationError
from agentmem.memory.prompt import build_memory_prompt_section, memory_counts
from agentmem.memory.scope import resolve_scope
from agentmem.memory.store import MemoryStore
from agentmem.tools.memory_tools import MemoryToolContext, memory_read

USAGE = """\
Usage: python -m agentmem [status|context|list [kind]|compact|cleanup]
  status   Memory counts for the current scope (default)
  context  Print the prompt memory block
  list     List memories (kind: procedural, episodic, semantic, all)
  compact  Merge episodic memories that share tags
  cleanup  Remove old version backups"""


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _context(config: AgentMemConfig) -> MemoryToolContext:
    cwd = Path.cwd()
    scope = resolve_scope(cwd, config.memory.default_scope)
    return MemoryToolContext(cwd=cwd, scope=scope, config=config.memory)


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    cmd = args[0] if args else "status"

    config = load_config()
    _setup_logging(config.log_level)
    ctx = _context(config)
    store: MemoryStore = ctx.store()

    if cmd == "status":
        counts = memory_counts(store)
        print(f"Scope: {ctx.scope} ({store.root})")
        print(
            f"  semantic: {counts.semantic}  procedural: {counts.procedural}  "
            f"episodic: {counts.episodic}  total: {counts.total}"
        )
    elif cmd == "context":
        print(
            build_memory_prompt_section(
                store,
                recent_episodes=config.memory.recent_episodes,
                warn_threshold=config.memory.context_warn_threshold,
            ).lstrip("\n")
        )
    elif cmd == "list":
        kind = args[1] if len(args) > 1 else None
        try:
            print(memory_read(ctx, kind=kind).text)
        except MemoryValidationError as e:
            print(f"Error: {e}")
            return 1
    elif cmd == "compact":
        before, after = compact_episodic(store)
        print(f"Episodic memories: {before} -> {after}")
    elif cmd == "cleanup":
        removed = store.cleanup_old_versions()
        print(f"Removed {removed} old version file(s)")
    else:
        print(USAGE)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
