"""JSON-backed storage for one memory scope.

Each kind lives in its own file under the scope root::

    R/procedural.json   {"memories": [Procedure, ...]}
    R/episodic.json     {"memories": [Episode, ...]}
    R/semantic.json     {"memories": [Fact, ...]}
    R/.versions/        previous file versions, corrupt files
    R/.lock             advisory lock for read-modify-write cycles

A missing file is an empty collection. A corrupt file is also loaded as an
empty collection, but it is logged, copied aside and flagged on the result.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import time
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import TypeVar

try:
    import fcntl  # Unix only
except ImportError:  # pragma: no cover
    fcntl = None

from agentmem.config import MemoryConfig
from agentmem.memory.models import (
    RECORD_TYPES,
    Collection,
    MemoryKind,
    MemoryScope,
)
from agentmem.memory.scope import memory_dir

logger = logging.getLogger(__name__)

STORE_FILES: dict[str, str] = {
    "procedural": "procedural.json",
    "episodic": "episodic.json",
    "semantic": "semantic.json",
}

LOCK_FILE = ".lock"
VERSIONS_DIR = ".versions"

T = TypeVar("T")


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def today() -> str:
    return datetime.now(timezone.utc).date().isoformat()


def new_session_id() -> str:
    return f"session_{int(time.time() * 1000)}"


class MemoryStore:
    """Load/save the three typed collections of one scope root."""

    def __init__(self, root: Path, keep_versions: int = 10, lock_timeout: float = 5.0) -> None:
        self.root = root
        self.keep_versions = keep_versions
        self.lock_timeout = lock_timeout

    @classmethod
    def for_scope(cls, cwd: str | Path, scope: MemoryScope, config: MemoryConfig) -> MemoryStore:
        return cls(
            memory_dir(cwd, scope, config),
            keep_versions=config.keep_versions,
            lock_timeout=config.lock_timeout,
        )

    def path_for(self, kind: MemoryKind) -> Path:
        return self.root / STORE_FILES[kind]

    # ── Load / save ───────────────────────────────────────────

    def load(self, kind: MemoryKind) -> Collection:
        """Load a collection. Never raises on missing or corrupt files."""
        path = self.path_for(kind)
        if not path.exists():
            return Collection()
        record_type = RECORD_TYPES[kind]
        try:
            raw = path.read_bytes()
            data = json.loads(raw.decode("utf-8"))
            if not isinstance(data, dict) or not isinstance(data.get("memories"), list):
                raise ValueError("expected an object with a 'memories' list")
            memories = [record_type.from_dict(m) for m in data["memories"]]
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning(
                "Memory store %s is unreadable, treating as empty (%s). "
                "Its contents will be lost on the next write.",
                path,
                e,
            )
            self._preserve_corrupt(path, kind)
            return Collection(corrupt=True)
        return Collection(memories=memories)

    def save(self, kind: MemoryKind, collection: Collection) -> bool:
        """Replace the whole file for ``kind``. Returns False on I/O failure."""
        path = self.path_for(kind)
        payload = json.dumps(collection.to_dict(), indent=2, ensure_ascii=False)
        tmp_path: Path | None = None
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            self._backup(path, kind)
            with tempfile.NamedTemporaryFile(
                mode="w",
                encoding="utf-8",
                delete=False,
                dir=str(self.root),
                prefix=path.name + ".tmp.",
            ) as f:
                tmp_path = Path(f.name)
                f.write(payload)
            os.replace(tmp_path, path)
        except OSError as e:
            logger.error("Failed to save memory store %s: %s", path, e)
            if tmp_path is not None:
                tmp_path.unlink(missing_ok=True)
            return False
        return True

    # ── Versions ──────────────────────────────────────────────

    def _backup(self, path: Path, kind: MemoryKind) -> None:
        """Copy the current file to .versions/, keep at most keep_versions per kind."""
        if self.keep_versions <= 0 or not path.exists():
            return
        versions_dir = self.root / VERSIONS_DIR
        versions_dir.mkdir(exist_ok=True)
        ts = datetime.now().strftime("%Y%m%dT%H%M%S%f")
        (versions_dir / f"{kind}-{ts}.json").write_bytes(path.read_bytes())
        old = sorted(versions_dir.glob(f"{kind}-*.json"))
        for f in old[: -self.keep_versions]:
            f.unlink()

    def _preserve_corrupt(self, path: Path, kind: MemoryKind) -> None:
        try:
            content = path.read_bytes()
            versions_dir = self.root / VERSIONS_DIR
            versions_dir.mkdir(exist_ok=True)
            for existing in versions_dir.glob(f"{kind}.corrupt-*.json"):
                if existing.read_bytes() == content:
                    return
            ts = datetime.now().strftime("%Y%m%dT%H%M%S%f")
            target = versions_dir / f"{kind}.corrupt-{ts}.json"
            target.write_bytes(content)
            logger.warning("Copied unreadable memory store to %s", target)
        except OSError as e:
            logger.error("Could not preserve corrupt memory store %s: %s", path, e)

    def cleanup_old_versions(self, keep: int = 50) -> int:
        """Keep only the most recent `keep` version files."""
        versions_dir = self.root / VERSIONS_DIR
        if not versions_dir.is_dir():
            return 0
        versions = sorted(
            versions_dir.glob("*.json"),
            key=lambda p: p.stat().st_mtime,
            reverse=True,
        )
        removed = 0
        for path in versions[keep:]:
            path.unlink()
            removed += 1
        return removed

    # ── Locking ───────────────────────────────────────────────

    @contextmanager
    def locked(self) -> Iterator[None]:
        """Hold the advisory lock on this root for a read-modify-write cycle.

        Serializes processes on one machine only. No-op where fcntl is missing.
        """
        if fcntl is None:  # pragma: no cover
            yield
            return
        self.root.mkdir(parents=True, exist_ok=True)
        lock_path = self.root / LOCK_FILE
        fd = os.open(str(lock_path), os.O_CREAT | os.O_RDWR, 0o600)
        start = time.monotonic()
        try:
            while True:
                try:
                    fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
                    break
                except BlockingIOError:
                    if time.monotonic() - start >= self.lock_timeout:
                        raise TimeoutError(f"Memory store is busy (lock: {lock_path})")
                    time.sleep(0.05)
            yield
        finally:
            try:
                fcntl.flock(fd, fcntl.LOCK_UN)
            finally:
                os.close(fd)


# ── Identifiers ───────────────────────────────────────────────


def generate_id(prefix: str, collection: Collection) -> str:
    """Next ``<prefix>_NNN`` id: max numeric suffix under prefix, plus one."""
    highest = 0
    marker = f"{prefix}_"
    for m in collection.memories:
        if not m.id.startswith(marker):
            continue
        suffix = m.id[len(marker) :]
        if suffix.isascii() and suffix.isdigit():
            highest = max(highest, int(suffix))
    return f"{prefix}_{highest + 1:03d}"


# ── Search ────────────────────────────────────────────────────


def search_memories(
    memories: Sequence[T],
    query: str,
    get_text: Callable[[T], str],
) -> list[T]:
    """Records whose text + tags contain every whitespace-separated query token.

    A blank query has no tokens and therefore matches every record.
    """
    words = query.lower().split()
    results = []
    for m in memories:
        tag_text = " ".join(m.tags).lower()
        combined = f"{get_text(m).lower()} {tag_text}"
        if all(w in combined for w in words):
            results.append(m)
    return results
