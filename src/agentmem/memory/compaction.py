"""Episodic compaction: merge episodes that share tags into one record."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from agentmem.memory.models import Collection, Episode, Reflection

if TYPE_CHECKING:
    from agentmem.memory.store import MemoryStore

logger = logging.getLogger(__name__)

CONSOLIDATED_PREFIX = "Consolidated: "


@dataclass
class _Cluster:
    tags: set[str] = field(default_factory=set)
    members: list[Episode] = field(default_factory=list)


def _unique(items: Iterable[str]) -> list[str]:
    """Deduplicate, keeping first-seen order."""
    return list(dict.fromkeys(items))


def cluster_episodes(episodes: list[Episode]) -> list[list[Episode]]:
    """Greedy single-pass clustering by shared tags.

    Each episode joins the first cluster whose accumulated tag set intersects
    its own tags; that cluster's tag set grows to the union and the cluster
    moves to the end of the order. Matching and output both follow that order.
    Untagged episodes always form their own cluster.
    """
    clusters: list[_Cluster] = []
    for ep in episodes:
        tags = set(ep.tags)
        index = None
        if tags:
            for i, cluster in enumerate(clusters):
                if cluster.tags & tags:
                    index = i
                    break
        if index is None:
            clusters.append(_Cluster(tags=tags, members=[ep]))
        else:
            target = clusters.pop(index)
            target.members.append(ep)
            target.tags |= tags
            clusters.append(target)
    return [c.members for c in clusters]


def merge_episodes(group: list[Episode]) -> Episode:
    """Synthesize one episode: id of the first member, date/session of the last."""
    first, last = group[0], group[-1]
    mistakes = _unique(x for m in group if m.reflection for x in m.reflection.mistakes)
    lessons = _unique(x for m in group if m.reflection for x in m.reflection.lessons)
    return Episode(
        id=first.id,
        summary=CONSOLIDATED_PREFIX + "; ".join(m.summary for m in group),
        details=_unique(d for m in group for d in m.details),
        reflection=Reflection(mistakes=mistakes, lessons=lessons)
        if mistakes or lessons
        else None,
        tags=_unique(t for m in group for t in m.tags),
        date=last.date,
        source_session=last.source_session,
    )


def compact_episodes(episodes: list[Episode]) -> list[Episode]:
    """Merge tag-connected episodes. Output follows final cluster order."""
    if len(episodes) <= 1:
        return list(episodes)
    compacted: list[Episode] = []
    for group in cluster_episodes(episodes):
        if len(group) == 1:
            compacted.append(group[0])
        else:
            compacted.append(merge_episodes(group))
    return compacted


def compact_episodic(store: MemoryStore) -> tuple[int, int]:
    """Compact the episodic collection in place. Returns (before, after) counts."""
    with store.locked():
        collection = store.load("episodic")
        before = len(collection.memories)
        if collection.corrupt:
            logger.warning("Skipping compaction of unreadable episodic store in %s", store.root)
            return before, before
        compacted = compact_episodes(collection.memories)
        after = len(compacted)
        if after < before:
            if not store.save("episodic", Collection(memories=compacted)):
                return before, before
            logger.info("Compacted episodic memories: %d -> %d", before, after)
    return before, after
