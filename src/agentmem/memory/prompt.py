"""Memory context block injected into the agent's outgoing request."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from agentmem.memory.store import MemoryStore

logger = logging.getLogger(__name__)

RECENT_EPISODES = 10
CONTEXT_WARN_THRESHOLD = 6000

EMPTY_MEMORY_PROMPT = """\


<memory_system>
You have a persistent memory system that stores knowledge across sessions.
Currently no memories are stored. Use the memory_write tool to save:
1. Procedural memories when the user guides you through a multi-step workflow.
2. Semantic memories when the user states a preference, rule, correction, or fact.
3. Episodic memories when a significant task completes.
</memory_system>"""

MEMORY_PROMPT_PREAMBLE = """\


<memory_system>
You have a persistent memory system that stores knowledge across sessions.
You MUST use these memories to improve your responses. Do not ask the user
to repeat things they have already taught you.

AUTOMATIC MEMORY CAPTURE RULES:
1. When the user guides you through a multi-step workflow (correcting steps,
   adding steps, reordering), save it as a PROCEDURAL memory using the
   memory_write tool. Extract the general workflow, not the specific instance.
2. When the user states a preference or rule ("always do X", "never do Y",
   "I prefer X"), save it as a SEMANTIC memory immediately.
3. When the user corrects you or you make a mistake, save the lesson as a
   SEMANTIC memory with category "convention".
4. When a significant task completes, save a summary as an EPISODIC memory.
5. If you detect a conflict with an existing memory, ask the user: "You
   previously told me [old]. You are now saying [new]. Should I update this?"
   Only update after confirmation.

TIMESTAMP AWARENESS:
Each user message includes a timestamp. Use these to detect time gaps.
If the user returns after a significant gap (>10 minutes), acknowledge it
naturally if relevant. Do not force it if the gap is not relevant."""

_XML_ESCAPES = str.maketrans(
    {"&": "&amp;", "<": "&lt;", ">": "&gt;", '"': "&quot;", "'": "&apos;"}
)


def escape_xml(text: str) -> str:
    return text.translate(_XML_ESCAPES)


def build_memory_prompt_section(
    store: MemoryStore,
    recent_episodes: int = RECENT_EPISODES,
    warn_threshold: int = CONTEXT_WARN_THRESHOLD,
) -> str:
    """Render all facts, all procedures and the most recent episodes."""
    semantic = store.load("semantic").memories
    procedural = store.load("procedural").memories
    episodic = store.load("episodic").memories

    if not semantic and not procedural and not episodic:
        return EMPTY_MEMORY_PROMPT

    parts: list[str] = [MEMORY_PROMPT_PREAMBLE]

    if semantic:
        parts.append("\n<semantic_memories>")
        for m in semantic:
            parts.append(
                f'  <memory id="{escape_xml(m.id)}" category="{m.category}">'
                f"{escape_xml(m.text)}</memory>"
            )
        parts.append("</semantic_memories>")

    if procedural:
        parts.append("\n<procedural_memories>")
        for m in procedural:
            steps = "; ".join(f"{i}. {s}" for i, s in enumerate(m.steps, start=1))
            parts.append(
                f'  <procedure id="{escape_xml(m.id)}" name="{escape_xml(m.name)}" '
                f'trigger="{escape_xml(m.trigger)}">{escape_xml(steps)}</procedure>'
            )
        parts.append("</procedural_memories>")

    if episodic:
        recent = episodic[-recent_episodes:] if recent_episodes > 0 else []
        parts.append("\n<recent_episodic_memories>")
        for m in recent:
            text = "; ".join(m.details)
            if m.reflection and m.reflection.lessons:
                text += f" | Lessons: {'; '.join(m.reflection.lessons)}"
            parts.append(
                f'  <episode id="{escape_xml(m.id)}" date="{escape_xml(m.date)}" '
                f'summary="{escape_xml(m.summary)}">{escape_xml(text)}</episode>'
            )
        parts.append("</recent_episodic_memories>")

    parts.append("\n</memory_system>")
    context = "\n".join(parts)

    if len(context) > warn_threshold:
        logger.warning("Memory context is %d chars (threshold: %d)", len(context), warn_threshold)
    return context


# ── Status helpers ────────────────────────────────────────────


@dataclass
class MemoryCounts:
    semantic: int
    procedural: int
    episodic: int

    @property
    def total(self) -> int:
        return self.semantic + self.procedural + self.episodic


def memory_counts(store: MemoryStore) -> MemoryCounts:
    return MemoryCounts(
        semantic=len(store.load("semantic").memories),
        procedural=len(store.load("procedural").memories),
        episodic=len(store.load("episodic").memories),
    )


def format_timestamp(ts_ms: int | float) -> str:
    """Render an epoch-milliseconds timestamp, e.g. 'Feb 18, 2026, 14:05:09'."""
    return datetime.fromtimestamp(ts_ms / 1000).strftime("%b %d, %Y, %H:%M:%S")
