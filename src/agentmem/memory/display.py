"""Human-readable rendering of single memory records."""

from __future__ import annotations

from agentmem.memory.models import Episode, Fact, Memory, Procedure


def _bullets(items: list[str]) -> str:
    return "\n".join(f"    - {x}" for x in items)


def format_procedure(m: Procedure) -> str:
    steps = "\n".join(f"  {i}. {s}" for i, s in enumerate(m.steps, start=1))
    return (
        f"[{m.id}] {m.name}\n"
        f"  Trigger: {m.trigger}\n"
        f"  Tags: {', '.join(m.tags)}\n"
        f"  Steps:\n{steps}\n"
        f"  Updated: {m.updated}"
    )


def format_episode(m: Episode) -> str:
    text = f"[{m.id}] {m.summary}\n  Date: {m.date}\n  Tags: {', '.join(m.tags)}"
    if m.details:
        text += f"\n  Details:\n{_bullets(m.details)}"
    if m.reflection:
        if m.reflection.mistakes:
            text += f"\n  Mistakes:\n{_bullets(m.reflection.mistakes)}"
        if m.reflection.lessons:
            text += f"\n  Lessons:\n{_bullets(m.reflection.lessons)}"
    return text


def format_fact(m: Fact) -> str:
    return f"[{m.id}] ({m.category}) {m.text}\n  Tags: {', '.join(m.tags)}\n  Created: {m.created}"


def format_memory(m: Memory) -> str:
    if isinstance(m, Procedure):
        return format_procedure(m)
    if isinstance(m, Episode):
        return format_episode(m)
    return format_fact(m)
