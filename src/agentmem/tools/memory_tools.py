"""Memory tools exposed to the agent: memory_write, memory_read, memory_update, memory_delete.

Every operation takes an explicit MemoryToolContext, loads only the
collections it needs, and persists before returning.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Union

from agentmem.config import MemoryConfig
from agentmem.memory.display import format_memory
from agentmem.memory.models import (
    CATEGORIES,
    ID_PREFIXES,
    Category,
    Episode,
    Fact,
    MemoryKind,
    MemoryScope,
    MemoryValidationError,
    Procedure,
    Reflection,
)
from agentmem.memory.store import (
    MemoryStore,
    generate_id,
    new_session_id,
    now_iso,
    search_memories,
    today,
)
from agentmem.tools.base import ToolDefinition, ToolResult

logger = logging.getLogger(__name__)

READ_KINDS = ("procedural", "episodic", "semantic", "all")


@dataclass
class MemoryToolContext:
    """Where and on whose behalf memory operations run."""

    cwd: str | Path
    scope: MemoryScope = "global"
    session_id: str = field(default_factory=new_session_id)
    config: MemoryConfig = field(default_factory=MemoryConfig)

    def store(self) -> MemoryStore:
        return MemoryStore.for_scope(self.cwd, self.scope, self.config)


# ── Write inputs (one variant per kind) ───────────────────────


@dataclass
class ProceduralInput:
    name: str
    trigger: str
    steps: list[str]
    tags: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.name or not self.trigger or not self.steps:
            raise MemoryValidationError("procedural memory requires name, trigger, and steps.")


@dataclass
class EpisodicInput:
    summary: str
    details: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    reflection_mistakes: list[str] = field(default_factory=list)
    reflection_lessons: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.summary:
            raise MemoryValidationError("episodic memory requires a summary.")


@dataclass
class SemanticInput:
    category: Category
    text: str
    tags: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.text or not self.category:
            raise MemoryValidationError("semantic memory requires text and category.")
        if self.category not in CATEGORIES:
            raise MemoryValidationError(
                f"unknown category {self.category!r}; expected one of {', '.join(CATEGORIES)}."
            )


WriteInput = Union[ProceduralInput, EpisodicInput, SemanticInput]


def parse_write_input(params: dict[str, Any]) -> WriteInput:
    """Build the input variant for ``params["kind"]`` from a raw tool-call bag."""
    kind = params.get("kind")
    tags = params.get("tags") or []
    if kind == "procedural":
        return ProceduralInput(
            name=params.get("name") or "",
            trigger=params.get("trigger") or "",
            steps=params.get("steps") or [],
            tags=tags,
        )
    if kind == "episodic":
        return EpisodicInput(
            summary=params.get("summary") or "",
            details=params.get("details") or [],
            tags=tags,
            reflection_mistakes=params.get("reflection_mistakes") or [],
            reflection_lessons=params.get("reflection_lessons") or [],
        )
    if kind == "semantic":
        return SemanticInput(
            category=params.get("category") or "",
            text=params.get("text") or "",
            tags=tags,
        )
    raise MemoryValidationError(f"unknown memory kind: {kind!r}.")


# ── memory_write ──────────────────────────────────────────────


def _save_failed(kind: MemoryKind) -> ToolResult:
    return ToolResult(f"Error: could not save {kind} memory store.", {})


def _store_unavailable(store: MemoryStore, e: OSError, details: dict[str, Any]) -> ToolResult:
    logger.error("Memory store %s is unavailable: %s", store.root, e)
    return ToolResult(f"Error: memory store unavailable ({e}).", details)


def _write_procedural(ctx: MemoryToolContext, data: ProceduralInput) -> ToolResult:
    store = ctx.store()
    with store.locked():
        collection = store.load("procedural")
        existing = next((m for m in collection.memories if m.name == data.name), None)
        if existing:
            existing.steps = list(data.steps)
            existing.trigger = data.trigger
            existing.tags = list(dict.fromkeys([*existing.tags, *data.tags]))
            existing.updated = now_iso()
            if not store.save("procedural", collection):
                return _save_failed("procedural")
            logger.info("Updated procedural memory %s (%s)", existing.id, data.name)
            return ToolResult(
                f'Updated procedural memory [{existing.id}] "{data.name}".',
                {"action": "updated", "id": existing.id},
            )

        memory_id = generate_id(ID_PREFIXES["procedural"], collection)
        ts = now_iso()
        collection.memories.append(
            Procedure(
                id=memory_id,
                name=data.name,
                trigger=data.trigger,
                steps=list(data.steps),
                tags=list(data.tags),
                created=ts,
                updated=ts,
                source_session=ctx.session_id,
            )
        )
        if not store.save("procedural", collection):
            return _save_failed("procedural")
    logger.info("Created procedural memory %s (%s)", memory_id, data.name)
    return ToolResult(
        f'Saved procedural memory [{memory_id}] "{data.name}".',
        {"action": "created", "id": memory_id},
    )


def _write_episodic(ctx: MemoryToolContext, data: EpisodicInput) -> ToolResult:
    store = ctx.store()
    with store.locked():
        collection = store.load("episodic")
        memory_id = generate_id(ID_PREFIXES["episodic"], collection)
        reflection = None
        if data.reflection_mistakes or data.reflection_lessons:
            reflection = Reflection(
                mistakes=list(data.reflection_mistakes),
                lessons=list(data.reflection_lessons),
            )
        collection.memories.append(
            Episode(
                id=memory_id,
                summary=data.summary,
                details=list(data.details),
                reflection=reflection,
                tags=list(data.tags),
                date=today(),
                source_session=ctx.session_id,
            )
        )
        if not store.save("episodic", collection):
            return _save_failed("episodic")
    logger.info("Created episodic memory %s", memory_id)
    return ToolResult(
        f'Saved episodic memory [{memory_id}] "{data.summary}".',
        {"action": "created", "id": memory_id},
    )


def _write_semantic(ctx: MemoryToolContext, data: SemanticInput) -> ToolResult:
    store = ctx.store()
    with store.locked():
        collection = store.load("semantic")
        wanted = data.text.lower()
        for m in collection.memories:
            if m.category == data.category and m.text.lower() == wanted:
                return ToolResult(
                    f"This semantic memory already exists [{m.id}].",
                    {"action": "duplicate", "id": m.id},
                )
        memory_id = generate_id(ID_PREFIXES["semantic"], collection)
        collection.memories.append(
            Fact(
                id=memory_id,
                category=data.category,
                text=data.text,
                tags=list(data.tags),
                created=now_iso(),
                source_session=ctx.session_id,
            )
        )
        if not store.save("semantic", collection):
            return _save_failed("semantic")
    logger.info("Created semantic memory %s (%s)", memory_id, data.category)
    return ToolResult(
        f'Saved semantic memory [{memory_id}] ({data.category}): "{data.text}".',
        {"action": "created", "id": memory_id},
    )


def memory_write(ctx: MemoryToolContext, data: WriteInput) -> ToolResult:
    """Save a memory. Procedures with an existing name are updated in place."""
    try:
        if isinstance(data, ProceduralInput):
            return _write_procedural(ctx, data)
        if isinstance(data, EpisodicInput):
            return _write_episodic(ctx, data)
        return _write_semantic(ctx, data)
    except OSError as e:
        return _store_unavailable(ctx.store(), e, {})


# ── memory_read ───────────────────────────────────────────────

_SEARCH_TEXT: dict[str, Callable[[Any], str]] = {
    "procedural": lambda m: f"{m.name} {m.trigger} {' '.join(m.steps)}",
    "episodic": lambda m: f"{m.summary} {' '.join(m.details)}",
    "semantic": lambda m: f"{m.category} {m.text}",
}

_HEADERS = {
    "procedural": "=== Procedural Memories ===",
    "episodic": "=== Episodic Memories ===",
    "semantic": "=== Semantic Memories ===",
}


def _requested_kinds(kind: str | None) -> tuple[MemoryKind, ...]:
    kind = kind or "all"
    if kind == "all":
        return ("procedural", "episodic", "semantic")
    if kind not in READ_KINDS:
        raise MemoryValidationError(f"unknown memory kind: {kind!r}.")
    return (kind,)


def memory_read(
    ctx: MemoryToolContext,
    kind: str | None = None,
    id: str | None = None,
    query: str | None = None,
) -> ToolResult:
    """Read one memory by id, search by query, or list everything of a kind.

    A blank query is treated as no query and lists.
    """
    store = ctx.store()

    if id:
        for k in ("procedural", "episodic", "semantic"):
            found = store.load(k).find(id)
            if found:
                return ToolResult(format_memory(found), {"found": True})
        return ToolResult(f'No memory found with ID "{id}".', {"found": False})

    kinds = _requested_kinds(kind)

    if query and query.strip():
        results: list[str] = []
        for k in kinds:
            matches = search_memories(store.load(k).memories, query, _SEARCH_TEXT[k])
            results.extend(format_memory(m) for m in matches)
        if not results:
            return ToolResult(f'No memories found matching "{query}".', {"count": 0})
        return ToolResult("\n\n".join(results), {"count": len(results)})

    sections: list[str] = []
    count = 0
    for k in kinds:
        memories = store.load(k).memories
        if memories:
            sections.append(_HEADERS[k])
            sections.extend(format_memory(m) for m in memories)
            count += len(memories)
    if not sections:
        return ToolResult("No memories stored yet.", {"count": 0})
    return ToolResult("\n\n".join(sections), {"count": count})


# ── memory_update ─────────────────────────────────────────────


def memory_update(
    ctx: MemoryToolContext,
    id: str,
    text: str | None = None,
    steps: list[str] | None = None,
    trigger: str | None = None,
    tags: list[str] | None = None,
) -> ToolResult:
    """Apply the fields relevant to the record's kind; other fields are ignored."""
    store = ctx.store()
    try:
        with store.locked():
            procedural = store.load("procedural")
            proc = procedural.find(id)
            if proc:
                if steps:
                    proc.steps = list(steps)
                if trigger:
                    proc.trigger = trigger
                if tags is not None:
                    proc.tags = list(tags)
                proc.updated = now_iso()
                return _finish_update(store, "procedural", procedural, id)

            semantic = store.load("semantic")
            fact = semantic.find(id)
            if fact:
                if text:
                    wanted = text.lower()
                    for m in semantic.memories:
                        if m is not fact and m.category == fact.category and m.text.lower() == wanted:
                            return ToolResult(
                                f"This semantic memory already exists [{m.id}].",
                                {"updated": False, "action": "duplicate", "id": m.id},
                            )
                    fact.text = text
                if tags is not None:
                    fact.tags = list(tags)
                return _finish_update(store, "semantic", semantic, id)

            episodic = store.load("episodic")
            episode = episodic.find(id)
            if episode:
                if tags is not None:
                    episode.tags = list(tags)
                return _finish_update(store, "episodic", episodic, id)
    except OSError as e:
        return _store_unavailable(store, e, {"updated": False})

    return ToolResult(f'No memory found with ID "{id}".', {"updated": False})


def _finish_update(store: MemoryStore, kind: MemoryKind, collection, memory_id: str) -> ToolResult:
    if not store.save(kind, collection):
        return ToolResult(f"Error: could not save {kind} memory store.", {"updated": False})
    logger.info("Updated %s memory %s", kind, memory_id)
    return ToolResult(f"Updated {kind} memory [{memory_id}].", {"updated": True})


# ── memory_delete ─────────────────────────────────────────────


def memory_delete(ctx: MemoryToolContext, id: str) -> ToolResult:
    """Remove a memory from whichever collection holds it."""
    store = ctx.store()
    try:
        with store.locked():
            # same lookup order as reading by id
            for kind in ("procedural", "episodic", "semantic"):
                collection = store.load(kind)
                found = collection.find(id)
                if found is None:
                    continue
                collection.memories.remove(found)
                if not store.save(kind, collection):
                    return ToolResult(
                        f"Error: could not save {kind} memory store.", {"deleted": False}
                    )
                logger.info("Deleted %s memory %s", kind, id)
                return ToolResult(f"Deleted memory [{id}] from {kind}.", {"deleted": True})
    except OSError as e:
        return _store_unavailable(store, e, {"deleted": False})
    return ToolResult(f'No memory found with ID "{id}".', {"deleted": False})


# ── Tool registration ─────────────────────────────────────────

_STRING_LIST = {"type": "array", "items": {"type": "string"}}

MEMORY_WRITE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "kind": {"type": "string", "enum": ["procedural", "episodic", "semantic"]},
        "name": {
            "type": "string",
            "description": "Name for procedural memories (e.g., 'deploy-service')",
        },
        "trigger": {
            "type": "string",
            "description": "When to invoke this procedure (e.g., 'user asks to deploy a service')",
        },
        "steps": {**_STRING_LIST, "description": "Steps for procedural memory"},
        "summary": {"type": "string", "description": "Summary for episodic memory"},
        "details": {**_STRING_LIST, "description": "Details for episodic memory"},
        "category": {
            "type": "string",
            "enum": list(CATEGORIES),
            "description": "Category for semantic memory",
        },
        "text": {"type": "string", "description": "Text content for semantic memory"},
        "tags": {**_STRING_LIST, "description": "Tags for searchability"},
        "reflection_mistakes": {
            **_STRING_LIST,
            "description": "Mistakes made (for episodic reflection)",
        },
        "reflection_lessons": {
            **_STRING_LIST,
            "description": "Lessons learned (for episodic reflection)",
        },
    },
    "required": ["kind"],
}

MEMORY_READ_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "kind": {"type": "string", "enum": list(READ_KINDS)},
        "id": {"type": "string", "description": "Specific memory ID to retrieve"},
        "query": {"type": "string", "description": "Search query to find relevant memories"},
    },
}

MEMORY_UPDATE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "id": {"type": "string", "description": "Memory ID to update"},
        "text": {"type": "string", "description": "New text (for semantic memories)"},
        "steps": {**_STRING_LIST, "description": "New steps (for procedural memories)"},
        "trigger": {"type": "string", "description": "New trigger (for procedural memories)"},
        "tags": {**_STRING_LIST, "description": "Replace tags"},
    },
    "required": ["id"],
}

MEMORY_DELETE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "id": {"type": "string", "description": "Memory ID to delete (e.g., 'proc_001', 'sem_003')"},
    },
    "required": ["id"],
}


def get_memory_tools(ctx: MemoryToolContext) -> list[ToolDefinition]:
    """Return the four memory tools bound to ``ctx``.

    Handlers take the raw tool-call parameters as keyword arguments.
    """

    def handle_write(**params: Any) -> ToolResult:
        try:
            data = parse_write_input(params)
        except MemoryValidationError as e:
            return ToolResult(f"Error: {e}", {})
        return memory_write(ctx, data)

    def handle_read(**params: Any) -> ToolResult:
        try:
            return memory_read(ctx, params.get("kind"), params.get("id"), params.get("query"))
        except MemoryValidationError as e:
            return ToolResult(f"Error: {e}", {})

    def handle_update(**params: Any) -> ToolResult:
        return memory_update(
            ctx,
            params["id"],
            text=params.get("text"),
            steps=params.get("steps"),
            trigger=params.get("trigger"),
            tags=params.get("tags"),
        )

    def handle_delete(**params: Any) -> ToolResult:
        return memory_delete(ctx, params["id"])

    return [
        ToolDefinition(
            name="memory_write",
            label="Write Memory",
            description=(
                "Save a memory to the persistent memory system. Use this automatically when: "
                "(1) the user teaches you a multi-step workflow: save as 'procedural', "
                "(2) the user states a preference, rule, or fact: save as 'semantic', "
                "(3) a significant task completes: save as 'episodic'. "
                "Do NOT ask the user for permission to save unless there is a conflict "
                "with an existing memory."
            ),
            parameters=MEMORY_WRITE_SCHEMA,
            handler=handle_write,
        ),
        ToolDefinition(
            name="memory_read",
            label="Read Memory",
            description=(
                "Read memories from the persistent memory system. Use this when you need to "
                "recall past workflows, user preferences, or what happened in previous sessions. "
                "You can read all memories of a kind, a specific memory by ID, or search by query."
            ),
            parameters=MEMORY_READ_SCHEMA,
            handler=handle_read,
        ),
        ToolDefinition(
            name="memory_update",
            label="Update Memory",
            description=(
                "Update an existing memory. Use this when the user confirms a change to a "
                "previously stored preference, procedure step, or fact. Always ask for "
                "confirmation before updating if there is a conflict."
            ),
            parameters=MEMORY_UPDATE_SCHEMA,
            handler=handle_update,
        ),
        ToolDefinition(
            name="memory_delete",
            label="Delete Memory",
            description=(
                "Delete a specific memory by ID. Use this when the user asks to remove a memory "
                "or when a memory is confirmed to be outdated."
            ),
            parameters=MEMORY_DELETE_SCHEMA,
            handler=handle_delete,
        ),
    ]
