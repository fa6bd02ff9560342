"""Tests for record display and prompt context assembly."""

from __future__ import annotations

import logging
from datetime import datetime

import pytest
from pathlib import Path

from agentmem.memory.display import (
    format_episode,
    format_fact,
    format_memory,
    format_procedure,
)
from agentmem.memory.models import Collection, Episode, Fact, Procedure, Reflection
from agentmem.memory.prompt import (
    EMPTY_MEMORY_PROMPT,
    build_memory_prompt_section,
    escape_xml,
    format_timestamp,
    memory_counts,
)
from agentmem.memory.store import MemoryStore


@pytest.fixture
def store(tmp_path: Path) -> MemoryStore:
    return MemoryStore(tmp_path / "memory")


PROC = Procedure(
    id="proc_001",
    name="deploy",
    trigger="user asks to deploy",
    steps=["build image", "push image"],
    tags=["infra", "docker"],
    created="2026-01-01T00:00:00.000Z",
    updated="2026-01-02T00:00:00.000Z",
)


class TestDisplay:
    def test_procedure(self):
        text = format_procedure(PROC)
        assert text == (
            "[proc_001] deploy\n"
            "  Trigger: user asks to deploy\n"
            "  Tags: infra, docker\n"
            "  Steps:\n"
            "  1. build image\n"
            "  2. push image\n"
            "  Updated: 2026-01-02T00:00:00.000Z"
        )

    def test_episode_minimal(self):
        ep = Episode(id="ep_001", summary="shipped", tags=["release"], date="2026-01-03")
        assert format_episode(ep) == "[ep_001] shipped\n  Date: 2026-01-03\n  Tags: release"

    def test_episode_full(self):
        ep = Episode(
            id="ep_002",
            summary="fixed CI",
            details=["pinned node"],
            reflection=Reflection(mistakes=["no lockfile"], lessons=["pin versions"]),
            date="2026-01-04",
        )
        text = format_episode(ep)
        assert "  Details:\n    - pinned node" in text
        assert "  Mistakes:\n    - no lockfile" in text
        assert "  Lessons:\n    - pin versions" in text

    def test_episode_empty_reflection_lists_hidden(self):
        ep = Episode(id="ep_003", summary="s", reflection=Reflection(lessons=["only lesson"]))
        text = format_episode(ep)
        assert "Mistakes" not in text
        assert "only lesson" in text

    def test_fact(self):
        fact = Fact(id="sem_001", category="preference", text="use tabs", tags=["style"],
                    created="2026-01-01T00:00:00.000Z")
        assert format_fact(fact) == (
            "[sem_001] (preference) use tabs\n  Tags: style\n  Created: 2026-01-01T00:00:00.000Z"
        )

    def test_format_memory_dispatch(self):
        fact = Fact(id="sem_001", category="fact", text="x")
        assert format_memory(PROC) == format_procedure(PROC)
        assert format_memory(fact) == format_fact(fact)


class TestEscapeXml:
    def test_all_reserved_characters(self):
        assert escape_xml("""a & b < c > d " e ' f""") == (
            "a &amp; b &lt; c &gt; d &quot; e &apos; f"
        )

    def test_ampersand_not_double_escaped(self):
        assert escape_xml("&lt;") == "&amp;lt;"


class TestBuildMemoryPromptSection:
    def test_empty_store(self, store: MemoryStore):
        text = build_memory_prompt_section(store)
        assert text == EMPTY_MEMORY_PROMPT
        assert "Currently no memories are stored" in text
        assert "<semantic_memories>" not in text

    def test_sections_and_escaping(self, store: MemoryStore):
        store.save("semantic", Collection(memories=[
            Fact(id="sem_001", category="convention", text='prefer "<tabs>" & spaces'),
        ]))
        store.save("procedural", Collection(memories=[PROC]))
        store.save("episodic", Collection(memories=[
            Episode(
                id="ep_001",
                summary="Tom's release",
                details=["built", "pushed"],
                reflection=Reflection(lessons=["tag first"]),
                date="2026-01-05",
            ),
        ]))

        text = build_memory_prompt_section(store)
        assert text.startswith("\n\n<memory_system>")
        assert text.endswith("</memory_system>")
        assert "Should I update this?" in text
        assert "TIMESTAMP AWARENESS" in text
        assert (
            '<memory id="sem_001" category="convention">'
            "prefer &quot;&lt;tabs&gt;&quot; &amp; spaces</memory>"
        ) in text
        assert (
            '<procedure id="proc_001" name="deploy" trigger="user asks to deploy">'
            "1. build image; 2. push image</procedure>"
        ) in text
        assert (
            '<episode id="ep_001" date="2026-01-05" summary="Tom&apos;s release">'
            "built; pushed | Lessons: tag first</episode>"
        ) in text
        assert text.index("<semantic_memories>") < text.index("<procedural_memories>")
        assert text.index("<procedural_memories>") < text.index("<recent_episodic_memories>")

    def test_only_present_sections(self, store: MemoryStore):
        store.save("semantic", Collection(memories=[Fact(id="sem_001", category="fact", text="x")]))
        text = build_memory_prompt_section(store)
        assert "<semantic_memories>" in text
        assert "<procedural_memories>" not in text
        assert "<recent_episodic_memories>" not in text

    def test_only_last_ten_episodes(self, store: MemoryStore):
        episodes = [Episode(id=f"ep_{i:03d}", summary=f"e{i}") for i in range(1, 13)]
        store.save("episodic", Collection(memories=episodes))
        text = build_memory_prompt_section(store)
        assert 'id="ep_001"' not in text
        assert 'id="ep_002"' not in text
        assert 'id="ep_003"' in text
        assert 'id="ep_012"' in text
        assert text.index('id="ep_003"') < text.index('id="ep_012"')

    def test_recent_episodes_configurable(self, store: MemoryStore):
        episodes = [Episode(id=f"ep_{i:03d}", summary=f"e{i}") for i in range(1, 6)]
        store.save("episodic", Collection(memories=episodes))
        text = build_memory_prompt_section(store, recent_episodes=2)
        assert 'id="ep_003"' not in text
        assert 'id="ep_004"' in text

    def test_warn_threshold(self, store: MemoryStore, caplog):
        store.save("semantic", Collection(memories=[
            Fact(id="sem_001", category="fact", text="x" * 200),
        ]))
        with caplog.at_level(logging.WARNING):
            build_memory_prompt_section(store, warn_threshold=100)
        assert "threshold" in caplog.text


class TestStatusHelpers:
    def test_memory_counts(self, store: MemoryStore):
        store.save("semantic", Collection(memories=[Fact(id="sem_001", category="fact", text="x")]))
        store.save("procedural", Collection(memories=[PROC]))
        counts = memory_counts(store)
        assert (counts.semantic, counts.procedural, counts.episodic) == (1, 1, 0)
        assert counts.total == 2

    def test_format_timestamp(self):
        ts = datetime(2026, 2, 18, 14, 5, 9).timestamp() * 1000
        assert format_timestamp(ts) == "Feb 18, 2026, 14:05:09"
