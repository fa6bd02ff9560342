"""Tests for episodic compaction."""

from __future__ import annotations

from pathlib import Path

from agentmem.memory.compaction import cluster_episodes, compact_episodes, compact_episodic
from agentmem.memory.models import Collection, Episode, Reflection
from agentmem.memory.store import MemoryStore


def _ep(n: int, tags: list[str], **kwargs) -> Episode:
    return Episode(
        id=f"ep_{n:03d}",
        summary=kwargs.pop("summary", f"episode {n}"),
        tags=tags,
        date=kwargs.pop("date", f"2026-01-{n:02d}"),
        source_session=kwargs.pop("source_session", f"session_{n}"),
        **kwargs,
    )


def _ids(groups: list[list[Episode]]) -> list[list[str]]:
    return [[m.id for m in g] for g in groups]


class TestClusterEpisodes:
    def test_greedy_first_match(self):
        # {a}, {b}, {a,b}: the third joins the first cluster only
        eps = [_ep(1, ["a"]), _ep(2, ["b"]), _ep(3, ["a", "b"])]
        assert _ids(cluster_episodes(eps)) == [["ep_002"], ["ep_001", "ep_003"]]

    def test_bridge_first_joins_everything(self):
        # {a,b} first: both later records match its accumulated key
        eps = [_ep(1, ["a", "b"]), _ep(2, ["a"]), _ep(3, ["b"])]
        assert _ids(cluster_episodes(eps)) == [["ep_001", "ep_002", "ep_003"]]

    def test_cluster_key_grows(self):
        eps = [_ep(1, ["a"]), _ep(2, ["a", "c"]), _ep(3, ["c"])]
        assert _ids(cluster_episodes(eps)) == [["ep_001", "ep_002", "ep_003"]]

    def test_untagged_are_singletons(self):
        eps = [_ep(1, []), _ep(2, []), _ep(3, ["a"])]
        assert _ids(cluster_episodes(eps)) == [["ep_001"], ["ep_002"], ["ep_003"]]

    def test_joined_cluster_moves_to_end(self):
        eps = [_ep(1, ["x"]), _ep(2, ["y"]), _ep(3, ["x"])]
        assert _ids(cluster_episodes(eps)) == [["ep_002"], ["ep_001", "ep_003"]]

    def test_later_match_uses_current_order(self):
        # after ep_003 joins, the {b} cluster comes first and takes ep_004
        eps = [_ep(1, ["a"]), _ep(2, ["b"]), _ep(3, ["a"]), _ep(4, ["a", "b"])]
        assert _ids(cluster_episodes(eps)) == [["ep_001", "ep_003"], ["ep_002", "ep_004"]]


class TestCompactEpisodes:
    def test_single_or_empty_unchanged(self):
        assert compact_episodes([]) == []
        one = [_ep(1, ["a"])]
        assert compact_episodes(one) == one

    def test_merge_fields(self):
        eps = [
            _ep(
                1,
                ["deploy", "infra"],
                summary="deployed api",
                details=["ran migrations", "restarted"],
                reflection=Reflection(mistakes=["skipped tests"], lessons=[]),
            ),
            _ep(2, ["other"], summary="unrelated"),
            _ep(
                3,
                ["infra", "db"],
                summary="fixed db",
                details=["restarted", "vacuumed"],
                reflection=Reflection(mistakes=["skipped tests"], lessons=["run tests"]),
            ),
        ]
        result = compact_episodes(eps)
        assert [m.id for m in result] == ["ep_002", "ep_001"]

        merged = result[1]
        assert merged.summary == "Consolidated: deployed api; fixed db"
        assert merged.details == ["ran migrations", "restarted", "vacuumed"]
        assert merged.tags == ["deploy", "infra", "db"]
        assert merged.reflection == Reflection(mistakes=["skipped tests"], lessons=["run tests"])
        assert merged.date == "2026-01-03"
        assert merged.source_session == "session_3"

        assert result[0] is eps[1]

    def test_no_reflection_when_none_recorded(self):
        result = compact_episodes([_ep(1, ["a"]), _ep(2, ["a"])])
        assert len(result) == 1
        assert result[0].reflection is None

    def test_output_follows_cluster_order(self):
        eps = [_ep(1, ["x"]), _ep(2, ["y"]), _ep(3, ["x"]), _ep(4, ["z"])]
        assert [m.id for m in compact_episodes(eps)] == ["ep_002", "ep_001", "ep_004"]


class TestCompactEpisodic:
    def test_compacts_and_persists(self, tmp_path: Path):
        store = MemoryStore(tmp_path / "memory")
        store.save(
            "episodic",
            Collection(memories=[_ep(1, ["a"]), _ep(2, ["b"]), _ep(3, ["a"])]),
        )
        assert compact_episodic(store) == (3, 2)
        assert [m.id for m in store.load("episodic").memories] == ["ep_002", "ep_001"]

    def test_nothing_to_merge_leaves_file(self, tmp_path: Path):
        store = MemoryStore(tmp_path / "memory")
        store.save("episodic", Collection(memories=[_ep(1, ["a"]), _ep(2, ["b"])]))
        before = store.path_for("episodic").read_bytes()
        assert compact_episodic(store) == (2, 2)
        assert store.path_for("episodic").read_bytes() == before

    def test_corrupt_store_not_overwritten(self, tmp_path: Path):
        store = MemoryStore(tmp_path / "memory")
        store.root.mkdir(parents=True)
        store.path_for("episodic").write_text("{oops")
        assert compact_episodic(store) == (0, 0)
        assert store.path_for("episodic").read_text() == "{oops"
