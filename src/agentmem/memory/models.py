"""Record types for the three memory kinds and their JSON interchange shape.

On disk every collection is ``{"memories": [...]}``. Record keys follow the
interchange format (``sourceSession`` is camelCase); attributes are snake_case.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, Literal, TypeVar, Union

MemoryKind = Literal["procedural", "episodic", "semantic"]
MemoryScope = Literal["project", "global"]
Category = Literal["preference", "architecture", "convention", "fact"]

CATEGORIES: tuple[Category, ...] = ("preference", "architecture", "convention", "fact")

ID_PREFIXES: dict[str, str] = {
    "procedural": "proc",
    "episodic": "ep",
    "semantic": "sem",
}


class MemoryValidationError(ValueError):
    """Raised when a record is missing a field its kind requires."""


def _str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        raise TypeError(f"expected a list of strings, got {type(value).__name__}")
    for v in value:
        if not isinstance(v, str):
            raise TypeError(f"expected a list of strings, got an item of type {type(v).__name__}")
    return list(value)


@dataclass
class Procedure:
    """A reusable multi-step workflow."""

    id: str
    name: str
    trigger: str
    steps: list[str]
    tags: list[str] = field(default_factory=list)
    created: str = ""
    updated: str = ""
    source_session: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "trigger": self.trigger,
            "steps": list(self.steps),
            "tags": list(self.tags),
            "created": self.created,
            "updated": self.updated,
            "sourceSession": self.source_session,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Procedure:
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            trigger=str(data.get("trigger", "")),
            steps=_str_list(data.get("steps", [])),
            tags=_str_list(data.get("tags", [])),
            created=str(data.get("created", "")),
            updated=str(data.get("updated", "")),
            source_session=str(data.get("sourceSession", "")),
        )


@dataclass
class Reflection:
    mistakes: list[str] = field(default_factory=list)
    lessons: list[str] = field(default_factory=list)


@dataclass
class Episode:
    """Summary of a completed task or session."""

    id: str
    summary: str
    details: list[str] = field(default_factory=list)
    reflection: Reflection | None = None
    tags: list[str] = field(default_factory=list)
    date: str = ""
    source_session: str = ""

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "summary": self.summary,
            "details": list(self.details),
        }
        if self.reflection is not None:
            data["reflection"] = {
                "mistakes": list(self.reflection.mistakes),
                "lessons": list(self.reflection.lessons),
            }
        data["tags"] = list(self.tags)
        data["date"] = self.date
        data["sourceSession"] = self.source_session
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Episode:
        raw = data.get("reflection")
        reflection = None
        if isinstance(raw, dict):
            reflection = Reflection(
                mistakes=_str_list(raw.get("mistakes", [])),
                lessons=_str_list(raw.get("lessons", [])),
            )
        return cls(
            id=str(data["id"]),
            summary=str(data["summary"]),
            details=_str_list(data.get("details", [])),
            reflection=reflection,
            tags=_str_list(data.get("tags", [])),
            date=str(data.get("date", "")),
            source_session=str(data.get("sourceSession", "")),
        )


@dataclass
class Fact:
    """A semantic memory: preference, architecture note, convention or fact."""

    id: str
    category: Category
    text: str
    tags: list[str] = field(default_factory=list)
    created: str = ""
    source_session: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "category": self.category,
            "text": self.text,
            "tags": list(self.tags),
            "created": self.created,
            "sourceSession": self.source_session,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Fact:
        category = data.get("category")
        if category not in CATEGORIES:
            raise ValueError(f"unknown category {category!r}")
        return cls(
            id=str(data["id"]),
            category=category,
            text=str(data["text"]),
            tags=_str_list(data.get("tags", [])),
            created=str(data.get("created", "")),
            source_session=str(data.get("sourceSession", "")),
        )


Memory = Union[Procedure, Episode, Fact]
M = TypeVar("M", Procedure, Episode, Fact)

RECORD_TYPES: dict[str, type] = {
    "procedural": Procedure,
    "episodic": Episode,
    "semantic": Fact,
}


@dataclass
class Collection(Generic[M]):
    """All records of one kind within one scope, in insertion order.

    ``corrupt`` is set when the backing file existed but could not be parsed;
    it is never written to disk.
    """

    memories: list[M] = field(default_factory=list)
    corrupt: bool = field(default=False, compare=False)

    def find(self, memory_id: str) -> M | None:
        for m in self.memories:
            if m.id == memory_id:
                return m
        return None

    def to_dict(self) -> dict[str, Any]:
        return {"memories": [m.to_dict() for m in self.memories]}
