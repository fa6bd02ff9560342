"""Tool definition and result types shared with the agent runtime."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any


@dataclass
class ToolResult:
    """Text shown to the model plus structured details for the runtime."""

    text: str
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class ToolDefinition:
    """A tool the agent can call; parameters is a JSON schema object."""

    name: str
    label: str
    description: str
    parameters: dict[str, Any]
    handler: Callable[..., ToolResult]
