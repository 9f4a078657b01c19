"""Plain records describing the site graph as the scheduler sees it.

These are read-only snapshots: the scheduler never mutates a State, it only
reads pages, components and the dependency index from one.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Page:
    path: str
    component_path: str
    context: dict[str, Any] = field(default_factory=dict)
    match_path: str | None = None

    def fields(self) -> dict[str, Any]:
        """The page's own fields as a mapping (its custom context included)."""
        return {
            "path": self.path,
            "component_path": self.component_path,
            "context": dict(self.context),
            "match_path": self.match_path,
        }


@dataclass(frozen=True)
class Component:
    component_path: str
    query: str = ""


@dataclass(frozen=True)
class StaticQueryComponent:
    """A component-level query. `id` carries the reserved "sq--" prefix."""

    id: str
    hash: str
    query: str
    component_path: str


@dataclass
class DependencyIndex:
    """Which queries read which data.

    nodes:       node id   -> query ids that read that node
    connections: node type -> query ids that read all nodes of that type
    """

    nodes: dict[str, set[str]] = field(default_factory=dict)
    connections: dict[str, set[str]] = field(default_factory=dict)

    def tracked_ids(self) -> set[str]:
        """Every query id that appears anywhere in the index."""
        tracked: set[str] = set()
        for ids in self.nodes.values():
            tracked.update(ids)
        for ids in self.connections.values():
            tracked.update(ids)
        return tracked

    def copy(self) -> DependencyIndex:
        return DependencyIndex(
            nodes={k: set(v) for k, v in self.nodes.items()},
            connections={k: set(v) for k, v in self.connections.items()},
        )


@dataclass
class State:
    pages: dict[str, Page] = field(default_factory=dict)
    components: dict[str, Component] = field(default_factory=dict)
    static_query_components: dict[str, StaticQueryComponent] = field(default_factory=dict)
    component_data_dependencies: DependencyIndex = field(default_factory=DependencyIndex)
    nodes: dict[str, dict] = field(default_factory=dict)
