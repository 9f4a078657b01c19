"""Store — in-memory site state that announces its own mutations.

Every write goes through a Store method, and every method that changes the
graph emits the matching event on the store's Emitter. get_state() hands out a
snapshot so readers never observe a half-applied write.
"""

from __future__ import annotations

import threading
from typing import Iterable

from requery import events
from requery.state import Component, DependencyIndex, Page, State, StaticQueryComponent
from requery.stream import Emitter


class Store:
    """Pages, components, static queries, nodes and the dependency index."""

    def __init__(self, emitter: Emitter | None = None) -> None:
        self.emitter = emitter if emitter is not None else Emitter()
        self._lock = threading.RLock()
        self._pages: dict[str, Page] = {}
        self._components: dict[str, Component] = {}
        self._static_queries: dict[str, StaticQueryComponent] = {}
        self._nodes: dict[str, dict] = {}
        self._dependencies = DependencyIndex()

    def get_state(self) -> State:
        with self._lock:
            return State(
                pages=dict(self._pages),
                components=dict(self._components),
                static_query_components=dict(self._static_queries),
                component_data_dependencies=self._dependencies.copy(),
                nodes=dict(self._nodes),
            )

    # --- Pages and components ---

    def create_page(self, page: Page) -> None:
        with self._lock:
            self._pages[page.path] = page
        self.emitter.emit(events.CREATE_PAGE, {"path": page.path})

    def delete_page(self, path: str) -> None:
        with self._lock:
            page = self._pages.pop(path, None)
        if page is not None:
            self.emitter.emit(events.DELETE_PAGE, {"path": path})

    def set_component(self, component: Component) -> None:
        with self._lock:
            self._components[component.component_path] = component

    def delete_component(self, component_path: str) -> None:
        with self._lock:
            self._components.pop(component_path, None)

    def set_static_query(self, component: StaticQueryComponent) -> None:
        with self._lock:
            self._static_queries[component.id] = component

    def delete_static_query(self, query_id: str) -> None:
        with self._lock:
            self._static_queries.pop(query_id, None)

    # --- Nodes ---

    def create_node(self, node: dict) -> None:
        with self._lock:
            self._nodes[node["id"]] = node
        self.emitter.emit(events.CREATE_NODE, node)

    def delete_node(self, node: dict) -> None:
        with self._lock:
            self._nodes.pop(node["id"], None)
        self.emitter.emit(events.DELETE_NODE, node)

    def delete_nodes(self, node_ids: Iterable[str]) -> None:
        node_ids = list(node_ids)
        with self._lock:
            for node_id in node_ids:
                self._nodes.pop(node_id, None)
        self.emitter.emit(events.DELETE_NODES, node_ids)

    # --- Dependency index ---

    def create_component_dependency(
        self,
        query_id: str,
        *,
        node_id: str | None = None,
        connection: str | None = None,
    ) -> None:
        """Record that query_id read node_id and/or every node of type `connection`."""
        with self._lock:
            if node_id is not None:
                self._dependencies.nodes.setdefault(node_id, set()).add(query_id)
            if connection is not None:
                self._dependencies.connections.setdefault(connection, set()).add(query_id)

    def delete_components_dependencies(self, query_ids: Iterable[str]) -> None:
        """Forget every recorded edge for the given query ids."""
        doomed = set(query_ids)
        if not doomed:
            return
        with self._lock:
            for index in (self._dependencies.nodes, self._dependencies.connections):
                for key in list(index):
                    index[key] -= doomed
                    if not index[key]:
                        del index[key]
