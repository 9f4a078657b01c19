"""Dirty-set calculation — which queries must rerun after the graph changed.

A query is dirty when:
- it depends on a node, or on the collection of all nodes of a type, that was
  created or deleted since the last pass;
- it has no recorded dependencies at all and has not been seen before, which
  means it has never run (every query that ran recorded what it read);
- it was recently (re)extracted from source.

Every pass drains the buffers it reads, so callers own the returned ids.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Iterable

from requery.state import State

logger = logging.getLogger("requery.dirty")


def _union(*groups: Iterable[str]) -> list[str]:
    """Ordered union: first occurrence wins."""
    merged: dict[str, None] = {}
    for group in groups:
        merged.update(dict.fromkeys(group))
    return list(merged)


def _node_identity(payload: Any) -> tuple[str, str] | None:
    """(id, type) of a node payload, or None when either is missing."""
    if not isinstance(payload, dict):
        return None
    internal = payload.get("internal")
    node_type = internal.get("type") if isinstance(internal, dict) else None
    node_id = payload.get("id")
    if not node_id or not node_type:
        return None
    return node_id, node_type


class DirtyTracker:
    """Buffers graph mutations and extractions; turns them into dirty query ids.

    One tracker belongs to one scheduler. Event handlers feed it through
    queue_mutation / forget_page / enqueue_extracted; the calc_* methods drain
    it.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._pending_mutations: list[Any] = []
        self._extracted: dict[str, None] = {}
        self._seen_without_dependencies: set[str] = set()

    # --- Intake ---

    def queue_mutation(self, payload: Any) -> None:
        """Buffer a created or deleted node payload for the next pass."""
        with self._lock:
            self._pending_mutations.append(payload)

    def forget_page(self, path: str) -> None:
        """A deleted page that comes back must be treated as untracked again."""
        with self._lock:
            self._seen_without_dependencies.discard(path)

    def enqueue_extracted(self, query_id: str) -> None:
        with self._lock:
            self._extracted[query_id] = None

    # --- Inspection ---

    @property
    def pending_count(self) -> int:
        return len(self._pending_mutations)

    @property
    def extracted_count(self) -> int:
        return len(self._extracted)

    def has_seen_without_dependencies(self, query_id: str) -> bool:
        return query_id in self._seen_without_dependencies

    # --- Draining ---

    def pop_extracted(self) -> list[str]:
        with self._lock:
            extracted = list(self._extracted)
            self._extracted.clear()
            return extracted

    def pop_node_queries(self, state: State) -> list[str]:
        """Queries that read a node (or node type) touched since the last pass."""
        with self._lock:
            mutations = self._pending_mutations
            self._pending_mutations = []

        index = state.component_data_dependencies
        seen_nodes: set[str] = set()
        dirty: dict[str, None] = {}
        for payload in mutations:
            identity = _node_identity(payload)
            if identity is None:
                continue
            node_id, node_type = identity
            if node_id in seen_nodes:
                continue
            seen_nodes.add(node_id)

            for query_id in index.nodes.get(node_id, ()):
                dirty[query_id] = None
            for query_id in index.connections.get(node_type, ()):
                if query_id:
                    dirty[query_id] = None
        return list(dirty)

    def find_ids_without_dependencies(self, state: State) -> list[str]:
        """Live queries with no recorded dependency that we have not reported yet."""
        tracked = state.component_data_dependencies.tracked_ids()
        candidates = _union(
            (page.path for page in state.pages.values()),
            (component.id for component in state.static_query_components.values()),
        )
        with self._lock:
            untracked = [
                query_id
                for query_id in candidates
                if query_id not in tracked
                and query_id not in self._seen_without_dependencies
            ]
            self._seen_without_dependencies.update(untracked)
        return untracked

    def pop_node_and_dep_queries(self, state: State) -> list[str]:
        with self._lock:
            return _union(
                self.pop_node_queries(state),
                self.find_ids_without_dependencies(state),
            )

    def calc_dirty_query_ids(self, state: State) -> list[str]:
        """Node-driven dirty ids plus every extracted id."""
        with self._lock:
            dirty = _union(self.pop_node_and_dep_queries(state), self.pop_extracted())
        logger.debug("Calculated %d dirty queries", len(dirty))
        return dirty

    def calc_initial_dirty_query_ids(self, state: State) -> list[str]:
        """Like calc_dirty_query_ids, but extraction alone does not make a query dirty.

        On bootstrap every query is reported as extracted; running them all
        would rebuild the whole site even when no data changed. Only extracted
        ids that are also node-driven dirty are kept.
        """
        with self._lock:
            node_and_dep = self.pop_node_and_dep_queries(state)
            dirty_set = set(node_and_dep)
            extracted = [q for q in self.pop_extracted() if q in dirty_set]
        dirty = _union(extracted, node_and_dep)
        logger.debug("Calculated %d initial dirty queries", len(dirty))
        return dirty
