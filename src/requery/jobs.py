"""Query jobs — execution-ready descriptors built from dirty query ids.

Ids whose page or component has disappeared since they were marked dirty are
dropped here: a deletion racing a scheduled rerun is normal, so callers get
fewer jobs than ids and nothing is reported.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from requery.ids import GroupedQueryIds
from requery.state import Page, State

logger = logging.getLogger("requery.jobs")


class QueryJob:
    """One query to run: what to run, for which component, with which variables."""

    __slots__ = ("id", "hash", "query", "component_path", "context", "is_page")

    def __init__(
        self,
        id: str,
        query: str,
        component_path: str,
        context: dict[str, Any],
        *,
        hash: str | None = None,
        is_page: bool = False,
    ) -> None:
        self.id = id
        self.hash = hash
        self.query = query
        self.component_path = component_path
        self.context = context
        self.is_page = is_page

    def as_dict(self) -> dict[str, Any]:
        """Wire form handed to runners that expect plain descriptors."""
        descriptor: dict[str, Any] = {
            "id": self.id,
            "query": self.query,
            "componentPath": self.component_path,
            "context": self.context,
        }
        if self.hash is not None:
            descriptor["hash"] = self.hash
        if self.is_page:
            descriptor["isPage"] = True
        return descriptor

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, QueryJob):
            return NotImplemented
        return self.as_dict() == other.as_dict()

    __hash__ = None  # mutable context; not hashable

    def __repr__(self) -> str:
        kind = "page" if self.is_page else "static"
        return f"QueryJob({self.id!r}, {kind})"


def create_static_query_job(state: State, query_id: str) -> QueryJob:
    component = state.static_query_components[query_id]
    return QueryJob(
        component.hash,
        component.query,
        component.component_path,
        {"path": component.id},
        hash=component.hash,
    )


def create_page_query_job(state: State, page: Page) -> QueryJob:
    component = state.components[page.component_path]
    # Custom context wins over the page's own fields.
    context = {**page.fields(), **page.context}
    return QueryJob(
        page.path,
        component.query,
        page.component_path,
        context,
        is_page=True,
    )


def build_static_query_jobs(state: State, query_ids: Iterable[str]) -> list[QueryJob]:
    jobs = []
    for query_id in query_ids:
        if query_id not in state.static_query_components:
            logger.debug("Skipping static query %s: component is gone", query_id)
            continue
        jobs.append(create_static_query_job(state, query_id))
    return jobs


def build_page_query_jobs(state: State, query_ids: Iterable[str]) -> list[QueryJob]:
    jobs = []
    for query_id in query_ids:
        page = state.pages.get(query_id)
        if page is None or page.component_path not in state.components:
            logger.debug("Skipping page query %s: page or component is gone", query_id)
            continue
        jobs.append(create_page_query_job(state, page))
    return jobs


def build_query_jobs(state: State, grouped: GroupedQueryIds) -> list[QueryJob]:
    """Static query jobs first, then page query jobs."""
    return [
        *build_static_query_jobs(state, grouped.static_query_ids),
        *build_page_query_jobs(state, grouped.page_query_ids),
    ]
