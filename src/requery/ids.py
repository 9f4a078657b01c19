"""Query ids: page queries are keyed by page path, static queries by "sq--<hash>"."""

from __future__ import annotations

from typing import Iterable, NamedTuple

STATIC_QUERY_PREFIX = "sq--"


class GroupedQueryIds(NamedTuple):
    static_query_ids: list[str]
    page_query_ids: list[str]


def is_static_query_id(query_id: str) -> bool:
    return query_id[: len(STATIC_QUERY_PREFIX)] == STATIC_QUERY_PREFIX


def group_query_ids(query_ids: Iterable[str]) -> GroupedQueryIds:
    """Split ids into static and page queries, keeping order and duplicates.

    Usage:
        group_query_ids(["sq--abc", "/foo/", "sq--def"])
        # GroupedQueryIds(static_query_ids=["sq--abc", "sq--def"],
        #                 page_query_ids=["/foo/"])
    """
    grouped = GroupedQueryIds([], [])
    for query_id in query_ids:
        if is_static_query_id(query_id):
            grouped.static_query_ids.append(query_id)
        else:
            grouped.page_query_ids.append(query_id)
    return grouped
