"""requery: incremental query invalidation and scheduling for static-site builds."""

from importlib.metadata import version as _version

__version__ = _version("requery")

from requery.state import Page, Component, StaticQueryComponent, DependencyIndex, State
from requery.store import Store
from requery.stream import EventStream, Emitter, Event
from requery.ids import STATIC_QUERY_PREFIX, GroupedQueryIds, group_query_ids, is_static_query_id
from requery.dirty import DirtyTracker
from requery.jobs import QueryJob, create_page_query_job, create_static_query_job
from requery.lazy import LazyValue
from requery.serial import SerialQueue
from requery.workqueue import (
    WorkQueue,
    QueueStats,
    create_build_queue,
    create_develop_queue,
    process_batch,
)
from requery.batch import process_queries
from requery.scheduler import QueryScheduler
from requery.errors import RequeryError, QueryExecutionError
# requery.textual is opt-in; import it explicitly

__all__ = [
    "Page",
    "Component",
    "StaticQueryComponent",
    "DependencyIndex",
    "State",
    "Store",
    "EventStream",
    "Emitter",
    "Event",
    "STATIC_QUERY_PREFIX",
    "GroupedQueryIds",
    "group_query_ids",
    "is_static_query_id",
    "DirtyTracker",
    "QueryJob",
    "create_page_query_job",
    "create_static_query_job",
    "LazyValue",
    "SerialQueue",
    "WorkQueue",
    "QueueStats",
    "create_build_queue",
    "create_develop_queue",
    "process_batch",
    "process_queries",
    "QueryScheduler",
    "RequeryError",
    "QueryExecutionError",
]
