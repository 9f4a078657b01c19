"""Exceptions raised by requery."""

from __future__ import annotations


class RequeryError(Exception):
    """Base class for requery errors."""


class QueryExecutionError(RequeryError):
    """A query job failed after the work queue gave up on it.

    The runner's own exception is chained as __cause__.
    """

    def __init__(self, job_id: str, message: str | None = None) -> None:
        super().__init__(message or f"Query {job_id!r} failed")
        self.job_id = job_id
