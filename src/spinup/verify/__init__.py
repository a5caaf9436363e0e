"""Polling verification of query results against an expected converged view."""

from spinup.verify.compare import check_warnings, compare, expect_series_count
from spinup.verify.query import QueryResult, Sample, parse_query_response, query_instant
from spinup.verify.retry import retry

__all__ = [
    "QueryResult",
    "Sample",
    "check_warnings",
    "compare",
    "expect_series_count",
    "parse_query_response",
    "query_instant",
    "retry",
]
