from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Tuple

import httpx

from spinup.errors import TransientQueryError

LabelSet = Dict[str, str]


@dataclass(frozen=True)
class Sample:
    labels: LabelSet
    value: float
    timestamp: float


@dataclass(frozen=True)
class QueryResult:
    series: Tuple[Sample, ...]
    warnings: Tuple[str, ...] = ()

    def __len__(self) -> int:
        return len(self.series)

    def label_sets(self) -> List[LabelSet]:
        return [dict(sample.labels) for sample in self.series]


def format_time(when: float) -> str:
    return f"{float(when):.3f}"


def query_instant(
    client: httpx.Client,
    address: str,
    query: str,
    when: float | None = None,
    *,
    dedup: bool,
    timeout: float | None = None,
) -> QueryResult:
    """Run an instant query against a querier's HTTP API.

    Anything short of a well-formed vector response raises TransientQueryError;
    warnings are returned to the caller untouched."""
    params = {
        "query": query,
        "time": format_time(time.time() if when is None else when),
        "dedup": "true" if dedup else "false",
    }
    url = f"http://{address}/api/v1/query"
    try:
        resp = client.get(url, params=params, timeout=timeout)
        resp.raise_for_status()
        body = resp.json()
    except httpx.HTTPError as exc:
        raise TransientQueryError(f"query {url} failed: {exc}") from exc
    except ValueError as exc:
        raise TransientQueryError(f"query {url} returned non-JSON body: {exc}") from exc
    return parse_query_response(body)


def parse_query_response(body: Any) -> QueryResult:
    if not isinstance(body, Mapping):
        raise TransientQueryError("query response is not an object")
    status = body.get("status")
    if status != "success":
        raise TransientQueryError(
            f"query status {status!r}: {body.get('errorType', '')} {body.get('error', '')}".rstrip()
        )
    data = body.get("data") or {}
    result_type = data.get("resultType")
    if result_type != "vector":
        raise TransientQueryError(f"unexpected result type {result_type!r}, expected 'vector'")

    series: List[Sample] = []
    for item in data.get("result") or []:
        try:
            ts, value = item["value"]
            series.append(
                Sample(
                    labels={str(k): str(v) for k, v in dict(item.get("metric") or {}).items()},
                    value=float(value),
                    timestamp=float(ts),
                )
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise TransientQueryError(f"malformed vector sample {item!r}: {exc}") from exc
    warnings = tuple(str(w) for w in body.get("warnings") or [])
    return QueryResult(series=tuple(series), warnings=warnings)
