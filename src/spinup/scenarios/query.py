"""Query federation scenarios.

Three Prometheus replicas (two sharing the ``prom-ha`` external labels) sit
behind sidecars, and a fourth Prometheus forwards a node exporter via remote
write to a receiver. Two queriers fan out to all stores; the scenarios differ
only in how the queriers discover those stores.
"""

from __future__ import annotations

import logging
import time
from typing import Dict, List

import httpx

from spinup.model.configs import default_prom_config, default_prom_remote_write_config
from spinup.model.nodes import (
    exporter,
    querier_with_file_sd,
    querier_with_store_flags,
    receiver,
    scraper,
    sidecar,
)
from spinup.model.ports import (
    node_exporter_http,
    prom_http,
    prom_http_port,
    query_http,
    receive_grpc,
    receive_remote_write,
    remote_write_endpoint,
    sidecar_grpc,
)
from spinup.model.topology import TopologyBuilder, TopologySpec
from spinup.runtime.config import HarnessConfig
from spinup.runtime.orchestrator import ProcessOrchestrator
from spinup.runtime.sync import CancelToken, CompletionSignal
from spinup.verify.compare import check_warnings, compare, expect_series_count
from spinup.verify.query import QueryResult, query_instant
from spinup.verify.retry import retry

REPLICA_LABEL = "replica"
FIRST_PROM_NAME = f"prom-{prom_http_port(1)}"
STORES = (sidecar_grpc(1), sidecar_grpc(2), sidecar_grpc(3), receive_grpc(1))


def _prefix() -> TopologyBuilder:
    target = prom_http(1)
    return (
        TopologyBuilder()
        .add(scraper(1, default_prom_config(FIRST_PROM_NAME, 0, target), [target]))
        .add(scraper(2, default_prom_config("prom-ha", 0, target), [target]))
        .add(scraper(3, default_prom_config("prom-ha", 1, target), [target]))
        .add(sidecar(1), sidecar(2), sidecar(3))
        .add(exporter(1))
        .add(receiver(1, {"receive": "true", REPLICA_LABEL: "1"}))
        .add(
            scraper(
                4,
                default_prom_remote_write_config(node_exporter_http(1), remote_write_endpoint(1)),
                [node_exporter_http(1), receive_remote_write(1)],
            )
        )
    )


QUERY_PREFIX = _prefix()


def query_static_flags_topology() -> TopologySpec:
    return (
        QUERY_PREFIX.add(querier_with_store_flags(1, REPLICA_LABEL, *STORES))
        .add(querier_with_store_flags(2, REPLICA_LABEL, *STORES))
        .build()
    )


def query_file_sd_topology() -> TopologySpec:
    return (
        QUERY_PREFIX.add(querier_with_file_sd(1, REPLICA_LABEL, *STORES))
        .add(querier_with_file_sd(2, REPLICA_LABEL, *STORES))
        .build()
    )


SCENARIOS = {
    "staticFlag": query_static_flags_topology,
    "fileSD": query_file_sd_topology,
}


def expected_up_series(dedup: bool) -> List[Dict[str, str]]:
    """``up`` label sets in the querier's sort order."""
    prom_target = prom_http(1)
    rows = [
        {
            "__name__": "up",
            "instance": prom_target,
            "job": "prometheus",
            "prometheus": FIRST_PROM_NAME,
            REPLICA_LABEL: "0",
        },
        {
            "__name__": "up",
            "instance": prom_target,
            "job": "prometheus",
            "prometheus": "prom-ha",
            REPLICA_LABEL: "0",
        },
        {
            "__name__": "up",
            "instance": prom_target,
            "job": "prometheus",
            "prometheus": "prom-ha",
            REPLICA_LABEL: "1",
        },
        {
            "__name__": "up",
            "instance": node_exporter_http(1),
            "job": "node",
            "receive": "true",
            REPLICA_LABEL: "1",
        },
    ]
    if not dedup:
        return rows
    merged: List[Dict[str, str]] = []
    for row in rows:
        stripped = {k: v for k, v in row.items() if k != REPLICA_LABEL}
        if stripped not in merged:
            merged.append(stripped)
    return merged


def poll_until_count(
    client: httpx.Client,
    address: str,
    *,
    dedup: bool,
    expected: int,
    token: CancelToken,
    done: CompletionSignal,
    config: HarnessConfig,
    logger: logging.Logger,
) -> QueryResult:
    """Retry the ``up`` query until it has ``expected`` series; warnings abort."""
    holder: Dict[str, QueryResult] = {}

    def probe() -> bool:
        res = query_instant(
            client, address, "up", time.time(), dedup=dedup, timeout=config.query_timeout_s
        )
        check_warnings(res)
        expect_series_count(res, expected)
        holder["result"] = res
        return True

    retry(config.poll_interval_s, token, done, probe, logger=logger)
    return holder["result"]


def run_query_scenario(
    name: str,
    topology: TopologySpec,
    config: HarnessConfig | None = None,
) -> None:
    """Start ``topology`` and check merged and deduplicated ``up`` results.

    Raises the first SpinupError encountered; the topology is always torn down."""
    cfg = config or HarnessConfig()
    log = logging.getLogger(f"spinup.scenario.{name}")
    token = CancelToken.with_timeout(cfg.scenario_timeout_s)
    running = ProcessOrchestrator(cfg).start(topology, token)
    address = query_http(1)
    try:
        with httpx.Client() as client:
            res = poll_until_count(
                client, address, dedup=False, expected=4,
                token=token, done=running.done, config=cfg, logger=log,
            )
            compare(expected_up_series(dedup=False), res)

            res = poll_until_count(
                client, address, dedup=True, expected=3,
                token=token, done=running.done, config=cfg, logger=log,
            )
            compare(expected_up_series(dedup=True), res)

            # Unchanged data must read back identically.
            again = poll_until_count(
                client, address, dedup=True, expected=3,
                token=token, done=running.done, config=cfg, logger=log,
            )
            compare(res.label_sets(), again)
        log.info("scenario %s passed", name)
    finally:
        token.cancel()
        running.stop()
