"""Scenario definitions built on the topology, runtime and verify layers."""

from spinup.scenarios.query import (
    SCENARIOS,
    query_file_sd_topology,
    query_static_flags_topology,
    run_query_scenario,
)

__all__ = [
    "SCENARIOS",
    "query_file_sd_topology",
    "query_static_flags_topology",
    "run_query_scenario",
]
