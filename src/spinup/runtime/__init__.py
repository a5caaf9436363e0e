"""Process lifecycle: configuration, cancellation and topology supervision."""

from spinup.runtime.config import BinariesConfig, HarnessConfig, load_harness_config
from spinup.runtime.orchestrator import ProcessOrchestrator, RunningTopology, TopologyState
from spinup.runtime.sync import CancelToken, CompletionSignal, ExitOutcome, wait_any

__all__ = [
    "BinariesConfig",
    "CancelToken",
    "CompletionSignal",
    "ExitOutcome",
    "HarnessConfig",
    "ProcessOrchestrator",
    "RunningTopology",
    "TopologyState",
    "load_harness_config",
    "wait_any",
]
