"""End-to-end topology spin-up and convergence verification for Thanos/Prometheus."""

from spinup.errors import (
    BuildError,
    HardMismatch,
    PrematureExit,
    SpinupError,
    StartupFailure,
    TimeoutExceeded,
    TransientQueryError,
    UnexpectedWarnings,
)

__all__ = [
    "BuildError",
    "HardMismatch",
    "PrematureExit",
    "SpinupError",
    "StartupFailure",
    "TimeoutExceeded",
    "TransientQueryError",
    "UnexpectedWarnings",
]
