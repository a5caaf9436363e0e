from __future__ import annotations


class SpinupError(Exception):
    """Base class for every failure surfaced to a scenario."""


class BuildError(SpinupError, ValueError):
    """Topology assembly found a duplicate node or a dangling address."""


class StartupFailure(SpinupError, RuntimeError):
    def __init__(self, node: str, cause: str) -> None:
        super().__init__(f"startup failed at {node}: {cause}")
        self.node = node
        self.cause = cause


class PrematureExit(SpinupError, RuntimeError):
    """The topology's completion signal fired while still polling."""


class TransientQueryError(SpinupError):
    """Transport failure or a content check that may still converge."""


class HardMismatch(SpinupError, AssertionError):
    """Result content is wrong; never retried."""


class UnexpectedWarnings(HardMismatch):
    def __init__(self, warnings: list[str] | tuple[str, ...]) -> None:
        super().__init__(f"unexpected warnings {list(warnings)}")
        self.warnings = tuple(warnings)


class TimeoutExceeded(SpinupError, TimeoutError):
    def __init__(self, message: str, last_error: BaseException | None = None) -> None:
        if last_error is not None:
            message = f"{message}; last error: {last_error}"
        super().__init__(message)
        self.last_error = last_error
