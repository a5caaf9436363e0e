"""Cross-cutting helpers shared by the runtime and verifiers."""

from spinup.core.logging import JsonlLogger, configure_logging

__all__ = ["JsonlLogger", "configure_logging"]
