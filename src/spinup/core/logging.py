from __future__ import annotations

import json
import logging
import threading
import time
from pathlib import Path
from typing import Any


class JsonlLogger:
    """Append-only event journal, one JSON object per line."""

    def __init__(self, path: str | Path | None = None) -> None:
        self._path = Path(path) if path else None
        self._fh = None
        self._lock = threading.Lock()
        if self._path:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._fh = self._path.open("a", encoding="utf-8")

    def log(self, event: str, **kwargs: Any) -> None:
        # Watcher threads log exits concurrently.
        with self._lock:
            if not self._fh:
                return
            row = {"ts": round(time.time(), 6), "event": event, **kwargs}
            self._fh.write(json.dumps(row, sort_keys=True, default=str) + "\n")
            self._fh.flush()

    def close(self) -> None:
        with self._lock:
            if self._fh:
                self._fh.close()
                self._fh = None


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
