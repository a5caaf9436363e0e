from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Mapping

from spinup.utils.io import load_yaml

ENV_PREFIX = "SPINUP_"


@dataclass(frozen=True)
class BinariesConfig:
    prometheus: str = "prometheus"
    thanos: str = "thanos"
    node_exporter: str = "node_exporter"

    def as_placeholders(self) -> Dict[str, str]:
        return {
            "prometheus": self.prometheus,
            "thanos": self.thanos,
            "node_exporter": self.node_exporter,
        }


@dataclass(frozen=True)
class HarnessConfig:
    binaries: BinariesConfig = field(default_factory=BinariesConfig)
    workdir: Path | None = None
    keep_workdir: bool = False
    grace_period_s: float = 10.0
    startup_check_s: float = 0.2
    poll_interval_s: float = 1.0
    scenario_timeout_s: float = 180.0
    query_timeout_s: float = 5.0
    log_level: str = "INFO"


def load_harness_config(
    path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
) -> HarnessConfig:
    raw: Dict[str, Any] = dict(load_yaml(path)) if path else {}
    env = os.environ if env is None else env

    bins_raw = dict(raw.get("binaries", {}) or {})
    binaries = BinariesConfig(
        prometheus=str(env.get(f"{ENV_PREFIX}PROMETHEUS_BIN", bins_raw.get("prometheus", "prometheus"))),
        thanos=str(env.get(f"{ENV_PREFIX}THANOS_BIN", bins_raw.get("thanos", "thanos"))),
        node_exporter=str(
            env.get(f"{ENV_PREFIX}NODE_EXPORTER_BIN", bins_raw.get("node_exporter", "node_exporter"))
        ),
    )

    workdir_value = env.get(f"{ENV_PREFIX}WORKDIR", raw.get("workdir"))
    cfg = HarnessConfig(
        binaries=binaries,
        workdir=Path(str(workdir_value)).expanduser() if workdir_value else None,
        keep_workdir=_parse_bool(env.get(f"{ENV_PREFIX}KEEP_WORKDIR", raw.get("keep_workdir", False))),
        grace_period_s=float(raw.get("grace_period_s", 10.0)),
        startup_check_s=float(raw.get("startup_check_s", 0.2)),
        poll_interval_s=float(raw.get("poll_interval_s", 1.0)),
        scenario_timeout_s=float(raw.get("scenario_timeout_s", 180.0)),
        query_timeout_s=float(raw.get("query_timeout_s", 5.0)),
        log_level=str(raw.get("log_level", "INFO")).upper(),
    )

    timeout_env = env.get(f"{ENV_PREFIX}SCENARIO_TIMEOUT_S")
    if timeout_env:
        cfg = replace(cfg, scenario_timeout_s=float(timeout_env))
    level_env = env.get(f"{ENV_PREFIX}LOG_LEVEL")
    if level_env:
        cfg = replace(cfg, log_level=level_env.strip().upper())

    if cfg.grace_period_s < 0 or cfg.poll_interval_s <= 0 or cfg.scenario_timeout_s <= 0:
        raise ValueError("grace_period_s must be >= 0; poll_interval_s and scenario_timeout_s > 0")
    return cfg


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}
