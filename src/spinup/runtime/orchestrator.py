from __future__ import annotations

import logging
import os
import shutil
import signal
import subprocess
import tempfile
import threading
import time
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import IO, Dict, List, Mapping

from spinup.core.logging import JsonlLogger
from spinup.errors import StartupFailure
from spinup.model.topology import NodeSpec, TopologySpec
from spinup.runtime.config import HarnessConfig
from spinup.runtime.sync import (
    CANCELLED,
    EXITED,
    CancelToken,
    CompletionSignal,
    ExitOutcome,
    wait_any,
)
from spinup.utils.io import ensure_dir

EVENTS_FILE = "events.jsonl"


class TopologyState(str, Enum):
    PENDING = "pending"
    STARTING = "starting"
    RUNNING = "running"
    EXITED = "exited"
    CANCELLED = "cancelled"
    STARTUP_FAILED = "startup_failed"


def expand_command(command: tuple[str, ...], placeholders: Mapping[str, str]) -> List[str]:
    out: List[str] = []
    for arg in command:
        for key, value in placeholders.items():
            arg = arg.replace("{" + key + "}", value)
        out.append(arg)
    return out


class RunningTopology:
    """Handle on a started topology.

    Callers observe ``done`` and may call ``cancel``/``stop``; everything else is
    owned by the supervisor thread."""

    def __init__(
        self,
        spec: TopologySpec,
        token: CancelToken,
        workdir: Path,
        config: HarnessConfig,
        *,
        owns_workdir: bool,
        logger: logging.Logger,
    ) -> None:
        self.spec = spec
        self.workdir = workdir
        self.done = CompletionSignal()
        self._cfg = config
        self._token = token
        self._owns_workdir = owns_workdir
        self._log = logger
        self._journal = JsonlLogger(workdir / EVENTS_FILE)
        self._procs: Dict[str, subprocess.Popen] = {}
        self._log_files: List[IO[bytes]] = []
        self._watchers: Dict[str, threading.Thread] = {}
        self._supervisor: threading.Thread | None = None
        self._finished = threading.Event()
        self._state_lock = threading.Lock()
        self._stop_lock = threading.Lock()
        self._cleaned = False
        self._state = TopologyState.PENDING

    @property
    def state(self) -> TopologyState:
        return self._state

    @property
    def processes(self) -> Mapping[str, subprocess.Popen]:
        return MappingProxyType(dict(self._procs))

    @property
    def events_path(self) -> Path:
        return self.workdir / EVENTS_FILE

    def cancel(self) -> None:
        self._token.cancel()

    def wait(self, timeout: float | None = None) -> bool:
        """Wait until every process has been reaped."""
        return self._finished.wait(timeout)

    def stop(self, timeout: float | None = None) -> bool:
        """Cancel, reap all processes and release the workdir. Idempotent.

        Returns False when ``timeout`` elapsed before every process was reaped;
        cleanup is then left for a later call."""
        self.cancel()
        if self._supervisor is not None:
            self._supervisor.join(timeout)
        with self._stop_lock:
            if self._cleaned:
                return True
            if not self._finished.is_set():
                self._log.warning(
                    "teardown of %s still running after %ss; processes may be alive",
                    self.workdir,
                    timeout,
                )
                return False
            self._cleaned = True
            self._journal.close()
            if self._owns_workdir and not self._cfg.keep_workdir:
                shutil.rmtree(self.workdir, ignore_errors=True)
            return True

    def __enter__(self) -> "RunningTopology":
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()

    def _set_state(self, state: TopologyState) -> None:
        with self._state_lock:
            prev = self._state
            self._state = state
        self._journal.log("state", previous=prev.value, state=state.value)
        self._log.info("topology %s -> %s (%s)", prev.value, state.value, self.workdir)

    def _launch(self, node: NodeSpec, binaries: Mapping[str, str]) -> None:
        if self._token.done():
            raise StartupFailure(node.name, f"start aborted: {self._token.reason()}")
        node_dir = self.workdir / node.name
        try:
            ensure_dir(node_dir)
            if node.config_text:
                (node_dir / node.config_name).write_text(node.config_text, encoding="utf-8")
            for file_name, text in node.files.items():
                (node_dir / file_name).write_text(text, encoding="utf-8")
        except OSError as exc:
            raise StartupFailure(node.name, f"cannot write config: {exc}") from exc

        argv = expand_command(
            node.command,
            {**binaries, "dir": str(node_dir), "root": str(self.workdir)},
        )
        if not argv:
            raise StartupFailure(node.name, "empty command")
        try:
            log_fh = (node_dir / f"{node.name}.log").open("ab")
        except OSError as exc:
            raise StartupFailure(node.name, f"cannot open log file: {exc}") from exc
        self._log_files.append(log_fh)
        try:
            proc = subprocess.Popen(
                argv,
                stdout=log_fh,
                stderr=subprocess.STDOUT,
                stdin=subprocess.DEVNULL,
                cwd=str(node_dir),
                start_new_session=True,
            )
        except (OSError, ValueError) as exc:
            raise StartupFailure(node.name, f"cannot launch {argv[0]}: {exc}") from exc
        self._procs[node.name] = proc
        self._journal.log("launch", node=node.name, pid=proc.pid, argv=argv)
        self._log.info("launched %s pid=%s: %s", node.name, proc.pid, " ".join(argv))

    def _check_startup(self, window_s: float) -> None:
        if window_s > 0:
            time.sleep(window_s)
        for name, proc in self._procs.items():
            rc = proc.poll()
            if rc is not None:
                raise StartupFailure(name, f"exited immediately with returncode {rc}")

    def _abort_startup(self) -> None:
        self._terminate_all(list(self._procs.items()))
        self._close_logs()
        self._set_state(TopologyState.STARTUP_FAILED)
        self._finished.set()
        self.stop()

    def _begin_supervision(self) -> None:
        for name, proc in self._procs.items():
            watcher = threading.Thread(
                target=self._watch,
                args=(name, proc),
                name=f"spinup-watch-{name}",
                daemon=True,
            )
            self._watchers[name] = watcher
            watcher.start()
        self._set_state(TopologyState.RUNNING)
        self._supervisor = threading.Thread(
            target=self._supervise, name="spinup-supervisor", daemon=True
        )
        self._supervisor.start()

    def _watch(self, name: str, proc: subprocess.Popen) -> None:
        rc = proc.wait()
        self._journal.log("exit", node=name, pid=proc.pid, returncode=rc)
        reason = CANCELLED if self._token.done() else EXITED
        if self.done.fire(ExitOutcome(reason=reason, node=name, returncode=rc)):
            log = self._log.info if reason == CANCELLED else self._log.warning
            log("%s exited with returncode %s; tearing down topology", name, rc)

    def _supervise(self) -> None:
        try:
            wait_any(None, self._token, self.done)
            if self._token.done():
                self.done.fire(ExitOutcome(reason=CANCELLED))
            self._terminate_all(list(self._procs.items()))
            for watcher in self._watchers.values():
                watcher.join()
        finally:
            self._close_logs()
            outcome = self.done.outcome
            if outcome is not None and outcome.reason == EXITED:
                self._set_state(TopologyState.EXITED)
            else:
                self._set_state(TopologyState.CANCELLED)
            self._journal.log("done", outcome=outcome.describe() if outcome else "")
            self._finished.set()

    def _terminate_all(self, procs: List[tuple[str, subprocess.Popen]]) -> None:
        alive = [(name, proc) for name, proc in procs if proc.poll() is None]
        for name, proc in alive:
            self._signal(name, proc, signal.SIGTERM)
        deadline = time.monotonic() + max(0.0, self._cfg.grace_period_s)
        for name, proc in alive:
            try:
                proc.wait(timeout=max(0.0, deadline - time.monotonic()))
            except subprocess.TimeoutExpired:
                self._log.warning(
                    "%s did not stop within %.1fs; killing", name, self._cfg.grace_period_s
                )
                self._signal(name, proc, signal.SIGKILL)
                proc.wait()

    def _signal(self, name: str, proc: subprocess.Popen, signum: int) -> None:
        self._journal.log("signal", node=name, pid=proc.pid, signal=int(signum))
        try:
            os.killpg(proc.pid, signum)
        except ProcessLookupError:
            return
        except OSError as exc:
            self._log.debug("killpg %s failed for %s (%s); signalling pid", signum, name, exc)
            try:
                proc.send_signal(signum)
            except ProcessLookupError:
                return

    def _close_logs(self) -> None:
        for fh in self._log_files:
            fh.close()
        self._log_files = []


class ProcessOrchestrator:
    def __init__(self, config: HarnessConfig | None = None, logger: logging.Logger | None = None) -> None:
        self._cfg = config or HarnessConfig()
        self._log = logger or logging.getLogger("spinup.orchestrator")

    def start(
        self,
        spec: TopologySpec,
        token: CancelToken,
        *,
        workdir: str | Path | None = None,
    ) -> RunningTopology:
        """Launch every node in order and supervise them as one unit.

        Raises StartupFailure, with every already-launched process reaped, when
        any node fails to launch."""
        if workdir is not None:
            root = ensure_dir(Path(workdir))
            owns = False
        else:
            parent = ensure_dir(self._cfg.workdir) if self._cfg.workdir else None
            root = Path(tempfile.mkdtemp(prefix="spinup-", dir=parent))
            owns = True

        running = RunningTopology(
            spec,
            token.child(),
            root,
            self._cfg,
            owns_workdir=owns,
            logger=self._log,
        )
        running._set_state(TopologyState.STARTING)
        binaries = self._cfg.binaries.as_placeholders()
        try:
            for node in spec:
                running._launch(node, binaries)
            running._check_startup(self._cfg.startup_check_s)
        except StartupFailure as exc:
            self._log.error("%s; terminating %d launched process(es)", exc, len(running.processes))
            running._abort_startup()
            raise
        running._begin_supervision()
        return running
