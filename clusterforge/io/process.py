"""Process spawning and console capture for node binaries.

``SubprocessLauncher`` starts the node with its output piped through a
reader thread.  The most recent lines are kept on the handle; every line is
forwarded to the ``clusterforge.node.<name>`` logger until the node reports
it has started (and afterwards too, when asked to keep echoing).
"""

from __future__ import annotations

import logging
import os
import re
import subprocess
import threading
import time
from collections import deque
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Protocol, runtime_checkable

from clusterforge.errors import ProcessStartError

logger = logging.getLogger(__name__)

# "[2019-09-10T10:00:00,000][INFO ][o.e.n.Node] [node-1] started"
STARTED_RE = re.compile(r"\]\s+started\s*$|\"message\":\s*\"started\"")

# Console lines kept per handle; older lines are only in the node logger
DEFAULT_MAX_LINES = 1000


@runtime_checkable
class ProcessHandle(Protocol):
    """A running node process."""

    @property
    def pid(self) -> int | None:
        ...

    def lines(self) -> list[str]:
        """Most recent console lines, oldest first."""
        ...

    def wait_for_started(self, timeout: float) -> bool:
        """Block until the started line appears; ``False`` on timeout or exit."""
        ...

    def is_running(self) -> bool:
        ...


@runtime_checkable
class ProcessLauncher(Protocol):
    """Starts, runs and stops node binaries."""

    def start(
        self,
        binary: Path,
        args: Sequence[str],
        env: Mapping[str, str],
        *,
        name: str,
        echo_after_started: bool = False,
    ) -> ProcessHandle:
        ...

    def run(self, binary: Path, args: Sequence[str], env: Mapping[str, str]) -> int:
        """Run a short-lived tool (plugin installer, user tool) to completion."""
        ...

    def stop(self, handle: ProcessHandle) -> None:
        ...


def merged_env(overrides: Mapping[str, str]) -> dict[str, str]:
    """Child environment: the current one plus *overrides*.

    ``os.environ`` itself is never modified.
    """
    env = dict(os.environ)
    env.update(overrides)
    return env


class SubprocessHandle:
    """``ProcessHandle`` backed by ``subprocess.Popen``."""

    def __init__(
        self,
        popen: subprocess.Popen,
        name: str,
        echo_after_started: bool = False,
        max_lines: int = DEFAULT_MAX_LINES,
    ) -> None:
        self._popen = popen
        self._name = name
        self._echo_after_started = echo_after_started
        self._node_logger = logging.getLogger(f"clusterforge.node.{name}")
        self._lines: deque[str] = deque(maxlen=max_lines)
        self._lines_lock = threading.Lock()
        self._started = threading.Event()
        self._reader = threading.Thread(
            target=self._pump, name=f"clusterforge-{name}-console", daemon=True
        )
        self._reader.start()

    def _pump(self) -> None:
        assert self._popen.stdout is not None
        for raw in self._popen.stdout:
            line = raw.rstrip("\r\n")
            with self._lines_lock:
                self._lines.append(line)
            if not self._started.is_set() or self._echo_after_started:
                self._node_logger.info(line)
            if not self._started.is_set() and STARTED_RE.search(line):
                self._started.set()

    @property
    def pid(self) -> int | None:
        return self._popen.pid

    @property
    def returncode(self) -> int | None:
        return self._popen.poll()

    def lines(self) -> list[str]:
        with self._lines_lock:
            return list(self._lines)

    def is_running(self) -> bool:
        return self._popen.poll() is None

    def wait_for_started(self, timeout: float) -> bool:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if self._started.wait(0.2):
                return True
            if not self.is_running():
                self._reader.join(timeout=1.0)
                return self._started.is_set()
        return self._started.is_set()

    def terminate(self, timeout: float = 30.0) -> None:
        if self.is_running():
            self._popen.terminate()
            try:
                self._popen.wait(timeout=timeout)
            except subprocess.TimeoutExpired:
                logger.warning("Node %s did not stop within %ss, killing", self._name, timeout)
                self._popen.kill()
                self._popen.wait()
        self._reader.join(timeout=1.0)


class SubprocessLauncher:
    """``ProcessLauncher`` over ``subprocess``."""

    def __init__(self, max_lines: int = DEFAULT_MAX_LINES) -> None:
        self.max_lines = max_lines

    def start(
        self,
        binary: Path,
        args: Sequence[str],
        env: Mapping[str, str],
        *,
        name: str,
        echo_after_started: bool = False,
    ) -> SubprocessHandle:
        command = [str(binary), *args]
        logger.info("Starting %s: %s", name, " ".join(command))
        try:
            popen = subprocess.Popen(
                command,
                env=merged_env(env),
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                stdin=subprocess.DEVNULL,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as exc:
            raise ProcessStartError(f"Could not start {binary}: {exc}") from exc
        return SubprocessHandle(
            popen, name, echo_after_started=echo_after_started, max_lines=self.max_lines
        )

    def run(self, binary: Path, args: Sequence[str], env: Mapping[str, str]) -> int:
        command = [str(binary), *args]
        logger.info("Running %s", " ".join(command))
        try:
            completed = subprocess.run(
                command,
                env=merged_env(env),
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                stdin=subprocess.DEVNULL,
                text=True,
                encoding="utf-8",
                errors="replace",
                check=False,
            )
        except OSError as exc:
            raise ProcessStartError(f"Could not run {binary}: {exc}") from exc
        for line in completed.stdout.splitlines():
            logger.debug("%s: %s", binary.name, line)
        return completed.returncode

    def stop(self, handle: ProcessHandle) -> None:
        if isinstance(handle, SubprocessHandle):
            handle.terminate()
