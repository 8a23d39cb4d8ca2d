"""
Helpers for binding benchmark processes to a single CPU.

Pinning is best-effort: sched_setaffinity where the OS provides it, then
psutil's cpu_affinity. A failure is reported once through the logger and
the benchmark continues unpinned.
"""

from __future__ import annotations

import os
import platform
from typing import Callable, Optional

import psutil

Logger = Callable[[str], None]


class AffinityManager:
    """Applies a single-CPU affinity mask to the current or a given process."""

    def __init__(
        self,
        enabled: bool,
        cpu: int = 0,
        logger: Optional[Logger] = None,
    ) -> None:
        self.enabled = enabled
        self.cpu = cpu
        self.logger = logger or (lambda msg: None)
        self._warned = False

    def apply(self, pid: Optional[int] = None) -> bool:
        """
        Attempt to bind the given pid (defaults to current process) to the CPU.

        Returns True if the operation was successful, False otherwise.
        """
        if not self.enabled:
            return False

        pid = pid or os.getpid()
        reason = "CPU affinity controls unavailable on this platform."

        if hasattr(os, "sched_setaffinity"):
            try:
                os.sched_setaffinity(pid, {self.cpu})
                return True
            except OSError as exc:
                reason = f"sched_setaffinity() failed ({exc.strerror or exc})."

        if hasattr(psutil.Process, "cpu_affinity"):
            try:
                psutil.Process(pid).cpu_affinity([self.cpu])
                return True
            except (psutil.Error, OSError, ValueError) as exc:
                reason = f"psutil cpu_affinity failed ({exc})."

        if platform.system() == "Darwin":  # pragma: no cover - macOS specific
            reason = "macOS does not expose strict per-core pinning."

        self._log_once(f"{reason} Continuing unpinned.")
        return False

    def _log_once(self, message: str) -> None:
        if not self._warned:
            self.logger(message)
            self._warned = True
