#!/usr/bin/env python3
"""
System call cost benchmark.

Times a loop of ``getppid()`` calls, then an identically shaped loop doing a
cheap XOR instead, and reports the difference per iteration. ``getppid`` is
never cached in user space, so every call enters the kernel.
"""

import os
import sys
from typing import List, Optional, Tuple

from oscost.benchmarks.driver import LoopDriver, NetEstimate, Sink, compiler_barrier, net_per_iteration
from oscost.config import PIN_CPU, SYSCALL_DEFAULT_ITERS, SYSCALL_WARMUP_ITERS, RunConfig, build_parser
from oscost.console import fail, print_notes, warn
from oscost.errors import BenchmarkError
from oscost.utils.affinity import AffinityManager, Logger
from oscost.utils.stats import format_ns
from oscost.utils.timer import now

SYSCALL_NAME = "getppid"
do_syscall = os.getppid


class SyscallBenchmark:
    """Timed system call loop with a baseline loop of the same shape."""

    def __init__(self, config: RunConfig, clock=now, call=None):
        self.config = config
        self.driver = LoopDriver(config, clock)
        self.call = call or do_syscall
        self.sink = Sink()

    def syscall_step(self, i: int) -> None:
        sink = self.sink
        sink.value ^= self.call()
        compiler_barrier(sink)

    def baseline_step(self, i: int) -> None:
        sink = self.sink
        sink.value ^= i
        compiler_barrier(sink)

    def run(self) -> NetEstimate:
        timed_total = self.driver.measure(self.syscall_step)
        baseline_total = self.driver.time_loop(self.baseline_step)
        return net_per_iteration(timed_total, baseline_total, self.config.iters)


def run(config: RunConfig, clock=now, logger: Optional[Logger] = None) -> Tuple[NetEstimate, bool]:
    pinned = AffinityManager(enabled=config.pin, cpu=PIN_CPU, logger=logger).apply()
    return SyscallBenchmark(config, clock).run(), pinned


def print_report(estimate: NetEstimate, pinned: bool) -> None:
    print(f"System call cost estimate using {SYSCALL_NAME}()")
    print(f"iters: {estimate.iters}")
    print(f"pinned to CPU {PIN_CPU}: {'yes' if pinned else 'no'}")
    print(f"total with syscall: {estimate.timed_total} ns")
    print(f"total base loop:    {estimate.baseline_total} ns")
    print(f"net (with-base):    {estimate.net_total} ns")
    print(f"estimated cost:     {estimate.per_iteration:.2f} ns per syscall")
    print(f"                  = {format_ns(estimate.per_iteration)} per syscall")
    print_notes("Notes", [
        "This subtracts a baseline loop to remove interpreter loop and call overhead.",
        "Results will vary; run multiple times and report min/median.",
        "Under virtualization (e.g. WSL 2), extra overhead and scheduling jitter may inflate results.",
    ])


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser("Estimate the cost of a system call", SYSCALL_DEFAULT_ITERS)
    args = parser.parse_args(argv)
    config = RunConfig(iters=args.iters, warmup=SYSCALL_WARMUP_ITERS, pin=True)

    try:
        estimate, pinned = run(config, logger=warn)
    except BenchmarkError as exc:
        return fail(exc)

    print_report(estimate, pinned)
    return 0


if __name__ == "__main__":
    sys.exit(main())
