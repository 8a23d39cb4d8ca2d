#!/usr/bin/env python3
"""
Context switch cost benchmark (two-process pipe ping-pong).

A single-process write+read pair on one pipe is timed first as the
baseline. Each ping-pong round trip then costs two context switches plus
two such pairs, so::

    ctxsw ~= (pingpong_per_iter - 2 * pair_per_iter) / 2
"""

import sys
from typing import List, Optional, Tuple

from oscost.benchmarks.driver import ContextSwitchEstimate, context_switch_estimate
from oscost.benchmarks.pingpong import PingPong, measure_channel_pair
from oscost.config import PIN_CPU, CTXSWITCH_DEFAULT_ITERS, CTXSWITCH_WARMUP_ITERS, RunConfig, build_parser
from oscost.console import fail, print_notes, warn
from oscost.errors import BenchmarkError
from oscost.utils.affinity import AffinityManager, Logger
from oscost.utils.stats import format_ns
from oscost.utils.timer import now


def run(config: RunConfig, clock=now, logger: Optional[Logger] = None) -> Tuple[ContextSwitchEstimate, bool]:
    # Pin the parent now; the responder pins itself after it is forked.
    pinned = AffinityManager(
        enabled=config.pin,
        cpu=PIN_CPU,
        logger=(lambda msg: logger(f"parent {msg}")) if logger else None,
    ).apply()

    pair_total = measure_channel_pair(config, clock)
    pingpong_total = PingPong(config, clock=clock, logger=logger).run()
    return context_switch_estimate(pingpong_total, pair_total, config.iters), pinned


def print_report(estimate: ContextSwitchEstimate, pinned: bool) -> None:
    print("Context switch cost estimate (two-process pipe ping-pong)")
    print(f"iters: {estimate.iters}")
    print(f"pinned to CPU {PIN_CPU}: {'yes' if pinned else 'no'}")
    print(f"pipe baseline:     {estimate.pair_per_iteration:.2f} ns per (write+read) pair (single process)")
    print(f"ping-pong:         {estimate.pingpong_per_iteration:.2f} ns per iteration (includes 2 context switches)")
    print(f"ctxsw estimate:    {estimate.per_switch:.2f} ns per context switch (after baseline subtraction)")
    print(f"               ~=  {format_ns(estimate.per_switch)} per context switch")
    print_notes("Notes", [
        "This is an *estimate*; the ping-pong path includes scheduling and pipe overhead.",
        "If the estimate is tiny, increase iterations or reduce system noise.",
        "Under virtualization (e.g. WSL 2), host scheduling can add jitter.",
        "Pinning to one CPU reduces noise; if affinity failed, results may be less stable.",
    ])


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser("Estimate the cost of a process context switch", CTXSWITCH_DEFAULT_ITERS)
    args = parser.parse_args(argv)
    config = RunConfig(iters=args.iters, warmup=CTXSWITCH_WARMUP_ITERS, pin=True)

    try:
        estimate, pinned = run(config, logger=warn)
    except BenchmarkError as exc:
        return fail(exc)

    print_report(estimate, pinned)
    return 0


if __name__ == "__main__":
    sys.exit(main())
