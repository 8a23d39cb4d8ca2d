#!/usr/bin/env python3
"""
Timer resolution benchmark: deltas between back-to-back monotonic reads.

Reports min, max and how many deltas were zero (the clock did not tick).
"""

import sys
from typing import List, Optional

from oscost.benchmarks.driver import LoopDriver
from oscost.config import TIMER_DEFAULT_ITERS, TIMER_WARMUP_ITERS, RunConfig, build_parser
from oscost.console import fail, print_notes
from oscost.errors import BenchmarkError
from oscost.utils.stats import StatisticsCollector, SummaryStatistics
from oscost.utils.timer import CLOCK_NAME, now


def run(config: RunConfig, clock=now) -> SummaryStatistics:
    sample_set = LoopDriver(config, clock).collect_samples()
    return StatisticsCollector.scan(sample_set.samples, sample_set.backward_count)


def print_report(stats: SummaryStatistics) -> None:
    print(f"Timer back-to-back call deltas over {stats.count} iterations ({CLOCK_NAME}):")
    print(f"  min:  {stats.minimum} ns")
    print(f"  max:  {stats.maximum} ns")
    print(f"  zeros: {stats.zero_count} (i.e., measured delta=0)")
    if stats.backward_count:
        print(f"  backward: {stats.backward_count} (recorded as 0)")
    print_notes("Interpretation", [
        "The minimum non-zero delta is a practical lower bound on useful timer resolution.",
        "If you see lots of zeros, you need more iterations per measurement in other tests.",
    ])


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser("Measure monotonic clock resolution", TIMER_DEFAULT_ITERS)
    args = parser.parse_args(argv)
    config = RunConfig(iters=args.iters, warmup=TIMER_WARMUP_ITERS)

    try:
        stats = run(config)
    except BenchmarkError as exc:
        return fail(exc)

    print_report(stats)
    return 0


if __name__ == "__main__":
    sys.exit(main())
