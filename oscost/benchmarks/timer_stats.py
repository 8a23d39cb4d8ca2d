#!/usr/bin/env python3
"""
Timer resolution benchmark, statistics variant.

Collects one back-to-back delta per iteration and runs the full summarizer:
percentiles over every sample and over the non-zero samples only, distinct
values and the mode. ``--pin`` binds the process to one CPU first.
"""

import sys
from typing import List, Optional, Tuple

from oscost.benchmarks.driver import LoopDriver
from oscost.config import PIN_CPU, TIMER_DEFAULT_ITERS, TIMER_WARMUP_ITERS, RunConfig, build_parser
from oscost.console import fail, print_notes, warn
from oscost.errors import BenchmarkError
from oscost.utils.affinity import AffinityManager, Logger
from oscost.utils.stats import PercentileTable, StatisticsCollector, Summary, format_rank
from oscost.utils.timer import CLOCK_NAME, now


def run(config: RunConfig, clock=now, logger: Optional[Logger] = None) -> Tuple[Summary, bool]:
    """Return the summary and whether pinning took effect."""
    pinned = AffinityManager(enabled=config.pin, cpu=PIN_CPU, logger=logger).apply()
    sample_set = LoopDriver(config, clock).collect_samples()
    return StatisticsCollector.summarize(sample_set.samples, sample_set.backward_count), pinned


def _print_table(label: str, table: PercentileTable) -> None:
    if table.empty:
        print(f"  {label}: no data")
        return
    cells = "  ".join(f"{format_rank(rank)}={value}" for rank, value in table.values.items())
    print(f"  {label}: {cells} (ns)")


def print_report(summary: Summary, pinned: bool) -> None:
    stats = summary.stats
    print(f"Timer back-to-back call deltas over {stats.count} iterations ({CLOCK_NAME})")
    print(f"pinned to CPU {PIN_CPU}: {'yes' if pinned else 'no'}")
    print(f"  min:          {stats.minimum} ns")
    min_nonzero = "n/a" if stats.min_nonzero is None else f"{stats.min_nonzero} ns"
    print(f"  min non-zero: {min_nonzero}")
    print(f"  max:          {stats.maximum} ns")
    print(f"  mean:         {stats.mean:.2f} ns")
    print(f"  zeros:        {stats.zero_count} ({stats.zero_count / stats.count * 100:.2f}%)")
    print(f"  backward:     {stats.backward_count}")
    print(f"  distinct:     {stats.distinct}")
    print(f"  mode:         {stats.mode} ns (x{stats.mode_count})")
    _print_table("all samples", summary.percentiles)
    _print_table("non-zero", summary.nonzero_percentiles)
    print_notes("Interpretation", [
        "min non-zero and the non-zero median bound the useful timer resolution.",
        "A large zero share means the clock ticks slower than one read; "
        "time many operations per interval in other tests.",
        "A mode well above min non-zero usually reflects the clock source's update granularity.",
    ])


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser(
        "Measure monotonic clock resolution with full statistics",
        TIMER_DEFAULT_ITERS,
        allow_pin=True,
    )
    args = parser.parse_args(argv)
    config = RunConfig(iters=args.iters, warmup=TIMER_WARMUP_ITERS, pin=args.pin)

    try:
        summary, pinned = run(config, logger=warn)
    except BenchmarkError as exc:
        return fail(exc)

    print_report(summary, pinned)
    return 0


if __name__ == "__main__":
    sys.exit(main())
