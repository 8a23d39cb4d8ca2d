"""
Warm-up / measure / baseline loop driver shared by every benchmark.

A step is a callable taking the iteration index. The operation under test
and its baseline substitute are written as steps of identical shape, so
subtracting the baseline total removes the loop and call overhead.
"""

from dataclasses import dataclass
from typing import Callable

import numpy as np

from oscost.config import RunConfig
from oscost.errors import ClockError, MeasurementError, ResourceError
from oscost.utils.timer import HighPrecisionTimer, now

Step = Callable[[int], None]


class Sink:
    """XOR accumulator giving every timed step an observable result."""

    __slots__ = ("value",)

    def __init__(self) -> None:
        self.value = 0


def compiler_barrier(value) -> None:
    """Opaque call placed after the timed operation and its baseline substitute."""


@dataclass
class SampleSet:
    samples: np.ndarray
    backward_count: int


@dataclass
class NetEstimate:
    iters: int
    timed_total: int
    baseline_total: int

    @property
    def net_total(self) -> int:
        return self.timed_total - self.baseline_total

    @property
    def per_iteration(self) -> float:
        return self.net_total / self.iters


@dataclass
class ContextSwitchEstimate:
    iters: int
    pingpong_total: int
    pair_total: int

    @property
    def pair_per_iteration(self) -> float:
        return self.pair_total / self.iters

    @property
    def pingpong_per_iteration(self) -> float:
        return self.pingpong_total / self.iters

    @property
    def per_switch(self) -> float:
        # Each round trip is two context switches plus two write+read pairs.
        return (self.pingpong_per_iteration - 2.0 * self.pair_per_iteration) / 2.0


class LoopDriver:
    """Runs steps through the warm-up and timed phases of a RunConfig."""

    def __init__(self, config: RunConfig, clock=now) -> None:
        self.config = config
        self.clock = clock

    def warm_up(self, step: Step) -> None:
        for i in range(self.config.warmup):
            step(i)

    def time_loop(self, step: Step) -> int:
        """Run ``step`` exactly ``iters`` times; return total elapsed ns."""
        timer = HighPrecisionTimer(self.clock)
        timer.start()
        for i in range(self.config.iters):
            step(i)
        return timer.stop()

    def measure(self, step: Step) -> int:
        self.warm_up(step)
        return self.time_loop(step)

    def collect_samples(self) -> SampleSet:
        """
        One sample per iteration from two back-to-back clock reads.

        A backward pair is stored as 0 and counted in ``backward_count``.
        """
        clock = self.clock
        for _ in range(self.config.warmup):
            clock()

        iters = self.config.iters
        try:
            samples = np.zeros(iters, dtype=np.uint64)
        except (MemoryError, ValueError) as exc:
            raise ResourceError(f"cannot allocate a buffer for {iters} samples: {exc}")

        backward = 0
        for i in range(iters):
            a = clock()
            b = clock()
            if a == 0 or b == 0:
                raise ClockError("clock_gettime failed")
            if b < a:
                backward += 1
            else:
                samples[i] = b - a
        return SampleSet(samples=samples, backward_count=backward)


def net_per_iteration(timed_total: int, baseline_total: int, iters: int) -> NetEstimate:
    """Subtract the baseline loop; refuse a non-positive result."""
    estimate = NetEstimate(iters=iters, timed_total=timed_total, baseline_total=baseline_total)
    if estimate.net_total <= 0:
        raise MeasurementError(
            f"Net time <= 0 (with={timed_total} ns, base={baseline_total} ns). "
            "Try more iterations."
        )
    return estimate


def context_switch_estimate(pingpong_total: int, pair_total: int, iters: int) -> ContextSwitchEstimate:
    estimate = ContextSwitchEstimate(iters=iters, pingpong_total=pingpong_total, pair_total=pair_total)
    if estimate.per_switch <= 0:
        raise MeasurementError(
            f"Context switch estimate <= 0 ({estimate.per_switch:.2f} ns; "
            f"ping-pong={estimate.pingpong_per_iteration:.2f} ns, "
            f"pair={estimate.pair_per_iteration:.2f} ns). "
            "Try more iterations or reduce system noise."
        )
    return estimate
