import math
from dataclasses import dataclass, field
from fractions import Fraction
from typing import Dict, Iterable, Optional, Sequence, Tuple

import numpy as np

PERCENTILE_RANKS: Tuple[float, ...] = (50, 90, 95, 99, 99.9)

_U64_MAX = np.iinfo(np.uint64).max


@dataclass
class SummaryStatistics:
    """Scalar statistics over one sample sequence, in nanoseconds."""

    count: int
    minimum: int
    maximum: int
    min_nonzero: Optional[int]
    total: int
    zero_count: int
    backward_count: int = 0
    distinct: int = 0
    mode: int = 0
    mode_count: int = 0

    @property
    def mean(self) -> float:
        return self.total / self.count


@dataclass
class PercentileTable:
    """Percentile rank -> sample value. Empty means there was no data."""

    values: Dict[float, int] = field(default_factory=dict)

    @property
    def empty(self) -> bool:
        return not self.values

    def __getitem__(self, rank: float) -> int:
        return self.values[rank]


@dataclass
class Summary:
    stats: SummaryStatistics
    percentiles: PercentileTable
    nonzero_percentiles: PercentileTable


class StatisticsCollector:
    """Compute statistics for raw duration samples."""

    @staticmethod
    def as_samples(values: Iterable[int]) -> np.ndarray:
        if isinstance(values, np.ndarray) and values.dtype == np.uint64:
            return values
        return np.array(values, dtype=np.uint64)

    @staticmethod
    def wide_sum(samples: np.ndarray) -> int:
        """
        Exact sum of uint64 samples.

        Chunks are sized so ``len(chunk) * max(samples)`` fits in 64 bits;
        the per-chunk sums are accumulated in a Python int.
        """
        if samples.size == 0:
            return 0
        peak = int(samples.max())
        if peak == 0:
            return 0
        chunk = max(1, int(_U64_MAX) // peak)
        total = 0
        for start in range(0, samples.size, chunk):
            total += int(samples[start:start + chunk].sum(dtype=np.uint64))
        return total

    @staticmethod
    def scan(samples: np.ndarray, backward_count: int = 0) -> SummaryStatistics:
        """Min, max, min-nonzero, zero count and total of unsorted samples."""
        if samples.size == 0:
            raise ValueError("cannot summarize an empty sample sequence")
        nonzero = samples[samples > 0]
        return SummaryStatistics(
            count=int(samples.size),
            minimum=int(samples.min()),
            maximum=int(samples.max()),
            min_nonzero=int(nonzero.min()) if nonzero.size else None,
            total=StatisticsCollector.wide_sum(samples),
            zero_count=int(samples.size - nonzero.size),
            backward_count=backward_count,
        )

    @staticmethod
    def sort_samples(samples: np.ndarray) -> np.ndarray:
        samples.sort()
        return samples

    @staticmethod
    def percentile(sorted_samples: Sequence[int], p: float) -> int:
        """
        Nearest-index percentile of an ascending sequence.

        The index is ``round(p / 100 * (n - 1))`` rounding halves up, so
        ``[10, 20, 30, 40]`` gives 30 at p=50. No interpolation.
        """
        n = len(sorted_samples)
        if n == 0:
            raise ValueError("percentile of an empty sequence")
        if p <= 0:
            return int(sorted_samples[0])
        if p >= 100:
            return int(sorted_samples[n - 1])
        # exact rational rank so .5 ranks always round up
        index = math.floor(Fraction(str(p)) * (n - 1) / 100 + Fraction(1, 2))
        index = min(max(index, 0), n - 1)
        return int(sorted_samples[index])

    @staticmethod
    def percentile_table(sorted_samples: Sequence[int], ranks: Iterable[float] = PERCENTILE_RANKS) -> PercentileTable:
        if len(sorted_samples) == 0:
            return PercentileTable()
        return PercentileTable(
            {rank: StatisticsCollector.percentile(sorted_samples, rank) for rank in ranks}
        )

    @staticmethod
    def nonzero_view(sorted_samples: np.ndarray) -> np.ndarray:
        """Strictly positive tail of an ascending sample array."""
        first = int(np.searchsorted(sorted_samples, 0, side="right"))
        return sorted_samples[first:]

    @staticmethod
    def distinct_and_mode(sorted_samples: np.ndarray) -> Tuple[int, int, int]:
        """
        Return (distinct values, mode, mode count) of an ascending array.

        The mode is the value of the longest run; ties go to the first
        run, i.e. the smallest value.
        """
        n = int(sorted_samples.size)
        if n == 0:
            raise ValueError("mode of an empty sequence")
        starts = np.concatenate(([0], np.flatnonzero(np.diff(sorted_samples)) + 1))
        lengths = np.diff(np.concatenate((starts, [n])))
        best = int(np.argmax(lengths))
        return int(starts.size), int(sorted_samples[starts[best]]), int(lengths[best])

    @staticmethod
    def summarize(values, backward_count: int = 0) -> Summary:
        """
        Scan, sort in place, then derive percentiles, distinct count and mode.

        ``values`` is sorted in place when it already is a uint64 array.
        """
        samples = StatisticsCollector.as_samples(values)
        stats = StatisticsCollector.scan(samples, backward_count)
        StatisticsCollector.sort_samples(samples)
        stats.distinct, stats.mode, stats.mode_count = StatisticsCollector.distinct_and_mode(samples)
        return Summary(
            stats=stats,
            percentiles=StatisticsCollector.percentile_table(samples),
            nonzero_percentiles=StatisticsCollector.percentile_table(
                StatisticsCollector.nonzero_view(samples)
            ),
        )


def format_ns(ns: float) -> str:
    """Format nanoseconds in appropriate unit (ns, us, ms, s)."""
    if ns >= 1e9:
        return f"{ns / 1e9:.3f} s"
    elif ns >= 1e6:
        return f"{ns / 1e6:.3f} ms"
    elif ns >= 1e3:
        return f"{ns / 1e3:.3f} us"
    else:
        return f"{ns:.2f} ns"


def format_rank(rank: float) -> str:
    return f"p{rank:g}"
