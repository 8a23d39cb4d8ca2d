"""
Run configuration and the shared command-line surface of the benchmarks.
"""

import argparse
import re
from dataclasses import dataclass

# Per-program iteration defaults and fixed warm-up counts.
TIMER_DEFAULT_ITERS = 1_000_000
TIMER_WARMUP_ITERS = 10_000

SYSCALL_DEFAULT_ITERS = 20_000_000
SYSCALL_WARMUP_ITERS = 100_000

CTXSWITCH_DEFAULT_ITERS = 2_000_000
CTXSWITCH_WARMUP_ITERS = 10_000

# Logical CPU every pinned process is bound to.
PIN_CPU = 0

MAX_ITERS = 2 ** 63 - 1

_DECIMAL = re.compile(r"[+-]?[0-9]+")


@dataclass(frozen=True)
class RunConfig:
    """Iteration count, pin flag and warm-up count for one benchmark run."""

    iters: int
    warmup: int
    pin: bool = False

    def __post_init__(self) -> None:
        if self.iters <= 0:
            raise ValueError(f"iters must be > 0, got {self.iters}")
        if self.warmup < 0:
            raise ValueError(f"warmup must be >= 0, got {self.warmup}")


def positive_int(text: str) -> int:
    """argparse type for ``--iters``: a plain decimal that fits a signed 64-bit long."""
    if not _DECIMAL.fullmatch(text):
        raise argparse.ArgumentTypeError(f"Bad value for --iters: {text}")
    value = int(text, 10)
    if value > MAX_ITERS:
        raise argparse.ArgumentTypeError(f"Bad value for --iters: {text} (out of range)")
    if value <= 0:
        raise argparse.ArgumentTypeError("--iters must be > 0")
    return value


def build_parser(description: str, default_iters: int, allow_pin: bool = False) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=description)
    parser.add_argument(
        "--iters",
        type=positive_int,
        default=default_iters,
        help=f"Measurement iterations (default: {default_iters})",
    )
    if allow_pin:
        parser.add_argument(
            "--pin",
            action="store_true",
            help=f"Pin to CPU {PIN_CPU} before measuring",
        )
    return parser
