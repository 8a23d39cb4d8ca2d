"""stderr diagnostics and report helpers shared by the benchmark programs."""

import sys
from typing import Iterable

from oscost.errors import BenchmarkError

GUIDANCE = "Increase --iters or reduce system noise (pinning, idle machine) and retry."


def warn(message: str) -> None:
    print(f"Warning: {message}", file=sys.stderr)


def fail(exc: BenchmarkError) -> int:
    """Print a fatal diagnostic and return the exit code for it."""
    print(f"Error: {exc}", file=sys.stderr)
    print(GUIDANCE, file=sys.stderr)
    return exc.exit_code


def print_notes(title: str, notes: Iterable[str]) -> None:
    print(f"\n{title}:")
    for note in notes:
        print(f"  - {note}")
