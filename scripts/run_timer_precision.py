#!/usr/bin/env python3
"""
Convenience wrapper to run the timer resolution (min/max/zeros) benchmark.

Usage:
    python scripts/run_timer_precision.py [--iters N]
"""

import sys

from oscost.benchmarks.timer_precision import main


if __name__ == "__main__":
    sys.exit(main())
