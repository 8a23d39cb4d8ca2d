#!/usr/bin/env python3
"""
Convenience wrapper to run the timer resolution with full statistics benchmark.

Usage:
    python scripts/run_timer_stats.py --iters 1000000 --pin
"""

import sys

from oscost.benchmarks.timer_stats import main


if __name__ == "__main__":
    sys.exit(main())
