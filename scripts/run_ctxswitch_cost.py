#!/usr/bin/env python3
"""
Convenience wrapper to run the context switch cost benchmark.

Usage:
    python scripts/run_ctxswitch_cost.py [--iters N]
"""

import sys

from oscost.benchmarks.ctxswitch_cost import main


if __name__ == "__main__":
    sys.exit(main())
