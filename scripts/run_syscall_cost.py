#!/usr/bin/env python3
"""
Convenience wrapper to run the system call cost benchmark.

Usage:
    python scripts/run_syscall_cost.py [--iters N]
"""

import sys

from oscost.benchmarks.syscall_cost import main


if __name__ == "__main__":
    sys.exit(main())
