"""Micro-benchmarks for timer resolution, system call and context switch cost."""

__version__ = "0.1.0"
