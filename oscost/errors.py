"""
Exception types raised by the benchmarks.

Every class carries the process exit code the command-line entry points
return when it escapes a measurement.
"""


class BenchmarkError(Exception):
    """Base class for fatal benchmark failures."""

    exit_code = 1


class ResourceError(BenchmarkError):
    """Sample buffer, pipe or process could not be created."""


class MeasurementError(BenchmarkError):
    """The measurement produced no believable number."""


class ClockError(MeasurementError):
    """A monotonic clock read failed."""


class ProtocolError(MeasurementError):
    """The ping-pong channel protocol lost its strict alternation."""
