import time

from oscost.errors import ClockError

# CLOCK_MONOTONIC_RAW is not disciplined by NTP; not every platform has it.
if hasattr(time, "CLOCK_MONOTONIC_RAW") and hasattr(time, "clock_gettime_ns"):
    CLOCK_ID = time.CLOCK_MONOTONIC_RAW
    CLOCK_NAME = "CLOCK_MONOTONIC_RAW"
else:
    CLOCK_ID = None
    CLOCK_NAME = "monotonic"


def now() -> int:
    """Return a monotonic timestamp in nanoseconds, or 0 if the read failed."""
    try:
        if CLOCK_ID is not None:
            return time.clock_gettime_ns(CLOCK_ID)
        return time.monotonic_ns()
    except OSError:
        return 0


def require_tick(value: int, where: str) -> int:
    """Reject the failed-read sentinel returned by :func:`now`."""
    if value == 0:
        raise ClockError(f"clock read failed during {where}")
    return value


class HighPrecisionTimer:
    """Interval timer over the monotonic clock, in nanoseconds."""

    def __init__(self, clock=now):
        self.clock = clock
        self.start_time = None
        self.elapsed = None

    def start(self):
        """Start timing."""
        self.start_time = require_tick(self.clock(), "timer start")

    def stop(self) -> int:
        """Stop timing and return elapsed nanoseconds."""
        if self.start_time is None:
            raise RuntimeError("Timer not started")
        end = require_tick(self.clock(), "timer stop")
        self.elapsed = end - self.start_time
        return self.elapsed
