"""
Timing utility for throttling execution in the puzzle loop
"""

import time
from typing import Callable


class OnceInMs:
    """
    Timer for throttling code execution to at most once per interval.

    The puzzle loop ticks every frame (e.g. 20ms); use this to limit how often
    housekeeping such as resource logging runs.

    Example:
        # In __init__:
        self.usage_monitor = OnceInMs(60000)  # Once per minute

        # In update loop:
        if self.usage_monitor.should_execute():
            self.log_usage()
    """

    def __init__(self, interval_ms: int, clock: Callable[[], float] = time.time):
        """
        Initialize timer with interval.

        Args:
            interval_ms: Minimum milliseconds between executions
            clock: Time source in seconds (injectable for tests)
        """
        self.interval_ms = interval_ms
        self.interval = interval_ms / 1000.0
        self._clock = clock
        self.last_execution = 0.0

    def should_execute(self) -> bool:
        """
        Check if enough time has passed and update timer if so.

        Returns:
            True if interval has passed (and timer is updated), False otherwise
        """
        current = self._clock()
        if current - self.last_execution >= self.interval:
            self.last_execution = current
            return True
        return False

    def reset(self):
        """Force next should_execute() call to return True"""
        self.last_execution = 0.0

    def elapsed_ms(self) -> float:
        """Get milliseconds elapsed since last execution"""
        return (self._clock() - self.last_execution) * 1000

    def remaining_ms(self) -> float:
        """Get milliseconds remaining until next execution (can be negative if overdue)"""
        return self.interval_ms - self.elapsed_ms()
