"""Back-off logic for device polling failures.

Each device keeps its own controller so one unreachable speaker does not slow
down polling of the others.
"""

from __future__ import annotations

from typing import Final

# Mapping: consecutive_failures → multiplier applied to the polling interval
_BACKOFF_STEPS: Final[dict[int, int]] = {
    2: 2,  # after 2 failures → every second cycle
    3: 6,
    5: 12,
}

MAX_INTERVAL: Final = 600.0  # seconds


class BackoffController:
    """Tracks consecutive failures and recommends the next poll delay."""

    def __init__(self) -> None:
        self._failures = 0

    # ---------------------------------------------------------------------
    # Recording helpers
    # ---------------------------------------------------------------------

    def record_success(self) -> None:
        self._failures = 0

    def record_failure(self) -> None:
        self._failures += 1

    # ---------------------------------------------------------------------
    # Query helpers
    # ---------------------------------------------------------------------

    @property
    def consecutive_failures(self) -> int:
        return self._failures

    def next_interval(self, base_seconds: float) -> float:
        """Return the delay before this device should be polled again."""
        multiplier = 1
        for threshold, factor in sorted(_BACKOFF_STEPS.items()):
            if self._failures >= threshold:
                multiplier = factor
        if multiplier == 1:
            return base_seconds
        return min(base_seconds * multiplier, MAX_INTERVAL)
