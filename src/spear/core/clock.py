"""Deterministic simulation clock."""

from __future__ import annotations


class SimClock:
    """Deterministic clock for reproducible simulation and testing.

    Time only advances when :meth:`step` or :meth:`set_elapsed` are called.
    The engagement coordinator owns one instance and steps it once per
    :meth:`~spear.engagement.scenario.EngagementCoordinator.advance`.
    """

    def __init__(self):
        self._elapsed = 0.0

    def elapsed(self) -> float:
        """Simulated seconds since the clock was created or reset."""
        return self._elapsed

    def step(self, dt: float) -> None:
        """Advance simulated time by *dt* seconds.

        Raises:
            ValueError: If *dt* is negative.
        """
        if dt < 0:
            raise ValueError(f"SimClock.step() requires dt >= 0, got {dt}")
        self._elapsed += dt

    def set_elapsed(self, elapsed: float) -> None:
        """Set the elapsed time directly.

        Raises:
            ValueError: If *elapsed* is negative.
        """
        if elapsed < 0:
            raise ValueError(
                f"SimClock.set_elapsed() requires elapsed >= 0, got {elapsed}"
            )
        self._elapsed = elapsed

    def reset(self) -> None:
        self._elapsed = 0.0
