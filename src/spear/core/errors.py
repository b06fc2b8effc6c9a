"""Exception types raised at the engine boundaries."""

from __future__ import annotations


class ConfigurationError(ValueError):
    """Scenario or platform definition is missing or invalid.

    Raised before any simulation state is built; the run cannot start.
    """


class AttenuationTableError(RuntimeError):
    """The rain attenuation dataset was queried before it was loaded."""


class SessionError(PermissionError):
    """A mutating call carried an absent, unknown or mismatched session key."""
