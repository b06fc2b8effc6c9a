"""Core enums and identifiers for the SPEAR engagement engine."""

from __future__ import annotations

import enum
import uuid

#: Speed of sound at sea level (m/s), used for every Mach conversion.
SPEED_OF_SOUND_MPS = 343.0

#: Standard gravity (m/s^2) used for g-limited turn rates.
GRAVITY_MPS2 = 9.8


class TrackStatus(enum.Enum):
    TRACKING = "tracking"
    LOST = "lost"


class MissileStatus(enum.Enum):
    ACTIVE = "active"
    KILL = "kill"
    MISSED = "missed"


class LaunchSide(enum.Enum):
    """Which kind of platform fired a missile."""

    SITE = "site"  # surface-to-air interceptor
    AIRCRAFT = "aircraft"  # air-to-ground anti-radiation weapon


class PlatformState(enum.Enum):
    ACTIVE = "active"
    DESTROYED = "destroyed"


class ManeuverMode(enum.Enum):
    NONE = "none"
    EVASIVE = "evasive"


class FluctuationModel(enum.Enum):
    """Swerling target fluctuation cases."""

    SWERLING_0 = 0  # non-fluctuating
    SWERLING_1 = 1  # slow, scan-to-scan
    SWERLING_2 = 2  # fast, pulse-to-pulse
    SWERLING_3 = 3  # slow, dominant scatterer
    SWERLING_4 = 4  # fast, dominant scatterer


class IntegrationMode(enum.Enum):
    """Pulse integration modes."""

    COHERENT = "coherent"
    NONCOHERENT = "noncoherent"


def mach_to_km_s(mach: float) -> float:
    """Convert a Mach number to km/s at sea level."""
    return mach * SPEED_OF_SOUND_MPS / 1000.0


def generate_session_key() -> str:
    return uuid.uuid4().hex
