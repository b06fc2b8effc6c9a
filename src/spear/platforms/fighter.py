"""Fighter platform: aspect-dependent RCS, kinematics, evasive steering."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

import numpy as np

from spear.core.types import (
    GRAVITY_MPS2,
    SPEED_OF_SOUND_MPS,
    ManeuverMode,
    PlatformState,
    mach_to_km_s,
)
from spear.utils.geometry import (
    bearing_rad,
    clamp_turn,
    heading_vector,
    max_turn_rate,
)

logger = logging.getLogger(__name__)

#: Half-width (degrees) of the nose and tail aspect sectors.
ASPECT_SECTOR_HALF_WIDTH_DEG = 30.0


@dataclass(frozen=True)
class RCSProfile:
    """Aspect-dependent radar cross section (m^2). All values must be > 0."""

    nose: float
    tail: float
    side: float
    top: float
    bottom: float

    def __post_init__(self):
        for name in ("nose", "tail", "side", "top", "bottom"):
            value = getattr(self, name)
            if not value > 0:
                raise ValueError(f"RCS {name} must be > 0 m^2, got {value}")

    def rcs_at_aspect(self, aspect_deg: float) -> float:
        """RCS for an observer at *aspect_deg* off the nose.

        Nose within 30 deg of 0, tail within 30 deg of 180, side otherwise.
        """
        angle = aspect_deg % 360.0
        half = ASPECT_SECTOR_HALF_WIDTH_DEG
        if angle < half or angle > 360.0 - half:
            return self.nose
        if 180.0 - half < angle < 180.0 + half:
            return self.tail
        return self.side

    @classmethod
    def from_config(cls, cfg: dict) -> RCSProfile:
        return cls(
            nose=float(cfg.get("nose", 1.0)),
            tail=float(cfg.get("tail", 1.0)),
            side=float(cfg.get("side", 1.0)),
            top=float(cfg.get("top", 1.0)),
            bottom=float(cfg.get("bottom", 1.0)),
        )

    def to_dict(self) -> dict:
        return {
            "nose": self.nose,
            "tail": self.tail,
            "side": self.side,
            "top": self.top,
            "bottom": self.bottom,
        }


@dataclass(frozen=True)
class FighterSpec:
    """Static fighter performance and weapon load."""

    name: str
    rcs: RCSProfile
    speed_mach: float = 0.9
    weapon_speed_mach: float = 3.0
    weapon_range_km: float = 100.0
    weapons: int = 2
    weapon_kill_radius_km: float = 5.0
    g_limit: float = 6.0


class Fighter:
    """A fighter in one engagement run.

    Position is in km, heading in radians from +x (CCW).
    """

    def __init__(
        self,
        fighter_id: str,
        spec: FighterSpec,
        position_km,
        heading_deg: float = 0.0,
        maneuver: ManeuverMode = ManeuverMode.NONE,
    ):
        self.fighter_id = fighter_id
        self.spec = spec
        self.position = np.array(position_km, dtype=float)
        self.heading = math.radians(heading_deg)
        self._initial_position = self.position.copy()
        self._initial_heading = self.heading
        self.maneuver = maneuver
        self.weapons_remaining = spec.weapons
        self.state = PlatformState.ACTIVE

    @property
    def is_active(self) -> bool:
        return self.state == PlatformState.ACTIVE

    @property
    def speed_km_s(self) -> float:
        return mach_to_km_s(self.spec.speed_mach)

    @property
    def weapon_speed_km_s(self) -> float:
        return mach_to_km_s(self.spec.weapon_speed_mach)

    def rcs_at_aspect(self, aspect_deg: float) -> float:
        return self.spec.rcs.rcs_at_aspect(aspect_deg)

    def rcs_seen_from(self, observer_km: np.ndarray) -> float:
        """RCS presented to an observer, from the line of sight vs heading."""
        los = bearing_rad(self.position, observer_km)
        return self.rcs_at_aspect(math.degrees(los - self.heading))

    def should_launch_air_to_ground(
        self,
        distance_to_site_km: float,
        site_max_effective_range_km: float,
        site_is_tracking: bool,
    ) -> bool:
        """Launch only while tracked, inside the site's MEMR and beyond own weapon range."""
        if not site_is_tracking:
            return False
        return (
            distance_to_site_km <= site_max_effective_range_km
            and self.spec.weapon_range_km < distance_to_site_km
        )

    def steer_away_from(self, threat_km: np.ndarray, dt: float) -> None:
        """Turn toward the reciprocal bearing of *threat_km*, g-limited."""
        desired = bearing_rad(self.position, threat_km) + math.pi
        rate = max_turn_rate(
            self.spec.g_limit, self.speed_km_s * 1000.0, GRAVITY_MPS2,
        )
        self.heading = clamp_turn(self.heading, desired, rate * dt)

    def advance(self, dt: float) -> None:
        if not self.is_active:
            return
        self.position = self.position + heading_vector(self.heading) * self.speed_km_s * dt

    def reset(self) -> None:
        """Restore the launch-time position, heading, weapons and state."""
        self.position = self._initial_position.copy()
        self.heading = self._initial_heading
        self.weapons_remaining = self.spec.weapons
        self.state = PlatformState.ACTIVE

    def destroy(self) -> None:
        if self.is_active:
            logger.info("Fighter %s destroyed", self.fighter_id)
        self.state = PlatformState.DESTROYED

    def to_dict(self) -> dict:
        return {
            "id": self.fighter_id,
            "name": self.spec.name,
            "position": self.position.tolist(),
            "heading_rad": self.heading,
            "speed_mach": self.spec.speed_mach,
            "speed_mps": self.spec.speed_mach * SPEED_OF_SOUND_MPS,
            "maneuver": self.maneuver.value,
            "weapons_remaining": self.weapons_remaining,
            "state": self.state.value,
        }
