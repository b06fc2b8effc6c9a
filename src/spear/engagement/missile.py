"""Missile state, guidance, kinematics and the intercept test."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

import numpy as np

from spear.core.types import GRAVITY_MPS2, LaunchSide, MissileStatus
from spear.utils.geometry import (
    clamp_turn,
    distance,
    heading_vector,
    max_turn_rate,
    point_segment_distance,
)

logger = logging.getLogger(__name__)

#: Missile lateral acceleration limit (g).
MISSILE_G_LIMIT = 30.0

#: Largest random heading change per step without guidance (radians).
UNGUIDED_PERTURBATION_RAD = math.radians(5.0)


@dataclass
class Missile:
    """One missile in flight.

    The target is referenced by id and resolved against the coordinator's
    platform store every step, so guidance always uses the target's
    current position. Positions are km, speed km/s, heading radians.
    """

    missile_id: str
    side: LaunchSide
    launcher_id: str
    target_id: str
    position: np.ndarray
    speed_km_s: float
    heading: float
    launch_time: float
    kill_radius_km: float
    max_range_km: float | None = None  # None = unlimited
    status: MissileStatus = MissileStatus.ACTIVE
    distance_traveled_km: float = 0.0
    impact_time: float | None = None
    impact_position: np.ndarray | None = None
    previous_position: np.ndarray | None = None  # set to the launch point

    def __post_init__(self):
        self.position = np.array(self.position, dtype=float)
        if self.previous_position is None:
            self.previous_position = self.position.copy()

    @property
    def is_active(self) -> bool:
        return self.status == MissileStatus.ACTIVE

    @property
    def speed_mps(self) -> float:
        return self.speed_km_s * 1000.0

    @property
    def max_turn_rate(self) -> float:
        """Turn-rate limit (rad/s) at the current speed."""
        return max_turn_rate(MISSILE_G_LIMIT, self.speed_mps, GRAVITY_MPS2)

    # -- guidance -----------------------------------------------------------

    def guide_toward(self, target_km: np.ndarray, dt: float) -> None:
        """Steer toward *target_km*, clamped to the g-limited turn rate.

        A zero-length line of sight keeps the current heading.
        """
        dx = float(target_km[0]) - float(self.position[0])
        dy = float(target_km[1]) - float(self.position[1])
        if math.hypot(dx, dy) < 1e-12:
            return
        desired = math.atan2(dy, dx)
        self.heading = clamp_turn(self.heading, desired, self.max_turn_rate * dt)

    def perturb(self, rng: np.random.RandomState) -> None:
        """Random heading drift while the launcher holds no track."""
        self.heading += rng.uniform(-1.0, 1.0) * UNGUIDED_PERTURBATION_RAD

    # -- kinematics ---------------------------------------------------------

    def advance(self, dt: float) -> None:
        if not self.is_active:
            return
        self.previous_position = self.position.copy()
        step = self.speed_km_s * dt
        self.position = self.position + heading_vector(self.heading) * step
        self.distance_traveled_km += step

    # -- terminal checks ----------------------------------------------------

    def intercepts(self, target_km: np.ndarray) -> bool:
        """Capsule test against the swept segment of the last step.

        Checks the current position first, then the closest approach along
        ``previous_position -> position`` so fast missiles cannot skip
        over a target between steps.
        """
        if distance(self.position, target_km) <= self.kill_radius_km:
            return True
        closest = point_segment_distance(target_km, self.previous_position, self.position)
        return closest <= self.kill_radius_km

    def exceeded_max_range(self) -> bool:
        return self.max_range_km is not None and self.distance_traveled_km > self.max_range_km

    def mark_kill(self, now: float, target_km: np.ndarray) -> None:
        self.status = MissileStatus.KILL
        self.impact_time = now
        self.impact_position = np.array(target_km, dtype=float)
        logger.info(
            "%s killed %s at t=%.1fs (%.2f, %.2f)",
            self.missile_id, self.target_id, now,
            self.impact_position[0], self.impact_position[1],
        )

    def mark_missed(self) -> None:
        self.status = MissileStatus.MISSED
        logger.info(
            "%s missed %s after %.1f km", self.missile_id, self.target_id,
            self.distance_traveled_km,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.missile_id,
            "launched_by": self.side.value,
            "launcher_id": self.launcher_id,
            "target_id": self.target_id,
            "launch_time": self.launch_time,
            "position": self.position.tolist(),
            "heading_rad": self.heading,
            "speed_km_s": self.speed_km_s,
            "status": self.status.value,
        }
