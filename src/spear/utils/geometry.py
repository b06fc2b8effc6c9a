"""Planar geometry and heading utilities.

Convention: x east, y north, kilometres. Headings and bearings are
measured from +x, positive counter-clockwise. Azimuths in degrees are
reported in [0, 360).
"""

from __future__ import annotations

import math

import numpy as np


def wrap_to_pi(angle_rad: float) -> float:
    """Wrap an angle to [-pi, pi]."""
    return math.atan2(math.sin(angle_rad), math.cos(angle_rad))


def update_heading(prev_rad: float, target_rad: float) -> float:
    """Heading equivalent to *target_rad* that is closest to *prev_rad*.

    Keeps headings continuous across the +/-pi seam.
    """
    return prev_rad + wrap_to_pi(target_rad - prev_rad)


def clamp_turn(prev_rad: float, target_rad: float, max_delta_rad: float) -> float:
    """Turn from *prev_rad* toward *target_rad* by at most *max_delta_rad*."""
    delta = update_heading(prev_rad, target_rad) - prev_rad
    if abs(delta) > max_delta_rad:
        return prev_rad + math.copysign(max_delta_rad, delta)
    return prev_rad + delta


def max_turn_rate(g_limit: float, speed_mps: float, gravity: float = 9.8) -> float:
    """Maximum turn rate (rad/s) for a g-limited body at *speed_mps*.

    Returns ``inf`` for a stationary body.
    """
    if speed_mps <= 0:
        return math.inf
    return g_limit * gravity / speed_mps


def distance(a: np.ndarray, b: np.ndarray) -> float:
    return float(math.hypot(float(b[0]) - float(a[0]), float(b[1]) - float(a[1])))


def bearing_rad(origin: np.ndarray, target: np.ndarray) -> float:
    """Bearing from *origin* to *target* in radians, in [-pi, pi]."""
    return math.atan2(float(target[1]) - float(origin[1]), float(target[0]) - float(origin[0]))


def azimuth_deg(origin: np.ndarray, target: np.ndarray) -> float:
    """Azimuth from *origin* to *target* in degrees, in [0, 360)."""
    az = math.degrees(bearing_rad(origin, target))
    if az < 0:
        az += 360.0
    return az % 360.0


def heading_vector(heading_rad: float) -> np.ndarray:
    return np.array([math.cos(heading_rad), math.sin(heading_rad)])


def point_segment_distance(
    point: np.ndarray,
    seg_start: np.ndarray,
    seg_end: np.ndarray,
) -> float:
    """Distance from *point* to the segment ``seg_start -> seg_end``.

    The projection parameter is clamped to [0, 1]; a degenerate segment
    reduces to point-to-point distance.
    """
    p = np.asarray(point, dtype=float)
    a = np.asarray(seg_start, dtype=float)
    b = np.asarray(seg_end, dtype=float)
    ab = b - a
    denom = float(np.dot(ab, ab))
    if denom < 1e-18:
        return float(np.linalg.norm(p - a))
    t = float(np.clip(np.dot(p - a, ab) / denom, 0.0, 1.0))
    closest = a + t * ab
    return float(np.linalg.norm(p - closest))
