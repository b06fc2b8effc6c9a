"""Ground radar / interceptor site.

A site owns one :class:`~spear.radar.model.RadarModel`, a per-azimuth
cache of detection ranges against a 1 m^2 target, its interceptor
inventory and its tracks keyed by target id.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from spear.core.types import IntegrationMode, PlatformState, mach_to_km_s
from spear.environment.precipitation import RainRateField
from spear.platforms.track import Track
from spear.radar.attenuation import AttenuationTable
from spear.radar.model import RadarModel, RadarSiteSpec
from spear.utils.geometry import azimuth_deg, distance

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SiteSpec:
    """Static radar and weapon parameters for a site."""

    name: str
    radar: RadarSiteSpec
    memr_km: float  # maximum effective missile range
    missile_speed_mach: float = 3.0
    acquisition_time_s: float = 10.0
    launch_interval_s: float = 5.0
    interceptors: int = 6
    num_azimuths: int = 216
    num_pulses: int = 1
    integration: IntegrationMode = IntegrationMode.NONCOHERENT
    kill_radius_km: float = 1.0

    def __post_init__(self):
        if self.num_azimuths < 1:
            raise ValueError(f"num_azimuths must be >= 1, got {self.num_azimuths}")
        if self.num_pulses < 1:
            raise ValueError(f"num_pulses must be >= 1, got {self.num_pulses}")


class RadarSite:
    """A radar / interceptor site in one engagement run.

    Args:
        site_id: Unique id within the scenario.
        spec: Static site parameters.
        position_km: [x, y] in km.
        table: Rain attenuation dataset shared by the scenario.
    """

    def __init__(
        self,
        site_id: str,
        spec: SiteSpec,
        position_km,
        table: AttenuationTable | None = None,
    ):
        self.site_id = site_id
        self.spec = spec
        self.position = np.array(position_km, dtype=float)
        self.model = RadarModel(spec.radar, table, spec.integration)
        self.state = PlatformState.ACTIVE
        self.interceptors_remaining = spec.interceptors
        self.interceptors_launched = 0
        self.last_launch_time = 0.0
        self.tracks: dict[str, Track] = {}
        self._ranges = np.full(
            spec.num_azimuths, self.model.free_space_range(1.0, spec.num_pulses),
        )
        self._fallback_count = 0

    # -- detection ranges ---------------------------------------------------

    def compute_detection_ranges(self, field: RainRateField | None) -> np.ndarray:
        """Sample one attenuated 1 m^2 range per azimuth bucket.

        Called at scenario initialization and whenever the field is
        reloaded. Buckets whose attenuation could not be evaluated keep
        the free-space range.
        """
        n = self.spec.num_azimuths
        ranges = np.empty(n, dtype=float)
        fallbacks = 0
        reason = None
        for i in range(n):
            result = self.model.detection_range(
                1.0, self.position, 360.0 * i / n, field, self.spec.num_pulses,
            )
            if result.is_fallback:
                fallbacks += 1
                reason = result.fallback_reason
            ranges[i] = result.range_km
        if fallbacks:
            logger.warning(
                "Site %s: %d/%d azimuths fell back to free-space range (%s)",
                self.site_id, fallbacks, n, reason,
            )
        self._ranges = ranges
        self._fallback_count = fallbacks
        logger.info(
            "Site %s detection ranges: min %.1f km, max %.1f km over %d azimuths",
            self.site_id, float(ranges.min()), float(ranges.max()), n,
        )
        return ranges

    @property
    def detection_ranges(self) -> np.ndarray:
        return self._ranges.copy()

    @property
    def fallback_count(self) -> int:
        return self._fallback_count

    def azimuth_index(self, azimuth: float) -> int:
        n = self.spec.num_azimuths
        return int(round((azimuth % 360.0) / 360.0 * n)) % n

    def range_at_azimuth(self, azimuth: float) -> float:
        """1 m^2 detection range of the bucket nearest *azimuth* (degrees)."""
        return float(self._ranges[self.azimuth_index(azimuth)])

    def detection_range_for(self, rcs_m2: float, azimuth: float) -> float:
        """Detection range for a target of *rcs_m2* at *azimuth*."""
        if rcs_m2 <= 0:
            return 0.0
        return self.range_at_azimuth(azimuth) * rcs_m2 ** 0.25

    def received_snr_db(self, rcs_m2: float, target_km: np.ndarray) -> float:
        az = self.azimuth_to(target_km)
        return self.model.received_snr_db(
            self.detection_range_for(rcs_m2, az), self.distance_to(target_km),
        )

    # -- geometry -----------------------------------------------------------

    def azimuth_to(self, target_km: np.ndarray) -> float:
        return azimuth_deg(self.position, target_km)

    def distance_to(self, target_km: np.ndarray) -> float:
        return distance(self.position, target_km)

    # -- tracks -------------------------------------------------------------

    @property
    def has_active_track(self) -> bool:
        return len(self.tracks) > 0

    def is_tracking(self, target_id: str) -> bool:
        return target_id in self.tracks

    def upsert_track(
        self,
        target_id: str,
        distance_km: float,
        azimuth: float,
        now: float,
        dt: float,
    ) -> Track:
        track = self.tracks.get(target_id)
        if track is None:
            track = Track(
                target_id=target_id,
                acquisition_time=now,
                distance_km=distance_km,
                azimuth_deg=azimuth,
                time_in_track=dt,
            )
            self.tracks[target_id] = track
            logger.debug("Site %s acquired %s at %.1f km", self.site_id, target_id, distance_km)
        else:
            track.refresh(distance_km, azimuth, dt)
        return track

    def drop_track(self, target_id: str) -> bool:
        if self.tracks.pop(target_id, None) is not None:
            logger.debug("Site %s lost track on %s", self.site_id, target_id)
            return True
        return False

    # -- weapons ------------------------------------------------------------

    @property
    def is_active(self) -> bool:
        return self.state == PlatformState.ACTIVE

    @property
    def missile_speed_km_s(self) -> float:
        return mach_to_km_s(self.spec.missile_speed_mach)

    def ready_to_launch(self, now: float) -> bool:
        if self.interceptors_remaining <= 0:
            return False
        return now - self.last_launch_time >= self.spec.launch_interval_s

    def record_launch(self, now: float) -> None:
        self.interceptors_remaining -= 1
        self.interceptors_launched += 1
        self.last_launch_time = now

    def reset(self) -> None:
        """Restore inventory and state and drop every track.

        The detection-range cache is kept; it only depends on the field.
        """
        self.state = PlatformState.ACTIVE
        self.interceptors_remaining = self.spec.interceptors
        self.interceptors_launched = 0
        self.last_launch_time = 0.0
        self.tracks.clear()

    def destroy(self) -> None:
        if self.is_active:
            logger.info("Site %s destroyed", self.site_id)
        self.state = PlatformState.DESTROYED

    def to_dict(self) -> dict:
        return {
            "id": self.site_id,
            "name": self.spec.name,
            "position": self.position.tolist(),
            "memr_km": self.spec.memr_km,
            "interceptors_remaining": self.interceptors_remaining,
            "interceptors_launched": self.interceptors_launched,
            "last_launch_time": self.last_launch_time,
            "state": self.state.value,
            "tracks": [t.to_dict() for t in self.tracks.values()],
        }
