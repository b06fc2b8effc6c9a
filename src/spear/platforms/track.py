"""Per-(site, target) radar track record."""

from __future__ import annotations

from dataclasses import dataclass

from spear.core.types import TrackStatus


@dataclass
class Track:
    """A radar site's track on one target.

    Created on first detection and refreshed every step the target stays
    inside the detection range. The owning site deletes it the first
    step the target falls outside.
    """

    target_id: str
    acquisition_time: float  # simulation seconds
    distance_km: float
    azimuth_deg: float
    time_in_track: float = 0.0
    status: TrackStatus = TrackStatus.TRACKING

    def refresh(self, distance_km: float, azimuth_deg: float, dt: float) -> None:
        self.distance_km = distance_km
        self.azimuth_deg = azimuth_deg
        self.time_in_track += dt
        self.status = TrackStatus.TRACKING

    def to_dict(self) -> dict:
        return {
            "target_id": self.target_id,
            "acquisition_time": self.acquisition_time,
            "distance_km": round(self.distance_km, 3),
            "azimuth_deg": round(self.azimuth_deg, 2),
            "time_in_track": self.time_in_track,
            "status": self.status.value,
        }
