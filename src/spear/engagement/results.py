"""Per-step snapshots and the terminal engagement result."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from spear.core.types import LaunchSide, MissileStatus


@dataclass(frozen=True)
class SiteView:
    """A site's view of the lead fighter at one step."""

    site_id: str
    memr_km: float
    detection_range_km: float
    distance_km: float
    tracking: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "site_id": self.site_id,
            "memr_km": self.memr_km,
            "detection_range_km": round(self.detection_range_km, 3),
            "distance_km": round(self.distance_km, 3),
            "tracking": self.tracking,
        }


@dataclass(frozen=True)
class StepSnapshot:
    """Everything a caller needs to render or log one step."""

    time_s: float
    complete: bool
    sites: list[dict[str, Any]] = field(default_factory=list)
    fighters: list[dict[str, Any]] = field(default_factory=list)
    missiles: list[dict[str, Any]] = field(default_factory=list)
    site_views: list[SiteView] = field(default_factory=list)

    @property
    def active_missile_count(self) -> int:
        return sum(1 for m in self.missiles if m["status"] == MissileStatus.ACTIVE.value)

    def to_dict(self) -> dict[str, Any]:
        return {
            "time_s": self.time_s,
            "complete": self.complete,
            "sites": self.sites,
            "fighters": self.fighters,
            "missiles": self.missiles,
            "site_views": [v.to_dict() for v in self.site_views],
        }


@dataclass(frozen=True)
class MissileResult:
    """Launch / impact record for one missile."""

    missile_id: str
    launched_by: LaunchSide
    launcher_id: str
    target_id: str
    launch_time: float
    status: MissileStatus
    impact_time: float | None = None
    impact_position: tuple[float, float] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.missile_id,
            "launched_by": self.launched_by.value,
            "launcher_id": self.launcher_id,
            "target_id": self.target_id,
            "launch_time": self.launch_time,
            "impact_time": self.impact_time,
            "impact_position": list(self.impact_position) if self.impact_position else None,
            "status": self.status.value,
        }


@dataclass(frozen=True)
class EngagementResult:
    """Terminal outcome.

    ``success`` is true when every site was destroyed.
    """

    scenario_id: str
    success: bool
    time_s: float
    missiles: list[MissileResult] = field(default_factory=list)
    destroyed: list[str] = field(default_factory=list)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def count(self, side: LaunchSide, status: MissileStatus | None = None) -> int:
        return sum(
            1 for m in self.missiles
            if m.launched_by == side and (status is None or m.status == status)
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "scenario_id": self.scenario_id,
            "success": self.success,
            "time_s": self.time_s,
            "missiles": [m.to_dict() for m in self.missiles],
            "destroyed": list(self.destroyed),
            "timestamp": self.timestamp.isoformat(),
        }
