"""Engagement simulation: missiles, scenario definition and the coordinator.

The coordinator steps sites, fighters and missiles through tracking,
launch, guidance, kinematics and kill evaluation on a fixed time step.
"""

from spear.engagement.config import (
    FighterConfig,
    GridConfig,
    PrecipitationConfig,
    ScenarioConfig,
    SiteConfig,
)
from spear.engagement.missile import Missile
from spear.engagement.results import (
    EngagementResult,
    MissileResult,
    SiteView,
    StepSnapshot,
)
from spear.engagement.scenario import (
    EngagementCoordinator,
    build_coordinator,
    build_field,
)

__all__ = [
    "EngagementCoordinator",
    "EngagementResult",
    "FighterConfig",
    "GridConfig",
    "Missile",
    "MissileResult",
    "PrecipitationConfig",
    "ScenarioConfig",
    "SiteConfig",
    "SiteView",
    "StepSnapshot",
    "build_coordinator",
    "build_field",
]
