"""Shared pytest fixtures for SPEAR tests."""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
import pytest
from omegaconf import OmegaConf

from spear.core.types import ManeuverMode
from spear.engagement.scenario import EngagementCoordinator
from spear.environment.precipitation import PrecipitationField
from spear.platforms.fighter import Fighter, FighterSpec, RCSProfile
from spear.platforms.site import RadarSite, SiteSpec
from spear.radar.attenuation import AttenuationTable
from spear.radar.model import derive_radar_spec


@pytest.fixture
def project_root() -> Path:
    return Path(__file__).parent.parent


@pytest.fixture
def config_path(project_root: Path) -> Path:
    return project_root / "config" / "default.yaml"


@pytest.fixture
def default_config(config_path: Path):
    return OmegaConf.load(config_path)


@pytest.fixture
def small_table() -> AttenuationTable:
    """3 frequencies (9, 10, 11 GHz) x 4 rain rates (1, 5, 10, 50 mm/h)."""
    matrix = [
        [0.01, 0.05, 0.10, 0.50],
        [0.02, 0.10, 0.20, 1.00],
        [0.03, 0.15, 0.30, 1.50],
    ]
    return AttenuationTable.from_matrix(
        matrix,
        frequency_start_ghz=9.0,
        frequency_step_ghz=1.0,
        rain_rates=[1.0, 5.0, 10.0, 50.0],
    )


@pytest.fixture
def packaged_table() -> AttenuationTable:
    return AttenuationTable.default()


@pytest.fixture
def rain_field():
    """Factory for uniform rain fields over a 400 x 400 km grid."""

    def _make(rate: float = 10.0, resolution: float = 1.0) -> PrecipitationField:
        return PrecipitationField.uniform(rate, 400.0, 400.0, resolution=resolution)

    return _make


@pytest.fixture
def uniform_rcs() -> RCSProfile:
    return RCSProfile(nose=1.0, tail=1.0, side=1.0, top=1.0, bottom=1.0)


@pytest.fixture
def make_site():
    """Factory for radar sites with a derived 10 GHz radar."""

    def _make(
        site_id: str = "sam-1",
        position=(0.0, 0.0),
        nominal_range_km: float = 50.0,
        table: AttenuationTable | None = None,
        num_azimuths: int = 216,
        **spec_kwargs,
    ) -> RadarSite:
        radar = derive_radar_spec(nominal_range_km, 35.0, frequency_ghz=10.0)
        spec_kwargs.setdefault("memr_km", 30.0)
        spec = SiteSpec(name="SAM", radar=radar, num_azimuths=num_azimuths, **spec_kwargs)
        return RadarSite(site_id, spec, position, table=table)

    return _make


@pytest.fixture
def make_fighter(uniform_rcs):
    """Factory for fighters; defaults to a unit-RCS fighter heading east."""

    def _make(
        fighter_id: str = "lead",
        position=(-40.0, 0.0),
        heading_deg: float = 0.0,
        maneuver: ManeuverMode = ManeuverMode.NONE,
        rcs: RCSProfile | None = None,
        **spec_kwargs,
    ) -> Fighter:
        spec = FighterSpec(name="Fighter", rcs=rcs or uniform_rcs, **spec_kwargs)
        return Fighter(fighter_id, spec, position, heading_deg=heading_deg, maneuver=maneuver)

    return _make


@pytest.fixture
def quiet_coordinator(make_site, make_fighter) -> EngagementCoordinator:
    """One unarmed site and one unarmed fighter, clear air, seeded."""
    site = make_site(interceptors=0)
    fighter = make_fighter(position=(-150.0, 0.0), weapons=0)
    return EngagementCoordinator("quiet", [site], [fighter], time_step_s=1.0, seed=3)


@pytest.fixture
def rng() -> np.random.RandomState:
    return np.random.RandomState(42)


@pytest.fixture
def restore_spear_logger():
    """Undo handler and level changes made by ``setup_logging``."""
    root = logging.getLogger("spear")
    handlers, level, propagate = list(root.handlers), root.level, root.propagate
    yield
    for handler in list(root.handlers):
        if isinstance(handler, logging.FileHandler):
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    root.propagate = propagate
