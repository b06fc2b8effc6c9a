"""Scenario definition: sites, fighters, grid and precipitation."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from omegaconf import OmegaConf

from spear.core.errors import ConfigurationError
from spear.core.types import FluctuationModel, IntegrationMode, ManeuverMode
from spear.platforms.fighter import FighterSpec, RCSProfile
from spear.platforms.site import SiteSpec
from spear.radar.model import derive_radar_spec

logger = logging.getLogger(__name__)

#: Hard cap on simulated time (seconds).
MAX_SIMULATION_TIME_S = 600.0

_MANEUVER_ALIASES = {
    "straight": ManeuverMode.NONE,
    "none": ManeuverMode.NONE,
    "evasive": ManeuverMode.EVASIVE,
}


def _to_dict(cfg: Any) -> dict:
    """Normalize a DictConfig / mapping / None to a plain dict."""
    if cfg is None:
        return {}
    if OmegaConf.is_config(cfg):
        cfg = OmegaConf.to_container(cfg, resolve=True)
    if not isinstance(cfg, dict):
        cfg = dict(cfg)
    return cfg


def _position(raw: Any, owner: str) -> tuple[float, float]:
    if raw is None:
        return (0.0, 0.0)
    if isinstance(raw, dict):
        return (float(raw.get("x", 0.0)), float(raw.get("y", 0.0)))
    values = list(raw)
    if len(values) != 2:
        raise ConfigurationError(f"{owner}: position must be [x, y] in km, got {values}")
    return (float(values[0]), float(values[1]))


@dataclass
class GridConfig:
    """World extent in km, centered on the origin."""

    width_km: float = 400.0
    height_km: float = 400.0

    @classmethod
    def from_omegaconf(cls, cfg: Any) -> GridConfig:
        cfg = _to_dict(cfg)
        return cls(
            width_km=float(cfg.get("width_km", 400.0)),
            height_km=float(cfg.get("height_km", 400.0)),
        )


@dataclass
class PrecipitationConfig:
    """Optional rain field.

    With ``enabled`` set, the field comes from ``intensity_path`` (an
    8-bit intensity grid saved with ``numpy.save``) when given, otherwise
    a uniform ``uniform_rate_mm_h`` over the grid.
    """

    enabled: bool = False
    max_rain_rate: float = 35.0
    resolution: float = 1.0  # cells per km
    uniform_rate_mm_h: float = 0.0
    intensity_path: str | None = None

    @classmethod
    def from_omegaconf(cls, cfg: Any) -> PrecipitationConfig:
        cfg = _to_dict(cfg)
        return cls(
            enabled=bool(cfg.get("enabled", False)),
            max_rain_rate=float(cfg.get("max_rain_rate", 35.0)),
            resolution=float(cfg.get("resolution", 1.0)),
            uniform_rate_mm_h=float(cfg.get("uniform_rate_mm_h", 0.0)),
            intensity_path=cfg.get("intensity_path"),
        )


@dataclass
class SiteConfig:
    """One radar / interceptor site as written in the scenario file."""

    site_id: str
    name: str = "SAM"
    position_km: tuple[float, float] = (0.0, 0.0)
    frequency_ghz: float = 10.0
    antenna_gain_db: float = 35.0
    nominal_range_km: float = 150.0
    probability_of_detection: float = 0.9
    false_alarm_probability: float = 1e-6
    fluctuation: FluctuationModel = FluctuationModel.SWERLING_2
    memr_km: float = 60.0
    missile_speed_mach: float = 3.0
    acquisition_time_s: float = 10.0
    launch_interval_s: float = 5.0
    interceptors: int = 6
    num_azimuths: int = 216
    num_pulses: int = 1
    integration: IntegrationMode = IntegrationMode.NONCOHERENT
    kill_radius_km: float = 1.0

    @classmethod
    def from_omegaconf(cls, cfg: Any, index: int = 0) -> SiteConfig:
        cfg = _to_dict(cfg)
        site_id = str(cfg.get("id", f"site-{index}"))

        swerling = cfg.get("swerling", 2)
        try:
            fluctuation = FluctuationModel(int(swerling))
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(
                f"Site {site_id}: unknown swerling model {swerling!r}"
            ) from exc
        mode = cfg.get("integration", "noncoherent")
        try:
            integration = IntegrationMode(str(mode).lower())
        except ValueError as exc:
            raise ConfigurationError(
                f"Site {site_id}: unknown integration mode {mode!r}"
            ) from exc

        return cls(
            site_id=site_id,
            name=str(cfg.get("name", "SAM")),
            position_km=_position(cfg.get("position"), site_id),
            frequency_ghz=float(cfg.get("frequency_ghz", 10.0)),
            antenna_gain_db=float(cfg.get("antenna_gain_db", 35.0)),
            nominal_range_km=float(cfg.get("nominal_range_km", 150.0)),
            probability_of_detection=float(cfg.get("pd", 0.9)),
            false_alarm_probability=float(cfg.get("pfa", 1e-6)),
            fluctuation=fluctuation,
            memr_km=float(cfg.get("memr_km", 60.0)),
            missile_speed_mach=float(cfg.get("missile_speed_mach", 3.0)),
            acquisition_time_s=float(cfg.get("acquisition_time_s", 10.0)),
            launch_interval_s=float(cfg.get("launch_interval_s", 5.0)),
            interceptors=int(cfg.get("interceptors", 6)),
            num_azimuths=int(cfg.get("num_azimuths", 216)),
            num_pulses=int(cfg.get("num_pulses", 1)),
            integration=integration,
            kill_radius_km=float(cfg.get("kill_radius_km", 1.0)),
        )

    def to_spec(self) -> SiteSpec:
        try:
            radar = derive_radar_spec(
                self.nominal_range_km,
                self.antenna_gain_db,
                frequency_ghz=self.frequency_ghz,
                pd=self.probability_of_detection,
                pfa=self.false_alarm_probability,
                fluctuation=self.fluctuation,
            )
            return SiteSpec(
                name=self.name,
                radar=radar,
                memr_km=self.memr_km,
                missile_speed_mach=self.missile_speed_mach,
                acquisition_time_s=self.acquisition_time_s,
                launch_interval_s=self.launch_interval_s,
                interceptors=self.interceptors,
                num_azimuths=self.num_azimuths,
                num_pulses=self.num_pulses,
                integration=self.integration,
                kill_radius_km=self.kill_radius_km,
            )
        except ValueError as exc:
            raise ConfigurationError(f"Site {self.site_id}: {exc}") from exc


@dataclass
class FighterConfig:
    """One fighter as written in the scenario file."""

    fighter_id: str
    name: str = "Fighter"
    position_km: tuple[float, float] = (0.0, 0.0)
    heading_deg: float = 0.0
    speed_mach: float = 0.9
    maneuver: ManeuverMode = ManeuverMode.NONE
    rcs: dict = field(default_factory=dict)
    weapons: int = 2
    weapon_range_km: float = 100.0
    weapon_speed_mach: float = 3.0
    weapon_kill_radius_km: float = 5.0
    g_limit: float = 6.0

    @classmethod
    def from_omegaconf(cls, cfg: Any, index: int = 0) -> FighterConfig:
        cfg = _to_dict(cfg)
        fighter_id = str(cfg.get("id", f"fighter-{index}"))
        raw = str(cfg.get("maneuver", "straight"))
        maneuver = _MANEUVER_ALIASES.get(raw.lower())
        if maneuver is None:
            raise ConfigurationError(f"Fighter {fighter_id}: unknown maneuver {raw!r}")
        return cls(
            fighter_id=fighter_id,
            name=str(cfg.get("name", "Fighter")),
            position_km=_position(cfg.get("position"), fighter_id),
            heading_deg=float(cfg.get("heading_deg", 0.0)),
            speed_mach=float(cfg.get("speed_mach", 0.9)),
            maneuver=maneuver,
            rcs=_to_dict(cfg.get("rcs")),
            weapons=int(cfg.get("weapons", 2)),
            weapon_range_km=float(cfg.get("weapon_range_km", 100.0)),
            weapon_speed_mach=float(cfg.get("weapon_speed_mach", 3.0)),
            weapon_kill_radius_km=float(cfg.get("weapon_kill_radius_km", 5.0)),
            g_limit=float(cfg.get("g_limit", 6.0)),
        )

    def to_spec(self) -> FighterSpec:
        try:
            rcs = RCSProfile.from_config(self.rcs)
        except ValueError as exc:
            raise ConfigurationError(f"Fighter {self.fighter_id}: {exc}") from exc
        return FighterSpec(
            name=self.name,
            rcs=rcs,
            speed_mach=self.speed_mach,
            weapon_speed_mach=self.weapon_speed_mach,
            weapon_range_km=self.weapon_range_km,
            weapons=self.weapons,
            weapon_kill_radius_km=self.weapon_kill_radius_km,
            g_limit=self.g_limit,
        )


@dataclass
class ScenarioConfig:
    """Complete scenario definition."""

    scenario_id: str = "scenario"
    name: str = ""
    time_step_s: float = 1.0
    max_time_s: float = MAX_SIMULATION_TIME_S
    grid: GridConfig = field(default_factory=GridConfig)
    precipitation: PrecipitationConfig = field(default_factory=PrecipitationConfig)
    sites: list[SiteConfig] = field(default_factory=list)
    fighters: list[FighterConfig] = field(default_factory=list)

    @classmethod
    def from_omegaconf(cls, cfg: Any) -> ScenarioConfig:
        """Build from the ``spear.scenario`` section and check structure.

        Raises:
            ConfigurationError: no sites, no fighters, duplicate ids or a
                non-positive time step.
        """
        cfg = _to_dict(cfg)
        sites = [
            SiteConfig.from_omegaconf(s, i) for i, s in enumerate(cfg.get("sites") or [])
        ]
        fighters = [
            FighterConfig.from_omegaconf(f, i)
            for i, f in enumerate(cfg.get("fighters") or [])
        ]
        scenario = cls(
            scenario_id=str(cfg.get("id", "scenario")),
            name=str(cfg.get("name", "")),
            time_step_s=float(cfg.get("time_step_s", 1.0)),
            max_time_s=float(cfg.get("max_time_s", MAX_SIMULATION_TIME_S)),
            grid=GridConfig.from_omegaconf(cfg.get("grid")),
            precipitation=PrecipitationConfig.from_omegaconf(cfg.get("precipitation")),
            sites=sites,
            fighters=fighters,
        )
        scenario.check()
        return scenario

    def check(self) -> None:
        if not self.sites:
            raise ConfigurationError("Scenario must have at least one radar site")
        if not self.fighters:
            raise ConfigurationError("Scenario must have at least one fighter")
        if self.time_step_s <= 0:
            raise ConfigurationError(f"time_step_s must be positive, got {self.time_step_s}")
        ids = [s.site_id for s in self.sites] + [f.fighter_id for f in self.fighters]
        dupes = sorted({i for i in ids if ids.count(i) > 1})
        if dupes:
            raise ConfigurationError(f"Duplicate platform ids: {', '.join(dupes)}")
