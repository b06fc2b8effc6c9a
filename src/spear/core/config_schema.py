"""Pydantic schema for SPEAR scenario validation.

Mirrors the YAML structure in config/default.yaml. Used when
``validate=True`` is passed to ``SpearConfig.load()``.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

# ---------------------------------------------------------------------------
# Leaf / shared models
# ---------------------------------------------------------------------------


class SystemConfig(BaseModel):
    name: str = "SPEAR"
    version: str = "0.1.0"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    validate_config: bool = False
    log_file: str | None = None
    log_json: bool = False
    seed: int | None = None


class AttenuationConfig(BaseModel):
    path: str | None = None


class GridConfig(BaseModel):
    width_km: float = Field(default=400.0, gt=0)
    height_km: float = Field(default=400.0, gt=0)


class PrecipitationConfig(BaseModel):
    enabled: bool = False
    max_rain_rate: float = Field(default=35.0, gt=0)
    resolution: float = Field(default=1.0, gt=0)
    uniform_rate_mm_h: float = Field(default=0.0, ge=0)
    intensity_path: str | None = None


class RCSConfig(BaseModel):
    nose: float = Field(default=1.0, gt=0)
    tail: float = Field(default=1.0, gt=0)
    side: float = Field(default=1.0, gt=0)
    top: float = Field(default=1.0, gt=0)
    bottom: float = Field(default=1.0, gt=0)


# ---------------------------------------------------------------------------
# Platforms
# ---------------------------------------------------------------------------


class SiteConfig(BaseModel):
    id: str | None = None
    name: str = "SAM"
    position: list[float] = Field(default_factory=lambda: [0.0, 0.0], min_length=2, max_length=2)
    frequency_ghz: float = Field(default=10.0, gt=0)
    antenna_gain_db: float = 35.0
    nominal_range_km: float = Field(default=150.0, gt=0)
    pd: float = Field(default=0.9, gt=0, lt=1)
    pfa: float = Field(default=1e-6, gt=0, lt=1)
    swerling: Literal[0, 1, 2, 3, 4] = 2
    memr_km: float = Field(default=60.0, gt=0)
    missile_speed_mach: float = Field(default=3.0, gt=0)
    acquisition_time_s: float = Field(default=10.0, ge=0)
    launch_interval_s: float = Field(default=5.0, ge=0)
    interceptors: int = Field(default=6, ge=0)
    num_azimuths: int = Field(default=216, ge=1)
    num_pulses: int = Field(default=1, ge=1)
    integration: Literal["coherent", "noncoherent"] = "noncoherent"
    kill_radius_km: float = Field(default=1.0, gt=0)


class FighterConfig(BaseModel):
    id: str | None = None
    name: str = "Fighter"
    position: list[float] = Field(default_factory=lambda: [0.0, 0.0], min_length=2, max_length=2)
    heading_deg: float = 0.0
    speed_mach: float = Field(default=0.9, gt=0)
    maneuver: Literal["straight", "none", "evasive"] = "straight"
    rcs: RCSConfig = Field(default_factory=RCSConfig)
    weapons: int = Field(default=2, ge=0)
    weapon_range_km: float = Field(default=100.0, gt=0)
    weapon_speed_mach: float = Field(default=3.0, gt=0)
    weapon_kill_radius_km: float = Field(default=5.0, gt=0)
    g_limit: float = Field(default=6.0, gt=0)


class ScenarioConfig(BaseModel):
    id: str = "scenario"
    name: str = ""
    time_step_s: float = Field(default=1.0, gt=0)
    max_time_s: float = Field(default=600.0, gt=0)
    grid: GridConfig = Field(default_factory=GridConfig)
    precipitation: PrecipitationConfig = Field(default_factory=PrecipitationConfig)
    sites: list[SiteConfig] = Field(min_length=1)
    fighters: list[FighterConfig] = Field(min_length=1)


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


class SpearRootConfig(BaseModel):
    system: SystemConfig = Field(default_factory=SystemConfig)
    attenuation: AttenuationConfig = Field(default_factory=AttenuationConfig)
    scenario: ScenarioConfig

    model_config = {"extra": "allow"}


class SpearConfigSchema(BaseModel):
    """Top-level wrapper matching YAML root key ``spear:``."""

    spear: SpearRootConfig

    model_config = {"extra": "allow"}


def validate_config(cfg_dict: dict) -> SpearConfigSchema:
    """Validate a raw config dict (e.g. from OmegaConf) against the schema.

    Raises ``pydantic.ValidationError`` on invalid config.
    """
    return SpearConfigSchema.model_validate(cfg_dict)
