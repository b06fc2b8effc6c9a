"""Time-stepped engagement coordinator.

Each :meth:`EngagementCoordinator.advance` runs, in order:

1. tracking update for every (site, fighter) pair
2. site launch decisions
3. aircraft launch decisions
4. missile guidance
5. missile kinematics
6. fighter evasive steering
7. fighter kinematics
8. kill / miss evaluation
9. completion check

Missiles hold target ids, never platform references; targets are
resolved against the coordinator's own stores each step.
"""

from __future__ import annotations

import logging

import numpy as np
import structlog

from spear.core.clock import SimClock
from spear.core.errors import ConfigurationError
from spear.core.types import LaunchSide, ManeuverMode, MissileStatus
from spear.engagement.config import MAX_SIMULATION_TIME_S, ScenarioConfig
from spear.engagement.missile import Missile
from spear.engagement.results import (
    EngagementResult,
    MissileResult,
    SiteView,
    StepSnapshot,
)
from spear.environment.precipitation import PrecipitationField, RainRateField
from spear.platforms.fighter import Fighter
from spear.platforms.site import RadarSite
from spear.radar.attenuation import AttenuationTable
from spear.utils.geometry import bearing_rad, distance

logger = logging.getLogger(__name__)


class EngagementCoordinator:
    """Owns every platform and missile of one engagement run.

    Args:
        scenario_id: Identifier copied into results.
        sites: Radar / interceptor sites.
        fighters: Fighters.
        time_step_s: Fixed step duration.
        field: Rain-rate field, or ``None`` for clear air.
        seed: Seed for the unguided-missile heading perturbation.
        max_time_s: Simulated-time cap.
    """

    def __init__(
        self,
        scenario_id: str,
        sites: list[RadarSite],
        fighters: list[Fighter],
        time_step_s: float = 1.0,
        field: RainRateField | None = None,
        seed: int | None = None,
        max_time_s: float = MAX_SIMULATION_TIME_S,
    ):
        if not sites:
            raise ConfigurationError("Scenario must have at least one radar site")
        if not fighters:
            raise ConfigurationError("Scenario must have at least one fighter")
        if time_step_s <= 0:
            raise ConfigurationError(f"time_step_s must be positive, got {time_step_s}")

        self.scenario_id = scenario_id
        self.time_step_s = time_step_s
        self.max_time_s = max_time_s
        self._sites = {s.site_id: s for s in sites}
        self._fighters = {f.fighter_id: f for f in fighters}
        self._missiles: list[Missile] = []
        self._clock = SimClock()
        self._seed = seed
        self._rng = np.random.RandomState(seed)
        self._complete = False
        self._field: RainRateField | None = None
        self.load_field(field)

    # -- accessors ----------------------------------------------------------

    @property
    def time_s(self) -> float:
        return self._clock.elapsed()

    @property
    def is_complete(self) -> bool:
        return self._complete

    @property
    def sites(self) -> list[RadarSite]:
        return list(self._sites.values())

    @property
    def fighters(self) -> list[Fighter]:
        return list(self._fighters.values())

    @property
    def missiles(self) -> list[Missile]:
        return list(self._missiles)

    def site(self, site_id: str) -> RadarSite:
        return self._sites[site_id]

    def fighter(self, fighter_id: str) -> Fighter:
        return self._fighters[fighter_id]

    def load_field(self, field: RainRateField | None) -> None:
        """Install a rain field and recompute every site's range cache."""
        self._field = field
        for site in self._sites.values():
            site.compute_detection_ranges(field)

    # -- stepping -----------------------------------------------------------

    def advance(self) -> bool:
        """Advance one time step. Returns whether the engagement is complete."""
        if self._complete:
            return True
        with structlog.contextvars.bound_contextvars(scenario=self.scenario_id):
            return self._step()

    def _step(self) -> bool:
        dt = self.time_step_s
        self._clock.step(dt)
        now = self._clock.elapsed()

        self._update_tracks(now, dt)
        self._site_launches(now)
        self._aircraft_launches(now)
        self._guide_missiles(dt)
        for missile in self._missiles:
            missile.advance(dt)
        self._evasive_maneuvers(dt)
        for fighter in self._fighters.values():
            fighter.advance(dt)
        self._evaluate_kills(now)

        self._complete = self._check_complete(now)
        if self._complete:
            logger.info(
                "Engagement %s complete at t=%.1fs (%d missiles)",
                self.scenario_id, now, len(self._missiles),
            )
        return self._complete

    def run(self) -> EngagementResult:
        """Advance until complete and return the result."""
        while not self.advance():
            pass
        return self.result()

    def reset(self) -> None:
        """Return to t=0 with the initial platform states and no missiles."""
        for site in self._sites.values():
            site.reset()
        for fighter in self._fighters.values():
            fighter.reset()
        self._missiles.clear()
        self._clock.reset()
        self._rng = np.random.RandomState(self._seed)
        self._complete = False
        logger.info("Engagement %s reset", self.scenario_id)

    # -- step phases --------------------------------------------------------

    def _update_tracks(self, now: float, dt: float) -> None:
        for site in self._sites.values():
            for fighter in self._fighters.values():
                if not (site.is_active and fighter.is_active):
                    site.drop_track(fighter.fighter_id)
                    continue
                dist = site.distance_to(fighter.position)
                az = site.azimuth_to(fighter.position)
                rcs = fighter.rcs_seen_from(site.position)
                if dist <= site.detection_range_for(rcs, az):
                    site.upsert_track(fighter.fighter_id, dist, az, now, dt)
                else:
                    site.drop_track(fighter.fighter_id)

    def _site_launches(self, now: float) -> None:
        for site in self._sites.values():
            if not site.is_active:
                continue
            for target_id, track in list(site.tracks.items()):
                target = self._fighters.get(target_id)
                if target is None or not target.is_active:
                    continue
                if track.distance_km > site.spec.memr_km:
                    continue
                if track.time_in_track < site.spec.acquisition_time_s:
                    continue
                if not site.ready_to_launch(now):
                    continue
                self._launch(
                    side=LaunchSide.SITE,
                    launcher_id=site.site_id,
                    target_id=target_id,
                    origin=site.position,
                    heading=bearing_rad(site.position, target.position),
                    speed_km_s=site.missile_speed_km_s,
                    kill_radius_km=site.spec.kill_radius_km,
                    max_range_km=site.spec.memr_km,
                    now=now,
                )
                site.record_launch(now)

    def _aircraft_launches(self, now: float) -> None:
        # Any track held by the site is enough; it need not be on this fighter.
        for fighter in self._fighters.values():
            if not fighter.is_active:
                continue
            for site in self._sites.values():
                if not site.is_active or fighter.weapons_remaining <= 0:
                    continue
                if distance(fighter.position, site.position) > fighter.spec.weapon_range_km:
                    continue
                if not site.has_active_track:
                    continue
                self._launch(
                    side=LaunchSide.AIRCRAFT,
                    launcher_id=fighter.fighter_id,
                    target_id=site.site_id,
                    origin=fighter.position,
                    heading=bearing_rad(fighter.position, site.position),
                    speed_km_s=fighter.weapon_speed_km_s,
                    kill_radius_km=fighter.spec.weapon_kill_radius_km,
                    max_range_km=None,
                    now=now,
                )
                fighter.weapons_remaining -= 1

    def _guide_missiles(self, dt: float) -> None:
        for missile in self._missiles:
            if not missile.is_active:
                continue
            if self._is_guided(missile):
                missile.guide_toward(self._target_position(missile), dt)
            else:
                missile.perturb(self._rng)

    def _evasive_maneuvers(self, dt: float) -> None:
        for fighter in self._fighters.values():
            if fighter.maneuver != ManeuverMode.EVASIVE or not fighter.is_active:
                continue
            nearest = min(
                self._sites.values(), key=lambda s: distance(s.position, fighter.position),
            )
            fighter.steer_away_from(nearest.position, dt)

    def _evaluate_kills(self, now: float) -> None:
        for missile in self._missiles:
            if not missile.is_active:
                continue
            target = self._target(missile)
            if target.is_active and missile.intercepts(target.position):
                missile.mark_kill(now, target.position)
                target.destroy()
            elif missile.exceeded_max_range():
                missile.mark_missed()

    def _check_complete(self, now: float) -> bool:
        if any(not s.is_active for s in self._sites.values()):
            return True
        if any(not f.is_active for f in self._fighters.values()):
            return True
        if self._missiles and all(not m.is_active for m in self._missiles):
            return True
        return now >= self.max_time_s

    # -- helpers ------------------------------------------------------------

    def _launch(
        self,
        *,
        side: LaunchSide,
        launcher_id: str,
        target_id: str,
        origin: np.ndarray,
        heading: float,
        speed_km_s: float,
        kill_radius_km: float,
        max_range_km: float | None,
        now: float,
    ) -> Missile:
        prefix = "SAM" if side == LaunchSide.SITE else "ARM"
        missile_id = f"{prefix}-{now:g}"
        taken = {m.missile_id for m in self._missiles}
        n = 1
        while missile_id in taken:
            n += 1
            missile_id = f"{prefix}-{now:g}-{n}"

        missile = Missile(
            missile_id=missile_id,
            side=side,
            launcher_id=launcher_id,
            target_id=target_id,
            position=origin.copy(),
            speed_km_s=speed_km_s,
            heading=heading,
            launch_time=now,
            kill_radius_km=kill_radius_km,
            max_range_km=max_range_km,
        )
        self._missiles.append(missile)
        logger.info(
            "%s launched %s at %s (t=%.1fs)", launcher_id, missile_id, target_id, now,
        )
        return missile

    def _target(self, missile: Missile) -> Fighter | RadarSite:
        if missile.side == LaunchSide.SITE:
            return self._fighters[missile.target_id]
        return self._sites[missile.target_id]

    def _target_position(self, missile: Missile) -> np.ndarray:
        return self._target(missile).position

    def _is_guided(self, missile: Missile) -> bool:
        """Aircraft weapons home on emitters; interceptors need a site track."""
        if missile.side == LaunchSide.AIRCRAFT:
            return True
        return any(s.is_tracking(missile.target_id) for s in self._sites.values())

    # -- outputs ------------------------------------------------------------

    def snapshot(self) -> StepSnapshot:
        lead = next(iter(self._fighters.values()))
        views = []
        for site in self._sites.values():
            az = site.azimuth_to(lead.position)
            views.append(SiteView(
                site_id=site.site_id,
                memr_km=site.spec.memr_km,
                detection_range_km=site.detection_range_for(
                    lead.rcs_seen_from(site.position), az,
                ),
                distance_km=site.distance_to(lead.position),
                tracking=site.is_tracking(lead.fighter_id),
            ))
        return StepSnapshot(
            time_s=self.time_s,
            complete=self._complete,
            sites=[s.to_dict() for s in self._sites.values()],
            fighters=[f.to_dict() for f in self._fighters.values()],
            missiles=[m.to_dict() for m in self._missiles],
            site_views=views,
        )

    def result(self) -> EngagementResult:
        records = []
        for m in self._missiles:
            killed = m.status == MissileStatus.KILL
            records.append(MissileResult(
                missile_id=m.missile_id,
                launched_by=m.side,
                launcher_id=m.launcher_id,
                target_id=m.target_id,
                launch_time=m.launch_time,
                status=m.status,
                impact_time=m.impact_time if killed else None,
                impact_position=(
                    tuple(float(v) for v in m.impact_position)
                    if killed and m.impact_position is not None else None
                ),
            ))
        destroyed = [s.site_id for s in self._sites.values() if not s.is_active]
        destroyed += [f.fighter_id for f in self._fighters.values() if not f.is_active]
        return EngagementResult(
            scenario_id=self.scenario_id,
            success=all(not s.is_active for s in self._sites.values()),
            time_s=self.time_s,
            missiles=records,
            destroyed=destroyed,
        )


def build_field(cfg: ScenarioConfig) -> PrecipitationField | None:
    """Rain field described by the scenario, or ``None`` when disabled."""
    precip = cfg.precipitation
    if not precip.enabled:
        return None
    if precip.intensity_path:
        return PrecipitationField.load(
            precip.intensity_path,
            cfg.grid.width_km,
            cfg.grid.height_km,
            precip.max_rain_rate,
        )
    return PrecipitationField.uniform(
        precip.uniform_rate_mm_h,
        cfg.grid.width_km,
        cfg.grid.height_km,
        resolution=precip.resolution,
        max_rain_rate=precip.max_rain_rate,
    )


def build_coordinator(
    cfg: ScenarioConfig,
    table: AttenuationTable | None = None,
    field: RainRateField | None = None,
    seed: int | None = None,
) -> EngagementCoordinator:
    """Instantiate platforms from *cfg* and wire them to a coordinator.

    An explicit *field* takes precedence over the scenario's own
    precipitation section.

    Raises:
        ConfigurationError: if the scenario is structurally invalid.
    """
    cfg.check()
    if field is None:
        field = build_field(cfg)

    sites = [
        RadarSite(s.site_id, s.to_spec(), s.position_km, table=table) for s in cfg.sites
    ]
    fighters = [
        Fighter(
            f.fighter_id, f.to_spec(), f.position_km,
            heading_deg=f.heading_deg, maneuver=f.maneuver,
        )
        for f in cfg.fighters
    ]
    logger.info(
        "Building scenario %s: %d sites, %d fighters, dt=%.2fs, precipitation=%s",
        cfg.scenario_id, len(sites), len(fighters), cfg.time_step_s,
        "on" if field is not None else "off",
    )
    return EngagementCoordinator(
        cfg.scenario_id,
        sites,
        fighters,
        time_step_s=cfg.time_step_s,
        field=field,
        seed=seed,
        max_time_s=cfg.max_time_s,
    )
