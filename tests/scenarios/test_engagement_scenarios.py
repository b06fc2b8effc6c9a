"""End-to-end engagement scenarios driven through the coordinator."""

from __future__ import annotations

import json
import math

import numpy as np
import pytest

from spear.core.errors import ConfigurationError
from spear.core.types import LaunchSide, ManeuverMode, MissileStatus
from spear.engagement.config import ScenarioConfig
from spear.engagement.missile import Missile
from spear.engagement.scenario import EngagementCoordinator, build_coordinator
from spear.platforms.fighter import RCSProfile
from spear.radar.attenuation import AttenuationTable
from spear.utils.geometry import distance, wrap_to_pi

MACH_FOR_1_KM_S = 1000.0 / 343.0


def _coordinator(sites, fighters, **kwargs) -> EngagementCoordinator:
    kwargs.setdefault("seed", 11)
    return EngagementCoordinator("test", sites, fighters, time_step_s=1.0, **kwargs)


# ---------------------------------------------------------------------------
# Intercept geometry
# ---------------------------------------------------------------------------


class TestInterceptTiming:
    def test_missile_against_stationary_target(self):
        target = np.array([5.0, 0.0])
        missile = Missile(
            missile_id="SAM-0", side=LaunchSide.SITE, launcher_id="s", target_id="t",
            position=np.zeros(2), speed_km_s=1.0, heading=0.0, launch_time=0.0,
            kill_radius_km=1.0, max_range_km=30.0,
        )
        t = 0.0
        while missile.is_active and t < 20:
            t += 1.0
            missile.guide_toward(target, 1.0)
            missile.advance(1.0)
            if missile.intercepts(target):
                missile.mark_kill(t, target)
        # kill radius is inclusive: at t=4 the missile sits exactly 1 km short
        assert missile.status == MissileStatus.KILL
        assert missile.impact_time == 4.0
        assert missile.position.tolist() == [4.0, 0.0]
        assert distance(missile.position, target) == 1.0

    def test_site_kills_stationary_fighter(self, make_site, make_fighter):
        site = make_site(
            memr_km=10.0, acquisition_time_s=0.0, missile_speed_mach=MACH_FOR_1_KM_S,
        )
        fighter = make_fighter(position=(5.5, 0.0), speed_mach=0.0, weapons=0)
        coord = _coordinator([site], [fighter])

        result = coord.run()

        # first launch waits one 5 s interval from t=0; the missile moves 1 km
        # in its launch step and is within 1 km of x=5.5 only after reaching 5 km
        assert len(result.missiles) == 1
        shot = result.missiles[0]
        assert shot.status == MissileStatus.KILL
        assert shot.launched_by == LaunchSide.SITE
        assert shot.launch_time == 5.0
        assert shot.impact_time == 9.0
        assert distance(np.array(shot.impact_position), fighter.position) <= 1.0
        assert not fighter.is_active
        assert result.success is False
        assert "lead" in result.destroyed

    def test_fast_missile_cannot_skip_over_target(self, make_site, make_fighter):
        # 10 km/s with a 1 km kill radius: the target falls between two samples
        site = make_site(memr_km=40.0, acquisition_time_s=0.0, missile_speed_mach=10000.0 / 343.0)
        fighter = make_fighter(position=(25.0, 0.0), speed_mach=0.0, weapons=0)
        result = _coordinator([site], [fighter]).run()
        assert result.missiles[0].status == MissileStatus.KILL


# ---------------------------------------------------------------------------
# Turn-rate limits
# ---------------------------------------------------------------------------


class TestTurnRateClamp:
    def test_ninety_degree_correction_takes_several_steps(self):
        target = np.array([0.0, 30.0])
        missile = Missile(
            missile_id="SAM-0", side=LaunchSide.SITE, launcher_id="s", target_id="t",
            position=np.zeros(2), speed_km_s=1.0, heading=0.0, launch_time=0.0,
            kill_radius_km=1.0,
        )
        limit = 30.0 * 9.8 / 1000.0
        clamped_steps = 0
        for _ in range(10):
            before = missile.heading
            missile.guide_toward(target, 1.0)
            change = abs(wrap_to_pi(missile.heading - before))
            assert change <= limit + 1e-12
            if change == pytest.approx(limit):
                clamped_steps += 1
            missile.advance(1.0)
        assert clamped_steps >= 2

    def test_evasive_fighter_turns_at_six_g(self, make_site, make_fighter):
        site = make_site(interceptors=0)
        fighter = make_fighter(
            position=(-100.0, 0.0), heading_deg=0.0, maneuver=ManeuverMode.EVASIVE, weapons=0,
        )
        coord = _coordinator([site], [fighter])
        limit = 6.0 * 9.8 / (fighter.speed_km_s * 1000.0)

        distances = []
        for _ in range(60):
            before = fighter.heading
            coord.advance()
            assert abs(wrap_to_pi(fighter.heading - before)) <= limit + 1e-12
            distances.append(distance(fighter.position, site.position))

        assert distances[-1] > distances[30]
        away = math.atan2(fighter.position[1], fighter.position[0])
        assert abs(wrap_to_pi(fighter.heading - away)) < math.radians(5)

    def test_straight_fighter_holds_heading(self, make_site, make_fighter):
        site = make_site(interceptors=0)
        fighter = make_fighter(position=(-100.0, 10.0), heading_deg=30.0, weapons=0)
        coord = _coordinator([site], [fighter])
        for _ in range(10):
            coord.advance()
        assert fighter.heading == pytest.approx(math.radians(30.0))


# ---------------------------------------------------------------------------
# Tracking
# ---------------------------------------------------------------------------


class TestTracking:
    def test_track_dropped_the_step_target_leaves_range(self, make_site, make_fighter):
        site = make_site(nominal_range_km=50.0, interceptors=0)
        fighter = make_fighter(position=(-45.0, 0.0), heading_deg=180.0, weapons=0)
        coord = _coordinator([site], [fighter])

        states = []
        for _ in range(30):
            # tracking runs before kinematics, on the pre-step position
            d = site.distance_to(fighter.position)
            limit = site.detection_range_for(
                fighter.rcs_seen_from(site.position), site.azimuth_to(fighter.position),
            )
            coord.advance()
            assert site.is_tracking("lead") == (d <= limit)
            states.append(site.is_tracking("lead"))

        assert states[0] is True
        assert states[-1] is False
        first_lost = states.index(False)
        assert not any(states[first_lost:])

    def test_time_in_track_accumulates(self, make_site, make_fighter):
        site = make_site(interceptors=0)
        fighter = make_fighter(position=(-30.0, 0.0), speed_mach=0.0, weapons=0)
        coord = _coordinator([site], [fighter])
        for _ in range(4):
            coord.advance()
        track = site.tracks["lead"]
        assert track.acquisition_time == 1.0
        assert track.time_in_track == pytest.approx(4.0)

    def test_rain_denies_detection(self, make_site, make_fighter, packaged_table, rain_field):
        def tracked(field):
            site = make_site(nominal_range_km=50.0, interceptors=0, table=packaged_table)
            fighter = make_fighter(position=(-45.0, 0.0), speed_mach=0.0, weapons=0)
            coord = _coordinator([site], [fighter], field=field)
            coord.advance()
            return site.is_tracking("lead")

        assert tracked(None)
        assert not tracked(rain_field(30.0))

    def test_attenuated_ranges_never_exceed_free_space(
        self, make_site, make_fighter, packaged_table, rain_field,
    ):
        site = make_site(nominal_range_km=80.0, num_azimuths=36, table=packaged_table)
        coord = _coordinator([site], [make_fighter(weapons=0)], field=rain_field(5.0))
        free = site.model.free_space_range(1.0)
        assert np.all(site.detection_ranges < free)
        coord.load_field(None)
        assert site.detection_ranges == pytest.approx(np.full(36, free))


# ---------------------------------------------------------------------------
# Launch rules
# ---------------------------------------------------------------------------


class TestLaunchRules:
    def test_first_launch_waits_one_interval(self, make_site, make_fighter):
        site = make_site(memr_km=30.0, acquisition_time_s=0.0, launch_interval_s=5.0)
        fighter = make_fighter(position=(8.0, 0.0), speed_mach=0.0, weapons=0)
        coord = _coordinator([site], [fighter])
        for _ in range(4):
            coord.advance()
        assert coord.missiles == []
        assert site.is_tracking("lead")

        coord.advance()
        assert [(m.missile_id, m.launch_time) for m in coord.missiles] == [("SAM-5", 5.0)]

    def test_acquisition_time_and_launch_interval(self, make_site, make_fighter):
        site = make_site(memr_km=30.0, acquisition_time_s=10.0, launch_interval_s=5.0)
        fighter = make_fighter(position=(-20.0, 0.0), speed_mach=0.0, weapons=0)
        result = _coordinator([site], [fighter]).run()

        times = [m.launch_time for m in result.missiles]
        assert times[:2] == [10.0, 15.0]
        assert all(b - a >= 5.0 for a, b in zip(times, times[1:]))
        assert [m.missile_id for m in result.missiles[:2]] == ["SAM-10", "SAM-15"]

    def test_no_launch_outside_memr(self, make_site, make_fighter):
        site = make_site(memr_km=15.0, acquisition_time_s=0.0)
        fighter = make_fighter(position=(-20.0, 0.0), speed_mach=0.0, weapons=0)
        coord = _coordinator([site], [fighter])
        for _ in range(30):
            coord.advance()
        assert coord.missiles == []
        assert site.is_tracking("lead")

    def test_inventory_limits_launches(self, make_site, make_fighter):
        site = make_site(memr_km=40.0, acquisition_time_s=0.0, launch_interval_s=0.0, interceptors=2)
        fighter = make_fighter(position=(-35.0, 0.0), speed_mach=0.0, weapons=0)
        coord = _coordinator([site], [fighter])
        for _ in range(5):
            coord.advance()
        assert len(coord.missiles) == 2
        assert site.interceptors_remaining == 0

    def test_outrun_interceptors_all_miss(self, make_site, make_fighter):
        site = make_site(memr_km=30.0, acquisition_time_s=0.0)
        fighter = make_fighter(position=(-20.0, 0.0), heading_deg=180.0, speed_mach=2.9, weapons=0)
        result = _coordinator([site], [fighter]).run()
        assert result.missiles
        assert all(m.status == MissileStatus.MISSED for m in result.missiles)
        assert all(m.impact_time is None and m.impact_position is None for m in result.missiles)
        assert fighter.is_active
        assert result.time_s < 600.0

    def test_aircraft_launch_needs_any_site_track(self, make_site, make_fighter):
        site = make_site(nominal_range_km=50.0, interceptors=0)
        tracked = make_fighter("lead", position=(-40.0, 0.0), speed_mach=0.0, weapons=0)
        stealthy = make_fighter(
            "wing",
            position=(0.0, 80.0),
            speed_mach=0.0,
            weapons=1,
            rcs=RCSProfile(1e-4, 1e-4, 1e-4, 1e-4, 1e-4),
        )
        coord = _coordinator([site], [tracked, stealthy])
        coord.advance()

        assert not site.is_tracking("wing")
        assert site.is_tracking("lead")
        (arm,) = coord.missiles
        assert arm.side == LaunchSide.AIRCRAFT
        assert arm.launcher_id == "wing"
        assert arm.target_id == site.site_id
        assert arm.max_range_km is None
        assert stealthy.weapons_remaining == 0

    def test_no_aircraft_launch_without_site_track(self, make_site, make_fighter):
        site = make_site(nominal_range_km=10.0, interceptors=0)
        fighter = make_fighter(position=(-60.0, 0.0), speed_mach=0.0, weapons=2)
        coord = _coordinator([site], [fighter])
        for _ in range(5):
            coord.advance()
        assert coord.missiles == []

    def test_anti_radiation_kill_wins(self, make_site, make_fighter):
        site = make_site(nominal_range_km=80.0, memr_km=20.0)
        fighter = make_fighter(position=(-70.0, 0.0), speed_mach=0.0, weapons=2)
        result = _coordinator([site], [fighter]).run()
        assert result.success is True
        assert not site.is_active
        kills = [m for m in result.missiles if m.status == MissileStatus.KILL]
        assert kills and kills[0].launched_by == LaunchSide.AIRCRAFT
        assert result.count(LaunchSide.SITE) == 0


# ---------------------------------------------------------------------------
# Termination and lifecycle
# ---------------------------------------------------------------------------


class TestTermination:
    def test_unreadable_field_starts_in_clear_air(self, make_site, make_fighter, packaged_table):
        class UnreadableField:
            cell_size_km = 1.0

            def sample(self, x_km, y_km):
                raise OSError("precipitation image unavailable")

        site = make_site(num_azimuths=8, table=packaged_table, interceptors=0)
        coord = _coordinator([site], [make_fighter(weapons=0)], field=UnreadableField())
        assert site.fallback_count == 8
        assert site.detection_ranges == pytest.approx(np.full(8, 50.0))
        assert coord.advance() is False

    def test_unarmed_scenario_runs_to_time_cap(self, quiet_coordinator):
        result = quiet_coordinator.run()
        assert result.time_s == pytest.approx(600.0)
        assert result.success is False
        assert result.missiles == []
        assert quiet_coordinator.is_complete

    def test_advance_after_completion_is_noop(self, quiet_coordinator):
        quiet_coordinator.run()
        assert quiet_coordinator.advance() is True
        assert quiet_coordinator.time_s == pytest.approx(600.0)

    def test_requires_platforms(self, make_site, make_fighter):
        with pytest.raises(ConfigurationError):
            EngagementCoordinator("x", [], [make_fighter()])
        with pytest.raises(ConfigurationError):
            EngagementCoordinator("x", [make_site()], [])

    def test_reset_replays_identically(self, make_site, make_fighter):
        site = make_site(memr_km=30.0, acquisition_time_s=0.0)
        fighter = make_fighter(position=(-25.0, 5.0), heading_deg=90.0, weapons=0)
        coord = _coordinator([site], [fighter])
        first = coord.run().to_dict()

        coord.reset()
        assert coord.time_s == 0.0
        assert coord.missiles == []
        assert fighter.position.tolist() == [-25.0, 5.0]
        second = coord.run().to_dict()

        first.pop("timestamp")
        second.pop("timestamp")
        assert first == second

    def test_snapshot_contents(self, make_site, make_fighter):
        site = make_site(interceptors=0)
        fighter = make_fighter(position=(-30.0, 0.0), weapons=0)
        coord = _coordinator([site], [fighter])
        coord.advance()
        snap = coord.snapshot()
        assert snap.time_s == 1.0
        assert not snap.complete
        (view,) = snap.site_views
        assert view.memr_km == 30.0
        assert view.tracking is True
        assert view.distance_km == pytest.approx(distance(site.position, fighter.position))
        json.dumps(snap.to_dict())


# ---------------------------------------------------------------------------
# Full scenario from YAML
# ---------------------------------------------------------------------------


class TestDefaultScenario:
    def test_runs_to_completion(self, default_config):
        cfg = ScenarioConfig.from_omegaconf(default_config.spear.scenario)
        coord = build_coordinator(cfg, table=AttenuationTable.default(), seed=7)
        result = coord.run()
        assert coord.is_complete
        assert result.time_s <= 600.0
        payload = json.loads(json.dumps(result.to_dict()))
        assert payload["scenario_id"] == "default"

    def test_seeded_runs_are_deterministic(self, default_config):
        cfg = ScenarioConfig.from_omegaconf(default_config.spear.scenario)
        table = AttenuationTable.default()
        a = build_coordinator(cfg, table=table, seed=3).run().to_dict()
        b = build_coordinator(cfg, table=table, seed=3).run().to_dict()
        a.pop("timestamp")
        b.pop("timestamp")
        assert a == b

    def test_precipitation_disabled_means_clear_air(self, default_config):
        cfg = ScenarioConfig.from_omegaconf(default_config.spear.scenario)
        cfg.precipitation.enabled = False
        coord = build_coordinator(cfg, table=AttenuationTable.default())
        site = coord.sites[0]
        assert site.detection_ranges == pytest.approx(
            np.full(site.spec.num_azimuths, site.model.free_space_range(1.0))
        )
