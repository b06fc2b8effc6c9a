"""Radar detection-range model.

Pure functions for dB conversion, the Swerling/Albersheim minimum-SNR
requirement, pulse-integration gain, free-space range scaling and the
ray-marched precipitation-attenuated detection range, plus the
:class:`RadarModel` binding them to a concrete radar design.

Every range relationship follows the fourth-power dependence of the
two-way radar equation: R is proportional to P^(1/4), so a gain or loss
of ``x`` dB scales range by ``10^(x/40)``.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

import numpy as np

from spear.core.types import FluctuationModel, IntegrationMode
from spear.environment.precipitation import RainRateField
from spear.radar.attenuation import AttenuationTable

logger = logging.getLogger(__name__)

SPEED_OF_LIGHT_MPS = 3e8

#: Rain rates at or below this (mm/h) are treated as sampling noise.
RAIN_RATE_NOISE_MM_H = 0.01

#: Ray-march step used when the field does not advertise a cell size.
DEFAULT_RANGE_STEP_KM = 0.1

#: The march never extends past this multiple of the free-space range.
MAX_MARCH_FACTOR = 1.5

# Exponent k in the n^k integration gain per Swerling case.
_SWERLING_INTEGRATION_EXPONENT: dict[FluctuationModel, float] = {
    FluctuationModel.SWERLING_0: 1.0,
    FluctuationModel.SWERLING_1: 0.5,
    FluctuationModel.SWERLING_2: 0.7,
    FluctuationModel.SWERLING_3: 0.55,
    FluctuationModel.SWERLING_4: 0.75,
}


def db_to_linear(db: float) -> float:
    """Convert dB to a linear power ratio."""
    return 10.0 ** (db / 10.0)


def linear_to_db(linear: float) -> float:
    """Convert a linear power ratio to dB."""
    return 10.0 * math.log10(linear)


def minimum_required_snr(
    pd: float,
    pfa: float = 1e-6,
    fluctuation: FluctuationModel = FluctuationModel.SWERLING_2,
    num_pulses: int = 1,
) -> float:
    """Per-pulse SNR (dB) needed to reach *pd* at *pfa*.

    Albersheim's single-pulse approximation, reduced by an
    ``10*log10(n^k)`` integration gain for ``n > 1`` pulses where ``k``
    depends on the Swerling case.
    """
    if not 0.0 < pd < 1.0:
        raise ValueError(f"pd must be in (0, 1), got {pd}")
    if not 0.0 < pfa < 1.0:
        raise ValueError(f"pfa must be in (0, 1), got {pfa}")
    if num_pulses < 1:
        raise ValueError(f"num_pulses must be >= 1, got {num_pulses}")

    a = math.log(0.62 / pfa)
    b = math.log(pd / (1.0 - pd))
    snr_db = a + 0.12 * a * b + 1.7 * b
    if num_pulses == 1:
        return snr_db
    k = _SWERLING_INTEGRATION_EXPONENT[fluctuation]
    return snr_db - 10.0 * math.log10(num_pulses ** k)


def swerling_integration_exponent(fluctuation: FluctuationModel) -> float:
    return _SWERLING_INTEGRATION_EXPONENT[fluctuation]


def pulse_integration_gain(
    num_pulses: int,
    mode: IntegrationMode = IntegrationMode.NONCOHERENT,
) -> float:
    """Integration gain in dB.

    Coherent: ``10*log10(sqrt(n))``. Non-coherent: ``10*log10(n^0.7)``.
    """
    if num_pulses < 1:
        raise ValueError(f"num_pulses must be >= 1, got {num_pulses}")
    if mode == IntegrationMode.COHERENT:
        return 10.0 * math.log10(math.sqrt(num_pulses))
    return 10.0 * math.log10(num_pulses ** 0.7)


def range_factor_from_db(gain_db: float) -> float:
    """Range multiplier for a power gain (or, negative, a loss) in dB."""
    return db_to_linear(gain_db) ** 0.25


def free_space_detection_range(
    base_range_km: float,
    rcs_m2: float,
    num_pulses: int = 1,
    mode: IntegrationMode = IntegrationMode.NONCOHERENT,
) -> float:
    """Detection range (km) for *rcs_m2* without propagation loss.

    *base_range_km* is calibrated against a 1 m^2 target with no pulse
    integration. Non-positive RCS yields zero range.
    """
    if rcs_m2 <= 0 or base_range_km <= 0:
        return 0.0
    gain_db = pulse_integration_gain(num_pulses, mode)
    return base_range_km * rcs_m2 ** 0.25 * range_factor_from_db(gain_db)


def apply_attenuation(range_km: float, attenuation_db: float) -> float:
    """Range reduced by a two-way path loss of *attenuation_db*."""
    return range_km * 10.0 ** (-attenuation_db / 40.0)


@dataclass(frozen=True)
class DetectionRange:
    """Outcome of an attenuated range computation.

    ``fallback_reason`` is set when the free-space range was returned
    because attenuation could not be evaluated.
    """

    range_km: float
    free_space_km: float
    path_attenuation_db: float = 0.0
    attenuated: bool = False
    fallback_reason: str | None = None

    @property
    def is_fallback(self) -> bool:
        return self.fallback_reason is not None


def detection_range_with_attenuation(
    rcs_m2: float,
    origin_km: np.ndarray,
    azimuth_deg: float,
    field: RainRateField | None,
    *,
    base_range_km: float,
    frequency_ghz: float,
    table: AttenuationTable | None,
    num_pulses: int = 1,
    mode: IntegrationMode = IntegrationMode.NONCOHERENT,
    step_km: float | None = None,
) -> DetectionRange:
    """Ray-march a beam through *field* and return the attenuated range.

    Steps outward from *origin_km* along *azimuth_deg* (from +x, CCW).
    Each step samples the rain rate, converts it to specific attenuation,
    accumulates the two-way path loss in dB and recomputes the
    attenuated range. The march stops at the first step beyond that
    range and returns the last step still inside it.
    """
    free_km = free_space_detection_range(base_range_km, rcs_m2, num_pulses, mode)
    if field is None:
        return DetectionRange(range_km=free_km, free_space_km=free_km)
    if table is None or not table.is_loaded:
        return DetectionRange(
            range_km=free_km,
            free_space_km=free_km,
            fallback_reason="attenuation table not loaded",
        )
    if free_km <= 0:
        return DetectionRange(range_km=0.0, free_space_km=0.0, attenuated=True)

    if step_km is None:
        step_km = float(getattr(field, "cell_size_km", DEFAULT_RANGE_STEP_KM))
    if step_km <= 0:
        raise ValueError(f"step_km must be positive, got {step_km}")

    az = math.radians(azimuth_deg)
    ux, uy = math.cos(az), math.sin(az)
    ox, oy = float(origin_km[0]), float(origin_km[1])
    max_range_km = MAX_MARCH_FACTOR * free_km
    n_steps = int(math.ceil(max_range_km / step_km))

    total_db = 0.0
    last_valid_km = 0.0
    attenuated_km = free_km
    for i in range(1, n_steps + 1):
        r = i * step_km
        try:
            rain = float(field.sample(ox + r * ux, oy + r * uy))
            if not math.isfinite(rain):
                raise ValueError(f"non-finite rain rate at {r:.2f} km")
            specific_db_km = (
                table.lookup(frequency_ghz, rain) if rain > RAIN_RATE_NOISE_MM_H else 0.0
            )
        except Exception as exc:
            logger.debug("Attenuation march at az %.1f deg failed: %s", azimuth_deg, exc)
            return DetectionRange(
                range_km=free_km,
                free_space_km=free_km,
                fallback_reason=f"{type(exc).__name__}: {exc}",
            )
        total_db += 2.0 * specific_db_km * step_km
        attenuated_km = apply_attenuation(free_km, total_db)
        if r > attenuated_km:
            break
        last_valid_km = r

    range_km = last_valid_km if last_valid_km > 0 else min(free_km, attenuated_km)
    return DetectionRange(
        range_km=range_km,
        free_space_km=free_km,
        path_attenuation_db=total_db,
        attenuated=True,
    )


@dataclass(frozen=True)
class RadarSiteSpec:
    """Immutable radar design parameters.

    ``nominal_range_km`` is the detection range against a 1 m^2 target
    with no pulse integration. Wavelength is always derived from
    frequency.
    """

    frequency_ghz: float
    antenna_gain_db: float
    transmit_power_dbkw: float
    noise_floor_db: float
    probability_of_detection: float
    min_snr_db: float
    nominal_range_km: float

    def __post_init__(self):
        if self.frequency_ghz <= 0:
            raise ValueError(f"frequency_ghz must be positive, got {self.frequency_ghz}")
        if self.nominal_range_km <= 0:
            raise ValueError(f"nominal_range_km must be positive, got {self.nominal_range_km}")

    @property
    def wavelength_m(self) -> float:
        return SPEED_OF_LIGHT_MPS / (self.frequency_ghz * 1e9)

    def to_dict(self) -> dict:
        return {
            "frequency_ghz": self.frequency_ghz,
            "wavelength_m": self.wavelength_m,
            "antenna_gain_db": self.antenna_gain_db,
            "transmit_power_dbkw": round(self.transmit_power_dbkw, 3),
            "noise_floor_db": round(self.noise_floor_db, 3),
            "probability_of_detection": self.probability_of_detection,
            "min_snr_db": round(self.min_snr_db, 3),
            "nominal_range_km": self.nominal_range_km,
        }


def derive_radar_spec(
    nominal_range_km: float,
    antenna_gain_db: float,
    frequency_ghz: float = 10.0,
    pd: float = 0.9,
    pfa: float = 1e-6,
    fluctuation: FluctuationModel = FluctuationModel.SWERLING_2,
    min_detectable_dbm: float = -105.0,
) -> RadarSiteSpec:
    """Solve the radar equation for the transmit power behind a nominal range.

    P_t = R^4 (4 pi)^3 P_min / (G^2 lambda^2 sigma) with sigma = 1 m^2.
    The noise floor maps power normalized to 100 kW linearly onto
    5-10 dB.
    """
    if nominal_range_km <= 0:
        raise ValueError(f"nominal_range_km must be positive, got {nominal_range_km}")
    wavelength = SPEED_OF_LIGHT_MPS / (frequency_ghz * 1e9)
    range_m = nominal_range_km * 1000.0
    gain = db_to_linear(antenna_gain_db)
    p_min_w = 10.0 ** ((min_detectable_dbm - 30.0) / 10.0)
    transmit_w = (range_m ** 4 * (4.0 * math.pi) ** 3 * p_min_w) / (gain ** 2 * wavelength ** 2)
    normalized = min(transmit_w / 100_000.0, 1.0)
    return RadarSiteSpec(
        frequency_ghz=frequency_ghz,
        antenna_gain_db=antenna_gain_db,
        transmit_power_dbkw=linear_to_db(transmit_w / 1000.0),
        noise_floor_db=5.0 + 5.0 * normalized,
        probability_of_detection=pd,
        min_snr_db=minimum_required_snr(pd, pfa, fluctuation, 1),
        nominal_range_km=nominal_range_km,
    )


class RadarModel:
    """A radar design bound to an attenuation table.

    Args:
        spec: Radar design parameters.
        table: Rain attenuation dataset; ``None`` disables attenuation.
        integration: Pulse integration mode.
    """

    def __init__(
        self,
        spec: RadarSiteSpec,
        table: AttenuationTable | None = None,
        integration: IntegrationMode = IntegrationMode.NONCOHERENT,
    ):
        self._spec = spec
        self._table = table
        self._integration = integration

    @property
    def spec(self) -> RadarSiteSpec:
        return self._spec

    @property
    def integration(self) -> IntegrationMode:
        return self._integration

    def free_space_range(self, rcs_m2: float, num_pulses: int = 1) -> float:
        return free_space_detection_range(
            self._spec.nominal_range_km, rcs_m2, num_pulses, self._integration,
        )

    def detection_range(
        self,
        rcs_m2: float,
        origin_km: np.ndarray,
        azimuth_deg: float,
        field: RainRateField | None,
        num_pulses: int = 1,
    ) -> DetectionRange:
        return detection_range_with_attenuation(
            rcs_m2,
            origin_km,
            azimuth_deg,
            field,
            base_range_km=self._spec.nominal_range_km,
            frequency_ghz=self._spec.frequency_ghz,
            table=self._table,
            num_pulses=num_pulses,
            mode=self._integration,
        )

    def received_snr_db(self, detection_range_km: float, target_range_km: float) -> float:
        """SNR (dB) of a target at *target_range_km* given its detection range.

        Equals the minimum required SNR exactly at the detection range.
        """
        if target_range_km <= 0:
            return math.inf
        if detection_range_km <= 0:
            return -math.inf
        return self._spec.min_snr_db + 40.0 * math.log10(detection_range_km / target_range_km)
