"""Rain specific-attenuation table.

The dataset is a plain numeric matrix: each ROW is a frequency
(``frequency_start_ghz + row * frequency_step_ghz``) and each COLUMN is a
rain rate from :data:`ITU_RAIN_RATES`. Cells hold one-way specific
attenuation in dB/km. Blank lines and ``#`` comments are skipped.

Lookups clamp to the dataset's frequency and rain-rate ranges and
interpolate bilinearly between the two bracketing rows and columns.
"""

from __future__ import annotations

import logging
from importlib import resources
from pathlib import Path

import numpy as np

from spear.core.errors import AttenuationTableError

logger = logging.getLogger(__name__)

#: Standard ITU rain-rate scale (mm/h), one column per entry.
ITU_RAIN_RATES: tuple[float, ...] = (
    0.01, 0.1, 0.5, 1.0, 2.0, 3.0, 4.0, 5.0, 10.0, 15.0,
    20.0, 25.0, 30.0, 35.0, 40.0, 45.0, 50.0, 55.0, 60.0,
)

FREQUENCY_START_GHZ = 5.0
FREQUENCY_STEP_GHZ = 0.2

_PACKAGED_DATASET = "itu_rain_attenuation.csv"


def _lerp(x: float, x0: float, x1: float, y0: float, y1: float) -> float:
    return y0 + (x - x0) * (y1 - y0) / (x1 - x0)


def _bracket(axis: np.ndarray, value: float) -> tuple[int, int]:
    """Indices of the two grid lines bracketing *value* on a sorted axis.

    Both indices are equal when *value* sits exactly on a grid line, so
    interpolation along that axis degenerates to a direct lookup.
    """
    hi = int(np.searchsorted(axis, value, side="left"))
    if hi >= len(axis):
        return len(axis) - 1, len(axis) - 1
    if axis[hi] == value or hi == 0:
        return hi, hi
    return hi - 1, hi


class AttenuationTable:
    """Bilinear (frequency, rain rate) -> dB/km lookup.

    A freshly constructed table is empty; :meth:`lookup` raises
    :class:`AttenuationTableError` until :meth:`load` or
    :meth:`load_matrix` has populated it.
    """

    def __init__(self):
        self._matrix: np.ndarray | None = None
        self._frequencies: np.ndarray | None = None
        self._rain_rates: np.ndarray | None = None

    # -- constructors -------------------------------------------------------

    @classmethod
    def from_matrix(
        cls,
        matrix,
        frequency_start_ghz: float = FREQUENCY_START_GHZ,
        frequency_step_ghz: float = FREQUENCY_STEP_GHZ,
        rain_rates=ITU_RAIN_RATES,
    ) -> AttenuationTable:
        table = cls()
        table.load_matrix(matrix, frequency_start_ghz, frequency_step_ghz, rain_rates)
        return table

    @classmethod
    def from_csv(cls, path: str | Path, **kwargs) -> AttenuationTable:
        table = cls()
        table.load(path, **kwargs)
        return table

    @classmethod
    def default(cls) -> AttenuationTable:
        """Table backed by the packaged 5-15 GHz dataset."""
        ref = resources.files("spear.data").joinpath(_PACKAGED_DATASET)
        with resources.as_file(ref) as path:
            return cls.from_csv(path)

    # -- loading ------------------------------------------------------------

    def load(
        self,
        path: str | Path,
        frequency_start_ghz: float = FREQUENCY_START_GHZ,
        frequency_step_ghz: float = FREQUENCY_STEP_GHZ,
        rain_rates=ITU_RAIN_RATES,
    ) -> None:
        """Load a headerless CSV matrix from *path*."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Attenuation dataset not found: {path}")
        rows: list[list[float]] = []
        with path.open("r", encoding="utf-8") as fh:
            for line in fh:
                stripped = line.strip()
                if not stripped or stripped.startswith("#"):
                    continue
                rows.append([float(v) for v in stripped.split(",")])
        self.load_matrix(rows, frequency_start_ghz, frequency_step_ghz, rain_rates)
        logger.info(
            "Loaded attenuation dataset %s: %d x %d, %.1f-%.1f GHz",
            path.name,
            self._matrix.shape[0],
            self._matrix.shape[1],
            self._frequencies[0],
            self._frequencies[-1],
        )

    def load_matrix(
        self,
        matrix,
        frequency_start_ghz: float = FREQUENCY_START_GHZ,
        frequency_step_ghz: float = FREQUENCY_STEP_GHZ,
        rain_rates=ITU_RAIN_RATES,
    ) -> None:
        data = np.asarray(matrix, dtype=np.float64)
        rates = np.asarray(rain_rates, dtype=np.float64)
        if data.ndim != 2 or data.shape[0] == 0:
            raise ValueError("Attenuation matrix must be a non-empty 2D array")
        if data.shape[1] != len(rates):
            raise ValueError(
                f"Attenuation matrix has {data.shape[1]} columns, "
                f"expected {len(rates)} (one per rain rate)"
            )
        if np.any(np.diff(rates) <= 0):
            raise ValueError("Rain-rate scale must be strictly increasing")
        if frequency_step_ghz <= 0:
            raise ValueError("Frequency step must be positive")
        self._matrix = data
        self._rain_rates = rates
        self._frequencies = frequency_start_ghz + frequency_step_ghz * np.arange(data.shape[0])

    # -- queries ------------------------------------------------------------

    @property
    def is_loaded(self) -> bool:
        return self._matrix is not None

    @property
    def frequency_range(self) -> tuple[float, float]:
        self._require_loaded()
        return float(self._frequencies[0]), float(self._frequencies[-1])

    @property
    def rain_rate_range(self) -> tuple[float, float]:
        self._require_loaded()
        return float(self._rain_rates[0]), float(self._rain_rates[-1])

    def lookup(self, frequency_ghz: float, rain_rate_mm_h: float) -> float:
        """One-way specific attenuation (dB/km) at the given point.

        Raises:
            AttenuationTableError: If no dataset has been loaded.
        """
        self._require_loaded()
        freqs = self._frequencies
        rates = self._rain_rates

        f = min(max(frequency_ghz, freqs[0]), freqs[-1])
        r = min(max(rain_rate_mm_h, rates[0]), rates[-1])

        fi0, fi1 = _bracket(freqs, f)
        ri0, ri1 = _bracket(rates, r)

        q00 = self._matrix[fi0, ri0]
        q01 = self._matrix[fi0, ri1]
        q10 = self._matrix[fi1, ri0]
        q11 = self._matrix[fi1, ri1]

        if fi0 == fi1 and ri0 == ri1:
            return float(q00)
        if fi0 == fi1:
            return float(_lerp(r, rates[ri0], rates[ri1], q00, q01))
        if ri0 == ri1:
            return float(_lerp(f, freqs[fi0], freqs[fi1], q00, q10))
        low = _lerp(f, freqs[fi0], freqs[fi1], q00, q10)
        high = _lerp(f, freqs[fi0], freqs[fi1], q01, q11)
        return float(_lerp(r, rates[ri0], rates[ri1], low, high))

    def _require_loaded(self) -> None:
        if self._matrix is None:
            raise AttenuationTableError(
                "Attenuation table is uninitialized; load a dataset first"
            )
