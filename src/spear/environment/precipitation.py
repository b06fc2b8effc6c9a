"""Sampled rain-rate fields consumed by the attenuated detection model.

The engine never cares how a field was produced. Anything exposing
``sample(x_km, y_km) -> mm/h`` satisfies :class:`RainRateField`;
:class:`PrecipitationField` is the grid-backed implementation used by
scenarios.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable

import numpy as np
from scipy.ndimage import map_coordinates


@runtime_checkable
class RainRateField(Protocol):
    """Scalar rain-rate field keyed by world position (km)."""

    def sample(self, x_km: float, y_km: float) -> float:
        """Rain rate in mm/h at the world point, in [0, cap]."""
        ...


@dataclass
class PrecipitationField:
    """Rain-rate grid in world coordinates.

    Cell (0, 0) of ``rain_rate`` maps to world coordinate
    (``origin_x_km``, ``origin_y_km``); row index grows northward,
    column index grows eastward. ``resolution`` is cells per km along x;
    ``resolution_y`` overrides it along y for non-square cells.
    """

    rain_rate: np.ndarray  # shape (ny, nx), mm/h
    resolution: float  # cells per km
    origin_x_km: float = 0.0
    origin_y_km: float = 0.0
    max_rain_rate: float = 35.0  # cap, mm/h
    resolution_y: float | None = None  # cells per km along y; None = resolution

    def __post_init__(self):
        self.rain_rate = np.array(self.rain_rate, dtype=np.float64)
        if self.rain_rate.ndim != 2:
            raise ValueError("rain_rate must be a 2D grid")
        if self.resolution <= 0:
            raise ValueError(f"resolution must be positive, got {self.resolution}")
        if self.resolution_y is None:
            self.resolution_y = self.resolution
        if self.resolution_y <= 0:
            raise ValueError(f"resolution_y must be positive, got {self.resolution_y}")
        np.clip(self.rain_rate, 0.0, self.max_rain_rate, out=self.rain_rate)

    # -- constructors -------------------------------------------------------

    @classmethod
    def uniform(
        cls,
        rain_rate_mm_h: float,
        width_km: float,
        height_km: float,
        resolution: float = 1.0,
        max_rain_rate: float = 35.0,
    ) -> PrecipitationField:
        """Constant rain over a grid centered on the world origin."""
        nx = int(round(width_km * resolution)) + 1
        ny = int(round(height_km * resolution)) + 1
        return cls(
            rain_rate=np.full((ny, nx), float(rain_rate_mm_h)),
            resolution=resolution,
            origin_x_km=-width_km / 2.0,
            origin_y_km=-height_km / 2.0,
            max_rain_rate=max_rain_rate,
        )

    @classmethod
    def from_intensity(
        cls,
        image: np.ndarray,
        width_km: float,
        height_km: float,
        max_rain_rate: float = 35.0,
    ) -> PrecipitationField:
        """Build a field from an 8-bit intensity image centered on the origin.

        Color images are reduced to the RGB mean. Image row 0 is the
        northern edge, so rows are flipped to put row 0 in the south.
        Rain rate is ``intensity / 255 * max_rain_rate``. Columns span
        ``width_km`` and rows span ``height_km``, each scaled on its own.
        """
        img = np.asarray(image, dtype=np.float64)
        if img.ndim == 3:
            img = img[..., :3].mean(axis=2)
        if img.ndim != 2:
            raise ValueError(f"Expected a 2D or RGB(A) image, got shape {image.shape}")
        rates = np.flipud(img) / 255.0 * max_rain_rate
        return cls(
            rain_rate=rates,
            resolution=img.shape[1] / width_km,
            resolution_y=img.shape[0] / height_km,
            origin_x_km=-width_km / 2.0,
            origin_y_km=-height_km / 2.0,
            max_rain_rate=max_rain_rate,
        )

    @classmethod
    def load(
        cls,
        path: str | Path,
        width_km: float,
        height_km: float,
        max_rain_rate: float = 35.0,
    ) -> PrecipitationField:
        """Load an intensity grid saved with ``numpy.save``."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Precipitation field not found: {path}")
        return cls.from_intensity(np.load(path), width_km, height_km, max_rain_rate)

    # -- queries ------------------------------------------------------------

    @property
    def cell_size_km(self) -> float:
        return 1.0 / max(self.resolution, self.resolution_y)

    def sample(self, x_km: float, y_km: float) -> float:
        """Bilinear rain rate at (x, y); 0 outside the grid."""
        return float(self.sample_many(np.array([x_km]), np.array([y_km]))[0])

    def sample_many(self, xs_km: np.ndarray, ys_km: np.ndarray) -> np.ndarray:
        """Vectorized :meth:`sample` over matching coordinate arrays."""
        cols = (np.asarray(xs_km, dtype=float) - self.origin_x_km) * self.resolution
        rows = (np.asarray(ys_km, dtype=float) - self.origin_y_km) * self.resolution_y
        values = map_coordinates(
            self.rain_rate,
            np.vstack([rows, cols]),
            order=1,
            mode="constant",
            cval=0.0,
        )
        return np.clip(values, 0.0, self.max_rain_rate)
