"""Centroid bookkeeping for lenslet-array wavefront sensors.

The centroids of ``n_sensor`` guide stars are stored one guide star after the
other as ``[cx_1 .. cx_n, cy_1 .. cy_n]`` where ``n`` is the total number of
lenslets of one lenslet array.  The flux and the valid-lenslet mask hold one
entry per lenslet, guide star after guide star.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Sequence

import numpy as np


def _as_mask(values: Sequence[int] | np.ndarray) -> np.ndarray:
    return np.asarray(values, dtype=np.int8).ravel()


@dataclass
class Centroiding:
    """Centroids, lenslet fluxes and valid-lenslet masks of a set of lenslet arrays.

    ``units`` is the centroid unit (1 means pixels).  Unless given, every
    lenslet is valid, the flux is zero and the centroids are zero.
    """

    n_lenslet_total: int
    n_sensor: int = 1
    units: float = 1.0
    centroids: np.ndarray | None = None
    flux: np.ndarray | None = None
    valid_lenslets: np.ndarray | None = None
    n_valid_lenslet: list[int] = field(init=False, default_factory=list)
    xy_mean: list[tuple[float, float]] | None = field(init=False, default=None)

    def __post_init__(self) -> None:
        if self.n_lenslet_total <= 0:
            raise ValueError("the number of lenslets must be positive")
        if self.n_sensor <= 0:
            raise ValueError("the number of sensors must be positive")
        n_flux = self.n_lenslet_total * self.n_sensor

        if self.centroids is None:
            self.centroids = np.zeros(self.n_centroids)
        else:
            self.centroids = np.array(self.centroids, dtype=float).ravel()
            if self.centroids.size != self.n_centroids:
                raise ValueError(
                    f"expected {self.n_centroids} centroids, got {self.centroids.size}"
                )

        if self.flux is None:
            self.flux = np.zeros(n_flux)
        else:
            self.flux = np.array(self.flux, dtype=float).ravel()
            if self.flux.size != n_flux:
                raise ValueError(f"expected {n_flux} lenslet fluxes, got {self.flux.size}")

        if self.valid_lenslets is None:
            self.valid_lenslets = np.ones(n_flux, dtype=np.int8)
        else:
            self.valid_lenslets = _as_mask(self.valid_lenslets)
        self._count_valid_lenslets()

    @property
    def n_centroids(self) -> int:
        """Total number of centroids (x and y) over all the guide stars."""
        return 2 * self.n_lenslet_total * self.n_sensor

    @property
    def lenslet_flux(self) -> np.ndarray:
        """Flux of each lenslet."""
        return self.flux

    def _mask_chunks(self, valid_lenslets: Sequence[int] | np.ndarray | None) -> list[np.ndarray]:
        mask = self.valid_lenslets if valid_lenslets is None else _as_mask(valid_lenslets)
        n = self.n_lenslet_total
        return [mask[i : i + n] for i in range(0, mask.size, n)]

    def _centroid_chunks(self) -> list[np.ndarray]:
        n = 2 * self.n_lenslet_total
        return [self.centroids[i : i + n] for i in range(0, self.centroids.size, n)]

    def _count_valid_lenslets(self) -> None:
        self.n_valid_lenslet = [
            int(np.count_nonzero(chunk > 0)) for chunk in self._mask_chunks(None)
        ]

    def remove_mean(
        self, valid_lenslets: Sequence[int] | np.ndarray | None = None
    ) -> "Centroiding":
        """Remove the mean of the valid x and y centroids of each guide star.

        ``valid_lenslets`` supersedes the stored mask when given.  The removed
        means are kept in :attr:`xy_mean`.
        """
        n = self.n_lenslet_total
        means: list[tuple[float, float]] = []
        for mask, c in zip(self._mask_chunks(valid_lenslets), self._centroid_chunks()):
            valid = mask > 0
            cx = c[:n][: valid.size]
            cy = c[n:][: valid.size]
            valid = valid[: cx.size]
            if np.any(valid):
                x_mean = float(cx[valid].mean())
                y_mean = float(cy[valid].mean())
            else:
                x_mean = y_mean = math.nan
            cx[valid] -= x_mean
            cy[valid] -= y_mean
            means.append((x_mean, y_mean))
        self.xy_mean = means
        return self

    def valids(
        self, valid_lenslets: Sequence[int] | np.ndarray | None = None
    ) -> list[list[float]]:
        """Centroids of the valid lenslets, one list per guide star.

        Each list holds the valid x centroids followed by the valid y centroids.
        ``valid_lenslets`` supersedes the stored mask when given.
        """
        masks = self._mask_chunks(valid_lenslets)
        chunks = self._centroid_chunks()
        if len(masks) < len(chunks):
            raise ValueError(
                f"valid lenslet mask covers {len(masks)} guide stars, expected {len(chunks)}"
            )
        result = []
        for mask, c in zip(masks, chunks):
            valid = np.tile(mask > 0, 2)[: c.size]
            result.append([float(x) for x in c[: valid.size][valid]])
        return result

    def lenslet_array_flux(self) -> list[float]:
        """Total flux of each lenslet array."""
        n = self.n_lenslet_total
        return [float(self.flux[i : i + n].sum()) for i in range(0, self.flux.size, n)]

    def integrated_flux(self) -> float:
        """Sum of the flux of all the lenslets."""
        return float(self.flux.sum())

    def set_valid_lenslets(
        self,
        flux_threshold: float | None = None,
        valid_lenslets: Sequence[int] | np.ndarray | None = None,
    ) -> "Centroiding":
        """Set the valid lenslets from a flux threshold or an explicit mask.

        With ``flux_threshold``, a lenslet is valid when its flux is at least
        that fraction of the largest lenslet flux of its array.  An explicit
        ``valid_lenslets`` mask takes precedence over the threshold.
        """
        if flux_threshold is not None:
            n = self.n_lenslet_total
            chunks = []
            for i in range(0, self.flux.size, n):
                flux = self.flux[i : i + n]
                if np.isnan(flux).any():
                    raise ValueError("lenslet flux holds NaN values")
                threshold = flux.max() * flux_threshold
                chunks.append((flux >= threshold).astype(np.int8))
            self.valid_lenslets = np.concatenate(chunks)
        if valid_lenslets is not None:
            self.valid_lenslets = _as_mask(valid_lenslets)
        self._count_valid_lenslets()
        return self

    def n_valid_lenslet_total(self) -> int:
        """Number of valid lenslets over all the guide stars."""
        return sum(self.n_valid_lenslet)