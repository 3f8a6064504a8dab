"""Segment calibration matrices used to build active optics linear models.

A :class:`Calib` holds the wavefront response of one GMT segment to a set of
commands (modes or rigid body motions).  Each column of the calibration
matrix is the push-pull wavefront difference restricted to the pupil
``mask``.  The columns are stored one after the other in ``c``
(column-major).
"""

from __future__ import annotations

import enum
import math
import pickle
from dataclasses import dataclass, field, replace
from os import PathLike
from pathlib import Path
from typing import Iterable, Sequence

import numpy as np

SID = 1
"""Default segment identifier."""
M2_N_MODE = 66
"""Number of M2 segment modes."""
M1_N_MODE = 27
"""Number of M1 segment modes."""


class MirrorKind(enum.Enum):
    """GMT mirror a calibration belongs to."""

    M1 = "M1"
    M2 = "M2"


@dataclass(frozen=True, eq=False)
class CalibPinv:
    """Pseudo-inverse of a calibration matrix."""

    _matrix: np.ndarray

    def matrix(self) -> np.ndarray:
        """The pseudo-inverse as a 2-D array."""
        return self._matrix

    def __matmul__(self, rhs: "Calib | Sequence[float] | np.ndarray"):
        if isinstance(rhs, Calib):
            return self._matrix @ rhs.matrix()
        vector = np.asarray(rhs, dtype=float).ravel()
        if vector.size != self._matrix.shape[1]:
            raise ValueError(
                f"expected a vector of length {self._matrix.shape[1]}, got {vector.size}"
            )
        return [float(x) for x in self._matrix @ vector]


@dataclass(eq=False)
class Calib:
    """Calibration matrix of segment ``sid`` of ``mirror`` over ``n_mode`` commands.

    ``src_size`` is the number of guide stars the wavefronts are sampled with;
    the mask holds one entry per pupil sample of every guide star.
    """

    mirror: MirrorKind
    n_mode: int
    sid: int = SID
    c: np.ndarray = field(default_factory=lambda: np.zeros(0))
    mask: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=bool))
    src_size: int = 1

    def __post_init__(self) -> None:
        self.mirror = MirrorKind(self.mirror)
        self.c = np.array(self.c, dtype=float).ravel()
        self.mask = np.array(self.mask, dtype=bool).ravel()
        if self.src_size <= 0:
            raise ValueError("the number of guide stars must be positive")

    def __str__(self) -> str:
        return (
            f"Calib {self.mirror.value}S{self.sid} "
            f"({self.nrows()}, {self.n_mode}); area = {self.area()}"
        )

    def guide_star(self, src_size: int) -> "Calib":
        """Copy of the calibration set for ``src_size`` guide stars."""
        return replace(self, src_size=src_size)

    def area(self) -> int:
        """Number of valid pupil samples."""
        return int(np.count_nonzero(self.mask))

    def dump(self, path: str | PathLike[str]) -> None:
        """Write the calibration to a pickle file."""
        with Path(path).open("wb") as handle:
            pickle.dump(self, handle)
        print(f"calib written to {path}")

    @classmethod
    def load(cls, path: str | PathLike[str]) -> "Calib":
        """Read a calibration from a pickle file."""
        with Path(path).open("rb") as handle:
            obj = pickle.load(handle)
        if not isinstance(obj, cls):
            raise TypeError(f"{path} does not hold a {cls.__name__}")
        return obj

    def nrows(self) -> int:
        """Number of rows of the calibration matrix."""
        return self.c.size // self.n_mode

    def ncols(self) -> int:
        """Number of columns of the calibration matrix."""
        return self.n_mode

    def matrix(self) -> np.ndarray:
        """The calibration matrix, built from the column-major data."""
        return self.c.reshape(self.ncols(), self.nrows()).T

    def pseudoinverse(self) -> CalibPinv:
        """Pseudo-inverse of the calibration matrix from its SVD."""
        return CalibPinv(np.linalg.pinv(self.matrix()))

    def apply_mask(self, data: Sequence[float] | np.ndarray) -> list[float]:
        """Keep the entries of ``data`` that fall inside the mask."""
        values = np.asarray(data, dtype=float).ravel()
        if values.size != self.mask.size:
            raise ValueError(
                f"data length {values.size} does not match mask length {self.mask.size}"
            )
        return [float(x) for x in values[self.mask]]

    def unmask(self, data: Iterable[float]) -> list[float]:
        """Spread masked ``data`` back over the full mask, with zeros outside."""
        values = iter(data)
        result = []
        for inside in self.mask:
            if inside:
                try:
                    result.append(float(next(values)))
                except StopIteration:
                    raise ValueError("not enough data to fill the mask") from None
            else:
                result.append(0.0)
        return result

    def mask_len(self) -> int:
        """Length of the mask."""
        return int(self.mask.size)

    def src_mask_len(self) -> int:
        """Length of the mask of a single guide star."""
        return self.mask.size // self.src_size

    def src_mask_square_len(self) -> int:
        """Side length of the square pupil sampling of a single guide star."""
        return int(math.sqrt(self.src_mask_len()))

    def _restrict_to(self, mask: np.ndarray) -> np.ndarray:
        keep = mask[self.mask]
        area = self.area()
        if area == 0:
            return np.zeros(0)
        columns = self.c.reshape(-1, area)
        return columns[:, keep].ravel()

    def match_areas(self, other: "Calib") -> None:
        """Restrict both calibrations to the intersection of their masks."""
        if self.mask.size != other.mask.size:
            raise ValueError(
                f"mask lengths differ: {self.mask.size} and {other.mask.size}"
            )
        if self.sid != other.sid:
            raise ValueError(f"segments differ: {self.sid} and {other.sid}")
        mask = self.mask & other.mask
        self.c = self._restrict_to(mask)
        other.c = other._restrict_to(mask)
        self.mask = mask.copy()
        other.mask = mask.copy()