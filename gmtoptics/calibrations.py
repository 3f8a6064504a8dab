"""Descriptions of the GMT mirror and segment functions that get calibrated.

A calibration specification lists, for each of the seven segments, either
nothing or a sequence of ``(Mirror, [Segment, ...])`` pairs.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Iterable, Sequence

N_SEGMENT = 7

_TXYZ_DEFAULT = range(0, 3)
_RXYZ_DEFAULT = range(3, 6)
_RXYZ_OFFSET = 3


class Mirror(enum.Enum):
    """GMT mirror functions."""

    M1 = "M1"
    """M1 rigid body motion."""
    M1MODES = "M1MODES"
    """M1 modal surface."""
    M2 = "M2"
    """M2 rigid body motion."""
    M2MODES = "M2MODES"
    """M2 modal surface."""


class SegmentKind(enum.Enum):
    """Kind of segment function."""

    TXYZ = "Txyz"
    RXYZ = "Rxyz"
    MODES = "Modes"


def _as_range(indices: range | tuple[int, int] | None) -> range | None:
    if indices is None:
        return None
    if isinstance(indices, range):
        result = indices
    else:
        start, end = indices
        result = range(int(start), int(end))
    if result.step != 1:
        raise ValueError(f"segment function indices must be contiguous, got {result!r}")
    return result


@dataclass(frozen=True)
class Segment:
    """A segment function: rigid body translations, rotations or modal coefficients.

    ``stroke`` is in meters for translations and modes and in radians for
    rotations.  ``indices`` selects the degrees of freedom; for translations and
    rotations ``None`` means all three axes.
    """

    kind: SegmentKind
    stroke: float
    indices: range | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "stroke", float(self.stroke))
        object.__setattr__(self, "indices", _as_range(self.indices))
        if self.kind is SegmentKind.MODES and self.indices is None:
            raise ValueError("modal segment functions require a range of mode indices")

    @classmethod
    def txyz(cls, stroke: float, indices: range | tuple[int, int] | None = None) -> "Segment":
        """Rigid body translations; ``indices`` defaults to all of x, y and z."""
        return cls(SegmentKind.TXYZ, stroke, indices)

    @classmethod
    def rxyz(cls, stroke: float, indices: range | tuple[int, int] | None = None) -> "Segment":
        """Rigid body rotations; ``indices`` defaults to all of x, y and z."""
        return cls(SegmentKind.RXYZ, stroke, indices)

    @classmethod
    def modes(cls, stroke: float, indices: range | tuple[int, int]) -> "Segment":
        """Modal surface coefficients over the mode ``indices``."""
        return cls(SegmentKind.MODES, stroke, indices)

    def n_mode(self) -> int:
        """Number of calibrated functions."""
        if self.indices is None:
            return 3
        return len(self.indices)

    def strip(self) -> tuple[float, range]:
        """Stroke and the range of degrees of freedom it applies to.

        Rotation indices are offset by 3 so that they address the rotation
        entries of a 6 element rigid body motion vector.
        """
        if self.kind is SegmentKind.TXYZ:
            return self.stroke, _TXYZ_DEFAULT if self.indices is None else self.indices
        if self.kind is SegmentKind.RXYZ:
            if self.indices is None:
                return self.stroke, _RXYZ_DEFAULT
            return self.stroke, range(
                self.indices.start + _RXYZ_OFFSET, self.indices.stop + _RXYZ_OFFSET
            )
        assert self.indices is not None
        return self.stroke, self.indices

    def range(self) -> range:
        """Range of degrees of freedom."""
        return self.strip()[1]

    def stroke_value(self) -> float:
        """Calibration stroke."""
        return self.strip()[0]


def total_modes(
    specs: Iterable[Sequence[tuple[Mirror, Sequence[Segment]]] | None],
) -> int:
    """Total number of calibrated functions over every segment specification."""
    return sum(
        segment.n_mode()
        for spec in specs
        if spec is not None
        for _, segments in spec
        for segment in segments
    )