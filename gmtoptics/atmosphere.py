"""Atmospheric turbulence model description and its TOML persistence.

The :class:`AtmosphereBuilder` holds the Fried parameter, the outer scale, the
zenith angle, the turbulence profile and the optional ray-tracing parameters
of an atmosphere.
"""

from __future__ import annotations

import math
import tomllib
from dataclasses import dataclass, field, replace
from os import PathLike
from pathlib import Path
from typing import Any, Iterable, Mapping

import tomli_w

_TOML_HEADER = "# AtmosphereBuilder\n\n"


class AtmosphereBuilderError(Exception):
    """Failure to load or save an :class:`AtmosphereBuilder` TOML file."""

    def __init__(self, message: str, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path


def r0_at_zenith_angle(r0_at_zenith: float, zenith_angle: float) -> float:
    """Fried parameter seen at ``zenith_angle`` radians from the zenith."""
    secz = 1.0 / math.cos(zenith_angle)
    return (r0_at_zenith ** (-5.0 / 3.0) * secz) ** (-3.0 / 5.0)


def _floats(values: Iterable[Any]) -> tuple[float, ...]:
    return tuple(float(v) for v in values)


@dataclass(frozen=True)
class TurbulenceProfile:
    """Layered turbulence profile: altitudes [m], fractional strengths, winds."""

    n_layer: int = 7
    altitude: tuple[float, ...] = (25.0, 275.0, 425.0, 1_250.0, 4_000.0, 8_000.0, 13_000.0)
    xi0: tuple[float, ...] = (0.1257, 0.0874, 0.0666, 0.3498, 0.2273, 0.0681, 0.0751)
    wind_speed: tuple[float, ...] = (5.6540, 5.7964, 5.8942, 6.6370, 13.2925, 34.8250, 29.4187)
    wind_direction: tuple[float, ...] = (0.0136, 0.1441, 0.2177, 0.5672, 1.2584, 1.6266, 1.7462)

    def __post_init__(self) -> None:
        object.__setattr__(self, "n_layer", int(self.n_layer))
        for name in ("altitude", "xi0", "wind_speed", "wind_direction"):
            object.__setattr__(self, name, _floats(getattr(self, name)))

    def _to_dict(self) -> dict[str, Any]:
        return {
            "n_layer": self.n_layer,
            "altitude": list(self.altitude),
            "xi0": list(self.xi0),
            "wind_speed": list(self.wind_speed),
            "wind_direction": list(self.wind_direction),
        }

    @classmethod
    def _from_dict(cls, data: Mapping[str, Any]) -> "TurbulenceProfile":
        return cls(
            n_layer=data["n_layer"],
            altitude=data["altitude"],
            xi0=data["xi0"],
            wind_speed=data["wind_speed"],
            wind_direction=data["wind_direction"],
        )


@dataclass(frozen=True)
class RayTracing:
    """Phase-screen ray-tracing parameters.

    Defaults: 25.5m wide, 512px, 0rd field, 1s duration, no file, no repeat count.
    """

    width: float = 25.5
    n_width_px: int = 512
    field_size: float = 0.0
    duration: float = 1.0
    filepath: str | None = None
    n_duration: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "width", float(self.width))
        object.__setattr__(self, "n_width_px", int(self.n_width_px))
        object.__setattr__(self, "field_size", float(self.field_size))
        object.__setattr__(self, "duration", float(self.duration))
        if self.filepath is not None:
            object.__setattr__(self, "filepath", str(self.filepath))
        if self.n_duration is not None:
            object.__setattr__(self, "n_duration", int(self.n_duration))

    def with_width(self, width: float) -> "RayTracing":
        """Size in meters of the phase screen at altitude 0m."""
        return replace(self, width=width)

    def with_n_width_px(self, n_width_px: int) -> "RayTracing":
        """Size in pixels of the phase screen at altitude 0m."""
        return replace(self, n_width_px=n_width_px)

    def with_field_size(self, field_size: float) -> "RayTracing":
        """Field-of-view in radians."""
        return replace(self, field_size=field_size)

    def with_duration(self, duration: float) -> "RayTracing":
        """Phase screen minimum time length in seconds."""
        return replace(self, duration=duration)

    def with_filepath(self, filepath: str | PathLike[str]) -> "RayTracing":
        """Path where the phase screens data file is written."""
        return replace(self, filepath=str(Path(filepath)))

    def with_n_duration(self, n_duration: int) -> "RayTracing":
        """Total number of durations; the screens last ``n_duration * duration`` seconds."""
        return replace(self, n_duration=n_duration)

    def _to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "width": self.width,
            "n_width_px": self.n_width_px,
            "field_size": self.field_size,
            "duration": self.duration,
        }
        if self.filepath is not None:
            data["filepath"] = self.filepath
        if self.n_duration is not None:
            data["n_duration"] = self.n_duration
        return data

    @classmethod
    def _from_dict(cls, data: Mapping[str, Any]) -> "RayTracing":
        return cls(
            width=data["width"],
            n_width_px=data["n_width_px"],
            field_size=data["field_size"],
            duration=data["duration"],
            filepath=data.get("filepath"),
            n_duration=data.get("n_duration"),
        )


@dataclass(frozen=True)
class AtmosphereBuilder:
    """Atmosphere description.

    Defaults: r0 of 16cm at zenith, 25m outer scale, 30 degrees zenith angle,
    the default :class:`TurbulenceProfile` and no ray tracing.
    """

    r0_at_zenith: float = 0.16
    oscale: float = 25.0
    zenith_angle: float = math.radians(30.0)
    turbulence: TurbulenceProfile = field(default_factory=TurbulenceProfile)
    ray_tracing: RayTracing | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "r0_at_zenith", float(self.r0_at_zenith))
        object.__setattr__(self, "oscale", float(self.oscale))
        object.__setattr__(self, "zenith_angle", float(self.zenith_angle))

    @classmethod
    def load(cls, path: str | PathLike[str]) -> "AtmosphereBuilder":
        """Load a builder from a TOML file."""
        path = Path(path)
        try:
            text = path.read_bytes()
        except FileNotFoundError as e:
            raise AtmosphereBuilderError(
                f"cannot open AtmosphereBuilder toml file: {path}", path
            ) from e
        except OSError as e:
            raise AtmosphereBuilderError(
                f"cannot read AtmosphereBuilder toml file: {path}", path
            ) from e
        try:
            data = tomllib.loads(text.decode("utf-8"))
            return cls._from_dict(data)
        except (tomllib.TOMLDecodeError, UnicodeDecodeError, KeyError, TypeError, ValueError) as e:
            raise AtmosphereBuilderError(
                "cannot deserialize AtmosphereBuilder from toml", path
            ) from e

    def save(self, path: str | PathLike[str]) -> None:
        """Save the builder to a TOML file."""
        path = Path(path)
        try:
            text = tomli_w.dumps(self._to_dict())
        except (TypeError, ValueError) as e:
            raise AtmosphereBuilderError(
                "cannot serialize AtmosphereBuilder into toml", path
            ) from e
        try:
            handle = path.open("w", encoding="utf-8")
        except OSError as e:
            raise AtmosphereBuilderError(
                f"cannot create AtmosphereBuilder toml file: {path}", path
            ) from e
        with handle:
            try:
                handle.write(_TOML_HEADER + text)
            except OSError as e:
                raise AtmosphereBuilderError(
                    f"cannot write AtmosphereBuilder toml file: {path}", path
                ) from e

    def with_r0_at_zenith(self, r0_at_zenith: float) -> "AtmosphereBuilder":
        """Set the r0 value at zenith in meters."""
        return replace(self, r0_at_zenith=r0_at_zenith)

    def with_oscale(self, oscale: float) -> "AtmosphereBuilder":
        """Set the outer scale in meters."""
        return replace(self, oscale=oscale)

    def with_zenith_angle(self, zenith_angle: float) -> "AtmosphereBuilder":
        """Set the zenith angle in radians."""
        return replace(self, zenith_angle=zenith_angle)

    def turbulence_profile(self, turbulence: TurbulenceProfile) -> "AtmosphereBuilder":
        """Set the turbulence profile."""
        return replace(self, turbulence=turbulence)

    def single_turbulence_layer(
        self,
        altitude: float,
        wind_speed: float | None = None,
        wind_direction: float | None = None,
    ) -> "AtmosphereBuilder":
        """Replace the profile with a single layer holding all the turbulence."""
        profile = TurbulenceProfile(
            n_layer=1,
            altitude=(altitude,),
            xi0=(1.0,),
            wind_speed=(0.0 if wind_speed is None else wind_speed,),
            wind_direction=(0.0 if wind_direction is None else wind_direction,),
        )
        return replace(self, turbulence=profile)

    def remove_turbulence_layer(self, layer_idx: int) -> "AtmosphereBuilder":
        """Remove the turbulence layer at the zero-based index ``layer_idx``."""
        t = self.turbulence
        if not 0 <= layer_idx < len(t.altitude):
            raise IndexError(
                f"turbulence layer index {layer_idx} out of range for {len(t.altitude)} layers"
            )

        def drop(values: tuple[float, ...]) -> tuple[float, ...]:
            return values[:layer_idx] + values[layer_idx + 1 :]

        profile = TurbulenceProfile(
            n_layer=t.n_layer - 1,
            altitude=drop(t.altitude),
            xi0=drop(t.xi0),
            wind_speed=drop(t.wind_speed),
            wind_direction=drop(t.wind_direction),
        )
        return replace(self, turbulence=profile)

    def with_ray_tracing(self, ray_tracing: RayTracing) -> "AtmosphereBuilder":
        """Set the ray-tracing parameters."""
        return replace(self, ray_tracing=ray_tracing)

    def r0(self) -> float:
        """Fried parameter at the builder's zenith angle."""
        return r0_at_zenith_angle(self.r0_at_zenith, self.zenith_angle)

    def layer_altitudes(self) -> list[float]:
        """Layer altitudes along the line of sight (scaled by sec z)."""
        secz = 1.0 / math.cos(self.zenith_angle)
        return [a * secz for a in self.turbulence.altitude]

    def layer_wind_speeds(self) -> list[float]:
        """Layer wind speeds along the line of sight (scaled by cos z)."""
        secz = 1.0 / math.cos(self.zenith_angle)
        return [w / secz for w in self.turbulence.wind_speed]

    def _to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "r0_at_zenith": self.r0_at_zenith,
            "oscale": self.oscale,
            "zenith_angle": self.zenith_angle,
            "turbulence": self.turbulence._to_dict(),
        }
        if self.ray_tracing is not None:
            data["ray_tracing"] = self.ray_tracing._to_dict()
        return data

    @classmethod
    def _from_dict(cls, data: Mapping[str, Any]) -> "AtmosphereBuilder":
        ray_tracing = data.get("ray_tracing")
        return cls(
            r0_at_zenith=data["r0_at_zenith"],
            oscale=data["oscale"],
            zenith_angle=data["zenith_angle"],
            turbulence=TurbulenceProfile._from_dict(data["turbulence"]),
            ray_tracing=None if ray_tracing is None else RayTracing._from_dict(ray_tracing),
        )