"""Analytic ray tracing through conic mirror surfaces.

A ray is a point of origin ``p`` and a unit direction vector ``u``; tracing
follows ``p' = p + s u`` where ``s`` is the optical path length.
"""

from __future__ import annotations

import argparse
import math
from dataclasses import dataclass, field, replace
from typing import Iterable, Sequence

import numpy as np

Vector = tuple[float, float, float]

_ARCMIN = math.pi / 180.0 / 60.0
_ARCSEC = math.pi / 180.0 / 3600.0


def _as_vector(v: Iterable[float]) -> Vector:
    x, y, z = v
    return (float(x), float(y), float(z))


def _sqrt(x: float) -> float:
    """Square root that yields NaN for negative arguments instead of raising."""
    return math.sqrt(x) if x >= 0.0 else math.nan


def dot(a: Sequence[float], b: Sequence[float]) -> float:
    """Scalar product of two 3-vectors."""
    return a[0] * b[0] + a[1] * b[1] + a[2] * b[2]


def norm_square(v: Sequence[float]) -> float:
    """Squared Euclidean norm of a 3-vector."""
    return dot(v, v)


def norm(v: Sequence[float]) -> float:
    """Euclidean norm of a 3-vector."""
    return math.sqrt(norm_square(v))


def normalize(v: Sequence[float]) -> Vector:
    """Return ``v`` scaled to unit length."""
    n = norm(v)
    return (v[0] / n, v[1] / n, v[2] / n)


def add(a: Sequence[float], b: Sequence[float]) -> Vector:
    """Component-wise sum of two 3-vectors."""
    return (a[0] + b[0], a[1] + b[1], a[2] + b[2])


def sub(a: Sequence[float], b: Sequence[float]) -> Vector:
    """Component-wise difference of two 3-vectors."""
    return (a[0] - b[0], a[1] - b[1], a[2] - b[2])


@dataclass
class Ray:
    """A ray with point of origin ``p`` and direction vector ``u``."""

    p: Vector
    u: Vector

    def __post_init__(self) -> None:
        self.p = _as_vector(self.p)
        self.u = _as_vector(self.u)

    def distance_to(self, conic: "Conic") -> float:
        """Distance from the ray's current location to the conic surface."""
        q = _sqrt(conic.constant + 1.0)
        p = sub(self.p, conic.origin)
        alpha = (p[0], p[1], p[2] * q)
        beta = (self.u[0], self.u[1], self.u[2] * q)
        a = norm_square(beta)
        b = 2.0 * (dot(alpha, beta) - self.u[2] * conic.radius)
        c = norm_square(alpha) - 2.0 * p[2] * conic.radius
        return 0.5 * (-b + _sqrt(b * b - 4.0 * a * c)) / a

    def trace_to(self, conic: "Conic") -> None:
        """Move the ray onto the conic surface."""
        self.trace(self.distance_to(conic))

    def trace(self, s: float) -> None:
        """Move the ray by the path length ``s`` along its direction."""
        self.p = add(self.p, (self.u[0] * s, self.u[1] * s, self.u[2] * s))

    def solve_for_z(self, x: float, y: float) -> float:
        """Height at which the ray passes closest to the lateral point ``(x, y)``."""
        dx = x - self.p[0]
        dy = y - self.p[1]
        num = dx * dx + dy * dy
        denom = self.u[0] * self.u[0] + self.u[1] * self.u[1]
        if denom < 1e-30:
            return math.inf
        return self.p[2] + self.u[2] * math.sqrt(num / denom)

    def __str__(self) -> str:
        p, u = self.p, self.u
        return (
            f"P: [{p[0]:+15.9f},{p[1]:+15.9f},{p[2]:+15.9f}] ; "
            f"U: [{u[0]:+.9f},{u[1]:+.9f},{u[2]:+.9f}]"
        )


@dataclass(frozen=True)
class NewRay:
    """Builder of a :class:`Ray`; defaults to the origin, propagating downward."""

    p: Vector = (0.0, 0.0, 0.0)
    u: Vector = (0.0, 0.0, -1.0)

    def build(self) -> Ray:
        """Build the ray."""
        return Ray(self.p, self.u)

    def point_of_origin(self, p: Sequence[float]) -> "NewRay":
        """Set the ray point of origin."""
        return replace(self, p=_as_vector(p))

    def direction_vector(self, u: Sequence[float]) -> "NewRay":
        """Set the ray direction vector."""
        return replace(self, u=_as_vector(u))

    def polar_direction_vector(self, z: float, a: float) -> "NewRay":
        """Set the direction vector from the zenith ``z`` and azimuth ``a`` angles."""
        sz, cz = math.sin(z), math.cos(z)
        u = normalize((sz * math.cos(a), sz * math.sin(a), -cz))
        return self.direction_vector(u)


def new_ray() -> NewRay:
    """Create a ray builder at the origin propagating downward (z<0)."""
    return NewRay()


@dataclass
class Conic:
    """Conic surface ``r^2 - 2zR + z^2(k+1) = 0`` with its vertex at ``origin``."""

    constant: float
    radius: float
    origin: Vector = field(default=(0.0, 0.0, 0.0))

    def __post_init__(self) -> None:
        self.origin = _as_vector(self.origin)

    @classmethod
    def gmt_m1(cls) -> "Conic":
        """GMT M1 prescription: k=-0.9982857, R=36."""
        return cls(-0.9982857, 36.0)

    @classmethod
    def gmt_m2(cls) -> "Conic":
        """GMT M2 prescription: k=-0.71692784, R=-4.1639009, vertex at z=20.26247614."""
        return cls(-0.71692784, -4.1639009, (0.0, 0.0, 20.26247614))

    @property
    def _kp1(self) -> float:
        return self.constant + 1.0

    @property
    def _c(self) -> float:
        return 1.0 / self.radius

    def _sqrt_term(self, r2: float) -> float:
        return _sqrt(1.0 - self._kp1 * self._c * self._c * r2)

    @staticmethod
    def _r2(v: Sequence[float]) -> float:
        return v[0] * v[0] + v[1] * v[1]

    def _gradient(self, v: Sequence[float]) -> Vector:
        """Gradient of ``z - h(x, y)`` where ``h`` is the surface height."""
        s = self._sqrt_term(self._r2(v))
        return (-self._c * v[0] / s, -self._c * v[1] / s, 1.0)

    def height_at(self, v: Sequence[float]) -> Vector:
        """Point of the surface above the lateral coordinates of ``v``."""
        r2 = self._r2(v)
        return (float(v[0]), float(v[1]), self._c * r2 / (1.0 + self._sqrt_term(r2)))

    def x_partial_at(self, v: Sequence[float]) -> float:
        """Partial derivative of the surface along x."""
        return self._gradient(v)[0]

    def y_partial_at(self, v: Sequence[float]) -> float:
        """Partial derivative of the surface along y."""
        return self._gradient(v)[1]

    def z_partial_at(self, v: Sequence[float]) -> float:
        """Partial derivative of the surface along z."""
        return self._gradient(v)[2]

    def normal_at(self, v: Sequence[float]) -> Vector:
        """Unit normal vector to the surface at ``v``."""
        return normalize(self._gradient(v))

    def reflect(self, ray: Ray) -> None:
        """Reflect ``ray`` off the surface: ``u' = u - 2 (u.n) n``."""
        n = self.normal_at(ray.p)
        q = 2.0 * dot(ray.u, n)
        ray.u = normalize(sub(ray.u, (q * n[0], q * n[1], q * n[2])))


@dataclass
class Gmt:
    """Two-mirror GMT telescope made of its M1 and M2 conics."""

    m1: Conic = field(default_factory=Conic.gmt_m1)
    m2: Conic = field(default_factory=Conic.gmt_m2)

    def trace(self, rays: Iterable[Ray]) -> None:
        """Reflect each ray off M1, trace it to M2 and reflect it off M2."""
        for ray in rays:
            self.m1.reflect(ray)
            ray.trace_to(self.m2)
            self.m2.reflect(ray)

    def focal_point(
        self, marginals: Sequence[Sequence[float]], z: float, a: float
    ) -> list[Ray]:
        """Trace the chief ray and marginal rays from field angle ``(z, a)`` to focus.

        Marginal rays start on the M1 surface above the given lateral points.
        The path lengths bringing every ray to a common point are solved in the
        least-squares sense; the chief ray comes first in the returned list.
        """
        chief = new_ray().polar_direction_vector(z, a).build()
        rays = [chief] + [
            new_ray().point_of_origin(self.m1.height_at(m)).polar_direction_vector(z, a).build()
            for m in marginals
        ]
        self.trace(rays)

        p0, u0 = np.array(chief.p), np.array(chief.u)
        marginal_rays = rays[1:]
        n_u = len(marginal_rays)
        a_mat = np.zeros((3 * n_u, n_u + 1))
        a_mat[:, 0] = np.tile(u0, n_u)
        for i, ray in enumerate(marginal_rays):
            a_mat[3 * i : 3 * i + 3, i + 1] = -np.array(ray.u)
        b = np.concatenate([np.array(ray.p) - p0 for ray in marginal_rays]) if n_u else np.zeros(0)

        u_svd, sig, vt = np.linalg.svd(a_mat, full_matrices=False)
        eps = np.finfo(float).eps
        inv_sig = np.array([1.0 / x if x > eps else 0.0 for x in sig])
        s = vt.T @ (inv_sig * (u_svd.T @ b))

        for ray, length in zip(rays, s):
            ray.trace(float(length))
        return rays


def main(argv: Sequence[str] | None = None) -> int:
    """Print chief and marginal ray traces through the GMT and its focal properties."""
    parser = argparse.ArgumentParser(description="GMT analytic ray tracing report")
    parser.parse_args(argv)

    m1 = Conic.gmt_m1()
    m2 = Conic.gmt_m2()

    print("CHIEF RAY:")
    ray = new_ray().polar_direction_vector(10.0 * _ARCMIN, 0.0).build()
    print(f"Init   : {ray}")
    m1.reflect(ray)
    print(f"Reflect: {ray}")
    ray.trace_to(m2)
    print(f"Trace  : {ray}")
    m2.reflect(ray)
    print(f"Reflect: {ray}")
    print(f"Exit pupil: {ray.solve_for_z(0.0, 0.0):.9f}m")

    print("MARGINAL RAY:")
    ray = new_ray().point_of_origin(m1.height_at((10.0, 0.0, 0.0))).build()
    print(f"Init   : {ray}")
    m1.reflect(ray)
    print(f"Reflect: {ray}")
    print(f"Gregorian focus: {ray.solve_for_z(0.0, 0.0):.9f}m")
    ray.trace_to(m2)
    print(f"Trace  : {ray}")
    m2.reflect(ray)
    print(f"Reflect: {ray}")
    z_focal_plane = ray.solve_for_z(0.0, 0.0)
    print(f"Focal plane: {z_focal_plane:.9f}m")

    print("M1 walk")
    gmt = Gmt()
    marginals = [(float(x), 0.0, 0.0) for x in range(1, 11)]
    for i, r in enumerate(gmt.focal_point(marginals, 10.0 * _ARCMIN, 0.0)):
        print(f"#{i:3}: {r}")

    print("Field walk")
    for z in range(1, 11):
        rays = gmt.focal_point([(1.0, 1.0, 1.0)], z * _ARCSEC, 0.0)
        print(f'#{z:3}": {rays[0]}')

    print("Field curvature")
    for z in range(1, 11):
        rays = gmt.focal_point(marginals, z * _ARCMIN, 0.0)
        heights = [r.p[2] for r in rays]
        z_mean = sum(heights) / len(heights)
        z_rms = math.sqrt(sum((h - z_mean) ** 2 for h in heights) / len(heights))
        p = (rays[0].p[0], rays[0].p[1], z_mean - z_focal_plane)
        curvature = -0.5 * norm_square(p) / p[2]
        print(
            f"z: {z:2}': {z_mean:.9f}m +/- {z_rms * 1e9:3.0f}nm ; curvature: {curvature:.9f}m"
        )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())