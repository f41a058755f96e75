"""Finite mirror primitives.

Three variants share the same small interface (``dim``, ``kind``,
``intersect``, ``normal_at``, ``extent``):

- :class:`PlaneMirror`: a parallelotope patch of a hyperplane, any dimension.
- :class:`SphereMirror`: a hypersphere, optionally cut by a half-space cap.
- :class:`BezierMirror`: a planar Bezier curve segment, 2D only.

``intersect(ray, eps)`` returns the nearest :class:`Hit` strictly ahead of the
ray origin (``distance > eps``) lying on the finite mirror, or ``None``.

Example:
    >>> import numpy as np
    >>> from mirror_core.mirrors import SphereMirror
    >>> from mirror_core.rays import Ray
    >>> hit = SphereMirror([0.0, 0.0, 0.0], 1.0).intersect(Ray([-3.0, 0.0, 0.0], [1.0, 0.0, 0.0]))
    >>> round(hit.distance, 12), hit.normal.tolist()
    (2.0, [-1.0, 0.0, 0.0])
"""

from __future__ import annotations

from dataclasses import dataclass, field
from math import comb, copysign, sqrt
from typing import ClassVar, Dict, List, Optional, Sequence, Tuple

import numpy as np
from numpy.typing import ArrayLike, NDArray

from mirror_core.errors import DegenerateGeometryError, DimensionMismatchError
from mirror_core.geometry import (
    Vector,
    as_vector,
    hyperplane_normal,
    normalize,
    perpendicular_2d,
    try_normalize,
)
from mirror_core.rays import Ray

PARALLEL_TOL = 1e-12
BOUND_TOL = 1e-12
GOLDEN = (sqrt(5.0) - 1.0) / 2.0


def _frozen(a: NDArray[np.float64]) -> NDArray[np.float64]:
    a.setflags(write=False)
    return a


@dataclass(frozen=True, eq=False)
class Hit:
    """Intersection of a ray with a mirror.

    distance: ray parameter of the hit, always > eps.
    point: hit position.
    normal: unit surface normal at ``point``.
    """

    distance: float
    point: Vector
    normal: Vector


@dataclass(frozen=True, eq=False)
class PlaneMirror:
    """Parallelotope ``center + sum(mu_k * basis[k])`` with ``|mu_k| <= 1``.

    ``basis`` holds D-1 half-edge vectors; they need not be orthogonal but must
    be linearly independent.
    """

    center: Vector
    basis: Tuple[Vector, ...]

    kind: ClassVar[str] = "plane"

    _normal: Vector = field(init=False, repr=False)
    _dual: NDArray[np.float64] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        c = as_vector(self.center)
        dim = c.shape[0]
        if dim < 2:
            raise DimensionMismatchError("Plane mirrors need at least 2 dimensions")
        vs = tuple(as_vector(v) for v in self.basis)
        if len(vs) != dim - 1:
            raise DimensionMismatchError(f"A plane mirror in {dim}D needs {dim - 1} basis vectors, got {len(vs)}")
        for v in vs:
            if v.shape != c.shape:
                raise DimensionMismatchError(f"Basis vector shape {v.shape} does not match center shape {c.shape}")
        normal = hyperplane_normal(vs)
        b = np.vstack(vs)
        # rows of the dual basis give the coordinates mu_k of an in-plane offset
        dual = np.linalg.solve(b @ b.T, b)
        object.__setattr__(self, "center", c)
        object.__setattr__(self, "basis", vs)
        object.__setattr__(self, "_normal", _frozen(normal))
        object.__setattr__(self, "_dual", _frozen(dual))

    @property
    def dim(self) -> int:
        return int(self.center.shape[0])

    @property
    def normal(self) -> Vector:
        return self._normal

    def plane_coordinates(self, point: ArrayLike) -> NDArray[np.float64]:
        return self._dual @ (np.asarray(point, dtype=float) - self.center)

    def contains(self, point: ArrayLike, tol: float = BOUND_TOL) -> bool:
        """Whether an in-plane point lies on the finite patch."""

        return bool(np.all(np.abs(self.plane_coordinates(point)) <= 1.0 + tol))

    def intersect(self, ray: Ray, eps: float = 1e-9) -> Optional[Hit]:
        n = self._normal
        denom = float(np.dot(n, ray.direction))
        if abs(denom) < PARALLEL_TOL:
            return None
        t = float(np.dot(n, self.center - ray.origin)) / denom
        if not t > eps:
            return None
        point = ray.origin + t * ray.direction
        if np.any(np.abs(self._dual @ (point - self.center)) > 1.0 + BOUND_TOL):
            return None
        return Hit(t, _frozen(point), n)

    def normal_at(self, point: ArrayLike) -> Vector:
        return self._normal

    def extent(self) -> float:
        return 2.0 * min(float(np.linalg.norm(v)) for v in self.basis)

    def vertices(self) -> List[Vector]:
        """The 2^(D-1) corners of the patch."""

        out = []
        for signs in np.ndindex(*([2] * len(self.basis))):
            p = np.array(self.center, dtype=float)
            for s, v in zip(signs, self.basis):
                p = p + (1.0 if s == 0 else -1.0) * v
            out.append(p)
        return out


@dataclass(frozen=True, eq=False)
class SphereMirror:
    """Hypersphere mirror, optionally restricted to a cap.

    With ``cap_normal`` set only the points ``p`` with
    ``(p - center) . cap_normal >= cap_offset`` reflect, which gives bowls
    (``cap_offset < 0``) and shallow caps (``cap_offset > 0``).
    """

    center: Vector
    radius: float
    cap_normal: Optional[Vector] = None
    cap_offset: float = 0.0

    kind: ClassVar[str] = "sphere"

    def __post_init__(self) -> None:
        c = as_vector(self.center)
        r = float(self.radius)
        if not np.isfinite(r) or r <= 0.0:
            raise DegenerateGeometryError(f"Sphere radius must be > 0, got {self.radius}")
        object.__setattr__(self, "center", c)
        object.__setattr__(self, "radius", r)
        if self.cap_normal is not None:
            cn = as_vector(normalize(self.cap_normal))
            if cn.shape != c.shape:
                raise DimensionMismatchError(f"Cap normal shape {cn.shape} does not match center shape {c.shape}")
            off = float(self.cap_offset)
            if off >= r:
                raise DegenerateGeometryError(f"Cap offset {off} leaves no surface on a sphere of radius {r}")
            object.__setattr__(self, "cap_normal", cn)
            object.__setattr__(self, "cap_offset", off)

    @property
    def dim(self) -> int:
        return int(self.center.shape[0])

    def in_cap(self, point: ArrayLike) -> bool:
        if self.cap_normal is None:
            return True
        return float(np.dot(np.asarray(point, dtype=float) - self.center, self.cap_normal)) >= self.cap_offset

    def intersect(self, ray: Ray, eps: float = 1e-9) -> Optional[Hit]:
        oc = ray.origin - self.center
        b = float(np.dot(oc, ray.direction))
        c = float(np.dot(oc, oc)) - self.radius * self.radius
        disc = b * b - c
        if disc < 0.0:
            return None
        q = -b - copysign(sqrt(disc), b)
        if q == 0.0:
            return None
        t1, t2 = q, c / q
        for t in (t1, t2) if t1 <= t2 else (t2, t1):
            if not t > eps:
                continue
            point = ray.origin + t * ray.direction
            if not self.in_cap(point):
                continue
            normal = (point - self.center) / self.radius
            return Hit(t, _frozen(point), _frozen(normal / np.linalg.norm(normal)))
        return None

    def normal_at(self, point: ArrayLike) -> Vector:
        return normalize(np.asarray(point, dtype=float) - self.center)

    def extent(self) -> float:
        if self.cap_normal is not None and self.cap_offset > 0.0:
            return 2.0 * sqrt(self.radius ** 2 - self.cap_offset ** 2)
        return 2.0 * self.radius


@dataclass(frozen=True, eq=False)
class BezierMirror:
    """Planar Bezier curve ``B(u), u in [0, 1]``; only valid in 2D.

    Ray intersections have no closed form: ``f(u) = (B(u) - o) x d`` is sampled
    at ``samples + 1`` parameters, every sign change is refined with a
    safeguarded Newton iteration, and the nearest root ahead of the ray wins.
    A root that the sampling does not bracket (a grazing tangency, or two
    crossings inside one sample cell) is missed.
    """

    control_points: NDArray[np.float64]
    samples: int = 64

    kind: ClassVar[str] = "bezier"

    _sample_u: NDArray[np.float64] = field(init=False, repr=False)
    _sample_points: NDArray[np.float64] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        cp = np.array(self.control_points, dtype=float)
        if cp.ndim != 2 or cp.shape[1] != 2:
            raise DimensionMismatchError(f"Bezier mirrors are 2D only; control points have shape {cp.shape}")
        if cp.shape[0] < 2:
            raise DegenerateGeometryError("A Bezier mirror needs at least two control points")
        if np.allclose(cp, cp[0], rtol=0.0, atol=1e-12):
            raise DegenerateGeometryError("Bezier control points are all identical")
        if int(self.samples) < 2:
            raise DegenerateGeometryError(f"Bezier sampling resolution must be >= 2, got {self.samples}")
        object.__setattr__(self, "control_points", _frozen(cp))
        object.__setattr__(self, "samples", int(self.samples))
        u = np.linspace(0.0, 1.0, self.samples + 1)
        object.__setattr__(self, "_sample_u", _frozen(u))
        object.__setattr__(self, "_sample_points", _frozen(self.points_at(u)))

    @property
    def dim(self) -> int:
        return 2

    @property
    def degree(self) -> int:
        return int(self.control_points.shape[0]) - 1

    def points_at(self, u: ArrayLike) -> NDArray[np.float64]:
        """Evaluate the curve at an array of parameters, shape (M, 2)."""

        uu = np.atleast_1d(np.asarray(u, dtype=float))[:, None]
        n = self.degree
        i = np.arange(n + 1)
        binom = np.array([comb(n, k) for k in i], dtype=float)
        weights = binom * uu ** i * (1.0 - uu) ** (n - i)
        return weights @ self.control_points

    def evaluate(self, u: float) -> Tuple[Vector, Vector]:
        """``(B(u), B'(u))`` by de Casteljau."""

        pts = self.control_points
        while pts.shape[0] > 2:
            pts = (1.0 - u) * pts[:-1] + u * pts[1:]
        return (1.0 - u) * pts[0] + u * pts[1], self.degree * (pts[1] - pts[0])

    def _solve_root(self, lo: float, hi: float, f_lo: float, origin: Vector, d: Vector) -> float:
        # rtsafe: Newton steps that leave the bracket or stall fall back to bisection
        u = 0.5 * (lo + hi)
        step_old = hi - lo
        for _ in range(60):
            p, tangent = self.evaluate(u)
            rel = p - origin
            f = rel[0] * d[1] - rel[1] * d[0]
            df = tangent[0] * d[1] - tangent[1] * d[0]
            if f == 0.0:
                return u
            if (f < 0.0) == (f_lo < 0.0):
                lo, f_lo = u, f
            else:
                hi = u
            newton_ok = df != 0.0 and lo < u - f / df < hi and abs(f / df) < 0.5 * step_old
            if newton_ok:
                step_old = abs(f / df)
                u = u - f / df
            else:
                step_old = hi - lo
                u = 0.5 * (lo + hi)
            if hi - lo < 1e-15 or step_old < 1e-15:
                break
        return u

    def _roots(self, ray: Ray) -> List[float]:
        o, d = ray.origin, ray.direction
        rel = self._sample_points - o
        fs = rel[:, 0] * d[1] - rel[:, 1] * d[0]
        u = self._sample_u
        roots = [float(u[k]) for k in np.nonzero(fs == 0.0)[0]]
        for k in np.nonzero(fs[:-1] * fs[1:] < 0.0)[0]:
            roots.append(self._solve_root(float(u[k]), float(u[k + 1]), float(fs[k]), o, d))
        return roots

    def intersect(self, ray: Ray, eps: float = 1e-9) -> Optional[Hit]:
        o, d = ray.origin, ray.direction
        rel = self.control_points - o
        # the curve lies in the convex hull of its control polygon
        side = rel[:, 0] * d[1] - rel[:, 1] * d[0]
        if np.all(side > 0.0) or np.all(side < 0.0) or np.all(rel @ d <= eps):
            return None
        best: Optional[Tuple[float, Vector]] = None
        for u in self._roots(ray):
            p, tangent = self.evaluate(u)
            t = float(np.dot(p - o, d))
            if not t > eps or (best is not None and t >= best[0]):
                continue
            normal = try_normalize(perpendicular_2d(tangent))
            # grazing along the curve is a miss, as for a plane
            if normal is None or abs(float(np.dot(normal, d))) < PARALLEL_TOL:
                continue
            best = (t, normal)
        if best is None:
            return None
        t, normal = best
        if float(np.dot(normal, d)) > 0.0:
            normal = -normal
        return Hit(t, _frozen(ray.at(t)), _frozen(normal))

    def closest_parameter(self, point: ArrayLike) -> float:
        p = np.asarray(point, dtype=float)
        k = int(np.argmin(np.sum((self._sample_points - p) ** 2, axis=1)))
        lo = float(self._sample_u[max(k - 1, 0)])
        hi = float(self._sample_u[min(k + 1, self.samples)])

        def dist2(u: float) -> float:
            q = self.evaluate(u)[0] - p
            return float(np.dot(q, q))

        a = hi - GOLDEN * (hi - lo)
        b = lo + GOLDEN * (hi - lo)
        fa, fb = dist2(a), dist2(b)
        while hi - lo > 1e-12:
            if fa < fb:
                hi, b, fb = b, a, fa
                a = hi - GOLDEN * (hi - lo)
                fa = dist2(a)
            else:
                lo, a, fa = a, b, fb
                b = lo + GOLDEN * (hi - lo)
                fb = dist2(b)
        return 0.5 * (lo + hi)

    def normal_at(self, point: ArrayLike) -> Vector:
        """Unit normal at the curve point closest to ``point`` (unoriented)."""

        _, tangent = self.evaluate(self.closest_parameter(point))
        return normalize(perpendicular_2d(tangent))

    def extent(self) -> float:
        return float(np.sum(np.linalg.norm(np.diff(self._sample_points, axis=0), axis=1)))


Mirror = PlaneMirror | SphereMirror | BezierMirror

MIRROR_TYPES: Dict[str, type] = {cls.kind: cls for cls in (PlaneMirror, SphereMirror, BezierMirror)}


def plane_segment_2d(p0: ArrayLike, p1: ArrayLike) -> PlaneMirror:
    """2D plane mirror spanning the segment ``p0 -> p1``."""

    a = np.asarray(p0, dtype=float)
    b = np.asarray(p1, dtype=float)
    return PlaneMirror(center=0.5 * (a + b), basis=(0.5 * (b - a),))


def axis_aligned_plane(center: ArrayLike, normal_axis: int, half_width: float | Sequence[float]) -> PlaneMirror:
    """Square/cubic patch orthogonal to a coordinate axis."""

    c = np.asarray(center, dtype=float)
    dim = c.shape[0]
    axes = [k for k in range(dim) if k != normal_axis]
    widths = [float(half_width)] * len(axes) if np.isscalar(half_width) else [float(w) for w in half_width]
    if len(widths) != len(axes):
        raise DimensionMismatchError(f"Expected {len(axes)} half widths, got {len(widths)}")
    basis = []
    for k, w in zip(axes, widths):
        v = np.zeros(dim)
        v[k] = w
        basis.append(v)
    return PlaneMirror(center=c, basis=tuple(basis))
