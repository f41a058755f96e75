"""Dimension-generic vector helpers.

Vectors and points are plain ``float64`` arrays of shape ``(D,)``. Values
stored on rays, hits and mirrors go through :func:`as_vector`, which copies and
marks them read-only so they behave as immutable values.

Example:
    >>> import numpy as np
    >>> from mirror_core.geometry import hyperplane_normal
    >>> n = hyperplane_normal([np.array([1.0, 0.0, 0.0]), np.array([0.0, 1.0, 0.0])])
    >>> np.allclose(np.abs(n), np.array([0.0, 0.0, 1.0]))
    True
"""

from __future__ import annotations

from typing import List, Optional, Sequence

import numpy as np
from numpy.typing import ArrayLike, NDArray

from mirror_core.errors import DegenerateGeometryError

Vector = NDArray[np.float64]

NORM_TOL = 1e-12


def as_vector(v: ArrayLike) -> Vector:
    """Read-only float64 copy of ``v``."""

    out = np.array(v, dtype=np.float64)
    if out.ndim != 1:
        raise DegenerateGeometryError(f"Expected a 1-D vector, got shape {out.shape}")
    out.setflags(write=False)
    return out


def try_normalize(v: ArrayLike, tol: float = NORM_TOL) -> Optional[Vector]:
    vv = np.asarray(v, dtype=float)
    n = float(np.linalg.norm(vv))
    if not np.isfinite(n) or n <= tol:
        return None
    return vv / n


def normalize(v: ArrayLike, tol: float = NORM_TOL) -> Vector:
    out = try_normalize(v, tol)
    if out is None:
        raise DegenerateGeometryError("Cannot normalize zero vector")
    return out


def gram_schmidt(vectors: Sequence[ArrayLike], tol: float = 1e-9) -> List[Vector]:
    """Orthonormalize ``vectors`` (modified Gram-Schmidt).

    Vectors that are (numerically) dependent on the previous ones are dropped,
    so ``len(result) < len(vectors)`` signals a degenerate family. The
    tolerance is relative to each input vector's own length.
    """

    basis: List[Vector] = []
    for v in vectors:
        w = np.array(v, dtype=float)
        scale = float(np.linalg.norm(w))
        if scale <= NORM_TOL:
            continue
        for e in basis:
            w = w - np.dot(w, e) * e
        n = float(np.linalg.norm(w))
        if n <= tol * scale:
            continue
        basis.append(w / n)
    return basis


def complete_basis(vectors: Sequence[ArrayLike], dim: int) -> List[Vector]:
    """Extend an orthonormal family to an orthonormal basis of R^dim."""

    basis = gram_schmidt(vectors)
    for e in np.eye(dim):
        if len(basis) == dim:
            break
        w = e.copy()
        for b in basis:
            w = w - np.dot(w, b) * b
        n = float(np.linalg.norm(w))
        if n > 1e-6:
            basis.append(w / n)
    return basis


def hyperplane_normal(basis: Sequence[ArrayLike]) -> Vector:
    """Unit normal of the hyperplane spanned by D-1 vectors in R^D."""

    vs = [np.asarray(v, dtype=float) for v in basis]
    if not vs:
        raise DegenerateGeometryError("Hyperplane basis is empty")
    dim = vs[0].shape[0]
    if len(vs) != dim - 1:
        raise DegenerateGeometryError(f"A hyperplane of R^{dim} needs {dim - 1} basis vectors, got {len(vs)}")
    ortho = gram_schmidt(vs)
    if len(ortho) != dim - 1:
        raise DegenerateGeometryError("Hyperplane basis vectors must be non-zero and linearly independent")
    return complete_basis(ortho, dim)[-1]


def perpendicular_2d(v: ArrayLike) -> Vector:
    """Rotate a 2D vector by +90 degrees."""

    x, y = np.asarray(v, dtype=float)
    return np.array([-y, x])


def mirror_point_across_plane(point: ArrayLike, center: ArrayLike, normal: ArrayLike) -> Vector:
    """Reflect a point across the infinite hyperplane through ``center``."""

    p = np.asarray(point, dtype=float)
    n = normalize(normal)
    signed_dist = np.dot(p - np.asarray(center, dtype=float), n)
    return p - 2.0 * signed_dist * n
