"""Ray container and reflection helpers.

Example:
    >>> import numpy as np
    >>> from mirror_core.rays import Ray, reflect
    >>> d = np.array([1.0, -1.0, 0.0]) / np.sqrt(2)
    >>> n = np.array([0.0, 1.0, 0.0])
    >>> np.allclose(reflect(d, n), np.array([1.0, 1.0, 0.0]) / np.sqrt(2))
    True
    >>> Ray([0.0, 0.0], [3.0, 4.0]).direction.tolist()
    [0.6, 0.8]
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from numpy.typing import ArrayLike

from mirror_core.errors import DegenerateGeometryError, DimensionMismatchError
from mirror_core.geometry import Vector, as_vector, normalize


@dataclass(frozen=True, eq=False)
class Ray:
    """Immutable half-line ``origin + t * direction``, ``t >= 0``.

    The direction is normalized on construction.
    """

    origin: Vector
    direction: Vector

    def __post_init__(self) -> None:
        o = as_vector(self.origin)
        d = np.asarray(self.direction, dtype=float)
        if d.shape != o.shape:
            raise DimensionMismatchError(f"Ray origin has shape {o.shape} but direction has shape {d.shape}")
        try:
            d = normalize(d)
        except DegenerateGeometryError as exc:
            raise DegenerateGeometryError("Ray direction must be non-zero") from exc
        object.__setattr__(self, "origin", o)
        object.__setattr__(self, "direction", as_vector(d))

    @property
    def dim(self) -> int:
        return int(self.origin.shape[0])

    def at(self, t: float) -> Vector:
        return self.origin + t * self.direction


def reflect(direction: ArrayLike, normal: ArrayLike) -> Vector:
    """Specular reflection ``d - 2 (d.n) n``, returned with unit length."""

    d = np.asarray(direction, dtype=float)
    d = d / np.linalg.norm(d)
    n = np.asarray(normal, dtype=float)
    n = n / np.linalg.norm(n)
    r = d - 2.0 * np.dot(d, n) * n
    return r / np.linalg.norm(r)
