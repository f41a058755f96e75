"""Scene container: an ordered, read-only set of mirrors plus initial rays."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Optional, Sequence, Tuple

from mirror_core.errors import DimensionMismatchError
from mirror_core.mirrors import Mirror
from mirror_core.rays import Ray


@dataclass(frozen=True, eq=False)
class Scene:
    """Mirrors (index = tie-break priority) and the rays launched into them."""

    mirrors: Tuple[Mirror, ...]
    rays: Tuple[Ray, ...] = ()

    def __post_init__(self) -> None:
        mirrors = tuple(self.mirrors)
        rays = tuple(self.rays)
        dims = {m.dim for m in mirrors} | {r.dim for r in rays}
        if len(dims) > 1:
            raise DimensionMismatchError(f"Scene mixes dimensions {sorted(dims)}")
        object.__setattr__(self, "mirrors", mirrors)
        object.__setattr__(self, "rays", rays)

    @property
    def dim(self) -> Optional[int]:
        if self.mirrors:
            return self.mirrors[0].dim
        if self.rays:
            return self.rays[0].dim
        return None

    def __len__(self) -> int:
        return len(self.mirrors)

    def __iter__(self) -> Iterator[Mirror]:
        return iter(self.mirrors)

    def smallest_extent(self) -> Optional[float]:
        if not self.mirrors:
            return None
        return min(m.extent() for m in self.mirrors)

    def with_rays(self, rays: Sequence[Ray]) -> "Scene":
        return Scene(self.mirrors, tuple(rays))
