"""Iterative reflection tracer.

Each step tests the current ray against every mirror, keeps the nearest hit
(ties go to the lowest mirror index), and continues with a new ray starting
exactly at the hit point. No origin offset is applied: the ``distance > eps``
rule of the next intersection test is what prevents re-hitting the mirror the
ray just left.

Example:
    >>> import numpy as np
    >>> from mirror_core.mirrors import axis_aligned_plane
    >>> from mirror_core.rays import Ray
    >>> from mirror_core.tracer import TraceConfig, TraceStatus, trace_ray
    >>> walls = [axis_aligned_plane([0.0, 0.0], 0, 1.0), axis_aligned_plane([1.0, 0.0], 0, 1.0)]
    >>> traj = trace_ray(walls, Ray([0.5, 0.0], [1.0, 0.0]), TraceConfig(max_reflections=4))
    >>> traj.status is TraceStatus.BUDGET_EXHAUSTED, traj.mirror_indices()
    (True, [1, 0, 1, 0])
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray

from mirror_core.errors import DimensionMismatchError
from mirror_core.mirrors import Hit, Mirror
from mirror_core.rays import Ray, reflect
from mirror_core.scene import Scene

MIN_EPSILON = 1e-12


class TraceStatus(str, Enum):
    ESCAPED = "escaped"
    BUDGET_EXHAUSTED = "budget_exhausted"
    LOOP_DETECTED = "loop_detected"


@dataclass
class TraceConfig:
    """Tracer settings.

    max_reflections: reflection budget per ray.
    epsilon: minimum accepted hit distance; ``None`` derives it from the scene.
    relative_epsilon: factor applied to the smallest mirror extent when
        ``epsilon`` is ``None``.
    stop_on_loop: stop as soon as a pair of consecutive bounces repeats.
    loop_tolerance: point coincidence tolerance used by ``stop_on_loop``.
    """

    max_reflections: int = 1000
    epsilon: Optional[float] = None
    relative_epsilon: float = 1e-9
    stop_on_loop: bool = False
    loop_tolerance: float = 1e-6

    def __post_init__(self) -> None:
        if self.max_reflections < 0:
            raise ValueError(f"max_reflections must be >= 0, got {self.max_reflections}")
        if self.epsilon is not None and not self.epsilon > 0.0:
            raise ValueError(f"epsilon must be > 0, got {self.epsilon}")
        if not self.relative_epsilon > 0.0:
            raise ValueError(f"relative_epsilon must be > 0, got {self.relative_epsilon}")


@dataclass(frozen=True, eq=False)
class ReflectionEvent:
    mirror_index: int
    hit: Hit
    incoming: Ray
    outgoing: Ray


@dataclass(frozen=True, eq=False)
class Trajectory:
    """Bounce record of one ray plus how the trace ended."""

    initial_ray: Ray
    events: Tuple[ReflectionEvent, ...]
    status: TraceStatus
    max_reflections: int = 0
    epsilon: float = 0.0

    def __len__(self) -> int:
        return len(self.events)

    @property
    def escaped(self) -> bool:
        return self.status is TraceStatus.ESCAPED

    @property
    def final_ray(self) -> Ray:
        return self.events[-1].outgoing if self.events else self.initial_ray

    def mirror_indices(self) -> List[int]:
        return [e.mirror_index for e in self.events]

    def hit_points(self) -> NDArray[np.float64]:
        dim = self.initial_ray.dim
        if not self.events:
            return np.zeros((0, dim))
        return np.array([e.hit.point for e in self.events])

    def points(self) -> NDArray[np.float64]:
        """Ray origin followed by every hit point, shape (len + 1, D)."""

        return np.vstack([self.initial_ray.origin[None, :], self.hit_points()])

    def path_length(self) -> float:
        return float(sum(e.hit.distance for e in self.events))


def resolve_epsilon(mirrors: Sequence[Mirror], config: TraceConfig) -> float:
    """Explicit epsilon, else ``relative_epsilon`` times the smallest mirror extent."""

    if config.epsilon is not None:
        return float(config.epsilon)
    if not mirrors:
        return MIN_EPSILON
    return max(config.relative_epsilon * min(m.extent() for m in mirrors), MIN_EPSILON)


def nearest_hit(mirrors: Sequence[Mirror], ray: Ray, eps: float) -> Optional[Tuple[int, Hit]]:
    best: Optional[Tuple[int, Hit]] = None
    for i, mirror in enumerate(mirrors):
        hit = mirror.intersect(ray, eps)
        if hit is not None and (best is None or hit.distance < best[1].distance):
            best = (i, hit)
    return best


def _same_bounce(a: ReflectionEvent, b: ReflectionEvent, tol: float) -> bool:
    return a.mirror_index == b.mirror_index and float(np.linalg.norm(a.hit.point - b.hit.point)) <= tol


def _repeats_segment(events: List[ReflectionEvent], seen: Dict[Tuple[int, int], List[int]], tol: float) -> bool:
    """Register the latest bounce pair; True if it retraces an earlier one."""

    n = len(events)
    if n < 2:
        return False
    a, b = events[-2], events[-1]
    key = (a.mirror_index, b.mirror_index)
    for i in seen.get(key, []):
        if _same_bounce(events[i], a, tol) and _same_bounce(events[i + 1], b, tol):
            return True
    seen.setdefault(key, []).append(n - 2)
    return False


def trace_ray(mirrors: Scene | Sequence[Mirror], ray: Ray, config: TraceConfig | None = None) -> Trajectory:
    """Follow one ray until it escapes, runs out of budget, or (optionally) loops."""

    cfg = config or TraceConfig()
    ms = tuple(mirrors.mirrors if isinstance(mirrors, Scene) else mirrors)
    if ms and ms[0].dim != ray.dim:
        raise DimensionMismatchError(f"{ray.dim}D ray traced through a {ms[0].dim}D scene")
    eps = resolve_epsilon(ms, cfg)

    events: List[ReflectionEvent] = []
    seen: Dict[Tuple[int, int], List[int]] = {}
    status = TraceStatus.BUDGET_EXHAUSTED
    current = ray
    for _ in range(cfg.max_reflections):
        found = nearest_hit(ms, current, eps)
        if found is None:
            status = TraceStatus.ESCAPED
            break
        index, hit = found
        outgoing = Ray(hit.point, reflect(current.direction, hit.normal))
        events.append(ReflectionEvent(index, hit, current, outgoing))
        current = outgoing
        if cfg.stop_on_loop and _repeats_segment(events, seen, cfg.loop_tolerance):
            status = TraceStatus.LOOP_DETECTED
            break

    return Trajectory(ray, tuple(events), status, max_reflections=cfg.max_reflections, epsilon=eps)


def trace_scene(
    scene: Scene,
    config: TraceConfig | None = None,
    rays: Sequence[Ray] | None = None,
    max_workers: int | None = None,
) -> List[Trajectory]:
    """Trace every ray of the scene independently, results in ray order.

    With ``max_workers > 1`` rays are traced on a thread pool; the scene is
    read-only so no locking is involved.
    """

    todo = list(scene.rays if rays is None else rays)
    if max_workers is None or max_workers <= 1 or len(todo) <= 1:
        return [trace_ray(scene, r, config) for r in todo]
    with ThreadPoolExecutor(max_workers=max_workers) as ex:
        return list(ex.map(lambda r: trace_ray(scene, r, config), todo))
