"""Geometric equivalence checks between mirrors, scenes and trajectories.

Use-case: verify that a scene or trajectory survives a write/read cycle
through an external format, or compare two traces of the same ray run with
different settings. Checks return ``(ok, warnings)``; every mismatch is
reported as a warning string instead of stopping at the first one.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np

from mirror_core.mirrors import BezierMirror, Mirror, PlaneMirror, SphereMirror
from mirror_core.rays import Ray
from mirror_core.scene import Scene
from mirror_core.tracer import Trajectory


@dataclass
class MatchConfig:
    atol: float = 1e-9
    check_rays: bool = True


def _close(a, b, atol: float) -> bool:
    aa = np.asarray(a, dtype=float)
    bb = np.asarray(b, dtype=float)
    return aa.shape == bb.shape and bool(np.allclose(aa, bb, rtol=0.0, atol=atol))


def mirrors_equivalent(a: Mirror, b: Mirror, atol: float = 1e-9) -> bool:
    if type(a) is not type(b):
        return False
    if isinstance(a, PlaneMirror):
        return _close(a.center, b.center, atol) and _close(np.vstack(a.basis), np.vstack(b.basis), atol)
    if isinstance(a, SphereMirror):
        if not (_close(a.center, b.center, atol) and abs(a.radius - b.radius) <= atol):
            return False
        if (a.cap_normal is None) != (b.cap_normal is None):
            return False
        return a.cap_normal is None or (_close(a.cap_normal, b.cap_normal, atol) and abs(a.cap_offset - b.cap_offset) <= atol)
    if isinstance(a, BezierMirror):
        return a.samples == b.samples and _close(a.control_points, b.control_points, atol)
    raise TypeError(f"Unsupported mirror type: {type(a)}")


def _rays_equivalent(a: Ray, b: Ray, atol: float) -> bool:
    return _close(a.origin, b.origin, atol) and _close(a.direction, b.direction, atol)


def scenes_equivalent(a: Scene, b: Scene, config: MatchConfig | None = None) -> Tuple[bool, List[str]]:
    cfg = config or MatchConfig()
    warnings: List[str] = []
    if len(a.mirrors) != len(b.mirrors):
        warnings.append(f"mirror count differs: {len(a.mirrors)} != {len(b.mirrors)}")
    for i, (ma, mb) in enumerate(zip(a.mirrors, b.mirrors)):
        if not mirrors_equivalent(ma, mb, cfg.atol):
            warnings.append(f"mirror[{i}] differs ({ma.kind} vs {mb.kind})")
    if cfg.check_rays:
        if len(a.rays) != len(b.rays):
            warnings.append(f"ray count differs: {len(a.rays)} != {len(b.rays)}")
        for i, (ra, rb) in enumerate(zip(a.rays, b.rays)):
            if not _rays_equivalent(ra, rb, cfg.atol):
                warnings.append(f"ray[{i}] differs")
    return not warnings, warnings


def trajectories_equivalent(a: Trajectory, b: Trajectory, config: MatchConfig | None = None) -> Tuple[bool, List[str]]:
    """Same status, same mirror sequence, hit points/normals/directions within ``atol``."""

    cfg = config or MatchConfig()
    warnings: List[str] = []
    if a.status is not b.status:
        warnings.append(f"status differs: {a.status.value} != {b.status.value}")
    if not _rays_equivalent(a.initial_ray, b.initial_ray, cfg.atol):
        warnings.append("initial ray differs")
    if len(a) != len(b):
        warnings.append(f"event count differs: {len(a)} != {len(b)}")
    for i, (ea, eb) in enumerate(zip(a.events, b.events)):
        if ea.mirror_index != eb.mirror_index:
            warnings.append(f"event[{i}] mirror index {ea.mirror_index} != {eb.mirror_index}")
            continue
        if not _close(ea.hit.point, eb.hit.point, cfg.atol):
            warnings.append(f"event[{i}] hit point differs")
        if not _close(ea.hit.normal, eb.hit.normal, cfg.atol):
            warnings.append(f"event[{i}] normal differs")
        if cfg.check_rays and not (
            _rays_equivalent(ea.incoming, eb.incoming, cfg.atol) and _rays_equivalent(ea.outgoing, eb.outgoing, cfg.atol)
        ):
            warnings.append(f"event[{i}] incoming/outgoing ray differs")
    return not warnings, warnings


def all_trajectories_equivalent(
    run_a: Sequence[Trajectory], run_b: Sequence[Trajectory], config: MatchConfig | None = None
) -> Tuple[bool, List[str]]:
    warnings: List[str] = []
    if len(run_a) != len(run_b):
        warnings.append(f"trajectory count differs: {len(run_a)} != {len(run_b)}")
    for i, (ta, tb) in enumerate(zip(run_a, run_b)):
        _, w = trajectories_equivalent(ta, tb, config)
        warnings.extend(f"ray[{i}] {msg}" for msg in w)
    return not warnings, warnings
