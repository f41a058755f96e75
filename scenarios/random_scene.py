"""Randomized scene generation.

Coordinates are drawn uniformly in symmetric boxes: plane centers and half-edge
vectors within ``+-max_plane_coord``, sphere centers within ``+-max_center``
with radii below ``max_radius``, ray origins within ``+-max_ray_origin``.
Draws that produce a degenerate mirror or ray are re-sampled. Bezier curves
are only drawn for 2D scenes.

Example:
    >>> scene = random_scene(dim=3, n_mirrors=8, n_rays=2, rng=7)
    >>> len(scene.mirrors), len(scene.rays), scene.dim
    (8, 2, 3)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List

import numpy as np

from mirror_core.errors import MirrorError
from mirror_core.mirrors import BezierMirror, Mirror, PlaneMirror, SphereMirror
from mirror_core.rays import Ray
from mirror_core.scene import Scene
from scenarios.common import run_scene

MAX_DRAWS = 1000


@dataclass
class RandomSceneConfig:
    max_plane_coord: float = 10.0
    max_center: float = 9.0
    max_radius: float = 3.0
    min_radius: float = 0.05
    max_ray_origin: float = 7.0
    min_control_points: int = 2
    max_control_points: int = 5


def _box(rng: np.random.Generator, dim: int, half: float) -> np.ndarray:
    return (rng.random(dim) - 0.5) * (2.0 * abs(half))


def _resample(draw: Callable[[], object]):
    for _ in range(MAX_DRAWS):
        try:
            return draw()
        except MirrorError:
            continue
    raise RuntimeError(f"Could not draw a non-degenerate object in {MAX_DRAWS} attempts")


def random_plane(rng: np.random.Generator, dim: int, cfg: RandomSceneConfig) -> PlaneMirror:
    return _resample(
        lambda: PlaneMirror(
            _box(rng, dim, cfg.max_plane_coord),
            tuple(_box(rng, dim, cfg.max_plane_coord) for _ in range(dim - 1)),
        )
    )


def random_sphere(rng: np.random.Generator, dim: int, cfg: RandomSceneConfig) -> SphereMirror:
    radius = cfg.min_radius + rng.random() * (cfg.max_radius - cfg.min_radius)
    return SphereMirror(_box(rng, dim, cfg.max_center), radius)


def random_bezier(rng: np.random.Generator, cfg: RandomSceneConfig) -> BezierMirror:
    n = int(rng.integers(cfg.min_control_points, cfg.max_control_points + 1))
    return _resample(lambda: BezierMirror(np.array([_box(rng, 2, cfg.max_center) for _ in range(n)])))


def random_ray(rng: np.random.Generator, dim: int, cfg: RandomSceneConfig) -> Ray:
    origin = _box(rng, dim, cfg.max_ray_origin)
    return _resample(lambda: Ray(origin, _box(rng, dim, 1.0)))


def random_scene(
    dim: int,
    n_mirrors: int,
    n_rays: int,
    rng: np.random.Generator | int | None = None,
    config: RandomSceneConfig | None = None,
) -> Scene:
    if dim < 2:
        raise ValueError(f"dim must be >= 2, got {dim}")
    if n_mirrors < 0 or n_rays < 0:
        raise ValueError("mirror and ray counts must be >= 0")
    cfg = config or RandomSceneConfig()
    gen = rng if isinstance(rng, np.random.Generator) else np.random.default_rng(rng)
    n_kinds = 3 if dim == 2 else 2
    mirrors: List[Mirror] = []
    for _ in range(n_mirrors):
        kind = int(gen.integers(0, n_kinds))
        if kind == 0:
            mirrors.append(random_plane(gen, dim, cfg))
        elif kind == 1:
            mirrors.append(random_sphere(gen, dim, cfg))
        else:
            mirrors.append(random_bezier(gen, cfg))
    rays = [random_ray(gen, dim, cfg) for _ in range(n_rays)]
    return Scene(tuple(mirrors), tuple(rays))


def build_sweep_params():
    return [
        {"case_id": "r_2d_seed1", "dim": 2, "n_mirrors": 16, "n_rays": 8, "seed": 1, "max_reflections": 200},
        {"case_id": "r_3d_seed2", "dim": 3, "n_mirrors": 32, "n_rays": 8, "seed": 2, "max_reflections": 200},
        {"case_id": "r_4d_seed3", "dim": 4, "n_mirrors": 24, "n_rays": 4, "seed": 3, "max_reflections": 200},
    ]


def run_case(params):
    scene = random_scene(params["dim"], params["n_mirrors"], params["n_rays"], rng=params["seed"])
    return run_scene(scene, params)
