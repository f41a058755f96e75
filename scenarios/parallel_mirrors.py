"""Two facing square mirrors; a perpendicular ray bounces between them forever."""

from __future__ import annotations

import numpy as np

from mirror_core.mirrors import axis_aligned_plane
from mirror_core.rays import Ray
from mirror_core.scene import Scene
from scenarios.common import run_scene


def build_scene(gap: float = 1.0, half_width: float = 1.0, dim: int = 3) -> Scene:
    origin = np.zeros(dim)
    origin[0] = 0.5 * gap
    direction = np.zeros(dim)
    direction[0] = 1.0
    far = np.zeros(dim)
    far[0] = gap
    mirrors = (
        axis_aligned_plane(np.zeros(dim), 0, half_width),
        axis_aligned_plane(far, 0, half_width),
    )
    return Scene(mirrors, (Ray(origin, direction),))


def build_sweep_params():
    return [
        {"case_id": "p_gap1_3d", "gap": 1.0, "dim": 3, "max_reflections": 100},
        {"case_id": "p_gap1_2d", "gap": 1.0, "dim": 2, "max_reflections": 100},
        {"case_id": "p_gap3_5d", "gap": 3.0, "dim": 5, "max_reflections": 100},
    ]


def run_case(params):
    return run_scene(build_scene(params["gap"], params.get("half_width", 1.0), params["dim"]), params)
