"""2D box closed by a Bezier arch, with a circular pillar in the middle.

The pillar makes the billiard dispersing, so typical rays never settle into a
short period.
"""

from __future__ import annotations

import numpy as np

from mirror_core.mirrors import BezierMirror, SphereMirror, plane_segment_2d
from mirror_core.rays import Ray
from mirror_core.scene import Scene
from scenarios.common import run_scene


def build_scene(half_size: float = 2.0, arch_height: float = 2.0, pillar_radius: float = 0.5, n_rays: int = 3) -> Scene:
    h = half_size
    mirrors = (
        plane_segment_2d([-h, -h], [h, -h]),
        plane_segment_2d([h, -h], [h, h]),
        plane_segment_2d([-h, h], [-h, -h]),
        BezierMirror(np.array([[h, h], [0.0, h + 2.0 * arch_height], [-h, h]])),
        SphereMirror(np.zeros(2), pillar_radius),
    )
    angles = np.linspace(0.2, 1.3, n_rays)
    rays = tuple(Ray(np.array([-0.6 * h, -0.6 * h]), np.array([np.cos(a), np.sin(a)])) for a in angles)
    return Scene(mirrors, rays)


def build_sweep_params():
    return [
        {"case_id": "m_box", "half_size": 2.0, "arch_height": 2.0, "max_reflections": 300},
        {"case_id": "m_flat_arch", "half_size": 2.0, "arch_height": 0.25, "max_reflections": 300},
    ]


def run_case(params):
    return run_scene(build_scene(params["half_size"], params["arch_height"]), params)
