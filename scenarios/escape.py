"""Open arrangements: rays that leave after a few bounces or never hit anything."""

from __future__ import annotations

import numpy as np

from mirror_core.mirrors import SphereMirror, axis_aligned_plane
from mirror_core.rays import Ray
from mirror_core.scene import Scene
from scenarios.common import run_scene


def build_scene() -> Scene:
    mirrors = (
        axis_aligned_plane(np.array([3.0, 0.0, 0.0]), 0, 1.0),
        SphereMirror(np.array([0.0, 4.0, 0.0]), 1.0),
    )
    rays = (
        # pointing away from every mirror
        Ray(np.zeros(3), np.array([-1.0, 0.0, 0.0])),
        # one bounce on the plane, then out
        Ray(np.zeros(3), np.array([1.0, 0.2, 0.0])),
        # straight at the sphere: comes back and leaves along -y
        Ray(np.zeros(3), np.array([0.0, 1.0, 0.0])),
    )
    return Scene(mirrors, rays)


def build_sweep_params():
    return [{"case_id": "e_open", "max_reflections": 50}]


def run_case(params):
    return run_scene(build_scene(), params)
