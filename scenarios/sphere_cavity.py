"""Rays trapped inside a spherical mirror, plus a shallow cap hit from outside."""

from __future__ import annotations

import numpy as np

from mirror_core.mirrors import SphereMirror
from mirror_core.rays import Ray
from mirror_core.scene import Scene
from scenarios.common import run_scene


def build_scene(radius: float = 2.0, cap_offset: float | None = None) -> Scene:
    if cap_offset is None:
        sphere = SphereMirror(np.zeros(3), radius)
    else:
        sphere = SphereMirror(np.zeros(3), radius, cap_normal=np.array([0.0, 0.0, 1.0]), cap_offset=cap_offset)
    rays = (
        # through the center: bounces back and forth along a diameter
        Ray(np.array([0.0, 0.0, 0.0]), np.array([1.0, 0.0, 0.0])),
        # edge of the inscribed square: period 4
        Ray(np.array([0.5 * radius, -0.5 * radius, 0.0]), np.array([1.0, 1.0, 0.0])),
        # generic chord, no short recurrence
        Ray(np.array([0.3, 0.1, -0.2]), np.array([0.7, -0.2, 0.4])),
    )
    return Scene((sphere,), rays)


def build_sweep_params():
    return [
        {"case_id": "s_full", "radius": 2.0, "max_reflections": 200},
        {"case_id": "s_bowl", "radius": 2.0, "cap_offset": -1.0, "max_reflections": 200},
    ]


def run_case(params):
    return run_scene(build_scene(params["radius"], params.get("cap_offset")), params)
