"""Common scenario helpers."""

from __future__ import annotations

from typing import Any, Dict, List, Tuple

from mirror_core.scene import Scene
from mirror_core.tracer import TraceConfig, Trajectory, trace_scene


def make_config(params: Dict[str, Any]) -> TraceConfig:
    return TraceConfig(
        max_reflections=int(params.get("max_reflections", 100)),
        epsilon=params.get("epsilon"),
        stop_on_loop=bool(params.get("stop_on_loop", False)),
    )


def run_scene(scene: Scene, params: Dict[str, Any]) -> Tuple[Scene, List[Trajectory]]:
    return scene, trace_scene(scene, make_config(params), max_workers=params.get("max_workers"))
