"""HDF5 store for traced trajectories.

The schema stores one scene and one trajectory per initial ray.

Structure:
    /
      meta                          (attrs: created_at, dim, n_trajectories)
      scene_json                    (scalar utf-8 JSON, see mirror_io.json_io)
      trajectories/{ray_id}/        (attrs: status, max_reflections, epsilon)
          initial_origin            (D,)
          initial_direction         (D,)
          mirror_index              (K,) int64
          distance                  (K,)
          point                     (K,D)
          normal                    (K,D)
          outgoing_direction        (K,D)

Incoming rays are not stored: event ``k`` starts where event ``k - 1`` ended
(or at the initial ray for ``k = 0``), so they are rebuilt on load.

Example:
    >>> from scenarios.parallel_mirrors import build_scene
    >>> from mirror_core.tracer import TraceConfig, trace_scene
    >>> scene = build_scene()
    >>> trajs = trace_scene(scene, TraceConfig(max_reflections=10))
    >>> save_trajectories_hdf5("/tmp/mirror_example.h5", scene, trajs)
    >>> scene2, trajs2, meta = load_trajectories_hdf5("/tmp/mirror_example.h5")
    >>> len(trajs2[0]), meta.dim
    (10, 3)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
import json
from typing import List, Sequence, Tuple
import warnings

import h5py
import numpy as np

from analysis.trajectory_matching import MatchConfig, all_trajectories_equivalent, scenes_equivalent
from mirror_core.mirrors import BezierMirror, Hit, SphereMirror, plane_segment_2d
from mirror_core.rays import Ray
from mirror_core.scene import Scene
from mirror_core.tracer import ReflectionEvent, TraceConfig, TraceStatus, Trajectory, trace_scene
from mirror_io.json_io import scene_from_json, scene_to_json


@dataclass
class Hdf5Meta:
    created_at: str
    dim: int
    n_trajectories: int


def save_trajectories_hdf5(filepath: str, scene: Scene, trajectories: Sequence[Trajectory]) -> None:
    """Save a scene and its trajectories using a fixed schema contract."""

    dim = scene.dim if scene.dim is not None else (trajectories[0].initial_ray.dim if trajectories else 0)
    with h5py.File(filepath, "w") as h5:
        meta = h5.create_group("meta")
        meta.attrs["created_at"] = datetime.now(timezone.utc).isoformat()
        meta.attrs["dim"] = int(dim)
        meta.attrs["n_trajectories"] = len(trajectories)
        h5.create_dataset("scene_json", data=json.dumps(scene_to_json(scene)))

        g_traj = h5.create_group("trajectories")
        for i, traj in enumerate(trajectories):
            g = g_traj.create_group(f"ray_{i:05d}")
            g.attrs["status"] = traj.status.value
            g.attrs["max_reflections"] = int(traj.max_reflections)
            g.attrs["epsilon"] = float(traj.epsilon)
            g.create_dataset("initial_origin", data=np.asarray(traj.initial_ray.origin, dtype=np.float64))
            g.create_dataset("initial_direction", data=np.asarray(traj.initial_ray.direction, dtype=np.float64))

            n, d = len(traj), traj.initial_ray.dim
            events = traj.events
            g.create_dataset("mirror_index", data=np.array([e.mirror_index for e in events], dtype=np.int64))
            g.create_dataset("distance", data=np.array([e.hit.distance for e in events], dtype=np.float64))
            g.create_dataset("point", data=np.array([e.hit.point for e in events], dtype=np.float64).reshape(n, d))
            g.create_dataset("normal", data=np.array([e.hit.normal for e in events], dtype=np.float64).reshape(n, d))
            g.create_dataset(
                "outgoing_direction",
                data=np.array([e.outgoing.direction for e in events], dtype=np.float64).reshape(n, d),
            )


def _load_trajectory(g: h5py.Group) -> Trajectory:
    initial = Ray(np.asarray(g["initial_origin"][()]), np.asarray(g["initial_direction"][()]))
    mirror_index = np.asarray(g["mirror_index"][()], dtype=np.int64)
    distance = np.asarray(g["distance"][()], dtype=np.float64)
    point = np.asarray(g["point"][()], dtype=np.float64)
    normal = np.asarray(g["normal"][()], dtype=np.float64)
    out_dir = np.asarray(g["outgoing_direction"][()], dtype=np.float64)

    events: List[ReflectionEvent] = []
    incoming = initial
    for k in range(len(mirror_index)):
        outgoing = Ray(point[k], out_dir[k])
        events.append(ReflectionEvent(int(mirror_index[k]), Hit(float(distance[k]), point[k], normal[k]), incoming, outgoing))
        incoming = outgoing

    status = g.attrs.get("status", None)
    if status is None:
        warnings.warn(f"'{g.name}' has no status attribute; assuming budget exhaustion.", RuntimeWarning, stacklevel=2)
        status = TraceStatus.BUDGET_EXHAUSTED.value
    return Trajectory(
        initial_ray=initial,
        events=tuple(events),
        status=TraceStatus(str(status)),
        max_reflections=int(g.attrs.get("max_reflections", 0)),
        epsilon=float(g.attrs.get("epsilon", 0.0)),
    )


def load_trajectories_hdf5(filepath: str) -> Tuple[Scene, List[Trajectory], Hdf5Meta]:
    """Load the stored scene and reconstruct its trajectories in ray order."""

    with h5py.File(filepath, "r") as h5:
        raw = h5["scene_json"][()]
        scene = scene_from_json(json.loads(raw.decode() if isinstance(raw, bytes) else raw))
        meta = Hdf5Meta(
            created_at=str(h5["meta"].attrs.get("created_at", "")),
            dim=int(h5["meta"].attrs.get("dim", scene.dim or 0)),
            n_trajectories=int(h5["meta"].attrs.get("n_trajectories", len(h5["trajectories"]))),
        )
        trajectories = [_load_trajectory(h5["trajectories"][name]) for name in sorted(h5["trajectories"].keys())]
    return scene, trajectories, meta


def _self_test_scene() -> Scene:
    h = 2.0
    mirrors = (
        plane_segment_2d([-h, -h], [h, -h]),
        plane_segment_2d([h, -h], [h, h]),
        plane_segment_2d([-h, h], [-h, -h]),
        BezierMirror(np.array([[h, h], [0.0, h + 4.0], [-h, h]])),
        SphereMirror(np.zeros(2), 0.5),
    )
    rays = tuple(Ray([-1.2, -1.2], [np.cos(a), np.sin(a)]) for a in np.linspace(0.2, 1.3, 3))
    return Scene(mirrors, rays)


def self_test_roundtrip(filepath: str, atol: float = 1e-10) -> bool:
    """Write->read equivalence self-test on a small 2D box with a curved wall."""

    scene = _self_test_scene()
    trajs = trace_scene(scene, TraceConfig(max_reflections=50))
    save_trajectories_hdf5(filepath, scene, trajs)
    scene2, trajs2, _ = load_trajectories_hdf5(filepath)
    cfg = MatchConfig(atol=atol)
    ok_scene, _ = scenes_equivalent(scene, scene2, cfg)
    ok_traj, _ = all_trajectories_equivalent(trajs, trajs2, cfg)
    return ok_scene and ok_traj
