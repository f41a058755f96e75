"""JSON scene and trajectory documents.

Scene layout (mirrors are tagged by variant, arrays may nest):

    {
      "dim": 2,
      "rays": [{"origin": [0.0, 0.0], "direction": [1.0, 0.0]}],
      "mirror": {
        "type": "[]dynamic",
        "mirror": [
          {"type": "plane", "mirror": {"center": [3.0, 0.0], "basis": [[0.0, 1.0]]}},
          {"type": "sphere", "mirror": {"center": [0.0, 5.0], "radius": 1.0,
                                        "cap": {"normal": [0.0, -1.0], "offset": -0.5}}},
          {"type": "bezier", "mirror": {"control_points": [[0.0, -4.0], [2.0, -6.0], [4.0, -4.0]]}}
        ]
      }
    }

``"[]plane"`` style homogeneous arrays, nested ``"dynamic"`` entries and a flat
``"mirrors"`` list of ``{"type": ..., "mirror": ...}`` entries are accepted on
load. Saving always writes the ``"[]dynamic"`` form.

Trajectory layout:

    {"dim": 2, "trajectories": [{"status": "escaped", "initial_ray": {...},
      "max_reflections": 1000, "epsilon": 1e-09,
      "events": [{"mirror_index": 0, "distance": 3.0, "point": [...],
                  "normal": [...], "incoming": {...}, "outgoing": {...}}]}]}
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import numpy as np

from mirror_core.mirrors import MIRROR_TYPES, BezierMirror, Hit, Mirror, PlaneMirror, SphereMirror
from mirror_core.rays import Ray
from mirror_core.scene import Scene
from mirror_core.tracer import ReflectionEvent, TraceStatus, Trajectory


class SceneFormatError(ValueError):
    """A scene or trajectory document is malformed."""


def _json_default(obj: Any) -> Any:
    if isinstance(obj, (np.integer, np.floating)):
        return obj.item()
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    raise TypeError(f"Unsupported JSON type: {type(obj)}")


def _get(obj: Mapping[str, Any], key: str, where: str) -> Any:
    if not isinstance(obj, Mapping):
        raise SceneFormatError(f"{where}: expected an object, got {type(obj).__name__}")
    if key not in obj:
        raise SceneFormatError(f"{where}: missing field '{key}'")
    return obj[key]


def _number(value: Any, where: str) -> float:
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        raise SceneFormatError(f"{where}: expected a number")
    return float(value)


def _integer(value: Any, where: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise SceneFormatError(f"{where}: expected an integer")
    return value


def _vector(value: Any, where: str, dim: Optional[int]) -> np.ndarray:
    if not isinstance(value, (list, tuple)) or not all(isinstance(x, (int, float)) and not isinstance(x, bool) for x in value):
        raise SceneFormatError(f"{where}: expected an array of numbers")
    if dim is not None and len(value) != dim:
        raise SceneFormatError(f"{where}: expected {dim} coordinates, got {len(value)}")
    return np.asarray(value, dtype=float)


def ray_to_json(ray: Ray) -> Dict[str, Any]:
    return {"origin": ray.origin.tolist(), "direction": ray.direction.tolist()}


def ray_from_json(obj: Mapping[str, Any], dim: Optional[int] = None, where: str = "ray") -> Ray:
    origin = _vector(_get(obj, "origin", where), f"{where}.origin", dim)
    direction = _vector(_get(obj, "direction", where), f"{where}.direction", dim)
    return Ray(origin, direction)


def mirror_to_json(mirror: Mirror) -> Dict[str, Any]:
    if isinstance(mirror, PlaneMirror):
        body: Dict[str, Any] = {"center": mirror.center.tolist(), "basis": [v.tolist() for v in mirror.basis]}
    elif isinstance(mirror, SphereMirror):
        body = {"center": mirror.center.tolist(), "radius": mirror.radius}
        if mirror.cap_normal is not None:
            body["cap"] = {"normal": mirror.cap_normal.tolist(), "offset": mirror.cap_offset}
    elif isinstance(mirror, BezierMirror):
        body = {"control_points": mirror.control_points.tolist(), "samples": mirror.samples}
    else:
        raise TypeError(f"Unsupported mirror type: {type(mirror)}")
    return {"type": mirror.kind, "mirror": body}


def _mirror_body_from_json(kind: str, body: Mapping[str, Any], dim: Optional[int], where: str) -> Mirror:
    if kind == PlaneMirror.kind:
        basis = _get(body, "basis", where)
        if not isinstance(basis, list):
            raise SceneFormatError(f"{where}.basis: expected an array of vectors")
        return PlaneMirror(
            center=_vector(_get(body, "center", where), f"{where}.center", dim),
            basis=tuple(_vector(v, f"{where}.basis[{k}]", dim) for k, v in enumerate(basis)),
        )
    if kind == SphereMirror.kind:
        radius = _number(_get(body, "radius", where), f"{where}.radius")
        cap = body.get("cap")
        cap_normal = None if cap is None else _vector(_get(cap, "normal", f"{where}.cap"), f"{where}.cap.normal", dim)
        cap_offset = 0.0 if cap is None else _number(_get(cap, "offset", f"{where}.cap"), f"{where}.cap.offset")
        return SphereMirror(
            center=_vector(_get(body, "center", where), f"{where}.center", dim),
            radius=radius,
            cap_normal=cap_normal,
            cap_offset=cap_offset,
        )
    if kind == BezierMirror.kind:
        points = _get(body, "control_points", where)
        if not isinstance(points, list):
            raise SceneFormatError(f"{where}.control_points: expected an array of points")
        cps = np.array([_vector(p, f"{where}.control_points[{k}]", dim) for k, p in enumerate(points)])
        return BezierMirror(cps, samples=_integer(body.get("samples", 64), f"{where}.samples"))
    raise SceneFormatError(f"{where}: invalid mirror type '{kind}'")


def mirrors_from_json(obj: Mapping[str, Any], dim: Optional[int] = None, where: str = "mirror") -> List[Mirror]:
    """Flatten a tagged (possibly nested) mirror description into a list."""

    kind = _get(obj, "type", where)
    if not isinstance(kind, str):
        raise SceneFormatError(f"{where}.type: must be a string")
    body = _get(obj, "mirror", where)
    if kind.startswith("[]"):
        if not isinstance(body, list):
            raise SceneFormatError(f"{where}.mirror: '{kind}' requires an array")
        inner = kind[2:]
        out: List[Mirror] = []
        for k, item in enumerate(body):
            entry = item if inner == "dynamic" else {"type": inner, "mirror": item}
            out.extend(mirrors_from_json(entry, dim, f"{where}.mirror[{k}]"))
        return out
    if kind == "dynamic":
        return mirrors_from_json(body, dim, f"{where}.mirror")
    if kind not in MIRROR_TYPES:
        raise SceneFormatError(f"{where}: invalid mirror type '{kind}'")
    return [_mirror_body_from_json(kind, body, dim, where)]


def scene_to_json(scene: Scene) -> Dict[str, Any]:
    return {
        "dim": scene.dim,
        "rays": [ray_to_json(r) for r in scene.rays],
        "mirror": {"type": "[]dynamic", "mirror": [mirror_to_json(m) for m in scene.mirrors]},
    }


def scene_from_json(doc: Mapping[str, Any]) -> Scene:
    if not isinstance(doc, Mapping):
        raise SceneFormatError("scene: expected an object")
    dim = doc.get("dim")
    if dim is not None and (not isinstance(dim, int) or isinstance(dim, bool) or dim < 2):
        raise SceneFormatError(f"scene.dim: expected an integer >= 2, got {dim!r}")
    if "mirror" in doc:
        mirrors = mirrors_from_json(doc["mirror"], dim)
    elif "mirrors" in doc:
        mirrors = mirrors_from_json({"type": "[]dynamic", "mirror": doc["mirrors"]}, dim, "mirrors")
    else:
        raise SceneFormatError("scene: missing field 'mirror'")
    rays_json = doc.get("rays", [])
    if not isinstance(rays_json, list):
        raise SceneFormatError("scene.rays: must be an array")
    rays = [ray_from_json(r, dim, f"rays[{k}]") for k, r in enumerate(rays_json)]
    return Scene(tuple(mirrors), tuple(rays))


def _event_to_json(event: ReflectionEvent) -> Dict[str, Any]:
    return {
        "mirror_index": event.mirror_index,
        "distance": event.hit.distance,
        "point": event.hit.point.tolist(),
        "normal": event.hit.normal.tolist(),
        "incoming": ray_to_json(event.incoming),
        "outgoing": ray_to_json(event.outgoing),
    }


def _event_from_json(obj: Mapping[str, Any], dim: Optional[int], where: str) -> ReflectionEvent:
    hit = Hit(
        distance=_number(_get(obj, "distance", where), f"{where}.distance"),
        point=_vector(_get(obj, "point", where), f"{where}.point", dim),
        normal=_vector(_get(obj, "normal", where), f"{where}.normal", dim),
    )
    return ReflectionEvent(
        mirror_index=_integer(_get(obj, "mirror_index", where), f"{where}.mirror_index"),
        hit=hit,
        incoming=ray_from_json(_get(obj, "incoming", where), dim, f"{where}.incoming"),
        outgoing=ray_from_json(_get(obj, "outgoing", where), dim, f"{where}.outgoing"),
    )


def trajectory_to_json(trajectory: Trajectory) -> Dict[str, Any]:
    return {
        "status": trajectory.status.value,
        "initial_ray": ray_to_json(trajectory.initial_ray),
        "max_reflections": trajectory.max_reflections,
        "epsilon": trajectory.epsilon,
        "events": [_event_to_json(e) for e in trajectory.events],
    }


def trajectory_from_json(obj: Mapping[str, Any], dim: Optional[int] = None, where: str = "trajectory") -> Trajectory:
    status = _get(obj, "status", where)
    try:
        status_enum = TraceStatus(status)
    except ValueError as exc:
        raise SceneFormatError(f"{where}.status: unknown status {status!r}") from exc
    events = _get(obj, "events", where)
    if not isinstance(events, list):
        raise SceneFormatError(f"{where}.events: must be an array")
    return Trajectory(
        initial_ray=ray_from_json(_get(obj, "initial_ray", where), dim, f"{where}.initial_ray"),
        events=tuple(_event_from_json(e, dim, f"{where}.events[{k}]") for k, e in enumerate(events)),
        status=status_enum,
        max_reflections=_integer(obj.get("max_reflections", 0), f"{where}.max_reflections"),
        epsilon=_number(obj.get("epsilon", 0.0), f"{where}.epsilon"),
    )


def trajectories_to_json(trajectories: Sequence[Trajectory]) -> Dict[str, Any]:
    dim = trajectories[0].initial_ray.dim if trajectories else None
    return {"dim": dim, "trajectories": [trajectory_to_json(t) for t in trajectories]}


def trajectories_from_json(doc: Mapping[str, Any]) -> List[Trajectory]:
    items = _get(doc, "trajectories", "document")
    if not isinstance(items, list):
        raise SceneFormatError("document.trajectories: must be an array")
    dim = doc.get("dim")
    return [trajectory_from_json(t, dim, f"trajectories[{k}]") for k, t in enumerate(items)]


def load_scene(filepath: str | Path) -> Scene:
    with open(filepath, "r", encoding="utf-8") as f:
        try:
            doc = json.load(f)
        except json.JSONDecodeError as exc:
            raise SceneFormatError(f"{filepath}: invalid JSON ({exc})") from exc
    return scene_from_json(doc)


def save_scene(filepath: str | Path, scene: Scene) -> None:
    Path(filepath).parent.mkdir(parents=True, exist_ok=True)
    with open(filepath, "w", encoding="utf-8") as f:
        json.dump(scene_to_json(scene), f, indent=2, default=_json_default)


def save_trajectories(filepath: str | Path, trajectories: Sequence[Trajectory]) -> None:
    Path(filepath).parent.mkdir(parents=True, exist_ok=True)
    with open(filepath, "w", encoding="utf-8") as f:
        json.dump(trajectories_to_json(trajectories), f, indent=2, default=_json_default)


def load_trajectories(filepath: str | Path) -> List[Trajectory]:
    with open(filepath, "r", encoding="utf-8") as f:
        return trajectories_from_json(json.load(f))
