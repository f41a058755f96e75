import json

import numpy as np
import pytest

from analysis.trajectory_matching import MatchConfig, all_trajectories_equivalent, mirrors_equivalent, scenes_equivalent
from mirror_core.errors import DegenerateGeometryError, MirrorError
from mirror_core.mirrors import BezierMirror, PlaneMirror, SphereMirror
from mirror_core.scene import Scene
from mirror_core.tracer import TraceConfig, trace_scene
from mirror_io.json_io import (
    SceneFormatError,
    load_scene,
    load_trajectories,
    save_scene,
    save_trajectories,
    scene_from_json,
    scene_to_json,
    trajectories_from_json,
    trajectories_to_json,
)
from scenarios import escape, mixed_box


def _capped_scene() -> Scene:
    base = mixed_box.build_scene()
    bowl = SphereMirror(np.array([1.0, -1.0]), 0.4, cap_normal=np.array([0.0, -1.0]), cap_offset=-0.1)
    return Scene(base.mirrors + (bowl,), base.rays)


def test_scene_roundtrip_through_file(tmp_path):
    scene = _capped_scene()
    fp = tmp_path / "scenes" / "box.json"
    save_scene(fp, scene)
    loaded = load_scene(fp)

    ok, warnings = scenes_equivalent(scene, loaded, MatchConfig(atol=1e-12))
    assert ok, warnings
    assert [m.kind for m in loaded.mirrors] == ["plane", "plane", "plane", "bezier", "sphere", "sphere"]
    assert loaded.mirrors[-1].cap_normal is not None


def test_saved_layout_uses_tagged_dynamic_list():
    doc = scene_to_json(escape.build_scene())
    assert doc["dim"] == 3
    assert doc["mirror"]["type"] == "[]dynamic"
    entries = doc["mirror"]["mirror"]
    assert [e["type"] for e in entries] == ["plane", "sphere"]
    assert set(entries[0]["mirror"]) == {"center", "basis"}
    assert len(doc["rays"]) == 3
    json.dumps(doc)


def test_nested_and_homogeneous_arrays_are_flattened():
    doc = {
        "dim": 2,
        "rays": [{"origin": [0.0, 0.0], "direction": [1.0, 0.0]}],
        "mirror": {
            "type": "[]dynamic",
            "mirror": [
                {
                    "type": "[]plane",
                    "mirror": [
                        {"center": [3.0, 0.0], "basis": [[0.0, 1.0]]},
                        {"center": [-3.0, 0.0], "basis": [[0.0, 1.0]]},
                    ],
                },
                {"type": "dynamic", "mirror": {"type": "sphere", "mirror": {"center": [0.0, 5.0], "radius": 1.0}}},
                {"type": "bezier", "mirror": {"control_points": [[0.0, -4.0], [2.0, -6.0], [4.0, -4.0]]}},
            ],
        },
    }
    scene = scene_from_json(doc)
    assert [type(m) for m in scene.mirrors] == [PlaneMirror, PlaneMirror, SphereMirror, BezierMirror]
    assert np.allclose(scene.mirrors[1].center, [-3.0, 0.0])
    assert scene.rays[0].dim == 2


def test_flat_mirrors_list_is_accepted():
    doc = {
        "mirrors": [
            {"type": "sphere", "mirror": {"center": [0.0, 0.0, 0.0], "radius": 2.0}},
            {"type": "plane", "mirror": {"center": [5.0, 0.0, 0.0], "basis": [[0.0, 1.0, 0.0], [0.0, 0.0, 1.0]]}},
        ],
        "rays": [],
    }
    scene = scene_from_json(doc)
    assert scene.dim == 3
    assert len(scene.mirrors) == 2
    assert scene.rays == ()


@pytest.mark.parametrize(
    "doc",
    [
        {"dim": 2, "mirror": {"type": "cylinder", "mirror": {}}},
        {"dim": 2, "mirror": {"type": "plane", "mirror": {"center": [0.0, 0.0]}}},
        {"dim": 2, "mirror": {"type": "plane", "mirror": {"center": [0.0, 0.0, 0.0], "basis": [[0.0, 1.0]]}}},
        {"dim": 2, "mirror": {"type": "sphere", "mirror": {"center": [0.0, 0.0], "radius": "big"}}},
        {"dim": 2, "mirror": {"type": "[]plane", "mirror": {"center": [0.0, 0.0]}}},
        {"dim": 1, "mirror": {"type": "[]dynamic", "mirror": []}},
        {"dim": 2},
        {"dim": 2, "mirror": {"type": "[]dynamic", "mirror": []}, "rays": [{"origin": [0.0, 0.0]}]},
        {"dim": 2, "mirror": {"type": "sphere", "mirror": {"center": [0.0, 0.0], "radius": 1.0, "cap": {"normal": [0.0, 1.0], "offset": None}}}},
        {"dim": 2, "mirror": {"type": "bezier", "mirror": {"control_points": [[0.0, 0.0], [1.0, 1.0], [2.0, 0.0]], "samples": "many"}}},
    ],
)
def test_malformed_documents_raise_format_error(doc):
    with pytest.raises(SceneFormatError):
        scene_from_json(doc)


def test_degenerate_geometry_in_document_raises():
    doc = {"dim": 2, "mirror": {"type": "sphere", "mirror": {"center": [0.0, 0.0], "radius": 0.0}}}
    with pytest.raises(DegenerateGeometryError):
        scene_from_json(doc)
    # both error families stay catchable as ValueError
    assert issubclass(SceneFormatError, ValueError)
    assert issubclass(MirrorError, ValueError)


def test_invalid_json_file_raises_format_error(tmp_path):
    fp = tmp_path / "broken.json"
    fp.write_text("{not json", encoding="utf-8")
    with pytest.raises(SceneFormatError):
        load_scene(fp)


def test_trajectory_roundtrip_through_file(tmp_path):
    scene = mixed_box.build_scene()
    trajs = trace_scene(scene, TraceConfig(max_reflections=40))
    fp = tmp_path / "traj.json"
    save_trajectories(fp, trajs)
    loaded = load_trajectories(fp)

    ok, warnings = all_trajectories_equivalent(trajs, loaded, MatchConfig(atol=1e-12))
    assert ok, warnings
    assert [t.status for t in loaded] == [t.status for t in trajs]
    assert loaded[0].epsilon == trajs[0].epsilon


def test_equivalence_reports_differences():
    a = mixed_box.build_scene()
    b = mixed_box.build_scene(arch_height=1.0)
    ok, warnings = scenes_equivalent(a, b)
    assert not ok
    assert any("mirror[3]" in w for w in warnings)
    assert not mirrors_equivalent(a.mirrors[0], a.mirrors[4])

    short = trace_scene(a, TraceConfig(max_reflections=5))
    long = trace_scene(a, TraceConfig(max_reflections=6))
    ok, warnings = all_trajectories_equivalent(short, long)
    assert not ok
    assert any("event count" in w for w in warnings)


@pytest.mark.parametrize(
    "field, value",
    [
        ("distance", None),
        ("distance", "far"),
        ("mirror_index", "a"),
        ("mirror_index", 1.5),
    ],
)
def test_malformed_trajectory_event_raises_format_error(field, value):
    trajs = trace_scene(mixed_box.build_scene(), TraceConfig(max_reflections=3))
    doc = json.loads(json.dumps(trajectories_to_json(trajs)))
    doc["trajectories"][0]["events"][0][field] = value
    with pytest.raises(SceneFormatError):
        trajectories_from_json(doc)


def test_bezier_sampling_resolution_is_part_of_equivalence():
    cps = np.array([[-1.0, 0.0], [0.0, 2.0], [1.0, 0.0]])
    assert mirrors_equivalent(BezierMirror(cps), BezierMirror(cps.copy()))
    assert not mirrors_equivalent(BezierMirror(cps, samples=64), BezierMirror(cps, samples=16))
