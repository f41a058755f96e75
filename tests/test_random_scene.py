import numpy as np
import pytest

from analysis.trajectory_matching import scenes_equivalent
from mirror_core.mirrors import BezierMirror
from mirror_core.tracer import TraceConfig, trace_scene
from scenarios.random_scene import RandomSceneConfig, random_scene


@pytest.mark.parametrize("dim", [2, 3, 5])
def test_random_scene_shape_and_dimension(dim):
    scene = random_scene(dim, 20, 4, rng=dim)
    assert scene.dim == dim
    assert len(scene.mirrors) == 20
    assert len(scene.rays) == 4
    assert all(m.dim == dim for m in scene.mirrors)
    assert all(np.isclose(np.linalg.norm(r.direction), 1.0) for r in scene.rays)


def test_bezier_only_in_two_dimensions():
    assert not any(isinstance(m, BezierMirror) for m in random_scene(3, 60, 0, rng=1).mirrors)
    assert any(isinstance(m, BezierMirror) for m in random_scene(2, 60, 0, rng=1).mirrors)


def test_same_seed_same_scene():
    a = random_scene(3, 15, 3, rng=42)
    b = random_scene(3, 15, 3, rng=42)
    c = random_scene(3, 15, 3, rng=43)
    assert scenes_equivalent(a, b)[0]
    assert not scenes_equivalent(a, c)[0]


def test_generator_is_accepted_and_config_bounds_apply():
    cfg = RandomSceneConfig(max_center=1.0, max_radius=0.5, min_radius=0.4, max_plane_coord=1.0, max_ray_origin=0.5)
    scene = random_scene(2, 30, 5, rng=np.random.default_rng(9), config=cfg)
    for m in scene.mirrors:
        if m.kind == "sphere":
            assert 0.4 <= m.radius <= 0.5
            assert np.all(np.abs(m.center) <= 1.0)
    for r in scene.rays:
        assert np.all(np.abs(r.origin) <= 0.5)


def test_random_scene_traces():
    scene = random_scene(4, 16, 3, rng=8)
    trajs = trace_scene(scene, TraceConfig(max_reflections=50))
    assert len(trajs) == 3
    assert all(len(t) <= 50 for t in trajs)


def test_random_scene_argument_checks():
    with pytest.raises(ValueError):
        random_scene(1, 3, 1)
    with pytest.raises(ValueError):
        random_scene(2, -1, 1)
