import math

import numpy as np

from analysis.trajectory_analysis import (
    LoopConfig,
    TrajectoryClass,
    classify_trajectory,
    detect_period,
    summarize,
)
from mirror_core.mirrors import Hit, SphereMirror, plane_segment_2d
from mirror_core.rays import Ray
from mirror_core.scene import Scene
from mirror_core.tracer import ReflectionEvent, TraceConfig, TraceStatus, Trajectory, trace_ray, trace_scene
from scenarios import escape, parallel_mirrors, sphere_cavity


def _synthetic(indices, points, status=TraceStatus.BUDGET_EXHAUSTED) -> Trajectory:
    """Bounce record with the given mirror sequence; only indices and points matter here."""

    start = Ray([0.0, -1.0], [0.0, 1.0])
    events = []
    incoming = start
    for i, p in zip(indices, points):
        p = np.asarray(p, dtype=float)
        outgoing = Ray(p, [0.0, 1.0])
        events.append(ReflectionEvent(i, Hit(1.0, p, np.array([0.0, -1.0])), incoming, outgoing))
        incoming = outgoing
    return Trajectory(start, tuple(events), status, max_reflections=len(events))


def test_parallel_mirrors_have_period_two():
    scene = parallel_mirrors.build_scene()
    traj = trace_scene(scene, TraceConfig(max_reflections=30))[0]
    loop = detect_period(traj)
    assert loop is not None
    assert loop.period == 2
    assert loop.start == 0
    c = classify_trajectory(traj)
    assert c.kind is TrajectoryClass.PERIODIC
    assert c.period == 2
    assert c.n_reflections == 30


def test_inscribed_square_in_sphere_has_period_four():
    scene = sphere_cavity.build_scene()
    trajs = trace_scene(scene, TraceConfig(max_reflections=60))
    assert classify_trajectory(trajs[0]).period == 2
    assert classify_trajectory(trajs[1]).period == 4


def test_period_after_transient():
    indices = [5, 0, 1, 2, 0, 1, 2, 0, 1]
    points = [(float(i), 0.0) for i in indices]
    loop = detect_period(_synthetic(indices, points))
    assert loop is not None
    assert (loop.period, loop.start) == (3, 1)


def test_same_mirror_different_points_is_not_a_repeat():
    indices = [0, 1] * 6
    points = [(float(k), float(k % 2)) for k in range(12)]
    assert detect_period(_synthetic(indices, points)) is None


def test_period_search_horizon_and_min_matches():
    indices = [5, 0, 1, 2, 0, 1, 2, 0, 1]
    traj = _synthetic(indices, [(float(i), 0.0) for i in indices])
    assert detect_period(traj, max_period=2) is None
    assert detect_period(traj, min_matches=6) is None
    assert detect_period(traj.events, min_matches=5).period == 3


def test_classify_escaped_and_chaotic():
    escaped = trace_scene(escape.build_scene(), TraceConfig(max_reflections=10))
    assert all(classify_trajectory(t).kind is TrajectoryClass.ESCAPED for t in escaped)

    pts = [(float(k), float(k * k)) for k in range(20)]
    chaotic = classify_trajectory(_synthetic(list(range(20)), pts), LoopConfig(tolerance=1e-9))
    assert chaotic.kind is TrajectoryClass.CHAOTIC
    assert chaotic.period is None
    assert chaotic.n_reflections == 20


def test_short_traces_are_not_periodic():
    assert detect_period(_synthetic([0], [(0.0, 0.0)])) is None
    assert detect_period(_synthetic([], [])) is None


def test_summarize_counts():
    escaped = trace_scene(escape.build_scene(), TraceConfig(max_reflections=10))
    bounce = trace_scene(parallel_mirrors.build_scene(), TraceConfig(max_reflections=10))
    s = summarize(escaped + bounce)

    assert s["n_rays"] == 4
    assert s["status"] == {"escaped": 3, "budget_exhausted": 1}
    assert s["class"] == {"escaped": 3, "periodic": 1}
    assert s["periods"] == {2: 1}
    assert s["reflections_total"] == 0 + 1 + 1 + 10
    assert np.isfinite(s["mean_free_path"])


def test_summarize_without_reflections():
    s = summarize([_synthetic([], [], status=TraceStatus.ESCAPED)])
    assert s["reflections_total"] == 0
    assert math.isnan(s["mean_free_path"])


def _tilted_box_with_pillar(angle: float = 0.37, half_size: float = 2.0) -> Scene:
    c, s = np.cos(angle), np.sin(angle)
    rot = np.array([[c, -s], [s, c]])
    corners = [rot @ np.array(p) for p in ((-half_size, -half_size), (half_size, -half_size), (half_size, half_size), (-half_size, half_size))]
    walls = tuple(plane_segment_2d(corners[k], corners[(k + 1) % 4]) for k in range(4))
    axis = rot @ np.array([1.0, 0.0])
    # on the wall-to-pillar axis: period 2, but the convex pillar makes the orbit unstable
    return Scene(walls + (SphereMirror(np.zeros(2), 0.5),), (Ray(1.0 * axis, axis),))


def test_unstable_orbit_is_periodic_from_its_first_repeat():
    scene = _tilted_box_with_pillar()
    full = trace_ray(scene, scene.rays[0], TraceConfig(max_reflections=200))
    stopped = trace_ray(scene, scene.rays[0], TraceConfig(max_reflections=200, stop_on_loop=True))

    assert full.mirror_indices()[:4] == [1, 4, 1, 4]
    assert stopped.status is TraceStatus.LOOP_DETECTED
    c = classify_trajectory(full)
    assert c.kind is TrajectoryClass.PERIODIC
    assert (c.period, c.loop_start) == (2, 0)
    assert detect_period(full.events[:20]).period == 2


def test_repeat_followed_by_drift_keeps_earliest_start():
    indices = [3, 0, 1, 0, 1, 0, 1, 2, 5, 7, 9]
    points = [(float(i), 0.0) for i in indices]
    loop = detect_period(_synthetic(indices, points))
    assert loop is not None
    assert (loop.period, loop.start) == (2, 1)
