import os
import tempfile

import h5py
import numpy as np
import pytest

from analysis.trajectory_matching import MatchConfig, all_trajectories_equivalent, scenes_equivalent
from mirror_core.tracer import TraceConfig, TraceStatus, trace_scene
from mirror_io.hdf5_io import load_trajectories_hdf5, save_trajectories_hdf5, self_test_roundtrip
from scenarios import escape, parallel_mirrors


def test_hdf5_schema_roundtrip():
    scene = parallel_mirrors.build_scene(dim=4)
    trajs = trace_scene(scene, TraceConfig(max_reflections=12))
    with tempfile.TemporaryDirectory() as td:
        fp = os.path.join(td, "mirror.h5")
        save_trajectories_hdf5(fp, scene, trajs)
        with h5py.File(fp, "r") as h5:
            g = h5["trajectories"]["ray_00000"]
            assert g["point"].shape == (12, 4)
            assert g["mirror_index"].dtype == np.int64
            assert g.attrs["status"] == "budget_exhausted"
        scene2, trajs2, meta = load_trajectories_hdf5(fp)

    assert meta.dim == 4
    assert meta.n_trajectories == 1
    ok, warnings = scenes_equivalent(scene, scene2, MatchConfig(atol=1e-12))
    assert ok, warnings
    ok, warnings = all_trajectories_equivalent(trajs, trajs2, MatchConfig(atol=1e-12))
    assert ok, warnings
    assert trajs2[0].max_reflections == 12
    assert trajs2[0].epsilon == trajs[0].epsilon


def test_hdf5_keeps_empty_trajectories_and_status():
    scene = escape.build_scene()
    trajs = trace_scene(scene, TraceConfig(max_reflections=10))
    with tempfile.TemporaryDirectory() as td:
        fp = os.path.join(td, "escape.h5")
        save_trajectories_hdf5(fp, scene, trajs)
        _, trajs2, _ = load_trajectories_hdf5(fp)

    assert [len(t) for t in trajs2] == [0, 1, 1]
    assert all(t.status is TraceStatus.ESCAPED for t in trajs2)


def test_missing_status_warns_and_defaults():
    scene = parallel_mirrors.build_scene()
    trajs = trace_scene(scene, TraceConfig(max_reflections=3))
    with tempfile.TemporaryDirectory() as td:
        fp = os.path.join(td, "nostatus.h5")
        save_trajectories_hdf5(fp, scene, trajs)
        with h5py.File(fp, "a") as h5:
            del h5["trajectories"]["ray_00000"].attrs["status"]
        with pytest.warns(RuntimeWarning, match="status"):
            _, trajs2, _ = load_trajectories_hdf5(fp)

    assert trajs2[0].status is TraceStatus.BUDGET_EXHAUSTED


def test_self_test_roundtrip_function():
    with tempfile.TemporaryDirectory() as td:
        fp = os.path.join(td, "selftest.h5")
        assert self_test_roundtrip(fp)
