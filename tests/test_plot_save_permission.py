from __future__ import annotations

from pathlib import Path

import matplotlib.pyplot as plt
import pytest

from mirror_core.tracer import TraceConfig, trace_scene
from plots.trajectory_plots import _save, plot_free_paths, plot_scene
from scenarios import mixed_box, parallel_mirrors


def test_save_ignores_pdf_permission_error(monkeypatch, tmp_path: Path):
    fig, _ = plt.subplots()

    original_savefig = fig.savefig

    def _patched_savefig(path, *args, **kwargs):
        if str(path).endswith('.pdf'):
            raise PermissionError('locked file')
        return original_savefig(path, *args, **kwargs)

    monkeypatch.setattr(fig, 'savefig', _patched_savefig)

    with pytest.warns(RuntimeWarning, match='permission denied'):
        out = _save(fig, str(tmp_path), 'scene')
    assert out.endswith('scene.png')
    assert (tmp_path / 'scene.png').exists()
    assert not (tmp_path / 'scene.pdf').exists()


def test_scene_plots_for_2d_and_projected_nd(tmp_path: Path):
    box = mixed_box.build_scene()
    out = plot_scene(box, trace_scene(box, TraceConfig(max_reflections=20)), str(tmp_path), name='box')
    assert Path(out).exists()

    slab = parallel_mirrors.build_scene(dim=4)
    trajs = trace_scene(slab, TraceConfig(max_reflections=6))
    assert Path(plot_scene(slab, trajs, str(tmp_path), name='slab', axes=(0, 2))).exists()
    assert Path(plot_free_paths(trajs, str(tmp_path))).exists()
