"""Scenario sweep runner + auto plot + validation report."""

from __future__ import annotations

from importlib import import_module
from pathlib import Path
from typing import List

import numpy as np

from analysis.trajectory_analysis import TrajectoryClass, classify_trajectory, summarize
from mirror_io.hdf5_io import save_trajectories_hdf5
from plots import trajectory_plots

SCENARIO_MODULES = {
    "P1": "scenarios.parallel_mirrors",
    "S1": "scenarios.sphere_cavity",
    "M1": "scenarios.mixed_box",
    "E1": "scenarios.escape",
    "R1": "scenarios.random_scene",
}


def run_all(out_dir: str = "artifacts", out_plot_dir: str = "artifacts/plots") -> str:
    report_lines: List[str] = [
        "# Validation Report",
        "",
        "- classes: escaped / periodic (shortest repeating bounce period) / chaotic (no repetition found)",
        "- free path: distance travelled between two consecutive reflections",
        "",
    ]
    failures: List[str] = []
    bounce_labels: List[str] = []
    bounce_counts: List[int] = []

    for sid, mod_name in SCENARIO_MODULES.items():
        mod = import_module(mod_name)
        report_lines.append(f"## {sid}")
        for p in mod.build_sweep_params():
            scene, trajs = mod.run_case(p)
            case_id = p["case_id"]

            h5_path = Path(out_dir) / "h5" / sid / f"{case_id}.h5"
            h5_path.parent.mkdir(parents=True, exist_ok=True)
            save_trajectories_hdf5(str(h5_path), scene, trajs)

            summary = summarize(trajs)
            classes = [classify_trajectory(t) for t in trajs]
            report_lines.append(
                f"- case `{case_id}`: dim={scene.dim}, mirrors={len(scene.mirrors)}, rays={len(trajs)}, "
                f"reflections={summary['reflections_total']}"
            )
            report_lines.append(f"  - status: {summary['status']}")
            report_lines.append(f"  - class: {summary['class']}, periods: {summary['periods']}")
            if np.isfinite(summary["mean_free_path"]):
                report_lines.append(f"  - mean free path: {summary['mean_free_path']:.6g}")

            case_dir = str(Path(out_plot_dir) / sid / case_id)
            if trajs:
                trajectory_plots.plot_scene(scene, trajs, case_dir, name="scene")
                if summary["reflections_total"]:
                    trajectory_plots.plot_free_paths(trajs, case_dir)
                report_lines.append(f"  - plots: [scene]({case_dir}/scene.png)")
            for k, t in enumerate(trajs):
                bounce_labels.append(f"{sid}:{case_id}:{k}")
                bounce_counts.append(len(t))

            if sid == "P1":
                for k, c in enumerate(classes):
                    if c.kind is not TrajectoryClass.PERIODIC or c.period != 2:
                        failures.append(f"P1:{case_id} ray {k} expected period 2, got {c.kind.value}/{c.period}")
                gaps = [e.hit.distance for e in trajs[0].events[1:]]
                if gaps and not np.allclose(gaps, p["gap"], rtol=0.0, atol=1e-9):
                    failures.append(f"P1:{case_id} bounce spacing differs from gap {p['gap']}")
            if sid == "E1":
                if not trajs[0].escaped or len(trajs[0]) != 0:
                    failures.append(f"E1:{case_id} ray 0 expected to escape without reflections, got {len(trajs[0])}")
                if any(c.kind is not TrajectoryClass.ESCAPED for c in classes):
                    failures.append(f"E1:{case_id} not every ray escaped")
            if sid == "S1" and case_id == "s_full":
                for k, want in ((0, 2), (1, 4)):
                    if classes[k].period != want:
                        failures.append(f"S1:{case_id} ray {k} expected period {want}, got {classes[k].period}")

        report_lines.append("")

    if bounce_counts:
        trajectory_plots.plot_bounce_counts(bounce_labels, bounce_counts, out_plot_dir)

    report_lines.append("## Failure Checks")
    if failures:
        for msg in failures:
            report_lines.append(f"- FAIL: {msg}")
    else:
        report_lines.append("- PASS: No automatic failure checks triggered.")

    report_path = Path(out_plot_dir).parent / "report.md"
    report_path.parent.mkdir(parents=True, exist_ok=True)
    report_path.write_text("\n".join(report_lines), encoding="utf-8")
    return str(report_path)


if __name__ == "__main__":
    print(run_all())
