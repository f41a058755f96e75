"""Trace the rays of a JSON scene file.

Usage:
    python -m scripts.run_simulation scene.json --max-reflections 500 --out out/traj.h5 --classify

``--out`` selects the format by suffix: ``.h5``/``.hdf5`` writes the HDF5
store, anything else the JSON trajectory document.
"""

from __future__ import annotations

import argparse
from pathlib import Path

from analysis.trajectory_analysis import LoopConfig, classify_trajectory
from mirror_core.tracer import TraceConfig, trace_scene
from mirror_io.hdf5_io import save_trajectories_hdf5
from mirror_io.json_io import load_scene, save_trajectories

HDF5_SUFFIXES = {".h5", ".hdf5"}


def main() -> None:
    parser = argparse.ArgumentParser(description="Trace every ray of a mirror scene.")
    parser.add_argument("scene", help="Scene JSON file")
    parser.add_argument("--max-reflections", type=int, default=1000, help="Reflection budget per ray")
    parser.add_argument("--epsilon", type=float, default=None, help="Minimum hit distance (default: scene relative)")
    parser.add_argument("--stop-on-loop", action="store_true", help="Stop a ray once its bounces repeat")
    parser.add_argument("--workers", type=int, default=None, help="Trace rays on this many threads")
    parser.add_argument("--out", default="artifacts/trajectories.json", help="Output trajectories (.json or .h5)")
    parser.add_argument("--classify", action="store_true", help="Print escaped/periodic/chaotic per ray")
    parser.add_argument("--tolerance", type=float, default=1e-6, help="Point tolerance for loop detection")
    args = parser.parse_args()

    scene = load_scene(args.scene)
    cfg = TraceConfig(max_reflections=args.max_reflections, epsilon=args.epsilon, stop_on_loop=args.stop_on_loop)
    trajs = trace_scene(scene, cfg, max_workers=args.workers)

    out_path = Path(args.out)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    if out_path.suffix.lower() in HDF5_SUFFIXES:
        save_trajectories_hdf5(str(out_path), scene, trajs)
    else:
        save_trajectories(out_path, trajs)

    if args.classify:
        loop_cfg = LoopConfig(tolerance=args.tolerance)
        for k, t in enumerate(trajs):
            c = classify_trajectory(t, loop_cfg)
            extra = f" period={c.period} from={c.loop_start}" if c.period is not None else ""
            print(f"ray {k}: {c.kind.value} reflections={c.n_reflections}{extra}")
    print(out_path)


if __name__ == "__main__":
    main()
