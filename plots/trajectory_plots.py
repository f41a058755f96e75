"""Static scene/trajectory figures.

2D scenes are drawn as they are; higher-dimensional scenes are projected on a
pair of coordinate axes (plane mirrors as their parallelotope edges, spheres
as the outline of their projection).
"""

from __future__ import annotations

from pathlib import Path
from typing import Sequence, Tuple
import warnings

import matplotlib.pyplot as plt
import numpy as np

from mirror_core.mirrors import BezierMirror, PlaneMirror, SphereMirror
from mirror_core.scene import Scene
from mirror_core.tracer import Trajectory

ESCAPE_TAIL = 3.0


def _save(fig: plt.Figure, outdir: str, name: str) -> str:
    Path(outdir).mkdir(parents=True, exist_ok=True)
    png = Path(outdir) / f"{name}.png"
    pdf = Path(outdir) / f"{name}.pdf"
    fig.savefig(png, dpi=150, bbox_inches="tight")
    try:
        fig.savefig(pdf, bbox_inches="tight")
    except PermissionError:
        warnings.warn(
            f"Could not write '{pdf}' (permission denied). Saved PNG only.",
            RuntimeWarning,
            stacklevel=2,
        )
    plt.close(fig)
    return str(png)


def _draw_mirrors(ax: plt.Axes, scene: Scene, axes: Tuple[int, int]) -> None:
    i, j = axes
    for m in scene.mirrors:
        if isinstance(m, PlaneMirror):
            verts = m.vertices()
            # parallelotope edges join corners whose sign patterns differ in one bit
            for a in range(len(verts)):
                for b in range(a + 1, len(verts)):
                    if bin(a ^ b).count("1") == 1:
                        ax.plot([verts[a][i], verts[b][i]], [verts[a][j], verts[b][j]], color="k", lw=1.5)
        elif isinstance(m, SphereMirror):
            theta = np.linspace(0.0, 2.0 * np.pi, 241)
            ring = np.zeros((theta.size, m.dim))
            ring[:, i] = np.cos(theta)
            ring[:, j] = np.sin(theta)
            ring = m.center + m.radius * ring
            if m.cap_normal is not None and m.dim == 2:
                keep = np.array([m.in_cap(p) for p in ring])
                ring = np.where(keep[:, None], ring, np.nan)
            ax.plot(ring[:, i], ring[:, j], color="k", lw=1.5)
        elif isinstance(m, BezierMirror):
            curve = m.points_at(np.linspace(0.0, 1.0, 200))
            ax.plot(curve[:, 0], curve[:, 1], color="k", lw=1.5)


def plot_scene(
    scene: Scene,
    trajectories: Sequence[Trajectory],
    outdir: str,
    name: str = "scene",
    axes: Tuple[int, int] = (0, 1),
    max_events: int = 200,
) -> str:
    """Mirrors plus ray paths; escaped rays get a short tail along their exit direction."""

    i, j = axes
    fig, ax = plt.subplots(figsize=(6, 6))
    _draw_mirrors(ax, scene, axes)
    colors = plt.cm.viridis(np.linspace(0.0, 1.0, max(len(trajectories), 1)))
    for traj, color in zip(trajectories, colors):
        pts = traj.points()[: max_events + 1]
        if traj.escaped:
            tail = traj.final_ray.at(ESCAPE_TAIL)
            pts = np.vstack([pts, tail[None, :]])
        ax.plot(pts[:, i], pts[:, j], color=color, lw=0.8, alpha=0.9)
        ax.plot(pts[0, i], pts[0, j], "o", color=color, ms=4)
    ax.set_aspect("equal", adjustable="datalim")
    ax.set_xlabel(f"x{i}")
    ax.set_ylabel(f"x{j}")
    ax.set_title(f"{name} ({scene.dim}D, {len(scene.mirrors)} mirrors)")
    return _save(fig, outdir, name)


def plot_free_paths(trajectories: Sequence[Trajectory], outdir: str, name: str = "free_paths") -> str:
    dists = np.array([e.hit.distance for t in trajectories for e in t.events], dtype=float)
    fig, ax = plt.subplots()
    if dists.size:
        ax.hist(dists, bins=min(50, max(5, dists.size // 5)))
    ax.set_xlabel("distance between bounces")
    ax.set_ylabel("count")
    ax.set_title("free path distribution")
    return _save(fig, outdir, name)


def plot_bounce_counts(labels: Sequence[str], counts: Sequence[int], outdir: str, name: str = "bounces") -> str:
    fig, ax = plt.subplots(figsize=(max(4, len(labels) * 0.6), 4))
    ax.bar(np.arange(len(counts)), counts)
    ax.set_xticks(np.arange(len(labels)))
    ax.set_xticklabels(labels, rotation=45, ha="right")
    ax.set_ylabel("reflections")
    ax.set_title("reflections per ray")
    return _save(fig, outdir, name)
