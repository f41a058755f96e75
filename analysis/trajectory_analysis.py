"""Exit and recurrence classification of traced trajectories.

A trajectory is *escaped* when the tracer stopped because no mirror was hit.
Otherwise the bounce sequence ``(mirror_index, hit.point)`` is searched for
the shortest period ``p`` for which ``min_matches`` consecutive events satisfy
``event[i] ~ event[i + p]`` (same mirror, points within ``tolerance``).
Two consecutive matching bounces fix both the position and the direction of
the ray, so the motion repeats from there on. Unstable orbits drift off
later through round-off; the first repetition still counts, which is the
same rule the tracer applies with ``stop_on_loop``.

"Chaotic" is only empirical: no repetition was found within the traced
``max_reflections`` and the search horizon ``max_period``. A longer trace or a
larger horizon can turn a chaotic trajectory into a periodic one.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence

import numpy as np

from mirror_core.tracer import ReflectionEvent, TraceStatus, Trajectory


class TrajectoryClass(str, Enum):
    ESCAPED = "escaped"
    PERIODIC = "periodic"
    CHAOTIC = "chaotic"


@dataclass
class LoopConfig:
    tolerance: float = 1e-6
    max_period: Optional[int] = None
    min_matches: int = 2


@dataclass(frozen=True)
class LoopInfo:
    period: int
    start: int


@dataclass(frozen=True)
class Classification:
    kind: TrajectoryClass
    n_reflections: int
    period: Optional[int] = None
    loop_start: Optional[int] = None


def is_exited(trajectory: Trajectory) -> bool:
    return trajectory.status is TraceStatus.ESCAPED


def detect_period(
    trajectory: Trajectory | Sequence[ReflectionEvent],
    tolerance: float = 1e-6,
    max_period: Optional[int] = None,
    min_matches: int = 2,
) -> Optional[LoopInfo]:
    """Shortest period shown by ``min_matches`` consecutive bounces, or ``None``.

    ``start`` is the earliest event index where that repetition begins. Without
    ``max_period`` every period the trace can show ``min_matches`` times is tried.
    """

    events = trajectory.events if isinstance(trajectory, Trajectory) else tuple(trajectory)
    n = len(events)
    if n < 2 or min_matches < 1:
        return None
    idx = np.array([e.mirror_index for e in events])
    pts = np.array([e.hit.point for e in events])
    longest = n - min_matches
    horizon = longest if max_period is None else min(int(max_period), longest)
    for p in range(1, horizon + 1):
        same = (idx[:-p] == idx[p:]) & (np.linalg.norm(pts[:-p] - pts[p:], axis=1) <= tolerance)
        # windows of min_matches consecutive repeats
        runs = np.convolve(same.astype(int), np.ones(min_matches, dtype=int), mode="valid")
        hits = np.nonzero(runs == min_matches)[0]
        if hits.size:
            return LoopInfo(period=p, start=int(hits[0]))
    return None


def classify_trajectory(trajectory: Trajectory, config: LoopConfig | None = None) -> Classification:
    cfg = config or LoopConfig()
    n = len(trajectory)
    if is_exited(trajectory):
        return Classification(TrajectoryClass.ESCAPED, n)
    loop = detect_period(trajectory, cfg.tolerance, cfg.max_period, cfg.min_matches)
    if loop is not None:
        return Classification(TrajectoryClass.PERIODIC, n, period=loop.period, loop_start=loop.start)
    return Classification(TrajectoryClass.CHAOTIC, n)


def summarize(trajectories: Sequence[Trajectory], config: LoopConfig | None = None) -> Dict[str, object]:
    """Counts per status and class, period histogram and mean free path."""

    classes = [classify_trajectory(t, config) for t in trajectories]
    free_paths: List[float] = [e.hit.distance for t in trajectories for e in t.events]
    return {
        "n_rays": len(trajectories),
        "status": dict(Counter(t.status.value for t in trajectories)),
        "class": dict(Counter(c.kind.value for c in classes)),
        "periods": dict(Counter(c.period for c in classes if c.period is not None)),
        "reflections_total": int(sum(len(t) for t in trajectories)),
        "mean_free_path": float(np.mean(free_paths)) if free_paths else float("nan"),
    }
