"""Write a random mirror scene as JSON.

Usage:
    python -m scripts.generate_scene --dim 3 --mirrors 20 --rays 4 --seed 1 --out scenes/random3d.json
"""

from __future__ import annotations

import argparse

from mirror_io.json_io import save_scene
from scenarios.random_scene import random_scene


def main() -> None:
    parser = argparse.ArgumentParser(description="Generate a random mirror scene.")
    parser.add_argument("--dim", type=int, default=2, help="Space dimension (>= 2)")
    parser.add_argument("--mirrors", type=int, default=12, help="Number of mirrors")
    parser.add_argument("--rays", type=int, default=4, help="Number of initial rays")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--out", default="artifacts/random_scene.json", help="Output scene JSON path")
    args = parser.parse_args()

    scene = random_scene(args.dim, args.mirrors, args.rays, rng=args.seed)
    save_scene(args.out, scene)
    print(args.out)


if __name__ == "__main__":
    main()
