"""Exceptions raised while building mirrors, rays and scenes."""

from __future__ import annotations


class MirrorError(ValueError):
    """Base class for invalid simulation input."""


class DegenerateGeometryError(MirrorError):
    """Zero-length vector, zero radius, dependent basis or too few control points."""


class DimensionMismatchError(MirrorError):
    """Objects of different dimensions mixed in one scene, or a 2D-only mirror elsewhere."""
