"""Sequence-position to surface-position scales and the zoom/pan transform.

Every track owns a :class:`LinearScale`. The per-track scales are never
mutated; a zoom gesture re-derives them from the base scale and the
current :class:`ZoomTransform`, the same way d3's ``rescaleX`` does.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence, Tuple, Union

import numpy as np

Number = Union[int, float]
Coordinates = Union[Number, Sequence[Number], np.ndarray]


@dataclass(frozen=True)
class ZoomTransform:
    k: float = 1.0
    x: float = 0.0

    def __post_init__(self) -> None:
        if not math.isfinite(self.k) or self.k <= 0:
            raise ValueError("zoom scale factor must be a positive number")
        if not math.isfinite(self.x):
            raise ValueError("zoom translation must be finite")

    def apply_x(self, value: Coordinates):
        if np.ndim(value):
            return np.asarray(value, dtype=float) * self.k + self.x
        return float(value) * self.k + self.x

    def invert_x(self, value: Coordinates):
        if np.ndim(value):
            return (np.asarray(value, dtype=float) - self.x) / self.k
        return (float(value) - self.x) / self.k

    def translate(self, dx: float) -> "ZoomTransform":
        return ZoomTransform(self.k, self.x + self.k * dx)

    def zoom_at(self, factor: float, anchor: float) -> "ZoomTransform":
        """Scale by ``factor`` keeping the surface point ``anchor`` fixed."""
        if factor <= 0:
            raise ValueError("zoom factor must be positive")
        return ZoomTransform(self.k * factor, anchor - (anchor - self.x) * factor)

    def to_dict(self) -> dict:
        return {"k": self.k, "x": self.x}


IDENTITY = ZoomTransform()


class LinearScale:
    """Continuous, invertible linear map from ``domain`` onto ``range_``."""

    def __init__(self, domain: Tuple[Number, Number], range_: Tuple[Number, Number]):
        d0, d1 = (float(v) for v in domain)
        r0, r1 = (float(v) for v in range_)
        if d0 == d1:
            raise ValueError("scale domain must not be empty")
        if r0 == r1:
            raise ValueError("scale range must not be empty")
        self.domain = (d0, d1)
        self.range = (r0, r1)

    def __call__(self, value: Coordinates):
        d0, d1 = self.domain
        r0, r1 = self.range
        if np.ndim(value):
            t = (np.asarray(value, dtype=float) - d0) / (d1 - d0)
            return r0 * (1.0 - t) + r1 * t
        t = (float(value) - d0) / (d1 - d0)
        return r0 * (1.0 - t) + r1 * t

    def invert(self, value: Coordinates):
        d0, d1 = self.domain
        r0, r1 = self.range
        if np.ndim(value):
            t = (np.asarray(value, dtype=float) - r0) / (r1 - r0)
            return d0 * (1.0 - t) + d1 * t
        t = (float(value) - r0) / (r1 - r0)
        return d0 * (1.0 - t) + d1 * t

    def rescaled(self, transform: ZoomTransform) -> "LinearScale":
        new_domain = tuple(self.invert(transform.invert_x(r)) for r in self.range)
        return LinearScale(new_domain, self.range)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LinearScale):
            return NotImplemented
        return self.domain == other.domain and self.range == other.range

    def __repr__(self) -> str:
        return f"LinearScale(domain={self.domain}, range={self.range})"


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def nearest_position(scale: LinearScale, surface_pos: float) -> int:
    """Integer sequence position closest to ``surface_pos``."""
    return round_half_up(scale.invert(surface_pos))


def snap(scale: LinearScale, surface_pos: float) -> float:
    return scale(nearest_position(scale, surface_pos))


def constrain_transform(
    transform: ZoomTransform,
    *,
    viewport: Tuple[float, float],
    translate_extent: Tuple[float, float],
    scale_extent: Tuple[float, float],
) -> ZoomTransform:
    lo, hi = scale_extent
    k = min(max(transform.k, lo), hi)
    clamped = ZoomTransform(k, transform.x)

    dx0 = clamped.invert_x(viewport[0]) - translate_extent[0]
    dx1 = clamped.invert_x(viewport[1]) - translate_extent[1]
    if dx1 > dx0:
        shift = (dx0 + dx1) / 2.0
    else:
        shift = min(0.0, dx0) or max(0.0, dx1)
    return clamped.translate(shift) if shift else clamped
