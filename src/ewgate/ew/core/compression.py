"""Swing compression to a wave degree.

Legs smaller than the profile's degree (relative move or duration) are noise
for that degree. Compression repeatedly drops the smallest offending leg:
an interior leg loses both pivots, an edge leg loses its outer pivot, so the
remaining pivots keep alternating.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

from ewgate.logging import get_logger
from ewgate.swing.zigzag import SwingPoint, normalize_alternation

log = get_logger("ewgate.compression")


@dataclass(frozen=True)
class CompressionProfile:
    name: str = "none"
    min_leg_pct: float = 0.0  # fraction of the leg's start price
    min_leg_bars: int = 0

    def __post_init__(self) -> None:
        if self.min_leg_pct < 0 or self.min_leg_bars < 0:
            raise ValueError("compression thresholds must be >= 0")

    @staticmethod
    def minor() -> "CompressionProfile":
        return CompressionProfile(name="minor", min_leg_pct=0.01, min_leg_bars=2)

    @staticmethod
    def intermediate() -> "CompressionProfile":
        return CompressionProfile(name="intermediate", min_leg_pct=0.02, min_leg_bars=3)

    @staticmethod
    def primary_degree() -> "CompressionProfile":
        return CompressionProfile(name="primary", min_leg_pct=0.05, min_leg_bars=5)

    @staticmethod
    def by_name(name: str) -> "CompressionProfile":
        presets = {
            "none": CompressionProfile(),
            "minor": CompressionProfile.minor(),
            "intermediate": CompressionProfile.intermediate(),
            "primary": CompressionProfile.primary_degree(),
        }
        key = (name or "none").strip().lower()
        if key not in presets:
            raise ValueError(f"unknown compression profile {name!r} (use {sorted(presets)})")
        return presets[key]


def _rel_move(a: SwingPoint, b: SwingPoint) -> float:
    if a.price == 0:
        return 0.0
    return abs(b.price - a.price) / abs(a.price)


def _too_small(a: SwingPoint, b: SwingPoint, profile: CompressionProfile) -> bool:
    return _rel_move(a, b) < profile.min_leg_pct or (b.idx - a.idx) < profile.min_leg_bars


def _smallest_offender(pts: Sequence[SwingPoint], profile: CompressionProfile) -> Optional[int]:
    worst: Optional[int] = None
    for k in range(len(pts) - 1):
        if not _too_small(pts[k], pts[k + 1], profile):
            continue
        if worst is None or _rel_move(pts[k], pts[k + 1]) < _rel_move(pts[worst], pts[worst + 1]):
            worst = k
    return worst


def compress_swings(swings: Sequence[SwingPoint], profile: CompressionProfile) -> List[SwingPoint]:
    pts = normalize_alternation(swings)
    if profile.min_leg_pct <= 0 and profile.min_leg_bars <= 0:
        return pts

    removed = 0
    while len(pts) > 2:
        k = _smallest_offender(pts, profile)
        if k is None:
            break
        if k == 0:
            del pts[0]
            removed += 1
        elif k + 1 == len(pts) - 1:
            del pts[-1]
            removed += 1
        else:
            del pts[k:k + 2]
            removed += 2
        pts = normalize_alternation(pts)

    log.debug("swings compressed", extra={"profile": profile.name, "in": len(swings), "out": len(pts), "removed": removed})
    return pts
