from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence


@dataclass(frozen=True)
class ImpulseRules:
    """Hard impulse rules, checked on completed legs only.

    - Legs alternate direction starting with wave 1
    - Wave2 does not retrace past wave1 start
    - Wave3 ends beyond wave1 end
    - Wave3 is not the shortest among (1,3,5)
    - Wave4 does not overlap wave1 price territory
    """

    enforce_wave3_beyond_wave1: bool = True
    enforce_wave4_overlap: bool = True


def _oriented(prices: Sequence[float], direction: int) -> List[float]:
    # Mirror downward patterns so every check reads as an upward one.
    d = 1.0 if direction >= 0 else -1.0
    return [d * float(p) for p in prices]


def _alternates(q: Sequence[float]) -> bool:
    for k in range(1, len(q)):
        up = q[k] > q[k - 1]
        if (k % 2 == 1) != up:
            return False
        if q[k] == q[k - 1]:
            return False
    return True


def impulse_violations(prices: Sequence[float], direction: int, rules: ImpulseRules = ImpulseRules()) -> List[str]:
    """Broken rules for an impulse whose pivots so far are `prices` (p0..pm, m <= 5)."""
    if len(prices) > 6:
        raise ValueError("an impulse has at most 6 pivots")
    q = _oriented(prices, direction)
    out: List[str] = []
    if not _alternates(q):
        out.append("alternation")
        return out
    m = len(q) - 1
    if m >= 2 and q[2] <= q[0]:
        out.append("wave2_beyond_start")
    if m >= 3 and rules.enforce_wave3_beyond_wave1 and q[3] <= q[1]:
        out.append("wave3_not_beyond_wave1")
    if m >= 4 and rules.enforce_wave4_overlap and q[4] <= q[1]:
        out.append("wave4_overlap")
    if m >= 5:
        w1 = q[1] - q[0]
        w3 = q[3] - q[2]
        w5 = q[5] - q[4]
        if w3 < min(w1, w5):
            out.append("wave3_shortest")
    return out


def corrective_violations(prices: Sequence[float], direction: int) -> List[str]:
    """Broken rules for an A-B-C zigzag whose pivots so far are `prices` (p0..pm, m <= 3)."""
    if len(prices) > 4:
        raise ValueError("a zigzag correction has at most 4 pivots")
    q = _oriented(prices, direction)
    if not _alternates(q):
        return ["alternation"]
    if len(q) >= 3 and q[2] <= q[0]:
        return ["wave_b_beyond_start"]
    return []

