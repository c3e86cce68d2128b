"""Confidence scoring for wave scenarios.

Five factors, each in [0,1] (0.5 while a factor cannot be measured yet):
- fibonacci: wave ratios close to their usual Fibonacci ranges
- time_proportion: corrective vs impulsive leg durations
- alternation: waves 2 and 4 differ in depth or duration
- channel: wave 3 end near the 0-2 channel's parallel through wave 1
- completeness: completed legs / legs in the pattern

confidence = sum(weight * factor) / sum(weights)
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, Mapping, Sequence, Tuple
import math

from ewgate.ew.core.model import ScenarioType, WaveLeg

NEUTRAL = 0.5

FACTORS = ("fibonacci", "time_proportion", "alternation", "channel", "completeness")


@dataclass(frozen=True)
class ScoreConfig:
    fib_w2: Tuple[float, float] = (0.236, 0.786)
    fib_w3: Tuple[float, float] = (1.0, 2.618)  # relative to wave1
    fib_w4: Tuple[float, float] = (0.236, 0.786)
    fib_w5: Tuple[float, float] = (0.618, 1.618)  # relative to wave1
    fib_b: Tuple[float, float] = (0.382, 0.886)
    fib_c: Tuple[float, float] = (0.618, 1.618)
    time_ratio: Tuple[float, float] = (0.382, 2.618)
    alternation_depth: float = 0.20
    alternation_time: float = 1.5


@dataclass(frozen=True)
class ConfidenceWeights:
    fibonacci: float = 0.35
    time_proportion: float = 0.20
    alternation: float = 0.15
    channel: float = 0.15
    completeness: float = 0.15

    def __post_init__(self) -> None:
        for name in FACTORS:
            if getattr(self, name) < 0:
                raise ValueError(f"confidence weight {name} must be >= 0")
        if self.total <= 0:
            raise ValueError("confidence weights must sum to a positive total")

    @property
    def total(self) -> float:
        return float(sum(getattr(self, name) for name in FACTORS))

    @staticmethod
    def from_dict(d: Mapping[str, float]) -> "ConfidenceWeights":
        unknown = set(d) - set(FACTORS)
        if unknown:
            raise ValueError(f"unknown confidence factors: {sorted(unknown)}")
        return replace(ConfidenceWeights(), **{k: float(v) for k, v in d.items()})


def _default_weights() -> Dict[ScenarioType, ConfidenceWeights]:
    return {
        ScenarioType.IMPULSE: ConfidenceWeights(),
        ScenarioType.CORRECTIVE: ConfidenceWeights(
            fibonacci=0.40, time_proportion=0.25, alternation=0.0, channel=0.15, completeness=0.20
        ),
    }


@dataclass(frozen=True)
class ConfidenceModel:
    weights: Dict[ScenarioType, ConfidenceWeights] = field(default_factory=_default_weights, hash=False)
    score: ScoreConfig = ScoreConfig()

    @staticmethod
    def default_by_scenario_type() -> "ConfidenceModel":
        return ConfidenceModel()

    def with_weight(self, scenario_type: ScenarioType, weights: ConfidenceWeights) -> "ConfidenceModel":
        w = dict(self.weights)
        w[scenario_type] = weights
        return ConfidenceModel(weights=w, score=self.score)

    def weights_for(self, scenario_type: ScenarioType) -> ConfidenceWeights:
        return self.weights.get(scenario_type, ConfidenceWeights())

    def evaluate(self, scenario_type: ScenarioType, legs: Sequence[WaveLeg]) -> Tuple[float, Dict[str, float]]:
        """(confidence, factor scores) for the completed legs of a scenario."""
        if scenario_type == ScenarioType.IMPULSE:
            factors = impulse_factors(legs, self.score)
        else:
            factors = corrective_factors(legs, self.score)
        w = self.weights_for(scenario_type)
        total = sum(getattr(w, k) * factors[k] for k in FACTORS)
        return float(total / w.total), factors


def _within(x: float, lo: float, hi: float) -> float:
    if lo <= x <= hi:
        return 1.0
    if x < lo:
        return math.exp(-((lo - x) / lo) * 2.0) if lo > 0 else 0.0
    return math.exp(-((x - hi) / hi) * 2.0) if hi > 0 else 0.0


def _mean(xs: Sequence[float]) -> float:
    return float(sum(xs) / len(xs)) if xs else NEUTRAL


def _ratio(a: float, b: float) -> float:
    return a / b if b > 0 else 0.0


def impulse_factors(legs: Sequence[WaveLeg], cfg: ScoreConfig = ScoreConfig()) -> Dict[str, float]:
    m = [l.abs_move for l in legs]
    t = [max(1, l.bars) for l in legs]
    n = len(legs)

    fib = []
    if n >= 2:
        fib.append(_within(_ratio(m[1], m[0]), *cfg.fib_w2))
    if n >= 3:
        fib.append(_within(_ratio(m[2], m[0]), *cfg.fib_w3))
    if n >= 4:
        fib.append(_within(_ratio(m[3], m[2]), *cfg.fib_w4))
    if n >= 5:
        fib.append(_within(_ratio(m[4], m[0]), *cfg.fib_w5))

    tp = []
    if n >= 2:
        tp.append(_within(t[1] / t[0], *cfg.time_ratio))
    if n >= 4:
        tp.append(_within(t[3] / t[2], *cfg.time_ratio))

    alt = NEUTRAL
    if n >= 4:
        d2 = _ratio(m[1], m[0])
        d4 = _ratio(m[3], m[2])
        tr = max(t[1], t[3]) / min(t[1], t[3])
        alt = 1.0 if (abs(d2 - d4) >= cfg.alternation_depth or tr >= cfg.alternation_time) else 0.4

    chan = NEUTRAL
    if n >= 3:
        chan = _channel_fit(legs)

    return {
        "fibonacci": _mean(fib),
        "time_proportion": _mean(tp),
        "alternation": alt,
        "channel": chan,
        "completeness": n / 5.0,
    }


def _channel_fit(legs: Sequence[WaveLeg]) -> float:
    # Base line through the ends of wave 0 and wave 2, parallel through wave 1's end;
    # wave 3 should end near that parallel.
    i0, p0 = legs[0].start_idx, legs[0].start_px
    i1, p1 = legs[0].end_idx, legs[0].end_px
    i2, p2 = legs[1].end_idx, legs[1].end_px
    i3, p3 = legs[2].end_idx, legs[2].end_px
    if i2 == i0:
        return NEUTRAL
    slope = (p2 - p0) / (i2 - i0)
    width = abs(p1 - (p0 + slope * (i1 - i0)))
    if width <= 0:
        return NEUTRAL
    upper_at_3 = p1 + slope * (i3 - i1)
    dev = abs(p3 - upper_at_3) / width
    return float(math.exp(-dev))


def corrective_factors(legs: Sequence[WaveLeg], cfg: ScoreConfig = ScoreConfig()) -> Dict[str, float]:
    m = [l.abs_move for l in legs]
    t = [max(1, l.bars) for l in legs]
    n = len(legs)

    fib = []
    if n >= 2:
        fib.append(_within(_ratio(m[1], m[0]), *cfg.fib_b))
    if n >= 3:
        fib.append(_within(_ratio(m[2], m[0]), *cfg.fib_c))

    tp = []
    if n >= 2:
        tp.append(_within(t[1] / t[0], *cfg.time_ratio))

    return {
        "fibonacci": _mean(fib),
        "time_proportion": _mean(tp),
        "alternation": NEUTRAL,
        "channel": NEUTRAL,
        "completeness": n / 3.0,
    }
