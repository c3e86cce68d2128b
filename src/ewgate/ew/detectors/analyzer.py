"""Wave analyzer: price-history prefix -> ranked scenarios.

- Detect swings (composite ATR zigzag + fractal by default) and compress to a degree.
- The live leg runs from the last confirmed pivot to the prefix's last close.
- Impulse candidates: the last m+1 pivots (m = 0..5 completed legs) + live leg.
  m < 5 puts the live leg in wave m+1; m == 5 is a finished impulse.
- Corrective (A-B-C) candidates the same way with m = 0..3.
- Hard rules discard candidates; the confidence model scores the rest.
- Rank by confidence; consensus is the confidence share agreeing with the base
  (same type and trend direction, same expected next move; see
  ElliottScenario.agrees_with), not same phase.

analyze() is a pure function of the prefix, so results can be memoized by
prefix length (see ewgate.ew.detectors.cache).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence, Tuple

from ewgate.logging import get_logger

from ewgate.ew.core.compression import CompressionProfile, compress_swings
from ewgate.ew.core.model import (
    AnalysisResult,
    ElliottPhase,
    ElliottScenario,
    ScenarioSet,
    ScenarioSummary,
    ScenarioType,
    WaveLeg,
    legs_from_points,
)
from ewgate.ew.core.options import PatternSet
from ewgate.ew.core.rules import ImpulseRules, corrective_violations, impulse_violations
from ewgate.ew.core.scorer import ConfidenceModel
from ewgate.swing.composite import CompositeDetector
from ewgate.swing.fractal import FractalDetector
from ewgate.swing.zigzag import AdaptiveZigZagDetector, SwingDetector, SwingPoint, SwingType, bars_to_df

log = get_logger("ewgate.analyzer")

# Projection ratios per phase (multiples of the reference wave).
WAVE1_EXTENSION = 1.618
WAVE2_RETRACE = 0.618
WAVE3_EXTENSION = 1.618
WAVE4_RETRACE = 0.382
WAVE5_EQUALITY = 1.0
WAVE_B_RETRACE = 0.618
WAVE_C_EQUALITY = 1.0

# Confidence multiplier for a scenario whose invalidation level the live close has crossed.
INVALIDATED_PENALTY = 0.5


def default_swing_detector() -> SwingDetector:
    return CompositeDetector(
        detectors=(
            AdaptiveZigZagDetector(atr_period=14, min_threshold=0.03, max_threshold=0.08),
            FractalDetector(window=5),
        ),
        mode="all",
        tolerance=2,
    )


@dataclass(frozen=True)
class AnalyzerSettings:
    swing_detector: Any = field(default_factory=default_swing_detector)
    compression: CompressionProfile = CompressionProfile.primary_degree()
    pattern_set: PatternSet = PatternSet.all()
    confidence_model: ConfidenceModel = field(default_factory=ConfidenceModel)
    impulse_rules: ImpulseRules = ImpulseRules()
    high_confidence: float = 0.70
    consensus_threshold: float = 0.60
    max_scenarios: int = 10

    def __post_init__(self) -> None:
        if not hasattr(self.swing_detector, "detect"):
            raise TypeError("swing_detector must provide detect(bars)")
        if not (0.0 <= self.high_confidence <= 1.0):
            raise ValueError("high_confidence must be in [0, 1]")
        if not (0.0 <= self.consensus_threshold <= 1.0):
            raise ValueError("consensus_threshold must be in [0, 1]")
        if self.max_scenarios <= 0:
            raise ValueError("max_scenarios must be > 0")


def _sign(x: float) -> int:
    if x > 0:
        return 1
    if x < 0:
        return -1
    return 0


def _start_kind(direction: int) -> SwingType:
    return SwingType.LOW if direction > 0 else SwingType.HIGH


def _impulse_levels(px: Sequence[float], live_px: float, d: int) -> Tuple[float, float]:
    """(invalidation, primary target) for an impulse with pivots px (p0..pm)."""
    m = len(px) - 1
    if m == 0:
        return px[0], px[0] + WAVE1_EXTENSION * (live_px - px[0])
    w1 = abs(px[1] - px[0])
    if m == 1:
        return px[0], px[1] - d * WAVE2_RETRACE * w1
    if m == 2:
        return px[2], px[2] + d * WAVE3_EXTENSION * w1
    if m == 3:
        w3 = abs(px[3] - px[2])
        return px[1], px[3] - d * WAVE4_RETRACE * w3
    if m == 4:
        return px[4], px[4] + d * WAVE5_EQUALITY * w1
    return px[4], px[5]


def _corrective_levels(px: Sequence[float], live_px: float, d: int) -> Tuple[float, float]:
    m = len(px) - 1
    if m == 0:
        return px[0], px[0] + WAVE1_EXTENSION * (live_px - px[0])
    wa = abs(px[1] - px[0])
    if m == 1:
        return px[0], px[1] - d * WAVE_B_RETRACE * wa
    if m == 2:
        return px[2], px[2] + d * WAVE_C_EQUALITY * wa
    return px[2], px[3]


class WaveAnalyzer:
    """Reference wave analysis collaborator.

    Any object with analyze(bars) -> AnalysisResult can stand in for it.
    """

    def __init__(self, settings: Optional[AnalyzerSettings] = None):
        self.settings = settings or AnalyzerSettings()

    def analyze(self, bars: Any) -> AnalysisResult:
        df = bars_to_df(bars)
        n = len(df)
        if n < 2:
            return AnalysisResult.empty()

        cfg = self.settings
        raw = cfg.swing_detector.detect(df)
        swings = compress_swings(raw, cfg.compression)
        live_idx = n - 1
        live_px = float(df["close"].iloc[-1])
        # A pivot on the last bar would give the live leg zero length.
        pivots = [s for s in swings if s.idx < live_idx]
        if len(pivots) < 2:
            log.debug("analysis empty", extra={"bars": n, "pivots": len(pivots)})
            return AnalysisResult.empty(tuple(swings))

        found: List[ElliottScenario] = []
        if cfg.pattern_set.allows(ScenarioType.IMPULSE):
            for m in range(0, 6):
                if len(pivots) >= m + 1:
                    sc = self._candidate(ScenarioType.IMPULSE, pivots[-(m + 1):], live_idx, live_px)
                    if sc is not None:
                        found.append(sc)
        if cfg.pattern_set.allows(ScenarioType.CORRECTIVE):
            for m in range(0, 4):
                if len(pivots) >= m + 1:
                    sc = self._candidate(ScenarioType.CORRECTIVE, pivots[-(m + 1):], live_idx, live_px)
                    if sc is not None:
                        found.append(sc)

        found.sort(key=lambda s: (s.confidence, s.completed_legs, s.start_idx), reverse=True)
        ranked = tuple(found[: cfg.max_scenarios])
        summary = self._summarize(ranked)
        base = ranked[0] if ranked else None
        log.debug(
            "analysis done",
            extra={
                "bars": n,
                "swings": len(swings),
                "scenarios": len(ranked),
                "base": base.to_dict() if base else None,
                "agreement": summary.agreement,
            },
        )
        return AnalysisResult(scenarios=ScenarioSet(ranked), summary=summary, swings=tuple(swings))

    def _candidate(
        self,
        kind: ScenarioType,
        points: Sequence[SwingPoint],
        live_idx: int,
        live_px: float,
    ) -> Optional[ElliottScenario]:
        cfg = self.settings
        px = [float(p.price) for p in points]
        m = len(px) - 1
        total_legs = 5 if kind == ScenarioType.IMPULSE else 3

        d = _sign(px[1] - px[0]) if m >= 1 else _sign(live_px - px[0])
        if d == 0 or points[0].kind != _start_kind(d):
            return None

        if kind == ScenarioType.IMPULSE:
            broken = impulse_violations(px, d, cfg.impulse_rules)
        else:
            broken = corrective_violations(px, d)
        if broken:
            return None

        live_leg = WaveLeg(start_idx=points[-1].idx, end_idx=live_idx, start_px=px[-1], end_px=live_px)
        finished = m == total_legs
        if not finished:
            expected = d if (m + 1) % 2 == 1 else -d
            if live_leg.direction != expected:
                return None

        if kind == ScenarioType.IMPULSE:
            phase = ElliottPhase.impulse(min(m + 1, 5))
            invalidation, target = _impulse_levels(px, live_px, d)
        else:
            phase = ElliottPhase.corrective(min(m + 1, 3))
            invalidation, target = _corrective_levels(px, live_px, d)

        invalidated = d * (live_px - invalidation) <= 0
        last_wave = m + 1 == total_legs
        completion = finished or (last_wave and d * (live_px - target) >= 0)

        legs = legs_from_points([(p.idx, float(p.price)) for p in points])
        confidence, factors = cfg.confidence_model.evaluate(kind, legs)
        if invalidated:
            confidence *= INVALIDATED_PENALTY

        return ElliottScenario(
            type=kind,
            current_phase=phase,
            direction=d,
            legs=tuple(legs),
            live_leg=live_leg,
            confidence=float(confidence),
            is_high_confidence=confidence >= cfg.high_confidence,
            invalidation_price=float(invalidation),
            primary_target=float(target),
            expects_completion=bool(completion),
            is_invalidated=bool(invalidated),
            factors=factors,
        )

    def _summarize(self, ranked: Sequence[ElliottScenario]) -> ScenarioSummary:
        if not ranked:
            return ScenarioSummary()
        base = ranked[0]
        total = sum(s.confidence for s in ranked)
        if total <= 0:
            return ScenarioSummary(scenarios=len(ranked), agreement=0.0, has_strong_consensus=False)
        agree = sum(s.confidence for s in ranked if s.agrees_with(base))
        agreement = agree / total
        return ScenarioSummary(
            scenarios=len(ranked),
            agreement=float(agreement),
            has_strong_consensus=agreement >= self.settings.consensus_threshold,
        )
