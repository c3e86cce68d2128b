import pytest

from ewgate.ew.core.compression import CompressionProfile, compress_swings
from ewgate.ew.core.model import ElliottPhase, ElliottScenario, ScenarioType, legs_from_points
from ewgate.ew.core.options import PatternSet
from ewgate.ew.core.rules import ImpulseRules, corrective_violations, impulse_violations
from ewgate.ew.core.scorer import ConfidenceModel, ConfidenceWeights
from ewgate.swing import SwingPoint, SwingType

L, H = SwingType.LOW, SwingType.HIGH


def _pts(*rows):
    return [SwingPoint(i, float(p), k) for i, p, k in rows]


def test_valid_impulse_up_and_down():
    assert impulse_violations([100, 130, 115, 175, 160, 170], 1) == []
    assert impulse_violations([200, 170, 185, 125, 140, 130], -1) == []


def test_impulse_hard_rules():
    assert impulse_violations([100, 90, 95], 1) == ["alternation"]
    assert impulse_violations([100, 130, 95], 1) == ["wave2_beyond_start"]
    assert impulse_violations([100, 130, 115, 128], 1) == ["wave3_not_beyond_wave1"]
    assert impulse_violations([100, 130, 115, 175, 125], 1) == ["wave4_overlap"]
    assert impulse_violations([100, 120, 110, 125, 121, 150], 1) == ["wave3_shortest"]


def test_impulse_rules_can_be_relaxed():
    relaxed = ImpulseRules(enforce_wave3_beyond_wave1=False, enforce_wave4_overlap=False)
    assert impulse_violations([100, 130, 115, 175, 125], 1, relaxed) == []
    assert impulse_violations([100, 130, 115, 128], 1, relaxed) == []


def test_corrective_rules():
    assert corrective_violations([100, 80, 90, 70], -1) == []
    assert corrective_violations([100, 80, 105], -1) == ["wave_b_beyond_start"]


def test_compression_drops_small_interior_leg():
    pts = _pts((0, 100, L), (1, 120, H), (2, 118, L), (3, 140, H), (4, 110, L))
    out = compress_swings(pts, CompressionProfile(min_leg_pct=0.05))
    assert [p.idx for p in out] == [0, 3, 4]


def test_compression_drops_outer_pivot_of_edge_leg():
    last = _pts((0, 100, L), (1, 120, H), (2, 119, L))
    assert [p.idx for p in compress_swings(last, CompressionProfile(min_leg_pct=0.05))] == [0, 1]
    first = _pts((0, 100, L), (1, 101, H), (2, 90, L), (3, 120, H))
    assert [p.idx for p in compress_swings(first, CompressionProfile(min_leg_pct=0.05))] == [1, 2, 3]


def test_compression_by_duration():
    pts = _pts((0, 100, L), (10, 120, H), (11, 110, L), (20, 130, H))
    assert [p.idx for p in compress_swings(pts, CompressionProfile(min_leg_bars=3))] == [0, 20]


def test_compression_profiles():
    assert CompressionProfile.by_name("primary").min_leg_pct == 0.05
    assert CompressionProfile.by_name("Intermediate").min_leg_bars == 3
    with pytest.raises(ValueError):
        CompressionProfile.by_name("cycle")
    pts = _pts((0, 100, L), (1, 101, H), (2, 100.5, L))
    assert compress_swings(pts, CompressionProfile.by_name("none")) == pts


def test_minor_degree_sits_between_none_and_intermediate():
    minor, intermediate = CompressionProfile.minor(), CompressionProfile.intermediate()
    assert 0 < minor.min_leg_pct < intermediate.min_leg_pct
    assert 0 < minor.min_leg_bars < intermediate.min_leg_bars
    # a one-bar 0.5% wiggle is noise at minor degree; the two-bar 2.25% pullback only at intermediate
    pts = _pts((0, 100, L), (5, 110, H), (6, 109.5, L), (12, 120, H), (14, 117.3, L), (20, 130, H))
    assert [p.idx for p in compress_swings(pts, minor)] == [0, 12, 14, 20]
    assert [p.idx for p in compress_swings(pts, intermediate)] == [0, 20]


def test_confidence_weights_validation():
    with pytest.raises(ValueError):
        ConfidenceWeights(fibonacci=-0.1)
    with pytest.raises(ValueError):
        ConfidenceWeights(fibonacci=0, time_proportion=0, alternation=0, channel=0, completeness=0)
    with pytest.raises(ValueError):
        ConfidenceWeights.from_dict({"volume": 1.0})
    assert ConfidenceWeights.from_dict({"fibonacci": 0.5}).total == pytest.approx(1.15)


def test_confidence_without_legs_is_neutral():
    conf, factors = ConfidenceModel().evaluate(ScenarioType.IMPULSE, [])
    assert factors["completeness"] == 0.0
    assert conf == pytest.approx(0.425)


def test_confidence_is_weight_normalized():
    model = ConfidenceModel().with_weight(
        ScenarioType.IMPULSE,
        ConfidenceWeights(fibonacci=2.0, time_proportion=0, alternation=0, channel=0, completeness=0),
    )
    legs = legs_from_points([(0, 100.0), (10, 130.0), (16, 115.0)])
    conf, factors = model.evaluate(ScenarioType.IMPULSE, legs)
    assert factors["fibonacci"] == 1.0
    assert conf == pytest.approx(1.0)
    # other scenario types keep their defaults
    assert model.weights_for(ScenarioType.CORRECTIVE).alternation == 0.0


def test_pattern_set():
    ps = PatternSet.from_names(["Impulse"])
    assert ps.allows(ScenarioType.IMPULSE)
    assert not ps.allows(ScenarioType.CORRECTIVE)
    assert PatternSet.all().allows(ScenarioType.CORRECTIVE)
    with pytest.raises(ValueError):
        PatternSet.only()


def _count(phase, direction=1, legs=0, type=ScenarioType.IMPULSE):
    pts = [(i * 10, 100.0 + (i % 2) * 10) for i in range(legs + 1)]
    return ElliottScenario(
        type=type,
        current_phase=phase,
        direction=direction,
        legs=tuple(legs_from_points(pts)) if legs else (),
        live_leg=None,
        confidence=0.5,
        is_high_confidence=False,
        invalidation_price=0.0,
        primary_target=0.0,
    )


def test_bias_follows_wave_parity():
    assert _count(ElliottPhase.WAVE3, legs=2).bias == 1
    assert _count(ElliottPhase.WAVE4, legs=3).bias == -1
    assert _count(ElliottPhase.WAVE5, legs=5).bias == -1  # finished impulse
    assert _count(ElliottPhase.WAVE_B, direction=-1, legs=1, type=ScenarioType.CORRECTIVE).bias == 1
    assert _count(ElliottPhase.WAVE_C, direction=-1, legs=3, type=ScenarioType.CORRECTIVE).bias == 1


def test_agreement_ignores_phase_but_not_trend():
    wave5 = _count(ElliottPhase.WAVE5, legs=4)
    assert _count(ElliottPhase.WAVE3, legs=2).agrees_with(wave5)
    assert _count(ElliottPhase.WAVE1).agrees_with(wave5)
    assert not _count(ElliottPhase.WAVE2, direction=-1, legs=1).agrees_with(wave5)
    assert not _count(ElliottPhase.WAVE4, legs=3).agrees_with(wave5)
    assert not _count(ElliottPhase.WAVE_C, legs=2, type=ScenarioType.CORRECTIVE).agrees_with(wave5)
