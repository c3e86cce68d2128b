"""Typed settings built from the layered config dict.

Sections: log, strategy, analyzer, backtest. Missing keys fall back to
DEFAULTS, which reproduce the high-reward Elliott wave configuration.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any, Dict, Mapping

from ewgate.backtest.engine import BacktestConfig
from ewgate.ew.core.compression import CompressionProfile
from ewgate.ew.core.model import ElliottPhase, ScenarioType
from ewgate.ew.core.options import PatternSet
from ewgate.ew.core.rules import ImpulseRules
from ewgate.ew.core.scorer import ConfidenceModel, ConfidenceWeights
from ewgate.ew.detectors.analyzer import AnalyzerSettings
from ewgate.logging import LogConfig
from ewgate.signals.strategy import DEFAULT_NAME, StrategySettings
from ewgate.swing import AdaptiveZigZagDetector, CompositeDetector, FractalDetector, ZigZagDetector

from .providers import deep_merge

DEFAULTS: Dict[str, Any] = {
    "log": {"level": "info", "json": False, "to_file": None},
    "strategy": {
        "name": DEFAULT_NAME,
        "trend_period": 200,
        "rsi_period": 14,
        "rsi_threshold": 50.0,
        "macd_fast": 12,
        "macd_slow": 26,
        "min_reward_risk": 3.0,
        "tradeable_phases": ["wave3", "wave5"],
        "unstable_bars": None,
        "cache_size": 512,
    },
    "analyzer": {
        "swing": {
            "kind": "composite",
            "mode": "all",
            "tolerance": 2,
            "atr_period": 14,
            "min_threshold": 0.03,
            "max_threshold": 0.08,
            "atr_multiplier": 1.0,
            "fractal_window": 5,
            "pct": 1.0,
        },
        "compression": "primary",
        "patterns": ["impulse"],
        "weights": {
            "impulse": {
                "fibonacci": 0.40,
                "time_proportion": 0.20,
                "alternation": 0.20,
                "channel": 0.10,
                "completeness": 0.10,
            },
        },
        "rules": {"enforce_wave3_beyond_wave1": True, "enforce_wave4_overlap": True},
        "high_confidence": 0.70,
        "consensus_threshold": 0.60,
        "max_scenarios": 10,
    },
    "backtest": {
        "initial_cash": 10_000.0,
        "risk_fraction": 1.0,
        "fee_bps": 0.0,
        "slippage_bps": 0.0,
        "close_at_end": True,
    },
}


def swing_detector_from_dict(d: Mapping[str, Any]) -> Any:
    kind = str(d.get("kind", "composite")).strip().lower()
    adaptive = AdaptiveZigZagDetector(
        atr_period=int(d.get("atr_period", 14)),
        min_threshold=float(d.get("min_threshold", 0.03)),
        max_threshold=float(d.get("max_threshold", 0.08)),
        atr_multiplier=float(d.get("atr_multiplier", 1.0)),
    )
    fractal = FractalDetector(window=int(d.get("fractal_window", 5)))
    if kind == "composite":
        return CompositeDetector(
            detectors=(adaptive, fractal),
            mode=str(d.get("mode", "all")),
            tolerance=int(d.get("tolerance", 2)),
        )
    if kind == "adaptive":
        return adaptive
    if kind == "fractal":
        return fractal
    if kind == "zigzag":
        return ZigZagDetector(pct=float(d.get("pct", 1.0)))
    raise ValueError(f"unknown swing detector kind {kind!r} (use composite|adaptive|fractal|zigzag)")


def analyzer_settings_from_dict(d: Mapping[str, Any]) -> AnalyzerSettings:
    model = ConfidenceModel.default_by_scenario_type()
    for type_name, weights in (d.get("weights") or {}).items():
        model = model.with_weight(ScenarioType(str(type_name).lower()), ConfidenceWeights.from_dict(weights))
    rules = d.get("rules") or {}
    return AnalyzerSettings(
        swing_detector=swing_detector_from_dict(d.get("swing") or {}),
        compression=CompressionProfile.by_name(str(d.get("compression", "primary"))),
        pattern_set=PatternSet.from_names(d.get("patterns") or ["impulse"]),
        confidence_model=model,
        impulse_rules=ImpulseRules(
            enforce_wave3_beyond_wave1=bool(rules.get("enforce_wave3_beyond_wave1", True)),
            enforce_wave4_overlap=bool(rules.get("enforce_wave4_overlap", True)),
        ),
        high_confidence=float(d.get("high_confidence", 0.70)),
        consensus_threshold=float(d.get("consensus_threshold", 0.60)),
        max_scenarios=int(d.get("max_scenarios", 10)),
    )


def strategy_settings_from_dict(d: Mapping[str, Any]) -> StrategySettings:
    unstable = d.get("unstable_bars")
    return StrategySettings(
        name=str(d.get("name", DEFAULT_NAME)),
        trend_period=int(d.get("trend_period", 200)),
        rsi_period=int(d.get("rsi_period", 14)),
        rsi_threshold=float(d.get("rsi_threshold", 50.0)),
        macd_fast=int(d.get("macd_fast", 12)),
        macd_slow=int(d.get("macd_slow", 26)),
        min_reward_risk=float(d.get("min_reward_risk", 3.0)),
        tradeable_phases=tuple(ElliottPhase(str(p).strip().lower()) for p in d.get("tradeable_phases", ["wave3", "wave5"])),
        unstable_bars=(int(unstable) if unstable is not None else None),
        cache_size=int(d.get("cache_size", 512)),
    )


@dataclass(frozen=True)
class Settings:
    log: LogConfig
    strategy: StrategySettings
    analyzer: AnalyzerSettings
    backtest: BacktestConfig

    @staticmethod
    def from_dict(cfg: Mapping[str, Any]) -> "Settings":
        merged = deep_merge(copy.deepcopy(DEFAULTS), cfg or {})
        return Settings(
            log=LogConfig.from_dict(merged["log"]),
            strategy=strategy_settings_from_dict(merged["strategy"]),
            analyzer=analyzer_settings_from_dict(merged["analyzer"]),
            backtest=BacktestConfig.from_dict(merged["backtest"]),
        )
