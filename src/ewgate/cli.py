"""ewgate CLI.

- Loads bars from a CSV file (ts|time|date, open, high, low, close[, volume]).
- Builds the high-reward Elliott wave strategy from layered config
  (defaults < --config file < EWGATE_* env < command-line flags).
- Runs the bar-by-bar backtest and prints a one-line summary.
- Optional exports: JSON report, CSV trades, last-bar wave analysis.
"""

from __future__ import annotations

import argparse
import json
import os
from dataclasses import asdict, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from ewgate.backtest import Trade, run_strategy
from ewgate.config import Settings, load_config
from ewgate.data.bars import BarSeries
from ewgate.ew.detectors.analyzer import WaveAnalyzer
from ewgate.logging import get_logger, setup_logging
from ewgate.signals import build_high_reward_strategy

log = get_logger("ewgate.cli")


def _ensure_dir(p: str) -> None:
    Path(p).parent.mkdir(parents=True, exist_ok=True)


def _set(d: Dict[str, Any], section: str, key: str, value: Any) -> None:
    if value is None:
        return
    d.setdefault(section, {})[key] = value


def _overrides(args: argparse.Namespace) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    _set(out, "log", "level", args.log_level)
    if args.log_json:
        _set(out, "log", "json", True)
    _set(out, "strategy", "min_reward_risk", args.min_rr)
    _set(out, "strategy", "trend_period", args.trend_period)
    _set(out, "strategy", "cache_size", args.cache_size)
    _set(out, "analyzer", "compression", args.compression)
    _set(out, "backtest", "fee_bps", args.fee_bps)
    _set(out, "backtest", "slippage_bps", args.slippage_bps)
    if args.keep_open:
        _set(out, "backtest", "close_at_end", False)
    return out


def _range_str(series: BarSeries) -> str:
    return f"[{series.start_time}..{series.end_time}]"


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="ewgate", description="Backtest the high-reward Elliott wave strategy on CSV bars.")

    p.add_argument("--csv", required=True, help="CSV with ts|time|date, open, high, low, close[, volume]")

    # strategy / analyzer
    p.add_argument("--min_rr", type=float, default=None, help="minimum reward/risk ratio (default 3.0)")
    p.add_argument("--trend_period", type=int, default=None, help="SMA trend filter period (default 200)")
    p.add_argument("--compression", default=None, help="none|minor|intermediate|primary")
    p.add_argument("--cache_size", type=int, default=None, help="prefix analysis memo size, 0 disables")

    # backtest
    p.add_argument("--fee_bps", type=float, default=None)
    p.add_argument("--slippage_bps", type=float, default=None)
    p.add_argument("--keep_open", action="store_true", help="do not close an open position on the last bar")

    # exports
    p.add_argument("--export_report", default="", help="JSON report path")
    p.add_argument("--export_trades", default="", help="CSV trades path")
    p.add_argument("--show_analysis", action="store_true", help="print the wave analysis of the full series")

    # logging/config
    p.add_argument("--config", default=os.environ.get("EWGATE_CONFIG", ""))
    p.add_argument("--log_level", default=os.environ.get("EWGATE_LOG_LEVEL"))
    p.add_argument("--log_json", action="store_true")

    return p


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    cfg = load_config(defaults={}, file_path=args.config or None, overrides=_overrides(args))
    settings = Settings.from_dict(cfg)
    setup_logging(settings.log)

    series = BarSeries.from_csv(args.csv)
    if len(series) == 0:
        log.error("no bars loaded from %s", args.csv)
        return 2
    log.info("loaded %d bars %s from %s", len(series), _range_str(series), args.csv)

    analyzer = WaveAnalyzer(settings.analyzer)
    strategy = build_high_reward_strategy(series, settings.strategy, analyzer=analyzer)
    trades, rep, _record = run_strategy(series, strategy, settings.backtest)

    print(
        f"strategy=\"{rep.name}\" bars={len(series)} {_range_str(series)} "
        f"trades={rep.trades} winrate={rep.winrate:.2f} totalret={rep.total_ret:.4f} "
        f"mdd={rep.max_drawdown:.4f} pf={rep.profit_factor:.2f} sharpe={rep.sharpe_like:.2f} "
        f"equity={rep.final_equity:.2f}"
    )

    if args.show_analysis:
        result = analyzer.analyze(series)
        base = result.scenarios.base
        print(json.dumps(
            {
                "base": base.to_dict() if base else None,
                "scenarios": result.summary.scenarios,
                "agreement": result.summary.agreement,
                "strong_consensus": result.summary.has_strong_consensus,
            },
            ensure_ascii=False,
        ))

    if args.export_report:
        _ensure_dir(args.export_report)
        with open(args.export_report, "w", encoding="utf-8") as f:
            json.dump(rep.to_dict(), f, ensure_ascii=False, indent=2)

    if args.export_trades:
        _ensure_dir(args.export_trades)
        rows: List[Dict[str, Any]] = [asdict(t) for t in trades]
        pd.DataFrame(rows, columns=[f.name for f in fields(Trade)]).to_csv(args.export_trades, index=False)

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
