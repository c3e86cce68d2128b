"""Bar-by-bar strategy backtest.

For each bar: when flat and the strategy signals entry, buy at the close;
when open and it signals exit, sell at the close. Long only.

- Fees + slippage (in bps) applied on entry and exit.
- Metrics: win rate, profit factor, expectancy, max drawdown, Sharpe-like
  (trade-return mean/std, not annualized).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple
import math

from ewgate.backtest.record import TradingRecord
from ewgate.indicators import close_price
from ewgate.logging import get_logger

log = get_logger("ewgate.backtest")

EXIT_END_OF_DATA = "end_of_data"


@dataclass(frozen=True)
class BacktestConfig:
    initial_cash: float = 10_000.0
    risk_fraction: float = 1.0  # share of equity committed per trade
    fee_bps: float = 0.0
    slippage_bps: float = 0.0
    close_at_end: bool = True

    def __post_init__(self) -> None:
        if self.initial_cash <= 0:
            raise ValueError("initial_cash must be > 0")
        if not (0.0 < self.risk_fraction <= 1.0):
            raise ValueError("risk_fraction must be in (0, 1]")
        if self.fee_bps < 0 or self.slippage_bps < 0:
            raise ValueError("fee_bps and slippage_bps must be >= 0")

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "BacktestConfig":
        return BacktestConfig(
            initial_cash=float(d.get("initial_cash", 10_000.0)),
            risk_fraction=float(d.get("risk_fraction", 1.0)),
            fee_bps=float(d.get("fee_bps", 0.0)),
            slippage_bps=float(d.get("slippage_bps", 0.0)),
            close_at_end=bool(d.get("close_at_end", True)),
        )


@dataclass(frozen=True)
class Trade:
    entry_idx: int
    exit_idx: int
    entry_px: float
    exit_px: float
    ret: float       # return after costs
    pnl: float       # cash PnL
    equity_after: float
    fees: float
    slippage: float
    reason: str = ""


@dataclass(frozen=True)
class BacktestReport:
    name: str
    initial_cash: float
    final_equity: float
    trades: int
    wins: int
    winrate: float
    avg_ret: float
    total_ret: float
    max_drawdown: float  # fraction
    profit_factor: float
    expectancy: float
    sharpe_like: float
    equity_curve: List[float] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        d = dict(self.__dict__)
        d.pop("equity_curve", None)
        return d


def _dd_from_curve(curve: List[float]) -> float:
    if not curve:
        return 0.0
    peak = curve[0]
    mdd = 0.0
    for x in curve:
        if x > peak:
            peak = x
        dd = (peak - x) / peak if peak > 0 else 0.0
        if dd > mdd:
            mdd = dd
    return mdd


def _report(name: str, trades: List[Trade], cfg: BacktestConfig, curve: List[float]) -> BacktestReport:
    rets = [t.ret for t in trades]
    wins = sum(1 for r in rets if r > 0)
    gross_wins = sum(r for r in rets if r > 0)
    gross_losses = sum(-r for r in rets if r <= 0)
    equity = curve[-1] if curve else cfg.initial_cash

    avg_ret = sum(rets) / len(rets) if rets else 0.0
    profit_factor = (gross_wins / gross_losses) if gross_losses > 1e-12 else (float("inf") if gross_wins > 0 else 0.0)
    if len(rets) >= 2:
        var = sum((x - avg_ret) ** 2 for x in rets) / (len(rets) - 1)
        sd = math.sqrt(var) if var > 0 else 0.0
        sharpe_like = (avg_ret / sd) if sd > 1e-12 else (float("inf") if avg_ret > 0 else 0.0)
    else:
        sharpe_like = 0.0

    return BacktestReport(
        name=name,
        initial_cash=float(cfg.initial_cash),
        final_equity=float(equity),
        trades=len(trades),
        wins=wins,
        winrate=float(wins / len(trades)) if trades else 0.0,
        avg_ret=float(avg_ret),
        total_ret=float((equity - cfg.initial_cash) / cfg.initial_cash),
        max_drawdown=float(_dd_from_curve(curve)),
        profit_factor=float(profit_factor),
        expectancy=float(avg_ret),
        sharpe_like=float(sharpe_like),
        equity_curve=curve,
    )


def run_strategy(
    series: Any,
    strategy: Any,
    cfg: Optional[BacktestConfig] = None,
    record: Optional[TradingRecord] = None,
) -> Tuple[List[Trade], BacktestReport, TradingRecord]:
    """Walk the series once and trade the strategy's signals.

    `strategy` needs should_enter(index, record) and either
    exit_reason(index, record) -> reason or None, evaluated once per open bar,
    or should_exit(index, record), whose exits are labelled "exit". Errors raised by the strategy
    (including its wave analyzer) propagate.
    """
    cfg = cfg or BacktestConfig()
    rec = record if record is not None else TradingRecord()
    close = close_price(series).tolist()
    name = str(getattr(strategy, "name", type(strategy).__name__))

    fb = float(cfg.fee_bps) / 10_000.0
    sb = float(cfg.slippage_bps) / 10_000.0

    equity = float(cfg.initial_cash)
    curve = [equity]
    trades: List[Trade] = []
    log.debug("backtest start", extra={"strategy": name, "bars": len(close), "fee_bps": cfg.fee_bps, "slippage_bps": cfg.slippage_bps})

    def _close_trade(index: int, reason: str) -> None:
        nonlocal equity
        px = float(close[index])
        pos = rec.exit(index, px, reason)
        gross = (px - pos.entry_px) / pos.entry_px if pos.entry_px > 0 else 0.0
        net = gross - 2.0 * (fb + sb)
        stake = equity * float(cfg.risk_fraction)
        pnl = stake * net
        equity += pnl
        curve.append(equity)
        trades.append(
            Trade(
                entry_idx=pos.entry_idx,
                exit_idx=index,
                entry_px=pos.entry_px,
                exit_px=px,
                ret=net,
                pnl=pnl,
                equity_after=equity,
                fees=stake * 2.0 * fb,
                slippage=stake * 2.0 * sb,
                reason=reason,
            )
        )
        log.info("exit idx=%d px=%.6g reason=%s", index, px, reason, extra={"strategy": name, "index": index, "price": px, "reason": reason, "ret": net})

    for i in range(len(close)):
        if rec.is_opened():
            if hasattr(strategy, "exit_reason"):
                why = strategy.exit_reason(i, rec)
                if why is not None:
                    _close_trade(i, why)
            elif strategy.should_exit(i, rec):
                _close_trade(i, "exit")
        elif strategy.should_enter(i, rec):
            rec.enter(i, float(close[i]))
            log.info("entry idx=%d px=%.6g", i, float(close[i]), extra={"strategy": name, "index": i, "price": float(close[i])})

    if cfg.close_at_end and rec.is_opened() and close:
        _close_trade(len(close) - 1, EXIT_END_OF_DATA)

    rep = _report(name, trades, cfg, curve)
    log.debug("backtest done", extra={"strategy": name, "trades": rep.trades, "total_ret": rep.total_ret, "mdd": rep.max_drawdown})
    return trades, rep, rec
