from .engine import BacktestConfig, BacktestReport, Trade, run_strategy  # noqa: F401
from .record import Position, TradingRecord  # noqa: F401
