from .ta import atr, close_price, ema, macd, rsi, sma, value_at  # noqa: F401

__all__ = ["atr", "close_price", "ema", "macd", "rsi", "sma", "value_at"]
