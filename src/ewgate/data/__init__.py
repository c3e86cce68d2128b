from .bars import Bar, BarSeries  # noqa: F401
