from .analyzer import AnalyzerSettings, WaveAnalyzer, default_swing_detector  # noqa: F401
from .cache import PrefixAnalysis  # noqa: F401
