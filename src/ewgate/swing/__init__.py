from .composite import CompositeDetector  # noqa: F401
from .fractal import FractalDetector  # noqa: F401
from .zigzag import (  # noqa: F401
    AdaptiveZigZagDetector,
    SwingDetector,
    SwingPoint,
    SwingType,
    ZigZagConfig,
    ZigZagDetector,
    extract_swings,
    normalize_alternation,
    zigzag_from_close,
    zigzag_from_hl,
)
