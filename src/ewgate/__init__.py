"""ewgate: high-reward Elliott wave entry/exit rules."""

__version__ = "0.1.0"
