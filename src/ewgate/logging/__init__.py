from .logger import LogConfig, get_logger, setup_logging  # noqa: F401

__all__ = ["LogConfig", "get_logger", "setup_logging"]
