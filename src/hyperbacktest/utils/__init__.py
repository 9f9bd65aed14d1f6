"""Generic helpers shared across the execution and statistics layers."""

from .logging import get_logger, log_json
from .multiwriter import MultiWriter

__all__ = ["get_logger", "log_json", "MultiWriter"]
