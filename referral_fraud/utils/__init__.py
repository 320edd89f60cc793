# Utilities
from .logger import get_logger
from .timeutils import ensure_utc

__all__ = ["get_logger", "ensure_utc"]
