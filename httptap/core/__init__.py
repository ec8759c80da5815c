"""Core utilities shared by every httptap module."""

from .errors import ConfigurationError, HttpTapError
from .logging import get_logger, setup_logging


__all__ = ["ConfigurationError", "HttpTapError", "get_logger", "setup_logging"]
