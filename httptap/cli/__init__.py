"""Command line interface for httptap."""

from .main import app


__all__ = ["app"]
