"""Configuration for httptap."""

from .settings import TapSettings, load_settings


__all__ = ["TapSettings", "load_settings"]
