"""Configuration module -- exports Settings and load_config."""

from vectorqa.config.loader import load_config
from vectorqa.config.settings import Settings

__all__ = ["Settings", "load_config"]
