"""Configuration module for MiniCAM Engine."""

from minicam.config.schema import Config
from minicam.config.validator import ConfigValidator

__all__ = ["Config", "ConfigValidator"]
