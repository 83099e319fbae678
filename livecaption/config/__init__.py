"""Configuration loader utilities."""

from .loader import DEFAULT_CONFIG_PATH, CaptionConfig, load_config

__all__ = [
    "CaptionConfig",
    "DEFAULT_CONFIG_PATH",
    "load_config",
]
