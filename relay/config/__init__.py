"""Configuration loading."""

from relay.config.loader import ApiSettings, Config, get_config

__all__ = ["ApiSettings", "Config", "get_config"]
