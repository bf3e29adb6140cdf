"""Configuration module for replybot."""

from replybot.config.schema import Config
from replybot.config.loader import load_config, save_config, get_config_path

__all__ = ["Config", "load_config", "save_config", "get_config_path"]
