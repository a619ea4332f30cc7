"""Configuration schema and loading."""

from wabot.config.loader import get_config_path, get_data_dir, load_config, save_config
from wabot.config.schema import Config

__all__ = ["Config", "get_config_path", "get_data_dir", "load_config", "save_config"]
