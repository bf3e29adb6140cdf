"""Configuration loading and saving."""

import json
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from loguru import logger
from pydantic import ValidationError

from replybot.auto_reply.errors import ConfigError
from replybot.config.schema import Config


def get_data_dir() -> Path:
    """Directory holding replybot's files."""
    path = Path.home() / ".replybot"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_config_path() -> Path:
    return get_data_dir() / "config.json"


def load_config(path: Path | None = None) -> Config:
    """
    Load configuration from file, environment and ``.env``.

    Values in the JSON file take precedence over environment variables.

    Args:
        path: Config file; defaults to ``~/.replybot/config.json``.

    Returns:
        The merged configuration.

    Raises:
        ConfigError: The file is unreadable or fails validation.
    """
    path = path or get_config_path()
    data: dict[str, Any] = {}

    # Plain variables (DISCORD_TOKEN, ...) may live in .env
    load_dotenv(override=False)

    if path.exists():
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Cannot read config file {path}: {e}") from e
        logger.debug(f"Loaded config from {path}")

    try:
        config = Config(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e

    return config.apply_legacy_env()


def save_config(config: Config, path: Path | None = None) -> Path:
    """Write configuration as JSON and return the path written."""
    path = path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(config.model_dump(), indent=2), encoding="utf-8")
    return path
