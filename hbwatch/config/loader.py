import logging
import yaml
from pathlib import Path
from typing import Optional, Union
from pydantic import ValidationError
from .models import WatcherConfig

USER_CONFIG_PATH = Path("~/.config/hbwatch.yaml")

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when the configuration cannot be located, parsed or validated."""


def resolve_config_path(location: Optional[Union[str, Path]] = None) -> Optional[Path]:
    """Picks the user config file: explicit location, then ~/.config/hbwatch.yaml, else none."""
    if location:
        return Path(str(location)).expanduser()
    home = USER_CONFIG_PATH.expanduser()
    if home.exists():
        return home
    return None


def load_config(config_path: Optional[Path]) -> WatcherConfig:
    """Loads the YAML config over the built-in defaults and freezes it."""
    data = {}
    logger.info(f"Custom configuration: {config_path}")
    if config_path is not None:
        if not config_path.exists():
            raise ConfigError(f"Config file not found: {config_path}")
        try:
            with open(config_path, "r") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigError(f"Cannot read config file {config_path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {config_path} must contain a mapping")

    try:
        return WatcherConfig(**data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
