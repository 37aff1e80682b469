import logging
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Optional, Union

import yaml
from pymonad.either import Either, Left, Right

from .adapters.ytdlp_adapter import DEFAULT_FORMAT
from .domain.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "playlist-player.yml"


@dataclass(frozen=True)
class PlayerConfig:
    """Runtime settings of the player."""
    media_dir: Path = Path("youtube")
    extension: str = "mp4"
    video_format: str = DEFAULT_FORMAT
    token_file: str = "token.json"
    client_secrets_file: str = "client_secret.json"
    max_workers: int = 16
    page_size: Optional[int] = None
    poll_interval: float = 0.1
    report_bulk_failures: bool = False

    def with_overrides(self, **overrides) -> "PlayerConfig":
        """Returns a copy where every non-None override replaces the stored value."""
        values = {key: value for key, value in overrides.items() if value is not None}
        if "media_dir" in values:
            values["media_dir"] = Path(values["media_dir"])
        return replace(self, **values)


_FIELD_TYPES = {
    "media_dir": (str,),
    "extension": (str,),
    "video_format": (str,),
    "token_file": (str,),
    "client_secrets_file": (str,),
    "max_workers": (int,),
    "page_size": (int, type(None)),
    "poll_interval": (int, float),
    "report_bulk_failures": (bool,),
}


def _validate(data: dict) -> Either[ConfigError, dict]:
    known = {f.name for f in fields(PlayerConfig)}
    values = {}
    for key, value in data.items():
        if key not in known:
            logger.warning(f"Ignoring unknown configuration key '{key}'.")
            continue
        expected = _FIELD_TYPES[key]
        # bool is a subclass of int
        if isinstance(value, bool) and bool not in expected:
            return Left(ConfigError(f"Invalid value for '{key}': {value!r}"))
        if not isinstance(value, expected):
            return Left(ConfigError(f"Invalid value for '{key}': {value!r}"))
        values[key] = value

    if values.get("max_workers", 1) < 1:
        return Left(ConfigError("'max_workers' must be at least 1."))
    if values.get("page_size") is not None and not 0 < values["page_size"] <= 50:
        return Left(ConfigError("'page_size' must be between 1 and 50."))
    return Right(values)


def load_config(path: Optional[Union[str, Path]] = None) -> Either[ConfigError, PlayerConfig]:
    """
    Loads the player configuration from a YAML file.

    Args:
        path: The YAML file to read. Defaults to 'playlist-player.yml' in the
            working directory. A missing file yields the default settings.

    Returns:
        Either: A Right(PlayerConfig) or a Left(ConfigError).
    """
    config_path = Path(path or DEFAULT_CONFIG_FILE)
    if not config_path.exists():
        logger.info(f"No configuration file at '{config_path}', using defaults.")
        return Right(PlayerConfig())

    try:
        with open(config_path, "r", encoding="utf-8") as config_file:
            data = yaml.safe_load(config_file) or {}
    except (yaml.YAMLError, OSError) as e:
        logger.error(f"Could not read configuration file '{config_path}': {e}")
        return Left(ConfigError(f"Could not read configuration file '{config_path}': {e}"))

    if not isinstance(data, dict):
        logger.error(f"Configuration file '{config_path}' is not a mapping.")
        return Left(ConfigError(f"Configuration file '{config_path}' is not a mapping."))

    validated = _validate(data)
    if validated.is_left():
        error, _ = validated.monoid
        logger.error(f"Invalid configuration in '{config_path}': {error.message}")
        return validated

    logger.info(f"Configuration loaded from '{config_path}'.")
    return Right(PlayerConfig().with_overrides(**validated.value))
