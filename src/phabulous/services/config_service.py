"""Configuration service for loading config/main.yml."""

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from ..config import Settings
from ..models import PhabulousConfig

logger = logging.getLogger(__name__)


def _deep_merge(base: dict, overrides: dict) -> dict:
    merged = dict(base)
    for key, value in overrides.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class ConfigService:
    """Service for loading and caching application configuration.

    Files are read in order and deep-merged, later files winning; environment
    settings are applied last.
    """

    CONFIG_FILES = ("main.yml", "main.production.yml")

    def __init__(self, config_dir: Path, settings: Settings | None = None) -> None:
        """Initialize the config service.

        Args:
            config_dir: Directory containing the YAML files
            settings: Environment settings applied on top of the files
        """
        self.config_dir = config_dir
        self._settings = settings
        self._config: PhabulousConfig | None = None
        self._config_error: str | None = None
        self._loaded_files: list[Path] = []

    @property
    def has_config_error(self) -> bool:
        """Check if there was an error loading config."""
        return self._config_error is not None

    @property
    def config_error(self) -> str | None:
        """Get the config error message if any."""
        return self._config_error

    @property
    def loaded_files(self) -> list[Path]:
        return list(self._loaded_files)

    def get_config(self) -> PhabulousConfig:
        """Get configuration, loading from file if not cached."""
        if self._config is None:
            self._config = self._load_config()
        return self._config

    def reload(self) -> None:
        """Clear cached configuration, forcing reload on next access."""
        self._config = None
        self._config_error = None
        self._loaded_files = []

    def _load_config(self) -> PhabulousConfig:
        """Load configuration from files and environment, or return default."""
        self._config_error = None
        self._loaded_files = []
        data: dict = {}

        for filename in self.CONFIG_FILES:
            config_path = self.config_dir / filename
            if not config_path.exists():
                logger.debug("No %s found, skipping", config_path)
                continue

            try:
                with open(config_path) as f:
                    file_data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                self._config_error = f"Invalid YAML in {config_path}: {e}"
                logger.warning(self._config_error)
                return PhabulousConfig.default()
            except OSError as e:
                self._config_error = f"Error reading {config_path}: {e}"
                logger.warning(self._config_error)
                return PhabulousConfig.default()

            if file_data is None:
                logger.debug("%s is empty, skipping", config_path)
                continue
            if not isinstance(file_data, dict):
                self._config_error = f"{config_path} must contain a mapping"
                logger.warning(self._config_error)
                return PhabulousConfig.default()

            data = _deep_merge(data, file_data)
            self._loaded_files.append(config_path)

        if self._settings is not None:
            data = _deep_merge(data, self._settings.config_overrides())

        try:
            config = PhabulousConfig(**data)
        except ValidationError as e:
            self._config_error = f"Invalid configuration: {e}"
            logger.warning(self._config_error)
            return PhabulousConfig.default()

        logger.info(
            "Loaded configuration from %d file(s) with %d channel rule(s)",
            len(self._loaded_files),
            len(config.channels.rules),
        )
        return config
