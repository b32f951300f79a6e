"""Configuration loader for the index synchronization service."""

import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

import structlog
import yaml
from pydantic import ValidationError

from indexsync.models.config import AppConfig

log = structlog.stdlib.get_logger()


class ConfigurationError(Exception):
    """Raised when configuration is invalid or missing."""

    pass


class ConfigLoader:
    """Loads and validates application configuration from YAML files and environment variables."""

    def __init__(self, config_dir: Optional[Path] = None) -> None:
        """Initialize the ConfigLoader.

        Args:
            config_dir: Directory holding ``{env}.yaml`` files. Defaults to the
                repository's ``config`` directory.
        """
        self.env_var_pattern = re.compile(r"\$\{([^}]+)\}")
        self.config_dir = config_dir or Path(__file__).parent.parent.parent / "config"

    def load_config(self, config_path: Optional[str] = None) -> AppConfig:
        """Load configuration from YAML file with environment variable overrides.

        Args:
            config_path: Path to the configuration YAML file. If None, uses
                ``{APP_ENV}.yaml`` or default.yaml

        Returns:
            AppConfig: Validated application configuration

        Raises:
            ConfigurationError: If configuration file is missing or invalid
        """
        if config_path is None:
            config_path = self._get_default_config_path()

        log.info("loading_configuration", config_path=config_path)

        config_dict = self._load_yaml_file(config_path)
        config_dict = self._substitute_env_vars(config_dict)

        try:
            app_config = AppConfig(**config_dict)
            log.info("configuration_loaded_successfully")
            return app_config
        except ValidationError as e:
            log.error("configuration_validation_failed", error=str(e))
            raise ConfigurationError(f"Configuration validation failed: {e}") from e

    def _get_default_config_path(self) -> str:
        """Get the default configuration file path based on environment.

        Returns:
            str: Path to the configuration file
        """
        env = os.getenv("APP_ENV", "default")
        config_file = self.config_dir / f"{env}.yaml"

        if not config_file.exists():
            config_file = self.config_dir / "default.yaml"

        if not config_file.exists():
            raise ConfigurationError(
                f"Configuration file not found: {config_file}. "
                f"Please create config/default.yaml or set APP_ENV to a valid environment."
            )

        return str(config_file)

    def _load_yaml_file(self, config_path: str) -> Dict[str, Any]:
        """Load YAML configuration file.

        Raises:
            ConfigurationError: If file cannot be read or parsed
        """
        try:
            with open(config_path, "r") as f:
                config_dict = yaml.safe_load(f)
        except FileNotFoundError as e:
            raise ConfigurationError(f"Configuration file not found: {config_path}") from e
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Failed to parse YAML file {config_path}: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Failed to load configuration file {config_path}: {e}") from e

        if config_dict is None:
            raise ConfigurationError(f"Configuration file is empty: {config_path}")
        if not isinstance(config_dict, dict):
            raise ConfigurationError(f"Configuration file must contain a mapping: {config_path}")

        log.debug("yaml_file_loaded", config_path=config_path)
        return config_dict

    def _substitute_env_vars(self, config: Any) -> Any:
        """Recursively substitute ``${VAR_NAME}`` references with environment values."""
        if isinstance(config, dict):
            return {key: self._substitute_env_vars(value) for key, value in config.items()}
        elif isinstance(config, list):
            return [self._substitute_env_vars(item) for item in config]
        elif isinstance(config, str):
            return self._substitute_env_var_in_string(config)
        else:
            return config

    def _substitute_env_var_in_string(self, value: str) -> str:
        """Substitute environment variables in a string.

        Raises:
            ConfigurationError: If a required environment variable is not set
        """
        matches = self.env_var_pattern.findall(value)

        for var_name in matches:
            env_value = os.getenv(var_name)
            if env_value is None:
                raise ConfigurationError(
                    f"Required environment variable not set: {var_name}. "
                    f"Please set {var_name} in your environment or .env file."
                )
            value = value.replace(f"${{{var_name}}}", env_value)

        return value

    def validate_config(self, config: AppConfig) -> list[str]:
        """Validate configuration and return any warnings.

        Pydantic handles field validation during model creation; this covers
        combinations of settings that are legal but likely mistakes.

        Args:
            config: Application configuration to validate

        Returns:
            List of warning messages (empty if no warnings)
        """
        warnings = []

        if config.contentful.content_type and config.contentful.sync_type != "Entry":
            warnings.append(
                f"contentful.content_type ('{config.contentful.content_type}') is only "
                f"honoured by the sync API when contentful.sync_type is 'Entry'"
            )

        if config.contentful.sync_type == "Entry":
            warnings.append(
                "contentful.sync_type 'Entry' excludes deletion records; "
                "deleted entries will not be removed from the index"
            )

        supported_indexes = ["algolia", "memory"]
        if config.search_index.type not in supported_indexes:
            warnings.append(
                f"search_index.type '{config.search_index.type}' is not supported. "
                f"Supported types: {supported_indexes}"
            )

        if config.search_index.type == "algolia" and not (
            config.search_index.app_id and config.search_index.api_key
        ):
            warnings.append("search_index.app_id and search_index.api_key are required for algolia")

        if not config.sync.trigger_events:
            warnings.append("sync.trigger_events is empty; webhooks will never schedule a sync")

        if warnings:
            log.warning("configuration_validation_warnings", warnings=warnings)

        return warnings
