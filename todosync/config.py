"""
Configuration management for todosync

Loads settings from a YAML file in the user's config directory, with
environment variables (optionally from a .env file) taking precedence.
"""

import logging
import os
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Dict, Any, Optional

import platformdirs
import yaml
from dotenv import load_dotenv

from .fake_client import InMemoryTodoClient
from .remote_client import HttpTodoClient, RemoteTodoClient

logger = logging.getLogger(__name__)

LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


@dataclass
class TodoSyncConfig:
    """Main todosync configuration"""
    # Remote API
    base_url: str = "http://localhost"
    timeout_seconds: int = 15
    use_fake: bool = False
    max_retry_attempts: int = 3
    retry_backoff_factor: float = 0.5

    # Sync behavior
    sync_interval_seconds: int = 60

    # Paths (relative to the config directory)
    database_path: str = "todosync.db"
    log_file: str = "todosync.log"

    # Logging
    logging_level: str = "INFO"
    log_max_bytes: int = 10 * 1024 * 1024  # 10MB
    log_backup_count: int = 3


# Environment variable -> (config field, converter)
ENV_OVERRIDES = {
    'TODOSYNC_BASE_URL': ('base_url', str),
    'TODOSYNC_USE_FAKE': ('use_fake', lambda value: value.strip().lower() in ('1', 'true', 'yes', 'on')),
    'TODOSYNC_SYNC_INTERVAL_SECONDS': ('sync_interval_seconds', int),
    'TODOSYNC_TIMEOUT_SECONDS': ('timeout_seconds', int),
    'TODOSYNC_DATABASE_PATH': ('database_path', str),
    'TODOSYNC_LOG_LEVEL': ('logging_level', str),
}


class ConfigManager:
    """Manages todosync configuration loading, validation, and storage"""

    CONFIG_FILE_NAME = "config.yaml"
    APP_NAME = "todosync"

    def __init__(self, config_dir: Optional[Path] = None):
        """
        Initialize ConfigManager

        Args:
            config_dir: Custom config directory (defaults to user config directory)
        """
        if config_dir:
            self.config_dir = Path(config_dir)
        else:
            self.config_dir = Path(platformdirs.user_config_dir(self.APP_NAME))

        self.config_file = self.config_dir / self.CONFIG_FILE_NAME

    def get_resource_path(self, filename: str) -> Path:
        """Get path for a resource file in the config directory"""
        path = Path(filename)
        return path if path.is_absolute() else self.config_dir / path

    def config_exists(self) -> bool:
        return self.config_file.exists()

    def load_config(self, environ: Optional[Dict[str, str]] = None) -> TodoSyncConfig:
        """
        Load configuration from the config file and the environment

        A missing config file is not an error: defaults plus environment
        variables are enough to run.

        Args:
            environ: Environment mapping (defaults to os.environ after loading .env)

        Returns:
            TodoSyncConfig instance

        Raises:
            ValueError: If the file is not valid YAML or the configuration is invalid
        """
        if environ is None:
            load_dotenv()
            environ = os.environ

        yaml_data: Dict[str, Any] = {}
        if self.config_file.exists():
            try:
                with open(self.config_file, 'r') as f:
                    yaml_data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid YAML in {self.config_file}: {e}")
        else:
            logger.debug(f"No config file at {self.config_file}, using defaults")

        known_fields = set(TodoSyncConfig.__dataclass_fields__)
        unknown = set(yaml_data) - known_fields
        if unknown:
            logger.warning(f"Ignoring unknown config keys: {', '.join(sorted(unknown))}")

        config = TodoSyncConfig(**{key: value for key, value in yaml_data.items() if key in known_fields})

        for env_name, (field_name, convert) in ENV_OVERRIDES.items():
            if env_name in environ:
                try:
                    setattr(config, field_name, convert(environ[env_name]))
                except ValueError as e:
                    raise ValueError(f"Invalid value for {env_name}: {e}")

        self._validate_config(config)
        return config

    def save_config(self, config: TodoSyncConfig) -> None:
        """
        Save configuration to the config directory

        Args:
            config: TodoSyncConfig instance to save
        """
        self.config_dir.mkdir(parents=True, exist_ok=True)

        with open(self.config_file, 'w') as f:
            f.write("# todosync configuration\n")
            f.write(f"# Stored in: {self.config_file}\n")
            f.write("# TODOSYNC_* environment variables override these values\n\n")
            yaml.dump(asdict(config), f, default_flow_style=False, sort_keys=False)

        logger.info(f"Configuration saved to {self.config_file}")

    def _validate_config(self, config: TodoSyncConfig) -> None:
        """Validate configuration for common issues"""
        errors = []

        if config.sync_interval_seconds <= 0:
            errors.append("sync_interval_seconds must be positive")
        if config.timeout_seconds <= 0:
            errors.append("timeout_seconds must be positive")
        if config.max_retry_attempts < 0:
            errors.append("max_retry_attempts cannot be negative")
        if not config.use_fake and not str(config.base_url).strip():
            errors.append("base_url is required unless use_fake is enabled")
        if str(config.logging_level).upper() not in LOG_LEVELS:
            errors.append(f"logging_level must be one of {', '.join(LOG_LEVELS)}")

        if errors:
            raise ValueError(
                "Configuration validation failed:\n" +
                "\n".join(f"  - {error}" for error in errors)
            )


def build_client(config: TodoSyncConfig) -> RemoteTodoClient:
    """Create the real HTTP client, or the in-memory fake when use_fake is set"""
    if config.use_fake:
        logger.info("Using in-memory remote client")
        return InMemoryTodoClient()

    return HttpTodoClient(
        base_url=config.base_url,
        timeout_seconds=config.timeout_seconds,
        max_retry_attempts=config.max_retry_attempts,
        retry_backoff_factor=config.retry_backoff_factor,
    )


def load_config(config_dir: Optional[Path] = None) -> TodoSyncConfig:
    """
    Convenience function to load todosync configuration

    Args:
        config_dir: Custom config directory

    Returns:
        TodoSyncConfig instance
    """
    manager = ConfigManager(config_dir)
    return manager.load_config()
