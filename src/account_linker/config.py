"""Configuration management."""

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from account_linker.core import ConfigError


@dataclass
class MatrixConfig:
    """Matrix upstream settings."""
    homeserver: str = "https://matrix.org"
    login: str = ""
    password: str = ""
    command_prefix: str = "!"
    skip_backlog: bool = True


@dataclass
class PollingConfig:
    """Reconciliation loop settings."""
    interval: float = 5.0
    max_concurrent_polls: int = 4
    request_timeout: float = 30.0


@dataclass
class StorageConfig:
    """Durable storage settings."""
    db_path: Path = Path("data/acc-linker-bot.db")


@dataclass
class LoggingConfig:
    """Logging settings."""
    level: str = "INFO"
    format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass
class ExplainConfig:
    """Shell command explanation settings."""
    enabled: bool = True


@dataclass
class Settings:
    """Application settings."""

    # Config sections
    matrix: MatrixConfig = field(default_factory=MatrixConfig)
    polling: PollingConfig = field(default_factory=PollingConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    explain: ExplainConfig = field(default_factory=ExplainConfig)

    @property
    def poll_interval(self) -> float:
        return self.polling.interval

    @property
    def max_concurrent_polls(self) -> int:
        return self.polling.max_concurrent_polls

    @property
    def request_timeout(self) -> float:
        return self.polling.request_timeout

    @property
    def db_path(self) -> Path:
        return self.storage.db_path

    @property
    def log_level(self) -> str:
        return self.logging.level

    def validate(self) -> None:
        """Fail fast on settings the bot cannot start without."""
        if not self.matrix.login or not self.matrix.password:
            raise ConfigError(
                "matrix.login and matrix.password must be supplied in config "
                "or via MATRIX_LOGIN/MATRIX_PASSWORD"
            )
        if self.polling.interval <= 0:
            raise ConfigError("polling.interval must be positive")
        if self.polling.max_concurrent_polls < 1:
            raise ConfigError("polling.max_concurrent_polls must be at least 1")


def load_config(config_path: Path = Path("config.yaml")) -> dict:
    """Load configuration from YAML file."""
    if not config_path.exists():
        return {}

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

    if not isinstance(config, dict):
        raise ConfigError(f"{config_path} must contain a mapping")
    return config


def _apply_section(section: object, values: dict, name: str) -> None:
    if not isinstance(values, dict):
        raise ConfigError(f"Section '{name}' must be a mapping")
    for key, value in values.items():
        if not hasattr(section, key):
            raise ConfigError(f"Unknown setting {name}.{key}")
        setattr(section, key, value)


def get_settings(config_path: Path = Path("config.yaml")) -> Settings:
    """Get application settings from YAML config and environment."""
    # Load YAML config
    config = load_config(config_path)

    settings = Settings()

    # Apply YAML config
    for name in ("matrix", "polling", "storage", "logging", "explain"):
        if name in config:
            _apply_section(getattr(settings, name), config[name], name)

    try:
        settings.storage.db_path = Path(settings.storage.db_path)
        settings.polling.interval = float(settings.polling.interval)
        settings.polling.max_concurrent_polls = int(settings.polling.max_concurrent_polls)
        settings.polling.request_timeout = float(settings.polling.request_timeout)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid polling or storage setting: {e}") from e

    # Credentials from environment win over the file
    settings.matrix.login = os.getenv("MATRIX_LOGIN", settings.matrix.login)
    settings.matrix.password = os.getenv("MATRIX_PASSWORD", settings.matrix.password)

    return settings
