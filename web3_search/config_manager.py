"""Configuration management with YAML and environment variable support."""

import copy
import os
from typing import Any

import yaml
from dotenv import load_dotenv

from web3_search.exceptions import ConfigError
from web3_search.logging_config import get_logger
from web3_search.validators import mask_url

logger = get_logger(__name__)


def _to_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on", "debug")


class ConfigManager:
    """Configuration manager for web3-search."""

    DEFAULT_CONFIG = {
        "rpc": {
            "url": "https://sepolia.infura.io/v3/YOUR_PROJECT_ID",
            "timeout": 15,
        },
        "query": {"timeout": 30},
        "server": {"host": "0.0.0.0", "port": 8080, "debug": False},
        "logging": {
            "level": "INFO",
            "file": None,
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        },
    }

    ENV_MAPPINGS = {
        "ETH_RPC_URL": ("rpc", "url", str),
        "ETH_RPC_TIMEOUT": ("rpc", "timeout", float),
        "QUERY_TIMEOUT": ("query", "timeout", float),
        "HOST": ("server", "host", str),
        "PORT": ("server", "port", int),
        "DEBUG": ("server", "debug", _to_bool),
        "LOG_LEVEL": ("logging", "level", str),
        "LOG_FILE": ("logging", "file", str),
    }

    def __init__(self, config_path: str | None = None):
        """Initialize configuration manager.

        Args:
            config_path: Path to config file (uses default or env var).
        """
        self.config_path: str = config_path or os.getenv(
            "WEB3_SEARCH_CONFIG_PATH", "web3_search.yaml"
        )
        self.config: dict[str, Any] = copy.deepcopy(self.DEFAULT_CONFIG)

    def load(self, dotenv: bool = True) -> None:
        """Load configuration from ``.env``, the YAML file and the environment.

        Precedence, lowest first: defaults, YAML file, environment.

        Raises:
            ConfigError: If the YAML file exists but cannot be parsed.
        """
        if dotenv and not load_dotenv():
            logger.info("No .env file found, using system environment variables")

        if os.path.exists(self.config_path):
            try:
                with open(self.config_path) as f:
                    loaded_config = yaml.safe_load(f)
            except (OSError, yaml.YAMLError) as e:
                raise ConfigError(
                    f"Failed to load config {self.config_path}: {e}",
                    ConfigError.ERR_INVALID_SCHEMA,
                ) from e

            if loaded_config:
                if not isinstance(loaded_config, dict):
                    raise ConfigError(
                        f"Config {self.config_path} must be a mapping",
                        ConfigError.ERR_INVALID_SCHEMA,
                    )
                self._merge(self.config, loaded_config)
        else:
            logger.info("Config file not found, using defaults")

        self._apply_env_overrides()

    def get(self, *keys: str) -> Any:
        """Get configuration value using dot notation.

        Args:
            *keys: Nested keys (e.g., "rpc", "url").

        Returns:
            Configuration value or None if not found.
        """
        value = self.config
        for key in keys:
            if isinstance(value, dict):
                value = value.get(key)
            else:
                return None
        return value

    def set(self, *keys: str, value: Any) -> None:
        """Set configuration value using dot notation."""
        config = self.config
        for key in keys[:-1]:
            if key not in config:
                config[key] = {}
            config = config[key]

        config[keys[-1]] = value

    @property
    def rpc_url(self) -> str:
        url = self.get("rpc", "url")
        if not url:
            raise ConfigError(
                "RPC URL is not configured",
                ConfigError.ERR_MISSING_RPC_URL,
                hint="Set ETH_RPC_URL or rpc.url in the config file",
            )
        return url

    def _merge(self, base: dict[str, Any], update: dict[str, Any]) -> None:
        for key, value in update.items():
            if isinstance(value, dict) and isinstance(base.get(key), dict):
                self._merge(base[key], value)
            else:
                base[key] = value

    def _apply_env_overrides(self) -> None:
        """Apply environment variable overrides (see ``ENV_MAPPINGS``)."""
        for env_var, (section, key, type_converter) in self.ENV_MAPPINGS.items():
            value = os.getenv(env_var)
            if value is None or value == "":
                continue
            try:
                converted_value = type_converter(value)
            except ValueError as e:
                raise ConfigError(
                    f"Invalid value for {env_var}: {value!r}",
                    ConfigError.ERR_INVALID_SCHEMA,
                ) from e
            self.set(section, key, value=converted_value)

    def validate(self) -> list[str]:
        """Validate configuration schema.

        Returns:
            List of validation errors (empty if valid).
        """
        errors = []

        url = self.get("rpc", "url")
        if not isinstance(url, str) or not url.startswith(("http://", "https://")):
            errors.append(f"rpc.url must be an http(s) URL, got {mask_url(str(url))}")

        for section in ("rpc", "query"):
            timeout = self.get(section, "timeout")
            if (
                isinstance(timeout, bool)
                or not isinstance(timeout, (int, float))
                or timeout <= 0
            ):
                errors.append(f"{section}.timeout must be a positive number")

        port = self.get("server", "port")
        if isinstance(port, bool) or not isinstance(port, int) or not 0 < port < 65536:
            errors.append("server.port must be an integer between 1 and 65535")

        return errors


# Global config manager instance
_config_manager: ConfigManager | None = None


def get_config_manager() -> ConfigManager:
    """Get global config manager instance, loading it on first use."""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
        _config_manager.load()
    return _config_manager
