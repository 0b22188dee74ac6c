"""Settings loading for the Route Probe CLI with proper precedence handling.

Precedence (highest to lowest):
CLI flags > environment variables > defaults
"""

import logging
import os
from typing import Any, Dict, List, Optional

import yaml
from pydantic import ValidationError

from ..capture.config import ProbeSettings
from ..errors import ConfigurationError

logger = logging.getLogger(__name__)


class ConfigurationLoader:
    """Loads and merges settings from the environment and CLI flags."""

    # Environment variable prefix
    ENV_PREFIX = "ROUTEPROBE_"

    BOOLEAN_FIELDS = ('headless',)
    INTEGER_FIELDS = ('timeout_ms',)

    def __init__(self):
        self.loaded_sources: List[str] = []

    def load_settings(self, cli_overrides: Optional[Dict[str, Any]] = None) -> ProbeSettings:
        """Load settings with proper precedence.

        Args:
            cli_overrides: CLI flag overrides; None values are ignored

        Returns:
            Merged, validated settings

        Raises:
            ConfigurationError: If a value is missing its expected type or
                fails validation
        """
        self.loaded_sources = ["defaults"]
        config_data: Dict[str, Any] = {}

        env_config = self._load_environment_variables()
        if env_config:
            config_data.update(env_config)
            self.loaded_sources.append("environment variables")

        overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
        if overrides:
            config_data.update(overrides)
            self.loaded_sources.append("CLI flags")

        try:
            settings = ProbeSettings(**config_data)
        except ValidationError as e:
            details = '; '.join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors())
            raise ConfigurationError(f"Invalid settings: {details}") from e

        logger.debug(f"Settings loaded from: {', '.join(self.loaded_sources)}")
        return settings

    def _load_environment_variables(self) -> Dict[str, Any]:
        """Load settings from environment variables."""
        config = {}

        env_mapping = {
            f"{self.ENV_PREFIX}BASE_URL": "base_url",
            f"{self.ENV_PREFIX}AUTH_KEY": "auth_key",
            f"{self.ENV_PREFIX}APP_LOG_PATH": "app_log_path",
            f"{self.ENV_PREFIX}HEADLESS": "headless",
            f"{self.ENV_PREFIX}TIMEOUT_MS": "timeout_ms",
        }

        for env_var, field_name in env_mapping.items():
            env_value = os.getenv(env_var)
            if env_value is not None and env_value != '':
                config[field_name] = self._convert_env_value(env_var, env_value, field_name)

        return config

    def _convert_env_value(self, env_var: str, value: str, field_name: str) -> Any:
        """Convert environment variable string to appropriate type."""
        if field_name in self.BOOLEAN_FIELDS:
            return value.lower() in ('true', '1', 'yes', 'on')

        if field_name in self.INTEGER_FIELDS:
            try:
                return int(value)
            except ValueError:
                raise ConfigurationError(f"{env_var} must be an integer, got '{value}'")

        return value


def load_settings(cli_overrides: Optional[Dict[str, Any]] = None) -> ProbeSettings:
    """Convenience function to load settings."""
    return ConfigurationLoader().load_settings(cli_overrides)


def print_configuration(settings: ProbeSettings) -> str:
    """Render effective settings as YAML, with the auth key masked."""
    data = settings.model_dump(mode="json")
    if data.get('auth_key'):
        data['auth_key'] = '********'
    return yaml.safe_dump(data, default_flow_style=False, sort_keys=True)
