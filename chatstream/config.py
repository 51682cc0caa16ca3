"""Configuration management for the streaming chat client."""

import os
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from .llm.models import ProviderConfig, ProviderType, StreamingConfig


class Configuration:
    """Manages configuration and environment variables for chatstream."""

    def __init__(self, config_path: str | None = None) -> None:
        """Initialize configuration from YAML and environment variables."""
        self.load_env()  # Load .env for API keys
        self._config = self._load_yaml_config(config_path)

    @staticmethod
    def load_env() -> None:
        """Load environment variables from .env file."""
        load_dotenv()

    @staticmethod
    def _load_yaml_config(config_path: str | None = None) -> dict[str, Any]:
        """Load configuration from YAML file."""
        if config_path is None:
            config_path = os.path.join(os.path.dirname(__file__), "config.yaml")
        with open(config_path) as file:
            config = yaml.safe_load(file)
            if not isinstance(config, dict):
                raise ValueError(
                    f"Config file must be YAML dict, got {type(config)}"
                )
            return config

    def get_config_dict(self) -> dict[str, Any]:
        """Get the full configuration dictionary."""
        return self._config

    @property
    def active_provider(self) -> str:
        """Name of the provider used when none is requested explicitly."""
        return self._config.get("llm", {}).get("active", "ollama")

    def get_provider_config(self, name: str | None = None) -> ProviderConfig:
        """Get validated configuration for a provider.

        Args:
            name: Provider entry under ``llm.providers``; defaults to the
                active provider.

        Returns:
            ProviderConfig with the API key resolved from the environment.

        Raises:
            ValueError: If the provider is unknown, invalid, or its API key
                environment variable is required but unset.
        """
        name = name or self.active_provider
        providers = self._config.get("llm", {}).get("providers", {})
        if name not in providers:
            raise ValueError(f"Provider '{name}' not found in providers config")

        raw = dict(providers[name])
        raw.setdefault("provider", name)

        api_key_env = raw.pop("api_key_env", None)
        if api_key_env:
            api_key = os.getenv(api_key_env)
            if not api_key:
                raise ValueError(
                    f"API key '{api_key_env}' not found in environment variables "
                    f"for provider '{name}'"
                )
            raw["api_key"] = api_key

        try:
            config = ProviderConfig.model_validate(raw)
        except ValidationError as e:
            raise ValueError(f"Invalid configuration for provider '{name}': {e}") from e

        if config.provider is ProviderType.GEMINI and not config.api_key:
            raise ValueError(f"Provider '{name}' requires an API key")
        return config

    def get_streaming_config(self) -> StreamingConfig:
        """Get validated stream reading settings."""
        try:
            return StreamingConfig.model_validate(self._config.get("streaming", {}) or {})
        except ValidationError as e:
            raise ValueError(f"Invalid streaming configuration: {e}") from e

    def get_logging_config(self) -> dict[str, Any]:
        """Get logging settings, defaulting the level to INFO."""
        logging_config = dict(self._config.get("logging", {}) or {})
        logging_config.setdefault("level", "INFO")
        return logging_config
