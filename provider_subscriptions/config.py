"""Configuration management - loads marketplace.yaml and environment variables."""

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError

from provider_subscriptions.models import MarketplaceConfig, SchedulerSettings, SubscriptionPlan


class ConfigurationError(Exception):
    """Raised when configuration is invalid or missing."""

    pass


class Config:
    """Application configuration loader and manager.

    Loads marketplace.yaml and provides validated access to:
    - Subscription plan catalogue and default prices
    - Subscription lifecycle settings
    - Scheduler and cache settings
    """

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to marketplace.yaml. If not provided, uses CONFIG_PATH env var
                        or defaults to ./config/marketplace.yaml
        """
        self._config_path = self._resolve_config_path(config_path)
        self._marketplace_config: Optional[MarketplaceConfig] = None
        self._load_config()

    def _resolve_config_path(self, config_path: Optional[str]) -> Path:
        """Resolve configuration file path from argument, env var, or default."""
        if config_path:
            return Path(config_path)

        env_path = os.getenv("CONFIG_PATH")
        if env_path:
            return Path(env_path)

        return Path("config/marketplace.yaml")

    def _load_config(self) -> None:
        """Load and validate marketplace.yaml configuration."""
        if not self._config_path.exists():
            raise ConfigurationError(
                f"Configuration file not found: {self._config_path}\n"
                f"Please create config/marketplace.yaml or set CONFIG_PATH environment variable"
            )

        try:
            with open(self._config_path, encoding="utf-8") as f:
                raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Failed to parse YAML configuration: {e}")

        if not raw_config:
            raise ConfigurationError(f"Configuration file is empty: {self._config_path}")

        try:
            self._marketplace_config = MarketplaceConfig(**raw_config)
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed:\n{e}")

    @property
    def marketplace(self) -> MarketplaceConfig:
        """Get validated marketplace configuration."""
        if self._marketplace_config is None:
            raise ConfigurationError("Configuration not loaded")
        return self._marketplace_config

    @property
    def config_path(self) -> Path:
        """Get path to configuration file."""
        return self._config_path

    @property
    def plans(self) -> list[SubscriptionPlan]:
        """Get the plan catalogue (active and inactive)."""
        return self.marketplace.plans

    @property
    def currency(self) -> str:
        return self.marketplace.currency

    @property
    def default_prices(self):
        """Prices used when a request names neither a plan nor a price."""
        return self.marketplace.default_prices

    @property
    def subscription_settings(self):
        return self.marketplace.subscriptions

    @property
    def scheduler_settings(self) -> SchedulerSettings:
        """Get scheduler settings.

        SCHEDULER_ENABLED and EXPIRATION_CRON environment variables take
        precedence over the file.
        """
        settings = self.marketplace.scheduler
        overrides = {}
        enabled = os.getenv("SCHEDULER_ENABLED")
        if enabled:
            overrides["enabled"] = enabled.lower() in ("1", "true", "yes")
        cron = os.getenv("EXPIRATION_CRON")
        if cron:
            overrides["expiration_cron"] = cron
        return settings.model_copy(update=overrides) if overrides else settings

    @property
    def redis_url(self) -> Optional[str]:
        """Get Redis URL for the lease store.

        The REDIS_URL environment variable takes precedence over the file.
        """
        return os.getenv("REDIS_URL") or self.marketplace.cache.redis_url

    @property
    def cache_key_prefix(self) -> str:
        return self.marketplace.cache.key_prefix

    def reload(self) -> None:
        """Reload configuration from disk."""
        self._load_config()


# Global configuration instance
_config_instance: Optional[Config] = None


def get_config(config_path: Optional[str] = None) -> Config:
    """Get global configuration instance (singleton).

    Args:
        config_path: Optional path to configuration file (only used on first call)

    Returns:
        Config instance
    """
    global _config_instance
    if _config_instance is None:
        _config_instance = Config(config_path)
    return _config_instance


def reload_config() -> None:
    """Reload global configuration from disk."""
    global _config_instance
    if _config_instance:
        _config_instance.reload()
    else:
        _config_instance = Config()
