"""Tests for configuration loading and management."""

import pytest

from provider_subscriptions.config import Config, ConfigurationError
from provider_subscriptions.models import SubscriptionKind


@pytest.fixture
def config():
    """Create a Config instance from the repository configuration."""
    return Config("config/marketplace.yaml")


def write_config(tmp_path, content: str) -> str:
    path = tmp_path / "marketplace.yaml"
    path.write_text(content, encoding="utf-8")
    return str(path)


class TestConfigurationLoading:
    """Test basic configuration loading."""

    def test_config_loads_successfully(self, config):
        assert config.config_path.exists()
        assert str(config.config_path).endswith("marketplace.yaml")

    def test_plans_are_loaded(self, config):
        plan_ids = [plan.plan_id for plan in config.plans]
        assert "monthly-standard" in plan_ids
        assert "annual-standard" in plan_ids

    def test_currency(self, config):
        assert config.currency == "XOF"

    def test_default_prices(self, config):
        assert config.default_prices.for_kind(SubscriptionKind.MONTHLY) == 5000
        assert config.default_prices.for_kind(SubscriptionKind.ANNUAL) == 50000

    def test_pending_timeout_disabled_by_default(self, config):
        assert config.subscription_settings.pending_timeout_days is None

    def test_scheduler_settings(self, config):
        assert config.scheduler_settings.enabled is True
        assert config.scheduler_settings.expiration_cron == "0 0 * * *"
        assert config.scheduler_settings.lease_ttl_seconds > 0

    def test_config_path_from_environment(self, monkeypatch, tmp_path):
        path = write_config(tmp_path, "currency: EUR\n")
        monkeypatch.setenv("CONFIG_PATH", path)
        assert Config().currency == "EUR"


class TestConfigurationDefaults:
    def test_minimal_file_uses_defaults(self, tmp_path):
        config = Config(write_config(tmp_path, "currency: XOF\n"))
        assert config.plans == []
        assert config.default_prices.monthly is None
        assert config.scheduler_settings.expiration_cron == "0 0 * * *"
        assert config.cache_key_prefix == "provider-subscriptions:"

    def test_redis_url_environment_override(self, monkeypatch, tmp_path):
        monkeypatch.delenv("REDIS_URL", raising=False)
        config = Config(write_config(tmp_path, "cache:\n  redis_url: redis://file:6379/0\n"))
        assert config.redis_url == "redis://file:6379/0"

        monkeypatch.setenv("REDIS_URL", "redis://env:6379/1")
        assert config.redis_url == "redis://env:6379/1"

    def test_scheduler_environment_overrides(self, monkeypatch, config):
        monkeypatch.setenv("SCHEDULER_ENABLED", "false")
        monkeypatch.setenv("EXPIRATION_CRON", "30 2 * * *")

        settings = config.scheduler_settings

        assert settings.enabled is False
        assert settings.expiration_cron == "30 2 * * *"
        assert settings.lease_ttl_seconds == 900
        assert config.marketplace.scheduler.enabled is True

    def test_reload_picks_up_changes(self, tmp_path):
        path = write_config(tmp_path, "currency: XOF\n")
        config = Config(path)
        write_config(tmp_path, "currency: GHS\n")
        config.reload()
        assert config.currency == "GHS"


class TestConfigurationErrors:
    """Test invalid configuration handling."""

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            Config(str(tmp_path / "missing.yaml"))

    def test_empty_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="empty"):
            Config(write_config(tmp_path, ""))

    def test_invalid_yaml(self, tmp_path):
        with pytest.raises(ConfigurationError, match="parse"):
            Config(write_config(tmp_path, "plans: [unclosed\n"))

    def test_invalid_plan_kind(self, tmp_path):
        content = (
            "plans:\n"
            "  - plan_id: weekly\n"
            "    name: Weekly\n"
            "    kind: WEEKLY\n"
            "    price: 100\n"
        )
        with pytest.raises(ConfigurationError, match="validation failed"):
            Config(write_config(tmp_path, content))

    def test_duplicate_plan_ids(self, tmp_path):
        plan = "  - plan_id: basic\n    name: Basic\n    kind: MONTHLY\n    price: 100\n"
        with pytest.raises(ConfigurationError, match="Duplicate plan_id"):
            Config(write_config(tmp_path, "plans:\n" + plan + plan))

    def test_negative_timeout_rejected(self, tmp_path):
        with pytest.raises(ConfigurationError):
            Config(write_config(tmp_path, "subscriptions:\n  pending_timeout_days: 0\n"))
