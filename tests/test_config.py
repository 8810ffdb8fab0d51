"""Tests for runtime configuration."""

from pathlib import Path

from cmod.config import ClassifierConfig, Settings


def test_default_config_is_not_configured():
    assert not ClassifierConfig().is_configured


def test_https_endpoint_with_key_is_configured():
    config = ClassifierConfig(endpoint="https://example.cognitiveservices.azure.com", subscription_key="k")
    assert config.is_configured


def test_placeholders_are_not_configured():
    assert not ClassifierConfig(endpoint="your_azure_endpoint", subscription_key="k").is_configured
    assert not ClassifierConfig(
        endpoint="https://example.com", subscription_key="your_azure_subscription_key"
    ).is_configured


def test_plain_http_is_not_configured():
    assert not ClassifierConfig(endpoint="http://example.com", subscription_key="k").is_configured


def test_from_env(monkeypatch):
    monkeypatch.setenv("AZURE_CONTENT_MODERATOR_ENDPOINT", "https://example.com/")
    monkeypatch.setenv("AZURE_CONTENT_MODERATOR_KEY", "secret")
    monkeypatch.setenv("AZURE_REGION", "westeurope")
    monkeypatch.setenv("CMOD_CLASSIFIER_TIMEOUT", "2.5")
    config = ClassifierConfig.from_env()
    assert config.endpoint == "https://example.com"
    assert config.subscription_key == "secret"
    assert config.region == "westeurope"
    assert config.timeout == 2.5
    assert config.is_configured


def test_from_env_defaults(monkeypatch):
    for name in (
        "AZURE_CONTENT_MODERATOR_ENDPOINT",
        "AZURE_CONTENT_MODERATOR_KEY",
        "AZURE_REGION",
        "CMOD_CLASSIFIER_TIMEOUT",
    ):
        monkeypatch.delenv(name, raising=False)
    config = ClassifierConfig.from_env()
    assert config == ClassifierConfig()


def test_bad_timeout_uses_default(monkeypatch):
    monkeypatch.setenv("CMOD_CLASSIFIER_TIMEOUT", "soon")
    assert ClassifierConfig.from_env().timeout == 5.0


def test_describe_hides_the_key():
    described = ClassifierConfig(endpoint="https://example.com", subscription_key="secret").describe()
    assert "secret" not in str(described)
    assert described["configured"] is True


def test_settings_layout(tmp_path):
    settings = Settings.from_env(tmp_path)
    assert settings.records_dir == tmp_path / "moderation"
    assert settings.catalog_dir == tmp_path / "catalog"
    assert settings.audit_dir == tmp_path / "audit"


def test_settings_from_cmod_home(monkeypatch, tmp_path):
    monkeypatch.setenv("CMOD_HOME", str(tmp_path))
    assert Settings.from_env().data_dir == Path(tmp_path)
