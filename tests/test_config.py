import pytest

from ai_assistant.config import ProviderConfig, load_settings, provider_config
from ai_assistant.types import ConfigurationError, UnknownProviderError


def test_load_settings_merges_yaml_onto_defaults(tmp_path):
    path = tmp_path / "ai.yaml"
    path.write_text(
        "default: claude\n"
        "providers:\n"
        "  claude:\n"
        "    default_max_tokens: 2048\n",
        encoding="utf-8",
    )

    settings = load_settings(str(path))

    assert settings["default"] == "claude"
    assert settings["providers"]["claude"]["default_max_tokens"] == 2048
    # untouched keys keep their defaults
    assert settings["providers"]["claude"]["api_version"] == "2023-06-01"
    assert settings["providers"]["openai"]["default_temperature"] == 0.7


def test_load_settings_without_file_returns_defaults(tmp_path):
    settings = load_settings(str(tmp_path / "missing.yaml"))
    assert settings["default"] == "openai"
    assert settings["http"]["timeout_seconds"] == 30


@pytest.mark.parametrize("api_key,base_url", [("", "https://x"), ("key", ""), ("   ", "https://x")])
def test_validate_rejects_empty_credentials(api_key, base_url):
    config = ProviderConfig(name="openai", api_key=api_key, base_url=base_url)
    with pytest.raises(ConfigurationError):
        config.validate()


def test_provider_config_extra_keys_become_models(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "k")
    settings = load_settings("does-not-exist.yaml")

    config = provider_config(settings, "openai")

    assert config.model_for("speech_model") == "tts-1"
    assert config.model_for("voice") == "alloy"
    assert config.model_for("nothing", "fallback") == "fallback"
    assert "api_key" not in config.models


def test_provider_config_unknown_section():
    with pytest.raises(UnknownProviderError):
        provider_config({"providers": {}}, "mistral")
