from ai_assistant.config import DEFAULT_SETTINGS, provider_config


def test_gemini_uses_google_api_key_alias(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.setenv("GOOGLE_API_KEY", "test-key")

    config = provider_config(DEFAULT_SETTINGS, "gemini")
    assert config.api_key == "test-key"


def test_claude_accepts_legacy_claude_api_key(monkeypatch):
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    monkeypatch.setenv("CLAUDE_API_KEY", "legacy-key")

    config = provider_config(DEFAULT_SETTINGS, "claude")
    assert config.api_key == "legacy-key"
    assert config.api_version == "2023-06-01"
    assert config.default_max_tokens == 1024


def test_huggingface_uses_hf_token(monkeypatch):
    monkeypatch.delenv("HUGGINGFACE_API_KEY", raising=False)
    monkeypatch.setenv("HF_TOKEN", "hf-token")

    assert provider_config(DEFAULT_SETTINGS, "huggingface").api_key == "hf-token"


def test_settings_api_key_wins_over_env(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "from-env")
    settings = {"providers": {"openai": {"api_key": "from-yaml", "base_url": "https://api.openai.com/v1"}}}

    assert provider_config(settings, "openai").api_key == "from-yaml"


def test_base_url_env_override(monkeypatch):
    monkeypatch.setenv("OPENAI_BASE_URL", "http://localhost:8080/v1")

    assert provider_config(DEFAULT_SETTINGS, "openai").base_url == "http://localhost:8080/v1"
