"""Configuration loading and defaults."""

from __future__ import annotations

import os
from copy import deepcopy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from dotenv import load_dotenv

from .types import ConfigurationError, UnknownProviderError

DEFAULT_SETTINGS: Dict[str, Any] = {
    "default": "openai",
    "http": {
        "timeout_seconds": 30,
    },
    "providers": {
        "openai": {
            "api_key": "",
            "base_url": "https://api.openai.com/v1",
            "default_model": "gpt-3.5-turbo-instruct",
            "chat_model": "gpt-4o-mini",
            "default_max_tokens": 150,
            "default_temperature": 0.7,
            "embedding_model": "text-embedding-3-small",
            "code_model": "gpt-3.5-turbo-instruct",
            "image_model": "dall-e-3",
            "image_edit_model": "dall-e-2",
            "speech_model": "tts-1",
            "voice": "alloy",
            "transcription_model": "whisper-1",
            "moderation_model": "omni-moderation-latest",
        },
        "claude": {
            "api_key": "",
            "base_url": "https://api.anthropic.com/v1/",
            "default_model": "claude-3-5-sonnet-20241022",
            "default_max_tokens": 1024,
            "api_version": "2023-06-01",
            "batch_url": "https://api.anthropic.com/v1/messages/batches/",
        },
        "gemini": {
            "api_key": "",
            "base_url": "https://generativelanguage.googleapis.com/v1beta/",
            "upload_url": "https://generativelanguage.googleapis.com/upload/v1beta/files",
            "default_model": "gemini-1.5-flash",
            "embedding_model": "text-embedding-004",
        },
        "huggingface": {
            "api_key": "",
            "base_url": "https://api-inference.huggingface.co/models/",
            "default_model": "gpt2",
        },
    },
}

API_KEY_ENV: Dict[str, tuple[str, ...]] = {
    "openai": ("OPENAI_API_KEY",),
    "claude": ("ANTHROPIC_API_KEY", "CLAUDE_API_KEY"),
    "gemini": ("GEMINI_API_KEY", "GOOGLE_API_KEY"),
    "huggingface": ("HUGGINGFACE_API_KEY", "HF_TOKEN"),
}

_CORE_KEYS = {
    "api_key",
    "base_url",
    "default_model",
    "chat_model",
    "default_max_tokens",
    "default_temperature",
    "embedding_model",
    "api_version",
    "batch_url",
    "upload_url",
}


@dataclass(frozen=True)
class ProviderConfig:
    name: str
    api_key: str
    base_url: str
    default_model: str = ""
    default_max_tokens: Optional[int] = None
    default_temperature: Optional[float] = None
    api_version: Optional[str] = None
    chat_model: Optional[str] = None
    embedding_model: Optional[str] = None
    batch_url: Optional[str] = None
    upload_url: Optional[str] = None
    models: Mapping[str, Any] = field(default_factory=dict)

    def validate(self) -> "ProviderConfig":
        missing = [key for key in ("api_key", "base_url") if not str(getattr(self, key) or "").strip()]
        if missing:
            raise ConfigurationError(f"{self.name}: {' and '.join(missing)} required in configuration")
        return self

    def model_for(self, key: str, fallback: Optional[str] = None) -> Optional[str]:
        return self.models.get(key) or fallback


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_settings(settings_path: str = "config/ai.yaml") -> Dict[str, Any]:
    """Loads ai.yaml and merges it onto defaults."""
    load_dotenv()
    merged = deepcopy(DEFAULT_SETTINGS)
    config_path = Path(settings_path)
    if config_path.exists():
        with config_path.open("r", encoding="utf-8") as f:
            user_cfg = yaml.safe_load(f) or {}
        merged = _deep_merge(merged, user_cfg)
    return merged


def _env_api_key(name: str) -> str:
    for var in API_KEY_ENV.get(name, (f"{name.upper()}_API_KEY",)):
        value = os.getenv(var)
        if value:
            return value
    return ""


def provider_config(settings: Dict[str, Any], name: str) -> ProviderConfig:
    """Builds a ProviderConfig for `name` from merged settings plus env secrets."""
    section = settings.get("providers", {}).get(name)
    if section is None:
        raise UnknownProviderError(f"Unknown provider: {name}")

    api_key = str(section.get("api_key") or "").strip() or _env_api_key(name)
    base_url = os.getenv(f"{name.upper()}_BASE_URL") or str(section.get("base_url") or "")

    max_tokens = section.get("default_max_tokens")
    temperature = section.get("default_temperature")
    return ProviderConfig(
        name=name,
        api_key=api_key,
        base_url=base_url,
        default_model=str(section.get("default_model") or ""),
        default_max_tokens=int(max_tokens) if max_tokens is not None else None,
        default_temperature=float(temperature) if temperature is not None else None,
        api_version=section.get("api_version"),
        chat_model=section.get("chat_model"),
        embedding_model=section.get("embedding_model"),
        batch_url=section.get("batch_url"),
        upload_url=section.get("upload_url"),
        models={k: v for k, v in section.items() if k not in _CORE_KEYS},
    )
