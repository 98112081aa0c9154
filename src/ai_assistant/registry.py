"""Provider name -> adapter resolution with a per-process cache."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, List, Mapping, Optional

from .config import ProviderConfig, load_settings, provider_config
from .providers.claude_provider import ClaudeProvider
from .providers.gemini_provider import GeminiProvider
from .providers.huggingface_provider import HuggingFaceProvider
from .providers.openai_provider import OpenAIProvider
from .transport import Transport
from .types import UnknownProviderError

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[ProviderConfig, Transport], Any]

DEFAULT_FACTORIES: Dict[str, ProviderFactory] = {
    "openai": OpenAIProvider,
    "claude": ClaudeProvider,
    "gemini": GeminiProvider,
    "huggingface": HuggingFaceProvider,
}


class ProviderRegistry:
    def __init__(
        self,
        settings: Dict[str, Any],
        factories: Optional[Mapping[str, ProviderFactory]] = None,
        transport: Optional[Transport] = None,
    ) -> None:
        self.settings = settings
        self.factories = dict(factories or DEFAULT_FACTORIES)
        timeout = float(settings.get("http", {}).get("timeout_seconds", 30))
        self.transport = transport or Transport(timeout=timeout)
        self._instances: Dict[str, Any] = {}
        self._lock = threading.Lock()

    @property
    def default_name(self) -> str:
        return str(self.settings.get("default") or "openai")

    def available(self) -> List[str]:
        return sorted(self.factories)

    def resolve(self, name: Optional[str] = None) -> Any:
        """Returns the cached adapter for `name`, building it on first use."""
        name = name or self.default_name
        factory = self.factories.get(name)
        if factory is None:
            raise UnknownProviderError(
                f"Unknown provider: {name}. Available: {', '.join(self.available()) or 'none'}"
            )

        with self._lock:
            instance = self._instances.get(name)
            if instance is None:
                config = provider_config(self.settings, name)
                instance = factory(config, self.transport)
                self._instances[name] = instance
                logger.info("Resolved provider %s (model=%s)", name, config.default_model or "-")
            return instance


_default_registry: Optional[ProviderRegistry] = None
_default_lock = threading.Lock()


def get_registry(settings_path: str = "config/ai.yaml") -> ProviderRegistry:
    """Process-wide registry; settings are read on first call only."""
    global _default_registry
    with _default_lock:
        if _default_registry is None:
            _default_registry = ProviderRegistry(load_settings(settings_path))
        return _default_registry


def resolve(name: Optional[str] = None) -> Any:
    return get_registry().resolve(name)
