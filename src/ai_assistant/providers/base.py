"""Shared provider adapter plumbing."""

from __future__ import annotations

import copy
import logging
from typing import Any, Callable, Dict, Optional

from ..config import ProviderConfig
from ..transport import Transport
from ..types import ConfigurationError, OperationResult, ProtocolError, TransportError

logger = logging.getLogger(__name__)


class BaseProvider:
    """Validated config, a transport, and immutable per-call option binding."""

    name = "base"
    # Errors converted into failure results besides transport/protocol errors.
    wrapped_errors: tuple[type[BaseException], ...] = ()

    def __init__(self, config: ProviderConfig, transport: Optional[Transport] = None) -> None:
        self.config = config.validate()
        self.transport = transport or Transport()
        self._bound: Dict[str, Any] = {}

    def with_options(self, **overrides: Any) -> "BaseProvider":
        """Returns a copy bound to extra options; this instance is untouched."""
        clone = copy.copy(self)
        clone._bound = {**self._bound, **overrides}
        return clone

    def model(self, name: str) -> "BaseProvider":
        return self.with_options(model=name)

    def stream(self) -> "BaseProvider":
        return self.with_options(stream=True)

    @property
    def bound_options(self) -> Dict[str, Any]:
        return dict(self._bound)

    def _config_defaults(self) -> Dict[str, Any]:
        return {
            "model": self.config.default_model or None,
            "max_tokens": self.config.default_max_tokens,
            "temperature": self.config.default_temperature,
        }

    def _options(
        self,
        options: Optional[Dict[str, Any]] = None,
        defaults: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Built-in defaults, then config defaults, then bound, then per-call."""
        merged: Dict[str, Any] = {}
        for layer in (defaults or {}, self._config_defaults(), self._bound, options or {}):
            for key, value in layer.items():
                if value is not None:
                    merged[key] = value
        return merged

    @staticmethod
    def _require(value: Any, field: str) -> Any:
        if value is None or value == "" or value == [] or value == {}:
            raise ConfigurationError(f"Missing required option: {field}")
        return value

    def _execute(self, operation: str, call: Callable[[], Any], wrap: Optional[Callable[[Any], Any]] = None) -> OperationResult:
        try:
            data = call()
            value = wrap(data) if wrap else None
        except ConfigurationError:
            raise
        except (TransportError, ProtocolError) + self.wrapped_errors as exc:
            logger.warning("%s.%s failed: %s", self.name, operation, exc)
            return OperationResult.failure(str(exc), cause=exc)
        return OperationResult.success(data, value=value)

    def _execute_stream(self, operation: str, call: Callable[[], Any]) -> OperationResult:
        try:
            chunks = call()
        except ConfigurationError:
            raise
        except (TransportError, ProtocolError) + self.wrapped_errors as exc:
            logger.warning("%s.%s stream failed: %s", self.name, operation, exc)
            return OperationResult.failure(str(exc), cause=exc)
        return OperationResult.streamed(chunks)
