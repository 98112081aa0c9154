"""HuggingFace Inference API provider (text generation only)."""

from __future__ import annotations

from typing import Any, Dict, Optional

from ..types import OperationResult
from .base import BaseProvider


class HuggingFaceProvider(BaseProvider):
    name = "huggingface"

    def generate_text(self, prompt: str, options: Optional[Dict[str, Any]] = None) -> OperationResult:
        opts = options or {}
        model = self._require(opts.get("model") or self._bound.get("model") or self.config.default_model, "model")
        base = self.config.base_url if self.config.base_url.endswith("/") else self.config.base_url + "/"
        payload: Dict[str, Any] = {"inputs": prompt}
        if opts.get("parameters"):
            payload["parameters"] = opts["parameters"]
        return self._execute(
            "generate_text",
            lambda: self.transport.send(
                "POST",
                base + model,
                headers={"Authorization": f"Bearer {self.config.api_key}"},
                json_body=payload,
            ),
        )
