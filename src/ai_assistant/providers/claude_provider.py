"""Anthropic Messages API provider."""

from __future__ import annotations

import base64
import logging
from typing import Any, Dict, List, Optional

from ..prompts import PromptOperationsMixin
from ..types import BatchJob, BatchStatus, OperationResult, TransportError, response_items
from ..utils import compact, guess_mime_type
from .base import BaseProvider

logger = logging.getLogger(__name__)

DEFAULT_API_VERSION = "2023-06-01"
OPTIONAL_FIELDS = (
    "tools",
    "system",
    "temperature",
    "top_k",
    "top_p",
    "tool_choice",
    "stop_sequences",
    "metadata",
)


class ClaudeProvider(PromptOperationsMixin, BaseProvider):
    name = "claude"

    @property
    def messages_url(self) -> str:
        return self.config.base_url.rstrip("/") + "/messages"

    def _batch_endpoint(self, *parts: str) -> str:
        base = (self.config.batch_url or self.messages_url + "/batches").rstrip("/")
        return "/".join([base, *parts])

    def _headers(self) -> Dict[str, str]:
        return {
            "x-api-key": self.config.api_key,
            "anthropic-version": self.config.api_version or DEFAULT_API_VERSION,
        }

    def tool(self, definitions: List[Dict[str, Any]]) -> "ClaudeProvider":
        return self.with_options(tools=list(definitions))

    def build_payload(self, messages: Optional[List[Dict[str, Any]]], options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        opts = self._options(options)
        payload: Dict[str, Any] = {
            "model": self._require(opts.get("model"), "model"),
            "max_tokens": int(self._require(opts.get("max_tokens"), "max_tokens")),
            "messages": self._require(messages, "messages"),
            "stream": bool(opts.get("stream", False)),
        }
        for key in OPTIONAL_FIELDS:
            if opts.get(key) is not None:
                payload[key] = opts[key]
        return payload

    def _send_message(self, operation: str, payload: Dict[str, Any]) -> OperationResult:
        if payload["stream"]:
            return self._execute_stream(
                operation,
                lambda: self.transport.stream("POST", self.messages_url, headers=self._headers(), json_body=payload),
            )
        return self._execute(
            operation,
            lambda: self.transport.send("POST", self.messages_url, headers=self._headers(), json_body=payload),
        )

    def generate_text(self, prompt: str, options: Optional[Dict[str, Any]] = None) -> OperationResult:
        payload = self.build_payload([{"role": "user", "content": prompt}], options)
        return self._send_message("generate_text", payload)

    def chat(
        self,
        messages: Optional[List[Dict[str, Any]]] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> OperationResult:
        messages = messages or (options or {}).get("messages")
        payload = self.build_payload(self._require(messages, "messages"), options)
        return self._send_message("chat", payload)

    def use_tool(self, messages: List[Dict[str, Any]], options: Optional[Dict[str, Any]] = None) -> OperationResult:
        self._require(self._options(options).get("tools"), "tools")
        payload = self.build_payload(messages, options)
        return self._send_message("use_tool", payload)

    def analyze_document(self, file_url: str, options: Optional[Dict[str, Any]] = None) -> OperationResult:
        """Sends a remote document plus a query about it in one user message."""
        opts = self._options(options)
        query = opts.get("query") or "Analyze this document"
        payload = self.build_payload([{"role": "user", "content": query}], options)

        try:
            content = self.transport.fetch_bytes(file_url)
        except TransportError as exc:
            logger.warning("claude.analyze_document fetch failed: %s", exc)
            return OperationResult.failure(f"Unable to fetch the file from {file_url}", cause=exc)

        document = {
            "type": "document",
            "source": {
                "type": "base64",
                "media_type": opts.get("media_type") or guess_mime_type(file_url),
                "data": base64.b64encode(content).decode("ascii"),
            },
            "cache_control": {"type": "ephemeral"},
        }
        payload["messages"] = [
            {
                "role": "user",
                "content": [document, {"type": "text", "text": query}],
            }
        ]
        return self._send_message("analyze_document", payload)

    def count_tokens(
        self, messages: List[Dict[str, Any]], options: Optional[Dict[str, Any]] = None
    ) -> OperationResult:
        payload = self.build_payload(messages, options)
        payload.pop("max_tokens")
        payload.pop("stream")
        for key in ("temperature", "top_k", "top_p", "stop_sequences", "metadata"):
            payload.pop(key, None)
        return self._execute(
            "count_tokens",
            lambda: self.transport.send(
                "POST", self.messages_url + "/count_tokens", headers=self._headers(), json_body=payload
            ),
        )

    # Message batches

    def submit_batch(
        self, requests: List[Dict[str, Any]], options: Optional[Dict[str, Any]] = None
    ) -> OperationResult:
        self._require(requests, "requests")
        entries = []
        for entry in requests:
            custom_id = self._require(entry.get("custom_id"), "custom_id")
            params = dict(entry.get("params") or {})
            messages = params.pop("messages", None)
            merged = {**(options or {}), **params, "stream": False}
            entries.append({"custom_id": custom_id, "params": self.build_payload(messages, merged)})

        return self._execute(
            "submit_batch",
            lambda: self.transport.send(
                "POST", self._batch_endpoint(), headers=self._headers(), json_body={"requests": entries}
            ),
            wrap=BatchJob.from_response,
        )

    def get_batch(self, token: str) -> OperationResult:
        token = self._require(token, "token")
        return self._execute(
            "get_batch",
            lambda: self.transport.send("GET", self._batch_endpoint(token), headers=self._headers()),
            wrap=BatchJob.from_response,
        )

    def get_batch_results(self, token: str) -> OperationResult:
        current = self.get_batch(token)
        if not current.ok:
            return current
        job: BatchJob = current.value
        if not job.status.is_terminal:
            return OperationResult.failure(f"Batch {job.token} has not ended (status {job.status.value})")

        url = job.result_location or self._batch_endpoint(job.token, "results")
        return self._execute(
            "get_batch_results",
            lambda: {"results": self.transport.send_lines("GET", url, headers=self._headers())},
            wrap=lambda data: data["results"],
        )

    def list_batches(
        self,
        before_id: Optional[str] = None,
        after_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> OperationResult:
        params = compact({"before_id": before_id, "after_id": after_id, "limit": limit})
        return self._execute(
            "list_batches",
            lambda: self.transport.send("GET", self._batch_endpoint(), headers=self._headers(), params=params or None),
            wrap=lambda data: [BatchJob.from_response(item) for item in response_items(data, "data")],
        )

    def cancel_batch(self, token: str) -> OperationResult:
        current = self.get_batch(token)
        if not current.ok:
            return current
        job: BatchJob = current.value
        if job.status.is_terminal:
            return OperationResult.failure(f"Batch {job.token} is already {job.status.value}; cancel rejected")
        return self._execute(
            "cancel_batch",
            lambda: self.transport.send("POST", self._batch_endpoint(job.token, "cancel"), headers=self._headers()),
            wrap=BatchJob.from_response,
        )

    def delete_batch(self, token: str) -> OperationResult:
        current = self.get_batch(token)
        if not current.ok:
            return current
        job: BatchJob = current.value
        if job.status is BatchStatus.IN_PROGRESS:
            return OperationResult.failure(f"Batch {job.token} is still in_progress; delete rejected")
        return self._execute(
            "delete_batch",
            lambda: self.transport.send("DELETE", self._batch_endpoint(job.token), headers=self._headers()),
        )


