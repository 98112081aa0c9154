"""Google Gemini REST provider."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from ..prompts import PromptOperationsMixin
from ..types import ConfigurationError, OperationResult, ProtocolError, TransportError, UploadedFile, response_items
from ..utils import compact, guess_mime_type
from .base import BaseProvider

logger = logging.getLogger(__name__)

GENERATE_ACTION = "generateContent"
STREAM_ACTION = "streamGenerateContent"
EMBED_ACTION = "embedContent"

DEFAULT_TRANSCRIBE_PROMPT = "Generate a transcript of the speech."


def _header(res: Any, name: str) -> Optional[str]:
    for key, value in (res.headers or {}).items():
        if key.lower() == name.lower():
            return value
    return None


def to_contents(messages: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Maps chat-style messages onto Gemini contents (assistant -> model)."""
    contents = []
    for message in messages:
        role = message.get("role", "user")
        if role == "assistant":
            role = "model"
        if "parts" in message:
            parts = message["parts"]
        else:
            parts = [{"text": str(message.get("content", ""))}]
        contents.append({"role": role, "parts": parts})
    return contents


class GeminiProvider(PromptOperationsMixin, BaseProvider):
    name = "gemini"

    @property
    def _base(self) -> str:
        base = self.config.base_url
        return base if base.endswith("/") else base + "/"

    @property
    def upload_url(self) -> str:
        if self.config.upload_url:
            return self.config.upload_url
        parsed = urlparse(self.config.base_url)
        return f"{parsed.scheme}://{parsed.netloc}/upload/v1beta/files"

    def endpoint(self, model: str, action: str) -> str:
        model = model.split(":", 1)[0]
        return f"{self._base}models/{model}:{action}?key={self.config.api_key}"

    def _key_params(self, **extra: Any) -> Dict[str, Any]:
        return compact({"key": self.config.api_key, **extra})

    @staticmethod
    def _tools(opts: Dict[str, Any]) -> Optional[List[Dict[str, Any]]]:
        tools: List[Dict[str, Any]] = []
        if opts.get("code_execution"):
            tools.append({"code_execution": {}})
        declarations = opts.get("function_declarations") or opts.get("function_calling")
        if declarations:
            tools.append({"function_declarations": list(declarations)})
        search = opts.get("google_search_retrieval")
        if search:
            tools.append({"google_search_retrieval": search if isinstance(search, dict) else {}})
        return tools or None

    def build_payload(self, contents: List[Dict[str, Any]], options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        opts = self._options(options)
        payload: Dict[str, Any] = {"contents": self._require(contents, "contents")}

        generation_config = compact(
            {
                "temperature": opts.get("temperature"),
                "maxOutputTokens": opts.get("max_tokens"),
                "topP": opts.get("top_p"),
                "topK": opts.get("top_k"),
                "stopSequences": opts.get("stop_sequences"),
                "responseMimeType": opts.get("response_mime_type"),
            }
        )
        if generation_config:
            payload["generationConfig"] = generation_config
        if opts.get("system"):
            payload["system_instruction"] = {"parts": [{"text": opts["system"]}]}
        tools = self._tools(opts)
        if tools:
            payload["tools"] = tools
        if opts.get("tool_config"):
            payload["tool_config"] = opts["tool_config"]
        if opts.get("safety_settings"):
            payload["safetySettings"] = opts["safety_settings"]
        if opts.get("cached_content"):
            payload["cachedContent"] = opts["cached_content"]
        return payload

    def _generate(self, operation: str, contents: List[Dict[str, Any]], options: Optional[Dict[str, Any]]) -> OperationResult:
        opts = self._options(options)
        model = self._require(opts.get("model"), "model")
        payload = self.build_payload(contents, options)
        if opts.get("stream"):
            url = self.endpoint(model, STREAM_ACTION) + "&alt=sse"
            return self._execute_stream(operation, lambda: self.transport.stream("POST", url, json_body=payload))
        url = self.endpoint(model, GENERATE_ACTION)
        return self._execute(operation, lambda: self.transport.send("POST", url, json_body=payload))

    def generate_text(self, prompt: str, options: Optional[Dict[str, Any]] = None) -> OperationResult:
        return self._generate("generate_text", [{"parts": [{"text": prompt}]}], options)

    def chat(
        self,
        messages: Optional[List[Dict[str, Any]]] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> OperationResult:
        messages = self._require(messages or (options or {}).get("messages"), "messages")
        return self._generate("chat", to_contents(messages), options)

    def generate_embeddings(self, text: str, options: Optional[Dict[str, Any]] = None) -> OperationResult:
        opts = options or {}
        model = self._require(opts.get("model") or self.config.embedding_model, "embedding_model")
        payload = compact(
            {
                "model": f"models/{model}",
                "content": {"parts": [{"text": text}]},
                "taskType": opts.get("task_type"),
            }
        )
        url = self.endpoint(model, EMBED_ACTION)
        return self._execute("generate_embeddings", lambda: self.transport.send("POST", url, json_body=payload))

    # Resumable upload

    def _upload(self, path: str, display_name: Optional[str], mime_type: Optional[str]) -> Dict[str, Any]:
        content = Path(path).read_bytes()
        mime_type = mime_type or guess_mime_type(path)
        size = str(len(content))

        start = self.transport.request(
            "POST",
            self.upload_url,
            headers={
                "X-Goog-Upload-Protocol": "resumable",
                "X-Goog-Upload-Command": "start",
                "X-Goog-Upload-Header-Content-Length": size,
                "X-Goog-Upload-Header-Content-Type": mime_type,
            },
            json_body={"file": {"display_name": display_name or Path(path).name}},
            params=self._key_params(),
        )
        session_url = _header(start, "X-Goog-Upload-URL")
        if not session_url:
            raise ProtocolError("Upload start response did not include an X-Goog-Upload-URL header")

        res = self.transport.request(
            "POST",
            session_url,
            headers={
                "Content-Type": mime_type,
                "Content-Length": size,
                "X-Goog-Upload-Offset": "0",
                "X-Goog-Upload-Command": "upload, finalize",
            },
            data=content,
        )
        if res.status_code != 200:
            raise TransportError(
                f"Upload finalize failed HTTP {res.status_code}",
                status_code=res.status_code,
                body=res.text or "",
            )
        try:
            data = res.json()
        except ValueError as exc:
            raise TransportError("Upload finalize returned invalid JSON", status_code=res.status_code, body=res.text or "") from exc
        if not isinstance(data, dict):
            raise ProtocolError("Upload finalize returned an unexpected body")
        # Vendor may omit mimeType; keep what was declared at start.
        file_info = data["file"] if isinstance(data.get("file"), dict) else data
        file_info.setdefault("mimeType", mime_type)
        return data

    @staticmethod
    def _check_local_file(path: str) -> str:
        if not Path(path).is_file():
            raise ConfigurationError(f"File not found: {path}")
        return path

    def upload_file(
        self, path: str, display_name: Optional[str] = None, mime_type: Optional[str] = None
    ) -> OperationResult:
        self._check_local_file(path)
        return self._execute(
            "upload_file",
            lambda: self._upload(path, display_name, mime_type),
            wrap=UploadedFile.from_response,
        )

    def generate_from_file(
        self, path: str, prompt: str, options: Optional[Dict[str, Any]] = None
    ) -> OperationResult:
        """Uploads `path` then asks the model about it in one generateContent call."""
        opts = self._options(options)
        model = self._require(opts.get("model"), "model")
        url = self.endpoint(model, GENERATE_ACTION)
        self._check_local_file(path)

        def call() -> Dict[str, Any]:
            uploaded = UploadedFile.from_response(
                self._upload(path, opts.get("display_name"), opts.get("mime_type"))
            )
            logger.debug("gemini uploaded %s as %s", path, uploaded.uri)
            contents = [
                {
                    "parts": [
                        {"text": prompt},
                        {"file_data": {"mime_type": uploaded.mime_type, "file_uri": uploaded.uri}},
                    ]
                }
            ]
            return self.transport.send("POST", url, json_body=self.build_payload(contents, options))

        return self._execute("generate_from_file", call)

    def transcribe_audio(self, audio_path: str, options: Optional[Dict[str, Any]] = None) -> OperationResult:
        prompt = (options or {}).get("prompt") or DEFAULT_TRANSCRIBE_PROMPT
        return self.generate_from_file(audio_path, prompt, options)

    # Files

    @staticmethod
    def _resource(prefix: str, name: str) -> str:
        return name if name.startswith(prefix + "/") else f"{prefix}/{name}"

    def get_file(self, name: str) -> OperationResult:
        url = self._base + self._resource("files", self._require(name, "name"))
        return self._execute(
            "get_file",
            lambda: self.transport.send("GET", url, params=self._key_params()),
            wrap=UploadedFile.from_response,
        )

    def list_files(self, page_size: Optional[int] = None, page_token: Optional[str] = None) -> OperationResult:
        params = self._key_params(pageSize=page_size, pageToken=page_token)
        return self._execute(
            "list_files",
            lambda: self.transport.send("GET", self._base + "files", params=params),
            wrap=lambda data: [UploadedFile.from_response(item) for item in response_items(data, "files")],
        )

    def delete_file(self, name: str) -> OperationResult:
        url = self._base + self._resource("files", self._require(name, "name"))
        return self._execute("delete_file", lambda: self.transport.send("DELETE", url, params=self._key_params()))

    # Context caching

    def create_cache(self, contents: List[Dict[str, Any]], options: Optional[Dict[str, Any]] = None) -> OperationResult:
        opts = self._options(options)
        model = self._require(opts.get("model"), "model").split(":", 1)[0]
        payload = compact(
            {
                "model": f"models/{model}",
                "contents": to_contents(self._require(contents, "contents")),
                "ttl": opts.get("ttl"),
                "displayName": opts.get("display_name"),
                "system_instruction": {"parts": [{"text": opts["system"]}]} if opts.get("system") else None,
            }
        )
        return self._execute(
            "create_cache",
            lambda: self.transport.send("POST", self._base + "cachedContents", json_body=payload, params=self._key_params()),
        )

    def get_cache(self, name: str) -> OperationResult:
        url = self._base + self._resource("cachedContents", self._require(name, "name"))
        return self._execute("get_cache", lambda: self.transport.send("GET", url, params=self._key_params()))

    def list_caches(self, page_size: Optional[int] = None, page_token: Optional[str] = None) -> OperationResult:
        params = self._key_params(pageSize=page_size, pageToken=page_token)
        return self._execute(
            "list_caches", lambda: self.transport.send("GET", self._base + "cachedContents", params=params)
        )

    def delete_cache(self, name: str) -> OperationResult:
        url = self._base + self._resource("cachedContents", self._require(name, "name"))
        return self._execute("delete_cache", lambda: self.transport.send("DELETE", url, params=self._key_params()))
