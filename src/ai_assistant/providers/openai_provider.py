"""OpenAI provider on top of the official SDK."""

from __future__ import annotations

import base64
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from openai import OpenAI, OpenAIError

from ..config import ProviderConfig
from ..prompts import PromptOperationsMixin
from ..transport import Transport
from ..types import ConfigurationError, OperationResult, TransportError
from ..utils import compact
from .base import BaseProvider

COMPLETION_FIELDS = ("top_p", "stop", "n", "suffix", "presence_penalty", "frequency_penalty", "user", "logprobs")
CHAT_FIELDS = (
    "max_tokens",
    "top_p",
    "stop",
    "n",
    "tools",
    "tool_choice",
    "response_format",
    "presence_penalty",
    "frequency_penalty",
    "user",
    "seed",
)


def _dump(response: Any) -> Dict[str, Any]:
    if hasattr(response, "model_dump"):
        return response.model_dump()
    if isinstance(response, str):
        return {"text": response}
    return dict(response)


def _iter_dumps(stream: Any) -> Iterator[Dict[str, Any]]:
    try:
        for chunk in stream:
            yield _dump(chunk)
    except OpenAIError as exc:
        raise TransportError(f"Stream interrupted: {exc}") from exc


class OpenAIProvider(PromptOperationsMixin, BaseProvider):
    name = "openai"
    wrapped_errors = (OpenAIError,)

    def __init__(
        self,
        config: ProviderConfig,
        transport: Optional[Transport] = None,
        client: Any = None,
    ) -> None:
        super().__init__(config, transport)
        self._client = client or OpenAI(
            api_key=self.config.api_key,
            base_url=self.config.base_url,
            timeout=self.transport.timeout,
            max_retries=0,
        )

    def _model(self, options: Optional[Dict[str, Any]], fallback: Optional[str]) -> str:
        """Per-call model, then the bound model, then `fallback`."""
        model = (options or {}).get("model") or self._bound.get("model") or fallback
        return self._require(model, "model")

    @staticmethod
    def _pick(opts: Dict[str, Any], fields: tuple[str, ...]) -> Dict[str, Any]:
        return {key: opts[key] for key in fields if opts.get(key) is not None}

    def _create(self, operation: str, create: Any, payload: Dict[str, Any]) -> OperationResult:
        if payload.get("stream"):
            return self._execute_stream(operation, lambda: _iter_dumps(create(**payload)))
        return self._execute(operation, lambda: _dump(create(**payload)))

    def build_completion_payload(self, prompt: str, options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        opts = self._options(options)
        payload = {
            "model": self._model(options, self.config.default_model),
            "prompt": prompt,
            "max_tokens": opts.get("max_tokens"),
            "temperature": opts.get("temperature"),
            "stream": True if opts.get("stream") else None,
        }
        payload.update(self._pick(opts, COMPLETION_FIELDS))
        return compact(payload)

    def build_chat_payload(
        self, messages: Optional[List[Dict[str, Any]]], options: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        opts = self._options(options)
        messages = messages or opts.get("messages")
        if not messages:
            raise ConfigurationError("Missing required option: messages")
        payload = {
            "model": self._model(options, self.config.chat_model or self.config.default_model),
            "messages": messages,
            "temperature": opts.get("temperature"),
            "stream": True if opts.get("stream") else None,
        }
        # Config max_tokens belongs to completions; chat sends only an explicit one.
        payload.update(self._pick({**self._bound, **(options or {})}, CHAT_FIELDS))
        return compact(payload)

    def generate_text(self, prompt: str, options: Optional[Dict[str, Any]] = None) -> OperationResult:
        payload = self.build_completion_payload(prompt, options)
        return self._create("generate_text", self._client.completions.create, payload)

    def chat(
        self,
        messages: Optional[List[Dict[str, Any]]] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> OperationResult:
        payload = self.build_chat_payload(messages, options)
        return self._create("chat", self._client.chat.completions.create, payload)

    def generate_code(self, prompt: str, options: Optional[Dict[str, Any]] = None) -> OperationResult:
        opts = dict(options or {})
        opts["model"] = self._model(options, self.config.model_for("code_model", self.config.default_model))
        return super().generate_code(prompt, opts)

    def generate_embeddings(self, text: str, options: Optional[Dict[str, Any]] = None) -> OperationResult:
        opts = options or {}
        payload = compact(
            {
                "model": self._model(options, self.config.embedding_model),
                "input": text,
                "dimensions": opts.get("dimensions"),
                "encoding_format": opts.get("encoding_format"),
            }
        )
        return self._create("generate_embeddings", self._client.embeddings.create, payload)

    def moderate_content(self, text: str, options: Optional[Dict[str, Any]] = None) -> OperationResult:
        payload = {"model": self._model(options, self.config.model_for("moderation_model")), "input": text}
        return self._create("moderate_content", self._client.moderations.create, payload)

    def generate_image(self, description: str, options: Optional[Dict[str, Any]] = None) -> OperationResult:
        opts = options or {}
        payload = compact(
            {
                "model": self._model(options, self.config.model_for("image_model")),
                "prompt": description,
                "n": opts.get("n"),
                "size": opts.get("size"),
                "quality": opts.get("quality"),
                "response_format": opts.get("response_format"),
            }
        )
        return self._create("generate_image", self._client.images.generate, payload)

    def edit_image(self, image_path: str, options: Optional[Dict[str, Any]] = None) -> OperationResult:
        opts = options or {}
        prompt = self._require(opts.get("prompt"), "prompt")
        if not Path(image_path).is_file():
            raise ConfigurationError(f"Image not found: {image_path}")
        fields = compact(
            {
                "model": opts.get("model") or self.config.model_for("image_edit_model"),
                "prompt": prompt,
                "n": opts.get("n"),
                "size": opts.get("size"),
                "response_format": opts.get("response_format"),
            }
        )

        def call() -> Dict[str, Any]:
            with open(image_path, "rb") as image:
                if opts.get("mask"):
                    with open(opts["mask"], "rb") as mask:
                        return _dump(self._client.images.edit(image=image, mask=mask, **fields))
                return _dump(self._client.images.edit(image=image, **fields))

        return self._execute("edit_image", call)

    def generate_speech(self, text: str, options: Optional[Dict[str, Any]] = None) -> OperationResult:
        """Returns base64 audio; also writes it to `output_path` when given."""
        opts = options or {}
        model = self._model(options, self.config.model_for("speech_model"))
        voice = self._require(opts.get("voice") or self.config.model_for("voice"), "voice")
        response_format = opts.get("response_format") or "mp3"

        def call() -> Dict[str, Any]:
            response = self._client.audio.speech.create(
                model=model, voice=voice, input=text, response_format=response_format
            )
            audio = response.content
            result = {
                "model": model,
                "voice": voice,
                "format": response_format,
                "audio": base64.b64encode(audio).decode("ascii"),
            }
            if opts.get("output_path"):
                Path(opts["output_path"]).write_bytes(audio)
                result["path"] = str(opts["output_path"])
            return result

        return self._execute("generate_speech", call)

    def transcribe_audio(self, audio_path: str, options: Optional[Dict[str, Any]] = None) -> OperationResult:
        opts = options or {}
        if not Path(audio_path).is_file():
            raise ConfigurationError(f"Audio file not found: {audio_path}")
        fields = compact(
            {
                "model": self._model(options, self.config.model_for("transcription_model")),
                "language": opts.get("language"),
                "prompt": opts.get("prompt"),
                "response_format": opts.get("response_format"),
                "temperature": opts.get("temperature"),
            }
        )

        def call() -> Dict[str, Any]:
            with open(audio_path, "rb") as audio:
                return _dump(self._client.audio.transcriptions.create(file=audio, **fields))

        return self._execute("transcribe_audio", call)
