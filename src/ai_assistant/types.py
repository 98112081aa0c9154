"""Shared data structures and error taxonomy."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional


class AssistantError(RuntimeError):
    """Base class for every error raised by this package."""


class ConfigurationError(AssistantError):
    """Missing or invalid credentials, or a required option is absent."""


class TransportError(AssistantError):
    """Non-2xx status, connection failure or a body that is not JSON."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ProtocolError(AssistantError):
    """Vendor response is missing a field the request flow depends on."""


class UnknownProviderError(AssistantError):
    """No adapter is registered under the requested provider name."""


class UnknownOperationError(AssistantError):
    """Operation is not part of the neutral contract or not implemented."""


@dataclass
class OperationRequest:
    operation: str
    payload: Any
    options: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class OperationResult:
    """Either the vendor's decoded JSON or an error descriptor, never both."""

    data: Any = None
    error: Optional[str] = None
    cause: Optional[BaseException] = None
    stream: Optional[Iterator[Dict[str, Any]]] = None
    value: Any = None

    @classmethod
    def success(cls, data: Any, value: Any = None) -> "OperationResult":
        return cls(data=data, value=value)

    @classmethod
    def streamed(cls, chunks: Iterator[Dict[str, Any]]) -> "OperationResult":
        return cls(stream=chunks)

    @classmethod
    def failure(cls, message: str, cause: Optional[BaseException] = None) -> "OperationResult":
        message = (message or "").strip() or (type(cause).__name__ if cause else "unknown error")
        return cls(error=message, cause=cause)

    @property
    def ok(self) -> bool:
        return self.error is None

    def as_dict(self) -> Any:
        if self.error is not None:
            return {"error": self.error}
        return self.data if self.data is not None else {}


def response_items(payload: Any, key: str) -> List[Any]:
    """The list under `key` of a listing response; absent means empty."""
    if not isinstance(payload, dict):
        raise ProtocolError("Listing response is not a JSON object")
    items = payload.get(key, [])
    if not isinstance(items, list):
        raise ProtocolError(f"Listing response field '{key}' is not a list")
    return items


class BatchStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    ENDED = "ended"
    CANCELED = "canceled"
    ERRORED = "errored"

    @property
    def is_terminal(self) -> bool:
        return self is not BatchStatus.IN_PROGRESS


@dataclass(frozen=True)
class BatchJob:
    token: str
    status: BatchStatus
    result_location: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def from_response(cls, payload: Dict[str, Any]) -> "BatchJob":
        if not isinstance(payload, dict):
            raise ProtocolError("Batch response is not a JSON object")
        token = str(payload.get("id", "")).strip()
        if not token:
            raise ProtocolError("Batch response did not return an id")
        return cls(
            token=token,
            status=_batch_status(payload),
            result_location=payload.get("results_url") or None,
            raw=payload,
        )


def _batch_status(payload: Dict[str, Any]) -> BatchStatus:
    processing = str(payload.get("processing_status", "")).strip()
    if processing != "ended":
        # "canceling" is still draining requests.
        return BatchStatus.IN_PROGRESS

    counts = payload.get("request_counts")
    if not isinstance(counts, dict):
        counts = {}
    succeeded = int(counts.get("succeeded", 0) or 0)
    errored = int(counts.get("errored", 0) or 0)
    canceled = int(counts.get("canceled", 0) or 0)
    if payload.get("cancel_initiated_at") and succeeded == 0 and errored == 0:
        return BatchStatus.CANCELED
    if canceled and not succeeded and not errored:
        return BatchStatus.CANCELED
    if errored and not succeeded:
        return BatchStatus.ERRORED
    return BatchStatus.ENDED


@dataclass(frozen=True)
class UploadedFile:
    uri: str
    mime_type: str
    display_name: str
    name: str = ""

    @classmethod
    def from_response(cls, payload: Dict[str, Any]) -> "UploadedFile":
        if not isinstance(payload, dict):
            raise ProtocolError("File response is not a JSON object")
        file_info = payload.get("file", payload)
        uri = str(file_info.get("uri", "")).strip() if isinstance(file_info, dict) else ""
        if not uri:
            raise ProtocolError("Upload response did not include a file uri")
        return cls(
            uri=uri,
            mime_type=str(file_info.get("mimeType", "")),
            display_name=str(file_info.get("displayName", "")),
            name=str(file_info.get("name", "")),
        )
