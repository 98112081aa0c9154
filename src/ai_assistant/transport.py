"""Single-request HTTP transport over requests."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional

import requests

from .types import TransportError
from .utils import redact_url

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {"Content-Type": "application/json"}


def merge_headers(headers: Optional[Mapping[str, Any]]) -> Dict[str, str]:
    """Caller headers override defaults regardless of case."""
    merged = dict(DEFAULT_HEADERS)
    for key, value in (headers or {}).items():
        for existing in [k for k in merged if k.lower() == key.lower()]:
            del merged[existing]
        merged[key] = str(value)
    return merged


class Transport:
    def __init__(self, timeout: float = 30) -> None:
        self.timeout = timeout

    def request(
        self,
        method: str,
        url: str,
        headers: Optional[Mapping[str, Any]] = None,
        json_body: Any = None,
        params: Optional[Mapping[str, Any]] = None,
        data: Optional[bytes] = None,
        stream: bool = False,
    ) -> requests.Response:
        logger.debug("%s %s", method.upper(), redact_url(url))
        try:
            res = requests.request(
                method.upper(),
                url,
                headers=merge_headers(headers),
                json=json_body,
                params=params,
                data=data,
                timeout=self.timeout,
                stream=stream,
            )
        except requests.RequestException as exc:
            raise TransportError(redact_url(f"{method.upper()} {url} failed: {exc}")) from exc

        if res.status_code < 200 or res.status_code >= 300:
            body = (res.text or "").strip()
            raise TransportError(
                f"HTTP {res.status_code} from {redact_url(url)}: {body[:400]}",
                status_code=res.status_code,
                body=body,
            )
        return res

    def send(
        self,
        method: str,
        url: str,
        headers: Optional[Mapping[str, Any]] = None,
        json_body: Any = None,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        """Decoded JSON object or array."""
        res = self.request(method, url, headers=headers, json_body=json_body, params=params)
        body = res.text or ""
        try:
            payload = json.loads(body)
        except json.JSONDecodeError as exc:
            raise TransportError(
                f"Invalid JSON from {redact_url(url)}: {exc}",
                status_code=res.status_code,
                body=body,
            ) from exc
        if not isinstance(payload, (dict, list)):
            raise TransportError(
                f"Unexpected response format from {redact_url(url)}",
                status_code=res.status_code,
                body=body,
            )
        return payload

    def send_lines(
        self,
        method: str,
        url: str,
        headers: Optional[Mapping[str, Any]] = None,
        params: Optional[Mapping[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """Decodes a JSON Lines body."""
        res = self.request(method, url, headers=headers, params=params)
        rows: List[Dict[str, Any]] = []
        for line in (res.text or "").splitlines():
            if not line.strip():
                continue
            try:
                rows.append(json.loads(line))
            except json.JSONDecodeError as exc:
                raise TransportError(
                    f"Invalid JSON line from {redact_url(url)}: {exc}",
                    status_code=res.status_code,
                    body=res.text or "",
                ) from exc
        return rows

    def stream(
        self,
        method: str,
        url: str,
        headers: Optional[Mapping[str, Any]] = None,
        json_body: Any = None,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Iterator[Dict[str, Any]]:
        res = self.request(method, url, headers=headers, json_body=json_body, params=params, stream=True)
        return _iter_chunks(res, url)

    def fetch_bytes(self, location: str) -> bytes:
        if not location.startswith(("http://", "https://")):
            try:
                return Path(location).read_bytes()
            except OSError as exc:
                raise TransportError(redact_url(f"Unable to fetch the file from {location}: {exc}")) from exc
        try:
            res = requests.get(location, timeout=self.timeout)
        except requests.RequestException as exc:
            raise TransportError(redact_url(f"Unable to fetch the file from {location}: {exc}")) from exc
        if res.status_code >= 400:
            raise TransportError(
                redact_url(f"Unable to fetch the file from {location} (HTTP {res.status_code})"),
                status_code=res.status_code,
            )
        return res.content


def _iter_chunks(res: requests.Response, url: str) -> Iterator[Dict[str, Any]]:
    try:
        for line in res.iter_lines(decode_unicode=True):
            if isinstance(line, bytes):
                line = line.decode("utf-8")
            if not line:
                continue
            if line.startswith(("event:", "id:", "retry:", ":")):
                continue
            if line.startswith("data:"):
                line = line[len("data:"):].strip()
            if line == "[DONE]":
                return
            try:
                chunk = json.loads(line)
            except json.JSONDecodeError as exc:
                raise TransportError(f"Invalid JSON chunk from {redact_url(url)}: {exc}", body=line) from exc
            yield chunk
    finally:
        res.close()
