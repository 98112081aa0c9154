"""Utility helpers."""

from __future__ import annotations

import json
import mimetypes
import re
from pathlib import PurePosixPath
from typing import Any, Dict
from urllib.parse import urlparse

DOCUMENT_MIME_TYPES = {
    "pdf": "application/pdf",
    "doc": "application/msword",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "txt": "text/plain",
    "csv": "text/csv",
    "json": "application/json",
}


def compact(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Drops keys whose value is None."""
    return {key: value for key, value in payload.items() if value is not None}


def redact_url(url: str) -> str:
    return re.sub(r"([?&]key=)[^&\s'\"]+", r"\1***", url)


def guess_mime_type(location: str, default: str = "application/octet-stream") -> str:
    path = urlparse(location).path or location
    extension = PurePosixPath(path).suffix.lstrip(".").lower()
    if extension in DOCUMENT_MIME_TYPES:
        return DOCUMENT_MIME_TYPES[extension]
    guessed, _ = mimetypes.guess_type(path)
    return guessed or default


def json_dumps(data: Any) -> str:
    return json.dumps(data, ensure_ascii=False, indent=2, sort_keys=True, default=str)


def parse_option(raw: str) -> tuple[str, Any]:
    """Parses 'key=value' pairs, decoding JSON values when possible."""
    if "=" not in raw:
        raise ValueError(f"Invalid option format: {raw}")
    key, value = raw.split("=", 1)
    try:
        return key.strip(), json.loads(value)
    except json.JSONDecodeError:
        return key.strip(), value
