"""Command-line entrypoint for calling providers by hand."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import load_settings
from .contracts import BatchProcessing, FileManagement, execute
from .registry import ProviderRegistry
from .types import AssistantError, OperationRequest, OperationResult
from .utils import json_dumps, parse_option


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Multi-provider generative AI client")
    parser.add_argument("--settings", default="config/ai.yaml", help="Path to ai.yaml")
    parser.add_argument("--provider", default=None, help="Provider name (defaults to settings 'default')")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command")

    call = subparsers.add_parser("call", help="Invoke a neutral operation")
    call.add_argument("operation", help="e.g. generate_text, chat, translate_text")
    call.add_argument("args", nargs="*", help="Positional arguments; JSON values are decoded")
    call.add_argument("--option", "-o", action="append", default=[], help="key=value option (repeatable)")

    batch = subparsers.add_parser("batch", help="Message batch lifecycle")
    batch_sub = batch.add_subparsers(dest="action", required=True)
    submit = batch_sub.add_parser("submit", help="Submit requests from a JSON file")
    submit.add_argument("path")
    for action in ("status", "results", "cancel", "delete"):
        batch_sub.add_parser(action).add_argument("token")
    listing = batch_sub.add_parser("list")
    listing.add_argument("--before-id")
    listing.add_argument("--after-id")
    listing.add_argument("--limit", type=int)

    upload = subparsers.add_parser("upload", help="Upload a file for later reference")
    upload.add_argument("path")
    upload.add_argument("--display-name")
    upload.add_argument("--mime-type")

    subparsers.add_parser("providers", help="List registered providers")
    return parser


def _coerce(arg: str) -> Any:
    if arg[:1] in ("[", "{"):
        try:
            return json.loads(arg)
        except json.JSONDecodeError:
            return arg
    return arg


def _options(raw: List[str]) -> Dict[str, Any]:
    try:
        return dict(parse_option(item) for item in raw)
    except ValueError as exc:
        raise AssistantError(str(exc)) from exc


def _require(adapter: Any, capability: type, what: str) -> None:
    if not isinstance(adapter, capability):
        raise AssistantError(f"Provider '{adapter.name}' does not support {what}")


def _run(args: argparse.Namespace, registry: ProviderRegistry) -> Optional[OperationResult]:
    if args.command == "providers":
        for name in registry.available():
            marker = " (default)" if name == registry.default_name else ""
            print(f"- {name}{marker}")
        return None

    adapter = registry.resolve(args.provider)

    if args.command == "call":
        request = OperationRequest(
            operation=args.operation,
            payload=tuple(_coerce(a) for a in args.args),
            options=_options(args.option),
        )
        return execute(adapter, request)

    if args.command == "upload":
        _require(adapter, FileManagement, "file uploads")
        return adapter.upload_file(args.path, display_name=args.display_name, mime_type=args.mime_type)

    _require(adapter, BatchProcessing, "message batches")
    if args.action == "submit":
        requests = json.loads(Path(args.path).read_text(encoding="utf-8"))
        return adapter.submit_batch(requests)
    if args.action == "status":
        return adapter.get_batch(args.token)
    if args.action == "results":
        return adapter.get_batch_results(args.token)
    if args.action == "cancel":
        return adapter.cancel_batch(args.token)
    if args.action == "delete":
        return adapter.delete_batch(args.token)
    return adapter.list_batches(before_id=args.before_id, after_id=args.after_id, limit=args.limit)


def main(argv: Optional[List[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if not args.command:
        parser.print_help()
        return 2

    registry = ProviderRegistry(load_settings(args.settings))
    try:
        result = _run(args, registry)
    except AssistantError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    if result is None:
        return 0
    if result.stream is not None:
        try:
            for chunk in result.stream:
                print(json.dumps(chunk, ensure_ascii=False))
        except AssistantError as exc:
            print(f"error: {exc}", file=sys.stderr)
            return 1
        return 0
    print(json_dumps(result.as_dict()))
    return 0 if result.ok else 1


if __name__ == "__main__":
    sys.exit(main())
