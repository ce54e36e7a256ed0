# store_sdk/cli.py
# SPDX-License-Identifier: Apache-2.0
"""
Store SDK CLI

Issue a single remote-store operation from the shell and print the decoded
response as JSON.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from store_sdk.mock.mock_remote_adapter import MockRemoteAdapter
from store_sdk.remote import (
    BaseRemoteAdapter,
    HttpRemoteAdapter,
    RemoteAdapterConfig,
    RemoteAdapterError,
    SerializerRegistry,
    SocketRemoteAdapter,
    ValidationError,
)

EXIT_OK = 0
EXIT_ADAPTER_ERROR = 1
EXIT_VALIDATION = 2

TRANSPORTS = ("http", "socket", "mock")


# --------------------------------------------------------------------------- #
# Internal helpers
# --------------------------------------------------------------------------- #

def _parse_pairs(pairs: Optional[List[str]], flag: str) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for item in pairs or []:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise argparse.ArgumentTypeError(f"{flag} expects KEY=VALUE, got {item!r}")
        out[key] = value
    return out


def _parse_record(raw: str) -> Dict[str, Any]:
    try:
        record = json.loads(raw)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"record must be a JSON object: {e}") from e
    if not isinstance(record, dict):
        raise argparse.ArgumentTypeError("record must be a JSON object")
    return record


def _config_from_args(args: argparse.Namespace) -> RemoteAdapterConfig:
    """Environment first, flags override."""
    base = RemoteAdapterConfig.from_env()
    headers = dict(base.headers)
    headers.update(_parse_pairs(args.header, "--header"))
    return RemoteAdapterConfig(
        host=args.host or base.host,
        namespace=args.namespace or base.namespace,
        headers=headers,
    )


def build_adapter(args: argparse.Namespace) -> BaseRemoteAdapter:
    config = _config_from_args(args)
    if args.transport == "http":
        return HttpRemoteAdapter(config=config, timeout=args.timeout)
    if args.transport == "socket":
        return SocketRemoteAdapter(config=config, ack_timeout_s=args.timeout)
    return MockRemoteAdapter(config=config)


async def _run(adapter: BaseRemoteAdapter, args: argparse.Namespace) -> Any:
    store = SerializerRegistry()
    cmd = args.command
    if cmd == "find":
        return await adapter.find(store, args.type_key, args.id)
    if cmd == "find-all":
        return await adapter.find_all(store, args.type_key, args.since)
    if cmd == "query":
        return await adapter.find_query(store, args.type_key, _parse_pairs(args.param, "--param"))
    if cmd == "find-many":
        return await adapter.find_many(store, args.type_key, args.ids)
    if cmd == "create":
        return await adapter.create_record(store, args.type_key, args.record)
    if cmd == "update":
        return await adapter.update_record(store, args.type_key, args.record)
    if cmd == "delete":
        return await adapter.delete_record(store, args.type_key, {"id": args.id})
    raise ValueError(f"unknown command {cmd!r}")


async def _execute(args: argparse.Namespace) -> Any:
    adapter = build_adapter(args)
    try:
        return await _run(adapter, args)
    finally:
        if isinstance(adapter, HttpRemoteAdapter):
            await adapter.aclose()
        elif isinstance(adapter, SocketRemoteAdapter):
            await adapter.close()


# --------------------------------------------------------------------------- #
# main
# --------------------------------------------------------------------------- #

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="store-sdk",
        description="Store SDK CLI - issue one remote store operation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  store-sdk --host https://api.example.com find blogPost 1
  store-sdk --host https://api.example.com find-many blogPost 1 2 3
  store-sdk -H "Authorization=Bearer abc" query blogPost -p author=7
  store-sdk --transport socket --host https://rt.example.com find-all blogPost
  store-sdk --transport mock create blogPost '{"title": "Hello"}'

Configuration (environment variables):
  STORE_SDK_HOST         Default host
  STORE_SDK_NAMESPACE    Default namespace
  STORE_SDK_HEADERS      JSON object of extra headers

Exit codes:
  0  success
  1  adapter error (transport, configuration, bad request)
  2  validation failure
        """.strip(),
    )

    parser.add_argument("--transport", choices=TRANSPORTS, default="http", help="Transport (default: http)")
    parser.add_argument("--host", help="Base origin, e.g. https://api.example.com")
    parser.add_argument("--namespace", help="Path segment (http) or Socket.IO namespace (socket)")
    parser.add_argument(
        "-H", "--header", action="append", metavar="KEY=VALUE",
        help="Extra request header (can be used multiple times)",
    )
    parser.add_argument("--timeout", type=float, default=None, help="Request/ack timeout in seconds")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging to stderr")

    subparsers = parser.add_subparsers(dest="command", required=True, metavar="COMMAND")

    p = subparsers.add_parser("find", help="Fetch one record by id")
    p.add_argument("type_key")
    p.add_argument("id")

    p = subparsers.add_parser("find-all", help="Fetch every record of a type")
    p.add_argument("type_key")
    p.add_argument("--since", default=None, help="Only records changed since this token")

    p = subparsers.add_parser("query", help="Fetch records matching a query")
    p.add_argument("type_key")
    p.add_argument("-p", "--param", action="append", metavar="KEY=VALUE", help="Query parameter")

    p = subparsers.add_parser("find-many", help="Fetch several records by id")
    p.add_argument("type_key")
    p.add_argument("ids", nargs="+")

    p = subparsers.add_parser("create", help="Create a record from a JSON object")
    p.add_argument("type_key")
    p.add_argument("record", type=_parse_record)

    p = subparsers.add_parser("update", help="Update a record from a JSON object (must include id)")
    p.add_argument("type_key")
    p.add_argument("record", type=_parse_record)

    p = subparsers.add_parser("delete", help="Delete a record by id")
    p.add_argument("type_key")
    p.add_argument("id")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as e:
        return e.code

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, stream=sys.stderr)

    try:
        result = asyncio.run(_execute(args))
    except ValidationError as e:
        print(json.dumps({"errors": e.errors}, indent=2, sort_keys=True), file=sys.stderr)
        return EXIT_VALIDATION
    except RemoteAdapterError as e:
        print(json.dumps(e.asdict(), indent=2, sort_keys=True, default=str), file=sys.stderr)
        return EXIT_ADAPTER_ERROR
    except argparse.ArgumentTypeError as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_ADAPTER_ERROR

    print(json.dumps(result, indent=2, sort_keys=True, default=str))
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
