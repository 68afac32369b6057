"""kvcollections CLI entry points.
This module exposes commands to inspect collections built from a KV namespace.
It maps argparse commands onto the pipeline API.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from dataclasses import replace
from typing import Sequence

from core.config import PipelineOptions
from core.errors import CollectionRegistryError, KVConfigError
from core.types import Constant, CredentialVariables, MetadataValue
from publish.pipeline import configure
from publish.registry import InMemoryCollectionRegistry


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(
        prog="kvcollections", description="Cloudflare KV collections CLI"
    )
    parser.add_argument("--quiet", action="store_true", help="Suppress progress logging")
    parser.add_argument(
        "--max-concurrency",
        type=int,
        help="Cap on in-flight value fetches (default: unbounded)",
    )
    parser.add_argument("--account-id-var", help="Variable holding the account id")
    parser.add_argument("--namespace-id-var", help="Variable holding the namespace id")
    parser.add_argument("--api-token-var", help="Variable holding the API token")
    parser.add_argument(
        "--metadata",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Constant metadata field added to every item (repeatable)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("collections", help="Print collection names and item counts")
    show_parser = subparsers.add_parser("show", help="Print the items of one collection")
    show_parser.add_argument("name", help="Collection name")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the kvcollections CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        options = _build_options(args)
        registry = InMemoryCollectionRegistry()
        collections = asyncio.run(configure(options, registry).run())
    except KVConfigError as error:
        print(f"kvcollections: error: {error}", file=sys.stderr)
        return 2
    if args.command == "collections":
        print(json.dumps({name: len(items) for name, items in collections.items()}, indent=2))
        return 0
    if args.command == "show":
        return _run_show_command(registry, args.name)
    parser.error(f"Unsupported command: {args.command}")
    return 2


def _build_options(args: argparse.Namespace) -> PipelineOptions:
    """Build pipeline options from environment and CLI overrides.

    Args:
        args: Parsed CLI args.

    Returns:
        Validated options.

    Raises:
        KVConfigError: If an override is invalid.
    """
    options = PipelineOptions.from_env()
    variables = CredentialVariables(
        account_id=args.account_id_var or options.variables.account_id,
        namespace_id=args.namespace_id_var or options.variables.namespace_id,
        api_token=args.api_token_var or options.variables.api_token,
    )
    return replace(
        options,
        variables=variables,
        metadata=_parse_metadata(args.metadata),
        quiet=args.quiet or options.quiet,
        max_concurrency=(
            args.max_concurrency if args.max_concurrency is not None else options.max_concurrency
        ),
    )


def _parse_metadata(pairs: Sequence[str]) -> dict[str, MetadataValue]:
    """Parse ``KEY=VALUE`` pairs into constant metadata fields.

    Raises:
        KVConfigError: If a pair has no ``=`` or an empty key.
    """
    metadata: dict[str, MetadataValue] = {}
    for pair in pairs:
        key, separator, value = pair.partition("=")
        if not separator or not key:
            raise KVConfigError(
                f"Invalid --metadata value '{pair}': expected KEY=VALUE with a non-empty key."
            )
        metadata[key] = Constant(value)
    return metadata


def _run_show_command(registry: InMemoryCollectionRegistry, name: str) -> int:
    """Handle show command.

    Args:
        registry: Registry populated by the pipeline run.
        name: Collection to print.

    Returns:
        Exit code.
    """
    try:
        items = registry.items(name)
    except CollectionRegistryError as error:
        print(str(error), file=sys.stderr)
        return 2
    print(json.dumps(items, indent=2, default=str))
    return 0
