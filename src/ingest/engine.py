"""One-shot ingestion of a KV namespace into named collections.

This module validates credentials, lists the namespace, fans out
fetch-and-parse work for every key, and groups documents into
collections by key prefix. The result is memoized per engine so the
remote namespace is read at most once.
"""

from __future__ import annotations

import asyncio
from contextlib import nullcontext
from typing import Any, AsyncContextManager

import httpx

from core.config import PipelineOptions
from core.constants import (
    CONTENT_FIELD,
    FALLBACK_COLLECTION_NAME,
    KEY_SEPARATOR,
    SOURCE_KEY_FIELD,
)
from core.errors import MissingCredentialError, TransportError
from core.logging_config import get_logger
from core.types import (
    CollectionItem,
    CollectionMap,
    Credentials,
    DocumentParser,
    ItemOutcome,
    ParsedDocument,
)
from ingest.document_parser import parse_front_matter
from ingest.kv_client import KVStoreClient

_LOGGER = get_logger(__name__)


class IngestionEngine:
    """Stateful runner that reads a KV namespace once per instance."""

    def __init__(
        self,
        options: PipelineOptions,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._options = options
        self._transport = transport
        self._run_task: asyncio.Task[CollectionMap] | None = None

    @property
    def has_run(self) -> bool:
        """Return whether a run has started or finished."""
        return self._run_task is not None

    async def ingest(
        self,
        credentials: Credentials,
        parser: DocumentParser = parse_front_matter,
    ) -> CollectionMap:
        """Read the namespace once and return grouped collections.

        Concurrent and repeated callers share the first run's result.

        Args:
            credentials: Resolved account, namespace, and token values.
            parser: Converts raw values into parsed documents.

        Returns:
            Collection name mapped to item key mapped to item.

        Raises:
            MissingCredentialError: If any credential is unset or empty.
            httpx.InvalidURL: If the API base URL is malformed.

        Neither failure consumes the one-shot run.
        """
        if self._run_task is None:
            missing = credentials.missing_variables(self._options.variables)
            if missing:
                raise MissingCredentialError(missing)
            client = KVStoreClient(
                credentials, self._options.api_base_url, transport=self._transport
            )
            self._run_task = asyncio.ensure_future(self._run(client, parser))
        return await asyncio.shield(self._run_task)

    async def _run(self, client: KVStoreClient, parser: DocumentParser) -> CollectionMap:
        self._log_info("kv_fetch_started")
        async with client:
            try:
                keys = await client.list_keys()
            except TransportError as error:
                _LOGGER.error(
                    "kv_listing_failed",
                    status_code=error.status_code,
                    reason=error.reason,
                    error=str(error),
                )
                return {}
            if not keys:
                self._log_info("kv_namespace_empty")
                return {}
            self._log_info("kv_keys_listed", key_count=len(keys))
            outcomes = await self._fetch_all(client, keys, parser)
        collections = group_outcomes(outcomes)
        self._log_summary(collections)
        return collections

    async def _fetch_all(
        self,
        client: KVStoreClient,
        keys: list[str],
        parser: DocumentParser,
    ) -> list[ItemOutcome]:
        limiter: AsyncContextManager[Any] = (
            asyncio.Semaphore(self._options.max_concurrency)
            if self._options.max_concurrency
            else nullcontext()
        )

        async def _fetch_one(key: str) -> ItemOutcome:
            collection_name, item_key = split_key(key)
            try:
                async with limiter:
                    value = await client.fetch_value(key)
                item = build_item(key, parser(value)) if value is not None else None
            except Exception as error:
                _LOGGER.warning("kv_item_failed", kv_key=key, error=str(error))
                return ItemOutcome(key, collection_name, item_key, error=str(error))
            if item is None:
                _LOGGER.warning("kv_item_missing", kv_key=key)
                return ItemOutcome(key, collection_name, item_key, error="not found")
            return ItemOutcome(key, collection_name, item_key, item=item)

        return list(await asyncio.gather(*(_fetch_one(key) for key in keys)))

    def _log_summary(self, collections: CollectionMap) -> None:
        self._log_info(
            "kv_fetch_completed",
            item_count=sum(len(items) for items in collections.values()),
            collection_count=len(collections),
        )
        for name, items in collections.items():
            self._log_info("kv_collection_loaded", collection=name, item_count=len(items))

    def _log_info(self, event: str, **fields: object) -> None:
        if not self._options.quiet:
            _LOGGER.info(event, **fields)


def split_key(key: str) -> tuple[str, str]:
    """Split a KV key into collection name and item key.

    Only the first separator splits; keys without one land in the
    fallback collection under their full name.
    """
    prefix, separator, remainder = key.partition(KEY_SEPARATOR)
    if not separator:
        return FALLBACK_COLLECTION_NAME, key
    return prefix, remainder


def build_item(key: str, document: ParsedDocument) -> CollectionItem:
    """Build the collection item for one parsed document."""
    return {CONTENT_FIELD: document.body, **document.fields, SOURCE_KEY_FIELD: key}


def group_outcomes(outcomes: list[ItemOutcome]) -> CollectionMap:
    """Group successful outcomes into collections, preserving input order.

    When two keys map to the same collection entry the first listed key
    is kept and the later one is dropped with a warning.
    """
    collections: CollectionMap = {}
    for outcome in outcomes:
        if outcome.item is None:
            continue
        items = collections.setdefault(outcome.collection_name, {})
        existing = items.get(outcome.item_key)
        if existing is not None:
            _LOGGER.warning(
                "kv_item_key_collision",
                collection=outcome.collection_name,
                item_key=outcome.item_key,
                kept_key=existing[SOURCE_KEY_FIELD],
                dropped_key=outcome.key,
            )
            continue
        items[outcome.item_key] = outcome.item
    return collections
