"""Collection publishing with metadata enrichment.

This module registers one lazy producer per ingested collection.
Producers merge configured metadata into each item when invoked.
"""

from __future__ import annotations

from typing import Any, Mapping

from core.constants import SOURCE_KEY_FIELD
from core.errors import KVConfigError
from core.logging_config import get_logger
from core.types import CollectionItem, CollectionMap, Computed, Constant, MetadataValue
from publish.registry import CollectionProducer, CollectionRegistry

_LOGGER = get_logger(__name__)


class CollectionPublisher:
    """Registers ingested collections with a host registry."""

    def __init__(
        self,
        registry: CollectionRegistry,
        metadata: Mapping[str, MetadataValue] | None = None,
        quiet: bool = False,
    ) -> None:
        self._registry = registry
        self._metadata = dict(metadata or {})
        self._quiet = quiet

    def publish(self, collections: CollectionMap) -> list[str]:
        """Register every collection present in the mapping.

        Args:
            collections: Engine output keyed by collection name.

        Returns:
            Registered collection names in registration order.
        """
        for name, items in collections.items():
            self._registry.register_collection(name, self._producer(name, items))
            if not self._quiet:
                _LOGGER.info("collection_registered", collection=name, item_count=len(items))
        return list(collections)

    def _producer(self, name: str, items: Mapping[str, CollectionItem]) -> CollectionProducer:
        def _produce() -> list[CollectionItem]:
            return [
                enrich_item(item, item_key, name, self._metadata)
                for item_key, item in items.items()
            ]

        return _produce


def enrich_item(
    item: CollectionItem,
    item_key: str,
    collection_name: str,
    metadata: Mapping[str, MetadataValue],
) -> CollectionItem:
    """Merge metadata into one item.

    Later sources win: item fields, then metadata, then the source key.

    Args:
        item: Engine item holding content, header fields, and source key.
        item_key: Key of the item within its collection.
        collection_name: Name of the owning collection.
        metadata: Constant or computed metadata fields.

    Returns:
        New enriched item; the input is not modified.
    """
    extra = {
        field_name: resolve_metadata(value, item, item_key, collection_name)
        for field_name, value in metadata.items()
    }
    return {**item, **extra, SOURCE_KEY_FIELD: item[SOURCE_KEY_FIELD]}


def resolve_metadata(
    value: MetadataValue,
    item: CollectionItem,
    item_key: str,
    collection_name: str,
) -> Any:
    """Return the concrete value of one metadata field."""
    if isinstance(value, Constant):
        return value.value
    if isinstance(value, Computed):
        return value.compute(item, item_key, collection_name)
    raise KVConfigError(
        f"Unsupported metadata value {value!r}: wrap it in Constant(...) or Computed(...)."
    )
