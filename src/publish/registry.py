"""Collection registry contract and in-memory implementation.

Hosts expose ``register_collection(name, producer)``; producers are
invoked on demand to build the collection's ordered items.
"""

from __future__ import annotations

from typing import Callable, Protocol

from core.errors import CollectionRegistryError
from core.types import CollectionItem

CollectionProducer = Callable[[], list[CollectionItem]]


class CollectionRegistry(Protocol):
    """Sink that accepts named, lazily produced collections."""

    def register_collection(self, name: str, producer: CollectionProducer) -> None:
        """Register a collection producer under a name."""


class InMemoryCollectionRegistry:
    """Registry that keeps producers in a dictionary."""

    def __init__(self) -> None:
        self._producers: dict[str, CollectionProducer] = {}

    def register_collection(self, name: str, producer: CollectionProducer) -> None:
        """Register a collection producer under a unique name.

        Raises:
            CollectionRegistryError: If the name is already registered.
        """
        if name in self._producers:
            raise CollectionRegistryError(
                f"Collection '{name}' is already registered. "
                "Register each collection name once per registry."
            )
        self._producers[name] = producer

    def names(self) -> list[str]:
        """Return registered collection names in registration order."""
        return list(self._producers)

    def items(self, name: str) -> list[CollectionItem]:
        """Invoke the producer for one collection.

        Raises:
            CollectionRegistryError: If the collection is unknown.
        """
        try:
            producer = self._producers[name]
        except KeyError as error:
            raise CollectionRegistryError(
                f"Unknown collection '{name}'. Available: {self.names()}."
            ) from error
        return producer()
