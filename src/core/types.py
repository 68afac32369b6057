"""Shared typed models.

This module defines immutable data models used by the KV client,
ingestion engine, and collection publisher to keep interfaces explicit.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Union

from core.constants import (
    DEFAULT_ACCOUNT_ID_VAR,
    DEFAULT_API_TOKEN_VAR,
    DEFAULT_NAMESPACE_ID_VAR,
)

CollectionItem = dict[str, Any]
CollectionMap = dict[str, dict[str, CollectionItem]]


@dataclass(frozen=True)
class CredentialVariables:
    """Environment variable names holding the Cloudflare credentials.

    Attributes:
        account_id: Variable holding the Cloudflare account identifier.
        namespace_id: Variable holding the KV namespace identifier.
        api_token: Variable holding the API bearer token.
    """

    account_id: str = DEFAULT_ACCOUNT_ID_VAR
    namespace_id: str = DEFAULT_NAMESPACE_ID_VAR
    api_token: str = DEFAULT_API_TOKEN_VAR


@dataclass(frozen=True)
class Credentials:
    """Resolved credential values; any field may be missing."""

    account_id: str | None
    namespace_id: str | None
    api_token: str | None

    def missing_variables(self, variables: CredentialVariables) -> tuple[str, ...]:
        """Return the variable names whose values are unset or empty."""
        pairs = (
            (self.account_id, variables.account_id),
            (self.namespace_id, variables.namespace_id),
            (self.api_token, variables.api_token),
        )
        return tuple(name for value, name in pairs if not value)


@dataclass(frozen=True)
class ParsedDocument:
    """Document body plus header fields parsed from a raw KV value.

    Attributes:
        body: Free-text body following the header block.
        fields: Header fields, empty when the value has no header.
    """

    body: str
    fields: Mapping[str, Any] = field(default_factory=dict)


DocumentParser = Callable[[str], ParsedDocument]
MetadataCompute = Callable[[CollectionItem, str, str], Any]


@dataclass(frozen=True)
class Constant:
    """Metadata field with a fixed value."""

    value: Any


@dataclass(frozen=True)
class Computed:
    """Metadata field computed per item as ``compute(item, item_key, collection_name)``."""

    compute: MetadataCompute


MetadataValue = Union[Constant, Computed]


@dataclass(frozen=True)
class ItemOutcome:
    """Tagged result of fetching and parsing one KV key.

    Attributes:
        key: Full KV key as listed.
        collection_name: Collection the key groups into.
        item_key: Key of the item within its collection.
        item: Collection item when fetch and parse succeeded.
        error: Failure description when they did not.
    """

    key: str
    collection_name: str
    item_key: str
    item: CollectionItem | None = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        """Return whether the key produced a collection item."""
        return self.item is not None
