"""Public SDK surface for kvcollections.

This module provides a stable import path for host integrations.
It re-exports the pipeline entry points and typed option models.
"""

from __future__ import annotations

from core.config import PipelineOptions, resolve_credentials
from core.errors import (
    CollectionRegistryError,
    DocumentParseError,
    KVCollectionsError,
    KVConfigError,
    MissingCredentialError,
    TransportError,
)
from core.types import (
    CollectionMap,
    Computed,
    Constant,
    CredentialVariables,
    Credentials,
    ParsedDocument,
)
from ingest.document_parser import parse_front_matter
from ingest.engine import IngestionEngine
from publish.pipeline import Pipeline, configure
from publish.publisher import CollectionPublisher
from publish.registry import CollectionRegistry, InMemoryCollectionRegistry

__all__ = [
    "CollectionMap",
    "CollectionPublisher",
    "CollectionRegistry",
    "CollectionRegistryError",
    "Computed",
    "Constant",
    "CredentialVariables",
    "Credentials",
    "DocumentParseError",
    "InMemoryCollectionRegistry",
    "IngestionEngine",
    "KVCollectionsError",
    "KVConfigError",
    "MissingCredentialError",
    "ParsedDocument",
    "Pipeline",
    "PipelineOptions",
    "TransportError",
    "configure",
    "parse_front_matter",
    "resolve_credentials",
]
