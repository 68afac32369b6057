"""Two-phase pipeline facade for hosts.

Hosts call ``configure`` once, then ``await Pipeline.run()`` whenever a
build needs collections. Only the first run reads the namespace and
registers collections; later runs return the cached mapping.
"""

from __future__ import annotations

from typing import Mapping

import httpx

from core.config import PipelineOptions, resolve_credentials
from core.logging_config import get_logger
from core.types import CollectionMap, DocumentParser
from ingest.document_parser import parse_front_matter
from ingest.engine import IngestionEngine
from publish.publisher import CollectionPublisher
from publish.registry import CollectionRegistry

_LOGGER = get_logger(__name__)


class Pipeline:
    """Configured ingest-and-publish pipeline bound to one registry."""

    def __init__(
        self,
        options: PipelineOptions,
        registry: CollectionRegistry,
        parser: DocumentParser = parse_front_matter,
        environ: Mapping[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Create a pipeline.

        Args:
            options: Pipeline options.
            registry: Host registry receiving collections.
            parser: Converts raw values into parsed documents.
            environ: Optional credential source instead of ``os.environ``.
            transport: Optional httpx transport, used by tests.
        """
        self._options = options
        self._parser = parser
        self._environ = environ
        self._engine = IngestionEngine(options, transport=transport)
        self._publisher = CollectionPublisher(registry, options.metadata, options.quiet)
        self._published = False

    async def run(self) -> CollectionMap:
        """Ingest once and register collections on the first call.

        Returns:
            Collection name mapped to item key mapped to item.

        Raises:
            MissingCredentialError: If any credential is unset or empty.
        """
        credentials = resolve_credentials(self._options.variables, self._environ)
        collections = await self._engine.ingest(credentials, self._parser)
        if not self._published:
            self._published = True
            self._publisher.publish(collections)
        elif not self._options.quiet:
            _LOGGER.info("kv_collections_cached", collection_count=len(collections))
        return collections


def configure(
    options: PipelineOptions | None,
    registry: CollectionRegistry,
    parser: DocumentParser = parse_front_matter,
    environ: Mapping[str, str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Pipeline:
    """Build a pipeline, defaulting options from the environment.

    Args:
        options: Optional pipeline options; ``PipelineOptions.from_env()`` when None.
        registry: Host registry receiving collections.
        parser: Converts raw values into parsed documents.
        environ: Optional credential source instead of ``os.environ``.
        transport: Optional httpx transport, used by tests.

    Returns:
        Configured pipeline ready to run.
    """
    return Pipeline(
        options or PipelineOptions.from_env(),
        registry,
        parser=parser,
        environ=environ,
        transport=transport,
    )
