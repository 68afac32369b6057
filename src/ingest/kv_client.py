"""Cloudflare Workers KV REST client.

This module performs the two read operations the ingest engine needs:
listing every key in a namespace and fetching one value by key.
Each call issues exactly one request; retries are left to callers.
"""

from __future__ import annotations

from types import TracebackType
from urllib.parse import quote

import httpx

from core.constants import (
    HTTP_NOT_FOUND,
    KEYS_PATH,
    NAMESPACE_PATH_TEMPLATE,
    VALUES_PATH_TEMPLATE,
)
from core.errors import TransportError
from core.types import Credentials


class KVStoreClient:
    """Async client scoped to one KV namespace."""

    def __init__(
        self,
        credentials: Credentials,
        api_base_url: str,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Create a namespace-scoped client.

        Args:
            credentials: Validated account, namespace, and token values.
            api_base_url: Root URL of the Cloudflare REST API.
            transport: Optional httpx transport, used by tests.
        """
        namespace_path = NAMESPACE_PATH_TEMPLATE.format(
            account_id=credentials.account_id,
            namespace_id=credentials.namespace_id,
        )
        self._http = httpx.AsyncClient(
            base_url=api_base_url.rstrip("/") + namespace_path,
            headers={"Authorization": f"Bearer {credentials.api_token}"},
            timeout=None,
            transport=transport,
        )

    async def __aenter__(self) -> "KVStoreClient":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._http.aclose()

    async def list_keys(self) -> list[str]:
        """List every key in the namespace in store order.

        Returns:
            Key names as reported by the store.

        Raises:
            TransportError: If the request fails or the status is not 2xx.
        """
        response = await self._send(KEYS_PATH, key=None)
        if not response.is_success:
            raise TransportError(
                "Cloudflare KV API error while listing keys: "
                f"{response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
                reason=response.reason_phrase,
            )
        try:
            records = response.json().get("result") or []
            return [record["name"] for record in records]
        except (ValueError, KeyError, TypeError, AttributeError) as error:
            raise TransportError(
                f"Unexpected Cloudflare KV key listing payload: {error}. "
                "Expected a 'result' list of records with a 'name' field.",
                status_code=response.status_code,
                reason=response.reason_phrase,
            ) from error

    async def fetch_value(self, key: str) -> str | None:
        """Fetch the raw text stored under one key.

        Args:
            key: Non-empty key name.

        Returns:
            Value text, or None when the key no longer exists.

        Raises:
            ValueError: If key is empty.
            TransportError: If the request fails or the status is not 2xx/404.
        """
        if not key:
            raise ValueError("KV key must be a non-empty string.")
        path = VALUES_PATH_TEMPLATE.format(key=quote(key, safe=""))
        response = await self._send(path, key=key)
        if response.status_code == HTTP_NOT_FOUND:
            return None
        if not response.is_success:
            raise TransportError(
                f"Failed to fetch KV value for key '{key}': "
                f"{response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
                reason=response.reason_phrase,
                key=key,
            )
        return response.text

    async def _send(self, path: str, key: str | None) -> httpx.Response:
        """Issue one GET request, wrapping network failures.

        Raises:
            TransportError: If the request cannot be completed.
        """
        try:
            return await self._http.get(path)
        except httpx.HTTPError as error:
            target = f"key '{key}'" if key is not None else "key listing"
            raise TransportError(
                f"Cloudflare KV request for {target} failed: {error}",
                key=key,
            ) from error
