"""Core constants used across kvcollections modules.

This module centralizes non-domain-specific constants.
Keeping values here avoids magic literals in business logic.
"""

from __future__ import annotations

DEFAULT_API_BASE_URL = "https://api.cloudflare.com/client/v4"
NAMESPACE_PATH_TEMPLATE = "/accounts/{account_id}/storage/kv/namespaces/{namespace_id}"
KEYS_PATH = "/keys"
VALUES_PATH_TEMPLATE = "/values/{key}"
DEFAULT_ACCOUNT_ID_VAR = "CLOUDFLARE_ACCOUNT_ID"
DEFAULT_NAMESPACE_ID_VAR = "CLOUDFLARE_KV_NS_ID"
DEFAULT_API_TOKEN_VAR = "CLOUDFLARE_API_TOKEN"
KEY_SEPARATOR = "/"
FALLBACK_COLLECTION_NAME = "none"
CONTENT_FIELD = "content"
SOURCE_KEY_FIELD = "kv_key"
FRONT_MATTER_FENCE = "---"
HTTP_NOT_FOUND = 404
