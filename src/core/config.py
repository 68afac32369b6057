"""Runtime configuration model for kvcollections.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import os
from typing import Mapping

from core.constants import (
    DEFAULT_ACCOUNT_ID_VAR,
    DEFAULT_API_BASE_URL,
    DEFAULT_API_TOKEN_VAR,
    DEFAULT_NAMESPACE_ID_VAR,
)
from core.errors import KVConfigError
from core.types import Computed, Constant, CredentialVariables, Credentials, MetadataValue

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("", "0", "false", "no", "off")


@dataclass(frozen=True)
class PipelineOptions:
    """Validated pipeline configuration.

    Attributes:
        variables: Names of the credential environment variables.
        metadata: Extra fields merged into every published item.
        quiet: Suppress informational progress logging.
        max_concurrency: Optional cap on in-flight value fetches.
        api_base_url: Root URL of the Cloudflare REST API.
    """

    variables: CredentialVariables = field(default_factory=CredentialVariables)
    metadata: Mapping[str, MetadataValue] = field(default_factory=dict)
    quiet: bool = False
    max_concurrency: int | None = None
    api_base_url: str = DEFAULT_API_BASE_URL

    def __post_init__(self) -> None:
        if self.max_concurrency is not None and self.max_concurrency < 1:
            raise KVConfigError(
                f"Invalid max_concurrency {self.max_concurrency}: expected a positive "
                "integer. Omit it to fetch every key at once."
            )
        for field_name, value in self.metadata.items():
            if not isinstance(value, (Constant, Computed)):
                raise KVConfigError(
                    f"Invalid metadata field '{field_name}': expected Constant(...) or "
                    f"Computed(...), got {type(value).__name__}."
                )

    @classmethod
    def from_env(cls) -> "PipelineOptions":
        """Build options from process environment variables.

        Returns:
            A validated options object.

        Raises:
            KVConfigError: If environment values are invalid.
        """
        variables = CredentialVariables(
            account_id=os.getenv("KVCOLLECTIONS_ACCOUNT_ID_VAR", DEFAULT_ACCOUNT_ID_VAR),
            namespace_id=os.getenv("KVCOLLECTIONS_NAMESPACE_ID_VAR", DEFAULT_NAMESPACE_ID_VAR),
            api_token=os.getenv("KVCOLLECTIONS_API_TOKEN_VAR", DEFAULT_API_TOKEN_VAR),
        )
        return cls(
            variables=variables,
            quiet=_parse_flag("KVCOLLECTIONS_QUIET", os.getenv("KVCOLLECTIONS_QUIET", "")),
            max_concurrency=_parse_max_concurrency(os.getenv("KVCOLLECTIONS_MAX_CONCURRENCY")),
            api_base_url=os.getenv("KVCOLLECTIONS_API_BASE_URL", DEFAULT_API_BASE_URL),
        )


def resolve_credentials(
    variables: CredentialVariables,
    environ: Mapping[str, str] | None = None,
) -> Credentials:
    """Read credential values from the named environment variables.

    Args:
        variables: Variable names to read.
        environ: Optional mapping used instead of ``os.environ``.

    Returns:
        Credentials with ``None`` for every unset variable.
    """
    source = os.environ if environ is None else environ
    return Credentials(
        account_id=source.get(variables.account_id),
        namespace_id=source.get(variables.namespace_id),
        api_token=source.get(variables.api_token),
    )


def _parse_flag(name: str, raw_value: str) -> bool:
    """Parse a boolean environment flag.

    Raises:
        KVConfigError: If value is not a recognised boolean.
    """
    normalized = raw_value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise KVConfigError(
        f"Invalid {name} value: expected a boolean, got '{raw_value}'. "
        f"Use one of {_TRUE_VALUES + _FALSE_VALUES[1:]}."
    )


def _parse_max_concurrency(raw_value: str | None) -> int | None:
    """Parse the concurrency cap environment value.

    Args:
        raw_value: Raw string from environment, or None when unset.

    Returns:
        Parsed positive integer, or None for unbounded fetching.

    Raises:
        KVConfigError: If value cannot be parsed into a positive int.
    """
    if raw_value is None or not raw_value.strip():
        return None
    try:
        value = int(raw_value)
    except ValueError as error:
        raise KVConfigError(
            "Invalid KVCOLLECTIONS_MAX_CONCURRENCY value: "
            f"expected integer, got '{raw_value}'. "
            "Set KVCOLLECTIONS_MAX_CONCURRENCY to a positive number."
        ) from error
    if value < 1:
        raise KVConfigError(
            f"Invalid KVCOLLECTIONS_MAX_CONCURRENCY value {value}: expected a positive "
            "integer. Unset it to fetch every key at once."
        )
    return value
