"""Front-matter document parsing.

This module splits a raw KV value into an optional YAML header block
fenced by ``---`` lines and the free-text body that follows it.
"""

from __future__ import annotations

from typing import Any, Mapping, cast

import yaml

from core.constants import FRONT_MATTER_FENCE
from core.errors import DocumentParseError
from core.types import ParsedDocument


def parse_front_matter(text: str) -> ParsedDocument:
    """Parse a document with an optional front-matter header.

    Args:
        text: Raw document text.

    Returns:
        Parsed body and header fields.

    Raises:
        DocumentParseError: If the header is unterminated, invalid YAML,
            or not a mapping.
    """
    lines = text.splitlines(keepends=True)
    if not lines or lines[0].rstrip() != FRONT_MATTER_FENCE:
        return ParsedDocument(body=text, fields={})
    closing_index = _find_closing_fence(lines)
    header = "".join(lines[1:closing_index])
    body = "".join(lines[closing_index + 1 :])
    return ParsedDocument(body=body, fields=_load_header(header))


def _find_closing_fence(lines: list[str]) -> int:
    for index in range(1, len(lines)):
        if lines[index].rstrip() == FRONT_MATTER_FENCE:
            return index
    raise DocumentParseError(
        "Front matter opened with '---' but was never closed. "
        "Add a closing '---' line after the header fields."
    )


def _load_header(header: str) -> Mapping[str, Any]:
    try:
        payload = cast(object, yaml.safe_load(header))
    except yaml.YAMLError as error:
        raise DocumentParseError(
            f"Failed to parse front matter YAML: {error}. Fix the header syntax."
        ) from error
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise DocumentParseError(
            "Invalid front matter: expected a mapping of field names to values, "
            f"got {type(payload).__name__}."
        )
    return cast(Mapping[str, Any], payload)
