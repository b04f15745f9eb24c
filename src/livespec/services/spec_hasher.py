# src/livespec/services/spec_hasher.py

"""
Content hashing for cheap change detection.

A hash answers one question: "is this document the same as last time?".
Documents are serialized canonically (sorted keys, compact separators)
before hashing, so key order never changes the result.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any

EMPTY_HASH = "0"


def canonical_json(document: Any) -> str:
    return json.dumps(
        document,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    )


def hash_content(content: str) -> str:
    """SHA256 hex digest of a string; the empty string maps to "0"."""
    if not content:
        return EMPTY_HASH
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def hash_spec(document: Any) -> str:
    """Hash a parsed document. None and {} map to "0"."""
    if document is None or document == {}:
        return EMPTY_HASH
    return hash_content(canonical_json(document))


def short_hash(document: Any, length: int = 6) -> str:
    return hashlib.sha256(canonical_json(document).encode("utf-8")).hexdigest()[:length]


def strip_fields(document: Any, *, descriptions: bool, examples: bool) -> Any:
    """
    Return a copy of `document` without description/example noise.

    Keys directly under a `properties` map are property names, not keywords,
    so a property called "description" survives.
    """
    if not descriptions and not examples:
        return document
    return _strip(document, descriptions, examples, parent_key=None)


def _strip(obj: Any, descriptions: bool, examples: bool, parent_key) -> Any:
    if isinstance(obj, list):
        return [_strip(item, descriptions, examples, parent_key) for item in obj]
    if not isinstance(obj, dict):
        return obj

    out = {}
    for key, value in obj.items():
        if parent_key != "properties":
            if descriptions and key == "description" and isinstance(value, str):
                continue
            if examples and key in ("example", "examples"):
                continue
        out[key] = _strip(value, descriptions, examples, parent_key=key)
    return out
