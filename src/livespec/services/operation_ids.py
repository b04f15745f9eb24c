# src/livespec/services/operation_ids.py

"""
Operation identity resolution.

Every operation gets a stable `operationId` so the diff engine can follow an
endpoint across revisions even when its path or method changes. Identities
that already exist are kept verbatim; missing ones are derived, in order of
preference, from:

1. the summary          "Get User Details"              -> getUserDetails
2. method + path        POST /accounts/{id}/transactions -> postAccountsTransactions
3. the bare method      GET /                           -> get
4. method + short hash  GET /!@#$%                      -> get3fa9c1

The input document is never mutated; a deep copy is annotated and returned.
"""

from __future__ import annotations

import copy
import logging
import re
from typing import Any, Dict, Iterator, List, Optional, Set, Tuple

from opentelemetry import trace

from livespec.services.spec_hasher import short_hash

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

HTTP_METHODS = ("get", "put", "post", "delete", "options", "head", "patch", "trace")

_NON_WORD = re.compile(r"[^0-9A-Za-z\s]")
_SEGMENT_SPLIT = re.compile(r"[^0-9A-Za-z]+")


def iter_operations(document: Any) -> Iterator[Tuple[str, str, Dict[str, Any]]]:
    """
    Yield (path, method, operation) for every HTTP operation in document order.

    Non-dict path items and operations are skipped, as are path-item keys that
    are not HTTP methods (parameters, servers, $ref, ...).
    """
    if not isinstance(document, dict):
        return
    paths = document.get("paths")
    if not isinstance(paths, dict):
        return

    for path, path_item in paths.items():
        if not isinstance(path_item, dict):
            continue
        for method, operation in path_item.items():
            if str(method).lower() not in HTTP_METHODS:
                continue
            if not isinstance(operation, dict):
                continue
            yield str(path), str(method).lower(), operation


def existing_operation_id(operation: Dict[str, Any]) -> Optional[str]:
    op_id = operation.get("operationId")
    if isinstance(op_id, str) and op_id.strip():
        return op_id
    return None


def summary_to_operation_id(summary: Any) -> str:
    """Camel-case a summary; returns "" when nothing usable is left."""
    if not isinstance(summary, str):
        return ""
    words = _NON_WORD.sub("", summary).split()
    if not words:
        return ""
    first, rest = words[0], words[1:]
    return first.lower() + "".join(word[:1].upper() + word[1:].lower() for word in rest)


def _path_words(path: str) -> Tuple[bool, List[str]]:
    """
    Split a path into camel-case words, ignoring {parameter} segments.

    Returns (has_segments, words). has_segments is False for "/" and paths
    made only of parameters.
    """
    segments = [
        seg
        for seg in path.split("/")
        if seg and not (seg.startswith("{") and seg.endswith("}"))
    ]
    words: List[str] = []
    for seg in segments:
        words.extend(part for part in _SEGMENT_SPLIT.split(seg) if part)
    return bool(segments), words


def generate_operation_id(method: str, path: str, operation: Dict[str, Any]) -> str:
    method = method.lower()

    from_summary = summary_to_operation_id(operation.get("summary"))
    if from_summary:
        return from_summary

    has_segments, words = _path_words(path)
    if words:
        return method + "".join(w[:1].upper() + w[1:].lower() for w in words)

    if not has_segments:
        return method

    # Segments exist but none carry usable characters
    return method + short_hash({"method": method, "path": path, "operation": operation})


def _make_unique(candidate: str, taken: Set[str]) -> str:
    if candidate not in taken:
        return candidate
    suffix = 2
    while f"{candidate}{suffix}" in taken:
        suffix += 1
    return f"{candidate}{suffix}"


def ensure_operation_ids(document: Any) -> Dict[str, Any]:
    """
    Return an annotated copy of `document` in which every operation has an
    operationId.

    Explicit ids are reserved before anything is generated, so a derived id
    never takes the name of an existing one. Applying this twice gives the
    same result as applying it once.
    """
    with tracer.start_as_current_span("service.ensure_operation_ids") as span:
        if not isinstance(document, dict):
            return {}

        normalized = copy.deepcopy(document)

        taken: Set[str] = set()
        missing: List[Tuple[str, str, Dict[str, Any]]] = []
        for path, method, operation in iter_operations(normalized):
            existing = existing_operation_id(operation)
            if existing is None:
                missing.append((path, method, operation))
            else:
                taken.add(existing)

        for path, method, operation in missing:
            op_id = _make_unique(generate_operation_id(method, path, operation), taken)
            operation["operationId"] = op_id
            taken.add(op_id)
            logger.debug("Generated operationId %s for %s %s", op_id, method.upper(), path)

        span.set_attribute("operation_ids.generated", len(missing))
        return normalized
