# src/livespec/services/spec_diff_engine.py

"""
Diff Engine for OpenAPI Specs

Compares two OpenAPI documents and classifies every contract change as
breaking or non-breaking:
- Endpoints (added / removed / moved / modified)
- Operation metadata (summary, description, tags, explicit operationId)
- Parameters (matched by name + location)
- Request bodies
- Responses (status codes, description, media types, schemas, headers)
- Component schemas

Endpoints are matched by location first. Operation identity (see
operation_ids) only pairs a location that vanished with one that appeared,
so a renamed path keeps its identity across revisions while a generated id
shifting between untouched endpoints is never reported as a removal.

Output feeds:
- The polling orchestrator (sync or not, which notification)
- Breaking change notifications
- The /spec-diff route
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from opentelemetry import trace

from livespec.config import DiffOptions
from livespec.models.spec_diff import (
    ChangeSeverity,
    ChangeType,
    DiffSummary,
    SpecChange,
    SpecDiffResult,
)
from livespec.services.operation_ids import (
    ensure_operation_ids,
    existing_operation_id,
    iter_operations,
)
from livespec.services.spec_hasher import canonical_json, hash_spec, strip_fields

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

BREAKING = ChangeSeverity.BREAKING
NON_BREAKING = ChangeSeverity.NON_BREAKING

# Type changes a client can't notice: every integer is a number, and an untyped
# parameter accepts anything.
_WIDENING_TYPE_CHANGES = {("integer", "number")}


@dataclass(frozen=True)
class IndexedOperation:
    operation_id: str
    method: str
    path: str
    operation: Dict[str, Any]
    path_parameters: Tuple[Any, ...] = ()

    @property
    def endpoint(self) -> str:
        return f"{self.method.upper()} {self.path}"


class SpecDiffEngine:
    """
    Compares two OpenAPI documents.

    compare_specs is async so it can sit next to I/O-bound collaborators, but
    it never awaits anything; diff_specs is the synchronous entry point.
    """

    def __init__(self, options: Optional[DiffOptions] = None):
        self.options = options or DiffOptions()

    async def compare_specs(self, old_spec: Any, new_spec: Any) -> SpecDiffResult:
        return diff_specs(old_spec, new_spec, self.options)

    def spec_hash(self, spec: Any) -> str:
        """Hash of the normalized document, as used by compare_specs."""
        return hash_spec(_comparable(spec, self.options))


def _comparable(spec: Any, options: DiffOptions) -> Dict[str, Any]:
    """Identity-annotated copy of `spec` with ignored fields stripped."""
    return strip_fields(
        ensure_operation_ids(spec),
        descriptions=options.ignore_descriptions,
        examples=options.ignore_examples,
    )


def diff_specs(
    old_spec: Any,
    new_spec: Any,
    options: Optional[DiffOptions] = None,
) -> SpecDiffResult:
    """
    Compare two OpenAPI documents and classify the changes.

    Args:
        old_spec: Previous document (missing sections count as empty)
        new_spec: Current document
        options: Hash normalization switches

    Returns:
        SpecDiffResult. has_changes reflects the classified change list, so two
        documents with different hashes but no contract change report
        has_changes=False.
    """
    options = options or DiffOptions()

    with tracer.start_as_current_span("service.diff_specs") as span:
        old_normalized = _comparable(old_spec, options)
        new_normalized = _comparable(new_spec, options)

        old_hash = hash_spec(old_normalized)
        new_hash = hash_spec(new_normalized)

        if old_hash == new_hash:
            span.set_attribute("diff.changes_count", 0)
            return SpecDiffResult(
                old_spec_hash=old_hash,
                new_spec_hash=new_hash,
                has_changes=False,
            )

        changes: List[SpecChange] = []
        explicit_ids = _explicit_id_locations(old_spec) | _explicit_id_locations(new_spec)
        changes.extend(_diff_endpoints(old_normalized, new_normalized, explicit_ids))
        changes.extend(_diff_schemas(old_normalized, new_normalized))

        summary = DiffSummary.from_changes(changes)

        span.set_attribute("diff.changes_count", len(changes))
        span.set_attribute("diff.breaking_count", summary.breaking)

        logger.info(
            "Diff complete: %d changes (%s), breaking=%d",
            len(changes),
            summary.describe(),
            summary.breaking,
        )

        return SpecDiffResult(
            old_spec_hash=old_hash,
            new_spec_hash=new_hash,
            has_changes=len(changes) > 0,
            changes=tuple(changes),
            summary=summary,
        )


def find_moved_endpoints(result: SpecDiffResult) -> List[Tuple[SpecChange, SpecChange]]:
    """
    Pair endpoint-removed / endpoint-added changes that share an operation id.

    Each pair is one logical endpoint whose path or method changed; callers
    that want a single "moved" entry can merge them.
    """
    removed = {
        c.operation_id: c
        for c in result.changes
        if c.type is ChangeType.ENDPOINT_REMOVED and c.operation_id
    }
    pairs = []
    for change in result.changes:
        if change.type is ChangeType.ENDPOINT_ADDED and change.operation_id in removed:
            pairs.append((removed[change.operation_id], change))
    return pairs


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

def _index_operations(document: Dict[str, Any]) -> Dict[str, IndexedOperation]:
    """Operations keyed by location ("METHOD /path"), in document order."""
    index: Dict[str, IndexedOperation] = {}
    seen_ids: Set[str] = set()
    paths = document.get("paths") or {}

    for path, method, operation in iter_operations(document):
        op_id = operation["operationId"]
        if op_id in seen_ids:
            logger.warning("Duplicate operationId %s at %s %s", op_id, method.upper(), path)
        seen_ids.add(op_id)

        path_params = paths[path].get("parameters") or []
        indexed = IndexedOperation(
            operation_id=op_id,
            method=method,
            path=path,
            operation=operation,
            path_parameters=tuple(path_params) if isinstance(path_params, list) else (),
        )
        index[indexed.endpoint] = indexed
    return index


def _explicit_id_locations(document: Any) -> Set[str]:
    """Locations whose operation carries its own operationId in `document`."""
    return {
        f"{method.upper()} {path}"
        for path, method, operation in iter_operations(document)
        if existing_operation_id(operation) is not None
    }


def _endpoint_removed(op: IndexedOperation) -> SpecChange:
    logger.info("Detected removed endpoint: %s", op.endpoint)
    return SpecChange(
        type=ChangeType.ENDPOINT_REMOVED,
        path=op.endpoint,
        severity=BREAKING,
        description=f"Removed endpoint: {op.endpoint}",
        affected_endpoints=(op.endpoint,),
        operation_id=op.operation_id,
        old_value=op.operation,
    )


def _endpoint_added(op: IndexedOperation) -> SpecChange:
    logger.info("Detected added endpoint: %s", op.endpoint)
    return SpecChange(
        type=ChangeType.ENDPOINT_ADDED,
        path=op.endpoint,
        severity=NON_BREAKING,
        description=f"Added new endpoint: {op.endpoint}",
        affected_endpoints=(op.endpoint,),
        operation_id=op.operation_id,
        new_value=op.operation,
    )


def _diff_endpoints(
    old_doc: Dict[str, Any],
    new_doc: Dict[str, Any],
    explicit_ids: Set[str],
) -> List[SpecChange]:
    """
    Endpoint changes between two normalized documents.

    explicit_ids holds the locations whose operationId was written in either
    raw document. An id change is only reported there; generated ids shift
    whenever a same-summary endpoint is inserted ahead of them.
    """
    old_index = _index_operations(old_doc)
    new_index = _index_operations(new_doc)

    modified: List[SpecChange] = []
    for location, old_op in old_index.items():
        new_op = new_index.get(location)
        if new_op is None:
            continue
        if old_op.operation_id != new_op.operation_id and location in explicit_ids:
            modified.append(_operation_id_changed(old_op, new_op))
        modified.extend(_diff_operation(old_op, new_op))

    old_only = [op for location, op in old_index.items() if location not in new_index]
    new_only = [op for location, op in new_index.items() if location not in old_index]

    # Only a vanished location can have moved to one that appeared
    appeared = {op.operation_id: op for op in reversed(new_only)}
    for old_op in old_only:
        new_op = appeared.get(old_op.operation_id)
        if new_op is not None:
            logger.info(
                "Detected moved endpoint %s: %s -> %s",
                old_op.operation_id,
                old_op.endpoint,
                new_op.endpoint,
            )

    removed = [_endpoint_removed(op) for op in old_only]
    added = [_endpoint_added(op) for op in new_only]
    return removed + added + modified


def _operation_id_changed(old_op: IndexedOperation, new_op: IndexedOperation) -> SpecChange:
    return SpecChange(
        type=ChangeType.ENDPOINT_MODIFIED,
        path=old_op.endpoint,
        severity=NON_BREAKING,
        description=(
            f"Operation ID changed for {old_op.endpoint}: "
            f"{old_op.operation_id} -> {new_op.operation_id}"
        ),
        affected_endpoints=(old_op.endpoint,),
        operation_id=new_op.operation_id,
        old_value=old_op.operation_id,
        new_value=new_op.operation_id,
    )


def _diff_operation(old_op: IndexedOperation, new_op: IndexedOperation) -> List[SpecChange]:
    changes: List[SpecChange] = []
    changes.extend(_diff_metadata(old_op, new_op))
    changes.extend(
        _diff_parameters(
            _effective_parameters(old_op),
            _effective_parameters(new_op),
            endpoint=new_op.endpoint,
            operation_id=new_op.operation_id,
        )
    )
    changes.extend(
        _diff_request_body(
            old_op.operation.get("requestBody"),
            new_op.operation.get("requestBody"),
            endpoint=new_op.endpoint,
            operation_id=new_op.operation_id,
        )
    )
    changes.extend(
        _diff_responses(
            old_op.operation.get("responses"),
            new_op.operation.get("responses"),
            endpoint=new_op.endpoint,
            operation_id=new_op.operation_id,
        )
    )
    return changes


def _tags(operation: Dict[str, Any]) -> List[str]:
    tags = operation.get("tags")
    return sorted(str(t) for t in tags) if isinstance(tags, list) else []


def _diff_metadata(old_op: IndexedOperation, new_op: IndexedOperation) -> List[SpecChange]:
    """Summary, description and tag edits. Documentation only, so never breaking."""
    endpoint = new_op.endpoint
    changes: List[SpecChange] = []

    for label, old_value, new_value in (
        ("Summary", old_op.operation.get("summary"), new_op.operation.get("summary")),
        ("Description", old_op.operation.get("description"), new_op.operation.get("description")),
        ("Tags", _tags(old_op.operation), _tags(new_op.operation)),
    ):
        if old_value == new_value:
            continue
        changes.append(
            SpecChange(
                type=ChangeType.ENDPOINT_MODIFIED,
                path=endpoint,
                severity=NON_BREAKING,
                description=f"{label} changed for {endpoint}",
                affected_endpoints=(endpoint,),
                operation_id=new_op.operation_id,
                old_value=old_value,
                new_value=new_value,
            )
        )
        logger.info("Detected %s change on %s", label.lower(), endpoint)

    return changes


# ---------------------------------------------------------------------------
# Parameters
# ---------------------------------------------------------------------------

def _parameter_key(param: Dict[str, Any]) -> Optional[Tuple[str, str]]:
    if "$ref" in param and "name" not in param:
        return (str(param["$ref"]), "$ref")
    name = param.get("name")
    if name is None:
        return None
    return (str(name), str(param.get("in", "query")))


def _effective_parameters(op: IndexedOperation) -> Dict[Tuple[str, str], Dict[str, Any]]:
    """Path-level parameters overridden by operation-level ones, keyed by (name, in)."""
    params: Dict[Tuple[str, str], Dict[str, Any]] = {}
    op_params = op.operation.get("parameters") or []
    if not isinstance(op_params, list):
        op_params = []

    for param in list(op.path_parameters) + op_params:
        if not isinstance(param, dict):
            continue
        key = _parameter_key(param)
        if key is not None:
            params[key] = param
    return params


def _param_type(param: Dict[str, Any]) -> Optional[str]:
    schema = param.get("schema")
    if isinstance(schema, dict) and "type" in schema:
        return schema.get("type")
    # Swagger 2.0 keeps the type on the parameter itself
    return param.get("type")


def _type_narrowed(old_type: Optional[str], new_type: Optional[str]) -> bool:
    if old_type == new_type or new_type is None:
        return False
    return (old_type, new_type) not in _WIDENING_TYPE_CHANGES


def _diff_parameters(
    old_params: Dict[Tuple[str, str], Dict[str, Any]],
    new_params: Dict[Tuple[str, str], Dict[str, Any]],
    *,
    endpoint: str,
    operation_id: str,
) -> List[SpecChange]:
    changes: List[SpecChange] = []

    for key, param in new_params.items():
        if key in old_params:
            continue
        name, location = key
        required = param.get("required") is True
        changes.append(
            SpecChange(
                type=ChangeType.PARAMETER_ADDED,
                path=f"{endpoint}/parameters/{name}",
                severity=BREAKING if required else NON_BREAKING,
                description=(
                    f"Added {'required' if required else 'optional'} parameter: "
                    f"{name} ({location})"
                ),
                affected_endpoints=(endpoint,),
                operation_id=operation_id,
                new_value=param,
            )
        )
        logger.info("Detected added parameter: %s %s required=%s", endpoint, name, required)

    for key, param in old_params.items():
        if key in new_params:
            continue
        name, location = key
        # Removing any parameter, optional or not, changes what clients send
        changes.append(
            SpecChange(
                type=ChangeType.PARAMETER_REMOVED,
                path=f"{endpoint}/parameters/{name}",
                severity=BREAKING,
                description=f"Removed parameter: {name} ({location})",
                affected_endpoints=(endpoint,),
                operation_id=operation_id,
                old_value=param,
            )
        )
        logger.info("Detected removed parameter: %s %s", endpoint, name)

    for key, old_param in old_params.items():
        new_param = new_params.get(key)
        if new_param is None:
            continue

        old_required = old_param.get("required") is True
        new_required = new_param.get("required") is True
        old_type = _param_type(old_param)
        new_type = _param_type(new_param)
        if old_required == new_required and old_type == new_type:
            continue

        details = []
        if old_required != new_required:
            details.append(
                "optional -> required" if new_required else "required -> optional"
            )
        if old_type != new_type:
            details.append(f"type {old_type or 'any'} -> {new_type or 'any'}")

        breaking = (new_required and not old_required) or _type_narrowed(old_type, new_type)
        name, location = key
        changes.append(
            SpecChange(
                type=ChangeType.PARAMETER_MODIFIED,
                path=f"{endpoint}/parameters/{name}",
                severity=BREAKING if breaking else NON_BREAKING,
                description=f"Modified parameter: {name} ({location}): {', '.join(details)}",
                affected_endpoints=(endpoint,),
                operation_id=operation_id,
                old_value=old_param,
                new_value=new_param,
            )
        )
        logger.info("Detected modified parameter: %s %s (%s)", endpoint, name, ", ".join(details))

    return changes


# ---------------------------------------------------------------------------
# Request bodies and responses
# ---------------------------------------------------------------------------

def _diff_request_body(
    old_body: Any,
    new_body: Any,
    *,
    endpoint: str,
    operation_id: str,
) -> List[SpecChange]:
    if canonical_json(old_body) == canonical_json(new_body):
        return []

    old_required = isinstance(old_body, dict) and old_body.get("required") is True
    new_required = isinstance(new_body, dict) and new_body.get("required") is True

    if not old_body and new_body:
        severity = BREAKING if new_required else NON_BREAKING
        description = f"Request body added for {endpoint}"
    elif old_body and not new_body:
        severity = BREAKING
        description = f"Request body removed from {endpoint}"
    else:
        severity = BREAKING if new_required and not old_required else NON_BREAKING
        description = f"Request body changed for {endpoint}"

    return [
        SpecChange(
            type=ChangeType.ENDPOINT_MODIFIED,
            path=f"{endpoint}/requestBody",
            severity=severity,
            description=description,
            affected_endpoints=(endpoint,),
            operation_id=operation_id,
            old_value=old_body,
            new_value=new_body,
        )
    ]


def _diff_responses(
    old_responses: Any,
    new_responses: Any,
    *,
    endpoint: str,
    operation_id: str,
) -> List[SpecChange]:
    old_responses = old_responses if isinstance(old_responses, dict) else {}
    new_responses = new_responses if isinstance(new_responses, dict) else {}

    old_codes = {str(code): value for code, value in old_responses.items()}
    new_codes = {str(code): value for code, value in new_responses.items()}

    changes: List[SpecChange] = []

    for code, response in old_codes.items():
        if code in new_codes:
            continue
        changes.append(
            SpecChange(
                type=ChangeType.ENDPOINT_MODIFIED,
                path=f"{endpoint}/responses/{code}",
                severity=BREAKING,
                description=f"Removed response status {code}",
                affected_endpoints=(endpoint,),
                operation_id=operation_id,
                old_value=response,
            )
        )
        logger.info("Detected removed response status %s on %s", code, endpoint)

    for code, response in new_codes.items():
        if code in old_codes:
            continue
        changes.append(
            SpecChange(
                type=ChangeType.ENDPOINT_MODIFIED,
                path=f"{endpoint}/responses/{code}",
                severity=NON_BREAKING,
                description=f"Added response status {code}",
                affected_endpoints=(endpoint,),
                operation_id=operation_id,
                new_value=response,
            )
        )
        logger.info("Detected added response status %s on %s", code, endpoint)

    for code, old_response in old_codes.items():
        if code in new_codes:
            changes.extend(
                _diff_response_content(
                    code,
                    old_response,
                    new_codes[code],
                    endpoint=endpoint,
                    operation_id=operation_id,
                )
            )

    return changes


def _response_change(
    path: str,
    severity: ChangeSeverity,
    description: str,
    *,
    endpoint: str,
    operation_id: str,
    old_value: Any = None,
    new_value: Any = None,
) -> SpecChange:
    logger.info("Detected response change on %s: %s", endpoint, description)
    return SpecChange(
        type=ChangeType.ENDPOINT_MODIFIED,
        path=path,
        severity=severity,
        description=description,
        affected_endpoints=(endpoint,),
        operation_id=operation_id,
        old_value=old_value,
        new_value=new_value,
    )


def _media_types(response: Dict[str, Any]) -> Dict[str, Any]:
    content = response.get("content")
    if isinstance(content, dict):
        return content
    # Swagger 2.0 puts the schema on the response itself
    if "schema" in response:
        return {"*/*": {"schema": response["schema"]}}
    return {}


def _response_schema_severity(old_schema: Any, new_schema: Any) -> ChangeSeverity:
    if old_schema is None:
        return NON_BREAKING
    if new_schema is None:
        return BREAKING

    old_props, _ = _schema_shape(old_schema)
    new_props, _ = _schema_shape(new_schema)
    if old_props - new_props:
        return BREAKING

    old_type = old_schema.get("type") if isinstance(old_schema, dict) else None
    new_type = new_schema.get("type") if isinstance(new_schema, dict) else None
    if old_type is not None and old_type != new_type:
        return BREAKING
    return NON_BREAKING


def _diff_response_content(
    code: str,
    old_response: Any,
    new_response: Any,
    *,
    endpoint: str,
    operation_id: str,
) -> List[SpecChange]:
    """Description, media types, schemas and headers of one status code."""
    old_response = old_response if isinstance(old_response, dict) else {}
    new_response = new_response if isinstance(new_response, dict) else {}
    base = f"{endpoint}/responses/{code}"
    where = dict(endpoint=endpoint, operation_id=operation_id)
    changes: List[SpecChange] = []

    old_description = old_response.get("description")
    new_description = new_response.get("description")
    if old_description != new_description:
        changes.append(
            _response_change(
                f"{base}/description",
                NON_BREAKING,
                f"Response description changed for {code} in {endpoint}",
                old_value=old_description,
                new_value=new_description,
                **where,
            )
        )

    old_media = _media_types(old_response)
    new_media = _media_types(new_response)

    for media_type, media in new_media.items():
        if media_type not in old_media:
            changes.append(
                _response_change(
                    f"{base}/content/{media_type}",
                    NON_BREAKING,
                    f"Added {media_type} response type for {code} in {endpoint}",
                    new_value=media,
                    **where,
                )
            )

    for media_type, media in old_media.items():
        if media_type not in new_media:
            changes.append(
                _response_change(
                    f"{base}/content/{media_type}",
                    BREAKING,
                    f"Removed {media_type} response type for {code} in {endpoint}",
                    old_value=media,
                    **where,
                )
            )
            continue

        old_schema = media.get("schema") if isinstance(media, dict) else None
        new_media_entry = new_media[media_type]
        new_schema = new_media_entry.get("schema") if isinstance(new_media_entry, dict) else None
        if canonical_json(old_schema) == canonical_json(new_schema):
            continue
        changes.append(
            _response_change(
                f"{base}/content/{media_type}/schema",
                _response_schema_severity(old_schema, new_schema),
                f"Response schema changed for {media_type} {code} in {endpoint}",
                old_value=old_schema,
                new_value=new_schema,
                **where,
            )
        )

    old_headers = old_response.get("headers")
    new_headers = new_response.get("headers")
    old_headers = old_headers if isinstance(old_headers, dict) else {}
    new_headers = new_headers if isinstance(new_headers, dict) else {}

    for name, header in new_headers.items():
        if name not in old_headers:
            changes.append(
                _response_change(
                    f"{base}/headers/{name}",
                    NON_BREAKING,
                    f"Added response header {name} for {code} in {endpoint}",
                    new_value=header,
                    **where,
                )
            )

    for name, header in old_headers.items():
        if name not in new_headers:
            changes.append(
                _response_change(
                    f"{base}/headers/{name}",
                    BREAKING,
                    f"Removed response header {name} from {code} in {endpoint}",
                    old_value=header,
                    **where,
                )
            )
        elif canonical_json(header) != canonical_json(new_headers[name]):
            changes.append(
                _response_change(
                    f"{base}/headers/{name}",
                    NON_BREAKING,
                    f"Modified response header {name} for {code} in {endpoint}",
                    old_value=header,
                    new_value=new_headers[name],
                    **where,
                )
            )

    return changes


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

def _schemas(document: Dict[str, Any]) -> Dict[str, Any]:
    components = document.get("components")
    if isinstance(components, dict) and isinstance(components.get("schemas"), dict):
        return components["schemas"]
    # Swagger 2.0
    definitions = document.get("definitions")
    return definitions if isinstance(definitions, dict) else {}


def _endpoints_using_schema(name: str, document: Dict[str, Any]) -> Tuple[str, ...]:
    refs = (f"#/components/schemas/{name}", f"#/definitions/{name}")
    endpoints = []
    for path, method, operation in iter_operations(document):
        serialized = canonical_json(operation)
        if any(f'"{ref}"' in serialized for ref in refs):
            endpoints.append(f"{method.upper()} {path}")
    return tuple(endpoints)


def _schema_shape(schema: Any) -> Tuple[set, set]:
    if not isinstance(schema, dict):
        return set(), set()
    properties = schema.get("properties")
    required = schema.get("required")
    return (
        set(properties) if isinstance(properties, dict) else set(),
        set(required) if isinstance(required, list) else set(),
    )


def _diff_schemas(old_doc: Dict[str, Any], new_doc: Dict[str, Any]) -> List[SpecChange]:
    old_schemas = _schemas(old_doc)
    new_schemas = _schemas(new_doc)
    changes: List[SpecChange] = []

    for name, schema in new_schemas.items():
        if name in old_schemas:
            continue
        changes.append(
            SpecChange(
                type=ChangeType.SCHEMA_ADDED,
                path=f"/components/schemas/{name}",
                severity=NON_BREAKING,
                description=f"Added new schema: {name}",
                affected_endpoints=_endpoints_using_schema(name, new_doc),
                new_value=schema,
            )
        )
        logger.info("Detected added schema: %s", name)

    for name, schema in old_schemas.items():
        if name in new_schemas:
            continue
        changes.append(
            SpecChange(
                type=ChangeType.SCHEMA_REMOVED,
                path=f"/components/schemas/{name}",
                severity=BREAKING,
                description=f"Removed schema: {name}",
                affected_endpoints=_endpoints_using_schema(name, old_doc),
                old_value=schema,
            )
        )
        logger.info("Detected removed schema: %s", name)

    for name, old_schema in old_schemas.items():
        if name not in new_schemas:
            continue
        new_schema = new_schemas[name]
        old_props, old_required = _schema_shape(old_schema)
        new_props, new_required = _schema_shape(new_schema)
        if old_props == new_props and old_required == new_required:
            continue

        removed_props = old_props - new_props
        newly_required = new_required - old_required
        details = _describe_schema_change(
            added=new_props - old_props,
            removed=removed_props,
            newly_required=newly_required,
            no_longer_required=old_required - new_required,
        )
        changes.append(
            SpecChange(
                type=ChangeType.SCHEMA_MODIFIED,
                path=f"/components/schemas/{name}",
                severity=BREAKING if removed_props or newly_required else NON_BREAKING,
                description=f"Modified schema: {name} ({details})",
                affected_endpoints=_endpoints_using_schema(name, new_doc),
                old_value=old_schema,
                new_value=new_schema,
            )
        )
        logger.info("Detected modified schema: %s (%s)", name, details)

    return changes


def _describe_schema_change(
    *,
    added: Iterable[str],
    removed: Iterable[str],
    newly_required: Iterable[str],
    no_longer_required: Iterable[str],
) -> str:
    parts = []
    for label, names in (
        ("added properties", added),
        ("removed properties", removed),
        ("newly required", newly_required),
        ("no longer required", no_longer_required),
    ):
        names = sorted(str(n) for n in names)
        if names:
            parts.append(f"{label}: {', '.join(names)}")
    return "; ".join(parts)
