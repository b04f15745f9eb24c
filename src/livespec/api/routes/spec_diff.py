"""
Stateless spec comparison.

POST /spec-diff - Compare two OpenAPI documents
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter
from opentelemetry import trace
from pydantic import BaseModel

from livespec.config import DiffOptions
from livespec.services.spec_diff_engine import diff_specs, find_moved_endpoints

router = APIRouter(tags=["spec-diff"])
tracer = trace.get_tracer(__name__)


class SpecDiffRequest(BaseModel):
    old_spec: Optional[Dict[str, Any]] = None
    new_spec: Optional[Dict[str, Any]] = None
    ignore_descriptions: bool = False
    ignore_examples: bool = False


@router.post("/spec-diff")
def compare_specs(request: SpecDiffRequest):
    with tracer.start_as_current_span("compare_specs"):
        result = diff_specs(
            request.old_spec,
            request.new_spec,
            DiffOptions(
                ignore_descriptions=request.ignore_descriptions,
                ignore_examples=request.ignore_examples,
            ),
        )

        payload = result.to_dict()
        payload["moved_endpoints"] = [
            {
                "operation_id": added.operation_id,
                "from": removed.path,
                "to": added.path,
            }
            for removed, added in find_moved_endpoints(result)
        ]
        return payload
