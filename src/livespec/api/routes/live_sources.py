"""
API routes for live spec sources.

Endpoints:
- POST /live-sources - Register a source (optionally start polling)
- GET /live-sources - List sources with their polling state
- GET /live-sources/{id} - Source details
- DELETE /live-sources/{id} - Stop polling and forget the source
- GET /live-sources/{id}/polling - Polling state
- POST /live-sources/{id}/polling/start - Start polling
- POST /live-sources/{id}/polling/stop - Stop or pause polling
- POST /live-sources/{id}/polling/resume - Resume a paused source
- PATCH /live-sources/{id}/polling - Change the poll interval
- POST /live-sources/{id}/poll - Poll now (manual sync)
- GET /live-sources/{id}/errors - Error history and recovery hints
- DELETE /live-sources/{id}/errors - Clear error history
- POST /live-sources/{id}/errors/recover - Retry recovery for the latest error
- GET /live-sources/{id}/notifications - Recent notifications
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status
from opentelemetry import trace
from pydantic import BaseModel, Field, ValidationError

from livespec.api.dependencies.services import LiveSyncServices, get_services
from livespec.config import DEFAULT_FETCH_TIMEOUT_MS, MIN_POLL_INTERVAL_MS
from livespec.models.live_source import LiveSpecSource
from livespec.services.polling_service import AlreadyPollingError, SourceNotFoundError

router = APIRouter(prefix="/live-sources", tags=["live-sources"])
tracer = trace.get_tracer(__name__)


# Request/Response Models

class CreateLiveSourceRequest(BaseModel):
    """Request to register a live source."""
    name: str
    url: Optional[str] = None
    file_path: Optional[str] = None
    framework: Optional[str] = None
    poll_interval_ms: Optional[int] = Field(default=None, ge=MIN_POLL_INTERVAL_MS)
    timeout_ms: int = Field(default=DEFAULT_FETCH_TIMEOUT_MS, gt=0)
    headers: Dict[str, str] = Field(default_factory=dict)
    start_polling: bool = False

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Local FastAPI",
                "url": "http://localhost:8000/openapi.json",
                "framework": "fastapi",
                "poll_interval_ms": 10000,
                "start_polling": True,
            }
        }


class StartPollingRequest(BaseModel):
    poll_interval_ms: Optional[int] = Field(default=None, ge=MIN_POLL_INTERVAL_MS)


class StopPollingRequest(BaseModel):
    preserve_state: bool = False


class UpdatePollingRequest(BaseModel):
    poll_interval_ms: int = Field(ge=MIN_POLL_INTERVAL_MS)


def _not_found(source_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Live source {source_id} not found",
    )


def _require_source(services: LiveSyncServices, source_id: str) -> LiveSpecSource:
    source = services.sources.get_source(source_id)
    if source is None:
        raise _not_found(source_id)
    return source


def _polling_payload(services: LiveSyncServices, source_id: str) -> Dict[str, Any]:
    state = services.polling.get_polling_status(source_id)
    payload = state.to_dict() if state else {"source_id": source_id, "is_polling": False}
    payload["degraded"] = services.recovery.is_degraded(source_id)
    return payload


def _source_payload(services: LiveSyncServices, source: LiveSpecSource) -> Dict[str, Any]:
    return {
        **source.model_dump(),
        "source_type": source.source_type,
        "polling": _polling_payload(services, source.id),
    }


# Endpoints

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_live_source(
    request: CreateLiveSourceRequest,
    services: LiveSyncServices = Depends(get_services),
):
    """Register a live source and optionally start polling it right away."""
    with tracer.start_as_current_span("create_live_source"):
        try:
            source = LiveSpecSource(**request.model_dump(exclude={"start_polling"}))
        except ValidationError as e:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=e.errors(include_url=False, include_context=False),
            )

        services.sources.add(source)

        if request.start_polling:
            await services.polling.start_polling(source.id)

        return _source_payload(services, source)


@router.get("")
def list_live_sources(services: LiveSyncServices = Depends(get_services)) -> List[Dict[str, Any]]:
    with tracer.start_as_current_span("list_live_sources"):
        return [_source_payload(services, s) for s in services.sources.list_sources()]


@router.get("/{source_id}")
def get_live_source(source_id: str, services: LiveSyncServices = Depends(get_services)):
    with tracer.start_as_current_span("get_live_source"):
        return _source_payload(services, _require_source(services, source_id))


@router.delete("/{source_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_live_source(source_id: str, services: LiveSyncServices = Depends(get_services)):
    """Stop polling, drop recovery state and the stored snapshot, then remove the source."""
    with tracer.start_as_current_span("delete_live_source"):
        _require_source(services, source_id)
        services.polling.stop_polling(source_id)
        services.recovery.forget_source(source_id)
        services.snapshots.delete(source_id)
        services.sources.remove(source_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{source_id}/polling")
def get_polling_status(source_id: str, services: LiveSyncServices = Depends(get_services)):
    _require_source(services, source_id)
    return _polling_payload(services, source_id)


@router.post("/{source_id}/polling/start")
async def start_polling(
    source_id: str,
    request: Optional[StartPollingRequest] = None,
    services: LiveSyncServices = Depends(get_services),
):
    with tracer.start_as_current_span("start_polling"):
        interval = request.poll_interval_ms if request else None
        try:
            await services.polling.start_polling(source_id, interval)
        except SourceNotFoundError:
            raise _not_found(source_id)
        except AlreadyPollingError as e:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
        return _polling_payload(services, source_id)


@router.post("/{source_id}/polling/stop")
def stop_polling(
    source_id: str,
    request: Optional[StopPollingRequest] = None,
    services: LiveSyncServices = Depends(get_services),
):
    with tracer.start_as_current_span("stop_polling"):
        preserve = request.preserve_state if request else False
        if not services.polling.stop_polling(source_id, preserve_state=preserve):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Live source {source_id} is not being polled",
            )
        return _polling_payload(services, source_id)


@router.post("/{source_id}/polling/resume")
def resume_polling(source_id: str, services: LiveSyncServices = Depends(get_services)):
    with tracer.start_as_current_span("resume_polling"):
        try:
            services.polling.resume_polling(source_id)
        except SourceNotFoundError:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"No paused polling state for {source_id}",
            )
        except AlreadyPollingError as e:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
        return _polling_payload(services, source_id)


@router.patch("/{source_id}/polling")
def update_polling(
    source_id: str,
    request: UpdatePollingRequest,
    services: LiveSyncServices = Depends(get_services),
):
    with tracer.start_as_current_span("update_polling"):
        try:
            services.polling.update_poll_interval(source_id, request.poll_interval_ms)
        except SourceNotFoundError:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Live source {source_id} is not being polled",
            )
        return _polling_payload(services, source_id)


@router.post("/{source_id}/poll")
async def poll_now(source_id: str, services: LiveSyncServices = Depends(get_services)):
    """
    Trigger an immediate poll.

    Also serves as manual sync for a paused or degraded source.
    """
    with tracer.start_as_current_span("poll_now"):
        _require_source(services, source_id)
        return await services.polling.poll_source(source_id)


@router.get("/{source_id}/errors")
def get_errors(source_id: str, services: LiveSyncServices = Depends(get_services)):
    _require_source(services, source_id)
    recovery = services.recovery
    return {
        "source_id": source_id,
        "errors": [e.to_dict() for e in recovery.get_error_history(source_id)],
        "degraded": recovery.is_degraded(source_id),
        "url_suggestion": recovery.get_url_suggestion(source_id),
        "guidance": recovery.get_guidance(source_id),
    }


@router.delete("/{source_id}/errors", status_code=status.HTTP_204_NO_CONTENT)
def clear_errors(
    source_id: str,
    error_type: Optional[str] = None,
    services: LiveSyncServices = Depends(get_services),
):
    _require_source(services, source_id)
    services.recovery.clear_error_history(source_id, error_type)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{source_id}/errors/recover")
async def recover_now(source_id: str, services: LiveSyncServices = Depends(get_services)):
    """Run the recovery strategies against the most recent error ("Retry Now")."""
    with tracer.start_as_current_span("recover_now"):
        source = _require_source(services, source_id)
        history = services.recovery.get_error_history(source_id)
        if not history:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"No errors recorded for {source_id}",
            )
        recovered = await services.recovery.trigger_manual_recovery(source, history[0])
        return {
            "source_id": source_id,
            "recovered": recovered,
            "url_suggestion": services.recovery.get_url_suggestion(source_id),
        }


@router.get("/{source_id}/notifications")
def get_notifications(
    source_id: str,
    limit: int = 20,
    services: LiveSyncServices = Depends(get_services),
):
    _require_source(services, source_id)
    return [e.to_dict() for e in services.notifier.recent(source_id, limit=limit)]
