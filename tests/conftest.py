# tests/conftest.py
import pytest
from unittest.mock import AsyncMock, MagicMock

from fastapi.testclient import TestClient

from livespec.config import ErrorHandlingConfig, Settings
from livespec.models.collaborators import FetchResult, SyncResult
from livespec.models.live_source import LiveSpecSource
from livespec.services.error_recovery_service import ErrorRecoveryService


@pytest.fixture
def anyio_backend():
    return "asyncio"


def _make_spec(paths=None, schemas=None, **extra):
    """Minimal OpenAPI 3 document."""
    spec = {
        "openapi": "3.0.0",
        "info": {"title": "Test API", "version": "1.0.0"},
        "paths": paths or {},
    }
    if schemas is not None:
        spec["components"] = {"schemas": schemas}
    spec.update(extra)
    return spec


@pytest.fixture
def make_spec():
    return _make_spec


@pytest.fixture
def users_spec():
    return _make_spec(
        paths={
            "/users": {
                "get": {
                    "summary": "List Users",
                    "responses": {"200": {"description": "OK"}},
                },
            },
            "/users/{id}": {
                "get": {
                    "summary": "Get User Details",
                    "parameters": [
                        {"name": "id", "in": "path", "required": True, "schema": {"type": "string"}}
                    ],
                    "responses": {
                        "200": {
                            "description": "OK",
                            "content": {
                                "application/json": {
                                    "schema": {"$ref": "#/components/schemas/User"}
                                }
                            },
                        }
                    },
                },
            },
        },
        schemas={
            "User": {
                "type": "object",
                "required": ["id"],
                "properties": {"id": {"type": "string"}, "name": {"type": "string"}},
            }
        },
    )


@pytest.fixture
def source():
    return LiveSpecSource(
        id="live-spec-test",
        name="Local API",
        url="http://localhost:8000/openapi.json",
        framework="fastapi",
        poll_interval_ms=5000,
    )


@pytest.fixture
def source_registry(source):
    registry = MagicMock()
    registry.get_source = MagicMock(side_effect=lambda sid: source if sid == source.id else None)
    return registry


@pytest.fixture
def fetcher(users_spec):
    fetcher = MagicMock()
    fetcher.fetch_document = AsyncMock(return_value=FetchResult.success(users_spec, 200))
    return fetcher


@pytest.fixture
def snapshots():
    store = MagicMock()
    store.get_previous_document = AsyncMock(return_value=None)
    return store


@pytest.fixture
def sync_trigger():
    trigger = MagicMock()
    trigger.trigger_sync = AsyncMock(return_value=SyncResult(success=True, has_changes=True))
    return trigger


@pytest.fixture
def notifier():
    notifier = MagicMock()
    notifier.notify = AsyncMock()
    return notifier


@pytest.fixture
def recovery(notifier):
    """Recovery service with no strategies, so nothing touches the network."""
    service = ErrorRecoveryService(
        ErrorHandlingConfig(retry_delay_ms=60_000),
        notifier=notifier,
        strategies=[],
    )
    yield service
    service.shutdown()


@pytest.fixture
def client():
    """TestClient over a fresh app with its own in-memory services."""
    from livespec.api.dependencies.services import build_services
    from livespec.main import create_app

    services = build_services(Settings())
    app = create_app(services)
    with TestClient(app) as test_client:
        test_client.services = services
        yield test_client
