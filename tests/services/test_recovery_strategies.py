"""
Unit tests for the default recovery strategies and EndpointProber.
"""
import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from livespec.models.error_context import ErrorContext
from livespec.services.recovery_strategies import (
    EndpointProber,
    base_url,
    build_default_strategies,
    replace_port,
)

pytestmark = pytest.mark.anyio


def _error(error_type, message="boom"):
    return ErrorContext(
        source_id="live-spec-test",
        error_type=error_type,
        error_message=message,
        retry_count=0,
        is_recoverable=True,
    )


@pytest.fixture
def prober():
    prober = MagicMock()
    prober.is_reachable = AsyncMock(return_value=False)
    prober.fetch_openapi = AsyncMock(return_value=False)
    return prober


@pytest.fixture
def suggestions():
    return []


@pytest.fixture
def guidance():
    return []


@pytest.fixture
def strategies(prober, suggestions, guidance):
    built = build_default_strategies(
        prober,
        on_url_suggestion=lambda sid, url, reason: suggestions.append((sid, url, reason)),
        on_guidance=lambda sid, message: guidance.append((sid, message)),
    )
    return {s.id: s for s in built}


class TestUrlHelpers:

    def test_replace_port(self):
        assert replace_port("http://localhost:8000/openapi.json", 8080) == "http://localhost:8080/openapi.json"

    def test_replace_port_without_explicit_port(self):
        assert replace_port("http://localhost/openapi.json", 3000) == "http://localhost:3000/openapi.json"

    def test_base_url(self):
        assert base_url("http://localhost:8000/v1/openapi.json?x=1") == "http://localhost:8000"


class TestApplicability:

    def test_priorities(self, strategies):
        assert [s.priority for s in strategies.values()] == [1, 2, 3, 4]

    def test_connection_strategies(self, strategies):
        error = _error("connection_failed")
        assert strategies["connection_retry"].can_recover(error)
        assert strategies["port_scan"].can_recover(error)
        assert not strategies["endpoint_discovery"].can_recover(error)

    def test_connection_retry_matches_message(self, strategies):
        assert strategies["connection_retry"].can_recover(_error("network_error", "TypeError: fetch failed"))
        assert not strategies["port_scan"].can_recover(_error("network_error", "fetch failed"))

    def test_cors_matches_message(self, strategies):
        assert strategies["cors_guidance"].can_recover(_error("cors_error", "Blocked by CORS policy"))
        assert not strategies["cors_guidance"].can_recover(_error("timeout", "timed out"))

    def test_discovery_matches_404(self, strategies):
        assert strategies["endpoint_discovery"].can_recover(_error("spec_not_found"))
        assert strategies["endpoint_discovery"].can_recover(_error("unknown", "HTTP 404: Not Found"))


class TestRecover:

    async def test_connection_retry_probes_source_url(self, strategies, prober, source):
        prober.is_reachable.return_value = True

        assert await strategies["connection_retry"].recover(source, _error("connection_failed")) is True
        prober.is_reachable.assert_awaited_once_with(source.url)

    async def test_port_scan_skips_current_port_and_suggests(self, strategies, prober, source, suggestions):
        prober.is_reachable.side_effect = lambda url: url == "http://localhost:3000/openapi.json"

        assert await strategies["port_scan"].recover(source, _error("connection_failed")) is True

        probed = [c.args[0] for c in prober.is_reachable.await_args_list]
        assert "http://localhost:8000/openapi.json" not in probed
        assert suggestions == [
            (source.id, "http://localhost:3000/openapi.json", "Found server on port 3000")
        ]

    async def test_port_scan_without_framework(self, strategies, prober, source):
        unknown = source.model_copy(update={"framework": None})

        assert await strategies["port_scan"].recover(unknown, _error("connection_failed")) is False
        prober.is_reachable.assert_not_awaited()

    async def test_cors_guidance_never_recovers(self, strategies, source, guidance):
        recovered = await strategies["cors_guidance"].recover(source, _error("cors_error", "CORS"))

        assert recovered is False
        assert guidance == [
            (source.id, "CORS not configured. Add CORSMiddleware to your FastAPI app")
        ]

    async def test_endpoint_discovery_tries_framework_defaults(self, strategies, prober, source, suggestions):
        prober.fetch_openapi.return_value = True

        assert await strategies["endpoint_discovery"].recover(source, _error("spec_not_found")) is True

        # /openapi.json is the configured URL, so the next default is tried
        prober.fetch_openapi.assert_awaited_once_with("http://localhost:8000/docs/openapi.json")
        assert suggestions[0][1] == "http://localhost:8000/docs/openapi.json"

    async def test_endpoint_discovery_gives_up(self, strategies, prober, source, suggestions):
        assert await strategies["endpoint_discovery"].recover(source, _error("spec_not_found")) is False
        assert suggestions == []


class TestEndpointProber:

    async def test_is_reachable_success(self):
        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = AsyncMock()
            mock_client.head = AsyncMock(return_value=MagicMock(status_code=200, is_success=True))
            mock_client_class.return_value.__aenter__.return_value = mock_client

            assert await EndpointProber().is_reachable("http://localhost:8000/openapi.json") is True

    async def test_is_reachable_connect_error(self):
        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = AsyncMock()
            mock_client.head = AsyncMock(side_effect=httpx.ConnectError("refused"))
            mock_client_class.return_value.__aenter__.return_value = mock_client

            assert await EndpointProber().is_reachable("http://localhost:8000/openapi.json") is False

    async def test_fetch_openapi_checks_document(self):
        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = AsyncMock()
            mock_client.get = AsyncMock(
                return_value=MagicMock(status_code=200, is_success=True, text="openapi: 3.0.0\npaths: {}\n")
            )
            mock_client_class.return_value.__aenter__.return_value = mock_client

            assert await EndpointProber().fetch_openapi("http://localhost:8000/openapi.yaml") is True

    async def test_fetch_openapi_rejects_html(self):
        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = AsyncMock()
            mock_client.get = AsyncMock(
                return_value=MagicMock(status_code=200, is_success=True, text="<html></html>")
            )
            mock_client_class.return_value.__aenter__.return_value = mock_client

            assert await EndpointProber().fetch_openapi("http://localhost:8000/docs") is False
