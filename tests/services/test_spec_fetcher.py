"""
Unit tests for HttpSpecFetcher and parse_spec_text.
"""
import json

import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from livespec.models.live_source import LiveSpecSource
from livespec.services.spec_fetcher import HttpSpecFetcher, SpecParseError, parse_spec_text

pytestmark = pytest.mark.anyio


def _response(status_code=200, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.is_success = 200 <= status_code < 300
    response.text = text
    return response


def _patched_client(mock_client_class, **client_kwargs):
    mock_client = AsyncMock()
    mock_client.get = AsyncMock(**client_kwargs)
    mock_client_class.return_value.__aenter__.return_value = mock_client
    return mock_client


class TestParseSpecText:

    def test_parses_json(self):
        assert parse_spec_text('{"openapi": "3.0.0", "paths": {}}') == {"openapi": "3.0.0", "paths": {}}

    def test_parses_yaml(self):
        doc = parse_spec_text("swagger: '2.0'\npaths: {}\n")
        assert doc == {"swagger": "2.0", "paths": {}}

    def test_rejects_non_object(self):
        with pytest.raises(SpecParseError):
            parse_spec_text("- just\n- a list\n")

    def test_rejects_document_without_version_key(self):
        with pytest.raises(SpecParseError, match="not a valid OpenAPI"):
            parse_spec_text('{"paths": {}}')

    def test_rejects_broken_yaml(self):
        with pytest.raises(SpecParseError, match="Malformed spec"):
            parse_spec_text("openapi: [unclosed")


class TestFetchUrl:

    async def test_success(self, source, users_spec):
        fetcher = HttpSpecFetcher(retries=0)

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = _patched_client(
                mock_client_class, return_value=_response(200, json.dumps(users_spec))
            )

            result = await fetcher.fetch_document(source)

        assert result.ok is True
        assert result.status_code == 200
        assert result.document == users_spec
        assert mock_client.get.call_args[0][0] == source.url

    async def test_custom_headers_are_sent(self, users_spec):
        source = LiveSpecSource(
            name="Secured",
            url="http://localhost:8000/openapi.json",
            headers={"X-Api-Key": "abc"},
        )
        fetcher = HttpSpecFetcher(retries=0)

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = _patched_client(
                mock_client_class, return_value=_response(200, json.dumps(users_spec))
            )
            await fetcher.fetch_document(source)

        headers = mock_client.get.call_args.kwargs["headers"]
        assert headers["X-Api-Key"] == "abc"

    async def test_404_is_spec_not_found(self, source):
        fetcher = HttpSpecFetcher(retries=0)

        with patch("httpx.AsyncClient") as mock_client_class:
            _patched_client(mock_client_class, return_value=_response(404, "Not Found"))
            result = await fetcher.fetch_document(source)

        assert result.ok is False
        assert result.status_code == 404
        assert result.error_type == "spec_not_found"
        assert result.error.startswith("HTTP 404")

    async def test_401_is_authentication_failed(self, source):
        fetcher = HttpSpecFetcher(retries=0)

        with patch("httpx.AsyncClient") as mock_client_class:
            _patched_client(mock_client_class, return_value=_response(401, "Unauthorized"))
            result = await fetcher.fetch_document(source)

        assert result.error_type == "authentication_failed"

    async def test_timeout(self, source):
        fetcher = HttpSpecFetcher(retries=0)

        with patch("httpx.AsyncClient") as mock_client_class:
            _patched_client(mock_client_class, side_effect=httpx.TimeoutException("Timeout"))
            result = await fetcher.fetch_document(source)

        assert result.error_type == "timeout"
        assert result.error == f"Request timeout after {source.timeout_ms}ms"

    async def test_connect_error(self, source):
        fetcher = HttpSpecFetcher(retries=0)

        with patch("httpx.AsyncClient") as mock_client_class:
            _patched_client(mock_client_class, side_effect=httpx.ConnectError("Connection refused"))
            result = await fetcher.fetch_document(source)

        assert result.error_type == "connection_failed"

    async def test_malformed_body(self, source):
        fetcher = HttpSpecFetcher(retries=0)

        with patch("httpx.AsyncClient") as mock_client_class:
            _patched_client(mock_client_class, return_value=_response(200, "<html>hi</html>"))
            result = await fetcher.fetch_document(source)

        assert result.ok is False
        assert result.error_type == "malformed_spec"

    async def test_transient_errors_are_retried(self, source, users_spec):
        fetcher = HttpSpecFetcher(retries=2, retry_backoff_seconds=0)

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = _patched_client(
                mock_client_class,
                side_effect=[
                    httpx.ConnectError("Connection refused"),
                    _response(200, json.dumps(users_spec)),
                ],
            )
            result = await fetcher.fetch_document(source)

        assert result.ok is True
        assert mock_client.get.await_count == 2

    async def test_permanent_errors_are_not_retried(self, source):
        fetcher = HttpSpecFetcher(retries=2, retry_backoff_seconds=0)

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = _patched_client(mock_client_class, return_value=_response(404, "Not Found"))
            await fetcher.fetch_document(source)

        assert mock_client.get.await_count == 1


class TestFetchFile:

    async def test_reads_yaml_file(self, tmp_path):
        spec_file = tmp_path / "openapi.yaml"
        spec_file.write_text("openapi: 3.0.0\ninfo:\n  title: Local\npaths: {}\n")
        source = LiveSpecSource(name="File", file_path=str(spec_file))

        result = await HttpSpecFetcher().fetch_document(source)

        assert result.ok is True
        assert result.document["info"]["title"] == "Local"

    async def test_missing_file(self, tmp_path):
        source = LiveSpecSource(name="File", file_path=str(tmp_path / "missing.json"))

        result = await HttpSpecFetcher().fetch_document(source)

        assert result.ok is False
        assert result.error_type == "spec_not_found"

    async def test_malformed_file(self, tmp_path):
        spec_file = tmp_path / "openapi.json"
        spec_file.write_text('{"paths": {}}')
        source = LiveSpecSource(name="File", file_path=str(spec_file))

        result = await HttpSpecFetcher().fetch_document(source)

        assert result.error_type == "malformed_spec"
