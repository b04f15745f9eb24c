# src/livespec/services/spec_fetcher.py

"""
Fetches a live source's OpenAPI document.

URL sources are fetched with httpx, local files are read from disk. Either
way the raw text is parsed as JSON, falling back to YAML. Failures never
raise; they come back as FetchResult.failure with an ErrorType value so the
orchestrator can route them straight into recovery.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import httpx
import yaml
from opentelemetry import trace

from livespec.config import DEFAULT_FETCH_TIMEOUT_MS
from livespec.models.collaborators import FetchResult
from livespec.models.error_context import ErrorType, classify_error
from livespec.models.live_source import LiveSpecSource

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

# Only transient failures are worth another attempt inside one fetch
_RETRYABLE = {
    ErrorType.CONNECTION_FAILED.value,
    ErrorType.TIMEOUT.value,
    ErrorType.NETWORK_ERROR.value,
}


class SpecParseError(ValueError):
    pass


def parse_spec_text(text: str) -> Dict[str, Any]:
    """
    Parse a JSON or YAML OpenAPI document.

    Raises SpecParseError when the text is neither, or the root isn't an
    OpenAPI/Swagger object.
    """
    try:
        document = json.loads(text)
    except ValueError:
        try:
            document = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise SpecParseError(f"Malformed spec: {e}") from e

    if not isinstance(document, dict):
        raise SpecParseError("Malformed spec: document root must be an object")
    if "openapi" not in document and "swagger" not in document:
        raise SpecParseError("Malformed spec: not a valid OpenAPI document")
    return document


class HttpSpecFetcher:
    def __init__(
        self,
        timeout_ms: int = DEFAULT_FETCH_TIMEOUT_MS,
        retries: int = 2,
        retry_backoff_seconds: float = 0.5,
    ):
        self.timeout_ms = timeout_ms
        self.retries = retries
        self.retry_backoff_seconds = retry_backoff_seconds

    async def fetch_document(self, source: LiveSpecSource) -> FetchResult:
        with tracer.start_as_current_span("service.fetch_document") as span:
            span.set_attribute("source.id", source.id)
            span.set_attribute("source.type", source.source_type)

            if source.file_path:
                return self._read_file(source.file_path)

            result = await self._fetch_url(source)
            for attempt in range(1, self.retries + 1):
                if result.ok or result.error_type not in _RETRYABLE:
                    break
                logger.info(
                    f"Retrying fetch for {source.id} after {result.error_type} "
                    f"(attempt {attempt + 1}/{self.retries + 1})"
                )
                await asyncio.sleep(self.retry_backoff_seconds * attempt)
                result = await self._fetch_url(source)

            span.set_attribute("fetch.ok", result.ok)
            if result.status_code is not None:
                span.set_attribute("http.status_code", result.status_code)
            return result

    async def _fetch_url(self, source: LiveSpecSource) -> FetchResult:
        url = source.url
        timeout_seconds = (source.timeout_ms or self.timeout_ms) / 1000
        logger.debug(f"Fetching spec from {url}")

        try:
            async with httpx.AsyncClient(timeout=timeout_seconds) as client:
                response = await client.get(
                    url,
                    headers={"Accept": "application/json, application/yaml", **source.headers},
                    follow_redirects=True,
                )
        except httpx.TimeoutException:
            logger.warning(f"Fetching {url} timed out")
            return FetchResult.failure(
                f"Request timeout after {int(timeout_seconds * 1000)}ms",
                error_type=ErrorType.TIMEOUT.value,
            )
        except httpx.ConnectError as e:
            logger.warning(f"Connection to {url} failed: {e}")
            return FetchResult.failure(
                f"Connection failed: {e}",
                error_type=ErrorType.CONNECTION_FAILED.value,
            )
        except httpx.HTTPError as e:
            logger.warning(f"Network error fetching {url}: {e}")
            return FetchResult.failure(
                f"Network error: {e}",
                error_type=ErrorType.NETWORK_ERROR.value,
            )

        status_code = response.status_code
        if not response.is_success:
            error = f"HTTP {status_code}: {response.text[:200]}"
            logger.warning(f"Failed to fetch {url}: {error}")
            return FetchResult.failure(
                error,
                status_code=status_code,
                error_type=_status_error_type(status_code, error),
            )

        try:
            document = parse_spec_text(response.text)
        except SpecParseError as e:
            return FetchResult.failure(
                str(e),
                status_code=status_code,
                error_type=ErrorType.MALFORMED_SPEC.value,
            )

        logger.info(f"Fetched {len(response.text)} bytes from {url}")
        return FetchResult.success(document, status_code=status_code)

    def _read_file(self, file_path: str) -> FetchResult:
        path = Path(file_path)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return FetchResult.failure(
                f"Spec file not found: {file_path}",
                error_type=ErrorType.SPEC_NOT_FOUND.value,
            )
        except OSError as e:
            return FetchResult.failure(
                f"Could not read spec file {file_path}: {e}",
                error_type=ErrorType.UNKNOWN.value,
            )

        try:
            return FetchResult.success(parse_spec_text(text))
        except SpecParseError as e:
            return FetchResult.failure(str(e), error_type=ErrorType.MALFORMED_SPEC.value)


def _status_error_type(status_code: Optional[int], message: str) -> str:
    error_type = classify_error(status_code, message)
    return error_type.value
