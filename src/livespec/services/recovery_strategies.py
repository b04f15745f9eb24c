# src/livespec/services/recovery_strategies.py

"""
Automatic recovery strategies for failed spec fetches.

Each strategy decides whether it applies to an ErrorContext and then tries to
recover. "Recovered" means the source looks reachable again (or a working
alternative URL was found and proposed); strategies never rewrite a source's
configuration themselves.

Default strategies, tried in ascending priority:
1. connection_retry   - HEAD the source URL
2. port_scan          - HEAD the same host on the framework's common ports
3. cors_guidance      - record framework CORS guidance; never recovers
4. endpoint_discovery - GET the framework's default OpenAPI paths
"""

import json
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional
from urllib.parse import urlparse, urlunparse

import httpx
import yaml
from opentelemetry import trace

from livespec.models.error_context import ErrorContext, ErrorType
from livespec.models.live_source import LiveSpecSource
from livespec.services.framework_profiles import (
    get_framework_error_message,
    get_framework_profile,
)

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

FALLBACK_SPEC_ENDPOINTS = ("/openapi.json", "/api-docs")

UrlSuggestionCallback = Callable[[str, str, str], None]
GuidanceCallback = Callable[[str, str], None]


@dataclass(frozen=True)
class RecoveryStrategy:
    id: str
    name: str
    description: str
    priority: int
    can_recover: Callable[[ErrorContext], bool]
    recover: Callable[[LiveSpecSource, ErrorContext], Awaitable[bool]]


class EndpointProber:
    """Lightweight HTTP probes used by the strategies."""

    def __init__(self, timeout_seconds: float = 5.0):
        self.timeout_seconds = timeout_seconds

    async def is_reachable(self, url: str) -> bool:
        with tracer.start_as_current_span("recovery.probe_head") as span:
            span.set_attribute("probe.url", url)
            try:
                async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                    response = await client.head(url, follow_redirects=True)
            except httpx.HTTPError as e:
                logger.debug(f"HEAD {url} failed: {e}")
                return False

            span.set_attribute("probe.status_code", response.status_code)
            return response.is_success

    async def fetch_openapi(self, url: str) -> bool:
        """True when `url` serves something that looks like an OpenAPI/Swagger document."""
        with tracer.start_as_current_span("recovery.probe_spec") as span:
            span.set_attribute("probe.url", url)
            try:
                async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                    response = await client.get(url, follow_redirects=True)
            except httpx.HTTPError as e:
                logger.debug(f"GET {url} failed: {e}")
                return False

            if not response.is_success:
                return False

            try:
                document = json.loads(response.text)
            except ValueError:
                try:
                    document = yaml.safe_load(response.text)
                except yaml.YAMLError:
                    return False

            return isinstance(document, dict) and bool(
                document.get("openapi") or document.get("swagger")
            )


def replace_port(url: str, port: int) -> str:
    parsed = urlparse(url)
    host = parsed.hostname or ""
    if ":" in host:
        host = f"[{host}]"
    return urlunparse(parsed._replace(netloc=f"{host}:{port}"))


def base_url(url: str) -> str:
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.netloc}"


def build_default_strategies(
    prober: EndpointProber,
    *,
    on_url_suggestion: Optional[UrlSuggestionCallback] = None,
    on_guidance: Optional[GuidanceCallback] = None,
) -> List[RecoveryStrategy]:
    """
    Build the four default strategies around one prober.

    on_url_suggestion(source_id, url, reason) is called when a strategy finds
    a working alternative URL; on_guidance(source_id, message) when it only
    has advice to offer.
    """

    def suggest(source: LiveSpecSource, url: str, reason: str) -> None:
        logger.info(f"Suggesting URL update for {source.id}: {url} ({reason})")
        if on_url_suggestion:
            on_url_suggestion(source.id, url, reason)

    # --- connection_retry ---------------------------------------------------

    def connection_applies(error: ErrorContext) -> bool:
        message = error.error_message.lower()
        return (
            error.error_type == ErrorType.CONNECTION_FAILED.value
            or "econnrefused" in message
            or "fetch failed" in message
        )

    async def connection_retry(source: LiveSpecSource, error: ErrorContext) -> bool:
        if not source.url:
            return False
        return await prober.is_reachable(source.url)

    # --- port_scan ----------------------------------------------------------

    def port_scan_applies(error: ErrorContext) -> bool:
        return error.error_type == ErrorType.CONNECTION_FAILED.value

    async def port_scan(source: LiveSpecSource, error: ErrorContext) -> bool:
        profile = get_framework_profile(source.framework)
        if profile is None or not source.url:
            return False

        for port in profile.common_ports:
            candidate = replace_port(source.url, port)
            if candidate == source.url:
                continue
            if await prober.is_reachable(candidate):
                suggest(source, candidate, f"Found server on port {port}")
                return True
        return False

    # --- cors_guidance ------------------------------------------------------

    def cors_applies(error: ErrorContext) -> bool:
        message = error.error_message.lower()
        return "cors" in message or "access-control-allow-origin" in message

    async def cors_guidance(source: LiveSpecSource, error: ErrorContext) -> bool:
        message = get_framework_error_message(source.framework, ErrorType.CORS_ERROR.value)
        logger.info(f"CORS guidance for {source.id}: {message}")
        if on_guidance:
            on_guidance(source.id, message)
        # CORS needs a change on the server
        return False

    # --- endpoint_discovery -------------------------------------------------

    def discovery_applies(error: ErrorContext) -> bool:
        return (
            error.error_type == ErrorType.SPEC_NOT_FOUND.value
            or "404" in error.error_message
        )

    async def endpoint_discovery(source: LiveSpecSource, error: ErrorContext) -> bool:
        if not source.url:
            return False

        profile = get_framework_profile(source.framework or "fastapi")
        endpoints = profile.default_endpoints if profile else FALLBACK_SPEC_ENDPOINTS
        root = base_url(source.url)

        for endpoint in endpoints:
            candidate = root + endpoint
            if candidate == source.url:
                continue
            if await prober.fetch_openapi(candidate):
                suggest(source, candidate, f"Found spec at {endpoint}")
                return True
        return False

    return [
        RecoveryStrategy(
            id="connection_retry",
            name="Connection Retry",
            description="Check whether the server is reachable again",
            priority=1,
            can_recover=connection_applies,
            recover=connection_retry,
        ),
        RecoveryStrategy(
            id="port_scan",
            name="Port Scanning",
            description="Try common ports for the framework",
            priority=2,
            can_recover=port_scan_applies,
            recover=port_scan,
        ),
        RecoveryStrategy(
            id="cors_guidance",
            name="CORS Configuration",
            description="Provide CORS setup guidance",
            priority=3,
            can_recover=cors_applies,
            recover=cors_guidance,
        ),
        RecoveryStrategy(
            id="endpoint_discovery",
            name="Endpoint Discovery",
            description="Try alternative OpenAPI endpoints",
            priority=4,
            can_recover=discovery_applies,
            recover=endpoint_discovery,
        ),
    ]
