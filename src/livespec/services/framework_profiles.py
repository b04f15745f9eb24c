# src/livespec/services/framework_profiles.py

"""
Per-framework hints used during error recovery: where a framework usually
serves its OpenAPI document, which ports its dev server tends to use, and a
human message per error type.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple


@dataclass(frozen=True)
class FrameworkProfile:
    name: str
    display_name: str
    default_endpoints: Tuple[str, ...]
    common_ports: Tuple[int, ...]
    error_messages: Dict[str, str] = field(default_factory=dict)


_PROFILES: Dict[str, FrameworkProfile] = {
    "fastapi": FrameworkProfile(
        name="fastapi",
        display_name="FastAPI",
        default_endpoints=("/openapi.json", "/docs/openapi.json"),
        common_ports=(8000, 8080, 3000),
        error_messages={
            "connection_failed": "FastAPI server not running. Start with: uvicorn main:app --reload",
            "cors_error": "CORS not configured. Add CORSMiddleware to your FastAPI app",
            "spec_not_found": "OpenAPI spec not found. Check if /openapi.json is accessible",
        },
    ),
    "express": FrameworkProfile(
        name="express",
        display_name="Express.js",
        default_endpoints=("/api-docs", "/swagger.json", "/openapi.json"),
        common_ports=(3000, 8000, 8080),
        error_messages={
            "connection_failed": "Express server not running. Start with: npm start or node server.js",
            "cors_error": "CORS not configured. Install and configure cors middleware",
            "spec_not_found": "Swagger not configured. Install swagger-jsdoc and swagger-ui-express",
        },
    ),
    "spring": FrameworkProfile(
        name="spring",
        display_name="Spring Boot",
        default_endpoints=("/v3/api-docs", "/api-docs", "/swagger-ui.html"),
        common_ports=(8080, 8090, 9000),
        error_messages={
            "connection_failed": "Spring Boot app not running. Start with: ./mvnw spring-boot:run",
            "cors_error": "CORS not configured. Add @CrossOrigin annotation or configure globally",
            "spec_not_found": "springdoc-openapi not configured. Add dependency and restart",
        },
    ),
    "aspnet": FrameworkProfile(
        name="aspnet",
        display_name="ASP.NET Core",
        default_endpoints=("/swagger/v1/swagger.json", "/swagger.json"),
        common_ports=(5000, 5001, 7000, 7001),
        error_messages={
            "connection_failed": "ASP.NET app not running. Start with: dotnet run",
            "cors_error": "CORS not configured. Add CORS policy in Program.cs",
            "spec_not_found": "Swagger not configured. Add AddSwaggerGen() and UseSwagger()",
        },
    ),
}

_ALIASES = {
    "spring-boot": "spring",
    "springboot": "spring",
    "aspnet-core": "aspnet",
    "asp.net": "aspnet",
    "dotnet": "aspnet",
    "express.js": "express",
    "expressjs": "express",
}

_GENERIC_ERROR_MESSAGES = {
    "connection_failed": "Development server not accessible. Check if it's running.",
    "cors_error": "CORS not configured. Allow requests from this origin.",
    "spec_not_found": "OpenAPI specification not found. Check endpoint URL.",
    "malformed_spec": "Invalid OpenAPI specification format.",
}


def get_framework_profile(name: Optional[str]) -> Optional[FrameworkProfile]:
    if not name:
        return None
    key = name.strip().lower()
    return _PROFILES.get(_ALIASES.get(key, key))


def list_framework_profiles() -> Tuple[FrameworkProfile, ...]:
    return tuple(_PROFILES.values())


def get_framework_error_message(framework: Optional[str], error_type: str) -> str:
    profile = get_framework_profile(framework)
    if profile and error_type in profile.error_messages:
        return profile.error_messages[error_type]
    return _GENERIC_ERROR_MESSAGES.get(error_type, "An error occurred during sync.")
