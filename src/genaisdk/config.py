"""
Client configuration.

``ClientOptions`` holds connection, retry and credential settings. Values
left unset fall back to environment variables when read through the
``get_*`` accessors, and ``validate`` fails fast before any request is made.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from typing import Any

from .exceptions import ConfigurationError
from .types import (
    API_KEY_HEADER,
    DEFAULT_API_VERSION,
    DEFAULT_USER_AGENT,
    DEFAULT_VERTEX_LOCATION,
    GEMINI_API_BASE_URL,
    VERTEX_AI_API_VERSION,
    VERTEX_AI_BASE_URL_TEMPLATE,
)

ENV_API_KEY = "GOOGLE_API_KEY"
ENV_USE_VERTEX_AI = "GOOGLE_GENAI_USE_VERTEXAI"
ENV_PROJECT = "GOOGLE_CLOUD_PROJECT"
ENV_LOCATION = "GOOGLE_CLOUD_LOCATION"
ENV_ACCESS_TOKEN = "GOOGLE_CLOUD_ACCESS_TOKEN"


@dataclass
class ClientOptions:
    """Configuration options for the GenAI client.

    Attributes:
        api_key: Gemini Developer API key. Falls back to ``GOOGLE_API_KEY``.
        use_vertex_ai: Use project/location-scoped Vertex AI endpoints.
            Also enabled by ``GOOGLE_GENAI_USE_VERTEXAI=true``.
        project_id: Vertex AI project. Falls back to ``GOOGLE_CLOUD_PROJECT``.
        location: Vertex AI region. Falls back to ``GOOGLE_CLOUD_LOCATION``.
        base_url: Override for the API host.
        api_version: API version for Gemini Developer API paths.
        timeout: Request timeout in seconds.
        max_retry_attempts: Retries after the first attempt; 0 disables retry.
        retry_delay: Delay before the first retry, in seconds.
        use_exponential_backoff: Double the delay after each retry.
        max_retry_delay: Upper bound for the retry delay, in seconds.
        user_agent: User-Agent header value.
        access_token: Static bearer token for Vertex AI. Falls back to
            ``GOOGLE_CLOUD_ACCESS_TOKEN``.
    """

    api_key: str | None = None
    use_vertex_ai: bool = False
    project_id: str | None = None
    location: str | None = None
    base_url: str | None = None
    api_version: str = DEFAULT_API_VERSION
    timeout: float = 60.0
    max_retry_attempts: int = 3
    retry_delay: float = 1.0
    use_exponential_backoff: bool = True
    max_retry_delay: float = 10.0
    user_agent: str = DEFAULT_USER_AGENT
    access_token: str | None = None

    @classmethod
    def from_env(cls, **overrides: Any) -> ClientOptions:
        """Build options from the environment; explicit overrides win.

        Raises:
            ConfigurationError: If an override names an unknown option.
        """
        known = {f.name for f in fields(cls)}
        unknown = set(overrides) - known
        if unknown:
            name = sorted(unknown)[0]
            raise ConfigurationError(f"Unknown client option: {name}", config_key=name)

        values: dict[str, Any] = {
            "api_key": os.environ.get(ENV_API_KEY),
            "use_vertex_ai": _env_flag(ENV_USE_VERTEX_AI),
            "project_id": os.environ.get(ENV_PROJECT),
            "location": os.environ.get(ENV_LOCATION),
            "access_token": os.environ.get(ENV_ACCESS_TOKEN),
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)

    def get_api_key(self) -> str | None:
        return self.api_key or os.environ.get(ENV_API_KEY)

    def get_use_vertex_ai(self) -> bool:
        return self.use_vertex_ai or _env_flag(ENV_USE_VERTEX_AI)

    def get_project_id(self) -> str | None:
        return self.project_id or os.environ.get(ENV_PROJECT)

    def get_location(self) -> str | None:
        return self.location or os.environ.get(ENV_LOCATION)

    def get_access_token(self) -> str | None:
        return self.access_token or os.environ.get(ENV_ACCESS_TOKEN)

    def get_base_url(self) -> str:
        """Get the effective API host."""
        if self.base_url:
            return self.base_url.rstrip("/")
        if self.get_use_vertex_ai():
            location = self.get_location() or DEFAULT_VERTEX_LOCATION
            return VERTEX_AI_BASE_URL_TEMPLATE.format(location=location)
        return GEMINI_API_BASE_URL

    def validate(self) -> None:
        """Validate the configuration settings.

        Raises:
            ConfigurationError: If a required credential is missing or a
                numeric setting is out of range.
        """
        if self.get_use_vertex_ai():
            if not self.get_project_id():
                raise ConfigurationError(
                    "Project ID is required for Vertex AI API. "
                    f"Set ClientOptions.project_id or the {ENV_PROJECT} environment variable.",
                    config_key="project_id",
                )
            if not self.get_location():
                raise ConfigurationError(
                    "Location is required for Vertex AI API. "
                    f"Set ClientOptions.location or the {ENV_LOCATION} environment variable.",
                    config_key="location",
                )
        elif not self.get_api_key():
            raise ConfigurationError(
                "API key is required for Gemini Developer API. "
                f"Set ClientOptions.api_key or the {ENV_API_KEY} environment variable.",
                config_key="api_key",
            )

        if self.timeout <= 0:
            raise ConfigurationError("timeout must be greater than 0.", config_key="timeout")
        if self.max_retry_attempts < 0:
            raise ConfigurationError(
                "max_retry_attempts must be non-negative.", config_key="max_retry_attempts"
            )
        if self.retry_delay <= 0:
            raise ConfigurationError(
                "retry_delay must be greater than 0.", config_key="retry_delay"
            )
        if self.max_retry_delay < self.retry_delay:
            raise ConfigurationError(
                "max_retry_delay must not be smaller than retry_delay.",
                config_key="max_retry_delay",
            )

    def auth_headers(self) -> dict[str, str]:
        """Static credential headers for the selected API."""
        if self.get_use_vertex_ai():
            token = self.get_access_token()
            return {"Authorization": f"Bearer {token}"} if token else {}
        api_key = self.get_api_key()
        return {API_KEY_HEADER: api_key} if api_key else {}

    # -------------------------------------------------------------------------
    # Endpoint paths
    # -------------------------------------------------------------------------

    def _vertex_prefix(self) -> str:
        return (
            f"/{VERTEX_AI_API_VERSION}/projects/{self.get_project_id()}"
            f"/locations/{self.get_location()}"
        )

    def model_path(self, model: str, operation: str | None = None) -> str:
        """Path of a model, optionally suffixed with ``:{operation}``.

        Example:
            >>> ClientOptions(api_key="k").model_path("gemini-2.5-flash", "generateContent")
            '/v1/models/gemini-2.5-flash:generateContent'
        """
        model = model.split("/", 1)[1] if model.startswith("models/") else model
        if self.get_use_vertex_ai():
            path = f"{self._vertex_prefix()}/publishers/google/models/{model}"
        else:
            path = f"/{self.api_version}/models/{model}"
        return f"{path}:{operation}" if operation else path

    def models_path(self) -> str:
        if self.get_use_vertex_ai():
            return f"{self._vertex_prefix()}/publishers/google/models"
        return f"/{self.api_version}/models"

    def collection_path(self, collection: str) -> str:
        """Path of a resource collection such as ``cachedContents``."""
        if self.get_use_vertex_ai():
            return f"{self._vertex_prefix()}/{collection}"
        return f"/{self.api_version}/{collection}"

    def resource_path(self, collection: str, name: str) -> str:
        """Path of one resource; ``name`` may be bare or ``collection/id``."""
        prefix = f"{collection}/"
        resource_id = name[len(prefix):] if name.startswith(prefix) else name
        return f"{self.collection_path(collection)}/{resource_id}"


def _env_flag(name: str) -> bool:
    return (os.environ.get(name) or "").strip().lower() == "true"
