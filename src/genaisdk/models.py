"""
Models service: model metadata and content generation.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Sequence
from typing import Any

from .backend import GenAIBackend
from .exceptions import ValidationError
from .serialization import from_wire
from .types import (
    Content,
    GenerateContentConfig,
    GenerateContentRequest,
    GenerateContentResponse,
    Model,
)

logger = logging.getLogger(__name__)


def _parse_response(data: Any) -> GenerateContentResponse:
    return from_wire(GenerateContentResponse, data)


def _validate_generate_args(model: str, contents: Sequence[Content]) -> None:
    if not model or not model.strip():
        raise ValidationError("Model name cannot be empty.", field="model")
    if not contents:
        raise ValidationError("Contents cannot be empty.", field="contents")


class ModelsService:
    """Access to ``models`` endpoints.

    Example:
        >>> response = await client.models.generate_content(
        ...     "gemini-2.5-flash",
        ...     [Content.from_text("Why is the sky blue?")],
        ... )
        >>> print(response.text)
    """

    def __init__(self, backend: GenAIBackend) -> None:
        self._backend = backend

    async def list(self, *, page_size: int | None = None) -> list[Model]:
        """List every available model, following pagination."""
        options = self._backend.options
        models: list[Model] = []
        page_token: str | None = None

        while True:
            params: dict[str, Any] = {}
            if page_size:
                params["pageSize"] = page_size
            if page_token:
                params["pageToken"] = page_token

            data = await self._backend.get(options.models_path(), params=params) or {}
            models.extend(from_wire(Model, item) for item in data.get("models", []))
            page_token = data.get("nextPageToken") or data.get("next_page_token")
            if not page_token:
                break

        logger.debug(f"Listed {len(models)} models")
        return models

    async def get(self, model: str) -> Model:
        """Get metadata of one model."""
        if not model or not model.strip():
            raise ValidationError("Model name cannot be empty.", field="model")
        return await self._backend.get(
            self._backend.options.model_path(model),
            parse=lambda data: from_wire(Model, data),
        )

    async def generate_content(
        self,
        model: str,
        contents: Sequence[Content],
        config: GenerateContentConfig | None = None,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> GenerateContentResponse:
        """Generate a response for ``contents``.

        Args:
            model: Model name, with or without the ``models/`` prefix.
            contents: Conversation turns, oldest first.
            config: Generation settings, tools and system instruction.
            cancel_event: Set it to abandon the call.

        Raises:
            ValidationError: If ``model`` or ``contents`` is empty.
        """
        _validate_generate_args(model, contents)
        request = GenerateContentRequest.build(contents, config)
        return await self._backend.post(
            self._backend.options.model_path(model, "generateContent"),
            body=request,
            parse=_parse_response,
            cancel_event=cancel_event,
        )

    async def generate_content_stream(
        self,
        model: str,
        contents: Sequence[Content],
        config: GenerateContentConfig | None = None,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> AsyncIterator[GenerateContentResponse]:
        """Generate a response and yield it chunk by chunk.

        Raises:
            ValidationError: If ``model`` or ``contents`` is empty. Raised on
                first iteration.
        """
        _validate_generate_args(model, contents)
        request = GenerateContentRequest.build(contents, config)
        async for chunk in self._backend.stream(
            self._backend.options.model_path(model, "streamGenerateContent"),
            body=request,
            parse=_parse_response,
            cancel_event=cancel_event,
        ):
            yield chunk
