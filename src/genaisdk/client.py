"""
GenAI Client - Main entry point for the SDK.

This module provides the GenAIClient class, which owns the transport and
exposes every service of the Generative Language / Vertex AI API.

Example:
    >>> from genaisdk import GenAIClient
    >>>
    >>> async def main():
    ...     async with GenAIClient() as client:
    ...         text = await client.generate_text("gemini-2.5-flash", "Hello!")
    ...         print(text)
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from collections.abc import AsyncIterator
from typing import Any

import httpx
from typing_extensions import Self

from .backend import GenAIBackend
from .config import ClientOptions
from .exceptions import ClientClosedError, ContentFilteredError, DeserializationError
from .models import ModelsService
from .services import (
    BatchesService,
    CachesService,
    FilesService,
    OperationsService,
    TokensService,
    TuningsService,
)
from .session import ChatSession, ChatsService
from .types import (
    Content,
    GenerateContentConfig,
    GenerationConfig,
    Role,
)

logger = logging.getLogger(__name__)


class GenAIClient:
    """
    Client for the Generative Language and Vertex AI REST APIs.

    All services share one transport and therefore one connection pool.

    Attributes:
        models: Model metadata and content generation.
        chats: Chat sessions and single-turn chat helpers.
        files: Uploaded file metadata.
        caches: Cached contents.
        batches: Batch prediction jobs.
        tunings: Tuning jobs.
        tokens: Token counting.
        operations: Long-running operations.

    Example:
        >>> client = GenAIClient(ClientOptions(api_key="..."))
        >>> chat = client.create_chat_session(
        ...     "gemini-2.5-flash", system_instruction="Answer in one sentence."
        ... )
        >>> response = await chat.send_message("What is Python?")
        >>> await client.close()
    """

    def __init__(
        self,
        options: ClientOptions | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            options: Client options. Read from the environment when omitted.
            http_client: Optional pre-configured HTTP client. The caller
                keeps ownership of it.

        Raises:
            ConfigurationError: If the options are invalid.
        """
        self._options = options or ClientOptions.from_env()
        self._options.validate()

        self._backend = GenAIBackend(self._options, http_client=http_client)
        self.models = ModelsService(self._backend)
        self.chats = ChatsService(self.models)
        self.files = FilesService(self._backend)
        self.caches = CachesService(self._backend)
        self.batches = BatchesService(self._backend)
        self.tunings = TuningsService(self._backend)
        self.tokens = TokensService(self._backend)
        self.operations = OperationsService(self._backend)

        mode = "Vertex AI" if self.is_vertex_ai else "Gemini Developer API"
        logger.debug(f"GenAIClient created for {mode} at {self._options.get_base_url()}")

    @property
    def options(self) -> ClientOptions:
        """Get the client options."""
        return self._options

    @property
    def is_vertex_ai(self) -> bool:
        return self._options.get_use_vertex_ai()

    @property
    def closed(self) -> bool:
        return self._backend.closed

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        await self.close()

    def _ensure_open(self) -> None:
        if self._backend.closed:
            raise ClientClosedError()

    def create_chat_session(
        self,
        model: str,
        system_instruction: str | None = None,
        config: GenerateContentConfig | None = None,
    ) -> ChatSession:
        """
        Create a chat session.

        Args:
            model: The model to talk to.
            system_instruction: Optional instruction sent with every turn.
                Replaces any system instruction in ``config``.
            config: Generation settings for every turn.

        Returns:
            A new session with empty history.
        """
        self._ensure_open()
        config = config or GenerateContentConfig()
        if system_instruction:
            config = dataclasses.replace(
                config,
                system_instruction=Content.from_text(system_instruction, role=Role.SYSTEM),
            )
        return self.chats.create_session(model, config)

    def _text_config(
        self, max_tokens: int | None, temperature: float | None
    ) -> GenerateContentConfig | None:
        if max_tokens is None and temperature is None:
            return None
        return GenerateContentConfig(
            generation_config=GenerationConfig(
                max_output_tokens=max_tokens,
                temperature=temperature,
            )
        )

    async def generate_text(
        self,
        model: str,
        prompt: str,
        max_tokens: int | None = None,
        temperature: float | None = None,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> str:
        """
        Generate text for a single prompt.

        Raises:
            ContentFilteredError: If the prompt was blocked.
            DeserializationError: If the response carried no text.
        """
        self._ensure_open()
        response = await self.models.generate_content(
            model,
            [Content.from_text(prompt)],
            self._text_config(max_tokens, temperature),
            cancel_event=cancel_event,
        )

        feedback = response.prompt_feedback
        if feedback is not None and feedback.block_reason:
            raise ContentFilteredError(
                f"Prompt was blocked: {feedback.block_reason}",
                blocked_categories=response.blocked_categories(),
            )

        text = response.text
        if text is None:
            raise DeserializationError("Response contained no text.")
        return text

    async def generate_text_stream(
        self,
        model: str,
        prompt: str,
        max_tokens: int | None = None,
        temperature: float | None = None,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> AsyncIterator[str]:
        """Generate text for a single prompt, yielding non-empty deltas."""
        self._ensure_open()
        async for chunk in self.models.generate_content_stream(
            model,
            [Content.from_text(prompt)],
            self._text_config(max_tokens, temperature),
            cancel_event=cancel_event,
        ):
            text = chunk.text
            if text:
                yield text

    async def close(self) -> None:
        """
        Close the client and release its connections.

        Calling it again is harmless.
        """
        if self._backend.closed:
            return
        await self._backend.close()
        logger.debug("GenAIClient closed")
