"""
Chat sessions - multi-turn conversations that keep their own history.

This module provides the ChatSession class, which accumulates the turns of
a conversation (including streamed replies), and ChatsService, which
creates sessions and offers single-turn helpers.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from collections.abc import AsyncIterator
from contextlib import aclosing
from datetime import datetime, timezone

from .models import ModelsService
from .types import (
    Content,
    GenerateContentConfig,
    GenerateContentResponse,
    Part,
    Role,
)

logger = logging.getLogger(__name__)


class ChatSession:
    """
    A conversation with one model.

    Every send appends the user turn to the history first and the model
    reply after it arrives, so the next send carries the full conversation.
    A failed or abandoned call leaves the user turn in place without a
    reply. A session must not be used by two concurrent sends.

    Example:
        >>> chat = client.chats.create_session("gemini-2.5-flash")
        >>> response = await chat.send_message("Hello!")
        >>> async for chunk in chat.send_message_stream("Tell me more."):
        ...     print(chunk.text or "", end="", flush=True)
        >>> len(chat.history)
        4
    """

    def __init__(
        self,
        model: str,
        models: ModelsService,
        config: GenerateContentConfig | None = None,
    ) -> None:
        """Initialize the session.

        Args:
            model: The model to talk to.
            models: Service used to generate replies.
            config: Settings sent with every turn. The system instruction
                lives here and never enters the history.
        """
        self._model = model
        self._models = models
        self._config = config
        self._history: list[Content] = []
        self._start_time = datetime.now(timezone.utc)
        self._modified_time = self._start_time

    @property
    def model(self) -> str:
        """Get the model name."""
        return self._model

    @property
    def config(self) -> GenerateContentConfig | None:
        return self._config

    @property
    def history(self) -> tuple[Content, ...]:
        """Snapshot of the conversation so far, oldest first."""
        return tuple(self._history)

    @property
    def start_time(self) -> datetime:
        return self._start_time

    @property
    def modified_time(self) -> datetime:
        """Time of the last history change."""
        return self._modified_time

    def _append(self, content: Content) -> None:
        self._history.append(content)
        self._modified_time = datetime.now(timezone.utc)

    async def send_message(
        self,
        text: str,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> GenerateContentResponse:
        """Send a text message as a user turn."""
        return await self.send_content(Content.from_text(text), cancel_event=cancel_event)

    async def send_content(
        self,
        content: Content,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> GenerateContentResponse:
        """
        Send a turn and record the model reply.

        Returns:
            The response. An invalid response (no usable candidate) is
            returned as is and adds nothing to the history.

        Raises:
            GenAISDKError: Whatever the call raised; the sent turn stays in
                the history.
        """
        self._append(content)

        response = await self._models.generate_content(
            self._model, self.history, self._config, cancel_event=cancel_event
        )

        if response.is_valid():
            reply = response.candidates[0].content
            self._append(dataclasses.replace(reply, role=Role.MODEL))
        else:
            logger.debug("Response had no valid candidate; history not extended")

        return response

    async def send_message_stream(
        self,
        text: str,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> AsyncIterator[GenerateContentResponse]:
        """Send a text message and yield the reply as it streams."""
        async for chunk in self.send_content_stream(
            Content.from_text(text), cancel_event=cancel_event
        ):
            yield chunk

    async def send_content_stream(
        self,
        content: Content,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> AsyncIterator[GenerateContentResponse]:
        """
        Send a turn and yield the reply chunk by chunk.

        The parts of every valid chunk are gathered into one model turn,
        which is appended only once the stream has been fully consumed.
        Stopping early, cancelling or failing leaves just the user turn.
        """
        self._append(content)
        parts: list[Part] = []

        stream = self._models.generate_content_stream(
            self._model, self.history, self._config, cancel_event=cancel_event
        )
        async with aclosing(stream):
            async for chunk in stream:
                if chunk.is_valid():
                    parts.extend(chunk.candidates[0].content.parts)
                yield chunk

        if parts:
            self._append(Content(role=Role.MODEL, parts=tuple(parts)))
        else:
            logger.debug("Stream produced no valid chunks; history not extended")

    def clear_history(self) -> None:
        """Forget every turn. Requests already sent are unaffected."""
        self._history.clear()
        self._modified_time = datetime.now(timezone.utc)


class ChatsService:
    """Creates chat sessions and sends single-turn messages."""

    def __init__(self, models: ModelsService) -> None:
        self._models = models

    def create_session(
        self,
        model: str,
        config: GenerateContentConfig | None = None,
    ) -> ChatSession:
        return ChatSession(model, self._models, config)

    async def send_message(
        self,
        model: str,
        message: str,
        config: GenerateContentConfig | None = None,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> GenerateContentResponse:
        """Send one message without keeping any history."""
        return await self._models.generate_content(
            model, [Content.from_text(message)], config, cancel_event=cancel_event
        )

    async def send_message_stream(
        self,
        model: str,
        message: str,
        config: GenerateContentConfig | None = None,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> AsyncIterator[GenerateContentResponse]:
        async for chunk in self._models.generate_content_stream(
            model, [Content.from_text(message)], config, cancel_event=cancel_event
        ):
            yield chunk
