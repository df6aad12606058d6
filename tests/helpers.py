"""Shared test helpers: a scripted HTTP API and response builders."""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any, Union

import httpx

from genaisdk.client import GenAIClient
from genaisdk.config import ClientOptions

MODEL = "gemini-2.5-flash"

Reply = Union[httpx.Response, Exception, Callable[[httpx.Request], httpx.Response]]


class ScriptedAPI:
    """Answers requests from a script of replies, recording every request.

    Replies are consumed in order; the last one repeats once the script runs
    out. A reply may be a response, an exception to raise, or a callable
    taking the request.
    """

    def __init__(self, *replies: Reply) -> None:
        self.replies = list(replies)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        if callable(reply) and not isinstance(reply, httpx.Response):
            return reply(request)
        return reply

    def http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))

    def body(self, index: int = -1) -> Any:
        return json.loads(self.requests[index].content)


def make_options(**overrides: Any) -> ClientOptions:
    values: dict[str, Any] = {"api_key": "test-key"}
    values.update(overrides)
    return ClientOptions(**values)


def make_client(api: ScriptedAPI, **overrides: Any) -> GenAIClient:
    return GenAIClient(make_options(**overrides), http_client=api.http_client())


def candidate_payload(*texts: str, role: str | None = "model") -> dict[str, Any]:
    content: dict[str, Any] = {"parts": [{"text": text} for text in texts]}
    if role is not None:
        content["role"] = role
    return {
        "candidates": [{"content": content, "finishReason": "STOP", "index": 0}],
        "usageMetadata": {"promptTokenCount": 3, "candidatesTokenCount": 2, "totalTokenCount": 5},
    }


def json_response(payload: Any, status_code: int = 200, **kwargs: Any) -> httpx.Response:
    return httpx.Response(status_code, json=payload, **kwargs)


def error_response(
    status_code: int, message: str = "boom", headers: dict[str, str] | None = None
) -> httpx.Response:
    return httpx.Response(
        status_code,
        json={"error": {"code": status_code, "message": message, "status": "ERROR"}},
        headers=headers,
    )


def sse_response(*events: Any, done: bool = True) -> httpx.Response:
    """An event-stream response; str events are sent verbatim as data."""
    lines = []
    for event in events:
        data = event if isinstance(event, str) else json.dumps(event)
        lines.append(f"data: {data}\n\n")
    if done:
        lines.append("data: [DONE]\n\n")
    return httpx.Response(
        200,
        headers={"content-type": "text/event-stream"},
        content="".join(lines).encode(),
    )
