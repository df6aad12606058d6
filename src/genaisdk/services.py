"""
Resource services: files, cached contents, batches, tunings, tokens and
long-running operations.

Each service maps its methods one-to-one onto REST endpoints and shares the
client's transport. Resource names may be given bare (``abc``) or qualified
with their collection (``cachedContents/abc``).
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from typing import Any

from .backend import GenAIBackend
from .exceptions import ValidationError
from .serialization import from_wire, to_wire
from .types import (
    BatchJob,
    CacheInfo,
    Content,
    CountTokensRequest,
    CreateBatchRequest,
    CreateCacheRequest,
    CreateTuningRequest,
    FileMetadata,
    Operation,
    TokenCountResponse,
    TuningJob,
    UpdateCacheRequest,
)

logger = logging.getLogger(__name__)


def _require(value: str | None, field: str) -> None:
    if not value or not value.strip():
        raise ValidationError(f"{field} cannot be empty.", field=field)


class _ResourceService:
    """Shared list/get/delete plumbing for one REST collection."""

    #: Collection segment for the Gemini Developer API.
    collection: str = ""
    #: Collection segment for Vertex AI, when it differs.
    vertex_collection: str | None = None
    resource_type: type = dict

    def __init__(self, backend: GenAIBackend) -> None:
        self._backend = backend

    @property
    def _collection(self) -> str:
        if self.vertex_collection and self._backend.options.get_use_vertex_ai():
            return self.vertex_collection
        return self.collection

    def _collection_path(self) -> str:
        return self._backend.options.collection_path(self._collection)

    def _resource_path(self, name: str) -> str:
        _require(name, "name")
        return self._backend.options.resource_path(self._collection, name)

    def _parser(self) -> Callable[[Any], Any]:
        resource_type = self.resource_type
        return lambda data: from_wire(resource_type, data)

    async def _list(self, page_size: int | None = None) -> list[Any]:
        items: list[Any] = []
        page_token: str | None = None
        while True:
            params: dict[str, Any] = {}
            if page_size:
                params["pageSize"] = page_size
            if page_token:
                params["pageToken"] = page_token

            data = await self._backend.get(self._collection_path(), params=params) or {}
            for item in data.get(self._collection, []):
                items.append(from_wire(self.resource_type, item))
            page_token = data.get("nextPageToken") or data.get("next_page_token")
            if not page_token:
                break
        logger.debug(f"Listed {len(items)} {self._collection}")
        return items

    async def _get(self, name: str) -> Any:
        return await self._backend.get(self._resource_path(name), parse=self._parser())

    async def _create(self, body: Any) -> Any:
        return await self._backend.post(self._collection_path(), body=body, parse=self._parser())

    async def delete(self, name: str) -> None:
        """Delete a resource by name."""
        await self._backend.delete(self._resource_path(name))
        logger.debug(f"Deleted {self._collection}/{name}")


class FilesService(_ResourceService):
    """Metadata of uploaded files. Uploading itself is not supported."""

    collection = "files"
    resource_type = FileMetadata

    async def list(self, *, page_size: int | None = None) -> list[FileMetadata]:
        return await self._list(page_size)

    async def get(self, name: str) -> FileMetadata:
        return await self._get(name)


class CachesService(_ResourceService):
    """Cached contents that can be referenced from generation requests."""

    collection = "cachedContents"
    resource_type = CacheInfo

    async def create(self, request: CreateCacheRequest) -> CacheInfo:
        _require(request.model, "model")
        return await self._create(request)

    async def list(self, *, page_size: int | None = None) -> list[CacheInfo]:
        return await self._list(page_size)

    async def get(self, name: str) -> CacheInfo:
        return await self._get(name)

    async def update(self, name: str, request: UpdateCacheRequest) -> CacheInfo:
        """Update the expiration of a cache.

        Only the fields set on ``request`` are sent and named in the update
        mask.
        """
        body = to_wire(request)
        if not body:
            raise ValidationError("Update request sets no fields.", field="request")
        return await self._backend.patch(
            self._resource_path(name),
            body=body,
            params={"updateMask": ",".join(body)},
            parse=self._parser(),
        )


class BatchesService(_ResourceService):
    """Batch prediction jobs."""

    collection = "batches"
    vertex_collection = "batchPredictionJobs"
    resource_type = BatchJob

    async def create(self, request: CreateBatchRequest) -> BatchJob:
        _require(request.model, "model")
        return await self._create(request)

    async def list(self, *, page_size: int | None = None) -> list[BatchJob]:
        return await self._list(page_size)

    async def get(self, name: str) -> BatchJob:
        return await self._get(name)


class TuningsService(_ResourceService):
    """Model tuning jobs."""

    collection = "tunedModels"
    vertex_collection = "tuningJobs"
    resource_type = TuningJob

    async def create(self, request: CreateTuningRequest) -> TuningJob:
        _require(request.base_model, "base_model")
        return await self._create(request)

    async def list(self, *, page_size: int | None = None) -> list[TuningJob]:
        return await self._list(page_size)

    async def get(self, name: str) -> TuningJob:
        return await self._get(name)


class OperationsService(_ResourceService):
    """Long-running operations."""

    collection = "operations"
    resource_type = Operation

    async def list(self, *, page_size: int | None = None) -> list[Operation]:
        return await self._list(page_size)

    async def get(self, name: str) -> Operation:
        return await self._get(name)


class TokensService:
    """Token counting."""

    def __init__(self, backend: GenAIBackend) -> None:
        self._backend = backend

    async def count_tokens(
        self,
        model: str,
        contents: Sequence[Content],
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> TokenCountResponse:
        """Count the tokens ``contents`` would use with ``model``."""
        _require(model, "model")
        if not contents:
            raise ValidationError("Contents cannot be empty.", field="contents")
        return await self._backend.post(
            self._backend.options.model_path(model, "countTokens"),
            body=CountTokensRequest(contents=list(contents)),
            parse=lambda data: from_wire(TokenCountResponse, data),
            cancel_event=cancel_event,
        )
