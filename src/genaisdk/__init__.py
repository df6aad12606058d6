"""
genaisdk - An async Python SDK for the Generative Language and Vertex AI APIs.

The SDK serializes typed requests, retries transient failures, decodes
streamed responses and keeps chat history, on top of ``httpx``.

Example:
    >>> from genaisdk import ClientOptions, GenAIClient
    >>>
    >>> async def main():
    ...     async with GenAIClient(ClientOptions(api_key="...")) as client:
    ...         chat = client.create_chat_session("gemini-2.5-flash")
    ...         async for chunk in chat.send_message_stream("What is Python?"):
    ...             print(chunk.text or "", end="", flush=True)
    ...
    >>> import asyncio
    >>> asyncio.run(main())
"""

from .backend import GenAIBackend
from .classifier import classify, parse_retry_after
from .client import GenAIClient
from .config import ClientOptions

# Exceptions
from .exceptions import (
    APIError,
    AuthenticationError,
    BadRequestError,
    CancellationError,
    ClientClosedError,
    ConfigurationError,
    ConnectionError,
    ContentFilteredError,
    DeserializationError,
    ErrorKind,
    ForbiddenError,
    GenAISDKError,
    NotFoundError,
    RateLimitError,
    ServerError,
    TimeoutError,
    ValidationError,
)
from .models import ModelsService
from .retry import RetryPolicy
from .serialization import from_wire, to_wire
from .services import (
    BatchesService,
    CachesService,
    FilesService,
    OperationsService,
    TokensService,
    TuningsService,
)
from .session import ChatSession, ChatsService

# Tools
from .tools import call_function, declare_function, define_tool, make_tool

# Types
from .types import (
    SDK_VERSION,
    BatchJob,
    CacheInfo,
    Candidate,
    Content,
    CreateBatchRequest,
    CreateCacheRequest,
    CreateTuningRequest,
    FileData,
    FileMetadata,
    FinishReason,
    FunctionCall,
    FunctionCallingConfig,
    FunctionDeclaration,
    FunctionResponse,
    GenerateContentConfig,
    GenerateContentRequest,
    GenerateContentResponse,
    GenerationConfig,
    InlineData,
    Model,
    Operation,
    Part,
    PromptFeedback,
    Role,
    SafetyRating,
    SafetySetting,
    TokenCountResponse,
    Tool,
    ToolConfig,
    TuningJob,
    UpdateCacheRequest,
    UsageMetadata,
)

__version__ = SDK_VERSION

__all__ = [
    # Version
    "__version__",
    # Client
    "GenAIClient",
    "ClientOptions",
    "GenAIBackend",
    "RetryPolicy",
    # Services
    "ModelsService",
    "ChatSession",
    "ChatsService",
    "FilesService",
    "CachesService",
    "BatchesService",
    "TuningsService",
    "TokensService",
    "OperationsService",
    # Errors
    "classify",
    "parse_retry_after",
    "ErrorKind",
    "GenAISDKError",
    "ConfigurationError",
    "ValidationError",
    "APIError",
    "AuthenticationError",
    "ForbiddenError",
    "NotFoundError",
    "BadRequestError",
    "RateLimitError",
    "ServerError",
    "TimeoutError",
    "ConnectionError",
    "CancellationError",
    "DeserializationError",
    "ContentFilteredError",
    "ClientClosedError",
    # Serialization
    "to_wire",
    "from_wire",
    # Tools
    "declare_function",
    "define_tool",
    "make_tool",
    "call_function",
    # Types
    "Role",
    "FinishReason",
    "Part",
    "Content",
    "InlineData",
    "FileData",
    "FunctionCall",
    "FunctionResponse",
    "GenerationConfig",
    "SafetySetting",
    "FunctionDeclaration",
    "Tool",
    "ToolConfig",
    "FunctionCallingConfig",
    "GenerateContentConfig",
    "GenerateContentRequest",
    "GenerateContentResponse",
    "Candidate",
    "SafetyRating",
    "PromptFeedback",
    "UsageMetadata",
    "Model",
    "TokenCountResponse",
    "FileMetadata",
    "CacheInfo",
    "CreateCacheRequest",
    "UpdateCacheRequest",
    "BatchJob",
    "CreateBatchRequest",
    "TuningJob",
    "CreateTuningRequest",
    "Operation",
]
