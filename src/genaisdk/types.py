"""
Type definitions for the GenAI SDK

Field names are snake_case and double as the JSON keys sent on the wire.
Conversion to and from JSON lives in ``genaisdk.serialization``.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

# =============================================================================
# Constants
# =============================================================================

SDK_VERSION = "0.1.0"
DEFAULT_USER_AGENT = f"genaisdk/{SDK_VERSION}"

GEMINI_API_BASE_URL = "https://generativelanguage.googleapis.com"
VERTEX_AI_BASE_URL_TEMPLATE = "https://{location}-aiplatform.googleapis.com"
VERTEX_AI_API_VERSION = "v1"
DEFAULT_API_VERSION = "v1"
DEFAULT_VERTEX_LOCATION = "us-central1"

API_KEY_HEADER = "x-goog-api-key"

# Server-sent events framing
SSE_DATA_PREFIX = "data:"
SSE_DONE_SENTINEL = "[DONE]"

# HTTP Status codes
HTTP_BAD_REQUEST = 400
HTTP_UNAUTHORIZED = 401
HTTP_FORBIDDEN = 403
HTTP_NOT_FOUND = 404
HTTP_TOO_MANY_REQUESTS = 429
HTTP_INTERNAL_SERVER_ERROR = 500


class Role(str, Enum):
    """Author of a conversation turn."""

    USER = "user"
    MODEL = "model"
    SYSTEM = "system"


class FinishReason(str, Enum):
    """Why a candidate stopped generating."""

    FINISH_REASON_UNSPECIFIED = "FINISH_REASON_UNSPECIFIED"
    STOP = "STOP"
    MAX_TOKENS = "MAX_TOKENS"
    SAFETY = "SAFETY"
    RECITATION = "RECITATION"
    BLOCKLIST = "BLOCKLIST"
    PROHIBITED_CONTENT = "PROHIBITED_CONTENT"
    SPII = "SPII"
    MALFORMED_FUNCTION_CALL = "MALFORMED_FUNCTION_CALL"
    OTHER = "OTHER"


# =============================================================================
# Content Types
# =============================================================================


@dataclass(frozen=True)
class InlineData:
    """Base64-encoded bytes sent inline with a request."""

    mime_type: str = ""
    data: str = ""


@dataclass(frozen=True)
class FileData:
    """Reference to a previously uploaded file."""

    mime_type: str = ""
    file_uri: str = ""


@dataclass(frozen=True)
class FunctionCall:
    """A function call emitted by the model."""

    name: str = ""
    args: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class FunctionResponse:
    """The result of a function call, sent back to the model."""

    name: str = ""
    response: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Part:
    """A single fragment of a turn. Only one variant is expected to be set."""

    text: str | None = None
    inline_data: InlineData | None = None
    file_data: FileData | None = None
    function_call: FunctionCall | None = None
    function_response: FunctionResponse | None = None

    @classmethod
    def from_text(cls, text: str) -> Part:
        return cls(text=text)

    @classmethod
    def from_function_response(cls, name: str, response: dict[str, Any]) -> Part:
        return cls(function_response=FunctionResponse(name=name, response=response))

    def is_valid(self) -> bool:
        return bool(self.text) or any(
            value is not None
            for value in (
                self.inline_data,
                self.file_data,
                self.function_call,
                self.function_response,
            )
        )


@dataclass(frozen=True)
class Content:
    """One turn of a conversation: a role and an ordered tuple of parts.

    ``role`` is normally a ``Role``; unknown role strings from the wire are
    kept as plain strings and a missing role is ``None``.
    """

    role: Role | str | None = None
    parts: tuple[Part, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.parts, tuple):
            object.__setattr__(self, "parts", tuple(self.parts))
        if isinstance(self.role, str) and not isinstance(self.role, Role):
            try:
                object.__setattr__(self, "role", Role(self.role))
            except ValueError:
                pass

    @classmethod
    def from_text(cls, text: str, role: Role | str = Role.USER) -> Content:
        return cls(role=role, parts=(Part(text=text),))

    @property
    def text(self) -> str:
        """All text parts joined together."""
        return "".join(part.text for part in self.parts if part.text)

    def is_valid(self) -> bool:
        if not self.parts:
            return False
        return all(part.is_valid() for part in self.parts)


# =============================================================================
# Generation Config Types
# =============================================================================


@dataclass
class GenerationConfig:
    """Sampling and output controls for text generation."""

    max_output_tokens: int | None = None
    temperature: float | None = None
    top_p: float | None = None
    top_k: int | None = None
    candidate_count: int | None = None
    stop_sequences: list[str] | None = None
    response_mime_type: str | None = None
    response_schema: dict[str, Any] | None = None
    presence_penalty: float | None = None
    frequency_penalty: float | None = None


@dataclass
class SafetySetting:
    """Blocking threshold for one harm category."""

    category: str = ""
    threshold: str = ""


# =============================================================================
# Tool Types
# =============================================================================


@dataclass
class FunctionDeclaration:
    """Schema of a function the model may call."""

    name: str = ""
    description: str = ""
    parameters: dict[str, Any] | None = None
    # Local callable run by call_function; never sent.
    handler: Callable[..., Any] | None = field(
        default=None, repr=False, compare=False, metadata={"wire": False}
    )


@dataclass
class Tool:
    """A group of capabilities offered to the model."""

    function_declarations: list[FunctionDeclaration] = field(default_factory=list)
    code_execution: dict[str, Any] | None = None
    google_search: dict[str, Any] | None = None


@dataclass
class FunctionCallingConfig:
    mode: str | None = None
    allowed_function_names: list[str] | None = None


@dataclass
class ToolConfig:
    function_calling_config: FunctionCallingConfig | None = None


# =============================================================================
# Request/Response Types
# =============================================================================


@dataclass
class GenerateContentConfig:
    """Per-call (or per-session) generation settings."""

    generation_config: GenerationConfig | None = None
    safety_settings: list[SafetySetting] = field(default_factory=list)
    tools: list[Tool] | None = None
    tool_config: ToolConfig | None = None
    system_instruction: Content | None = None
    cached_content: str | None = None


@dataclass
class GenerateContentRequest:
    """Body of ``generateContent`` and ``streamGenerateContent``."""

    contents: list[Content] = field(default_factory=list)
    generation_config: GenerationConfig | None = None
    safety_settings: list[SafetySetting] = field(default_factory=list)
    tools: list[Tool] | None = None
    tool_config: ToolConfig | None = None
    system_instruction: Content | None = None
    cached_content: str | None = None

    @classmethod
    def build(
        cls,
        contents: list[Content] | tuple[Content, ...],
        config: GenerateContentConfig | None = None,
    ) -> GenerateContentRequest:
        """Snapshot ``contents`` together with ``config`` into a new request."""
        config = config or GenerateContentConfig()
        return cls(
            contents=list(contents),
            generation_config=config.generation_config,
            safety_settings=list(config.safety_settings),
            tools=config.tools,
            tool_config=config.tool_config,
            system_instruction=config.system_instruction,
            cached_content=config.cached_content,
        )


@dataclass
class SafetyRating:
    category: str = ""
    probability: str = ""
    blocked: bool = False


@dataclass
class CitationSource:
    start_index: int = 0
    end_index: int = 0
    uri: str | None = None
    license: str | None = None


@dataclass
class CitationMetadata:
    citation_sources: list[CitationSource] = field(default_factory=list)


@dataclass
class UsageMetadata:
    """Token usage information."""

    prompt_token_count: int = 0
    candidates_token_count: int = 0
    total_token_count: int = 0


@dataclass
class PromptFeedback:
    block_reason: str | None = None
    safety_ratings: list[SafetyRating] = field(default_factory=list)


@dataclass
class Candidate:
    """One alternative generated by the model."""

    content: Content | None = None
    finish_reason: str | None = None
    safety_ratings: list[SafetyRating] = field(default_factory=list)
    citation_metadata: CitationMetadata | None = None
    token_count: int | None = None
    index: int = 0


@dataclass
class GenerateContentResponse:
    """A full response, or one chunk of a streamed response."""

    candidates: list[Candidate] = field(default_factory=list)
    usage_metadata: UsageMetadata | None = None
    prompt_feedback: PromptFeedback | None = None

    @property
    def text(self) -> str | None:
        """First non-empty text part of the first candidate."""
        if not self.candidates or self.candidates[0].content is None:
            return None
        for part in self.candidates[0].content.parts:
            if part.text:
                return part.text
        return None

    def is_valid(self) -> bool:
        if not self.candidates:
            return False
        content = self.candidates[0].content
        return content is not None and content.is_valid()

    def blocked_categories(self) -> list[str]:
        """Categories of the prompt safety ratings that caused a block."""
        if self.prompt_feedback is None:
            return []
        return [
            rating.category
            for rating in self.prompt_feedback.safety_ratings
            if rating.blocked
        ]


# =============================================================================
# Model Types
# =============================================================================


@dataclass
class ModelRange:
    min: float = 0.0
    max: float = 0.0


@dataclass
class Model:
    """Information about an available model."""

    name: str = ""
    display_name: str = ""
    description: str = ""
    input_token_limit: int = 0
    output_token_limit: int = 0
    supported_generation_methods: list[str] = field(default_factory=list)
    temperature: ModelRange | None = None
    top_p: ModelRange | None = None
    top_k: ModelRange | None = None


@dataclass
class CountTokensRequest:
    contents: list[Content] = field(default_factory=list)


@dataclass
class TokenCountResponse:
    total_tokens: int = 0


# =============================================================================
# Resource Types
# =============================================================================


@dataclass
class FileError:
    code: int = 0
    message: str = ""


@dataclass
class VideoMetadata:
    video_duration: str | None = None


@dataclass
class FileMetadata:
    """Metadata of an uploaded file."""

    name: str = ""
    display_name: str = ""
    mime_type: str = ""
    size_bytes: int = 0
    create_time: str | None = None
    update_time: str | None = None
    expiration_time: str | None = None
    sha256_hash: str | None = None
    uri: str | None = None
    state: str = ""
    error: FileError | None = None
    video_metadata: VideoMetadata | None = None


@dataclass
class CacheUsageMetadata:
    total_token_count: int = 0


@dataclass
class CacheInfo:
    """A cached-content resource."""

    name: str = ""
    display_name: str = ""
    model: str = ""
    system_instruction: Content | None = None
    contents: list[Content] = field(default_factory=list)
    tools: list[Tool] = field(default_factory=list)
    tool_config: ToolConfig | None = None
    create_time: str | None = None
    update_time: str | None = None
    usage_metadata: CacheUsageMetadata | None = None
    expire_time: str | None = None


@dataclass
class CreateCacheRequest:
    model: str = ""
    display_name: str | None = None
    system_instruction: Content | None = None
    contents: list[Content] = field(default_factory=list)
    tools: list[Tool] | None = None
    tool_config: ToolConfig | None = None
    ttl: str | None = None


@dataclass
class UpdateCacheRequest:
    ttl: str | None = None
    expire_time: str | None = None


@dataclass
class RequestCounts:
    total: int = 0
    completed: int = 0
    failed: int = 0
    pending: int = 0


@dataclass
class BatchJob:
    """A batch prediction job."""

    name: str = ""
    display_name: str = ""
    model: str = ""
    state: str = ""
    create_time: str | None = None
    update_time: str | None = None
    request_counts: RequestCounts | None = None


@dataclass
class BatchRequest:
    request_id: str = ""
    contents: list[Content] = field(default_factory=list)
    generation_config: GenerationConfig | None = None
    safety_settings: list[SafetySetting] | None = None


@dataclass
class CreateBatchRequest:
    model: str = ""
    display_name: str | None = None
    requests: list[BatchRequest] = field(default_factory=list)


@dataclass
class TuningExample:
    text_input: str = ""
    output: str = ""


@dataclass
class TuningDataset:
    examples: list[TuningExample] = field(default_factory=list)


@dataclass
class Hyperparameters:
    epoch_count: int | None = None
    batch_size: int | None = None
    learning_rate: float | None = None
    learning_rate_multiplier: float | None = None


@dataclass
class TuningTask:
    training_data: TuningDataset | None = None
    hyperparameters: Hyperparameters | None = None


@dataclass
class TunedModel:
    model: str = ""
    endpoint: str | None = None


@dataclass
class TuningError:
    code: int = 0
    message: str = ""


@dataclass
class TuningJob:
    """A model tuning job."""

    name: str = ""
    display_name: str = ""
    base_model: str = ""
    state: str = ""
    create_time: str | None = None
    update_time: str | None = None
    complete_time: str | None = None
    tuning_task: TuningTask | None = None
    tuned_model: TunedModel | None = None
    error: TuningError | None = None


@dataclass
class CreateTuningRequest:
    base_model: str = ""
    display_name: str | None = None
    tuning_task: TuningTask = field(default_factory=TuningTask)


@dataclass
class OperationError:
    code: int = 0
    message: str = ""
    details: list[dict[str, Any]] = field(default_factory=list)


@dataclass
class Operation:
    """A long-running operation."""

    name: str = ""
    done: bool = False
    metadata: dict[str, Any] | None = None
    response: dict[str, Any] | None = None
    error: OperationError | None = None
