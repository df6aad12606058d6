from __future__ import annotations

import pytest

from genaisdk.serialization import from_wire, to_wire
from genaisdk.types import (
    Candidate,
    Content,
    FunctionCall,
    GenerateContentConfig,
    GenerateContentRequest,
    GenerateContentResponse,
    GenerationConfig,
    Model,
    Part,
    Role,
)

pytestmark = pytest.mark.unit


def test_to_wire_omits_unset_fields_and_uses_enum_values() -> None:
    content = Content.from_text("hi")

    assert to_wire(content) == {"role": "user", "parts": [{"text": "hi"}]}


def test_to_wire_request_snapshot() -> None:
    config = GenerateContentConfig(
        generation_config=GenerationConfig(temperature=0.2, max_output_tokens=64),
        system_instruction=Content.from_text("be brief", role=Role.SYSTEM),
    )

    wire = to_wire(GenerateContentRequest.build([Content.from_text("hi")], config))

    assert wire["contents"] == [{"role": "user", "parts": [{"text": "hi"}]}]
    assert wire["generation_config"] == {"temperature": 0.2, "max_output_tokens": 64}
    assert wire["system_instruction"]["role"] == "system"
    assert "tools" not in wire


def test_request_build_copies_contents() -> None:
    history = [Content.from_text("one")]
    request = GenerateContentRequest.build(history)

    history.append(Content.from_text("two"))

    assert len(request.contents) == 1


def test_from_wire_reads_camel_case_response() -> None:
    data = {
        "candidates": [
            {
                "content": {"role": "model", "parts": [{"text": "Hello"}]},
                "finishReason": "STOP",
                "safetyRatings": [{"category": "HARM_CATEGORY_HARASSMENT", "probability": "LOW"}],
            }
        ],
        "usageMetadata": {"promptTokenCount": 4, "candidatesTokenCount": "7", "totalTokenCount": 11},
        "modelVersion": "ignored",
    }

    response = from_wire(GenerateContentResponse, data)

    assert response.text == "Hello"
    assert response.candidates[0].content.role is Role.MODEL
    assert response.candidates[0].finish_reason == "STOP"
    assert response.candidates[0].safety_ratings[0].probability == "LOW"
    assert response.usage_metadata.candidates_token_count == 7
    assert response.is_valid()


def test_from_wire_reads_snake_case_keys() -> None:
    response = from_wire(
        GenerateContentResponse,
        {"candidates": [{"content": {"parts": [{"text": "x"}]}, "finish_reason": "MAX_TOKENS"}]},
    )

    assert response.candidates[0].finish_reason == "MAX_TOKENS"
    assert response.candidates[0].content.role is None


def test_from_wire_keeps_unknown_role_and_function_calls() -> None:
    content = from_wire(
        Content,
        {"role": "tool", "parts": [{"functionCall": {"name": "lookup", "args": {"q": "x"}}}]},
    )

    assert content.role == "tool"
    assert isinstance(content.parts, tuple)
    assert content.parts[0].function_call == FunctionCall(name="lookup", args={"q": "x"})
    assert content.is_valid()


def test_from_wire_rejects_wrong_shapes() -> None:
    with pytest.raises(TypeError):
        from_wire(GenerateContentResponse, ["not", "an", "object"])
    with pytest.raises(TypeError):
        from_wire(GenerateContentResponse, {"candidates": "nope"})


def test_model_from_wire() -> None:
    model = from_wire(
        Model,
        {
            "name": "models/gemini-2.5-flash",
            "displayName": "Gemini 2.5 Flash",
            "inputTokenLimit": 1048576,
            "supportedGenerationMethods": ["generateContent", "countTokens"],
        },
    )

    assert model.display_name == "Gemini 2.5 Flash"
    assert model.input_token_limit == 1048576
    assert "countTokens" in model.supported_generation_methods


def test_response_validity_rules() -> None:
    assert not GenerateContentResponse().is_valid()
    assert not GenerateContentResponse(candidates=[Candidate()]).is_valid()
    empty_parts = Candidate(content=Content(role=Role.MODEL, parts=()))
    assert not GenerateContentResponse(candidates=[empty_parts]).is_valid()
    empty_text = Candidate(content=Content(role=Role.MODEL, parts=(Part(text=""),)))
    assert not GenerateContentResponse(candidates=[empty_text]).is_valid()
