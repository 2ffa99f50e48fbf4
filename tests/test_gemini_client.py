from __future__ import annotations

import asyncio
import json
from typing import Any, Callable, Dict, List

import httpx
import pytest

from tryon_studio.clients.gemini import GeminiImageClient, build_prompt
from tryon_studio.config import GeminiConfig
from tryon_studio.errors import GenerationError
from tryon_studio.types import ImagePart

PERSON = ImagePart(payload="UEVSU09O", media_type="image/png")
GARMENT = ImagePart(payload="R0FSTUVOVA==", media_type="image/jpeg")


def _generate(
    handler: Callable[[httpx.Request], httpx.Response],
    description: str = "",
) -> List[str]:
    config = GeminiConfig(api_key="secret-key")

    async def scenario() -> List[str]:
        async with GeminiImageClient(config, transport=httpx.MockTransport(handler)) as client:
            return await client.generate(PERSON, GARMENT, description)

    return asyncio.run(scenario())


def _image_response(*parts: Dict[str, Any]) -> httpx.Response:
    return httpx.Response(200, json={"candidates": [{"content": {"parts": list(parts)}}]})


def test_request_shape_and_image_extraction() -> None:
    captured: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return _image_response(
            {"text": "Here you go"},
            {"inlineData": {"mimeType": "image/png", "data": "abc"}},
            {"inline_data": {"mime_type": "image/png", "data": "def"}},
        )

    results = _generate(handler, description="the blue t-shirt")

    assert results == ["abc", "def"]
    request = captured[0]
    assert request.method == "POST"
    assert request.url.path == "/v1beta/models/gemini-2.5-flash-image-preview:generateContent"
    assert request.headers["x-goog-api-key"] == "secret-key"

    body = json.loads(request.content)
    parts = body["contents"][0]["parts"]
    assert parts[0]["text"] == build_prompt("the blue t-shirt")
    assert parts[1] == {"inline_data": {"mime_type": "image/png", "data": "UEVSU09O"}}
    assert parts[2] == {"inline_data": {"mime_type": "image/jpeg", "data": "R0FSTUVOVA=="}}
    assert body["generationConfig"]["responseModalities"] == ["IMAGE", "TEXT"]


def test_build_prompt_mentions_qualifier_only_when_given() -> None:
    assert "the blue t-shirt" in build_prompt("  the blue t-shirt ")
    assert build_prompt("") == build_prompt("   ")
    assert "use only this one" not in build_prompt("")


def test_error_status_uses_api_message() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            429, json={"error": {"code": 429, "message": "quota exceeded", "status": "RESOURCE_EXHAUSTED"}}
        )

    with pytest.raises(GenerationError, match="quota exceeded"):
        _generate(handler)


def test_error_status_with_plain_body() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="upstream unavailable")

    with pytest.raises(GenerationError, match=r"\(503\): upstream unavailable"):
        _generate(handler)


def test_transport_failure_is_generation_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(GenerationError, match="Could not reach"):
        _generate(handler)


def test_blocked_prompt_is_reported() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"promptFeedback": {"blockReason": "SAFETY"}})

    with pytest.raises(GenerationError, match="SAFETY"):
        _generate(handler)


def test_text_only_response_is_reported() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return _image_response({"text": "I cannot edit this photo."})

    with pytest.raises(GenerationError, match="I cannot edit this photo."):
        _generate(handler)


def test_non_image_inline_parts_are_ignored() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return _image_response(
            {"inlineData": {"mimeType": "application/json", "data": "e30="}},
            {"inlineData": {"mimeType": "image/webp", "data": "xyz"}},
        )

    assert _generate(handler) == ["xyz"]


def test_non_object_json_body_is_generation_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[{"candidates": []}])

    with pytest.raises(GenerationError, match="unexpected response of type list"):
        _generate(handler)
