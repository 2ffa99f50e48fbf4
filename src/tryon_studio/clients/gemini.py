from __future__ import annotations

import logging
from typing import Any, Dict, List

import httpx

from ..config import GeminiConfig
from ..errors import GenerationError
from ..types import ImagePart

logger = logging.getLogger(__name__)

_BASE_INSTRUCTION = (
    "You are a virtual fitting room. The first image shows a person and the second "
    "image shows a clothing item. Produce a photorealistic image of the same person "
    "wearing that clothing item. Keep the person's face, body shape, pose, skin tone "
    "and the background unchanged. Reproduce the garment's color, pattern, texture "
    "and fit faithfully, with natural folds and lighting."
)


def build_prompt(description: str) -> str:
    """Compose the instruction text, naming the garment when a qualifier is given."""
    qualifier = description.strip()
    if not qualifier:
        return _BASE_INSTRUCTION
    return (
        f"{_BASE_INSTRUCTION} The clothing image may contain several items; "
        f"use only this one: {qualifier}."
    )


class GeminiImageClient:
    """Client for the Gemini ``generateContent`` endpoint with image output."""

    def __init__(
        self,
        config: GeminiConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._path = f"/models/{config.model}:generateContent"
        self._session = httpx.AsyncClient(
            base_url=config.api_url.rstrip("/") + "/",
            headers={
                "x-goog-api-key": config.api_key,
                "Content-Type": "application/json",
            },
            timeout=httpx.Timeout(config.timeout_seconds),
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._session.aclose()

    @staticmethod
    def _build_payload(person: ImagePart, garment: ImagePart, description: str) -> Dict[str, Any]:
        return {
            "contents": [
                {
                    "role": "user",
                    "parts": [
                        {"text": build_prompt(description)},
                        person.as_inline_data(),
                        garment.as_inline_data(),
                    ],
                }
            ],
            "generationConfig": {"responseModalities": ["IMAGE", "TEXT"]},
        }

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text.strip() or response.reason_phrase
        if isinstance(body, dict) and isinstance(body.get("error"), dict):
            message = body["error"].get("message")
            if message:
                return str(message)
        return str(body)

    @staticmethod
    def _extract_images(data: Dict[str, Any]) -> tuple[List[str], List[str]]:
        images: List[str] = []
        texts: List[str] = []
        for candidate in data.get("candidates") or []:
            content = candidate.get("content") or {}
            for part in content.get("parts") or []:
                blob = part.get("inlineData") or part.get("inline_data")
                if blob:
                    mime = blob.get("mimeType") or blob.get("mime_type") or "image/png"
                    if mime.startswith("image/") and blob.get("data"):
                        images.append(blob["data"])
                elif part.get("text"):
                    texts.append(str(part["text"]).strip())
        return images, texts

    async def generate(self, person: ImagePart, garment: ImagePart, description: str) -> List[str]:
        """
        Ask the model to dress ``person`` in ``garment``.

        Returns
        -------
        list[str]
            Bare base64 image bodies in the order the model produced them.

        Raises
        ------
        GenerationError
            On transport failures, error responses, blocked prompts, or a response
            without image parts.
        """
        payload = self._build_payload(person, garment, description)
        logger.info("Requesting try-on from %s", self._config.model)

        try:
            response = await self._session.post(self._path, json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            detail = self._error_detail(exc.response)
            raise GenerationError(
                f"Gemini request failed ({exc.response.status_code}): {detail}"
            ) from exc
        except httpx.HTTPError as exc:
            raise GenerationError(f"Could not reach the generation service: {exc}") from exc

        try:
            data: Dict[str, Any] = response.json()
        except ValueError as exc:
            raise GenerationError("Gemini returned a response that is not valid JSON.") from exc
        if not isinstance(data, dict):
            raise GenerationError(
                f"Gemini returned an unexpected response of type {type(data).__name__}."
            )

        block_reason = (data.get("promptFeedback") or {}).get("blockReason")
        if block_reason:
            raise GenerationError(f"The request was blocked by the model ({block_reason}).")

        images, texts = self._extract_images(data)
        if not images:
            message = "The model did not return an image."
            if texts:
                message = f"{message} Model response: {' '.join(texts)}"
            raise GenerationError(message)

        logger.info("Received %d generated image(s)", len(images))
        return images

    async def __aenter__(self) -> "GeminiImageClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        await self.aclose()
